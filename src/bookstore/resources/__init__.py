"""Packaged resources: default ``application.toml`` and the demo keystore."""
