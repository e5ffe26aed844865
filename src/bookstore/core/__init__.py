"""Core primitives: errors, configuration, settings, logging and health."""
