"""End-to-end scenarios for the composed application (in-process)."""

from __future__ import annotations

import json

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from bookstore.api.app import create_app
from bookstore.api.routing import compose
from bookstore.media.strategy import SerializationStrategy, resolve_strategy

BOOK = {
    "isbn": "978-0134685991",
    "title": "Effective Java",
    "authors": ["Joshua Bloch"],
    "publisher": "Addison-Wesley",
    "edition": "3rd",
    "pages": 412,
}


@pytest.fixture
def build(make_config, passing_checks, registry):
    def _build(overrides=None) -> FastAPI:
        config = make_config(overrides)
        table = compose(config, resolve_strategy(config), checks=passing_checks, registry=registry)
        return create_app(table)

    return _build


class TestCreateApp:
    def test_returns_fastapi_instance(self, build):
        assert isinstance(build(), FastAPI)

    def test_routes_registered(self, build):
        paths = set(build().openapi()["paths"])
        assert {"/health", "/health/ready", "/health/live", "/metrics", "/books", "/books/{isbn}"} <= paths

    def test_middleware_installed(self, build):
        names = [m.cls.__name__ for m in build().user_middleware]
        assert "MediaSupportMiddleware" in names
        assert "MetricsMiddleware" in names

    def test_routing_on_state(self, build):
        assert build().state.routing.names() == ["media", "health", "metrics", "books"]


class TestDefaultScenario:
    def test_books_health_metrics(self, build, registry):
        with TestClient(build()) as client:
            assert client.get("/books").status_code == 200
            assert client.get("/health").json()["status"] == "pass"

            metrics = client.get("/metrics")
            assert metrics.status_code == 200
            assert 'requests_total{method="GET",status="200"}' in metrics.text

        samples = registry.counter("requests_total").collect()
        assert sum(s["value"] for s in samples) >= 1


@pytest.mark.parametrize("library", ["jsonp", "JSONB", "Jackson"])
class TestStrategyScenario:
    def test_same_shape_any_codec(self, build, library):
        app = build({"app": {"json-library": library}})
        assert app.state.routing.find("media").handler.codec.name == library.lower()

        with TestClient(app) as client:
            created = client.post("/books", content=json.dumps(BOOK), headers={"content-type": "application/json"})
            assert created.status_code == 201
            assert client.get(f"/books/{BOOK['isbn']}").json() == BOOK
            assert client.get("/books").json() == [BOOK]


class TestErrorRendering:
    def test_malformed_body_is_400_problem(self, build):
        with TestClient(build()) as client:
            resp = client.post("/books", content=b"{oops", headers={"content-type": "application/json"})
        assert resp.status_code == 400
        assert resp.headers["content-type"].startswith("application/problem+json")
        assert resp.json()["title"] == "MalformedPayloadError"

    def test_unknown_strategy_never_reaches_app(self, make_config):
        from bookstore.core.errors import ConfigurationError

        with pytest.raises(ConfigurationError):
            resolve_strategy(make_config({"app": {"json-library": "xml"}}))
