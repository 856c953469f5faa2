"""
Unit tests for the health endpoint and embedded assets.
"""

import json

import pytest

from downloadserver.handlers.assets import ASSETS, get_asset
from downloadserver.handlers.health import SERVICE_NAME, HealthHandler


class TestHealthHandler:

    def test_payload(self):
        health = HealthHandler(version="9.9.9", features=["range-requests"])

        payload = health.payload()

        assert payload["status"] == "healthy"
        assert payload["service"] == SERVICE_NAME
        assert payload["version"] == "9.9.9"
        assert payload["features"] == ["range-requests"]
        assert payload["uptime_seconds"] >= 0
        assert isinstance(payload["timestamp"], int)

    def test_response(self):
        response = HealthHandler(version="1").handle()

        assert response.get_header("Content-Type") == "application/json"
        assert response.get_header("Cache-Control") == "no-cache"
        assert json.loads(response.body)["features"] == []


class TestAssets:

    @pytest.mark.parametrize("name,content_type", [
        ("directory.css", "text/css; charset=utf-8"),
        ("directory.js", "text/javascript; charset=utf-8"),
        ("error.css", "text/css; charset=utf-8"),
        ("error.js", "text/javascript; charset=utf-8"),
    ])
    def test_known_assets(self, name, content_type):
        response = get_asset(name)

        assert response.get_header("Content-Type") == content_type
        assert response.get_header("Cache-Control") == "public, max-age=3600"
        assert response.body == ASSETS[name].encode("utf-8")

    @pytest.mark.parametrize("name", ["", "nope.css", "../config.py", "directory.css/"])
    def test_unknown_assets(self, name):
        assert get_asset(name) is None
