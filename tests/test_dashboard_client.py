"""Tests for the dashboard's REST helpers."""

from types import SimpleNamespace

import pytest
import requests

import api_client


@pytest.fixture
def errors(monkeypatch):
    shown = []
    monkeypatch.setattr(api_client.st, "error", shown.append)
    return shown


def refuse(*args, **kwargs):
    raise requests.ConnectionError("connection refused")


class TestDownload:

    def test_api_down(self, monkeypatch, errors):
        monkeypatch.setattr(api_client.requests, "get", refuse)

        assert api_client.api_download("/api/portfolios/p-1/export") is None
        assert errors == ["API请求失败: connection refused"]

    def test_error_status(self, monkeypatch, errors):
        def not_found(*args, **kwargs):
            def raise_for_status():
                raise requests.HTTPError("404 Client Error")
            return SimpleNamespace(raise_for_status=raise_for_status, content=b"")

        monkeypatch.setattr(api_client.requests, "get", not_found)

        assert api_client.api_download("/api/portfolios/missing/export") is None
        assert len(errors) == 1

    def test_returns_body(self, monkeypatch, errors):
        calls = []

        def export(url, params=None, timeout=None):
            calls.append(url)
            return SimpleNamespace(raise_for_status=lambda: None, content="股票代码\n".encode("utf-8"))

        monkeypatch.setattr(api_client.requests, "get", export)

        assert api_client.api_download("/api/portfolios/p-1/export") == "股票代码\n".encode("utf-8")
        assert calls == [f"{api_client.API_URL}/api/portfolios/p-1/export"]
        assert errors == []


def test_get_unwraps_envelope(monkeypatch, errors):
    body = {"success": True, "data": {"status": "healthy"}}
    monkeypatch.setattr(api_client.requests, "get", lambda *a, **k: SimpleNamespace(json=lambda: body))

    assert api_client.api_get("/health") == {"status": "healthy"}


def test_get_shows_failure_message(monkeypatch, errors):
    body = {"success": False, "message": "投资组合不存在: p-1"}
    monkeypatch.setattr(api_client.requests, "get", lambda *a, **k: SimpleNamespace(json=lambda: body))

    assert api_client.api_get("/api/portfolios/p-1") is None
    assert errors == ["投资组合不存在: p-1"]


def test_send_when_api_down(monkeypatch):
    monkeypatch.setattr(api_client.requests, "request", refuse)

    ok, message = api_client.api_send("POST", "/api/portfolios", {"name": "组合"})

    assert ok is False
    assert message.startswith("API请求失败")
