"""Tests for the command line interface."""

import json

import click
import httpx
from click.testing import CliRunner

from flint.cli import main


def test_classify_rate_limited(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    result = CliRunner().invoke(main, ["classify", "RATE_LIMITED"])

    assert result.exit_code == 0
    assert "backoff" in result.output
    assert "5000ms" in result.output
    assert "Temporary Issue" in result.output


def test_classify_network(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    result = CliRunner().invoke(main, ["classify", "--network"])

    assert result.exit_code == 0
    assert "Network error" in result.output


def test_classify_unknown_message(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    result = CliRunner().invoke(main, ["classify", "whatever", "-m", "custom text"])

    assert result.exit_code == 0
    assert "custom text" in result.output


def test_status_disconnected(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    result = CliRunner().invoke(main, ["status", "c1", "Robinhood", "--disabled"])

    assert result.exit_code == 0
    assert "Disconnected" in result.output
    assert "/snaptrade/auth?reconnect=c1" in result.output


def test_status_connected(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    result = CliRunner().invoke(main, ["status", "c1", "Robinhood"])

    assert result.exit_code == 0
    assert "Connected" in result.output


def use_mock_transport(monkeypatch, handler):
    """Route every httpx.AsyncClient the CLI creates through handler."""
    real_client = httpx.AsyncClient

    def fake_client(*args, **kwargs):
        kwargs["transport"] = httpx.MockTransport(handler)
        return real_client(*args, **kwargs)

    monkeypatch.setattr(httpx, "AsyncClient", fake_client)


def write_config(tmp_path):
    (tmp_path / "config.yaml").write_text("portal:\n  api_base: https://flint.example/api\n")


def test_portal_url_failure_exits_nonzero(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    write_config(tmp_path)

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(429, json={"code": "RATE_LIMITED", "message": "slow"})

    use_mock_transport(monkeypatch, handler)
    result = CliRunner().invoke(main, ["portal-url", "--reconnect", "auth-1"])

    assert result.exit_code == 1
    assert "Please try again in a moment" in result.output


def test_portal_url_transport_failure_shows_network_directive(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    write_config(tmp_path)

    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    use_mock_transport(monkeypatch, handler)
    result = CliRunner().invoke(main, ["portal-url"])

    assert result.exit_code == 1
    assert not isinstance(result.exception, httpx.ConnectError)
    assert "Network error" in result.output
    assert "connection refused" in result.output


def test_portal_url_success_sends_reconnect(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    write_config(tmp_path)
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append((str(request.url), json.loads(request.content)))
        return httpx.Response(200, json={"portalUrl": "https://portal.example/reconnect"})

    use_mock_transport(monkeypatch, handler)
    result = CliRunner().invoke(main, ["portal-url", "--reconnect", "auth-3"])

    assert result.exit_code == 0
    assert "https://portal.example/reconnect" in result.output
    assert seen == [("https://flint.example/api/portal-url", {"reconnect": "auth-3"})]


def test_portal_url_open_launches_browser(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    write_config(tmp_path)
    launched = []

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"portalUrl": "https://portal.example/connect"})

    use_mock_transport(monkeypatch, handler)
    monkeypatch.setattr(click, "launch", lambda url, *args, **kwargs: launched.append(url))
    result = CliRunner().invoke(main, ["portal-url", "--open"])

    assert result.exit_code == 0
    assert launched == ["https://portal.example/connect"]
    assert "800x600" in result.output
    assert "https://portal.example/connect" in result.output
