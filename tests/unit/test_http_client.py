"""
Module 04A - HTTP Client Unit Tests
Tests for core/http/client.py retry behaviour (session mocked)
"""
from datetime import timedelta
from unittest.mock import Mock

import pytest
import requests

from core.http.client import HttpClient, HttpError


def raw_response(status_code: int, body: bytes = b"{}") -> Mock:
    return Mock(
        status_code=status_code,
        content=body,
        headers={"content-type": "application/json"},
        url="https://gateway.example/x",
        elapsed=timedelta(milliseconds=12),
    )


@pytest.fixture
def client(monkeypatch):
    monkeypatch.setattr("core.http.client.time.sleep", lambda _: None)
    c = HttpClient(timeout=5.0, max_retries=2, retry_delay=0.01)
    c._session = Mock(spec=requests.Session)
    return c


class TestResponses:

    def test_success(self, client):
        client.session.request.return_value = raw_response(200, b'{"root": "7"}')

        response = client.get("https://gateway.example/x")
        assert response.ok
        assert response.json() == {"root": "7"}
        assert response.elapsed_ms == pytest.approx(12.0)
        client.session.request.assert_called_once()

    def test_client_errors_are_returned_not_raised(self, client):
        client.session.request.return_value = raw_response(404, b"missing")

        response = client.get("https://gateway.example/x")
        assert response.status_code == 404
        assert response.text == "missing"
        assert client.session.request.call_count == 1


class TestRetries:

    def test_get_retries_server_errors(self, client):
        client.session.request.side_effect = [raw_response(502), raw_response(200)]

        assert client.get("https://gateway.example/x").ok
        assert client.session.request.call_count == 2

    def test_get_returns_last_server_error(self, client):
        client.session.request.return_value = raw_response(503)

        response = client.get("https://gateway.example/x")
        assert response.status_code == 503
        assert client.session.request.call_count == 3

    def test_connection_failure_raises_after_retries(self, client):
        client.session.request.side_effect = requests.ConnectionError("refused")

        with pytest.raises(HttpError, match="refused"):
            client.get("https://gateway.example/x")
        assert client.session.request.call_count == 3

    def test_post_is_sent_once_by_default(self, client):
        client.session.request.side_effect = requests.Timeout("slow")

        with pytest.raises(HttpError):
            client.post("https://gateway.example/publish", json={"root": "1"})
        assert client.session.request.call_count == 1

    def test_post_with_explicit_retries(self, client):
        client.session.request.side_effect = [requests.Timeout("slow"), raw_response(200)]

        assert client.post("https://gateway.example/publish", json={}, retries=1).ok

    def test_timeout_passed_through(self, client):
        client.session.request.return_value = raw_response(200)

        client.get("https://gateway.example/x", timeout=1.5)
        assert client.session.request.call_args.kwargs["timeout"] == 1.5
