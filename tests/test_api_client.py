import pytest
import requests

from dashboard.data import api_client
from dashboard.data.api_client import ApiError


class _Response:
    def __init__(self, status_code, payload=None):
        self.status_code = status_code
        self.ok = status_code < 400
        self.reason = "Error"
        self.text = ""
        self._payload = payload

    def json(self):
        if self._payload is None:
            raise ValueError("no body")
        return self._payload


class _Session:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    def request(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        if self.error is not None:
            raise self.error
        return self.response


@pytest.fixture()
def configured(monkeypatch):
    secrets = {("app", "API_BASE_URL"): "http://backend.test/"}
    monkeypatch.setattr(api_client, "_SECRET_GETTER", lambda path, default=None: secrets.get(path, default))
    monkeypatch.setattr(api_client, "_TOKEN_GETTER", lambda: "tok")

    def _install(**kwargs):
        session = _Session(**kwargs)
        monkeypatch.setattr(api_client, "_SESSION", session)
        return session

    return _install


def test_connection_failure_becomes_api_error(configured):
    configured(error=requests.ConnectionError("connection refused"))

    with pytest.raises(ApiError) as excinfo:
        api_client.request("GET", "/api/calendar")

    assert excinfo.value.status_code == 503
    assert "connection refused" in excinfo.value.message


def test_timeout_becomes_api_error(configured):
    configured(error=requests.Timeout("read timed out"))

    with pytest.raises(ApiError) as excinfo:
        api_client.request("POST", "/api/events", json={"title": "x"})

    assert excinfo.value.status_code == 503


def test_error_body_is_surfaced(configured):
    configured(response=_Response(400, {"error": "End must be after start"}))

    with pytest.raises(ApiError) as excinfo:
        api_client.request("POST", "/api/events", json={"title": "x"})

    assert excinfo.value.status_code == 400
    assert excinfo.value.message == "End must be after start"


def test_success_sends_bearer_token(configured):
    session = configured(response=_Response(200, {"items": []}))

    assert api_client.request("GET", "/api/calendar", params={"from": "a"}) == {"items": []}

    method, url, kwargs = session.calls[0]
    assert (method, url) == ("GET", "http://backend.test/api/calendar")
    assert kwargs["headers"] == {"Authorization": "Bearer tok"}


def test_no_content_returns_none(configured):
    configured(response=_Response(204))

    assert api_client.request("DELETE", "/api/events/e1") is None


def test_missing_token_is_unauthorized(configured, monkeypatch):
    monkeypatch.setattr(api_client, "_TOKEN_GETTER", lambda: None)
    monkeypatch.delenv("API_TOKEN", raising=False)

    with pytest.raises(ApiError) as excinfo:
        api_client.request("GET", "/api/calendar")

    assert excinfo.value.status_code == 401
