import pytest

from corsproxy.app import create_app
from corsproxy.config import ProxyConfig
from tests.helpers import fake_upstream_response


@pytest.fixture
def config():
    return ProxyConfig(upstream="127.0.0.1:8000", listen="127.0.0.1:3000")


@pytest.fixture
def client(config):
    return create_app(config).test_client()


@pytest.fixture
def recorded_calls(monkeypatch):
    """Replace the outbound HTTP call with one that records its arguments."""
    calls = []

    def fake_request(method, url, **kwargs):
        calls.append(dict(method=method, url=url, **kwargs))
        return fake_upstream_response(200, {"Content-Type": "text/plain"}, b"hello")

    monkeypatch.setattr("corsproxy.handler.requests.request", fake_request)
    return calls


@pytest.fixture
def no_network(monkeypatch):
    def fail(*args, **kwargs):
        raise AssertionError("unexpected outbound request")

    monkeypatch.setattr("corsproxy.handler.requests.request", fail)
