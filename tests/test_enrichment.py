import httpx
import pytest

from callnotify.enrichment import CallDetailClient
from callnotify.errors import EnrichmentError


def test_fetch_sends_bearer_and_returns_body() -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers.get("Authorization")
        return httpx.Response(200, json={"id": "c1", "cost": 0.42})

    client = CallDetailClient("key-1", "https://api.vapi.test/", transport=httpx.MockTransport(handler))
    assert client.fetch("c1") == {"id": "c1", "cost": 0.42}
    assert seen == {"url": "https://api.vapi.test/call/c1", "auth": "Bearer key-1"}
    client.close()


def test_http_error_becomes_enrichment_error() -> None:
    client = CallDetailClient("key-1", transport=httpx.MockTransport(
        lambda request: httpx.Response(404, json={"message": "Not Found"})))
    with pytest.raises(EnrichmentError) as exc:
        client.fetch("missing")
    assert "404" in str(exc.value)


def test_non_object_body_is_rejected() -> None:
    client = CallDetailClient("key-1", transport=httpx.MockTransport(
        lambda request: httpx.Response(200, json=["a", "b"])))
    with pytest.raises(EnrichmentError):
        client.fetch("c1")


def test_transport_failure_is_enrichment_error() -> None:
    def boom(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    client = CallDetailClient("key-1", transport=httpx.MockTransport(boom))
    with pytest.raises(EnrichmentError):
        client.fetch("c1")
