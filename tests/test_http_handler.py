import threading
from http.server import HTTPServer

import pytest
import requests

from callnotify.endpoint import WebhookEndpoint, make_handler
from callnotify.providers import VAPI


@pytest.fixture
def server(settings, dispatcher):
    httpd = HTTPServer(("127.0.0.1", 0), make_handler(WebhookEndpoint(VAPI, settings, dispatcher)))
    thread = threading.Thread(target=httpd.serve_forever, daemon=True)
    thread.start()
    yield f"http://127.0.0.1:{httpd.server_address[1]}/api/vapi_webhook"
    httpd.shutdown()
    httpd.server_close()


def test_post_round_trip(server, transport) -> None:
    r = requests.post(server, json={"id": "c1", "status": "completed", "from": "555.123.4567"},
                      timeout=5)
    assert r.status_code == 200
    assert r.headers["Access-Control-Allow-Origin"] == "*"
    assert r.json()["email"]["accepted"] == ["bob@x.com"]
    assert len(transport.sent) == 1


def test_get_options_and_put(server, transport) -> None:
    assert requests.get(server, timeout=5).json()["status"] == "ok"

    pre = requests.options(server, timeout=5)
    assert pre.status_code == 200
    assert pre.content == b""
    assert "POST" in pre.headers["Access-Control-Allow-Methods"]

    assert requests.put(server, json={}, timeout=5).status_code == 405
    assert transport.sent == []


def test_vercel_entry_points_expose_handler() -> None:
    from api.retell_webhook import handler as retell_handler
    from api.vapi_webhook import handler as vapi_handler

    assert vapi_handler.endpoint.provider.name == "vapi"
    assert retell_handler.endpoint.provider.name == "retell"


@pytest.mark.parametrize("method", ["HEAD", "TRACE", "DELETE", "PROPFIND"])
def test_other_verbs_are_405_with_cors(server, transport, method) -> None:
    r = requests.request(method, server, timeout=5)
    assert r.status_code == 405
    assert r.headers["Access-Control-Allow-Origin"] == "*"
    if method != "HEAD":
        assert r.json()["error"] == "method_not_allowed"
        assert "POST" in r.json()["allowedMethods"]
    assert transport.sent == []
