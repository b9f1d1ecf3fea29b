"""
Local tooling.

    python -m callnotify serve --provider retell --port 8000
    python -m callnotify preview payload.json [--provider vapi] [--html]
"""

from __future__ import annotations

import argparse
import json
import os
import sys
from http.server import HTTPServer
from typing import List, Optional

from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from .endpoint import WebhookEndpoint, make_handler
from .errors import ValidationError
from .logs import log
from .normalizer import detect, normalize
from .providers import PROVIDERS
from .renderer import render_html, render_text


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="callnotify",
                                description="Call-summary webhook tools")
    sub = p.add_subparsers(dest="cmd", required=True)

    s = sub.add_parser("serve", help="Run a webhook endpoint locally")
    s.add_argument("--provider", choices=sorted(PROVIDERS), default="vapi")
    s.add_argument("--port", type=int, default=int(os.getenv("PORT") or "8000"))

    v = sub.add_parser("preview", help="Render the email for a saved payload")
    v.add_argument("payload", help="Path to a webhook JSON body")
    v.add_argument("--provider", choices=sorted(PROVIDERS), default=None,
                   help="Restrict to the shapes this provider accepts")
    v.add_argument("--html", action="store_true", help="Print the HTML body instead")
    return p.parse_args(argv)


def serve(provider: str, port: int) -> None:
    endpoint = WebhookEndpoint(PROVIDERS[provider])
    log("info", f"★ {provider} webhook listening on http://0.0.0.0:{port}",
        endpoint=endpoint.provider.endpoint)
    HTTPServer(("", port), make_handler(endpoint)).serve_forever()


def preview(path: str, provider: Optional[str], as_html: bool, console: Console) -> int:
    with open(path, encoding="utf-8") as fh:
        body = json.load(fh)
    chosen = PROVIDERS[provider] if provider else None
    try:
        payload = detect(body, chosen.shapes) if chosen else detect(body)
    except ValidationError as exc:
        console.print(Text(f"invalid payload: {exc}", style="bold red"))
        return 2
    record = normalize(payload)
    label = chosen.label if chosen else "Voice"
    out = render_html(record, label) if as_html else render_text(record, label)
    console.print(Panel(Text(out), title=f"Call Summary - {record.id}"))
    return 0


def main(argv: Optional[List[str]] = None) -> None:
    ns = _parse_args(argv)
    if ns.cmd == "serve":
        serve(ns.provider, ns.port)
        return
    sys.exit(preview(ns.payload, ns.provider, ns.html, Console()))


if __name__ == "__main__":
    main(sys.argv[1:])
