#!/usr/bin/env python3
# api/retell_webhook.py
"""
Retell call webhook → email call summary  (Vercel function)

Accepts either envelope:
    {"event": "call_analyzed" | "call_ended" | ..., "call": {...}}   (mailed on call_analyzed)
    {"call_metadata": {"call_id", "call_status", "caller_number", ...}, "transcript": ...}

Successful responses also carry `voice_prompt`, a greeting that names the
caller when their number is in the contact directory.
"""

from __future__ import annotations

import os
import sys
from http.server import HTTPServer

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from callnotify.endpoint import WebhookEndpoint, WebhookHandler  # noqa: E402
from callnotify.providers import RETELL  # noqa: E402


class handler(WebhookHandler):  # noqa: N801
    endpoint = WebhookEndpoint(RETELL)


if __name__ == "__main__":
    port = int(os.getenv("PORT", "8000"))
    print(f"★ retell_webhook listening on http://0.0.0.0:{port}")
    HTTPServer(("", port), handler).serve_forever()
