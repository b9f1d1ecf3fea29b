#!/usr/bin/env python3
# api/vapi_webhook.py
"""
Vapi call webhook → email call summary  (Vercel function)

• Endpoint : /api/vapi_webhook
• Body     : flat call record {"id", "status", "from", "to", "duration" (ms), ...}
• Only "completed"/"ended" calls are mailed; everything else is acknowledged.
• VAPI_API_KEY set → call details are fetched from the Vapi API before rendering.
"""

from __future__ import annotations

import os
import sys
from http.server import HTTPServer

# add repo root so we can import callnotify/
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from callnotify.endpoint import WebhookEndpoint, WebhookHandler  # noqa: E402
from callnotify.providers import VAPI  # noqa: E402


class handler(WebhookHandler):  # noqa: N801
    endpoint = WebhookEndpoint(VAPI)


if __name__ == "__main__":
    port = int(os.getenv("PORT", "8000"))
    print(f"★ vapi_webhook listening on http://0.0.0.0:{port}")
    HTTPServer(("", port), handler).serve_forever()
