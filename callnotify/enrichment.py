"""Call-detail lookups against the call platform API (``GET /call/{id}``)."""

from __future__ import annotations

from typing import Any, Dict, Optional

import httpx

from .errors import EnrichmentError
from .logs import log

HTTP_TIMEOUT = 10.0


class CallDetailClient:
    def __init__(self, api_key: str, base_url: str = "https://api.vapi.ai",
                 transport: Optional[httpx.BaseTransport] = None):
        self._client = httpx.Client(
            base_url=base_url.rstrip("/"),
            headers={"Authorization": f"Bearer {api_key}"},
            timeout=HTTP_TIMEOUT,
            transport=transport,
        )

    def fetch(self, call_id: str) -> Dict[str, Any]:
        try:
            r = self._client.get(f"/call/{call_id}")
            r.raise_for_status()
            data = r.json()
        except httpx.HTTPStatusError as exc:
            raise EnrichmentError(
                f"call detail lookup returned {exc.response.status_code}") from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise EnrichmentError(f"call detail lookup failed: {exc}") from exc
        if not isinstance(data, dict):
            raise EnrichmentError("call detail lookup returned a non-object body")
        log("info", "call details fetched", call_id=call_id, keys=len(data))
        return data

    def close(self) -> None:
        self._client.close()
