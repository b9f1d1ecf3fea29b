"""
Webhook endpoint, one instance per provider
============================================

    OPTIONS  → 200, empty body (CORS pre-flight)
    GET      → 200 usage document
    POST     → validate → normalize → (enrich) → resolve → render → send
    other    → 405

Every response is ``(status, headers, body)`` with permissive CORS headers.
Errors never escape `handle()`; they become JSON bodies.
"""

from __future__ import annotations

import json
import traceback
from http.server import BaseHTTPRequestHandler
from typing import Any, Dict, List, Optional, Protocol, Tuple

from .contacts import load_directory, resolve_recipient
from .enrichment import CallDetailClient
from .errors import (
    CallNotifyError,
    EnrichmentError,
    MethodNotAllowedError,
    UnexpectedError,
    ValidationError,
)
from .logs import log
from .mailer import MailDispatcher
from .models import CallRecord
from .normalizer import detect, merge_details, normalize
from .providers import COMPLETION_EVENTS, COMPLETION_STATUSES, Provider
from .renderer import format_duration, render_html, render_text
from .settings import Settings

Response = Tuple[int, List[Tuple[str, str]], bytes]

CORS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}


class DetailFetcher(Protocol):
    def fetch(self, call_id: str) -> Dict[str, Any]: ...


def _json(code: int, payload: Any) -> Response:
    headers = [("Content-Type", "application/json"), *CORS.items()]
    return code, headers, json.dumps(payload, ensure_ascii=False).encode()


def is_completion(record: CallRecord) -> bool:
    if record.event:
        return record.event.lower() in COMPLETION_EVENTS
    return record.status.lower() in COMPLETION_STATUSES


def track_status(record: CallRecord) -> None:
    log("info", "call status change", call_id=record.id, status=record.status,
        event=record.event, from_number=record.from_number, to_number=record.to_number,
        duration=format_duration(record.duration_ms) if record.duration_ms is not None else "N/A",
        error=record.error or "N/A")
    status = record.status.lower()
    if status in ("in-progress", "ongoing"):
        log("info", "call started", call_id=record.id, start_time=record.start_time)
    elif status in ("completed", "ended"):
        log("info", "call ended", call_id=record.id,
            duration_ms=record.duration_ms, from_number=record.from_number)
    elif status in ("failed", "error"):
        log("error", "call failed", call_id=record.id, error=record.error)
    else:
        log("info", "unknown call status", call_id=record.id, status=record.status)


class WebhookEndpoint:
    def __init__(
        self,
        provider: Provider,
        settings: Optional[Settings] = None,
        dispatcher: Optional[MailDispatcher] = None,
        enricher: Optional[DetailFetcher] = None,
    ):
        self.provider = provider
        self._settings = settings
        self._dispatcher = dispatcher
        self._enricher = enricher

    # ---------- lazily built collaborators ----------
    def _config(self) -> Settings:
        if self._settings is None:
            self._settings = Settings.from_env()
            log("info", "settings loaded", settings=repr(self._settings))
        return self._settings.require()

    def _mailer(self, cfg: Settings) -> MailDispatcher:
        if self._dispatcher is None:
            self._dispatcher = MailDispatcher(cfg)
        return self._dispatcher

    def _detail_fetcher(self, cfg: Settings) -> Optional[DetailFetcher]:
        if self._enricher is None and self.provider.enrich and cfg.vapi_api_key:
            self._enricher = CallDetailClient(cfg.vapi_api_key, cfg.vapi_base_url)
        return self._enricher if self.provider.enrich else None

    # ---------- public ----------
    def usage(self) -> Dict[str, Any]:
        return {
            "status": "ok",
            "message": (f"This is a webhook endpoint for {self.provider.label} AI. "
                        "Please use POST method to send call data."),
            "usage": {
                "method": "POST",
                "endpoint": self.provider.endpoint,
                "requiredFields": self.provider.required_fields,
                "example": self.provider.example,
            },
        }

    def handle(self, method: str, path: str, raw: bytes) -> Response:
        method = (method or "").upper()
        if method == "OPTIONS":
            return 200, list(CORS.items()), b""
        if method == "GET":
            log("info", "received GET request", path=path)
            return _json(200, self.usage())

        try:
            if method != "POST":
                raise MethodNotAllowedError(method)
            return self._process(raw)
        except CallNotifyError as exc:
            log("error", exc.message, error=exc.error, details=str(exc), path=path,
                method=method, status=exc.status)
            return _json(exc.status, exc.payload())
        except Exception as exc:  # pylint: disable=broad-except
            log("error", "unexpected error in webhook handler", error=str(exc),
                stack=traceback.format_exc())
            return _json(500, UnexpectedError(str(exc)).payload())

    # ---------- pipeline ----------
    def _process(self, raw: bytes) -> Response:
        try:
            body = json.loads(raw or b"{}")
        except ValueError as exc:
            raise ValidationError("invalid JSON", self.provider.example) from exc

        log("info", "received webhook request", provider=self.provider.name,
            body_len=len(raw or b""))
        record = normalize(detect(body, self.provider.shapes, self.provider.example))
        track_status(record)

        if not is_completion(record):
            log("info", "ignoring non-completed call", call_id=record.id,
                status=record.status, event=record.event)
            return _json(200, {"message": "Call received but not processed",
                               "status": record.event or record.status})

        log("info", "processing completed call", call_id=record.id, status=record.status,
            duration_ms=record.duration_ms, from_number=record.from_number,
            to_number=record.to_number, has_transcript=bool(record.transcript),
            has_recording=bool(record.recording_url))

        cfg = self._config()
        record = self._enrich(record, cfg)

        contacts = load_directory(cfg.contacts_path)
        recipient, contact = resolve_recipient(record.from_number, contacts, cfg.default_email)

        text = render_text(record, self.provider.label)
        html = render_html(record, self.provider.label)
        info = self._mailer(cfg).send(record, recipient, text, html)

        out: Dict[str, Any] = {
            "message": "Email sent successfully",
            "call": {
                "id": record.id,
                "duration": format_duration(record.duration_ms) if record.duration_ms is not None else None,
                "status": record.status,
                "from": record.from_number,
                "to": record.to_number,
            },
            "email": {
                "message_id": info.message_id,
                "accepted": info.accepted,
                "rejected": info.rejected,
            },
        }
        prompt = self.provider.voice_prompt(contact, cfg.assistant_name)
        if prompt:
            out["voice_prompt"] = prompt
        return _json(200, out)

    def _enrich(self, record: CallRecord, cfg: Settings) -> CallRecord:
        fetcher = self._detail_fetcher(cfg)
        if fetcher is None:
            return record
        try:
            return merge_details(record, fetcher.fetch(record.id))
        except EnrichmentError as exc:
            log("warning", "call details unavailable, sending webhook data only",
                call_id=record.id, error=str(exc))
            return record


# ── HTTP adapter (Vercel looks for a `handler` class) ────────────────


class WebhookHandler(BaseHTTPRequestHandler):
    endpoint: WebhookEndpoint

    def log_message(self, *_: Any) -> None:
        return  # silence BaseHTTPRequestHandler's default access log

    def __getattr__(self, name: str) -> Any:
        # any verb, HEAD and custom ones included, is answered by the endpoint
        if name.startswith("do_"):
            return self._dispatch
        raise AttributeError(name)

    def _dispatch(self) -> None:
        length = int(self.headers.get("Content-Length", "0") or 0)
        raw = self.rfile.read(length) if length else b""
        self._send(*self.endpoint.handle(self.command, self.path, raw))

    def _send(self, code: int, hdrs: list, body: bytes) -> None:
        try:
            self.send_response(code)
            for k, v in hdrs:
                self.send_header(k, v)
            self.send_header("Content-Length", str(len(body)))
            self.end_headers()
            if self.command != "HEAD":
                self.wfile.write(body)
        except BrokenPipeError:
            pass


def make_handler(endpoint: WebhookEndpoint) -> type:
    return type("handler", (WebhookHandler,), {"endpoint": endpoint})
