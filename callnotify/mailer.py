"""
Mail dispatch through Gmail (OAuth2 refresh-token flow).

Each dispatch refreshes a `google.oauth2` user credential from the stored
refresh token and sends the MIME message with the Gmail API client. Nothing
is retried; transport failures surface as `DeliveryError` with a
nodemailer-style ``code``:

  EAUTH        token refresh rejected
  EMESSAGE     Gmail refused the message
  ECONNECTION  network failure talking to Google
"""

from __future__ import annotations

import base64
from dataclasses import dataclass
from email.message import EmailMessage
from typing import Any, Optional, Protocol

import httplib2
import requests
from google.auth.exceptions import RefreshError, TransportError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_httplib2 import AuthorizedHttp
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from .errors import DeliveryError
from .logs import log
from .models import CallRecord, NotificationResult
from .settings import Settings

TOKEN_URI = "https://oauth2.googleapis.com/token"
HTTP_TIMEOUT = 12


@dataclass(frozen=True)
class OutgoingMail:
    sender: str
    to: str
    subject: str
    text: str
    html: Optional[str] = None

    def mime(self) -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = self.sender
        msg["To"] = self.to
        msg["Subject"] = self.subject
        msg.set_content(self.text)
        if self.html:
            msg.add_alternative(self.html, subtype="html")
        return msg

    def raw(self) -> str:
        return base64.urlsafe_b64encode(self.mime().as_bytes()).decode()


class MailTransport(Protocol):
    def send(self, mail: OutgoingMail) -> NotificationResult: ...


class GmailTransport:
    """
    `session` carries the token refresh (google-auth's requests transport);
    `http` carries the Gmail API call. Both default to real clients.
    """

    def __init__(self, cfg: Settings, session: Optional[requests.Session] = None,
                 http: Any = None):
        self._cfg = cfg
        self._session = session or requests.Session()
        self._http = http

    def credentials(self) -> Credentials:
        creds = Credentials(
            None,
            refresh_token=self._cfg.gmail_refresh_token,
            client_id=self._cfg.gmail_client_id,
            client_secret=self._cfg.gmail_client_secret,
            token_uri=TOKEN_URI,
        )
        try:
            creds.refresh(Request(self._session))
        except RefreshError as exc:
            raise DeliveryError("Invalid login: refresh token was rejected", code="EAUTH",
                                command="AUTH XOAUTH2", response=str(exc)) from exc
        except TransportError as exc:
            raise DeliveryError(f"Connection error: {exc}", code="ECONNECTION",
                                command="AUTH XOAUTH2") from exc
        return creds

    def service(self, creds: Credentials) -> Any:
        http = AuthorizedHttp(creds, http=self._http or httplib2.Http(timeout=HTTP_TIMEOUT))
        return build("gmail", "v1", http=http, cache_discovery=False)

    def send(self, mail: OutgoingMail) -> NotificationResult:
        gmail = self.service(self.credentials())
        try:
            sent = gmail.users().messages().send(userId="me", body={"raw": mail.raw()}).execute()
        except HttpError as exc:
            raise DeliveryError(f"Message rejected ({exc.resp.status})", code="EMESSAGE",
                                command="DATA", response=str(exc.reason)[:400],
                                response_code=exc.resp.status) from exc
        except (RefreshError, TransportError, httplib2.HttpLib2Error, OSError) as exc:
            raise DeliveryError(f"Connection error: {exc}", code="ECONNECTION",
                                command="DATA") from exc
        message_id = sent.get("id") if isinstance(sent, dict) else None
        return NotificationResult(message_id=str(message_id or ""),
                                  accepted=[mail.to], rejected=[])


class MailDispatcher:
    """Sends one rendered call report. Credentials are checked before any I/O."""

    def __init__(self, cfg: Settings, transport: Optional[MailTransport] = None):
        self._cfg = cfg
        self._transport = transport or GmailTransport(cfg)

    def send(self, record: CallRecord, recipient: str, text: str,
             html: Optional[str] = None) -> NotificationResult:
        self._cfg.require()
        mail = OutgoingMail(
            sender=self._cfg.gmail_email,
            to=recipient,
            subject=f"Call Summary - {record.id}",
            text=text,
            html=html,
        )
        log("info", "prepared email content", call_id=record.id, length=len(text),
            has_html=bool(html))
        try:
            info = self._transport.send(mail)
        except DeliveryError as exc:
            log("error", "failed to send email", call_id=record.id, error=str(exc),
                error_code=exc.code, error_command=exc.command,
                response=exc.response, response_code=exc.response_code)
            raise
        log("info", "email sent successfully", call_id=record.id,
            message_id=info.message_id, recipient=recipient)
        return info
