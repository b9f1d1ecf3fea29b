"""
Process configuration, read once from the environment.

Env (required for mail delivery)
--------------------------------
GMAIL_EMAIL             sender mailbox
GMAIL_CLIENT_ID
GMAIL_CLIENT_SECRET
GMAIL_REFRESH_TOKEN
DEFAULT_EMAIL           fallback recipient when no contact matches

Env (optional)
--------------
CONTACTS_PATH           (default: data/contacts.json)
VAPI_API_KEY            enables call-detail enrichment for Vapi calls
VAPI_BASE_URL           (default: https://api.vapi.ai)
ASSISTANT_NAME          name used in the caller greeting (default: Ajay)
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields
from typing import List

from dotenv import load_dotenv

from .errors import ConfigurationError

load_dotenv(override=True)

_REQUIRED = {
    "gmail_email": "GMAIL_EMAIL",
    "gmail_client_id": "GMAIL_CLIENT_ID",
    "gmail_client_secret": "GMAIL_CLIENT_SECRET",
    "gmail_refresh_token": "GMAIL_REFRESH_TOKEN",
    "default_email": "DEFAULT_EMAIL",
}


@dataclass(frozen=True)
class Settings:
    gmail_email: str = ""
    gmail_client_id: str = ""
    gmail_client_secret: str = ""
    gmail_refresh_token: str = ""
    default_email: str = ""

    contacts_path: str = "data/contacts.json"
    vapi_api_key: str = ""
    vapi_base_url: str = "https://api.vapi.ai"
    assistant_name: str = "Ajay"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            gmail_email=os.getenv("GMAIL_EMAIL", ""),
            gmail_client_id=os.getenv("GMAIL_CLIENT_ID", ""),
            gmail_client_secret=os.getenv("GMAIL_CLIENT_SECRET", ""),
            gmail_refresh_token=os.getenv("GMAIL_REFRESH_TOKEN", ""),
            default_email=os.getenv("DEFAULT_EMAIL", ""),
            contacts_path=os.getenv("CONTACTS_PATH", "data/contacts.json"),
            vapi_api_key=os.getenv("VAPI_API_KEY", ""),
            vapi_base_url=os.getenv("VAPI_BASE_URL", "https://api.vapi.ai"),
            assistant_name=os.getenv("ASSISTANT_NAME", "Ajay"),
        )

    def missing(self) -> List[str]:
        """Env names of required values that are empty."""
        return [_REQUIRED[f.name] for f in fields(self)
                if f.name in _REQUIRED and not getattr(self, f.name)]

    def require(self) -> "Settings":
        missing = self.missing()
        if missing:
            raise ConfigurationError(missing)
        return self

    def __repr__(self) -> str:
        return (f"Settings(gmail_email={self.gmail_email!r}, "
                f"default_email={self.default_email!r}, "
                f"contacts_path={self.contacts_path!r}, "
                f"has_client_id={bool(self.gmail_client_id)}, "
                f"has_client_secret={bool(self.gmail_client_secret)}, "
                f"has_refresh_token={bool(self.gmail_refresh_token)}, "
                f"has_vapi_key={bool(self.vapi_api_key)})")
