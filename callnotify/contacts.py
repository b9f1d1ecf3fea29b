"""Contact directory loading and caller → recipient resolution."""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any, List, Optional, Sequence

from .errors import DirectoryLoadError, InvalidRecipientError, NoRecipientError
from .logs import log
from .models import Contact


def digits(num: Optional[str]) -> str:
    return re.sub(r"\D", "", str(num or ""))


def _contact(entry: Any) -> Optional[Contact]:
    if not isinstance(entry, dict):
        return None
    number = entry.get("number") or entry.get("phone") or ""
    return Contact(name=str(entry.get("name") or ""), number=str(number),
                   email=str(entry.get("email") or ""))


def read_directory(path: str | Path) -> List[Contact]:
    """Parse the JSON array at `path`; DirectoryLoadError on any failure."""
    try:
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise DirectoryLoadError(f"{path}: {exc}") from exc
    if not isinstance(raw, list):
        raise DirectoryLoadError(f"{path}: expected a JSON array")
    return [c for c in (_contact(e) for e in raw) if c]


def load_directory(path: str | Path) -> List[Contact]:
    """Like `read_directory`, but an unreadable file degrades to an empty list."""
    log("info", "reading contacts", path=str(path))
    try:
        contacts = read_directory(path)
    except DirectoryLoadError as exc:
        log("error", "error reading contacts", error=str(exc))
        return []
    log("info", "loaded contacts", count=len(contacts))
    return contacts


def same_number(a: Optional[str], b: Optional[str]) -> bool:
    """Digits-only comparison; a leading country code on one side is ignored
    when the other side is a full national number (10+ digits)."""
    x, y = digits(a), digits(b)
    if not x or not y:
        return False
    if x == y:
        return True
    short, long_ = sorted((x, y), key=len)
    return len(short) >= 10 and long_.endswith(short)


def find_contact(caller: Optional[str], contacts: Sequence[Contact]) -> Optional[Contact]:
    if not digits(caller):
        return None
    for c in contacts:
        if same_number(c.number, caller):
            return c
    return None


def resolve_recipient(caller: Optional[str], contacts: Sequence[Contact],
                      default_email: Optional[str]) -> tuple[str, Optional[Contact]]:
    """Return ``(email, contact)`` where `contact` is the matched entry, if any."""
    contact = find_contact(caller, contacts)
    if contact and contact.email:
        log("info", "found contact email", name=contact.name, email=contact.email)
        email = contact.email
    else:
        if not default_email:
            raise NoRecipientError(f"no contact for caller {caller!r} and no default recipient")
        log("info", "using default email recipient", number=caller, email=default_email)
        email = default_email

    if "@" not in email:
        raise InvalidRecipientError(f"resolved recipient {email!r} is not an email address")
    return email, contact
