"""Per-provider knobs for the shared webhook pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from .models import Contact
from .normalizer import EVENT, FLAT, METADATA, REQUIRED_FIELDS

# event envelopes are mailed once, on the final post-call analysis
COMPLETION_EVENTS = frozenset({"call_analyzed"})
COMPLETION_STATUSES = frozenset({"completed", "ended"})


@dataclass(frozen=True)
class Provider:
    name: str
    label: str
    endpoint: str
    shapes: Tuple[str, ...]
    example: Dict[str, Any] = field(default_factory=dict)
    greets_caller: bool = False
    enrich: bool = False

    @property
    def required_fields(self) -> list:
        return REQUIRED_FIELDS[self.shapes[0]]

    def voice_prompt(self, contact: Optional[Contact], assistant: str) -> Optional[str]:
        if not self.greets_caller:
            return None
        if contact and contact.name:
            return (f"Hey, this is {assistant}! Oh hey {contact.name}, {assistant}'s busy "
                    f"right now, but I'll let them know you called.")
        return f"Hey! This is {assistant}. Can I know who's calling and what this is regarding?"


VAPI = Provider(
    name="vapi",
    label="Vapi",
    endpoint="/api/vapi_webhook",
    shapes=(FLAT,),
    example={
        "id": "unique-call-id",
        "status": "completed",
        "startTime": "2024-03-14T12:00:00Z",
        "endTime": "2024-03-14T12:05:00Z",
        "duration": 300000,
        "from": "+1234567890",
        "to": "+0987654321",
        "transcript": "Call transcript here...",
    },
    enrich=True,
)

RETELL = Provider(
    name="retell",
    label="Retell",
    endpoint="/api/retell_webhook",
    shapes=(EVENT, METADATA),
    example={
        "event": "call_analyzed",
        "call": {
            "call_id": "unique-call-id",
            "call_status": "ended",
            "start_timestamp": 1710417600000,
            "end_timestamp": 1710417900000,
            "duration_ms": 300000,
            "from_number": "+1234567890",
            "to_number": "+0987654321",
            "transcript": "Agent: Hello...",
        },
    },
    greets_caller=True,
)

PROVIDERS = {p.name: p for p in (VAPI, RETELL)}
