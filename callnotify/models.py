"""Value objects shared by the pipeline. All are built and dropped within one request."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

Timestamp = Union[str, int, float]


@dataclass(frozen=True)
class Contact:
    name: str
    number: str
    email: str


@dataclass(frozen=True)
class ProductCost:
    product: str
    cost: float


@dataclass(frozen=True)
class Cost:
    combined_cost: Optional[float] = None
    duration_unit_price: Optional[float] = None
    product_costs: List[ProductCost] = field(default_factory=list)


@dataclass(frozen=True)
class Analysis:
    summary: Optional[str] = None
    sentiment: Optional[str] = None
    successful: Optional[bool] = None
    in_voicemail: Optional[bool] = None

    def is_empty(self) -> bool:
        return all(v is None for v in (self.summary, self.sentiment,
                                       self.successful, self.in_voicemail))


@dataclass(frozen=True)
class LogEntry:
    timestamp: Optional[Timestamp]
    message: str


@dataclass(frozen=True)
class CallRecord:
    """Provider-agnostic view of one call. Durations are milliseconds."""

    id: str
    status: str
    event: Optional[str] = None
    start_time: Optional[Timestamp] = None
    end_time: Optional[Timestamp] = None
    duration_ms: Optional[int] = None
    from_number: Optional[str] = None
    to_number: Optional[str] = None
    transcript: Optional[str] = None
    recording_url: Optional[str] = None
    summary: Optional[str] = None
    error: Optional[str] = None
    cost: Optional[Cost] = None
    disconnection_reason: Optional[str] = None
    analysis: Optional[Analysis] = None
    logs: List[LogEntry] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class NotificationResult:
    message_id: str
    accepted: List[str] = field(default_factory=list)
    rejected: List[str] = field(default_factory=list)


# ── raw payload variants ─────────────────────────────────────────────


@dataclass(frozen=True)
class FlatPayload:
    """Shape A: call fields at the top level."""
    body: Dict[str, Any]


@dataclass(frozen=True)
class EventPayload:
    """Shape B: ``{"event": ..., "call": {...}}``."""
    event: str
    call: Dict[str, Any]


@dataclass(frozen=True)
class MetadataPayload:
    """Shape C: ``{"call_metadata": {...}, "transcript": ...}``."""
    metadata: Dict[str, Any]
    body: Dict[str, Any]


Payload = Union[FlatPayload, EventPayload, MetadataPayload]
