"""
Payload normalizer
==================

Providers post three different shapes:

- ``flat``      Vapi-style call fields at the top level (``id``, ``status``,
                ``duration`` in milliseconds, ...)
- ``event``     Retell-style ``{"event": ..., "call": {...}}`` envelope with
                snake_case fields (``call_id``, ``duration_ms``, ...)
- ``metadata``  ``{"call_metadata": {...}}`` with ``call_duration`` in seconds

`detect()` turns a parsed body into one of the payload variants and
`normalize()` maps the variant onto a single `CallRecord`.
"""

from __future__ import annotations

import math
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from .errors import ValidationError
from .logs import log
from .models import (
    Analysis,
    CallRecord,
    Cost,
    EventPayload,
    FlatPayload,
    LogEntry,
    MetadataPayload,
    Payload,
    ProductCost,
)

FLAT = "flat"
EVENT = "event"
METADATA = "metadata"
ALL_SHAPES = (FLAT, EVENT, METADATA)

REQUIRED_FIELDS = {
    FLAT: ["id", "status"],
    EVENT: ["event", "call"],
    METADATA: ["call_metadata"],
}


# ── coercion helpers ─────────────────────────────────────────────────


def _str(v: Any) -> Optional[str]:
    if v in (None, ""):
        return None
    return str(v)


def _num(v: Any) -> Optional[float]:
    """Finite float or None; JSON's 1e400 / NaN / Infinity count as absent."""
    if v is None or v == "" or isinstance(v, bool):
        return None
    try:
        n = float(v)
    except (TypeError, ValueError, OverflowError):
        return None
    return n if math.isfinite(n) else None


def _int(v: Any) -> Optional[int]:
    n = _num(v)
    return int(n) if n is not None else None


def _bool(v: Any) -> Optional[bool]:
    if isinstance(v, bool):
        return v
    if isinstance(v, str) and v.strip().lower() in ("true", "false"):
        return v.strip().lower() == "true"
    return None


def _dict(v: Any) -> Dict[str, Any]:
    return v if isinstance(v, dict) else {}


def _first(d: Dict[str, Any], *keys: str) -> Any:
    for k in keys:
        if d.get(k) not in (None, ""):
            return d[k]
    return None


def _epoch_ms(v: Any) -> Optional[float]:
    # naive ISO strings are UTC, same as the renderer reads them
    if isinstance(v, (int, float)) and not isinstance(v, bool):
        return _num(v)
    if isinstance(v, str) and v:
        try:
            dt = datetime.fromisoformat(v.replace("Z", "+00:00"))
        except ValueError:
            return None
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt.timestamp() * 1000
    return None


def _span_ms(start: Any, end: Any) -> Optional[int]:
    a, b = _epoch_ms(start), _epoch_ms(end)
    if a is None or b is None or b < a:
        return None
    return _int(b - a)


def _product_costs(items: Any, name_keys: Iterable[str]) -> List[ProductCost]:
    out: List[ProductCost] = []
    for item in items if isinstance(items, list) else []:
        if not isinstance(item, dict):
            continue
        cost = _num(item.get("cost"))
        name = _str(_first(item, *name_keys))
        if name and cost is not None:
            out.append(ProductCost(product=name, cost=cost))
    return out


def _cost(raw: Any) -> Optional[Cost]:
    if isinstance(raw, dict):
        cost = Cost(
            combined_cost=_num(_first(raw, "combinedCost", "combined_cost", "total")),
            duration_unit_price=_num(_first(
                raw, "durationUnitPrice", "total_duration_unit_price", "duration_unit_price")),
            product_costs=_product_costs(
                _first(raw, "productCosts", "product_costs"), ("product", "type")),
        )
        if cost.combined_cost is None and not cost.product_costs:
            return None
        return cost
    total = _num(raw)
    return Cost(combined_cost=total) if total is not None else None


def _analysis(summary: Any, sentiment: Any, successful: Any, voicemail: Any) -> Optional[Analysis]:
    a = Analysis(summary=_str(summary), sentiment=_str(sentiment),
                 successful=_bool(successful), in_voicemail=_bool(voicemail))
    return None if a.is_empty() else a


def _logs(raw: Any) -> List[LogEntry]:
    out: List[LogEntry] = []
    for item in raw if isinstance(raw, list) else []:
        if isinstance(item, dict) and _str(item.get("message")):
            out.append(LogEntry(timestamp=_first(item, "timestamp", "time"),
                                message=str(item["message"])))
        elif isinstance(item, str) and item:
            out.append(LogEntry(timestamp=None, message=item))
    return out


# ── shape detection ──────────────────────────────────────────────────


def shape_of(body: Dict[str, Any]) -> str:
    if "call_metadata" in body:
        return METADATA
    if "event" in body or "call" in body:
        return EVENT
    return FLAT


def detect(body: Any, accepted: Iterable[str] = ALL_SHAPES,
           example: Optional[Dict[str, Any]] = None) -> Payload:
    """Pick the payload variant for `body`, raising ValidationError when the
    shape-defining fields are missing or the shape is not accepted."""
    accepted = tuple(accepted)
    if not isinstance(body, dict):
        raise ValidationError("The request body must be a JSON object", example)

    shape = shape_of(body)
    if shape not in accepted:
        wanted = " or ".join("+".join(REQUIRED_FIELDS[s]) for s in accepted)
        raise ValidationError(f"The request body must include {wanted}", example)

    if shape == METADATA:
        meta = body.get("call_metadata")
        if not isinstance(meta, dict) or not _str(meta.get("call_id")) or not _str(meta.get("call_status")):
            raise ValidationError(
                "call_metadata must include call_id and call_status", example)
        return MetadataPayload(metadata=meta, body=body)

    if shape == EVENT:
        event, call = body.get("event"), body.get("call")
        if not _str(event) or not isinstance(call, dict):
            raise ValidationError(
                "The request body must include event and call fields", example)
        if not _str(call.get("call_id")) or not _str(call.get("call_status")):
            raise ValidationError(
                "call must include call_id and call_status", example)
        return EventPayload(event=str(event), call=call)

    if not _str(body.get("id")) or not _str(body.get("status")):
        raise ValidationError(
            "The request body must include id and status fields", example)
    return FlatPayload(body=body)


# ── per-shape normalization ──────────────────────────────────────────


def _from_flat(p: FlatPayload) -> CallRecord:
    b = p.body
    analysis = _dict(b.get("analysis"))
    return CallRecord(
        id=str(b["id"]),
        status=str(b["status"]),
        start_time=_first(b, "startTime", "startedAt"),
        end_time=_first(b, "endTime", "endedAt"),
        duration_ms=_int(b.get("duration")),
        from_number=_str(b.get("from")),
        to_number=_str(b.get("to")),
        transcript=_str(b.get("transcript")),
        recording_url=_str(b.get("recordingUrl")),
        summary=_str(b.get("summary")),
        error=_str(b.get("error")),
        cost=_cost(b.get("cost")),
        disconnection_reason=_str(_first(b, "disconnectionReason", "endedReason")),
        analysis=_analysis(analysis.get("summary"), analysis.get("sentiment"),
                           analysis.get("successful"),
                           _first(analysis, "inVoicemail", "in_voicemail")),
        logs=_logs(b.get("logs")),
        metadata=_dict(b.get("metadata")),
    )


def _from_event(p: EventPayload) -> CallRecord:
    c = p.call
    analysis = _dict(c.get("call_analysis"))
    start, end = c.get("start_timestamp"), c.get("end_timestamp")
    duration = _int(c.get("duration_ms"))
    if duration is None:
        duration = _span_ms(start, end)
    return CallRecord(
        id=str(c["call_id"]),
        status=str(c["call_status"]),
        event=p.event,
        start_time=start,
        end_time=end,
        duration_ms=duration,
        from_number=_str(c.get("from_number")),
        to_number=_str(c.get("to_number")),
        transcript=_str(c.get("transcript")),
        recording_url=_str(c.get("recording_url")),
        disconnection_reason=_str(c.get("disconnection_reason")),
        cost=_cost(c.get("call_cost")),
        analysis=_analysis(analysis.get("call_summary"), analysis.get("user_sentiment"),
                           analysis.get("call_successful"), analysis.get("in_voicemail")),
        metadata=_dict(c.get("metadata")),
    )


def _from_metadata(p: MetadataPayload) -> CallRecord:
    m = p.metadata
    seconds = _num(m.get("call_duration"))
    return CallRecord(
        id=str(m["call_id"]),
        status=str(m["call_status"]),
        duration_ms=_int(seconds * 1000) if seconds is not None else None,
        from_number=_str(m.get("caller_number")),
        to_number=_str(m.get("agent_number")),
        transcript=_str(p.body.get("transcript")),
        summary=_str(p.body.get("transcript_summary")),
    )


def normalize(payload: Payload) -> CallRecord:
    if isinstance(payload, MetadataPayload):
        record, shape = _from_metadata(payload), METADATA
    elif isinstance(payload, EventPayload):
        record, shape = _from_event(payload), EVENT
    else:
        record, shape = _from_flat(payload), FLAT
    log("debug", "payload normalized", shape=shape, call_id=record.id,
        status=record.status, event=record.event,
        has_transcript=bool(record.transcript), has_cost=record.cost is not None)
    return record


# ── enrichment ───────────────────────────────────────────────────────


def merge_details(record: CallRecord, details: Dict[str, Any]) -> CallRecord:
    """Overlay a call-detail API object (``GET /call/{id}``) on `record`.

    Only values present in `details` replace what the webhook carried.
    """
    if not details:
        return record
    artifact = _dict(details.get("artifact"))
    analysis = _dict(details.get("analysis"))
    customer = _dict(details.get("customer"))

    updates: Dict[str, Any] = {}
    start, end = details.get("startedAt"), details.get("endedAt")
    if start:
        updates["start_time"] = start
    if end:
        updates["end_time"] = end
    span = _span_ms(start, end)
    if span is not None:
        updates["duration_ms"] = span

    transcript = _str(_first(artifact, "transcript") or details.get("transcript"))
    if transcript:
        updates["transcript"] = transcript
    recording = _str(_first(artifact, "recordingUrl") or details.get("recordingUrl"))
    if recording:
        updates["recording_url"] = recording
    reason = _str(details.get("endedReason"))
    if reason:
        updates["disconnection_reason"] = reason
    caller = _str(customer.get("number"))
    if caller and not record.from_number:
        updates["from_number"] = caller

    total = _num(details.get("cost"))
    products = _product_costs(details.get("costs"), ("type", "product"))
    if total is not None or products:
        base = record.cost or Cost()
        updates["cost"] = Cost(
            combined_cost=total if total is not None else base.combined_cost,
            duration_unit_price=base.duration_unit_price,
            product_costs=products or base.product_costs,
        )

    if analysis:
        base_a = record.analysis or Analysis()
        success = _bool(analysis.get("successEvaluation"))
        merged = Analysis(
            summary=_str(analysis.get("summary")) or base_a.summary,
            sentiment=base_a.sentiment,
            successful=success if success is not None else base_a.successful,
            in_voicemail=base_a.in_voicemail,
        )
        if not merged.is_empty():
            updates["analysis"] = merged

    log("debug", "call details merged", call_id=record.id, fields=sorted(updates))
    return replace(record, **updates)
