"""
Report renderer: CallRecord → (plain text, HTML)
==============================================

Sections, in order: details, analysis, cost, logs, metadata, transcript,
recording. A section with nothing to show is left out entirely.

Output depends only on the record: timestamps are formatted in UTC with a
fixed ``M/D/YYYY, H:MM:SS AM`` layout instead of the process locale.
"""

from __future__ import annotations

import html
import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, List, Optional, Tuple

from .models import CallRecord

Row = Tuple[str, str]

_BOX = "background: #f8f9fa; padding: 15px; border-radius: 5px; margin-bottom: 20px;"


# ── formatting helpers ───────────────────────────────────────────────


def format_duration(ms: Optional[int]) -> str:
    seconds = int(ms or 0) // 1000
    return f"{seconds // 60}m {seconds % 60}s"


def format_cost(cost: float) -> str:
    return f"${cost:.2f}"


def _to_datetime(value: Any) -> Optional[datetime]:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str) and value:
        try:
            dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
        if dt.tzinfo is None:
            return dt.replace(tzinfo=timezone.utc)
        return dt.astimezone(timezone.utc)
    return None


def format_timestamp(value: Any) -> str:
    """ISO string or epoch milliseconds → ``3/14/2024, 12:05:00 PM`` (UTC)."""
    dt = _to_datetime(value)
    if dt is None:
        return str(value)
    hour = dt.hour % 12 or 12
    ampm = "AM" if dt.hour < 12 else "PM"
    return f"{dt.month}/{dt.day}/{dt.year}, {hour}:{dt.minute:02d}:{dt.second:02d} {ampm}"


def _yes_no(v: bool) -> str:
    return "Yes" if v else "No"


def _value(v: Any) -> str:
    if isinstance(v, str):
        return v
    return json.dumps(v, ensure_ascii=False, sort_keys=True)


# ── section model ────────────────────────────────────────────────────


@dataclass
class Section:
    title: str
    rows: List[Row] = field(default_factory=list)
    lines: List[str] = field(default_factory=list)
    block: Optional[str] = None
    link: Optional[str] = None


def _details(r: CallRecord) -> Section:
    rows: List[Row] = [
        ("Caller", r.from_number or "Unknown"),
        ("Recipient", r.to_number or "Unknown"),
        ("Call ID", r.id),
        ("Status", r.status),
    ]
    if r.duration_ms is not None:
        rows.append(("Duration", format_duration(r.duration_ms)))
    if r.start_time is not None:
        rows.append(("Started", format_timestamp(r.start_time)))
    if r.end_time is not None:
        rows.append(("Ended", format_timestamp(r.end_time)))
    if r.error:
        rows.append(("Error", r.error))
    return Section("📋 Call Details", rows=rows)


def _analysis(r: CallRecord) -> Optional[Section]:
    a = r.analysis
    rows: List[Row] = []
    summary = r.summary or (a.summary if a else None)
    if summary:
        rows.append(("Summary", summary))
    if a and a.sentiment:
        rows.append(("Sentiment", a.sentiment))
    if a and a.successful is not None:
        rows.append(("Successful", _yes_no(a.successful)))
    if a and a.in_voicemail is not None:
        rows.append(("Voicemail", _yes_no(a.in_voicemail)))
    if r.disconnection_reason:
        rows.append(("Disconnection Reason", r.disconnection_reason))
    return Section("📊 Call Analysis", rows=rows) if rows else None


def _cost(r: CallRecord) -> Optional[Section]:
    c = r.cost
    if c is None:
        return None
    rows: List[Row] = []
    if c.combined_cost is not None:
        rows.append(("Total Cost", format_cost(c.combined_cost)))
    if c.duration_unit_price is not None:
        rows.append(("Duration Unit Price", format_cost(c.duration_unit_price)))
    rows.extend((p.product, format_cost(p.cost)) for p in c.product_costs)
    return Section("💰 Cost", rows=rows) if rows else None


def _logs(r: CallRecord) -> Optional[Section]:
    if not r.logs:
        return None
    lines = [
        f"[{format_timestamp(e.timestamp)}] {e.message}" if e.timestamp is not None else e.message
        for e in r.logs
    ]
    return Section("🧾 Call Logs", lines=lines)


def _metadata(r: CallRecord) -> Optional[Section]:
    if not r.metadata:
        return None
    return Section("🏷️ Metadata", rows=[(str(k), _value(v)) for k, v in r.metadata.items()])


def sections(record: CallRecord) -> List[Section]:
    out = [_details(record)]
    for build in (_analysis, _cost, _logs, _metadata):
        s = build(record)
        if s:
            out.append(s)
    if record.transcript:
        out.append(Section("📝 Transcript", block=record.transcript))
    if record.recording_url:
        out.append(Section("🔗 Recording", link=record.recording_url))
    return out


# ── renderers ────────────────────────────────────────────────────────


def render_text(record: CallRecord, source: str = "Vapi") -> str:
    parts = ["📞 Call Summary", "=" * 14, ""]
    for s in sections(record):
        parts += [s.title, "-" * len(s.title)]
        parts += [f"{label}: {value}" for label, value in s.rows]
        parts += s.lines
        if s.block is not None:
            parts.append(s.block)
        if s.link is not None:
            parts.append(s.link)
        parts.append("")
    parts += ["---", f"This is an automated message from your {source} AI Assistant.", ""]
    return "\n".join(parts)


def render_html(record: CallRecord, source: str = "Vapi") -> str:
    e = html.escape
    parts = [
        '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">',
        '<h1 style="color: #2c3e50;">📞 Call Summary</h1>',
    ]
    for s in sections(record):
        parts.append(f'<div style="{_BOX}">')
        parts.append(f'<h2 style="color: #34495e;">{e(s.title)}</h2>')
        parts += [f"<p><strong>{e(label)}:</strong> {e(value)}</p>" for label, value in s.rows]
        parts += [f"<p>{e(line)}</p>" for line in s.lines]
        if s.block is not None:
            parts.append(f'<pre style="white-space: pre-wrap;">{e(s.block)}</pre>')
        if s.link is not None:
            parts.append(f'<p><a href="{e(s.link)}">Listen to Recording</a></p>')
        parts.append("</div>")
    parts += [
        '<hr style="margin: 20px 0;">',
        f'<p style="color: #7f8c8d; font-size: 12px;">This is an automated message '
        f"from your {e(source)} AI Assistant.</p>",
        "</div>",
    ]
    return "\n".join(parts)
