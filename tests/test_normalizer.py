import json

import pytest

from callnotify.errors import ValidationError
from callnotify.models import EventPayload, FlatPayload, MetadataPayload
from callnotify.normalizer import EVENT, FLAT, METADATA, detect, merge_details, normalize


def test_flat_payload_maps_vapi_fields() -> None:
    body = {
        "id": "c1",
        "status": "completed",
        "from": "+15551234567",
        "to": "+15550000000",
        "duration": 65000,
        "startTime": "2024-03-14T12:00:00Z",
        "transcript": "Hello",
        "recordingUrl": "https://rec.example.com/c1.mp3",
        "cost": 0.37,
        "analysis": {"summary": "Short call", "successful": True},
        "logs": [{"timestamp": "2024-03-14T12:00:01Z", "message": "dialing"}],
        "metadata": {"campaign": "spring"},
    }
    payload = detect(body)
    assert isinstance(payload, FlatPayload)

    record = normalize(payload)
    assert record.id == "c1"
    assert record.duration_ms == 65000
    assert record.from_number == "+15551234567"
    assert record.cost.combined_cost == pytest.approx(0.37)
    assert record.analysis.summary == "Short call"
    assert record.analysis.successful is True
    assert record.logs[0].message == "dialing"
    assert record.metadata == {"campaign": "spring"}
    assert record.event is None


def test_flat_zero_duration_is_kept() -> None:
    record = normalize(detect({"id": "c0", "status": "completed", "duration": 0}))
    assert record.duration_ms == 0


def test_flat_missing_status_is_rejected() -> None:
    with pytest.raises(ValidationError) as exc:
        detect({"id": "c1"}, example={"id": "x"})
    assert "id and status" in str(exc.value)
    assert exc.value.example == {"id": "x"}


@pytest.mark.parametrize("raw", ['1e400', '-1e400', 'NaN', 'Infinity'])
def test_non_finite_duration_is_dropped(raw) -> None:
    body = json.loads('{"id": "c1", "status": "completed", "duration": %s}' % raw)
    assert normalize(detect(body)).duration_ms is None


def test_non_finite_metadata_duration_is_dropped() -> None:
    body = json.loads('{"call_metadata": {"call_id": "m1", "call_status": "completed",'
                      ' "call_duration": 1e400}}')
    assert normalize(detect(body)).duration_ms is None


def test_naive_iso_timestamps_are_read_as_utc() -> None:
    record = normalize(detect({"event": "call_analyzed", "call": {
        "call_id": "r1", "call_status": "ended",
        "start_timestamp": "2024-03-14T12:00:00",
        "end_timestamp": "2024-03-14T12:02:05Z",
    }}))
    assert record.duration_ms == 125000


def test_event_payload_maps_retell_fields() -> None:
    body = {
        "event": "call_analyzed",
        "call": {
            "call_id": "r1",
            "call_status": "ended",
            "start_timestamp": 1710417600000,
            "end_timestamp": 1710417725000,
            "from_number": "+15551234567",
            "disconnection_reason": "user_hangup",
            "call_cost": {
                "combined_cost": 12.5,
                "total_duration_unit_price": 0.1,
                "product_costs": [{"product": "elevenlabs_tts", "cost": 4.25}],
            },
            "call_analysis": {
                "call_summary": "Asked about pricing",
                "user_sentiment": "Positive",
                "call_successful": True,
                "in_voicemail": False,
            },
        },
    }
    payload = detect(body, (EVENT, METADATA))
    assert isinstance(payload, EventPayload)

    record = normalize(payload)
    assert record.id == "r1"
    assert record.event == "call_analyzed"
    # no duration_ms: derived from the timestamps
    assert record.duration_ms == 125000
    assert record.cost.product_costs[0].product == "elevenlabs_tts"
    assert record.cost.duration_unit_price == pytest.approx(0.1)
    assert record.analysis.sentiment == "Positive"
    assert record.analysis.in_voicemail is False
    assert record.disconnection_reason == "user_hangup"


def test_event_payload_without_call_is_rejected() -> None:
    with pytest.raises(ValidationError):
        detect({"event": "call_ended"}, (EVENT,))


def test_metadata_payload_converts_seconds() -> None:
    body = {
        "call_metadata": {
            "caller_number": "555.123.4567",
            "agent_number": "+15550000000",
            "call_duration": 65,
            "call_status": "completed",
            "call_id": "m1",
        },
        "transcript": "Hi",
        "transcript_summary": "Caller said hi",
    }
    payload = detect(body)
    assert isinstance(payload, MetadataPayload)

    record = normalize(payload)
    assert record.duration_ms == 65000
    assert record.from_number == "555.123.4567"
    assert record.summary == "Caller said hi"


def test_metadata_payload_needs_call_id() -> None:
    with pytest.raises(ValidationError):
        detect({"call_metadata": {"call_status": "completed"}})


def test_shape_not_accepted_by_provider() -> None:
    with pytest.raises(ValidationError) as exc:
        detect({"id": "c1", "status": "completed"}, (EVENT, METADATA))
    assert "event+call or call_metadata" in str(exc.value)


def test_non_object_body_is_rejected() -> None:
    with pytest.raises(ValidationError):
        detect(["not", "an", "object"], (FLAT,))


def test_merge_details_overlays_present_fields_only() -> None:
    record = normalize(detect({"id": "c1", "status": "completed", "from": "5551234567",
                               "transcript": "old", "duration": 1000}))
    merged = merge_details(record, {
        "startedAt": "2024-03-14T12:00:00Z",
        "endedAt": "2024-03-14T12:02:05Z",
        "endedReason": "customer-ended-call",
        "cost": 0.42,
        "costs": [{"type": "transcriber", "cost": 0.02}],
        "analysis": {"summary": "Booked a demo", "successEvaluation": "true"},
        "artifact": {"transcript": "new", "recordingUrl": "https://rec/c1"},
        "customer": {"number": "+19999999999"},
    })
    assert merged.transcript == "new"
    assert merged.duration_ms == 125000
    assert merged.recording_url == "https://rec/c1"
    assert merged.disconnection_reason == "customer-ended-call"
    assert merged.cost.combined_cost == pytest.approx(0.42)
    assert merged.cost.product_costs[0].product == "transcriber"
    assert merged.analysis.summary == "Booked a demo"
    assert merged.analysis.successful is True
    # caller from the webhook wins
    assert merged.from_number == "5551234567"


def test_merge_details_empty_is_noop() -> None:
    record = normalize(detect({"id": "c1", "status": "completed"}))
    assert merge_details(record, {}) is record
