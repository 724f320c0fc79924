from __future__ import annotations

from datetime import datetime, timezone

import pytest

from normalizer import SHEET_COLUMNS, build_scope, normalize, resolve_phone, summarize

FIXED = datetime(2026, 10, 17, 15, 30, tzinfo=timezone.utc)


def _clock():
    return FIXED


@pytest.fixture(autouse=True)
def _base_url(unconfigured):
    pass


def test_same_number_placeholder_falls_through_to_phone() -> None:
    assert resolve_phone({"callbackNumber": "Same number", "phone": "555-1234"}) == "555-1234"
    assert resolve_phone({"callbackNumber": " same NUMBER ", "from": "+1555"}) == "+1555"


def test_callback_number_wins() -> None:
    assert resolve_phone({"callbackNumber": "555-9999", "phone": "555-1234"}) == "555-9999"
    assert resolve_phone({}) == ""


def test_scope_skips_absent_fields() -> None:
    data = {"jobType": "cleanup", "specialItems": ["couch", "fridge"]}
    assert build_scope(data) == "jobType: cleanup | specialItems: couch, fridge"


def test_scope_fixed_order() -> None:
    data = {
        "deadline": "Friday",
        "access": ["stairs", "", "narrow door"],
        "size": "half truck",
        "location": "garage",
        "jobType": "junk removal",
    }
    assert build_scope(data) == (
        "jobType: junk removal | location: garage | size: half truck | "
        "access: stairs, narrow door | deadline: Friday"
    )
    assert build_scope({"location": "", "size": None}) == ""


@pytest.mark.parametrize(
    "data, expected",
    [
        ({"urgent": True}, "Y"),
        ({"isUrgent": "yes"}, "Y"),
        ({"urgent": False, "isUrgent": 1}, "Y"),
        ({"urgent": "false"}, "N"),
        ({"isUrgent": "no"}, "N"),
        ({}, "N"),
    ],
)
def test_urgent_flag(data, expected) -> None:
    assert normalize(data, "job_1", "test", clock=_clock)["Urgent"] == expected


def test_every_column_present_for_empty_input() -> None:
    record = normalize({}, "job_abc1234", "intake", clock=_clock)
    assert tuple(record) == SHEET_COLUMNS
    assert record["Job ID"] == "job_abc1234"
    assert record["Created At"] == FIXED.isoformat()
    assert record["Photo Link"] == "https://haul.test/upload?job=job_abc1234"
    assert record["Status"] == "New"
    assert record["Name"] == ""
    assert record["Scope"] == ""


def test_passthrough_fields() -> None:
    data = {
        "customerName": "Dana Ortiz",
        "email": "dana@example.com",
        "address": "12 Elm St",
        "jobType": "cleanup",
        "preferredDate": "2026-10-20",
        "preferredTime": "morning",
        "photoLink": "https://photos/1",
        "status": "Quoted",
        "notes": 42,
    }
    record = normalize(data, "job_1", "intake", call_id="abc", clock=_clock)
    assert record["Name"] == "Dana Ortiz"
    assert record["Email"] == "dana@example.com"
    assert record["Call ID"] == "abc"
    assert record["Photo Link"] == "https://photos/1"
    assert record["Status"] == "Quoted"
    assert record["Notes"] == "42"


def test_deterministic_with_fixed_clock() -> None:
    data = {"name": "A", "jobType": "cleanup"}
    assert normalize(data, "job_1", "x", clock=_clock) == normalize(data, "job_1", "x", clock=_clock)


def test_non_dict_input_is_tolerated() -> None:
    record = normalize(None, "job_1", "x", clock=_clock)
    assert record["Phone"] == ""


def test_summarize_flags_urgent() -> None:
    record = normalize({"name": "Dana", "urgent": True, "jobType": "cleanup"}, "job_1", "x", clock=_clock)
    text = summarize(record)
    assert "job_1" in text
    assert "[URGENT]" in text
    assert "jobType: cleanup" in text
