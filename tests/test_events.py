from datetime import datetime, timezone

import pytest

from logtap.modules.errors import MalformedEvent
from logtap.modules.events import (
    RawEvent, RequestEvent, ResponseEvent, decode_event, is_truthy, parse_timestamp,
    query_parameters_from_uri, utc_now_iso
)

T0 = "2024-01-15T12:00:00.000Z"


def test_decode_request():
    event = decode_event(RawEvent(port=4000, timestamp=T0, data={
        "id": "r1",
        "request": {"method": "POST", "uri": "/a?x=1", "headers": {"X-Num": 5}, "data": [1, 2]},
    }))

    assert isinstance(event, RequestEvent)
    assert event.id == "r1"
    assert event.port == 4000
    assert event.timestamp == T0
    assert event.method == "POST"
    assert event.headers == {"X-Num": "5"}
    assert event.data == [1, 2]
    assert event.query_parameters == {"x": "1"}


def test_decode_response_coerces_status():
    event = decode_event(RawEvent(port=4000, timestamp=T0, data={
        "id": 3, "response": {"status": "201", "message": "Created"},
    }))

    assert isinstance(event, ResponseEvent)
    assert event.status == 201
    assert event.message == "Created"
    assert event.uri is None


def test_unreadable_status_becomes_none():
    event = decode_event(RawEvent(port=1, timestamp=T0, data={
        "id": 3, "response": {"status": "teapot"},
    }))
    assert event.status is None


def test_request_wins_when_both_discriminators_present():
    event = decode_event(RawEvent(port=1, timestamp=T0, data={
        "id": 1, "request": {"method": "GET"}, "response": {"status": 200},
    }))
    assert isinstance(event, RequestEvent)


def test_non_object_sub_payload_still_decodes():
    event = decode_event(RawEvent(port=1, timestamp=T0, data={"id": 1, "request": "yes"}))
    assert isinstance(event, RequestEvent)
    assert event.method is None


def test_empty_object_sub_payload_is_a_request():
    event = decode_event(RawEvent(port=1, timestamp=T0, data={"id": "a", "request": {}}))
    assert isinstance(event, RequestEvent)


def test_falsy_request_field_is_skipped_for_response():
    event = decode_event(RawEvent(port=1, timestamp=T0,
                                  data={"id": "a", "request": 0, "response": {"status": 200}}))
    assert isinstance(event, ResponseEvent)
    assert event.status == 200


def test_float_id_is_accepted():
    event = decode_event(RawEvent(port=1, timestamp=T0, data={"id": 1.5, "request": {}}))
    assert event.id == 1.5


@pytest.mark.parametrize("value, expected", [
    ({}, True),
    ([], True),
    ("x", True),
    (1.5, True),
    (None, False),
    (False, False),
    (0, False),
    ("", False),
])
def test_is_truthy(value, expected):
    assert is_truthy(value) is expected


@pytest.mark.parametrize("data", [
    None,
    "text",
    42,
    {},
    {"id": 1},
    {"id": None, "request": {}},
    {"id": True, "request": {}},
    {"id": {"nested": 1}, "request": {}},
])
def test_malformed_payloads_raise(data):
    with pytest.raises(MalformedEvent):
        decode_event(RawEvent(port=1, timestamp=T0, data=data))


def test_parse_timestamp_variants():
    expected = datetime(2024, 1, 15, 12, 0, 0, 50000, tzinfo=timezone.utc)
    assert parse_timestamp("2024-01-15T12:00:00.050Z") == expected
    assert parse_timestamp("2024-01-15T12:00:00.050+00:00") == expected
    assert parse_timestamp("2024-01-15T12:00:00.050") == expected
    assert parse_timestamp(expected) == expected
    assert parse_timestamp("yesterday") is None
    assert parse_timestamp("") is None
    assert parse_timestamp(None) is None


def test_utc_now_iso_round_trips_through_parser():
    stamp = utc_now_iso()
    assert stamp.endswith("Z")
    assert parse_timestamp(stamp) is not None


def test_query_parameters_from_uri():
    assert query_parameters_from_uri("/p?a=1&b=") == {"a": "1", "b": ""}
    assert query_parameters_from_uri("/p") is None
    assert query_parameters_from_uri(None) is None
