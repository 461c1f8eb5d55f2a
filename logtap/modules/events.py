"""
Normalized inbound events and the decoder that classifies their payloads.

The listener manager turns every HTTP call into a RawEvent. Whether that
call describes a request or a response is decided here, once, by
decode_event(): the payload is a request when it carries a `request` field,
a response when it carries a `response` field, and malformed otherwise.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union
from urllib.parse import parse_qsl, urlsplit

from logtap.modules.errors import MalformedEvent
from logtap.modules.models import EntryId


@dataclass
class RawEvent:
    port: int
    timestamp: str
    method: str = "POST"
    path: str = "/"
    headers: Dict[str, str] = field(default_factory=dict)
    data: Any = None


@dataclass(frozen=True)
class RequestEvent:
    id: EntryId
    port: int
    timestamp: str
    method: Optional[str]
    uri: Optional[str]
    headers: Optional[Dict[str, str]]
    data: Any
    query_parameters: Optional[Dict[str, str]]


@dataclass(frozen=True)
class ResponseEvent:
    id: EntryId
    port: int
    timestamp: str
    status: Optional[int]
    message: Optional[str]
    uri: Optional[str]
    data: Any


Event = Union[RequestEvent, ResponseEvent]


def utc_now_iso() -> str:
    """Current UTC time as `2024-01-15T12:00:00.123Z`."""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp, returning None when it can't be read."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value:
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def query_parameters_from_uri(uri: Optional[str]) -> Optional[Dict[str, str]]:
    if not isinstance(uri, str) or "?" not in uri:
        return None
    params = dict(parse_qsl(urlsplit(uri).query, keep_blank_values=True))
    return params or None


def _as_str(value) -> Optional[str]:
    if value is None:
        return None
    return value if isinstance(value, str) else str(value)


def _as_status(value) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _as_headers(value) -> Optional[Dict[str, str]]:
    if not isinstance(value, dict):
        return None
    return {str(k): v if isinstance(v, str) else str(v) for k, v in value.items()}


def _as_params(value) -> Optional[Dict[str, str]]:
    if not isinstance(value, dict):
        return None
    return {str(k): v for k, v in value.items()}


def is_truthy(value) -> bool:
    """Truthiness as a JSON payload's sender sees it: empty objects and arrays count."""
    if isinstance(value, (dict, list)):
        return True
    return bool(value)


def decode_event(raw: RawEvent) -> Event:
    """
    Classify a raw event as a RequestEvent or a ResponseEvent.

    :raises MalformedEvent: when the payload is not an object, lacks a
        truthy id, or carries neither a `request` nor a `response` field
    """
    payload = raw.data
    if not isinstance(payload, dict):
        raise MalformedEvent("payload is not a JSON object")

    if is_truthy(payload.get("request")):
        kind, body = "request", payload["request"]
    elif is_truthy(payload.get("response")):
        kind, body = "response", payload["response"]
    else:
        raise MalformedEvent("payload has neither 'request' nor 'response'")

    if not isinstance(body, dict):
        body = {}

    entry_id = payload.get("id") or body.get("id")
    if not entry_id or isinstance(entry_id, (bool, dict, list)):
        raise MalformedEvent("payload has no usable id")

    if kind == "request":
        uri = _as_str(body.get("uri"))
        params = _as_params(body.get("queryParameters"))
        if params is None:
            params = query_parameters_from_uri(uri)
        return RequestEvent(
            id=entry_id,
            port=raw.port,
            timestamp=raw.timestamp,
            method=_as_str(body.get("method")),
            uri=uri,
            headers=_as_headers(body.get("headers")),
            data=body.get("data"),
            query_parameters=params,
        )

    return ResponseEvent(
        id=entry_id,
        port=raw.port,
        timestamp=raw.timestamp,
        status=_as_status(body.get("status")),
        message=_as_str(body.get("message")),
        uri=_as_str(body.get("uri")),
        data=body.get("data"),
    )
