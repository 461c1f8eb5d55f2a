"""
Request/response correlation engine.

Every normalized event coming off a listener is passed to
CorrelationEngine.process_event(). Requests and responses sharing an id are
merged into a single MergedEntry in the session of the port they arrived
on, newest first. Payloads that can't be interpreted are dropped without
raising, since delivery order and payload shape are not under our control.
"""
import json
from typing import Iterator, Optional

from logtap.modules.errors import MalformedEvent
from logtap.modules.events import (
    RawEvent, RequestEvent, ResponseEvent, decode_event, is_truthy, parse_timestamp
)
from logtap.modules.models import MergedEntry, ListenerSession, UNKNOWN_METHOD
from logtap.modules.sessions import SessionRegistry


def compute_duration(request_timestamp, response_timestamp) -> Optional[int]:
    """Milliseconds between two ISO timestamps, or None if either is unreadable."""
    start = parse_timestamp(request_timestamp)
    end = parse_timestamp(response_timestamp)
    if start is None or end is None:
        return None
    return int(round((end - start).total_seconds() * 1000))


def _set_if_present(entry: MergedEntry, name: str, value) -> None:
    # populated fields are only ever overwritten, never cleared
    if value is not None:
        setattr(entry, name, value)


def _body_text(data) -> str:
    try:
        body = data if is_truthy(data) else {}
        return json.dumps(body, separators=(",", ":"), ensure_ascii=False, default=str)
    except (TypeError, ValueError):
        return str(data)


def matches_filter(entry: MergedEntry, filter_text: str) -> bool:
    """Case-insensitive substring match on method, uri, status and both bodies."""
    if not filter_text:
        return True
    needle = filter_text.lower()
    haystacks = [entry.method or "", entry.uri or ""]
    if entry.status_code is not None:
        haystacks.append(str(entry.status_code))
    haystacks.append(_body_text(entry.request_data))
    haystacks.append(_body_text(entry.response_data))
    return any(needle in h.lower() for h in haystacks)


class EntryQuery:
    """
    Filtered, read-only view over one session's entries.

    Iterating it walks a snapshot of the list taken at the start of that
    iteration, so the same query can be iterated again to see fresh state.
    Yielded entries are copies.
    """

    def __init__(self, session: ListenerSession, filter_text: str = ""):
        self.session = session
        self.filter_text = filter_text or ""

    def __iter__(self) -> Iterator[MergedEntry]:
        with self.session.lock:
            entries = list(self.session.entries)
        for entry in entries:
            if matches_filter(entry, self.filter_text):
                yield entry.snapshot()


class CorrelationEngine:
    def __init__(self, registry: Optional[SessionRegistry] = None):
        self.registry = registry if registry is not None else SessionRegistry()

    def process_event(self, raw: RawEvent) -> Optional[MergedEntry]:
        """
        Merge one raw event into its session's log.

        Returns a copy of the entry that was created or updated, or None when
        the event was dropped (unknown or inactive port, malformed payload).
        """
        session = self.registry.get(raw.port)
        if session is None:
            return None

        try:
            event = decode_event(raw)
        except MalformedEvent:
            return None

        with session.lock:
            if not session.is_active:
                return None
            if isinstance(event, RequestEvent):
                entry = self._merge_request(session, event)
            else:
                entry = self._merge_response(session, event)
            return entry.snapshot()

    def _merge_request(self, session: ListenerSession, event: RequestEvent) -> MergedEntry:
        entry = session.find(event.id)
        if entry is None:
            entry = MergedEntry(id=event.id, port=session.port)
            session.entries.insert(0, entry)

        _set_if_present(entry, "method", event.method)
        _set_if_present(entry, "uri", event.uri)
        _set_if_present(entry, "request_timestamp", event.timestamp)
        _set_if_present(entry, "request_headers", event.headers)
        _set_if_present(entry, "request_data", event.data)
        _set_if_present(entry, "request_query_parameters", event.query_parameters)
        return entry

    def _merge_response(self, session: ListenerSession, event: ResponseEvent) -> MergedEntry:
        entry = session.find(event.id)
        if entry is None:
            # orphaned response: no request seen for this id
            entry = MergedEntry(
                id=event.id,
                port=session.port,
                method=UNKNOWN_METHOD,
                uri=event.uri or "",
                request_timestamp=event.timestamp,
                duration=0,
            )
            session.entries.insert(0, entry)
        else:
            _set_if_present(entry, "duration",
                            compute_duration(entry.request_timestamp, event.timestamp))

        _set_if_present(entry, "response_timestamp", event.timestamp)
        _set_if_present(entry, "status_code", event.status)
        _set_if_present(entry, "response_message", event.message)
        _set_if_present(entry, "response_data", event.data)
        return entry

    def query(self, port: int, filter_text: str = "") -> EntryQuery:
        """:raises UnknownPort: when no session exists for port"""
        return EntryQuery(self.registry.require(port), filter_text)

    def get_entries(self, port: int, filter_text: str = ""):
        return list(self.query(port, filter_text))
