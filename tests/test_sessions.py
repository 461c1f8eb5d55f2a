import pytest

from logtap.modules.engine import CorrelationEngine
from logtap.modules.errors import DuplicatePort, PortInUse, UnknownPort
from logtap.modules.models import SessionState
from logtap.modules.sessions import SessionRegistry
from tests.conftest import request_event


def test_open_session_starts_empty_and_active():
    registry = SessionRegistry()
    session = registry.open_session(4000, "http://localhost:4000")

    assert session.port == 4000
    assert session.endpoint == "http://localhost:4000"
    assert session.entries == []
    assert session.state is SessionState.ACTIVE
    assert 4000 in registry
    assert registry.ports() == [4000]


def test_open_same_port_twice_raises_duplicate_port():
    registry = SessionRegistry()
    registry.open_session(4000, "http://localhost:4000")

    with pytest.raises(DuplicatePort) as exc:
        registry.open_session(4000, "http://localhost:4000")
    assert exc.value.port == 4000
    assert isinstance(exc.value, PortInUse)


def test_close_never_opened_port_raises_unknown_port():
    with pytest.raises(UnknownPort):
        SessionRegistry().close_session(5000)


def test_clear_entries_unknown_port_raises():
    with pytest.raises(UnknownPort):
        SessionRegistry().clear_entries(5000)


def test_close_discards_session_and_entries():
    engine = CorrelationEngine()
    session = engine.registry.open_session(4000, "http://localhost:4000")
    engine.process_event(request_event(4000, "a"))

    closed = engine.registry.close_session(4000)

    assert closed is session
    assert closed.state is SessionState.CLOSED
    assert closed.entries == []
    assert 4000 not in engine.registry
    assert engine.registry.ports() == []


def test_reopened_port_is_a_new_session():
    engine = CorrelationEngine()
    first = engine.registry.open_session(4000, "http://localhost:4000")
    engine.process_event(request_event(4000, "a"))
    engine.registry.close_session(4000)

    second = engine.registry.open_session(4000, "http://localhost:4000")

    assert second is not first
    assert second.session_id != first.session_id
    assert engine.get_entries(4000) == []


def test_opening_sessions_are_not_listed_until_activated():
    registry = SessionRegistry()
    session = registry.open_session(4000, "http://localhost:4000", activate=False)

    assert session.state is SessionState.OPENING
    assert registry.ports() == []

    registry.activate(4000)
    assert session.state is SessionState.ACTIVE
    assert registry.ports() == [4000]


def test_ports_are_sorted():
    registry = SessionRegistry()
    for port in (5000, 3000, 4000):
        registry.open_session(port, f"http://localhost:{port}")

    assert registry.ports() == [3000, 4000, 5000]
    assert [s.port for s in registry.sessions()] == [3000, 4000, 5000]
    assert len(registry) == 3
