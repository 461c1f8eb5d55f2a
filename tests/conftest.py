import os
import socket
import tempfile

# keep the CLI's user config out of the real home directory
os.environ.setdefault(
    "LOGTAP_CONFIG_PATH",
    os.path.join(tempfile.mkdtemp(prefix="logtap-test-"), "config.json"),
)

import pytest

from logtap.modules.engine import CorrelationEngine
from logtap.modules.events import RawEvent

T0 = "2024-01-15T12:00:00.000Z"


def free_port() -> int:
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]
    finally:
        sock.close()


def request_event(port, entry_id, method="GET", uri="/x", timestamp=T0, **extra):
    body = {"method": method, "uri": uri, "headers": {"accept": "*/*"}}
    body.update(extra)
    return RawEvent(port=port, timestamp=timestamp, data={"id": entry_id, "request": body})


def response_event(port, entry_id, status=200, uri="/x", timestamp=T0, **extra):
    body = {"status": status, "uri": uri}
    body.update(extra)
    return RawEvent(port=port, timestamp=timestamp, data={"id": entry_id, "response": body})


@pytest.fixture
def engine():
    engine = CorrelationEngine()
    engine.registry.open_session(4000, "http://localhost:4000")
    return engine
