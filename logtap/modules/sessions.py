"""
Registry of listener sessions, one per port
"""
import threading
from typing import Dict, List, Optional

from logtap.modules.errors import DuplicatePort, UnknownPort
from logtap.modules.models import ListenerSession, SessionState


class SessionRegistry:
    """Owns every open ListenerSession, keyed by port.

    A session is created in the `opening` state when the listener manager
    reserves a port, becomes `active` once the port is bound, and is
    `closed` (and forgotten) when stopped. Reopening a port number later
    yields a brand new session.
    """

    def __init__(self):
        self._sessions: Dict[int, ListenerSession] = {}
        self._lock = threading.Lock()

    def __contains__(self, port: int) -> bool:
        return port in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

    def open_session(self, port: int, endpoint: str, activate: bool = True) -> ListenerSession:
        with self._lock:
            if port in self._sessions:
                raise DuplicatePort(port)
            session = ListenerSession(port=port, endpoint=endpoint)
            if activate:
                session.state = SessionState.ACTIVE
            self._sessions[port] = session
            return session

    def activate(self, port: int) -> ListenerSession:
        session = self.require(port)
        with session.lock:
            if session.state is SessionState.OPENING:
                session.state = SessionState.ACTIVE
        return session

    def close_session(self, port: int) -> ListenerSession:
        with self._lock:
            session = self._sessions.pop(port, None)
        if session is None:
            raise UnknownPort(port)
        with session.lock:
            session.state = SessionState.CLOSED
            session.entries.clear()
        return session

    def clear_entries(self, port: int) -> None:
        session = self.require(port)
        with session.lock:
            session.entries.clear()

    def get(self, port: int) -> Optional[ListenerSession]:
        return self._sessions.get(port)

    def require(self, port: int) -> ListenerSession:
        session = self._sessions.get(port)
        if session is None:
            raise UnknownPort(port)
        return session

    def ports(self) -> List[int]:
        """Ports with an active session, ascending."""
        with self._lock:
            return sorted(p for p, s in self._sessions.items() if s.is_active)

    def sessions(self) -> List[ListenerSession]:
        with self._lock:
            return [self._sessions[p] for p in sorted(self._sessions)]
