import copy
import threading
import uuid
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Union

UNKNOWN_METHOD = "UNKNOWN"

EntryId = Union[int, float, str]


class SessionState(str, Enum):
    OPENING = "opening"
    ACTIVE = "active"
    CLOSED = "closed"


@dataclass
class MergedEntry:
    """One request correlated with its (possibly still missing) response.

    Request-side and response-side fields are filled independently, so an
    entry can carry either half or both. `duration` is in milliseconds.
    """
    id: EntryId
    port: int
    method: str = UNKNOWN_METHOD
    uri: str = ""
    request_timestamp: Optional[str] = None
    request_headers: Optional[Dict[str, str]] = None
    request_data: Any = None
    request_query_parameters: Optional[Dict[str, str]] = None
    response_timestamp: Optional[str] = None
    status_code: Optional[int] = None
    response_message: Optional[str] = None
    response_data: Any = None
    duration: Optional[int] = None

    @property
    def has_response(self) -> bool:
        return self.response_timestamp is not None

    def snapshot(self) -> "MergedEntry":
        """Deep copy handed out to readers; nested bodies are not shared."""
        return copy.deepcopy(self)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ListenerSession:
    port: int
    endpoint: str
    entries: List[MergedEntry] = field(default_factory=list)
    state: SessionState = SessionState.OPENING
    session_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    lock: threading.RLock = field(default_factory=threading.RLock, repr=False, compare=False)

    @property
    def is_active(self) -> bool:
        return self.state is SessionState.ACTIVE

    def find(self, entry_id: EntryId) -> Optional[MergedEntry]:
        for entry in self.entries:
            if entry.id == entry_id:
                return entry
        return None
