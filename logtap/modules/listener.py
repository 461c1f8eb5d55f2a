"""
HTTP listeners feeding the correlation engine.

Each started port gets its own ThreadingHTTPServer running in a daemon
thread. Handlers never touch the engine directly: they turn the call into a
RawEvent and put it on a shared queue. A single dispatcher thread drains that
queue, so the engine sees one event at a time, in the order the calls were
received.
"""
import json
import queue
import socketserver
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Callable, Dict, List, Optional
from urllib.parse import urlsplit

from logtap.modules.engine import CorrelationEngine
from logtap.modules.errors import InvalidPort, PortInUse, UnknownPort
from logtap.modules.events import RawEvent, utc_now_iso
from logtap.modules.models import ListenerSession, MergedEntry
from logtap.modules.utils import get_local_ip_address, log_to_file, validate_port

_STOP = object()


class _LogServer(ThreadingHTTPServer):
    allow_reuse_address = True
    daemon_threads = True

    def __init__(self, server_address, handler_class, *, port: int, manager: "ListenerManager"):
        self.port = port
        self.manager = manager
        super().__init__(server_address, handler_class)

    def server_bind(self) -> None:
        # skip the reverse-DNS lookup HTTPServer.server_bind does
        socketserver.TCPServer.server_bind(self)
        host, port = self.server_address[:2]
        self.server_name = str(host)
        self.server_port = int(port)


class _LogRequestHandler(BaseHTTPRequestHandler):
    server: _LogServer

    def _handle(self) -> None:
        try:
            self.server.manager.deliver(self._build_event())
        except Exception as e:
            log_to_file(f"Error processing log request on port {self.server.port}: {e}", "error")
            self._reply(500, "Error processing request")
            return
        self._reply(200, "OK")

    do_GET = do_POST = do_PUT = do_PATCH = do_DELETE = do_OPTIONS = _handle

    def do_HEAD(self) -> None:  # noqa: N802
        try:
            self.server.manager.deliver(self._build_event())
        except Exception as e:
            log_to_file(f"Error processing log request on port {self.server.port}: {e}", "error")
            self.send_response(500)
            self.end_headers()
            return
        self.send_response(200)
        self.end_headers()

    def _build_event(self) -> RawEvent:
        return RawEvent(
            port=self.server.port,
            timestamp=utc_now_iso(),
            method=self.command,
            path=urlsplit(self.path).path or "/",
            headers={str(k).lower(): str(v) for k, v in self.headers.items()},
            data=self._read_body(),
        )

    def _read_body(self):
        length = int(self.headers.get("Content-Length", "0") or "0")
        body = self.rfile.read(length) if length > 0 else b""
        if not body:
            return None
        text = body.decode("utf-8", errors="replace")
        try:
            return json.loads(text)
        except json.JSONDecodeError:
            return text

    def _reply(self, status: int, text: str) -> None:
        body = text.encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "text/plain; charset=utf-8")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format, *args) -> None:
        log_to_file(f"[{self.server.port}] {format % args}", "debug")


class ListenerManager:
    """
    Starts and stops HTTP listeners and forwards their traffic to an engine.

    Args:
        engine: CorrelationEngine whose registry holds the sessions
        host: Interface the listeners bind to
        advertise_host: Host shown in endpoints (defaults to the LAN address)
        on_entry: Called from the dispatcher thread with each touched entry
    """

    def __init__(
        self,
        engine: Optional[CorrelationEngine] = None,
        host: str = "0.0.0.0",
        advertise_host: Optional[str] = None,
        on_entry: Optional[Callable[[MergedEntry], None]] = None,
    ):
        self.engine = engine or CorrelationEngine()
        self.registry = self.engine.registry
        self.host = host
        self.advertise_host = advertise_host
        self.on_entry = on_entry
        self._servers: Dict[int, _LogServer] = {}
        self._threads: Dict[int, threading.Thread] = {}
        self._events: "queue.Queue" = queue.Queue()
        self._lock = threading.Lock()
        self._dispatcher: Optional[threading.Thread] = None

    def endpoint_for(self, port: int) -> str:
        host = self.advertise_host or get_local_ip_address()
        return f"http://{host}:{port}"

    def start(self, port: int) -> ListenerSession:
        """
        Bind a listener on port and open its session.

        :raises InvalidPort: port outside 1-65535
        :raises DuplicatePort: a session already exists for port
        :raises PortInUse: the OS refused the bind
        """
        try:
            port = validate_port(port)
        except ValueError:
            raise InvalidPort(port)

        # reserve first so two concurrent starts can't both bind
        session = self.registry.open_session(port, self.endpoint_for(port), activate=False)
        try:
            server = _LogServer((self.host, port), _LogRequestHandler, port=port, manager=self)
        except OSError as e:
            self.registry.close_session(port)
            log_to_file(f"Failed to bind port {port}: {e}", "error")
            raise PortInUse(port, e.strerror or str(e))

        thread = threading.Thread(
            target=server.serve_forever,
            kwargs={"poll_interval": 0.2},
            name=f"logtap-listener-{port}",
            daemon=True,
        )
        # active before the first connection is accepted
        self.registry.activate(port)
        with self._lock:
            self._servers[port] = server
            self._threads[port] = thread
            self._ensure_dispatcher()
        thread.start()
        log_to_file(f"Log server started on port {port} ({session.endpoint})")
        return session

    def stop(self, port: int) -> None:
        """:raises UnknownPort: nothing is listening on port"""
        with self._lock:
            server = self._servers.pop(port, None)
            thread = self._threads.pop(port, None)
        if server is None:
            raise UnknownPort(port)

        server.shutdown()
        server.server_close()
        if thread is not None:
            thread.join(timeout=2)
        # queued events for this port become no-ops once the session is gone
        self.registry.close_session(port)
        log_to_file(f"Log server stopped on port {port}")

    def stop_all(self) -> None:
        for port in self.list():
            self.stop(port)
        with self._lock:
            dispatcher, self._dispatcher = self._dispatcher, None
        if dispatcher is not None:
            self._events.put(_STOP)
            dispatcher.join(timeout=2)

    def list(self) -> List[int]:
        with self._lock:
            return sorted(self._servers)

    def deliver(self, event: RawEvent) -> None:
        self._events.put(event)

    def flush(self, timeout: Optional[float] = None) -> bool:
        """Wait until every queued event has been processed."""
        if timeout is None:
            self._events.join()
            return True
        done = threading.Event()

        def _join():
            self._events.join()
            done.set()

        threading.Thread(target=_join, daemon=True).start()
        return done.wait(timeout)

    def _ensure_dispatcher(self) -> None:
        if self._dispatcher is None or not self._dispatcher.is_alive():
            self._dispatcher = threading.Thread(
                target=self._dispatch_loop, name="logtap-dispatcher", daemon=True
            )
            self._dispatcher.start()

    def _dispatch_loop(self) -> None:
        while True:
            event = self._events.get()
            try:
                if event is _STOP:
                    return
                entry = self.engine.process_event(event)
                if entry is not None and self.on_entry is not None:
                    self.on_entry(entry)
            except Exception as e:
                log_to_file(f"Failed to dispatch event for port {getattr(event, 'port', '?')}: {e}", "error")
            finally:
                self._events.task_done()
