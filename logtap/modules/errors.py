"""
Errors raised by the session registry and the listener manager
"""


class LogTapError(Exception):
    """Base class for every logtap error."""


class PortInUse(LogTapError):
    def __init__(self, port: int, reason: str = ""):
        self.port = port
        message = f"Port {port} is already in use"
        if reason:
            message += f" ({reason})"
        super().__init__(message)


class DuplicatePort(PortInUse):
    def __init__(self, port: int):
        self.port = port
        LogTapError.__init__(self, f"Server on port {port} already exists")


class UnknownPort(LogTapError):
    def __init__(self, port: int):
        self.port = port
        super().__init__(f"No server found on port {port}")


class InvalidPort(LogTapError):
    def __init__(self, port):
        self.port = port
        super().__init__(f"Invalid port number: {port} (must be 1-65535)")


class MalformedEvent(LogTapError):
    """Payload lacks an id or a request/response discriminator."""
