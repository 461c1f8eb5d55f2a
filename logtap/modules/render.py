"""
Console rendering of merged entries
"""
import json
from typing import Dict, Iterable, List, Optional
from colorama import Fore, Style

from logtap.modules.models import MergedEntry, ListenerSession

URI_DISPLAY_LIMIT = 50

STATUS_COLORS = {
    2: Fore.GREEN,
    3: Fore.CYAN,
    4: Fore.YELLOW,
    5: Fore.RED,
}

METHOD_COLORS = {
    "GET": Fore.BLUE,
    "POST": Fore.GREEN,
    "PUT": Fore.YELLOW,
    "PATCH": Fore.YELLOW,
    "DELETE": Fore.RED,
}

DETAIL_VIEWS = ("headers", "request", "response")


def truncate_uri(uri: str, limit: int = URI_DISPLAY_LIMIT) -> str:
    uri = uri or ""
    return f"{uri[:limit]}..." if len(uri) > limit else uri


def format_duration(entry: MergedEntry) -> str:
    return f"{entry.duration} ms" if entry.duration is not None else "-"


def status_color(status_code: Optional[int]) -> str:
    if not status_code:
        return ""
    return STATUS_COLORS.get(status_code // 100, "")


def format_entry_row(entry: MergedEntry, color: bool = True) -> str:
    """One table row: port, uri, method, duration, status."""
    status = str(entry.status_code) if entry.status_code else "-"
    method = entry.method or "-"
    uri = truncate_uri(entry.uri)
    if not color:
        return f"[{entry.port}] {uri:<53} {method:<7} {format_duration(entry):>9} {status:>6}"

    method_col = METHOD_COLORS.get(method.upper(), Fore.WHITE) + f"{method:<7}" + Style.RESET_ALL
    status_col = status_color(entry.status_code) + f"{status:>6}" + Style.RESET_ALL
    return f"[{entry.port}] {uri:<53} {method_col} {format_duration(entry):>9} {status_col}"


def redact_headers(headers: Optional[Dict[str, str]], sensitive_headers: Iterable[str]) -> Dict[str, str]:
    """Redact sensitive headers from the output."""
    sensitive = {h.lower() for h in sensitive_headers}
    return {
        k: "[REDACTED]" if k.lower() in sensitive else v
        for k, v in (headers or {}).items()
    }


def pretty_content(content, max_body_length: int = 500) -> str:
    """Format content as pretty JSON if possible, otherwise return as text."""
    if content is None or content == "":
        return ""
    if isinstance(content, (dict, list)):
        pretty = json.dumps(content, indent=2, ensure_ascii=False, default=str)
    else:
        try:
            pretty = json.dumps(json.loads(content), indent=2, ensure_ascii=False)
        except (TypeError, ValueError):
            pretty = str(content)
    return pretty[:max_body_length]


def format_entry_detail(
    entry: MergedEntry,
    view: str = "headers",
    sensitive_headers: Iterable[str] = ("authorization", "cookie"),
    max_body_length: int = 500,
) -> str:
    """Detail panel for one entry: its headers, request body, or response body."""
    if view not in DETAIL_VIEWS:
        raise ValueError(f"Unknown view '{view}'. Must be one of: {', '.join(DETAIL_VIEWS)}")

    lines: List[str] = []
    if view == "headers":
        lines.append(f"  id: {entry.id}")
        lines.append(f"  requested: {entry.request_timestamp or '-'}")
        lines.append(f"  responded: {entry.response_timestamp or '-'}")
        for k, v in redact_headers(entry.request_headers, sensitive_headers).items():
            lines.append(f"  > {k}: {v}")
        for k, v in (entry.request_query_parameters or {}).items():
            lines.append(f"  ? {k}={v}")
    elif view == "request":
        body = pretty_content(entry.request_data, max_body_length)
        lines.append(f"  > Body:\n{body}" if body else "  > (no request body)")
    else:
        if entry.response_message:
            lines.append(f"  < Message: {entry.response_message}")
        body = pretty_content(entry.response_data, max_body_length)
        lines.append(f"  < Body:\n{body}" if body else "  < (no response body)")
    return "\n".join(lines)


def format_session_summary(session: ListenerSession) -> str:
    with session.lock:
        entries = list(session.entries)
    pending = sum(1 for e in entries if not e.has_response)
    return f"Port {session.port} ({len(entries)}) {session.endpoint} - {pending} awaiting response"
