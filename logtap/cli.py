"""
LOGTAP:
    - Ad-hoc HTTP log listeners on any number of ports
    - Request/response correlation with timing
    - Live filtering and export of the correlated log
"""

import time, uuid, typer, requests
from tqdm import tqdm
from deepdiff import DeepDiff
from functools import wraps
from typing import Optional, List

from logtap.modules.config import load_user_config, save_user_config, DEFAULT_CONFIG_PATH
from logtap.modules.engine import CorrelationEngine, matches_filter
from logtap.modules.errors import LogTapError
from logtap.modules.listener import ListenerManager
from logtap.modules.render import format_entry_row, format_entry_detail, format_session_summary
from logtap.modules.utils import (
    print_error, print_success, print_warning, print_info, save_to_file, validate_port
)


app = typer.Typer(help="LogTap: spin up HTTP log listeners and inspect correlated request/response pairs.")
app.pretty_exceptions_enabled = True

__version__ = "1.0.0"

# Configuration
config = load_user_config()


# Helper Functions
def print_version_and_exit(value: bool):
    if value:
        print_success(f"LogTap version {__version__}", log=config.get("log"))
        raise typer.Exit()

def safe_cli(f):
    @wraps(f)
    def wrapper(*args, **kwargs):
        try:
            return f(*args, **kwargs)
        except typer.Exit:
            raise
        except LogTapError as e:
            print_error(str(e), show_traceback=config.get("debug"))
            raise typer.Exit(code=1)
        except Exception as e:
            print_error(f"Error: {e}", show_traceback=config.get("debug"))
            raise typer.Exit(code=1)
    return wrapper


@app.callback(invoke_without_command=True)
@safe_cli
def callback(
    ctx: typer.Context,
    version: Optional[bool] = typer.Option(None, "--version", "-v", callback=print_version_and_exit, is_eager=True),
    host: Optional[str] = typer.Option(None, "--host", help="Interface the listeners bind to"),
    advertise_host: Optional[str] = typer.Option(None, "--advertise-host", help="Host shown in endpoints"),
    max_body_length: Optional[int] = typer.Option(None, "--max-body"),
    debug: bool = typer.Option(False, '--debug'),
    log: bool = typer.Option(False, '--log'),
    save_conf: bool = typer.Option(False, "--save-config")
):
    """Apply global options on top of the saved config"""
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()

    cli_config = {"debug": debug or config.get("debug"), "log": log or config.get("log")}
    if host:
        cli_config["host"] = host
    if advertise_host:
        cli_config["advertise_host"] = advertise_host
    if max_body_length is not None:
        cli_config["max_body_length"] = max_body_length

    config.update(cli_config)

    if save_conf:
        existing_config = load_user_config(DEFAULT_CONFIG_PATH)
        diff = DeepDiff(existing_config, config, ignore_order=True)
        if diff:
            save_user_config(config, DEFAULT_CONFIG_PATH)
            print_success(f"Updated config saved to {DEFAULT_CONFIG_PATH}", log=config.get("log"))
        else:
            print_info("No config changes to save.", log=config.get("log"))


@app.command("config", help="Show the effective configuration.")
def show_config():
    print_info(f"Config file: {DEFAULT_CONFIG_PATH}")
    for key, value in config.items():
        typer.echo(f"  {key}: {value}")


@app.command("listen", help="Start log listeners and print correlated entries as they arrive.")
@safe_cli
def listen(
    ports: List[int] = typer.Option(..., "--port", "-p", help="Port to listen on (repeatable)"),
    filter_text: str = typer.Option("", "--filter", "-f", help="Only show entries matching this text"),
    verbose: bool = typer.Option(False, "--verbose", help="Print headers, request and response details"),
    output: Optional[str] = typer.Option(None, "--output", "-o", help="Export entries on exit (.json/.csv/.txt)"),
    quiet: bool = typer.Option(False, "--quiet")
):
    """Run listeners until Ctrl+C, then summarize and optionally export."""
    for port in ports:
        validate_port(port)

    def on_entry(entry):
        if quiet or not matches_filter(entry, filter_text):
            return
        typer.echo(format_entry_row(entry))
        if verbose:
            for view in ("headers", "request", "response"):
                typer.echo(format_entry_detail(
                    entry, view,
                    sensitive_headers=config.get("sensitive_headers") or [],
                    max_body_length=config.get("max_body_length") or 500,
                ))

    engine = CorrelationEngine()
    manager = ListenerManager(
        engine,
        host=config.get("host") or "0.0.0.0",
        advertise_host=config.get("advertise_host"),
        on_entry=on_entry,
    )

    try:
        for port in ports:
            session = manager.start(port)
            print_success(f"Log server started on port {port}", log=config.get("log"))
            print_info(f"Server endpoint: {session.endpoint}")
    except LogTapError:
        manager.stop_all()
        raise

    print_info("Listening... Press Ctrl+C to stop.")
    try:
        while True:
            time.sleep(0.5)
    except KeyboardInterrupt:
        print_info("\nStopping listeners.")

    manager.flush(timeout=2)
    exported = []
    for session in engine.registry.sessions():
        print_info(format_session_summary(session))
        exported.extend(e.to_dict() for e in engine.query(session.port, filter_text))
    manager.stop_all()

    if output:
        if exported:
            save_to_file(output, exported)
        else:
            print_warning("No entries to export.", log=config.get("log"))


@app.command("send", help="Post demo request/response log pairs to a running listener.")
@safe_cli
def send(
    port: int = typer.Option(..., "--port", "-p"),
    target_host: str = typer.Option("localhost", "--target-host"),
    count: int = typer.Option(1, "--count", "-n", min=1),
    method: str = typer.Option("GET", "--method"),
    uri: str = typer.Option("/demo", "--uri"),
    status: int = typer.Option(200, "--status"),
    delay: float = typer.Option(0.05, "--delay", help="Seconds between request and response"),
    orphan: bool = typer.Option(False, "--orphan", help="Send only the response half")
):
    """Useful for checking a listener end to end."""
    port = validate_port(port)
    url = f"http://{target_host}:{port}/"
    timeout = config.get("request_timeout") or 5
    sent = 0

    for i in tqdm(range(count), desc="Sending", unit="pair", disable=count == 1):
        entry_id = uuid.uuid4().hex
        try:
            if not orphan:
                requests.post(url, json={
                    "id": entry_id,
                    "request": {"method": method.upper(), "uri": uri, "headers": {"x-logtap-seq": str(i)}},
                }, timeout=timeout).raise_for_status()
                time.sleep(delay)
            requests.post(url, json={
                "id": entry_id,
                "response": {"status": status, "uri": uri, "data": {"seq": i}},
            }, timeout=timeout).raise_for_status()
        except requests.ConnectionError:
            print_error(f"Connection error: {url}")
            raise typer.Exit(code=1)
        except requests.RequestException as e:
            print_error(f"Request failed: {url} | {e}")
            raise typer.Exit(code=1)
        sent += 1

    print_success(f"Sent {sent} log pair(s) to {url}", log=config.get("log"))


if __name__ == "__main__":
    app()
