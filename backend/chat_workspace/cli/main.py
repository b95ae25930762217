"""``chatws``: drive the chat workspace service over HTTP."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, List, Optional

import requests
import typer

app = typer.Typer(name="chatws", help="Chat workspace command-line interface")
presence_app = typer.Typer(name="presence", help="Inspect and drive presence sessions")
app.add_typer(presence_app, name="presence")

DEFAULT_HOST = "http://127.0.0.1:5180"
TIMEOUT_SECONDS = 30


@app.callback()
def main(
    ctx: typer.Context,
    host: Optional[str] = typer.Option(None, "--host", envvar="CHATWS_HOST", help="Service base URL"),
) -> None:
    ctx.obj = (host or DEFAULT_HOST).rstrip("/")


def _call(ctx: typer.Context, method: str, path: str, **kwargs: Any) -> None:
    """Send one request and print the JSON body; exit 1 on an error status."""
    base = ctx.find_root().obj
    resp = requests.request(method, f"{base}{path}", timeout=TIMEOUT_SECONDS, **kwargs)
    body: Any = None
    if resp.content:
        try:
            body = resp.json()
        except ValueError:
            body = resp.text
    if not resp.ok:
        typer.echo(f"{method} {path} failed ({resp.status_code}): {body}", err=True)
        raise typer.Exit(code=1)
    typer.echo(json.dumps(body if body is not None else {"status": "ok"}, indent=2))


@app.command("import")
def import_snapshots(
    ctx: typer.Context,
    paths: List[Path] = typer.Argument(..., help="YAML or JSON workspace snapshots"),
) -> None:
    """Load workspace snapshots into the service."""
    _call(ctx, "POST", "/import", json={"paths": [str(path.expanduser().resolve()) for path in paths]})


@app.command()
def search(
    ctx: typer.Context,
    term: str = typer.Argument(..., help="Search term; prefix with # for channels or @ for users"),
    uid: Optional[str] = typer.Option(None, "--uid", help="Search as this user"),
) -> None:
    """Search messages, direct messages, channels, threads and users."""
    _call(ctx, "POST", "/search", json={"term": term, "uid": uid})


@app.command()
def channels(
    ctx: typer.Context,
    uid: str = typer.Option(..., "--uid", help="Current user"),
    channel_id: Optional[str] = typer.Option(None, "--channel", help="Show a single channel"),
    available: bool = typer.Option(False, "--available-for-dm", help="List users without a direct message"),
) -> None:
    """Show the categorized channel list for a user."""
    if available:
        path = "/users/available-for-dm"
    elif channel_id:
        path = f"/channels/{channel_id}"
    else:
        path = "/channels"
    _call(ctx, "GET", path, params={"uid": uid})


@presence_app.command("list")
def list_presence(
    ctx: typer.Context,
    online: bool = typer.Option(False, "--online", help="Only users currently online"),
) -> None:
    """List cached presence records."""
    _call(ctx, "GET", "/presence/online" if online else "/presence")


@presence_app.command("show")
def show_presence(ctx: typer.Context, uid: str = typer.Argument(..., help="User id")) -> None:
    """Show one user's presence record."""
    _call(ctx, "GET", f"/presence/{uid}")


@presence_app.command("start")
def start_session(ctx: typer.Context, uid: str = typer.Argument(..., help="User id")) -> None:
    """Start tracking a signed-in user."""
    _call(ctx, "POST", f"/presence/sessions/{uid}")


@presence_app.command("event")
def send_event(
    ctx: typer.Context,
    uid: str = typer.Argument(..., help="User id"),
    event: str = typer.Argument(..., help="online, offline, focus, blur, visibilitychange, activity, beforeunload"),
    visible: Optional[bool] = typer.Option(None, "--visible/--hidden", help="Page visibility for visibilitychange"),
) -> None:
    """Forward a client event to a tracker."""
    body: dict[str, Any] = {"event": event}
    if visible is not None:
        body["visible"] = visible
    _call(ctx, "POST", f"/presence/sessions/{uid}/events", json=body)


@presence_app.command("stop")
def stop_session(
    ctx: typer.Context,
    uid: str = typer.Argument(..., help="User id"),
    drop: bool = typer.Option(False, "--drop", help="Simulate a lost connection instead of signing out"),
) -> None:
    """Sign a user out, or drop their connection."""
    if drop:
        _call(ctx, "POST", f"/presence/sessions/{uid}/disconnect")
    else:
        _call(ctx, "DELETE", f"/presence/sessions/{uid}")


if __name__ == "__main__":
    app()
