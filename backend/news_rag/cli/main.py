"""CLI entrypoint for News RAG."""

from __future__ import annotations

import json
import os
from typing import Optional

import requests
import typer

app = typer.Typer(name="newsrag", help="News RAG command-line interface")

DEFAULT_HOST = "http://127.0.0.1:5000"


def _resolve_host(override: Optional[str]) -> str:
    if override:
        return override.rstrip('/')
    env_host = os.environ.get("NEWSRAG_HOST")
    if env_host:
        return env_host.rstrip('/')
    return DEFAULT_HOST


def _request(method: str, path: str, host: Optional[str] = None, **kwargs) -> requests.Response:
    base = _resolve_host(host)
    url = f"{base}{path}"
    resp = requests.request(method, url, timeout=60, **kwargs)
    if not resp.ok:
        try:
            detail = resp.json()
        except ValueError:
            detail = resp.text
        typer.echo(f"Request failed ({resp.status_code}): {detail}", err=True)
        raise typer.Exit(code=1)
    return resp


@app.command()
def ask(
    message: str = typer.Argument(..., help="Question to answer"),
    session: Optional[str] = typer.Option(None, "--session", help="Continue an existing session"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Ask a question and print the answer with its sources."""
    body: dict[str, object] = {"message": message}
    if session:
        body["session_id"] = session
    resp = _request("POST", "/chat/message", host=host, json=body)
    typer.echo(json.dumps(resp.json(), indent=2))


@app.command()
def history(
    session: str = typer.Argument(..., help="Session identifier"),
    limit: Optional[int] = typer.Option(None, "--limit", help="Maximum number of messages"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Show a session's chat history."""
    params = {"limit": limit} if limit else None
    resp = _request("GET", f"/session/{session}/history", host=host, params=params)
    typer.echo(json.dumps(resp.json(), indent=2))


@app.command()
def clear(
    session: str = typer.Argument(..., help="Session identifier"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Clear a session's chat history."""
    resp = _request("DELETE", f"/session/{session}/clear", host=host)
    typer.echo(json.dumps(resp.json(), indent=2))


@app.command()
def stats(
    sessions: bool = typer.Option(False, "--sessions", help="Include session and message totals"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Show vector store statistics."""
    resp = _request("GET", "/session/stats" if sessions else "/stats", host=host)
    typer.echo(json.dumps(resp.json(), indent=2))


if __name__ == "__main__":
    app()
