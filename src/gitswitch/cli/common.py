"""Shared helpers for the command groups."""

from __future__ import annotations

import asyncio
import json
from typing import Any, Callable, Dict, Optional

import typer
from rich.console import Console

from gitswitch.api import GitSwitchAPI
from gitswitch.configuration import load_config

console = Console()
err_console = Console(stderr=True)


def get_api() -> GitSwitchAPI:
    """Build the API from the environment's configuration."""
    return GitSwitchAPI.create(load_config())


def call(method: str, **kwargs: Any) -> Dict[str, Any]:
    """Run one API coroutine to completion and return its envelope."""
    api = get_api()
    return asyncio.run(getattr(api, method)(**kwargs))


def emit(
    envelope: Dict[str, Any],
    *,
    output_json: bool,
    render: Optional[Callable[[Any], None]] = None,
) -> Any:
    """Print an envelope and return its data; exit 1 on failure."""

    if output_json:
        typer.echo(json.dumps(envelope, indent=2))
        if not envelope.get("success"):
            raise typer.Exit(1)
        return envelope.get("data")

    if not envelope.get("success"):
        error = envelope.get("error") or {}
        details = error.get("details") or {}
        err_console.print(f"[red]Error ({error.get('code', 'UNKNOWN')}):[/red] {error.get('message', '')}")
        if details.get("reason"):
            err_console.print(f"  {details['reason']}")
        for problem in details.get("errors", []):
            err_console.print(f"  {'.'.join(problem.get('loc', []))}: {problem.get('msg')}")
        if details.get("suggestion"):
            err_console.print(f"[yellow]Suggestion:[/yellow] {details['suggestion']}")
        raise typer.Exit(1)

    data = envelope.get("data")
    if render is not None:
        render(data)
    elif data is not None:
        console.print_json(data=data)
    return data


def short_id(value: Optional[str]) -> str:
    return (value or "")[:8]
