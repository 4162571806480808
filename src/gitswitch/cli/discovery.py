"""CLI commands for discovering and importing existing identities."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import typer
from rich.table import Table

from gitswitch.cli.common import call, console, emit

discovery_app = typer.Typer(help="Find existing SSH keys and Git identities")


def _options(include_repos: bool, directories: Optional[List[str]]) -> Dict[str, Any]:
    options: Dict[str, Any] = {"scan_repositories": include_repos}
    if directories:
        options["directories"] = directories
    return options


def _render_identities(identities: List[Dict[str, Any]]) -> None:
    if not identities:
        console.print("[yellow]No identities found.[/yellow]")
        return
    table = Table(title="Discovered identities")
    table.add_column("#", justify="right")
    table.add_column("Label", style="bold")
    table.add_column("Source")
    table.add_column("Email")
    table.add_column("Provider")
    table.add_column("Key", overflow="fold")
    for index, identity in enumerate(identities, start=1):
        key = identity.get("ssh_key") or {}
        table.add_row(
            str(index),
            identity.get("suggested_label") or "-",
            identity["source"],
            identity.get("email") or "-",
            identity.get("provider") or "-",
            key.get("private_path") or "-",
        )
    console.print(table)


@discovery_app.command("run")
def run_discovery(
    include_repos: bool = typer.Option(False, "--repos", help="Also walk directories for repositories"),
    directories: Optional[List[str]] = typer.Option(None, "--dir", help="Directory to walk (repeatable)"),
    output_json: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Scan SSH keys, SSH config and the global Git config."""

    def render(result: Dict[str, Any]) -> None:
        _render_identities(result["identities"])
        if result["repositories"]:
            console.print(f"Found {len(result['repositories'])} repositories")
        for error in result["errors"]:
            console.print(f"  [yellow]![/yellow] {error}")

    emit(
        call("start_discovery", options=_options(include_repos, directories)),
        output_json=output_json,
        render=render,
    )


@discovery_app.command("import")
def import_identities(
    pick: Optional[List[int]] = typer.Option(None, "--pick", help="Number from 'discovery run' (repeatable)"),
    import_all: bool = typer.Option(False, "--all", help="Import every discovered identity"),
    output_json: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Create profiles from discovered identities."""
    if not pick and not import_all:
        console.print("[yellow]Nothing selected.[/yellow] Use --pick N or --all")
        raise typer.Exit(1)

    result = emit(
        call("start_discovery", options=_options(False, None)),
        output_json=False,
        render=lambda _: None,
    )
    identities = result["identities"]
    wanted = set(pick or [])
    for index, identity in enumerate(identities, start=1):
        identity["selected"] = import_all or index in wanted

    def render(data: Dict[str, Any]) -> None:
        console.print(f"[green]Imported {data['imported']} profile(s)[/green]")
        for profile in data["profiles"]:
            console.print(f"  {profile['label']} <{profile['email']}>")

    emit(call("import_identities", identities=identities), output_json=output_json, render=render)
