"""CLI commands for scanning and binding repositories."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional

import typer
from rich.table import Table

from gitswitch.cli.common import call, console, emit, short_id

repos_app = typer.Typer(help="Scan repositories and bind them to profiles")

STATUS_STYLES = {
    "bound": "green",
    "unbound": "dim",
    "mismatch": "yellow",
    "error": "red",
}


def _render_repositories(repositories: List[Dict[str, Any]]) -> None:
    if not repositories:
        console.print("[yellow]No repositories known.[/yellow] Run: gitswitch repos scan")
        return
    table = Table(title=f"Repositories ({len(repositories)})")
    table.add_column("Name", style="bold")
    table.add_column("Path", overflow="fold")
    table.add_column("Provider")
    table.add_column("Profile", style="dim")
    table.add_column("Status")
    for repo in repositories:
        status = repo["status"]
        table.add_row(
            repo["name"],
            repo["path"],
            repo.get("detected_provider") or "-",
            short_id(repo.get("bound_profile_id")) or "-",
            f"[{STATUS_STYLES.get(status, 'white')}]{status}[/]",
        )
    console.print(table)


def _render_repository(repo: Dict[str, Any]) -> None:
    console.print(f"[bold]{repo['name']}[/bold]  {repo['path']}")
    console.print(f"  Status:  [{STATUS_STYLES.get(repo['status'], 'white')}]{repo['status']}[/]")
    console.print(f"  Email:   {repo.get('local_email') or '(inherits global)'}")
    console.print(f"  Name:    {repo.get('local_username') or '(inherits global)'}")
    if repo.get("mismatch_details"):
        console.print(f"  [yellow]{repo['mismatch_details']}[/yellow]")
    for remote in repo.get("remotes", []):
        console.print(f"  Remote {remote['name']}: {remote['url']} ({remote['type']})")


@repos_app.command("scan")
def scan(
    directories: Optional[List[Path]] = typer.Argument(None, help="Directories to scan instead of the defaults"),
    max_depth: Optional[int] = typer.Option(None, "--depth", help="Maximum directory depth"),
    exclude: Optional[List[str]] = typer.Option(None, "--exclude", help="Glob of directories to skip"),
    output_json: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Find Git repositories and refresh their binding status."""
    options: Dict[str, Any] = {
        "directories": [str(path.expanduser()) for path in directories] if directories else None,
        "max_depth": max_depth,
        "exclude_patterns": list(exclude) if exclude else None,
    }

    def render(data: Dict[str, Any]) -> None:
        _render_repositories(data["repositories"])
        console.print(f"Scanned in {data['duration']} ms")
        for error in data["errors"]:
            console.print(f"  [yellow]![/yellow] {error}")

    emit(call("scan_repositories", options=options), output_json=output_json, render=render)


@repos_app.command("list")
def list_repositories(
    output_json: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """List known repositories."""
    emit(call("list_repositories"), output_json=output_json, render=_render_repositories)


@repos_app.command("show")
def show_repository(
    path: Path = typer.Argument(Path("."), help="Repository path"),
    output_json: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Show a repository's identity state."""
    emit(call("get_repository", path=str(path)), output_json=output_json, render=_render_repository)


@repos_app.command("bind")
def bind(
    profile_id: str = typer.Argument(..., help="Profile id"),
    path: Path = typer.Argument(Path("."), help="Repository path"),
    update_remotes: bool = typer.Option(
        False, "--update-remotes", help="Point SSH remotes at the profile's host alias"
    ),
    output_json: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Write a profile's identity into a repository's local config."""
    emit(
        call("bind_repository", repo_path=str(path), profile_id=profile_id, update_remotes=update_remotes),
        output_json=output_json,
        render=lambda data: console.print(f"[green]Bound to {data['profile']}[/green]"),
    )


@repos_app.command("unbind")
def unbind(
    path: Path = typer.Argument(Path("."), help="Repository path"),
    output_json: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Forget a repository's profile. Its local config is left untouched."""
    emit(
        call("unbind_repository", repo_path=str(path)),
        output_json=output_json,
        render=lambda _: console.print("[green]Repository unbound[/green]"),
    )


@repos_app.command("validate")
def validate(
    path: Path = typer.Argument(Path("."), help="Repository path"),
    output_json: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Check that the remote accepts the current credentials."""

    def render(data: Dict[str, Any]) -> None:
        style = "green" if data["success"] else "red"
        console.print(f"[{style}]{data['message']}[/{style}]")
        if not data["success"]:
            raise typer.Exit(1)

    emit(call("validate_repository", repo_path=str(path)), output_json=output_json, render=render)
