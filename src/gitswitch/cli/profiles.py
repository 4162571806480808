"""CLI commands for managing profiles and the global identity."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import typer
from rich.table import Table

from gitswitch.cli.common import call, console, emit, short_id

profiles_app = typer.Typer(help="Create, edit and switch Git identities")


def _render_profiles(profiles: List[Dict[str, Any]]) -> None:
    if not profiles:
        console.print("[yellow]No profiles yet.[/yellow] Create one with: gitswitch profiles create")
        return
    table = Table(title="Profiles")
    table.add_column("ID", style="dim")
    table.add_column("Label", style="bold")
    table.add_column("Provider")
    table.add_column("Email")
    table.add_column("Auth")
    table.add_column("SSH alias")
    table.add_column("Default", justify="center")
    for profile in profiles:
        table.add_row(
            short_id(profile["id"]),
            f"[{profile['color']}]{profile['label']}[/]",
            profile["provider"],
            profile["email"],
            profile["auth_type"],
            profile.get("ssh_host_alias") or "-",
            "*" if profile["is_default"] else "",
        )
    console.print(table)


def _render_profile(profile: Dict[str, Any]) -> None:
    console.print(f"[bold]{profile['label']}[/bold] ({profile['id']})")
    for key in ("provider", "username", "email", "auth_type", "ssh_key_path", "ssh_host_alias", "is_default"):
        value = profile.get(key)
        if value is not None:
            console.print(f"  {key.replace('_', ' ').capitalize()}: {value}")


@profiles_app.command("list")
def list_profiles(
    output_json: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """List all profiles."""
    emit(call("list_profiles"), output_json=output_json, render=_render_profiles)


@profiles_app.command("show")
def show_profile(
    profile_id: str = typer.Argument(..., help="Profile id"),
    output_json: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Show one profile."""
    emit(call("get_profile", id=profile_id), output_json=output_json, render=_render_profile)


@profiles_app.command("create")
def create_profile(
    label: str = typer.Option(..., "--label", "-l", help="Display name, e.g. Work"),
    email: str = typer.Option(..., "--email", "-e", help="Commit email"),
    username: str = typer.Option(..., "--username", "-u", help="Commit author name"),
    provider: str = typer.Option("github", "--provider", "-p", help="github, gitlab, bitbucket, azure or custom"),
    auth_type: str = typer.Option("ssh", "--auth", help="ssh or https"),
    ssh_key_path: Optional[str] = typer.Option(None, "--key", help="Existing private key to use"),
    generate_key: bool = typer.Option(False, "--generate-key", help="Generate a new ed25519 key"),
    with_token: bool = typer.Option(False, "--token", help="Prompt for an HTTPS access token"),
    make_default: bool = typer.Option(False, "--default", help="Make this the default profile"),
    color: Optional[str] = typer.Option(None, "--color", help="Hex color, e.g. #1f6feb"),
    output_json: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Create a profile.

    Examples:
        gitswitch profiles create -l Work -e me@corp.com -u me --generate-key
        gitswitch profiles create -l OSS -e me@example.com -u me --auth https --token
    """
    data: Dict[str, Any] = {
        "label": label,
        "provider": provider,
        "username": username,
        "email": email,
        "auth_type": auth_type,
        "ssh_key_path": ssh_key_path,
        "generate_new_key": generate_key,
        "color": color,
    }
    if make_default:
        data["is_default"] = True
    if with_token:
        data["token"] = typer.prompt("Access token", hide_input=True)

    def render(profile: Dict[str, Any]) -> None:
        console.print(f"[green]Created profile[/green] {profile['label']} ({profile['id']})")
        if profile.get("ssh_host_alias"):
            console.print(f"  Use host alias [bold]{profile['ssh_host_alias']}[/bold] in SSH remotes")

    emit(call("create_profile", input=data), output_json=output_json, render=render)


@profiles_app.command("update")
def update_profile(
    profile_id: str = typer.Argument(..., help="Profile id"),
    label: Optional[str] = typer.Option(None, "--label", "-l"),
    email: Optional[str] = typer.Option(None, "--email", "-e"),
    username: Optional[str] = typer.Option(None, "--username", "-u"),
    provider: Optional[str] = typer.Option(None, "--provider", "-p"),
    auth_type: Optional[str] = typer.Option(None, "--auth"),
    ssh_key_path: Optional[str] = typer.Option(None, "--key"),
    with_token: bool = typer.Option(False, "--token", help="Prompt for a new access token"),
    is_default: Optional[bool] = typer.Option(None, "--default/--no-default"),
    color: Optional[str] = typer.Option(None, "--color"),
    output_json: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Change fields of a profile; omitted fields stay as they are."""
    data: Dict[str, Any] = {
        "id": profile_id,
        "label": label,
        "email": email,
        "username": username,
        "provider": provider,
        "auth_type": auth_type,
        "ssh_key_path": ssh_key_path,
        "is_default": is_default,
        "color": color,
    }
    if with_token:
        data["token"] = typer.prompt("Access token", hide_input=True)
    data = {key: value for key, value in data.items() if value is not None}

    def render(profile: Dict[str, Any]) -> None:
        console.print(f"[green]Updated profile[/green] {profile['label']}")

    emit(call("update_profile", input=data), output_json=output_json, render=render)


@profiles_app.command("delete")
def delete_profile(
    profile_id: str = typer.Argument(..., help="Profile id"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
    output_json: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Delete a profile, its stored token and its SSH host alias."""
    if not yes and not typer.confirm(f"Delete profile {profile_id}?"):
        console.print("[yellow]Cancelled[/yellow]")
        raise typer.Exit(0)
    emit(
        call("delete_profile", id=profile_id),
        output_json=output_json,
        render=lambda _: console.print("[green]Profile deleted[/green]"),
    )


@profiles_app.command("set-default")
def set_default(
    profile_id: str = typer.Argument(..., help="Profile id"),
    output_json: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Mark a profile as the default without touching Git config."""
    emit(
        call("set_default_profile", id=profile_id),
        output_json=output_json,
        render=lambda _: console.print("[green]Default profile updated[/green]"),
    )


@profiles_app.command("switch")
def switch_global(
    profile_id: str = typer.Argument(..., help="Profile id"),
    output_json: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Write a profile's identity into the global Git config."""
    emit(
        call("switch_global", id=profile_id),
        output_json=output_json,
        render=lambda data: console.print(f"[green]{data['message']}[/green]"),
    )


@profiles_app.command("current")
def current_global(
    output_json: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Show the global Git identity."""

    def render(identity: Dict[str, Any]) -> None:
        console.print(f"Email:    {identity.get('email') or '(not set)'}")
        console.print(f"Username: {identity.get('username') or '(not set)'}")

    emit(call("get_current_global"), output_json=output_json, render=render)
