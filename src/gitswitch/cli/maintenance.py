"""CLI commands for SSH keys, backups, the audit trail and settings."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer
from rich.table import Table

from gitswitch.cli.common import call, console, emit, short_id

ssh_app = typer.Typer(help="SSH keys")
backup_app = typer.Typer(help="Configuration backups")
audit_app = typer.Typer(help="Audit trail")
settings_app = typer.Typer(help="Application settings")


# ============================================================================
# SSH
# ============================================================================


@ssh_app.command("keys")
def list_keys(
    output_json: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """List SSH key pairs."""

    def render(keys: List[Dict[str, Any]]) -> None:
        if not keys:
            console.print("[yellow]No SSH keys found.[/yellow]")
            return
        table = Table(title="SSH keys")
        table.add_column("Path", overflow="fold")
        table.add_column("Type")
        table.add_column("Comment")
        table.add_column("Fingerprint", style="dim")
        for key in keys:
            key_type = key.get("key_type") or "?"
            if key.get("bits"):
                key_type = f"{key_type} ({key['bits']})"
            table.add_row(key["private_path"], key_type, key.get("comment") or "-", key.get("fingerprint") or "-")
        console.print(table)

    emit(call("list_ssh_keys"), output_json=output_json, render=render)


@ssh_app.command("generate")
def generate_key(
    email: str = typer.Argument(..., help="Key comment, usually your email"),
    label: str = typer.Argument(..., help="Used in the key file name"),
    key_type: str = typer.Option("ed25519", "--type", "-t", help="ed25519, rsa or ecdsa"),
    output_json: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Generate a new key pair without a passphrase."""
    emit(
        call("generate_ssh_key", email=email, label=label, key_type=key_type),
        output_json=output_json,
        render=lambda key: console.print(f"[green]Generated[/green] {key['private_path']}"),
    )


@ssh_app.command("pubkey")
def public_key(
    path: str = typer.Argument(..., help="Private key path"),
    output_json: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Print a public key, ready to paste into a provider."""

    emit(
        call("get_public_key", path=path),
        output_json=output_json,
        render=lambda data: typer.echo(data["public_key"]),
    )


# ============================================================================
# Backups
# ============================================================================


@backup_app.command("list")
def list_backups(
    backup_type: Optional[str] = typer.Option(None, "--type", help="ssh_config, git_config_global, git_config_local"),
    output_json: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """List configuration backups, newest first."""

    def render(backups: List[Dict[str, Any]]) -> None:
        if not backups:
            console.print("[yellow]No backups.[/yellow]")
            return
        table = Table(title="Backups")
        table.add_column("ID")
        table.add_column("Taken")
        table.add_column("Type")
        table.add_column("File", overflow="fold")
        table.add_column("Reason")
        table.add_column("Restored", justify="center")
        for backup in sorted(backups, key=lambda item: item["timestamp"], reverse=True):
            table.add_row(
                backup["id"],
                backup["timestamp"],
                backup["type"],
                backup["original_path"],
                backup["reason"],
                "yes" if backup["restored"] else "",
            )
        console.print(table)

    emit(call("list_backups", type=backup_type), output_json=output_json, render=render)


@backup_app.command("restore")
def restore_backup(
    backup_id: str = typer.Argument(..., help="Backup id"),
    output_json: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Write a backup back over its original file."""
    emit(
        call("restore_backup", id=backup_id),
        output_json=output_json,
        render=lambda _: console.print("[green]Backup restored[/green]"),
    )


@backup_app.command("delete")
def delete_backup(
    backup_id: str = typer.Argument(..., help="Backup id"),
    output_json: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Delete a backup and its registry entry."""
    emit(
        call("delete_backup", id=backup_id),
        output_json=output_json,
        render=lambda _: console.print("[green]Backup deleted[/green]"),
    )


@backup_app.command("cleanup")
def cleanup_backups(
    output_json: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Delete unrestored backups older than the retention setting."""
    emit(
        call("cleanup_backups"),
        output_json=output_json,
        render=lambda data: console.print(f"Removed {data['removed']} backup(s)"),
    )


# ============================================================================
# Audit
# ============================================================================


@audit_app.command("logs")
def audit_logs(
    since: Optional[str] = typer.Option(None, "--since", help="Start date, YYYY-MM-DD"),
    until: Optional[str] = typer.Option(None, "--until", help="End date, YYYY-MM-DD"),
    category: Optional[str] = typer.Option(None, "--category", "-c", help="profile, repository, ssh, ..."),
    limit: int = typer.Option(50, "--limit", "-n", help="Maximum entries"),
    output_json: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Show recent audit entries, newest first."""

    def render(entries: List[Dict[str, Any]]) -> None:
        if not entries:
            console.print("[yellow]No audit entries.[/yellow]")
            return
        table = Table(title="Audit log")
        table.add_column("When")
        table.add_column("Category")
        table.add_column("Action", style="bold")
        table.add_column("Details", overflow="fold")
        table.add_column("Backup", style="dim")
        for entry in entries:
            table.add_row(
                entry["timestamp"],
                entry["category"],
                entry["action"],
                json.dumps(entry.get("details") or {}, sort_keys=True),
                short_id(entry.get("backup_id")) or "-",
            )
        console.print(table)

    emit(
        call("get_audit_logs", start_date=since, end_date=until, category=category, limit=limit),
        output_json=output_json,
        render=render,
    )


@audit_app.command("export")
def export_logs(
    path: Optional[Path] = typer.Argument(None, help="Destination JSON file"),
    output_json: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Export the audit trail as a JSON array."""
    emit(
        call("export_audit_logs", path=str(path) if path else None),
        output_json=output_json,
        render=lambda data: console.print(f"Exported {data['exported']} entries to {data['path']}"),
    )


# ============================================================================
# Settings
# ============================================================================


def _parse_value(raw: str) -> Any:
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return raw


@settings_app.command("show")
def show_settings(
    output_json: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Show application settings."""

    def render(settings: Dict[str, Any]) -> None:
        for key, value in settings.items():
            console.print(f"{key}: {value}")

    emit(call("get_settings"), output_json=output_json, render=render)


@settings_app.command("set")
def set_setting(
    key: str = typer.Argument(..., help="Setting name, e.g. backup_retention_days"),
    value: str = typer.Argument(..., help="New value; JSON literals such as true or [\"~/src\"] are parsed"),
    output_json: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Change one setting."""
    emit(
        call("update_settings", partial={key: _parse_value(value)}),
        output_json=output_json,
        render=lambda _: console.print(f"[green]{key} updated[/green]"),
    )
