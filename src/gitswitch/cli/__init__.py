"""Command line entry points for GitSwitch."""

import logging

import typer
from typer import Typer

from gitswitch import __version__
from gitswitch.privacy.secure_logging import configure_logging

from .discovery import discovery_app
from .maintenance import audit_app, backup_app, settings_app, ssh_app
from .profiles import profiles_app
from .repos import repos_app


cli = Typer(help="GitSwitch: switch Git identities per repository", no_args_is_help=True)
cli.add_typer(profiles_app, name="profiles")
cli.add_typer(repos_app, name="repos")
cli.add_typer(discovery_app, name="discovery")
cli.add_typer(ssh_app, name="ssh")
cli.add_typer(backup_app, name="backup")
cli.add_typer(audit_app, name="audit")
cli.add_typer(settings_app, name="settings")


def _show_version(value: bool) -> None:
    if value:
        typer.echo(f"gitswitch {__version__}")
        raise typer.Exit()


@cli.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log progress to stderr"),
    version: bool = typer.Option(
        False, "--version", callback=_show_version, is_eager=True, help="Show the version and exit"
    ),
) -> None:
    """Manage Git identities, SSH keys and per-repository bindings."""
    configure_logging(logging.INFO if verbose else logging.WARNING, verbose=verbose)


__all__ = [
    "audit_app",
    "backup_app",
    "cli",
    "discovery_app",
    "profiles_app",
    "repos_app",
    "settings_app",
    "ssh_app",
]
