"""SSH key and client configuration management."""

from .config_file import parse_ssh_config, remove_entry, render_entry, upsert_entry
from .keys import SSHKeyManager, parse_public_key_line

__all__ = [
    "SSHKeyManager",
    "parse_public_key_line",
    "parse_ssh_config",
    "remove_entry",
    "render_entry",
    "upsert_entry",
]
