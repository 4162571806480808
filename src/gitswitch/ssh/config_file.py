"""Parsing and surgical editing of OpenSSH client configuration text.

The file is split into blocks: an optional preamble, then one block per
``Host`` or ``Match`` line running until the next such line. Edits replace or
drop whole ``Host`` blocks and leave every other byte of the file untouched.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from gitswitch.models import SSHConfigEntry

_DIRECTIVE = re.compile(r"^\s*([A-Za-z][A-Za-z0-9]*)\s*(?:=\s*|\s+)(.*?)\s*$")

PREAMBLE = "preamble"
HOST = "host"
MATCH = "match"


@dataclass
class ConfigBlock:
    kind: str
    lines: List[str] = field(default_factory=list)
    pattern: Optional[str] = None

    def split_trailing_blank(self) -> Tuple[List[str], List[str]]:
        """Body lines and the run of blank lines after them."""
        end = len(self.lines)
        while end > 1 and not self.lines[end - 1].strip():
            end -= 1
        return self.lines[:end], self.lines[end:]


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] == '"':
        return value[1:-1]
    return value


def _parse_directive(line: str) -> Optional[Tuple[str, str]]:
    stripped = line.strip()
    if not stripped or stripped.startswith("#"):
        return None
    match = _DIRECTIVE.match(stripped)
    if not match:
        return None
    return match.group(1), _unquote(match.group(2))


def split_blocks(text: str) -> List[ConfigBlock]:
    blocks: List[ConfigBlock] = [ConfigBlock(kind=PREAMBLE)]
    for line in text.splitlines(keepends=True):
        directive = _parse_directive(line)
        if directive is not None and directive[0].lower() in (HOST, MATCH):
            keyword, value = directive
            blocks.append(ConfigBlock(kind=keyword.lower(), lines=[line], pattern=value))
        else:
            blocks[-1].lines.append(line)
    return blocks


def join_blocks(blocks: List[ConfigBlock]) -> str:
    return "".join(line for block in blocks for line in block.lines)


def _entry_from_block(block: ConfigBlock) -> SSHConfigEntry:
    entry = SSHConfigEntry(host=block.pattern or "")
    extra: Dict[str, str] = {}
    for line in block.lines[1:]:
        directive = _parse_directive(line)
        if directive is None:
            continue
        key, value = directive
        lowered = key.lower()
        if lowered == "hostname":
            entry.host_name = value
        elif lowered == "user":
            entry.user = value
        elif lowered == "identityfile":
            # ssh uses the first IdentityFile; later ones are fallbacks.
            if entry.identity_file is None:
                entry.identity_file = value
        elif lowered == "identitiesonly":
            entry.identities_only = value.lower() == "yes"
        elif lowered == "port" and value.isdigit():
            entry.port = int(value)
        else:
            extra[key] = value
    entry.extra = extra
    return entry


def parse_ssh_config(text: str) -> List[SSHConfigEntry]:
    """``Host`` stanzas as entries. ``Match`` blocks are skipped."""
    return [_entry_from_block(block) for block in split_blocks(text) if block.kind == HOST]


def render_entry(entry: SSHConfigEntry, indent: str = "  ") -> List[str]:
    lines = [f"Host {entry.host}\n"]
    if entry.host_name:
        lines.append(f"{indent}HostName {entry.host_name}\n")
    if entry.user:
        lines.append(f"{indent}User {entry.user}\n")
    if entry.port:
        lines.append(f"{indent}Port {entry.port}\n")
    if entry.identity_file:
        identity = entry.identity_file
        if " " in identity:
            identity = f'"{identity}"'
        lines.append(f"{indent}IdentityFile {identity}\n")
    if entry.identities_only is not None:
        lines.append(f"{indent}IdentitiesOnly {'yes' if entry.identities_only else 'no'}\n")
    for key, value in entry.extra.items():
        lines.append(f"{indent}{key} {value}\n")
    return lines


def upsert_entry(text: str, entry: SSHConfigEntry) -> str:
    """Replace the stanza whose ``Host`` equals ``entry.host`` or append one."""
    blocks = split_blocks(text)
    for block in blocks:
        if block.kind == HOST and block.pattern == entry.host:
            _, trailing = block.split_trailing_blank()
            block.lines = render_entry(entry) + trailing
            return join_blocks(blocks)

    prefix = text
    if prefix and not prefix.endswith("\n"):
        prefix += "\n"
    if prefix.strip():
        prefix += "\n"
    return prefix + "".join(render_entry(entry))


def remove_entry(text: str, alias: str) -> Tuple[str, bool]:
    """Drop exactly the ``Host alias`` stanza. Returns the new text and whether it existed."""
    blocks = split_blocks(text)
    kept = [block for block in blocks if not (block.kind == HOST and block.pattern == alias)]
    if len(kept) == len(blocks):
        return text, False
    return join_blocks(kept), True
