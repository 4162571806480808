"""Flat reader for Git configuration files.

Covers the subset identity switching needs: ``[section]`` and
``[section "subsection"]`` headers, ``key = value`` lines, ``#``/``;``
comments. Section and key names are case-insensitive in Git and come back
lower-cased; subsections are case-sensitive and are kept as written.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Dict, Optional

from gitswitch.configuration.paths import expand_tilde, safe_read_text

logger = logging.getLogger(__name__)

_SECTION = re.compile(r'^\[\s*([A-Za-z0-9.\-]+)(?:\s+"((?:[^"\\]|\\.)*)")?\s*\]$')
_KEY_VALUE = re.compile(r"^([A-Za-z][A-Za-z0-9\-]*)\s*(?:=\s*(.*))?$")


def _strip_inline_comment(value: str) -> str:
    """Drop a trailing ``#``/``;`` comment that is not inside double quotes."""
    in_quotes = False
    for index, char in enumerate(value):
        if char == '"':
            in_quotes = not in_quotes
        elif char in "#;" and not in_quotes:
            return value[:index].rstrip()
    return value


def _unquote(value: str) -> str:
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] == '"':
        value = value[1:-1]
    return value.replace('\\"', '"').replace("\\\\", "\\")


def parse_git_config_text(text: str) -> Dict[str, str]:
    config: Dict[str, str] = {}
    section: Optional[str] = None

    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith(("#", ";")):
            continue

        if line.startswith("["):
            match = _SECTION.match(_strip_inline_comment(line))
            if not match:
                logger.debug("Ignoring unrecognised section header", extra={"line": line})
                section = None
                continue
            name, subsection = match.groups()
            section = name.lower() if subsection is None else f"{name.lower()}.{subsection}"
            continue

        if section is None:
            continue
        match = _KEY_VALUE.match(line)
        if not match:
            continue
        key, value = match.groups()
        # A bare key is boolean true in git.
        config[f"{section}.{key.lower()}"] = "true" if value is None else _unquote(_strip_inline_comment(value))

    return config


def parse_git_config(path: Path | str) -> Dict[str, str]:
    """Return ``section[.subsection].key`` → value for the file at ``path``.

    A missing file yields an empty dict.
    """
    text = safe_read_text(expand_tilde(path))
    if text is None:
        return {}
    return parse_git_config_text(text)
