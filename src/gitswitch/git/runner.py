"""Subprocess wrapper for the ``git`` and ``ssh-keygen`` binaries.

Commands are always argument lists (never a shell string) and always carry a
timeout.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Sequence, Tuple

from gitswitch.errors import IOFailureError
from gitswitch.privacy.secure_logging import redact_text

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0

# Never let git or ssh block on an interactive prompt.
NON_INTERACTIVE_ENV = {
    "GIT_TERMINAL_PROMPT": "0",
    "GIT_SSH_COMMAND": "ssh -o BatchMode=yes",
}


class CommandFailedError(IOFailureError):
    """A command exited non-zero when success was required."""

    def __init__(self, args: Sequence[str], returncode: int, stderr: str) -> None:
        self.returncode = returncode
        self.stderr = redact_text(stderr).strip()
        super().__init__(
            f"{args[0]} exited with status {returncode}: {self.stderr}",
            details={"command": list(args[:2]), "returncode": returncode},
        )


@dataclass
class CommandRunner:
    """Runs one binary with a fixed timeout."""

    binary: str
    timeout: float = DEFAULT_TIMEOUT

    def run(
        self,
        *args: str,
        cwd: Optional[Path | str] = None,
        check: bool = False,
        env: Optional[Dict[str, str]] = None,
    ) -> subprocess.CompletedProcess:
        command = [self.binary, *args]
        full_env = None
        if env:
            full_env = dict(os.environ)
            full_env.update(env)
        try:
            result = subprocess.run(
                command,
                cwd=str(cwd) if cwd is not None else None,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                env=full_env,
            )
        except FileNotFoundError as exc:
            raise IOFailureError(
                f"{self.binary} is not installed or not on PATH",
                details={"binary": self.binary},
            ) from exc
        except subprocess.TimeoutExpired as exc:
            raise IOFailureError(
                f"{self.binary} timed out after {self.timeout:g}s",
                details={"binary": self.binary, "timeout": self.timeout},
            ) from exc

        if result.returncode != 0:
            logger.debug(
                "Command exited non-zero",
                extra={"command": command[:2], "returncode": result.returncode},
            )
            if check:
                raise CommandFailedError(command, result.returncode, result.stderr)
        return result

    def is_available(self) -> bool:
        return shutil.which(self.binary) is not None


def validate_git_installed(binary: str = "git") -> Tuple[bool, Optional[str]]:
    """Check if git is installed and accessible.

    Returns:
        Tuple of (is_installed, version_string)
    """
    try:
        result = subprocess.run(
            [binary, "--version"],
            capture_output=True,
            text=True,
            timeout=5,
        )
        if result.returncode == 0:
            return True, result.stdout.strip()
        return False, None
    except (subprocess.TimeoutExpired, FileNotFoundError, PermissionError):
        return False, None
