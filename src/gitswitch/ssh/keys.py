"""SSH key inspection and generation, plus ``~/.ssh/config`` maintenance.

Private key files are never opened by this process. Fingerprints and the
passphrase check are delegated to ``ssh-keygen``; key type and size come from
the public half via :mod:`cryptography`.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import List, Optional, Tuple

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives.asymmetric import dsa, ec, rsa
from cryptography.hazmat.primitives.serialization import load_ssh_public_key

from gitswitch.backup.engine import guarded_write
from gitswitch.backup.models import BackupInfo, BackupType
from gitswitch.configuration.paths import ensure_dir, expand_tilde, safe_read_text
from gitswitch.errors import IOFailureError, ValidationError
from gitswitch.git.runner import CommandRunner
from gitswitch.models import SSHConfigEntry, SSHKeyInfo
from gitswitch.models.profile import slugify_label
from gitswitch.orchestrator.interfaces import AuditSink, BackupProvider, SSHManager
from gitswitch.ssh.config_file import parse_ssh_config, remove_entry, upsert_entry

logger = logging.getLogger(__name__)

SUPPORTED_KEY_TYPES = ("ed25519", "rsa", "ecdsa")

# Public key algorithm name → (short type, nominal bits or None when it varies)
KEY_ALGORITHMS = {
    "ssh-ed25519": ("ed25519", 256),
    "ssh-rsa": ("rsa", None),
    "ssh-dss": ("dsa", None),
    "ecdsa-sha2-nistp256": ("ecdsa", 256),
    "ecdsa-sha2-nistp384": ("ecdsa", 384),
    "ecdsa-sha2-nistp521": ("ecdsa", 521),
    "sk-ssh-ed25519@openssh.com": ("ed25519-sk", 256),
    "sk-ecdsa-sha2-nistp256@openssh.com": ("ecdsa-sk", 256),
}


def parse_public_key_line(line: str) -> Tuple[str, str, Optional[str]]:
    """Split ``<algorithm> <base64> [comment]``; raises ValueError when malformed."""
    parts = line.strip().split(None, 2)
    if len(parts) < 2:
        raise ValueError("public key line needs an algorithm and a key blob")
    algorithm, blob = parts[0], parts[1]
    comment = parts[2].strip() if len(parts) > 2 else None
    return algorithm, blob, comment or None


def key_type_and_bits(algorithm: str, line: str) -> Tuple[str, Optional[int]]:
    short_type, bits = KEY_ALGORITHMS.get(algorithm, (algorithm, None))
    if bits is not None:
        return short_type, bits
    try:
        public_key = load_ssh_public_key(line.strip().encode("ascii"))
    except (ValueError, UnsupportedAlgorithm):
        return short_type, None
    if isinstance(public_key, (rsa.RSAPublicKey, dsa.DSAPublicKey, ec.EllipticCurvePublicKey)):
        return short_type, public_key.key_size
    return short_type, None


class SSHKeyManager(SSHManager):
    """Key pairs and client config under one SSH directory."""

    def __init__(
        self,
        ssh_dir: Path,
        *,
        backups: BackupProvider,
        audit: AuditSink,
        runner: Optional[CommandRunner] = None,
    ) -> None:
        self.ssh_dir = Path(ssh_dir)
        self.backups = backups
        self.audit = audit
        self.runner = runner or CommandRunner("ssh-keygen")

    @property
    def config_path(self) -> Path:
        return self.ssh_dir / "config"

    # ------------------------------------------------------------------
    # Keys
    # ------------------------------------------------------------------

    def list_keys(self) -> List[SSHKeyInfo]:
        if not self.ssh_dir.is_dir():
            return []
        keys: List[SSHKeyInfo] = []
        for public_path in sorted(self.ssh_dir.glob("*.pub")):
            private_path = public_path.with_suffix("")
            if not private_path.is_file():
                continue
            info = self._inspect(private_path, public_path)
            if info is not None:
                keys.append(info)
        return keys

    def generate_key(self, email: str, label: str, key_type: str = "ed25519") -> SSHKeyInfo:
        if key_type not in SUPPORTED_KEY_TYPES:
            raise ValidationError(
                f"Unsupported key type: {key_type}", details={"supported": list(SUPPORTED_KEY_TYPES)}
            )
        if not email:
            raise ValidationError("email is required to label the key")

        ensure_dir(self.ssh_dir, mode=0o700)
        private_path = self._free_key_path(key_type, label)
        args = ["-t", key_type, "-C", email, "-f", str(private_path), "-N", ""]
        if key_type == "rsa":
            args[2:2] = ["-b", "4096"]
        self.runner.run(*args, check=True)

        public_path = Path(f"{private_path}.pub")
        info = self._inspect(private_path, public_path)
        if info is None:
            raise IOFailureError(
                "ssh-keygen did not produce a readable public key",
                details={"key_path": str(private_path)},
            )
        self.audit.log_ssh_key_generated(private_path, key_type)
        logger.info("SSH key generated", extra={"key_path": str(private_path), "key_type": key_type})
        return info

    def get_public_key(self, private_key_path: str) -> Optional[str]:
        public_path = Path(f"{expand_tilde(private_key_path)}.pub")
        content = safe_read_text(public_path)
        return content.strip() if content else None

    # ------------------------------------------------------------------
    # Client config
    # ------------------------------------------------------------------

    def get_ssh_config(self) -> List[SSHConfigEntry]:
        return parse_ssh_config(safe_read_text(self.config_path) or "")

    def upsert_ssh_config_entry(self, entry: SSHConfigEntry) -> Optional[BackupInfo]:
        if not entry.host or any(ch.isspace() for ch in entry.host):
            raise ValidationError("SSH host alias must be a single non-empty word")
        ensure_dir(self.ssh_dir, mode=0o700)
        current = safe_read_text(self.config_path) or ""
        updated = upsert_entry(current, entry)

        with guarded_write(
            self.backups, self.config_path, BackupType.SSH_CONFIG, f"Adding host alias {entry.host}"
        ) as backup:
            self._write_config(updated)

        backup_id = backup.id if backup else None
        self.audit.log_ssh_config_updated(entry.host, "upsert", self.config_path, backup_id)
        return backup

    def remove_ssh_config_entry(self, alias: str) -> bool:
        current = safe_read_text(self.config_path)
        if current is None:
            return False
        updated, removed = remove_entry(current, alias)
        if not removed:
            return False

        with guarded_write(
            self.backups, self.config_path, BackupType.SSH_CONFIG, f"Removing host alias {alias}"
        ) as backup:
            self._write_config(updated)

        self.audit.log_ssh_config_updated(alias, "remove", self.config_path, backup.id if backup else None)
        return True

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _write_config(self, text: str) -> None:
        self.config_path.write_text(text, encoding="utf-8")
        os.chmod(self.config_path, 0o600)

    def _free_key_path(self, key_type: str, label: str) -> Path:
        slug = slugify_label(label) or "key"
        base = f"id_{key_type}_{slug}"
        candidate = self.ssh_dir / base
        suffix = 2
        while candidate.exists() or Path(f"{candidate}.pub").exists():
            candidate = self.ssh_dir / f"{base}_{suffix}"
            suffix += 1
        return candidate

    def _inspect(self, private_path: Path, public_path: Path) -> Optional[SSHKeyInfo]:
        line = safe_read_text(public_path) or ""
        try:
            algorithm, _, comment = parse_public_key_line(line)
        except ValueError:
            logger.warning("Skipping unparsable public key", extra={"path": str(public_path)})
            return None
        key_type, bits = key_type_and_bits(algorithm, line)
        return SSHKeyInfo(
            private_path=str(private_path),
            public_path=str(public_path),
            fingerprint=self._fingerprint(public_path),
            comment=comment,
            key_type=key_type,
            bits=bits,
            has_passphrase=self._has_passphrase(private_path),
        )

    def _fingerprint(self, public_path: Path) -> Optional[str]:
        if not self.runner.is_available():
            return None
        result = self.runner.run("-l", "-f", str(public_path))
        if result.returncode != 0:
            return None
        parts = result.stdout.split()
        return parts[1] if len(parts) > 1 else None

    def _has_passphrase(self, private_path: Path) -> Optional[bool]:
        # ssh-keygen reads the key; a failure with an empty passphrase means one is set.
        if not self.runner.is_available():
            return None
        result = self.runner.run("-y", "-P", "", "-f", str(private_path))
        return result.returncode != 0
