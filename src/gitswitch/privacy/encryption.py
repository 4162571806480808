"""At-rest encryption for the record store document.

AES-256-GCM authenticated encryption with the key held in the OS keychain
through :class:`~gitswitch.configuration.settings.SecretStore`. The key never
touches disk; if the keychain is unavailable, encryption fails instead of
falling back to plaintext.

Usage:
    >>> from gitswitch.privacy.encryption import EncryptionManager
    >>> manager = EncryptionManager(SecretStore(service_name="GitSwitch.store"))
    >>> manager.initialize()
    >>> token = manager.encrypt_json({"profiles": []})
    >>> manager.decrypt_json(token)
    {'profiles': []}
"""

from __future__ import annotations

import base64
import json
import logging
import secrets
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Union

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from gitswitch.configuration.settings import SecretStore
from gitswitch.errors import SecureStorageError

logger = logging.getLogger(__name__)

KEY_SIZE_BYTES = 32  # AES-256
NONCE_SIZE_BYTES = 12  # 96-bit GCM nonce
ALGORITHM = "AES-256-GCM"


class EncryptionError(SecureStorageError):
    """Base exception for encryption errors."""


class KeyNotFoundError(EncryptionError):
    """Raised when the encryption key is not in the keychain."""


class DecryptionError(EncryptionError):
    """Raised when decryption fails (wrong key, corrupted or tampered data)."""


@dataclass
class EncryptedPayload:
    """Ciphertext plus the nonce needed to open it."""

    ciphertext: bytes
    nonce: bytes
    algorithm: str = ALGORITHM

    def to_dict(self) -> Dict[str, str]:
        return {
            "ciphertext": base64.b64encode(self.ciphertext).decode("ascii"),
            "nonce": base64.b64encode(self.nonce).decode("ascii"),
            "algorithm": self.algorithm,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EncryptedPayload":
        return cls(
            ciphertext=base64.b64decode(data["ciphertext"]),
            nonce=base64.b64decode(data["nonce"]),
            algorithm=data.get("algorithm", ALGORITHM),
        )

    @staticmethod
    def looks_encrypted(data: Dict[str, Any]) -> bool:
        return "ciphertext" in data and "nonce" in data


@dataclass
class EncryptionManager:
    """Manages the store key and AES-GCM operations.

    Attributes:
        secret_store: Keychain wrapper holding the base64 key
        key_id: Account name of the key inside the keychain service
        enabled: When False, payloads pass through unencrypted
    """

    secret_store: SecretStore
    key_id: str = "store_encryption_key"
    enabled: bool = True
    _key_cache: Optional[bytes] = field(default=None, init=False, repr=False)

    def initialize(self) -> None:
        """Load the key from the keychain, generating one on first use."""
        if not self.enabled:
            logger.info("Store encryption disabled, skipping key initialization")
            return
        existing = self.secret_store.get_secret(self.key_id)
        if existing:
            self._key_cache = base64.b64decode(existing)
            return
        key = secrets.token_bytes(KEY_SIZE_BYTES)
        self.secret_store.set_secret(self.key_id, base64.b64encode(key).decode("ascii"))
        self._key_cache = key
        logger.info("Generated new store encryption key")

    def is_initialized(self) -> bool:
        if not self.enabled:
            return True
        return self._key_cache is not None or self.secret_store.get_secret(self.key_id) is not None

    def _get_key(self) -> bytes:
        if self._key_cache:
            return self._key_cache
        stored = self.secret_store.get_secret(self.key_id)
        if not stored:
            raise KeyNotFoundError(
                f"Encryption key not found in keychain service '{self.secret_store.service_name}'"
            )
        self._key_cache = base64.b64decode(stored)
        return self._key_cache

    def encrypt(self, plaintext: Union[bytes, str]) -> EncryptedPayload:
        data = plaintext.encode("utf-8") if isinstance(plaintext, str) else plaintext
        nonce = secrets.token_bytes(NONCE_SIZE_BYTES)
        ciphertext = AESGCM(self._get_key()).encrypt(nonce, data, None)
        return EncryptedPayload(ciphertext=ciphertext, nonce=nonce)

    def decrypt(self, payload: EncryptedPayload) -> bytes:
        if payload.algorithm != ALGORITHM:
            raise DecryptionError(f"Unsupported algorithm: {payload.algorithm}")
        try:
            return AESGCM(self._get_key()).decrypt(payload.nonce, payload.ciphertext, None)
        except InvalidTag as exc:
            raise DecryptionError("Decryption failed: data was tampered with or the key changed") from exc

    def encrypt_json(self, data: Dict[str, Any]) -> str:
        """Encrypt a JSON-serializable dict; returns the envelope as JSON text."""
        if not self.enabled:
            return json.dumps(data, indent=2)
        payload = self.encrypt(json.dumps(data, separators=(",", ":")))
        return json.dumps(payload.to_dict())

    def decrypt_json(self, text: str) -> Dict[str, Any]:
        """Inverse of :meth:`encrypt_json`. Plain JSON documents pass through."""
        data = json.loads(text)
        if not EncryptedPayload.looks_encrypted(data):
            return data
        plaintext = self.decrypt(EncryptedPayload.from_dict(data))
        return json.loads(plaintext.decode("utf-8"))


__all__ = [
    "EncryptionManager",
    "EncryptedPayload",
    "EncryptionError",
    "KeyNotFoundError",
    "DecryptionError",
]
