"""Tests for record store encryption."""

import json

import pytest

from gitswitch.configuration import SecretStore
from gitswitch.privacy.encryption import (
    DecryptionError,
    EncryptedPayload,
    EncryptionManager,
    KeyNotFoundError,
)


@pytest.fixture
def key_store(mock_keyring):
    return SecretStore("GitSwitchTest.store", keyring_module=mock_keyring)


@pytest.fixture
def encryption_manager(key_store):
    manager = EncryptionManager(secret_store=key_store)
    manager.initialize()
    return manager


class TestEncryptedPayload:
    def test_dict_round_trip(self):
        payload = EncryptedPayload(ciphertext=b"encrypted", nonce=b"nonce-bytes!")
        restored = EncryptedPayload.from_dict(payload.to_dict())
        assert restored == payload
        assert payload.to_dict()["algorithm"] == "AES-256-GCM"

    def test_looks_encrypted(self):
        assert EncryptedPayload.looks_encrypted({"ciphertext": "x", "nonce": "y"})
        assert not EncryptedPayload.looks_encrypted({"profiles": []})


class TestEncryptionManager:
    def test_initialize_stores_key_in_keyring(self, encryption_manager, mock_keyring):
        assert "GitSwitchTest.store:store_encryption_key" in mock_keyring.storage
        assert encryption_manager.is_initialized()

    def test_initialize_reuses_existing_key(self, key_store, encryption_manager):
        token = encryption_manager.encrypt_json({"a": 1})
        second = EncryptionManager(secret_store=key_store)
        second.initialize()
        assert second.decrypt_json(token) == {"a": 1}

    def test_encrypted_json_hides_plaintext(self, encryption_manager):
        text = encryption_manager.encrypt_json({"email": "me@example.com"})
        assert "me@example.com" not in text
        assert encryption_manager.decrypt_json(text) == {"email": "me@example.com"}

    def test_tampered_ciphertext_is_rejected(self, encryption_manager):
        envelope = json.loads(encryption_manager.encrypt_json({"a": 1}))
        payload = EncryptedPayload.from_dict(envelope)
        tampered = EncryptedPayload(
            ciphertext=bytes([payload.ciphertext[0] ^ 0xFF]) + payload.ciphertext[1:],
            nonce=payload.nonce,
        )
        with pytest.raises(DecryptionError):
            encryption_manager.decrypt(tampered)

    def test_plain_json_passes_through(self, encryption_manager):
        assert encryption_manager.decrypt_json('{"profiles": []}') == {"profiles": []}

    def test_missing_key_raises(self, key_store):
        manager = EncryptionManager(secret_store=key_store)
        with pytest.raises(KeyNotFoundError):
            manager.encrypt(b"data")

    def test_disabled_manager_writes_plain_json(self, key_store, mock_keyring):
        manager = EncryptionManager(secret_store=key_store, enabled=False)
        manager.initialize()
        assert mock_keyring.storage == {}
        assert json.loads(manager.encrypt_json({"a": 1})) == {"a": 1}
