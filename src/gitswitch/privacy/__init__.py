"""Privacy primitives: audit trail, redaction, at-rest encryption, log filtering."""

from .audit import AuditLog, AuditLogEntry, generate_checksum, verify_checksum
from .encryption import EncryptionManager
from .redaction import RedactionPolicy, sanitize_details
from .secure_logging import CredentialRedactionFilter, configure_logging

__all__ = [
    "AuditLog",
    "AuditLogEntry",
    "CredentialRedactionFilter",
    "EncryptionManager",
    "RedactionPolicy",
    "configure_logging",
    "generate_checksum",
    "sanitize_details",
    "verify_checksum",
]
