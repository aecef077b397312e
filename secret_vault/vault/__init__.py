"""Secret Vault — Per-user encrypted credential storage.

Security Note (Threat Model):
    Per-user keys are derived from the user identity and an application
    pepper. Anyone holding both the pepper and a user identity can decrypt
    that user's envelopes; the pepper must therefore never leave the
    application. Decrypted secrets exist in process memory only while a
    reveal or copy call runs, and on the clipboard until the scheduled clear.
"""

from .lifecycle import SecretVault
from .key_rotation import rotate_pepper
from .config import VaultConfig, load_peppers, generate_pepper
from .crypto import SecretEnvelope, decrypt_secret, derive_key, encrypt_secret
from .records import RecordDraft, RevealState, SecretView, VaultRecord
from .store import MemoryRecordStore, PgRecordStore, RecordStore
from .clipboard import ClipboardGuard, MemoryClipboard

__all__ = [
    "SecretVault",
    "rotate_pepper",
    "VaultConfig",
    "load_peppers",
    "generate_pepper",
    "SecretEnvelope",
    "decrypt_secret",
    "derive_key",
    "encrypt_secret",
    "RecordDraft",
    "RevealState",
    "SecretView",
    "VaultRecord",
    "MemoryRecordStore",
    "PgRecordStore",
    "RecordStore",
    "ClipboardGuard",
    "MemoryClipboard",
]
