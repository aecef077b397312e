"""Secret Vault.

Generates strong secrets and keeps them encrypted per user until an
explicit reveal or copy.
"""
from .version import (
    __title__, __description__, __version__, __author__, __license__
)
from .exceptions import (
    VaultError,
    InvalidPolicy,
    InvalidLength,
    EmptyAlphabet,
    DecryptionError,
    AuthenticationFailed,
    MalformedEnvelope,
    StoreUnavailable,
    RecordNotFound,
)
from .generator import GenerationPolicy, generate

__all__ = [
    "VaultError",
    "InvalidPolicy",
    "InvalidLength",
    "EmptyAlphabet",
    "DecryptionError",
    "AuthenticationFailed",
    "MalformedEnvelope",
    "StoreUnavailable",
    "RecordNotFound",
    "GenerationPolicy",
    "generate",
]
