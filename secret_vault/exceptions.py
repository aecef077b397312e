"""
Secret Vault exceptions.

Every error carries a ``user_message`` that is safe to show to the owner of
the vault. Decryption failures share one message on purpose so callers cannot
tell a tampered envelope from a wrong key.
"""
from typing import Optional


class VaultError(Exception):
    """Base exception for the secret engine."""

    user_message: str = "Vault operation failed"
    recoverable: bool = False

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        recoverable: Optional[bool] = None
    ):
        super().__init__(message or self.user_message)
        if recoverable is not None:
            self.recoverable = recoverable


class InvalidPolicy(VaultError):
    """A generation request violates the policy constraints."""

    user_message = "Invalid password generation settings"


class InvalidLength(InvalidPolicy):
    """Requested length is outside the accepted range."""

    user_message = "Password length is out of the accepted range"


class EmptyAlphabet(InvalidPolicy):
    """No character is left to draw from."""

    user_message = "Select at least one character type"


class DecryptionError(VaultError):
    """Generic decryption failure."""

    user_message = "Unable to decrypt secret"


class AuthenticationFailed(DecryptionError):
    """Authentication tag mismatch: tampered envelope or wrong key."""


class MalformedEnvelope(DecryptionError):
    """The serialized envelope cannot be parsed."""


class StoreUnavailable(VaultError):
    """The external record store could not be reached."""

    user_message = "Vault storage is temporarily unavailable"
    recoverable = True


class RecordNotFound(VaultError):
    """No record with the given id exists for this owner."""

    user_message = "Vault item not found"
