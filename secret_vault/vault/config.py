"""
Vault Configuration — Pepper loading and validated settings.

Reads peppers from environment variables in the format:
    VAULT_PEPPER_v{N} = <base64-encoded 32-byte secret>
    VAULT_ACTIVE_PEPPER_ID = <integer>

A pepper is held by the application only. It is mixed into every per-user
key derivation so a leaked user identity alone cannot decrypt anything.

Security Note:
    Never log pepper material. Only log pepper IDs and version numbers.
"""
import os
import re
import base64
import binascii
import secrets
import logging

from pydantic import BaseModel, Field, field_validator, model_validator

from .crypto import CIPHERS, DEFAULT_KDF_CONTEXT, KEY_LENGTH, MAX_KEY_ID_DIGITS

logger = logging.getLogger("secret_vault.vault")

_PEPPER_ENV_PATTERN = re.compile(
    rf"VAULT_PEPPER_v(\d{{1,{MAX_KEY_ID_DIGITS}}})"
)


def _decode_pepper(name: str, value: str) -> bytes:
    try:
        pepper = base64.b64decode(value, validate=True)
    except binascii.Error as err:
        raise ValueError(f"{name} is not valid base64") from err
    if len(pepper) != KEY_LENGTH:
        raise ValueError(
            f"{name} holds {len(pepper)} bytes, expected {KEY_LENGTH}"
        )
    return pepper


def load_peppers() -> dict[int, bytes]:
    """Collect every ``VAULT_PEPPER_v{N}`` variable, keyed by ``N``.

    Raises:
        RuntimeError: No pepper variable is set.
        ValueError: A value is not base64 or not 32 bytes long.
    """
    found = {
        int(match.group(1)): _decode_pepper(name, value)
        for name, value in os.environ.items()
        if (match := _PEPPER_ENV_PATTERN.fullmatch(name))
    }
    if not found:
        raise RuntimeError(
            "Vault needs at least one pepper: set VAULT_PEPPER_v1 to the "
            "output of generate_pepper()"
        )
    logger.debug("Pepper versions available: %s", sorted(found))
    return found


def get_active_pepper_id() -> int:
    """Pepper version that seals new envelopes.

    Raises:
        RuntimeError: VAULT_ACTIVE_PEPPER_ID is unset.
        ValueError: VAULT_ACTIVE_PEPPER_ID is not an integer.
    """
    try:
        return int(os.environ["VAULT_ACTIVE_PEPPER_ID"])
    except KeyError:
        raise RuntimeError("VAULT_ACTIVE_PEPPER_ID is not set") from None


def generate_pepper() -> str:
    """Fresh base64 pepper, ready to paste into ``VAULT_PEPPER_v{N}``."""
    return base64.b64encode(secrets.token_bytes(KEY_LENGTH)).decode("ascii")


class VaultConfig(BaseModel):
    """Validated vault configuration."""

    peppers: dict[int, bytes]
    active_pepper_id: int
    cipher_backend: str = Field(default="aesgcm")
    kdf_context: str = Field(default=DEFAULT_KDF_CONTEXT, min_length=1)
    clipboard_timeout: float = Field(default=20.0, ge=1, le=300)

    model_config = {"arbitrary_types_allowed": True}

    @field_validator("cipher_backend")
    @classmethod
    def validate_cipher(cls, v: str) -> str:
        """Validate cipher backend is supported."""
        v = v.lower()
        if v not in CIPHERS:
            raise ValueError(f"Unsupported cipher backend: {v}")
        return v

    @field_validator("peppers")
    @classmethod
    def validate_peppers(cls, v: dict[int, bytes]) -> dict[int, bytes]:
        """Every pepper must be exactly KEY_LENGTH bytes."""
        if not v:
            raise ValueError("At least one pepper version is required")
        for version, pepper in v.items():
            if not 0 <= version < 10 ** MAX_KEY_ID_DIGITS:
                raise ValueError(f"pepper version {version} out of range")
            if len(pepper) != KEY_LENGTH:
                raise ValueError(
                    f"pepper v{version} must be {KEY_LENGTH} bytes, "
                    f"got {len(pepper)}"
                )
        return v

    @model_validator(mode="after")
    def validate_active_pepper_exists(self) -> "VaultConfig":
        """Ensure active_pepper_id is present in peppers."""
        if self.active_pepper_id not in self.peppers:
            raise ValueError(
                f"active_pepper_id {self.active_pepper_id} not found in "
                f"peppers (available: {sorted(self.peppers.keys())})"
            )
        return self

    @property
    def active_pepper(self) -> bytes:
        return self.peppers[self.active_pepper_id]

    @classmethod
    def from_env(cls) -> "VaultConfig":
        """Create VaultConfig by loading values from environment.

        Returns:
            Populated VaultConfig instance.
        """
        return cls(
            peppers=load_peppers(),
            active_pepper_id=get_active_pepper_id(),
            cipher_backend=os.environ.get("VAULT_CIPHER_BACKEND", "aesgcm"),
            kdf_context=os.environ.get("VAULT_KDF_CONTEXT", DEFAULT_KDF_CONTEXT),
            clipboard_timeout=float(
                os.environ.get("VAULT_CLIPBOARD_TIMEOUT", "20")
            ),
        )
