"""
Vault Crypto Core — Key derivation, authenticated encryption and envelopes.

- Key derivation: HKDF-SHA256(ikm=user identity, salt=pepper, info=context)
- Encryption: AES-256-GCM or ChaCha20-Poly1305 with a random 96-bit nonce
- Envelope: ``sv1$<algorithm>$<key_id>$<nonce>$<ciphertext+tag>``

The envelope header (version, algorithm, key id) is authenticated as
associated data, so changing any part of the envelope fails decryption.

Security Note:
    Never log plaintext, ciphertext, keys or peppers.
    Nonces are random 96-bit; collision probability negligible under normal usage.
"""
import os
import re
import base64
import binascii
import logging
from dataclasses import dataclass

import orjson
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.kdf.hkdf import HKDF
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM, ChaCha20Poly1305

from ..exceptions import AuthenticationFailed, MalformedEnvelope

logger = logging.getLogger("secret_vault.vault")

NONCE_SIZE = 12  # 96-bit nonce
TAG_SIZE = 16
KEY_LENGTH = 32  # AES-256 / ChaCha20
MIN_PEPPER_LENGTH = 32

ENVELOPE_VERSION = "sv1"
SUPPORTED_VERSIONS = frozenset({ENVELOPE_VERSION})
DEFAULT_KDF_CONTEXT = "secret-vault/record-key/v1"

CIPHERS: dict[str, type] = {
    "aesgcm": AESGCM,
    "chacha20": ChaCha20Poly1305,
}

_SEPARATOR = "$"
MAX_KEY_ID_DIGITS = 6
_B64_PATTERN = re.compile(r"[A-Za-z0-9_-]+")


# ---------------------------------------------------------------------------
# Key derivation
# ---------------------------------------------------------------------------

def derive_key(
    identity: str,
    pepper: bytes,
    context: str = DEFAULT_KDF_CONTEXT
) -> bytes:
    """Derive a 32-byte per-user encryption key using HKDF-SHA256.

    The same (identity, pepper, context) always yields the same key, so no
    key storage is needed to decrypt previously saved envelopes.

    Args:
        identity: Stable user identifier.
        pepper: Application-held secret, never sent to clients.
        context: Public context string for domain separation.

    Returns:
        32-byte derived key.
    """
    if not identity:
        raise ValueError("identity cannot be empty")
    if len(pepper) < MIN_PEPPER_LENGTH:
        raise ValueError(
            f"pepper must be at least {MIN_PEPPER_LENGTH} bytes, "
            f"got {len(pepper)}"
        )
    hkdf = HKDF(
        algorithm=hashes.SHA256(),
        length=KEY_LENGTH,
        salt=pepper,
        info=context.encode("utf-8"),
    )
    return hkdf.derive(identity.encode("utf-8"))


# ---------------------------------------------------------------------------
# Envelope serialization
# ---------------------------------------------------------------------------

def _b64encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def _b64decode(text: str, field: str) -> bytes:
    """Strict unpadded URL-safe base64 decoding.

    Only canonical encodings are accepted, so two different strings never
    decode to the same bytes.
    """
    if not _B64_PATTERN.fullmatch(text):
        raise MalformedEnvelope(f"envelope {field} is not valid base64")
    try:
        data = base64.urlsafe_b64decode(text + "=" * (-len(text) % 4))
    except (binascii.Error, ValueError) as err:
        raise MalformedEnvelope(f"envelope {field} is not valid base64") from err
    if _b64encode(data) != text:
        raise MalformedEnvelope(f"envelope {field} is not canonical base64")
    return data


@dataclass(frozen=True)
class SecretEnvelope:
    """Self-describing ciphertext package."""

    algorithm: str
    key_id: int
    nonce: bytes
    ciphertext: bytes
    version: str = ENVELOPE_VERSION

    def associated_data(self) -> bytes:
        """Header bytes authenticated alongside the ciphertext."""
        return orjson.dumps(
            {"alg": self.algorithm, "kid": self.key_id, "v": self.version},
            option=orjson.OPT_SORT_KEYS,
        )

    def serialize(self) -> str:
        return _SEPARATOR.join((
            self.version,
            self.algorithm,
            str(self.key_id),
            _b64encode(self.nonce),
            _b64encode(self.ciphertext),
        ))

    @classmethod
    def parse(cls, text: str) -> "SecretEnvelope":
        """Parse a serialized envelope.

        Raises:
            MalformedEnvelope: If any part of the envelope is invalid.
        """
        if not isinstance(text, str):
            raise MalformedEnvelope("envelope must be a string")
        parts = text.split(_SEPARATOR)
        if len(parts) != 5:
            raise MalformedEnvelope(
                f"envelope must have 5 fields, got {len(parts)}"
            )
        version, algorithm, key_id, nonce_b64, ct_b64 = parts
        if version not in SUPPORTED_VERSIONS:
            raise MalformedEnvelope(f"unsupported envelope version {version!r}")
        if algorithm not in CIPHERS:
            raise MalformedEnvelope(f"unsupported algorithm {algorithm!r}")
        if (
            not 0 < len(key_id) <= MAX_KEY_ID_DIGITS
            or not (key_id.isascii() and key_id.isdigit())
            or str(int(key_id)) != key_id
        ):
            raise MalformedEnvelope("envelope key id must be an integer")
        nonce = _b64decode(nonce_b64, "nonce")
        if len(nonce) != NONCE_SIZE:
            raise MalformedEnvelope(
                f"nonce must be {NONCE_SIZE} bytes, got {len(nonce)}"
            )
        ciphertext = _b64decode(ct_b64, "ciphertext")
        if len(ciphertext) < TAG_SIZE:
            raise MalformedEnvelope(
                f"ciphertext too short: {len(ciphertext)} bytes "
                f"(minimum {TAG_SIZE})"
            )
        return cls(
            algorithm=algorithm,
            key_id=int(key_id),
            nonce=nonce,
            ciphertext=ciphertext,
            version=version,
        )


def envelope_key_id(envelope: str) -> int:
    """Return the pepper version an envelope was sealed with."""
    return SecretEnvelope.parse(envelope).key_id


# ---------------------------------------------------------------------------
# Encryption
# ---------------------------------------------------------------------------

def _check_key(key: bytes) -> None:
    if len(key) != KEY_LENGTH:
        raise ValueError(f"key must be {KEY_LENGTH} bytes, got {len(key)}")


def encrypt_secret(
    plaintext: str,
    key: bytes,
    *,
    key_id: int = 1,
    algorithm: str = "aesgcm"
) -> str:
    """Encrypt a secret into a serialized envelope.

    A fresh random nonce is drawn on every call, so encrypting the same
    plaintext twice never yields the same envelope.

    Args:
        plaintext: Secret to encrypt.
        key: 32-byte key from ``derive_key``.
        key_id: Pepper version used to derive ``key``.
        algorithm: ``aesgcm`` or ``chacha20``.

    Returns:
        Serialized envelope string.
    """
    _check_key(key)
    if algorithm not in CIPHERS:
        raise ValueError(f"Unsupported cipher backend: {algorithm}")
    if not 0 <= key_id < 10 ** MAX_KEY_ID_DIGITS:
        raise ValueError(f"key_id out of range: {key_id}")
    nonce = os.urandom(NONCE_SIZE)
    header = SecretEnvelope(
        algorithm=algorithm, key_id=key_id, nonce=nonce, ciphertext=b""
    )
    cipher = CIPHERS[algorithm](key)
    ct = cipher.encrypt(nonce, plaintext.encode("utf-8"), header.associated_data())
    return SecretEnvelope(
        algorithm=algorithm, key_id=key_id, nonce=nonce, ciphertext=ct
    ).serialize()


def decrypt_secret(envelope: str, key: bytes) -> str:
    """Decrypt a serialized envelope.

    Args:
        envelope: Serialized envelope from ``encrypt_secret``.
        key: 32-byte key from ``derive_key``.

    Returns:
        Decrypted plaintext.

    Raises:
        MalformedEnvelope: If the envelope cannot be parsed.
        AuthenticationFailed: If the tag does not verify (wrong key or tampering).
    """
    _check_key(key)
    parsed = SecretEnvelope.parse(envelope)
    cipher = CIPHERS[parsed.algorithm](key)
    try:
        data = cipher.decrypt(
            parsed.nonce, parsed.ciphertext, parsed.associated_data()
        )
    except InvalidTag as err:
        logger.warning(
            "Envelope authentication failed: alg=%s kid=%d",
            parsed.algorithm, parsed.key_id,
        )
        raise AuthenticationFailed() from err
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as err:
        raise MalformedEnvelope("decrypted payload is not valid UTF-8") from err
