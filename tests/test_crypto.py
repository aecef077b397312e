"""
Tests for key derivation, the secret cipher and the envelope format.
"""
import pytest

from secret_vault.exceptions import (
    AuthenticationFailed,
    DecryptionError,
    MalformedEnvelope,
)
from secret_vault.generator import GenerationPolicy, generate
from secret_vault.vault.crypto import (
    ENVELOPE_VERSION,
    KEY_LENGTH,
    NONCE_SIZE,
    SecretEnvelope,
    decrypt_secret,
    derive_key,
    encrypt_secret,
    envelope_key_id,
)

PEPPER = b"p" * 32
OTHER_PEPPER = b"q" * 32


@pytest.fixture
def key():
    return derive_key("user-123", PEPPER)


# --- Key derivation ---

class TestDeriveKey:

    def test_deterministic(self):
        assert derive_key("user-123", PEPPER) == derive_key("user-123", PEPPER)

    def test_distinct_identities(self):
        assert derive_key("user-123", PEPPER) != derive_key("user-456", PEPPER)

    def test_pepper_changes_key(self):
        assert derive_key("user-123", PEPPER) != derive_key("user-123", OTHER_PEPPER)

    def test_context_changes_key(self):
        assert derive_key("user-123", PEPPER, "a") != derive_key("user-123", PEPPER, "b")

    def test_key_length(self, key):
        assert len(key) == KEY_LENGTH

    def test_key_is_not_identity(self, key):
        assert key != "user-123".encode().ljust(KEY_LENGTH, b"\0")
        assert b"user-123" not in key

    def test_empty_identity_rejected(self):
        with pytest.raises(ValueError):
            derive_key("", PEPPER)

    def test_short_pepper_rejected(self):
        with pytest.raises(ValueError):
            derive_key("user-123", b"short")


# --- Round trip ---

class TestRoundTrip:

    @pytest.mark.parametrize("algorithm", ["aesgcm", "chacha20"])
    def test_generated_secret_round_trip(self, key, algorithm):
        for policy in (
            GenerationPolicy(),
            GenerationPolicy(length=8, include_symbols=False),
            GenerationPolicy(length=64, exclude_ambiguous=True),
        ):
            secret = generate(policy)
            envelope = encrypt_secret(secret, key, algorithm=algorithm)
            assert decrypt_secret(envelope, key) == secret

    def test_unicode_secret(self, key):
        secret = "pässwörd-密码-🔑"
        assert decrypt_secret(encrypt_secret(secret, key), key) == secret

    def test_fresh_nonce_per_call(self, key):
        first = encrypt_secret("hunter2", key)
        second = encrypt_secret("hunter2", key)
        assert first != second
        assert SecretEnvelope.parse(first).nonce != SecretEnvelope.parse(second).nonce
        assert decrypt_secret(first, key) == decrypt_secret(second, key) == "hunter2"

    def test_plaintext_not_in_envelope(self, key):
        assert "hunter2" not in encrypt_secret("hunter2", key)

    def test_wrong_key_size(self):
        with pytest.raises(ValueError):
            encrypt_secret("x", b"short")

    def test_unknown_algorithm(self, key):
        with pytest.raises(ValueError):
            encrypt_secret("x", key, algorithm="rot13")


# --- Envelope format ---

class TestEnvelopeFormat:

    def test_fields(self, key):
        envelope = encrypt_secret("hunter2", key, key_id=7, algorithm="chacha20")
        version, algorithm, key_id, _, _ = envelope.split("$")
        assert version == ENVELOPE_VERSION
        assert algorithm == "chacha20"
        assert key_id == "7"
        assert envelope_key_id(envelope) == 7

    def test_parse_serialize_identity(self, key):
        envelope = encrypt_secret("hunter2", key)
        parsed = SecretEnvelope.parse(envelope)
        assert len(parsed.nonce) == NONCE_SIZE
        assert parsed.serialize() == envelope

    @pytest.mark.parametrize("text", [
        "",
        "garbage",
        "sv1$aesgcm$1$AAAA",
        "sv9$aesgcm$1$AAAAAAAAAAAAAAAA$AAAAAAAAAAAAAAAAAAAAAA",
        "sv1$des$1$AAAAAAAAAAAAAAAA$AAAAAAAAAAAAAAAAAAAAAA",
        "sv1$aesgcm$x$AAAAAAAAAAAAAAAA$AAAAAAAAAAAAAAAAAAAAAA",
        "sv1$aesgcm$01$AAAAAAAAAAAAAAAA$AAAAAAAAAAAAAAAAAAAAAA",
        "sv1$aesgcm$1000000$AAAAAAAAAAAAAAAA$AAAAAAAAAAAAAAAAAAAAAA",
        "sv1$aesgcm$" + "1" * 5000 + "$AAAAAAAAAAAAAAAA$AAAAAAAAAAAAAAAAAAAAAA",
        "sv1$aesgcm$1$AAAA$AAAAAAAAAAAAAAAAAAAAAA",
        "sv1$aesgcm$1$AAAAAAAAAAAAAAAA$AAAA",
        "sv1$aesgcm$1$AAAAAAAAAAAAAAA!$AAAAAAAAAAAAAAAAAAAAAA",
    ])
    def test_malformed(self, key, text):
        with pytest.raises(MalformedEnvelope):
            decrypt_secret(text, key)

    def test_oversized_key_id_in_key_id_lookup(self):
        text = "sv1$aesgcm$" + "9" * 5000 + "$AAAAAAAAAAAAAAAA$AAAAAAAAAAAAAAAAAAAAAA"
        with pytest.raises(MalformedEnvelope):
            envelope_key_id(text)

    def test_largest_key_id_round_trip(self, key):
        envelope = encrypt_secret("hunter2", key, key_id=999999)
        assert envelope_key_id(envelope) == 999999
        assert decrypt_secret(envelope, key) == "hunter2"

    @pytest.mark.parametrize("key_id", [-1, 10 ** 6])
    def test_encrypt_rejects_out_of_range_key_id(self, key, key_id):
        with pytest.raises(ValueError):
            encrypt_secret("hunter2", key, key_id=key_id)

    def test_non_string_envelope(self, key):
        with pytest.raises(MalformedEnvelope):
            decrypt_secret(b"sv1$aesgcm", key)

    def test_non_canonical_base64_rejected(self, key):
        envelope = encrypt_secret("hunter2", key)
        head, ct = envelope.rsplit("$", 1)
        # a 16-byte tag + 7-byte payload leaves unused trailing bits
        assert len(ct) % 4 != 0
        last = ct[-1]
        alphabet = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_"
        sibling = alphabet[alphabet.index(last) ^ 1]
        with pytest.raises(DecryptionError):
            decrypt_secret(f"{head}${ct[:-1]}{sibling}", key)


# --- Tamper detection ---

class TestTamperDetection:

    def test_wrong_key(self, key):
        envelope = encrypt_secret("hunter2", key)
        with pytest.raises(AuthenticationFailed):
            decrypt_secret(envelope, derive_key("user-456", PEPPER))

    def test_wrong_pepper(self, key):
        envelope = encrypt_secret("hunter2", key)
        with pytest.raises(AuthenticationFailed):
            decrypt_secret(envelope, derive_key("user-123", OTHER_PEPPER))

    def test_every_single_character_flip_fails(self, key):
        envelope = encrypt_secret("correct horse battery staple", key)
        for pos in range(len(envelope)):
            flipped = chr(ord(envelope[pos]) ^ 1)
            tampered = envelope[:pos] + flipped + envelope[pos + 1:]
            with pytest.raises(DecryptionError):
                decrypt_secret(tampered, key)

    def test_header_is_authenticated(self, key):
        envelope = encrypt_secret("hunter2", key, key_id=1)
        tampered = envelope.replace("$1$", "$2$", 1)
        with pytest.raises(AuthenticationFailed):
            decrypt_secret(tampered, key)

    def test_algorithm_swap_fails(self, key):
        envelope = encrypt_secret("hunter2", key, algorithm="aesgcm")
        tampered = envelope.replace("$aesgcm$", "$chacha20$", 1)
        with pytest.raises(AuthenticationFailed):
            decrypt_secret(tampered, key)

    def test_errors_share_user_message(self):
        assert (
            AuthenticationFailed().user_message
            == MalformedEnvelope().user_message
            == "Unable to decrypt secret"
        )
