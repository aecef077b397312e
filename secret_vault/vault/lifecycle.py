"""
SecretVault — Encrypted credential storage bound to one user identity.

Provides the public API for the vault:
- ``save(draft)`` / ``save_generated(policy, ...)`` — encrypt and persist
- ``list_records(query)`` — list envelopes newest first, never decrypting
- ``reveal(record_id)`` — decrypt one record on demand
- ``display(record, reveal_state)`` — masked or revealed view, never raising
- ``copy_secret(record_id)`` — decrypt to the clipboard with auto-clear
- ``update_secret(record_id, plaintext)`` — re-encrypt with a fresh nonce
- ``delete(record_id)`` — remove the record and its envelope

Security Note:
    Never log plaintext or ciphertext values. Only log record ids,
    owner ids, key versions and operations. The vault holds no plaintext
    between calls; every reveal decrypts again.
"""
import logging
from typing import Optional

from ..exceptions import DecryptionError, MalformedEnvelope, RecordNotFound
from ..generator import GenerationPolicy, generate
from .clipboard import ClipboardGuard, ClipboardSink, MemoryClipboard
from .config import VaultConfig
from .crypto import decrypt_secret, derive_key, encrypt_secret, envelope_key_id
from .records import (
    MASK,
    RecordDraft,
    RevealState,
    SecretView,
    VaultRecord,
    filter_records,
)
from .store import RecordStore

logger = logging.getLogger("secret_vault.vault")


class SecretVault:
    """Vault of one owner's records.

    Keys are derived per call from the owner identity and the configured
    pepper; nothing secret is kept on the instance beyond the config.
    """

    def __init__(
        self,
        owner_id: str,
        store: RecordStore,
        config: Optional[VaultConfig] = None,
        clipboard: Optional[ClipboardSink] = None,
    ):
        if not owner_id:
            raise ValueError("owner_id cannot be empty")
        self._owner_id = owner_id
        self._store = store
        self._config = config or VaultConfig.from_env()
        if clipboard is None:
            logger.warning(
                "No clipboard sink given for owner=%s; copies go to an "
                "in-process MemoryClipboard", owner_id,
            )
            clipboard = MemoryClipboard()
        self._clipboard = ClipboardGuard(
            clipboard,
            clear_after=self._config.clipboard_timeout,
        )

    @property
    def owner_id(self) -> str:
        return self._owner_id

    @property
    def clipboard(self) -> ClipboardGuard:
        return self._clipboard

    # ------------------------------------------------------------------
    # Crypto helpers
    # ------------------------------------------------------------------

    def _key_for(self, key_id: int) -> bytes:
        pepper = self._config.peppers.get(key_id)
        if pepper is None:
            raise MalformedEnvelope(f"unknown pepper version {key_id}")
        return derive_key(self._owner_id, pepper, self._config.kdf_context)

    def seal(self, plaintext: str) -> str:
        """Encrypt ``plaintext`` under the active pepper version."""
        key_id = self._config.active_pepper_id
        return encrypt_secret(
            plaintext,
            self._key_for(key_id),
            key_id=key_id,
            algorithm=self._config.cipher_backend,
        )

    def unseal(self, envelope: str) -> str:
        """Decrypt an envelope with the pepper version it names.

        Raises:
            DecryptionError: On any malformed or unauthenticated envelope.
        """
        key_id = envelope_key_id(envelope)
        return decrypt_secret(envelope, self._key_for(key_id))

    async def _require(self, record_id: str) -> VaultRecord:
        record = await self._store.get(self._owner_id, record_id)
        if record is None:
            raise RecordNotFound(f"record {record_id} not found")
        return record

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def save(self, draft: RecordDraft) -> VaultRecord:
        """Encrypt the draft's secret and persist the record.

        Args:
            draft: Validated item with its plaintext secret.

        Returns:
            The stored record, holding only the envelope.
        """
        envelope = self.seal(draft.secret.get_secret_value())
        record = VaultRecord.from_draft(draft, self._owner_id, envelope)
        stored = await self._store.insert(record)
        logger.info("Vault save: owner=%s record=%s", self._owner_id, stored.id)
        return stored

    async def save_generated(
        self,
        policy: GenerationPolicy,
        *,
        title: str,
        username: Optional[str] = None,
        url: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> VaultRecord:
        """Generate a secret under ``policy`` and save it as a new record."""
        draft = RecordDraft(
            title=title,
            username=username,
            secret=generate(policy),
            url=url,
            notes=notes,
        )
        return await self.save(draft)

    async def list_records(self, query: Optional[str] = None) -> list[VaultRecord]:
        """Return the owner's records newest first, optionally filtered.

        Secrets stay encrypted; use ``reveal`` or ``display`` per record.
        """
        records = await self._store.list(self._owner_id)
        return filter_records(records, query)

    async def reveal(self, record_id: str) -> str:
        """Decrypt and return one record's secret.

        Raises:
            RecordNotFound: If the record does not exist for this owner.
            DecryptionError: If the envelope cannot be decrypted.
        """
        record = await self._require(record_id)
        return self.unseal(record.secret_envelope)

    def display(
        self,
        record: VaultRecord,
        reveal_state: Optional[RevealState] = None,
    ) -> SecretView:
        """Build the on-screen view of a record's secret.

        Hidden records show the mask without decrypting. Decryption errors
        degrade to the mask plus a generic message.
        """
        if reveal_state is None or not reveal_state.is_revealed(record.id):
            return SecretView(record_id=record.id)
        try:
            text = self.unseal(record.secret_envelope)
        except DecryptionError as err:
            logger.warning(
                "Vault display failed: owner=%s record=%s",
                self._owner_id, record.id,
            )
            return SecretView(
                record_id=record.id, text=MASK, error=err.user_message,
            )
        return SecretView(record_id=record.id, text=text, revealed=True)

    async def copy_secret(self, record_id: str) -> None:
        """Decrypt a record's secret onto the clipboard.

        The clipboard is cleared after ``clipboard_timeout`` seconds; a
        later copy supersedes the pending clear.
        """
        await self._clipboard.copy(await self.reveal(record_id))
        logger.info(
            "Vault copy: owner=%s record=%s clear_after=%.0fs",
            self._owner_id, record_id, self._clipboard.clear_after,
        )

    async def copy_text(self, text: str) -> None:
        """Copy an unsaved secret, such as fresh generator output."""
        await self._clipboard.copy(text)

    async def update_secret(self, record_id: str, plaintext: str) -> VaultRecord:
        """Replace a record's secret, encrypting it with a fresh nonce."""
        await self._require(record_id)
        envelope = self.seal(plaintext)
        updated = await self._store.update_envelope(
            self._owner_id, record_id, envelope,
        )
        if updated is None:
            raise RecordNotFound(f"record {record_id} not found")
        logger.info("Vault update: owner=%s record=%s", self._owner_id, record_id)
        return updated

    async def delete(self, record_id: str) -> bool:
        """Remove a record and its envelope from the store.

        Returns:
            True if a record was removed.
        """
        removed = await self._store.delete(self._owner_id, record_id)
        logger.info(
            "Vault delete: owner=%s record=%s removed=%s",
            self._owner_id, record_id, removed,
        )
        return removed
