"""
Vault Key Rotation — Re-encryption of envelopes under a new pepper version.

Re-encrypts every record of one owner whose envelope names a pepper version
other than the target. The operation is idempotent: envelopes already at
the target version are skipped. Envelopes at older versions remain
decryptable until rotated, as long as their pepper stays configured.

Security Note:
    Plaintext exists in memory only during re-encryption of each record.
    Never log plaintext or ciphertext values.
"""
import logging
from typing import Optional

from ..exceptions import DecryptionError
from .config import VaultConfig
from .crypto import decrypt_secret, derive_key, encrypt_secret, envelope_key_id
from .store import RecordStore

logger = logging.getLogger("secret_vault.vault")


async def rotate_pepper(
    store: RecordStore,
    owner_id: str,
    config: VaultConfig,
    new_key_id: Optional[int] = None,
) -> dict:
    """Re-encrypt all of one owner's envelopes under ``new_key_id``.

    Args:
        store: Record store holding the envelopes.
        owner_id: Owner whose records are rotated.
        config: Vault configuration holding every pepper version.
        new_key_id: Target pepper version, defaults to the active one.

    Returns:
        Stats dict with keys: total, rotated, errors, skipped.

    Raises:
        KeyError: If new_key_id is not a configured pepper version.
    """
    if new_key_id is None:
        new_key_id = config.active_pepper_id
    if new_key_id not in config.peppers:
        raise KeyError(
            f"New pepper version {new_key_id} not found in peppers"
        )

    new_key = derive_key(owner_id, config.peppers[new_key_id], config.kdf_context)
    stats = {"total": 0, "rotated": 0, "errors": 0, "skipped": 0}

    logger.info(
        "Starting pepper rotation for owner=%s to v%d", owner_id, new_key_id,
    )

    for record in await store.list(owner_id):
        stats["total"] += 1
        try:
            old_key_id = envelope_key_id(record.secret_envelope)
            if old_key_id == new_key_id:
                stats["skipped"] += 1
                continue
            if old_key_id not in config.peppers:
                raise KeyError(f"pepper version {old_key_id} not configured")
            old_key = derive_key(
                owner_id, config.peppers[old_key_id], config.kdf_context,
            )
            plaintext = decrypt_secret(record.secret_envelope, old_key)
            envelope = encrypt_secret(
                plaintext,
                new_key,
                key_id=new_key_id,
                algorithm=config.cipher_backend,
            )
            updated = await store.update_envelope(owner_id, record.id, envelope)
            if updated is None:
                # deleted while the rotation was running
                stats["skipped"] += 1
                continue
            stats["rotated"] += 1
        except (DecryptionError, KeyError) as err:
            logger.error(
                "Error rotating record id=%s owner=%s: %s",
                record.id, owner_id, type(err).__name__,
            )
            stats["errors"] += 1

    logger.info("Pepper rotation complete: %s", stats)
    return stats
