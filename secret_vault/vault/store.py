"""
Record stores — persistence of vault records holding encrypted envelopes.

Stores only ever see envelopes and metadata, never plaintext. Every call is
scoped by the owning user identity.
"""
import asyncio
import logging
from typing import Any, Optional, Protocol

from ..exceptions import StoreUnavailable
from .records import VaultRecord

logger = logging.getLogger("secret_vault.vault")

# ---------------------------------------------------------------------------
# SQL statements
# ---------------------------------------------------------------------------

_INSERT_ITEM = """
INSERT INTO vault.vault_items
    (id, owner_id, title, username, secret_envelope, url, notes, created_at)
VALUES ($1, $2, $3, $4, $5, $6, $7, $8)
"""

_SELECT_OWNER_ITEMS = """
SELECT id, owner_id, title, username, secret_envelope, url, notes, created_at
FROM vault.vault_items
WHERE owner_id = $1
ORDER BY created_at DESC
"""

_SELECT_ITEM = """
SELECT id, owner_id, title, username, secret_envelope, url, notes, created_at
FROM vault.vault_items
WHERE owner_id = $1 AND id = $2
"""

_UPDATE_ENVELOPE = """
UPDATE vault.vault_items
SET secret_envelope = $3
WHERE owner_id = $1 AND id = $2
RETURNING id, owner_id, title, username, secret_envelope, url, notes, created_at
"""

_DELETE_ITEM = """
DELETE FROM vault.vault_items
WHERE owner_id = $1 AND id = $2
RETURNING id
"""


class RecordStore(Protocol):
    """Contract of the external record store."""

    async def insert(self, record: VaultRecord) -> VaultRecord: ...

    async def list(self, owner_id: str) -> list[VaultRecord]: ...

    async def get(self, owner_id: str, record_id: str) -> Optional[VaultRecord]: ...

    async def update_envelope(
        self, owner_id: str, record_id: str, envelope: str
    ) -> Optional[VaultRecord]: ...

    async def delete(self, owner_id: str, record_id: str) -> bool: ...


class MemoryRecordStore:
    """Process-local record store."""

    def __init__(self) -> None:
        self._records: dict[str, VaultRecord] = {}

    async def insert(self, record: VaultRecord) -> VaultRecord:
        if record.id in self._records:
            raise ValueError(f"record {record.id} already exists")
        self._records[record.id] = record
        return record

    async def list(self, owner_id: str) -> list[VaultRecord]:
        owned = [r for r in self._records.values() if r.owner_id == owner_id]
        return sorted(owned, key=lambda r: r.created_at, reverse=True)

    async def get(self, owner_id: str, record_id: str) -> Optional[VaultRecord]:
        record = self._records.get(record_id)
        if record is None or record.owner_id != owner_id:
            return None
        return record

    async def update_envelope(
        self, owner_id: str, record_id: str, envelope: str
    ) -> Optional[VaultRecord]:
        record = await self.get(owner_id, record_id)
        if record is None:
            return None
        updated = record.with_envelope(envelope)
        self._records[record_id] = updated
        return updated

    async def delete(self, owner_id: str, record_id: str) -> bool:
        if await self.get(owner_id, record_id) is None:
            return False
        del self._records[record_id]
        return True


class PgRecordStore:
    """Record store over an asyncpg-compatible connection pool.

    Expects a ``vault.vault_items`` table whose columns match
    ``VaultRecord`` fields.
    """

    def __init__(self, db_pool: Any):
        self._db = db_pool

    @staticmethod
    def _to_record(row: Any) -> VaultRecord:
        return VaultRecord(
            id=str(row["id"]),
            owner_id=str(row["owner_id"]),
            title=row["title"],
            username=row["username"],
            secret_envelope=row["secret_envelope"],
            url=row["url"],
            notes=row["notes"],
            created_at=row["created_at"],
        )

    async def _run(self, method: str, query: str, *args: Any) -> Any:
        """Execute one statement, translating connection failures."""
        try:
            async with self._db.acquire() as conn:
                return await getattr(conn, method)(query, *args)
        except (OSError, asyncio.TimeoutError) as err:
            logger.error("Vault store unavailable during %s: %s", method, err)
            raise StoreUnavailable() from err

    async def insert(self, record: VaultRecord) -> VaultRecord:
        await self._run(
            "execute", _INSERT_ITEM,
            record.id, record.owner_id, record.title, record.username,
            record.secret_envelope, record.url, record.notes, record.created_at,
        )
        return record

    async def list(self, owner_id: str) -> list[VaultRecord]:
        rows = await self._run("fetch", _SELECT_OWNER_ITEMS, owner_id)
        return [self._to_record(row) for row in rows]

    async def get(self, owner_id: str, record_id: str) -> Optional[VaultRecord]:
        row = await self._run("fetchrow", _SELECT_ITEM, owner_id, record_id)
        return self._to_record(row) if row is not None else None

    async def update_envelope(
        self, owner_id: str, record_id: str, envelope: str
    ) -> Optional[VaultRecord]:
        row = await self._run(
            "fetchrow", _UPDATE_ENVELOPE, owner_id, record_id, envelope,
        )
        return self._to_record(row) if row is not None else None

    async def delete(self, owner_id: str, record_id: str) -> bool:
        row = await self._run("fetchrow", _DELETE_ITEM, owner_id, record_id)
        return row is not None
