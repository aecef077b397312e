"""
Vault records and their presentation helpers.

A ``RecordDraft`` carries the plaintext secret only until it is sealed;
a ``VaultRecord`` never holds plaintext, only the serialized envelope.
"""
import uuid
from typing import Optional
from datetime import datetime, timezone
from collections.abc import Iterable

import orjson
from pydantic import BaseModel, Field, SecretStr, field_validator

MASK = "••••••••"
MAX_SECRET_LENGTH = 500


class RecordDraft(BaseModel):
    """Input for a new vault item, validated before encryption."""

    title: str = Field(min_length=1, max_length=100)
    username: Optional[str] = Field(default=None, max_length=255)
    secret: SecretStr
    url: Optional[str] = Field(default=None, max_length=500)
    notes: Optional[str] = Field(default=None, max_length=1000)

    @field_validator("secret")
    @classmethod
    def check_secret(cls, v: SecretStr) -> SecretStr:
        size = len(v.get_secret_value())
        if size < 1:
            raise ValueError("Password is required")
        if size > MAX_SECRET_LENGTH:
            raise ValueError(
                f"Password cannot exceed {MAX_SECRET_LENGTH} characters"
            )
        return v

    @field_validator("title")
    @classmethod
    def strip_title(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Title is required")
        return v

    @field_validator("username", "url", "notes")
    @classmethod
    def empty_to_none(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            return None
        return v


def _new_id() -> str:
    return uuid.uuid4().hex


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class VaultRecord(BaseModel):
    """Stored vault item. Holds the envelope, never the plaintext."""

    id: str = Field(default_factory=_new_id)
    owner_id: str
    title: str
    username: Optional[str] = None
    secret_envelope: str
    url: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime = Field(default_factory=_utcnow)

    model_config = {"frozen": True}

    @classmethod
    def from_draft(
        cls,
        draft: RecordDraft,
        owner_id: str,
        envelope: str
    ) -> "VaultRecord":
        return cls(
            owner_id=owner_id,
            title=draft.title,
            username=draft.username,
            secret_envelope=envelope,
            url=draft.url,
            notes=draft.notes,
        )

    def with_envelope(self, envelope: str) -> "VaultRecord":
        """Return a copy of this record holding a new envelope."""
        return self.model_copy(update={"secret_envelope": envelope})

    def to_json(self) -> bytes:
        return orjson.dumps(self.model_dump())


def matches(record: VaultRecord, query: str) -> bool:
    """Case-insensitive substring match over title, username and url."""
    needle = query.lower()
    return any(
        field is not None and needle in field.lower()
        for field in (record.title, record.username, record.url)
    )


def filter_records(
    records: Iterable[VaultRecord],
    query: Optional[str] = None
) -> list[VaultRecord]:
    if not query:
        return list(records)
    return [r for r in records if matches(r, query)]


class RevealState:
    """Per-session set of records whose secret is shown on screen.

    Every record starts hidden. This is view state only: it never caches
    plaintext, the secret is decrypted again on each display.
    """

    def __init__(self) -> None:
        self._revealed: set[str] = set()

    def is_revealed(self, record_id: str) -> bool:
        return record_id in self._revealed

    def toggle(self, record_id: str) -> bool:
        """Flip visibility of a record and return the new state."""
        if record_id in self._revealed:
            self._revealed.discard(record_id)
            return False
        self._revealed.add(record_id)
        return True

    def hide_all(self) -> None:
        self._revealed.clear()


class SecretView(BaseModel):
    """What the presentation layer shows for one record's secret."""

    record_id: str
    # kept out of repr so plaintext never lands in logs or tracebacks
    text: str = Field(default=MASK, repr=False)
    revealed: bool = False
    error: Optional[str] = None
