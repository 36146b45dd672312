"""
SealNote Backend — Encrypted Note SQLAlchemy Model
====================================================

What:  ORM model for the `encrypted_notes` table.
Why:   Maps stored notes to Python objects for the data-access layer.
Who:   Used by NoteService and by Alembic for schema management.

Table Design Rationale:
    - UUID primary key: unguessable, doubles as the share-link token
    - ciphertext / hmac: TEXT, opaque. Encrypted in the browser; the
      server never parses, validates or transforms them
    - crypto_version: short tag naming the client-side scheme, stored verbatim
    - expire_time: UTC; after it the note is expired (query-driven, no sweeper)
    - insert_time: UTC; assigned at write time, never by the caller

    Index on expire_time:
        The purge job's query is "expire_time <= now()". Without the index
        every pass is a sequential scan over all live notes.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, Index, String, Text, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class EncryptedNote(Base):
    """
    A stored, client-encrypted note.

    Lifecycle:
        1. Created together with its embeds in one transaction
        2. Read any number of times by id
        3. Deleted by id, either after viewing or by the purge job
           once expired; deletion cascades to its embeds

    Embeds are never loaded through a relationship; they are fetched one
    at a time by (note_id, embed_id) via EmbedService.
    """

    __tablename__ = "encrypted_notes"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        comment="Unique identifier, used as the share-link token",
    )

    ciphertext: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="Opaque client-side ciphertext",
    )

    hmac: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="Opaque client-side integrity tag",
    )

    crypto_version: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        default="v1",
        server_default=text("'v1'"),
        comment="Client encryption scheme tag, stored verbatim",
    )

    # ── Timestamps ────────────────────────────────────────────────────────
    # Stored in UTC. SQLite drops tzinfo on the way out; StoredNote
    # re-attaches it, so callers always see aware UTC datetimes.
    expire_time: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        comment="After this instant the note is expired (UTC)",
    )

    insert_time: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
        comment="When the note was written (UTC)",
    )

    __table_args__ = (
        Index("idx_encrypted_notes_expire_time", expire_time),
    )

    def __repr__(self) -> str:
        # Never include ciphertext or hmac
        return (
            f"<EncryptedNote(id={self.id}, crypto_version='{self.crypto_version}', "
            f"expire_time='{self.expire_time}')>"
        )
