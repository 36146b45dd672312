"""
SealNote Backend — Note Service (Data-Access Layer)
=====================================================

What:  Create, look up, delete and query-for-expiry encrypted notes.
Why:   This is where the storage invariants live: a note and its embeds are
       written all-or-nothing, deletes never leave orphan embeds, and a
       missing note is an ordinary result rather than an error.
How:   Each method borrows the caller's AsyncSession, runs its write set
       inside `transaction()` and translates store failures through
       `storage_errors()`.
Who:   Called by the note routes and by the expiry purge job.

Operation summary:
    create_note(db, note, embeds)   → StoredNote            (atomic, never retried)
    get_note(db, note_id)           → StoredNote | None     (no side effects)
    delete_notes(db, note_ids)      → int                   (cascade to embeds)
    get_expired_notes(db, limit)    → List[StoredNote]      (no side effects)

Design Decision:
    Expiry is two-phase. get_expired_notes() only reads; deletion goes
    through delete_notes() with an explicit id list. The caller chooses the
    batch size, so no single statement holds delete locks over an unbounded
    number of rows.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import List, Optional, Sequence, Union

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import storage_errors, transaction
from app.models.embed import EncryptedEmbed
from app.models.note import EncryptedNote
from app.schemas.note import EmbedCreate, NoteCreate, StoredNote

logger = logging.getLogger(__name__)


def parse_note_id(value: Union[str, uuid.UUID]) -> Optional[uuid.UUID]:
    """
    Interpret an externally supplied note id.

    Returns None for anything that is not a UUID. Such ids cannot exist in
    the store, so lookups short-circuit to "absent" instead of sending a
    malformed value to the database.
    """
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


class NoteService:
    """
    Data-access operations over encrypted notes.

    Stateless: all shared state lives in the database, so a single instance
    serves every concurrent request.
    """

    # Ids per DELETE ... IN (...) statement
    delete_chunk_size = 1000

    async def create_note(
        self,
        db: AsyncSession,
        note: NoteCreate,
        embeds: Optional[Sequence[EmbedCreate]] = None,
    ) -> StoredNote:
        """
        Store a note and, optionally, its embeds as one atomic unit.

        Workflow (single transaction):
            1. Insert the note; flushing assigns id and insert_time
            2. Insert every embed under the new note id
            3. Commit. Any failure rolls back steps 1-2 entirely

        Args:
            db: Borrowed async session
            note: Caller-supplied fields (ciphertext, hmac, crypto_version, expire_time)
            embeds: Optional ordered embeds; embed_id must be unique within the call

        Returns:
            The stored note with its generated id and insert_time. Embeds are
            not returned inline; fetch them with EmbedService.get_embed().

        Raises:
            ConstraintViolationError: Duplicate embed_id (nothing persisted)
            TransientStorageError: Store unreachable (nothing persisted)
        """
        embeds = list(embeds or [])
        row = EncryptedNote(
            ciphertext=note.ciphertext,
            hmac=note.hmac,
            crypto_version=note.crypto_version,
            expire_time=note.expire_time,
        )

        async with storage_errors("create_note"):
            async with transaction(db):
                db.add(row)
                # Flush first so the embeds reference a row that exists
                await db.flush()
                db.add_all(
                    EncryptedEmbed(
                        note_id=row.id,
                        embed_id=embed.embed_id,
                        ciphertext=embed.ciphertext,
                        hmac=embed.hmac,
                    )
                    for embed in embeds
                )

        logger.info(
            "Note %s stored with %d embed(s), expires %s",
            row.id, len(embeds), row.expire_time.isoformat(),
        )
        return StoredNote.model_validate(row)

    async def get_note(self, db: AsyncSession, note_id: Union[str, uuid.UUID]) -> Optional[StoredNote]:
        """
        Look up a note by id.

        Returns None when the note does not exist, including ids that are not
        valid UUIDs. Never deletes: burn-after-reading is the caller's call.
        """
        key = parse_note_id(note_id)
        if key is None:
            return None

        async with storage_errors("get_note"):
            result = await db.execute(
                select(EncryptedNote).where(EncryptedNote.id == key)
            )
            row = result.scalar_one_or_none()

        if row is None:
            logger.debug("Note %s not found", key)
            return None
        return StoredNote.model_validate(row)

    async def delete_notes(self, db: AsyncSession, note_ids: Sequence[Union[str, uuid.UUID]]) -> int:
        """
        Delete notes by id, cascading to their embeds.

        Ids that do not exist (or are not UUIDs) are ignored. Embeds are
        deleted explicitly before their notes, in the same transaction, so
        no orphans remain even on stores that do not enforce FK cascades.
        Ids are sent in chunks of `delete_chunk_size`, all inside the one
        transaction, so any number of ids stays under the driver's bound
        parameter limit (32767 for asyncpg).

        Returns:
            Number of notes actually deleted (0 <= n <= len(note_ids)).
        """
        keys = list({key for key in map(parse_note_id, note_ids) if key is not None})
        if not keys:
            return 0

        deleted = 0
        async with storage_errors("delete_notes"):
            async with transaction(db):
                for start in range(0, len(keys), self.delete_chunk_size):
                    chunk = keys[start:start + self.delete_chunk_size]
                    await db.execute(
                        delete(EncryptedEmbed).where(EncryptedEmbed.note_id.in_(chunk))
                        .execution_options(synchronize_session=False)
                    )
                    result = await db.execute(
                        delete(EncryptedNote).where(EncryptedNote.id.in_(chunk))
                        .execution_options(synchronize_session=False)
                    )
                    deleted += result.rowcount or 0

        logger.info("Deleted %d of %d requested note(s)", deleted, len(note_ids))
        return deleted

    async def get_expired_notes(self, db: AsyncSession, limit: Optional[int] = None) -> List[StoredNote]:
        """
        Every note whose expire_time is at or before now (UTC).

        Read-only. Rows come back oldest-expiry first so that a limited batch
        drains the backlog in order; callers must not rely on the ordering.

        Args:
            db: Borrowed async session
            limit: Maximum rows to return (None = all)
        """
        now = datetime.now(timezone.utc)
        query = (
            select(EncryptedNote)
            .where(EncryptedNote.expire_time <= now)
            .order_by(EncryptedNote.expire_time)
        )
        if limit is not None:
            query = query.limit(limit)

        async with storage_errors("get_expired_notes"):
            result = await db.execute(query)
            rows = list(result.scalars().all())

        return [StoredNote.model_validate(row) for row in rows]


# ── Singleton Instance ────────────────────────────────────────────────────
note_service = NoteService()
