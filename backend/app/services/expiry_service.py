"""
SealNote Backend — Expiry Purge Service
=========================================

What:  Drains expired notes in batches: query a batch of expired notes,
       delete exactly those ids, repeat.
Why:   Expiry is query-driven. Nothing inside the web process ever deletes
       on a timer; an external scheduler (cron, Kubernetes CronJob) runs
       `python -m app.purge`, which calls purge_expired_notes() once.
How:   Two-phase per batch (NoteService.get_expired_notes, then
       NoteService.delete_notes) so no single DELETE locks an unbounded
       number of rows and the batch size stays under operator control.

Resilience:
    The read of each batch is retried with tenacity (exponential backoff +
    jitter) on TransientStorageError. Deletes are not retried; a failed
    delete ends the pass and the next scheduled run picks up the rest.
"""

import logging
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)
from tenacity.wait import wait_base

from app.config import settings
from app.exceptions import TransientStorageError
from app.schemas.note import StoredNote
from app.services.note_service import note_service

logger = logging.getLogger(__name__)


class ExpiryService:
    """Batch purge of expired notes for an externally scheduled job."""

    def __init__(
        self,
        max_attempts: Optional[int] = None,
        wait: Optional[wait_base] = None,
    ):
        self.max_attempts = max_attempts or settings.retry_max_attempts
        self.wait = wait or wait_exponential_jitter(
            initial=settings.retry_min_wait,
            max=settings.retry_max_wait,
            jitter=1,
        )

    async def _fetch_expired_batch(self, db: AsyncSession, limit: int) -> List[StoredNote]:
        """Read one batch of expired notes, retrying transient store failures."""
        async for attempt in AsyncRetrying(
            retry=retry_if_exception_type(TransientStorageError),
            stop=stop_after_attempt(self.max_attempts),
            wait=self.wait,
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        ):
            with attempt:
                try:
                    return await note_service.get_expired_notes(db, limit=limit)
                except TransientStorageError:
                    # Clear the failed transaction so the next attempt starts clean
                    await db.rollback()
                    raise
        return []  # unreachable: reraise=True

    async def purge_expired_notes(self, db: AsyncSession, batch_size: Optional[int] = None) -> int:
        """
        Delete every note that is expired right now, batch by batch.

        Stops when a batch comes back short (backlog drained) or when a
        batch deletes nothing (someone else got there first).

        Args:
            db: Session owned by the caller for the duration of the pass
            batch_size: Notes per batch (defaults to settings.expiry_batch_size)

        Returns:
            Total number of notes deleted in this pass.
        """
        batch_size = batch_size or settings.expiry_batch_size
        total = 0
        batches = 0

        while True:
            batch = await self._fetch_expired_batch(db, batch_size)
            if not batch:
                break

            deleted = await note_service.delete_notes(db, [note.id for note in batch])
            total += deleted
            batches += 1
            logger.debug("Purge batch %d: %d expired, %d deleted", batches, len(batch), deleted)

            if deleted == 0 or len(batch) < batch_size:
                break

        logger.info("Purged %d expired note(s) in %d batch(es)", total, batches)
        return total


expiry_service = ExpiryService()
