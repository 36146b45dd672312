"""
SealNote Backend — Embed Service
==================================

Read access to encrypted embeds. Embeds are only ever written by
NoteService.create_note() (together with their note) and only ever removed
by NoteService.delete_notes(), so this service has no write operations.
"""

import logging
import uuid
from typing import Optional, Union

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import storage_errors
from app.models.embed import EncryptedEmbed
from app.schemas.note import StoredEmbed
from app.services.note_service import parse_note_id

logger = logging.getLogger(__name__)


class EmbedService:
    """Lookup of embeds scoped to their owning note."""

    async def get_embed(
        self,
        db: AsyncSession,
        note_id: Union[str, uuid.UUID],
        embed_id: str,
    ) -> Optional[StoredEmbed]:
        """
        Fetch one embed by (note_id, embed_id).

        Returns None if the note id is malformed, the note does not exist,
        or the note has no embed with that id.
        """
        key = parse_note_id(note_id)
        if key is None:
            return None

        async with storage_errors("get_embed"):
            result = await db.execute(
                select(EncryptedEmbed).where(
                    EncryptedEmbed.note_id == key,
                    EncryptedEmbed.embed_id == embed_id,
                )
            )
            row = result.scalar_one_or_none()

        if row is None:
            logger.debug("Embed %s/%s not found", key, embed_id)
            return None
        return StoredEmbed.model_validate(row)


embed_service = EmbedService()
