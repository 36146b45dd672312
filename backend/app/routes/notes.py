"""
SealNote Backend — Note Route Handlers
========================================

What:  POST /api/note, GET /api/note/{id}, GET /api/note/{id}/embed/{embed_id},
       DELETE /api/note/{id}.
Why:   The HTTP face of the data-access layer.
How:   Thin handlers: validate, delegate to the services, turn a None result
       into NotFoundError, format the response.

Caching:
    Every note response carries `Cache-Control: no-store`. A note may be
    burned right after this response; no proxy or browser cache should keep
    a copy of the ciphertext.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.database import get_db_session
from app.exceptions import NotFoundError, ValidationError
from app.schemas.note import (
    ErrorResponse,
    NoteCreate,
    NoteCreateRequest,
    NoteCreateResponse,
    StoredEmbed,
    StoredNote,
    as_utc,
)
from app.services.embed_service import embed_service
from app.services.note_service import note_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Notes"])


def resolve_expire_time(requested: Optional[datetime], now: datetime) -> datetime:
    """
    Pick the expiry for a new note.

    No request value means now + NOTE_DEFAULT_TTL_SECONDS. A requested value
    must lie in the future and no later than now + NOTE_MAX_TTL_SECONDS.
    """
    if requested is None:
        return now + timedelta(seconds=settings.note_default_ttl_seconds)

    expire_time = as_utc(requested)
    if expire_time <= now:
        raise ValidationError(message="expire_time must be in the future", field="expire_time")
    if expire_time > now + timedelta(seconds=settings.note_max_ttl_seconds):
        raise ValidationError(
            message=f"expire_time may be at most {settings.note_max_ttl_seconds} seconds from now",
            field="expire_time",
        )
    return expire_time


def build_view_url(note_id: object) -> str:
    return f"{settings.public_base_url}/note/{note_id}"


@router.post(
    "/note",
    response_model=NoteCreateResponse,
    responses={
        200: {"description": "Note stored", "model": NoteCreateResponse},
        400: {"description": "Invalid expiry", "model": ErrorResponse},
        429: {"description": "Rate limit exceeded", "model": ErrorResponse},
        500: {"description": "Note could not be stored", "model": ErrorResponse},
        503: {"description": "Storage temporarily unavailable", "model": ErrorResponse},
    },
    summary="Store an encrypted note",
    description=(
        "Stores client-side encrypted ciphertext, its integrity tag and any "
        "encrypted embeds, all-or-nothing. Returns the share link and expiry."
    ),
)
async def create_note(
    body: NoteCreateRequest,
    db: AsyncSession = Depends(get_db_session),
) -> NoteCreateResponse:
    expire_time = resolve_expire_time(body.expire_time, datetime.now(timezone.utc))
    stored = await note_service.create_note(
        db,
        NoteCreate(
            ciphertext=body.ciphertext,
            hmac=body.hmac,
            crypto_version=body.crypto_version,
            expire_time=expire_time,
        ),
        body.embeds,
    )
    return NoteCreateResponse(view_url=build_view_url(stored.id), expire_time=stored.expire_time)


@router.get(
    "/note/{note_id}",
    response_model=StoredNote,
    responses={
        200: {"description": "The encrypted note", "model": StoredNote},
        404: {"description": "Note not found or already burned", "model": ErrorResponse},
    },
    summary="Fetch an encrypted note",
    description=(
        "Returns the stored ciphertext. When DELETE_NOTE_ON_VIEW is enabled "
        "the note and its embeds are deleted as part of this request."
    ),
)
async def get_note(
    note_id: str,
    response: Response,
    db: AsyncSession = Depends(get_db_session),
) -> StoredNote:
    """
    note_id is taken as a plain string: anything that is not a stored note,
    including strings that are not UUIDs at all, is a 404.
    """
    note = await note_service.get_note(db, note_id)
    if note is None:
        raise NotFoundError(resource="note", resource_id=note_id)

    if settings.delete_note_on_view:
        await note_service.delete_notes(db, [note.id])
        logger.info("Note %s burned after viewing", note.id)

    response.headers["Cache-Control"] = "no-store"
    return note


@router.get(
    "/note/{note_id}/embed/{embed_id}",
    response_model=StoredEmbed,
    responses={
        200: {"description": "The encrypted embed", "model": StoredEmbed},
        404: {"description": "Embed not found", "model": ErrorResponse},
    },
    summary="Fetch one encrypted embed of a note",
)
async def get_embed(
    note_id: str,
    embed_id: str,
    response: Response,
    db: AsyncSession = Depends(get_db_session),
) -> StoredEmbed:
    embed = await embed_service.get_embed(db, note_id, embed_id)
    if embed is None:
        raise NotFoundError(resource="embed", resource_id=f"{note_id}/{embed_id}")

    response.headers["Cache-Control"] = "no-store"
    return embed


@router.delete(
    "/note/{note_id}",
    status_code=204,
    responses={
        204: {"description": "Note and embeds deleted"},
        404: {"description": "Note not found", "model": ErrorResponse},
    },
    summary="Burn a note",
    description="Deletes the note and all of its embeds, e.g. after the reader has fetched them.",
)
async def delete_note(
    note_id: str,
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    deleted = await note_service.delete_notes(db, [note_id])
    if deleted == 0:
        raise NotFoundError(resource="note", resource_id=note_id)
    return Response(status_code=204)
