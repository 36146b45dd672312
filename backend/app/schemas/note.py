"""
SealNote Backend — Pydantic Schemas
=====================================

What:  Value types passed across the data-access layer (NoteCreate,
       EmbedCreate, StoredNote, StoredEmbed) and the HTTP contracts built
       on top of them.
Why:   The services hand back plain validated values instead of live ORM
       rows, so callers never trigger lazy loads on a closed session and
       never see store-specific quirks (SQLite's naive datetimes).
How:   `from_attributes` builds the stored types straight from ORM rows;
       validators normalize every timestamp to aware UTC.

Payload fields (ciphertext, hmac, crypto_version) are plain strings and
pass through untouched. The only checks applied to them are
non-emptiness and length, at the HTTP boundary.
"""

import uuid
from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from app.config import settings


def as_utc(value: datetime) -> datetime:
    """Return an aware UTC datetime; naive values are taken to be UTC already."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# ══════════════════════════════════════════════════════════════════════════
# Data-Access Values: what the services accept and return
# ══════════════════════════════════════════════════════════════════════════


class EmbedCreate(BaseModel):
    """An encrypted attachment submitted together with its note."""
    embed_id: str = Field(min_length=1, max_length=255, description="Identifier, unique per note")
    ciphertext: str = Field(description="Opaque ciphertext")
    hmac: str = Field(description="Opaque integrity tag")


class NoteCreate(BaseModel):
    """
    Caller-supplied note fields.

    `id` and `insert_time` are deliberately absent: the data-access layer
    assigns both at write time.
    """
    ciphertext: str = Field(description="Opaque ciphertext")
    hmac: str = Field(description="Opaque integrity tag")
    crypto_version: str = Field(
        default="v1", min_length=1, max_length=32,
        description="Client encryption scheme tag",
    )
    expire_time: datetime = Field(description="Instant after which the note is expired")

    @field_validator("expire_time")
    @classmethod
    def normalize_expire_time(cls, v: datetime) -> datetime:
        return as_utc(v)


class StoredNote(BaseModel):
    """A note as persisted, including the server-assigned id and insert_time."""
    id: uuid.UUID = Field(description="Unique note identifier, the share-link token")
    ciphertext: str
    hmac: str
    crypto_version: str
    expire_time: datetime = Field(description="Expiry instant (UTC ISO 8601)")
    insert_time: datetime = Field(description="Write instant (UTC ISO 8601)")

    model_config = {"from_attributes": True}

    @field_validator("expire_time", "insert_time")
    @classmethod
    def normalize_timestamps(cls, v: datetime) -> datetime:
        return as_utc(v)


class StoredEmbed(BaseModel):
    """An embed as persisted under its owning note."""
    note_id: uuid.UUID
    embed_id: str
    ciphertext: str
    hmac: str

    model_config = {"from_attributes": True}


# ══════════════════════════════════════════════════════════════════════════
# HTTP Contracts
# ══════════════════════════════════════════════════════════════════════════


class NoteCreateRequest(BaseModel):
    """
    Body of POST /api/note.

    expire_time is optional; the route fills in the configured default
    lifetime. Range checks against "now" happen in the route, since they
    are business rules (400) rather than shape errors (422).
    """
    ciphertext: str = Field(min_length=1, description="Opaque ciphertext")
    hmac: str = Field(min_length=1, description="Opaque integrity tag")
    crypto_version: str = Field(default="v1", min_length=1, max_length=32)
    expire_time: Optional[datetime] = Field(
        default=None,
        description="Requested expiry (ISO 8601). Defaults to the server lifetime.",
    )
    embeds: List[EmbedCreate] = Field(
        default_factory=list,
        description="Encrypted attachments stored atomically with the note",
    )

    @field_validator("ciphertext", "hmac")
    @classmethod
    def validate_payload_length(cls, v: str) -> str:
        if len(v) > settings.max_payload_chars:
            raise ValueError(f"must be at most {settings.max_payload_chars} characters")
        return v

    @field_validator("embeds")
    @classmethod
    def validate_embeds(cls, v: List[EmbedCreate]) -> List[EmbedCreate]:
        if len(v) > settings.max_embeds_per_note:
            raise ValueError(f"at most {settings.max_embeds_per_note} embeds per note")
        for embed in v:
            for field in ("ciphertext", "hmac"):
                value = getattr(embed, field)
                if not value:
                    raise ValueError(f"embed '{embed.embed_id}' {field} must not be empty")
                if len(value) > settings.max_payload_chars:
                    raise ValueError(f"embed '{embed.embed_id}' {field} is too large")
        return v


class NoteCreateResponse(BaseModel):
    """Returned by POST /api/note: where to view the note and until when."""
    view_url: str = Field(description="Share link: {public_base_url}/note/{id}")
    expire_time: datetime = Field(description="Expiry instant (UTC ISO 8601)")


class ErrorResponse(BaseModel):
    """
    Standardized error body for all API errors.

    Example:
        {
            "error": "not_found",
            "message": "note with ID 'NaN' was not found",
            "request_id": "3f9c1a2b"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    """Returned by GET /health for probes and load balancers."""
    status: str = Field(description="Overall service status: healthy, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    uptime_seconds: float = Field(description="Seconds since service started")
