"""
SealNote Backend — Encrypted Embed SQLAlchemy Model
=====================================================

What:  ORM model for the `encrypted_embeds` table: encrypted attachments
       (images, files) that belong to exactly one note.
How:   Surrogate integer key, FK to the owning note with ON DELETE CASCADE,
       and a compound unique constraint on (note_id, embed_id).

Why a surrogate key instead of (note_id, embed_id) as primary key:
    Two embeds with the same embed_id in one create call must reach the
    database and be rejected there as an IntegrityError. With a composite
    primary key the ORM identity map would intercept the duplicate first
    and the failure mode would depend on flush internals.
"""

import uuid

from sqlalchemy import ForeignKey, Integer, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class EncryptedEmbed(Base):
    """An encrypted attachment owned by one EncryptedNote."""

    __tablename__ = "encrypted_embeds"

    pk: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )

    note_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("encrypted_notes.id", ondelete="CASCADE"),
        nullable=False,
        comment="Owning note",
    )

    # Unique within the owning note only
    embed_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Client-chosen identifier, unique per note",
    )

    ciphertext: Mapped[str] = mapped_column(Text, nullable=False)
    hmac: Mapped[str] = mapped_column(Text, nullable=False)

    __table_args__ = (
        UniqueConstraint("note_id", "embed_id", name="uq_encrypted_embeds_note_embed"),
    )

    def __repr__(self) -> str:
        return f"<EncryptedEmbed(note_id={self.note_id}, embed_id='{self.embed_id}')>"
