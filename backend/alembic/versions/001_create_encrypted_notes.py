"""Create encrypted notes and embeds tables

Revision ID: 001
Revises: None
Create Date: 2026-10-17 00:00:00.000000+00:00

What:  Creates `encrypted_notes` and `encrypted_embeds`.
How:   Embeds reference their note with ON DELETE CASCADE and are unique
       per (note_id, embed_id). expire_time is indexed for the purge job.

Rollback: downgrade() drops both tables. Every stored note is lost.
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create both tables, their constraints and the expiry index."""
    op.create_table(
        "encrypted_notes",
        sa.Column(
            "id",
            sa.Uuid(as_uuid=True),
            nullable=False,
            comment="Unique identifier, used as the share-link token",
        ),
        sa.Column(
            "ciphertext",
            sa.Text(),
            nullable=False,
            comment="Opaque client-side ciphertext",
        ),
        sa.Column(
            "hmac",
            sa.Text(),
            nullable=False,
            comment="Opaque client-side integrity tag",
        ),
        sa.Column(
            "crypto_version",
            sa.String(32),
            nullable=False,
            server_default=sa.text("'v1'"),
            comment="Client encryption scheme tag, stored verbatim",
        ),
        sa.Column(
            "expire_time",
            sa.DateTime(timezone=True),
            nullable=False,
            comment="After this instant the note is expired (UTC)",
        ),
        sa.Column(
            "insert_time",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
            comment="When the note was written (UTC)",
        ),
        sa.PrimaryKeyConstraint("id"),
    )

    # The purge query is "expire_time <= now() ORDER BY expire_time"
    op.create_index(
        "idx_encrypted_notes_expire_time",
        "encrypted_notes",
        ["expire_time"],
    )

    op.create_table(
        "encrypted_embeds",
        sa.Column("pk", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column(
            "note_id",
            sa.Uuid(as_uuid=True),
            nullable=False,
            comment="Owning note",
        ),
        sa.Column(
            "embed_id",
            sa.String(255),
            nullable=False,
            comment="Client-chosen identifier, unique per note",
        ),
        sa.Column("ciphertext", sa.Text(), nullable=False),
        sa.Column("hmac", sa.Text(), nullable=False),
        sa.PrimaryKeyConstraint("pk"),
        sa.ForeignKeyConstraint(
            ["note_id"],
            ["encrypted_notes.id"],
            ondelete="CASCADE",
        ),
        sa.UniqueConstraint("note_id", "embed_id", name="uq_encrypted_embeds_note_embed"),
    )


def downgrade() -> None:
    """Drop both tables, embeds first."""
    op.drop_table("encrypted_embeds")
    op.drop_index("idx_encrypted_notes_expire_time", table_name="encrypted_notes")
    op.drop_table("encrypted_notes")
