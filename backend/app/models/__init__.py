"""ORM models. Importing this package registers every table on Base.metadata."""

from app.models.embed import EncryptedEmbed
from app.models.note import EncryptedNote

__all__ = ["EncryptedEmbed", "EncryptedNote"]
