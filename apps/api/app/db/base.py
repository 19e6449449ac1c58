import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models.

    Column types stay portable (PostgreSQL in production, SQLite in tests);
    JSON payloads use JSONB where the dialect has it.
    """
    type_annotation_map = {
        datetime: DateTime(timezone=True),
        uuid.UUID: Uuid(as_uuid=True),
        dict[str, Any]: JSON().with_variant(JSONB(), "postgresql"),
    }
