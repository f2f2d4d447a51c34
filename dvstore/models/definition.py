"""Definition ORM — one row per cluster definition, keyed by config hash.

Invariants:
    - config_hash is unique (raw 32 bytes, not hex)
    - document holds the definition exactly as Definition.model_dump(mode="json")

Design Decisions:
    - JSON document column: the store is a document collection, not a relational model
"""

from datetime import datetime, timezone

from sqlalchemy import DateTime, Integer, JSON, LargeBinary
from sqlalchemy.orm import Mapped, mapped_column

from dvstore.db.base import Base


class DefinitionRecord(Base):
    __tablename__ = "definitions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    config_hash: Mapped[bytes] = mapped_column(
        LargeBinary(32), nullable=False, unique=True, index=True,
    )
    document: Mapped[dict] = mapped_column(JSON, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
