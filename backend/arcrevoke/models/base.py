"""Declarative base shared by all ArcRevoke tables."""

import uuid

from sqlalchemy import Uuid
from sqlalchemy.orm import Mapped, mapped_column

from arcrevoke.core.database import Base


class BaseModel(Base):
    """Abstract base with a generated UUID primary key."""

    __abstract__ = True

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
