"""User model - basic identity record, not tied to wallet addresses."""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from arcrevoke.models.base import BaseModel


class User(BaseModel):
    """A named user. `password` holds an Argon2id hash, never plaintext."""

    __tablename__ = "users"

    username: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    password: Mapped[str] = mapped_column(String(255), nullable=False)

    def __repr__(self) -> str:
        return f"<User {self.username}>"
