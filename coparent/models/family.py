import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from coparent.config import settings
from coparent.database import Base
from coparent.types import StringArray


def new_family_id() -> str:
    """Random 122-bit identifier (uuid4) rendered as a string."""
    return str(uuid.uuid4())


class Family(Base):
    __tablename__ = "families"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=new_family_id,
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    timezone: Mapped[str] = mapped_column(
        String(64), nullable=False, default=settings.DEFAULT_TIMEZONE
    )
    owners: Mapped[list[str]] = mapped_column(StringArray, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # Relationships
    members: Mapped[list["Membership"]] = relationship(  # noqa: F821
        back_populates="family", cascade="all, delete-orphan"
    )
    children: Mapped[list["Child"]] = relationship(  # noqa: F821
        back_populates="family", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Family(id={self.id}, name={self.name!r})>"


class Membership(Base):
    __tablename__ = "family_members"

    family_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("families.id"), primary_key=True,
    )
    user_id: Mapped[str] = mapped_column(
        String(128), ForeignKey("users.id"), primary_key=True,
    )
    role: Mapped[str | None] = mapped_column(String(20), nullable=True)  # parentA | parentB
    display_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # Relationships
    family: Mapped["Family"] = relationship(back_populates="members")

    def __repr__(self) -> str:
        return f"<Membership(family_id={self.family_id}, user_id={self.user_id}, role={self.role!r})>"
