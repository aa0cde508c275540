from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from coparent.database import Base

INVITE_PENDING = "pending"
INVITE_ACCEPTED = "accepted"


class FamilyInvite(Base):
    """One invite document per (family, normalized email).

    Re-inviting the same address rewrites this row and bumps ``version``.
    """

    __tablename__ = "family_invites"

    family_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("families.id"), primary_key=True,
    )
    email_key: Mapped[str] = mapped_column(String(64), primary_key=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    role_suggested: Mapped[str] = mapped_column(String(20), nullable=False, default="parentB")
    token: Mapped[str] = mapped_column(String(128), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=INVITE_PENDING)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    created_by: Mapped[str] = mapped_column(
        String(128), ForeignKey("users.id"), nullable=False,
    )
    accepted_by: Mapped[str | None] = mapped_column(
        String(128), ForeignKey("users.id"), nullable=True,
    )
    accepted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(),
    )

    __table_args__ = (
        Index("ix_family_invites_family_token", "family_id", "token"),
    )

    # Relationships
    family: Mapped["Family"] = relationship()  # noqa: F821

    def __repr__(self) -> str:
        return (
            f"<FamilyInvite(family_id={self.family_id}, email={self.email!r}, "
            f"status={self.status!r}, version={self.version})>"
        )
