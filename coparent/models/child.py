import uuid
from datetime import date, datetime

from sqlalchemy import Date, DateTime, ForeignKey, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from coparent.database import Base


class Child(Base):
    __tablename__ = "children"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4()),
    )
    family_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("families.id"), nullable=False, index=True,
    )
    name: Mapped[str] = mapped_column(String(60), nullable=False)
    birthdate: Mapped[date] = mapped_column(Date, nullable=False)
    color: Mapped[str] = mapped_column(String(7), nullable=False, default="#4f46e5")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # Relationships
    family: Mapped["Family"] = relationship(back_populates="children")  # noqa: F821

    def __repr__(self) -> str:
        return f"<Child(id={self.id}, name={self.name!r})>"
