from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from coparent.database import Base


class User(Base):
    __tablename__ = "users"

    # Identifier issued by the external identity provider
    id: Mapped[str] = mapped_column(String(128), primary_key=True)
    family_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("families.id"), nullable=True
    )
    role: Mapped[str | None] = mapped_column(String(20), nullable=True)  # parentA | parentB
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    display_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    photo_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, family_id={self.family_id}, role={self.role!r})>"
