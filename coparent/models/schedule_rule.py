from datetime import datetime

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, String, func
from sqlalchemy.orm import Mapped, mapped_column

from coparent.database import Base

ACTIVE_RULE_KEY = "active"


class ScheduleRule(Base):
    __tablename__ = "schedule_rules"

    family_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("families.id"), primary_key=True,
    )
    key: Mapped[str] = mapped_column(String(20), primary_key=True, default=ACTIVE_RULE_KEY)
    type: Mapped[str] = mapped_column(String(20), nullable=False)  # ODD_EVEN | WEEKLY_TEMPLATE
    document: Mapped[dict] = mapped_column(JSON, nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    updated_by: Mapped[str | None] = mapped_column(
        String(128), ForeignKey("users.id"), nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    def __repr__(self) -> str:
        return f"<ScheduleRule(family_id={self.family_id}, type={self.type!r})>"
