"""SQLAlchemy ORM models.

All models are imported here so that Alembic can discover them
via ``Base.metadata`` when generating migrations.
"""

from coparent.models.child import Child  # noqa: F401
from coparent.models.family import Family, Membership  # noqa: F401
from coparent.models.invitation import FamilyInvite  # noqa: F401
from coparent.models.schedule_rule import ScheduleRule  # noqa: F401
from coparent.models.user import User  # noqa: F401

__all__ = [
    "Child",
    "Family",
    "FamilyInvite",
    "Membership",
    "ScheduleRule",
    "User",
]
