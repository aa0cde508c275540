"""Schedule Service.

Stores the family's single active custody rule and answers schedule
queries against it in the family's timezone.

The rule document is cached in Redis (TTL ``RULE_CACHE_TTL``) when Redis
is reachable. Readers only fill an empty cache entry; a saved rule is
written over the entry once its transaction has committed, so a reader
holding the previous row can never put it back.
"""

import logging
from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from pydantic import TypeAdapter
from sqlalchemy.ext.asyncio import AsyncSession

from coparent.config import settings
from coparent.core.errors import ValidationError
from coparent.core.redis_client import cache_get_json, cache_set_json
from coparent.models.family import Family
from coparent.models.schedule_rule import ACTIVE_RULE_KEY, ScheduleRule
from coparent.schemas.schedule_rule import ParentRole, ScheduleRuleDocument
from coparent.services.rule_engine import DayAssignment, owner_on, owners_between
from coparent.services.rule_validator import ensure_valid

logger = logging.getLogger(__name__)

rule_adapter: TypeAdapter[ScheduleRuleDocument] = TypeAdapter(ScheduleRuleDocument)


def _cache_key(family_id: str) -> str:
    return f"rules:family:{family_id}"


async def get_active_rule(db: AsyncSession, family_id: str) -> ScheduleRule | None:
    """Load the active rule row for a family (None if none was saved yet)."""
    return await db.get(ScheduleRule, (family_id, ACTIVE_RULE_KEY))


async def get_active_document(
    db: AsyncSession,
    family_id: str,
    bypass_cache: bool = False,
) -> ScheduleRuleDocument | None:
    """Return the parsed active rule, served from cache when possible."""
    cache_key = _cache_key(family_id)

    if not bypass_cache:
        cached = await cache_get_json(cache_key)
        if cached is not None:
            return rule_adapter.validate_python(cached)

    row = await get_active_rule(db, family_id)
    if row is None:
        return None

    # A rule saved since our read has cached itself already
    await cache_set_json(cache_key, row.document, settings.RULE_CACHE_TTL, only_if_absent=True)

    return rule_adapter.validate_python(row.document)


async def save_rule(
    db: AsyncSession,
    family_id: str,
    rule: ScheduleRuleDocument,
    updated_by: str | None = None,
) -> ScheduleRule:
    """Validate ``rule`` and make it the family's active rule.

    The stored document is replaced as a whole, so switching between rule
    types never leaves fields of the previous type behind. An invalid rule
    raises before anything is written. Call ``publish_rule`` once the
    unit of work has committed.
    """
    ensure_valid(rule)

    document = rule.model_dump(mode="json")
    row = await get_active_rule(db, family_id)
    if row is None:
        row = ScheduleRule(
            family_id=family_id,
            key=ACTIVE_RULE_KEY,
            type=rule.type,
            document=document,
            active=rule.active,
            updated_by=updated_by,
        )
        db.add(row)
    else:
        row.type = rule.type
        row.document = document
        row.active = rule.active
        row.updated_by = updated_by

    await db.flush()
    await db.refresh(row)

    logger.info("Schedule rule for family %s set to %s by %s", family_id, rule.type, updated_by)
    return row


async def publish_rule(family_id: str, document: dict) -> None:
    """Replace the cached rule with a committed document."""
    await cache_set_json(_cache_key(family_id), document, settings.RULE_CACHE_TTL)


def owner_at_instant(
    rule: ScheduleRuleDocument,
    family: Family,
    at: datetime | None = None,
) -> tuple[datetime, ParentRole]:
    """Owner at instant ``at`` (default: now) on the family's local clock.

    Naive datetimes are taken to be family-local already.
    """
    tz = ZoneInfo(family.timezone)
    if at is None:
        at = datetime.now(timezone.utc)
    local = at.replace(tzinfo=tz) if at.tzinfo is None else at.astimezone(tz)
    return local, owner_on(rule, local.date(), local.time())


def schedule_range(
    rule: ScheduleRuleDocument,
    start: date,
    end: date,
) -> list[tuple[date, DayAssignment]]:
    """Per-day owners for ``start`` .. ``end`` (inclusive, bounded length)."""
    if end < start:
        raise ValidationError("End date must not be before start date.", field="end")
    if (end - start) > timedelta(days=settings.SCHEDULE_MAX_RANGE_DAYS - 1):
        raise ValidationError(
            f"Date range is limited to {settings.SCHEDULE_MAX_RANGE_DAYS} days.",
            field="end",
        )
    return owners_between(rule, start, end)
