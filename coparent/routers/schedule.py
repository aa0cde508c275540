"""Schedule router.

Endpoints for the family's active custody rule and for asking who has
the children on given days.
"""

from datetime import date, datetime
from typing import Annotated

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from coparent.core.dependencies import require_family_member
from coparent.database import get_db
from coparent.models.user import User
from coparent.schemas.schedule_rule import (
    DayAssignmentResponse,
    OddEvenRule,
    OwnerAtResponse,
    ScheduleRuleDocument,
    ScheduleRuleResponse,
    WeeklyTemplateRule,
)
from coparent.services import membership_service, schedule_service

router = APIRouter(prefix="/families/{family_id}", tags=["Schedule"])

RuleBody = Annotated[OddEvenRule | WeeklyTemplateRule, Body(discriminator="type")]


async def _require_rule(db: AsyncSession, family_id: str) -> ScheduleRuleDocument:
    rule = await schedule_service.get_active_document(db, family_id)
    if rule is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No schedule rule configured",
        )
    return rule


@router.get("/schedule-rule", response_model=ScheduleRuleResponse)
async def get_schedule_rule(
    family_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: User = Depends(require_family_member()),
):
    """Return the family's active rule."""
    row = await schedule_service.get_active_rule(db, family_id)
    if row is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No schedule rule configured",
        )
    return ScheduleRuleResponse(
        family_id=family_id,
        rule=schedule_service.rule_adapter.validate_python(row.document),
        updated_by=row.updated_by,
        updated_at=row.updated_at,
    )


@router.put("/schedule-rule", response_model=ScheduleRuleResponse)
async def put_schedule_rule(
    family_id: str,
    rule: RuleBody,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: User = Depends(require_family_member()),
):
    """Replace the family's active rule. Invalid rules are rejected with 422."""
    row = await schedule_service.save_rule(db, family_id, rule, updated_by=current_user.id)
    await db.commit()
    await schedule_service.publish_rule(family_id, row.document)
    return ScheduleRuleResponse(
        family_id=family_id,
        rule=rule,
        updated_by=row.updated_by,
        updated_at=row.updated_at,
    )


@router.get("/schedule", response_model=list[DayAssignmentResponse])
async def get_schedule(
    family_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    start: date = Query(...),
    end: date = Query(...),
    current_user: User = Depends(require_family_member()),
):
    """Per-day owners between ``start`` and ``end`` (inclusive)."""
    rule = await _require_rule(db, family_id)
    return [
        DayAssignmentResponse(date=day, owner=a.owner, start=a.start, end=a.end)
        for day, a in schedule_service.schedule_range(rule, start, end)
    ]


@router.get("/schedule/owner", response_model=OwnerAtResponse)
async def get_owner_at(
    family_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    at: datetime | None = Query(default=None),
    current_user: User = Depends(require_family_member()),
):
    """Who has the children at ``at`` (default: now), in family-local time."""
    family = await membership_service.get_family(db, family_id)
    rule = await _require_rule(db, family_id)
    local, owner = schedule_service.owner_at_instant(rule, family, at)
    return OwnerAtResponse(
        family_id=family_id,
        timezone=family.timezone,
        local_time=local,
        owner=owner,
    )
