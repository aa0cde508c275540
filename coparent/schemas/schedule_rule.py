"""Custody schedule rule documents.

A family has exactly one active rule, stored as a tagged union keyed on
``type``. Formats that pydantic cannot express on its own (``HH:mm``
times, ``YYYY-MM-DD`` anchor dates, the seven-day template) are checked by
``services.rule_validator`` before anything is written.
"""

from datetime import date, datetime
from enum import StrEnum
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field


class ParentRole(StrEnum):
    PARENT_A = "parentA"
    PARENT_B = "parentB"


class WeekStart(StrEnum):
    MON = "MON"
    TUE = "TUE"
    WED = "WED"
    THU = "THU"
    FRI = "FRI"
    SAT = "SAT"
    SUN = "SUN"


class Parity(StrEnum):
    ODD = "ODD"
    EVEN = "EVEN"


class DayEntry(BaseModel):
    dow: int  # 0 = Sunday .. 6 = Saturday
    owner: ParentRole
    start: str | None = None  # "HH:mm"
    end: str | None = None    # "HH:mm" or "24:00"


class OddEvenRule(BaseModel):
    model_config = ConfigDict(extra="forbid")

    type: Literal["ODD_EVEN"] = "ODD_EVEN"
    week_start: WeekStart = WeekStart.MON
    anchor_date: str  # "YYYY-MM-DD"
    anchor_week_is: Parity = Parity.ODD
    parent_on_odd: ParentRole = ParentRole.PARENT_A
    parent_on_even: ParentRole = ParentRole.PARENT_B
    shift_time: str | None = None
    active: bool = True


class WeeklyTemplateRule(BaseModel):
    model_config = ConfigDict(extra="forbid")

    type: Literal["WEEKLY_TEMPLATE"] = "WEEKLY_TEMPLATE"
    week_start: WeekStart = WeekStart.MON
    days: list[DayEntry]
    shift_time: str | None = None
    active: bool = True


ScheduleRuleDocument = Annotated[
    OddEvenRule | WeeklyTemplateRule,
    Field(discriminator="type"),
]


class ScheduleRuleResponse(BaseModel):
    family_id: str
    rule: ScheduleRuleDocument
    updated_by: str | None = None
    updated_at: datetime | None = None


class DayAssignmentResponse(BaseModel):
    date: date
    owner: ParentRole
    start: str | None = None
    end: str | None = None


class OwnerAtResponse(BaseModel):
    family_id: str
    timezone: str
    local_time: datetime
    owner: ParentRole
