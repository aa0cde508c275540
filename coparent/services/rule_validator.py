"""Rule Validator.

Checks a candidate schedule rule before it is persisted. Validation is
synchronous and side-effect free; a rule that fails here is never written.
"""

import re
from datetime import date

from coparent.core.errors import RuleError
from coparent.schemas.schedule_rule import (
    OddEvenRule,
    ScheduleRuleDocument,
    WeekStart,
    WeeklyTemplateRule,
)

HHMM_RE = re.compile(r"([01][0-9]|2[0-3]):[0-5][0-9]")
END_OF_DAY = "24:00"
ISO_DATE_RE = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")

# Week starts supported by the weekly template
TEMPLATE_WEEK_STARTS = (WeekStart.MON, WeekStart.SUN)


def is_hhmm(value: str | None) -> bool:
    return value is not None and HHMM_RE.fullmatch(value) is not None


def is_day_end(value: str | None) -> bool:
    """``HH:mm`` or the ``24:00`` end-of-day sentinel."""
    return value == END_OF_DAY or is_hhmm(value)


def parse_anchor_date(value: str) -> date | None:
    """Parse a bare ``YYYY-MM-DD`` calendar date; anything else is None."""
    if not ISO_DATE_RE.fullmatch(value or ""):
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


def _minutes(value: str) -> int:
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


def _validate_odd_even(rule: OddEvenRule) -> RuleError | None:
    if parse_anchor_date(rule.anchor_date) is None:
        return RuleError("Set a valid anchor date (YYYY-MM-DD).", field="anchor_date")
    if rule.week_start not in tuple(WeekStart):
        return RuleError("Week start must be a valid day (MON-SUN).", field="week_start")
    if rule.shift_time is not None and not is_hhmm(rule.shift_time):
        return RuleError("Shift time must be HH:mm.", field="shift_time")
    if rule.parent_on_odd == rule.parent_on_even:
        return RuleError(
            "Odd and even weeks must be assigned to different parents.",
            field="parent_on_even",
        )
    return None


def _validate_weekly(rule: WeeklyTemplateRule) -> RuleError | None:
    if rule.week_start not in TEMPLATE_WEEK_STARTS:
        return RuleError("Week start must be MON or SUN.", field="week_start")

    dows = sorted(d.dow for d in rule.days)
    if dows != list(range(7)):
        return RuleError(
            "The template needs exactly one entry per day of the week (0-6).",
            field="days",
        )

    for entry in rule.days:
        if entry.start is not None and not is_hhmm(entry.start):
            return RuleError("Day start must be HH:mm.", field=f"days[{entry.dow}].start")
        if entry.end is not None and not is_day_end(entry.end):
            return RuleError("Day end must be HH:mm or 24:00.", field=f"days[{entry.dow}].end")
        if entry.start is not None and entry.end is not None:
            if _minutes(entry.start) >= _minutes(entry.end):
                return RuleError(
                    "Day start must be before day end.", field=f"days[{entry.dow}]"
                )

    if rule.shift_time is not None and not is_hhmm(rule.shift_time):
        return RuleError("Shift time must be HH:mm.", field="shift_time")
    return None


def validate_rule(rule: ScheduleRuleDocument) -> RuleError | None:
    """Return the first problem with ``rule``, or None if it can be saved."""
    if isinstance(rule, OddEvenRule):
        return _validate_odd_even(rule)
    if isinstance(rule, WeeklyTemplateRule):
        return _validate_weekly(rule)
    return RuleError(f"Unknown rule type: {type(rule).__name__}", field="type")


def ensure_valid(rule: ScheduleRuleDocument) -> None:
    """Raise the validation error for ``rule``, if any."""
    error = validate_rule(rule)
    if error is not None:
        raise error
