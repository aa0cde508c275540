"""Rule Engine.

Resolves which parent is responsible on a given day (or at a given
instant) under a family's custody rule:

- ODD_EVEN: weeks alternate between two parents, counted in whole weeks
  from the anchor date's week. An optional shift time moves the handover
  from midnight to that time on the week-start day.
- WEEKLY_TEMPLATE: a fixed owner per day of the week.

Everything here is pure. Date arithmetic is done on proleptic ordinals so
evaluation never overflows, even next to ``date.min`` / ``date.max``.
"""

from datetime import date, datetime, time, timedelta
from typing import NamedTuple

from coparent.core.errors import RuleError
from coparent.schemas.schedule_rule import (
    OddEvenRule,
    ParentRole,
    Parity,
    ScheduleRuleDocument,
    WeekStart,
    WeeklyTemplateRule,
)
from coparent.services.rule_validator import parse_anchor_date

# Python weekday numbering: Monday = 0 .. Sunday = 6
WEEKDAY_INDEX = {
    WeekStart.MON: 0,
    WeekStart.TUE: 1,
    WeekStart.WED: 2,
    WeekStart.THU: 3,
    WeekStart.FRI: 4,
    WeekStart.SAT: 5,
    WeekStart.SUN: 6,
}


class DayAssignment(NamedTuple):
    owner: ParentRole
    start: str | None = None
    end: str | None = None


def _weekday(ordinal: int) -> int:
    # date.fromordinal(1) (0001-01-01) is a Monday
    return (ordinal - 1) % 7


def sunday_based_dow(day: date) -> int:
    """Day of week with Sunday = 0 .. Saturday = 6."""
    return day.toordinal() % 7


def week_start_ordinal(ordinal: int, week_start: WeekStart) -> int:
    """Ordinal of the most recent ``week_start`` day on or before ``ordinal``."""
    return ordinal - (_weekday(ordinal) - WEEKDAY_INDEX[week_start]) % 7


def _parse_hhmm(value: str) -> time:
    hours, minutes = value.split(":")
    return time(int(hours), int(minutes))


def _flip(parity: Parity) -> Parity:
    return Parity.EVEN if parity == Parity.ODD else Parity.ODD


def week_parity(rule: OddEvenRule, ordinal: int) -> Parity:
    """Parity of the week containing ``ordinal``.

    The anchor's week has ``anchor_week_is``; each whole week away from it,
    forwards or backwards, flips the parity once.
    """
    anchor = parse_anchor_date(rule.anchor_date)
    if anchor is None:
        raise RuleError("Set a valid anchor date (YYYY-MM-DD).", field="anchor_date")

    anchor_start = week_start_ordinal(anchor.toordinal(), rule.week_start)
    target_start = week_start_ordinal(ordinal, rule.week_start)
    weeks = (target_start - anchor_start) // 7
    if weeks % 2 == 0:
        return rule.anchor_week_is
    return _flip(rule.anchor_week_is)


def _odd_even_owner(rule: OddEvenRule, ordinal: int, at: time | None) -> ParentRole:
    if rule.shift_time is not None and at is not None:
        is_boundary_day = _weekday(ordinal) == WEEKDAY_INDEX[rule.week_start]
        # The handover instant itself already belongs to the new owner
        if is_boundary_day and at < _parse_hhmm(rule.shift_time):
            ordinal -= 1

    if week_parity(rule, ordinal) == Parity.ODD:
        return rule.parent_on_odd
    return rule.parent_on_even


def _template_entry(rule: WeeklyTemplateRule, dow: int):
    for entry in rule.days:
        if entry.dow == dow:
            return entry
    raise RuleError(f"No template entry for day {dow}", field="days")


def owner_on(
    rule: ScheduleRuleDocument,
    on: date | datetime,
    at: time | None = None,
) -> ParentRole:
    """Return the parent responsible on ``on``.

    ``on`` may be a datetime, or ``at`` may carry the time of day; the time
    only matters for an ODD_EVEN rule with a shift time, on the week-start
    day. With a bare date the date's own week decides.
    """
    if isinstance(on, datetime):
        if at is None:
            at = on.time()
        on = on.date()

    if isinstance(rule, OddEvenRule):
        return _odd_even_owner(rule, on.toordinal(), at)
    if isinstance(rule, WeeklyTemplateRule):
        # One owner per day; start/end annotate that owner's window
        return _template_entry(rule, sunday_based_dow(on)).owner
    raise RuleError(f"Unknown rule type: {type(rule).__name__}", field="type")


def resolve_day(rule: ScheduleRuleDocument, on: date) -> DayAssignment:
    """Owner of ``on`` plus the day's time window, when the rule has one.

    For ODD_EVEN the window is only set on a week-start day with a shift
    time: the new owner's day starts at the handover.
    """
    if isinstance(rule, WeeklyTemplateRule):
        entry = _template_entry(rule, sunday_based_dow(on))
        return DayAssignment(entry.owner, entry.start, entry.end)

    owner = owner_on(rule, on)
    if (
        isinstance(rule, OddEvenRule)
        and rule.shift_time is not None
        and on.weekday() == WEEKDAY_INDEX[rule.week_start]
    ):
        return DayAssignment(owner, rule.shift_time, None)
    return DayAssignment(owner)


def owners_between(
    rule: ScheduleRuleDocument,
    start: date,
    end: date,
) -> list[tuple[date, DayAssignment]]:
    """Day-by-day assignments for the inclusive range ``start`` .. ``end``."""
    days: list[tuple[date, DayAssignment]] = []
    current = start
    while current <= end:
        days.append((current, resolve_day(rule, current)))
        if current == date.max:
            break
        current += timedelta(days=1)
    return days
