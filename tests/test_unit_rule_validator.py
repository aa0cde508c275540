"""Unit tests for schedule rule validation. No database required."""

import os

os.environ.setdefault("SECRET_KEY", "test-secret-key-for-unit-tests")

import pytest
from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from coparent.core.errors import RuleError
from coparent.schemas.schedule_rule import (
    DayEntry,
    OddEvenRule,
    ParentRole,
    ScheduleRuleDocument,
    WeekStart,
    WeeklyTemplateRule,
)
from coparent.services.rule_validator import (
    ensure_valid,
    is_day_end,
    is_hhmm,
    parse_anchor_date,
    validate_rule,
)


def _template(**overrides) -> WeeklyTemplateRule:
    data = {"days": [DayEntry(dow=d, owner=ParentRole.PARENT_B) for d in range(7)]}
    data.update(overrides)
    return WeeklyTemplateRule(**data)


class TestFormats:
    @pytest.mark.parametrize("value", ["00:00", "09:30", "18:00", "23:59"])
    def test_valid_hhmm(self, value):
        assert is_hhmm(value)

    @pytest.mark.parametrize(
        "value", ["24:00", "9:30", "18:60", "1800", "12:00\n", "1\u0663:00", "", None],
    )
    def test_invalid_hhmm(self, value):
        assert not is_hhmm(value)

    def test_day_end_allows_midnight_sentinel(self):
        assert is_day_end("24:00")
        assert not is_day_end("24:01")

    def test_anchor_date(self):
        assert parse_anchor_date("2024-01-01") is not None
        assert parse_anchor_date("2024-02-30") is None
        assert parse_anchor_date("2024-1-1") is None
        assert parse_anchor_date("2024-01-01T00:00:00") is None
        assert parse_anchor_date("2024-01-01\n") is None
        assert parse_anchor_date("\u0662\u0660\u0662\u0664-01-01") is None


class TestOddEven:
    def test_valid_rule(self):
        assert validate_rule(OddEvenRule(anchor_date="2024-01-01", shift_time="18:00")) is None

    def test_bad_anchor_date(self):
        error = validate_rule(OddEvenRule(anchor_date="01.01.2024"))
        assert isinstance(error, RuleError)
        assert error.field == "anchor_date"

    def test_bad_shift_time(self):
        error = validate_rule(OddEvenRule(anchor_date="2024-01-01", shift_time="6pm"))
        assert error.field == "shift_time"

    def test_shift_time_with_trailing_newline(self):
        error = validate_rule(OddEvenRule(anchor_date="2024-01-01", shift_time="12:00\n"))
        assert error.field == "shift_time"

    def test_same_parent_both_weeks(self):
        error = validate_rule(OddEvenRule(
            anchor_date="2024-01-01",
            parent_on_odd=ParentRole.PARENT_A,
            parent_on_even=ParentRole.PARENT_A,
        ))
        assert error.field == "parent_on_even"

    def test_any_week_start_is_allowed(self):
        rule = OddEvenRule(anchor_date="2024-01-03", week_start=WeekStart.WED)
        assert validate_rule(rule) is None


class TestWeeklyTemplate:
    def test_valid_template(self):
        assert validate_rule(_template()) is None

    def test_sunday_week_start_allowed(self):
        assert validate_rule(_template(week_start=WeekStart.SUN)) is None

    def test_other_week_start_rejected(self):
        error = validate_rule(_template(week_start=WeekStart.WED))
        assert error.field == "week_start"

    def test_missing_day(self):
        days = [DayEntry(dow=d, owner=ParentRole.PARENT_A) for d in range(6)]
        assert validate_rule(_template(days=days)).field == "days"

    def test_duplicate_day(self):
        days = [DayEntry(dow=d, owner=ParentRole.PARENT_A) for d in range(7)]
        days[6] = DayEntry(dow=5, owner=ParentRole.PARENT_A)
        assert validate_rule(_template(days=days)).field == "days"

    def test_day_out_of_range(self):
        days = [DayEntry(dow=d + 1, owner=ParentRole.PARENT_A) for d in range(7)]
        assert validate_rule(_template(days=days)).field == "days"

    def test_bad_start(self):
        days = [DayEntry(dow=d, owner=ParentRole.PARENT_A) for d in range(7)]
        days[2] = DayEntry(dow=2, owner=ParentRole.PARENT_A, start="7:00")
        assert validate_rule(_template(days=days)).field == "days[2].start"

    def test_end_of_day_sentinel(self):
        days = [DayEntry(dow=d, owner=ParentRole.PARENT_A) for d in range(7)]
        days[3] = DayEntry(dow=3, owner=ParentRole.PARENT_A, start="08:00", end="24:00")
        assert validate_rule(_template(days=days)) is None

    def test_start_must_precede_end(self):
        days = [DayEntry(dow=d, owner=ParentRole.PARENT_A) for d in range(7)]
        days[4] = DayEntry(dow=4, owner=ParentRole.PARENT_A, start="18:00", end="08:00")
        assert validate_rule(_template(days=days)).field == "days[4]"

    def test_ensure_valid_raises(self):
        with pytest.raises(RuleError) as exc_info:
            ensure_valid(_template(shift_time="25:00"))
        assert exc_info.value.status_code == 422
        assert exc_info.value.field == "shift_time"


class TestDocumentShape:
    adapter = TypeAdapter(ScheduleRuleDocument)

    def test_discriminator_selects_variant(self):
        rule = self.adapter.validate_python({"type": "ODD_EVEN", "anchor_date": "2024-01-01"})
        assert isinstance(rule, OddEvenRule)

    def test_fields_of_other_variant_rejected(self):
        with pytest.raises(PydanticValidationError):
            self.adapter.validate_python({
                "type": "ODD_EVEN",
                "anchor_date": "2024-01-01",
                "days": [],
            })

    def test_unknown_type_rejected(self):
        with pytest.raises(PydanticValidationError):
            self.adapter.validate_python({"type": "MONTHLY"})
