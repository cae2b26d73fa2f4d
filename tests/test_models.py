"""Tests for canonical models and money handling."""

import pytest
from pydantic import ValidationError as PydanticValidationError

from crmgraph.records.models import (
    NO_STAGE,
    ActivityFilter,
    FullName,
    Money,
    Opportunity,
    OrphanedTask,
    OrphanReport,
    RelationshipSummary,
    StageGroups,
    micros_to_value,
    value_to_micros,
)


class TestMoney:
    """Tests for micro-unit conversion."""

    @pytest.mark.parametrize(
        "value,micros",
        [
            (1000.50, 1_000_500_000),
            (0.1, 100_000),
            (0.0, 0),
            (19.99, 19_990_000),
            (1234567.891011, 1_234_567_891_011),
        ],
    )
    def test_value_to_micros_rounds(self, value, micros):
        """Whole-unit values convert with round(value * 1e6)."""
        assert value_to_micros(value) == micros

    def test_round_trip_within_half_micro(self):
        """Converting to micros and back stays within half a micro-unit."""
        for value in (0.1, 0.2, 3.333333, 1000.50, 99999.999999):
            assert abs(micros_to_value(value_to_micros(value)) - value) <= 0.5e-6

    def test_micro_sums_do_not_drift(self):
        """Summing in micros is exact where float sums drift."""
        amounts = [0.1] * 10
        float_total = sum(amounts)
        micro_total = sum(value_to_micros(a) for a in amounts)

        assert float_total != 1.0
        assert micro_total == 1_000_000
        assert micros_to_value(micro_total) == 1.0

    def test_money_value_property(self):
        """Money exposes a display value and None when unset."""
        assert Money(amount_micros=2_500_000, currency_code="EUR").value == 2.5
        assert Money().value is None


class TestModels:
    """Tests for model defaults and derived properties."""

    def test_full_name_display(self):
        assert FullName(first_name="Ada", last_name="Lovelace").display_name == "Ada Lovelace"
        assert FullName(first_name="Ada").display_name == "Ada"

    def test_opportunity_amount_defaults_to_zero(self):
        """An opportunity without amount counts as 0 micros."""
        assert Opportunity(id="o").amount_micros == 0
        assert Opportunity(id="o", amount=Money()).amount_micros == 0

    def test_activity_filter_defaults(self):
        flt = ActivityFilter()
        assert flt.limit == 20
        assert flt.offset == 0
        assert flt.types is None

    def test_relationship_counts_non_negative(self):
        """Summary counts reject negative values."""
        with pytest.raises(PydanticValidationError):
            RelationshipSummary(entity_id="x", entity_type="company", contacts=-1)

    def test_orphan_report_is_clean(self):
        assert OrphanReport().is_clean
        assert not OrphanReport(tasks=[OrphanedTask(id="t")]).is_clean

    def test_stage_groups_total_value(self):
        groups = StageGroups(total_value_micros=75_000_000)
        assert groups.total_value == 75.0
        assert NO_STAGE == "No stage"
