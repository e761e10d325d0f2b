"""Tests for billing periods, billing months, cohorts and day coverage."""

from datetime import date, timedelta

import pytest

from src.clients.reconciliation.periods import (
    PERIOD_LABELS,
    coverage_by_month,
    default_period,
    dominant_month,
    parse_period,
    resolve_billing_month,
    resolve_cohort,
    significant_months,
)
from src.clients.reconciliation.schemas import Cohort, Period


def test_resolve_billing_month_on_or_before_cutoff_is_previous_month():
    """Every day 1..9 of every month resolves to the previous month; January wraps to December."""
    for month in range(1, 13):
        for day in range(1, 10):
            expected = 12 if month == 1 else month - 1
            assert resolve_billing_month(date(2024, month, day)) == expected


def test_resolve_billing_month_after_cutoff_is_same_month():
    assert resolve_billing_month(date(2024, 1, 10)) == 1
    assert resolve_billing_month(date(2024, 8, 31)) == 8
    assert resolve_billing_month(date(2024, 12, 15)) == 12


def test_resolve_billing_month_custom_cutoff():
    assert resolve_billing_month(date(2024, 8, 12), cutoff_day=12) == 7
    assert resolve_billing_month(date(2024, 8, 12), cutoff_day=0) == 8


def test_coverage_by_month_counts_inclusive_days():
    cov = coverage_by_month(date(2024, 7, 20), date(2024, 9, 5))
    assert cov == {"2024-07": 12, "2024-08": 31, "2024-09": 5}


def test_coverage_by_month_sums_to_span_length():
    """Day counts always add up to end - start + 1."""
    start = date(2023, 11, 3)
    for length in (0, 1, 14, 31, 45, 62, 100, 400):
        end = start + timedelta(days=length)
        assert sum(coverage_by_month(start, end).values()) == length + 1


def test_coverage_by_month_reversed_span_is_empty():
    assert coverage_by_month(date(2024, 8, 1), date(2024, 7, 1)) == {}


def test_significant_months_across_year_end_is_chronological():
    cov = coverage_by_month(date(2024, 12, 10), date(2025, 1, 20))
    assert cov == {"2024-12": 22, "2025-01": 20}
    assert significant_months(cov) == [12, 1]
    assert significant_months(cov, min_days=21) == [12]


def test_dominant_month():
    assert dominant_month(coverage_by_month(date(2024, 7, 20), date(2024, 8, 5))) == 7
    assert dominant_month({}) is None


def test_parse_period_labels():
    assert parse_period("Jul-Aug") == Period(first_month=7, second_month=8)
    assert parse_period(" dec-jan ") == Period(first_month=12, second_month=1)
    assert len(PERIOD_LABELS) == 12
    for label in PERIOD_LABELS:
        assert parse_period(label).label == label


def test_parse_period_unknown_label_raises():
    with pytest.raises(ValueError):
        parse_period("Jul-Sep")
    with pytest.raises(ValueError):
        parse_period("")


def test_period_months_must_be_consecutive():
    with pytest.raises(ValueError):
        Period(first_month=3, second_month=5)
    assert Period(first_month=12, second_month=1).months == [12, 1]


def test_default_period_is_previous_and_current_month():
    assert default_period(date(2024, 8, 3)) == Period(first_month=7, second_month=8)
    assert default_period(date(2025, 1, 15)) == Period(first_month=12, second_month=1)


def test_resolve_cohort_from_second_month():
    assert resolve_cohort(parse_period("Jul-Aug")) == Cohort.EVEN
    assert resolve_cohort(parse_period("Aug-Sep")) == Cohort.ODD
    assert resolve_cohort(parse_period("Dec-Jan")) == Cohort.ODD
