"""Tests for coverage scoring and candidate months of electricity bills."""

import pytest

from src.clients.reconciliation.coverage import candidate_months, score


@pytest.mark.parametrize("months", [[1], [7, 8], [12, 1], [3, 4, 5], []])
def test_identical_months_score_100(months):
    assert score(months, list(months)) == 100


def test_score_same_months_out_of_order():
    """Not an exact ordered match: full overlap (80) plus adjacency (15)."""
    assert score([8, 7], [7, 8]) == pytest.approx(95)


def test_score_partial_overlap_with_adjacency():
    assert score([7], [7, 8]) == pytest.approx(55)


def test_score_adjacent_only():
    assert score([6], [7, 8]) == pytest.approx(15)
    assert score([12], [1]) == pytest.approx(15)


def test_score_unrelated_months_is_zero():
    assert score([3], [7, 8]) == 0
    assert score([], [7, 8]) == 0


def test_score_penalises_more_than_one_extra_month():
    # overlap 1/3 * 80 + 15 adjacency - 20 for two extra months
    assert score([5, 6, 7], [7, 8]) == pytest.approx(80 / 3 + 15 - 20)


def test_score_is_clamped():
    assert score([1, 2, 3, 4, 5], [9]) == 0
    for c in ([7], [8], [6, 7], [7, 8, 9, 10]):
        assert 0 <= score(c, [7, 8]) <= 100


def test_candidate_months_full_month_bill(bill):
    assert candidate_months(bill("Electricity", "01/07/2024", "31/07/2024", "10,00")) == [7]


def test_candidate_months_two_month_bill(bill):
    assert candidate_months(bill("Electricity", "01/07/2024", "31/08/2024", "10,00")) == [7, 8]


def test_candidate_months_short_bill_uses_month_with_most_days(bill):
    assert candidate_months(bill("Electricity", "20/07/2024", "05/08/2024", "10,00")) == [7]


def test_candidate_months_without_start_uses_billing_month(bill):
    assert candidate_months(bill("Electricity", None, "05/08/2024", "10,00")) == [7]
    assert candidate_months(bill("Electricity", None, None, "10,00")) == []
