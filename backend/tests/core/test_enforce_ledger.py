"""Ledger Arithmetic — tests for pure stock checks, clamping and drift detection.

Tests cover:
    - check_stock raises OutOfStock below the requested amount
    - clamp_increment never exceeds total
    - detect_drift names each anomaly
    - check_new_total refuses to shrink below outstanding loans
    - summarize_stock aggregates and counts low stock
"""

import pytest

from assetverse.core.enforce_ledger import (
    check_new_total, check_quantity, check_stock, clamp_increment,
    detect_drift, reconciled_available, summarize_stock,
)
from assetverse.core.errors import OutOfStockError, ValidationFailedError


# ─── check_stock ─────────────────────────────────────────────────

def test_check_stock_passes_with_enough_units():
    assert check_stock("a1", available=1) is None


def test_check_stock_raises_when_empty():
    with pytest.raises(OutOfStockError) as exc:
        check_stock("a1", available=0)
    assert exc.value.http_status == 409
    assert exc.value.context.asset_id == "a1"


def test_check_stock_reports_zero_for_negative_counter():
    with pytest.raises(OutOfStockError) as exc:
        check_stock("a1", available=-2)
    assert exc.value.available == 0


def test_check_stock_rejects_non_positive_amount():
    with pytest.raises(ValidationFailedError):
        check_stock("a1", available=5, by=0)


# ─── clamp / reconcile ───────────────────────────────────────────

def test_clamp_increment_adds_units():
    assert clamp_increment(total=3, available=1) == 2


def test_clamp_increment_stops_at_total():
    assert clamp_increment(total=3, available=3) == 3
    assert clamp_increment(total=3, available=2, by=5) == 3


def test_reconciled_available_is_total_minus_outstanding():
    assert reconciled_available(total=5, outstanding=2) == 3


def test_reconciled_available_never_negative():
    assert reconciled_available(total=1, outstanding=4) == 0


# ─── detect_drift ────────────────────────────────────────────────

def test_detect_drift_none_when_consistent():
    assert detect_drift(total=3, available=1, outstanding=2) is None


def test_detect_drift_missing():
    assert detect_drift(total=3, available=None, outstanding=0) == "missing"


def test_detect_drift_negative():
    assert detect_drift(total=3, available=-1, outstanding=0) == "negative"


def test_detect_drift_above_total():
    assert detect_drift(total=3, available=4, outstanding=0) == "above_total"


def test_detect_drift_mismatch():
    assert detect_drift(total=3, available=3, outstanding=1) == "mismatch"


# ─── check_new_total / check_quantity ────────────────────────────

def test_check_quantity_rejects_negative():
    with pytest.raises(ValidationFailedError) as exc:
        check_quantity(-1, "total_quantity")
    assert exc.value.field == "total_quantity"


def test_check_new_total_allows_equal_to_outstanding():
    assert check_new_total(new_total=2, outstanding=2) is None


def test_check_new_total_rejects_below_outstanding():
    with pytest.raises(ValidationFailedError):
        check_new_total(new_total=1, outstanding=2)


# ─── summarize_stock ─────────────────────────────────────────────

def test_summarize_stock_aggregates_rows():
    summary = summarize_stock([(10, 8), (3, 1), (6, 6)], low_stock_threshold=5)
    assert summary == {
        "total_assets": 3,
        "total_units": 19,
        "total_available": 15,
        "low_stock": 1,
    }


def test_summarize_stock_empty():
    assert summarize_stock([], 5)["total_assets"] == 0
