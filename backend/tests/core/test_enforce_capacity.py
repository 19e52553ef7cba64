"""Capacity Rules — tests for package-limit checks.

Tests cover:
    - can_add is strict (< limit)
    - check_capacity skips already-Active pairs
    - capacity_summary flags a drifted cached counter
"""

import pytest

from assetverse.core.enforce_capacity import can_add, capacity_summary, check_capacity
from assetverse.core.errors import CapacityExceededError


def test_can_add_below_limit():
    assert can_add(active_count=2, package_limit=3) is True


def test_can_add_false_at_limit():
    assert can_add(active_count=3, package_limit=3) is False


def test_check_capacity_raises_for_new_pair_at_limit():
    with pytest.raises(CapacityExceededError) as exc:
        check_capacity("s1", active_count=3, package_limit=3, pair_active=False)
    assert exc.value.package_limit == 3
    assert exc.value.context.sponsor_id == "s1"
    assert exc.value.to_response()["error"]["code"] == "CAPACITY_EXCEEDED"


def test_check_capacity_ignores_limit_for_active_pair():
    assert check_capacity("s1", active_count=5, package_limit=3, pair_active=True) is None


def test_capacity_summary_in_sync():
    summary = capacity_summary(package_limit=5, active_count=2, cached_count=2)
    assert summary["remaining"] == 3
    assert summary["can_add"] is True
    assert summary["in_sync"] is True


def test_capacity_summary_detects_drift_and_floors_remaining():
    summary = capacity_summary(package_limit=2, active_count=4, cached_count=3)
    assert summary["remaining"] == 0
    assert summary["can_add"] is False
    assert summary["in_sync"] is False
