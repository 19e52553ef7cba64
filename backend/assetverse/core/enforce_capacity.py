"""Capacity Rules — pure package-limit checks for new member pairings.

Invariants:
    - All functions are PURE: no IO, no async, no DB
    - A pairing that is already Active never consults the limit
    - The limit bounds Active affiliations, not loans

Design Decisions:
    - Separate from the gate service: the gate does the counting IO,
      this module decides (testable with plain integers)
"""

from assetverse.core.errors import CapacityExceededError


def can_add(active_count: int, package_limit: int) -> bool:
    """True iff one more Active affiliation fits under the limit."""
    return active_count < package_limit


def check_capacity(
    sponsor_id: str, active_count: int, package_limit: int, pair_active: bool,
) -> None:
    """Raise CapacityExceededError when a new pairing would exceed the limit."""
    if pair_active:
        return
    if not can_add(active_count, package_limit):
        raise CapacityExceededError(sponsor_id, package_limit, active_count)


def capacity_summary(
    package_limit: int, active_count: int, cached_count: int,
) -> dict:
    """Capacity view for a sponsor. `in_sync` flags a drifted cached counter."""
    return {
        "package_limit": package_limit,
        "active_members": active_count,
        "current_employees": cached_count,
        "remaining": max(package_limit - active_count, 0),
        "can_add": can_add(active_count, package_limit),
        "in_sync": cached_count == active_count,
    }
