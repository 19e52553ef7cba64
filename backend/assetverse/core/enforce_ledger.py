"""Ledger Arithmetic — pure stock checks, clamping, and drift detection.

Invariants:
    - All functions are PURE: no IO, no async, no DB, no side effects
    - 0 <= available <= total holds for every value these functions return
    - check_* functions raise typed errors on violation, return None on success

Design Decisions:
    - The storage layer enforces the same guards with conditional UPDATEs;
      these functions exist so services can explain a failed guard precisely
      and so the arithmetic is testable without a database
"""

from assetverse.core.errors import OutOfStockError, ValidationFailedError


def check_quantity(value: int, field: str) -> None:
    """Quantities are non-negative integers."""
    if value < 0:
        raise ValidationFailedError(f"{field} must be >= 0 (got {value})", field)


def check_stock(asset_id: str, available: int, by: int = 1) -> None:
    """Raise OutOfStockError unless `by` units are available."""
    if by < 1:
        raise ValidationFailedError(f"by must be >= 1 (got {by})", "by")
    if available < by:
        raise OutOfStockError(asset_id, by, max(available, 0))


def clamp_increment(total: int, available: int, by: int = 1) -> int:
    """New available count after returning `by` units, never above total."""
    return max(0, min(total, available + by))


def reconciled_available(total: int, outstanding: int) -> int:
    """Available count derived from the outstanding loans."""
    return max(0, min(total, total - outstanding))


def detect_drift(total: int, available: int | None, outstanding: int) -> str | None:
    """Describe why a stored counter disagrees with the loan records, or None."""
    if available is None:
        return "missing"
    if available < 0:
        return "negative"
    if available > total:
        return "above_total"
    if available != reconciled_available(total, outstanding):
        return "mismatch"
    return None


def check_new_total(new_total: int, outstanding: int) -> None:
    """A total may not shrink below the units currently on loan."""
    check_quantity(new_total, "total_quantity")
    if new_total < outstanding:
        raise ValidationFailedError(
            f"total_quantity {new_total} is below the {outstanding} unit(s) on loan",
            "total_quantity",
        )


def summarize_stock(rows: list[tuple[int, int]], low_stock_threshold: int) -> dict:
    """Aggregate (total, available) pairs into a catalog summary."""
    return {
        "total_assets": len(rows),
        "total_units": sum(total for total, _ in rows),
        "total_available": sum(available for _, available in rows),
        "low_stock": sum(1 for _, available in rows if available <= low_stock_threshold),
    }
