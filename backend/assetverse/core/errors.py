"""Error Hierarchy — typed, categorized exceptions for all AssetVerse failure modes.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Domain errors (400-level) are recoverable; infrastructure errors (500-level) are critical
    - to_response() produces the REST envelope, including how far a workflow got
    - No internal details leaked in user-facing messages

Design Decisions:
    - Single hierarchy with AssetVerseError base: FastAPI global handler catches all
    - ErrorContext as dataclass: carries completed_steps/rolled_back so a failed
      multi-step workflow is never reported as a single opaque failure
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


class ErrorSeverity(str, Enum):
    """Error severity for observability and client handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    VALIDATION = "validation"
    BUSINESS_RULE = "business_rule"
    RESOURCE_NOT_FOUND = "resource_not_found"
    AUTHORIZATION = "authorization"
    DATABASE = "database"
    INTERNAL = "internal"
    CONFLICT = "conflict"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    asset_id: str | None = None
    member_id: str | None = None
    sponsor_id: str | None = None
    completed_steps: list[str] = field(default_factory=list)
    rolled_back: bool = False


class AssetVerseError(Exception):
    """Base exception for all AssetVerse errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        http_status: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.http_status = http_status

    def to_response(self) -> dict:
        """Convert to standardized REST error response."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "timestamp": self.context.timestamp.isoformat(),
                "context": {
                    "asset_id": self.context.asset_id,
                    "member_id": self.context.member_id,
                    "sponsor_id": self.context.sponsor_id,
                    "completed_steps": list(self.context.completed_steps),
                    "rolled_back": self.context.rolled_back,
                },
            }
        }


# ─── Domain Errors (400-level) ──────────────────────────────────

class ValidationFailedError(AssetVerseError):
    """Business-level input validation failed."""
    def __init__(self, message: str, field: str, context: ErrorContext | None = None):
        super().__init__(
            message, "VALIDATION_ERROR", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context, 400,
        )
        self.field = field


class ResourceNotFoundError(AssetVerseError):
    """Requested resource does not exist."""
    def __init__(
        self, resource_type: str, resource_id: str, context: ErrorContext | None = None,
    ):
        super().__init__(
            f"{resource_type} '{resource_id}' not found",
            "RESOURCE_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, context, 404,
        )
        self.resource_type = resource_type
        self.resource_id = resource_id


class ForbiddenError(AssetVerseError):
    """Principal does not own the resource or lacks the role."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "FORBIDDEN", ErrorCategory.AUTHORIZATION,
            ErrorSeverity.WARNING, context, 403,
        )


class OutOfStockError(AssetVerseError):
    """Asset has fewer available units than requested."""
    def __init__(
        self, asset_id: str, requested: int, available: int,
        context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.asset_id = asset_id
        super().__init__(
            f"Asset '{asset_id}' is out of stock "
            f"(requested {requested}, available {available})",
            "OUT_OF_STOCK", ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.ERROR, ctx, 409,
        )
        self.requested = requested
        self.available = available


class CapacityExceededError(AssetVerseError):
    """Sponsor's package limit is reached for a new member pairing."""
    def __init__(
        self, sponsor_id: str, package_limit: int, active_count: int,
        context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.sponsor_id = sponsor_id
        super().__init__(
            f"Package limit reached ({active_count}/{package_limit} active members). "
            "Upgrade the subscription to add new members.",
            "CAPACITY_EXCEEDED", ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.ERROR, ctx, 409,
        )
        self.package_limit = package_limit
        self.active_count = active_count


class AlreadyProcessedError(AssetVerseError):
    """Terminal-state record asked to transition again."""
    def __init__(
        self, resource_type: str, resource_id: str, status: str,
        context: ErrorContext | None = None,
    ):
        super().__init__(
            f"{resource_type} '{resource_id}' is already {status}",
            "ALREADY_PROCESSED", ErrorCategory.CONFLICT,
            ErrorSeverity.WARNING, context, 409,
        )
        self.status = status


class InvalidReferenceError(AssetVerseError):
    """A foreign id is dangling or malformed."""
    def __init__(
        self, resource_type: str, reference: str, context: ErrorContext | None = None,
    ):
        super().__init__(
            f"Invalid reference to {resource_type} '{reference}'",
            "INVALID_REFERENCE", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context, 422,
        )


class AssetInUseError(AssetVerseError):
    """Asset still has outstanding assignments."""
    def __init__(self, asset_id: str, outstanding: int, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.asset_id = asset_id
        super().__init__(
            f"Asset '{asset_id}' has {outstanding} outstanding assignment(s)",
            "ASSET_IN_USE", ErrorCategory.CONFLICT,
            ErrorSeverity.ERROR, ctx, 409,
        )
        self.outstanding = outstanding


# ─── Infrastructure Errors (500-level) ──────────────────────────

class DatabaseError(AssetVerseError):
    """Database operation failed."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Database {operation} failed: {message}",
            "DATABASE_ERROR", ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, context, 503,
        )
        self.operation = operation
