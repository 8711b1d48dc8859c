"""Error Hierarchy — typed, categorized exceptions for all adventure failure modes.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Domain errors (400-level) are recoverable; infrastructure errors (500-level) are critical
    - to_response() produces the REST envelope with a machine-readable code
    - No internal details leaked in user-facing messages (user_message overrides message)

Design Decisions:
    - Single hierarchy with EpochError base: FastAPI global handler catches all
    - ErrorContext as dataclass: rich observability without coupling to logging framework
    - Outline violations travel in `details`, never as separate exceptions per rule
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from datetime import datetime, timezone


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
    AUTHENTICATION = "authentication"
    AUTHORIZATION = "authorization"
    RESOURCE_NOT_FOUND = "resource_not_found"
    CONFLICT = "conflict"
    DATABASE = "database"
    EXTERNAL_API = "external_api"
    INTERNAL = "internal"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    adventure_id: str | None = None
    journey_id: str | None = None
    user_id: str | None = None
    user_message: str | None = None
    debug_info: dict[str, Any] | None = None
    retry_after_ms: int | None = None


class EpochError(Exception):
    """Base exception for all Epoch adventure errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        http_status: int = 500,
        details: list[dict] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.http_status = http_status
        self.details = details

    def to_response(self) -> dict:
        """Convert to standardized REST error response."""
        body = {
            "code": self.code,
            "message": self.context.user_message or self.message,
            "category": self.category.value,
            "severity": self.severity.value,
            "timestamp": self.context.timestamp.isoformat(),
        }
        if self.details is not None:
            body["details"] = self.details
        return {"error": body}


# ─── Domain Errors (400-level) ──────────────────────────────────

class OutlineValidationError(EpochError):
    """Outline violates one or more structural graph invariants."""
    def __init__(self, violations: list[dict], context: ErrorContext | None = None):
        super().__init__(
            f"Outline violates {len(violations)} structural invariant(s)",
            "OUTLINE_INVALID", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context, 422, details=violations,
        )
        self.violations = violations


class ChoiceMismatchError(EpochError):
    """Choice does not leave the journey's current node."""
    def __init__(self, choice_id: str, context: ErrorContext | None = None):
        super().__init__(
            f"Choice '{choice_id}' is not valid for the journey's current node",
            "CHOICE_INVALID_FOR_STATE", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context, 400,
        )
        self.choice_id = choice_id


class AuthenticationRequiredError(EpochError):
    """Request carries no user identity."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "Authentication required",
            "AUTHENTICATION_REQUIRED", ErrorCategory.AUTHENTICATION,
            ErrorSeverity.ERROR, context, 401,
        )


class AuthorizationError(EpochError):
    """Requesting user does not own the resource."""
    def __init__(
        self, resource_type: str, resource_id: str, context: ErrorContext | None = None,
    ):
        super().__init__(
            f"Not allowed to act on {resource_type} '{resource_id}'",
            "FORBIDDEN", ErrorCategory.AUTHORIZATION,
            ErrorSeverity.ERROR, context, 403,
        )


class ResourceNotFoundError(EpochError):
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


class ConflictError(EpochError):
    """Journey state does not allow the request (completed, active, or raced)."""
    def __init__(
        self, message: str, journey_id: str | None = None,
        context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.journey_id = ctx.journey_id or journey_id
        super().__init__(
            message, "JOURNEY_CONFLICT", ErrorCategory.CONFLICT,
            ErrorSeverity.WARNING, ctx, 409,
        )
        self.journey_id = journey_id

    def to_response(self) -> dict:
        response = super().to_response()
        response["error"]["journey_id"] = self.journey_id
        return response


class PathLimitExceededError(EpochError):
    """Path ledger reached its configured maximum length."""
    def __init__(self, max_length: int, context: ErrorContext | None = None):
        super().__init__(
            f"Journey path reached its maximum length ({max_length})",
            "PATH_LIMIT_EXCEEDED", ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.ERROR, context, 409,
        )
        self.max_length = max_length


# ─── Infrastructure / Internal Errors (500-level) ───────────────

class UnresolvedReferenceError(EpochError):
    """Symbolic id has no real id during build — validator/builder mismatch."""
    def __init__(self, symbolic_id: str, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.user_message = "Adventure construction failed"
        super().__init__(
            f"Symbolic node id '{symbolic_id}' was not resolved during build",
            "GRAPH_REFERENCE_UNRESOLVED", ErrorCategory.INTERNAL,
            ErrorSeverity.CRITICAL, ctx, 500,
        )
        self.symbolic_id = symbolic_id


class ContentGenerationError(EpochError):
    """External content generator failed or returned unusable output."""
    def __init__(
        self,
        message: str,
        failure_type: str,
        retry_after_ms: int | None = None,
        context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.retry_after_ms = retry_after_ms
        ctx.user_message = ctx.user_message or "Content generation failed"
        super().__init__(
            f"Content generation error ({failure_type}): {message}",
            "CONTENT_GENERATION_FAILED", ErrorCategory.EXTERNAL_API,
            ErrorSeverity.CRITICAL, ctx, 502,
        )
        self.failure_type = failure_type


class DatabaseError(EpochError):
    """Database operation failed."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Database {operation} failed: {message}",
            "DATABASE_ERROR", ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, context, 503,
        )
        self.operation = operation
