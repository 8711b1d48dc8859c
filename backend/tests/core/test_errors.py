"""Error Hierarchy — HTTP status, codes, and the response envelope.

Tests:
    - Each error maps to its documented status and code
    - to_response never leaks internal messages when user_message is set
    - Outline violations travel in details; conflicts carry journey_id
"""

import pytest

from epoch_adventures.core.errors import (
    AuthenticationRequiredError, AuthorizationError, ChoiceMismatchError,
    ConflictError, ContentGenerationError, DatabaseError, ErrorCategory,
    OutlineValidationError, PathLimitExceededError, ResourceNotFoundError,
    UnresolvedReferenceError,
)


@pytest.mark.parametrize("error, status, code", [
    (OutlineValidationError([]), 422, "OUTLINE_INVALID"),
    (ChoiceMismatchError("c1"), 400, "CHOICE_INVALID_FOR_STATE"),
    (AuthenticationRequiredError(), 401, "AUTHENTICATION_REQUIRED"),
    (AuthorizationError("Journey", "j1"), 403, "FORBIDDEN"),
    (ResourceNotFoundError("Journey", "j1"), 404, "RESOURCE_NOT_FOUND"),
    (ConflictError("done", "j1"), 409, "JOURNEY_CONFLICT"),
    (PathLimitExceededError(50), 409, "PATH_LIMIT_EXCEEDED"),
    (UnresolvedReferenceError("n9"), 500, "GRAPH_REFERENCE_UNRESOLVED"),
    (ContentGenerationError("boom", "timeout"), 502, "CONTENT_GENERATION_FAILED"),
    (DatabaseError("down", "commit"), 503, "DATABASE_ERROR"),
])
def test_status_and_code(error, status, code):
    assert error.http_status == status
    assert error.code == code
    assert error.to_response()["error"]["code"] == code


def test_outline_violations_in_details():
    violations = [{"code": "UNREACHABLE_NODE", "message": "m", "node_ids": ["X"]}]
    body = OutlineValidationError(violations).to_response()["error"]
    assert body["details"] == violations
    assert body["category"] == ErrorCategory.VALIDATION.value


def test_unresolved_reference_hides_internal_message():
    body = UnresolvedReferenceError("n9").to_response()["error"]
    assert body["message"] == "Adventure construction failed"
    assert "n9" not in body["message"]


def test_conflict_carries_journey_id():
    body = ConflictError("Journey already completed", "j-42").to_response()["error"]
    assert body["journey_id"] == "j-42"


def test_content_generation_error_keeps_retry_after():
    err = ContentGenerationError("slow down", "rate_limit", retry_after_ms=3000)
    assert err.context.retry_after_ms == 3000
    assert err.failure_type == "rate_limit"
