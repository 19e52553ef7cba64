"""Error Hierarchy — status codes, codes, and the response envelope."""

from assetverse.core.domain_types import WorkflowStep
from assetverse.core.errors import (
    AlreadyProcessedError, AssetInUseError, AssetVerseError, DatabaseError,
    ErrorCategory, ForbiddenError, InvalidReferenceError, OutOfStockError,
    ResourceNotFoundError, ValidationFailedError,
)
from assetverse.core.step_log import StepLog


def test_status_codes_match_taxonomy():
    assert ResourceNotFoundError("Asset", "x").http_status == 404
    assert ForbiddenError("no").http_status == 403
    assert OutOfStockError("x", 1, 0).http_status == 409
    assert AlreadyProcessedError("Request", "x", "approved").http_status == 409
    assert InvalidReferenceError("Asset", "x").http_status == 422
    assert ValidationFailedError("bad", "f").http_status == 400
    assert AssetInUseError("x", 2).http_status == 409
    assert DatabaseError("down", "execute").http_status == 503


def test_all_errors_share_base():
    assert isinstance(InvalidReferenceError("Asset", "x"), AssetVerseError)
    assert DatabaseError("down", "execute").category == ErrorCategory.DATABASE


def test_to_response_envelope():
    body = ResourceNotFoundError("Asset", "abc").to_response()["error"]
    assert body["code"] == "RESOURCE_NOT_FOUND"
    assert "abc" in body["message"]
    assert body["context"]["completed_steps"] == []
    assert body["context"]["rolled_back"] is False


def test_step_log_annotates_error():
    steps = StepLog()
    steps.mark(WorkflowStep.CAPACITY_CHECK)
    steps.mark(WorkflowStep.LEDGER_DECREMENT)
    error = steps.annotate(OutOfStockError("a", 1, 0), rolled_back=True)
    ctx = error.to_response()["error"]["context"]
    assert ctx["completed_steps"] == ["capacity_check", "ledger_decrement"]
    assert ctx["rolled_back"] is True
