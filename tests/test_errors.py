"""Tests for failure classification and the retry policy."""

from __future__ import annotations

import pytest

from conductor.core.errors import (
    DEFAULT_RETRY_POLICY,
    SEMANTIC_KINDS,
    STRUCTURAL_KINDS,
    ConductorError,
    Decision,
    EscalationError,
    FailureClass,
    RetryPolicy,
    classify_failure,
)
from conductor.core.parser import ParseErrorKind
from conductor.core.types import ExecutionErrorType


class TestClassifyFailure:
    @pytest.mark.parametrize("kind", sorted(STRUCTURAL_KINDS))
    def test_structural(self, kind: str) -> None:
        assert classify_failure(kind) == FailureClass.STRUCTURAL

    @pytest.mark.parametrize("kind", sorted(SEMANTIC_KINDS))
    def test_semantic(self, kind: str) -> None:
        assert classify_failure(kind) == FailureClass.SEMANTIC

    def test_unknown_kind_is_semantic(self) -> None:
        assert classify_failure("cosmic_ray") == FailureClass.SEMANTIC

    def test_kind_sets_are_disjoint(self) -> None:
        assert not STRUCTURAL_KINDS & SEMANTIC_KINDS

    def test_every_parser_and_execution_kind_is_classified(self) -> None:
        known = STRUCTURAL_KINDS | SEMANTIC_KINDS
        for kind in (*ParseErrorKind, *ExecutionErrorType):
            assert str(kind) in known


class TestRetryPolicy:
    """Structural failures retry up to three attempts; semantic never retry."""

    def test_structural_retries_until_limit(self) -> None:
        policy = RetryPolicy()
        assert policy.decide("invalid_json", 1) == Decision.RETRY
        assert policy.decide("invalid_json", 2) == Decision.RETRY
        assert policy.decide("invalid_json", 3) == Decision.ESCALATE

    def test_semantic_escalates_immediately(self) -> None:
        assert DEFAULT_RETRY_POLICY.decide("scope_violation", 1) == Decision.ESCALATE
        assert DEFAULT_RETRY_POLICY.decide("spec_unclear", 1) == Decision.ESCALATE

    def test_unknown_escalates(self) -> None:
        assert DEFAULT_RETRY_POLICY.decide("mystery", 1) == Decision.ESCALATE

    def test_custom_limit(self) -> None:
        policy = RetryPolicy(max_attempts=1)
        assert policy.decide("timeout", 1) == Decision.ESCALATE

    def test_attempt_is_one_based(self) -> None:
        with pytest.raises(ValueError):
            DEFAULT_RETRY_POLICY.decide("timeout", 0)


def test_escalation_error_carries_context() -> None:
    err = EscalationError("spawn failed", "task-1", {"kind": "system_prompt_missing"})
    assert isinstance(err, ConductorError)
    assert err.status == "escalated"
    assert err.task_id == "task-1"
    assert err.context["kind"] == "system_prompt_missing"
    assert str(err) == "spawn failed"
