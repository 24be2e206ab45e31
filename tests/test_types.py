"""Tests for record types and verdict derivation."""

from __future__ import annotations

import pytest

from conductor.core.types import (
    Artifact,
    ConstraintResult,
    ExecutionError,
    ExecutionErrorType,
    ExecutionOutput,
    IntentRequirement,
    IntentSpec,
    RequirementResult,
    ScopeViolation,
    Task,
    TaskType,
    build_validation_report,
)


def _req(status: str, rid: str = "REQ-001") -> RequirementResult:
    return RequirementResult(rid, status, "evidence", "method")  # type: ignore[arg-type]


class TestIntentSpec:
    """Construction rejects specs that could not gate execution."""

    def test_requires_requirements(self) -> None:
        with pytest.raises(ValueError, match="requirement"):
            IntentSpec("spec-1", "task-1", "obj", requirements=(), out_of_scope=("x",))

    def test_requires_out_of_scope(self) -> None:
        req = IntentRequirement("REQ-001", "d", "v")
        with pytest.raises(ValueError, match="out-of-scope"):
            IntentSpec("spec-1", "task-1", "obj", requirements=(req,))

    def test_to_dict_uses_camel_case(self) -> None:
        req = IntentRequirement("REQ-001", "d", "v")
        spec = IntentSpec(
            "spec-2", "task-1", "obj", (req,), out_of_scope=("x",), supersedes="spec-1"
        )
        data = spec.to_dict()
        assert data["specId"] == "spec-2"
        assert data["outOfScope"] == ["x"]
        assert data["supersedes"] == "spec-1"


class TestExecutionOutput:
    def test_completed(self) -> None:
        out = ExecutionOutput.completed("t", "s", (Artifact("a.py", "", "source"),))
        assert out.status == "completed"
        assert "artifacts" in out.to_dict()
        assert "error" not in out.to_dict()

    def test_failed_requires_error(self) -> None:
        with pytest.raises(ValueError):
            ExecutionOutput("t", "s", "failed")

    def test_failed_cannot_carry_artifacts(self) -> None:
        with pytest.raises(ValueError):
            ExecutionOutput(
                "t",
                "s",
                "failed",
                artifacts=(Artifact("a.py", "", "source"),),
                error=ExecutionError(ExecutionErrorType.TIMEOUT, "slow"),
            )

    def test_completed_cannot_carry_error(self) -> None:
        with pytest.raises(ValueError):
            ExecutionOutput(
                "t", "s", "completed", error=ExecutionError(ExecutionErrorType.INTERNAL, "x")
            )

    def test_failed_to_dict(self) -> None:
        out = ExecutionOutput.failed("t", "s", ExecutionError(ExecutionErrorType.SPEC_UNCLEAR, "?"))
        assert out.to_dict()["error"] == {"type": "spec_unclear", "detail": "?"}


class TestValidationReport:
    """The verdict is derived, never chosen."""

    def test_all_pass(self) -> None:
        report = build_validation_report("t", "s", (_req("pass"), _req("pass", "REQ-002")))
        assert report.verdict == "pass"
        assert report.summary.total_requirements == 2
        assert report.summary.passed_requirements == 2

    def test_one_failed_requirement_fails(self) -> None:
        report = build_validation_report("t", "s", (_req("pass"), _req("fail", "REQ-002")))
        assert report.verdict == "fail"
        assert report.summary.failed_requirements == 1

    def test_constraint_violation_fails(self) -> None:
        report = build_validation_report(
            "t", "s", (_req("pass"),), (ConstraintResult("CON-001", "fail", "broken"),)
        )
        assert report.verdict == "fail"
        assert report.summary.violated_constraints == 1

    def test_scope_violation_fails(self) -> None:
        report = build_validation_report(
            "t", "s", (_req("pass"),), scope_violations=(ScopeViolation("curl", "ref"),)
        )
        assert report.verdict == "fail"
        assert report.summary.scope_violation_count == 1

    def test_no_requirements_cannot_pass(self) -> None:
        assert build_validation_report("t", "s", ()).verdict == "fail"

    def test_adding_a_failure_never_flips_to_pass(self) -> None:
        results = [_req("pass", f"REQ-{i:03d}") for i in range(5)]
        base = build_validation_report("t", "s", tuple(results))
        worse = build_validation_report("t", "s", (*results, _req("fail", "REQ-999")))
        assert base.verdict == "pass"
        assert worse.verdict == "fail"


def test_task_to_dict() -> None:
    task = Task("task-1", "body", TaskType.TECHNICAL, ("docs/a.md",))
    assert task.to_dict() == {
        "taskId": "task-1",
        "body": "body",
        "type": "technical",
        "contextRegistry": ["docs/a.md"],
    }
