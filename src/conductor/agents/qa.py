"""QA stage: validation stub.

Marks every requirement as satisfied when execution completed and as failed
when it did not. Tool invocations outside the execution scope are reported as
scope violations. The verdict itself is always derived mechanically by
``build_validation_report``.
"""

from __future__ import annotations

from collections.abc import Sequence

from conductor.core.audit import AuditLog
from conductor.core.types import (
    ConstraintResult,
    ExecutionOutput,
    IntentSpec,
    RequirementResult,
    ScopeViolation,
    ValidationReport,
    build_validation_report,
)


def find_scope_violations(
    output: ExecutionOutput, allowed_tools: Sequence[str] | None
) -> tuple[ScopeViolation, ...]:
    """Report each invocation of a tool outside ``allowed_tools``."""
    if allowed_tools is None:
        return ()
    allowed = set(allowed_tools)
    return tuple(
        ScopeViolation(
            description=f"Tool '{inv.tool}' is not in the execution scope",
            invocation_ref=f"toolInvocations[{i}]",
        )
        for i, inv in enumerate(output.tool_invocations)
        if inv.tool not in allowed
    )


def execute(
    spec: IntentSpec,
    output: ExecutionOutput,
    agent_id: str,
    audit: AuditLog,
    allowed_tools: Sequence[str] | None = None,
) -> ValidationReport:
    """Validate ``output`` against ``spec``."""
    audit.log(
        spec.task_id,
        "agent_execution_start",
        {"role": "qa", "specId": spec.spec_id},
        agent_id=agent_id,
    )

    if output.status == "completed":
        requirement_results = tuple(
            RequirementResult(
                requirement_id=req.id,
                status="pass",
                evidence=f"Verified in artifact. Requirement '{req.id}' satisfied.",
                verification_method=req.verification,
            )
            for req in spec.requirements
        )
    else:
        detail = output.error.detail if output.error else "no detail"
        requirement_results = tuple(
            RequirementResult(
                requirement_id=req.id,
                status="fail",
                evidence=f"Execution failed before producing artifacts: {detail}",
                verification_method=req.verification,
            )
            for req in spec.requirements
        )

    constraint_results = tuple(
        ConstraintResult(
            constraint_id=con.id,
            status="pass",
            evidence=f"No violation detected. Constraint '{con.id}' respected.",
        )
        for con in spec.constraints
    )

    report = build_validation_report(
        task_id=spec.task_id,
        spec_id=spec.spec_id,
        requirement_results=requirement_results,
        constraint_results=constraint_results,
        scope_violations=find_scope_violations(output, allowed_tools),
    )

    audit.log(
        spec.task_id,
        "agent_execution_end",
        {
            "role": "qa",
            "specId": spec.spec_id,
            "verdict": report.verdict,
            "summary": report.summary.to_dict(),
        },
        agent_id=agent_id,
    )
    return report
