"""Core data model.

Every record here is a contract between pipeline stages. Records are frozen
and hold tuples instead of lists, so nothing downstream can mutate a value it
was handed. ``to_dict()`` produces the camelCase shape written to the audit
trail and returned by the API.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Literal


class AgentRole(StrEnum):
    """Built-in agent roles. Lookups go through the manifest registry by key."""

    COORDINATOR = "coordinator"
    PRODUCT = "product"
    DEV = "dev"
    QA = "qa"


class TaskType(StrEnum):
    """Operator-supplied type hint."""

    TECHNICAL = "technical"
    PRODUCT = "product"
    AMBIGUOUS = "ambiguous"


class Category(StrEnum):
    TECHNICAL_EXPLICIT = "technical_explicit"
    BUSINESS = "business"
    AMBIGUOUS = "ambiguous"


class Confidence(StrEnum):
    DETERMINISTIC = "deterministic"
    HEURISTIC = "heuristic"


class SpawnErrorKind(StrEnum):
    MANIFEST_INVALID = "manifest_invalid"
    SYSTEM_PROMPT_MISSING = "system_prompt_missing"
    PERMISSION_CONFLICT = "permission_conflict"
    SCOPE_VIOLATION = "scope_violation"


class ExecutionErrorType(StrEnum):
    SCOPE_VIOLATION = "scope_violation"
    SPEC_UNCLEAR = "spec_unclear"
    TOOL_FAILURE = "tool_failure"
    TIMEOUT = "timeout"
    INTERNAL = "internal"


class RunStatus(StrEnum):
    """Terminal outcome of a task."""

    COMPLETED = "completed"
    FAILED = "failed"
    ESCALATED = "escalated"


NetworkPolicy = Literal["none"] | tuple[str, ...]
FilesystemPolicy = Literal["workspace", "none"]


# ═══════════════════════════════════════════════════════════════════════════
# TASK
# ═══════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class Task:
    """Unit of work supplied by the operator."""

    task_id: str
    body: str
    type: TaskType | None = None
    context_registry: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"taskId": self.task_id, "body": self.body}
        if self.type is not None:
            data["type"] = str(self.type)
        data["contextRegistry"] = list(self.context_registry)
        return data


# ═══════════════════════════════════════════════════════════════════════════
# MANIFESTS AND SCOPE
# ═══════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class Permissions:
    """Operator-declared ceiling for a role.

    ``allow_network`` is ``False`` (denied), ``True`` (unrestricted, which never
    survives resolution) or an explicit tuple of allowed domains.
    """

    allow_network: bool | tuple[str, ...]
    allow_filesystem: bool
    max_execution_time: int  # milliseconds
    max_cost_cap: int  # tokens

    def to_dict(self) -> dict[str, Any]:
        network = (
            list(self.allow_network)
            if isinstance(self.allow_network, tuple)
            else self.allow_network
        )
        return {
            "allowNetwork": network,
            "allowFilesystem": self.allow_filesystem,
            "maxExecutionTime": self.max_execution_time,
            "maxCostCap": self.max_cost_cap,
        }


@dataclass(frozen=True)
class AgentManifest:
    """Static definition of a role. Read, never written."""

    role: str
    image: str
    system_prompt_path: str
    permissions: Permissions
    tools: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "role": self.role,
            "image": self.image,
            "systemPromptPath": self.system_prompt_path,
            "permissions": self.permissions.to_dict(),
            "tools": list(self.tools),
        }


@dataclass(frozen=True)
class ResolvedScope:
    """Enforcement-ready projection of a manifest."""

    role: str
    effective_tools: tuple[str, ...]
    network_policy: NetworkPolicy
    filesystem_policy: FilesystemPolicy
    max_execution_time: int
    max_cost_cap: int

    def to_dict(self) -> dict[str, Any]:
        network = (
            list(self.network_policy)
            if isinstance(self.network_policy, tuple)
            else self.network_policy
        )
        return {
            "role": self.role,
            "effectiveTools": list(self.effective_tools),
            "networkPolicy": network,
            "filesystemPolicy": self.filesystem_policy,
            "maxExecutionTime": self.max_execution_time,
            "maxCostCap": self.max_cost_cap,
        }


# ═══════════════════════════════════════════════════════════════════════════
# SPAWNING
# ═══════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class SpawnedAgent:
    """Ready-to-execute agent record. A configuration artifact, not a process."""

    agent_id: str
    manifest: AgentManifest
    task: Task
    system_prompt: str
    scope: ResolvedScope
    workspace_path: str
    created_at: str
    status: Literal["ready"] = "ready"


@dataclass(frozen=True)
class SpawnError:
    kind: SpawnErrorKind
    detail: str
    manifest_role: str

    def to_dict(self) -> dict[str, Any]:
        return {"kind": str(self.kind), "detail": self.detail, "manifestRole": self.manifest_role}


@dataclass(frozen=True)
class SpawnSuccess:
    agent: SpawnedAgent
    success: Literal[True] = True


@dataclass(frozen=True)
class SpawnFailure:
    error: SpawnError
    success: Literal[False] = False


SpawnResult = SpawnSuccess | SpawnFailure


# ═══════════════════════════════════════════════════════════════════════════
# CLASSIFICATION
# ═══════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class ClassificationResult:
    """Routing decision: which stage receives the task next."""

    category: Category
    routed_to: Literal["product", "dev"]
    confidence: Confidence
    rule_applied: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "category": str(self.category),
            "routedTo": self.routed_to,
            "confidence": str(self.confidence),
            "ruleApplied": self.rule_applied,
        }


# ═══════════════════════════════════════════════════════════════════════════
# INTENT SPEC
# ═══════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class IntentRequirement:
    id: str
    description: str
    verification: str  # must be mechanically evaluable


@dataclass(frozen=True)
class IntentConstraint:
    id: str
    description: str


@dataclass(frozen=True)
class IntentAssumption:
    id: str
    statement: str
    source: str


@dataclass(frozen=True)
class IntentSpec:
    """Immutable contract that gates execution.

    A correction is a new spec whose ``supersedes`` names the old spec id.
    """

    spec_id: str
    task_id: str
    objective: str
    requirements: tuple[IntentRequirement, ...]
    constraints: tuple[IntentConstraint, ...] = ()
    out_of_scope: tuple[str, ...] = ()
    assumptions: tuple[IntentAssumption, ...] = ()
    context_refs: tuple[str, ...] = ()
    supersedes: str | None = None

    def __post_init__(self) -> None:
        if not self.requirements:
            raise ValueError("IntentSpec requires at least one requirement")
        if not self.out_of_scope:
            raise ValueError("IntentSpec requires at least one out-of-scope entry")

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "specId": self.spec_id,
            "taskId": self.task_id,
            "objective": self.objective,
            "requirements": [
                {"id": r.id, "description": r.description, "verification": r.verification}
                for r in self.requirements
            ],
            "constraints": [{"id": c.id, "description": c.description} for c in self.constraints],
            "outOfScope": list(self.out_of_scope),
            "assumptions": [
                {"id": a.id, "statement": a.statement, "source": a.source}
                for a in self.assumptions
            ],
            "contextRefs": list(self.context_refs),
        }
        if self.supersedes is not None:
            data["supersedes"] = self.supersedes
        return data


# ═══════════════════════════════════════════════════════════════════════════
# EXECUTION OUTPUT
# ═══════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class Artifact:
    path: str
    content: str
    type: str


@dataclass(frozen=True)
class ToolInvocation:
    tool: str
    args: Mapping[str, Any]
    result: str
    timestamp: str


@dataclass(frozen=True)
class ExecutionError:
    type: ExecutionErrorType
    detail: str


@dataclass(frozen=True)
class ExecutionOutput:
    """Output of the execution stage. Binary status, no partial states."""

    task_id: str
    spec_id: str
    status: Literal["completed", "failed"]
    tool_invocations: tuple[ToolInvocation, ...] = ()
    artifacts: tuple[Artifact, ...] = ()
    error: ExecutionError | None = None

    def __post_init__(self) -> None:
        if self.status == "completed" and self.error is not None:
            raise ValueError("completed output cannot carry an error")
        if self.status == "failed":
            if self.error is None:
                raise ValueError("failed output requires an error")
            if self.artifacts:
                raise ValueError("failed output cannot carry artifacts")

    @classmethod
    def completed(
        cls,
        task_id: str,
        spec_id: str,
        artifacts: tuple[Artifact, ...],
        tool_invocations: tuple[ToolInvocation, ...] = (),
    ) -> ExecutionOutput:
        return cls(task_id, spec_id, "completed", tool_invocations, artifacts)

    @classmethod
    def failed(
        cls,
        task_id: str,
        spec_id: str,
        error: ExecutionError,
        tool_invocations: tuple[ToolInvocation, ...] = (),
    ) -> ExecutionOutput:
        return cls(task_id, spec_id, "failed", tool_invocations, (), error)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "taskId": self.task_id,
            "specId": self.spec_id,
            "status": self.status,
            "toolInvocations": [
                {"tool": t.tool, "args": dict(t.args), "result": t.result, "timestamp": t.timestamp}
                for t in self.tool_invocations
            ],
        }
        if self.status == "completed":
            data["artifacts"] = [
                {"path": a.path, "content": a.content, "type": a.type} for a in self.artifacts
            ]
        elif self.error is not None:
            data["error"] = {"type": str(self.error.type), "detail": self.error.detail}
        return data


# ═══════════════════════════════════════════════════════════════════════════
# VALIDATION REPORT
# ═══════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class RequirementResult:
    requirement_id: str
    status: Literal["pass", "fail"]
    evidence: str
    verification_method: str


@dataclass(frozen=True)
class ConstraintResult:
    constraint_id: str
    status: Literal["pass", "fail"]
    evidence: str


@dataclass(frozen=True)
class ScopeViolation:
    description: str
    invocation_ref: str


@dataclass(frozen=True)
class ValidationSummary:
    total_requirements: int
    passed_requirements: int
    failed_requirements: int
    total_constraints: int
    violated_constraints: int
    scope_violation_count: int

    def to_dict(self) -> dict[str, int]:
        return {
            "totalRequirements": self.total_requirements,
            "passedRequirements": self.passed_requirements,
            "failedRequirements": self.failed_requirements,
            "totalConstraints": self.total_constraints,
            "violatedConstraints": self.violated_constraints,
            "scopeViolationCount": self.scope_violation_count,
        }


@dataclass(frozen=True)
class ValidationReport:
    """Binary verdict with per-requirement and per-constraint evidence."""

    task_id: str
    spec_id: str
    verdict: Literal["pass", "fail"]
    requirement_results: tuple[RequirementResult, ...]
    constraint_results: tuple[ConstraintResult, ...]
    scope_violations: tuple[ScopeViolation, ...]
    summary: ValidationSummary

    def to_dict(self) -> dict[str, Any]:
        return {
            "taskId": self.task_id,
            "specId": self.spec_id,
            "verdict": self.verdict,
            "requirementResults": [
                {
                    "requirementId": r.requirement_id,
                    "status": r.status,
                    "evidence": r.evidence,
                    "verificationMethod": r.verification_method,
                }
                for r in self.requirement_results
            ],
            "constraintResults": [
                {"constraintId": c.constraint_id, "status": c.status, "evidence": c.evidence}
                for c in self.constraint_results
            ],
            "scopeViolations": [
                {"description": v.description, "invocationRef": v.invocation_ref}
                for v in self.scope_violations
            ],
            "summary": self.summary.to_dict(),
        }


def build_validation_report(
    task_id: str,
    spec_id: str,
    requirement_results: tuple[RequirementResult, ...],
    constraint_results: tuple[ConstraintResult, ...] = (),
    scope_violations: tuple[ScopeViolation, ...] = (),
) -> ValidationReport:
    """Derive verdict and summary from the individual results.

    The verdict is ``pass`` only when every requirement passed, no constraint
    was violated and no scope violation was recorded. An empty requirement
    list cannot pass.
    """
    passed = sum(1 for r in requirement_results if r.status == "pass")
    failed = len(requirement_results) - passed
    violated = sum(1 for c in constraint_results if c.status == "fail")

    verdict: Literal["pass", "fail"] = (
        "pass"
        if requirement_results and failed == 0 and violated == 0 and not scope_violations
        else "fail"
    )

    return ValidationReport(
        task_id=task_id,
        spec_id=spec_id,
        verdict=verdict,
        requirement_results=requirement_results,
        constraint_results=constraint_results,
        scope_violations=scope_violations,
        summary=ValidationSummary(
            total_requirements=len(requirement_results),
            passed_requirements=passed,
            failed_requirements=failed,
            total_constraints=len(constraint_results),
            violated_constraints=violated,
            scope_violation_count=len(scope_violations),
        ),
    )


# ═══════════════════════════════════════════════════════════════════════════
# AUDIT AND AGGREGATE RESULT
# ═══════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class AuditEvent:
    """One append-only audit record."""

    task_id: str
    event_type: str
    data: Mapping[str, Any] = field(default_factory=dict)
    agent_id: str | None = None
    timestamp: str = ""

    def to_dict(self) -> dict[str, Any]:
        record: dict[str, Any] = {
            "timestamp": self.timestamp,
            "taskId": self.task_id,
            "eventType": self.event_type,
        }
        if self.agent_id is not None:
            record["agentId"] = self.agent_id
        record["data"] = dict(self.data)
        return record

    @classmethod
    def from_dict(cls, record: Mapping[str, Any]) -> AuditEvent:
        return cls(
            task_id=record["taskId"],
            event_type=record["eventType"],
            data=record.get("data", {}),
            agent_id=record.get("agentId"),
            timestamp=record.get("timestamp", ""),
        )


@dataclass(frozen=True)
class ExecutionResult:
    """Aggregate result of one pipeline run."""

    task_id: str
    classification: ClassificationResult
    intent_spec: IntentSpec
    execution_output: ExecutionOutput
    validation: ValidationReport

    @property
    def status(self) -> RunStatus:
        return RunStatus.COMPLETED if self.validation.verdict == "pass" else RunStatus.FAILED

    def to_dict(self) -> dict[str, Any]:
        return {
            "taskId": self.task_id,
            "status": str(self.status),
            "classification": self.classification.to_dict(),
            "intentSpec": self.intent_spec.to_dict(),
            "executionOutput": self.execution_output.to_dict(),
            "validation": self.validation.to_dict(),
        }
