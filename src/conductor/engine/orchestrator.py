"""Pipeline Orchestrator - Sequences the agent stages for one task."""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Callable, Generator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from conductor.agents import coordinator, dev, product, qa
from conductor.config import Settings
from conductor.core.audit import AuditLog, utc_now
from conductor.core.errors import EscalationError
from conductor.core.manifests import DEFAULT_REGISTRY, ManifestRegistry
from conductor.core.runtime import generate_spec_id, spawn_agent
from conductor.core.types import (
    AgentRole,
    ClassificationResult,
    ExecutionOutput,
    ExecutionResult,
    IntentAssumption,
    IntentRequirement,
    IntentSpec,
    RunStatus,
    SpawnedAgent,
    Task,
    ValidationReport,
)
from conductor.storage.database import Database

logger = logging.getLogger(__name__)


class PipelineState(StrEnum):
    """Per-task pipeline states."""

    STARTED = "started"
    CLASSIFIED = "classified"
    DISAMBIGUATING = "disambiguating"
    SPEC_READY = "spec-ready"
    EXECUTING = "executing"
    VALIDATING = "validating"
    ENDED = "ended"


_TRANSITIONS: dict[PipelineState, frozenset[PipelineState]] = {
    PipelineState.STARTED: frozenset({PipelineState.CLASSIFIED}),
    PipelineState.CLASSIFIED: frozenset({PipelineState.DISAMBIGUATING, PipelineState.SPEC_READY}),
    PipelineState.DISAMBIGUATING: frozenset({PipelineState.SPEC_READY}),
    PipelineState.SPEC_READY: frozenset({PipelineState.EXECUTING}),
    PipelineState.EXECUTING: frozenset({PipelineState.VALIDATING}),
    PipelineState.VALIDATING: frozenset({PipelineState.ENDED}),
    PipelineState.ENDED: frozenset(),
}


@dataclass(frozen=True)
class Stages:
    """Stage implementations. Stubs by default; any conforming callable works."""

    classify: Callable[[Task, AuditLog, str | None], ClassificationResult] = coordinator.classify
    disambiguate: Callable[[Task, ClassificationResult, str, AuditLog], IntentSpec] = product.execute
    execute: Callable[[IntentSpec, str, AuditLog], ExecutionOutput] = dev.execute
    validate: Callable[
        [IntentSpec, ExecutionOutput, str, AuditLog, Sequence[str] | None], ValidationReport
    ] = qa.execute


def build_inline_spec(task: Task) -> IntentSpec:
    """Minimal single-requirement spec used when disambiguation is skipped."""
    return IntentSpec(
        spec_id=generate_spec_id(),
        task_id=task.task_id,
        objective=task.body,
        requirements=(
            IntentRequirement(
                id="REQ-001",
                description=task.body,
                verification="Implementation satisfies the task description as stated.",
            ),
        ),
        out_of_scope=("Anything not explicitly stated in the task description.",),
        assumptions=(
            IntentAssumption(
                id="ASM-001",
                statement="The task description is a complete, unambiguous technical instruction.",
                source="operator_input",
            ),
        ),
        context_refs=task.context_registry,
    )


class Orchestrator:
    """
    Runs the fixed pipeline for a single task.

    Workflow:
    1. Log execution start
    2. Spawn coordinator -> classify -> destroy
    3. Spawn product -> Intent Spec -> destroy, or synthesize an inline spec
    4. Spawn dev -> execution output -> destroy
    5. Spawn qa -> validation report -> destroy
    6. Log execution end and return the aggregate result

    Stages run strictly one at a time. There is no retry inside the loop; an
    unexpected fault aborts the run and propagates to the caller.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        registry: ManifestRegistry | None = None,
        stages: Stages | None = None,
        audit: AuditLog | None = None,
        db: Database | None = None,
    ) -> None:
        self.settings = settings or Settings()
        self.registry = DEFAULT_REGISTRY if registry is None else registry
        self.stages = stages or Stages()
        self.audit = audit or AuditLog(self.settings.project_root)
        self.db = db

    def run(self, task: Task) -> ExecutionResult:
        """
        Run the full pipeline for ``task``.

        Returns:
            ExecutionResult with classification, spec, execution output and
            validation report

        Raises:
            EscalationError: If a stage agent could not be spawned
            Exception: Any unexpected stage fault, after ``execution_end`` is logged
        """
        started_at = utc_now()
        self.audit.log(
            task.task_id,
            "execution_start",
            {
                "body": task.body,
                "type": str(task.type) if task.type is not None else None,
                "contextRegistry": list(task.context_registry),
            },
        )

        try:
            result = self._run_stages(task)
        except Exception as e:
            context = e.context if isinstance(e, EscalationError) else {}
            self.audit.log(
                task.task_id,
                "execution_end",
                {"status": str(RunStatus.ESCALATED), "error": str(e), **context},
            )
            self._record(
                {
                    "task_id": task.task_id,
                    "body": task.body,
                    "status": str(RunStatus.ESCALATED),
                    "started_at": started_at,
                    "completed_at": utc_now(),
                }
            )
            logger.error("run %s aborted: %s", task.task_id, e)
            raise

        self.audit.log(
            task.task_id,
            "execution_end",
            {
                "verdict": result.validation.verdict,
                "summary": result.validation.summary.to_dict(),
                "status": str(result.status),
            },
        )
        self._record(
            {
                "task_id": task.task_id,
                "body": task.body,
                "category": str(result.classification.category),
                "routed_to": result.classification.routed_to,
                "spec_id": result.intent_spec.spec_id,
                "execution_status": result.execution_output.status,
                "verdict": result.validation.verdict,
                "status": str(result.status),
                "started_at": started_at,
                "completed_at": utc_now(),
            }
        )
        return result

    def _run_stages(self, task: Task) -> ExecutionResult:
        state = PipelineState.STARTED

        with self._agent(AgentRole.COORDINATOR, task) as agent:
            classification = self.stages.classify(task, self.audit, agent.agent_id)
        state = self._advance(task, state, PipelineState.CLASSIFIED)

        if classification.routed_to == AgentRole.PRODUCT:
            state = self._advance(task, state, PipelineState.DISAMBIGUATING)
            with self._agent(AgentRole.PRODUCT, task) as agent:
                intent_spec = self.stages.disambiguate(
                    task, classification, agent.agent_id, self.audit
                )
        else:
            intent_spec = build_inline_spec(task)
            self.audit.log(
                task.task_id,
                "product_skipped",
                {
                    "reason": (
                        "Classification routed directly to dev. "
                        "Technical input does not require disambiguation."
                    ),
                    "category": str(classification.category),
                    "ruleApplied": classification.rule_applied,
                    "inlineSpecId": intent_spec.spec_id,
                },
            )
        state = self._advance(task, state, PipelineState.SPEC_READY)

        state = self._advance(task, state, PipelineState.EXECUTING)
        with self._agent(AgentRole.DEV, task) as agent:
            execution_output = self.stages.execute(intent_spec, agent.agent_id, self.audit)
            dev_tools = agent.scope.effective_tools

        state = self._advance(task, state, PipelineState.VALIDATING)
        with self._agent(AgentRole.QA, task) as agent:
            validation = self.stages.validate(
                intent_spec, execution_output, agent.agent_id, self.audit, dev_tools
            )
        self._advance(task, state, PipelineState.ENDED)

        return ExecutionResult(
            task_id=task.task_id,
            classification=classification,
            intent_spec=intent_spec,
            execution_output=execution_output,
            validation=validation,
        )

    @contextmanager
    def _agent(self, role: str, task: Task) -> Generator[SpawnedAgent, None, None]:
        """Spawn ``role`` for the duration of one stage.

        ``agent_destroyed`` is logged even when the stage raises, so every
        spawn in the stream is paired with exactly one destroy.
        """
        agent = self._spawn(role, task)
        self.audit.log(
            task.task_id,
            "agent_spawned",
            {
                "role": str(role),
                "workspacePath": agent.workspace_path,
                "scope": agent.scope.to_dict(),
            },
            agent_id=agent.agent_id,
        )
        try:
            yield agent
        finally:
            self.audit.log(
                task.task_id, "agent_destroyed", {"role": str(role)}, agent_id=agent.agent_id
            )

    def _spawn(self, role: str, task: Task) -> SpawnedAgent:
        manifest = self.registry.get(role)
        if manifest is None:
            self.audit.log(
                task.task_id,
                "agent_spawn_failed",
                {"role": str(role), "kind": "manifest_invalid", "detail": "No manifest registered"},
            )
            raise EscalationError(
                f"No manifest registered for role '{role}'",
                task.task_id,
                {"role": str(role), "kind": "manifest_invalid"},
            )

        result = spawn_agent(
            manifest,
            task,
            contracts_root=self.settings.contracts_root,
            workspace_root=self.settings.project_root,
        )
        if not result.success:
            error = result.error
            self.audit.log(task.task_id, "agent_spawn_failed", error.to_dict())
            raise EscalationError(
                f"Spawn failed for role '{role}': {error.kind}: {error.detail}",
                task.task_id,
                error.to_dict(),
            )
        return result.agent

    def _advance(self, task: Task, current: PipelineState, target: PipelineState) -> PipelineState:
        if target not in _TRANSITIONS[current]:
            raise RuntimeError(f"Illegal pipeline transition {current} -> {target}")
        logger.debug("task %s: %s -> %s", task.task_id, current, target)
        return target

    def _record(self, run: dict[str, Any]) -> None:
        """Index the run in the history database, if one is configured."""
        if self.db is None:
            return
        run["audit_path"] = str(self.audit.logs_dir / f"{run['task_id']}.jsonl")
        try:
            self.db.ensure_tables()
            self.db.record_run(run)
        except (sqlite3.Error, OSError) as e:
            # The audit stream already holds the full record
            logger.warning("could not index run %s: %s", run["task_id"], e)
