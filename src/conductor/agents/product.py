"""Product stage: disambiguation stub.

Produces an Intent Spec from the task. The real stage would disambiguate the
body against the injected context documents; this stub emits a fixed-shape
spec so the pipeline contract can be exercised end to end.
"""

from __future__ import annotations

from conductor.core.audit import AuditLog
from conductor.core.runtime import generate_spec_id
from conductor.core.types import (
    ClassificationResult,
    IntentAssumption,
    IntentConstraint,
    IntentRequirement,
    IntentSpec,
    Task,
)


def execute(
    task: Task,
    classification: ClassificationResult,
    agent_id: str,
    audit: AuditLog,
) -> IntentSpec:
    """Produce an Intent Spec for ``task``."""
    audit.log(
        task.task_id,
        "agent_execution_start",
        {"role": "product", "category": str(classification.category)},
        agent_id=agent_id,
    )

    spec = IntentSpec(
        spec_id=generate_spec_id(),
        task_id=task.task_id,
        objective=task.body.strip(),
        requirements=(
            IntentRequirement(
                id="REQ-001",
                description="At least one artifact addressing the objective is produced.",
                verification="Execution output status is 'completed' and its artifact list is non-empty.",
            ),
            IntentRequirement(
                id="REQ-002",
                description="Every artifact is written inside the agent workspace.",
                verification="No artifact path is absolute or contains a '..' segment.",
            ),
        ),
        constraints=(
            IntentConstraint(
                id="CON-001",
                description="Only tools listed in the execution scope may be invoked.",
            ),
        ),
        out_of_scope=(
            "Changes outside the task objective.",
            "Deployment or publication of artifacts.",
        ),
        assumptions=(
            IntentAssumption(
                id="ASM-001",
                statement="The context documents supplied with the task are current.",
                source="operator_input",
            ),
        ),
        context_refs=task.context_registry,
    )

    audit.log(
        task.task_id,
        "agent_execution_end",
        {"role": "product", "specId": spec.spec_id},
        agent_id=agent_id,
    )
    return spec
