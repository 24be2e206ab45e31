"""Dev stage: execution stub.

Returns a fixed artifact and tool-invocation log regardless of the Intent Spec. The
real stage would execute against the Intent Spec inside its isolated workspace.
"""

from __future__ import annotations

from conductor.core.audit import AuditLog, utc_now
from conductor.core.types import Artifact, ExecutionOutput, IntentSpec, ToolInvocation

_STUB_SOURCE = '''def greet(name: str) -> str:
    return f"Hello, {name}!"
'''


def execute(spec: IntentSpec, agent_id: str, audit: AuditLog) -> ExecutionOutput:
    """Execute ``spec`` and return a completed output with one artifact."""
    now = utc_now()
    audit.log(
        spec.task_id,
        "agent_execution_start",
        {"role": "dev", "specId": spec.spec_id},
        agent_id=agent_id,
    )

    output = ExecutionOutput.completed(
        task_id=spec.task_id,
        spec_id=spec.spec_id,
        artifacts=(Artifact(path="src/greet.py", content=_STUB_SOURCE, type="source"),),
        tool_invocations=(
            ToolInvocation(
                tool="write",
                args={"path": "src/greet.py"},
                result="File written successfully.",
                timestamp=now,
            ),
            ToolInvocation(
                tool="grep",
                args={"pattern": "def greet", "path": "src/greet.py"},
                result="src/greet.py:1:def greet(name: str) -> str:",
                timestamp=now,
            ),
        ),
    )

    audit.log(
        spec.task_id,
        "agent_execution_end",
        {
            "role": "dev",
            "specId": spec.spec_id,
            "status": output.status,
            "artifactCount": len(output.artifacts),
        },
        agent_id=agent_id,
    )
    return output
