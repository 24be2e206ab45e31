"""Exceptions and the failure-to-policy mapping.

Two taxonomies coexist and are never merged:

- spawn-time errors, returned as ``SpawnFailure`` values by the spawner;
- pipeline-level failures, classified here as *structural* (bounded retry with
  a fresh instance) or *semantic* (never retried, escalated with context).

The retry policy is defined here but the orchestrator does not loop on it yet.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Final


class ConductorError(Exception):
    """Base class for conductor exceptions."""


class ConfigError(ConductorError):
    """Configuration could not be loaded."""


class ContractNotFoundError(ConductorError):
    """A role contract could not be read from the contract store."""


class EscalationError(ConductorError):
    """A run ended in the ``escalated`` state.

    Carries enough structured context to reconstruct the decision alongside
    the audit stream.
    """

    status = "escalated"

    def __init__(self, message: str, task_id: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.task_id = task_id
        self.context = context or {}


class FailureClass(StrEnum):
    STRUCTURAL = "structural"
    SEMANTIC = "semantic"


class Decision(StrEnum):
    RETRY = "retry"
    ESCALATE = "escalate"


STRUCTURAL_KINDS: Final[frozenset[str]] = frozenset(
    {
        # Parser output: noise and wrong shape both mean "ask again"
        "invalid_json",
        "schema_mismatch",
        "malformed_output",
        "timeout",
        "crash",
        "tool_failure",
        "internal",
    }
)

SEMANTIC_KINDS: Final[frozenset[str]] = frozenset(
    {
        "scope_violation",
        "spec_unclear",
        "spec_violation",
        "rule_violation",
        "permission_conflict",
    }
)


def classify_failure(kind: str) -> FailureClass:
    """Map a failure kind to its class.

    Unknown kinds are semantic: a fault nobody has classified is escalated,
    not retried.
    """
    if kind in STRUCTURAL_KINDS:
        return FailureClass.STRUCTURAL
    return FailureClass.SEMANTIC


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded retry for structural failures.

    Each attempt uses a fresh agent instance and carries no state from the
    previous one.
    """

    max_attempts: int = 3
    structural_kinds: frozenset[str] = field(default=STRUCTURAL_KINDS)

    def decide(self, kind: str, attempt: int) -> Decision:
        """Decide what to do after ``attempt`` (1-based) failed with ``kind``.

        Args:
            kind: Failure kind (parser error kind, execution error type, ...)
            attempt: Number of the attempt that just failed

        Returns:
            ``Decision.RETRY`` while a structural failure has attempts left,
            otherwise ``Decision.ESCALATE``
        """
        if attempt < 1:
            raise ValueError(f"attempt must be >= 1, got {attempt}")
        if kind not in self.structural_kinds:
            return Decision.ESCALATE
        if attempt >= self.max_attempts:
            return Decision.ESCALATE
        return Decision.RETRY


DEFAULT_RETRY_POLICY = RetryPolicy()
