"""Deterministic control-plane primitives: types, scope, spawning, audit, parsing."""

from conductor.core.audit import AuditLog
from conductor.core.errors import (
    ConductorError,
    ContractNotFoundError,
    EscalationError,
    RetryPolicy,
    classify_failure,
)
from conductor.core.manifests import DEFAULT_REGISTRY, ManifestRegistry
from conductor.core.parser import parse_json
from conductor.core.runtime import spawn_agent
from conductor.core.scope import resolve_scope

__all__ = [
    "DEFAULT_REGISTRY",
    "AuditLog",
    "ConductorError",
    "ContractNotFoundError",
    "EscalationError",
    "ManifestRegistry",
    "RetryPolicy",
    "classify_failure",
    "parse_json",
    "resolve_scope",
    "spawn_agent",
]
