"""Agent Spawner - Turns a manifest and a task into a ready-to-run agent record.

``spawn_agent`` never raises. Every failure comes back as a ``SpawnFailure``
so the caller has to branch on ``result.success`` before using the agent.
Reading the role contract is the only external failure surface; every other
step is total.
"""

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Mapping
from pathlib import Path

from conductor.core.audit import utc_now
from conductor.core.errors import ContractNotFoundError
from conductor.core.instructions import assemble_instructions
from conductor.core.manifests import DEFAULT_REGISTRY, ManifestRegistry
from conductor.core.scope import is_attenuated, resolve_scope
from conductor.core.types import (
    AgentManifest,
    SpawnedAgent,
    SpawnError,
    SpawnErrorKind,
    SpawnFailure,
    SpawnResult,
    SpawnSuccess,
    Task,
)

logger = logging.getLogger(__name__)

WORKSPACE_DIR = "workspace"

# Package data directory holding the built-in role contracts
DEFAULT_CONTRACTS_ROOT = Path(__file__).resolve().parent.parent / "contracts"


def generate_agent_id(role: str) -> str:
    """Human-legible agent id: ``{role}-{epoch_ms}-{4 hex chars}``."""
    return f"{role}-{int(time.time() * 1000)}-{uuid.uuid4().hex[:4]}"


def load_contract_text(system_prompt_path: str, contracts_root: Path) -> str | None:
    """Read a role contract as UTF-8. Returns None when it cannot be read."""
    path = (contracts_root / system_prompt_path).resolve()
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        logger.debug("contract read failed for %s: %s", path, e)
        return None


def validate_manifest(manifest: AgentManifest) -> str | None:
    """Return a description of the first structural problem, or None."""
    if not manifest.role:
        return "Manifest has an empty role"
    if not manifest.system_prompt_path:
        return f"Manifest '{manifest.role}' has no system prompt path"
    if manifest.permissions.max_execution_time <= 0:
        return f"Manifest '{manifest.role}' declares a non-positive execution time"
    if manifest.permissions.max_cost_cap <= 0:
        return f"Manifest '{manifest.role}' declares a non-positive cost cap"
    if len(set(manifest.tools)) != len(manifest.tools):
        return f"Manifest '{manifest.role}' declares a tool more than once"
    return None


def find_permission_conflict(manifest: AgentManifest) -> str | None:
    """Detect permission declarations that contradict each other.

    A wildcard or blank entry in the network allowlist would smuggle an
    unscoped grant past resolution.
    """
    allow_network = manifest.permissions.allow_network
    if isinstance(allow_network, tuple):
        for domain in allow_network:
            if not domain.strip() or "*" in domain:
                return (
                    f"Manifest '{manifest.role}' network allowlist entry {domain!r} "
                    "is not an explicit domain"
                )
    return None


def spawn_agent(
    manifest: AgentManifest,
    task: Task,
    contracts_root: Path | None = None,
    workspace_root: Path | None = None,
    capability_map: Mapping[str, tuple[str, ...]] | None = None,
) -> SpawnResult:
    """
    Build a fully resolved agent record for ``task``.

    Steps:
    1. Validate the manifest shape and its permission declarations.
    2. Load the role contract from the contract store.
    3. Resolve the enforcement-ready scope and check it against the manifest.
    4. Assemble the instruction text (contract + permissions block).
    5. Generate the agent id and its isolated workspace path.

    Args:
        manifest: Role definition
        task: Task the agent will process
        contracts_root: Directory the manifest's prompt path is relative to
        workspace_root: Directory under which ``workspace/<agent_id>`` lives
        capability_map: Tool capability table override

    Returns:
        ``SpawnSuccess`` with the agent, or ``SpawnFailure`` with a typed error
    """
    contracts_root = contracts_root or DEFAULT_CONTRACTS_ROOT
    workspace_root = workspace_root or Path.cwd()

    problem = validate_manifest(manifest)
    if problem is not None:
        return SpawnFailure(SpawnError(SpawnErrorKind.MANIFEST_INVALID, problem, manifest.role))

    conflict = find_permission_conflict(manifest)
    if conflict is not None:
        return SpawnFailure(
            SpawnError(SpawnErrorKind.PERMISSION_CONFLICT, conflict, manifest.role)
        )

    role_text = load_contract_text(manifest.system_prompt_path, contracts_root)
    if role_text is None:
        return SpawnFailure(
            SpawnError(
                SpawnErrorKind.SYSTEM_PROMPT_MISSING,
                f"Cannot read system prompt at path: {manifest.system_prompt_path} "
                f"(resolved from: {contracts_root})",
                manifest.role,
            )
        )

    scope = resolve_scope(manifest, capability_map)
    if not is_attenuated(scope, manifest):
        return SpawnFailure(
            SpawnError(
                SpawnErrorKind.SCOPE_VIOLATION,
                f"Resolved scope for '{manifest.role}' exceeds its manifest permissions",
                manifest.role,
            )
        )

    agent_id = generate_agent_id(manifest.role)

    return SpawnSuccess(
        SpawnedAgent(
            agent_id=agent_id,
            manifest=manifest,
            task=task,
            system_prompt=assemble_instructions(role_text, scope),
            scope=scope,
            workspace_path=str((workspace_root / WORKSPACE_DIR / agent_id).resolve()),
            created_at=utc_now(),
        )
    )


def load_system_prompt(
    role: str,
    registry: ManifestRegistry | None = None,
    contracts_root: Path | None = None,
) -> str:
    """Assemble the full instruction text for a role without spawning.

    Raises:
        KeyError: If the role is not registered
        ContractNotFoundError: If the contract cannot be read
    """
    if registry is None:
        registry = DEFAULT_REGISTRY
    contracts_root = contracts_root or DEFAULT_CONTRACTS_ROOT

    manifest = registry.get(role)
    if manifest is None:
        raise KeyError(f"Unknown role: {role}")

    role_text = load_contract_text(manifest.system_prompt_path, contracts_root)
    if role_text is None:
        raise ContractNotFoundError(
            f"Failed to load system prompt for role '{role}' at "
            f"{contracts_root / manifest.system_prompt_path}"
        )

    return assemble_instructions(role_text, resolve_scope(manifest))


def generate_task_id() -> str:
    return f"task-{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}"


def generate_spec_id() -> str:
    return f"spec-{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}"
