"""Scope resolution: manifest permissions to an enforcement-ready scope.

Resolution is a pure reduction. The manifest's tool list is the ceiling;
permissions can only remove entries from it.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from conductor.core.manifests import capabilities_for
from conductor.core.types import AgentManifest, NetworkPolicy, Permissions, ResolvedScope


def filter_tools(
    tools: Sequence[str],
    permissions: Permissions,
    capability_map: Mapping[str, tuple[str, ...]] | None = None,
) -> tuple[str, ...]:
    """Return the subset of ``tools`` permitted under ``permissions``.

    Args:
        tools: Declared tools, in manifest order
        permissions: Role permission ceiling
        capability_map: Tool capability table (defaults to the built-in one)

    Returns:
        Tools that survive filtering, original order preserved
    """
    kept: list[str] = []
    for tool in tools:
        capabilities = capabilities_for(tool, capability_map)
        if permissions.allow_network is False and "network" in capabilities:
            continue
        if not permissions.allow_filesystem and "filesystem" in capabilities:
            continue
        kept.append(tool)
    return tuple(kept)


def resolve_network_policy(allow_network: bool | tuple[str, ...]) -> NetworkPolicy:
    # Only an explicit allowlist survives; ``True`` is not a valid policy.
    if isinstance(allow_network, (tuple, list)):
        return tuple(allow_network)
    return "none"


def resolve_scope(
    manifest: AgentManifest,
    capability_map: Mapping[str, tuple[str, ...]] | None = None,
) -> ResolvedScope:
    """Convert a manifest into the scope the runtime enforces."""
    permissions = manifest.permissions
    return ResolvedScope(
        role=manifest.role,
        effective_tools=filter_tools(manifest.tools, permissions, capability_map),
        network_policy=resolve_network_policy(permissions.allow_network),
        filesystem_policy="workspace" if permissions.allow_filesystem else "none",
        max_execution_time=permissions.max_execution_time,
        max_cost_cap=permissions.max_cost_cap,
    )


def is_attenuated(scope: ResolvedScope, manifest: AgentManifest) -> bool:
    """Check that ``scope`` is equal to or narrower than ``manifest``.

    Returns:
        True when no dimension of the scope exceeds the manifest ceiling
    """
    permissions = manifest.permissions

    if scope.role != manifest.role:
        return False
    if not set(scope.effective_tools) <= set(manifest.tools):
        return False

    if scope.network_policy != "none":
        if not isinstance(permissions.allow_network, tuple):
            return False
        if not set(scope.network_policy) <= set(permissions.allow_network):
            return False

    if scope.filesystem_policy != "none" and not permissions.allow_filesystem:
        return False
    if scope.max_execution_time > permissions.max_execution_time:
        return False
    if scope.max_cost_cap > permissions.max_cost_cap:
        return False

    return True
