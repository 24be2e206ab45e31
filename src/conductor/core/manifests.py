"""Manifest Registry - Static role definitions and the tool capability table.

Manifests are read, never written. The registry is a lookup-by-key
abstraction so the backing table can later be replaced by loaded config
without touching call sites.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from types import MappingProxyType
from typing import Final

from conductor.core.types import AgentManifest, AgentRole, Permissions

# ═══════════════════════════════════════════════════════════════════════════
# TOOL CAPABILITIES
# ═══════════════════════════════════════════════════════════════════════════

# Tools missing from this table carry no restricted capability.
TOOL_CAPABILITY_MAP: Final[Mapping[str, tuple[str, ...]]] = MappingProxyType(
    {
        # Network-capable
        "fetch": ("network",),
        "curl": ("network",),
        "wget": ("network",),
        "http": ("network",),
        "npm": ("network", "filesystem"),
        "pip": ("network", "filesystem"),
        # Filesystem
        "read": ("filesystem",),
        "write": ("filesystem",),
        "fs": ("filesystem",),
        "cat": ("filesystem",),
        "cp": ("filesystem",),
        "mv": ("filesystem",),
        "rm": ("filesystem",),
        "mkdir": ("filesystem",),
        # Unrestricted
        "grep": (),
        "git": (),
        "npm test": (),
        "eslint": (),
        "tsc": (),
        "echo": (),
    }
)


def capabilities_for(tool: str, capability_map: Mapping[str, tuple[str, ...]] | None = None) -> tuple[str, ...]:
    """Return the capability tags of a tool, empty when the tool is unknown."""
    table = TOOL_CAPABILITY_MAP if capability_map is None else capability_map
    return table.get(tool, ())


# ═══════════════════════════════════════════════════════════════════════════
# MANIFESTS
# ═══════════════════════════════════════════════════════════════════════════

COORDINATOR_MANIFEST: Final = AgentManifest(
    role=AgentRole.COORDINATOR.value,
    image="python:3.12-slim",
    system_prompt_path="coordinator.md",
    permissions=Permissions(
        allow_network=False,
        allow_filesystem=False,
        max_execution_time=30_000,
        max_cost_cap=5_000,
    ),
    tools=("grep",),
)

PRODUCT_MANIFEST: Final = AgentManifest(
    role=AgentRole.PRODUCT.value,
    image="python:3.12-slim",
    system_prompt_path="product.md",
    permissions=Permissions(
        allow_network=False,
        allow_filesystem=False,
        max_execution_time=120_000,
        max_cost_cap=20_000,
    ),
    tools=("grep",),
)

DEV_MANIFEST: Final = AgentManifest(
    role=AgentRole.DEV.value,
    image="python:3.12-slim",
    system_prompt_path="dev.md",
    permissions=Permissions(
        allow_network=False,
        allow_filesystem=True,
        max_execution_time=600_000,
        max_cost_cap=100_000,
    ),
    tools=("read", "write", "grep", "git", "npm test", "eslint", "tsc"),
)

QA_MANIFEST: Final = AgentManifest(
    role=AgentRole.QA.value,
    image="python:3.12-slim",
    system_prompt_path="qa.md",
    permissions=Permissions(
        allow_network=False,
        allow_filesystem=False,
        max_execution_time=300_000,
        max_cost_cap=30_000,
    ),
    tools=("read", "grep"),
)


class ManifestRegistry:
    """Read-only lookup of manifests by role key."""

    def __init__(self, manifests: Mapping[str, AgentManifest] | None = None) -> None:
        source = manifests if manifests is not None else _DEFAULT_MANIFESTS
        self._manifests: Mapping[str, AgentManifest] = MappingProxyType(dict(source))

    def get(self, role: str) -> AgentManifest | None:
        """Return the manifest for ``role`` or None when the role is unknown."""
        return self._manifests.get(str(role))

    def roles(self) -> list[str]:
        return list(self._manifests)

    def __contains__(self, role: object) -> bool:
        return str(role) in self._manifests

    def __iter__(self) -> Iterator[AgentManifest]:
        return iter(self._manifests.values())

    def __len__(self) -> int:
        return len(self._manifests)


_DEFAULT_MANIFESTS: Final[Mapping[str, AgentManifest]] = MappingProxyType(
    {
        m.role: m
        for m in (COORDINATOR_MANIFEST, PRODUCT_MANIFEST, DEV_MANIFEST, QA_MANIFEST)
    }
)

DEFAULT_REGISTRY: Final = ManifestRegistry()
