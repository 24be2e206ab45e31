"""Instruction assembly: role contract followed by the enforced scope."""

from __future__ import annotations

from conductor.core.types import ResolvedScope


def build_permissions_block(scope: ResolvedScope) -> str:
    """Render the resolved scope as a plain-text permissions section.

    The block describes what is already enforced. It grants nothing.

    Args:
        scope: Resolved scope of the agent

    Returns:
        Markdown text with the permissions and the enforcement notice
    """
    if scope.network_policy == "none":
        network_line = "DENIED. No outbound network access is permitted."
    else:
        network_line = f"RESTRICTED. Permitted domains: {', '.join(scope.network_policy)}."

    if scope.filesystem_policy == "workspace":
        filesystem_line = (
            "RESTRICTED. Read/write is permitted within ./workspace only. "
            "All other paths are denied."
        )
    else:
        filesystem_line = "DENIED. No filesystem access is permitted."

    if scope.effective_tools:
        tools_list = "\n".join(f"  - {tool}" for tool in scope.effective_tools)
    else:
        tools_list = "  (none)"

    return "\n".join(
        [
            "---",
            "",
            "## Runtime Permissions",
            "",
            "The following permissions are enforced structurally by the runtime.",
            "They are not guidelines. Attempting to exceed them will be denied and logged.",
            "",
            f"**Network access:** {network_line}",
            "",
            f"**Filesystem access:** {filesystem_line}",
            "",
            "**Permitted tools:**",
            tools_list,
            "",
            f"**Execution time limit:** {scope.max_execution_time}ms",
            "",
            f"**Cost cap:** {scope.max_cost_cap} tokens",
            "",
            "---",
            "",
            "## Enforcement Notice",
            "",
            "You are an untrusted, disposable runtime. Your capabilities are enforced externally.",
            "You have no memory of prior executions. You have no access to resources not listed above.",
            "Your output will be validated against the task specification before acceptance.",
            "If your task cannot be completed within these constraints, return a structured failure.",
            "Do not attempt workarounds. Do not escalate your own permissions. Fail explicitly.",
        ]
    )


def assemble_instructions(role_text: str, scope: ResolvedScope) -> str:
    """Combine a role contract with its permissions block.

    The contract comes first so the role is established before the
    constraints narrow it.
    """
    return f"{role_text.rstrip()}\n\n{build_permissions_block(scope)}\n"
