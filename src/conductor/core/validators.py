"""Shape validators for stage outputs received as JSON.

Each validator accepts both camelCase and snake_case keys, since model
output is inconsistent about casing. They are meant to be passed to
``parse_json`` as the ``validate`` argument.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any, Final

VALID_CATEGORIES: Final = frozenset({"technical_explicit", "business", "ambiguous"})
VALID_ROUTES: Final = frozenset({"product", "dev"})
VALID_CONFIDENCES: Final = frozenset({"deterministic", "heuristic"})
VALID_ERROR_TYPES: Final = frozenset(
    {"scope_violation", "spec_unclear", "tool_failure", "timeout", "internal"}
)
VALID_VERDICTS: Final = frozenset({"pass", "fail"})


# ═══════════════════════════════════════════════════════════════════════════
# HELPERS
# ═══════════════════════════════════════════════════════════════════════════


def _is_obj(value: Any) -> bool:
    return isinstance(value, Mapping)


def _is_str(value: Any) -> bool:
    return isinstance(value, str)


def _is_int(value: Any) -> bool:
    # bool is an int subclass but never a count
    return isinstance(value, int) and not isinstance(value, bool)


def _is_one_of(value: Any, allowed: frozenset[str]) -> bool:
    return _is_str(value) and value in allowed


def _get(obj: Mapping[str, Any], camel: str, snake: str | None = None, default: Any = None) -> Any:
    if camel in obj:
        return obj[camel]
    if snake is not None and snake in obj:
        return obj[snake]
    return default


def _all(items: Any, check: Callable[[Any], bool]) -> bool:
    return isinstance(items, list) and all(check(item) for item in items)


def _is_str_list(items: Any) -> bool:
    return _all(items, _is_str)


# ═══════════════════════════════════════════════════════════════════════════
# CLASSIFICATION
# ═══════════════════════════════════════════════════════════════════════════


def is_classification_result(obj: Any) -> bool:
    if not _is_obj(obj):
        return False
    return (
        _is_one_of(_get(obj, "category"), VALID_CATEGORIES)
        and _is_one_of(_get(obj, "routedTo", "routed_to"), VALID_ROUTES)
        and _is_one_of(_get(obj, "confidence"), VALID_CONFIDENCES)
        and _is_str(_get(obj, "ruleApplied", "rule_applied"))
    )


# ═══════════════════════════════════════════════════════════════════════════
# INTENT SPEC
# ═══════════════════════════════════════════════════════════════════════════


def _is_requirement(v: Any) -> bool:
    return (
        _is_obj(v)
        and _is_str(v.get("id"))
        and _is_str(v.get("description"))
        and _is_str(v.get("verification"))
    )


def _is_constraint(v: Any) -> bool:
    return _is_obj(v) and _is_str(v.get("id")) and _is_str(v.get("description"))


def _is_assumption(v: Any) -> bool:
    return (
        _is_obj(v)
        and _is_str(v.get("id"))
        and _is_str(v.get("statement"))
        and _is_str(v.get("source"))
    )


def is_intent_spec(obj: Any) -> bool:
    """Requirements and out-of-scope must both be non-empty."""
    if not _is_obj(obj):
        return False
    if not _is_str(_get(obj, "specId", "spec_id")):
        return False
    if not _is_str(_get(obj, "taskId", "task_id")):
        return False
    if not _is_str(obj.get("objective")):
        return False

    requirements = obj.get("requirements")
    if not _all(requirements, _is_requirement) or not requirements:
        return False

    if not _all(obj.get("constraints"), _is_constraint):
        return False

    out_of_scope = _get(obj, "outOfScope", "out_of_scope")
    if not _is_str_list(out_of_scope) or not out_of_scope:
        return False

    if not _all(obj.get("assumptions"), _is_assumption):
        return False

    context_refs = _get(obj, "contextRefs", "context_refs", [])
    return _is_str_list(context_refs)


# ═══════════════════════════════════════════════════════════════════════════
# EXECUTION OUTPUT
# ═══════════════════════════════════════════════════════════════════════════


def _is_artifact(v: Any) -> bool:
    return (
        _is_obj(v)
        and _is_str(v.get("path"))
        and _is_str(v.get("content"))
        and _is_str(v.get("type"))
    )


def _is_invocation(v: Any) -> bool:
    return (
        _is_obj(v)
        and _is_str(v.get("tool"))
        and _is_str(v.get("result"))
        and _is_str(v.get("timestamp"))
        and _is_obj(v.get("args", {}))
    )


def is_execution_output(obj: Any) -> bool:
    """Completed outputs need artifacts; failed outputs need a typed error."""
    if not _is_obj(obj):
        return False
    if not _is_str(_get(obj, "taskId", "task_id")):
        return False
    if not _is_str(_get(obj, "specId", "spec_id")):
        return False

    invocations = _get(obj, "toolInvocations", "tool_invocations", [])
    if not _all(invocations, _is_invocation):
        return False

    status = obj.get("status")
    if status == "completed":
        return _all(obj.get("artifacts"), _is_artifact)
    if status == "failed":
        error = obj.get("error")
        return (
            _is_obj(error)
            and _is_one_of(error.get("type"), VALID_ERROR_TYPES)
            and _is_str(error.get("detail"))
        )
    return False


# ═══════════════════════════════════════════════════════════════════════════
# VALIDATION REPORT
# ═══════════════════════════════════════════════════════════════════════════


def _is_requirement_result(v: Any) -> bool:
    return (
        _is_obj(v)
        and _is_str(_get(v, "requirementId", "requirement_id"))
        and _is_one_of(v.get("status"), VALID_VERDICTS)
        and _is_str(v.get("evidence"))
        and _is_str(_get(v, "verificationMethod", "verification_method"))
    )


def _is_constraint_result(v: Any) -> bool:
    return (
        _is_obj(v)
        and _is_str(_get(v, "constraintId", "constraint_id"))
        and _is_one_of(v.get("status"), VALID_VERDICTS)
        and _is_str(v.get("evidence"))
    )


def _is_summary(v: Any) -> bool:
    if not _is_obj(v):
        return False
    keys = (
        ("totalRequirements", "total_requirements"),
        ("passedRequirements", "passed_requirements"),
        ("failedRequirements", "failed_requirements"),
        ("totalConstraints", "total_constraints"),
        ("violatedConstraints", "violated_constraints"),
        ("scopeViolationCount", "scope_violation_count"),
    )
    return all(_is_int(_get(v, camel, snake)) for camel, snake in keys)


def is_validation_report(obj: Any) -> bool:
    if not _is_obj(obj):
        return False
    if not _is_str(_get(obj, "taskId", "task_id")):
        return False
    if not _is_str(_get(obj, "specId", "spec_id")):
        return False
    if not _is_one_of(obj.get("verdict"), VALID_VERDICTS):
        return False
    if not _all(_get(obj, "requirementResults", "requirement_results"), _is_requirement_result):
        return False
    if not _all(_get(obj, "constraintResults", "constraint_results"), _is_constraint_result):
        return False
    if not isinstance(_get(obj, "scopeViolations", "scope_violations"), list):
        return False
    return _is_summary(obj.get("summary"))
