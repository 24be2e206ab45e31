#!/usr/bin/env python3
"""Coordinator stage - Task classification by ordered policy rules.

Rule 1: an operator-supplied type hint routes deterministically and is never
second-guessed.
Rule 2: otherwise the body is scored against technical and business pattern
sets. Technical needs a strict majority; business wins ties; no signal at all
routes to disambiguation.
"""

from __future__ import annotations

import re
from typing import Final

from conductor.core.audit import AuditLog
from conductor.core.types import Category, ClassificationResult, Confidence, Task, TaskType

# ═══════════════════════════════════════════════════════════════════════════
# ROUTING SIGNALS
# ═══════════════════════════════════════════════════════════════════════════

TECHNICAL_PATTERNS: Final[tuple[re.Pattern[str], ...]] = (
    re.compile(r"\.\w{1,4}$", re.MULTILINE),  # file extension at end of a line
    re.compile(r"\b(src|dist|lib|node_modules)/", re.IGNORECASE),
    re.compile(r"\b(refactor|refatore)\b", re.IGNORECASE),
    re.compile(r"\b(endpoint|route|api)\b", re.IGNORECASE),
    re.compile(r"\b(function|method|class|interface|module)\b", re.IGNORECASE),
    re.compile(r"\b(bug|fix|error|exception|stack\s*trace)\b", re.IGNORECASE),
    re.compile(
        r"\b(implement|create|add|remove|delete|rename|move)\s+(a\s+)?"
        r"(function|file|endpoint|route|class|component|test)",
        re.IGNORECASE,
    ),
    re.compile(r"\b(migrate|migration)\b", re.IGNORECASE),
    re.compile(r"\b(import|export|require)\b", re.IGNORECASE),
    re.compile(r"\b(npm|yarn|pnpm|pip|poetry)\s+(install|test|run|build)\b", re.IGNORECASE),
    re.compile(r"\bgit\s+(commit|push|pull|merge|rebase|checkout)\b", re.IGNORECASE),
    re.compile(r"\b(docker|container)\b", re.IGNORECASE),
    re.compile(r"\b(TypeScript|JavaScript|Python|Rust|Go)\b", re.IGNORECASE),
)

BUSINESS_PATTERNS: Final[tuple[re.Pattern[str], ...]] = (
    re.compile(r"\b(user|customer|client)\s+(need|want|experience|story|feedback)", re.IGNORECASE),
    re.compile(r"\b(feature|functionality)\s+(request|description|proposal)", re.IGNORECASE),
    re.compile(r"\b(priorit|roadmap|strategy|vision)", re.IGNORECASE),
    re.compile(r"\b(trade-?off|cost-?benefit|ROI)\b", re.IGNORECASE),
    re.compile(r"\b(stakeholder|requirement|acceptance\s+criteria)", re.IGNORECASE),
    re.compile(r"\bproduct\s+(decision|direction|behavior|specification)", re.IGNORECASE),
    re.compile(r"\b(should\s+we|do\s+we\s+need|what\s+if)\b", re.IGNORECASE),
    re.compile(r"\b(market|competitor|business\s+value)\b", re.IGNORECASE),
)

_HINT_CATEGORY: Final[dict[TaskType, Category]] = {
    TaskType.TECHNICAL: Category.TECHNICAL_EXPLICIT,
    TaskType.PRODUCT: Category.BUSINESS,
    TaskType.AMBIGUOUS: Category.AMBIGUOUS,
}


# ═══════════════════════════════════════════════════════════════════════════
# SCORING
# ═══════════════════════════════════════════════════════════════════════════


def count_matches(body: str, patterns: tuple[re.Pattern[str], ...]) -> int:
    """Number of patterns present in ``body``. Occurrences are not counted."""
    return sum(1 for pattern in patterns if pattern.search(body))


def score_task(body: str) -> tuple[int, int]:
    """Return ``(technical_score, business_score)`` for a task body."""
    return count_matches(body, TECHNICAL_PATTERNS), count_matches(body, BUSINESS_PATTERNS)


def decide(technical: int, business: int) -> ClassificationResult:
    """Apply the Rule 2 tie-break to a pair of scores."""
    if technical > 0 and technical > business:
        return ClassificationResult(
            category=Category.TECHNICAL_EXPLICIT,
            routed_to="dev",
            confidence=Confidence.HEURISTIC,
            rule_applied="Rule 2 - Technical Explicit",
        )
    if business > 0 and business >= technical:
        return ClassificationResult(
            category=Category.BUSINESS,
            routed_to="product",
            confidence=Confidence.HEURISTIC,
            rule_applied="Rule 2 - Business / Strategic",
        )
    return ClassificationResult(
        category=Category.AMBIGUOUS,
        routed_to="product",
        confidence=Confidence.HEURISTIC,
        rule_applied="Rule 2 - Ambiguous (default to Product)",
    )


# ═══════════════════════════════════════════════════════════════════════════
# MAIN CLASSIFICATION
# ═══════════════════════════════════════════════════════════════════════════


def classify(task: Task, audit: AuditLog, agent_id: str | None = None) -> ClassificationResult:
    """Classify a task and append exactly one ``classification`` event."""
    if task.type is not None:
        hint = TaskType(task.type)
        result = ClassificationResult(
            category=_HINT_CATEGORY[hint],
            routed_to="dev" if hint is TaskType.TECHNICAL else "product",
            confidence=Confidence.DETERMINISTIC,
            rule_applied=f"Rule 1 - Operator type: {hint}",
        )
        audit.log(
            task.task_id,
            "classification",
            {**result.to_dict(), "source": "operator_type"},
            agent_id=agent_id,
        )
        return result

    technical, business = score_task(task.body)
    result = decide(technical, business)

    audit.log(
        task.task_id,
        "classification",
        {
            **result.to_dict(),
            "source": "keyword_matching",
            "technicalScore": technical,
            "businessScore": business,
        },
        agent_id=agent_id,
    )
    return result
