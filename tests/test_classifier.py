"""Tests for task classification and routing."""

from __future__ import annotations

import pytest

from conductor.agents.coordinator import classify, decide, score_task
from conductor.core.audit import AuditLog
from conductor.core.types import Category, Confidence, Task, TaskType


class TestOperatorHint:
    """An operator type hint always wins over keyword scoring."""

    @pytest.mark.parametrize(
        ("hint", "category", "route"),
        [
            (TaskType.TECHNICAL, Category.TECHNICAL_EXPLICIT, "dev"),
            (TaskType.PRODUCT, Category.BUSINESS, "product"),
            (TaskType.AMBIGUOUS, Category.AMBIGUOUS, "product"),
        ],
    )
    def test_hint(self, audit: AuditLog, hint: TaskType, category: Category, route: str) -> None:
        task = Task("task-1", "We need a roadmap and a strategy", type=hint)
        result = classify(task, audit)
        assert result.category == category
        assert result.routed_to == route
        assert result.confidence == Confidence.DETERMINISTIC
        assert result.rule_applied == f"Rule 1 - Operator type: {hint}"

    def test_hint_event_source(self, audit: AuditLog) -> None:
        classify(Task("task-1", "anything", type=TaskType.TECHNICAL), audit)
        (event,) = audit.replay("task-1")
        assert event.event_type == "classification"
        assert event.data["source"] == "operator_type"


class TestScoring:
    def test_counts_presence_not_occurrences(self) -> None:
        technical, _ = score_task("refactor refactor refactor")
        assert technical == 1

    def test_technical_signals(self) -> None:
        technical, business = score_task("Refactor the login function in src/auth/login.ts")
        assert technical == 4
        assert business == 0

    def test_business_signals(self) -> None:
        assert score_task("We need to prioritize the onboarding experience for Q3") == (0, 1)

    def test_no_signals(self) -> None:
        assert score_task("Make it better") == (0, 0)


class TestTieBreak:
    """Technical needs a strict majority; business wins ties."""

    def test_technical_majority(self) -> None:
        result = decide(2, 1)
        assert result.category == Category.TECHNICAL_EXPLICIT
        assert result.routed_to == "dev"

    def test_tie_goes_to_business(self) -> None:
        result = decide(2, 2)
        assert result.category == Category.BUSINESS
        assert result.routed_to == "product"

    def test_business_majority(self) -> None:
        assert decide(0, 3).category == Category.BUSINESS

    def test_zero_zero_is_ambiguous(self) -> None:
        result = decide(0, 0)
        assert result.category == Category.AMBIGUOUS
        assert result.routed_to == "product"
        assert result.confidence == Confidence.HEURISTIC

    def test_keyword_event_carries_scores(self, audit: AuditLog) -> None:
        classify(Task("task-1", "Fix the bug in src/app.py"), audit, agent_id="coordinator-1-abcd")
        (event,) = audit.replay("task-1")
        assert event.agent_id == "coordinator-1-abcd"
        assert event.data["source"] == "keyword_matching"
        assert event.data["technicalScore"] > 0
        assert event.data["businessScore"] == 0
        assert event.data["routedTo"] == "dev"


def test_mixed_signals_tie_routes_to_product(audit: AuditLog) -> None:
    task = Task("task-1", "Should we refactor this?")
    result = classify(task, audit)
    assert score_task(task.body) == (1, 1)
    assert result.routed_to == "product"
