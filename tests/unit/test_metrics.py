"""Tests for project_agent/digests/metrics.py."""

import pytest

from project_agent.digests.metrics import (
    completion_rate,
    extract_blockers,
    extract_dependencies,
    extract_priority,
    format_dependencies,
    format_issue_list,
    format_status_breakdown,
    is_blocked,
    is_in_progress,
    is_risky,
    label_distribution,
    project_stats,
    velocity,
)
from project_agent.models.domain import IssueState


class TestLabelPredicates:
    """Label-based classification."""

    @pytest.mark.parametrize("label", ["blocked", "status: Blocked", "blocker"])
    def test_blocked(self, issue_factory, label):
        assert is_blocked(issue_factory(labels=[label]))

    def test_not_blocked(self, issue_factory):
        assert not is_blocked(issue_factory(labels=["bug"]))

    @pytest.mark.parametrize("label", ["in-progress", "In Progress"])
    def test_in_progress(self, issue_factory, label):
        assert is_in_progress(issue_factory(labels=[label]))

    def test_risky(self, issue_factory):
        assert is_risky(issue_factory(labels=["priority:critical"]))
        assert not is_risky(issue_factory(labels=["priority:low"]))


class TestRates:
    """Completion rate and velocity."""

    def test_completion_rate(self):
        assert completion_rate(1, 4) == 25.0

    def test_completion_rate_empty(self):
        assert completion_rate(0, 0) == 0.0

    def test_velocity_counts_recent_closures(self, issue_factory, now):
        closed = [
            issue_factory(1, state=IssueState.CLOSED, updated_days_ago=1),
            issue_factory(2, state=IssueState.CLOSED, updated_days_ago=3),
            issue_factory(3, state=IssueState.CLOSED, updated_days_ago=30),
        ]

        assert velocity(closed, now) == pytest.approx(2 / 7)

    def test_project_stats(self, issue_factory):
        open_issues = [
            issue_factory(1, labels=["blocked"]),
            issue_factory(2, labels=["in-progress", "risk"]),
            issue_factory(3, labels=[]),
        ]
        closed_issues = [issue_factory(4, state=IssueState.CLOSED)]

        assert project_stats(open_issues, closed_issues) == {
            "total_open_tasks": 3,
            "in_progress_tasks": 1,
            "blocked_tasks": 1,
            "completed_tasks": 1,
            "completion_rate": "25.0",
            "risk_count": 1,
        }


class TestFormatting:
    """List and breakdown rendering."""

    def test_status_breakdown(self, issue_factory):
        issues = [issue_factory(1), issue_factory(2), issue_factory(3, state=IssueState.CLOSED)]

        assert format_status_breakdown(issues) == "- closed: 1\n- open: 2"

    def test_issue_list_limit(self, issue_factory):
        issues = [issue_factory(n, title=f"Task {n}") for n in range(1, 5)]

        assert format_issue_list(issues, limit=2) == "- #1: Task 1\n- #2: Task 2"

    def test_label_distribution_most_common_first(self, issue_factory):
        issues = [issue_factory(1, labels=["bug", "ui"]), issue_factory(2, labels=["bug"])]

        assert list(label_distribution(issues).items()) == [("bug", 2), ("ui", 1)]


class TestReferences:
    """Dependency and blocker extraction from issue bodies."""

    def test_dependencies(self):
        body = "Depends on #12\nRequires #3, #12 and #4\nWaiting for #8\nSee #99"

        assert extract_dependencies(body) == ["12", "3", "4", "8"]

    def test_blockers(self):
        assert extract_blockers("This blocks #5\nPrevents #6 from shipping") == ["5", "6"]

    def test_format_dependencies(self):
        assert format_dependencies([]) == "None identified"
        assert format_dependencies(["1", "2"]) == "- #1\n- #2"

    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("This is critical, P0", "P0"),
            ("Recommend P2 (medium)", "P2"),
            ("priority: low", "P3"),
            ("no idea", ""),
        ],
    )
    def test_extract_priority(self, text, expected):
        assert extract_priority(text) == expected
