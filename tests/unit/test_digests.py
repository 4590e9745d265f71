"""Tests for project_agent/digests - report, monitor and per-issue digests."""

from unittest.mock import AsyncMock

import pytest

from project_agent.digests import (
    BacklogRoast,
    DependencyAnalysis,
    ExecutiveSummary,
    PriorityAssessment,
    ProgressReport,
    StaleTaskMonitor,
)
from project_agent.digests.stale_monitor import CANNED_NUDGE
from project_agent.exceptions import CompletionError, IssueStoreError, WorkflowError
from project_agent.models.domain import IssueState
from project_agent.rendering import PromptLibrary


@pytest.fixture
def project_issues(issue_factory):
    """Two open issues (one blocked, one in progress) and one closed."""
    open_issues = [
        issue_factory(1, title="Checkout fails", labels=["status:blocked"]),
        issue_factory(2, title="New onboarding", labels=["in-progress"]),
    ]
    closed_issues = [issue_factory(3, title="Old bug", state=IssueState.CLOSED, updated_days_ago=2)]
    return open_issues, closed_issues


@pytest.fixture
def project_store(mock_store, project_issues, issue_factory):
    open_issues, closed_issues = project_issues

    async def list_issues(state="open"):
        return {"open": open_issues, "closed": closed_issues, "all": open_issues + closed_issues}[state]

    mock_store.list_issues = AsyncMock(side_effect=list_issues)
    mock_store.create_issue = AsyncMock(return_value=issue_factory(100, title="digest"))
    return mock_store


class TestExecutiveSummary:
    """Tests for ExecutiveSummary."""

    @pytest.mark.asyncio
    async def test_run_creates_report_issue(self, project_store, mock_completion, now):
        digest = ExecutiveSummary(project_store, mock_completion, clock=lambda: now)

        result = await digest.run()

        project_store.create_issue.assert_awaited_once_with(
            "Executive Summary - 2026-03-16",
            "Generated text",
            ["automated", "executive-summary", "report"],
            owner="test-owner",
            repo="test-repo",
        )
        assert result["status"] == "completed"
        assert result["summary"] == "Generated text"
        assert result["metrics"] == {"total_issues": 3, "open": 2, "completed": 1, "blocked": 1}
        assert result["issue_created"] is True
        assert result["created_issue_number"] == 100
        assert result["message"] == "Executive Summary generated and issue #100 created"

    @pytest.mark.asyncio
    async def test_fallback_prompt_without_template(self, project_store, mock_completion, now):
        await ExecutiveSummary(project_store, mock_completion, clock=lambda: now).run()

        prompt = mock_completion.complete.await_args.args[0]
        assert "Total Issues: 3" in prompt
        assert "Blocked: 1" in prompt

    @pytest.mark.asyncio
    async def test_renders_installed_template(self, project_store, mock_completion, now):
        library = PromptLibrary()
        library.add_template("executive-summary", "{{ total_issues }} issues on {{ date }}\n{{ recent_issues }}")

        await ExecutiveSummary(project_store, mock_completion, prompts=library, clock=lambda: now).run()

        prompt = mock_completion.complete.await_args.args[0]
        assert prompt == "3 issues on 2026-03-16\n- #1: Checkout fails\n- #2: New onboarding"

    @pytest.mark.asyncio
    async def test_issue_creation_failure_is_a_warning(self, project_store, mock_completion, now):
        """The generated text is still returned when the issue cannot be created."""
        project_store.create_issue.side_effect = IssueStoreError("forbidden", status_code=403)

        result = await ExecutiveSummary(project_store, mock_completion, clock=lambda: now).run()

        assert result["issue_created"] is False
        assert result["summary"] == "Generated text"
        assert "forbidden" in result["warning"]
        assert result["message"] == "Executive Summary generated successfully (issue creation failed)"

    @pytest.mark.asyncio
    async def test_completion_failure_raises(self, project_store, mock_completion):
        mock_completion.complete.side_effect = CompletionError("timeout")

        with pytest.raises(WorkflowError, match="failed to generate digest: timeout"):
            await ExecutiveSummary(project_store, mock_completion).run()

        project_store.create_issue.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_markdown_response_cleaned(self, project_store, mock_completion):
        mock_completion.complete.return_value = "```markdown\n# Summary\n## Risks\nnone\n```"

        result = await ExecutiveSummary(project_store, mock_completion).run()

        assert result["summary"] == "# Summary\n\n## Risks\nnone"

    @pytest.mark.asyncio
    async def test_empty_project(self, mock_store, mock_completion, issue_factory):
        """No issues at all still produces a report, without a target repository."""
        mock_store.create_issue.return_value = issue_factory(1)

        result = await ExecutiveSummary(mock_store, mock_completion).run()

        assert result["metrics"]["total_issues"] == 0
        assert mock_store.create_issue.await_args.kwargs == {"owner": None, "repo": None}


class TestProgressReport:
    """Tests for ProgressReport."""

    @pytest.mark.asyncio
    async def test_metrics(self, project_store, mock_completion, now):
        result = await ProgressReport(project_store, mock_completion, clock=lambda: now).run()

        metrics = result["metrics"]
        assert metrics["total_tasks"] == 3
        assert metrics["completed"] == 1
        assert metrics["completion_rate"] == pytest.approx(100 / 3)
        assert metrics["blocked"] == 1
        assert metrics["velocity"] == pytest.approx(1 / 7)
        assert result["report"] == "Generated text"
        assert project_store.create_issue.await_args.args[0] == "Progress Report - 2026-03-16"
        assert project_store.create_issue.await_args.args[2] == ["automated", "progress-report", "report"]

    @pytest.mark.asyncio
    async def test_fallback_prompt(self, project_store, mock_completion, now):
        await ProgressReport(project_store, mock_completion, clock=lambda: now).run()

        prompt = mock_completion.complete.await_args.args[0]
        assert "Completed: 1 (33.3%)" in prompt
        assert "Velocity: 0.1 tasks/day" in prompt


class TestBacklogRoast:
    """Tests for BacklogRoast."""

    @pytest.mark.asyncio
    async def test_hygiene_metrics(self, mock_store, mock_completion, issue_factory, now):
        mock_store.list_issues.return_value = [
            issue_factory(1, labels=[], body="short", created_days_ago=90),
            issue_factory(2, assignee="octo"),
            issue_factory(3, state=IssueState.CLOSED),
        ]
        mock_store.create_issue.return_value = issue_factory(50)

        result = await BacklogRoast(mock_store, mock_completion, clock=lambda: now).run()

        mock_store.list_issues.assert_awaited_once_with("all")
        assert result["metrics"] == {
            "total_issues": 3,
            "open": 2,
            "unassigned": 1,
            "unlabelled": 1,
            "thin_descriptions": 1,
        }
        assert result["roast"] == "Generated text"
        assert mock_store.create_issue.await_args.args[2] == ["automated", "roast"]
        prompt = mock_completion.complete.await_args.args[0]
        assert "- #1: Fix password reset (opened 2025-12-16)" in prompt


class TestStaleTaskMonitor:
    """Tests for StaleTaskMonitor."""

    @pytest.fixture
    def issues(self, issue_factory):
        return [
            issue_factory(1, assignee="octo", updated_days_ago=10),
            issue_factory(2, assignee="octo", updated_days_ago=1),
            issue_factory(3, updated_days_ago=20),
        ]

    @pytest.mark.asyncio
    async def test_only_assigned_stale_issues_are_nudged(self, mock_store, mock_completion, issues, now):
        mock_store.list_issues.return_value = issues
        monitor = StaleTaskMonitor(mock_store, mock_completion, clock=lambda: now)

        result = await monitor.run()

        assert result["stale_issues"] == [1]
        assert result["commented_issues"] == [1]
        assert result["total_checked"] == 3
        assert result["stale_threshold"] == "7 days"
        assert result["message"] == "Checked 3 issues, found 1 stale, commented on 1"
        mock_store.add_comment.assert_awaited_once_with(
            1, "🤖 **Agent**: Generated text", owner="test-owner", repo="test-repo"
        )

    @pytest.mark.asyncio
    async def test_threshold_is_configurable(self, mock_store, mock_completion, issues, now):
        mock_store.list_issues.return_value = issues

        result = await StaleTaskMonitor(
            mock_store, mock_completion, threshold_days=30, clock=lambda: now
        ).run()

        assert result["stale_issues"] == []
        mock_store.add_comment.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_canned_nudge_when_model_fails(self, mock_store, mock_completion, issues, now):
        """A completion failure still posts a nudge."""
        mock_store.list_issues.return_value = issues
        mock_completion.complete.side_effect = CompletionError("down")
        monitor = StaleTaskMonitor(mock_store, mock_completion, agent_name="Stale Task Monitor", clock=lambda: now)

        await monitor.run()

        expected = CANNED_NUDGE.format(assignee="octo", days_stale=10)
        mock_store.add_comment.assert_awaited_once_with(
            1, f"🤖 **Stale Task Monitor**: {expected}", owner="test-owner", repo="test-repo"
        )

    @pytest.mark.asyncio
    async def test_broken_template_still_nudges_every_stale_issue(
        self, mock_store, mock_completion, issue_factory, now
    ):
        """A template that fails to render falls back to the canned nudge for each issue."""
        mock_store.list_issues.return_value = [
            issue_factory(1, assignee="octo", updated_days_ago=30),
            issue_factory(2, assignee="hubot", updated_days_ago=30),
        ]
        library = PromptLibrary()
        library.add_template("monitor", "{{ missing_key }}")
        monitor = StaleTaskMonitor(mock_store, mock_completion, library, clock=lambda: now)

        result = await monitor.run()

        assert result["commented_issues"] == [1, 2]
        assert "errors" not in result
        mock_completion.complete.assert_not_awaited()
        second_comment = mock_store.add_comment.await_args_list[1].args[1]
        assert second_comment == "🤖 **Agent**: " + CANNED_NUDGE.format(assignee="hubot", days_stale=30)

    @pytest.mark.asyncio
    async def test_unexpected_agent_error_is_isolated_per_issue(
        self, mock_store, mock_completion, issue_factory, now
    ):
        """An agent error on one issue is recorded and the next issue is still nudged."""
        mock_store.list_issues.return_value = [
            issue_factory(1, assignee="octo", updated_days_ago=30),
            issue_factory(2, assignee="hubot", updated_days_ago=30),
        ]
        mock_store.add_comment.side_effect = [WorkflowError("comment rejected"), None]

        result = await StaleTaskMonitor(mock_store, mock_completion, clock=lambda: now).run()

        assert result["commented_issues"] == [2]
        assert result["errors"] == ["issue #1: comment rejected"]

    @pytest.mark.asyncio
    async def test_comment_failure_recorded(self, mock_store, mock_completion, issues, now):
        mock_store.list_issues.return_value = issues
        mock_store.add_comment.side_effect = IssueStoreError("locked")

        result = await StaleTaskMonitor(mock_store, mock_completion, clock=lambda: now).run()

        assert result["commented_issues"] == []
        assert result["errors"] == ["issue #1: locked"]
        assert result["warning"] == "failed to comment on 1 stale issue(s)"

    @pytest.mark.asyncio
    async def test_check_single_issue(self, mock_store, mock_completion, issues, now):
        mock_store.get_issue.return_value = issues[0]

        result = await StaleTaskMonitor(mock_store, mock_completion, clock=lambda: now).check_issue(1)

        assert result["is_stale"] is True
        assert result["days_stale"] == 10
        assert result["message"] == "Issue #1 is stale (10 days without update)"

    @pytest.mark.asyncio
    async def test_check_fresh_issue(self, mock_store, mock_completion, issues, now):
        mock_store.get_issue.return_value = issues[1]

        result = await StaleTaskMonitor(mock_store, mock_completion, clock=lambda: now).check_issue(2)

        assert result["is_stale"] is False
        assert result["message"] == "Issue #2 is not stale"
        mock_completion.complete.assert_not_awaited()


class TestPriorityAssessment:
    """Tests for PriorityAssessment."""

    @pytest.mark.asyncio
    async def test_comment_and_suggested_priority(self, mock_store, mock_completion, issue_factory):
        mock_store.get_issue.return_value = issue_factory(42, body="Depends on #7")
        mock_completion.complete.return_value = "Suggested priority: P1 (high business value)"

        result = await PriorityAssessment(mock_store, mock_completion, issue_number=42).run()

        assert result["suggested_priority"] == "P1"
        assert result["assessment"] == "Suggested priority: P1 (high business value)"
        assert result["comment_added"] is True
        assert result["message"] == "Priority assessment generated for issue #42"
        mock_store.add_comment.assert_awaited_once_with(
            42,
            "🎯 **Priority Assessment** (Generated by Priority Calculator)\n\n"
            "Suggested priority: P1 (high business value)",
            owner="test-owner",
            repo="test-repo",
        )

    @pytest.mark.asyncio
    async def test_comment_failure_is_a_warning(self, mock_store, mock_completion, issue_factory):
        mock_store.get_issue.return_value = issue_factory(42)
        mock_store.add_comment.side_effect = IssueStoreError("locked")

        result = await PriorityAssessment(mock_store, mock_completion, issue_number=42).run()

        assert result["comment_added"] is False
        assert result["warning"] == "failed to add comment: locked"


class TestDependencyAnalysis:
    """Tests for DependencyAnalysis."""

    @pytest.mark.asyncio
    async def test_references_extracted(self, mock_store, mock_completion, issue_factory):
        mock_store.get_issue.return_value = issue_factory(
            42, body="Depends on #3 and #4\nThis blocks #9\nRelated to #12"
        )
        library = PromptLibrary()
        library.add_template("dependency-tracker", "{{ dependencies }}|{{ blockers }}|{{ blocked }}")

        result = await DependencyAnalysis(mock_store, mock_completion, prompts=library, issue_number=42).run()

        assert result["dependencies"] == ["3", "4"]
        assert result["blockers"] == ["9"]
        assert mock_completion.complete.await_args.args[0] == "- #3\n- #4|- #9|True"
        assert result["message"] == "Dependency analysis completed for issue #42"
