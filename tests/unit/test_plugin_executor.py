"""Tests for project_agent/plugins/executor.py - routing agents to runners."""

import pytest

from project_agent.exceptions import IssueNotFoundError, WorkflowError
from project_agent.models.domain import PluginAgent
from project_agent.plugins.executor import PluginExecutor
from project_agent.rendering import PromptLibrary


@pytest.fixture
def executor(mock_store, mock_completion):
    return PluginExecutor(mock_store, mock_completion)


class TestRoute:
    """Tests for name-based routing."""

    @pytest.mark.parametrize(
        ("name", "runner"),
        [
            ("Task Validator", "_run_validator"),
            ("Stale Task Monitor", "_run_monitor"),
            ("Product Roaster", "_run_roaster"),
            ("Executive Summary Generator", "_run_executive_summary"),
            ("Progress Reporter", "_run_progress_report"),
            ("Priority Calculator", "_run_priority"),
            ("Dependency Tracker", "_run_dependencies"),
            ("Task Summarizer", "_run_generic"),
            ("Code Reviewer", "_run_generic"),
        ],
    )
    def test_route(self, executor, name, runner):
        assert executor.route(PluginAgent(name=name)) == runner

    def test_first_keyword_wins(self, executor):
        """Keywords are checked in table order."""
        assert executor.route(PluginAgent(name="Dependency Validator")) == "_run_validator"

    def test_case_insensitive(self, executor):
        assert executor.route(PluginAgent(name="STALE MONITOR")) == "_run_monitor"


class TestValidatorRunner:
    """Validator agents run the format validation workflow."""

    @pytest.mark.asyncio
    async def test_single_issue_already_validated(self, executor, mock_store, mock_completion, issue_factory):
        mock_store.get_issue.return_value = issue_factory(42, labels=["agent-validator"])

        result = await executor.execute(PluginAgent(name="Task Validator"), {"issue_number": 42})

        assert result["agent"] == "Task Validator"
        assert result["status"] == "completed"
        assert result["total_issues"] == 1
        assert result["skipped_count"] == 1
        mock_completion.complete.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_single_valid_issue_is_labelled(self, executor, mock_store, sample_issue):
        mock_store.get_issue.return_value = sample_issue

        result = await executor.execute(PluginAgent(name="Task Validator"), {"issue": "42"})

        assert result["validated_count"] == 1
        assert result["fixed_count"] == 0
        mock_store.add_label.assert_awaited_once_with(42, "agent-validator", owner="test-owner", repo="test-repo")

    @pytest.mark.asyncio
    async def test_all_open_issues(self, executor, mock_store):
        result = await executor.execute(PluginAgent(name="Task Validator"))

        mock_store.list_issues.assert_awaited_once_with("open")
        assert result["total_issues"] == 0

    @pytest.mark.asyncio
    async def test_missing_issue_propagates(self, executor, mock_store):
        mock_store.get_issue.side_effect = IssueNotFoundError(404)

        with pytest.raises(IssueNotFoundError):
            await executor.execute(PluginAgent(name="Task Validator"), {"issue_number": 404})


class TestMonitorRunner:
    """Monitor agents run the stale task monitor."""

    @pytest.mark.asyncio
    async def test_threshold_from_agent_config(self, executor, mock_store, issue_factory):
        mock_store.list_issues.return_value = [issue_factory(1)]
        agent = PluginAgent(name="Stale Task Monitor", config={"stale_threshold_days": 30})

        result = await executor.execute(agent)

        assert result["stale_threshold"] == "30 days"
        assert result["agent"] == "Stale Task Monitor"

    @pytest.mark.parametrize("value", ["soon", 0, True])
    @pytest.mark.asyncio
    async def test_invalid_threshold_uses_default(self, mock_store, mock_completion, value):
        executor = PluginExecutor(mock_store, mock_completion, stale_threshold_days=14)
        agent = PluginAgent(name="Stale Task Monitor", config={"stale_threshold_days": value})

        result = await executor.execute(agent)

        assert result["stale_threshold"] == "14 days"

    @pytest.mark.asyncio
    async def test_single_issue(self, executor, mock_store, issue_factory):
        mock_store.get_issue.return_value = issue_factory(5)

        result = await executor.execute(PluginAgent(name="Stale Task Monitor"), {"issue_number": 5})

        assert result["issue_number"] == 5
        assert result["is_stale"] is False


class TestDigestRunners:
    """Digest agents pick their template and report under the agent's name."""

    @pytest.mark.asyncio
    async def test_agent_template_preferred(self, mock_store, mock_completion, issue_factory):
        library = PromptLibrary()
        library.add_template("brutal-roast", "Roast {{ total_issues }} issues")
        library.add_template("roaster", "default roast")
        mock_store.create_issue.return_value = issue_factory(9)
        agent = PluginAgent(name="Product Roaster", prompt_path="prompts/brutal-roast.md")

        result = await PluginExecutor(mock_store, mock_completion, library).execute(agent)

        mock_completion.complete.assert_awaited_once_with("Roast 0 issues")
        assert result["agent"] == "Product Roaster"
        assert result["roast"] == "Generated text"

    @pytest.mark.asyncio
    async def test_generator_template_when_agent_template_missing(self, mock_store, mock_completion, issue_factory):
        library = PromptLibrary()
        library.add_template("executive-summary", "Summary of {{ total_issues }}")
        mock_store.create_issue.return_value = issue_factory(9)
        agent = PluginAgent(name="Executive Summary Generator", prompt_path="prompts/not-installed.md")

        await PluginExecutor(mock_store, mock_completion, library).execute(agent)

        mock_completion.complete.assert_awaited_once_with("Summary of 0")

    @pytest.mark.asyncio
    async def test_progress_reporter(self, executor, mock_store, issue_factory):
        mock_store.create_issue.return_value = issue_factory(9)

        result = await executor.execute(PluginAgent(name="Progress Reporter"))

        assert result["report"] == "Generated text"
        assert mock_store.create_issue.await_args.args[2] == ["automated", "progress-report", "report"]


class TestIssueAnalysisRunners:
    """Priority and dependency agents analyse one issue."""

    @pytest.mark.parametrize("name", ["Priority Calculator", "Dependency Tracker"])
    @pytest.mark.asyncio
    async def test_issue_number_required(self, executor, name):
        with pytest.raises(WorkflowError, match=f"{name}: issue_number is required"):
            await executor.execute(PluginAgent(name=name))

    @pytest.mark.asyncio
    async def test_priority(self, executor, mock_store, sample_issue):
        mock_store.get_issue.return_value = sample_issue

        result = await executor.execute(PluginAgent(name="Priority Calculator"), {"issue_number": 42})

        assert result["agent"] == "Priority Calculator"
        assert result["comment_added"] is True


class TestGenericRunner:
    """Every other agent runs its action list."""

    @pytest.mark.asyncio
    async def test_summarizer(self, executor, mock_store, sample_issue, summarizer_agent):
        mock_store.get_issue.return_value = sample_issue

        result = await executor.execute(summarizer_agent, {"issue_number": 42})

        assert result["status"] == "completed"
        assert result["summary"] == "Generated text"
        mock_store.add_comment.assert_awaited_once()
