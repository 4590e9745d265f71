"""Name-based routing of plugin agents to their runners.

Agents whose lower-cased name contains one of the routing keywords run a
specialised workflow (the validator, a digest or a per-issue analysis).
Every other agent goes through the generic ``ActionInterpreter``.
"""

from collections.abc import Awaitable, Callable
from typing import Any

import structlog

from project_agent.digests import (
    BacklogRoast,
    DependencyAnalysis,
    DigestGenerator,
    ExecutiveSummary,
    PriorityAssessment,
    ProgressReport,
    StaleTaskMonitor,
)
from project_agent.digests.stale_monitor import DEFAULT_THRESHOLD_DAYS, THRESHOLD_CONFIG_KEY
from project_agent.engine.validator import DEFAULT_SENTINEL_LABEL, IssueValidator
from project_agent.exceptions import WorkflowError
from project_agent.models.domain import FormatRules, Guidelines, PluginAgent
from project_agent.plugins.commands import extract_template_name
from project_agent.plugins.interpreter import ActionInterpreter, extract_issue_number
from project_agent.providers.base import IssueStore, PromptRenderer, TextCompletion

log = structlog.get_logger(__name__)

Runner = Callable[[PluginAgent, dict[str, Any], int | None], Awaitable[dict[str, Any]]]

# Routing keyword to runner name, checked in order
AGENT_ROUTES = (
    ("validator", "_run_validator"),
    ("monitor", "_run_monitor"),
    ("roaster", "_run_roaster"),
    ("executive summary", "_run_executive_summary"),
    ("progress reporter", "_run_progress_report"),
    ("priority", "_run_priority"),
    ("dependency", "_run_dependencies"),
)


class PluginExecutor:
    """Executes plugin agents against the issue store."""

    def __init__(
        self,
        store: IssueStore,
        completion: TextCompletion,
        prompts: PromptRenderer | None = None,
        rules: FormatRules | None = None,
        guidelines: Guidelines | None = None,
        sentinel_label: str = DEFAULT_SENTINEL_LABEL,
        stale_threshold_days: int = DEFAULT_THRESHOLD_DAYS,
    ):
        """Initialize the executor.

        Args:
            store: Issue store shared by every runner
            completion: Text-completion service shared by every runner
            prompts: Prompt library; runners fall back to inline prompts without one
            rules: Default format rules for validator agents
            guidelines: Parsed project guidelines for validator agents
            sentinel_label: Label marking issues as already validated
            stale_threshold_days: Monitor threshold unless the agent configures one
        """
        self.store = store
        self.completion = completion
        self.prompts = prompts
        self.rules = rules
        self.guidelines = guidelines
        self.sentinel_label = sentinel_label
        self.stale_threshold_days = stale_threshold_days
        self.interpreter = ActionInterpreter(store, completion, prompts)

    def route(self, agent: PluginAgent) -> str:
        """Name of the runner ``agent`` is dispatched to."""
        name = agent.name.lower()
        for keyword, runner in AGENT_ROUTES:
            if keyword in name:
                return runner
        return "_run_generic"

    async def execute(self, agent: PluginAgent, params: dict[str, Any] | None = None) -> dict[str, Any]:
        """Run ``agent`` with ``params``.

        Args:
            agent: Plugin agent to run
            params: Caller parameters; ``issue_number`` or ``issue`` selects an issue

        Returns:
            JSON-ready result mapping

        Raises:
            ProjectAgentError: If the runner fails
        """
        params = params or {}
        runner_name = self.route(agent)
        log.info("plugin_executing", agent=agent.name, runner=runner_name.removeprefix("_run_"))
        runner: Runner = getattr(self, runner_name)
        return await runner(agent, params, extract_issue_number(params))

    def _template_for(self, agent: PluginAgent, generator: type[DigestGenerator]) -> str:
        """Agent-specific template when installed, else the generator's own."""
        name = extract_template_name(agent)
        if self.prompts is not None and self.prompts.has_template(name):
            return name
        return generator.template_name

    def _digest(self, generator: type[DigestGenerator], agent: PluginAgent, **kwargs: Any) -> Any:
        return generator(
            self.store,
            self.completion,
            self.prompts,
            template_name=self._template_for(agent, generator),
            agent_name=agent.name,
            **kwargs,
        )

    async def _run_validator(self, agent: PluginAgent, params: dict[str, Any], number: int | None) -> dict[str, Any]:
        validator = IssueValidator(
            self.store,
            self.completion,
            self.prompts,
            rules=self.rules,
            guidelines=self.guidelines,
            sentinel_label=self.sentinel_label,
        )

        if number is not None:
            run = await validator.validate_issue(await self.store.get_issue(number))
        else:
            run = await validator.validate_all()

        return {"agent": agent.name, "status": "completed", **run.to_dict()}

    async def _run_monitor(self, agent: PluginAgent, params: dict[str, Any], number: int | None) -> dict[str, Any]:
        threshold = agent.config.get(THRESHOLD_CONFIG_KEY, self.stale_threshold_days)
        if isinstance(threshold, bool) or not isinstance(threshold, int) or threshold < 1:
            threshold = self.stale_threshold_days
        monitor = self._digest(StaleTaskMonitor, agent, threshold_days=threshold)
        if number is not None:
            return await monitor.check_issue(number)
        return await monitor.run()

    async def _run_roaster(self, agent: PluginAgent, params: dict[str, Any], number: int | None) -> dict[str, Any]:
        return await self._digest(BacklogRoast, agent).run()

    async def _run_executive_summary(
        self, agent: PluginAgent, params: dict[str, Any], number: int | None
    ) -> dict[str, Any]:
        return await self._digest(ExecutiveSummary, agent).run()

    async def _run_progress_report(
        self, agent: PluginAgent, params: dict[str, Any], number: int | None
    ) -> dict[str, Any]:
        return await self._digest(ProgressReport, agent).run()

    async def _run_priority(self, agent: PluginAgent, params: dict[str, Any], number: int | None) -> dict[str, Any]:
        if number is None:
            raise WorkflowError(f"{agent.name}: issue_number is required")
        return await self._digest(PriorityAssessment, agent, issue_number=number).run()

    async def _run_dependencies(self, agent: PluginAgent, params: dict[str, Any], number: int | None) -> dict[str, Any]:
        if number is None:
            raise WorkflowError(f"{agent.name}: issue_number is required")
        return await self._digest(DependencyAnalysis, agent, issue_number=number).run()

    async def _run_generic(self, agent: PluginAgent, params: dict[str, Any], number: int | None) -> dict[str, Any]:
        return await self.interpreter.execute(agent, params)
