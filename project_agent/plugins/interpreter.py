"""Execute a plugin agent's action list against one issue.

The commands come from ``plan_actions``. Each runs in order against a shared
result mapping, and the target issue is fetched at most once per call.
"""

from typing import Any

import structlog

from project_agent.digests.metrics import project_stats
from project_agent.exceptions import ExternalServiceError, ProjectAgentError
from project_agent.models.domain import Issue, PluginAgent
from project_agent.plugins.commands import Comment, Generate, LengthGate, plan_actions
from project_agent.providers.base import IssueStore, PromptRenderer, TextCompletion
from project_agent.utils.text import format_date, normalize_summary

log = structlog.get_logger(__name__)

PROJECT_SCOPED_NAMES = ("executive", "progress", "summary")

ISSUE_PROMPT = """You are a helpful assistant. Based on the following GitHub issue, provide a concise summary.

Title: {title}
Body: {body}
Labels: {labels}
State: {state}
Assignee: {assignee}

Provide a clear, concise summary."""

PROJECT_PROMPT = """You are a helpful assistant. Analyze the following project data and provide insights.

{data}

Provide a clear, structured analysis."""


def extract_issue_number(params: dict[str, Any]) -> int | None:
    """Issue number from ``issue_number`` or ``issue``, if positive.

    Ints, floats and numeric strings are accepted.
    """
    for key in ("issue_number", "issue"):
        value = params.get(key)
        if isinstance(value, bool) or value is None:
            continue
        if isinstance(value, int | float):
            number = int(value)
        elif isinstance(value, str) and value.strip().isdigit():
            number = int(value.strip())
        else:
            continue
        if number > 0:
            return number
    return None


class ActionInterpreter:
    """Runs the length-gate, generate and comment commands of a plugin agent."""

    def __init__(
        self,
        store: IssueStore,
        completion: TextCompletion,
        prompts: PromptRenderer | None = None,
    ):
        self.store = store
        self.completion = completion
        self.prompts = prompts

    async def execute(
        self,
        agent: PluginAgent,
        params: dict[str, Any] | None = None,
        issue: Issue | None = None,
    ) -> dict[str, Any]:
        """Execute every command of ``agent`` in action-list order.

        Args:
            agent: Plugin agent to run
            params: Caller parameters; ``issue_number`` or ``issue`` selects
                the target issue, everything else is template data
            issue: Already-fetched target issue, if the caller has one

        Returns:
            Result mapping with ``agent``, ``type``, ``status``, ``actions``
            and ``message``, plus whatever the commands recorded

        Raises:
            IssueStoreError: If the target issue cannot be fetched
            IssueNotFoundError: If the target issue does not exist
        """
        params = params or {}
        result: dict[str, Any] = {
            "agent": agent.name,
            "type": str(agent.type),
            "status": "executed",
            "actions": list(agent.actions),
        }

        number = issue.number if issue is not None else extract_issue_number(params)
        if number is not None:
            result["issue"] = number

        for command in plan_actions(agent):
            if number is None:
                continue
            if issue is None:
                issue = await self.store.get_issue(number)

            if isinstance(command, LengthGate):
                length = len(issue.body)
                if length < command.threshold:
                    result["status"] = "skipped"
                    result["message"] = (
                        f"Task is too short to summarize ({length} chars, minimum {command.threshold})"
                    )
                    log.info("plugin_skipped_short_task", agent=agent.name, issue=number, length=length)
                    return result
                result["task_length"] = length
                result["length_check_passed"] = True

            elif isinstance(command, Generate):
                await self._generate(agent, command, issue, params, result)

            elif isinstance(command, Comment):
                await self._comment(agent, command, issue, result)

        result.setdefault("message", f"Plugin '{agent.name}' executed with {len(agent.actions)} actions")
        return result

    async def _generate(
        self,
        agent: PluginAgent,
        command: Generate,
        issue: Issue,
        params: dict[str, Any],
        result: dict[str, Any],
    ) -> None:
        try:
            context = await self.build_context(agent, issue, params)
            prompt = self.build_prompt(command.template, context, issue)
            text = normalize_summary(await self.completion.complete(prompt))
        except ProjectAgentError as e:
            log.warning("plugin_generate_failed", agent=agent.name, issue=issue.number, error=e.message)
            result["llm_error"] = e.message
            return

        result["summary"] = text
        result["content"] = text
        result["llm_called"] = True
        log.info("plugin_text_generated", agent=agent.name, issue=issue.number, length=len(text))

    async def _comment(self, agent: PluginAgent, command: Comment, issue: Issue, result: dict[str, Any]) -> None:
        content = result.get(command.source_key) or result.get("content")
        if not content:
            content = f"🤖 **{agent.name}** executed successfully."

        owner, repo = issue.repository or (None, None)
        try:
            await self.store.add_comment(issue.number, f"🤖 **{agent.name}**\n\n\n{content.strip()}", owner=owner, repo=repo)
        except ExternalServiceError as e:
            log.warning("plugin_comment_failed", agent=agent.name, issue=issue.number, error=e.message)
            result["comment_error"] = e.message
            return

        result["comment_added"] = True
        result["status"] = "completed"
        result["message"] = f"Summary generated and added as comment to issue #{issue.number}"

    async def build_context(self, agent: PluginAgent, issue: Issue, params: dict[str, Any]) -> dict[str, Any]:
        """Template data for a generate command.

        Project-scoped agents (executive, progress, summary) also get the
        project statistics. Caller parameters are overlaid last.
        """
        context: dict[str, Any] = {
            "title": issue.title,
            "body": issue.body,
            "labels": ", ".join(issue.labels),
            "state": issue.state.value,
            "assignee": issue.assignee or "",
            "number": issue.number,
            "created_at": format_date(issue.created_at),
            "updated_at": format_date(issue.updated_at),
        }

        name = agent.name.lower()
        if any(word in name for word in PROJECT_SCOPED_NAMES):
            open_issues = await self.store.list_issues("open")
            closed_issues = await self.store.list_issues("closed")
            context.update(project_stats(open_issues, closed_issues))

        context.update(params)
        return context

    def build_prompt(self, template: str, context: dict[str, Any], issue: Issue | None) -> str:
        """Render ``template``, or the inline prompt when it is not installed.

        Raises:
            TemplateError: If the template exists but fails to render
        """
        if self.prompts is not None and template and self.prompts.has_template(template):
            return self.prompts.render(template, context)

        if issue is not None:
            return ISSUE_PROMPT.format(
                title=issue.title,
                body=issue.body,
                labels=", ".join(issue.labels),
                state=issue.state.value,
                assignee=issue.assignee or "",
            )
        return PROJECT_PROMPT.format(data="\n".join(f"{key}: {value}" for key, value in context.items()))
