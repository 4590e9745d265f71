"""Nudge assignees of issues that have not been updated for a while.

Unlike the report digests, the monitor publishes one comment per qualifying
issue: open, assigned, and last updated before ``now - threshold``. If the
completion service or the prompt template fails, a canned nudge is posted
instead, so a flaky model never silences the monitor.
"""

from datetime import datetime, timedelta
from typing import Any

import structlog

from project_agent.digests.base import DigestGenerator, Gathered
from project_agent.exceptions import ExternalServiceError, ProjectAgentError, TemplateError
from project_agent.models.domain import Issue
from project_agent.utils.text import format_date

log = structlog.get_logger(__name__)

DEFAULT_THRESHOLD_DAYS = 7
THRESHOLD_CONFIG_KEY = "stale_threshold_days"

FALLBACK_PROMPT = """Generate a friendly but professional message to check on the progress of a GitHub task.

Task details:
- Title: {title}
- Number: #{number}
- Assigned to: {assignee}
- Last updated: {last_updated} ({days_stale} days ago)
- URL: {url}

The task has been in progress for {days_stale} days without updates. Ask for a status update in a \
friendly, non-pushy way. Keep it concise (2-3 sentences). Return ONLY the message text."""

CANNED_NUDGE = (
    "👋 Hey @{assignee}! This task has been in progress for {days_stale} days. "
    "Could you share a quick status update? Thanks! 🙏"
)


class StaleTaskMonitor(DigestGenerator):
    """Comments on stale, assigned issues."""

    template_name = "monitor"
    default_agent_name = "Agent"

    def __init__(self, *args: Any, threshold_days: int = DEFAULT_THRESHOLD_DAYS, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.threshold_days = threshold_days

    def days_stale(self, issue: Issue, now: datetime) -> int:
        return int((now - issue.updated_at).total_seconds() // 86400)

    def is_stale(self, issue: Issue, now: datetime) -> bool:
        """Assigned and last updated before the threshold."""
        return bool(issue.assignee) and issue.updated_at < now - timedelta(days=self.threshold_days)

    async def gather(self) -> Gathered:
        """Open issues and the stale subset."""
        issues = await self.store.list_issues("open")
        return self._classify(issues)

    def _classify(self, issues: list[Issue]) -> Gathered:
        now = self.clock()
        stale = [issue for issue in issues if self.is_stale(issue, now)]
        return Gathered(
            data={"issues": issues, "stale": stale},
            metrics={"total_checked": len(issues), "stale": len(stale)},
        )

    def issue_context(self, issue: Issue) -> Gathered:
        """Template data for one stale issue."""
        days = self.days_stale(issue, self.clock())
        return Gathered(
            data={
                "title": issue.title,
                "number": issue.number,
                "assignee": issue.assignee or "",
                "last_updated": format_date(issue.updated_at),
                "days_stale": days,
                "url": issue.url,
            },
            metrics={"number": issue.number, "days_stale": days},
            target=issue.repository,
        )

    def fallback_prompt(self, gathered: Gathered) -> str:
        return FALLBACK_PROMPT.format(**gathered.data)

    async def nudge_text(self, gathered: Gathered) -> str:
        """Model-written nudge, or the canned one if the prompt or the model fails."""
        try:
            message = await self.generate(self.build_prompt(gathered))
        except (ExternalServiceError, TemplateError) as e:
            log.warning("nudge_generation_failed", issue=gathered.data["number"], error=e.message)
            message = CANNED_NUDGE.format(**gathered.data)
        return f"🤖 **{self.agent_name}**: {message}"

    async def publish(self, gathered: Gathered, text: str) -> dict[str, Any]:
        """Post one nudge comment."""
        owner, repo = gathered.target or (None, None)
        number = gathered.data["number"]
        await self.store.add_comment(number, text, owner=owner, repo=repo)
        log.info("stale_issue_nudged", issue=number, days_stale=gathered.data["days_stale"])
        return {"number": number, "comment": text}

    async def run(self) -> dict[str, Any]:
        """Check every open issue and nudge the stale ones.

        Raises:
            IssueStoreError: If the open issues cannot be listed
        """
        return await self._nudge_all(await self.gather())

    async def check_issue(self, number: int) -> dict[str, Any]:
        """Check a single issue and nudge it if stale.

        Raises:
            IssueNotFoundError: If the issue does not exist
        """
        issue = await self.store.get_issue(number)
        result = await self._nudge_all(self._classify([issue]))
        result["issue_number"] = number
        result["days_stale"] = self.days_stale(issue, self.clock())
        result["is_stale"] = bool(result["stale_issues"])
        if result["is_stale"]:
            result["message"] = f"Issue #{number} is stale ({result['days_stale']} days without update)"
        else:
            result["message"] = f"Issue #{number} is not stale"
        return result

    async def _nudge_all(self, gathered: Gathered) -> dict[str, Any]:
        stale: list[Issue] = gathered.data["stale"]
        commented: list[int] = []
        errors: list[str] = []

        for issue in stale:
            context = self.issue_context(issue)
            try:
                text = await self.nudge_text(context)
                await self.publish(context, text)
            except ProjectAgentError as e:
                log.error("stale_nudge_failed", issue=issue.number, error=e.message)
                errors.append(f"issue #{issue.number}: {e.message}")
                continue
            commented.append(issue.number)

        result: dict[str, Any] = {
            "agent": self.agent_name,
            "status": "monitored",
            "total_checked": gathered.metrics["total_checked"],
            "stale_issues": [issue.number for issue in stale],
            "commented_issues": commented,
            "stale_threshold": f"{self.threshold_days} days",
            "message": (
                f"Checked {gathered.metrics['total_checked']} issues, found {len(stale)} stale, "
                f"commented on {len(commented)}"
            ),
        }
        if errors:
            result["errors"] = errors
            result["warning"] = f"failed to comment on {len(errors)} stale issue(s)"
        return result
