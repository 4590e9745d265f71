"""Per-issue analyses posted as a comment on the analysed issue.

These follow the digest pattern with a single issue as the collection: the
issue is fetched, a prompt is built from it, the model answers once and the
answer is commented back.
"""

from typing import Any

import structlog

from project_agent.digests.base import DigestGenerator, Gathered
from project_agent.digests.metrics import (
    extract_blockers,
    extract_dependencies,
    extract_priority,
    format_dependencies,
)
from project_agent.exceptions import ExternalServiceError
from project_agent.models.domain import Issue
from project_agent.utils.text import format_date

log = structlog.get_logger(__name__)


class IssueAnalysis(DigestGenerator):
    """Base for analyses of one issue."""

    heading: str = ""
    result_key: str = "analysis"

    def __init__(self, *args: Any, issue_number: int, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.issue_number = issue_number

    def issue_data(self, issue: Issue) -> dict[str, Any]:
        return {
            "title": issue.title,
            "body": issue.body,
            "number": issue.number,
            "labels": ", ".join(issue.labels),
            "state": issue.state.value,
            "assignee": issue.assignee or "",
            "created_at": format_date(issue.created_at),
        }

    def extras(self, issue: Issue) -> dict[str, Any]:
        """Analysis-specific template data and result fields."""
        return {}

    async def gather(self) -> Gathered:
        issue = await self.store.get_issue(self.issue_number)
        extras = self.extras(issue)
        data = self.issue_data(issue)
        data.update(extras.get("data", {}))
        return Gathered(
            data=data,
            metrics={"title": issue.title, **extras.get("result", {})},
            target=issue.repository,
        )

    def comment_text(self, text: str) -> str:
        return f"{self.heading} (Generated by {self.agent_name})\n\n{text}"

    def result_fields(self, text: str) -> dict[str, Any]:
        return {}

    async def publish(self, gathered: Gathered, text: str) -> dict[str, Any]:
        """Comment the analysis on the issue. A comment failure is logged, not raised."""
        result: dict[str, Any] = {
            "agent": self.agent_name,
            "issue": self.issue_number,
            "status": "completed",
            **gathered.metrics,
            self.result_key: text,
            **self.result_fields(text),
        }
        owner, repo = gathered.target or (None, None)
        try:
            await self.store.add_comment(self.issue_number, self.comment_text(text), owner=owner, repo=repo)
            result["comment_added"] = True
        except ExternalServiceError as e:
            log.warning("analysis_comment_failed", issue=self.issue_number, error=e.message)
            result["comment_added"] = False
            result["warning"] = f"failed to add comment: {e.message}"
        return result


class PriorityAssessment(IssueAnalysis):
    """Suggests a P0-P3 priority for an issue."""

    template_name = "priority-calculator"
    default_agent_name = "Priority Calculator"
    heading = "🎯 **Priority Assessment**"
    result_key = "assessment"

    def extras(self, issue: Issue) -> dict[str, Any]:
        return {"data": {"dependencies": format_dependencies(extract_dependencies(issue.body))}}

    def fallback_prompt(self, gathered: Gathered) -> str:
        data = gathered.data
        return (
            "Analyze this task and calculate its priority (P0, P1, P2, P3):\n\n"
            f"Title: {data['title']}\n"
            f"Body: {data['body']}\n"
            f"Labels: {data['labels']}\n\n"
            "Consider: business value, effort, dependencies, strategic alignment, urgency."
        )

    def result_fields(self, text: str) -> dict[str, Any]:
        return {
            "suggested_priority": extract_priority(text),
            "message": f"Priority assessment generated for issue #{self.issue_number}",
        }


class DependencyAnalysis(IssueAnalysis):
    """Lists what an issue depends on and what it blocks."""

    template_name = "dependency-tracker"
    default_agent_name = "Dependency Tracker"
    heading = "🔗 **Dependency Analysis**"
    result_key = "analysis"

    def extras(self, issue: Issue) -> dict[str, Any]:
        dependencies = extract_dependencies(issue.body)
        blockers = extract_blockers(issue.body)
        return {
            "data": {
                "dependencies": format_dependencies(dependencies),
                "blockers": format_dependencies(blockers),
                "blocked": bool(dependencies),
                "blocking": bool(blockers),
            },
            "result": {"dependencies": dependencies, "blockers": blockers},
        }

    def fallback_prompt(self, gathered: Gathered) -> str:
        data = gathered.data
        return (
            "Analyze dependencies for this task:\n\n"
            f"Title: {data['title']}\n"
            f"Body: {data['body']}\n\n"
            "Identify: dependencies (depends on, requires, needs), blockers (blocks, prevents)."
        )

    def result_fields(self, text: str) -> dict[str, Any]:
        return {"message": f"Dependency analysis completed for issue #{self.issue_number}"}
