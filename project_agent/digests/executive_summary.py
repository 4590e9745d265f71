"""High-level project summary for stakeholders, published as a new issue."""

from project_agent.digests.base import Gathered, ReportDigest
from project_agent.digests.metrics import (
    format_issue_list,
    format_status_breakdown,
    is_blocked,
    is_in_progress,
)
from project_agent.utils.text import format_date

FALLBACK_PROMPT = """Create an executive summary for this project:

Total Issues: {total}
Open: {open}
Completed: {completed}
Blocked: {blocked}

Provide a high-level strategic overview focusing on business impact, risks, and opportunities."""


class ExecutiveSummary(ReportDigest):
    """Open/closed/blocked counts plus the most recent open issues."""

    template_name = "executive-summary"
    default_agent_name = "Executive Summary"
    title_prefix = "Executive Summary"
    type_labels = ("executive-summary", "report")
    result_key = "summary"

    async def gather(self) -> Gathered:
        open_issues = await self.store.list_issues("open")
        closed_issues = await self.store.list_issues("closed")

        blocked = sum(1 for issue in open_issues if is_blocked(issue))
        in_progress = sum(1 for issue in open_issues if is_in_progress(issue))
        total = len(open_issues) + len(closed_issues)
        anchor = (open_issues or closed_issues or [None])[0]

        return Gathered(
            data={
                "total_issues": total,
                "open_issues": len(open_issues),
                "in_progress": in_progress,
                "completed": len(closed_issues),
                "blocked": blocked,
                "issues_by_status": format_status_breakdown(open_issues + closed_issues),
                "recent_issues": format_issue_list(open_issues, limit=10),
                "date": format_date(self.clock()),
            },
            metrics={
                "total_issues": total,
                "open": len(open_issues),
                "completed": len(closed_issues),
                "blocked": blocked,
            },
            target=anchor.repository if anchor else None,
        )

    def fallback_prompt(self, gathered: Gathered) -> str:
        data = gathered.data
        return FALLBACK_PROMPT.format(
            total=data["total_issues"],
            open=data["open_issues"],
            completed=data["completed"],
            blocked=data["blocked"],
        )
