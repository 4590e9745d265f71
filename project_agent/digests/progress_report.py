"""Weekly progress report, published as a new issue."""

from datetime import timedelta

from project_agent.digests.base import Gathered, ReportDigest
from project_agent.digests.metrics import (
    VELOCITY_WINDOW_DAYS,
    completion_rate,
    format_recent_activity,
    is_blocked,
    velocity,
)
from project_agent.utils.text import format_date

FALLBACK_PROMPT = """Create a progress report:

Period: Last {days} days
Total Tasks: {total}
Completed: {completed} ({rate:.1f}%)
Blocked: {blocked}
Velocity: {velocity:.1f} tasks/day

Provide a comprehensive progress report with metrics, achievements, risks, and recommendations."""


class ProgressReport(ReportDigest):
    """Completion rate, blocked work and velocity over the last week."""

    template_name = "progress-report"
    default_agent_name = "Progress Reporter"
    title_prefix = "Progress Report"
    type_labels = ("progress-report", "report")
    result_key = "report"

    async def gather(self) -> Gathered:
        open_issues = await self.store.list_issues("open")
        closed_issues = await self.store.list_issues("closed")

        now = self.clock()
        total = len(open_issues) + len(closed_issues)
        completed = len(closed_issues)
        rate = completion_rate(completed, total)
        blocked = sum(1 for issue in open_issues if is_blocked(issue))
        per_day = velocity(closed_issues, now)
        anchor = (open_issues or closed_issues or [None])[0]

        return Gathered(
            data={
                "start_date": format_date(now - timedelta(days=VELOCITY_WINDOW_DAYS)),
                "end_date": format_date(now),
                "total_tasks": total,
                "completed_tasks": completed,
                "completion_rate": f"{rate:.1f}",
                "open_tasks": len(open_issues),
                "blocked_tasks": blocked,
                "velocity": f"{per_day:.1f}",
                "recent_activity": format_recent_activity(closed_issues, limit=5),
            },
            metrics={
                "total_tasks": total,
                "completed": completed,
                "completion_rate": rate,
                "blocked": blocked,
                "velocity": per_day,
            },
            target=anchor.repository if anchor else None,
        )

    def fallback_prompt(self, gathered: Gathered) -> str:
        metrics = gathered.metrics
        return FALLBACK_PROMPT.format(
            days=VELOCITY_WINDOW_DAYS,
            total=metrics["total_tasks"],
            completed=metrics["completed"],
            rate=metrics["completion_rate"],
            blocked=metrics["blocked"],
            velocity=metrics["velocity"],
        )
