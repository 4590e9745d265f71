"""A blunt critique of the backlog, published as a new issue.

The roast looks at hygiene rather than progress: unassigned and unlabelled
work, thin descriptions, and the open issues that have been sitting the
longest.
"""

from project_agent.digests.base import Gathered, ReportDigest
from project_agent.digests.metrics import format_issue_list, label_distribution
from project_agent.models.domain import IssueState
from project_agent.utils.text import format_date

THIN_BODY_LENGTH = 50
OLDEST_SHOWN = 5

FALLBACK_PROMPT = """You are a brutally honest but constructive product reviewer. Roast this project's backlog.

Total issues: {total}
Open: {open}
Closed: {closed}
Unassigned open issues: {unassigned}
Open issues without labels: {unlabelled}
Open issues with descriptions under {thin_length} characters: {thin}

Oldest open issues:
{oldest}

Most used labels:
{labels}

Point out what is wrong with how this backlog is managed, be specific and a little funny, \
and finish with three concrete recommendations."""


class BacklogRoast(ReportDigest):
    """Backlog hygiene critique."""

    template_name = "roaster"
    default_agent_name = "Product Roaster"
    title_prefix = "Product Roast"
    type_labels = ("roast",)
    result_key = "roast"

    async def gather(self) -> Gathered:
        issues = await self.store.list_issues("all")
        open_issues = [issue for issue in issues if issue.state == IssueState.OPEN]

        unassigned = [issue for issue in open_issues if not issue.assignee]
        unlabelled = [issue for issue in open_issues if not issue.labels]
        thin = [issue for issue in open_issues if len(issue.body.strip()) < THIN_BODY_LENGTH]
        oldest = sorted(open_issues, key=lambda issue: issue.created_at)[:OLDEST_SHOWN]
        labels = label_distribution(issues)

        return Gathered(
            data={
                "total_issues": len(issues),
                "open_issues": len(open_issues),
                "closed_issues": len(issues) - len(open_issues),
                "unassigned": len(unassigned),
                "unlabelled": len(unlabelled),
                "thin_descriptions": len(thin),
                "thin_length": THIN_BODY_LENGTH,
                "oldest_issues": "\n".join(
                    f"- #{issue.number}: {issue.title} (opened {format_date(issue.created_at)})" for issue in oldest
                ),
                "label_distribution": "\n".join(f"- {name}: {count}" for name, count in list(labels.items())[:10]),
                "recent_issues": format_issue_list(open_issues, limit=10),
                "date": format_date(self.clock()),
            },
            metrics={
                "total_issues": len(issues),
                "open": len(open_issues),
                "unassigned": len(unassigned),
                "unlabelled": len(unlabelled),
                "thin_descriptions": len(thin),
            },
            target=issues[0].repository if issues else None,
        )

    def fallback_prompt(self, gathered: Gathered) -> str:
        data = gathered.data
        return FALLBACK_PROMPT.format(
            total=data["total_issues"],
            open=data["open_issues"],
            closed=data["closed_issues"],
            unassigned=data["unassigned"],
            unlabelled=data["unlabelled"],
            thin_length=THIN_BODY_LENGTH,
            thin=data["thin_descriptions"],
            oldest=data["oldest_issues"] or "(none)",
            labels=data["label_distribution"] or "(none)",
        )
