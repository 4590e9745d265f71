"""Issue-collection metrics shared by the digest generators and plugin agents."""

import re
from collections import Counter
from datetime import datetime, timedelta

from project_agent.models.domain import Issue
from project_agent.utils.text import format_date

VELOCITY_WINDOW_DAYS = 7

_DEPENDENCY_WORDS = ("depends on", "requires", "needs", "waiting for")
_BLOCKER_WORDS = ("blocks", "prevents")
_ISSUE_REF = re.compile(r"#(\d+)")

_PRIORITY_KEYWORDS = (
    ("P0", ("p0", "critical")),
    ("P1", ("p1", "high")),
    ("P2", ("p2", "medium")),
    ("P3", ("p3", "low")),
)


def _label_contains(issue: Issue, *needles: str) -> bool:
    return any(needle in label.lower() for label in issue.labels for needle in needles)


def is_blocked(issue: Issue) -> bool:
    return _label_contains(issue, "blocked", "blocker")


def is_in_progress(issue: Issue) -> bool:
    return _label_contains(issue, "in progress", "in-progress")


def is_risky(issue: Issue) -> bool:
    return _label_contains(issue, "risk", "blocker", "critical")


def completion_rate(completed: int, total: int) -> float:
    """Percentage of ``total`` that is ``completed``; 0.0 for an empty project."""
    return completed / total * 100 if total else 0.0


def velocity(closed: list[Issue], now: datetime, days: int = VELOCITY_WINDOW_DAYS) -> float:
    """Closed issues updated within the last ``days`` days, per day."""
    since = now - timedelta(days=days)
    return sum(1 for issue in closed if issue.updated_at > since) / days


def project_stats(open_issues: list[Issue], closed_issues: list[Issue]) -> dict[str, object]:
    """Project-wide counts used as template data by project-scoped agents."""
    total = len(open_issues) + len(closed_issues)
    return {
        "total_open_tasks": len(open_issues),
        "in_progress_tasks": sum(1 for issue in open_issues if is_in_progress(issue)),
        "blocked_tasks": sum(1 for issue in open_issues if is_blocked(issue)),
        "completed_tasks": len(closed_issues),
        "completion_rate": f"{completion_rate(len(closed_issues), total):.1f}",
        "risk_count": sum(1 for issue in open_issues if is_risky(issue)),
    }


def format_status_breakdown(issues: list[Issue]) -> str:
    counts = Counter(issue.state.value for issue in issues)
    return "\n".join(f"- {state}: {count}" for state, count in sorted(counts.items()))


def format_issue_list(issues: list[Issue], limit: int = 10) -> str:
    return "\n".join(f"- #{issue.number}: {issue.title}" for issue in issues[:limit])


def format_recent_activity(closed: list[Issue], limit: int = 5) -> str:
    return "\n".join(
        f"- #{issue.number}: {issue.title} (Completed: {format_date(issue.updated_at)})" for issue in closed[:limit]
    )


def label_distribution(issues: list[Issue]) -> dict[str, int]:
    """Label name to number of issues carrying it, most common first."""
    counts = Counter(label for issue in issues for label in issue.labels)
    return dict(counts.most_common())


def _references(body: str, words: tuple[str, ...]) -> list[str]:
    refs: list[str] = []
    for line in body.split("\n"):
        lower = line.lower()
        if any(word in lower for word in words):
            refs.extend(ref for ref in _ISSUE_REF.findall(line) if ref not in refs)
    return refs


def extract_dependencies(body: str) -> list[str]:
    """Issue numbers referenced on "depends on" / "requires" / "needs" / "waiting for" lines."""
    return _references(body, _DEPENDENCY_WORDS)


def extract_blockers(body: str) -> list[str]:
    """Issue numbers referenced on "blocks" / "prevents" lines."""
    return _references(body, _BLOCKER_WORDS)


def format_dependencies(refs: list[str]) -> str:
    if not refs:
        return "None identified"
    return "\n".join(f"- #{ref}" for ref in refs)


def extract_priority(text: str) -> str:
    """First priority level mentioned in ``text``, checking P0 down to P3.

    Returns an empty string when no level is recognised.
    """
    lower = text.lower()
    for level, keywords in _PRIORITY_KEYWORDS:
        if any(keyword in lower for keyword in keywords):
            return level
    return ""
