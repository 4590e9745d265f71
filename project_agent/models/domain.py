"""
Domain models for the project agent.

These dataclasses are the normalized internal representation of GitHub
issues, format rules, parsed guidelines and plugin agent definitions. They
are converted from PyGithub objects by the issue stores and from markdown
files by the loaders; nothing in the engine talks to provider types directly.

Example:
    Creating an issue from provider data::

        issue = Issue(
            id=12345,
            number=42,
            title="Fix login bug",
            body="## Description\\nUsers cannot log in with SSO",
            state=IssueState.OPEN,
            labels=["bug", "priority:high"],
            created_at=datetime.now(UTC),
            updated_at=datetime.now(UTC),
            author="jdoe",
            url="https://github.com/org/repo/issues/42",
        )
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any

from project_agent.enums import AgentType
from project_agent.utils.text import repo_from_url


class IssueState(str, Enum):
    """Enumeration of possible issue states."""

    OPEN = "open"
    """Issue is active and awaiting resolution."""

    CLOSED = "closed"
    """Issue has been resolved or dismissed."""


@dataclass
class Issue:
    """A GitHub issue as seen by the agent.

    Pull requests are never represented as issues; the stores filter them out.
    """

    id: int
    """Unique identifier assigned by GitHub's database."""

    number: int
    """Human-readable issue number (e.g., #42), unique within one repository."""

    title: str
    """Issue title, typically a single line."""

    body: str
    """Full issue description in markdown format. Empty string when unset."""

    state: IssueState
    """Current state of the issue (open or closed)."""

    labels: list[str]
    """Label names attached to the issue."""

    created_at: datetime
    """Timestamp when the issue was originally created."""

    updated_at: datetime
    """Timestamp of the most recent update to the issue.

    The stale-task monitor compares this against its threshold.
    """

    author: str
    """Login of the issue creator."""

    url: str
    """Web URL to view the issue.

    The owning repository is derived from this URL, which is how multi-repo
    mode routes writes back to the right place.
    """

    assignee: str | None = None
    """Login of the first assignee, if any."""

    def has_label(self, name: str) -> bool:
        """Return True if the issue carries exactly this label."""
        return name in self.labels

    @property
    def repository(self) -> tuple[str, str] | None:
        """``(owner, repo)`` parsed from the issue URL, or None."""
        return repo_from_url(self.url)


@dataclass(frozen=True)
class FormatRules:
    """Structural rules an issue body and label set must satisfy.

    Immutable for the duration of a validation run.
    """

    required_sections: tuple[str, ...] = ("Description", "Acceptance Criteria")
    """Section names that must appear in the body (case-insensitive substring)."""

    min_description_length: int = 50
    """Minimum body length in characters."""

    require_labels: bool = True
    """Whether a label starting with ``label_prefix`` is mandatory."""

    label_prefix: str = "priority:"
    """Prefix the mandatory label must start with."""

    def with_guidelines(self, guidelines: "Guidelines | None") -> "FormatRules":
        """Overlay rules parsed from a guidelines document.

        Guideline values replace the defaults only when they are set: a
        non-empty section list, a positive minimum length, a non-empty
        prefix. A label requirement from either side keeps labels required.
        """
        if guidelines is None:
            return self
        parsed = guidelines.format_rules
        return replace(
            self,
            required_sections=parsed.required_sections or self.required_sections,
            min_description_length=(
                parsed.min_description_length
                if parsed.min_description_length > 0
                else self.min_description_length
            ),
            require_labels=parsed.require_labels or self.require_labels,
            label_prefix=parsed.label_prefix or self.label_prefix,
        )


@dataclass
class LabelRequirement:
    """A ``label: <type> required|optional <values>`` line from the guidelines."""

    type: str
    required: bool
    values: list[str] = field(default_factory=list)


@dataclass
class GuidelineExample:
    """A sample task body taken from the guidelines' examples section."""

    title: str
    body: str


@dataclass
class Guidelines:
    """Project task-writing guidelines parsed from markdown."""

    raw_content: str
    """The whole document, passed verbatim into repair prompts."""

    format_rules: FormatRules = field(
        default_factory=lambda: FormatRules(required_sections=(), require_labels=False)
    )
    """Rules extracted from the format section."""

    label_requirements: list[LabelRequirement] = field(default_factory=list)

    instructions: str = ""
    """Free-text instructions for the model, from the guidance sections."""

    examples: list[GuidelineExample] = field(default_factory=list)


@dataclass
class Trigger:
    """When a plugin agent should run."""

    event: str = ""
    """Event name, e.g. ``issues.opened``."""

    schedule: str = ""
    """Cron expression for scheduled runs."""

    condition: str = ""
    """Free-text condition, informational only."""

    manual: bool = False
    """Whether the agent may be run by hand."""

    labels: list[str] = field(default_factory=list)
    """Labels that must all be present for an event trigger to match."""

    def matches(self, event: str, labels: list[str]) -> bool:
        """Return True if this trigger fires for the given event and labels."""
        if self.event and self.event == event:
            return all(label in labels for label in self.labels)
        return self.manual and event == "manual"


@dataclass
class PluginAgent:
    """An agent defined by a markdown file under the plugins directory.

    Loaded once at startup and treated as read-only input afterwards.
    Actions are natural-language phrases, interpreted by keyword matching.
    """

    name: str
    """Display name from the ``# Agent:`` heading."""

    type: AgentType = AgentType.CUSTOM
    """Whether the file came from ``core/`` or ``custom/``."""

    purpose: str = ""
    """Free-text purpose line."""

    actions: list[str] = field(default_factory=list)
    """Ordered action phrases."""

    config: dict[str, Any] = field(default_factory=dict)
    """Values from the file's yaml block (e.g. ``min_length_for_summary``)."""

    triggers: list[Trigger] = field(default_factory=list)

    prompt_path: str | None = None
    """Reference to a prompt template, e.g. ``prompts/summarizer.md``."""

    raw_content: str = ""

    file_path: str = ""

    def match_trigger(self, event: str, labels: list[str]) -> bool:
        """Return True if any of the agent's triggers fires."""
        return any(trigger.matches(event, labels) for trigger in self.triggers)

    @property
    def has_schedule(self) -> bool:
        """Whether any trigger carries a cron schedule."""
        return any(trigger.schedule for trigger in self.triggers)

    @property
    def schedule(self) -> str:
        """The first configured cron schedule, or an empty string."""
        for trigger in self.triggers:
            if trigger.schedule:
                return trigger.schedule
        return ""


@dataclass
class IssueOutcome:
    """What a batch validation did with one issue."""

    number: int
    title: str
    validated: bool
    """True when the issue went through the check without error."""

    fixed: bool
    """True when the body was rewritten."""

    comment: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "number": self.number,
            "title": self.title,
            "validated": self.validated,
            "fixed": self.fixed,
            "comment": self.comment,
        }


@dataclass
class ValidationRun:
    """Result of validating every open issue once.

    Transient: printed or returned, never persisted. When ``errors`` is empty,
    ``validated + skipped == total``.
    """

    total: int = 0
    validated: int = 0
    fixed: int = 0
    skipped: int = 0
    outcomes: list[IssueOutcome] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def message(self) -> str:
        if self.total and self.skipped == self.total:
            return "All issues already validated"
        return (
            f"Validated {self.validated} issues ({self.fixed} fixed, "
            f"{self.validated - self.fixed} already valid), "
            f"{self.skipped} skipped (already validated)"
        )

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "total_issues": self.total,
            "validated_count": self.validated,
            "fixed_count": self.fixed,
            "skipped_count": self.skipped,
            "validated_issues": [outcome.to_dict() for outcome in self.outcomes],
            "message": self.message,
        }
        if self.errors:
            result["errors"] = list(self.errors)
            result["error_count"] = len(self.errors)
        return result
