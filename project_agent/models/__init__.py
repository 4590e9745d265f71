"""Domain models: issues, format rules, guidelines and plugin agents."""

from project_agent.models.domain import (
    FormatRules,
    GuidelineExample,
    Guidelines,
    Issue,
    IssueOutcome,
    IssueState,
    LabelRequirement,
    PluginAgent,
    Trigger,
    ValidationRun,
)

__all__ = [
    "FormatRules",
    "GuidelineExample",
    "Guidelines",
    "Issue",
    "IssueOutcome",
    "IssueState",
    "LabelRequirement",
    "PluginAgent",
    "Trigger",
    "ValidationRun",
]
