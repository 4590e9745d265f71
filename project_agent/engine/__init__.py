"""Issue validation engine: format checking, content merging and the repair workflow."""

from project_agent.engine.content_merger import merge_content, remove_agent_notice
from project_agent.engine.schema_checker import check_format
from project_agent.engine.validator import IssueValidator

__all__ = [
    "IssueValidator",
    "check_format",
    "merge_content",
    "remove_agent_notice",
]
