"""Pytest configuration and shared fixtures."""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest
import structlog

from project_agent.enums import StoreMode
from project_agent.models.domain import Issue, IssueState, PluginAgent
from project_agent.providers.base import IssueStore, TextCompletion

NOW = datetime(2026, 3, 16, 12, 0, tzinfo=UTC)

WELL_FORMED_BODY = (
    "## Description\n"
    "Users cannot reset their password when the email address contains a plus sign.\n\n"
    "## Acceptance Criteria\n"
    "- Reset works for addresses with +"
)


def make_issue(
    number: int = 42,
    title: str = "Fix password reset",
    body: str = WELL_FORMED_BODY,
    labels: list[str] | None = None,
    state: IssueState = IssueState.OPEN,
    assignee: str | None = None,
    updated_days_ago: int = 0,
    created_days_ago: int = 30,
    repo: str = "test-owner/test-repo",
) -> Issue:
    """Build an issue with sensible defaults; timestamps are relative to ``NOW``."""
    return Issue(
        id=number * 10,
        number=number,
        title=title,
        body=body,
        state=state,
        labels=["priority:high"] if labels is None else labels,
        created_at=NOW - timedelta(days=created_days_ago),
        updated_at=NOW - timedelta(days=updated_days_ago),
        author="reporter",
        url=f"https://github.com/{repo}/issues/{number}",
        assignee=assignee,
    )


@pytest.fixture
def now() -> datetime:
    """Fixed clock value used by the digest tests."""
    return NOW


@pytest.fixture
def sample_issue() -> Issue:
    """A well-formed open issue."""
    return make_issue()


@pytest.fixture
def mock_store() -> MagicMock:
    """Issue store with every operation mocked."""
    store = MagicMock(spec=IssueStore)
    store.mode = StoreMode.SINGLE_REPO
    store.connect = AsyncMock()
    store.disconnect = AsyncMock()
    store.list_issues = AsyncMock(return_value=[])
    store.get_issue = AsyncMock()
    store.update_issue = AsyncMock()
    store.add_comment = AsyncMock()
    store.create_issue = AsyncMock()
    store.add_label = AsyncMock()
    return store


@pytest.fixture
def mock_completion() -> MagicMock:
    """Completion service that answers every prompt with a fixed text."""
    completion = MagicMock(spec=TextCompletion)
    completion.connect = AsyncMock()
    completion.disconnect = AsyncMock()
    completion.complete = AsyncMock(return_value="Generated text")
    return completion


@pytest.fixture
def summarizer_agent() -> PluginAgent:
    """A plugin agent with the gate / generate / comment action list."""
    return PluginAgent(
        name="Task Summarizer",
        purpose="Summarize long tasks",
        actions=[
            "Check if task body is long enough",
            "Generate concise summary using LLM",
            "Add summary as a comment",
        ],
        config={"min_length_for_summary": 50},
    )


@pytest.fixture
def issue_factory():
    """The ``make_issue`` builder, for tests that need several issues."""
    return make_issue


@pytest.fixture(autouse=True)
def captured_logs():
    """Capture structlog events instead of printing them."""
    with structlog.testing.capture_logs() as logs:
        yield logs
