"""
Abstract base classes for providers.

The engine depends on three capabilities only: an issue store (GitHub), a
text-completion endpoint (an LLM behind an OpenAI-compatible API) and a prompt
renderer. Each is defined here so the validation workflow, plugin interpreter
and digest generators can be tested against mocks.
"""

from abc import ABC, abstractmethod
from typing import Any, Protocol

from project_agent.enums import StoreMode
from project_agent.models.domain import Issue


class IssueStore(ABC):
    """Abstract base class for issue store implementations.

    Every method that addresses a single issue takes keyword-only ``owner``
    and ``repo``. Single-repo stores ignore them when they match the
    configured repository; multi-repo stores use them to route the call and,
    when they are omitted, resolve the owning repository themselves.

    All methods are async. Implementations never issue concurrent requests.
    """

    @property
    @abstractmethod
    def mode(self) -> StoreMode:
        """Whether this store addresses one repository or several."""
        pass

    async def connect(self) -> None:
        """Open connections. Default implementation does nothing."""

    async def disconnect(self) -> None:
        """Release connections. Default implementation does nothing."""

    @abstractmethod
    async def list_issues(self, state: str = "open") -> list[Issue]:
        """List issues, excluding pull requests.

        Args:
            state: "open", "closed" or "all"

        Returns:
            Issues in the order the API returns them. Multi-repo stores
            concatenate per repository in configured order.

        Raises:
            IssueStoreError: If the API request fails
        """
        pass

    @abstractmethod
    async def get_issue(
        self,
        number: int,
        *,
        owner: str | None = None,
        repo: str | None = None,
    ) -> Issue:
        """Get a single issue by number.

        Raises:
            IssueNotFoundError: If no repository has the issue
            IssueStoreError: If the API request fails
        """
        pass

    @abstractmethod
    async def update_issue(
        self,
        number: int,
        *,
        title: str | None = None,
        body: str | None = None,
        owner: str | None = None,
        repo: str | None = None,
    ) -> None:
        """Update the title and/or body of an issue.

        Fields left as None are not touched.

        Raises:
            IssueStoreError: If the API request fails
        """
        pass

    @abstractmethod
    async def add_comment(
        self,
        number: int,
        text: str,
        *,
        owner: str | None = None,
        repo: str | None = None,
    ) -> None:
        """Post a comment on an issue.

        Raises:
            IssueStoreError: If the API request fails
        """
        pass

    @abstractmethod
    async def create_issue(
        self,
        title: str,
        body: str,
        labels: list[str] | None = None,
        *,
        owner: str | None = None,
        repo: str | None = None,
    ) -> Issue:
        """Create an issue.

        Multi-repo stores default to the first configured repository.

        Raises:
            IssueStoreError: If the API request fails
        """
        pass

    @abstractmethod
    async def add_label(
        self,
        number: int,
        label: str,
        *,
        owner: str | None = None,
        repo: str | None = None,
    ) -> None:
        """Add a label to an issue. A no-op if the label is already present.

        Raises:
            IssueStoreError: If the API request fails
        """
        pass


class TextCompletion(ABC):
    """A single-shot text generation service.

    No streaming, no conversation state carried across calls.
    """

    async def connect(self) -> None:
        """Open connections. Default implementation does nothing."""

    async def disconnect(self) -> None:
        """Release connections. Default implementation does nothing."""

    @abstractmethod
    async def complete(self, prompt: str) -> str:
        """Return the model's answer to ``prompt``.

        Raises:
            CompletionError: On transport failure, error status, an error
                payload, or a response without choices
        """
        pass


class PromptRenderer(Protocol):
    """Named prompt templates rendered with a data mapping."""

    def has_template(self, name: str) -> bool: ...

    def render(self, name: str, data: dict[str, Any]) -> str: ...
