"""Shared shape of every digest: gather, prompt, generate, publish.

A digest aggregates data from the issue collection, renders a named prompt
template with it (or an inline fallback prompt when the template is not
installed), asks the completion service once, cleans the markdown it gets
back and publishes the result, either as one new issue or as comments.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

import structlog

from project_agent.exceptions import ExternalServiceError, WorkflowError
from project_agent.providers.base import IssueStore, PromptRenderer, TextCompletion
from project_agent.utils.text import clean_markdown_response, format_date

log = structlog.get_logger(__name__)

AUTOMATED_LABEL = "automated"


def utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass
class Gathered:
    """What a digest collected before prompting."""

    data: dict[str, Any]
    """Template context."""

    metrics: dict[str, Any] = field(default_factory=dict)
    """Numbers echoed back in the result."""

    target: tuple[str, str] | None = None
    """Repository the digest issue should be created in, if known."""


class DigestGenerator(ABC):
    """Base class for digests.

    Attributes:
        template_name: Prompt template looked up in the prompt library
        agent_name: Name reported in results and comment banners
    """

    template_name: str = ""
    default_agent_name: str = "Agent"

    def __init__(
        self,
        store: IssueStore,
        completion: TextCompletion,
        prompts: PromptRenderer | None = None,
        template_name: str | None = None,
        agent_name: str | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.completion = completion
        self.prompts = prompts
        if template_name:
            self.template_name = template_name
        self.agent_name = agent_name or self.default_agent_name
        self.clock = clock

    @abstractmethod
    async def gather(self) -> Gathered:
        """Collect the digest's data from the issue store."""

    @abstractmethod
    def fallback_prompt(self, gathered: Gathered) -> str:
        """Inline prompt used when the template is not installed."""

    @abstractmethod
    async def publish(self, gathered: Gathered, text: str) -> dict[str, Any]:
        """Write ``text`` back to GitHub and build the result mapping."""

    def build_prompt(self, gathered: Gathered) -> str:
        """Render the digest template, or fall back to the inline prompt.

        Raises:
            TemplateError: If the template exists but fails to render
        """
        if self.prompts is not None and self.template_name and self.prompts.has_template(self.template_name):
            return self.prompts.render(self.template_name, gathered.data)
        return self.fallback_prompt(gathered)

    async def generate(self, prompt: str) -> str:
        """One completion call, cleaned up as markdown.

        Raises:
            CompletionError: If the completion service fails
        """
        return clean_markdown_response(await self.completion.complete(prompt))

    async def run(self) -> dict[str, Any]:
        """Gather, prompt, generate and publish.

        Raises:
            IssueStoreError: If the issue data cannot be gathered
            WorkflowError: If the completion call fails
        """
        gathered = await self.gather()
        prompt = self.build_prompt(gathered)
        try:
            text = await self.generate(prompt)
        except ExternalServiceError as e:
            raise WorkflowError(f"{self.agent_name}: failed to generate digest: {e.message}") from e
        return await self.publish(gathered, text)


class ReportDigest(DigestGenerator):
    """A digest published as one new issue with a fixed label set."""

    title_prefix: str = ""
    type_labels: tuple[str, ...] = ()
    result_key: str = "summary"
    """Key the generated text is returned under."""

    @property
    def labels(self) -> list[str]:
        return [AUTOMATED_LABEL, *self.type_labels]

    def issue_title(self) -> str:
        return f"{self.title_prefix} - {format_date(self.clock())}"

    async def publish(self, gathered: Gathered, text: str) -> dict[str, Any]:
        """Create the digest issue. A creation failure is logged, not raised."""
        result: dict[str, Any] = {
            "agent": self.agent_name,
            "status": "completed",
            self.result_key: text,
            "metrics": gathered.metrics,
        }
        owner, repo = gathered.target or (None, None)
        try:
            created = await self.store.create_issue(self.issue_title(), text, self.labels, owner=owner, repo=repo)
        except ExternalServiceError as e:
            log.warning("digest_issue_failed", digest=self.title_prefix, error=e.message)
            result["issue_created"] = False
            result["warning"] = f"failed to create digest issue: {e.message}"
            result["message"] = f"{self.title_prefix} generated successfully (issue creation failed)"
            return result

        log.info("digest_issue_created", digest=self.title_prefix, issue=created.number)
        result["issue_created"] = True
        result["created_issue_number"] = created.number
        result["created_issue_url"] = created.url
        result["message"] = f"{self.title_prefix} generated and issue #{created.number} created"
        return result
