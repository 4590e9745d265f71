"""GitHub issue store implementation using PyGithub and the REST API."""

import asyncio
from collections.abc import Callable
from typing import TypeVar

import structlog
from github import Auth, Github, GithubException, UnknownObjectException  # type: ignore[import-not-found]
from github.Issue import Issue as GHIssue  # type: ignore[import-not-found]
from github.Repository import Repository as GHRepository  # type: ignore[import-not-found]

from project_agent.enums import StoreMode
from project_agent.exceptions import IssueNotFoundError, IssueStoreError
from project_agent.models.domain import Issue, IssueState
from project_agent.providers.base import IssueStore

log = structlog.get_logger(__name__)

T = TypeVar("T")

PAGE_SIZE = 100


async def _run_sync(func: Callable[[], T]) -> T:
    """Run a synchronous function in a thread pool.

    This prevents blocking the event loop when calling synchronous
    PyGithub methods.
    """
    return await asyncio.to_thread(func)


def _store_error(operation: str, e: GithubException) -> IssueStoreError:
    return IssueStoreError(
        f"GitHub {operation} failed: {e.data if e.data else e}",
        status_code=e.status,
        response_text=str(e.data) if e.data else None,
    )


class GitHubRestStore(IssueStore):
    """Issue store for a single GitHub repository."""

    def __init__(
        self,
        owner: str,
        repo: str,
        token: str | None = None,
        base_url: str = "https://api.github.com",
        auth: Auth.Auth | None = None,
    ):
        """Initialize the store.

        Args:
            owner: Repository owner (user or organization)
            repo: Repository name
            token: Personal access token or Actions token
            base_url: GitHub API base URL (for GitHub Enterprise)
            auth: Prebuilt PyGithub auth (GitHub App installation); takes
                precedence over ``token``
        """
        self.owner = owner
        self.repo = repo
        self.base_url = base_url.rstrip("/")
        if auth is None and token and token.strip():
            auth = Auth.Token(token.strip())
        self._auth = auth
        self._client: Github | None = None
        self._repo: GHRepository | None = None
        self._other_repos: dict[str, GHRepository] = {}

    @property
    def mode(self) -> StoreMode:
        return StoreMode.SINGLE_REPO

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"

    async def connect(self) -> None:
        """Initialize GitHub client and resolve the repository."""

        def _connect() -> tuple[Github, GHRepository]:
            client = Github(auth=self._auth, base_url=self.base_url, per_page=PAGE_SIZE)
            return client, client.get_repo(self.full_name)

        try:
            self._client, self._repo = await _run_sync(_connect)
        except GithubException as e:
            log.error("github_connect_failed", repo=self.full_name, error=str(e))
            raise _store_error(f"connect to {self.full_name}", e) from e
        log.info("github_connected", base_url=self.base_url, repo=self.full_name)

    async def disconnect(self) -> None:
        """Close GitHub client."""
        if self._client:
            await _run_sync(self._client.close)
            self._client = None
            self._repo = None
            self._other_repos.clear()

    def _target(self, owner: str | None, repo: str | None) -> GHRepository:
        """Repository addressed by ``owner``/``repo``; the configured one by default.

        Must be called from inside a worker thread, since resolving a foreign
        repository performs a request.
        """
        if self._repo is None or self._client is None:
            raise IssueStoreError(f"GitHub store for {self.full_name} is not connected")
        if not owner or not repo or (owner == self.owner and repo == self.repo):
            return self._repo
        key = f"{owner}/{repo}"
        if key not in self._other_repos:
            self._other_repos[key] = self._client.get_repo(key)
        return self._other_repos[key]

    async def list_issues(self, state: str = "open") -> list[Issue]:
        """List issues, skipping pull requests."""
        log.info("list_issues", repo=self.full_name, state=state)

        gh_state = state if state in ("open", "closed", "all") else "open"

        try:
            gh_issues = await _run_sync(lambda: list(self._target(None, None).get_issues(state=gh_state)))
        except GithubException as e:
            log.error("github_list_issues_failed", repo=self.full_name, error=str(e))
            raise _store_error("list issues", e) from e

        return [self._convert_issue(gh_issue) for gh_issue in gh_issues if gh_issue.pull_request is None]

    async def get_issue(
        self,
        number: int,
        *,
        owner: str | None = None,
        repo: str | None = None,
    ) -> Issue:
        """Get single issue by number."""
        log.info("get_issue", number=number, owner=owner, repo=repo)

        try:
            gh_issue = await _run_sync(lambda: self._target(owner, repo).get_issue(number))
        except UnknownObjectException as e:
            raise IssueNotFoundError(number) from e
        except GithubException as e:
            log.error("github_get_issue_failed", number=number, error=str(e))
            raise _store_error(f"get issue #{number}", e) from e

        if gh_issue.pull_request is not None:
            raise IssueNotFoundError(number, f"#{number} is a pull request, not an issue")
        return self._convert_issue(gh_issue)

    async def update_issue(
        self,
        number: int,
        *,
        title: str | None = None,
        body: str | None = None,
        owner: str | None = None,
        repo: str | None = None,
    ) -> None:
        """Update issue title and/or body."""
        log.info("update_issue", number=number)

        fields = {}
        if title is not None:
            fields["title"] = title
        if body is not None:
            fields["body"] = body
        if not fields:
            return

        def _update() -> None:
            self._target(owner, repo).get_issue(number).edit(**fields)

        try:
            await _run_sync(_update)
        except GithubException as e:
            log.error("github_update_issue_failed", number=number, error=str(e))
            raise _store_error(f"update issue #{number}", e) from e

    async def add_comment(
        self,
        number: int,
        text: str,
        *,
        owner: str | None = None,
        repo: str | None = None,
    ) -> None:
        """Add comment to issue."""
        log.info("add_comment", number=number)

        def _add_comment() -> None:
            self._target(owner, repo).get_issue(number).create_comment(text)

        try:
            await _run_sync(_add_comment)
        except GithubException as e:
            log.error("github_add_comment_failed", number=number, error=str(e))
            raise _store_error(f"comment on issue #{number}", e) from e

    async def create_issue(
        self,
        title: str,
        body: str,
        labels: list[str] | None = None,
        *,
        owner: str | None = None,
        repo: str | None = None,
    ) -> Issue:
        """Create a new issue."""
        log.info("create_issue", title=title, labels=labels)

        try:
            gh_issue = await _run_sync(
                lambda: self._target(owner, repo).create_issue(
                    title=title,
                    body=body,
                    labels=labels or [],
                )
            )
        except GithubException as e:
            log.error("github_create_issue_failed", error=str(e))
            raise _store_error("create issue", e) from e
        return self._convert_issue(gh_issue)

    async def add_label(
        self,
        number: int,
        label: str,
        *,
        owner: str | None = None,
        repo: str | None = None,
    ) -> None:
        """Add a label unless the issue already carries it."""

        def _add_label() -> bool:
            gh_issue = self._target(owner, repo).get_issue(number)
            if any(existing.name == label for existing in gh_issue.labels):
                return False
            gh_issue.add_to_labels(label)
            return True

        try:
            added = await _run_sync(_add_label)
        except GithubException as e:
            log.error("github_add_label_failed", number=number, label=label, error=str(e))
            raise _store_error(f"label issue #{number}", e) from e
        log.info("add_label", number=number, label=label, added=added)

    def _convert_issue(self, gh_issue: GHIssue) -> Issue:
        """Convert GitHub Issue to our Issue model."""
        state = IssueState.CLOSED if gh_issue.state == "closed" else IssueState.OPEN

        return Issue(
            id=gh_issue.id,
            number=gh_issue.number,
            title=gh_issue.title,
            body=gh_issue.body or "",
            state=state,
            labels=[label.name for label in gh_issue.labels],
            created_at=gh_issue.created_at,
            updated_at=gh_issue.updated_at,
            author=gh_issue.user.login if gh_issue.user else "unknown",
            url=gh_issue.html_url,
            assignee=gh_issue.assignee.login if gh_issue.assignee else None,
        )
