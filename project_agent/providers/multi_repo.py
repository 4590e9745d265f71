"""Issue store spanning several repositories of one project.

Calls that name an owner/repo are routed to that repository's store. Calls
that do not are resolved the way a project board would: reads search the
configured repositories in order (first match wins), issue creation goes to
the first repository. The search is linear; an index from issue number to
repository would be needed if projects grow to many repositories.
"""

import structlog

from project_agent.enums import StoreMode
from project_agent.exceptions import IssueNotFoundError, IssueStoreError
from project_agent.models.domain import Issue
from project_agent.providers.base import IssueStore
from project_agent.providers.github_rest import GitHubRestStore

log = structlog.get_logger(__name__)


class MultiRepoStore(IssueStore):
    """Fan-out store over one ``GitHubRestStore`` per repository."""

    def __init__(self, stores: list[GitHubRestStore], project_id: str = ""):
        """Initialize the store.

        Args:
            stores: Per-repository stores, in search order
            project_id: Informational project identifier

        Raises:
            ValueError: If no stores are given
        """
        if not stores:
            raise ValueError("multi-repo store requires at least one repository")
        self.stores = stores
        self.project_id = project_id

    @property
    def mode(self) -> StoreMode:
        return StoreMode.MULTI_REPO

    async def connect(self) -> None:
        for store in self.stores:
            await store.connect()
        log.info(
            "project_connected",
            project_id=self.project_id,
            repos=[store.full_name for store in self.stores],
        )

    async def disconnect(self) -> None:
        for store in self.stores:
            await store.disconnect()

    def _store_for(self, owner: str | None, repo: str | None) -> GitHubRestStore | None:
        if not owner or not repo:
            return None
        for store in self.stores:
            if store.owner == owner and store.repo == repo:
                return store
        raise IssueStoreError(f"repository {owner}/{repo} is not part of this project")

    async def _locate(self, number: int, owner: str | None, repo: str | None) -> GitHubRestStore:
        """Find the store that owns issue ``number``."""
        store = self._store_for(owner, repo)
        if store is not None:
            return store
        issue = await self.get_issue(number)
        resolved = issue.repository
        if resolved is None:
            raise IssueStoreError(f"cannot determine repository of issue #{number} from {issue.url!r}")
        return self._store_for(*resolved) or self.stores[0]

    async def list_issues(self, state: str = "open") -> list[Issue]:
        """Concatenate issues from every repository in configured order."""
        issues: list[Issue] = []
        for store in self.stores:
            issues.extend(await store.list_issues(state))
        return issues

    async def get_issue(
        self,
        number: int,
        *,
        owner: str | None = None,
        repo: str | None = None,
    ) -> Issue:
        """Get an issue, searching every repository when none is named.

        Only a miss moves the search on to the next repository. Any other
        store error stops the search, so a failing repository never lets a
        same-numbered issue from another one stand in for it.

        Raises:
            IssueNotFoundError: If no repository has the issue
            IssueStoreError: If a repository fails before the issue is found
        """
        store = self._store_for(owner, repo)
        if store is not None:
            return await store.get_issue(number)

        for store in self.stores:
            try:
                return await store.get_issue(number)
            except IssueNotFoundError as e:
                log.debug("issue_not_in_repo", number=number, repo=store.full_name, error=e.message)
        raise IssueNotFoundError(number, f"issue #{number} not found in any repository")

    async def update_issue(
        self,
        number: int,
        *,
        title: str | None = None,
        body: str | None = None,
        owner: str | None = None,
        repo: str | None = None,
    ) -> None:
        store = await self._locate(number, owner, repo)
        await store.update_issue(number, title=title, body=body)

    async def add_comment(
        self,
        number: int,
        text: str,
        *,
        owner: str | None = None,
        repo: str | None = None,
    ) -> None:
        store = await self._locate(number, owner, repo)
        await store.add_comment(number, text)

    async def create_issue(
        self,
        title: str,
        body: str,
        labels: list[str] | None = None,
        *,
        owner: str | None = None,
        repo: str | None = None,
    ) -> Issue:
        """Create an issue, in the first repository unless one is named."""
        store = self._store_for(owner, repo) or self.stores[0]
        return await store.create_issue(title, body, labels)

    async def add_label(
        self,
        number: int,
        label: str,
        *,
        owner: str | None = None,
        repo: str | None = None,
    ) -> None:
        store = await self._locate(number, owner, repo)
        await store.add_label(number, label)
