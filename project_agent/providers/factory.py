"""Build issue stores, completion clients and prompt libraries from settings."""

import structlog
from github import Auth  # type: ignore[import-not-found]

from project_agent.config.settings import AgentSettings, GitHubConfig, LLMConfig
from project_agent.enums import StoreMode
from project_agent.providers.base import IssueStore, TextCompletion
from project_agent.providers.github_rest import GitHubRestStore
from project_agent.providers.multi_repo import MultiRepoStore
from project_agent.providers.openai_compatible import OpenAICompatibleCompletion
from project_agent.rendering.engine import PromptLibrary

log = structlog.get_logger(__name__)


def _github_auth(config: GitHubConfig) -> Auth.Auth | None:
    if config.uses_app_auth:
        app_auth = Auth.AppAuth(config.app_id, config.read_private_key())
        return app_auth.get_installation_auth(config.app_installation_id)
    return None


def create_issue_store(config: GitHubConfig) -> IssueStore:
    """Create the issue store for the configured mode.

    Args:
        config: GitHub section of the settings

    Returns:
        A ``GitHubRestStore`` in single-repo mode, a ``MultiRepoStore`` over
        one ``GitHubRestStore`` per repository otherwise

    Raises:
        ConfigurationError: If App auth is configured without a readable key
    """
    auth = _github_auth(config)
    token = config.token.get_secret_value() if config.token else None

    if config.mode == StoreMode.MULTI_REPO:
        stores = [
            GitHubRestStore(owner=r.owner, repo=r.name, token=token, base_url=config.base_url, auth=auth)
            for r in config.repos
        ]
        log.info("issue_store_created", mode=str(config.mode), repos=[r.full_name for r in config.repos])
        return MultiRepoStore(stores, project_id=config.project_id)

    log.info("issue_store_created", mode=str(config.mode), repo=f"{config.owner}/{config.repo}")
    return GitHubRestStore(
        owner=config.owner,
        repo=config.repo,
        token=token,
        base_url=config.base_url,
        auth=auth,
    )


def create_completion(config: LLMConfig) -> TextCompletion:
    """Create the text-completion client."""
    return OpenAICompatibleCompletion(
        base_url=config.base_url,
        model=config.model,
        api_key=config.api_key.get_secret_value() if config.api_key else None,
        timeout=config.timeout,
    )


def create_prompt_library(settings: AgentSettings) -> PromptLibrary:
    """Create the prompt library over every configured prompt directory."""
    return PromptLibrary(settings.prompt_search_paths)
