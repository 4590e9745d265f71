"""Tests for project_agent/config/settings.py Pydantic models.

Tests cover:
- GitHubConfig mode selection and validation
- LLM and agent defaults
- AgentSettings loading from YAML with environment interpolation
- AgentSettings loading from plain CI environment variables
"""

from pathlib import Path

import pytest
from pydantic import ValidationError

from project_agent.config.settings import (
    AgentConfig,
    AgentSettings,
    FormatRulesConfig,
    GitHubConfig,
    LLMConfig,
    RepositoryConfig,
)
from project_agent.enums import StoreMode
from project_agent.exceptions import ConfigurationError

LEGACY_VARS = (
    "GITHUB_TOKEN",
    "GITHUB_OWNER",
    "GITHUB_REPO",
    "GITHUB_PROJECT_ID",
    "GITHUB_REPOS",
    "GITHUB_BASE_URL",
    "GITHUB_APP_ID",
    "GITHUB_APP_INSTALLATION_ID",
    "GITHUB_APP_PRIVATE_KEY",
    "GITHUB_APP_PRIVATE_KEY_PATH",
    "LITELLM_BASE_URL",
    "LLM_MODEL",
    "LLM_API_KEY",
    "STALE_TASK_THRESHOLD_DAYS",
    "CHECK_INTERVAL_HOURS",
    "GUIDELINES_PATH",
    "PROMPTS_PATH",
    "PLUGINS_PATH",
)


@pytest.fixture
def clean_env(monkeypatch):
    """Remove every variable from_env reads."""
    for var in LEGACY_VARS:
        monkeypatch.delenv(var, raising=False)
    return monkeypatch


class TestRepositoryConfig:
    """Tests for RepositoryConfig."""

    def test_parse(self):
        repo = RepositoryConfig.parse(" octo/widgets ")

        assert repo.owner == "octo"
        assert repo.name == "widgets"
        assert repo.full_name == "octo/widgets"

    @pytest.mark.parametrize("spec", ["octo", "octo/", "/widgets", "a/b/c"])
    def test_parse_invalid(self, spec):
        with pytest.raises(ConfigurationError, match="expected owner/repo"):
            RepositoryConfig.parse(spec)


class TestGitHubConfig:
    """Tests for GitHubConfig."""

    def test_single_repo(self):
        config = GitHubConfig(token="t", owner="octo", repo="widgets")

        assert config.mode == StoreMode.SINGLE_REPO
        assert config.base_url == "https://api.github.com"
        assert config.token.get_secret_value() == "t"

    def test_multi_repo_by_repos(self):
        config = GitHubConfig(token="t", repos=[{"owner": "octo", "name": "a"}])

        assert config.mode == StoreMode.MULTI_REPO

    def test_project_id_requires_repos(self):
        """A project id alone selects multi-repo mode, which needs repositories."""
        with pytest.raises(ValidationError, match="requires at least one repository"):
            GitHubConfig(token="t", project_id="PVT_1")

    def test_single_repo_requires_owner_and_repo(self):
        with pytest.raises(ValidationError, match="requires both 'owner' and 'repo'"):
            GitHubConfig(token="t", owner="octo")

    def test_credentials_required(self):
        with pytest.raises(ValidationError, match="token"):
            GitHubConfig(owner="octo", repo="widgets")

    def test_app_auth_replaces_token(self):
        config = GitHubConfig(owner="o", repo="r", app_id=1, app_installation_id=2, app_private_key="PEM")

        assert config.uses_app_auth
        assert config.read_private_key() == "PEM"

    def test_private_key_from_file(self, tmp_path):
        key = tmp_path / "key.pem"
        key.write_text("FILE-PEM")
        config = GitHubConfig(owner="o", repo="r", app_id=1, app_installation_id=2, app_private_key_path=str(key))

        assert config.read_private_key() == "FILE-PEM"

    def test_private_key_unreadable(self, tmp_path):
        config = GitHubConfig(
            owner="o", repo="r", app_id=1, app_installation_id=2, app_private_key_path=str(tmp_path / "absent")
        )

        with pytest.raises(ConfigurationError, match="Cannot read GitHub App private key"):
            config.read_private_key()


class TestDefaults:
    """Defaults of the LLM and agent sections."""

    def test_llm_defaults(self):
        config = LLMConfig()

        assert config.base_url == "http://localhost:4000"
        assert config.model == "gpt-4"
        assert config.api_key is None
        assert config.timeout == 30.0

    def test_agent_defaults(self):
        config = AgentConfig()

        assert config.stale_task_threshold_days == 7
        assert config.check_interval_hours == 24
        assert config.guidelines_path == ".github/task-guidelines.md"
        assert config.prompts_paths == ["prompts"]
        assert config.plugins_path == ".github/agents"
        assert config.sentinel_label == "agent-validator"

    def test_format_rules_to_rules(self):
        rules = FormatRulesConfig(required_sections=["Context"], min_description_length=10).to_rules()

        assert rules.required_sections == ("Context",)
        assert rules.min_description_length == 10
        assert rules.require_labels is True
        assert rules.label_prefix == "priority:"

    def test_prompt_search_paths_order(self):
        """Plugin prompt directories first so configured ones override them."""
        settings = AgentSettings(
            github={"token": "t", "owner": "o", "repo": "r"},
            agent={"plugins_path": "agents", "prompts_paths": ["prompts", "more"]},
        )

        assert settings.prompt_search_paths == [
            Path("agents/core/prompts"),
            Path("agents/custom/prompts"),
            Path("prompts"),
            Path("more"),
        ]


class TestFromYaml:
    """Tests for AgentSettings.from_yaml."""

    def test_load_with_interpolation(self, tmp_path, monkeypatch):
        monkeypatch.setenv("TEST_GH_TOKEN", "secret-token")
        monkeypatch.delenv("TEST_MODEL", raising=False)
        config = tmp_path / "config.yaml"
        config.write_text(
            "# token: ${NOT_SET_ANYWHERE}\n"
            "github:\n"
            "  token: ${TEST_GH_TOKEN}\n"
            "  repos:\n"
            "    - octo/a\n"
            "    - owner: octo\n"
            "      name: b\n"
            "llm:\n"
            "  model: ${TEST_MODEL:-llama3}\n"
            "agent:\n"
            "  stale_task_threshold_days: 3\n"
        )

        settings = AgentSettings.from_yaml(str(config))

        assert settings.github.token.get_secret_value() == "secret-token"
        assert settings.github.mode == StoreMode.MULTI_REPO
        assert [repo.full_name for repo in settings.github.repos] == ["octo/a", "octo/b"]
        assert settings.llm.model == "llama3"
        assert settings.agent.stale_task_threshold_days == 3

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="Configuration file not found"):
            AgentSettings.from_yaml(str(tmp_path / "absent.yaml"))

    def test_unset_variable(self, tmp_path, monkeypatch):
        monkeypatch.delenv("DEFINITELY_UNSET_VAR", raising=False)
        config = tmp_path / "config.yaml"
        config.write_text("github:\n  token: ${DEFINITELY_UNSET_VAR}\n")

        with pytest.raises(ConfigurationError, match="DEFINITELY_UNSET_VAR is not set"):
            AgentSettings.from_yaml(str(config))

    def test_invalid_yaml(self, tmp_path):
        config = tmp_path / "config.yaml"
        config.write_text("github: [unclosed\n")

        with pytest.raises(ConfigurationError, match="Invalid YAML syntax"):
            AgentSettings.from_yaml(str(config))

    def test_not_a_mapping(self, tmp_path):
        config = tmp_path / "config.yaml"
        config.write_text("- a\n- b\n")

        with pytest.raises(ConfigurationError, match="must be a YAML object"):
            AgentSettings.from_yaml(str(config))

    def test_validation_error(self, tmp_path):
        config = tmp_path / "config.yaml"
        config.write_text("github:\n  token: t\n  owner: only-owner\n")

        with pytest.raises(ConfigurationError, match="Failed to validate configuration"):
            AgentSettings.from_yaml(str(config))


class TestFromEnv:
    """Tests for AgentSettings.from_env."""

    def test_single_repo(self, clean_env):
        clean_env.setenv("GITHUB_TOKEN", "tok")
        clean_env.setenv("GITHUB_OWNER", "octo")
        clean_env.setenv("GITHUB_REPO", "widgets")
        clean_env.setenv("LITELLM_BASE_URL", "http://llm:4000")
        clean_env.setenv("LLM_MODEL", "mistral")
        clean_env.setenv("STALE_TASK_THRESHOLD_DAYS", "14")
        clean_env.setenv("PROMPTS_PATH", "prompts, extra ,")

        settings = AgentSettings.from_env()

        assert settings.github.mode == StoreMode.SINGLE_REPO
        assert settings.github.owner == "octo"
        assert settings.llm.base_url == "http://llm:4000"
        assert settings.llm.model == "mistral"
        assert settings.agent.stale_task_threshold_days == 14
        assert settings.agent.prompts_paths == ["prompts", "extra"]

    def test_multi_repo(self, clean_env):
        clean_env.setenv("GITHUB_TOKEN", "tok")
        clean_env.setenv("GITHUB_PROJECT_ID", "PVT_1")
        clean_env.setenv("GITHUB_REPOS", "octo/a,octo/b")

        settings = AgentSettings.from_env()

        assert settings.github.mode == StoreMode.MULTI_REPO
        assert [repo.full_name for repo in settings.github.repos] == ["octo/a", "octo/b"]

    def test_missing_repository(self, clean_env):
        clean_env.setenv("GITHUB_TOKEN", "tok")

        with pytest.raises(ConfigurationError, match="Invalid environment configuration"):
            AgentSettings.from_env()
