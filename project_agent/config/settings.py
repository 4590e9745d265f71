"""
Configuration system using Pydantic for type-safe settings management.

Settings can come from a YAML file (with ``${VAR}`` interpolation), from
``PROJECT_AGENT_``-prefixed environment variables with ``__`` as the nesting
delimiter, or from the plain variables a GitHub Actions workflow usually
exports (``GITHUB_TOKEN``, ``LLM_MODEL``, ...) via ``from_env``.
"""

from __future__ import annotations

import os
import re
from collections.abc import Mapping
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, SecretStr, ValidationError, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from project_agent.enums import StoreMode
from project_agent.exceptions import ConfigurationError
from project_agent.models.domain import FormatRules


class RepositoryConfig(BaseModel):
    """One repository taking part in a multi-repo project."""

    owner: str = Field(..., description="Repository owner/organization")
    name: str = Field(..., description="Repository name")

    @classmethod
    def parse(cls, spec: str) -> RepositoryConfig:
        """Parse an ``owner/name`` string.

        Raises:
            ConfigurationError: If the string is not ``owner/name``
        """
        owner, sep, name = spec.strip().partition("/")
        if not sep or not owner or not name or "/" in name:
            raise ConfigurationError(f"Invalid repository reference '{spec}', expected owner/repo")
        return cls(owner=owner, name=name)

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"


class GitHubConfig(BaseModel):
    """GitHub access configuration.

    Either a token or GitHub App credentials must be provided. Setting
    ``project_id`` or ``repos`` switches the agent to multi-repo mode.
    """

    token: SecretStr | None = Field(default=None, description="Personal access or Actions token")
    owner: str = Field(default="", description="Owner for single-repo mode")
    repo: str = Field(default="", description="Repository for single-repo mode")
    project_id: str = Field(default="", description="Project identifier for multi-repo mode")
    repos: list[RepositoryConfig] = Field(default_factory=list, description="Repositories in the project")
    base_url: str = Field(default="https://api.github.com", description="GitHub API base URL")
    app_id: int | None = Field(default=None, description="GitHub App ID")
    app_installation_id: int | None = Field(default=None, description="GitHub App installation ID")
    app_private_key: SecretStr | None = Field(default=None, description="GitHub App private key (PEM)")
    app_private_key_path: str | None = Field(default=None, description="Path to the App private key")

    @property
    def mode(self) -> StoreMode:
        if self.project_id or self.repos:
            return StoreMode.MULTI_REPO
        return StoreMode.SINGLE_REPO

    @property
    def uses_app_auth(self) -> bool:
        return self.app_id is not None and self.app_installation_id is not None

    @model_validator(mode="after")
    def check_mode(self) -> GitHubConfig:
        """Check that the selected mode has what it needs."""
        if self.mode == StoreMode.MULTI_REPO:
            if not self.repos:
                raise ValueError("multi-repo mode requires at least one repository in 'repos'")
        elif not self.owner or not self.repo:
            raise ValueError("single-repo mode requires both 'owner' and 'repo'")
        if not self.uses_app_auth and self.token is None:
            raise ValueError("either 'token' or GitHub App credentials must be set")
        return self

    def read_private_key(self) -> str:
        """Return the App private key, reading it from disk if configured by path.

        Raises:
            ConfigurationError: If no key is configured or the file is unreadable
        """
        if self.app_private_key is not None:
            return self.app_private_key.get_secret_value()
        if not self.app_private_key_path:
            raise ConfigurationError("GitHub App auth requires app_private_key or app_private_key_path")
        try:
            return Path(self.app_private_key_path).read_text()
        except OSError as e:
            raise ConfigurationError(f"Cannot read GitHub App private key: {self.app_private_key_path}") from e


class LLMConfig(BaseModel):
    """Text-completion endpoint (any OpenAI-compatible chat completions API)."""

    base_url: str = Field(default="http://localhost:4000", description="LiteLLM or OpenAI-compatible URL")
    model: str = Field(default="gpt-4", description="Model identifier")
    api_key: SecretStr | None = Field(default=None, description="Bearer token, if the endpoint needs one")
    timeout: float = Field(default=30.0, gt=0, description="Request timeout in seconds")


class FormatRulesConfig(BaseModel):
    """Default format rules, before any guidelines override."""

    required_sections: list[str] = Field(default_factory=lambda: ["Description", "Acceptance Criteria"])
    min_description_length: int = Field(default=50, ge=0)
    require_labels: bool = True
    label_prefix: str = "priority:"

    def to_rules(self) -> FormatRules:
        return FormatRules(
            required_sections=tuple(self.required_sections),
            min_description_length=self.min_description_length,
            require_labels=self.require_labels,
            label_prefix=self.label_prefix,
        )


class AgentConfig(BaseModel):
    """Behaviour of the agent itself."""

    stale_task_threshold_days: int = Field(default=7, ge=1, description="Days without update before nudging")
    check_interval_hours: float = Field(default=24, gt=0, description="Daemon interval between stale checks")
    guidelines_path: str = Field(default=".github/task-guidelines.md", description="Task guidelines document")
    prompts_paths: list[str] = Field(default_factory=lambda: ["prompts"], description="Prompt template dirs")
    plugins_path: str = Field(default=".github/agents", description="Plugin agents directory")
    sentinel_label: str = Field(default="agent-validator", description="Marks issues already validated")
    format_rules: FormatRulesConfig = Field(default_factory=FormatRulesConfig)


class AgentSettings(BaseSettings):
    """Main settings object.

    Combines all configuration sections and provides loaders for YAML files
    and for plain CI environment variables.
    """

    model_config = SettingsConfigDict(
        env_prefix="PROJECT_AGENT_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    github: GitHubConfig
    llm: LLMConfig = Field(default_factory=LLMConfig)
    agent: AgentConfig = Field(default_factory=AgentConfig)

    @property
    def prompt_search_paths(self) -> list[Path]:
        """Prompt directories in override order.

        Plugin prompt directories come first so configured directories win.
        """
        plugins = Path(self.agent.plugins_path)
        paths = [plugins / "core" / "prompts", plugins / "custom" / "prompts"]
        paths.extend(Path(p) for p in self.agent.prompts_paths)
        return paths

    @classmethod
    def from_yaml(cls, config_path: str) -> AgentSettings:
        """Load settings from YAML file with environment variable interpolation.

        Args:
            config_path: Path to YAML configuration file

        Returns:
            AgentSettings instance

        Raises:
            ConfigurationError: If config file is invalid or missing required fields
        """
        config_file = Path(config_path)
        if not config_file.exists():
            raise ConfigurationError(f"Configuration file not found: {config_path}")

        try:
            with open(config_file) as f:
                yaml_content = f.read()
        except OSError as e:
            raise ConfigurationError(f"Cannot read configuration file: {config_path}") from e

        try:
            yaml_content = cls._interpolate_env_vars(yaml_content)
        except ValueError as e:
            raise ConfigurationError(f"Invalid environment variable reference in config: {e}") from e

        try:
            config_dict = yaml.safe_load(yaml_content)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML syntax in {config_path}: {e}") from e
        if not isinstance(config_dict, dict):
            raise ConfigurationError("Configuration must be a YAML object, not a list or scalar")

        github = config_dict.get("github")
        if isinstance(github, dict) and isinstance(github.get("repos"), list):
            github["repos"] = [
                RepositoryConfig.parse(r).model_dump() if isinstance(r, str) else r for r in github["repos"]
            ]

        try:
            return cls(**config_dict)
        except ValidationError as e:
            raise ConfigurationError(f"Failed to validate configuration: {e}") from e

    @classmethod
    def from_env(cls) -> AgentSettings:
        """Build settings from the plain environment variables used in CI.

        Recognised variables: ``GITHUB_TOKEN``, ``GITHUB_OWNER``,
        ``GITHUB_REPO``, ``GITHUB_PROJECT_ID``, ``GITHUB_REPOS``
        (``owner/repo,owner/repo``), ``GITHUB_BASE_URL``, ``GITHUB_APP_ID``,
        ``GITHUB_APP_INSTALLATION_ID``, ``GITHUB_APP_PRIVATE_KEY``,
        ``GITHUB_APP_PRIVATE_KEY_PATH``, ``LITELLM_BASE_URL``, ``LLM_MODEL``,
        ``LLM_API_KEY``, ``STALE_TASK_THRESHOLD_DAYS``,
        ``CHECK_INTERVAL_HOURS``, ``GUIDELINES_PATH``, ``PROMPTS_PATH``
        (comma separated) and ``PLUGINS_PATH``.

        Raises:
            ConfigurationError: If the resulting settings are invalid
        """
        env = os.environ
        github: dict[str, object] = {}
        llm: dict[str, object] = {}
        agent: dict[str, object] = {}

        _copy_env(env, github, "GITHUB_TOKEN", "token")
        _copy_env(env, github, "GITHUB_OWNER", "owner")
        _copy_env(env, github, "GITHUB_REPO", "repo")
        _copy_env(env, github, "GITHUB_PROJECT_ID", "project_id")
        _copy_env(env, github, "GITHUB_BASE_URL", "base_url")
        _copy_env(env, github, "GITHUB_APP_ID", "app_id")
        _copy_env(env, github, "GITHUB_APP_INSTALLATION_ID", "app_installation_id")
        _copy_env(env, github, "GITHUB_APP_PRIVATE_KEY", "app_private_key")
        _copy_env(env, github, "GITHUB_APP_PRIVATE_KEY_PATH", "app_private_key_path")
        if env.get("GITHUB_REPOS"):
            github["repos"] = [
                RepositoryConfig.parse(spec).model_dump()
                for spec in env["GITHUB_REPOS"].split(",")
                if spec.strip()
            ]

        _copy_env(env, llm, "LITELLM_BASE_URL", "base_url")
        _copy_env(env, llm, "LLM_MODEL", "model")
        _copy_env(env, llm, "LLM_API_KEY", "api_key")

        _copy_env(env, agent, "STALE_TASK_THRESHOLD_DAYS", "stale_task_threshold_days")
        _copy_env(env, agent, "CHECK_INTERVAL_HOURS", "check_interval_hours")
        _copy_env(env, agent, "GUIDELINES_PATH", "guidelines_path")
        _copy_env(env, agent, "PLUGINS_PATH", "plugins_path")
        if env.get("PROMPTS_PATH"):
            agent["prompts_paths"] = [p.strip() for p in env["PROMPTS_PATH"].split(",") if p.strip()]

        try:
            return cls(github=github, llm=llm, agent=agent)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid environment configuration: {e}") from e

    @staticmethod
    def _interpolate_env_vars(content: str) -> str:
        """Interpolate ${VAR_NAME} placeholders with environment variables.

        Supports two syntaxes:
        - ${VAR_NAME} - Required environment variable (raises if not set)
        - ${VAR_NAME:-default} - Optional with default value

        YAML comment lines (starting with #) are left unchanged.

        Raises:
            ValueError: If a required environment variable is not set
        """
        pattern = re.compile(r"\$\{([A-Z_][A-Z0-9_]*)(?::-([^}]*))?\}")

        def replace_var(match: re.Match[str]) -> str:
            var_name = match.group(1)
            default_value = match.group(2)
            value = os.getenv(var_name)

            if value is not None:
                return value
            elif default_value is not None:
                return default_value
            else:
                raise ValueError(f"Environment variable {var_name} is not set")

        def process_line(line: str) -> str:
            if line.lstrip().startswith("#"):
                return line
            return pattern.sub(replace_var, line)

        return "\n".join(process_line(line) for line in content.split("\n"))


def _copy_env(env: Mapping[str, str], target: dict[str, object], var: str, key: str) -> None:
    value = env.get(var)
    if value:
        target[key] = value
