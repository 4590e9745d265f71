"""Configuration loading for the project agent.

Key Components:
    - AgentSettings: top-level settings, loadable from YAML or environment
    - GitHubConfig: token/App credentials and single- or multi-repo selection
    - LLMConfig: OpenAI-compatible completion endpoint
    - AgentConfig: thresholds, paths and default format rules
"""

from project_agent.config.settings import (
    AgentConfig,
    AgentSettings,
    FormatRulesConfig,
    GitHubConfig,
    LLMConfig,
    RepositoryConfig,
)

__all__ = [
    "AgentConfig",
    "AgentSettings",
    "FormatRulesConfig",
    "GitHubConfig",
    "LLMConfig",
    "RepositoryConfig",
]
