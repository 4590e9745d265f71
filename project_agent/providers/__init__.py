"""Provider implementations for GitHub issues and text completion.

Key Components:
    - IssueStore: abstract issue store (list/get/update/comment/create/label)
    - TextCompletion: abstract single-prompt completion
    - GitHubRestStore: one repository via PyGithub
    - MultiRepoStore: a project spanning several repositories
    - OpenAICompatibleCompletion: chat completions over httpx
"""

from project_agent.providers.base import IssueStore, PromptRenderer, TextCompletion

__all__ = [
    "IssueStore",
    "PromptRenderer",
    "TextCompletion",
]
