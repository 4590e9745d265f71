"""Prompt template rendering.

Key Exports:
    PromptLibrary: multi-directory, sandboxed Jinja2 prompt templates
"""

from project_agent.rendering.engine import PromptLibrary

__all__ = ["PromptLibrary"]
