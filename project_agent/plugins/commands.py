"""Turn a plugin agent's natural-language actions into executable commands.

Action phrases are free text ("Check if task body is long enough",
"Generate summary using LLM", "Add summary as a comment"). Each phrase is
matched case-insensitively against three keyword families, independently,
so a single phrase may yield several commands:

=============  ===================================================
Command        Phrase mentions
=============  ===================================================
LengthGate     "length", "long" or "threshold"
Generate       ("llm" or "generate") and ("summary", "content" or "text")
Comment        "add" and "comment"
=============  ===================================================

Classification is pure; ``ActionInterpreter`` executes the result.
"""

from dataclasses import dataclass
from typing import Any

from project_agent.models.domain import PluginAgent

DEFAULT_MIN_LENGTH_FOR_SUMMARY = 200
MIN_LENGTH_CONFIG_KEY = "min_length_for_summary"

PROMPT_PATH_PREFIXES = (".github/agents/custom/prompts/", ".github/agents/core/prompts/", "prompts/")
NAME_NOISE = ("task-", "executive-", "priority-", "progress-")


@dataclass(frozen=True)
class LengthGate:
    """Stop the action list when the issue body is shorter than ``threshold``."""

    threshold: int


@dataclass(frozen=True)
class Generate:
    """Render ``template`` (or the inline prompt) and ask the model for text."""

    template: str


@dataclass(frozen=True)
class Comment:
    """Post the text stored under ``source_key`` as a comment on the issue."""

    source_key: str = "summary"


Command = LengthGate | Generate | Comment


def _mentions(text: str, *words: str) -> bool:
    return any(word in text for word in words)


def min_length_for_summary(agent: PluginAgent) -> int:
    """Threshold for the length gate, from the agent's config or the default."""
    value: Any = agent.config.get(MIN_LENGTH_CONFIG_KEY)
    if isinstance(value, bool):
        return DEFAULT_MIN_LENGTH_FOR_SUMMARY
    if isinstance(value, int | float):
        return int(value)
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return DEFAULT_MIN_LENGTH_FOR_SUMMARY


def extract_template_name(agent: PluginAgent) -> str:
    """Prompt template name for an agent.

    With a prompt path, the template name is the file's stem
    (``prompts/summarizer.md`` -> ``summarizer``). Without one it is derived
    from the agent name: lower-cased, spaces to dashes, and common prefixes
    dropped (``Task Summarizer`` -> ``summarizer``).
    """
    if agent.prompt_path:
        name = agent.prompt_path.strip()
        name = name.removesuffix(".md")
        for prefix in PROMPT_PATH_PREFIXES:
            name = name.removeprefix(prefix)
        return name.rsplit("/", 1)[-1]

    name = agent.name.lower().replace(" ", "-")
    for noise in NAME_NOISE:
        name = name.replace(noise, "")
    return name


def classify_action(phrase: str, agent: PluginAgent) -> list[Command]:
    """Commands expressed by one action phrase, in gate/generate/comment order."""
    text = phrase.lower()
    commands: list[Command] = []

    if _mentions(text, "length", "long", "threshold"):
        commands.append(LengthGate(threshold=min_length_for_summary(agent)))

    if _mentions(text, "llm", "generate") and _mentions(text, "summary", "content", "text"):
        commands.append(Generate(template=extract_template_name(agent)))

    if "add" in text and "comment" in text:
        commands.append(Comment())

    return commands


def plan_actions(agent: PluginAgent) -> list[Command]:
    """All commands for an agent, in action-list order."""
    return [command for phrase in agent.actions for command in classify_action(phrase, agent)]
