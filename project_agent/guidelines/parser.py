"""Parse a project's task-writing guidelines from markdown.

The guidelines file is written for humans; the parser pulls out what it can
recognise with a handful of forgiving regular expressions:

- ``## Format Rules`` (or ``Format Requirements`` / ``Format``): required
  sections listed under a "Required Sections" line, a "Minimum description
  length: N" value, and label rules when the section talks about labels
- ``## Instructions`` / ``## Guidelines`` and ``## General`` / ``## Overview``:
  free-text instructions handed to the model
- ``## Examples``: fenced code blocks with sample task bodies

Anything not recognised is still available to prompts through
``Guidelines.raw_content``.
"""

import re
from pathlib import Path

import structlog

from project_agent.exceptions import ConfigurationError
from project_agent.models.domain import FormatRules, GuidelineExample, Guidelines, LabelRequirement

log = structlog.get_logger(__name__)

FORMAT_TITLES = ("Format Rules", "Format Requirements", "Format")
INSTRUCTION_TITLES = ("Instructions", "Guidelines", "Guidelines and Rules")
OVERVIEW_TITLES = ("General", "Overview")
EXAMPLE_TITLES = ("Examples", "Example Tasks", "Good Examples")

SECTION_LIST_KEYWORDS = ("Required Sections", "Required sections", "Sections")
MIN_LENGTH_PATTERNS = ("Minimum.*length", "Min.*length", "Description.*length")
LABEL_PREFIX_PATTERNS = ("label.*prefix", "prefix.*label")

_LIST_MARKER = re.compile(r"^[-*]\s+")
_CODE_BLOCK = re.compile(r"```\w*\n(.*?)```", re.DOTALL)
_LABEL_REQUIREMENT = re.compile(
    r"(?:label|tag)[:\s]+(priority|type|team|status)[:\s]+(required|optional)?[:\s]*(.*)",
    re.IGNORECASE,
)

DEFAULT_LABEL_PREFIX = "priority:"
DEFAULT_MIN_LENGTH = 50


def load_guidelines(path: str | Path) -> Guidelines:
    """Read and parse a guidelines file.

    Raises:
        ConfigurationError: If the file cannot be read
    """
    try:
        content = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(f"Cannot read guidelines file: {path}") from e
    guidelines = parse_guidelines(content)
    log.info(
        "guidelines_loaded",
        path=str(path),
        sections=list(guidelines.format_rules.required_sections),
        min_length=guidelines.format_rules.min_description_length,
        require_labels=guidelines.format_rules.require_labels,
    )
    return guidelines


def parse_guidelines(content: str) -> Guidelines:
    """Parse guidelines markdown into a ``Guidelines`` value."""
    rules, label_requirements = _format_rules(content)
    return Guidelines(
        raw_content=content,
        format_rules=rules,
        label_requirements=label_requirements,
        instructions=_instructions(content),
        examples=_examples(content),
    )


def extract_section(content: str, *titles: str) -> str:
    """Body of the first ``##`` section whose heading matches one of ``titles``.

    Titles are tried in order and matched case-insensitively against the
    whole heading text. The section ends at the next line starting with
    ``##``. Returns an empty string if no title matches.
    """
    lines = content.split("\n")
    for title in titles:
        header = re.compile(rf"^##+\s*{re.escape(title)}\s*$", re.IGNORECASE)
        start = next((i + 1 for i, line in enumerate(lines) if header.match(line)), None)
        if start is None:
            continue
        end = next(
            (i for i in range(start, len(lines)) if lines[i].strip().startswith("##")),
            len(lines),
        )
        if start < end:
            return "\n".join(lines[start:end]).strip()
    return ""


def _list_items(section: str, *keywords: str) -> list[str]:
    for keyword in keywords:
        match = re.search(rf"{re.escape(keyword)}[:\s]*\n((?:[-*]\s+.*\n?)+)", section, re.IGNORECASE)
        if match:
            items = []
            for line in match.group(1).split("\n"):
                item = _LIST_MARKER.sub("", line.strip())
                if item:
                    items.append(item)
            return items
    return []


def _int_value(section: str, *patterns: str) -> int:
    for pattern in patterns:
        match = re.search(rf"{pattern}[:\s]*(\d+)", section, re.IGNORECASE)
        if match:
            return int(match.group(1))
    return 0


def _string_value(section: str, *patterns: str) -> str:
    for pattern in patterns:
        match = re.search(rf"{pattern}[:\s]*[\"']?([^\"'\n]+)[\"']?", section, re.IGNORECASE)
        if match:
            return match.group(1).strip().strip("`").strip()
    return ""


def _label_requirements(section: str) -> list[LabelRequirement]:
    requirements = []
    for match in _LABEL_REQUIREMENT.finditer(section):
        values = [v.strip() for v in match.group(3).split(",") if v.strip()]
        requirements.append(
            LabelRequirement(
                type=match.group(1).lower(),
                required="required" in (match.group(2) or "").lower(),
                values=values,
            )
        )
    return requirements


def _format_rules(content: str) -> tuple[FormatRules, list[LabelRequirement]]:
    section = extract_section(content, *FORMAT_TITLES)
    sections: tuple[str, ...] = ()
    min_length = DEFAULT_MIN_LENGTH
    require_labels = False
    prefix = DEFAULT_LABEL_PREFIX
    label_requirements: list[LabelRequirement] = []

    if section:
        sections = tuple(_list_items(section, *SECTION_LIST_KEYWORDS))
        min_length = _int_value(section, *MIN_LENGTH_PATTERNS) or min_length
        if "label" in section.lower():
            require_labels = True
            prefix = _string_value(section, *LABEL_PREFIX_PATTERNS) or prefix
            label_requirements = _label_requirements(section)

    rules = FormatRules(
        required_sections=sections,
        min_description_length=min_length,
        require_labels=require_labels,
        label_prefix=prefix,
    )
    return rules, label_requirements


def _instructions(content: str) -> str:
    parts = [extract_section(content, *INSTRUCTION_TITLES), extract_section(content, *OVERVIEW_TITLES)]
    return "\n\n".join(part for part in parts if part)


def _examples(content: str) -> list[GuidelineExample]:
    section = extract_section(content, *EXAMPLE_TITLES)
    if not section:
        return []
    return [
        GuidelineExample(title=f"Example {i}", body=block)
        for i, block in enumerate(_CODE_BLOCK.findall(section), start=1)
    ]
