"""Load plugin agents from markdown definitions.

Agents live under ``<base>/core/*.md`` (shipped) and ``<base>/custom/*.md``
(project specific). A definition looks like::

    # Agent: Task Summarizer

    **Purpose**: Summarize long tasks
    **Type**: custom

    ## Triggers
    - event: issues.opened
    - labels: [needs-summary]

    - manual: true

    ## Actions
    1. Check if task body is long enough
    2. Generate summary using LLM
    3. Add summary as a comment

    ## Configuration
    ```yaml
    min_length_for_summary: 200
    prompt_path: prompts/summarizer.md
    ```

Blank lines separate triggers. Files are parsed line by line; nothing beyond
the conventions above is interpreted.
"""

import re
from pathlib import Path
from typing import Any

import structlog
import yaml

from project_agent.enums import AgentType
from project_agent.models.domain import PluginAgent, Trigger

log = structlog.get_logger(__name__)

MAX_TRIGGER_LINES = 20
MAX_ACTION_LINES = 50

_NUMBERED_ITEM = re.compile(r"^\d+\.\s+(.*)$")


def load_plugins(base_path: str | Path) -> list[PluginAgent]:
    """Load core agents, then custom agents, each directory sorted by file name.

    Missing directories yield no agents. Files that cannot be read are
    logged and skipped.
    """
    base = Path(base_path)
    agents: list[PluginAgent] = []
    for agent_type in (AgentType.CORE, AgentType.CUSTOM):
        agents.extend(_load_directory(base / agent_type.value, agent_type))
    log.info("plugins_loaded", path=str(base), total=len(agents))
    return agents


def _load_directory(directory: Path, agent_type: AgentType) -> list[PluginAgent]:
    if not directory.is_dir():
        return []
    agents = []
    for file_path in sorted(directory.glob("*.md")):
        try:
            content = file_path.read_text(encoding="utf-8")
        except OSError as e:
            log.warning("plugin_unreadable", path=str(file_path), error=str(e))
            continue
        agent = parse_agent(content, agent_type, str(file_path))
        if not agent.name:
            log.warning("plugin_without_name", path=str(file_path))
            continue
        agents.append(agent)
    return agents


def parse_agent(content: str, agent_type: AgentType = AgentType.CUSTOM, file_path: str = "") -> PluginAgent:
    """Parse one markdown agent definition."""
    agent = PluginAgent(name="", type=agent_type, raw_content=content, file_path=file_path)
    lines = content.split("\n")
    section = ""
    yaml_lines: list[str] | None = None

    for i, line in enumerate(lines):
        stripped = line.strip()

        if yaml_lines is not None:
            if stripped == "```":
                agent.config.update(_parse_yaml_block("\n".join(yaml_lines), file_path))
                yaml_lines = None
            else:
                yaml_lines.append(line)
            _maybe_prompt_path(agent, line)
            continue

        if line.startswith("# Agent:"):
            agent.name = line[len("# Agent:") :].strip()
        elif line.startswith("**Purpose**:"):
            agent.purpose = line[len("**Purpose**:") :].strip()
        elif line.startswith("**Type**:"):
            agent.type = _agent_type(line[len("**Type**:") :].strip(), agent_type)
        elif line.startswith("## "):
            section = line[3:].strip().lower()
            if section in ("trigger", "triggers"):
                agent.triggers = _parse_triggers(lines, i + 1)
            elif section == "actions":
                agent.actions = _parse_list_items(lines, i + 1)
        elif stripped == "```yaml":
            yaml_lines = []
        else:
            _maybe_prompt_path(agent, line)

    return agent


def _agent_type(value: str, default: AgentType) -> AgentType:
    try:
        return AgentType(value.lower())
    except ValueError:
        return default


def _maybe_prompt_path(agent: PluginAgent, line: str) -> None:
    if "path:" in line and "prompt" in line.lower():
        value = line.split(":", 1)[1].strip().strip("`\"'")
        if value:
            agent.prompt_path = value


def _parse_yaml_block(text: str, file_path: str) -> dict[str, Any]:
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        log.warning("plugin_config_invalid", path=file_path, error=str(e))
        return {}
    return data if isinstance(data, dict) else {}


def parse_string_list(value: str) -> list[str]:
    """Parse ``[a, "b", 'c']`` or ``a, b`` into a list of strings."""
    value = value.strip().strip("[]")
    return [part.strip().strip("\"'") for part in value.split(",") if part.strip().strip("\"'")]


def _parse_triggers(lines: list[str], start: int) -> list[Trigger]:
    triggers: list[Trigger] = []
    current = Trigger()

    def flush() -> None:
        nonlocal current
        if current.event or current.schedule or current.manual:
            triggers.append(current)
        current = Trigger()

    for line in lines[start : start + MAX_TRIGGER_LINES]:
        line = line.strip()
        if not line or line.startswith("##"):
            flush()
            if line.startswith("##"):
                break
            continue

        key, _, value = line.partition(":")
        value = value.strip()
        if key == "- event":
            current.event = value
        elif key == "- schedule":
            current.schedule = value.strip('"')
        elif key == "- condition":
            current.condition = value
        elif key == "- manual":
            current.manual = value.lower() == "true"
        elif key == "- labels":
            current.labels = parse_string_list(value)

    flush()
    return triggers


def _parse_list_items(lines: list[str], start: int) -> list[str]:
    items: list[str] = []
    for line in lines[start : start + MAX_ACTION_LINES]:
        line = line.strip()
        if line.startswith("##"):
            break
        if not line:
            continue
        if line.startswith("- ") or line.startswith("* "):
            item = line[2:].strip()
        else:
            match = _NUMBERED_ITEM.match(line)
            item = match.group(1).strip() if match else ""
        if item:
            items.append(item)
    return items
