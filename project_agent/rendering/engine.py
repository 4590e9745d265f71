"""Sandboxed Jinja2 prompt library.

Prompt templates are markdown files (``validator.md``, ``monitor.md``, ...)
looked up by file stem across several directories. A template in a later
directory replaces one with the same name from an earlier directory, so a
project can override the prompts shipped with its plugin agents.

Security Features:
    - Sandboxed environment prevents arbitrary code execution from a
      template checked into the repository
    - StrictUndefined makes a template referencing a missing key fail
      instead of silently sending an incomplete prompt

Example:
    >>> library = PromptLibrary([Path("prompts"), Path(".github/agents/custom/prompts")])
    >>> library.has_template("validator")
    True
    >>> prompt = library.render("validator", {"title": "Fix login", ...})
"""

from pathlib import Path
from typing import Any

import structlog
from jinja2 import StrictUndefined, TemplateError as JinjaTemplateError
from jinja2.sandbox import SandboxedEnvironment

from project_agent.exceptions import TemplateError

log = structlog.get_logger(__name__)

TEMPLATE_SUFFIX = ".md"
SKIPPED_FILES = frozenset({"README.md"})


class PromptLibrary:
    """Named prompt templates loaded from a list of directories.

    Attributes:
        paths: Directories searched, in override order
        env: The SandboxedEnvironment used to compile templates
    """

    def __init__(self, paths: list[Path] | None = None) -> None:
        """Load every ``*.md`` template found under ``paths``.

        Missing directories are skipped. Unreadable files are logged and
        skipped.
        """
        self.paths = [Path(p) for p in paths or []]
        self.env = SandboxedEnvironment(
            undefined=StrictUndefined,
            autoescape=False,
            keep_trailing_newline=True,
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self._sources: dict[str, str] = {}
        self._origins: dict[str, Path] = {}
        for path in self.paths:
            self._load_directory(path)

    def _load_directory(self, path: Path) -> None:
        if not path.is_dir():
            log.debug("prompt_dir_missing", path=str(path))
            return
        for template_file in sorted(path.glob(f"*{TEMPLATE_SUFFIX}")):
            if template_file.name in SKIPPED_FILES:
                continue
            try:
                source = template_file.read_text(encoding="utf-8")
            except OSError as e:
                log.warning("prompt_unreadable", path=str(template_file), error=str(e))
                continue
            name = template_file.stem
            if name in self._origins:
                log.debug("prompt_overridden", name=name, previous=str(self._origins[name]))
            self._sources[name] = source
            self._origins[name] = template_file
        log.info("prompts_loaded", path=str(path), total=len(self._sources))

    def add_template(self, name: str, source: str) -> None:
        """Register a template from a string, replacing any with that name."""
        self._sources[name] = source

    def has_template(self, name: str) -> bool:
        return name in self._sources

    def list_templates(self) -> list[str]:
        """Names of all loaded templates, sorted."""
        return sorted(self._sources)

    def render(self, name: str, data: dict[str, Any]) -> str:
        """Render template ``name`` with ``data``.

        Args:
            name: Template name (file stem)
            data: Template context

        Returns:
            The rendered prompt

        Raises:
            TemplateError: If the template does not exist, does not compile,
                references a key missing from ``data``, or breaks the sandbox
        """
        if name not in self._sources:
            raise TemplateError(f"template not found: {name}")
        try:
            template = self.env.from_string(self._sources[name])
            return template.render(**data)
        except JinjaTemplateError as e:
            log.error("prompt_render_failed", name=name, error=str(e))
            raise TemplateError(f"failed to render template {name}: {e}") from e
