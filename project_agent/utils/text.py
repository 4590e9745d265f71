"""Pure string helpers shared by the validation workflow, plugins and digests."""

from datetime import datetime
from urllib.parse import urlparse

_TRIPLE_NEWLINE = "\n\n\n"


def strip_code_fence(text: str) -> str:
    """Remove one fenced code block wrapping the whole text.

    A completion that starts with triple backticks and spans more than two
    lines has its first and last line dropped. Anything else is returned
    trimmed but otherwise untouched.
    """
    text = text.strip()
    if text.startswith("```"):
        lines = text.split("\n")
        if len(lines) > 2:
            text = "\n".join(lines[1:-1])
    return text


def collapse_blank_lines(text: str) -> str:
    """Collapse every run of three or more newlines to exactly two."""
    while _TRIPLE_NEWLINE in text:
        text = text.replace(_TRIPLE_NEWLINE, "\n\n")
    return text


def clean_markdown_response(text: str) -> str:
    """Normalize a model-produced markdown document.

    Used for digest output: fences are stripped, line endings normalized,
    headings and bold lead-ins get a blank line before them and blank-line
    runs are collapsed.
    """
    text = strip_code_fence(text)
    text = text.replace("\r\n", "\n")
    text = text.replace("\n##", "\n\n##")
    text = text.replace("\n**", "\n\n**")
    return collapse_blank_lines(text).strip()


def normalize_summary(text: str) -> str:
    """Normalize a generated task summary.

    Besides the usual cleanup, a bare ``Summary:`` lead-in is rewritten under
    a ``## Task Summary`` heading, and an objective-style answer without the
    heading gets one.
    """
    text = strip_code_fence(text)
    text = text.replace("\r\n", "\n").strip()

    if text.startswith("Summary:") or text.startswith("summary:"):
        rest = text[len("Summary:") :].strip()
        text = "## Task Summary\n\n**Objective**: " + rest

    if not text.startswith("## Task Summary") and ("Objective" in text or "objective" in text):
        text = "## Task Summary\n\n" + text

    text = text.replace("\n##", "\n\n##")
    text = text.replace("\n**", "\n\n**")
    text = text.replace("\n\n\n**", "\n\n**")
    return collapse_blank_lines(text).strip()


def repo_from_url(url: str) -> tuple[str, str] | None:
    """Derive ``(owner, repo)`` from an issue's web URL.

    Works for github.com and GitHub Enterprise URLs alike, since both put the
    owner and repository name first in the path.

    Example:
        >>> repo_from_url("https://github.com/octo/widgets/issues/7")
        ('octo', 'widgets')
    """
    if not url:
        return None
    parts = [part for part in urlparse(url).path.split("/") if part]
    if len(parts) >= 4 and parts[0] == "repos":
        parts = parts[1:]
    if len(parts) < 2:
        return None
    return parts[0], parts[1]


def format_date(value: datetime) -> str:
    """Render a datetime as ``YYYY-MM-DD``."""
    return value.strftime("%Y-%m-%d")
