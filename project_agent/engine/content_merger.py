"""Wrap a rewritten issue body with a change notice and the preserved original.

A merged body looks like::

    <!-- 🤖 Agent Modified -->
    <details>...which violations were fixed...</details>
    <!-- /Agent Modified -->

    ---

    <rewritten body>

    ---

    <details>
    <summary>📋 Original content (preserved for reference)</summary>

    <original body>

    </details>

Merging is idempotent: merging an already-merged body again produces a
single notice, and the preserved section keeps the very first original
instead of wrapping the previous merge.
"""

NOTICE_START = "<!-- 🤖 Agent Modified -->"
NOTICE_END = "<!-- /Agent Modified -->"
ORIGINAL_SUMMARY = "<summary>📋 Original content (preserved for reference)</summary>"

_DETAILS_CLOSE = "</details>"


def remove_agent_notice(body: str) -> str:
    """Remove the notice block between the start and end markers.

    Blank lines around the removed block collapse to a single blank line,
    or to nothing when the notice was at the start or end of the body. A
    body with a start marker but no end marker after it is returned
    unchanged.
    """
    start = body.find(NOTICE_START)
    if start == -1:
        return body

    end = body.find(NOTICE_END, start)
    if end == -1:
        return body
    end += len(NOTICE_END)

    before = body[:start].rstrip("\n")
    after = body[end:].lstrip("\n")

    if not before:
        return after
    if not after:
        return before
    return before + "\n\n" + after


def _has_notice(body: str) -> bool:
    start = body.find(NOTICE_START)
    return start != -1 and body.find(NOTICE_END, start) != -1


def preserved_original(body: str) -> str | None:
    """Original content kept by a previous merge, or None if ``body`` is not one."""
    if not _has_notice(body):
        return None
    marker = body.rfind(ORIGINAL_SUMMARY)
    if marker == -1 or marker < body.find(NOTICE_END):
        return None
    content = body[marker + len(ORIGINAL_SUMMARY) :].rstrip()
    if not content.endswith(_DETAILS_CLOSE):
        return None
    # merge_content frames the original with exactly one blank line on each side
    inner = content[: -len(_DETAILS_CLOSE)]
    if len(inner) < 4 or not (inner.startswith("\n\n") and inner.endswith("\n\n")):
        return None
    return inner[2:-2]


def build_notice(violations: list[str]) -> str:
    """The collapsible notice block, markers included."""
    fixed = "".join(f"- {violation}\n" for violation in violations)
    return (
        f"{NOTICE_START}\n"
        "<details>\n"
        "<summary>🤖 <strong>Automatically modified by Agent</strong> - Click to see what changed</summary>\n"
        "\n"
        "This issue was automatically updated to comply with format guidelines.\n"
        "\n"
        "**Issues fixed:**\n"
        f"{fixed}"
        "\n"
        "</details>\n"
        f"{NOTICE_END}"
    )


def merge_content(original: str, fixed: str, violations: list[str]) -> str:
    """Build the new issue body from the original, its rewrite and the violations.

    Args:
        original: Current issue body, possibly a previous merge
        fixed: Rewritten body returned by the model, fences already stripped
        violations: Violations that prompted the rewrite, in checker order

    Returns:
        Merged body with exactly one notice
    """
    kept = preserved_original(original)
    if kept is None:
        kept = remove_agent_notice(original)

    return (
        f"{build_notice(violations)}\n"
        "\n"
        "---\n"
        "\n"
        f"{fixed}\n"
        "\n"
        "---\n"
        "\n"
        "<details>\n"
        f"{ORIGINAL_SUMMARY}\n"
        "\n"
        f"{kept}\n"
        "\n"
        f"{_DETAILS_CLOSE}\n"
    )
