"""Check an issue against the project's format rules.

Violations are plain, human-readable strings. Their order is part of the
contract: they are echoed verbatim into the repair prompt and the comment
posted on the issue, so they always come as length first, then each missing
section in configured order, then the label rule.
"""

from project_agent.models.domain import FormatRules, Issue


def too_short_message(min_length: int) -> str:
    return f"Description too short (minimum {min_length} characters)"


def missing_section_message(section: str) -> str:
    return f"Missing required section: {section}"


def missing_label_message(prefix: str) -> str:
    return f"Missing priority label (should start with '{prefix}')"


def check_format(issue: Issue, rules: FormatRules) -> list[str]:
    """Return the ordered list of rule violations for ``issue``.

    A section counts as present when its name appears anywhere in the body,
    case-insensitively. A heading is not required.

    Args:
        issue: Issue to check; only body and labels are inspected
        rules: Effective format rules

    Returns:
        Violation messages; empty when the issue is valid
    """
    violations: list[str] = []
    body = issue.body or ""

    if len(body) < rules.min_description_length:
        violations.append(too_short_message(rules.min_description_length))

    lowered = body.lower()
    seen: set[str] = set()
    for section in rules.required_sections:
        key = section.lower()
        if key in seen:
            continue
        seen.add(key)
        if key not in lowered:
            violations.append(missing_section_message(section))

    if rules.require_labels and not any(label.startswith(rules.label_prefix) for label in issue.labels):
        violations.append(missing_label_message(rules.label_prefix))

    return violations
