"""Validate issues against the format rules and repair the ones that fail.

Per issue the workflow is a two-state machine, ``unchecked -> valid`` or
``unchecked -> fixed``:

1. Check the body and labels against the effective ``FormatRules``
2. If anything is violated, ask the completion service once for a rewrite
3. Merge the rewrite with the original (see ``content_merger``)
4. Write the merged body back and comment on the issue

Batch runs mark every processed issue with a sentinel label and skip issues
that already carry it, so re-running is cheap and never rewrites twice.
"""

from typing import Any

import structlog

from project_agent.engine.content_merger import merge_content
from project_agent.engine.schema_checker import check_format
from project_agent.exceptions import ExternalServiceError, ProjectAgentError, WorkflowError
from project_agent.models.domain import FormatRules, Guidelines, Issue, IssueOutcome, ValidationRun
from project_agent.providers.base import IssueStore, PromptRenderer, TextCompletion
from project_agent.utils.text import strip_code_fence

log = structlog.get_logger(__name__)

VALIDATOR_TEMPLATE = "validator"
DEFAULT_SENTINEL_LABEL = "agent-validator"

FALLBACK_PROMPT = """You are a task format enforcer for a GitHub project. \
Fix the following task to comply with the format guidelines.{guidance}

Current task:
Title: {title}
Body: {body}

Format violations:
{violations}

Required format:
- Description: At least {min_length} characters
- Required sections: {sections}
- Priority label: Must have a label starting with "{prefix}"

Please rewrite the task body to fix all violations while preserving the original intent \
and information. Return ONLY the fixed body text, no explanations."""


def fix_comment(violations: list[str]) -> str:
    """Comment posted after an issue body was rewritten."""
    listed = "\n".join(f"- {violation}" for violation in violations)
    return (
        "🤖 **Agent**: I've updated this task to follow our format guidelines.\n\n"
        f"Issues fixed:\n{listed}"
    )


class IssueValidator:
    """Checks issues and repairs non-conforming ones with one model call each.

    Example:
        >>> validator = IssueValidator(store, completion, prompts, guidelines=guidelines)
        >>> already_valid, comment = await validator.validate_and_fix(issue)
        >>> run = await validator.validate_all()
    """

    def __init__(
        self,
        store: IssueStore,
        completion: TextCompletion,
        prompts: PromptRenderer | None = None,
        rules: FormatRules | None = None,
        guidelines: Guidelines | None = None,
        sentinel_label: str = DEFAULT_SENTINEL_LABEL,
    ):
        """Initialize the validator.

        Args:
            store: Issue store to read from and write back to
            completion: Text-completion service used for rewrites
            prompts: Prompt library; the inline prompt is used without one
            rules: Default format rules, overridden by ``guidelines``
            guidelines: Parsed project guidelines, if any
            sentinel_label: Label marking issues as already validated
        """
        self.store = store
        self.completion = completion
        self.prompts = prompts
        self.guidelines = guidelines
        self.rules = (rules or FormatRules()).with_guidelines(guidelines)
        self.sentinel_label = sentinel_label

    def check(self, issue: Issue) -> list[str]:
        """Violations of the effective rules, in checker order."""
        return check_format(issue, self.rules)

    def build_prompt(self, issue: Issue, violations: list[str]) -> str:
        """Repair prompt from the ``validator`` template, or the inline fallback.

        Raises:
            TemplateError: If the template exists but fails to render
        """
        raw = self.guidelines.raw_content if self.guidelines else ""
        instructions = self.guidelines.instructions if self.guidelines else ""

        if self.prompts is not None and self.prompts.has_template(VALIDATOR_TEMPLATE):
            data: dict[str, Any] = {
                "title": issue.title,
                "body": issue.body,
                "violations": violations,
                "min_description_length": self.rules.min_description_length,
                "required_sections": ", ".join(self.rules.required_sections),
                "label_prefix": self.rules.label_prefix,
                "guidelines": raw,
                "instructions": instructions,
            }
            return self.prompts.render(VALIDATOR_TEMPLATE, data)

        guidance = ""
        if instructions:
            guidance = f"\n\nInstructions:\n{instructions}"
        elif raw:
            guidance = f"\n\nProject Guidelines:\n{raw}"

        return FALLBACK_PROMPT.format(
            guidance=guidance,
            title=issue.title,
            body=issue.body,
            violations="\n".join(f"- {violation}" for violation in violations),
            min_length=self.rules.min_description_length,
            sections=", ".join(self.rules.required_sections),
            prefix=self.rules.label_prefix,
        )

    async def validate_and_fix(self, issue: Issue) -> tuple[bool, str]:
        """Validate one issue and rewrite it if it breaks the rules.

        Args:
            issue: Issue to validate

        Returns:
            ``(True, "")`` if the issue was already valid, otherwise
            ``(False, comment)`` with the comment that was posted

        Raises:
            TemplateError: If the validator template fails to render
            WorkflowError: If the completion call or the body update fails
        """
        violations = self.check(issue)
        if not violations:
            log.info("issue_valid", issue=issue.number)
            return True, ""

        log.info("issue_invalid", issue=issue.number, violations=violations)
        prompt = self.build_prompt(issue, violations)

        try:
            fixed = strip_code_fence(await self.completion.complete(prompt))
        except ExternalServiceError as e:
            raise WorkflowError(f"failed to fix issue #{issue.number} with LLM: {e.message}") from e

        merged = merge_content(issue.body, fixed, violations)
        owner, repo = issue.repository or (None, None)

        try:
            await self.store.update_issue(issue.number, body=merged, owner=owner, repo=repo)
        except ExternalServiceError as e:
            raise WorkflowError(f"failed to update issue #{issue.number}: {e.message}") from e

        comment = fix_comment(violations)
        try:
            await self.store.add_comment(issue.number, comment, owner=owner, repo=repo)
        except ExternalServiceError as e:
            log.warning("fix_comment_failed", issue=issue.number, error=e.message)

        log.info("issue_fixed", issue=issue.number, violations=len(violations))
        return False, comment

    async def validate_all(self) -> ValidationRun:
        """Validate every open issue that does not carry the sentinel label.

        Issues are processed one at a time. A failing issue is recorded in
        ``errors`` and does not stop the batch; it is not labelled, so the
        next run retries it.

        Raises:
            IssueStoreError: If the open issues cannot be listed
        """
        issues = await self.store.list_issues(state="open")
        run = ValidationRun(total=len(issues))
        log.info("validation_started", total=run.total, sentinel=self.sentinel_label)

        for issue in issues:
            await self._process(issue, run)

        log.info(
            "validation_finished",
            total=run.total,
            validated=run.validated,
            fixed=run.fixed,
            skipped=run.skipped,
            errors=len(run.errors),
        )
        return run

    async def validate_issue(self, issue: Issue) -> ValidationRun:
        """Validate one issue with the same bookkeeping as a batch of one."""
        run = ValidationRun(total=1)
        await self._process(issue, run)
        return run

    async def _process(self, issue: Issue, run: ValidationRun) -> None:
        if issue.has_label(self.sentinel_label):
            run.skipped += 1
            log.debug("issue_already_validated", issue=issue.number)
            return

        try:
            already_valid, comment = await self.validate_and_fix(issue)
        except ProjectAgentError as e:
            log.error("issue_validation_failed", issue=issue.number, error=e.message)
            run.errors.append(f"issue #{issue.number}: {e.message}")
            return

        await self._mark_validated(issue)
        run.validated += 1
        if not already_valid:
            run.fixed += 1
        run.outcomes.append(
            IssueOutcome(
                number=issue.number,
                title=issue.title,
                validated=True,
                fixed=not already_valid,
                comment=comment,
            )
        )

    async def _mark_validated(self, issue: Issue) -> None:
        owner, repo = issue.repository or (None, None)
        try:
            await self.store.add_label(issue.number, self.sentinel_label, owner=owner, repo=repo)
        except ExternalServiceError as e:
            log.warning("sentinel_label_failed", issue=issue.number, error=e.message)
