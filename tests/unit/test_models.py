"""Tests for domain models."""

from project_agent.models.domain import (
    FormatRules,
    Guidelines,
    IssueOutcome,
    PluginAgent,
    Trigger,
    ValidationRun,
)


def test_issue_repository_from_url(issue_factory):
    """The owning repository is derived from the issue URL."""
    issue = issue_factory(7, repo="octo/widgets")

    assert issue.repository == ("octo", "widgets")
    assert issue.has_label("priority:high")
    assert not issue.has_label("priority")


def test_format_rules_without_guidelines():
    rules = FormatRules()

    assert rules.with_guidelines(None) is rules


def test_format_rules_keep_defaults_for_unset_guideline_values():
    """An empty guidelines document changes nothing."""
    rules = FormatRules().with_guidelines(Guidelines(raw_content=""))

    assert rules == FormatRules()


def test_trigger_event_requires_every_label():
    trigger = Trigger(event="issues.labeled", labels=["a", "b"])

    assert trigger.matches("issues.labeled", ["b", "a", "c"])
    assert not trigger.matches("issues.labeled", ["a"])
    assert not trigger.matches("issues.opened", ["a", "b"])


def test_manual_trigger():
    assert Trigger(manual=True).matches("manual", [])
    assert not Trigger(manual=False).matches("manual", [])


def test_agent_schedule():
    agent = PluginAgent(name="Reporter", triggers=[Trigger(event="issues.opened"), Trigger(schedule="0 9 * * 1")])

    assert agent.has_schedule
    assert agent.schedule == "0 9 * * 1"
    assert PluginAgent(name="Plain").schedule == ""


def test_validation_run_message():
    run = ValidationRun(total=4, validated=2, fixed=1, skipped=2)

    assert run.message == "Validated 2 issues (1 fixed, 1 already valid), 2 skipped (already validated)"


def test_validation_run_all_skipped():
    assert ValidationRun(total=3, skipped=3).message == "All issues already validated"


def test_validation_run_to_dict_with_errors():
    run = ValidationRun(
        total=2,
        validated=1,
        outcomes=[IssueOutcome(number=1, title="A", validated=True, fixed=False)],
        errors=["issue #2: boom"],
    )

    result = run.to_dict()

    assert result["total_issues"] == 2
    assert result["validated_issues"] == [
        {"number": 1, "title": "A", "validated": True, "fixed": False, "comment": ""}
    ]
    assert result["errors"] == ["issue #2: boom"]
    assert result["error_count"] == 1


def test_validation_run_to_dict_without_errors():
    assert "errors" not in ValidationRun().to_dict()
