"""CLI entry point for the project agent."""

import asyncio
import json
import signal
import sys
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import click
import structlog

from project_agent.config.settings import AgentSettings
from project_agent.digests import BacklogRoast, ExecutiveSummary, ProgressReport, StaleTaskMonitor
from project_agent.engine.validator import IssueValidator
from project_agent.exceptions import ConfigurationError, ProjectAgentError
from project_agent.guidelines import load_guidelines
from project_agent.models.domain import Guidelines
from project_agent.plugins import AgentRegistry, PluginExecutor, load_plugins
from project_agent.providers.base import IssueStore, TextCompletion
from project_agent.providers.factory import create_completion, create_issue_store, create_prompt_library
from project_agent.rendering import PromptLibrary
from project_agent.utils.logging_config import bind_run_context, configure_logging

log = structlog.get_logger(__name__)


@dataclass
class Services:
    """Everything a command needs, built once per invocation."""

    settings: AgentSettings
    store: IssueStore
    completion: TextCompletion
    prompts: PromptLibrary
    guidelines: Guidelines | None

    def validator(self) -> IssueValidator:
        return IssueValidator(
            self.store,
            self.completion,
            self.prompts,
            rules=self.settings.agent.format_rules.to_rules(),
            guidelines=self.guidelines,
            sentinel_label=self.settings.agent.sentinel_label,
        )

    def monitor(self) -> StaleTaskMonitor:
        return StaleTaskMonitor(
            self.store,
            self.completion,
            self.prompts,
            threshold_days=self.settings.agent.stale_task_threshold_days,
        )

    def registry(self) -> AgentRegistry:
        executor = PluginExecutor(
            self.store,
            self.completion,
            self.prompts,
            rules=self.settings.agent.format_rules.to_rules(),
            guidelines=self.guidelines,
            sentinel_label=self.settings.agent.sentinel_label,
            stale_threshold_days=self.settings.agent.stale_task_threshold_days,
        )
        return AgentRegistry(load_plugins(self.settings.agent.plugins_path), executor)


def _load_guidelines(path: str) -> Guidelines | None:
    if not Path(path).exists():
        log.info("guidelines_not_found", path=path)
        return None
    try:
        return load_guidelines(path)
    except ConfigurationError as e:
        log.warning("guidelines_load_failed", path=path, error=e.message)
        return None


@asynccontextmanager
async def _services(settings: AgentSettings) -> AsyncIterator[Services]:
    """Build and connect the issue store and completion client."""
    store = create_issue_store(settings.github)
    completion = create_completion(settings.llm)
    try:
        await store.connect()
        await completion.connect()
        yield Services(
            settings=settings,
            store=store,
            completion=completion,
            prompts=create_prompt_library(settings),
            guidelines=_load_guidelines(settings.agent.guidelines_path),
        )
    finally:
        await completion.disconnect()
        await store.disconnect()


def _echo_json(result: Any) -> None:
    click.echo(json.dumps(result, indent=2, default=str))


def _run(ctx: click.Context, command: Callable[[Services], Awaitable[None]]) -> None:
    """Run an async command with the shared error handling."""

    async def main() -> None:
        async with _services(ctx.obj["settings"]) as services:
            await command(services)

    try:
        asyncio.run(main())
    except ProjectAgentError as e:
        click.echo(f"Error: {e.message}", err=True)
        log.debug("command_error", command=ctx.info_name, exc_info=True)
        sys.exit(1)
    except KeyboardInterrupt:
        click.echo("\nInterrupted by user", err=True)
        sys.exit(130)


@click.group()
@click.option("--config", "config_path", default=None, help="Path to YAML configuration file")
@click.option("--log-level", default="INFO", help="Logging level")
@click.pass_context
def cli(ctx: click.Context, config_path: str | None, log_level: str) -> None:
    """project-agent: keep GitHub issues well-formed and the project moving.

    Without --config, settings come from the GITHUB_*, LLM_* and agent
    environment variables.
    """
    configure_logging(log_level)
    bind_run_context(command=ctx.invoked_subcommand)

    try:
        settings = AgentSettings.from_yaml(config_path) if config_path else AgentSettings.from_env()
    except ConfigurationError as e:
        click.echo(f"Error: {e.message}", err=True)
        log.debug("config_error", exc_info=True)
        sys.exit(1)

    log.debug("settings_loaded", mode=str(settings.github.mode), source=config_path or "environment")
    ctx.obj = {"settings": settings}


@cli.command()
@click.option("--issue", type=int, default=None, help="Validate a single issue")
@click.pass_context
def validate(ctx: click.Context, issue: int | None) -> None:
    """Validate issues against the format rules and fix the ones that fail."""

    async def command(services: Services) -> None:
        validator = services.validator()
        if issue is not None:
            already_valid, comment = await validator.validate_and_fix(await services.store.get_issue(issue))
            if already_valid:
                click.echo(f"✅ Issue #{issue} is valid")
            else:
                click.echo(f"🔧 Issue #{issue} was fixed\n\n{comment}")
            return

        run = await validator.validate_all()
        click.echo(run.message)
        for error in run.errors:
            click.echo(f"⚠️  {error}", err=True)

    _run(ctx, command)


async def _monitor_daemon(services: Services) -> None:
    """Check stale tasks now and then every ``check_interval_hours`` until signalled."""
    interval = services.settings.agent.check_interval_hours * 3600
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)

    log.info("monitor_daemon_started", interval_hours=services.settings.agent.check_interval_hours)
    click.echo(f"Starting monitor daemon (every {services.settings.agent.check_interval_hours}h)")

    try:
        while not stop.is_set():
            try:
                result = await services.monitor().run()
                click.echo(result["message"])
            except ProjectAgentError as e:
                log.error("monitor_tick_failed", error=e.message)
                click.echo(f"Error: {e.message}", err=True)

            try:
                await asyncio.wait_for(stop.wait(), timeout=interval)
            except TimeoutError:
                pass
    finally:
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.remove_signal_handler(sig)

    log.info("monitor_daemon_stopped")
    click.echo("Shutting down monitor daemon...")


@cli.command()
@click.option("--once/--daemon", "once", default=True, help="Run one check, or keep checking")
@click.pass_context
def monitor(ctx: click.Context, once: bool) -> None:
    """Nudge assignees of stale issues."""

    async def command(services: Services) -> None:
        if not once:
            await _monitor_daemon(services)
            return
        result = await services.monitor().run()
        click.echo(result["message"])

    _run(ctx, command)


def _digest_command(name: str, generator: type[Any], help_text: str) -> None:
    @cli.command(name=name, help=help_text)
    @click.pass_context
    def digest(ctx: click.Context) -> None:
        async def command(services: Services) -> None:
            _echo_json(await generator(services.store, services.completion, services.prompts).run())

        _run(ctx, command)


_digest_command("roast", BacklogRoast, "Publish a critique of the backlog as a new issue.")
_digest_command("executive-summary", ExecutiveSummary, "Publish an executive summary as a new issue.")
_digest_command("progress-report", ProgressReport, "Publish a weekly progress report as a new issue.")


@cli.command(name="all")
@click.option("--issue", type=int, default=None, help="Validate a single issue")
@click.pass_context
def run_all(ctx: click.Context, issue: int | None) -> None:
    """Validate, then monitor, then roast. A failing step does not stop the rest."""
    failed: list[str] = []

    async def command(services: Services) -> None:
        async def validate_step() -> str:
            validator = services.validator()
            if issue is not None:
                run = await validator.validate_issue(await services.store.get_issue(issue))
            else:
                run = await validator.validate_all()
            return run.message

        async def monitor_step() -> str:
            return (await services.monitor().run())["message"]

        async def roast_step() -> str:
            return (await BacklogRoast(services.store, services.completion, services.prompts).run())["message"]

        for step_name, step in (("validate", validate_step), ("monitor", monitor_step), ("roast", roast_step)):
            try:
                click.echo(f"[{step_name}] {await step()}")
            except ProjectAgentError as e:
                log.error("step_failed", step=step_name, error=e.message)
                click.echo(f"[{step_name}] Error: {e.message}", err=True)
                failed.append(step_name)

    _run(ctx, command)
    if failed:
        sys.exit(1)


@cli.command(name="run-agent")
@click.argument("name")
@click.option("--issue", type=int, default=None, help="Issue the agent works on")
@click.pass_context
def run_agent(ctx: click.Context, name: str, issue: int | None) -> None:
    """Execute the plugin agent NAME and print its result as JSON."""

    async def command(services: Services) -> None:
        params: dict[str, Any] = {}
        if issue is not None:
            params["issue_number"] = issue
        _echo_json(await services.registry().execute(name, params))

    _run(ctx, command)


@cli.command(name="list-agents")
@click.pass_context
def list_agents(ctx: click.Context) -> None:
    """List plugin agents and their capabilities."""
    agents = load_plugins(ctx.obj["settings"].agent.plugins_path)
    if not agents:
        click.echo("No plugin agents found.")
        return

    click.echo(f"Plugin agents ({len(agents)}):\n")
    for agent in agents:
        click.echo(f"  • {agent.name} [{agent.type}]")
        if agent.purpose:
            click.echo(f"    {agent.purpose}")
        if agent.has_schedule:
            click.echo(f"    schedule: {agent.schedule}")
        for action in agent.actions:
            click.echo(f"    - {action}")


@cli.command()
@click.option("--event", required=True, help="Event name, e.g. issues.opened or manual")
@click.option("--issue", type=int, default=None, help="Issue the event is about")
@click.option("--label", "labels", multiple=True, help="Label on the issue (repeatable)")
@click.pass_context
def dispatch(ctx: click.Context, event: str, issue: int | None, labels: tuple[str, ...]) -> None:
    """Run every plugin agent whose trigger matches EVENT.

    Without --label, the labels of --issue are used for trigger matching.
    """

    async def command(services: Services) -> None:
        event_labels = list(labels)
        params: dict[str, Any] = {}
        if issue is not None:
            params["issue_number"] = issue
            if not event_labels:
                event_labels = (await services.store.get_issue(issue)).labels

        results = await services.registry().dispatch(event, event_labels, params)
        if not results:
            click.echo(f"No agents triggered by {event}")
            return
        _echo_json(results)

    _run(ctx, command)


if __name__ == "__main__":
    cli()
