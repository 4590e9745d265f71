"""Lookup and execution of loaded plugin agents by name or trigger."""

from typing import Any

import structlog

from project_agent.exceptions import AgentNotFoundError, ProjectAgentError
from project_agent.models.domain import PluginAgent
from project_agent.plugins.executor import PluginExecutor

log = structlog.get_logger(__name__)


class AgentRegistry:
    """The loaded plugin agents plus the executor that runs them.

    Example:
        >>> registry = AgentRegistry(load_plugins(".github/agents"), executor)
        >>> registry.list_agents()
        ['Task Summarizer', 'Task Validator']
        >>> result = await registry.execute("Task Summarizer", {"issue_number": 42})
    """

    def __init__(self, agents: list[PluginAgent], executor: PluginExecutor):
        self.agents = agents
        self.executor = executor

    def list_agents(self) -> list[str]:
        """Agent names in load order."""
        return [agent.name for agent in self.agents]

    def get(self, name: str) -> PluginAgent:
        """Agent with exactly this name.

        Raises:
            AgentNotFoundError: If no loaded agent has this name
        """
        for agent in self.agents:
            if agent.name == name:
                return agent
        raise AgentNotFoundError(name)

    def capabilities(self, name: str) -> list[str]:
        """Action phrases of the named agent.

        Raises:
            AgentNotFoundError: If no loaded agent has this name
        """
        return list(self.get(name).actions)

    def matching(self, event: str, labels: list[str] | None = None) -> list[PluginAgent]:
        """Agents with a trigger that fires for ``event`` and ``labels``."""
        return [agent for agent in self.agents if agent.match_trigger(event, labels or [])]

    async def execute(self, name: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        """Execute the named agent.

        Raises:
            AgentNotFoundError: If no loaded agent has this name
            ProjectAgentError: If the agent's runner fails
        """
        return await self.executor.execute(self.get(name), params or {})

    async def dispatch(
        self, event: str, labels: list[str] | None = None, params: dict[str, Any] | None = None
    ) -> dict[str, dict[str, Any]]:
        """Execute every agent whose trigger matches, one after another.

        A failing agent does not stop the others; its result holds the error.
        """
        results: dict[str, dict[str, Any]] = {}
        for agent in self.matching(event, labels):
            try:
                results[agent.name] = await self.executor.execute(agent, params or {})
            except ProjectAgentError as e:
                log.error("dispatch_agent_failed", agent=agent.name, event=event, error=e.message)
                results[agent.name] = {"agent": agent.name, "status": "failed", "error": e.message}
        log.info("dispatch_finished", event=event, agents=list(results))
        return results
