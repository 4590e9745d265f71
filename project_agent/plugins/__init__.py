"""Plugin agents: markdown-defined agents, their loader, interpreter and registry."""

from project_agent.plugins.commands import Comment, Generate, LengthGate, classify_action, plan_actions
from project_agent.plugins.executor import PluginExecutor
from project_agent.plugins.interpreter import ActionInterpreter
from project_agent.plugins.loader import load_plugins, parse_agent
from project_agent.plugins.registry import AgentRegistry

__all__ = [
    "ActionInterpreter",
    "AgentRegistry",
    "Comment",
    "Generate",
    "LengthGate",
    "PluginExecutor",
    "classify_action",
    "load_plugins",
    "parse_agent",
    "plan_actions",
]
