"""Enumerations for store modes and plugin agent types."""

from enum import Enum


class StoreMode(str, Enum):
    """How issues are addressed.

    - single-repo: one owner/repo pair, every call targets it
    - multi-repo: a project spanning several repositories; calls without an
      explicit owner/repo are resolved by searching the configured list
    """

    SINGLE_REPO = "single-repo"
    MULTI_REPO = "multi-repo"

    def __str__(self) -> str:
        return self.value


class AgentType(str, Enum):
    """Where a plugin agent definition was loaded from."""

    CORE = "core"
    CUSTOM = "custom"

    def __str__(self) -> str:
        return self.value
