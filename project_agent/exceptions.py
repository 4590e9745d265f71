"""Exception hierarchy for the project agent.

Every error raised by the agent derives from ``ProjectAgentError`` so the CLI
can report it with a single except clause. Schema violations are not errors:
they are returned as plain strings by the schema checker.

Exception Hierarchy:
    ProjectAgentError (base)
    ├── ConfigurationError
    ├── TemplateError
    ├── WorkflowError
    ├── IssueNotFoundError
    ├── AgentNotFoundError
    └── ExternalServiceError
        ├── IssueStoreError
        └── CompletionError

Example Usage:
    >>> from project_agent.exceptions import ConfigurationError
    >>> try:
    ...     load_config(path)
    ... except FileNotFoundError as e:
    ...     raise ConfigurationError(f"Config file not found: {path}") from e
"""


class ProjectAgentError(Exception):
    """Base exception for all project agent errors.

    Attributes:
        message: Human-readable error description
    """

    def __init__(self, message: str) -> None:
        """Initialize exception.

        Args:
            message: Error message
        """
        self.message = message
        super().__init__(message)


class ConfigurationError(ProjectAgentError):
    """Configuration-related errors.

    Examples:
        - Configuration file not found
        - Invalid YAML syntax
        - Single-repo mode without owner/repo
        - Guidelines file unreadable
    """

    pass


class TemplateError(ProjectAgentError):
    """Prompt template lookup or rendering failed."""

    pass


class WorkflowError(ProjectAgentError):
    """A validation or plugin workflow could not complete for one unit of work.

    Raised by the validation workflow when the completion call or the issue
    update fails. Batch runs catch it per issue and keep going.
    """

    pass


class IssueNotFoundError(ProjectAgentError):
    """Issue does not exist in the configured repository or repositories."""

    def __init__(self, number: int, message: str | None = None) -> None:
        """Initialize exception.

        Args:
            number: Issue number that could not be resolved
            message: Optional override for the default message
        """
        self.number = number
        super().__init__(message or f"issue #{number} not found")


class AgentNotFoundError(ProjectAgentError):
    """No plugin agent is registered under the requested name."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"agent not found: {name}")


class ExternalServiceError(ProjectAgentError):
    """External service communication errors.

    Raised when communication with GitHub or the completion endpoint fails
    (HTTP errors, API failures, timeouts, etc.).
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_text: str | None = None,
    ) -> None:
        """Initialize exception.

        Args:
            message: Error message
            status_code: HTTP status code (if applicable)
            response_text: Response body text (if applicable)
        """
        self.status_code = status_code
        self.response_text = response_text

        full_message = message
        if status_code:
            full_message = f"{message} (HTTP {status_code})"

        super().__init__(full_message)


class IssueStoreError(ExternalServiceError):
    """GitHub API call failed."""

    pass


class CompletionError(ExternalServiceError):
    """Text-completion endpoint failed or returned an unusable response."""

    pass
