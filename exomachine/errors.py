"""Exception hierarchy for exomachine.

The driver raises; it never exits the process. The CLI is the only place
that turns a DriverError into an exit status.
"""


class DriverError(Exception):
    """Base exception for all exomachine errors."""


class ConfigurationError(DriverError):
    """Raised for invalid configuration or unreadable local inputs."""


class ResourceNotFound(DriverError):
    """Raised when a named cloud resource cannot be resolved."""

    def __init__(self, kind: str, name: str) -> None:
        self.kind = kind
        self.name = name
        super().__init__(f"Unable to find {kind} '{name}'")


class OperationFailed(DriverError):
    """Raised when an asynchronous operation ends in a state other than success."""

    def __init__(
        self,
        operation_id: str,
        state: str,
        reason: str | None = None,
        message: str | None = None,
    ) -> None:
        self.operation_id = operation_id
        self.state = state
        self.reason = reason
        self.message = message
        detail = ": ".join(part for part in (reason, message) if part)
        super().__init__(
            f"Operation '{operation_id}' ended in state '{state}'"
            + (f" ({detail})" if detail else "")
        )


class APIError(DriverError):
    """Raised when the Exoscale API client rejects a call."""

    def __init__(self, method: str, detail: str) -> None:
        self.method = method
        self.detail = detail
        super().__init__(f"Exoscale API call '{method}' failed: {detail}")


class HostNotRunning(DriverError):
    """Raised when an operation requires a running instance."""

    def __init__(self, machine_name: str) -> None:
        self.machine_name = machine_name
        super().__init__(f"Host '{machine_name}' is not running")


class SSHUnavailable(DriverError):
    """Raised when SSH never becomes reachable on a new instance."""
