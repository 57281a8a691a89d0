"""exomachine - provision and manage Exoscale instances."""

from .config import DriverConfig, DriverState
from .driver import Driver, state_from_instance
from .errors import (
    APIError,
    ConfigurationError,
    DriverError,
    HostNotRunning,
    OperationFailed,
    ResourceNotFound,
    SSHUnavailable,
)
from .types import InstanceState, State

__all__ = [
    "Driver",
    "DriverConfig",
    "DriverState",
    "state_from_instance",
    "InstanceState",
    "State",
    "DriverError",
    "ConfigurationError",
    "ResourceNotFound",
    "OperationFailed",
    "APIError",
    "HostNotRunning",
    "SSHUnavailable",
]
