"""Type definitions for exomachine."""

from enum import Enum
from typing import Literal, TypedDict

RuleProtocol = Literal["tcp", "udp"]
FlowDirection = Literal["ingress", "egress"]


class InstanceState(str, Enum):
    """Instance states as reported by the Exoscale API."""

    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"
    STOPPED = "stopped"
    DESTROYING = "destroying"
    DESTROYED = "destroyed"
    EXPUNGING = "expunging"
    MIGRATING = "migrating"
    ERROR = "error"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: str | None) -> "InstanceState":
        """Map a raw API state to a member, UNKNOWN for anything unlisted."""
        try:
            return cls((value or "").lower())
        except ValueError:
            return cls.UNKNOWN


class State(Enum):
    """Lifecycle states reported to the host framework."""

    NONE = "None"
    RUNNING = "Running"
    PAUSED = "Paused"
    SAVED = "Saved"
    STOPPED = "Stopped"
    STOPPING = "Stopping"
    STARTING = "Starting"
    ERROR = "Error"
    TIMEOUT = "Timeout"
    UNKNOWN = "Unknown"


class OperationState(str, Enum):
    PENDING = "pending"
    SUCCESS = "success"
    FAILURE = "failure"
    TIMEOUT = "timeout"


class Reference(TypedDict, total=False):
    id: str
    link: str
    command: str


class Operation(TypedDict, total=False):
    """Asynchronous operation returned by every mutating call."""

    id: str
    state: str
    reason: str
    message: str
    reference: Reference


Zone = TypedDict(
    "Zone",
    {"name": str, "api-endpoint": str, "sos-endpoint": str},
    total=False,
)

Template = TypedDict(
    "Template",
    {
        "id": str,
        "name": str,
        "size": int,
        "default-user": str,
        "password-enabled": bool,
        "family": str,
    },
    total=False,
)


class InstanceType(TypedDict, total=False):
    id: str
    family: str
    size: str
    cpus: int
    memory: int


class SecurityGroup(TypedDict, total=False):
    id: str
    name: str
    description: str


class AntiAffinityGroup(TypedDict, total=False):
    id: str
    name: str
    description: str


Instance = TypedDict(
    "Instance",
    {
        "id": str,
        "name": str,
        "state": str,
        "public-ip": str,
        "template": Template,
    },
    total=False,
)
