"""Driver configuration (desired) and runtime state (observed)."""

from dataclasses import asdict, dataclass, fields
from pathlib import Path

from .errors import ConfigurationError

DEFAULT_ZONE = "ch-dk-2"
DEFAULT_INSTANCE_TYPE = "Small"
DEFAULT_DISK_SIZE = 50
DEFAULT_IMAGE = "Linux Ubuntu 24.04 LTS 64-bit"
DEFAULT_SECURITY_GROUP = "exomachine"
DEFAULT_STORAGE_PATH = Path.home() / ".exomachine"

DISK_SIZES = (10, 50, 100, 200, 400)


@dataclass(frozen=True)
class DriverConfig:
    """User intent for one machine. Never mutated after construction."""

    machine_name: str
    store_path: str = str(DEFAULT_STORAGE_PATH)
    zone: str = DEFAULT_ZONE
    api_key: str = ""
    api_secret: str = ""
    url: str = ""
    instance_type: str = DEFAULT_INSTANCE_TYPE
    disk_size: int = DEFAULT_DISK_SIZE
    image: str = DEFAULT_IMAGE
    security_groups: tuple[str, ...] = (DEFAULT_SECURITY_GROUP,)
    anti_affinity_groups: tuple[str, ...] = ()
    ssh_user: str = ""
    ssh_key: str = ""
    user_data_file: str = ""

    def __post_init__(self) -> None:
        if not self.machine_name:
            raise ConfigurationError("Machine name is required")
        if self.disk_size not in DISK_SIZES:
            raise ConfigurationError(
                f"Invalid disk size: {self.disk_size}\n"
                f"Valid sizes: {', '.join(str(s) for s in DISK_SIZES)}"
            )
        # Accept lists from JSON or the CLI, store tuples.
        object.__setattr__(self, "security_groups", tuple(self.security_groups))
        object.__setattr__(
            self, "anti_affinity_groups", tuple(self.anti_affinity_groups)
        )

    @property
    def machine_dir(self) -> Path:
        return Path(self.store_path) / self.machine_name

    @property
    def key_path(self) -> Path:
        """Private key location inside the machine's storage directory."""
        return self.machine_dir / "id_rsa"

    @property
    def key_pair_name(self) -> str:
        return f"exomachine-{self.machine_name}"

    def to_dict(self) -> dict:
        data = asdict(self)
        data["security_groups"] = list(self.security_groups)
        data["anti_affinity_groups"] = list(self.anti_affinity_groups)
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "DriverConfig":
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})


@dataclass
class DriverState:
    """Runtime fields filled in by create() and read by later calls."""

    instance_id: str = ""
    ip_address: str = ""
    ssh_user: str = ""
    key_pair: str = ""
    password: str = ""

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "DriverState":
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})
