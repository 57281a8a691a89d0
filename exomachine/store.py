"""Machine config and runtime state persisted between invocations."""

import json
import shutil
from pathlib import Path

from .config import DriverConfig, DriverState
from .errors import ConfigurationError

MACHINE_FILE = "machine.json"


def machine_file(store_path: str | Path, name: str) -> Path:
    return Path(store_path) / name / MACHINE_FILE


def machine_exists(store_path: str | Path, name: str) -> bool:
    return machine_file(store_path, name).exists()


def load_machine(store_path: str | Path, name: str) -> tuple[DriverConfig, DriverState]:
    """Load machine data from its JSON file.

    :param store_path: Storage root
    :param name: Machine name
    :return: (config, state)
    :raises ConfigurationError: If the machine is unknown
    """
    path = machine_file(store_path, name)
    if not path.exists():
        raise ConfigurationError(f"Machine file not found: '{path}'")
    data = json.loads(path.read_text())
    config = DriverConfig.from_dict({**data.get("config", {}), "store_path": str(store_path)})
    return config, DriverState.from_dict(data.get("state", {}))


def save_machine(config: DriverConfig, state: DriverState) -> Path:
    """Save machine config and state to JSON file.

    :return: Path written
    """
    path = machine_file(config.store_path, config.machine_name)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        json.dumps({"config": config.to_dict(), "state": state.to_dict()}, indent=2)
    )
    # Holds the API secret and possibly the instance password.
    path.chmod(0o600)
    return path


def delete_machine(store_path: str | Path, name: str) -> None:
    """Remove the machine directory, including its private key."""
    shutil.rmtree(Path(store_path) / name, ignore_errors=True)
