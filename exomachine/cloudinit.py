"""Cloud-init user data for new instances."""

from pathlib import Path

from .errors import ConfigurationError

DEFAULT_CLOUD_INIT = """#cloud-config
manage_etc_hosts: localhost
"""


def read_user_data(path: str) -> str:
    """Return the user-data payload, the default cloud-config if no path is set.

    :raises ConfigurationError: If the file cannot be read
    """
    if not path:
        return DEFAULT_CLOUD_INIT
    try:
        return Path(path).expanduser().read_text()
    except OSError as e:
        raise ConfigurationError(f"Cannot read user data file '{path}': {e}") from e
