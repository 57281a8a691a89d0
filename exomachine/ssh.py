"""SSH key pairs and first-contact SSH checks."""

import os
import shutil
import time
from pathlib import Path

import paramiko
from fabric import Connection

from .config import DriverConfig
from .errors import ConfigurationError, SSHUnavailable
from .operations import wait_for_operation
from .utils import debug, log, warn

SSH_TIMEOUT = 600
SSH_RETRY_DELAY = 5
KEY_BITS = 2048

AUTHORIZED_KEYS_BLOCK = "\nssh_authorized_keys:\n- "

# Image name fragment -> login user, checked in order.
_IMAGE_USERS = (
    ("ubuntu", "ubuntu"),
    ("centos", "centos"),
    ("redhat", "cloud-user"),
    ("fedora", "fedora"),
    ("coreos", "core"),
    ("debian", "debian"),
)
DEFAULT_SSH_USER = "root"


def default_ssh_user(image: str) -> str:
    """Guess the login user from an image name when none is configured."""
    name = image.lower()
    for fragment, user in _IMAGE_USERS:
        if fragment in name:
            return user
    return DEFAULT_SSH_USER


def resolve_key_path(path: str) -> Path:
    """Expand '~/' against the invoking user's home, otherwise make absolute."""
    if path.startswith("~/"):
        return Path.home() / path[2:]
    return Path(path).absolute()


def generate_key(key_path: Path) -> str:
    """Write a fresh RSA key pair at ``key_path`` (+ '.pub').

    :return: Public key line
    """
    key_path.parent.mkdir(parents=True, exist_ok=True)
    key = paramiko.RSAKey.generate(KEY_BITS)
    key.write_private_key_file(str(key_path))
    os.chmod(key_path, 0o600)

    public_key = f"{key.get_name()} {key.get_base64()}\n"
    Path(f"{key_path}.pub").write_text(public_key)
    return public_key


def register_key_pair(session, name: str, public_key: str) -> None:
    op = session.register_ssh_key(name=name, public_key=public_key)
    wait_for_operation(session, op)


def delete_key_pair(session, name: str) -> None:
    op = session.delete_ssh_key(name=name)
    wait_for_operation(session, op)


def append_authorized_key(user_data: str, public_key: str) -> str:
    """Append ``public_key`` to the cloud-init payload as an authorized key."""
    return f"{user_data}{AUTHORIZED_KEYS_BLOCK}{public_key}"


def import_key(source: str, key_path: Path, user_data: str) -> str:
    """Use an existing key: authorize its public half, copy the private half.

    Nothing is registered with the platform.

    :param source: Path to the private key; '<source>.pub' must exist
    :param key_path: Destination for the private key copy
    :param user_data: Cloud-init payload to extend
    :return: The extended payload
    :raises ConfigurationError: If either file cannot be read or copied
    """
    private_path = resolve_key_path(source)
    log(f"Importing SSH key from '{private_path}'")

    try:
        public_key = Path(f"{private_path}.pub").read_text()
    except OSError as e:
        raise ConfigurationError(f"Cannot read SSH public key: {e}") from e

    try:
        key_path.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(private_path, key_path)
    except OSError as e:
        raise ConfigurationError(f"Unable to copy SSH file: {e}") from e
    try:
        os.chmod(key_path, 0o600)
    except OSError as e:
        raise ConfigurationError(f"Unable to set permissions on the SSH file: {e}") from e

    return append_authorized_key(user_data, public_key)


def setup_ssh_key(
    session, config: DriverConfig, user_data: str
) -> tuple[str | None, str]:
    """Prepare SSH access for a new instance.

    Without an import path an ephemeral key pair is generated and
    registered under ``config.key_pair_name``; the caller deletes it after
    the first successful connection. With one, the user's key is passed in
    through cloud-init.

    :return: (registered key pair name or None, final user data)
    """
    if config.ssh_key:
        return None, import_key(config.ssh_key, config.key_path, user_data)

    log("Generate an SSH keypair...")
    public_key = generate_key(config.key_path)
    register_key_pair(session, config.key_pair_name, public_key)
    debug(f"Registered SSH key pair {config.key_pair_name}")
    return config.key_pair_name, user_data


def wait_for_ssh(ip: str, user: str, key_path: Path, timeout: int = SSH_TIMEOUT) -> None:
    """Block until an SSH handshake with the generated key succeeds.

    :raises SSHUnavailable: If SSH is still unreachable after ``timeout`` seconds
    """
    log(f"Waiting for SSH on '{ip}'...")
    start = time.time()
    while time.time() - start < timeout:
        try:
            with Connection(
                ip,
                user=user,
                connect_kwargs={
                    "key_filename": str(key_path),
                    "look_for_keys": False,
                    "timeout": 5,
                },
            ) as c:
                c.run("echo ok", hide=True, in_stream=False)
                log("SSH ready")
                return
        except Exception as e:
            elapsed = int(time.time() - start)
            warn(f"Waiting for SSH... ({elapsed}s, {type(e).__name__})")
        time.sleep(SSH_RETRY_DELAY)
    raise SSHUnavailable(f"SSH on '{ip}' not reachable after {timeout}s")
