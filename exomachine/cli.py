#!/usr/bin/env python3
"""Manage Exoscale machines.

Prerequisites: an Exoscale API key and secret (flags, environment or .env).

Usage: uv run exomachine <command> <name> [options]

Examples:
    uv run exomachine create web1 --zone ch-gva-2 --instance-type standard.small
    uv run exomachine status web1
    uv run exomachine url web1
    uv run exomachine rm web1 --force
"""

import os
from collections.abc import Callable

import cyclopts
from dotenv import load_dotenv
from rich import print

from .config import (
    DEFAULT_DISK_SIZE,
    DEFAULT_IMAGE,
    DEFAULT_INSTANCE_TYPE,
    DEFAULT_SECURITY_GROUP,
    DEFAULT_STORAGE_PATH,
    DEFAULT_ZONE,
    DriverConfig,
)
from .driver import Driver
from .errors import DriverError
from .store import delete_machine, load_machine, machine_exists, save_machine
from .utils import error, log, setup_logging

app = cyclopts.App(name="exomachine", help="Manage Exoscale machines", sort_key=None)


def _storage(storage_path: str | None) -> str:
    return storage_path or os.getenv("EXOMACHINE_STORAGE_PATH") or str(DEFAULT_STORAGE_PATH)


def _env_list(var: str, default: list[str]) -> list[str]:
    value = os.getenv(var)
    if value is None:
        return default
    return [item.strip() for item in value.split(",") if item.strip()]


def _env_int(var: str, default: int) -> int:
    value = os.getenv(var)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        error(f"{var} must be an integer, got '{value}'")


def _load(name: str, storage_path: str | None) -> Driver:
    try:
        config, state = load_machine(_storage(storage_path), name)
    except DriverError as e:
        error(str(e))
    return Driver(config, state)


def _run(driver: Driver, action: Callable[[], object]) -> object:
    """Run a driver action, persist state whatever happens, exit on failure."""
    try:
        return action()
    except DriverError as e:
        error(str(e))
    finally:
        save_machine(driver.config, driver.state)


@app.command(name="create")
def create_machine(
    name: str,
    *,
    zone: str | None = None,
    api_key: str | None = None,
    api_secret: str | None = None,
    url: str | None = None,
    instance_type: str | None = None,
    disk_size: int | None = None,
    image: str | None = None,
    security_group: list[str] | None = None,
    anti_affinity_group: list[str] | None = None,
    ssh_user: str | None = None,
    ssh_key: str | None = None,
    userdata: str | None = None,
    storage_path: str | None = None,
):
    """Create an Exoscale instance.

    :param name: Machine name
    :param zone: Exoscale zone (default: EXOSCALE_AVAILABILITY_ZONE or ch-dk-2)
    :param api_key: API key (default: EXOSCALE_API_KEY)
    :param api_secret: API secret (default: EXOSCALE_API_SECRET_KEY)
    :param url: API endpoint override (default: EXOSCALE_ENDPOINT)
    :param instance_type: Instance type id or family.size (Small, standard.medium, ...)
    :param disk_size: Disk size in GiB (10, 50, 100, 200, 400)
    :param image: Template name or short key (e.g. ubuntu-24.04)
    :param security_group: Security group name, repeatable; created with default rules if missing
    :param anti_affinity_group: Anti-affinity group name, repeatable; created if missing
    :param ssh_user: SSH user when the template declares none
    :param ssh_key: Path to an existing SSH private key ('<path>.pub' must exist)
    :param userdata: Path to a cloud-init user-data file
    :param storage_path: Machine storage directory (default: ~/.exomachine)
    """
    store = _storage(storage_path)
    if machine_exists(store, name):
        error(f"Machine '{name}' already exists in '{store}'")

    try:
        config = DriverConfig(
            machine_name=name,
            store_path=store,
            zone=zone or os.getenv("EXOSCALE_AVAILABILITY_ZONE", DEFAULT_ZONE),
            api_key=api_key or os.getenv("EXOSCALE_API_KEY", ""),
            api_secret=api_secret or os.getenv("EXOSCALE_API_SECRET_KEY", ""),
            url=url or os.getenv("EXOSCALE_ENDPOINT", ""),
            instance_type=instance_type
            or os.getenv("EXOSCALE_INSTANCE_PROFILE", DEFAULT_INSTANCE_TYPE),
            disk_size=disk_size or _env_int("EXOSCALE_DISK_SIZE", DEFAULT_DISK_SIZE),
            image=image or os.getenv("EXOSCALE_IMAGE", DEFAULT_IMAGE),
            security_groups=security_group
            or _env_list("EXOSCALE_SECURITY_GROUP", [DEFAULT_SECURITY_GROUP]),
            anti_affinity_groups=anti_affinity_group
            or _env_list("EXOSCALE_AFFINITY_GROUP", []),
            ssh_user=ssh_user or os.getenv("EXOSCALE_SSH_USER", ""),
            ssh_key=ssh_key or os.getenv("EXOSCALE_SSH_KEY", ""),
            user_data_file=userdata or os.getenv("EXOSCALE_USERDATA", ""),
        )
    except DriverError as e:
        error(str(e))

    driver = Driver(config)
    log(f"Creating machine '{name}' in '{config.zone}' ('{config.instance_type}')...")
    _run(driver, driver.create)

    log("Machine ready!")
    print(f"  ID: {driver.state.instance_id}")
    print(f"  IP: {driver.state.ip_address}")
    print(f"  SSH: ssh -i {config.key_path} {driver.get_ssh_username()}@{driver.state.ip_address}")
    if driver.state.password:
        print(f"  Password: {driver.state.password}")


@app.command(name="start")
def start_machine(name: str, *, storage_path: str | None = None):
    """Start a stopped machine.

    :param name: Machine name
    :param storage_path: Machine storage directory
    """
    driver = _load(name, storage_path)
    _run(driver, driver.start)
    log(f"Machine '{name}' started")


@app.command(name="stop")
def stop_machine(name: str, *, storage_path: str | None = None):
    """Stop a running machine.

    :param name: Machine name
    :param storage_path: Machine storage directory
    """
    driver = _load(name, storage_path)
    _run(driver, driver.stop)
    log(f"Machine '{name}' stopped")


@app.command(name="restart")
def restart_machine(name: str, *, storage_path: str | None = None):
    """Reboot a machine.

    :param name: Machine name
    :param storage_path: Machine storage directory
    """
    driver = _load(name, storage_path)
    _run(driver, driver.restart)
    log(f"Machine '{name}' restarted")


@app.command(name="kill")
def kill_machine(name: str, *, storage_path: str | None = None):
    """Stop a machine (same as stop).

    :param name: Machine name
    :param storage_path: Machine storage directory
    """
    driver = _load(name, storage_path)
    _run(driver, driver.kill)
    log(f"Machine '{name}' killed")


@app.command(name="rm")
def remove_machine(name: str, *, force: bool = False, storage_path: str | None = None):
    """Delete the instance and the local machine directory.

    :param name: Machine name
    :param force: Skip confirmation prompt
    :param storage_path: Machine storage directory
    """
    driver = _load(name, storage_path)

    print("[yellow]Machine to delete:[/yellow]")
    print(f"  Name: {name}")
    print(f"  ID: {driver.state.instance_id or 'N/A'}")
    print(f"  IP: {driver.state.ip_address or 'N/A'}")

    if not force:
        confirm = input("Delete this machine? (yes/no): ")
        if confirm != "yes":
            log("Cancelled")
            return

    try:
        driver.remove()
    except DriverError as e:
        save_machine(driver.config, driver.state)
        error(str(e))
    delete_machine(driver.config.store_path, name)
    log("Machine deleted")


@app.command(name="status")
def machine_status(name: str, *, storage_path: str | None = None):
    """Print the machine state as reported by Exoscale.

    :param name: Machine name
    :param storage_path: Machine storage directory
    """
    driver = _load(name, storage_path)
    state = _run(driver, driver.get_state)
    print(state.value)


@app.command(name="url")
def machine_url(name: str, *, storage_path: str | None = None):
    """Print the Docker URL of a running machine.

    :param name: Machine name
    :param storage_path: Machine storage directory
    """
    driver = _load(name, storage_path)
    print(_run(driver, driver.get_url))


@app.command(name="ip")
def machine_ip(name: str, *, storage_path: str | None = None):
    """Print the public IP address of a machine.

    :param name: Machine name
    :param storage_path: Machine storage directory
    """
    driver = _load(name, storage_path)
    try:
        print(driver.get_ip())
    except DriverError as e:
        error(str(e))


def main():
    load_dotenv()
    setup_logging()
    app()


if __name__ == "__main__":
    main()
