"""Instance lifecycle for one Exoscale machine."""

import base64
from pathlib import Path

from .cloudinit import read_user_data
from .config import DriverConfig, DriverState
from .errors import ConfigurationError, DriverError, HostNotRunning
from .finder import find_instance_type, find_template
from .operations import wait_for_operation
from .provisioner import ensure_anti_affinity_group, ensure_security_group
from .session import ClientFactory, Session, resolve_session
from .ssh import default_ssh_user, delete_key_pair, setup_ssh_key, wait_for_ssh
from .types import InstanceState, State
from .utils import debug, log

DOCKER_PORT = 2376

_STATE_MAP = {
    InstanceState.STARTING: State.STARTING,
    InstanceState.RUNNING: State.RUNNING,
    InstanceState.STOPPING: State.STOPPING,
    InstanceState.STOPPED: State.STOPPED,
    InstanceState.DESTROYING: State.STOPPED,
    InstanceState.DESTROYED: State.STOPPED,
    InstanceState.EXPUNGING: State.STOPPED,
    InstanceState.MIGRATING: State.PAUSED,
    InstanceState.ERROR: State.ERROR,
}


def state_from_instance(instance_state: InstanceState) -> State:
    """Translate a platform instance state into a reported state.

    Total over InstanceState: anything without an entry is UNKNOWN.
    """
    return _STATE_MAP.get(instance_state, State.UNKNOWN)


def join_host_port(host: str, port: int) -> str:
    if ":" in host:
        return f"[{host}]:{port}"
    return f"{host}:{port}"


class Driver:
    """Creates, drives and removes a single Exoscale instance.

    ``config`` is the desired configuration and is never modified.
    ``state`` holds what create() learned; the caller persists it between
    invocations. Every public method opens a fresh session.
    """

    def __init__(
        self,
        config: DriverConfig,
        state: DriverState | None = None,
        *,
        client_factory: ClientFactory | None = None,
    ):
        self.config = config
        self.state = state if state is not None else DriverState()
        self.client_factory = client_factory

    @property
    def machine_name(self) -> str:
        return self.config.machine_name

    def _session(self) -> Session:
        return resolve_session(
            self.config.zone,
            self.config.api_key,
            self.config.api_secret,
            url=self.config.url or None,
            client_factory=self.client_factory,
        )

    def _require_instance_id(self) -> str:
        if not self.state.instance_id:
            raise ConfigurationError(f"Machine '{self.machine_name}' has no instance id")
        return self.state.instance_id

    def get_instance(self) -> dict:
        session = self._session()
        return session.get_instance(id=self._require_instance_id())

    def get_state(self) -> State:
        instance = self.get_instance()
        return state_from_instance(InstanceState.parse(instance.get("state")))

    def get_ip(self) -> str:
        if not self.state.ip_address:
            raise DriverError("IP address is not set")
        return self.state.ip_address

    def get_ssh_hostname(self) -> str:
        return self.get_ip()

    def get_ssh_username(self) -> str:
        return (
            self.state.ssh_user
            or self.config.ssh_user
            or default_ssh_user(self.config.image)
        )

    def get_ssh_key_path(self) -> Path:
        return self.config.key_path

    def get_url(self) -> str:
        """Docker-compatible endpoint, e.g. tcp://10.1.2.3:2376.

        :raises HostNotRunning: If the instance is not running
        """
        if self.get_state() is not State.RUNNING:
            raise HostNotRunning(self.machine_name)
        return f"tcp://{join_host_port(self.get_ip(), DOCKER_PORT)}"

    def create(self) -> None:
        """Provision the instance and everything it depends on.

        Not transactional: groups, key pairs or the instance created before a
        failing step are left in place for inspection.
        """
        config = self.config
        user_data = read_user_data(config.user_data_file)

        log("Querying exoscale for the requested parameters...")
        session = self._session()

        templates = session.list_templates().get("templates", [])
        template = find_template(templates, config.image)
        if template.get("default-user"):
            self.state.ssh_user = template["default-user"]
        elif config.ssh_user:
            self.state.ssh_user = config.ssh_user
        debug(f"Image {config.image}(10) = {template['id']} ({self.get_ssh_username()})")

        instance_types = session.list_instance_types().get("instance-types", [])
        instance_type = find_instance_type(instance_types, config.instance_type)
        debug(f"Profile {config.instance_type} = {instance_type['id']}")

        security_groups = [
            {"id": ensure_security_group(session, name)}
            for name in config.security_groups
            if name
        ]
        anti_affinity_groups = [
            {"id": ensure_anti_affinity_group(session, name)}
            for name in config.anti_affinity_groups
            if name
        ]

        key_pair, user_data = setup_ssh_key(session, config, user_data)
        if key_pair:
            self.state.key_pair = key_pair

        log(f"Spawn exoscale host '{self.machine_name}'...")
        debug(f"Using the following cloud-init file:\n{user_data}")

        request = {
            "name": self.machine_name,
            "template": {"id": template["id"]},
            "instance_type": {"id": instance_type["id"]},
            "disk_size": config.disk_size,
            "ipv6_enabled": True,
            "user_data": base64.b64encode(user_data.encode()).decode(),
            "security_groups": security_groups,
            "anti_affinity_groups": anti_affinity_groups,
        }
        if key_pair:
            request["ssh_keys"] = [{"name": key_pair}]

        op = session.create_instance(**request)
        log(f"Deploying {self.machine_name}...")
        instance_id = wait_for_operation(session, op)

        instance = session.get_instance(id=instance_id)
        self.state.instance_id = instance["id"]
        if instance.get("public-ip"):
            self.state.ip_address = instance["public-ip"]
        log(f"IP Address: {self.state.ip_address}, SSH User: {self.get_ssh_username()}")

        if template.get("password-enabled"):
            revealed = session.reveal_instance_password(id=self.state.instance_id)
            self.state.password = revealed.get("password", "")

        if self.state.key_pair:
            wait_for_ssh(self.get_ip(), self.get_ssh_username(), config.key_path)
            delete_key_pair(session, self.state.key_pair)
            debug(f"Deleted temporary SSH key pair {self.state.key_pair}")
            self.state.key_pair = ""

    def start(self) -> None:
        instance_id = self._require_instance_id()
        session = self._session()
        wait_for_operation(session, session.start_instance(id=instance_id))

    def stop(self) -> None:
        instance_id = self._require_instance_id()
        session = self._session()
        wait_for_operation(session, session.stop_instance(id=instance_id))

    def restart(self) -> None:
        instance_id = self._require_instance_id()
        session = self._session()
        wait_for_operation(session, session.reboot_instance(id=instance_id))

    def kill(self) -> None:
        """Same as stop: the platform offers no forced power-off."""
        self.stop()

    def remove(self) -> None:
        """Delete the leftover key pair and the instance.

        Security groups and anti-affinity groups are kept.
        """
        if self.state.key_pair or self.state.instance_id:
            session = self._session()

            if self.state.key_pair:
                delete_key_pair(session, self.state.key_pair)
                self.state.key_pair = ""

            if self.state.instance_id:
                op = session.delete_instance(id=self.state.instance_id)
                wait_for_operation(session, op)
                self.state.instance_id = ""

        log("The anti-affinity groups and security groups were not removed")
