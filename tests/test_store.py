"""Machine config validation and on-disk persistence."""

import json
import stat

import pytest

from exomachine.config import DriverConfig, DriverState
from exomachine.errors import ConfigurationError
from exomachine.store import (
    delete_machine,
    load_machine,
    machine_exists,
    machine_file,
    save_machine,
)


def test_config_defaults():
    config = DriverConfig(machine_name="web1")
    assert config.zone == "ch-dk-2"
    assert config.disk_size == 50
    assert config.security_groups == ("exomachine",)
    assert config.key_pair_name == "exomachine-web1"
    assert config.key_path.name == "id_rsa"
    assert config.key_path.parent.name == "web1"


def test_config_rejects_unsupported_disk_size():
    with pytest.raises(ConfigurationError, match="Valid sizes: 10, 50, 100, 200, 400"):
        DriverConfig(machine_name="web1", disk_size=75)


def test_config_requires_name():
    with pytest.raises(ConfigurationError):
        DriverConfig(machine_name="")


def test_config_accepts_lists():
    config = DriverConfig(machine_name="web1", security_groups=["a", "b"])
    assert config.security_groups == ("a", "b")


def test_save_and_load(make_config, tmp_path):
    config = make_config(security_groups=["k8s"], anti_affinity_groups=["spread"])
    state = DriverState(instance_id="instance-1", ip_address="10.1.2.3", ssh_user="ubuntu")

    path = save_machine(config, state)

    assert path == machine_file(config.store_path, "web1")
    assert stat.S_IMODE(path.stat().st_mode) == 0o600
    assert json.loads(path.read_text())["config"]["security_groups"] == ["k8s"]

    loaded_config, loaded_state = load_machine(config.store_path, "web1")
    assert loaded_config == config
    assert loaded_state == state


def test_load_ignores_unknown_keys(make_config):
    config = make_config()
    path = save_machine(config, DriverState())
    data = json.loads(path.read_text())
    data["config"]["legacy_field"] = 1
    data["state"]["legacy_field"] = 2
    path.write_text(json.dumps(data))

    loaded_config, loaded_state = load_machine(config.store_path, "web1")
    assert loaded_config == config
    assert loaded_state == DriverState()


def test_load_uses_given_store_path(make_config, tmp_path):
    config = make_config()
    save_machine(config, DriverState())
    moved = tmp_path / "moved"
    (tmp_path / "store").rename(moved)

    loaded_config, _ = load_machine(moved, "web1")
    assert loaded_config.store_path == str(moved)


def test_load_unknown_machine(tmp_path):
    with pytest.raises(ConfigurationError, match="Machine file not found"):
        load_machine(tmp_path, "ghost")


def test_delete_machine(make_config):
    config = make_config()
    save_machine(config, DriverState())
    assert machine_exists(config.store_path, "web1")

    delete_machine(config.store_path, "web1")

    assert not machine_exists(config.store_path, "web1")
    assert not config.machine_dir.exists()
