# tests/pbs_config/test_config_loader.py
import argparse

import pytest
import yaml

from pbs_config.config_loader import load_app_settings
from pbs_config.config_models import NodeRole
from provisioner.errors import ConfigurationError


@pytest.fixture(autouse=True)
def isolated_environment(mocker, monkeypatch, tmp_path):
    """Keep the host's /etc config file and PBS_* variables out of the tests."""
    mocker.patch(
        "pbs_config.config_loader.CONFIG_FILE_DEFAULT", tmp_path / "absent.yaml"
    )
    for name in ("PBS_VERSION", "PBS_PREFIX", "PBS_HOME"):
        monkeypatch.delenv(name, raising=False)


def _cli(**overrides):
    values = dict(
        node_type=None,
        server_hostname=None,
        cluster_name=None,
        enable_accounting=False,
        install_database=False,
        database_password=None,
        force_reinstall=False,
        without_interaction=False,
    )
    values.update(overrides)
    return argparse.Namespace(**values)


def _write_yaml(path, data):
    path.write_text(yaml.safe_dump(data))
    return path


def test_defaults(mock_logger):
    settings = load_app_settings(current_logger=mock_logger)

    assert settings.pbs.version == "master"
    assert str(settings.pbs.prefix) == "/opt/pbs"
    assert settings.inventory.node_role is None
    assert settings.inventory.interactive is None
    assert settings.queue_name == "workq"


def test_environment_overrides_defaults(monkeypatch, mock_logger):
    monkeypatch.setenv("PBS_VERSION", "23.06.06")
    monkeypatch.setenv("PBS_PREFIX", "/usr/local/pbs")
    monkeypatch.setenv("PBS_INSTALLER_QUEUE_NAME", "batch")

    settings = load_app_settings(current_logger=mock_logger)

    assert settings.pbs.version == "23.06.06"
    assert str(settings.pbs.prefix) == "/usr/local/pbs"
    assert settings.queue_name == "batch"


def test_yaml_overrides_environment(monkeypatch, tmp_path, mock_logger):
    monkeypatch.setenv("PBS_VERSION", "23.06.06")
    config_file = _write_yaml(
        tmp_path / "installer.yaml",
        {
            "pbs": {"version": "master"},
            "inventory": {"node_role": "compute", "server_hostname": "head"},
        },
    )

    settings = load_app_settings(None, config_file, mock_logger)

    assert settings.pbs.version == "master"
    assert settings.inventory.node_role is NodeRole.COMPUTE
    assert settings.inventory.server_hostname == "head"


def test_cli_overrides_yaml(tmp_path, mock_logger):
    config_file = _write_yaml(
        tmp_path / "installer.yaml",
        {"inventory": {"node_role": "compute", "cluster_name": "from-yaml"}},
    )

    settings = load_app_settings(
        _cli(node_type="server", cluster_name="from-cli"),
        config_file,
        mock_logger,
    )

    assert settings.inventory.node_role is NodeRole.SERVER
    assert settings.inventory.cluster_name == "from-cli"


def test_absent_cli_flags_keep_yaml_values(tmp_path, mock_logger):
    config_file = _write_yaml(
        tmp_path / "installer.yaml",
        {"inventory": {"enable_accounting": True, "force_reinstall": True}},
    )

    settings = load_app_settings(_cli(), config_file, mock_logger)

    assert settings.inventory.enable_accounting is True
    assert settings.inventory.force_reinstall is True


def test_node_type_on_cli_disables_interaction(mock_logger):
    settings = load_app_settings(_cli(node_type="both"), None, mock_logger)

    assert settings.inventory.interactive is False


def test_without_interaction_flag(mock_logger):
    settings = load_app_settings(_cli(without_interaction=True), None, mock_logger)

    assert settings.inventory.interactive is False
    assert settings.inventory.node_role is None


def test_database_password_is_secret(mock_logger):
    settings = load_app_settings(
        _cli(database_password="s3cret"), None, mock_logger
    )

    assert settings.inventory.database_password.get_secret_value() == "s3cret"
    assert "s3cret" not in repr(settings)


def test_missing_explicit_config_file(tmp_path, mock_logger):
    with pytest.raises(ConfigurationError, match="not found"):
        load_app_settings(None, tmp_path / "missing.yaml", mock_logger)


def test_invalid_yaml(tmp_path, mock_logger):
    config_file = tmp_path / "broken.yaml"
    config_file.write_text("inventory: [unclosed\n")

    with pytest.raises(ConfigurationError, match="parse"):
        load_app_settings(None, config_file, mock_logger)


def test_yaml_must_be_a_mapping(tmp_path, mock_logger):
    config_file = tmp_path / "list.yaml"
    config_file.write_text("- server\n- compute\n")

    with pytest.raises(ConfigurationError, match="dictionary"):
        load_app_settings(None, config_file, mock_logger)


def test_invalid_node_role(tmp_path, mock_logger):
    config_file = _write_yaml(
        tmp_path / "installer.yaml", {"inventory": {"node_role": "login"}}
    )

    with pytest.raises(ConfigurationError):
        load_app_settings(None, config_file, mock_logger)


def test_default_config_file_is_read_when_present(mocker, tmp_path, mock_logger):
    default_file = _write_yaml(
        tmp_path / "pbs-installer.yaml", {"inventory": {"cluster_name": "etc"}}
    )
    mocker.patch("pbs_config.config_loader.CONFIG_FILE_DEFAULT", default_file)

    settings = load_app_settings(None, None, mock_logger)

    assert settings.inventory.cluster_name == "etc"
