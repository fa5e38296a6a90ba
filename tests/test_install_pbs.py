# tests/test_install_pbs.py
"""
End-to-end runs of the installer entry point with every host interaction
(package managers, compiler, systemd, qmgr, network) mocked out.
"""

import json
import logging
from unittest.mock import Mock

import pytest
import yaml

import install_pbs
from common.logging_config import AUDIT_LOGGER_NAME
from install_pbs import main, parse_args

LOCAL_FQDN = "node01.example.org"
BUILD = "provisioner.components.build.build_installer"
PRECONDITIONS = "provisioner.components.preconditions.precondition_checker"
SERVICES = "provisioner.components.services.service_configurator"
VERIFIER = "provisioner.components.verification.verifier"


@pytest.fixture(autouse=True)
def restore_logging():
    root_logger = logging.getLogger()
    saved_handlers = list(root_logger.handlers)
    saved_level = root_logger.level
    yield
    for logger in (root_logger, logging.getLogger(AUDIT_LOGGER_NAME)):
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()
    for handler in saved_handlers:
        root_logger.addHandler(handler)
    root_logger.setLevel(saved_level)


@pytest.fixture
def host(tmp_path):
    """Paths of the simulated host, all below tmp_path."""
    paths = {
        "logs": tmp_path / "logs",
        "prefix": tmp_path / "opt" / "pbs",
        "home": tmp_path / "var" / "spool" / "pbs",
        "pbs_conf": tmp_path / "etc" / "pbs.conf",
        "profile": tmp_path / "etc" / "profile.d" / "pbs.sh",
        "os_release": tmp_path / "etc" / "os-release",
    }
    paths["os_release"].parent.mkdir(parents=True)
    paths["os_release"].write_text(
        'ID=ubuntu\nVERSION_ID="24.04"\nPRETTY_NAME="Ubuntu 24.04 LTS"\n'
    )
    config = {
        "log_dir": str(paths["logs"]),
        "scratch_root": str(tmp_path / "scratch"),
        "service_start_delay": 0,
        "verify_settle_delay": 0,
        "pbs_conf_path": str(paths["pbs_conf"]),
        "profile_script_path": str(paths["profile"]),
        "os_release_path": str(paths["os_release"]),
        "pbs": {
            "version": "23.06.06",
            "prefix": str(paths["prefix"]),
            "home": str(paths["home"]),
        },
    }
    paths["config"] = tmp_path / "installer.yaml"
    paths["config"].write_text(yaml.safe_dump(config))
    return paths


@pytest.fixture
def system(mocker, monkeypatch, host):
    """Mocks for everything the installer would do to the machine."""
    monkeypatch.delenv("SUDO_USER", raising=False)
    for module in (
        PRECONDITIONS,
        "provisioner.components.inventory.inventory_resolver",
        "provisioner.reporter",
    ):
        mocker.patch(f"{module}.get_local_hostname", return_value=LOCAL_FQDN)
    mocker.patch(f"{PRECONDITIONS}.is_running_as_root", return_value=True)
    mocker.patch(f"{PRECONDITIONS}.check_connectivity", return_value=True)
    mocker.patch(f"{PRECONDITIONS}.get_cpu_count", return_value=2)

    def fake_extract(archive_path, extract_to_dir, current_logger=None):
        source_dir = extract_to_dir / "openpbs-23.06.06"
        source_dir.mkdir(parents=True)
        return source_dir

    def fake_elevated(command, *args, **kwargs):
        if command == ["make", "install"]:
            sbin = host["prefix"] / "sbin"
            sbin.mkdir(parents=True, exist_ok=True)
            for name in ("pbs_iff", "pbs_rcp"):
                (sbin / name).write_text("")
        return Mock(returncode=0, stdout="", stderr="")

    def fake_check(command, *args, **kwargs):
        return Mock(returncode=0, stdout="0.node01\n", stderr="")

    return {
        "apt": mocker.patch(
            "provisioner.components.dependencies.dependency_installer.AptManager"
        ),
        "download": mocker.patch(f"{BUILD}.download_file"),
        "extract": mocker.patch(f"{BUILD}.extract_tarball", side_effect=fake_extract),
        "build_run": mocker.patch(f"{BUILD}.run_command"),
        "build_elevated": mocker.patch(
            f"{BUILD}.run_elevated_command", side_effect=fake_elevated
        ),
        "stop": mocker.patch(f"{BUILD}.stop_service", return_value=True),
        "restart": mocker.patch(f"{SERVICES}.restart_service"),
        "enable": mocker.patch(f"{SERVICES}.enable_service"),
        "qmgr": mocker.patch(f"{SERVICES}.QmgrClient"),
        "checks": mocker.patch(f"{VERIFIER}.run_command", side_effect=fake_check),
        "process": mocker.patch(f"{VERIFIER}.process_is_running", return_value=True),
    }


def _install(host, *args):
    return main(["--config", str(host["config"]), *args])


def _audit_entries(host):
    (audit_file,) = host["logs"].glob("*.audit.jsonl")
    return [json.loads(line) for line in audit_file.read_text().splitlines()]


def _conf_values(host):
    return dict(
        line.split("=", 1) for line in host["pbs_conf"].read_text().splitlines()
    )


def test_parse_args_aliases():
    args = parse_args(
        ["--node-type", "server", "--install-postgres", "--postgres-password", "pw"]
    )

    assert args.node_type == "server"
    assert args.install_database is True
    assert args.database_password == "pw"


def test_parse_args_rejects_unknown_role():
    with pytest.raises(SystemExit):
        parse_args(["--node-type", "login"])


def test_server_installation(system, host):
    exit_code = _install(host, "--node-type", "server")

    assert exit_code == 0
    values = _conf_values(host)
    assert values["PBS_SERVER"] == LOCAL_FQDN
    assert values["PBS_START_SERVER"] == "1"
    assert values["PBS_START_MOM"] == "0"
    assert host["profile"].exists()
    steps = [entry["extra"]["step"] for entry in _audit_entries(host)]
    assert steps == [
        "inventory",
        "preconditions",
        "dependencies",
        "build",
        "database",
        "services",
        "verification.server",
        "verification.test_job",
    ]
    (run_log,) = host["logs"].glob("*.log")
    assert "installation completed successfully" in run_log.read_text()


def test_compute_without_server_hostname_changes_nothing(system, host):
    exit_code = _install(host, "--node-type", "compute")

    assert exit_code == 1
    system["apt"].assert_not_called()
    system["download"].assert_not_called()
    assert not host["pbs_conf"].exists()
    entries = _audit_entries(host)
    assert len(entries) == 1
    assert entries[0]["extra"]["status"] == "failed"
    assert "Server hostname is required" in entries[0]["extra"]["detail"]


def test_existing_installation_without_force(system, host):
    host["prefix"].mkdir(parents=True)
    sentinel = host["prefix"] / "bin-from-previous-run"
    sentinel.write_text("keep me")

    exit_code = _install(host, "--node-type", "server")

    assert exit_code == 1
    assert sorted(p.name for p in host["prefix"].iterdir()) == ["bin-from-previous-run"]
    assert sentinel.read_text() == "keep me"
    system["apt"].assert_not_called()
    failed = _audit_entries(host)[-1]["extra"]
    assert failed["step"] == "preconditions"
    assert failed["detail"].startswith("EXISTING_INSTALLATION")


def test_accounting_on_compute_is_a_warning(system, host):
    exit_code = _install(
        host,
        "--node-type",
        "compute",
        "--server-hostname",
        "head.example.org",
        "--enable-accounting",
    )

    assert exit_code == 0
    by_step = {e["extra"]["step"]: e["extra"] for e in _audit_entries(host)}
    assert by_step["inventory.accounting"]["status"] == "warned"
    assert by_step["database"]["status"] == "skipped"
    assert _conf_values(host)["PBS_SERVER"] == "head.example.org"


def test_compute_verification_warning_still_succeeds(system, host):
    system["process"].return_value = False

    exit_code = _install(
        host, "--node-type", "compute", "--server-hostname", "head.example.org"
    )

    assert exit_code == 0
    last = _audit_entries(host)[-1]["extra"]
    assert last["step"] == "verification.execution_agent"
    assert last["status"] == "warned"


def test_rerun_writes_identical_configuration(system, host):
    assert _install(host, "--node-type", "server") == 0
    first = host["pbs_conf"].read_bytes()

    assert _install(host, "--node-type", "server", "--force-reinstall") == 0

    assert host["pbs_conf"].read_bytes() == first


def test_server_after_compute_removes_execution_agent_settings(system, host):
    assert _install(
        host, "--node-type", "compute", "--server-hostname", "head.example.org"
    ) == 0
    mom_config = host["home"] / "mom_priv" / "config"
    assert mom_config.exists()

    assert _install(host, "--node-type", "server", "--force-reinstall") == 0

    pbs_conf = host["pbs_conf"].read_text()
    assert "PBS_START_MOM=0\n" in pbs_conf
    assert "head.example.org" not in pbs_conf
    assert not mom_config.exists()


def test_configuration_error_is_logged(mocker, tmp_path):
    mocker.patch.object(install_pbs, "LOG_DIR_DEFAULT", tmp_path / "logs")

    exit_code = main(["--config", str(tmp_path / "missing.yaml")])

    assert exit_code == 1
    (run_log,) = (tmp_path / "logs").glob("*.log")
    assert "missing.yaml" in run_log.read_text()
