# tests/provisioner/components/test_verifier.py
from unittest.mock import Mock

import pytest

from pbs_config import config as static_config
from pbs_config.config_models import NodeRole
from provisioner.components.verification.verifier import Verifier
from provisioner.models import StepStatus

MODULE = "provisioner.components.verification.verifier"


@pytest.fixture
def healthy_node(mocker, monkeypatch):
    monkeypatch.delenv("SUDO_USER", raising=False)

    def fake_run(command, *args, **kwargs):
        if command[-1] == "-B":
            return Mock(returncode=0, stdout="Server  Max Tot\n", stderr="")
        return Mock(returncode=0, stdout="0.head\n", stderr="")

    return {
        "run": mocker.patch(f"{MODULE}.run_command", side_effect=fake_run),
        "process": mocker.patch(f"{MODULE}.process_is_running", return_value=True),
        "sleep": mocker.patch(f"{MODULE}.time.sleep"),
    }


@pytest.fixture
def verifier(app_settings, mock_logger):
    return Verifier(app_settings, mock_logger)


def _summary(results):
    return [(r.name, r.status) for r in results]


def test_server_checks(healthy_node, verifier, make_context, make_plan):
    results = verifier.run(make_context(plan=make_plan()))

    assert _summary(results) == [
        ("verification.server", StepStatus.SUCCESS),
        ("verification.test_job", StepStatus.SUCCESS),
    ]
    assert results[1].detail == "Test job submitted: 0.head"
    healthy_node["process"].assert_not_called()


def test_compute_checks_only_execution_agent(healthy_node, verifier, make_context, make_plan):
    results = verifier.run(make_context(plan=make_plan(node_role=NodeRole.COMPUTE)))

    assert _summary(results) == [
        ("verification.execution_agent", StepStatus.SUCCESS),
    ]
    healthy_node["run"].assert_not_called()


def test_combined_checks_every_daemon(healthy_node, verifier, make_context, make_plan):
    results = verifier.run(make_context(plan=make_plan(node_role=NodeRole.COMBINED)))

    assert _summary(results) == [
        ("verification.server", StepStatus.SUCCESS),
        ("verification.execution_agent", StepStatus.SUCCESS),
        ("verification.test_job", StepStatus.SUCCESS),
    ]
    healthy_node["process"].assert_called_once()


def test_combined_with_agent_off_warns(healthy_node, verifier, make_context, make_plan):
    healthy_node["process"].return_value = False

    results = verifier.run(make_context(plan=make_plan(node_role=NodeRole.COMBINED)))

    by_name = {r.name: r.status for r in results}
    assert by_name["verification.execution_agent"] is StepStatus.WARNED
    assert by_name["verification.test_job"] is StepStatus.SUCCESS


def test_failed_checks_are_warnings(healthy_node, verifier, make_context, make_plan):
    healthy_node["run"].side_effect = lambda command, *a, **k: Mock(
        returncode=1, stdout="", stderr="Connection refused"
    )

    results = verifier.run(make_context(plan=make_plan()))

    assert _summary(results) == [
        ("verification.server", StepStatus.WARNED),
        ("verification.test_job", StepStatus.WARNED),
    ]
    assert results[0].detail == "server: PBS server test failed (Connection refused)"


def test_missing_execution_agent(healthy_node, verifier, make_context, make_plan):
    healthy_node["process"].return_value = False

    results = verifier.run(make_context(plan=make_plan(node_role=NodeRole.COMPUTE)))

    assert results[0].status is StepStatus.WARNED
    assert "no pbs_mom process found" in results[0].detail


def test_missing_qstat_is_a_warning(healthy_node, verifier, make_context, make_plan):
    healthy_node["run"].side_effect = FileNotFoundError(2, "No such file", "qstat")

    results = verifier.run(make_context(plan=make_plan()))

    assert {r.status for r in results} == {StepStatus.WARNED}


def test_test_job_submitted_as_sudo_user(
    monkeypatch, healthy_node, verifier, make_context, make_plan
):
    monkeypatch.setenv("SUDO_USER", "alice")
    plan = make_plan()

    verifier.run(make_context(plan=plan))

    qsub_call = healthy_node["run"].call_args_list[-1]
    assert qsub_call.args[0] == [
        "sudo",
        "-u",
        "alice",
        str(plan.install_prefix / "bin" / "qsub"),
    ]
    assert qsub_call.kwargs["cmd_input"] == static_config.TEST_JOB_SCRIPT


@pytest.mark.parametrize("sudo_user", [None, "root"])
def test_submission_user_falls_back_to_plain_qsub(monkeypatch, verifier, sudo_user):
    if sudo_user:
        monkeypatch.setenv("SUDO_USER", sudo_user)
    else:
        monkeypatch.delenv("SUDO_USER", raising=False)

    assert verifier.submission_user() is None


def test_configured_smoke_test_user_wins(monkeypatch, app_settings, mock_logger):
    monkeypatch.setenv("SUDO_USER", "alice")
    settings = app_settings.model_copy(update={"smoke_test_user": "pbsuser"})

    assert Verifier(settings, mock_logger).submission_user() == "pbsuser"
