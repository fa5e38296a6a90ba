# tests/provisioner/components/test_service_spec.py
import pytest

from pbs_config.config_models import NodeRole
from provisioner.components.services.service_spec import (
    derive_service_spec,
    render_mom_config,
)


def conf_values(pbs_conf):
    return dict(line.split("=", 1) for line in pbs_conf.splitlines())


def test_server_spec(make_plan, app_settings):
    spec = derive_service_spec(make_plan(), app_settings)

    values = conf_values(spec.pbs_conf)
    assert values["PBS_SERVER"] == "head.example.org"
    assert values["PBS_START_SERVER"] == "1"
    assert values["PBS_START_SCHED"] == "1"
    assert values["PBS_START_COMM"] == "1"
    assert values["PBS_START_MOM"] == "0"
    assert values["PBS_EXEC"] == str(app_settings.pbs.prefix)
    assert values["PBS_HOME"] == str(app_settings.pbs.home)
    assert values["PBS_CORE_LIMIT"] == "unlimited"
    assert values["PBS_SCP"] == "/usr/bin/scp"
    assert spec.mom_config is None


def test_compute_spec(make_plan, app_settings):
    spec = derive_service_spec(
        make_plan(node_role=NodeRole.COMPUTE), app_settings
    )

    values = conf_values(spec.pbs_conf)
    assert values["PBS_START_SERVER"] == "0"
    assert values["PBS_START_SCHED"] == "0"
    assert values["PBS_START_COMM"] == "0"
    assert values["PBS_START_MOM"] == "1"
    assert spec.mom_config == (
        "$clienthost head.example.org\n$restrict_user_maxsysid 999\n"
    )


@pytest.mark.parametrize("starts_agent, expected_mom", [(False, "0"), (True, "1")])
def test_combined_spec(make_plan, app_settings, starts_agent, expected_mom):
    settings = app_settings.model_copy(
        update={"combined_starts_execution_agent": starts_agent}
    )

    spec = derive_service_spec(make_plan(node_role=NodeRole.COMBINED), settings)

    values = conf_values(spec.pbs_conf)
    assert values["PBS_START_SERVER"] == "1"
    assert values["PBS_START_MOM"] == expected_mom
    assert (spec.mom_config is not None) is starts_agent


def test_rendering_is_deterministic(make_plan, app_settings):
    first = derive_service_spec(make_plan(), app_settings)
    second = derive_service_spec(make_plan(), app_settings)

    assert first.pbs_conf == second.pbs_conf
    assert first.pbs_conf.endswith("\n")
    assert len(first.pbs_conf.splitlines()) == 9


def test_server_hostname_required(make_plan, app_settings):
    plan = make_plan().model_copy(update={"server_hostname": None})

    with pytest.raises(ValueError):
        derive_service_spec(plan, app_settings)


def test_render_mom_config():
    assert render_mom_config("pbs01").splitlines() == [
        "$clienthost pbs01",
        "$restrict_user_maxsysid 999",
    ]
