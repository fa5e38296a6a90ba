# tests/conftest.py
import logging
from unittest.mock import MagicMock

import pytest

from pbs_config.config_models import (
    AppSettings,
    NodeRole,
    PbsSettings,
    ProvisioningPlan,
)
from provisioner.models import (
    HostFacts,
    PackageManagerKind,
    ProvisioningContext,
    SupportedDistro,
)

SERVER_FQDN = "head.example.org"


@pytest.fixture
def mock_logger():
    """Fixture to create a mock logger for testing."""
    return MagicMock(spec=logging.Logger)


@pytest.fixture
def app_settings(tmp_path):
    """AppSettings with every host path redirected below tmp_path and no delays."""
    return AppSettings(
        log_dir=tmp_path / "logs",
        scratch_root=tmp_path / "scratch",
        service_start_delay=0,
        verify_settle_delay=0,
        pbs_conf_path=tmp_path / "etc" / "pbs.conf",
        profile_script_path=tmp_path / "etc" / "profile.d" / "pbs.sh",
        os_release_path=tmp_path / "etc" / "os-release",
        pbs=PbsSettings(
            version="23.06.06",
            prefix=tmp_path / "opt" / "pbs",
            home=tmp_path / "var" / "spool" / "pbs",
        ),
    )


@pytest.fixture
def make_plan(app_settings):
    """Factory for plans; a server plan unless overridden."""

    def _make_plan(**overrides):
        values = dict(
            node_role=NodeRole.SERVER,
            cluster_name="pbs-cluster",
            server_hostname=SERVER_FQDN,
            version=app_settings.pbs.version,
            install_prefix=app_settings.pbs.prefix,
            pbs_home=app_settings.pbs.home,
        )
        values.update(overrides)
        return ProvisioningPlan(**values)

    return _make_plan


@pytest.fixture
def make_facts():
    """Factory for host facts of an Ubuntu 24.04 host unless overridden."""

    def _make_facts(**overrides):
        values = dict(
            os_id="ubuntu",
            os_version="24.04",
            os_pretty_name="Ubuntu 24.04 LTS",
            distro=SupportedDistro.UBUNTU_24_04,
            package_manager=PackageManagerKind.APT,
            is_root=True,
            connectivity=True,
            hostname=SERVER_FQDN,
            cpu_count=4,
        )
        values.update(overrides)
        return HostFacts(**values)

    return _make_facts


@pytest.fixture
def make_context(app_settings):
    """Factory for a context with the plan and facts already set."""

    def _make_context(plan=None, facts=None):
        context = ProvisioningContext(app_settings)
        if plan is not None:
            context.plan = plan
        if facts is not None:
            context.facts = facts
        return context

    return _make_context
