# provisioner/components/preconditions/precondition_checker.py
# -*- coding: utf-8 -*-
"""
Checks that the host can be provisioned and captures its facts.

The checks run in a fixed order (privileges, connectivity, operating system,
existing installation) and stop at the first failure. Nothing is written to
the host by this step.
"""

from typing import Dict, List

from common.command_utils import get_symbols, log_map_server
from common.system_utils import (
    check_connectivity,
    get_cpu_count,
    get_local_hostname,
    is_running_as_root,
    read_os_release,
)
from pbs_config.cli_handler import prompt_yes_no
from provisioner.base_step import BaseStep
from provisioner.components.build.build_installer import read_version_marker
from provisioner.errors import (
    PreconditionError,
    PreconditionFailure,
    UserCancelled,
)
from provisioner.models import (
    HostFacts,
    ProvisioningContext,
    StepResult,
    StepStatus,
    SupportedDistro,
)
from provisioner.registry import StepRegistry


@StepRegistry.register(
    name="preconditions",
    metadata={
        "dependencies": ["inventory"],
        "description": "Check privileges, connectivity, OS support and prior installations",
    },
)
class PreconditionChecker(BaseStep):
    """Verifies the host and records its HostFacts on the context."""

    def _check_root(self) -> bool:
        if not is_running_as_root():
            raise PreconditionError(
                PreconditionFailure.NOT_ROOT,
                "This installer must be run as root (use sudo)",
            )
        return True

    def _check_connectivity(self) -> bool:
        probe_host = self.app_settings.connectivity_probe_host
        if not check_connectivity(probe_host, self.app_settings, self.logger):
            raise PreconditionError(
                PreconditionFailure.NO_CONNECTIVITY,
                f"No internet connectivity (could not reach {probe_host})",
            )
        return True

    def _detect_os(self) -> Dict[str, str]:
        os_release_path = self.app_settings.os_release_path
        try:
            os_release = read_os_release(os_release_path)
        except OSError as e:
            raise PreconditionError(
                PreconditionFailure.UNSUPPORTED_OS,
                f"Cannot detect operating system: {e}",
            ) from e

        pretty_name = os_release.get("PRETTY_NAME", "unknown")
        log_map_server(
            f"Detected OS: {pretty_name}", "info", self.logger, self.app_settings
        )
        return os_release

    def run(self, context: ProvisioningContext) -> List[StepResult]:
        symbols = get_symbols(self.app_settings)
        plan = context.plan

        is_root = self._check_root()
        connectivity = self._check_connectivity()
        os_release = self._detect_os()

        os_id = os_release.get("ID", "")
        os_version = os_release.get("VERSION_ID", "")
        pretty_name = os_release.get("PRETTY_NAME", f"{os_id} {os_version}")
        distro = SupportedDistro.match(os_id, os_version)
        if distro is None:
            supported = ", ".join(f"{d.os_id} {d.version}" for d in SupportedDistro)
            raise PreconditionError(
                PreconditionFailure.UNSUPPORTED_OS,
                f"Unsupported operating system: {pretty_name} (supported: {supported})",
            )

        prefix = plan.install_prefix
        existing_installation = prefix.is_dir()
        installed_version = read_version_marker(prefix) if existing_installation else None
        reinstall_confirmed = False

        if existing_installation and not plan.force_reinstall:
            log_map_server(
                f"{symbols.get('warning', '!')} OpenPBS installation detected at {prefix}",
                "warning",
                self.logger,
                self.app_settings,
            )
            if not plan.interactive:
                raise PreconditionError(
                    PreconditionFailure.EXISTING_INSTALLATION,
                    f"OpenPBS is already installed at {prefix}. Use --force-reinstall to overwrite the existing installation",
                )
            if not prompt_yes_no(
                "Continue with reinstallation?",
                False,
                self.app_settings,
                self.logger,
            ):
                raise UserCancelled(
                    f"Existing installation at {prefix} left untouched"
                )
            reinstall_confirmed = True

        context.facts = HostFacts(
            os_id=os_id,
            os_version=os_version,
            os_pretty_name=pretty_name,
            distro=distro,
            package_manager=distro.package_manager,
            is_root=is_root,
            connectivity=connectivity,
            existing_installation=existing_installation,
            installed_version=installed_version,
            reinstall_confirmed=reinstall_confirmed,
            hostname=get_local_hostname(),
            cpu_count=get_cpu_count(),
        )

        detail = f"{pretty_name}, {context.facts.cpu_count} CPU(s)"
        if existing_installation:
            detail += f", existing installation at {prefix}"
            if installed_version:
                detail += f" (version {installed_version})"
        return [self.result(StepStatus.SUCCESS, detail)]
