# provisioner/components/build/build_installer.py
# -*- coding: utf-8 -*-
"""
Downloads, compiles and installs OpenPBS from source.

The build runs in four phases (fetch, configure, compile, install). A failure
in any of them raises BuildError naming the phase; the scratch workspace is
then kept for inspection and whatever was already installed under the prefix
stays as it is.
"""

import os
import subprocess
import tarfile
from pathlib import Path
from typing import List, Optional

import requests

from common.command_utils import (
    describe_failure,
    get_symbols,
    log_map_server,
    run_command,
    run_elevated_command,
)
from common.download_utils import download_file, extract_tarball
from common.file_utils import write_file_atomic
from common.system_utils import stop_service
from pbs_config import config as static_config
from pbs_config.config_models import ProvisioningPlan, is_release_version
from provisioner.base_step import BaseStep
from provisioner.errors import BuildError
from provisioner.models import (
    HostFacts,
    ProvisioningContext,
    StepResult,
    StepStatus,
)
from provisioner.registry import StepRegistry
from provisioner.workspace import ScratchWorkspace

SETUID_MODE = 0o4755


def archive_url(base_url: str, version: str) -> str:
    """Release versions are fetched from their tag, anything else as a branch."""
    template = (
        static_config.OPENPBS_TAG_ARCHIVE
        if is_release_version(version)
        else static_config.OPENPBS_BRANCH_ARCHIVE
    )
    return template.format(base=base_url.rstrip("/"), version=version)


def version_marker_path(install_prefix: Path) -> Path:
    return install_prefix / static_config.VERSION_MARKER_NAME


def read_version_marker(install_prefix: Path) -> Optional[str]:
    """Return the version recorded by a previous run, if any."""
    try:
        version = version_marker_path(install_prefix).read_text(encoding="utf-8").strip()
    except OSError:
        return None
    return version or None


def configure_arguments(plan: ProvisioningPlan) -> List[str]:
    args = ["./configure", f"--prefix={plan.install_prefix}"]
    if plan.accounting_enabled:
        args += ["--enable-ptl", "--with-database-user=postgres"]
    return args


def render_profile_script(install_prefix: Path, pbs_home: Path) -> str:
    return (
        f"export PATH={install_prefix}/bin:{install_prefix}/sbin:$PATH\n"
        f"export PBS_EXEC={install_prefix}\n"
        f"export PBS_HOME={pbs_home}\n"
    )


@StepRegistry.register(
    name="build",
    metadata={
        "dependencies": ["dependencies"],
        "description": "Fetch, compile and install OpenPBS from source",
    },
)
class BuildInstaller(BaseStep):
    """Builds OpenPBS into the plan's installation prefix."""

    def can_skip(self, plan: ProvisioningPlan, facts: HostFacts) -> bool:
        """
        A completed install of the same release can be reused, unless a
        reinstall was forced or confirmed at the prompt. Branch builds such
        as master always rebuild.
        """
        return (
            facts.existing_installation
            and not plan.force_reinstall
            and not facts.reinstall_confirmed
            and plan.is_release_version
            and facts.installed_version == plan.version
        )

    def _run_phase(
        self,
        phase: str,
        command: List[str],
        cwd: Path,
        elevated: bool = False,
    ) -> subprocess.CompletedProcess:
        runner = run_elevated_command if elevated else run_command
        try:
            return runner(
                command,
                self.app_settings,
                capture_output=True,
                current_logger=self.logger,
                cwd=str(cwd),
            )
        except (subprocess.CalledProcessError, FileNotFoundError) as e:
            raise BuildError(phase, describe_failure(e)) from e

    def fetch(self, plan: ProvisioningPlan, workspace: ScratchWorkspace) -> Path:
        url = archive_url(self.app_settings.archive_base_url, plan.version)
        log_map_server(
            f"Downloading OpenPBS {plan.version} from {url}",
            "info",
            self.logger,
            self.app_settings,
        )
        try:
            download_file(
                url,
                workspace.archive_path,
                timeout=self.app_settings.download_timeout,
                current_logger=self.logger,
            )
            return extract_tarball(
                workspace.archive_path, workspace.source_root, self.logger
            )
        except requests.exceptions.RequestException as e:
            raise BuildError("fetch", f"Could not download {url}: {e}") from e
        except (tarfile.TarError, OSError) as e:
            raise BuildError("fetch", f"Could not unpack {url}: {e}") from e

    def configure(self, plan: ProvisioningPlan, source_dir: Path) -> None:
        log_map_server("Running autogen.sh...", "info", self.logger, self.app_settings)
        self._run_phase("configure", ["./autogen.sh"], source_dir)
        log_map_server("Configuring build...", "info", self.logger, self.app_settings)
        self._run_phase("configure", configure_arguments(plan), source_dir)

    def compile(self, source_dir: Path, cpu_count: int) -> None:
        log_map_server(
            f"Compiling (using {cpu_count} cores, this may take 15-30 minutes)...",
            "info",
            self.logger,
            self.app_settings,
        )
        self._run_phase("compile", ["make", f"-j{cpu_count}"], source_dir)

    def install(self, plan: ProvisioningPlan, source_dir: Path) -> None:
        prefix = plan.install_prefix
        log_map_server("Installing OpenPBS...", "info", self.logger, self.app_settings)
        self._run_phase("install", ["make", "install"], source_dir, elevated=True)
        self._run_phase(
            "install",
            [str(prefix / "libexec" / "pbs_postinstall")],
            source_dir,
            elevated=True,
        )
        try:
            for binary in static_config.SETUID_BINARIES:
                os.chmod(prefix / binary, SETUID_MODE)
            write_file_atomic(
                version_marker_path(prefix),
                f"{plan.version}\n",
                self.app_settings,
                current_logger=self.logger,
            )
        except OSError as e:
            raise BuildError("install", f"Post-installation setup failed: {e}") from e

    def publish_environment(self, plan: ProvisioningPlan) -> None:
        """Write the login profile that puts the PBS commands on PATH."""
        try:
            write_file_atomic(
                self.app_settings.profile_script_path,
                render_profile_script(plan.install_prefix, plan.pbs_home),
                self.app_settings,
                current_logger=self.logger,
            )
        except OSError as e:
            raise BuildError("install", f"Could not write the environment file: {e}") from e

    def run(self, context: ProvisioningContext) -> List[StepResult]:
        symbols = get_symbols(self.app_settings)
        plan = context.plan
        facts = context.facts

        if self.can_skip(plan, facts):
            log_map_server(
                f"OpenPBS {plan.version} is already installed at {plan.install_prefix}. Skipping the build.",
                "info",
                self.logger,
                self.app_settings,
            )
            self.publish_environment(plan)
            return [
                self.result(
                    StepStatus.SKIPPED,
                    f"OpenPBS {plan.version} already installed at {plan.install_prefix}",
                )
            ]

        # Tolerated when the unit does not exist yet.
        stop_service(static_config.PBS_SERVICE_NAME, self.app_settings, self.logger)

        with ScratchWorkspace(self.app_settings, self.logger) as workspace:
            source_dir = self.fetch(plan, workspace)
            self.configure(plan, source_dir)
            self.compile(source_dir, facts.cpu_count)
            self.install(plan, source_dir)
        self.publish_environment(plan)

        log_map_server(
            f"{symbols.get('success', '✅')} OpenPBS {plan.version} compiled and installed into {plan.install_prefix}",
            "success",
            self.logger,
            self.app_settings,
        )
        return [
            self.result(
                StepStatus.SUCCESS,
                f"OpenPBS {plan.version} installed into {plan.install_prefix}",
            )
        ]
