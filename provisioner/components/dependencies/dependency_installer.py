# provisioner/components/dependencies/dependency_installer.py
# -*- coding: utf-8 -*-
"""
Installs the build and runtime dependencies of OpenPBS with the host's
package manager.
"""

import subprocess
from typing import List, Tuple

from common.command_utils import describe_failure, get_symbols, log_map_server
from common.debian.apt_manager import AptManager
from common.rhel.dnf_manager import DnfManager
from pbs_config import config as static_config
from pbs_config.config_models import ProvisioningPlan
from provisioner.base_step import BaseStep
from provisioner.errors import DependencyError
from provisioner.models import (
    DistroFamily,
    HostFacts,
    ProvisioningContext,
    StepResult,
    StepStatus,
)
from provisioner.registry import StepRegistry

PackageSet = Tuple[str, List[str]]


def package_sets(family: DistroFamily, plan: ProvisioningPlan) -> List[PackageSet]:
    """
    Return the named package sets to install, in installation order.

    The database sets are only included when accounting is enabled; the
    database server set additionally requires install_database.
    """
    if family is DistroFamily.DEBIAN:
        sets: List[PackageSet] = [
            ("build", static_config.UBUNTU_BUILD_PACKAGES),
            ("runtime", static_config.UBUNTU_RUNTIME_PACKAGES),
        ]
        database_dev = static_config.UBUNTU_DATABASE_DEV_PACKAGES
        database_server = static_config.UBUNTU_DATABASE_SERVER_PACKAGES
    else:
        sets = [
            ("build", static_config.RHEL_BUILD_PACKAGES),
            ("runtime", static_config.RHEL_RUNTIME_PACKAGES),
        ]
        database_dev = static_config.RHEL_DATABASE_DEV_PACKAGES
        database_server = static_config.RHEL_DATABASE_SERVER_PACKAGES

    if plan.accounting_enabled:
        sets.append(("database client", database_dev))
        if plan.install_database:
            sets.append(("database server", database_server))
    return sets


@StepRegistry.register(
    name="dependencies",
    metadata={
        "dependencies": ["preconditions"],
        "description": "Install build and runtime packages",
    },
)
class DependencyInstaller(BaseStep):
    """Installs the package sets for the host's distribution family."""

    def _install_debian(self, sets: List[PackageSet]) -> None:
        try:
            apt_manager = AptManager(logger=self.logger)
            apt_manager.update(self.app_settings, raise_error=True)
        except (subprocess.CalledProcessError, FileNotFoundError) as e:
            raise DependencyError(
                f"Failed to update package lists: {describe_failure(e)}"
            ) from e

        for set_name, packages in sets:
            try:
                apt_manager.install(
                    packages,
                    self.app_settings,
                    update_first=False,
                    raise_error=True,
                )
            except (subprocess.CalledProcessError, FileNotFoundError) as e:
                raise DependencyError(
                    f"Failed to install {set_name} packages: {describe_failure(e)}"
                ) from e

    def _install_rhel(self, sets: List[PackageSet], facts: HostFacts) -> None:
        try:
            dnf_manager = DnfManager(logger=self.logger)
            dnf_manager.install(
                static_config.RHEL_REPOSITORY_PACKAGES,
                self.app_settings,
                raise_error=True,
            )
            # Best effort: the repository name differs between releases.
            enabled = dnf_manager.enable_repository(
                static_config.RHEL_EXTRA_REPOSITORIES, self.app_settings
            )
            if enabled:
                facts.remember("extra_repository", enabled)
            dnf_manager.group_install(
                static_config.RHEL_BUILD_GROUP,
                self.app_settings,
                raise_error=True,
            )
        except (subprocess.CalledProcessError, FileNotFoundError) as e:
            raise DependencyError(
                f"Failed to prepare package repositories: {describe_failure(e)}"
            ) from e

        for set_name, packages in sets:
            try:
                dnf_manager.install(
                    packages, self.app_settings, raise_error=True
                )
            except (subprocess.CalledProcessError, FileNotFoundError) as e:
                raise DependencyError(
                    f"Failed to install {set_name} packages: {describe_failure(e)}"
                ) from e

    def run(self, context: ProvisioningContext) -> List[StepResult]:
        symbols = get_symbols(self.app_settings)
        facts = context.facts
        sets = package_sets(facts.family, context.plan)

        log_map_server(
            f"{symbols.get('package', '📦')} Installing system dependencies for {facts.os_pretty_name}",
            "info",
            self.logger,
            self.app_settings,
        )
        if facts.family is DistroFamily.DEBIAN:
            self._install_debian(sets)
        else:
            self._install_rhel(sets, facts)

        installed = ", ".join(set_name for set_name, _ in sets)
        return [
            self.result(
                StepStatus.SUCCESS,
                f"Package sets installed: {installed}",
            )
        ]
