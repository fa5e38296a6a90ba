# common/rhel/dnf_manager.py
# -*- coding: utf-8 -*-
import logging
import subprocess
from typing import List, Optional, Union

from common.command_utils import (
    command_exists,
    run_command,
    run_elevated_command,
)
from pbs_config.config_models import AppSettings


class DnfManager:
    """
    A centralized manager for RHEL-family packages (Rocky, Alma, RHEL)
    using the dnf command-line tool.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)
        if not command_exists("dnf"):
            self.logger.critical(
                "'dnf' command not found. This manager cannot function."
            )
            raise FileNotFoundError(
                "'dnf' not found. Is this a RHEL-based system?"
            )

    def is_installed(self, pkg_name: str, app_settings: AppSettings) -> bool:
        result = run_command(
            ["rpm", "-q", pkg_name],
            app_settings,
            check=False,
            capture_output=True,
            current_logger=self.logger,
        )
        return result.returncode == 0

    def install(
        self,
        packages: Union[List[str], str],
        app_settings: AppSettings,
        raise_error: bool = False,
    ) -> bool:
        """
        Installs one or more packages using 'dnf install'.

        Args:
            packages: A single package name or a list of package names.
            app_settings: The application settings.
            raise_error: Raise the CalledProcessError instead of returning False.

        Returns:
            True if successful, False otherwise.
        """
        if not isinstance(packages, list):
            packages = [packages]

        packages_to_install = [
            pkg for pkg in packages if not self.is_installed(pkg, app_settings)
        ]
        if not packages_to_install:
            self.logger.info("All requested packages are already installed.")
            return True

        self.logger.info(
            f"Committing installation for: {', '.join(packages_to_install)}"
        )
        try:
            run_elevated_command(
                ["dnf", "install", "-y"] + packages_to_install,
                app_settings,
                capture_output=True,
                current_logger=self.logger,
            )
            self.logger.info("Packages installed successfully.")
            return True
        except subprocess.CalledProcessError as e:
            self.logger.error(f"Failed to install packages: {e}")
            if raise_error:
                raise
            return False

    def group_install(
        self,
        group_name: str,
        app_settings: AppSettings,
        raise_error: bool = False,
    ) -> bool:
        """Installs a package group such as "Development Tools"."""
        self.logger.info(f"Installing package group '{group_name}'...")
        try:
            run_elevated_command(
                ["dnf", "groupinstall", "-y", group_name],
                app_settings,
                capture_output=True,
                current_logger=self.logger,
            )
            return True
        except subprocess.CalledProcessError as e:
            self.logger.error(f"Failed to install group '{group_name}': {e}")
            if raise_error:
                raise
            return False

    def enable_repository(
        self, repo_candidates: List[str], app_settings: AppSettings
    ) -> Optional[str]:
        """
        Enables the first repository of the candidates that exists.

        Repository names differ between releases (PowerTools on 8, crb on 9),
        so each candidate is tried in turn.

        Returns:
            The name of the enabled repository, or None if none could be
            enabled.
        """
        for repo_name in repo_candidates:
            result = run_elevated_command(
                ["dnf", "config-manager", "--set-enabled", repo_name],
                app_settings,
                check=False,
                capture_output=True,
                current_logger=self.logger,
            )
            if result.returncode == 0:
                self.logger.info(f"Enabled repository '{repo_name}'.")
                return repo_name
        self.logger.warning(
            f"None of the repositories {', '.join(repo_candidates)} could be enabled."
        )
        return None
