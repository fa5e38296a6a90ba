# provisioner/components/services/qmgr.py
# -*- coding: utf-8 -*-
"""
Thin client for the PBS administration command, qmgr.
"""

import logging
import subprocess
from pathlib import Path
from typing import Optional

from common.command_utils import run_elevated_command
from pbs_config.config_models import AppSettings

module_logger = logging.getLogger(__name__)


class QmgrClient:
    """
    Runs qmgr directives against the local PBS server.

    qmgr is called by its absolute path under the installation prefix, so a
    fresh install works before /etc/profile.d/pbs.sh is sourced.
    """

    def __init__(
        self,
        install_prefix: Path,
        app_settings: AppSettings,
        logger: Optional[logging.Logger] = None,
    ):
        self.qmgr_path = install_prefix / "bin" / "qmgr"
        self.app_settings = app_settings
        self.logger = logger or module_logger

    def run(self, directive: str, check: bool = True) -> subprocess.CompletedProcess:
        """
        Execute one qmgr directive.

        Raises:
            subprocess.CalledProcessError: If check is True and qmgr fails.
            FileNotFoundError: If qmgr is not installed under the prefix.
        """
        return run_elevated_command(
            [str(self.qmgr_path), "-c", directive],
            self.app_settings,
            check=check,
            capture_output=True,
            current_logger=self.logger,
        )

    def queue_exists(self, queue_name: str) -> bool:
        return self.run(f"list queue {queue_name}", check=False).returncode == 0

    def create_queue(self, queue_name: str) -> None:
        self.run(f"create queue {queue_name}")

    def set_queue(self, queue_name: str, attribute: str, value: str) -> None:
        self.run(f"set queue {queue_name} {attribute} = {value}")

    def set_server(self, attribute: str, value: str) -> None:
        self.run(f"set server {attribute} = {value}")
