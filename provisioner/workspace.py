# provisioner/workspace.py
# -*- coding: utf-8 -*-
"""
Scratch workspace for downloading and building OpenPBS.
"""

import logging
import tempfile
from pathlib import Path
from typing import Optional

from common.command_utils import get_symbols, log_map_server
from common.file_utils import cleanup_directory
from pbs_config.config_models import AppSettings
from provisioner.errors import BuildError

module_logger = logging.getLogger(__name__)

ARCHIVE_FILE_NAME = "openpbs.tar.gz"


class ScratchWorkspace:
    """
    Context manager owning a temporary build directory.

    On exit the downloaded archive is always deleted. The extracted source
    tree is deleted as well, unless the block raised a BuildError: then it is
    kept for inspection and its location is logged.
    """

    def __init__(
        self,
        app_settings: AppSettings,
        current_logger: Optional[logging.Logger] = None,
    ):
        self.app_settings = app_settings
        self.logger = current_logger if current_logger else module_logger
        self.path: Optional[Path] = None
        self.preserved = False

    @property
    def archive_path(self) -> Path:
        if self.path is None:
            raise RuntimeError("Workspace is not open")
        return self.path / ARCHIVE_FILE_NAME

    @property
    def source_root(self) -> Path:
        if self.path is None:
            raise RuntimeError("Workspace is not open")
        return self.path / "src"

    def __enter__(self) -> "ScratchWorkspace":
        scratch_root = self.app_settings.scratch_root
        scratch_root.mkdir(parents=True, exist_ok=True)
        self.path = Path(
            tempfile.mkdtemp(prefix="openpbs_build_", dir=str(scratch_root))
        )
        self.logger.debug(f"Created build workspace {self.path}")
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> bool:
        symbols = get_symbols(self.app_settings)
        if self.path is None:
            return False

        self.archive_path.unlink(missing_ok=True)

        if exc_type is not None and issubclass(exc_type, BuildError):
            self.preserved = True
            log_map_server(
                f"{symbols.get('warning', '!')} Build workspace preserved for inspection: {self.path}",
                "warning",
                self.logger,
                self.app_settings,
            )
        else:
            cleanup_directory(self.path, self.app_settings, self.logger)
        return False
