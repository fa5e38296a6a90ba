# common/file_utils.py
# -*- coding: utf-8 -*-
"""
File system utility functions: whole-file config writes and directory cleanup.
"""

import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Optional

from pbs_config.config_models import AppSettings

from .command_utils import get_symbols, log_map_server

module_logger = logging.getLogger(__name__)


def write_file_atomic(
    file_path: Path,
    content: str,
    app_settings: Optional[AppSettings],
    mode: int = 0o644,
    current_logger: Optional[logging.Logger] = None,
) -> None:
    """
    Replace a file's content in one step.

    The content is written to a temporary file in the same directory and
    renamed over the target, so readers never observe a partial file and
    nothing of the previous content survives. Missing parent directories are
    created.

    Parameters:
        file_path (Path): The file to write.
        content (str): The complete new content.
        app_settings (Optional[AppSettings]): Settings providing log symbols.
        mode (int): Permission bits of the resulting file.
        current_logger (Optional[logging.Logger]): Logger instance to use.

    Raises:
        OSError: If the directory cannot be created or the file written.
    """
    logger_to_use = current_logger if current_logger else module_logger
    symbols = get_symbols(app_settings)

    file_path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(
        dir=str(file_path.parent), prefix=f".{file_path.name}."
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as tmp_file:
            tmp_file.write(content)
        os.chmod(tmp_name, mode)
        os.replace(tmp_name, file_path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise

    log_map_server(
        f"{symbols.get('success', '✅')} Wrote {file_path}",
        "info",
        logger_to_use,
        app_settings,
    )


def cleanup_directory(
    directory_path: Path,
    app_settings: Optional[AppSettings],
    current_logger: Optional[logging.Logger] = None,
) -> bool:
    """
    Removes a directory and everything below it.

    Parameters:
        directory_path (Path): The directory to remove.
        app_settings (Optional[AppSettings]): Settings providing log symbols.
        current_logger (Optional[logging.Logger]): Logger instance to use.

    Returns:
        bool: True if the directory is gone afterwards.
    """
    logger_to_use = current_logger if current_logger else module_logger
    symbols = get_symbols(app_settings)

    if not directory_path.exists():
        log_map_server(
            f"Directory {directory_path} does not exist. No cleanup needed.",
            "debug",
            logger_to_use,
            app_settings,
        )
        return True

    if not directory_path.is_dir():
        log_map_server(
            f"{symbols.get('warning', '!')} Path {directory_path} exists but is not a directory.",
            "warning",
            logger_to_use,
            app_settings,
        )
        return False

    try:
        shutil.rmtree(directory_path)
    except OSError as e:
        log_map_server(
            f"{symbols.get('error', '❌')} Error removing directory {directory_path}: {e}",
            "error",
            logger_to_use,
            app_settings,
        )
        return False

    log_map_server(
        f"Removed directory and its contents: {directory_path}",
        "debug",
        logger_to_use,
        app_settings,
    )
    return True
