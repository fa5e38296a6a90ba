# common/system_utils.py
# -*- coding: utf-8 -*-
"""
System-level utility functions for the OpenPBS installer.

This module includes functions for host discovery (hostname, os-release,
privilege, CPU count, connectivity) and for driving systemd units.
"""

import logging
import os
import socket
import subprocess
from pathlib import Path
from typing import Dict, Optional

from common.command_utils import (
    get_symbols,
    log_map_server,
    run_command,
    run_elevated_command,
)
from pbs_config.config_models import AppSettings

module_logger = logging.getLogger(__name__)


def get_local_hostname() -> str:
    """Return the fully qualified name of this host, like ``hostname -f``."""
    return socket.getfqdn()


def is_running_as_root() -> bool:
    return os.geteuid() == 0


def get_cpu_count() -> int:
    return os.cpu_count() or 1


def read_os_release(os_release_path: Path) -> Dict[str, str]:
    """
    Parse an os-release file into a dictionary.

    Quoting follows the os-release format: values may be wrapped in single
    or double quotes, and comment or blank lines are ignored.

    Args:
        os_release_path: Path to the os-release file.

    Returns:
        A dictionary of the KEY=value pairs.

    Raises:
        FileNotFoundError: If the file does not exist.
    """
    values: Dict[str, str] = {}
    for raw_line in os_release_path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, value = line.partition("=")
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
            value = value[1:-1]
        values[key.strip()] = value
    return values


def check_connectivity(
    probe_host: str,
    app_settings: Optional[AppSettings] = None,
    current_logger: Optional[logging.Logger] = None,
) -> bool:
    """
    Probe outbound connectivity by pinging a well-known host once.

    Args:
        probe_host: Host name or address to ping.
        app_settings: Optional installer settings for logging symbols.
        current_logger: Optional logger instance.

    Returns:
        True if the host answered.
    """
    logger_to_use = current_logger if current_logger else module_logger
    symbols = get_symbols(app_settings)
    try:
        result = run_command(
            ["ping", "-c", "1", probe_host],
            app_settings,
            check=False,
            capture_output=True,
            current_logger=logger_to_use,
        )
    except FileNotFoundError:
        log_map_server(
            f"{symbols.get('warning', '!')} ping command not found. Cannot probe connectivity.",
            "warning",
            logger_to_use,
            app_settings,
        )
        return False
    return result.returncode == 0


def process_is_running(
    process_name: str,
    app_settings: Optional[AppSettings] = None,
    current_logger: Optional[logging.Logger] = None,
) -> bool:
    """Return True if a process with exactly this name is running."""
    result = run_command(
        ["pgrep", "-x", process_name],
        app_settings,
        check=False,
        capture_output=True,
        current_logger=current_logger,
    )
    return result.returncode == 0


def _systemctl(
    action: str,
    service_name: str,
    app_settings: AppSettings,
    current_logger: Optional[logging.Logger] = None,
    check: bool = True,
) -> subprocess.CompletedProcess:
    logger_to_use = current_logger if current_logger else module_logger
    symbols = get_symbols(app_settings)
    log_map_server(
        f"{symbols.get('gear', '⚙️')} systemctl {action} {service_name}",
        "info",
        logger_to_use,
        app_settings,
    )
    return run_elevated_command(
        ["systemctl", action, service_name],
        app_settings,
        check=check,
        capture_output=True,
        current_logger=logger_to_use,
    )


def start_service(
    service_name: str,
    app_settings: AppSettings,
    current_logger: Optional[logging.Logger] = None,
) -> None:
    _systemctl("start", service_name, app_settings, current_logger)


def restart_service(
    service_name: str,
    app_settings: AppSettings,
    current_logger: Optional[logging.Logger] = None,
) -> None:
    _systemctl("restart", service_name, app_settings, current_logger)


def enable_service(
    service_name: str,
    app_settings: AppSettings,
    current_logger: Optional[logging.Logger] = None,
) -> None:
    _systemctl("enable", service_name, app_settings, current_logger)


def stop_service(
    service_name: str,
    app_settings: AppSettings,
    current_logger: Optional[logging.Logger] = None,
) -> bool:
    """
    Stop a service, tolerating a unit that is absent or already stopped.

    Returns:
        True if systemctl reported success.
    """
    try:
        result = _systemctl(
            "stop", service_name, app_settings, current_logger, check=False
        )
    except FileNotFoundError:
        return False
    return result.returncode == 0
