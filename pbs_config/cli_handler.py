# pbs_config/cli_handler.py
# -*- coding: utf-8 -*-
"""
Handles Command Line Interface (CLI) interactions for the OpenPBS installer.

Every prompt falls back to its default when stdin is closed (EOF), so an
accidental run without a terminal never blocks.
"""

import getpass
import logging
from typing import Dict, Optional

from common.command_utils import get_symbols, log_map_server
from pbs_config.config_models import AppSettings, ProvisioningPlan

module_logger = logging.getLogger(__name__)


def _read_input(
    prompt_text: str,
    app_settings: Optional[AppSettings],
    logger_to_use: logging.Logger,
) -> Optional[str]:
    symbols = get_symbols(app_settings)
    try:
        return input(prompt_text).strip()
    except EOFError:
        log_map_server(
            f"{symbols.get('warning', '!')} No user input (EOF), using the default for prompt: '{prompt_text.strip()}'",
            "warning",
            logger_to_use,
            app_settings,
        )
        return None


def prompt_choice(
    prompt_message: str,
    options: Dict[str, str],
    app_settings: Optional[AppSettings] = None,
    current_logger_instance: Optional[logging.Logger] = None,
) -> Optional[str]:
    """
    Show a numbered menu and return the key the user typed.

    Parameters:
    prompt_message : str
        Heading shown above the options.
    options : Dict[str, str]
        Mapping of the key to type (e.g. "1") to its description.
    app_settings : Optional[AppSettings]
        Settings providing the logging symbols.
    current_logger_instance : Optional[logging.Logger]
        Logger used for the EOF warning.

    Returns:
    Optional[str]
        The entered key, or None if the answer is not one of the options.
    """
    logger_to_use = (
        current_logger_instance if current_logger_instance else module_logger
    )
    print(prompt_message)
    for key, description in options.items():
        print(f"{key}) {description}")
    option_keys = list(options)
    answer = _read_input(
        f"Enter your choice [{option_keys[0]}-{option_keys[-1]}]: ",
        app_settings,
        logger_to_use,
    )
    return answer if answer in options else None


def prompt_text(
    prompt_message: str,
    default: str,
    app_settings: Optional[AppSettings] = None,
    current_logger_instance: Optional[logging.Logger] = None,
) -> str:
    """Ask for a free-text value; an empty answer keeps the default."""
    logger_to_use = (
        current_logger_instance if current_logger_instance else module_logger
    )
    answer = _read_input(
        f"{prompt_message} [{default}]: ", app_settings, logger_to_use
    )
    return answer or default


def prompt_yes_no(
    prompt_message: str,
    default: bool,
    app_settings: Optional[AppSettings] = None,
    current_logger_instance: Optional[logging.Logger] = None,
) -> bool:
    """
    Ask a yes/no question.

    Only an explicit answer against the default changes the outcome: with a
    default of No, anything but "y"/"yes" is No, and vice versa.
    """
    logger_to_use = (
        current_logger_instance if current_logger_instance else module_logger
    )
    hint = "[Y/n]" if default else "[y/N]"
    answer = _read_input(
        f"{prompt_message} {hint}: ", app_settings, logger_to_use
    )
    if not answer:
        return default
    answer = answer.lower()
    if default:
        return answer not in ("n", "no")
    return answer in ("y", "yes")


def prompt_secret(
    prompt_message: str,
    app_settings: Optional[AppSettings] = None,
    current_logger_instance: Optional[logging.Logger] = None,
) -> Optional[str]:
    """Read a value without echoing it. Returns None for an empty answer."""
    logger_to_use = (
        current_logger_instance if current_logger_instance else module_logger
    )
    try:
        answer = getpass.getpass(f"{prompt_message}: ")
    except EOFError:
        log_map_server(
            f"{get_symbols(app_settings).get('warning', '!')} No user input (EOF) for '{prompt_message}'.",
            "warning",
            logger_to_use,
            app_settings,
        )
        return None
    return answer or None


def view_plan(
    plan: ProvisioningPlan,
    app_settings: Optional[AppSettings] = None,
    current_logger: Optional[logging.Logger] = None,
) -> None:
    """
    Displays the resolved provisioning plan. The database password is never
    shown, only whether one was given.
    """
    logger_to_use = current_logger if current_logger else module_logger
    symbols = get_symbols(app_settings)

    config_text = f"{symbols.get('info', 'ℹ️')} Configuration Summary:\n"
    config_text += f"  - Node Type:           {plan.node_role.value}\n"
    config_text += f"  - Server Hostname:     {plan.server_hostname or '-'}\n"
    config_text += f"  - Cluster Name:        {plan.cluster_name}\n"
    config_text += f"  - PBS Version:         {plan.version}\n"
    config_text += f"  - Installation Prefix: {plan.install_prefix}\n"
    config_text += f"  - PBS Home:            {plan.pbs_home}\n"
    config_text += f"  - Accounting:          {plan.accounting_enabled}\n"
    if plan.accounting_enabled:
        config_text += f"  - Install PostgreSQL:  {plan.install_database}\n"
        password_display = "[SET]" if plan.database_password else "[NOT SET]"
        config_text += f"  - Database Password:   {password_display}\n"

    log_map_server(f"\n{config_text}", "info", logger_to_use, app_settings)
