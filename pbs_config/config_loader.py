# pbs_config/config_loader.py
# -*- coding: utf-8 -*-
"""
Configuration loader for the installer.

Handles loading settings from Pydantic model defaults, environment variables,
a YAML file and command-line arguments, applying this order of precedence:
1. Pydantic Model Defaults
2. Environment Variables (PBS_VERSION, PBS_PREFIX, PBS_HOME, PBS_INSTALLER_*)
3. YAML Configuration File
4. Command-Line Arguments
"""

import argparse
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import ValidationError

from provisioner.errors import ConfigurationError

from .config_models import AppSettings

module_logger = logging.getLogger(__name__)

CONFIG_FILE_DEFAULT = Path("/etc/pbs-installer.yaml")

# argparse destination -> key of the ``inventory`` section
_INVENTORY_CLI_KEYS: Dict[str, str] = {
    "node_type": "node_role",
    "server_hostname": "server_hostname",
    "cluster_name": "cluster_name",
    "enable_accounting": "enable_accounting",
    "install_database": "install_database",
    "database_password": "database_password",
    "force_reinstall": "force_reinstall",
}


def _deep_update(
    source: Dict[str, Any], overrides: Dict[str, Any]
) -> Dict[str, Any]:
    """
    Recursively updates a dictionary `source` with values from `overrides`.

    Nested dictionaries are merged key by key; any other value replaces the
    one in `source`. ``None`` values in `overrides` never replace an existing
    value.

    Parameters:
        source: Dict[str, Any]
            The dictionary to be updated. Modified in place.
        overrides: Dict[str, Any]
            The dictionary containing values to update or add to `source`.

    Returns:
        Dict[str, Any]: The updated `source` dictionary.
    """
    for key, value in overrides.items():
        if (
            isinstance(value, dict)
            and key in source
            and isinstance(source[key], dict)
        ):
            source[key] = _deep_update(source[key], value)
        elif value is not None:
            source[key] = value
        elif key not in source:
            source[key] = value
    return source


def _read_yaml_config(
    yaml_config_path: Path, logger_to_use: logging.Logger
) -> Dict[str, Any]:
    try:
        with open(yaml_config_path, "r", encoding="utf-8") as f:
            yaml_data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(
            f"Could not parse YAML config file '{yaml_config_path}': {e}"
        ) from e
    except OSError as e:
        raise ConfigurationError(
            f"Could not read config file '{yaml_config_path}': {e}"
        ) from e

    if yaml_data is None:
        return {}
    if not isinstance(yaml_data, dict):
        raise ConfigurationError(
            f"Config file '{yaml_config_path}' does not contain a YAML dictionary."
        )
    logger_to_use.info(f"Loaded configuration from {yaml_config_path}")
    return yaml_data


def _map_cli_args(cli_args: argparse.Namespace) -> Dict[str, Any]:
    """Translate parsed CLI flags into the settings dictionary layout."""
    cli_arg_dict = vars(cli_args)
    inventory_values: Dict[str, Any] = {}

    for cli_key, inventory_key in _INVENTORY_CLI_KEYS.items():
        cli_value = cli_arg_dict.get(cli_key)
        # store_true flags are False when absent and must not clobber YAML
        if cli_value is None or cli_value is False:
            continue
        inventory_values[inventory_key] = cli_value

    if cli_arg_dict.get("without_interaction"):
        inventory_values["interactive"] = False
    elif cli_arg_dict.get("node_type"):
        # An explicit role on the command line implies an unattended run.
        inventory_values["interactive"] = False

    return {"inventory": inventory_values} if inventory_values else {}


def load_app_settings(
    cli_args: Optional[argparse.Namespace] = None,
    config_file_path: Optional[Path] = None,
    current_logger: Optional[logging.Logger] = None,
) -> AppSettings:
    """
    Loads installer settings with the following precedence:
    1. Pydantic Model Defaults.
    2. Environment Variables (loaded by Pydantic BaseSettings).
    3. Values from the YAML configuration file.
    4. Command-Line Arguments (highest precedence).

    Args:
        cli_args: Parsed command-line arguments (from argparse).
        config_file_path: Path to the YAML configuration file. When omitted,
            ``/etc/pbs-installer.yaml`` is read if it exists.
        current_logger: Optional logger to use instead of the module logger.

    Returns:
        An instance of AppSettings with the fully resolved configuration.

    Raises:
        ConfigurationError: If an explicitly named config file is missing,
            cannot be parsed, or the merged values fail validation.
    """
    logger_to_use = current_logger if current_logger else module_logger

    try:
        settings_after_env_and_defaults = AppSettings()
    except ValidationError as e:
        raise ConfigurationError(
            f"Invalid environment configuration: {e}"
        ) from e

    current_values_dict = settings_after_env_and_defaults.model_dump(
        exclude_defaults=False
    )

    if config_file_path is not None:
        if not config_file_path.is_file():
            raise ConfigurationError(
                f"Configuration file '{config_file_path}' not found."
            )
        yaml_config_path: Optional[Path] = config_file_path
    elif CONFIG_FILE_DEFAULT.is_file():
        yaml_config_path = CONFIG_FILE_DEFAULT
    else:
        yaml_config_path = None
        logger_to_use.debug(
            "No configuration file found. Using defaults, environment variables, and CLI args."
        )

    if yaml_config_path is not None:
        current_values_dict = _deep_update(
            current_values_dict,
            _read_yaml_config(yaml_config_path, logger_to_use),
        )

    if cli_args:
        current_values_dict = _deep_update(
            current_values_dict, _map_cli_args(cli_args)
        )

    try:
        final_settings = AppSettings(**current_values_dict)
    except ValidationError as e:
        logger_to_use.error(f"Configuration validation failed: {e}")
        raise ConfigurationError(f"Configuration error: {e}") from e

    logger_to_use.debug("Successfully loaded and validated installer settings")
    return final_settings
