# pbs_config/config_models.py
# -*- coding: utf-8 -*-
"""
Pydantic models for installer configuration.

This module defines the structured settings for the installer (defaults,
type annotations and descriptions), the raw inventory input collected from
the command line or a configuration file, and the resolved, immutable
provisioning plan that every step consumes.
"""

from enum import Enum
from pathlib import Path
from typing import Dict, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SecretStr,
    model_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

from pbs_config import config as static_config

# --- Default Static Values (can be overridden by config file/env/cli) ---
LOG_PREFIX_DEFAULT: str = "[PBS-SETUP]"
LOG_DIR_DEFAULT: Path = Path("/tmp")
SCRATCH_ROOT_DEFAULT: Path = Path("/tmp")
CONNECTIVITY_PROBE_HOST_DEFAULT: str = "google.com"
SERVICE_START_DELAY_DEFAULT: float = 5.0
VERIFY_SETTLE_DELAY_DEFAULT: float = 10.0
DOWNLOAD_TIMEOUT_DEFAULT: int = 300

SYMBOLS_DEFAULT: Dict[str, str] = {
    "success": "✅",
    "error": "❌",
    "warning": "⚠️",
    "info": "ℹ️",
    "step": "➡️",
    "gear": "⚙️",
    "package": "📦",
    "rocket": "🚀",
    "sparkles": "✨",
    "critical": "🔥",
    "debug": "🐛",
}


class NodeRole(str, Enum):
    """Functional purpose of a node in the cluster."""

    SERVER = "server"
    COMPUTE = "compute"
    COMBINED = "both"

    @property
    def runs_server(self) -> bool:
        return self in (NodeRole.SERVER, NodeRole.COMBINED)

    @property
    def runs_execution_agent(self) -> bool:
        return self in (NodeRole.COMPUTE, NodeRole.COMBINED)


class PbsSettings(BaseSettings):
    """OpenPBS build and installation settings."""

    model_config = SettingsConfigDict(env_prefix="PBS_", extra="ignore")

    version: str = Field(
        default=static_config.PBS_VERSION_DEFAULT,
        description="OpenPBS version to install: a branch name such as 'master' or a release like '23.06.06'.",
    )
    prefix: Path = Field(
        default=static_config.PBS_PREFIX_DEFAULT,
        description="Installation prefix (PBS_EXEC).",
    )
    home: Path = Field(
        default=static_config.PBS_HOME_DEFAULT,
        description="PBS_HOME spool directory.",
    )


class InventorySettings(BaseModel):
    """
    Raw, unvalidated inventory input.

    Every field is optional: anything left unset is either defaulted or
    prompted for by the inventory resolver.
    """

    model_config = ConfigDict(extra="ignore")

    node_role: Optional[NodeRole] = Field(
        default=None, description="Node role: server, compute or both."
    )
    server_hostname: Optional[str] = Field(
        default=None, description="PBS server hostname."
    )
    cluster_name: Optional[str] = Field(
        default=None, description="Cluster name."
    )
    enable_accounting: bool = Field(
        default=False, description="Enable PBS accounting with PostgreSQL."
    )
    install_database: bool = Field(
        default=False, description="Install the PostgreSQL server packages."
    )
    database_password: Optional[SecretStr] = Field(
        default=None,
        description="Password to set for the 'postgres' database user.",
        exclude=True,
    )
    force_reinstall: bool = Field(
        default=False,
        description="Reinstall even if an existing installation is detected.",
    )
    interactive: Optional[bool] = Field(
        default=None,
        description="Prompt for missing values. Defaults to True when no node role is given.",
    )


class AppSettings(BaseSettings):
    """Main installer settings."""

    model_config = SettingsConfigDict(
        env_prefix="PBS_INSTALLER_", extra="ignore"
    )

    log_prefix: str = Field(
        default=LOG_PREFIX_DEFAULT,
        description="Prefix for log messages from the installer.",
    )
    log_dir: Path = Field(
        default=LOG_DIR_DEFAULT,
        description="Directory receiving the run log and audit files.",
    )
    scratch_root: Path = Field(
        default=SCRATCH_ROOT_DEFAULT,
        description="Directory under which build workspaces are created.",
    )
    connectivity_probe_host: str = Field(
        default=CONNECTIVITY_PROBE_HOST_DEFAULT,
        description="Well-known host pinged to verify outbound connectivity.",
    )
    service_start_delay: float = Field(
        default=SERVICE_START_DELAY_DEFAULT,
        description="Seconds to wait after starting PBS before issuing qmgr commands.",
    )
    verify_settle_delay: float = Field(
        default=VERIFY_SETTLE_DELAY_DEFAULT,
        description="Seconds to wait for daemons to settle before smoke tests.",
    )
    download_timeout: int = Field(
        default=DOWNLOAD_TIMEOUT_DEFAULT,
        description="Timeout in seconds for the source archive download.",
    )
    archive_base_url: str = Field(
        default=static_config.OPENPBS_ARCHIVE_BASE_URL,
        description="Base URL of the OpenPBS source archives.",
    )
    queue_name: str = Field(
        default=static_config.DEFAULT_QUEUE_NAME,
        description="Default execution queue created on the server.",
    )
    queue_walltime: str = Field(
        default=static_config.DEFAULT_QUEUE_WALLTIME,
        description="resources_max.walltime of the default queue.",
    )
    combined_starts_execution_agent: bool = Field(
        default=False,
        description="Also start the execution agent (MOM) on combined nodes.",
    )
    smoke_test_user: Optional[str] = Field(
        default=None,
        description="User submitting the smoke test job. Falls back to $SUDO_USER.",
    )

    pbs_conf_path: Path = Field(default=static_config.PBS_CONF_PATH)
    profile_script_path: Path = Field(
        default=static_config.PROFILE_SCRIPT_PATH
    )
    os_release_path: Path = Field(default=static_config.OS_RELEASE_PATH)

    pbs: PbsSettings = Field(default_factory=PbsSettings)
    inventory: InventorySettings = Field(default_factory=InventorySettings)

    symbols: Dict[str, str] = Field(
        default_factory=lambda: dict(SYMBOLS_DEFAULT)
    )


class ProvisioningPlan(BaseModel):
    """
    The fully resolved, validated provisioning intent for one run.

    Instances are frozen: once the inventory resolver hands a plan downstream
    every step sees exactly the same values.
    """

    model_config = ConfigDict(frozen=True)

    node_role: NodeRole
    cluster_name: str = Field(min_length=1)
    server_hostname: Optional[str] = None
    accounting_enabled: bool = False
    install_database: bool = False
    database_password: Optional[SecretStr] = Field(default=None, exclude=True)
    force_reinstall: bool = False
    interactive: bool = False
    version: str = Field(min_length=1)
    install_prefix: Path
    pbs_home: Path = static_config.PBS_HOME_DEFAULT

    @model_validator(mode="after")
    def _check_role_requirements(self) -> "ProvisioningPlan":
        if self.node_role is NodeRole.COMPUTE:
            if not self.server_hostname:
                raise ValueError(
                    "Server hostname is required for compute nodes"
                )
            if self.accounting_enabled:
                raise ValueError(
                    "Accounting is only configured on server nodes"
                )
        return self

    @property
    def is_release_version(self) -> bool:
        """True when the version names a released tag rather than a branch."""
        return is_release_version(self.version)


def is_release_version(version: str) -> bool:
    parts = version.split(".")
    return bool(parts) and all(part.isdigit() for part in parts)
