# provisioner/components/database/database_configurator.py
# -*- coding: utf-8 -*-
"""
Prepares PostgreSQL for PBS accounting.
"""

import subprocess
from typing import List, Optional

from pydantic import SecretStr

from common.command_utils import (
    describe_failure,
    get_symbols,
    log_map_server,
    run_elevated_command,
)
from common.system_utils import enable_service, start_service
from pbs_config import config as static_config
from provisioner.base_step import BaseStep
from provisioner.errors import ServiceError
from provisioner.models import (
    DistroFamily,
    ProvisioningContext,
    StepResult,
    StepStatus,
)
from provisioner.registry import StepRegistry

DATABASE_SUPERUSER = "postgres"


def password_statement(password: SecretStr) -> str:
    """SQL setting the superuser password, with quotes escaped for a literal."""
    escaped = password.get_secret_value().replace("'", "''")
    return f"ALTER USER {DATABASE_SUPERUSER} PASSWORD '{escaped}';\n"


@StepRegistry.register(
    name="database",
    metadata={
        "dependencies": ["build"],
        "description": "Configure PostgreSQL for PBS accounting",
    },
)
class DatabaseConfigurator(BaseStep):
    """Starts PostgreSQL and creates the PBS datastore and role."""

    def _as_superuser(
        self,
        command: List[str],
        check: bool = True,
        cmd_input: Optional[str] = None,
    ) -> subprocess.CompletedProcess:
        return run_elevated_command(
            ["sudo", "-u", DATABASE_SUPERUSER] + command,
            self.app_settings,
            check=check,
            capture_output=True,
            cmd_input=cmd_input,
            current_logger=self.logger,
        )

    def _ensure_exists(self, command: List[str], what: str) -> bool:
        """
        Run a create command, accepting "already exists" as success.

        Returns:
            True if the object was created by this call.
        """
        result = self._as_superuser(command, check=False)
        if result.returncode == 0:
            return True
        if "already exists" in (result.stderr or ""):
            log_map_server(f"{what} already exists.", "info", self.logger, self.app_settings)
            return False
        raise ServiceError(
            f"Could not create {what}: {(result.stderr or '').strip() or f'exit status {result.returncode}'}"
        )

    def start_database(self, family: DistroFamily) -> None:
        if family is DistroFamily.RHEL:
            data_dir = static_config.RHEL_POSTGRES_DATA_DIR
            if not (data_dir / "PG_VERSION").exists():
                run_elevated_command(
                    ["postgresql-setup", "--initdb"],
                    self.app_settings,
                    capture_output=True,
                    current_logger=self.logger,
                )
        start_service(static_config.DATABASE_SERVICE_NAME, self.app_settings, self.logger)
        enable_service(static_config.DATABASE_SERVICE_NAME, self.app_settings, self.logger)

    def run(self, context: ProvisioningContext) -> List[StepResult]:
        symbols = get_symbols(self.app_settings)
        plan = context.plan

        if not plan.accounting_enabled:
            return [self.result(StepStatus.SKIPPED, "Accounting disabled")]

        log_map_server(
            f"{symbols.get('step', '➡️')} Configuring PostgreSQL for PBS accounting",
            "info",
            self.logger,
            self.app_settings,
        )
        try:
            if plan.install_database:
                self.start_database(context.facts.family)

            if plan.database_password is not None:
                self._as_superuser(
                    ["psql", "-v", "ON_ERROR_STOP=1"],
                    cmd_input=password_statement(plan.database_password),
                )
        except (subprocess.CalledProcessError, FileNotFoundError) as e:
            raise ServiceError(
                f"PostgreSQL configuration failed: {describe_failure(e)}"
            ) from e

        try:
            self._ensure_exists(
                ["createdb", static_config.PBS_DATASTORE_NAME],
                f"database '{static_config.PBS_DATASTORE_NAME}'",
            )
            self._ensure_exists(
                ["createuser", static_config.PBS_DATABASE_ROLE],
                f"role '{static_config.PBS_DATABASE_ROLE}'",
            )
        except FileNotFoundError as e:
            raise ServiceError(
                f"PostgreSQL client tools are missing: {e}"
            ) from e

        log_map_server(
            f"{symbols.get('success', '✅')} PostgreSQL configured for PBS accounting",
            "success",
            self.logger,
            self.app_settings,
        )
        return [
            self.result(
                StepStatus.SUCCESS,
                f"Database '{static_config.PBS_DATASTORE_NAME}' and role '{static_config.PBS_DATABASE_ROLE}' ready",
            )
        ]
