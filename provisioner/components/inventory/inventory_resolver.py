# provisioner/components/inventory/inventory_resolver.py
# -*- coding: utf-8 -*-
"""
Resolves the provisioning plan from the command line, the configuration file,
the environment and, in interactive mode, the operator's answers.

Nothing on the host is modified here.
"""

import logging
from typing import Dict, List, Optional, Tuple

from pydantic import SecretStr, ValidationError

from common.command_utils import command_exists, get_symbols, log_map_server
from common.system_utils import get_local_hostname
from pbs_config import config as static_config
from pbs_config.cli_handler import (
    prompt_choice,
    prompt_secret,
    prompt_text,
    prompt_yes_no,
    view_plan,
)
from pbs_config.config_models import (
    InventorySettings,
    NodeRole,
    PbsSettings,
    ProvisioningPlan,
)
from provisioner.base_step import BaseStep
from provisioner.errors import ConfigurationError, UserCancelled
from provisioner.models import ProvisioningContext, StepResult, StepStatus
from provisioner.registry import StepRegistry

ROLE_MENU: Dict[str, Tuple[NodeRole, str]] = {
    "1": (NodeRole.SERVER, "Server node (PBS server + scheduler)"),
    "2": (NodeRole.COMPUTE, "Compute node (PBS MOM)"),
    "3": (NodeRole.COMBINED, "Both (single-node setup)"),
}

ACCOUNTING_ON_COMPUTE_WARNING = (
    "Accounting is only configured on server nodes; disabled for this compute node"
)


def is_interactive(inventory: InventorySettings) -> bool:
    """Interactive unless told otherwise or a node role was already given."""
    if inventory.interactive is not None:
        return inventory.interactive
    return inventory.node_role is None


def build_plan(
    inventory: InventorySettings,
    pbs_settings: PbsSettings,
    local_hostname: str,
    interactive: bool = False,
    logger: Optional[logging.Logger] = None,
) -> Tuple[ProvisioningPlan, List[str]]:
    """
    Turn raw inventory input into a validated plan.

    Args:
        inventory: The collected inventory values.
        pbs_settings: Version, prefix and PBS_HOME.
        local_hostname: This host's fully qualified name.
        interactive: Recorded on the plan.
        logger: Optional logger instance.

    Returns:
        The plan and the warnings raised while resolving it.

    Raises:
        ConfigurationError: If a required value is missing or invalid.
    """
    logger_to_use = logger or logging.getLogger(__name__)
    warnings: List[str] = []

    role = inventory.node_role
    if role is None:
        raise ConfigurationError(
            "Node type is required when running without interaction (--node-type)"
        )

    server_hostname = (inventory.server_hostname or "").strip() or None
    if role is NodeRole.COMPUTE:
        if not server_hostname:
            raise ConfigurationError(
                "Server hostname is required for compute nodes (--server-hostname)"
            )
    elif role is NodeRole.COMBINED:
        if server_hostname and server_hostname != local_hostname:
            logger_to_use.warning(
                f"Combined nodes serve themselves; using {local_hostname} instead of {server_hostname}"
            )
        server_hostname = local_hostname
    elif not server_hostname:
        server_hostname = local_hostname

    accounting = inventory.enable_accounting
    if accounting and role is NodeRole.COMPUTE:
        accounting = False
        warnings.append(ACCOUNTING_ON_COMPUTE_WARNING)

    cluster_name = (
        inventory.cluster_name or ""
    ).strip() or static_config.DEFAULT_CLUSTER_NAME

    try:
        plan = ProvisioningPlan(
            node_role=role,
            cluster_name=cluster_name,
            server_hostname=server_hostname,
            accounting_enabled=accounting,
            install_database=accounting and inventory.install_database,
            database_password=inventory.database_password if accounting else None,
            force_reinstall=inventory.force_reinstall,
            interactive=interactive,
            version=pbs_settings.version,
            install_prefix=pbs_settings.prefix,
            pbs_home=pbs_settings.home,
        )
    except ValidationError as e:
        raise ConfigurationError(f"Invalid provisioning plan: {e}") from e
    return plan, warnings


@StepRegistry.register(
    name="inventory",
    metadata={
        "dependencies": [],
        "description": "Resolve the node role, server, cluster and accounting options",
    },
)
class InventoryResolver(BaseStep):
    """Produces the run's ProvisioningPlan."""

    def _ask(self, inventory: InventorySettings, local_hostname: str) -> InventorySettings:
        """Run the installation wizard for whatever was not given up front."""
        settings = self.app_settings
        print("Welcome to the OpenPBS Installation Wizard")
        print("This script will guide you through the installation process.")
        print("")

        answers = inventory.model_dump(exclude={"database_password"})
        answers["database_password"] = inventory.database_password

        role = inventory.node_role
        if role is None:
            choice = prompt_choice(
                "Select the type of PBS node to install:",
                {key: label for key, (_, label) in ROLE_MENU.items()},
                settings,
                self.logger,
            )
            if choice is None:
                raise ConfigurationError("Invalid node type choice")
            role = ROLE_MENU[choice][0]
        answers["node_role"] = role

        if role is NodeRole.COMPUTE:
            answers["server_hostname"] = prompt_text(
                "Enter PBS server hostname",
                inventory.server_hostname or local_hostname,
                settings,
                self.logger,
            )

        answers["cluster_name"] = prompt_text(
            "Enter cluster name",
            inventory.cluster_name or static_config.DEFAULT_CLUSTER_NAME,
            settings,
            self.logger,
        )

        if role.runs_server:
            accounting = prompt_yes_no(
                "Enable PBS accounting with PostgreSQL?",
                inventory.enable_accounting,
                settings,
                self.logger,
            )
            answers["enable_accounting"] = accounting
            if accounting:
                psql_present = command_exists("psql")
                install_database = inventory.install_database
                if not psql_present and not install_database:
                    install_database = prompt_yes_no(
                        "PostgreSQL not found. Install it?",
                        True,
                        settings,
                        self.logger,
                    )
                answers["install_database"] = install_database
                if (install_database or psql_present) and not inventory.database_password:
                    password = prompt_secret(
                        "Enter PostgreSQL password (leave empty for no password)",
                        settings,
                        self.logger,
                    )
                    answers["database_password"] = (
                        SecretStr(password) if password else None
                    )

        return InventorySettings(**answers)

    def run(self, context: ProvisioningContext) -> List[StepResult]:
        symbols = get_symbols(self.app_settings)
        inventory = self.app_settings.inventory
        interactive = is_interactive(inventory)
        local_hostname = get_local_hostname()

        if interactive:
            inventory = self._ask(inventory, local_hostname)

        plan, warnings = build_plan(
            inventory,
            self.app_settings.pbs,
            local_hostname,
            interactive=interactive,
            logger=self.logger,
        )

        if interactive:
            view_plan(plan, self.app_settings, self.logger)
            if not prompt_yes_no(
                "Proceed with installation?", True, self.app_settings, self.logger
            ):
                raise UserCancelled("Installation cancelled at the confirmation prompt")

        context.plan = plan
        log_map_server(
            f"{symbols.get('success', '✅')} Provisioning plan resolved: {plan.node_role.value} node, cluster '{plan.cluster_name}'",
            "info",
            self.logger,
            self.app_settings,
        )

        results = [
            self.result(
                StepStatus.SUCCESS,
                f"{plan.node_role.value} node, server {plan.server_hostname}, version {plan.version}",
            )
        ]
        results += [
            self.result(StepStatus.WARNED, warning, check="accounting")
            for warning in warnings
        ]
        return results
