# provisioner/components/services/service_configurator.py
# -*- coding: utf-8 -*-
"""
Writes the role-specific PBS configuration and brings the services up.
"""

import subprocess
import time
from pathlib import Path
from typing import List

from common.command_utils import describe_failure, get_symbols, log_map_server
from common.file_utils import write_file_atomic
from common.system_utils import enable_service, restart_service
from pbs_config import config as static_config
from pbs_config.config_models import NodeRole, ProvisioningPlan
from provisioner.base_step import BaseStep
from provisioner.components.services.qmgr import QmgrClient
from provisioner.components.services.service_spec import (
    ServiceSpec,
    derive_service_spec,
)
from provisioner.errors import ConfigurationError, ServiceError
from provisioner.models import ProvisioningContext, StepResult, StepStatus
from provisioner.registry import StepRegistry


def mom_config_path(pbs_home: Path) -> Path:
    return pbs_home / "mom_priv" / "config"


@StepRegistry.register(
    name="services",
    metadata={
        "dependencies": ["database"],
        "description": "Write PBS configuration and start the services",
    },
)
class ServiceConfigurator(BaseStep):
    """Configures this node for its role and starts PBS."""

    def write_configuration(self, spec: ServiceSpec, plan: ProvisioningPlan) -> None:
        """
        Replace /etc/pbs.conf and the MOM configuration.

        A node that no longer runs the execution agent loses its MOM
        configuration, so switching roles leaves nothing behind.
        """
        write_file_atomic(
            self.app_settings.pbs_conf_path,
            spec.pbs_conf,
            self.app_settings,
            current_logger=self.logger,
        )
        mom_config = mom_config_path(plan.pbs_home)
        if spec.mom_config is not None:
            write_file_atomic(
                mom_config,
                spec.mom_config,
                self.app_settings,
                current_logger=self.logger,
            )
        elif mom_config.exists():
            mom_config.unlink()
            self.logger.info(f"Removed stale execution host configuration {mom_config}")

    def configure_queue(self, plan: ProvisioningPlan) -> None:
        """Ensure the default execution queue exists and the scheduler is on."""
        qmgr = QmgrClient(plan.install_prefix, self.app_settings, self.logger)
        queue_name = self.app_settings.queue_name

        if qmgr.queue_exists(queue_name):
            self.logger.info(f"Queue '{queue_name}' already exists.")
        else:
            self.logger.info(f"Creating default queue '{queue_name}'...")
            qmgr.create_queue(queue_name)

        qmgr.set_queue(queue_name, "queue_type", "Execution")
        qmgr.set_queue(queue_name, "enabled", "True")
        qmgr.set_queue(queue_name, "started", "True")
        qmgr.set_queue(
            queue_name, "resources_max.walltime", self.app_settings.queue_walltime
        )
        qmgr.set_server("default_queue", queue_name)
        qmgr.set_server("scheduling", "True")

    def start_server(self, plan: ProvisioningPlan) -> None:
        service = static_config.PBS_SERVICE_NAME
        restart_service(service, self.app_settings, self.logger)
        time.sleep(self.app_settings.service_start_delay)
        self.configure_queue(plan)
        enable_service(service, self.app_settings, self.logger)

    def start_execution_host(self) -> None:
        service = static_config.PBS_SERVICE_NAME
        enable_service(service, self.app_settings, self.logger)
        restart_service(service, self.app_settings, self.logger)

    def run(self, context: ProvisioningContext) -> List[StepResult]:
        symbols = get_symbols(self.app_settings)
        plan = context.plan

        if plan.node_role is NodeRole.COMPUTE and not plan.server_hostname:
            raise ConfigurationError(
                "Server hostname must be specified for compute nodes"
            )
        spec = derive_service_spec(plan, self.app_settings)

        log_map_server(
            f"{symbols.get('gear', '⚙️')} Configuring PBS {plan.node_role.value} node",
            "info",
            self.logger,
            self.app_settings,
        )
        try:
            self.write_configuration(spec, plan)
        except OSError as e:
            raise ServiceError(f"Could not write PBS configuration: {e}") from e

        try:
            if plan.node_role.runs_server:
                self.start_server(plan)
            else:
                self.start_execution_host()
        except (subprocess.CalledProcessError, FileNotFoundError) as e:
            raise ServiceError(describe_failure(e)) from e

        daemons = [
            name
            for name, enabled in (
                ("server", spec.start_server),
                ("scheduler", spec.start_scheduler),
                ("communication", spec.start_communication),
                ("execution_agent", spec.start_execution_agent),
            )
            if enabled
        ]
        log_map_server(
            f"{symbols.get('success', '✅')} PBS services configured and started",
            "success",
            self.logger,
            self.app_settings,
        )
        return [
            self.result(
                StepStatus.SUCCESS,
                f"Daemons enabled: {', '.join(daemons)}",
            )
        ]
