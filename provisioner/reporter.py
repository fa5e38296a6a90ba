# provisioner/reporter.py
# -*- coding: utf-8 -*-
"""
End-of-run reporting: the step summary, configuration details, next steps
and the location of the run log.
"""

import logging
from pathlib import Path
from typing import Iterable, List, Optional

from common.command_utils import get_symbols, log_map_server
from common.system_utils import get_local_hostname
from pbs_config.config_models import AppSettings, NodeRole, ProvisioningPlan
from provisioner.models import ProvisioningContext, StepResult, StepStatus

module_logger = logging.getLogger(__name__)

_STATUS_LABELS = {
    StepStatus.SUCCESS: "OK",
    StepStatus.SKIPPED: "SKIPPED",
    StepStatus.WARNED: "WARNING",
    StepStatus.FAILED: "FAILED",
}


def format_summary_table(results: Iterable[StepResult]) -> List[str]:
    """Render the step results as aligned text rows, in recorded order."""
    rows = [
        (r.name, _STATUS_LABELS[r.status], r.detail) for r in results
    ]
    if not rows:
        return ["  (no steps were run)"]
    name_width = max(len("Step"), *(len(row[0]) for row in rows))
    status_width = max(len("Status"), *(len(row[1]) for row in rows))
    lines = [
        f"  {'Step':<{name_width}}  {'Status':<{status_width}}  Detail",
        f"  {'-' * name_width}  {'-' * status_width}  ------",
    ]
    for name, status, detail in rows:
        lines.append(
            f"  {name:<{name_width}}  {status:<{status_width}}  {detail}".rstrip()
        )
    return lines


def configuration_details(plan: ProvisioningPlan) -> List[str]:
    return [
        f"- Node Type: {plan.node_role.value}",
        f"- Server: {plan.server_hostname or '-'}",
        f"- Cluster: {plan.cluster_name}",
        f"- PBS Version: {plan.version}",
        f"- Installation Path: {plan.install_prefix}",
        f"- Accounting: {plan.accounting_enabled}",
    ]


def next_steps(plan: ProvisioningPlan, local_hostname: str) -> List[str]:
    lines: List[str] = []
    if plan.node_role.runs_server:
        lines += [
            "Server Commands:",
            "- Check status: qstat -B",
            "- List nodes: pbsnodes -a",
            "- Submit job: qsub script.pbs",
        ]
    if plan.node_role is NodeRole.COMPUTE:
        lines += [
            "To add this compute node to the server, run on the server:",
            f'qmgr -c "create node {local_hostname}"',
        ]
    return lines


class Reporter:
    """Writes the end-of-run report to the installer log."""

    def __init__(
        self,
        app_settings: AppSettings,
        logger: Optional[logging.Logger] = None,
    ):
        self.app_settings = app_settings
        self.logger = logger or module_logger

    def _emit(self, message: str, level: str = "info") -> None:
        log_map_server(message, level, self.logger, self.app_settings)

    def report(
        self,
        context: ProvisioningContext,
        exit_code: int,
        log_file: Optional[Path] = None,
        audit_file: Optional[Path] = None,
        cancelled: bool = False,
    ) -> None:
        symbols = get_symbols(self.app_settings)
        trail = context.audit_trail

        self._emit(f"{symbols.get('step', '➡️')} Installation Summary")
        for line in format_summary_table(trail):
            self._emit(line)

        if context.has_plan:
            self._emit("Configuration Details:")
            for line in configuration_details(context.plan):
                self._emit(line)
            if context.has_facts:
                extra_repository = context.facts.recall("extra_repository")
                if extra_repository:
                    self._emit(f"- Extra Repository: {extra_repository}")

        warnings = trail.with_status(StepStatus.WARNED)
        if warnings:
            self._emit(
                f"{symbols.get('warning', '!')} {len(warnings)} check(s) reported warnings; review them above.",
                "warning",
            )

        if cancelled:
            self._emit("Installation cancelled.")
        elif exit_code == 0 and context.has_plan:
            self._emit(
                f"{symbols.get('success', '✅')} OpenPBS installation completed successfully!",
                "success",
            )
            hostname = (
                context.facts.hostname if context.has_facts else get_local_hostname()
            )
            for line in next_steps(context.plan, hostname):
                self._emit(line)
        elif exit_code != 0:
            self._emit(
                f"{symbols.get('error', '❌')} Installation failed with exit code {exit_code}",
                "error",
            )

        if log_file is not None:
            level = "error" if exit_code != 0 else "info"
            self._emit(f"For troubleshooting, check: {log_file}", level)
        if audit_file is not None:
            self._emit(f"Step audit trail: {audit_file}")
