# provisioner/components/verification/verifier.py
# -*- coding: utf-8 -*-
"""
Post-install smoke tests.

A failed check is recorded as a warning and never halts the run: the
installation itself has completed by the time these checks execute.
"""

import os
import subprocess
import tempfile
import time
from typing import List, Optional

from common.command_utils import get_symbols, log_map_server, run_command
from common.system_utils import process_is_running
from pbs_config import config as static_config
from pbs_config.config_models import ProvisioningPlan
from provisioner.base_step import BaseStep
from provisioner.errors import VerificationWarning
from provisioner.models import ProvisioningContext, StepResult, StepStatus
from provisioner.registry import StepRegistry

EXECUTION_AGENT_PROCESS = "pbs_mom"


@StepRegistry.register(
    name="verification",
    metadata={
        "dependencies": ["services"],
        "description": "Check the daemons and submit a test job",
    },
)
class Verifier(BaseStep):
    """Runs the smoke tests that apply to this node's role."""

    def _warned(self, warning: VerificationWarning) -> StepResult:
        log_map_server(
            f"{get_symbols(self.app_settings).get('warning', '!')} {warning}",
            "warning",
            self.logger,
            self.app_settings,
        )
        return self.result(StepStatus.WARNED, str(warning), check=warning.check)

    def _run_check(
        self, command: List[str], cmd_input: Optional[str] = None
    ) -> subprocess.CompletedProcess:
        return run_command(
            command,
            self.app_settings,
            check=False,
            capture_output=True,
            cmd_input=cmd_input,
            current_logger=self.logger,
            cwd=tempfile.gettempdir(),
        )

    def check_server(self, plan: ProvisioningPlan) -> StepResult:
        log_map_server("Testing PBS server...", "info", self.logger, self.app_settings)
        qstat = plan.install_prefix / "bin" / "qstat"
        try:
            result = self._run_check([str(qstat), "-B"])
        except FileNotFoundError:
            return self._warned(
                VerificationWarning("server", "PBS server test failed", f"{qstat} not found")
            )
        if result.returncode != 0:
            return self._warned(
                VerificationWarning(
                    "server",
                    "PBS server test failed",
                    (result.stderr or "").strip() or None,
                )
            )
        return self.result(StepStatus.SUCCESS, "PBS server is running", check="server")

    def check_execution_agent(self) -> StepResult:
        log_map_server("Testing PBS MOM...", "info", self.logger, self.app_settings)
        try:
            running = process_is_running(
                EXECUTION_AGENT_PROCESS, self.app_settings, self.logger
            )
        except FileNotFoundError:
            running = False
        if not running:
            return self._warned(
                VerificationWarning(
                    "execution_agent",
                    "PBS MOM test failed",
                    f"no {EXECUTION_AGENT_PROCESS} process found",
                )
            )
        return self.result(
            StepStatus.SUCCESS, "PBS MOM is running", check="execution_agent"
        )

    def submission_user(self) -> Optional[str]:
        """
        The user the test job is submitted as. PBS rejects jobs from root by
        default, so the invoking sudo user is preferred.
        """
        user = self.app_settings.smoke_test_user or os.environ.get("SUDO_USER")
        if user and user != "root":
            return user
        return None

    def submit_test_job(self, plan: ProvisioningPlan) -> StepResult:
        log_map_server("Submitting test job...", "info", self.logger, self.app_settings)
        qsub = str(plan.install_prefix / "bin" / "qsub")
        user = self.submission_user()
        command = ["sudo", "-u", user, qsub] if user else [qsub]
        try:
            result = self._run_check(command, cmd_input=static_config.TEST_JOB_SCRIPT)
        except FileNotFoundError as e:
            return self._warned(
                VerificationWarning("test_job", "Test job submission failed", str(e))
            )
        job_id = (result.stdout or "").strip()
        if result.returncode != 0 or not job_id:
            return self._warned(
                VerificationWarning(
                    "test_job",
                    "Test job submission failed",
                    (result.stderr or "").strip() or None,
                )
            )
        log_map_server(
            f"{get_symbols(self.app_settings).get('success', '✅')} Test job submitted: {job_id}",
            "success",
            self.logger,
            self.app_settings,
        )
        return self.result(
            StepStatus.SUCCESS, f"Test job submitted: {job_id}", check="test_job"
        )

    def run(self, context: ProvisioningContext) -> List[StepResult]:
        plan = context.plan
        role = plan.node_role

        log_map_server(
            f"{get_symbols(self.app_settings).get('step', '➡️')} Running installation tests",
            "info",
            self.logger,
            self.app_settings,
        )
        time.sleep(self.app_settings.verify_settle_delay)

        results: List[StepResult] = []
        if role.runs_server:
            results.append(self.check_server(plan))
        # Combined nodes are probed even when pbs.conf keeps the MOM off.
        if role.runs_execution_agent:
            results.append(self.check_execution_agent())
        if role.runs_server:
            results.append(self.submit_test_job(plan))
        return results
