"""
Orchestrator for the provisioning steps.

This module provides the ProvisioningOrchestrator class, which is responsible
for resolving the step order, running the steps one after another and
recording every result in the audit trail.
"""

import importlib
import logging
import pkgutil
from typing import List, Optional

from pbs_config.config_models import AppSettings
from provisioner.errors import ProvisioningError, UserCancelled
from provisioner.models import (
    AuditTrail,
    ProvisioningContext,
    StepResult,
    StepStatus,
)
from provisioner.registry import StepRegistry

# Resolving the last step pulls in the whole chain.
DEFAULT_TARGET_STEPS: List[str] = ["verification"]


class ProvisioningOrchestrator:
    """
    Runs the provisioning steps as a strict sequence.

    A step starts only after the results of the previous one are recorded.
    The first step that raises halts the run: its error becomes a FAILED
    result and nothing that was already applied is rolled back.
    """

    def __init__(
        self,
        app_settings: AppSettings,
        logger: Optional[logging.Logger] = None,
        audit_trail: Optional[AuditTrail] = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            app_settings: The application settings.
            logger: Optional logger instance. If not provided, a new logger will be created.
            audit_trail: Trail receiving the step results. A fresh one is
                created if not provided.
        """
        self.app_settings = app_settings
        self.logger = logger or logging.getLogger(self.__class__.__name__)
        self.context = ProvisioningContext(app_settings, audit_trail)
        self.failure: Optional[BaseException] = None
        self.cancelled = False

        self._import_step_modules()

    def _import_step_modules(self) -> None:
        """
        Import all step modules so that they register with the StepRegistry.
        """
        import provisioner.components

        for module_info in pkgutil.walk_packages(
            provisioner.components.__path__,
            prefix="provisioner.components.",
        ):
            importlib.import_module(module_info.name)
            self.logger.debug(f"Imported step module: {module_info.name}")

    @property
    def audit_trail(self) -> AuditTrail:
        return self.context.audit_trail

    def resolve_steps(
        self, target_steps: Optional[List[str]] = None
    ) -> List[str]:
        return StepRegistry.resolve_dependencies(
            target_steps or DEFAULT_TARGET_STEPS
        )

    def _record(self, result: StepResult) -> None:
        symbols = self.app_settings.symbols
        self.audit_trail.record(result)
        detail = f": {result.detail}" if result.detail else ""
        if result.status is StepStatus.SUCCESS:
            self.logger.info(
                f"{symbols.get('success', '✅')} {result.name} succeeded{detail}"
            )
        elif result.status is StepStatus.SKIPPED:
            self.logger.info(f"{result.name} skipped{detail}")
        elif result.status is StepStatus.WARNED:
            self.logger.warning(
                f"{symbols.get('warning', '!')} {result.name} warned{detail}"
            )
        else:
            self.logger.error(
                f"{symbols.get('error', '❌')} {result.name} failed{detail}"
            )

    def run(self, target_steps: Optional[List[str]] = None) -> int:
        """
        Run the resolved steps in order.

        Args:
            target_steps: Steps to run, together with their dependencies.
                Defaults to the complete provisioning chain.

        Returns:
            The process exit code: 0 on success or operator cancellation,
            non-zero on the first halting failure.
        """
        ordered_steps = self.resolve_steps(target_steps)
        self.logger.info(
            f"Provisioning steps in order: {', '.join(ordered_steps)}"
        )

        for i, step_name in enumerate(ordered_steps):
            step = StepRegistry.get_step(step_name)(
                self.app_settings, self.logger
            )
            description = step.get_description()
            about = f" ({description})" if description else ""
            self.logger.info(
                f"--- Stage {i + 1}: Running step '{step_name}'{about} ---"
            )

            try:
                results = step.run(self.context)
            except UserCancelled as e:
                self.cancelled = True
                self._record(
                    step.result(StepStatus.SKIPPED, f"Cancelled by operator: {e}")
                )
                return e.exit_code
            except ProvisioningError as e:
                self.failure = e
                self._record(step.result(StepStatus.FAILED, str(e)))
                self.logger.critical(
                    f"Step '{step_name}' failed. Halting provisioning."
                )
                return e.exit_code
            except KeyboardInterrupt as e:
                self.failure = e
                self._record(
                    step.result(StepStatus.FAILED, "Interrupted by operator")
                )
                return 1
            except Exception as e:
                self.failure = e
                self.logger.critical(
                    f"Unexpected error in step '{step_name}': {e}",
                    exc_info=True,
                )
                self._record(
                    step.result(StepStatus.FAILED, f"Unexpected error: {e}")
                )
                return 1

            for result in results:
                self._record(result)

        self.logger.info(
            f"{self.app_settings.symbols.get('sparkles', '✨')} Provisioning finished."
        )
        return 0
