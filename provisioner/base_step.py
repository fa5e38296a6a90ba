"""
Base class for provisioning steps.

This module provides the base class that every provisioning step inherits
from. It defines the common interface the orchestrator drives.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from pbs_config.config_models import AppSettings
from provisioner.models import ProvisioningContext, StepResult, StepStatus


class BaseStep(ABC):
    """
    Base class for all provisioning steps.

    A step either returns its results or raises a ProvisioningError subclass;
    the orchestrator turns a raised error into a FAILED result and halts.
    """

    # Class-level metadata that can be overridden by subclasses or set by the registry decorator
    metadata: Dict[str, Any] = {
        "dependencies": [],  # Names of the steps that must run first
        "description": "",
    }

    # Registered name, set by StepRegistry.register
    name: str = ""

    def __init__(
        self,
        app_settings: AppSettings,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize the step.

        Args:
            app_settings: The application settings.
            logger: Optional logger instance. If not provided, a new logger will be created.
        """
        self.app_settings = app_settings
        self.logger = logger or logging.getLogger(self.__class__.__name__)

    @abstractmethod
    def run(self, context: ProvisioningContext) -> List[StepResult]:
        """
        Execute the step.

        Args:
            context: The state of the current run.

        Returns:
            The results to record, in order. Most steps return one.
        """
        pass

    def result(
        self,
        status: StepStatus,
        detail: str = "",
        check: Optional[str] = None,
    ) -> StepResult:
        """Build a result named after this step, or one of its checks."""
        name = f"{self.name}.{check}" if check else self.name
        return StepResult(name=name, status=status, detail=detail)

    def get_description(self) -> str:
        return str(self.metadata.get("description", ""))
