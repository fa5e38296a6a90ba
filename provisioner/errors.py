# provisioner/errors.py
# -*- coding: utf-8 -*-
"""
Error taxonomy for the provisioning steps.

Every halting failure derives from ProvisioningError. VerificationWarning is
a warning category: it is recorded by the verifier, never raised.
"""

from enum import Enum
from typing import Optional


class ProvisioningError(Exception):
    """Base class for failures that halt the provisioning run."""

    exit_code: int = 1


class ConfigurationError(ProvisioningError):
    """Bad or missing input. Raised before any mutation."""


class PreconditionFailure(str, Enum):
    NOT_ROOT = "not_root"
    NO_CONNECTIVITY = "no_connectivity"
    UNSUPPORTED_OS = "unsupported_os"
    EXISTING_INSTALLATION = "existing_installation"


class PreconditionError(ProvisioningError):
    """The host is unsuitable. Raised before any mutation."""

    def __init__(self, reason: PreconditionFailure, message: str):
        super().__init__(message)
        self.reason = reason

    def __str__(self) -> str:
        return f"{self.reason.name}: {self.args[0]}"


class DependencyError(ProvisioningError):
    """The package manager failed to install a required package set."""


class BuildError(ProvisioningError):
    """A fetch, configure, compile or install phase failed."""

    PHASES = ("fetch", "configure", "compile", "install")

    def __init__(self, phase: str, message: str):
        if phase not in self.PHASES:
            raise ValueError(f"Unknown build phase '{phase}'")
        super().__init__(message)
        self.phase = phase

    def __str__(self) -> str:
        return f"{self.phase} phase failed: {self.args[0]}"


class ServiceError(ProvisioningError):
    """Writing configuration or driving a service failed."""


class UserCancelled(Exception):
    """The operator declined to continue. Not a failure: exits with 0."""

    exit_code: int = 0


class VerificationWarning(UserWarning):
    """A post-install health check failed."""

    def __init__(self, check: str, message: str, detail: Optional[str] = None):
        super().__init__(message)
        self.check = check
        self.detail = detail

    def __str__(self) -> str:
        text = f"{self.check}: {self.args[0]}"
        if self.detail:
            text += f" ({self.detail})"
        return text
