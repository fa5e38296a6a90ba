"""
Provisioning framework for OpenPBS nodes.

This package provides the steps that take a host from a bare OS install to a
running OpenPBS server, execution host or both, plus the orchestrator that
sequences them and records their results.
"""

from provisioner.base_step import BaseStep
from provisioner.orchestrator import ProvisioningOrchestrator
from provisioner.registry import StepRegistry

__all__ = ["BaseStep", "StepRegistry", "ProvisioningOrchestrator"]
