# provisioner/models.py
# -*- coding: utf-8 -*-
"""
Data shared between the provisioning steps.

ProvisioningPlan (the resolved intent) lives in pbs_config.config_models; this
module holds what the steps learn and record while running: the host facts,
the per-step results and the context that carries both through a run.
"""

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

from pbs_config.config_models import AppSettings, ProvisioningPlan


class StepStatus(str, Enum):
    SUCCESS = "success"
    SKIPPED = "skipped"
    FAILED = "failed"
    WARNED = "warned"


class StepResult(BaseModel):
    """The outcome of one step or one verification check."""

    model_config = ConfigDict(frozen=True)

    name: str
    status: StepStatus
    detail: str = ""
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )


class AuditTrail:
    """
    Append-only, ordered record of step results.

    Each recorded result is also written to the audit logger, when one is
    given, as a structured entry.
    """

    def __init__(self, audit_logger: Optional[logging.Logger] = None):
        self._results: List[StepResult] = []
        self._audit_logger = audit_logger

    def record(self, result: StepResult) -> StepResult:
        self._results.append(result)
        if self._audit_logger is not None:
            self._audit_logger.info(
                f"{result.name}: {result.status.value}",
                extra={
                    "step": result.name,
                    "status": result.status.value,
                    "detail": result.detail,
                    "recorded_at": result.timestamp.isoformat(),
                },
            )
        return result

    @property
    def results(self) -> Tuple[StepResult, ...]:
        return tuple(self._results)

    def __iter__(self) -> Iterator[StepResult]:
        return iter(tuple(self._results))

    def __len__(self) -> int:
        return len(self._results)

    def with_status(self, status: StepStatus) -> List[StepResult]:
        return [r for r in self._results if r.status is status]


class DistroFamily(str, Enum):
    DEBIAN = "debian"
    RHEL = "rhel"


class PackageManagerKind(str, Enum):
    APT = "apt"
    DNF = "dnf"


class SupportedDistro(Enum):
    """
    Allow-list of operating systems the installer supports.

    Values are (os-release ID, version). Ubuntu is matched on the full
    VERSION_ID, the RHEL family on the major version only.
    """

    UBUNTU_24_04 = ("ubuntu", "24.04")
    ROCKY_8 = ("rocky", "8")
    ROCKY_9 = ("rocky", "9")
    ALMA_8 = ("almalinux", "8")
    ALMA_9 = ("almalinux", "9")
    RHEL_8 = ("rhel", "8")
    RHEL_9 = ("rhel", "9")

    @property
    def os_id(self) -> str:
        return self.value[0]

    @property
    def version(self) -> str:
        return self.value[1]

    @property
    def family(self) -> DistroFamily:
        return DistroFamily.DEBIAN if self.os_id == "ubuntu" else DistroFamily.RHEL

    @property
    def package_manager(self) -> PackageManagerKind:
        if self.family is DistroFamily.DEBIAN:
            return PackageManagerKind.APT
        return PackageManagerKind.DNF

    @classmethod
    def match(cls, os_id: str, version_id: str) -> Optional["SupportedDistro"]:
        """Return the allow-listed distro for an os-release ID/VERSION_ID, if any."""
        os_id = os_id.strip().lower()
        version_id = version_id.strip()
        major_version = version_id.split(".")[0]
        for distro in cls:
            if distro.os_id != os_id:
                continue
            if distro.family is DistroFamily.DEBIAN:
                if distro.version == version_id:
                    return distro
            elif distro.version == major_version:
                return distro
        return None


class HostFacts(BaseModel):
    """
    Facts about the host, captured once by the precondition checker.

    The core fields are frozen. Later steps may add facts with remember(), but
    a fact, once known, is never overwritten.
    """

    model_config = ConfigDict(frozen=True)

    os_id: str
    os_version: str
    os_pretty_name: str = ""
    distro: SupportedDistro
    package_manager: PackageManagerKind
    is_root: bool
    connectivity: bool
    existing_installation: bool = False
    installed_version: Optional[str] = None
    # Operator agreed to overwrite the existing installation.
    reinstall_confirmed: bool = False
    hostname: str
    cpu_count: int = Field(default=1, ge=1)

    _additional: Dict[str, Any] = PrivateAttr(default_factory=dict)

    @property
    def family(self) -> DistroFamily:
        return self.distro.family

    def remember(self, key: str, value: Any) -> None:
        if key in type(self).model_fields or key in self._additional:
            raise ValueError(f"Host fact '{key}' is already known")
        self._additional[key] = value

    def recall(self, key: str, default: Any = None) -> Any:
        return self._additional.get(key, default)


class ProvisioningContext:
    """
    State carried from step to step during one run.

    The plan and the host facts are each set exactly once, by the inventory
    resolver and the precondition checker respectively.
    """

    def __init__(
        self,
        app_settings: AppSettings,
        audit_trail: Optional[AuditTrail] = None,
    ):
        self.app_settings = app_settings
        self.audit_trail = audit_trail if audit_trail is not None else AuditTrail()
        self._plan: Optional[ProvisioningPlan] = None
        self._facts: Optional[HostFacts] = None

    @property
    def plan(self) -> ProvisioningPlan:
        if self._plan is None:
            raise RuntimeError("Provisioning plan has not been resolved yet")
        return self._plan

    @plan.setter
    def plan(self, plan: ProvisioningPlan) -> None:
        if self._plan is not None:
            raise RuntimeError("Provisioning plan is already set")
        self._plan = plan

    @property
    def has_plan(self) -> bool:
        return self._plan is not None

    @property
    def facts(self) -> HostFacts:
        if self._facts is None:
            raise RuntimeError("Host facts have not been captured yet")
        return self._facts

    @facts.setter
    def facts(self, facts: HostFacts) -> None:
        if self._facts is not None:
            raise RuntimeError("Host facts are already captured")
        self._facts = facts

    @property
    def has_facts(self) -> bool:
        return self._facts is not None
