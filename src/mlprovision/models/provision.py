"""Provisioning run state and reporting models."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from mlprovision.models.base import ToDictMixin


class StepStatus(str, Enum):
    """Outcome of a provisioning step."""

    OK = "ok"
    SKIPPED = "skipped"
    WARNING = "warning"


@dataclass
class StepResult(ToDictMixin):
    """Result of a single provisioning step."""

    name: str
    title: str
    status: StepStatus = StepStatus.OK
    message: str = ""


@dataclass
class ProvisionContext:
    """
    Values discovered or changed while provisioning.

    os_version is set by the first step and gpu_flag by GPU detection;
    later steps only read them.
    """

    cuda_version: str
    pytorch_tag: str
    os_version: Optional[str] = None
    gpu_flag: int = 0
    drivers_installed: bool = False


@dataclass
class ProvisionReport(ToDictMixin):
    """Final report of a provisioning run."""

    os_version: Optional[str]
    gpu_flag: int
    cuda_version: str
    pytorch_tag: str
    drivers_installed: bool = False
    steps: List[StepResult] = field(default_factory=list)
    notes: List[str] = field(default_factory=list)

    @property
    def warnings(self) -> List[StepResult]:
        """Steps that finished with a warning."""
        return [s for s in self.steps if s.status == StepStatus.WARNING]

    def _to_dict_extra(self) -> Optional[Dict[str, Any]]:
        return {"warning_count": len(self.warnings)}
