"""Data models shared by services and views."""

from mlprovision.models.base import ToDictMixin
from mlprovision.models.provision import (
    ProvisionContext,
    ProvisionReport,
    StepResult,
    StepStatus,
)

__all__ = [
    "ToDictMixin",
    "ProvisionContext",
    "ProvisionReport",
    "StepResult",
    "StepStatus",
]
