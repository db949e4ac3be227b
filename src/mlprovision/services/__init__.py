"""Services layer: business logic returning ServiceResult objects."""

from .base import BaseService, ServiceResult
from .provision import STEPS, ProvisionService

__all__ = [
    "BaseService",
    "ServiceResult",
    "ProvisionService",
    "STEPS",
]
