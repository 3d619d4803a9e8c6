"""Exchange Server deployment recipes."""

from .models import DeploymentParams
from .stages import STAGE_NAMES, ExchangeDeployment, build_exchange_stages

__all__ = [
    "DeploymentParams",
    "ExchangeDeployment",
    "STAGE_NAMES",
    "build_exchange_stages",
]
