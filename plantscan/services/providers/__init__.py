"""
Provider adapters and configuration-driven selection.
"""
import logging
from typing import Optional

from plantscan.config import HEALTH_PROVIDER, IDENTIFY_PROVIDER
from plantscan.models import CareDefaults
from plantscan.services.catalog import GCICatalog
from plantscan.services.providers.base import HealthAdapter, IdentificationAdapter
from plantscan.services.providers.plant_id import PlantIdAdapter
from plantscan.services.providers.plantnet import PlantNetAdapter

logger = logging.getLogger(__name__)

__all__ = [
    "HealthAdapter",
    "IdentificationAdapter",
    "PlantIdAdapter",
    "PlantNetAdapter",
    "build_adapters",
]


def build_adapters(
    identify_provider: str = IDENTIFY_PROVIDER,
    health_provider: str = HEALTH_PROVIDER,
    care: Optional[CareDefaults] = None,
    catalog: Optional[GCICatalog] = None,
):
    """
    Return (identification_adapter, health_adapter_or_None).

    plant_id + plant_id   -> one combined Plant.id request (health rides along)
    plantnet + plant_id   -> Pl@ntNet for species, Plant.id health-only call
    anything  + none      -> no health assessment
    """
    identify_provider = (identify_provider or "plant_id").lower()
    health_provider = (health_provider or "none").lower()
    kwargs = {"care": care, "catalog": catalog}

    if identify_provider == "plantnet":
        identifier: IdentificationAdapter = PlantNetAdapter(**kwargs)
    elif identify_provider == "plant_id":
        identifier = PlantIdAdapter(include_health=(health_provider == "plant_id"), **kwargs)
    else:
        raise ValueError(f"Unknown identification provider: {identify_provider}")

    health: Optional[HealthAdapter] = None
    if health_provider == "plant_id":
        health = identifier if isinstance(identifier, PlantIdAdapter) else PlantIdAdapter(**kwargs)
    elif health_provider != "none":
        raise ValueError(f"Unknown health provider: {health_provider}")

    logger.info(f"Providers: identify={identify_provider}, health={health_provider}")
    return identifier, health
