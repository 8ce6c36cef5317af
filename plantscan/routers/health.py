import logging
from fastapi import APIRouter, Depends

from plantscan.dependencies import catalog, get_composer, history_sink
from plantscan.services.composer import ResultComposer
from plantscan.services.services import supabase_client

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/")
async def root():
    return {
        "status": "online",
        "service": "PlantScan",
        "version": "1.0.0",
        "features": [
            "Plant.id species identification",
            "Pl@ntNet species identification",
            "Plant health assessment",
            "Daily scan quota",
            "Identification history"
        ]
    }


@router.get("/health")
async def health_check(composer: ResultComposer = Depends(get_composer)):
    return {
        "status": "healthy",
        "version": "1.0.0",
        "providers": {
            "identify": composer.identifier.name,
            "identify_configured": composer.identifier.configured,
            "health": composer.health.name if composer.health else None,
            "health_configured": bool(composer.health and composer.health.configured),
        },
        "services": {
            "supabase": bool(supabase_client),
            "history": history_sink.available,
            "gci_catalog": len(catalog),
            "gci_catalog_loaded": catalog.loaded
        },
        "daily_limit": composer.quota.limit
    }
