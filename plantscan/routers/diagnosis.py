import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Request, UploadFile
from fastapi.responses import JSONResponse

from plantscan.config import IP_RATE_LIMIT
from plantscan.dependencies import get_composer, limiter
from plantscan.errors import PlantScanError, UnexpectedError
from plantscan.routers.identify import read_images, read_quota
from plantscan.services.composer import ResultComposer
from plantscan.utils.rate_limiter import set_quota_cookie

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/api/health")
@limiter.limit(IP_RATE_LIMIT)
async def diagnose(
    request: Request,
    images: Optional[List[UploadFile]] = File(None),
    composer: ResultComposer = Depends(get_composer),
):
    """Health-only assessment; counts against the same daily quota"""
    state = read_quota(request, composer)
    try:
        image_bytes = await read_images(images)
        outcome, new_state, remaining = await composer.diagnose_only(image_bytes, state)
    except PlantScanError:
        raise
    except Exception as e:
        logger.error(f"Health diagnosis error: {e}", exc_info=True)
        raise UnexpectedError()

    response = JSONResponse(content={
        "success": True,
        "is_healthy": outcome.is_healthy,
        "diagnoses": [d.model_dump(exclude_none=True) for d in outcome.diagnoses],
        "remaining": remaining,
        "limit": composer.quota.limit,
    })
    set_quota_cookie(response, new_state)
    return response
