import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Header, Request, UploadFile
from fastapi.responses import JSONResponse

from plantscan.config import IP_RATE_LIMIT, QUOTA_COOKIE_NAME
from plantscan.dependencies import get_composer, limiter
from plantscan.errors import PlantScanError, UnexpectedError
from plantscan.models import QuotaState
from plantscan.services.composer import ResultComposer
from plantscan.services.services import supabase_client
from plantscan.services.user_service import get_user_id
from plantscan.utils.rate_limiter import set_quota_cookie

logger = logging.getLogger(__name__)

router = APIRouter()


def read_quota(request: Request, composer: ResultComposer) -> QuotaState:
    """Decode the quota cookie and remember the current check for error bodies"""
    state = composer.quota.decode_token(request.cookies.get(QUOTA_COOKIE_NAME))
    request.state.quota = composer.quota_status(state)
    return state


async def read_images(images: Optional[List[UploadFile]]) -> List[bytes]:
    return [await f.read() for f in (images or [])]


@router.get("/api/identify")
async def quota_status(request: Request, composer: ResultComposer = Depends(get_composer)):
    """Remaining scans for today, read from the caller's cookie"""
    read_quota(request, composer)
    check = request.state.quota
    return {"remaining": check.remaining, "limit": check.limit}


@router.post("/api/identify")
@limiter.limit(IP_RATE_LIMIT)
async def identify(
    request: Request,
    images: Optional[List[UploadFile]] = File(None),
    authorization: Optional[str] = Header(None),
    composer: ResultComposer = Depends(get_composer),
):
    state = read_quota(request, composer)
    try:
        image_bytes = await read_images(images)
        user_id = await get_user_id(supabase_client, authorization)
        result, new_state = await composer.compose(image_bytes, state, user_id=user_id)
    except PlantScanError:
        raise
    except Exception as e:
        logger.error(f"Identification error: {e}", exc_info=True)
        raise UnexpectedError()

    body = {
        "success": True,
        **result.snapshot(),
        "remaining_quota": result.remaining_quota,
        "remaining": result.remaining_quota,
        "limit": composer.quota.limit,
    }
    response = JSONResponse(content=body)
    set_quota_cookie(response, new_state)
    return response
