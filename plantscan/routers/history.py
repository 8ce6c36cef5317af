import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException

from plantscan.config import HISTORY_PAGE_SIZE
from plantscan.dependencies import get_history_sink
from plantscan.services.history import HistorySink
from plantscan.services.services import supabase_client
from plantscan.services.user_service import get_user_id

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/api/history")
async def list_history(
    authorization: Optional[str] = Header(None),
    sink: HistorySink = Depends(get_history_sink),
):
    user_id = await get_user_id(supabase_client, authorization)
    if not user_id:
        raise HTTPException(status_code=401, detail="Sign in to view your identification history")
    records = await sink.recent(user_id, limit=HISTORY_PAGE_SIZE)
    return {"success": True, "history": records}
