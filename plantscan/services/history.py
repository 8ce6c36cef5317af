"""
History Sink -- append-only record of past identifications (Supabase)

Writes are fire-and-forget: the composer schedules them as background tasks
after the response body is built, and every failure stays inside this module.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Set

from supabase import Client

from plantscan.config import HISTORY_PAGE_SIZE, HISTORY_TABLE
from plantscan.errors import PersistenceError
from plantscan.models import HistoryRecord, IdentifyResult

logger = logging.getLogger(__name__)

# Strong references to in-flight writes so they are not garbage collected
_pending_writes: Set[asyncio.Task] = set()


class HistorySink:
    def __init__(self, supabase_client: Optional[Client], table: str = HISTORY_TABLE):
        self.supabase = supabase_client
        self.table = table

    @property
    def available(self) -> bool:
        return self.supabase is not None

    async def append(
        self,
        user_id: str,
        plant_name: str,
        scientific_name: Optional[str],
        confidence: Optional[float],
        result_json: Dict[str, Any],
    ):
        """Insert one record; raises PersistenceError on any storage failure"""
        if not self.available:
            raise PersistenceError("History store not configured")

        record = HistoryRecord(
            user_id=user_id,
            plant_name=plant_name,
            scientific_name=scientific_name,
            confidence=confidence,
            result_json=result_json,
            created_at=datetime.now(timezone.utc).isoformat(),
        )
        try:
            query = self.supabase.table(self.table).insert(record.model_dump())
            await asyncio.to_thread(query.execute)
        except Exception as e:
            raise PersistenceError(f"History insert failed: {e}") from e
        logger.info(f"✓ Saved history for {user_id[:8]}...: {plant_name}")

    async def recent(self, user_id: str, limit: int = HISTORY_PAGE_SIZE) -> List[Dict[str, Any]]:
        """Most recent records for one user, newest first"""
        if not self.available:
            return []
        try:
            query = self.supabase.table(self.table)\
                .select('*')\
                .eq('user_id', user_id)\
                .order('created_at', desc=True)\
                .limit(limit)
            # supabase-py is synchronous; keep the event loop free
            result = await asyncio.to_thread(query.execute)
            return result.data or []
        except Exception as e:
            logger.error(f"Failed to fetch history for {user_id[:8]}...: {e}")
            return []

    async def save_result(self, user_id: str, result: IdentifyResult):
        """Persist the top match of a result; never raises"""
        if not result.matches:
            return
        top = result.matches[0]
        try:
            await self.append(
                user_id=user_id,
                plant_name=top.name,
                scientific_name=top.scientific_name,
                confidence=top.confidence,
                result_json=result.snapshot(),
            )
        except PersistenceError as e:
            logger.error(f"Failed to save to history: {e}")
        except Exception as e:
            logger.error(f"Unexpected history error: {e}", exc_info=True)


def schedule_history_write(sink: HistorySink, user_id: str, result: IdentifyResult) -> asyncio.Task:
    """Fire-and-forget save_result; the caller never awaits the returned task"""
    task = asyncio.create_task(sink.save_result(user_id, result))
    _pending_writes.add(task)
    task.add_done_callback(_pending_writes.discard)
    return task


async def drain_pending_writes():
    """Wait for in-flight history writes (used on shutdown)"""
    if _pending_writes:
        logger.info(f"Waiting for {len(_pending_writes)} history write(s)...")
        await asyncio.gather(*list(_pending_writes), return_exceptions=True)
