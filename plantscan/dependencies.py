"""
Shared singletons for routers: Supabase client, catalog, composer, limiter
"""
import logging
from typing import Optional

from slowapi import Limiter
from slowapi.util import get_remote_address

from plantscan.config import IP_RATE_LIMIT_ENABLED
from plantscan.services.catalog import GCICatalog
from plantscan.services.composer import ResultComposer
from plantscan.services.history import HistorySink
from plantscan.services.providers import build_adapters
from plantscan.services.services import supabase_client
from plantscan.utils.rate_limiter import QuotaTracker

logger = logging.getLogger(__name__)

# Per-IP burst limiter; the daily cap is the cookie quota
limiter = Limiter(key_func=get_remote_address, enabled=IP_RATE_LIMIT_ENABLED)

catalog = GCICatalog.get_instance()
history_sink = HistorySink(supabase_client)

_composer: Optional[ResultComposer] = None


def get_composer() -> ResultComposer:
    global _composer
    if _composer is None:
        identifier, health = build_adapters(catalog=catalog)
        _composer = ResultComposer(
            identifier=identifier,
            health=health,
            quota=QuotaTracker(),
            history=history_sink,
        )
    return _composer


def get_history_sink() -> HistorySink:
    return history_sink
