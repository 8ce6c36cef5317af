"""
Daily scan quota held by the client.

The state ({count, date}) is round-tripped through a cookie on every request;
nothing is stored server side. A state stamped with an earlier day counts as
zero, so day rollover happens lazily on the next check or consume.
"""
import json
import logging
from datetime import datetime, timezone
from typing import Callable, Optional, Tuple

from starlette.responses import Response

from plantscan.config import DAILY_SCAN_LIMIT, QUOTA_COOKIE_MAX_AGE, QUOTA_COOKIE_NAME
from plantscan.models import QuotaCheck, QuotaState

logger = logging.getLogger(__name__)


def utc_today() -> str:
    return datetime.now(timezone.utc).date().isoformat()


class QuotaTracker:
    def __init__(self, limit: int = DAILY_SCAN_LIMIT, today: Callable[[], str] = utc_today):
        self.limit = limit
        self._today = today

    def fresh_state(self) -> QuotaState:
        return QuotaState(count=0, date=self._today())

    def _normalize(self, state: Optional[QuotaState]) -> QuotaState:
        today = self._today()
        if state is None or state.date != today or state.count < 0:
            return QuotaState(count=0, date=today)
        return state

    def _remaining(self, count: int) -> int:
        return max(0, self.limit - count)

    def check(self, state: Optional[QuotaState]) -> QuotaCheck:
        current = self._normalize(state)
        return QuotaCheck(
            allowed=current.count < self.limit,
            remaining=self._remaining(current.count),
            limit=self.limit,
        )

    def consume(self, state: Optional[QuotaState]) -> Tuple[QuotaState, int]:
        current = self._normalize(state)
        new_state = QuotaState(count=current.count + 1, date=self._today())
        return new_state, self._remaining(new_state.count)

    # ------------------------------------------------------------------
    # Token (cookie) codec
    # ------------------------------------------------------------------

    def decode_token(self, raw: Optional[str]) -> QuotaState:
        """Parse a cookie value; anything unreadable is a fresh state for today"""
        if not raw:
            return self.fresh_state()
        try:
            data = json.loads(raw)
            count = data["count"]
            date = data["date"]
            if not isinstance(count, int) or isinstance(count, bool) or not isinstance(date, str):
                raise ValueError("bad quota fields")
            return self._normalize(QuotaState(count=count, date=date))
        except (ValueError, TypeError, KeyError) as e:
            logger.warning(f"Invalid quota token, starting fresh: {e}")
            return self.fresh_state()

    @staticmethod
    def encode_token(state: QuotaState) -> str:
        return json.dumps({"count": state.count, "date": state.date}, separators=(",", ":"))


def set_quota_cookie(response: Response, state: QuotaState):
    """Hand the updated state back to the browser (readable by the page script)"""
    response.set_cookie(
        QUOTA_COOKIE_NAME,
        QuotaTracker.encode_token(state),
        max_age=QUOTA_COOKIE_MAX_AGE,
        path="/",
        httponly=False,
        samesite="strict",
    )
