"""
Result Composer -- single entry point behind the identify / health routes.

compose():
1. validate uploads (no upstream call on failure)
2. check the caller's daily quota (no upstream call when exhausted)
3. identification call; a separate health call runs concurrently when a
   distinct health adapter is configured, isolated from the main result
4. consume one quota unit once identification came back (even "no plant")
5. schedule the history write in the background for signed-in users
"""
import asyncio
import logging
from typing import List, Optional, Tuple

from plantscan.config import MAX_DIAGNOSES, MAX_MATCHES, MIN_DIAGNOSIS_CONFIDENCE
from plantscan.errors import ConfigError, QuotaExceededError
from plantscan.models import (
    HealthDiagnosis,
    HealthOutcome,
    IdentificationOutcome,
    IdentifyResult,
    PlantMatch,
    QuotaCheck,
    QuotaState,
)
from plantscan.services.history import HistorySink, schedule_history_write
from plantscan.services.normalization import fallback_description
from plantscan.services.providers.base import HealthAdapter, IdentificationAdapter
from plantscan.utils.images import validate_images
from plantscan.utils.rate_limiter import QuotaTracker

logger = logging.getLogger(__name__)


class ResultComposer:
    def __init__(
        self,
        identifier: IdentificationAdapter,
        health: Optional[HealthAdapter] = None,
        quota: Optional[QuotaTracker] = None,
        history: Optional[HistorySink] = None,
    ):
        self.identifier = identifier
        self.health = health
        self.quota = quota or QuotaTracker()
        self.history = history

    @property
    def separate_health(self) -> bool:
        return self.health is not None and self.health is not self.identifier

    def quota_status(self, state: Optional[QuotaState]) -> QuotaCheck:
        return self.quota.check(state)

    def _require_quota(self, state: Optional[QuotaState]):
        check = self.quota.check(state)
        if not check.allowed:
            logger.warning(f"Daily quota exhausted ({check.limit}/day)")
            raise QuotaExceededError(check.limit)

    async def _safe_diagnose(self, images: List[bytes]) -> HealthOutcome:
        try:
            return await self.health.diagnose(images)
        except Exception as e:
            logger.error(f"Health assessment failed, continuing without it: {e}")
            return HealthOutcome()

    @staticmethod
    def _finish_matches(matches: List[PlantMatch]) -> List[PlantMatch]:
        finished = []
        for match in matches[:MAX_MATCHES]:
            if not match.description:
                match = match.model_copy(update={
                    "description": fallback_description(match.scientific_name, match.confidence)
                })
            finished.append(match)
        return finished

    @staticmethod
    def _finish_diagnoses(diagnoses: List[HealthDiagnosis]) -> List[HealthDiagnosis]:
        kept = [d for d in diagnoses if d.confidence > MIN_DIAGNOSIS_CONFIDENCE]
        return kept[:MAX_DIAGNOSES]

    async def compose(
        self,
        images: List[bytes],
        quota_state: Optional[QuotaState] = None,
        user_id: Optional[str] = None,
    ) -> Tuple[IdentifyResult, QuotaState]:
        validate_images(images)
        self._require_quota(quota_state)
        self.identifier.ensure_configured()

        health_task = None
        if self.separate_health:
            health_task = asyncio.ensure_future(self._safe_diagnose(images))

        try:
            outcome: IdentificationOutcome = await self.identifier.identify(images)
        except Exception:
            if health_task is not None:
                health_task.cancel()
            raise

        new_state, remaining = self.quota.consume(quota_state)

        if not outcome.species_detected:
            if health_task is not None:
                health_task.cancel()
            logger.info(f"No plant detected - returning empty result ({remaining} scans left)")
            return IdentifyResult(remaining_quota=remaining), new_state

        if health_task is not None:
            health = await health_task
        else:
            health = outcome.health or HealthOutcome()

        result = IdentifyResult(
            matches=self._finish_matches(outcome.matches),
            is_healthy=health.is_healthy,
            health_diagnoses=self._finish_diagnoses(health.diagnoses),
            remaining_quota=remaining,
        )
        logger.info(
            f"Composed result: {len(result.matches)} match(es), healthy={result.is_healthy}, "
            f"{len(result.health_diagnoses)} diagnosis(es), {remaining} scans left"
        )

        if user_id and result.matches and self.history is not None:
            schedule_history_write(self.history, user_id, result)

        return result, new_state

    async def diagnose_only(
        self,
        images: List[bytes],
        quota_state: Optional[QuotaState] = None,
    ) -> Tuple[HealthOutcome, QuotaState, int]:
        """Health check without identification; provider failures are fatal here"""
        validate_images(images)
        if self.health is None:
            raise ConfigError("Plant health diagnosis is not configured.")
        self._require_quota(quota_state)

        outcome = await self.health.diagnose(images)
        new_state, remaining = self.quota.consume(quota_state)
        outcome = outcome.model_copy(update={"diagnoses": self._finish_diagnoses(outcome.diagnoses)})
        return outcome, new_state, remaining
