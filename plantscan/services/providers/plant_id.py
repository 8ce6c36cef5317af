"""
Plant.id (Kindwise) v3 adapter.

One adapter covers both capabilities:
- identify(): POST /identification, optionally with health="all" so a single
  paid request carries the health assessment too
- diagnose(): POST /health_assessment only (health-only mode)

Images travel base64-encoded inside a JSON body; auth is the Api-Key header.
"""
import base64
import logging
from typing import Any, Dict, List, Optional

import httpx

from plantscan.config import MAX_MATCHES, PLANT_ID_API_KEY, PLANT_ID_API_URL
from plantscan.errors import HealthUpstreamError, UpstreamError
from plantscan.models import HealthOutcome, IdentificationOutcome, PlantMatch
from plantscan.services import normalization
from plantscan.services.providers.base import HealthAdapter, IdentificationAdapter

logger = logging.getLogger(__name__)

DETAILS = "common_names,url,description,taxonomy,watering,edible_parts"
DISEASE_DETAILS = "local_name,description,treatment,cause"


class PlantIdAdapter(IdentificationAdapter, HealthAdapter):
    name = "plant_id"
    label = "Plant.id"
    key_env = "PLANT_ID_API_KEY"

    def __init__(self, api_key: Optional[str] = PLANT_ID_API_KEY, include_health: bool = True,
                 base_url: str = PLANT_ID_API_URL, **kwargs):
        super().__init__(api_key, **kwargs)
        self.include_health = include_health
        self.base_url = base_url.rstrip("/")

    @staticmethod
    def _encode(images: List[bytes]) -> List[str]:
        return [base64.b64encode(img).decode("utf-8") for img in images]

    async def _call(self, endpoint: str, body: Dict[str, Any], params: Dict[str, str], error_cls) -> Dict[str, Any]:
        url = f"{self.base_url}/{endpoint}"
        headers = {"Api-Key": self.api_key, "Content-Type": "application/json"}
        try:
            response = await self._post(url, params=params, headers=headers, json=body)
        except httpx.HTTPError as e:
            logger.error(f"Plant.id request failed ({endpoint}): {e}")
            raise error_cls(0, str(e))

        if not response.is_success:
            logger.error(f"Plant.id API error: {response.status_code} {response.text[:500]}")
            raise error_cls(response.status_code, response.text)

        try:
            return response.json()
        except ValueError as e:
            logger.error(f"Plant.id returned invalid JSON ({endpoint}): {e}")
            raise error_cls(response.status_code, "invalid JSON body")

    # ------------------------------------------------------------------
    # Identification
    # ------------------------------------------------------------------

    async def identify(self, images: List[bytes]) -> IdentificationOutcome:
        self.ensure_configured()

        body: Dict[str, Any] = {"images": self._encode(images), "similar_images": True}
        params = {"details": DETAILS}
        if self.include_health:
            body["health"] = "all"
            params["disease_details"] = DISEASE_DETAILS

        logger.info(f"Plant.id identification: {len(images)} image(s), health={self.include_health}")
        data = await self._call("identification", body, params, UpstreamError)
        result = data.get("result") or {}

        if (result.get("is_plant") or {}).get("binary") is False:
            logger.info("Plant.id: no plant detected in image")
            return IdentificationOutcome(species_detected=False, matches=[])

        suggestions = (result.get("classification") or {}).get("suggestions") or []
        matches = [self.to_match(s) for s in suggestions[:MAX_MATCHES]]
        logger.info(f"✓ Plant.id returned {len(suggestions)} suggestion(s), kept {len(matches)}")
        health = self.parse_health(result) if self.include_health else None
        return IdentificationOutcome(species_detected=True, matches=matches, health=health)

    def to_match(self, suggestion: Dict[str, Any]) -> PlantMatch:
        details = suggestion.get("details") or {}
        common_names = details.get("common_names") or []
        scientific_name = suggestion.get("name", "")

        description = (details.get("description") or {}).get("value") or ""
        if not description:
            description = normalization.alias_description(common_names)

        return PlantMatch(
            name=normalization.display_name(common_names, scientific_name),
            scientific_name=scientific_name,
            confidence=suggestion.get("probability") or 0.0,
            description=description,
            care=normalization.care_hints(self.care, details.get("watering")),
            image_url="",
            similar_images=normalization.similar_images(suggestion.get("similar_images")),
            gci_url=self.catalog.lookup(scientific_name),
        )

    # ------------------------------------------------------------------
    # Health
    # ------------------------------------------------------------------

    @staticmethod
    def parse_health(result: Dict[str, Any]) -> HealthOutcome:
        disease = result.get("disease") or {}
        healthy = disease.get("is_healthy") or result.get("is_healthy") or {}
        suggestions = disease.get("suggestions") or []
        return HealthOutcome(
            is_healthy=healthy.get("binary"),
            diagnoses=[normalization.to_diagnosis(s) for s in normalization.keep_diagnoses(suggestions)],
        )

    async def diagnose(self, images: List[bytes]) -> HealthOutcome:
        self.ensure_configured()
        body = {"images": self._encode(images)}
        params = {"details": DISEASE_DETAILS}

        logger.info(f"Plant.id health assessment: {len(images)} image(s)")
        data = await self._call("health_assessment", body, params, HealthUpstreamError)
        outcome = self.parse_health(data.get("result") or {})
        logger.info(f"✓ Plant.id health: healthy={outcome.is_healthy}, {len(outcome.diagnoses)} diagnosis(es)")
        return outcome
