"""
Pl@ntNet v2 adapter (identification only).

Images are sent as multipart parts, one "organs=auto" field per image, with
the API key in the query string. With no-reject=false the service answers
404 ("Species not found") when the photo is not recognised as a plant; that
is reported as species_detected=False rather than an error.
"""
import logging
from typing import Any, Dict, List, Optional

import httpx

from plantscan.config import MAX_MATCHES, PLANTNET_API_KEY, PLANTNET_API_URL
from plantscan.errors import UpstreamError
from plantscan.models import IdentificationOutcome, PlantMatch
from plantscan.services import normalization
from plantscan.services.providers.base import IdentificationAdapter
from plantscan.utils.images import image_mime

logger = logging.getLogger(__name__)

_EXTENSIONS = {"image/jpeg": "jpg", "image/png": "png", "image/webp": "webp"}


class PlantNetAdapter(IdentificationAdapter):
    name = "plantnet"
    label = "Pl@ntNet"
    key_env = "PLANTNET_API_KEY"

    def __init__(self, api_key: Optional[str] = PLANTNET_API_KEY, api_url: str = PLANTNET_API_URL,
                 lang: str = "en", **kwargs):
        super().__init__(api_key, **kwargs)
        self.api_url = api_url
        self.lang = lang

    def _multipart(self, images: List[bytes]):
        files = []
        for i, image_bytes in enumerate(images):
            mime = image_mime(image_bytes)
            filename = f"image_{i}.{_EXTENSIONS.get(mime, 'jpg')}"
            files.append(("images", (filename, image_bytes, mime)))
        data = {"organs": ["auto"] * len(images)}
        return files, data

    async def identify(self, images: List[bytes]) -> IdentificationOutcome:
        self.ensure_configured()

        files, data = self._multipart(images)
        params = {
            "include-related-images": "true",
            "no-reject": "false",
            "nb-results": str(MAX_MATCHES),
            "lang": self.lang,
            "api-key": self.api_key,
        }

        logger.info(f"Pl@ntNet identification: {len(images)} image(s)")
        try:
            response = await self._post(self.api_url, params=params, files=files, data=data)
        except httpx.HTTPError as e:
            logger.error(f"Pl@ntNet request failed: {e}")
            raise UpstreamError(0, str(e), provider="Pl@ntNet")

        if response.status_code == 404:
            logger.info("Pl@ntNet: species not found (image rejected)")
            return IdentificationOutcome(species_detected=False, matches=[])

        if not response.is_success:
            logger.error(f"Pl@ntNet API error: {response.status_code} {response.text[:500]}")
            raise UpstreamError(response.status_code, response.text, provider="Pl@ntNet")

        try:
            payload = response.json()
        except ValueError as e:
            logger.error(f"Pl@ntNet returned invalid JSON: {e}")
            raise UpstreamError(response.status_code, "invalid JSON body", provider="Pl@ntNet")

        results = payload.get("results") or []
        remaining = payload.get("remainingIdentificationRequests")
        if remaining is not None:
            logger.info(f"Pl@ntNet remaining identification requests: {remaining}")

        matches = [self.to_match(r) for r in results[:MAX_MATCHES]]
        logger.info(f"✓ Pl@ntNet returned {len(results)} result(s), kept {len(matches)}")
        return IdentificationOutcome(species_detected=bool(matches), matches=matches)

    def to_match(self, result: Dict[str, Any]) -> PlantMatch:
        species = result.get("species") or {}
        common_names = species.get("commonNames") or []
        scientific_name = (
            species.get("scientificNameWithoutAuthor")
            or species.get("scientificName")
            or ""
        )

        description = normalization.alias_description(common_names)
        if not description:
            description = self._taxonomy_description(species)

        images = result.get("images") or []
        image_url = ((images[0].get("url") or {}).get("m") or "") if images else ""

        return PlantMatch(
            name=normalization.display_name(common_names, scientific_name),
            scientific_name=scientific_name,
            confidence=result.get("score") or 0.0,
            description=description,
            # Pl@ntNet has no watering data
            care=normalization.care_hints(self.care),
            image_url=image_url,
            similar_images=[],
            gci_url=self.catalog.lookup(scientific_name),
        )

    @staticmethod
    def _taxonomy_description(species: Dict[str, Any]) -> str:
        family = (species.get("family") or {}).get("scientificNameWithoutAuthor") or ""
        genus = (species.get("genus") or {}).get("scientificNameWithoutAuthor") or ""
        parts = []
        if family:
            parts.append(f"Family: {family}.")
        if genus:
            parts.append(f"Genus: {genus}.")
        return " ".join(parts)
