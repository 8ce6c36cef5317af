import io
import os
import sys
from typing import List, Optional

import pytest
from PIL import Image

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from plantscan.models import (  # noqa: E402
    CareHints,
    HealthDiagnosis,
    HealthOutcome,
    IdentificationOutcome,
    PlantMatch,
)
from plantscan.services.catalog import GCICatalog  # noqa: E402
from plantscan.models import GCIPage  # noqa: E402
from plantscan.services.providers.base import HealthAdapter, IdentificationAdapter  # noqa: E402
from plantscan.utils.rate_limiter import QuotaTracker  # noqa: E402

TODAY = "2026-10-17"
YESTERDAY = "2026-10-16"


def make_jpeg(color=(120, 180, 120), size=(64, 64)) -> bytes:
    img = Image.new("RGB", size, color)
    buf = io.BytesIO()
    img.save(buf, format="JPEG")
    return buf.getvalue()


def make_match(scientific_name: str, confidence: float = 0.9, description: str = "") -> PlantMatch:
    return PlantMatch(
        name=scientific_name,
        scientific_name=scientific_name,
        confidence=confidence,
        description=description,
        care=CareHints(light="light", water="water", soil="soil"),
    )


def make_diagnosis(condition: str, confidence: float) -> HealthDiagnosis:
    return HealthDiagnosis(
        condition=condition,
        confidence=confidence,
        description=f"Detected condition: {condition}.",
        treatment="Consult a local gardening expert for treatment options.",
    )


class FakeIdentifier(IdentificationAdapter):
    name = "fake_id"

    def __init__(self, outcome: Optional[IdentificationOutcome] = None, error: Optional[Exception] = None):
        super().__init__("test-key", catalog=GCICatalog([]))
        self.outcome = outcome or IdentificationOutcome(matches=[make_match("Rosa chinensis")])
        self.error = error
        self.calls: List[List[bytes]] = []

    async def identify(self, images):
        self.calls.append(images)
        if self.error:
            raise self.error
        return self.outcome


class FakeHealth(HealthAdapter):
    name = "fake_health"

    def __init__(self, outcome: Optional[HealthOutcome] = None, error: Optional[Exception] = None):
        super().__init__("test-key", catalog=GCICatalog([]))
        self.outcome = outcome or HealthOutcome(is_healthy=True, diagnoses=[])
        self.error = error
        self.calls = 0

    async def diagnose(self, images):
        self.calls += 1
        if self.error:
            raise self.error
        return self.outcome


@pytest.fixture
def jpeg_bytes() -> bytes:
    return make_jpeg()


@pytest.fixture
def tracker() -> QuotaTracker:
    return QuotaTracker(limit=20, today=lambda: TODAY)


@pytest.fixture
def catalog() -> GCICatalog:
    return GCICatalog([
        GCIPage(name="Rosa chinensis", url="https://gci.example.org/plants/rosa-chinensis"),
        GCIPage(name="Monstera deliciosa", url="https://gci.example.org/plants/monstera-deliciosa"),
    ])
