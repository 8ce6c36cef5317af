from typing import List, Optional
from pydantic import BaseModel, Field

from plantscan.config import DEFAULT_LIGHT, DEFAULT_SOIL, DEFAULT_WATER


class CareDefaults(BaseModel):
    """Fallback care strings handed to provider adapters"""
    light: str = DEFAULT_LIGHT
    water: str = DEFAULT_WATER
    soil: str = DEFAULT_SOIL


class CareHints(BaseModel):
    light: str
    water: str
    soil: str


class SimilarImage(BaseModel):
    id: str
    url: str
    similarity: float = 0.0


class PlantMatch(BaseModel):
    name: str
    scientific_name: str
    confidence: float
    description: str = ""
    care: CareHints
    image_url: str = ""
    similar_images: List[SimilarImage] = Field(default_factory=list)
    gci_url: Optional[str] = None  # omitted from responses when no catalog entry


class HealthDiagnosis(BaseModel):
    condition: str
    confidence: float
    description: str
    treatment: str
    cause: Optional[str] = None


class HealthOutcome(BaseModel):
    is_healthy: Optional[bool] = None
    diagnoses: List[HealthDiagnosis] = Field(default_factory=list)


class IdentificationOutcome(BaseModel):
    species_detected: bool = True
    matches: List[PlantMatch] = Field(default_factory=list)
    # Set when the provider assessed health in the same request
    health: Optional[HealthOutcome] = None


class IdentifyResult(BaseModel):
    matches: List[PlantMatch] = Field(default_factory=list)
    is_healthy: Optional[bool] = None  # None = no health assessment performed
    health_diagnoses: List[HealthDiagnosis] = Field(default_factory=list)
    remaining_quota: int = 0

    def snapshot(self) -> dict:
        """Result body stored with a history record"""
        return {
            "matches": [m.model_dump(exclude_none=True) for m in self.matches],
            "is_healthy": self.is_healthy,
            "health_diagnoses": [d.model_dump(exclude_none=True) for d in self.health_diagnoses],
        }


class QuotaState(BaseModel):
    count: int = 0
    date: str  # YYYY-MM-DD


class QuotaCheck(BaseModel):
    allowed: bool
    remaining: int
    limit: int


class HistoryRecord(BaseModel):
    user_id: str
    plant_name: str
    scientific_name: Optional[str] = None
    confidence: Optional[float] = None
    result_json: dict
    created_at: Optional[str] = None


class GCIPage(BaseModel):
    name: str
    url: str
