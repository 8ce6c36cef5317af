"""
Shared mapping policy used by every provider adapter.

Keeps the rules that decide how raw provider fields become PlantMatch /
HealthDiagnosis values in one place, so Plant.id and Pl@ntNet results read
the same way to the UI.
"""
from typing import Any, Dict, Iterable, List, Optional

from plantscan.config import MAX_DIAGNOSES, MAX_SIMILAR_IMAGES, MIN_DIAGNOSIS_CONFIDENCE
from plantscan.models import CareDefaults, CareHints, HealthDiagnosis, SimilarImage

LOW_WATER = "Low water needs — water sparingly"
HIGH_WATER = "High water needs — keep soil consistently moist"
MODERATE_WATER = "Moderate watering — water when soil feels dry"

DEFAULT_TREATMENT = "Consult a local gardening expert for treatment options."


def display_name(common_names: List[str], scientific_name: str) -> str:
    return common_names[0] if common_names else scientific_name


def alias_description(common_names: List[str]) -> str:
    """'Also known as' line, only when there is more than one common name"""
    if len(common_names) > 1:
        return f"Also known as: {', '.join(common_names[:3])}."
    return ""


def fallback_description(scientific_name: str, confidence: float) -> str:
    return f"Identified as {scientific_name}. Confidence: {round(confidence * 100)}%."


def watering_tip(watering: Optional[Dict[str, Any]], default: str) -> str:
    """
    Map a {min, max} watering-frequency bucket to a care string.

    max <= 1 -> low, min >= 2 -> high, anything else present -> moderate.
    """
    if not watering:
        return default
    low = watering.get("min")
    high = watering.get("max")
    if high is not None and high <= 1:
        return LOW_WATER
    if low is not None and low >= 2:
        return HIGH_WATER
    return MODERATE_WATER


def care_hints(care: CareDefaults, watering: Optional[Dict[str, Any]] = None) -> CareHints:
    return CareHints(
        light=care.light,
        water=watering_tip(watering, care.water),
        soil=care.soil,
    )


def similar_images(raw: Optional[Iterable[Dict[str, Any]]]) -> List[SimilarImage]:
    images = []
    for img in list(raw or [])[:MAX_SIMILAR_IMAGES]:
        images.append(SimilarImage(
            id=str(img.get("id", "")),
            url=img.get("url", ""),
            similarity=float(img.get("similarity") or 0.0),
        ))
    return images


def treatment_text(treatment: Optional[Dict[str, List[str]]]) -> str:
    treatment = treatment or {}
    parts = []
    if treatment.get("biological"):
        parts.append(". ".join(treatment["biological"]))
    if treatment.get("chemical"):
        parts.append(". ".join(treatment["chemical"]))
    if treatment.get("prevention"):
        parts.append("Prevention: " + ". ".join(treatment["prevention"]))
    return " ".join(parts) or DEFAULT_TREATMENT


def keep_diagnoses(suggestions: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Drop near-zero suggestions, keep the first MAX_DIAGNOSES in provider order"""
    kept = [s for s in suggestions if (s.get("probability") or 0) > MIN_DIAGNOSIS_CONFIDENCE]
    return kept[:MAX_DIAGNOSES]


def to_diagnosis(suggestion: Dict[str, Any]) -> HealthDiagnosis:
    details = suggestion.get("details") or {}
    name = suggestion.get("name", "")
    return HealthDiagnosis(
        condition=details.get("local_name") or name,
        confidence=suggestion.get("probability") or 0.0,
        description=details.get("description") or f"Detected condition: {name}.",
        treatment=treatment_text(details.get("treatment")),
        cause=details.get("cause") or None,
    )
