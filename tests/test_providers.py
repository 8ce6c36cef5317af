"""
Tests for the Plant.id and Pl@ntNet adapters

Upstream APIs are replaced with httpx.MockTransport, so no network access or
real API keys are needed.
"""
import asyncio
import base64
import json

import httpx
import pytest

from plantscan.errors import ConfigError, HealthUpstreamError, UpstreamError
from plantscan.models import CareDefaults
from plantscan.services.normalization import DEFAULT_TREATMENT, HIGH_WATER, LOW_WATER
from plantscan.services.providers import PlantIdAdapter, PlantNetAdapter, build_adapters


def mock_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def plant_id_payload(suggestions=None, is_plant=True, disease=None):
    result = {
        "is_plant": {"binary": is_plant, "probability": 0.99 if is_plant else 0.02},
        "classification": {"suggestions": suggestions or []},
    }
    if disease is not None:
        result["disease"] = disease
    return {"access_token": "abc", "result": result}


ROSE = {
    "name": "Rosa chinensis",
    "probability": 0.91,
    "similar_images": [
        {"id": "a1", "url": "https://plant.id/media/a1.jpg", "similarity": 0.8},
        {"id": "a2", "url": "https://plant.id/media/a2.jpg", "similarity": 0.7},
        {"id": "a3", "url": "https://plant.id/media/a3.jpg", "similarity": 0.6},
    ],
    "details": {
        "common_names": ["China rose", "Bengal rose", "Monthly rose", "Chinese rose"],
        "watering": {"min": 2, "max": 3},
    },
}

MONSTERA = {
    "name": "Monstera deliciosa",
    "probability": 0.05,
    "details": {
        "common_names": ["Swiss cheese plant"],
        "description": {"value": "A tropical climbing plant."},
        "watering": {"min": 0, "max": 1},
    },
}

UNKNOWN = {"name": "Ficus obscura", "probability": 0.02, "details": {}}


# =============================================================================
# Plant.id identification
# =============================================================================
class TestPlantIdIdentify:
    def test_request_contract(self, jpeg_bytes, catalog):
        seen = {}

        def handler(request: httpx.Request):
            seen["url"] = request.url
            seen["headers"] = request.headers
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json=plant_id_payload([ROSE]))

        adapter = PlantIdAdapter(api_key="secret", http_client=mock_client(handler), catalog=catalog)
        asyncio.run(adapter.identify([jpeg_bytes, jpeg_bytes]))

        assert seen["url"].path == "/v3/identification"
        assert seen["headers"]["Api-Key"] == "secret"
        assert "common_names" in seen["url"].params["details"]
        assert seen["url"].params["disease_details"] == "local_name,description,treatment,cause"
        assert seen["body"]["similar_images"] is True
        assert seen["body"]["health"] == "all"
        assert seen["body"]["images"] == [base64.b64encode(jpeg_bytes).decode("utf-8")] * 2

    def test_id_only_mode_skips_health(self, jpeg_bytes, catalog):
        seen = {}

        def handler(request):
            seen["body"] = json.loads(request.content)
            seen["params"] = request.url.params
            return httpx.Response(200, json=plant_id_payload([ROSE]))

        adapter = PlantIdAdapter(api_key="k", include_health=False, http_client=mock_client(handler), catalog=catalog)
        outcome = asyncio.run(adapter.identify([jpeg_bytes]))
        assert "health" not in seen["body"]
        assert "disease_details" not in seen["params"]
        assert outcome.health is None

    def test_mapping(self, jpeg_bytes, catalog):
        handler = lambda request: httpx.Response(200, json=plant_id_payload([ROSE, MONSTERA, UNKNOWN]))
        adapter = PlantIdAdapter(api_key="k", http_client=mock_client(handler), catalog=catalog)
        outcome = asyncio.run(adapter.identify([jpeg_bytes]))

        assert outcome.species_detected is True
        rose, monstera, unknown = outcome.matches

        assert rose.name == "China rose"
        assert rose.scientific_name == "Rosa chinensis"
        assert rose.confidence == 0.91
        assert rose.description == "Also known as: China rose, Bengal rose, Monthly rose."
        assert rose.care.water == HIGH_WATER
        assert rose.image_url == ""
        assert [img.id for img in rose.similar_images] == ["a1", "a2"]
        assert rose.gci_url == "https://gci.example.org/plants/rosa-chinensis"

        assert monstera.description == "A tropical climbing plant."
        assert monstera.care.water == LOW_WATER

        assert unknown.name == "Ficus obscura"
        assert unknown.description == ""
        assert unknown.care.water == "Water when top soil is dry"
        assert unknown.gci_url is None

    def test_truncates_to_three_in_rank_order(self, jpeg_bytes, catalog):
        suggestions = [{"name": f"Species {i}", "probability": 0.1 + i / 100} for i in range(6)]
        handler = lambda request: httpx.Response(200, json=plant_id_payload(suggestions))
        adapter = PlantIdAdapter(api_key="k", http_client=mock_client(handler), catalog=catalog)
        outcome = asyncio.run(adapter.identify([jpeg_bytes]))
        assert [m.scientific_name for m in outcome.matches] == ["Species 0", "Species 1", "Species 2"]

    def test_not_a_plant(self, jpeg_bytes, catalog):
        handler = lambda request: httpx.Response(200, json=plant_id_payload([ROSE], is_plant=False))
        adapter = PlantIdAdapter(api_key="k", http_client=mock_client(handler), catalog=catalog)
        outcome = asyncio.run(adapter.identify([jpeg_bytes]))
        assert outcome.species_detected is False
        assert outcome.matches == []

    def test_health_rides_along(self, jpeg_bytes, catalog):
        disease = {
            "is_healthy": {"binary": False, "probability": 0.2},
            "suggestions": [
                {"name": "fungi", "probability": 0.6, "details": {
                    "local_name": "Fungal disease",
                    "treatment": {"chemical": ["Apply fungicide"]},
                }},
                {"name": "noise", "probability": 0.004},
            ],
        }
        handler = lambda request: httpx.Response(200, json=plant_id_payload([ROSE], disease=disease))
        adapter = PlantIdAdapter(api_key="k", http_client=mock_client(handler), catalog=catalog)
        outcome = asyncio.run(adapter.identify([jpeg_bytes]))

        assert outcome.health.is_healthy is False
        assert len(outcome.health.diagnoses) == 1
        assert outcome.health.diagnoses[0].condition == "Fungal disease"
        assert outcome.health.diagnoses[0].treatment == "Apply fungicide"

    def test_custom_care_defaults(self, jpeg_bytes, catalog):
        handler = lambda request: httpx.Response(200, json=plant_id_payload([UNKNOWN]))
        care = CareDefaults(light="Full sun", water="Weekly", soil="Cactus mix")
        adapter = PlantIdAdapter(api_key="k", care=care, http_client=mock_client(handler), catalog=catalog)
        match = asyncio.run(adapter.identify([jpeg_bytes])).matches[0]
        assert (match.care.light, match.care.water, match.care.soil) == ("Full sun", "Weekly", "Cactus mix")

    @pytest.mark.parametrize("status", [401, 429, 500])
    def test_upstream_error_keeps_status(self, jpeg_bytes, catalog, status):
        handler = lambda request: httpx.Response(status, text="boom")
        adapter = PlantIdAdapter(api_key="k", http_client=mock_client(handler), catalog=catalog)
        with pytest.raises(UpstreamError) as exc_info:
            asyncio.run(adapter.identify([jpeg_bytes]))
        assert exc_info.value.status == status
        assert exc_info.value.message == f"Plant identification service returned an error ({status})."

    def test_transport_failure(self, jpeg_bytes, catalog):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        adapter = PlantIdAdapter(api_key="k", http_client=mock_client(handler), catalog=catalog)
        with pytest.raises(UpstreamError) as exc_info:
            asyncio.run(adapter.identify([jpeg_bytes]))
        assert exc_info.value.status == 0

    def test_missing_key_fails_before_request(self, jpeg_bytes, catalog):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200, json=plant_id_payload([ROSE]))

        adapter = PlantIdAdapter(api_key=None, http_client=mock_client(handler), catalog=catalog)
        with pytest.raises(ConfigError):
            asyncio.run(adapter.identify([jpeg_bytes]))
        assert calls == []


# =============================================================================
# Plant.id health-only
# =============================================================================
class TestPlantIdDiagnose:
    def test_health_assessment_endpoint(self, jpeg_bytes, catalog):
        seen = {}
        confidences = [0.005, 0.02, 0.9, 0.5, 0.3, 0.1, 0.05]

        def handler(request):
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"result": {
                "is_plant": {"binary": True},
                "is_healthy": {"binary": False, "probability": 0.1},
                "disease": {"suggestions": [
                    {"name": f"d{i}", "probability": p} for i, p in enumerate(confidences)
                ]},
            }})

        adapter = PlantIdAdapter(api_key="k", http_client=mock_client(handler), catalog=catalog)
        outcome = asyncio.run(adapter.diagnose([jpeg_bytes]))

        assert seen["path"] == "/v3/health_assessment"
        assert "classification" not in seen["body"]
        assert outcome.is_healthy is False
        assert [d.confidence for d in outcome.diagnoses] == [0.02, 0.9, 0.5, 0.3, 0.1]
        assert all(d.treatment == DEFAULT_TREATMENT for d in outcome.diagnoses)

    def test_no_health_signal_is_none(self, jpeg_bytes, catalog):
        handler = lambda request: httpx.Response(200, json={"result": {}})
        adapter = PlantIdAdapter(api_key="k", http_client=mock_client(handler), catalog=catalog)
        outcome = asyncio.run(adapter.diagnose([jpeg_bytes]))
        assert outcome.is_healthy is None
        assert outcome.diagnoses == []

    def test_failure_is_health_error(self, jpeg_bytes, catalog):
        handler = lambda request: httpx.Response(503, text="down")
        adapter = PlantIdAdapter(api_key="k", http_client=mock_client(handler), catalog=catalog)
        with pytest.raises(HealthUpstreamError) as exc_info:
            asyncio.run(adapter.diagnose([jpeg_bytes]))
        assert exc_info.value.status == 503


# =============================================================================
# Pl@ntNet
# =============================================================================
def plantnet_result(scientific, score, common=None, family="Rosaceae", genus="Rosa", image=None):
    result = {
        "score": score,
        "species": {
            "scientificNameWithoutAuthor": scientific,
            "scientificName": f"{scientific} L.",
            "commonNames": common or [],
            "family": {"scientificNameWithoutAuthor": family},
            "genus": {"scientificNameWithoutAuthor": genus},
        },
    }
    if image:
        result["images"] = [{"url": {"o": image + "?o", "m": image, "s": image + "?s"}}]
    return result


class TestPlantNet:
    def test_request_contract(self, jpeg_bytes, catalog):
        seen = {}

        def handler(request):
            seen["params"] = request.url.params
            seen["content"] = request.content
            seen["content_type"] = request.headers["content-type"]
            return httpx.Response(200, json={"results": [plantnet_result("Rosa chinensis", 0.8)]})

        adapter = PlantNetAdapter(api_key="pn-key", http_client=mock_client(handler), catalog=catalog)
        asyncio.run(adapter.identify([jpeg_bytes, jpeg_bytes]))

        assert seen["params"]["api-key"] == "pn-key"
        assert seen["params"]["include-related-images"] == "true"
        assert seen["params"]["no-reject"] == "false"
        assert seen["params"]["nb-results"] == "3"
        assert seen["params"]["lang"] == "en"
        assert seen["content_type"].startswith("multipart/form-data")
        assert seen["content"].count(b'name="images"') == 2
        assert seen["content"].count(b'name="organs"') == 2
        assert b"image/jpeg" in seen["content"]

    def test_mapping(self, jpeg_bytes, catalog):
        results = [
            plantnet_result("Rosa chinensis", 0.8, common=["China rose", "Bengal rose"],
                            image="https://bs.plantnet.org/image/m/abc"),
            plantnet_result("Rosa gallica", 0.1, common=["French rose"]),
            plantnet_result("Rosa canina", 0.05),
        ]
        handler = lambda request: httpx.Response(200, json={"results": results})
        adapter = PlantNetAdapter(api_key="k", http_client=mock_client(handler), catalog=catalog)
        outcome = asyncio.run(adapter.identify([jpeg_bytes]))

        china, gallica, canina = outcome.matches
        assert china.name == "China rose"
        assert china.scientific_name == "Rosa chinensis"
        assert china.description == "Also known as: China rose, Bengal rose."
        assert china.image_url == "https://bs.plantnet.org/image/m/abc"
        assert china.similar_images == []
        assert china.gci_url == "https://gci.example.org/plants/rosa-chinensis"
        assert china.care.water == "Water when top soil is dry"

        assert gallica.description == "Family: Rosaceae. Genus: Rosa."
        assert canina.name == "Rosa canina"
        assert canina.image_url == ""

    def test_species_not_found_is_not_a_plant(self, jpeg_bytes, catalog):
        handler = lambda request: httpx.Response(404, json={"statusCode": 404, "message": "Species not found"})
        adapter = PlantNetAdapter(api_key="k", http_client=mock_client(handler), catalog=catalog)
        outcome = asyncio.run(adapter.identify([jpeg_bytes]))
        assert outcome.species_detected is False
        assert outcome.matches == []

    def test_error_status(self, jpeg_bytes, catalog):
        handler = lambda request: httpx.Response(401, json={"message": "Invalid API key"})
        adapter = PlantNetAdapter(api_key="k", http_client=mock_client(handler), catalog=catalog)
        with pytest.raises(UpstreamError) as exc_info:
            asyncio.run(adapter.identify([jpeg_bytes]))
        assert exc_info.value.status == 401
        assert exc_info.value.message == "Pl@ntNet returned an error (401)."

    def test_missing_key(self, jpeg_bytes, catalog):
        adapter = PlantNetAdapter(api_key="", catalog=catalog)
        with pytest.raises(ConfigError) as exc_info:
            asyncio.run(adapter.identify([jpeg_bytes]))
        assert "PLANTNET_API_KEY" in exc_info.value.message


# =============================================================================
# Provider selection
# =============================================================================
class TestBuildAdapters:
    def test_combined_plant_id(self, catalog):
        identifier, health = build_adapters("plant_id", "plant_id", catalog=catalog)
        assert isinstance(identifier, PlantIdAdapter)
        assert health is identifier
        assert identifier.include_health is True

    def test_plantnet_with_plant_id_health(self, catalog):
        identifier, health = build_adapters("plantnet", "plant_id", catalog=catalog)
        assert isinstance(identifier, PlantNetAdapter)
        assert isinstance(health, PlantIdAdapter)

    def test_no_health(self, catalog):
        identifier, health = build_adapters("plant_id", "none", catalog=catalog)
        assert health is None
        assert identifier.include_health is False

    def test_unknown_provider(self, catalog):
        with pytest.raises(ValueError):
            build_adapters("leafsnap", "none", catalog=catalog)
