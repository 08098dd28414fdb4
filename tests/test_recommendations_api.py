"""
HTTP tests for the recommendation router.

Runs the FastAPI app in-process with TestClient; no server required.
"""
import asyncio

import httpx
import pytest
from fastapi.testclient import TestClient

from app.core import config
from app.main import app
from app.routers.recommendations import get_session_guard
from app.services.session_guard import SingleFlightGuard


SCENARIO_BLACK_SOIL = {
    "temperature": 28,
    "soil_type": "black",
    "npk": {"nitrogen": 45, "phosphorus": 35, "potassium": 50},
}


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def guard():
    """Isolated guard per test, injected through the router dependency."""
    test_guard = SingleFlightGuard()
    app.dependency_overrides[get_session_guard] = lambda: test_guard
    yield test_guard
    app.dependency_overrides.pop(get_session_guard, None)


class TestCreateRecommendation:

    def test_black_soil_scenario(self, client, guard):
        response = client.post("/api/recommendations", json=SCENARIO_BLACK_SOIL)

        assert response.status_code == 200
        data = response.json()
        assert [c["name"] for c in data["crops"]] == ["Rice", "Cotton", "Wheat"]
        assert [c["suitability"] for c in data["crops"]] == [95, 90, 85]
        assert data["crops"][0]["growth_period"] == "120-140 days"
        assert [f["name"] for f in data["fertilizers"]] == [
            "Urea", "DAP (Di-Ammonium Phosphate)", "Vermicompost"
        ]
        assert data["fertilizers"][-1]["category"] == "organic"
        assert data["fertilizers"][-1]["type"] == "Organic Fertilizer"

    def test_soil_type_is_normalized(self, client, guard):
        payload = dict(SCENARIO_BLACK_SOIL, soil_type=" Black ")

        response = client.post("/api/recommendations", json=payload)

        assert response.status_code == 200
        assert "black" in response.json()["crops"][0]["reason"]

    def test_missing_temperature(self, client, guard):
        payload = dict(SCENARIO_BLACK_SOIL, temperature=0)

        response = client.post("/api/recommendations", json=payload)

        assert response.status_code == 422
        assert response.json()["detail"] == {
            "code": "missing_temperature",
            "message": "Please enter the current temperature",
        }

    def test_only_first_error_reported(self, client, guard):
        response = client.post("/api/recommendations", json={})

        assert response.status_code == 422
        assert response.json()["detail"]["code"] == "missing_temperature"

    def test_unknown_soil_type(self, client, guard):
        payload = dict(SCENARIO_BLACK_SOIL, soil_type="gravel")

        response = client.post("/api/recommendations", json=payload)

        assert response.status_code == 422
        assert response.json()["detail"]["code"] == "missing_soil_type"

    def test_missing_npk(self, client, guard):
        payload = {"temperature": 22, "soil_type": "sandy"}

        response = client.post("/api/recommendations", json=payload)

        assert response.status_code == 422
        assert response.json()["detail"]["code"] == "missing_npk"

    def test_negative_npk_rejected_by_schema(self, client, guard):
        payload = dict(SCENARIO_BLACK_SOIL, npk={"nitrogen": -1, "phosphorus": 10, "potassium": 10})

        response = client.post("/api/recommendations", json=payload)

        assert response.status_code == 422
        assert isinstance(response.json()["detail"], list)

    def test_empty_crop_list_is_success(self, client, guard):
        payload = {"temperature": 55, "soil_type": "loamy", "npk": {"nitrogen": 60, "phosphorus": 60, "potassium": 60}}

        response = client.post("/api/recommendations", json=payload)

        assert response.status_code == 200
        assert response.json()["crops"] == []
        assert [f["name"] for f in response.json()["fertilizers"]] == ["Vermicompost"]

    def test_pending_session_rejected(self, client, guard):
        """A second request while the session is still pending gets 409."""
        guard.try_acquire("farmer-1")

        response = client.post(
            "/api/recommendations",
            json=SCENARIO_BLACK_SOIL,
            headers={config.SESSION_HEADER: "farmer-1"},
        )

        assert response.status_code == 409
        assert guard.is_pending("farmer-1")

    def test_other_session_not_blocked(self, client, guard):
        guard.try_acquire("farmer-1")

        response = client.post(
            "/api/recommendations",
            json=SCENARIO_BLACK_SOIL,
            headers={config.SESSION_HEADER: "farmer-2"},
        )

        assert response.status_code == 200

    def test_session_released_after_request(self, client, guard):
        headers = {config.SESSION_HEADER: "farmer-1"}

        ok = client.post("/api/recommendations", json=SCENARIO_BLACK_SOIL, headers=headers)
        failed = client.post("/api/recommendations", json={"temperature": 0}, headers=headers)

        assert ok.status_code == 200
        assert failed.status_code == 422
        assert not guard.is_pending("farmer-1")

    @pytest.mark.parametrize("temperature", ["", "   "])
    def test_blank_temperature_reported_as_missing(self, client, guard, temperature):
        """An empty form field gets the corrective prompt, not a parse error."""
        payload = dict(SCENARIO_BLACK_SOIL, temperature=temperature)

        response = client.post("/api/recommendations", json=payload)

        assert response.status_code == 422
        assert response.json()["detail"]["code"] == "missing_temperature"

    def test_overlapping_requests_during_delay(self, guard, monkeypatch):
        """The session slot stays held for the whole presentation delay."""
        monkeypatch.setattr(config, "PRESENTATION_DELAY_SECONDS", 0.3)

        async def fire():
            transport = httpx.ASGITransport(app=app)
            async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
                same = [
                    ac.post(
                        "/api/recommendations",
                        json=SCENARIO_BLACK_SOIL,
                        headers={config.SESSION_HEADER: "farmer-1"},
                    )
                    for _ in range(3)
                ]
                other = ac.post(
                    "/api/recommendations",
                    json=SCENARIO_BLACK_SOIL,
                    headers={config.SESSION_HEADER: "farmer-2"},
                )
                return await asyncio.gather(*same, other)

        *same_session, other_session = asyncio.run(fire())

        codes = sorted(r.status_code for r in same_session)
        assert codes == [200, 409, 409]
        assert other_session.status_code == 200
        assert not guard.is_pending("farmer-1")
        assert not guard.is_pending("farmer-2")

    def test_presentation_delay(self, client, guard, monkeypatch):
        monkeypatch.setattr(config, "PRESENTATION_DELAY_SECONDS", 0.01)

        response = client.post("/api/recommendations", json=SCENARIO_BLACK_SOIL)

        assert response.status_code == 200
        assert not guard.is_pending("testclient")


class TestReferenceEndpoints:

    def test_soil_types(self, client):
        response = client.get("/api/recommendations/soil-types")

        assert response.status_code == 200
        items = response.json()["items"]
        assert [i["value"] for i in items] == ["loamy", "clayey", "black", "sandy", "red"]
        assert items[0]["label"] == "Loamy Soil"

    def test_current_conditions(self, client):
        response = client.get("/api/recommendations/current-conditions")

        assert response.status_code == 200
        data = response.json()
        assert data["temperature"] == 28
        assert data["soil_type"] is None
        assert data["npk"] == {"nitrogen": 45, "phosphorus": 35, "potassium": 50}

    def test_crop_rules_listing(self, client):
        response = client.get("/api/recommendations/crop-rules")

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 6
        assert [r["crop_name"] for r in data["items"]] == [
            "Rice", "Wheat", "Cotton", "Potato", "Groundnut", "Millets"
        ]
        cotton = data["items"][2]
        assert cotton["position"] == 3
        assert "potassium > 40" in cotton["conditions"]
        assert cotton["soil_scores"] == {"black": 90, "red": 90, "loamy": 85}
        groundnut = data["items"][4]
        assert groundnut["required_soil"] == "sandy"
        assert groundnut["soil_scores"] == {}

    def test_health(self, client):
        assert client.get("/health").json() == {"status": "ok"}
