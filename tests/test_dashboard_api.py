"""Tests for the operator HTTP API."""

from datetime import timezone

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from flightwatch.config import AppConfig
from flightwatch.feed import FeedController
from flightwatch.interfaces import BackendError
from flightwatch.models import FilterCriteria

from services.dashboard.app import app_state, create_app
from tests.helpers import make_record, settle


@pytest_asyncio.fixture
async def controller(source, clock, throttle):
    controller = FeedController(source, throttle=throttle, tz=timezone.utc, clock=clock)
    yield controller
    await controller.close()
    app_state.controller = None


@pytest_asyncio.fixture
async def client(controller):
    # ASGITransport skips the lifespan, so the controller is injected directly
    app = create_app(config=AppConfig(), controller=controller)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client


class TestAnomalies:
    """Tests for GET /api/anomalies."""

    @pytest.mark.asyncio
    async def test_lists_filtered_records(self, client, controller, source) -> None:
        """Should return records matching the filter with derived fields."""
        source.results["live"] = [
            make_record("A", 1753099000, callsign="ELY027", score=91, triggers=["Rules", "XGBoost"]),
            make_record("B", 1753098000, score=40),
        ]
        await controller.start()

        response = await client.get("/api/anomalies", params={"min_score": 70})

        assert response.status_code == 200
        body = response.json()
        assert body["mode"] == "historical"
        assert body["count"] == 1
        assert body["total_count"] == 2
        item = body["anomalies"][0]
        assert item["title"] == "ELY027"
        assert item["tier"] == "critical"
        assert item["version"] == "v3"
        assert item["triggers"] == ["Rules", "XGBoost"]

    @pytest.mark.asyncio
    async def test_combination_layers(self, client, controller, source) -> None:
        """Should pass repeated layer parameters as required layers."""
        source.results["live"] = [
            make_record("A", 1, triggers=["Rules", "XGBoost"]),
            make_record("B", 2, triggers=["Rules", "XGBoost", "Transformer"]),
        ]
        await controller.start()

        response = await client.get(
            "/api/anomalies",
            params=[("trigger", "Combination"), ("layers", "XGBoost"), ("layers", "Transformer")],
        )

        assert [a["flight_id"] for a in response.json()["anomalies"]] == ["B"]

    @pytest.mark.asyncio
    async def test_rejects_out_of_range_score(self, client, controller) -> None:
        """Should reject a minimum score above 100."""
        await controller.start()

        response = await client.get("/api/anomalies", params={"min_score": 150})

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_unavailable_without_controller(self, client) -> None:
        """Should answer 503 before the controller exists."""
        app_state.controller = None

        response = await client.get("/api/anomalies")

        assert response.status_code == 503

    @pytest.mark.asyncio
    async def test_query_params_leave_saved_criteria(self, client, controller, source) -> None:
        """Should apply query parameters to one request without storing them."""
        source.results["live"] = [make_record("A", 1753099000, score=91), make_record("B", 1753098000, score=40)]
        await controller.start()

        filtered = (await client.get("/api/anomalies", params={"min_score": 70})).json()
        unfiltered = (await client.get("/api/anomalies")).json()

        assert filtered["count"] == 1
        assert unfiltered["count"] == 2
        assert controller.criteria == FilterCriteria()


class TestCriteria:
    """Tests for GET and PUT /api/criteria."""

    @pytest.mark.asyncio
    async def test_put_stores_criteria(self, client, controller, source) -> None:
        """Should store the selection and apply it to later list requests."""
        source.results["live"] = [make_record("A", 1753099000, score=91), make_record("B", 1753098000, score=40)]
        await controller.start()

        response = await client.put("/api/criteria", json={"min_score": 70, "query": " a "})

        assert response.status_code == 200
        assert response.json()["min_score"] == 70
        assert controller.criteria.query == "a"
        body = (await client.get("/api/anomalies")).json()
        assert [a["flight_id"] for a in body["anomalies"]] == ["A"]
        assert (await client.get("/api/criteria")).json()["min_score"] == 70

    @pytest.mark.asyncio
    async def test_query_params_override_saved_criteria(self, client, controller, source) -> None:
        """Should let query parameters override the saved selection field by field."""
        source.results["live"] = [
            make_record("A", 1753099000, score=91, triggers=["Rules"]),
            make_record("B", 1753098000, score=40, triggers=["Rules"]),
            make_record("C", 1753097000, score=95, triggers=["XGBoost"]),
        ]
        await controller.start()
        await client.put("/api/criteria", json={"min_score": 70})

        body = (await client.get("/api/anomalies", params={"trigger": "Rules"})).json()

        assert [a["flight_id"] for a in body["anomalies"]] == ["A"]
        assert controller.criteria.trigger_layer == "All"

    @pytest.mark.asyncio
    async def test_rejects_unknown_field(self, client, controller) -> None:
        """Should reject criteria fields that do not exist."""
        await controller.start()

        response = await client.put("/api/criteria", json={"min_scor": 70})

        assert response.status_code == 422
        assert controller.criteria == FilterCriteria()


class TestSelection:
    """Tests for POST /api/select."""

    @pytest.mark.asyncio
    async def test_selects_record(self, client, controller, source) -> None:
        """Should select a record of the working set."""
        source.results["live"] = [make_record("A", 1753099000)]
        await controller.start()

        response = await client.post("/api/select", json={"flight_id": "A", "timestamp": 1753099000})

        assert response.status_code == 200
        assert controller.selected_record.flight_id == "A"

    @pytest.mark.asyncio
    async def test_unknown_record(self, client, controller) -> None:
        """Should answer 404 for a record outside the working set."""
        await controller.start()

        response = await client.post("/api/select", json={"flight_id": "Z", "timestamp": 1})

        assert response.status_code == 404


class TestModeEndpoints:
    """Tests for the mode, date and rule endpoints."""

    @pytest.mark.asyncio
    async def test_switch_mode_clears_working_set(self, client, controller, source) -> None:
        """Should report an empty, loading working set right after the switch."""
        source.results["live"] = [make_record("A", 1753099000)]
        await controller.start()
        source.gate("research")

        response = await client.put("/api/mode", json={"mode": "research"})

        body = response.json()
        assert body["mode"] == "research"
        assert body["record_count"] == 0
        assert body["is_loading"] is True

    @pytest.mark.asyncio
    async def test_unknown_mode(self, client, controller) -> None:
        """Should reject unknown modes."""
        await controller.start()

        response = await client.put("/api/mode", json={"mode": "live-tv"})

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_date_endpoints(self, client, controller, source) -> None:
        """Should select and shift the day and re-fetch it."""
        await controller.start()

        response = await client.put("/api/date", json={"date": "2025-07-08"})
        assert response.json()["selected_date"] == "2025-07-08"

        response = await client.post("/api/date/shift", json={"days": 1})
        assert response.json()["selected_date"] == "2025-07-09"

        await settle()
        assert source.calls_to("live")[-1] == (1752019200, 1752105599)

    @pytest.mark.asyncio
    async def test_rule_detail_flow(self, client, controller, source, rules) -> None:
        """Should show the catalog, then a rule's flights, then the catalog again."""
        source.results["rules"] = rules
        source.results["rule_flights"] = [make_record("SEVEN", 7)]
        await controller.start()

        state = (await client.put("/api/mode", json={"mode": "rule-detail"})).json()
        assert state["shows_catalog"] is True
        await settle()

        catalog = (await client.get("/api/rules")).json()
        assert [r["id"] for r in catalog["rules"]] == [4, 7]

        state = (await client.put("/api/rule", json={"rule_id": 7})).json()
        assert state["selected_rule"] == 7
        await settle()
        anomalies = (await client.get("/api/anomalies")).json()
        assert [a["flight_id"] for a in anomalies["anomalies"]] == ["SEVEN"]

        state = (await client.delete("/api/rule")).json()
        assert state["shows_catalog"] is True
        assert state["record_count"] == 0

    @pytest.mark.asyncio
    async def test_rule_outside_rule_detail(self, client, controller) -> None:
        """Should answer 409 when rule-detail mode is not active."""
        await controller.start()

        response = await client.put("/api/rule", json={"rule_id": 4})

        assert response.status_code == 409


class TestExternalAndRefresh:
    """Tests for PUT /api/external and POST /api/refresh."""

    @pytest.mark.asyncio
    async def test_external_records_mirrored(self, client, controller) -> None:
        """Should accept valid records, skip invalid ones and mirror them."""
        await controller.start()
        await client.put("/api/mode", json={"mode": "externally-supplied"})

        response = await client.put(
            "/api/external",
            json={"records": [{"flight_id": "X", "timestamp": 5}, {"callsign": "no id"}]},
        )

        assert response.json() == {"accepted": 1, "skipped": 1, "mirrored": True}
        assert [r.flight_id for r in controller.store.records] == ["X"]

    @pytest.mark.asyncio
    async def test_external_records_remembered_in_other_modes(self, client, controller) -> None:
        """Should remember the collection without mirroring it."""
        await controller.start()

        response = await client.put("/api/external", json={"records": [{"flight_id": "X", "timestamp": 5}]})

        assert response.json()["mirrored"] is False
        assert all(r.flight_id != "X" for r in controller.store.records)

    @pytest.mark.asyncio
    async def test_refresh(self, client, controller, source) -> None:
        """Should re-run the active fetch."""
        await controller.start()

        response = await client.post("/api/refresh")
        await settle()

        assert response.json() == {"mode": "historical", "dispatched": True}
        assert len(source.calls_to("live")) == 2


class TestHealth:
    """Tests for GET /api/health."""

    @pytest.mark.asyncio
    async def test_healthy(self, client, controller) -> None:
        """Should report a healthy controller."""
        await controller.start()

        body = (await client.get("/api/health")).json()

        assert body["status"] == "healthy"
        assert body["mode"] == "historical"
        assert body["alerts"]["cooldown_seconds"] == 10

    @pytest.mark.asyncio
    async def test_degraded_after_failure(self, client, controller, source) -> None:
        """Should report degraded while the last search failed."""
        source.results["live"] = BackendError("backend down", status=502)
        await controller.start()

        body = (await client.get("/api/health")).json()

        assert body["status"] == "degraded"
        assert "backend down" in body["last_error"]

    @pytest.mark.asyncio
    async def test_starting(self, client) -> None:
        """Should report starting before the controller exists."""
        app_state.controller = None

        body = (await client.get("/api/health")).json()

        assert body["status"] == "starting"
