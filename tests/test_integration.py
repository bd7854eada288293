import httpx
import pytest
from fastapi.testclient import TestClient

from conftest import FakeDirectory, FakeOSRM, MemoryScheduleStore
from nurse_scheduler.api.dependencies import (
    directory_dependency,
    geocoder_dependency,
    routing_client_dependency,
    schedule_store_dependency,
)
from nurse_scheduler.main import create_app
from nurse_scheduler.services.geocoding.nominatim_client import NominatimClient


def _nominatim() -> NominatimClient:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.params.get("q") == "1300 8th St, Wichita Falls, TX":
            return httpx.Response(200, json=[{"lat": "33.9101", "lon": "-98.4937", "display_name": "8th Street"}])
        return httpx.Response(200, json=[])

    return NominatimClient(base_url="http://geo.test", transport=httpx.MockTransport(handler))


@pytest.fixture
def api_client(directory: FakeDirectory, store: MemoryScheduleStore, fake_osrm: FakeOSRM) -> TestClient:
    app = create_app()
    app.dependency_overrides[directory_dependency] = lambda: directory
    app.dependency_overrides[schedule_store_dependency] = lambda: store
    app.dependency_overrides[routing_client_dependency] = fake_osrm.client
    app.dependency_overrides[geocoder_dependency] = _nominatim
    return TestClient(app)


def test_health(api_client: TestClient):
    response = api_client.get("/api/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_nurse_listing_and_lookup(api_client: TestClient):
    nurses = api_client.get("/api/nurses").json()
    first = api_client.get("/api/nurse").json()
    missing = api_client.get("/api/nurse", params={"id": "404"})

    assert [nurse["name"] for nurse in nurses] == ["Alice Nurse", "Bob Nurse"]
    assert first["id"] == "1"
    assert missing.status_code == 404
    assert missing.json()["detail"]["kind"] == "not_found"


def test_patients_for_nurse(api_client: TestClient):
    response = api_client.get("/api/patients", params={"nurse_id": "1", "limit": 2})

    assert response.status_code == 200
    assert [patient["id"] for patient in response.json()] == ["s1", "s2"]


def test_schedule_is_generated_once_then_loaded(api_client: TestClient, store: MemoryScheduleStore):
    first = api_client.get("/api/schedule", params={"nurse_id": "1", "date": "2026-10-19"})
    second = api_client.get("/api/schedule", params={"nurse_id": "1", "date": "2026-10-19"})

    assert first.status_code == 200
    assert first.json()["generated"] is True
    assert second.json()["generated"] is False
    assert second.json()["state"] == "loaded"
    assert store.saves == 1
    body = second.json()["schedule"]
    assert body["id"] == "1_2026-10-19"
    assert body["patient_visit_order"] == ["s1", "s3"]
    assert body["route_coordinates"][0] == [33.9137, -98.4934]


def test_schedule_listings_and_status(api_client: TestClient):
    api_client.post("/api/schedule/generate", params={"nurse_id": "1", "date": "2026-10-19"})
    api_client.post("/api/schedule/generate", params={"nurse_id": "2", "date": "2026-10-20"})

    ranged = api_client.get("/api/schedules/1/range", params={"start_date": "2026-10-01", "end_date": "2026-10-31"})
    by_date = api_client.get("/api/schedules/date", params={"date": "2026-10-20"})
    updated = api_client.put("/api/schedules/1_2026-10-19/status", json={"status": "CONFIRMED"})
    bad_range = api_client.get("/api/schedules/1/range", params={"start_date": "2026-10-31", "end_date": "2026-10-01"})

    assert [item["nurse_id"] for item in ranged.json()["schedules"]] == ["1"]
    assert [item["nurse_id"] for item in by_date.json()["schedules"]] == ["2"]
    assert updated.json()["status"] == "CONFIRMED"
    assert bad_range.status_code == 400


def test_generate_all(api_client: TestClient, directory: FakeDirectory):
    directory.failing_stops.add("2")

    response = api_client.post("/api/schedules/generate-all", params={"date": "2026-10-19"})

    assert response.status_code == 200
    assert response.json()["generated"] == 1
    assert list(response.json()["failures"]) == ["2"]


def test_route_endpoint(api_client: TestClient):
    ok = api_client.post("/api/route", json={"points": [[33.9, -98.5], [33.95, -98.55], None]})
    too_few = api_client.post("/api/route", json={"points": [[33.9, -98.5], None]})

    assert ok.status_code == 200
    assert ok.json()["distance_meters"] >= 0
    assert ok.json()["excluded"] == ["point_2"]
    assert too_few.status_code == 400
    assert too_few.json()["detail"]["kind"] == "invalid_input"


def test_engine_failure_maps_to_bad_gateway():
    app = create_app()
    failing = FakeOSRM(lambda request: httpx.Response(500, json={"code": "InvalidQuery", "message": "boom"}))
    app.dependency_overrides[routing_client_dependency] = failing.client
    client = TestClient(app)

    response = client.post("/api/route", json={"points": [[33.9, -98.5], [33.95, -98.55]]})

    assert response.status_code == 502
    assert response.json()["detail"]["kind"] == "service_error"


def test_geocoding_endpoints(api_client: TestClient):
    single = api_client.post("/api/geocode", json={"address": "1300 8th St, Wichita Falls, TX"})
    batch = api_client.post(
        "/api/geocode/batch",
        json={"addresses": ["1300 8th St, Wichita Falls, TX", "nowhere"]},
    )

    assert single.status_code == 200
    assert single.json()["latitude"] == 33.9101
    assert batch.status_code == 404
    assert batch.json()["detail"]["context"]["failed_addresses"] == ["nowhere"]


def test_map_view_excludes_stop_and_recalculates(api_client: TestClient):
    response = api_client.get("/api/map/1", params={"date": "2026-10-19", "exclude": ["s3"]})

    assert response.status_code == 200
    body = response.json()
    assert body["included"] == ["s1", "s2"]
    assert body["stages"] == {
        "load_worker": True,
        "load_stops": True,
        "reconcile_schedule": True,
        "calculate_route": True,
    }
    kinds = [feature["properties"]["kind"] for feature in body["geojson"]["features"]]
    assert kinds == ["worker", "stop", "route"]
    assert body["summary"]["stop_count"] == 2
    assert body["summary"]["visit_minutes"] == 60


def test_map_view_unknown_nurse(api_client: TestClient):
    response = api_client.get("/api/map/404")

    assert response.status_code == 404


def test_map_view_repeated_exclude_and_single_exclusion_notice(api_client: TestClient):
    response = api_client.get("/api/map/1", params={"date": "2026-10-19", "exclude": ["s1", "s1"]})

    assert response.status_code == 200
    body = response.json()
    assert body["included"] == ["s2", "s3"]
    assert len(body["warnings"]) == len(set(body["warnings"]))
    route_notices = [warning for warning in body["warnings"] if warning.startswith("Route calculated")]
    assert route_notices == ["Route calculated, but 1 patient(s) were excluded due to missing coordinates"]
