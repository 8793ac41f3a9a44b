import logging
import threading

import pytest
from fastapi.testclient import TestClient

from immunization.coordinator import ViewCoordinator
from immunization import data
from immunization.data import LoadError
from immunization_api import main
from immunization_api.main import app


@pytest.fixture
def client(sample_records, geojson):
    app.state.coordinator = ViewCoordinator(sample_records, geojson)
    yield TestClient(app)
    app.state.coordinator = None


@pytest.fixture
def fresh_state():
    app.state.coordinator = None
    app.state.load_error = None
    yield app
    app.state.coordinator = None
    app.state.load_error = None


def test_meta_endpoints(client):
    assert client.get("/meta/regions").json() == {"values": ["Africa", "Americas", "Europe"]}
    assert client.get("/meta/years").json() == {"years": [2024, 2023, 2022]}
    assert client.get("/meta/countries").json()["values"][0] == "Austria"


def test_views_payload(client):
    body = client.get("/views").json()
    assert body["metrics"] == {"total_records": 6, "global_average": "80.9", "below_target_count": 2, "target_rate": 95.0}
    assert body["table"]["rows"][0]["rate_display"] == "45.0%"
    assert body["visual"]["label"] == "(Latest Available)"
    assert set(body["visual"]["by_iso3"]) == {"LAN", "BRA", "TCD", "AUT"}


def test_actions_update_views(client):
    body = client.post("/actions", json={"type": "set_search", "value": "chad"}).json()
    assert [r["country_name"] for r in body["table"]["rows"]] == ["Chad", "Chad"]

    body = client.post("/actions", json={"type": "add_selection", "value": "Chad"}).json()
    assert body["comparison"]["selected"] == ["Chad"]

    body = client.post("/actions", json={"type": "set_year", "target": "visual", "value": "2023"}).json()
    assert body["visual"]["label"] == "(2023)"


def test_sort_action_validation(client):
    assert client.post("/actions", json={"type": "sort_by", "sort_key": "year"}).status_code == 200
    assert client.post("/actions", json={"type": "sort_by"}).status_code == 422
    assert client.post("/actions", json={"type": "sort_by", "sort_key": "iso3"}).status_code == 422


def test_map_and_charts(client):
    body = client.get("/map").json()
    assert body["label"] == "(Latest Available)"
    assert body["features"][0]["iso3"] == "LAN"
    charts = client.get("/charts").json()
    assert charts["comparison"] is None
    assert charts["bar"] is not None


def test_export_returns_csv_attachment(client):
    response = client.get("/export")
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert "measles_immunization_data_" in response.headers["content-disposition"]
    assert response.text.startswith("Country Name,Region,Vaccination Rate (%),Year\n")


def test_load_failure_returns_503(monkeypatch, fresh_state):
    def fail(cls, data_dir=None):
        raise LoadError("countries.geojson", "missing")

    monkeypatch.setattr(main.ViewCoordinator, "from_sources", classmethod(fail))
    response = TestClient(app).get("/views")
    assert response.status_code == 503
    assert response.json()["type"] == "LoadError"


def test_failed_load_is_attempted_and_logged_once(monkeypatch, tmp_path, caplog, fresh_state):
    monkeypatch.setattr(data, "DATA_DIR", tmp_path)
    calls = []
    load = ViewCoordinator.from_sources.__func__

    def counting(cls, data_dir=None):
        calls.append(data_dir)
        return load(cls, data_dir)

    monkeypatch.setattr(main.ViewCoordinator, "from_sources", classmethod(counting))
    test_client = TestClient(app)
    with caplog.at_level(logging.ERROR):
        codes = [test_client.get("/views").status_code for _ in range(3)]
        codes.append(test_client.get("/export").status_code)

    assert codes == [503, 503, 503, 503]
    assert len(calls) == 1
    assert len([r for r in caplog.records if r.levelno >= logging.ERROR]) == 1


def test_concurrent_first_requests_build_one_coordinator(monkeypatch, sample_records, fresh_state):
    calls = []
    barrier = threading.Barrier(8)

    def build(cls, data_dir=None):
        calls.append(data_dir)
        return cls(sample_records)

    monkeypatch.setattr(main.ViewCoordinator, "from_sources", classmethod(build))

    results = []

    def worker():
        barrier.wait()
        results.append(main.coordinator_for(app))

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(calls) == 1
    assert len({id(c) for c in results}) == 1
