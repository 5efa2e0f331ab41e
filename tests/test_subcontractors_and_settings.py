from app.db.models import SystemSetting
from app.utils import system_settings


def _subcontractor(client, code="S01", name="Fast Freight", **extra):
    response = client.post("/api/v1/subcontractors", json={
        "subcontractor_code": code, "subcontractor_name": name, **extra,
    })
    assert response.status_code == 201, response.text
    return response.json()


def test_duplicate_subcontractor_code_conflicts(client):
    _subcontractor(client)
    response = client.post("/api/v1/subcontractors", json={"subcontractor_code": "S01", "subcontractor_name": "X"})
    assert response.status_code == 409


def test_list_flags_referenced_subcontractors(client):
    _subcontractor(client, "S01", "Fast Freight")
    _subcontractor(client, "S02", "Slow Freight")
    _subcontractor(client, "S03", "Gone Freight", is_active=False)
    client.post("/api/v1/evaluations", json={
        "contractor_name": "Fast Freight", "vehicle_plate": "70-1", "site": "Rayong",
        "evaluation_date": "2024-04-10", "driver_cooperation": 4, "vehicle_condition": 3, "damage_score": 3,
    })

    rows = client.get("/api/v1/subcontractors").json()["data"]
    assert {r["subcontractor_code"]: r["has_references"] for r in rows} == {"S01": True, "S02": False}

    everything = client.get("/api/v1/subcontractors", params={"show_inactive": True}).json()
    assert everything["pagination"]["total"] == 3


def test_subcontractor_options(client):
    _subcontractor(client, "S02", "Beta Transport", transport_type="international")
    _subcontractor(client, "S01", "Alpha Logistics")

    body = client.get("/api/v1/subcontractors/options").json()
    assert body["data"][0] == {
        "code": "S01", "name": "Alpha Logistics", "full_name": "S01 - Alpha Logistics", "transport_type": "domestic",
    }
    assert body["pagination"]["limit"] == 100

    body = client.get("/api/v1/subcontractors/options", params={"transport_type": "international"}).json()
    assert [o["code"] for o in body["data"]] == ["S02"]


def test_subcontractor_update_and_delete(client):
    sub = _subcontractor(client)
    _subcontractor(client, "S09", "Other")
    assert client.put(f"/api/v1/subcontractors/{sub['id']}", json={"subcontractor_code": "S09"}).status_code == 409
    assert client.put(f"/api/v1/subcontractors/{sub['id']}", json={"phone": "0811111111"}).json()["phone"] == "0811111111"
    assert client.delete(f"/api/v1/subcontractors/{sub['id']}").status_code == 200
    assert client.get(f"/api/v1/subcontractors/{sub['id']}").status_code == 404


def test_settings_fall_back_to_defaults(client):
    body = client.get("/api/v1/settings").json()
    assert {s["key"]: s["value"] for s in body} == {
        "allowance_rate": 150, "distance_rate": 1.2, "trip_fee": 30, "free_distance_threshold": 1500,
    }


def test_update_setting_clears_cache(client, db):
    assert system_settings.get_trip_fee(db) == 30
    response = client.put("/api/v1/settings/trip_fee", json={"value": 45})
    assert response.status_code == 200
    assert response.json()["updated_by"] == "admin"
    assert system_settings.get_trip_fee(db) == 45
    assert client.get("/api/v1/settings/trip_fee").json()["value"] == 45


def test_setting_validation(client):
    assert client.put("/api/v1/settings/trip_fee", json={"value": -1}).status_code == 400
    assert client.get("/api/v1/settings/unknown").status_code == 404
    assert client.put("/api/v1/settings/unknown", json={"value": 1}).status_code == 404


def test_invalid_stored_value_uses_default(db):
    db.add(SystemSetting(setting_key="distance_rate", value="abc"))
    db.commit()
    assert system_settings.get_distance_rate(db) == 1.2


def test_cached_value_is_served_until_cleared(db):
    system_settings.ensure_default_settings(db)
    assert system_settings.get_allowance_rate(db) == 150
    row = db.query(SystemSetting).filter(SystemSetting.setting_key == "allowance_rate").first()
    row.value = "175"
    db.commit()
    assert system_settings.get_allowance_rate(db) == 150
    system_settings.clear_settings_cache()
    assert system_settings.get_allowance_rate(db) == 175
