import pytest

from app.utils import system_settings
from app.utils.trip_calculations import trip_days, total_allowance


@pytest.fixture
def trip_refs(make_customer, make_vehicle, make_driver, client):
    customer = make_customer(cm_mileage=120)
    vehicle = make_vehicle()
    driver = make_driver(license_number="DL-9", name="Prasert")
    item = client.post("/api/v1/items", json={"pt_part": "P-1", "pt_desc1": "Steel coil", "pt_um": "PCS"}).json()
    return {"customer": customer, "vehicle": vehicle, "driver": driver, "item": item}


def _trip(refs, **extra):
    payload = {
        "vehicle_id": refs["vehicle"]["id"],
        "customer_id": refs["customer"]["id"],
        "departure_date": "2024-06-01",
        "departure_time": "08:00",
    }
    payload.update(extra)
    return payload


def test_trip_days_ignore_time_of_day():
    from datetime import date
    assert trip_days(date(2024, 6, 1), date(2024, 6, 4)) == 3
    assert trip_days(date(2024, 6, 4), date(2024, 6, 1)) == 0
    assert trip_days(date(2024, 6, 1), None) == 0
    assert total_allowance(0, 150) == 0
    assert total_allowance(2, 150) == 300


def test_create_trip_computes_allowance_and_default_fee(client, trip_refs):
    response = client.post("/api/v1/trip-records", json=_trip(
        trip_refs, return_date="2024-06-03", return_time="18:00",
        driver_license="DL-9",
        trip_items=[{"item_id": trip_refs["item"]["id"], "quantity": 5, "unit_price": 10, "total_price": 50}],
    ))
    assert response.status_code == 201, response.text
    trip = response.json()
    assert trip["days"] == 2
    assert trip["allowance_rate"] == 150
    assert trip["total_allowance"] == 300
    assert trip["trip_fee"] == 30
    assert trip["driver_name"] == "Prasert"
    assert trip["vehicle"]["license_plate"] == "70-1234"
    assert trip["trip_items"][0]["item"]["pt_part"] == "P-1"


def test_allowance_uses_configured_rate(client, db, trip_refs):
    system_settings.set_setting(db, system_settings.ALLOWANCE_RATE, 200)
    trip = client.post("/api/v1/trip-records", json=_trip(
        trip_refs, return_date="2024-06-02", return_time="10:00", trip_fee=0,
    )).json()
    assert trip["total_allowance"] == 200
    assert trip["trip_fee"] == 0


def test_return_date_requires_return_time(client, trip_refs):
    response = client.post("/api/v1/trip-records", json=_trip(trip_refs, return_date="2024-06-02"))
    assert response.status_code == 400


def test_unknown_references_return_404(client, trip_refs):
    assert client.post("/api/v1/trip-records", json=_trip(trip_refs, vehicle_id=999)).status_code == 404
    assert client.post("/api/v1/trip-records", json=_trip(trip_refs, customer_id=999)).status_code == 404
    assert client.post("/api/v1/trip-records", json=_trip(trip_refs, driver_license="NOPE")).status_code == 404


def test_bad_time_format_is_rejected(client, trip_refs):
    response = client.post("/api/v1/trip-records", json=_trip(trip_refs, departure_time="8am"))
    assert response.status_code == 422


def test_update_keeps_stored_rate_and_replaces_items(client, db, trip_refs):
    trip = client.post("/api/v1/trip-records", json=_trip(
        trip_refs, trip_items=[{"item_id": trip_refs["item"]["id"], "quantity": 1}],
    )).json()
    system_settings.set_setting(db, system_settings.ALLOWANCE_RATE, 500)

    response = client.put(f"/api/v1/trip-records/{trip['id']}", json={
        "return_date": "2024-06-04", "return_time": "09:00",
        "trip_items": [
            {"item_id": trip_refs["item"]["id"], "quantity": 2},
            {"item_id": trip_refs["item"]["id"], "quantity": 3},
        ],
    })
    assert response.status_code == 200
    updated = response.json()
    assert updated["days"] == 3
    assert updated["allowance_rate"] == 150
    assert updated["total_allowance"] == 450
    assert sorted(i["quantity"] for i in updated["trip_items"]) == [2, 3]


def test_list_filters_and_sorting(client, trip_refs):
    client.post("/api/v1/trip-records", json=_trip(trip_refs, departure_date="2024-06-01", document_number="DOC-1"))
    client.post("/api/v1/trip-records", json=_trip(trip_refs, departure_date="2024-06-10", document_number="DOC-2"))
    client.post("/api/v1/trip-records", json=_trip(trip_refs, departure_date="2024-07-01", document_number="DOC-3"))

    body = client.get("/api/v1/trip-records", params={"start_date": "01/06/2024", "end_date": "2024-06-30"}).json()
    assert [t["document_number"] for t in body["data"]] == ["DOC-2", "DOC-1"]
    assert body["pagination"]["limit"] == 20

    body = client.get("/api/v1/trip-records", params={"sort_by": "document_number", "sort_order": "asc"}).json()
    assert [t["document_number"] for t in body["data"]] == ["DOC-1", "DOC-2", "DOC-3"]

    body = client.get("/api/v1/trip-records", params={"search": "siam"}).json()
    assert body["pagination"]["total"] == 3

    assert client.get("/api/v1/trip-records", params={"start_date": "not-a-date"}).status_code == 400


def test_validate_document_number(client, trip_refs):
    trip = client.post("/api/v1/trip-records", json=_trip(trip_refs, document_number="DOC-9")).json()

    found = client.get("/api/v1/trip-records/validate-document", params={"document_number": "DOC-9"}).json()
    assert found["exists"] is True
    assert found["record"]["id"] == trip["id"]

    excluded = client.get("/api/v1/trip-records/validate-document",
                          params={"document_number": "DOC-9", "exclude_id": trip["id"]}).json()
    assert excluded == {"exists": False, "record": None}


def test_report_by_vehicle_sums_costs(client, trip_refs):
    client.post("/api/v1/trip-records", json=_trip(
        trip_refs, actual_distance=100, fuel_cost=500, toll_fee=60, trip_fee=30,
        return_date="2024-06-02", return_time="12:00",
    ))
    client.post("/api/v1/trip-records", json=_trip(
        trip_refs, actual_distance=200, repair_cost=1000, distance_check_fee=20, trip_fee=30,
    ))

    report = client.get("/api/v1/trip-records/reports/by-vehicle", params={
        "vehicle_id": trip_refs["vehicle"]["id"], "start_date": "01/06/2024", "end_date": "30/06/2024",
    }).json()
    summary = report["summary"]
    assert summary["total_trips"] == 2
    assert summary["total_distance"] == 300
    assert summary["average_distance"] == 150
    assert summary["costs"] == {
        "allowance": 150, "fuel": 500, "toll": 60, "repair": 1000, "distance_check": 20, "trip_fee": 60,
    }
    assert summary["grand_total"] == 1790
    assert len(report["data"]) == 2


def test_estimate_cost_uses_round_trip(client, trip_refs):
    estimate = client.get("/api/v1/trip-records/estimate-cost",
                          params={"customer_id": trip_refs["customer"]["id"]}).json()
    assert estimate["estimated_distance"] == 240
    assert estimate["distance_rate"] == 1.2
    assert estimate["distance_cost"] == 288
    assert estimate["trip_fee"] == 30
    assert estimate["free_distance_threshold"] == 1500


def test_delete_trip_removes_items(client, db, trip_refs):
    from app.db.models import TripItem
    trip = client.post("/api/v1/trip-records", json=_trip(
        trip_refs, trip_items=[{"item_id": trip_refs["item"]["id"], "quantity": 1}],
    )).json()
    assert client.delete(f"/api/v1/trip-records/{trip['id']}").status_code == 200
    assert db.query(TripItem).count() == 0
    assert client.get(f"/api/v1/trip-records/{trip['id']}").status_code == 404


def test_update_cannot_null_required_fields(client, trip_refs):
    trip = client.post("/api/v1/trip-records", json=_trip(trip_refs)).json()
    assert client.put(f"/api/v1/trip-records/{trip['id']}", json={"departure_date": None}).status_code == 422
    assert client.put(f"/api/v1/trip-records/{trip['id']}", json={"vehicle_id": None}).status_code == 422

    response = client.put(f"/api/v1/trip-records/{trip['id']}", json={"remark": None, "toll_fee": 60})
    assert response.status_code == 200
    assert response.json()["departure_date"] == "2024-06-01"
