def _item(client, part="P-1", **extra):
    response = client.post("/api/v1/items", json={"pt_part": part, "pt_desc1": "Coil", "pt_um": "PCS", **extra})
    assert response.status_code == 201, response.text
    return response.json()


def test_duplicate_part_conflicts(client):
    _item(client, "P-1")
    response = client.post("/api/v1/items", json={"pt_part": "P-1", "pt_desc1": "Other", "pt_um": "KG"})
    assert response.status_code == 409


def test_item_requires_unit(client):
    response = client.post("/api/v1/items", json={"pt_part": "P-2", "pt_desc1": "Coil"})
    assert response.status_code == 422


def test_item_in_trip_cannot_be_deleted(client, make_customer, make_vehicle):
    item = _item(client)
    customer = make_customer()
    vehicle = make_vehicle()
    client.post("/api/v1/trip-records", json={
        "vehicle_id": vehicle["id"], "customer_id": customer["id"],
        "departure_date": "2024-01-05", "departure_time": "06:00",
        "trip_items": [{"item_id": item["id"], "quantity": 4}],
    })

    listing = client.get("/api/v1/items").json()["data"]
    assert listing[0]["trip_item_count"] == 1

    assert client.delete(f"/api/v1/items/{item['id']}").status_code == 400

    toggled = client.patch(f"/api/v1/items/{item['id']}", json={"action": "toggle-status"}).json()
    assert toggled["is_active"] is False


def test_fuel_record_requires_active_vehicle(client, make_vehicle):
    vehicle = make_vehicle()
    client.patch(f"/api/v1/vehicles/{vehicle['id']}", json={"action": "toggle-status"})
    response = client.post("/api/v1/fuel-records", json={
        "vehicle_id": vehicle["id"], "fuel_date": "2024-02-01", "fuel_amount": 50,
    })
    assert response.status_code == 400
    response = client.post("/api/v1/fuel-records", json={
        "vehicle_id": 999, "fuel_date": "2024-02-01", "fuel_amount": 50,
    })
    assert response.status_code == 404


def test_fuel_amount_must_be_positive(client, make_vehicle):
    vehicle = make_vehicle()
    response = client.post("/api/v1/fuel-records", json={
        "vehicle_id": vehicle["id"], "fuel_date": "2024-02-01", "fuel_amount": 0,
    })
    assert response.status_code == 422


def test_fuel_record_crud_and_listing(client, make_vehicle):
    vehicle = make_vehicle()
    first = client.post("/api/v1/fuel-records", json={
        "vehicle_id": vehicle["id"], "fuel_date": "2024-02-01", "fuel_amount": 50, "odometer": 1000,
    }).json()
    client.post("/api/v1/fuel-records", json={
        "vehicle_id": vehicle["id"], "fuel_date": "2024-03-01", "fuel_amount": 80, "odometer": 1800,
    })
    assert first["vehicle"]["license_plate"] == "70-1234"

    body = client.get("/api/v1/fuel-records", params={"sort_by": "fuel_amount", "sort_order": "asc"}).json()
    assert [r["fuel_amount"] for r in body["data"]] == [50, 80]

    body = client.get("/api/v1/fuel-records", params={"start_date": "2024-02-15"}).json()
    assert body["pagination"]["total"] == 1

    updated = client.put(f"/api/v1/fuel-records/{first['id']}", json={"remark": "full tank"}).json()
    assert updated["remark"] == "full tank"

    assert client.delete(f"/api/v1/fuel-records/{first['id']}").status_code == 200
    assert client.get(f"/api/v1/fuel-records/{first['id']}").status_code == 404
