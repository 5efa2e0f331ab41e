import io

from PIL import Image


def _png_bytes(size=(1200, 900)):
    buffer = io.BytesIO()
    Image.new("RGB", size, color=(200, 30, 30)).save(buffer, format="PNG")
    return buffer.getvalue()


def test_duplicate_license_conflicts(client, make_driver):
    make_driver(license_number="DL-1")
    response = client.post("/api/v1/drivers", json={"driver_name": "B", "driver_license": "DL-1"})
    assert response.status_code == 409


def test_get_driver_by_license(client, make_driver):
    driver = make_driver(license_number="DL-77", name="Anan")
    response = client.get("/api/v1/drivers/by-license/DL-77")
    assert response.status_code == 200
    assert response.json()["id"] == driver["id"]
    assert client.get("/api/v1/drivers/by-license/NOPE").status_code == 404


def test_list_drivers_status_filter(client, make_driver):
    make_driver(license_number="DL-1", name="Active")
    inactive = make_driver(license_number="DL-2", name="Retired")
    client.patch(f"/api/v1/drivers/{inactive['id']}", json={"action": "toggle-status"})

    active = client.get("/api/v1/drivers", params={"status": "active"}).json()["data"]
    assert [d["driver_name"] for d in active] == ["Active"]
    everyone = client.get("/api/v1/drivers").json()["pagination"]["total"]
    assert everyone == 2


def test_driver_assigned_to_vehicle_cannot_be_deleted(client, make_driver, make_vehicle):
    driver = make_driver()
    make_vehicle(main_driver_id=driver["id"])

    usage = client.get(f"/api/v1/drivers/{driver['id']}/usage").json()
    assert usage["vehicle_count"] == 1
    assert usage["can_delete"] is False

    response = client.delete(f"/api/v1/drivers/{driver['id']}")
    assert response.status_code == 400
    assert "1 vehicle" in response.json()["detail"]

    vehicles = client.get(f"/api/v1/drivers/{driver['id']}/vehicles").json()
    assert len(vehicles) == 1


def test_delete_unused_driver(client, make_driver):
    driver = make_driver()
    assert client.delete(f"/api/v1/drivers/{driver['id']}").status_code == 200
    assert client.get(f"/api/v1/drivers/{driver['id']}").status_code == 404


def test_upload_driver_image_resizes_and_replaces(client, make_driver, upload_dir):
    driver = make_driver()
    response = client.post(
        f"/api/v1/drivers/{driver['id']}/image",
        files={"file": ("photo.png", _png_bytes(), "image/png")},
    )
    assert response.status_code == 200
    first = response.json()["driver_image"]
    assert first.startswith("/uploads/driver/driver_") and first.endswith(".jpg")

    stored = upload_dir / first[len("/uploads/"):]
    with Image.open(stored) as image:
        assert image.format == "JPEG"
        assert image.width <= 400 and image.height <= 400

    response = client.post(
        f"/api/v1/drivers/{driver['id']}/image",
        files={"file": ("photo.png", _png_bytes(), "image/png")},
    )
    assert response.json()["driver_image"] != first
    assert not stored.exists()


def test_upload_driver_image_rejects_other_types(client, make_driver, upload_dir):
    driver = make_driver()
    response = client.post(
        f"/api/v1/drivers/{driver['id']}/image",
        files={"file": ("notes.txt", b"hello", "text/plain")},
    )
    assert response.status_code == 400


def test_driver_on_trip_and_fuel_records_cannot_be_deleted(client, make_driver, make_vehicle, make_customer):
    driver = make_driver(license_number="DL-5", name="Wichai")
    vehicle = make_vehicle()
    customer = make_customer()
    trip = client.post("/api/v1/trip-records", json={
        "vehicle_id": vehicle["id"], "customer_id": customer["id"],
        "departure_date": "2024-06-01", "departure_time": "08:00",
        "driver_license": "DL-5", "driver_type": "other",
    })
    assert trip.status_code == 201, trip.text
    fuel = client.post("/api/v1/fuel-records", json={
        "vehicle_id": vehicle["id"], "fuel_date": "2024-06-02", "fuel_amount": 80,
        "driver_license": "DL-5", "driver_type": "main",
    })
    assert fuel.status_code == 201, fuel.text

    usage = client.get(f"/api/v1/drivers/{driver['id']}/usage").json()
    assert usage["vehicle_count"] == 0
    assert usage["trip_count"] == 1
    assert usage["fuel_count"] == 1
    assert usage["substitute_count"] == 1
    assert usage["total_usage"] == 3
    assert usage["can_delete"] is False

    response = client.delete(f"/api/v1/drivers/{driver['id']}")
    assert response.status_code == 400
    detail = response.json()["detail"]
    assert "1 trip record(s)" in detail
    assert "1 fuel record(s)" in detail
    assert client.get(f"/api/v1/drivers/{driver['id']}").status_code == 200


def test_driver_options(client, make_driver):
    make_driver(license_number="DL-2", name="Somsak")
    retired = make_driver(license_number="DL-1", name="Anan")
    client.patch(f"/api/v1/drivers/{retired['id']}", json={"action": "toggle-status"})

    options = client.get("/api/v1/drivers/options").json()
    assert [o["driver_name"] for o in options] == ["Anan", "Somsak"]
    assert set(options[0]) == {"id", "driver_name", "driver_license", "driver_image", "is_active"}

    active = client.get("/api/v1/drivers/options", params={"active_only": True}).json()
    assert [o["driver_license"] for o in active] == ["DL-2"]


def test_driver_update_cannot_clear_name(client, make_driver):
    driver = make_driver()
    assert client.put(f"/api/v1/drivers/{driver['id']}", json={"driver_name": None}).status_code == 422
    response = client.put(f"/api/v1/drivers/{driver['id']}", json={"phone": None, "remark": "night shifts"})
    assert response.status_code == 200
    assert response.json()["driver_name"] == "Somchai"
