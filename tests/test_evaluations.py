import re


def _evaluation(**extra):
    data = {
        "contractor_name": "Fast Freight",
        "vehicle_plate": "70-1",
        "site": "Rayong",
        "evaluation_date": "2024-04-10",
        "driver_cooperation": 4,
        "vehicle_condition": 3,
        "damage_score": 3,
    }
    data.update(extra)
    return data


def test_create_evaluation_derives_total(client):
    response = client.post("/api/v1/evaluations", json=_evaluation())
    assert response.status_code == 201, response.text
    body = response.json()
    assert body["total_score"] == 10
    assert body["evaluated_by"] == "admin"
    assert body["container_condition"] is None


def test_invalid_scores_are_rejected(client):
    response = client.post("/api/v1/evaluations", json=_evaluation(vehicle_condition=1))
    assert response.status_code == 400
    response = client.post("/api/v1/evaluations", json=_evaluation(transport_type="sea"))
    assert response.status_code == 422


def test_switching_to_international_clears_domestic_scores(client):
    created = client.post("/api/v1/evaluations", json=_evaluation()).json()
    response = client.put(f"/api/v1/evaluations/{created['id']}", json={
        "transport_type": "international", "container_condition": 2, "punctuality": 3, "product_damage": 4,
    })
    assert response.status_code == 200
    body = response.json()
    assert body["driver_cooperation"] is None
    assert body["total_score"] == 9


def test_list_filters_by_month(client):
    client.post("/api/v1/evaluations", json=_evaluation(evaluation_date="2024-04-10"))
    client.post("/api/v1/evaluations", json=_evaluation(evaluation_date="2024-05-02"))
    body = client.get("/api/v1/evaluations", params={"month": 4, "year": 2024}).json()
    assert body["pagination"]["total"] == 1
    assert body["data"][0]["evaluation_date"] == "2024-04-10"


def test_vehicle_history_suggests_damage_score(client):
    client.post("/api/v1/evaluations", json=_evaluation(
        damage_found=True, damage_value=20000, damage_score=1, evaluation_date="2024-04-03",
    ))
    client.post("/api/v1/evaluations", json=_evaluation(evaluation_date="2024-04-04"))

    history = client.get("/api/v1/evaluations/vehicle-history", params={
        "vehicle_plate": "70-1", "start_date": "2024-04-01", "end_date": "2024-04-30",
    }).json()
    assert history["damage_count"] == 1
    assert history["total_damage_value"] == 20000
    assert history["damage_score"] == 0

    clean = client.get("/api/v1/evaluations/vehicle-history", params={
        "vehicle_plate": "70-9", "start_date": "2024-04-01", "end_date": "2024-04-30",
    }).json()
    assert clean["damage_count"] == 0
    assert clean["damage_score"] == 1


def test_monthly_report_and_pdf(client):
    client.post("/api/v1/evaluations", json=_evaluation(vehicle_plate="70-2"))
    client.post("/api/v1/evaluations", json=_evaluation(vehicle_plate="70-1", driver_cooperation=2))
    client.post("/api/v1/evaluations", json=_evaluation(contractor_name="Other Co"))

    report = client.get("/api/v1/evaluations/report", params={
        "contractor_name": "Fast Freight", "month": 4, "year": 2024,
    }).json()
    assert [r["vehicle_plate"] for r in report["rows"]] == ["70-1", "70-2"]
    assert report["rows"][0]["result"] == "improve"
    assert report["summary"]["total_trips"] == 2

    response = client.get("/api/v1/evaluations/report/pdf", params={
        "contractor_name": "Fast Freight", "month": 4, "year": 2024,
    })
    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert response.content.startswith(b"%PDF")


def test_monthly_report_for_one_vehicle(client):
    client.post("/api/v1/evaluations", json=_evaluation(vehicle_plate="70-1"))
    client.post("/api/v1/evaluations", json=_evaluation(vehicle_plate="70-1", evaluation_date="2024-04-20"))
    client.post("/api/v1/evaluations", json=_evaluation(vehicle_plate="70-2", driver_cooperation=1))

    report = client.get("/api/v1/evaluations/report", params={
        "contractor_name": "Fast Freight", "month": 4, "year": 2024, "vehicle_plate": "70-1",
    }).json()
    assert report["vehicle_plate"] == "70-1"
    assert [r["vehicle_plate"] for r in report["rows"]] == ["70-1"]
    assert report["summary"]["total_vehicles"] == 1
    assert report["summary"]["total_trips"] == 2
    assert report["summary"]["average_percentage"] == 100

    response = client.get("/api/v1/evaluations/report/pdf", params={
        "contractor_name": "Fast Freight", "month": 4, "year": 2024, "vehicle_plate": "70-9",
    })
    assert response.status_code == 200
    assert response.content.startswith(b"%PDF")


def test_pdf_spans_pages_for_many_vehicles():
    from app.utils.evaluation_pdf import generate_evaluation_report_pdf
    from app.utils.evaluation_scoring import build_monthly_report

    evaluations = [
        {"vehicle_plate": f"70-{i:03d}", "transport_type": "domestic", "site": "Site <A&B>",
         "driver_cooperation": 3, "vehicle_condition": 3, "damage_score": 3, "damage_found": False}
        for i in range(80)
    ]
    pdf = generate_evaluation_report_pdf(build_monthly_report(evaluations), "Fast & Co", 4, 2024).getvalue()
    assert pdf.startswith(b"%PDF")
    page_counts = [int(n) for n in re.findall(rb"/Count (\d+)", pdf)]
    assert max(page_counts) >= 2


def test_evaluation_delete(client):
    created = client.post("/api/v1/evaluations", json=_evaluation()).json()
    assert client.delete(f"/api/v1/evaluations/{created['id']}").status_code == 200
    assert client.get(f"/api/v1/evaluations/{created['id']}").status_code == 404


def test_update_cannot_null_required_fields(client):
    created = client.post("/api/v1/evaluations", json=_evaluation()).json()
    assert client.put(f"/api/v1/evaluations/{created['id']}", json={"site": None}).status_code == 422
    assert client.put(f"/api/v1/evaluations/{created['id']}", json={"evaluation_date": None}).status_code == 422
    assert client.get(f"/api/v1/evaluations/{created['id']}").json()["site"] == "Rayong"
