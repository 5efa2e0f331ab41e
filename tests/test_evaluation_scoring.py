import pytest

from app.utils import evaluation_scoring as scoring


def _domestic(**extra):
    data = {
        "transport_type": "domestic",
        "vehicle_plate": "70-1",
        "site": "Rayong",
        "driver_cooperation": 4,
        "vehicle_condition": 3,
        "damage_found": False,
        "damage_value": 0,
        "damage_score": 3,
    }
    data.update(extra)
    return data


def test_domestic_validation_clears_international_fields():
    cleaned = scoring.validate_scores(_domestic(container_condition=2, punctuality=1))
    assert cleaned["container_condition"] is None
    assert cleaned["punctuality"] is None
    assert scoring.total_score(cleaned) == 10


@pytest.mark.parametrize("field,value", [
    ("driver_cooperation", 0),
    ("vehicle_condition", 2),
    ("damage_score", 2),
])
def test_domestic_scores_outside_allowed_values(field, value):
    with pytest.raises(scoring.EvaluationError):
        scoring.validate_scores(_domestic(**{field: value}))


def test_damage_requires_positive_value():
    with pytest.raises(scoring.EvaluationError):
        scoring.validate_scores(_domestic(damage_found=True, damage_value=0, damage_score=1))


def test_international_validation_clears_domestic_fields():
    cleaned = scoring.validate_scores({
        "transport_type": "international",
        "container_condition": 3, "punctuality": 2, "product_damage": 4,
        "driver_cooperation": 4, "damage_found": True, "damage_value": 100,
    })
    assert cleaned["driver_cooperation"] is None
    assert cleaned["damage_found"] is False
    assert scoring.total_score(cleaned) == 9

    with pytest.raises(scoring.EvaluationError):
        scoring.validate_scores({"transport_type": "international", "container_condition": 3,
                                 "punctuality": 4, "product_damage": 0})


def test_damage_score_for_new_trip():
    assert scoring.damage_score_for_new_trip(False, 0, 5, 900000) == 3
    assert scoring.damage_score_for_new_trip(True, 1000, 0, 0) == 1
    assert scoring.damage_score_for_new_trip(True, 1000, 1, 500) == 0
    assert scoring.damage_score_for_new_trip(True, 300001, 0, 0) == 0
    assert scoring.damage_score_for_new_trip(True, 300000, 0, 0) == 1


def test_single_incident_month():
    trips = [_domestic(), _domestic(damage_found=True, damage_value=5000), _domestic()]
    assert scoring.monthly_damage_scores(trips) == [3, 1, 3]

    row = scoring.build_monthly_report(trips)["rows"][0]
    assert row["damage_avg"] == round(7 / 3, 2)
    assert row["damage_count"] == 1


def test_two_incidents_zero_every_trip():
    trips = [_domestic(damage_found=True, damage_value=10), _domestic(damage_found=True, damage_value=10), _domestic()]
    assert scoring.monthly_damage_scores(trips) == [0, 0, 0]


def test_damage_value_over_threshold_zeroes_month():
    trips = [_domestic(damage_found=True, damage_value=300001), _domestic()]
    assert scoring.monthly_damage_scores(trips) == [0, 0]


def test_monthly_report_grades_vehicles():
    evaluations = [
        _domestic(vehicle_plate="B-2"),
        _domestic(vehicle_plate="B-2"),
        _domestic(vehicle_plate="A-1", driver_cooperation=3, vehicle_condition=3),
        _domestic(vehicle_plate="C-3", driver_cooperation=1, vehicle_condition=0),
    ]
    report = scoring.build_monthly_report(evaluations)
    rows = report["rows"]
    assert [r["vehicle_plate"] for r in rows] == ["A-1", "B-2", "C-3"]

    a1, b2, c3 = rows
    assert a1["total_score"] == 9 and a1["percentage"] == 90 and a1["result"] == "improve"
    assert b2["trip_count"] == 2 and b2["percentage"] == 100 and b2["result"] == "pass"
    assert c3["total_score"] == 4 and c3["result"] == "fail"

    summary = report["summary"]
    assert summary["total_vehicles"] == 3
    assert summary["total_trips"] == 4
    assert summary["average_score"] == round(23 / 3, 2)
    assert summary["average_percentage"] == round(23 / 30 * 100, 2)


def test_grade_boundaries():
    assert scoring.grade(90.01) == "pass"
    assert scoring.grade(90) == "improve"
    assert scoring.grade(80) == "improve"
    assert scoring.grade(79.99) == "fail"


def test_empty_report():
    report = scoring.build_monthly_report([])
    assert report["rows"] == []
    assert report["summary"]["total_vehicles"] == 0
