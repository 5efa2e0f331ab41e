"""
Subcontractor evaluation scoring.

Domestic trips score driver cooperation (1-4), vehicle condition (0 or 3)
and parcel damage (0, 1 or 3). International trips score container
condition (0-3), punctuality (0-3) and product damage (0-4). Either way a
trip is worth at most 10 points.

Damage is judged per vehicle per month: more than one damage incident, or a
monthly damage total above ``DAMAGE_VALUE_THRESHOLD``, zeroes the damage
component for every trip of that month. A single incident under the
threshold scores 1 for the damaged trip while the other trips keep 3.
"""
from collections import OrderedDict
from typing import Any, Dict, Iterable, List, Optional, Sequence

DOMESTIC = "domestic"
INTERNATIONAL = "international"
TRANSPORT_TYPES = (DOMESTIC, INTERNATIONAL)

DAMAGE_VALUE_THRESHOLD = 300000
MAX_SCORE = 10

DRIVER_COOPERATION_SCORES = (1, 2, 3, 4)
VEHICLE_CONDITION_SCORES = (0, 3)
DAMAGE_SCORES = (0, 1, 3)
CONTAINER_CONDITION_SCORES = (0, 1, 2, 3)
PUNCTUALITY_SCORES = (0, 1, 2, 3)
PRODUCT_DAMAGE_SCORES = (0, 1, 2, 3, 4)

FULL_DAMAGE_SCORE = 3
REDUCED_DAMAGE_SCORE = 1
NO_DAMAGE_SCORE = 0

PASS_PERCENTAGE = 90
IMPROVE_PERCENTAGE = 80


class EvaluationError(ValueError):
    """Raised when scores are outside their allowed values."""


def _require(value, allowed: Sequence[int], label: str) -> None:
    if value is None:
        raise EvaluationError(f"{label} is required")
    if value not in allowed:
        raise EvaluationError(f"{label} must be one of {', '.join(str(v) for v in allowed)}")


def validate_scores(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Check the score fields for the evaluation's transport type and return a
    copy with the fields of the other transport type cleared.
    """
    cleaned = dict(data)
    transport_type = cleaned.get("transport_type") or DOMESTIC
    if transport_type not in TRANSPORT_TYPES:
        raise EvaluationError(f"transport_type must be one of {', '.join(TRANSPORT_TYPES)}")
    cleaned["transport_type"] = transport_type

    if transport_type == INTERNATIONAL:
        _require(cleaned.get("container_condition"), CONTAINER_CONDITION_SCORES, "container_condition")
        _require(cleaned.get("punctuality"), PUNCTUALITY_SCORES, "punctuality")
        _require(cleaned.get("product_damage"), PRODUCT_DAMAGE_SCORES, "product_damage")
        cleaned.update(
            driver_cooperation=None,
            vehicle_condition=None,
            damage_score=None,
            damage_found=False,
            damage_value=0,
        )
        return cleaned

    _require(cleaned.get("driver_cooperation"), DRIVER_COOPERATION_SCORES, "driver_cooperation")
    _require(cleaned.get("vehicle_condition"), VEHICLE_CONDITION_SCORES, "vehicle_condition")
    _require(cleaned.get("damage_score"), DAMAGE_SCORES, "damage_score")
    damage_found = bool(cleaned.get("damage_found"))
    damage_value = cleaned.get("damage_value") or 0
    if damage_found and damage_value <= 0:
        raise EvaluationError("damage_value must be greater than 0 when damage is found")
    if damage_value < 0:
        raise EvaluationError("damage_value cannot be negative")
    cleaned["damage_found"] = damage_found
    cleaned["damage_value"] = damage_value if damage_found else 0
    cleaned.update(container_condition=None, punctuality=None, product_damage=None)
    return cleaned


def total_score(evaluation: Any) -> int:
    get = _getter(evaluation)
    if get("transport_type") == INTERNATIONAL:
        parts = (get("container_condition"), get("punctuality"), get("product_damage"))
    else:
        parts = (get("driver_cooperation"), get("vehicle_condition"), get("damage_score"))
    return sum(p or 0 for p in parts)


def damage_score_for_new_trip(damage_found: bool, damage_value: float,
                              monthly_damage_count: int, monthly_damage_value: float) -> int:
    """
    Damage score for a trip being added, given the damaged trips already
    recorded for the same vehicle this month.
    """
    if not damage_found:
        return FULL_DAMAGE_SCORE
    count = monthly_damage_count + 1
    value = (monthly_damage_value or 0) + (damage_value or 0)
    if count > 1 or value > DAMAGE_VALUE_THRESHOLD:
        return NO_DAMAGE_SCORE
    return REDUCED_DAMAGE_SCORE


def monthly_damage_scores(evaluations: Sequence[Any]) -> List[int]:
    """Per-trip damage scores for one vehicle's trips within one month."""
    damaged = [e for e in evaluations if _getter(e)("damage_found")]
    damage_total = sum(float(_getter(e)("damage_value") or 0) for e in damaged)
    if len(damaged) > 1 or damage_total > DAMAGE_VALUE_THRESHOLD:
        return [NO_DAMAGE_SCORE] * len(evaluations)
    return [
        REDUCED_DAMAGE_SCORE if _getter(e)("damage_found") else FULL_DAMAGE_SCORE
        for e in evaluations
    ]


def grade(percentage: float) -> str:
    if percentage > PASS_PERCENTAGE:
        return "pass"
    if percentage >= IMPROVE_PERCENTAGE:
        return "improve"
    return "fail"


def _average(values: Iterable[Optional[float]], count: int) -> float:
    return sum(v or 0 for v in values) / count if count else 0.0


def _vehicle_row(plate: str, transport_type: str, evaluations: List[Any]) -> Dict[str, Any]:
    trips = len(evaluations)
    getters = [_getter(e) for e in evaluations]
    row: Dict[str, Any] = {
        "vehicle_plate": plate,
        "transport_type": transport_type,
        "sites": sorted({g("site") for g in getters if g("site")}),
        "trip_count": trips,
    }

    if transport_type == INTERNATIONAL:
        components = {
            "container_condition_avg": _average((g("container_condition") for g in getters), trips),
            "punctuality_avg": _average((g("punctuality") for g in getters), trips),
            "product_damage_avg": _average((g("product_damage") for g in getters), trips),
        }
    else:
        damaged = [g for g in getters if g("damage_found")]
        components = {
            "driver_cooperation_avg": _average((g("driver_cooperation") for g in getters), trips),
            "vehicle_condition_avg": _average((g("vehicle_condition") for g in getters), trips),
            "damage_avg": _average(monthly_damage_scores(evaluations), trips),
        }
        row["damage_count"] = len(damaged)
        row["damage_total"] = sum(float(g("damage_value") or 0) for g in damaged)

    score = sum(components.values())
    percentage = round(score / MAX_SCORE * 100, 2)
    row.update({key: round(value, 2) for key, value in components.items()})
    row.update(
        total_score=round(score, 2),
        max_score=MAX_SCORE,
        percentage=percentage,
        result=grade(percentage),
    )
    return row


def build_monthly_report(evaluations: Sequence[Any], vehicle_plate: Optional[str] = None) -> Dict[str, Any]:
    """
    Aggregate one contractor's evaluations for a month into per-vehicle rows
    sorted by plate, plus an overall summary. A plate narrows the report to
    that vehicle.
    """
    groups: "OrderedDict[tuple, List[Any]]" = OrderedDict()
    for evaluation in evaluations:
        get = _getter(evaluation)
        if vehicle_plate and get("vehicle_plate") != vehicle_plate:
            continue
        key = (get("vehicle_plate"), get("transport_type") or DOMESTIC)
        groups.setdefault(key, []).append(evaluation)

    rows = [_vehicle_row(plate, ttype, items) for (plate, ttype), items in groups.items()]
    rows.sort(key=lambda r: (r["vehicle_plate"] or "", r["transport_type"]))

    total_vehicles = len(rows)
    total = sum(r["total_score"] for r in rows)
    max_total = sum(r["max_score"] for r in rows)
    summary = {
        "total_vehicles": total_vehicles,
        "total_trips": sum(r["trip_count"] for r in rows),
        "average_score": round(total / total_vehicles, 2) if total_vehicles else 0,
        "average_percentage": round(total / max_total * 100, 2) if max_total else 0,
    }
    summary["result"] = grade(summary["average_percentage"]) if total_vehicles else None
    return {"rows": rows, "summary": summary}


def _getter(obj: Any):
    if isinstance(obj, dict):
        return obj.get
    return lambda name: getattr(obj, name, None)
