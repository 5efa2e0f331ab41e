from datetime import date
from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy import extract
from typing import Any, List, Optional
import logging

from app.schemas.common import Page
from app.schemas.evaluation import Evaluation, EvaluationCreate, EvaluationUpdate
from app.db.models.evaluation import Evaluation as DBEvaluation
from app.api.deps import get_db, get_current_user, actor_name, integrity_error
from app.utils import evaluation_scoring
from app.utils.dates import parse_report_date, month_bounds
from app.utils.evaluation_pdf import generate_evaluation_report_pdf
from app.utils.pagination import paginate, search_filter

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_evaluation_or_404(db: Session, evaluation_id: int) -> DBEvaluation:
    evaluation = db.query(DBEvaluation).filter(DBEvaluation.id == evaluation_id).first()
    if not evaluation:
        raise HTTPException(status_code=404, detail="Evaluation not found")
    return evaluation


def _validated(data: dict) -> dict:
    try:
        return evaluation_scoring.validate_scores(data)
    except evaluation_scoring.EvaluationError as e:
        raise HTTPException(status_code=400, detail=str(e))


def _monthly_evaluations(db: Session, contractor_name: str, month: int, year: int) -> List[DBEvaluation]:
    start, end = month_bounds(year, month)
    return db.query(DBEvaluation).filter(
        DBEvaluation.contractor_name == contractor_name,
        DBEvaluation.evaluation_date >= start,
        DBEvaluation.evaluation_date <= end,
    ).order_by(DBEvaluation.vehicle_plate, DBEvaluation.evaluation_date, DBEvaluation.id).all()


@router.get("", response_model=Page[Evaluation])
def list_evaluations(
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = None,
    contractor_name: Optional[str] = None,
    vehicle_plate: Optional[str] = None,
    transport_type: Optional[str] = Query(None, pattern="^(domestic|international)$"),
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None, ge=2000, le=2100),
) -> Any:
    query = db.query(DBEvaluation)
    condition = search_filter(search, [
        DBEvaluation.contractor_name, DBEvaluation.vehicle_plate, DBEvaluation.site, DBEvaluation.remark,
    ])
    if condition is not None:
        query = query.filter(condition)
    if contractor_name:
        query = query.filter(DBEvaluation.contractor_name == contractor_name)
    if vehicle_plate:
        query = query.filter(DBEvaluation.vehicle_plate.ilike(f"%{vehicle_plate}%"))
    if transport_type:
        query = query.filter(DBEvaluation.transport_type == transport_type)
    if month:
        query = query.filter(extract("month", DBEvaluation.evaluation_date) == month)
    if year:
        query = query.filter(extract("year", DBEvaluation.evaluation_date) == year)

    query = query.order_by(DBEvaluation.evaluation_date.desc(), DBEvaluation.created_at.desc(), DBEvaluation.id.desc())
    evaluations, pagination = paginate(query, page, limit)
    return {"data": evaluations, "pagination": pagination}


@router.get("/vehicle-history")
def get_vehicle_damage_history(
    vehicle_plate: str,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    exclude_id: Optional[int] = None,
    damage_value: float = Query(0, ge=0),
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user)
) -> Any:
    """
    Damaged trips of a vehicle in a date range, defaulting to the current
    month, and the damage score a further damaged trip would receive.
    """
    try:
        start = parse_report_date(start_date)
        end = parse_report_date(end_date)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not start or not end:
        today = date.today()
        month_start, month_end = month_bounds(today.year, today.month)
        start = start or month_start
        end = end or month_end

    query = db.query(DBEvaluation).filter(
        DBEvaluation.vehicle_plate == vehicle_plate,
        DBEvaluation.damage_found == True,
        DBEvaluation.evaluation_date >= start,
        DBEvaluation.evaluation_date <= end,
    )
    if exclude_id is not None:
        query = query.filter(DBEvaluation.id != exclude_id)
    damaged = query.order_by(DBEvaluation.evaluation_date).all()

    total_damage = sum(float(e.damage_value or 0) for e in damaged)
    return {
        "vehicle_plate": vehicle_plate,
        "start_date": start,
        "end_date": end,
        "damage_count": len(damaged),
        "total_damage_value": total_damage,
        "evaluations": [
            {
                "id": e.id,
                "evaluation_date": e.evaluation_date,
                "site": e.site,
                "damage_value": e.damage_value,
                "damage_score": e.damage_score,
            }
            for e in damaged
        ],
        "damage_score": evaluation_scoring.damage_score_for_new_trip(
            True, damage_value, len(damaged), total_damage
        ),
    }


@router.get("/report")
def get_monthly_report(
    contractor_name: str,
    month: int = Query(..., ge=1, le=12),
    year: int = Query(..., ge=2000, le=2100),
    vehicle_plate: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user)
) -> Any:
    """Per-vehicle monthly scores for one contractor"""
    evaluations = _monthly_evaluations(db, contractor_name, month, year)
    report = evaluation_scoring.build_monthly_report(evaluations, vehicle_plate)
    return {
        "contractor_name": contractor_name,
        "vehicle_plate": vehicle_plate,
        "month": month,
        "year": year,
        **report,
    }


@router.get("/report/pdf")
def get_monthly_report_pdf(
    contractor_name: str,
    month: int = Query(..., ge=1, le=12),
    year: int = Query(..., ge=2000, le=2100),
    vehicle_plate: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user)
) -> Any:
    evaluations = _monthly_evaluations(db, contractor_name, month, year)
    report = evaluation_scoring.build_monthly_report(evaluations, vehicle_plate)
    try:
        pdf_buffer = generate_evaluation_report_pdf(report, contractor_name, month, year, vehicle_plate)
    except Exception as e:
        logger.error(f"Failed to render evaluation report for {contractor_name}: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to generate PDF: {str(e)}"
        )

    safe_name = "".join(ch if ch.isalnum() else "_" for ch in contractor_name)
    return Response(
        content=pdf_buffer.read(),
        media_type="application/pdf",
        headers={
            "Content-Disposition": f"attachment; filename=Evaluation-{safe_name}-{year}{month:02d}.pdf"
        }
    )


@router.post("", response_model=Evaluation, status_code=status.HTTP_201_CREATED)
def create_evaluation(
    evaluation_in: EvaluationCreate,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user)
) -> Any:
    data = _validated(evaluation_in.model_dump())
    if not data.get("evaluated_by"):
        data["evaluated_by"] = actor_name(current_user)

    db_evaluation = DBEvaluation(**data)
    db.add(db_evaluation)
    db.commit()
    db.refresh(db_evaluation)
    return db_evaluation


@router.get("/{evaluation_id}", response_model=Evaluation)
def get_evaluation(
    evaluation_id: int,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user)
) -> Any:
    return _get_evaluation_or_404(db, evaluation_id)


@router.put("/{evaluation_id}", response_model=Evaluation)
def update_evaluation(
    evaluation_id: int,
    evaluation_in: EvaluationUpdate,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user)
) -> Any:
    """Update an evaluation; scores are checked against the merged record"""
    db_evaluation = _get_evaluation_or_404(db, evaluation_id)

    merged = Evaluation.model_validate(db_evaluation).model_dump(
        exclude={"id", "total_score", "created_at", "updated_at"}
    )
    merged.update(evaluation_in.model_dump(exclude_unset=True))
    data = _validated(merged)

    for field, value in data.items():
        setattr(db_evaluation, field, value)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.error(f"Database integrity error updating evaluation {evaluation_id}: {str(e)}")
        raise integrity_error(e, "Evaluation conflicts with an existing record")
    db.refresh(db_evaluation)
    return db_evaluation


@router.delete("/{evaluation_id}")
def delete_evaluation(
    evaluation_id: int,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_user)
) -> Any:
    db_evaluation = _get_evaluation_or_404(db, evaluation_id)
    db.delete(db_evaluation)
    db.commit()
    return {"message": "Evaluation deleted successfully", "id": evaluation_id}
