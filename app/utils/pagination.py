import math
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.orm import Query


def build_pagination(page: int, limit: int, total: int) -> Dict[str, Any]:
    total_pages = math.ceil(total / limit) if limit else 0
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "total_pages": total_pages,
        "has_next": page < total_pages,
        "has_prev": page > 1,
    }


def paginate(query: Query, page: int, limit: int) -> Tuple[List[Any], Dict[str, Any]]:
    """Run a count and a windowed fetch for the given page."""
    total = query.order_by(None).count()
    rows = query.offset((page - 1) * limit).limit(limit).all()
    return rows, build_pagination(page, limit, total)


def search_filter(term: Optional[str], columns: Iterable):
    """OR of case-insensitive substring matches, or None for a blank term."""
    if not term or not term.strip():
        return None
    pattern = f"%{term.strip()}%"
    return or_(*[column.ilike(pattern) for column in columns])


def apply_sort(query: Query, model, sort_by: Optional[str], sort_order: Optional[str],
               allowed: Iterable[str], default: str) -> Query:
    """Order by a whitelisted column; unknown names fall back to the default."""
    column_name = sort_by if sort_by in set(allowed) else default
    column = getattr(model, column_name)
    if (sort_order or "desc").lower() == "asc":
        return query.order_by(column.asc(), model.id.asc())
    return query.order_by(column.desc(), model.id.desc())
