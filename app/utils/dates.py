from datetime import date, datetime
from typing import Optional


def parse_report_date(value: Optional[str]) -> Optional[date]:
    """Accept DD/MM/YYYY or ISO (YYYY-MM-DD, optionally with a time part)."""
    if not value:
        return None
    value = value.strip()
    try:
        if "/" in value:
            return datetime.strptime(value, "%d/%m/%Y").date()
        return datetime.fromisoformat(value.replace("Z", "+00:00")).date()
    except ValueError:
        raise ValueError(f"Invalid date: {value}. Use DD/MM/YYYY or YYYY-MM-DD")


def month_bounds(year: int, month: int):
    """First and last day of a calendar month."""
    start = date(year, month, 1)
    if month == 12:
        next_month = date(year + 1, 1, 1)
    else:
        next_month = date(year, month + 1, 1)
    return start, date.fromordinal(next_month.toordinal() - 1)
