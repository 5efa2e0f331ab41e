"""
Read-only access to the legacy SQL Server customer master (PT_M_CustomerTable).

A single engine is created lazily and shared by the process. Connection-class
failures reset it and are retried with capped exponential backoff; every
other error propagates on the first attempt.
"""
import logging
import time
from typing import Any, Callable, Dict, List, Optional, TypeVar

from sqlalchemy import create_engine, text
from sqlalchemy.engine import URL, Engine
from sqlalchemy.exc import DBAPIError, DisconnectionError

from app.core.config import settings

logger = logging.getLogger(__name__)

T = TypeVar("T")

CUSTOMER_TABLE = "PT_M_CustomerTable"
CUSTOMER_COLUMNS = [
    "BusinessPartnerCustomerCode",
    "CustomerAccountGroup",
    "Name_1",
    "Name_2",
    "Name_3",
    "Name_4",
    "SearchTerm_1",
    "SearchTerm_2",
    "Street",
    "Street_4",
    "Street_5",
    "District",
    "PostCode",
    "City",
    "CountryCode",
    "TelephoneNoMobilePhone",
]
SELECT_COLUMNS = ", ".join(CUSTOMER_COLUMNS)
SEARCH_COLUMNS = ("BusinessPartnerCustomerCode", "Name_1", "SearchTerm_1", "City")

CONNECTION_ERROR_MARKERS = (
    "ECONNCLOSED",
    "ECONNRESET",
    "ENOTFOUND",
    "ETIMEOUT",
    "ECONNREFUSED",
    "Connection is closed",
    "Connection is not available",
    "Adaptive Server connection failed",
    "Adaptive Server connection timed out",
    "Communication link failure",
)

MAX_BACKOFF_MS = 5000
BASE_BACKOFF_MS = 1000

_engine: Optional[Engine] = None


class LegacyDatabaseError(Exception):
    """Raised when the legacy database is not configured."""


def build_url() -> URL:
    if not settings.sqlserver_configured:
        raise LegacyDatabaseError(
            "Legacy SQL Server is not configured (SQLSERVER_HOST, SQLSERVER_USER, SQLSERVER_DATABASE)"
        )
    return URL.create(
        "mssql+pymssql",
        username=settings.SQLSERVER_USER,
        password=settings.SQLSERVER_PASSWORD,
        host=settings.SQLSERVER_HOST,
        port=settings.SQLSERVER_PORT,
        database=settings.SQLSERVER_DATABASE,
    )


def get_engine() -> Engine:
    global _engine
    if _engine is None:
        _engine = create_engine(
            build_url(),
            pool_size=settings.SQLSERVER_POOL_SIZE,
            max_overflow=0,
            pool_recycle=1800,
            pool_timeout=settings.SQLSERVER_TIMEOUT,
            connect_args={
                "login_timeout": settings.SQLSERVER_TIMEOUT,
                "timeout": settings.SQLSERVER_TIMEOUT,
            },
        )
        logger.info(f"Created legacy SQL Server pool for {settings.SQLSERVER_HOST}/{settings.SQLSERVER_DATABASE}")
    return _engine


def reset_engine() -> None:
    global _engine
    if _engine is not None:
        try:
            _engine.dispose()
        except Exception as e:
            logger.warning(f"Error disposing legacy SQL Server pool: {e}")
        _engine = None


def is_connection_error(error: BaseException) -> bool:
    if isinstance(error, (DisconnectionError, ConnectionError)):
        return True
    if isinstance(error, DBAPIError) and error.connection_invalidated:
        return True
    message = str(error)
    return any(marker in message for marker in CONNECTION_ERROR_MARKERS)


def backoff_delay_ms(attempt: int) -> int:
    """Delay before retrying after the given (1-based) failed attempt."""
    return min(BASE_BACKOFF_MS * 2 ** (attempt - 1), MAX_BACKOFF_MS)


def execute_with_retry(operation: Callable[[Engine], T], max_retries: Optional[int] = None,
                       sleep: Callable[[float], None] = time.sleep) -> T:
    """
    Run ``operation(engine)``. Connection errors reset the pool and retry up
    to ``max_retries`` attempts in total; the last error is re-raised.
    """
    attempts = max(1, max_retries if max_retries is not None else settings.SQLSERVER_MAX_RETRIES)
    last_error: Optional[BaseException] = None
    for attempt in range(1, attempts + 1):
        try:
            return operation(get_engine())
        except LegacyDatabaseError:
            raise
        except Exception as e:
            last_error = e
            if not is_connection_error(e):
                raise
            logger.warning(f"Legacy SQL Server connection error (attempt {attempt}/{attempts}): {e}")
            if attempt == attempts:
                break
            reset_engine()
            sleep(backoff_delay_ms(attempt) / 1000)
    raise last_error


def _fetch_all(sql: str, params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
    def operation(engine: Engine) -> List[Dict[str, Any]]:
        with engine.connect() as conn:
            result = conn.execute(text(sql), params or {})
            return [dict(row._mapping) for row in result]
    return execute_with_retry(operation)


def _search_clause(search: Optional[str], params: Dict[str, Any]) -> str:
    if not search:
        return ""
    params["search"] = f"%{search}%"
    return " AND (" + " OR ".join(f"{column} LIKE :search" for column in SEARCH_COLUMNS) + ")"


def test_connection() -> Dict[str, Any]:
    rows = _fetch_all("SELECT 1 AS ok, @@VERSION AS version")
    return {"connected": bool(rows), "version": rows[0]["version"] if rows else None}


def get_all_customers(search: Optional[str] = None, page: int = 1, limit: int = 50) -> Dict[str, Any]:
    params: Dict[str, Any] = {"offset": (page - 1) * limit, "limit": limit}
    where = "WHERE BusinessPartnerCustomerCode IS NOT NULL" + _search_clause(search, params)
    rows = _fetch_all(
        f"SELECT {SELECT_COLUMNS} FROM {CUSTOMER_TABLE} {where} "
        "ORDER BY BusinessPartnerCustomerCode "
        "OFFSET :offset ROWS FETCH NEXT :limit ROWS ONLY",
        params,
    )
    count_params = {k: v for k, v in params.items() if k == "search"}
    total = _fetch_all(
        f"SELECT COUNT(DISTINCT BusinessPartnerCustomerCode) AS total FROM {CUSTOMER_TABLE} {where}",
        count_params,
    )
    return {"customers": rows, "total": int(total[0]["total"]) if total else 0}


def get_customer_by_code(code: str) -> Optional[Dict[str, Any]]:
    rows = _fetch_all(
        f"SELECT TOP 1 {SELECT_COLUMNS} FROM {CUSTOMER_TABLE} WHERE BusinessPartnerCustomerCode = :code",
        {"code": code},
    )
    return rows[0] if rows else None


def search_customers(term: str, limit: int = 20) -> List[Dict[str, Any]]:
    params: Dict[str, Any] = {"limit": limit}
    where = "WHERE BusinessPartnerCustomerCode IS NOT NULL" + _search_clause(term, params)
    return _fetch_all(
        f"SELECT TOP (:limit) {SELECT_COLUMNS} FROM {CUSTOMER_TABLE} {where} "
        "ORDER BY BusinessPartnerCustomerCode",
        params,
    )


def get_all_customers_no_paging() -> List[Dict[str, Any]]:
    return _fetch_all(
        f"SELECT {SELECT_COLUMNS} FROM {CUSTOMER_TABLE} "
        "WHERE BusinessPartnerCustomerCode IS NOT NULL ORDER BY BusinessPartnerCustomerCode"
    )


def get_customers_by_code_range(start_code: str, end_code: str) -> List[Dict[str, Any]]:
    return _fetch_all(
        f"SELECT {SELECT_COLUMNS} FROM {CUSTOMER_TABLE} "
        "WHERE BusinessPartnerCustomerCode >= :start_code "
        "AND BusinessPartnerCustomerCode <= :end_code "
        "AND BusinessPartnerCustomerCode IS NOT NULL "
        "AND BusinessPartnerCustomerCode <> '' "
        "ORDER BY BusinessPartnerCustomerCode",
        {"start_code": start_code, "end_code": end_code},
    )


def get_distinct_customer_codes() -> List[str]:
    rows = _fetch_all(
        f"SELECT DISTINCT BusinessPartnerCustomerCode FROM {CUSTOMER_TABLE} "
        "WHERE BusinessPartnerCustomerCode IS NOT NULL AND BusinessPartnerCustomerCode <> '' "
        "ORDER BY BusinessPartnerCustomerCode"
    )
    return [row["BusinessPartnerCustomerCode"] for row in rows]


def get_distinct_account_groups() -> List[str]:
    rows = _fetch_all(
        f"SELECT DISTINCT CustomerAccountGroup FROM {CUSTOMER_TABLE} "
        "WHERE CustomerAccountGroup IS NOT NULL AND CustomerAccountGroup <> '' "
        "ORDER BY CustomerAccountGroup"
    )
    return [row["CustomerAccountGroup"] for row in rows]


def _clean(value: Any) -> str:
    return str(value).strip() if value is not None else ""


def format_address(row: Dict[str, Any]) -> str:
    """Street, district and city joined with spaces, blanks skipped."""
    parts = [_clean(row.get("Street")), _clean(row.get("District")), _clean(row.get("City"))]
    return " ".join(part for part in parts if part)


def to_option(row: Dict[str, Any]) -> Dict[str, Any]:
    code = _clean(row.get("BusinessPartnerCustomerCode"))
    name = _clean(row.get("Name_1"))
    return {
        "code": code,
        "name": name,
        "full_name": f"{code} - {name}" if name else code,
        "address": format_address(row),
        "phone": _clean(row.get("TelephoneNoMobilePhone")) or None,
        "account_group": _clean(row.get("CustomerAccountGroup")) or None,
    }
