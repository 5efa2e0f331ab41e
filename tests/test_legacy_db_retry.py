from unittest import mock

import pytest
from sqlalchemy.exc import ProgrammingError

from app.utils import legacy_db


@pytest.fixture
def fake_engine():
    engine = object()
    with mock.patch.object(legacy_db, "get_engine", return_value=engine), \
            mock.patch.object(legacy_db, "reset_engine") as reset:
        yield engine, reset


def test_backoff_is_capped():
    assert [legacy_db.backoff_delay_ms(n) for n in range(1, 6)] == [1000, 2000, 4000, 5000, 5000]


def test_connection_errors_are_classified():
    assert legacy_db.is_connection_error(ConnectionResetError("reset"))
    assert legacy_db.is_connection_error(Exception("Connection is closed."))
    assert legacy_db.is_connection_error(Exception("read ECONNRESET"))
    assert not legacy_db.is_connection_error(Exception("Invalid column name 'Foo'"))


def test_retries_then_succeeds(fake_engine):
    engine, reset = fake_engine
    sleeps = []
    operation = mock.Mock(side_effect=[Exception("ETIMEOUT"), Exception("ECONNCLOSED"), "rows"])

    assert legacy_db.execute_with_retry(operation, max_retries=3, sleep=sleeps.append) == "rows"
    assert operation.call_count == 3
    operation.assert_called_with(engine)
    assert sleeps == [1.0, 2.0]
    assert reset.call_count == 2


def test_gives_up_after_max_retries_with_last_error(fake_engine):
    _, reset = fake_engine
    errors = [Exception("ECONNREFUSED first"), Exception("ECONNREFUSED second"), Exception("ECONNREFUSED third")]
    operation = mock.Mock(side_effect=errors)
    sleeps = []

    with pytest.raises(Exception) as excinfo:
        legacy_db.execute_with_retry(operation, max_retries=3, sleep=sleeps.append)

    assert excinfo.value is errors[-1]
    assert operation.call_count == 3
    assert sleeps == [1.0, 2.0]


def test_other_errors_are_not_retried(fake_engine):
    _, reset = fake_engine
    error = ProgrammingError("SELECT", {}, Exception("Invalid object name"))
    operation = mock.Mock(side_effect=error)
    sleeps = []

    with pytest.raises(ProgrammingError):
        legacy_db.execute_with_retry(operation, max_retries=3, sleep=sleeps.append)
    assert operation.call_count == 1
    assert sleeps == []
    reset.assert_not_called()


def test_unconfigured_server_raises_without_retry(monkeypatch):
    monkeypatch.setattr(legacy_db.settings, "SQLSERVER_HOST", None)
    legacy_db.reset_engine()
    operation = mock.Mock()
    with pytest.raises(legacy_db.LegacyDatabaseError):
        legacy_db.execute_with_retry(operation, sleep=lambda _: None)
    operation.assert_not_called()


def test_format_address_skips_blanks():
    assert legacy_db.format_address({"Street": " 1 Moo 2 ", "District": None, "City": "Rayong"}) == "1 Moo 2 Rayong"


def test_zero_retries_still_makes_one_attempt(fake_engine):
    error = ConnectionResetError("reset by peer")
    operation = mock.Mock(side_effect=error)
    with pytest.raises(ConnectionResetError):
        legacy_db.execute_with_retry(operation, max_retries=0, sleep=lambda _: None)
    assert operation.call_count == 1
