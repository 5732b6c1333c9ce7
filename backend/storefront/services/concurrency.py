# Overview: Service-layer helper that bounds database operations in time and maps driver errors.

from __future__ import annotations

import time
from contextvars import ContextVar
from typing import Callable, TypeVar

from flask import current_app
from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError, SQLAlchemyError

from ..errors import QueryTimeoutError, StoreError
from ..extensions import db

T = TypeVar("T")

DEFAULT_TIMEOUT_SECONDS = 3.0

# SQLite VM instructions between deadline polls
SQLITE_PROGRESS_STEPS = 1000

# Driver messages that mean "gave up waiting" rather than "broken"
_TIMEOUT_MARKERS = (
    "timeout",
    "timed out",
    "interrupted",
    "lock wait",
    "database is locked",
    "canceling statement",
)

_active_deadline: ContextVar[Deadline | None] = ContextVar("active_deadline", default=None)


class Deadline:
    """Fixed point in time after which an operation must be abandoned."""

    def __init__(self, seconds: float):
        self.seconds = seconds
        self.expires_at = time.monotonic() + seconds

    def remaining(self) -> float:
        return max(0.0, self.expires_at - time.monotonic())

    def expired(self) -> bool:
        return time.monotonic() >= self.expires_at

    def check(self) -> None:
        """Raise QueryTimeoutError once the deadline has passed."""
        if self.expired():
            raise QueryTimeoutError(f"Database operation exceeded {self.seconds:g}s")


# =============================================================================
# PER-STATEMENT ENFORCEMENT
# =============================================================================

def _sqlite_should_interrupt() -> int:
    deadline = _active_deadline.get()
    return 1 if deadline is not None and deadline.expired() else 0


@event.listens_for(Engine, "before_cursor_execute", retval=True)
def _bound_statement(conn, cursor, statement, parameters, context, executemany):
    """
    Hand the remaining time of the active deadline to the driver.

    - SQLite: a progress handler interrupts the running statement
    - PostgreSQL: SET LOCAL statement_timeout for the current transaction
    - MySQL: MAX_EXECUTION_TIME optimizer hint on SELECTs
    Statements issued outside run_bounded() run unbounded.
    """
    deadline = _active_deadline.get()
    dialect = conn.dialect.name

    if dialect == "sqlite":
        conn.connection.driver_connection.set_progress_handler(
            _sqlite_should_interrupt, SQLITE_PROGRESS_STEPS
        )

    if deadline is None:
        return statement, parameters

    deadline.check()
    remaining_ms = max(1, int(deadline.remaining() * 1000))

    if dialect == "postgresql":
        cursor.execute(f"SET LOCAL statement_timeout = {remaining_ms}")
    elif dialect in ("mysql", "mariadb"):
        stripped = statement.lstrip()
        if stripped[:6].upper() == "SELECT":
            statement = f"SELECT /*+ MAX_EXECUTION_TIME({remaining_ms}) */{stripped[6:]}"

    return statement, parameters


# =============================================================================
# BOUNDED UNITS OF WORK
# =============================================================================

def _configured_timeout() -> float:
    try:
        return float(current_app.config.get("QUERY_TIMEOUT_SECONDS", DEFAULT_TIMEOUT_SECONDS))
    except RuntimeError:
        # Outside an application context
        return DEFAULT_TIMEOUT_SECONDS


def _is_timeout(exc: OperationalError) -> bool:
    message = str(exc.orig if exc.orig is not None else exc).lower()
    return any(marker in message for marker in _TIMEOUT_MARKERS)


def run_bounded(
    operation: Callable[[Deadline], T],
    *,
    timeout: float | None = None,
    commit: bool = False,
) -> T:
    """
    Execute a DB operation under a deadline measured from call start.

    The operation receives the Deadline and may call deadline.check()
    between steps; every statement it issues is also cut off by the driver
    once the deadline passes. The deadline is checked once more after the
    operation returns. With commit=True the session is committed only after
    that check, so a late write is rolled back instead of being saved.
    Operations must not commit on their own.

    Failures roll the session back and surface as:
    - QueryTimeoutError: deadline passed, or the driver reported a lock/timeout
    - StoreError: any other SQLAlchemy failure
    Other exceptions (NotFoundError, AuthError, ValueError) propagate unchanged.
    No retries are attempted.
    """
    deadline = Deadline(_configured_timeout() if timeout is None else timeout)
    outer = _active_deadline.get()
    if outer is not None and outer.expires_at < deadline.expires_at:
        deadline = outer
    token = _active_deadline.set(deadline)
    try:
        result = operation(deadline)
        deadline.check()
        if commit:
            db.session.commit()
        return result
    except QueryTimeoutError:
        db.session.rollback()
        raise
    except OperationalError as exc:
        db.session.rollback()
        if _is_timeout(exc) or deadline.expired():
            raise QueryTimeoutError(str(exc.orig or exc)) from exc
        raise StoreError(str(exc.orig or exc)) from exc
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise StoreError(str(exc)) from exc
    finally:
        _active_deadline.reset(token)
