"""
SQLAlchemy units of work bound to the Flask-SQLAlchemy scoped session.

Two flavours share the same repository wiring:

- :class:`SQLAlchemyUnitOfWork` commits on a clean exit and rolls back when
  the block raises. Checkout, cart and address mutations run inside one.
- :class:`SQLAlchemyReadOnlyUnitOfWork` never commits. It is what order
  lookups and the checkout pricing pass use.
"""

from __future__ import annotations

import logging
from contextlib import suppress

from sqlalchemy import event, text
from sqlalchemy.engine import Connection
from sqlalchemy.exc import InvalidRequestError, SQLAlchemyError
from sqlalchemy.orm import Session, SessionTransaction

from storefront.core.extensions import db
from storefront.repositories import (
    AddressRepository,
    CartRepository,
    OrderRepository,
    ProductRepository,
    UserRepository,
)
from storefront.uow.base import UnitOfWork

log = logging.getLogger(__name__)

ISOLATION_LEVELS = frozenset({"READ UNCOMMITTED", "READ COMMITTED", "REPEATABLE READ", "SERIALIZABLE"})
# Dialects that accept SET TRANSACTION inside an open transaction.
_SET_TRANSACTION_DIALECTS = frozenset({"postgresql", "mysql", "mariadb"})
_WRITE_VERBS = (
    "insert",
    "update",
    "delete",
    "merge",
    "replace",
    "alter",
    "create",
    "drop",
    "truncate",
    "grant",
    "revoke",
)


class SQLAlchemyRepositoryContainer:
    """Repositories for every aggregate, all bound to one session."""

    def __init__(self, *, session: Session) -> None:
        self.session = session
        self.users = UserRepository(session=session)
        self.addresses = AddressRepository(session=session)
        self.products = ProductRepository(session=session)
        self.carts = CartRepository(session=session)
        self.orders = OrderRepository(session=session)


class SQLAlchemyUnitOfWork(SQLAlchemyRepositoryContainer, UnitOfWork):
    """Read-write scope: commit on success, roll back on error."""

    def __init__(self) -> None:
        super().__init__(session=db.session)

    def __enter__(self) -> SQLAlchemyUnitOfWork:
        # The session autobegins on first use.
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is not None:
            self.rollback()
            return
        try:
            self.commit()
        except Exception:
            self.rollback()
            raise

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()


class _WriteGuard:
    """
    Session and connection listeners that refuse writes.

    ``before_flush`` catches pending ORM changes; ``before_cursor_execute``
    catches DML or DDL sent through ``text()`` or Core.
    """

    def __init__(self, session: Session, connection: Connection) -> None:
        self.session = session
        self.connection = connection
        self._armed = False
        # Bound once so removal gets the exact callables that were registered
        self._flush_hook = self._before_flush
        self._execute_hook = self._before_cursor_execute

    def _before_flush(self, session, flush_context, instances) -> None:
        if session.new or session.dirty or session.deleted:
            raise RuntimeError("Read-only unit of work: ORM flush blocked.")

    def _before_cursor_execute(self, conn, cursor, statement, parameters, context, executemany) -> None:
        verb = statement.lstrip().split(None, 1)[0].lower() if statement else ""
        if verb.startswith(_WRITE_VERBS):
            raise RuntimeError(f"Read-only unit of work: SQL statement blocked ({verb.upper()}).")

    def arm(self) -> None:
        if self._armed:
            return
        event.listen(self.session, "before_flush", self._flush_hook)
        event.listen(self.connection, "before_cursor_execute", self._execute_hook)
        self._armed = True

    def disarm(self) -> None:
        if not self._armed:
            return
        with suppress(InvalidRequestError):
            event.remove(self.session, "before_flush", self._flush_hook)
        with suppress(InvalidRequestError):
            event.remove(self.connection, "before_cursor_execute", self._execute_hook)
        self._armed = False


class SQLAlchemyReadOnlyUnitOfWork(SQLAlchemyRepositoryContainer, UnitOfWork):
    """
    Read-only scope over the request session.

    When no transaction is open the unit of work owns a fresh one: it applies
    the requested isolation level (and ``READ ONLY`` where the dialect has
    it) and always rolls back on exit. When the session is already inside a
    transaction it joins that transaction and leaves it open. Write guards
    are armed in both cases.

    :param isolation_level: ``SET TRANSACTION ISOLATION LEVEL`` value, or
        ``None`` for the connection default.
    :param enforce_db_readonly: Also issue ``SET TRANSACTION READ ONLY``.
    """

    def __init__(
        self,
        *,
        isolation_level: str | None = "READ COMMITTED",
        enforce_db_readonly: bool = True,
    ) -> None:
        super().__init__(session=db.session)
        self.isolation_level = isolation_level.upper().strip() if isolation_level else None
        self.enforce_db_readonly = enforce_db_readonly
        self._owned: SessionTransaction | None = None
        self._guard: _WriteGuard | None = None

    def __enter__(self) -> SQLAlchemyReadOnlyUnitOfWork:
        self._owned = None
        try:
            self._owned = self.session.begin()
        except InvalidRequestError:
            # Already in a transaction: join it.
            pass

        connection = self.session.connection()
        self._guard = _WriteGuard(self.session, connection)
        self._guard.arm()

        if self._owned is not None:
            self._apply_transaction_mode(connection.dialect.name)
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        try:
            if self._owned is not None:
                with suppress(SQLAlchemyError):
                    self.session.rollback()
                self._owned = None
        finally:
            if self._guard is not None:
                self._guard.disarm()
                self._guard = None

    def _apply_transaction_mode(self, dialect: str) -> None:
        if dialect not in _SET_TRANSACTION_DIALECTS:
            return
        if self.isolation_level and self.isolation_level not in ISOLATION_LEVELS:
            log.warning("uow.unknown_isolation_level", extra={"reason": self.isolation_level})
        try:
            if self.isolation_level:
                self.session.execute(text(f"SET TRANSACTION ISOLATION LEVEL {self.isolation_level}"))
            if self.enforce_db_readonly:
                self.session.execute(text("SET TRANSACTION READ ONLY"))
        except SQLAlchemyError:
            log.warning("uow.set_transaction_failed", exc_info=True)

    def commit(self) -> None:
        raise RuntimeError("Read-only unit of work does not allow commit().")

    def rollback(self) -> None:
        self.session.rollback()
