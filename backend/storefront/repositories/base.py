"""Common SQLAlchemy plumbing for the storefront repositories.

Repositories stage and query rows; they never commit. Listing goes through
per-repository whitelists for filters and sort keys, and updates through a
whitelist of assignable attributes.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any, Generic, TypeVar, cast

from sqlalchemy import Select, select
from sqlalchemy.orm import InstrumentedAttribute, Session

from storefront.core.extensions import db

E = TypeVar("E")


def apply_sorting(
    stmt: Select[Any],
    columns: Mapping[str, InstrumentedAttribute[Any]],
    tokens: Iterable[str],
    *,
    pk_attr: InstrumentedAttribute[Any] | None,
) -> Select[Any]:
    """Order ``stmt`` by ``tokens`` such as ``["-created_at"]``.

    A leading ``-`` sorts descending. Tokens without a whitelisted column are
    skipped, and the primary key always breaks ties.
    """
    for token in tokens:
        name = token.lstrip("-").strip()
        col = columns.get(name)
        if col is not None:
            stmt = stmt.order_by(col.desc() if token.startswith("-") else col.asc())
    if pk_attr is not None:
        stmt = stmt.order_by(pk_attr.asc())
    return stmt


class BaseRepository(Generic[E]):
    """Rows of one mapped ``model`` behind a shared session."""

    model: type[E]

    def __init__(self, session: Session | None = None) -> None:
        self._session: Session | None = session

    @property
    def session(self) -> Session:
        return self._session if self._session is not None else cast(Session, db.session)

    # Hooks for subclasses

    def _soft_delete(self, instance: E) -> bool:
        """Return ``True`` after retiring ``instance`` in place of deleting it."""
        return False

    def _pk_attr(self) -> InstrumentedAttribute[Any] | None:
        return getattr(self.model, "id", None)

    def _sortable_fields(self) -> Mapping[str, InstrumentedAttribute[Any]]:
        return {}

    def _filterable_fields(self) -> Mapping[str, InstrumentedAttribute[Any]]:
        return {}

    def _updatable_fields(self) -> set[str]:
        return set()

    # Persistence

    def add(self, instance: E) -> E:
        """Stage ``instance`` and flush so its primary key is populated."""
        self.session.add(instance)
        self.flush()
        return instance

    def get(self, entity_id: Any) -> E | None:
        return cast(E | None, self.session.get(self.model, entity_id))

    def delete(self, instance: E) -> None:
        if not self._soft_delete(instance):
            self.session.delete(instance)
        self.flush()

    def flush(self) -> None:
        self.session.flush()

    def assign_updates(self, instance: E, fields: Mapping[str, Any], *, flush: bool = True) -> E:
        """Set whitelisted attributes on ``instance``.

        Assignment goes through ``setattr`` so the model's ``@validates``
        hooks run.

        :raises ValueError: A key is outside :meth:`_updatable_fields`.
        """
        allowed = self._updatable_fields()
        rejected = sorted(key for key in fields if key not in allowed)
        if rejected:
            raise ValueError(f"Unknown or non-updatable fields: {rejected}")
        for key, value in fields.items():
            setattr(instance, key, value)
        if flush:
            self.flush()
        return instance

    def list(
        self,
        *,
        filters: Mapping[str, Any] | None = None,
        sort: Iterable[str] | None = None,
        limit: int | None = None,
    ) -> list[E]:
        """Rows matching ``filters`` (equality on whitelisted columns only)."""
        stmt: Select[Any] = select(self.model)
        allowed = self._filterable_fields()
        for key, value in (filters or {}).items():
            col = allowed.get(key)
            if col is None:
                raise ValueError(f"Field is not filterable: {key}")
            stmt = stmt.where(col == value)
        stmt = apply_sorting(stmt, self._sortable_fields(), sort or [], pk_attr=self._pk_attr())
        if limit is not None:
            stmt = stmt.limit(int(limit))
        return list(self.session.execute(stmt).scalars().all())
