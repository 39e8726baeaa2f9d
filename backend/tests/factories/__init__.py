"""Factory Boy base wired to the per-test transactional session."""

from __future__ import annotations

import factory


class SQLAlchemySession:
    """Holder the ``session`` fixture fills before each test."""

    _session = None

    @classmethod
    def set(cls, session):
        cls._session = session

    @classmethod
    def get(cls):
        if cls._session is None:
            raise RuntimeError("No test session registered; request the 'session' fixture.")
        return cls._session


class BaseFactory(factory.alchemy.SQLAlchemyModelFactory):
    """Rows are flushed, never committed, so each test's SAVEPOINT owns them."""

    class Meta:
        abstract = True
        # Callable, so each factory call sees the current test's session
        sqlalchemy_session_factory = SQLAlchemySession.get
        sqlalchemy_session_persistence = "flush"

    @classmethod
    def _after_postgeneration(cls, instance, create, results=None):
        # Flush rows attached by post_generation hooks too, not just the base row
        if create and cls._meta.sqlalchemy_session_persistence == "flush":
            cls._meta.sqlalchemy_session_factory().flush()
