"""Transaction scope shared by the storefront services."""

from __future__ import annotations

from abc import ABC, abstractmethod


class UnitOfWork(ABC):
    """
    One transaction per service call. Concrete scopes expose the ``users``,
    ``addresses``, ``products``, ``carts`` and ``orders`` repositories on the
    same session.
    """

    @abstractmethod
    def __enter__(self) -> UnitOfWork: ...

    @abstractmethod
    def __exit__(self, exc_type, exc, tb) -> None: ...

    @abstractmethod
    def commit(self) -> None: ...

    @abstractmethod
    def rollback(self) -> None: ...
