from __future__ import annotations

import pytest
from storefront.models import Product
from storefront.uow import SQLAlchemyUnitOfWork

from tests.factories.product import ProductFactory


def _product_count(session) -> int:
    return session.query(Product).count()


def test_clean_exit_commits_staged_rows(session):
    before = _product_count(session)

    with SQLAlchemyUnitOfWork() as uow:
        uow.products.add(ProductFactory.build())

    assert _product_count(session) == before + 1


def test_exception_rolls_back_and_propagates(session):
    before = _product_count(session)

    with pytest.raises(RuntimeError, match="payment step failed"), SQLAlchemyUnitOfWork() as uow:
        uow.products.add(ProductFactory.build())
        raise RuntimeError("payment step failed")

    assert _product_count(session) == before


def test_every_repository_uses_the_unit_of_work_session(session):
    with SQLAlchemyUnitOfWork() as uow:
        repos = (uow.users, uow.addresses, uow.products, uow.carts, uow.orders)
        assert all(repo.session is uow.session for repo in repos)
