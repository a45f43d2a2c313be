"""Shared fixtures: an in-memory SQLite storefront with foreign keys enabled."""

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy.orm import Session

from storefront.models import Category, Customer, Order, OrderDetail, Product
from storefront.tools import create_database_engine, setup_database


@pytest.fixture
def engine():
    engine = create_database_engine("sqlite://")
    setup_database(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def category(session):
    category = Category(name="Hardware")
    session.add(category)
    session.commit()
    return category


@pytest.fixture
def customer(session):
    customer = Customer(
        first_name="Ada",
        last_name="Lovelace",
        email="ada@example.com",
        password="s3cret",
    )
    session.add(customer)
    session.commit()
    return customer


@pytest.fixture
def widget(session, category):
    product = Product(
        category_id=category.id,
        name="Widget",
        price=Decimal("15.00"),
        stock_quantity=100,
    )
    session.add(product)
    session.commit()
    return product


def add_order(session, customer, order_date, total, lines=()):
    """Insert an order with explicit total and ``(product, quantity, unit_price)`` lines."""
    order = Order(
        customer_id=customer.id,
        order_date=order_date,
        total_amount=Decimal(str(total)),
    )
    for product, quantity, unit_price in lines:
        order.details.append(
            OrderDetail(
                product_id=product.id,
                quantity=quantity,
                unit_price=Decimal(str(unit_price)),
            )
        )
    session.add(order)
    session.commit()
    return order


JANUARY = (date(2025, 1, 1), date(2025, 2, 1))
