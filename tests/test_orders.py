from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from storefront.models import Order, Product
from storefront.orders import (
    OrderLine,
    merge_lines,
    order_line_total,
    place_order,
    recalculate_order_total,
    to_money,
)
from storefront.reports import inconsistent_orders


@pytest.fixture
def gadget(session, category):
    product = Product(category_id=category.id, name="Gadget", price=Decimal("24.50"), stock_quantity=4)
    session.add(product)
    session.commit()
    return product


def test_place_order_sets_total_and_decrements_stock(session, customer, widget, gadget):
    order = place_order(
        session,
        customer.id,
        [OrderLine(widget.id, 3), OrderLine(gadget.id, 2)],
        order_date=date(2025, 1, 5),
    )
    session.commit()

    assert order.total_amount == Decimal("94.00")
    assert order.order_date == date(2025, 1, 5)
    assert widget.stock_quantity == 97
    assert gadget.stock_quantity == 2
    assert order_line_total(session, order.id) == Decimal("94.00")
    assert inconsistent_orders(session) == []


def test_place_order_merges_repeated_products(session, customer, widget):
    order = place_order(
        session, customer.id, [OrderLine(widget.id, 1), OrderLine(widget.id, 4)]
    )
    session.commit()

    assert len(order.details) == 1
    assert order.details[0].quantity == 5
    assert order.total_amount == Decimal("75.00")


def test_place_order_uses_explicit_unit_price(session, customer, widget):
    order = place_order(
        session, customer.id, [OrderLine(widget.id, 2, unit_price=Decimal("9.995"))]
    )

    assert order.details[0].unit_price == Decimal("10.00")
    assert order.total_amount == Decimal("20.00")


def test_place_order_requires_lines(session, customer):
    with pytest.raises(ValueError):
        place_order(session, customer.id, [])


def test_place_order_rejects_unknown_product(session, customer):
    with pytest.raises(LookupError):
        place_order(session, customer.id, [OrderLine(12345, 1)])


def test_overselling_violates_stock_constraint(session, customer, gadget):
    with pytest.raises(IntegrityError, match="ck_product_stock_non_negative"):
        place_order(session, customer.id, [OrderLine(gadget.id, 5)])


def test_recalculate_order_total_repairs_drift(session, customer, widget):
    order = place_order(session, customer.id, [OrderLine(widget.id, 2)])
    order.total_amount = Decimal("1.00")
    session.commit()

    assert [row["order_id"] for row in inconsistent_orders(session)] == [order.id]

    assert recalculate_order_total(session, order) == Decimal("30.00")
    session.commit()

    assert inconsistent_orders(session) == []


def test_merge_lines_keeps_first_explicit_price():
    merged = merge_lines(
        [OrderLine(1, 1), OrderLine(2, 1), OrderLine(1, 2, Decimal("3.00"))]
    )

    assert merged == [OrderLine(1, 3, Decimal("3.00")), OrderLine(2, 1)]


def test_to_money_rounds_half_up():
    assert to_money("2.345") == Decimal("2.35")
    assert to_money(0.1 + 0.2) == Decimal("0.30")


@pytest.mark.parametrize(
    "lines",
    [
        [OrderLine(1, -2), OrderLine(1, 5)],
        [OrderLine(1, 5), OrderLine(1, 0)],
        [OrderLine(1, 0)],
    ],
)
def test_merge_lines_rejects_non_positive_quantities(lines):
    with pytest.raises(ValueError, match="must be positive"):
        merge_lines(lines)


def test_negative_line_is_not_absorbed_by_merge(session, customer, widget):
    with pytest.raises(ValueError):
        place_order(session, customer.id, [OrderLine(widget.id, -2), OrderLine(widget.id, 5)])
    session.commit()

    assert session.scalars(select(Order)).all() == []
    assert widget.stock_quantity == 100


def test_merge_lines_rejects_conflicting_prices():
    with pytest.raises(ValueError, match="Conflicting unit prices"):
        merge_lines([OrderLine(1, 1, Decimal("3.00")), OrderLine(1, 1, Decimal("4.00"))])


def test_merge_lines_accepts_repeated_equal_price():
    merged = merge_lines([OrderLine(1, 1, Decimal("3.00")), OrderLine(1, 2, Decimal("3.000"))])

    assert merged == [OrderLine(1, 3, Decimal("3.00"))]


def test_unknown_product_leaves_session_clean(session, customer, widget):
    with pytest.raises(LookupError):
        place_order(session, customer.id, [OrderLine(widget.id, 3), OrderLine(9999, 1)])
    session.commit()

    assert session.scalars(select(Order)).all() == []
    assert widget.stock_quantity == 100


def test_unknown_customer_violates_foreign_key(session, widget):
    with pytest.raises(IntegrityError, match="FOREIGN KEY"):
        place_order(session, 9999, [OrderLine(widget.id, 1)])
