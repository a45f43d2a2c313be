"""Read-only sales reports over the storefront schema.

Every report has a statement builder returning a ``Select`` and a runner that
executes it on a session and returns plain dicts. Date ranges are half-open:
``start <= order_date < end``.
"""

from datetime import date
from decimal import Decimal
from typing import Dict, List, Tuple, Union

import pandas as pd
from sqlalchemy import Engine, Select, func, select
from sqlalchemy.engine import Connection
from sqlalchemy.orm import Session

from storefront.models import Customer, Order, OrderDetail, Product

DEFAULT_TOP_LIMIT = 5
DEFAULT_HIGH_VALUE_THRESHOLD = Decimal("500")


def _check_range(start: date, end: date) -> None:
    if end <= start:
        raise ValueError(f"Empty date range: [{start}, {end})")


def month_range(year: int, month: int) -> Tuple[date, date]:
    """Return the half-open range covering a calendar month."""
    start = date(year, month, 1)
    end = date(year + 1, 1, 1) if month == 12 else date(year, month + 1, 1)
    return start, end


def _rows(session: Session, statement: Select) -> List[Dict]:
    return [dict(row) for row in session.execute(statement).mappings()]


def daily_revenue_query(day: date) -> Select:
    """Revenue of all orders placed on ``day``."""
    return (
        select(
            Order.order_date.label("order_date"),
            func.sum(Order.total_amount).label("total_revenue"),
        )
        .where(Order.order_date == day)
        .group_by(Order.order_date)
    )


def daily_revenue(session: Session, day: date) -> List[Dict]:
    """One row ``{order_date, total_revenue}``, or none if nothing was sold that day."""
    return _rows(session, daily_revenue_query(day))


def top_selling_products_query(
    start: date, end: date, limit: int = DEFAULT_TOP_LIMIT
) -> Select:
    """Products ranked by quantity sold in ``[start, end)``.

    Ties on quantity are broken by product id.
    """
    _check_range(start, end)
    if limit <= 0:
        raise ValueError(f"limit must be positive, got {limit}")

    total_quantity = func.sum(OrderDetail.quantity).label("total_quantity")
    return (
        select(
            Product.id.label("product_id"),
            Product.name.label("product_name"),
            total_quantity,
        )
        .select_from(OrderDetail)
        .join(Product, OrderDetail.product_id == Product.id)
        .join(Order, OrderDetail.order_id == Order.id)
        .where(Order.order_date >= start, Order.order_date < end)
        .group_by(Product.id, Product.name)
        .order_by(total_quantity.desc(), Product.id.asc())
        .limit(limit)
    )


def top_selling_products(
    session: Session, start: date, end: date, limit: int = DEFAULT_TOP_LIMIT
) -> List[Dict]:
    return _rows(session, top_selling_products_query(start, end, limit))


def monthly_top_selling_products(
    session: Session, year: int, month: int, limit: int = DEFAULT_TOP_LIMIT
) -> List[Dict]:
    start, end = month_range(year, month)
    return top_selling_products(session, start, end, limit)


def high_value_customers_query(
    start: date,
    end: date,
    threshold: Union[Decimal, int, float] = DEFAULT_HIGH_VALUE_THRESHOLD,
) -> Select:
    """Customers whose orders in ``[start, end)`` sum to more than ``threshold``."""
    _check_range(start, end)

    total_spent = func.sum(Order.total_amount)
    return (
        select(
            Customer.id.label("customer_id"),
            Customer.first_name.label("first_name"),
            Customer.last_name.label("last_name"),
            total_spent.label("total_spent"),
        )
        .select_from(Order)
        .join(Customer, Order.customer_id == Customer.id)
        .where(Order.order_date >= start, Order.order_date < end)
        .group_by(Customer.id, Customer.first_name, Customer.last_name)
        .having(total_spent > threshold)
        .order_by(total_spent.desc(), Customer.id.asc())
    )


def high_value_customers(
    session: Session,
    start: date,
    end: date,
    threshold: Union[Decimal, int, float] = DEFAULT_HIGH_VALUE_THRESHOLD,
) -> List[Dict]:
    return _rows(session, high_value_customers_query(start, end, threshold))


def inconsistent_orders_query() -> Select:
    """Orders whose stored total differs from the sum of their line totals."""
    line_totals = (
        select(
            OrderDetail.order_id.label("order_id"),
            func.sum(OrderDetail.quantity * OrderDetail.unit_price).label(
                "line_total"
            ),
        )
        .group_by(OrderDetail.order_id)
        .subquery()
    )
    # Compare at cent precision; SQLite stores REAL and drifts on multiplication
    line_total = func.round(func.coalesce(line_totals.c.line_total, 0), 2)
    return (
        select(
            Order.id.label("order_id"),
            Order.total_amount.label("total_amount"),
            line_total.label("line_total"),
        )
        .select_from(Order)
        .outerjoin(line_totals, line_totals.c.order_id == Order.id)
        .where(func.round(Order.total_amount, 2) != line_total)
        .order_by(Order.id)
    )


def inconsistent_orders(session: Session) -> List[Dict]:
    return _rows(session, inconsistent_orders_query())


def report_to_dataframe(
    statement: Select, connectable: Union[Engine, Connection]
) -> pd.DataFrame:
    """Run a report statement and return its rows as a DataFrame."""
    return pd.read_sql(statement, connectable)
