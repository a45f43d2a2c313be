"""Order write path keeping ``orders.total_amount`` in step with its details."""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from storefront.logger import Logger
from storefront.models import Order, OrderDetail, Product

logger = Logger.get_logger(__name__)

CENT = Decimal("0.01")


@dataclass(frozen=True)
class OrderLine:
    """A requested line item. ``unit_price`` defaults to the product's price."""

    product_id: int
    quantity: int
    unit_price: Optional[Decimal] = None


def to_money(value) -> Decimal:
    """Quantize a number to cents."""
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def merge_lines(lines: Iterable[OrderLine]) -> list[OrderLine]:
    """Collapse lines for the same product into one, summing quantities.

    Every input quantity must be positive. Lines for the same product may
    repeat an explicit unit price or leave it unset, but not disagree on it.
    """
    merged: dict[int, OrderLine] = {}
    for line in lines:
        if line.quantity <= 0:
            raise ValueError(
                f"Quantity for product {line.product_id} must be positive, got {line.quantity}"
            )

        existing = merged.get(line.product_id)
        if existing is None:
            merged[line.product_id] = line
            continue

        if (
            existing.unit_price is not None
            and line.unit_price is not None
            and to_money(existing.unit_price) != to_money(line.unit_price)
        ):
            raise ValueError(
                f"Conflicting unit prices for product {line.product_id}: "
                f"{existing.unit_price} and {line.unit_price}"
            )

        merged[line.product_id] = OrderLine(
            product_id=line.product_id,
            quantity=existing.quantity + line.quantity,
            unit_price=(
                existing.unit_price
                if existing.unit_price is not None
                else line.unit_price
            ),
        )
    return list(merged.values())


def place_order(
    session: Session,
    customer_id: int,
    lines: Iterable[OrderLine],
    order_date: Optional[date] = None,
) -> Order:
    """Create an order with its details, decrement stock and set the total.

    All products are resolved before anything is added to the session, so a
    ``LookupError`` or ``ValueError`` leaves the session untouched. The session
    is flushed, not committed. Constraint violations (stock going negative,
    unknown customer) are raised by the database as ``IntegrityError``.
    """
    merged = merge_lines(lines)
    if not merged:
        raise ValueError("An order needs at least one line")

    products = {}
    for line in merged:
        product = session.get(Product, line.product_id)
        if product is None:
            raise LookupError(f"Product {line.product_id} does not exist")
        products[line.product_id] = product

    order = Order(customer_id=customer_id, order_date=order_date or date.today())
    session.add(order)

    total = Decimal("0")
    for line in merged:
        product = products[line.product_id]
        unit_price = to_money(
            line.unit_price if line.unit_price is not None else product.price
        )
        order.details.append(
            OrderDetail(
                product_id=product.id,
                quantity=line.quantity,
                unit_price=unit_price,
            )
        )
        product.stock_quantity = product.stock_quantity - line.quantity
        total += unit_price * line.quantity

    order.total_amount = to_money(total)
    session.flush()

    logger.info(f"Placed order: {order} with {len(merged)} lines")
    return order


def order_line_total(session: Session, order_id: int) -> Decimal:
    """Sum of quantity * unit_price over an order's details."""
    result = session.execute(
        select(
            func.coalesce(
                func.sum(OrderDetail.quantity * OrderDetail.unit_price), 0
            )
        ).where(OrderDetail.order_id == order_id)
    ).scalar_one()
    return to_money(result)


def recalculate_order_total(session: Session, order: Order) -> Decimal:
    """Rewrite ``order.total_amount`` from its details and return it."""
    session.flush()
    total = order_line_total(session, order.id)
    if to_money(order.total_amount) != total:
        logger.info(f"Order {order.id} total {order.total_amount} -> {total}")
    order.total_amount = total
    session.flush()
    return total
