"""SQLAlchemy ORM models for categories, customers, products, orders, and order details."""

from datetime import date

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()

# Money columns, two decimal places
Money = Numeric(10, 2)


class Category(Base):
    """
    Category model grouping products in the catalog.
    """

    __tablename__ = "category"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False)

    # Relationship with products
    products = relationship(
        "Product",
        back_populates="category",
        cascade="all, delete",
        passive_deletes=True,
    )

    def __repr__(self):
        return f"<Category(id={self.id}, name='{self.name}')>"


class Customer(Base):
    """
    Customer model representing a registered shopper.

    The password is stored as an opaque string; no hashing scheme is implied.
    """

    __tablename__ = "customer"

    id = Column(Integer, primary_key=True, autoincrement=True)
    first_name = Column(String(50), nullable=False)
    last_name = Column(String(50), nullable=False)
    email = Column(String(100), nullable=False, unique=True)
    password = Column(String(255), nullable=False)

    # Relationship with orders
    orders = relationship(
        "Order",
        back_populates="customer",
        cascade="all, delete",
        passive_deletes=True,
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def __repr__(self):
        return f"<Customer(id={self.id}, email='{self.email}')>"


class Product(Base):
    """
    Product model representing items available for purchase.
    """

    __tablename__ = "product"
    __table_args__ = (
        CheckConstraint("price > 0", name="ck_product_price_positive"),
        CheckConstraint("stock_quantity >= 0", name="ck_product_stock_non_negative"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    category_id = Column(
        Integer,
        ForeignKey("category.id", ondelete="CASCADE", onupdate="CASCADE"),
        nullable=False,
    )
    name = Column(String(100), nullable=False)
    description = Column(Text)
    price = Column(Money, nullable=False)
    stock_quantity = Column(Integer, nullable=False, default=0)

    # Relationship with category and order details
    category = relationship("Category", back_populates="products")
    order_details = relationship(
        "OrderDetail",
        back_populates="product",
        cascade="all, delete",
        passive_deletes=True,
    )

    def __repr__(self):
        return f"<Product(id={self.id}, name='{self.name}', price='{self.price}')>"


class Order(Base):
    """
    Order model representing customer purchases.

    ``total_amount`` is stored, not derived. It is kept equal to the sum of the
    line totals by ``storefront.orders`` on write.
    """

    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, autoincrement=True)
    customer_id = Column(
        Integer,
        ForeignKey("customer.id", ondelete="CASCADE", onupdate="CASCADE"),
        nullable=False,
    )
    order_date = Column(Date, nullable=False, default=date.today)
    total_amount = Column(Money, nullable=False, default=0)

    # Relationship with customer and details
    customer = relationship("Customer", back_populates="orders")
    details = relationship(
        "OrderDetail",
        back_populates="order",
        cascade="all, delete",
        passive_deletes=True,
    )

    def __repr__(self):
        return f"<Order(id={self.id}, customer_id={self.customer_id}, total=${self.total_amount})>"


class OrderDetail(Base):
    """
    OrderDetail model, one line item of an order.

    Bridges orders and products. ``(order_id, product_id)`` is meant to be
    unique per order but is not declared as a constraint.
    """

    __tablename__ = "order_details"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_order_details_quantity_positive"),
        CheckConstraint(
            "unit_price >= 0", name="ck_order_details_unit_price_non_negative"
        ),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(
        Integer,
        ForeignKey("orders.id", ondelete="CASCADE", onupdate="CASCADE"),
        nullable=False,
    )
    product_id = Column(
        Integer,
        ForeignKey("product.id", ondelete="CASCADE", onupdate="CASCADE"),
        nullable=False,
    )
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Money, nullable=False)

    # Relationship with order and product
    order = relationship("Order", back_populates="details")
    product = relationship("Product", back_populates="order_details")

    @property
    def line_total(self):
        return self.quantity * self.unit_price

    def __repr__(self):
        return f"<OrderDetail(order_id={self.order_id}, product_id={self.product_id}, quantity={self.quantity})>"
