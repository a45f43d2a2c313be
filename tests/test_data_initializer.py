from datetime import date
from decimal import Decimal
from pathlib import Path

import pytest
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from data_initializer.data_initializer import (
    DataInitializer,
    _integer,
    _money,
    _parse_date,
    _text,
)
from storefront.models import Category, Customer, Order, OrderDetail, Product
from storefront.reports import daily_revenue, inconsistent_orders
from storefront.tools import create_database_engine

DATA_DIR = Path(__file__).resolve().parent.parent / "data"


@pytest.fixture
def db_url(tmp_path):
    return f"sqlite:///{tmp_path / 'storefront.db'}"


def counts(db_url):
    engine = create_database_engine(db_url)
    with Session(engine) as session:
        result = {
            model.__tablename__: session.scalar(select(func.count()).select_from(model))
            for model in (Category, Customer, Product, Order, OrderDetail)
        }
    engine.dispose()
    return result


def test_loads_sample_data(db_url):
    assert DataInitializer(db_url=db_url, data_dir=str(DATA_DIR))() is True

    assert counts(db_url) == {
        "category": 3,
        "customer": 3,
        "product": 4,
        "orders": 5,
        "order_details": 9,
    }

    engine = create_database_engine(db_url)
    with Session(engine) as session:
        assert daily_revenue(session, date(2025, 1, 5))[0]["total_revenue"] == Decimal("200.00")
        assert inconsistent_orders(session) == []
        gadget = session.get(Product, 2)
        assert gadget.description is None
    engine.dispose()


def test_second_run_inserts_nothing(db_url):
    initializer = DataInitializer(db_url=db_url, data_dir=str(DATA_DIR))
    initializer()
    before = counts(db_url)

    assert initializer() is True
    assert counts(db_url) == before


def test_missing_csv_files_stop_the_run(db_url, tmp_path):
    (tmp_path / "categories.csv").write_text("id,name\n1,Hardware\n")

    assert DataInitializer(db_url=db_url, data_dir=str(tmp_path))() is False
    assert counts(db_url)["category"] == 0


def test_load_csv_data_returns_empty_frame_for_missing_file(tmp_path):
    initializer = DataInitializer(db_url="sqlite://", data_dir=str(tmp_path))

    assert initializer.load_csv_data(str(tmp_path / "nope.csv")).empty


def test_constraint_violation_is_rolled_back(db_url, tmp_path):
    for name in ("categories", "customers", "orders", "order_details"):
        (tmp_path / f"{name}.csv").write_text((DATA_DIR / f"{name}.csv").read_text())
    (tmp_path / "products.csv").write_text(
        "id,category_id,name,description,price,stock_quantity\n1,1,Widget,,0,5\n"
    )

    assert DataInitializer(db_url=db_url, data_dir=str(tmp_path))() is False
    assert counts(db_url)["product"] == 0


def copy_sample_data(tmp_path, skip=()):
    for name in ("categories", "customers", "products", "orders", "order_details"):
        if name not in skip:
            (tmp_path / f"{name}.csv").write_text((DATA_DIR / f"{name}.csv").read_text())


def test_blank_required_field_is_rejected(db_url, tmp_path):
    copy_sample_data(tmp_path)
    customers = tmp_path / "customers.csv"
    customers.write_text(customers.read_text() + "9,,Nobody,nobody@example.com,\n")

    assert DataInitializer(db_url=db_url, data_dir=str(tmp_path))() is False

    engine = create_database_engine(db_url)
    with Session(engine) as session:
        assert session.get(Customer, 9) is None
        assert session.scalar(select(func.count()).select_from(Customer)) == 0
    engine.dispose()


def test_blank_cells_become_null_not_text():
    assert _text(float("nan")) is None
    assert _text(42) == "42"
    assert _integer(float("nan")) is None
    assert _integer(3.0) == 3
    assert _money(float("nan")) is None
    assert _money(12.5) == Decimal("12.5")
    assert _parse_date(float("nan")) is None
    assert _parse_date("2025-01-05") == date(2025, 1, 5)
