"""Script to initialize the database, load CSV data, and insert records into the storefront schema."""

import os
from datetime import datetime
from decimal import Decimal
from dotenv import load_dotenv
import pandas as pd
from sqlalchemy import select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from storefront.logger import Logger
from storefront.models import Category, Customer, Product, Order, OrderDetail
from storefront.tools import create_database_engine, wait_for_postgres, setup_database

# Load environment
load_dotenv(".env")

# Database connection parameters
DB_USER = os.getenv("POSTGRES_USER", "postgres")
DB_PASSWORD = os.getenv("POSTGRES_PASSWORD", "postgres")
DB_HOST = os.getenv("POSTGRES_HOST", "postgres")
DB_PORT = os.getenv("POSTGRES_PORT", "5432")
DB_NAME = os.getenv("POSTGRES_DB", "postgres")

# Database connection URL
DB_URL = os.getenv(
    "DATABASE_URL",
    f"postgresql://{DB_USER}:{DB_PASSWORD}@{DB_HOST}:{DB_PORT}/{DB_NAME}",
)

# Path to CSV files
DATA_DIR = os.getenv("DATA_DIR", "/app/data/")

# Set up logger
logger = Logger.get_logger(__name__)


def _optional(value):
    """Map pandas missing values to None."""
    return None if pd.isna(value) else value


def _text(value):
    value = _optional(value)
    return None if value is None else str(value)


def _integer(value):
    value = _optional(value)
    return None if value is None else int(value)


def _money(value):
    value = _optional(value)
    return None if value is None else Decimal(str(value))


def _parse_date(value):
    value = _optional(value)
    return None if value is None else datetime.strptime(str(value), "%Y-%m-%d").date()


class DataInitializer:
    """
    Class to initialize database, load CSV data, and insert records into the storefront tables.
    """

    def __init__(self, db_url: str, data_dir):
        self.db_url = db_url
        self.data_dir = data_dir
        self.categories_csv = os.path.join(self.data_dir, "categories.csv")
        self.customers_csv = os.path.join(self.data_dir, "customers.csv")
        self.products_csv = os.path.join(self.data_dir, "products.csv")
        self.orders_csv = os.path.join(self.data_dir, "orders.csv")
        self.order_details_csv = os.path.join(self.data_dir, "order_details.csv")

    def load_csv_data(self, file_path: str) -> pd.DataFrame:
        """Load data from a CSV file"""
        try:
            return pd.read_csv(file_path)
        except (OSError, pd.errors.ParserError, pd.errors.EmptyDataError) as e:
            logger.error(f"Error loading CSV file {file_path}: {e}")
            return pd.DataFrame()

    def _insert_new(self, session: Session, model, records: list, build) -> int:
        """Insert the records whose id is not present yet, return how many were added"""
        existing_ids = set(session.scalars(select(model.id)))
        inserted = 0
        for record in records:
            if _integer(record["id"]) in existing_ids:
                continue
            session.add(build(record))
            inserted += 1

        session.commit()
        return inserted

    def insert_categories(self, session: Session, categories_df: pd.DataFrame) -> int:
        """Insert category data into the database"""
        inserted = self._insert_new(
            session,
            Category,
            categories_df.to_dict(orient="records"),
            lambda row: Category(id=_integer(row["id"]), name=_text(row["name"])),
        )
        logger.info(f"Inserted {inserted} categories")
        return inserted

    def insert_customers(self, session: Session, customers_df: pd.DataFrame) -> int:
        """Insert customer data into the database"""
        inserted = self._insert_new(
            session,
            Customer,
            customers_df.to_dict(orient="records"),
            lambda row: Customer(
                id=_integer(row["id"]),
                first_name=_text(row["first_name"]),
                last_name=_text(row["last_name"]),
                email=_text(row["email"]),
                password=_text(row["password"]),
            ),
        )
        logger.info(f"Inserted {inserted} customers")
        return inserted

    def insert_products(self, session: Session, products_df: pd.DataFrame) -> int:
        """Insert product data into the database"""
        inserted = self._insert_new(
            session,
            Product,
            products_df.to_dict(orient="records"),
            lambda row: Product(
                id=_integer(row["id"]),
                category_id=_integer(row["category_id"]),
                name=_text(row["name"]),
                description=_text(row.get("description")),
                price=_money(row["price"]),
                stock_quantity=_integer(row["stock_quantity"]),
            ),
        )
        logger.info(f"Inserted {inserted} products")
        return inserted

    def insert_orders(self, session: Session, orders_df: pd.DataFrame) -> int:
        """Insert order data into the database"""
        inserted = self._insert_new(
            session,
            Order,
            orders_df.to_dict(orient="records"),
            lambda row: Order(
                id=_integer(row["id"]),
                customer_id=_integer(row["customer_id"]),
                order_date=_parse_date(row["order_date"]),
                total_amount=_money(row["total_amount"]),
            ),
        )
        logger.info(f"Inserted {inserted} orders")
        return inserted

    def insert_order_details(
        self, session: Session, order_details_df: pd.DataFrame
    ) -> int:
        """Insert order detail data into the database"""
        inserted = self._insert_new(
            session,
            OrderDetail,
            order_details_df.to_dict(orient="records"),
            lambda row: OrderDetail(
                id=_integer(row["id"]),
                order_id=_integer(row["order_id"]),
                product_id=_integer(row["product_id"]),
                quantity=_integer(row["quantity"]),
                unit_price=_money(row["unit_price"]),
            ),
        )
        logger.info(f"Inserted {inserted} order details")
        return inserted

    def load(self, session: Session) -> bool:
        """Load every CSV file and insert it, parents first"""
        categories_df = self.load_csv_data(self.categories_csv)
        customers_df = self.load_csv_data(self.customers_csv)
        products_df = self.load_csv_data(self.products_csv)
        orders_df = self.load_csv_data(self.orders_csv)
        order_details_df = self.load_csv_data(self.order_details_csv)

        frames = [categories_df, customers_df, products_df, orders_df, order_details_df]
        if any(df.empty for df in frames):
            logger.info("One or more CSV files could not be loaded. Exiting.")
            return False

        self.insert_categories(session, categories_df)
        self.insert_customers(session, customers_df)
        self.insert_products(session, products_df)
        self.insert_orders(session, orders_df)
        self.insert_order_details(session, order_details_df)
        self.sync_sequences(session)
        return True

    def sync_sequences(self, session: Session) -> None:
        """Move PostgreSQL id sequences past the ids loaded from CSV"""
        if session.get_bind().dialect.name != "postgresql":
            return

        for model in (Category, Customer, Product, Order, OrderDetail):
            table = model.__tablename__
            session.execute(
                text(
                    f"SELECT setval(pg_get_serial_sequence('{table}', 'id'), "
                    f"COALESCE((SELECT MAX(id) FROM {table}), 0) + 1, false)"
                )
            )
        session.commit()
        logger.info("Id sequences synchronized")

    def __call__(self) -> bool:
        """Main function to initalize"""
        engine = create_database_engine(self.db_url)

        # Wait for the database to be available
        if not wait_for_postgres(engine, max_retries=20, delay=2):
            return False

        # Set up database
        setup_database(engine=engine)

        # Create session
        loaded = False
        with Session(engine) as session:
            try:
                loaded = self.load(session)
                if loaded:
                    logger.info("Initialization completed successfully")
            except SQLAlchemyError as e:
                session.rollback()
                logger.error(f"Database error: {e}")

        engine.dispose()
        return loaded


if __name__ == "__main__":
    data_initializer = DataInitializer(db_url=DB_URL, data_dir=DATA_DIR)
    data_initializer()
