"""Script to generate random categories, customers, products, and orders, and update the storefront database."""

import os
import time
import random
from decimal import Decimal
from typing import Optional
from dotenv import load_dotenv
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from faker import Faker

from storefront.logger import Logger
from storefront.models import Category, Customer, Product
from storefront.orders import OrderLine, place_order
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

# Number of actions to run, unset means run forever
GENERATOR_ITERATIONS = os.getenv("GENERATOR_ITERATIONS")

# Set up logger
logger = Logger.get_logger(__name__)

ACTIONS = ["category", "customer", "product", "order", "order", "order", "restock"]


class DataGenerator:
    """
    Class to generate random catalog entries, customers and orders, and update the database accordingly.
    """

    def __init__(self, db_url: str, seed: Optional[int] = None):
        self.db_url = db_url

        self.random = random.Random(seed)
        self.faker = Faker()
        if seed is not None:
            self.faker.seed_instance(seed)

    def generate_category(self, session: Session) -> Category:
        """Generate a new category"""
        category = Category(name=self.faker.word().title())

        session.add(category)
        session.commit()
        logger.info(f"Generated new category: {category}")
        return category

    def generate_customer(self, session: Session) -> Customer:
        """Generate a new customer"""
        customer = Customer(
            first_name=self.faker.first_name(),
            last_name=self.faker.last_name(),
            email=self.faker.unique.email(),
            password=self.faker.password(length=12),
        )

        session.add(customer)
        session.commit()
        logger.info(f"Generated new customer: {customer}")
        return customer

    def generate_product(self, session: Session) -> Optional[Product]:
        """Generate a new product in a random category"""
        categories = session.scalars(select(Category)).all()
        if not categories:
            logger.info("No categories found")
            return None

        product = Product(
            category=self.random.choice(categories),
            name=self.faker.catch_phrase(),
            description=self.faker.sentence(),
            price=Decimal(self.random.randint(100, 20000)) / 100,
            stock_quantity=self.random.randint(0, 100),
        )

        session.add(product)
        session.commit()
        logger.info(f"Generated new product: {product}")
        return product

    def generate_order(self, session: Session):
        """Generate a new order from products that are in stock"""
        customers = session.scalars(select(Customer)).all()
        if not customers:
            logger.info("No customers found")
            return None

        products = session.scalars(
            select(Product).where(Product.stock_quantity > 0)
        ).all()
        if not products:
            logger.info("No products in stock")
            return None

        customer = self.random.choice(customers)
        selected_products = self.random.sample(
            products, min(self.random.randint(1, 3), len(products))
        )
        lines = [
            OrderLine(
                product_id=product.id,
                quantity=self.random.randint(1, min(3, product.stock_quantity)),
            )
            for product in selected_products
        ]

        order = place_order(session, customer.id, lines)
        session.commit()
        logger.info(f"Generated new order: {order} with {len(lines)} items")
        return order

    def restock_product(self, session: Session) -> Optional[Product]:
        """Update the stock of a random product"""
        products = session.scalars(select(Product)).all()
        if not products:
            logger.info("No products found")
            return None

        product = self.random.choice(products)

        old_stock = product.stock_quantity
        product.stock_quantity = max(0, product.stock_quantity + self.random.randint(-10, 20))

        session.commit()
        logger.info(
            f"Update product {product.name} stock: {old_stock} -> {product.stock_quantity}"
        )
        return product

    def step(self, session: Session) -> str:
        """Run one random action, return its name"""
        action = self.random.choice(ACTIONS)

        if action == "category":
            self.generate_category(session)
        elif action == "customer":
            self.generate_customer(session)
        elif action == "product":
            self.generate_product(session)
        elif action == "order":
            self.generate_order(session)
        elif action == "restock":
            self.restock_product(session)

        return action

    def __call__(self, iterations: Optional[int] = None, max_wait: int = 2) -> int:
        """Main function to generate, return the number of completed actions"""
        engine = create_database_engine(self.db_url)

        # Wait for the database to be available
        if not wait_for_postgres(engine, max_retries=20, delay=2):
            return 0

        # Set up database
        setup_database(engine=engine)

        completed = 0
        while iterations is None or completed < iterations:
            with Session(engine) as session:
                try:
                    self.step(session)
                except SQLAlchemyError as e:
                    session.rollback()
                    logger.error(f"Database error: {e}")
            completed += 1

            wait_time = self.random.randint(0, max_wait)
            if wait_time:
                logger.info(f"Waiting {wait_time} seconds before next action...")
                time.sleep(wait_time)

        engine.dispose()
        return completed


if __name__ == "__main__":
    data_generator = DataGenerator(db_url=DB_URL)
    data_generator(
        iterations=int(GENERATOR_ITERATIONS) if GENERATOR_ITERATIONS else None
    )
