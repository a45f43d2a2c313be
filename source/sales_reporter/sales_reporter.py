"""Script to run the sales reports against the storefront database and log them as tables."""

import os
from datetime import date, datetime
from decimal import Decimal
from typing import Dict, Optional
from dotenv import load_dotenv
import pandas as pd
from sqlalchemy.exc import SQLAlchemyError

from storefront.logger import Logger
from storefront.reports import (
    DEFAULT_HIGH_VALUE_THRESHOLD,
    daily_revenue_query,
    high_value_customers_query,
    inconsistent_orders_query,
    month_range,
    report_to_dataframe,
    top_selling_products_query,
)
from storefront.tools import create_database_engine, wait_for_postgres

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

# Report parameters
REPORT_DATE = os.getenv("REPORT_DATE")
HIGH_VALUE_THRESHOLD = Decimal(
    os.getenv("HIGH_VALUE_THRESHOLD", str(DEFAULT_HIGH_VALUE_THRESHOLD))
)

# Set up logger
logger = Logger.get_logger(__name__)


class SalesReporter:
    """
    Class to run the daily, monthly and audit reports for a given day.
    """

    def __init__(self, db_url: str, threshold: Decimal = DEFAULT_HIGH_VALUE_THRESHOLD):
        self.db_url = db_url
        self.threshold = threshold

    def build_reports(self, day: date) -> Dict:
        """Report statements for ``day`` and the calendar month containing it"""
        start, end = month_range(day.year, day.month)
        return {
            "daily_revenue": daily_revenue_query(day),
            "top_selling_products": top_selling_products_query(start, end),
            "high_value_customers": high_value_customers_query(
                start, end, self.threshold
            ),
            "inconsistent_orders": inconsistent_orders_query(),
        }

    def run(self, engine, day: date) -> Dict[str, pd.DataFrame]:
        """Run every report and log its result"""
        results = {}
        with engine.connect() as connection:
            for name, statement in self.build_reports(day).items():
                df = report_to_dataframe(statement, connection)
                results[name] = df
                if df.empty:
                    logger.info(f"Report {name}: no rows")
                else:
                    logger.info(f"Report {name}:\n{df.to_string(index=False)}")
        return results

    def __call__(self, day: Optional[date] = None) -> Dict[str, pd.DataFrame]:
        """Main function to report"""
        day = day or date.today()
        engine = create_database_engine(self.db_url)

        # Wait for the database to be available
        if not wait_for_postgres(engine, max_retries=20, delay=2):
            return {}

        try:
            return self.run(engine, day)
        except SQLAlchemyError as e:
            logger.error(f"Database error: {e}")
            return {}
        finally:
            engine.dispose()


if __name__ == "__main__":
    sales_reporter = SalesReporter(db_url=DB_URL, threshold=HIGH_VALUE_THRESHOLD)
    sales_reporter(
        day=datetime.strptime(REPORT_DATE, "%Y-%m-%d").date() if REPORT_DATE else None
    )
