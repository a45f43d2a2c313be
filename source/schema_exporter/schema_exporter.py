"""Module to export the storefront schema and report queries as plain SQL text."""

import os
from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from dotenv import load_dotenv
from sqlalchemy import Select
from sqlalchemy.dialects import mysql, postgresql, sqlite
from sqlalchemy.engine import Dialect
from sqlalchemy.schema import CreateTable

from storefront.logger import Logger
from storefront.models import Base
from storefront.reports import (
    DEFAULT_HIGH_VALUE_THRESHOLD,
    daily_revenue_query,
    high_value_customers_query,
    month_range,
    top_selling_products_query,
)

# Load environment
load_dotenv(".env")

SCHEMA_DIALECT = os.getenv("SCHEMA_DIALECT", "postgresql")
SCHEMA_OUTPUT = os.getenv("SCHEMA_OUTPUT", "schema.sql")

# Report parameters
REPORT_DATE = os.getenv("REPORT_DATE")
HIGH_VALUE_THRESHOLD = Decimal(
    os.getenv("HIGH_VALUE_THRESHOLD", str(DEFAULT_HIGH_VALUE_THRESHOLD))
)

DIALECTS = {
    "postgresql": postgresql.dialect,
    "mysql": mysql.dialect,
    "sqlite": sqlite.dialect,
}

# Set up logger
logger = Logger.get_logger(__name__)


def get_dialect(dialect_name: str) -> Dialect:
    """Return a dialect instance by name."""
    try:
        return DIALECTS[dialect_name]()
    except KeyError:
        raise ValueError(
            f"Unsupported dialect '{dialect_name}', expected one of {sorted(DIALECTS)}"
        ) from None


def render_schema_ddl(dialect_name: str = "postgresql") -> str:
    """CREATE TABLE statements for every table, parents first."""
    dialect = get_dialect(dialect_name)
    statements = [
        str(CreateTable(table).compile(dialect=dialect)).strip() + ";"
        for table in Base.metadata.sorted_tables
    ]
    return "\n\n".join(statements) + "\n"


def render_query(statement: Select, dialect_name: str = "postgresql") -> str:
    """Compile a statement with its parameters inlined."""
    compiled = statement.compile(
        dialect=get_dialect(dialect_name), compile_kwargs={"literal_binds": True}
    )
    return str(compiled).strip() + ";"


def render_report_sql(
    day: date,
    start: date,
    end: date,
    threshold: Decimal = DEFAULT_HIGH_VALUE_THRESHOLD,
    dialect_name: str = "postgresql",
) -> str:
    """The three reporting queries as SQL text."""
    sections = [
        ("Daily revenue", daily_revenue_query(day)),
        ("Top-selling products", top_selling_products_query(start, end)),
        ("High-value customers", high_value_customers_query(start, end, threshold)),
    ]
    return "\n\n".join(
        f"-- {title}\n{render_query(statement, dialect_name)}"
        for title, statement in sections
    ) + "\n"


class SchemaExporter:
    """
    Class to write the schema DDL and the report queries to a .sql file.
    """

    def __init__(
        self,
        output_path: str,
        dialect_name: str = "postgresql",
        threshold: Decimal = DEFAULT_HIGH_VALUE_THRESHOLD,
    ):
        self.output_path = output_path
        self.dialect_name = dialect_name
        self.threshold = threshold

    def __call__(
        self,
        day: Optional[date] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> str:
        """Main function to export, return the written path

        The report range defaults to the calendar month containing ``day``.
        """
        day = day or date.today()
        if start is None or end is None:
            start, end = month_range(day.year, day.month)

        sql = (
            f"-- Schema ({self.dialect_name})\n\n"
            + render_schema_ddl(self.dialect_name)
            + "\n"
            + render_report_sql(
                day, start, end, self.threshold, dialect_name=self.dialect_name
            )
        )
        with open(self.output_path, "w", encoding="utf-8") as file:
            file.write(sql)

        logger.info(f"Schema written to {self.output_path}")
        return self.output_path


if __name__ == "__main__":
    schema_exporter = SchemaExporter(
        output_path=SCHEMA_OUTPUT,
        dialect_name=SCHEMA_DIALECT,
        threshold=HIGH_VALUE_THRESHOLD,
    )
    schema_exporter(
        day=datetime.strptime(REPORT_DATE, "%Y-%m-%d").date() if REPORT_DATE else None
    )
