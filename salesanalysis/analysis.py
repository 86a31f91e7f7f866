"""Customer and order figures for a range of sale dates."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from datetime import date

import pymysql

log = logging.getLogger(__name__)

DATE_FORMAT = "%Y-%m-%d"
_ZERO_DATE = date.min
_DATE_PATTERN = re.compile(r"\d{4}-\d{2}-\d{2}")

TOTAL_CUSTOMERS_SQL = """SELECT COUNT(*)
        FROM orders
        WHERE saledate BETWEEN %s AND %s
        group by customer_id"""

TOTAL_ORDERS_SQL = """SELECT nvl(COUNT(1),0)
        FROM orders
        WHERE saledate BETWEEN %s AND %s"""

AVERAGE_VALUE_SQL = """SELECT nvl(AVG(order_total), 0)
        FROM (
            SELECT SUM(s.unit_price * s.quantity_sold * (1 - s.discount)) AS order_total
            FROM saleitems s
            JOIN orders o ON s.order_id = o.id
            WHERE o.date_of_sale BETWEEN %s AND %s
            GROUP BY o.id
        ) AS order_totals"""


@dataclass
class CustomerReport:
    """Result of a customer analysis request."""

    status: str = "S"
    errmsg: str = ""
    total_customers: int = 0
    total_orders: int = 0
    average_value: float = 0.0

    def to_json(self) -> str:
        """Serialise the report in the compact form the API returns."""
        average = self.average_value
        if isinstance(average, float) and average.is_integer():
            average = int(average)
        return json.dumps(
            {
                "status": self.status,
                "errmsg": self.errmsg,
                "totalcustomers": self.total_customers,
                "totalorders": self.total_orders,
                "averagevalue": average,
            },
            separators=(",", ":"),
        )


def _last_value(connection, query: str, from_date: str, to_date: str):
    """Run ``query`` and return the first column of its last row, or None."""
    with connection.cursor() as cursor:
        cursor.execute(query, (from_date, to_date))
        rows = cursor.fetchall()
    value = None
    for row in rows:
        value = row[0]
    return value


def total_customers(connection, from_date: str, to_date: str) -> int:
    """Count of orders for the last customer group in the date range."""
    log.debug("total_customers %s..%s", from_date, to_date)
    value = _last_value(connection, TOTAL_CUSTOMERS_SQL, from_date, to_date)
    return 0 if value is None else int(value)


def total_orders(connection, from_date: str, to_date: str) -> int:
    """Number of orders placed in the date range."""
    log.debug("total_orders %s..%s", from_date, to_date)
    value = _last_value(connection, TOTAL_ORDERS_SQL, from_date, to_date)
    return 0 if value is None else int(value)


def average_value(connection, from_date: str, to_date: str) -> float:
    """Average order total in the date range."""
    log.debug("average_value %s..%s", from_date, to_date)
    value = _last_value(connection, AVERAGE_VALUE_SQL, from_date, to_date)
    return 0.0 if value is None else float(value)


def _parse_date(text: str) -> date:
    if not _DATE_PATTERN.fullmatch(text):
        raise ValueError(f"cannot parse {text!r} as a YYYY-MM-DD date")
    return date.fromisoformat(text)


def customer_analysis(connection, start: str, end: str) -> CustomerReport:
    """Build the customer report for the dates ``start`` to ``end``.

    Errors never raise; they set status ``E`` and a coded message.
    An unparseable date is replaced by the zero date and the queries
    still run, so a later error message replaces an earlier one.
    """
    report = CustomerReport()

    dates = []
    for code, text in (("CA01", start), ("CA02", end)):
        try:
            dates.append(_parse_date(text))
        except ValueError as exc:
            log.error("%s: %s", code, exc)
            report.status = "E"
            report.errmsg = f"{code}: {exc}"
            dates.append(_ZERO_DATE)
    from_str, to_str = (d.strftime(DATE_FORMAT).zfill(10) for d in dates)

    steps = (
        ("CA03", "total_customers", total_customers),
        ("CA04", "total_orders", total_orders),
        ("CA05", "average_value", average_value),
    )
    for code, attribute, query in steps:
        try:
            setattr(report, attribute, query(connection, from_str, to_str))
        except pymysql.MySQLError as exc:
            log.error("%s: %s", code, exc)
            report.status = "E"
            report.errmsg = f"{code}: {exc}"
            break
    return report