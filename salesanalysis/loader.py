"""Loading the sales CSV file into the database."""

from __future__ import annotations

import csv
import logging
from dataclasses import dataclass, fields
from itertools import islice
from pathlib import Path
from typing import Iterable, Iterator, Sequence

from .db import execute_bulk_statement

log = logging.getLogger(__name__)

CUSTOMER_SQL = "insert into customers(customer_id,name,email,address) values "
ORDER_SQL = (
    "insert into Orders (Order_id,customer_id,saledate,region,payment_method) values "
)
PRODUCT_SQL = "insert into Products(product_id,name,category) values "
SALE_ITEM_SQL = (
    "insert into SaleItems(order_id,product_id,quantity_sold,unit_price,"
    "discount,shipping_cost) values "
)

HEADER_ROWS = 2
DEFAULT_BATCH_SIZE = 1000


@dataclass(frozen=True)
class SaleRecord:
    """One line of the sales file, kept as text."""

    order_id: str
    product_id: str
    customer_id: str
    product_name: str
    category: str
    region: str
    sale_date: str
    quantity_sold: str
    unit_price: str
    discount: str
    shipping_cost: str
    payment_method: str
    customer_name: str
    customer_email: str
    customer_address: str

    @classmethod
    def from_row(cls, row: Sequence[str]) -> SaleRecord:
        """Build a record from the first fifteen columns of a CSV row."""
        width = len(fields(cls))
        if len(row) < width:
            raise ValueError(f"expected at least {width} columns, got {len(row)}")
        return cls(*row[:width])


def read_sales_csv(path: str | Path) -> list[SaleRecord]:
    """Read all records from the sales file, skipping the header rows.

    Every row must have as many fields as the first one.
    """
    records: list[SaleRecord] = []
    with open(path, newline="", encoding="utf-8") as handle:
        reader = csv.reader(handle)
        expected: int | None = None
        seen = 0
        for row in reader:
            if not row:
                continue
            if expected is None:
                expected = len(row)
            elif len(row) != expected:
                raise csv.Error(
                    f"record on line {reader.line_num}: wrong number of fields"
                )
            if seen >= HEADER_ROWS:
                records.append(SaleRecord.from_row(row))
            seen += 1
    return records


def customer_values(record: SaleRecord) -> str:
    return (
        f"({record.customer_id},'{record.customer_name}',"
        f"'{record.customer_email}','{record.customer_address}')"
    )


def order_values(record: SaleRecord) -> str:
    return (
        f"({record.order_id},{record.customer_id},{record.sale_date},"
        f"'{record.region}','{record.payment_method}')"
    )


def product_values(record: SaleRecord) -> str:
    return f"({record.product_id},'{record.product_name}','{record.category}')"


def sale_item_values(record: SaleRecord) -> str:
    return (
        f"({record.order_id},{record.product_id},{record.quantity_sold},"
        f"{record.unit_price},{record.discount},{record.shipping_cost})"
    )


_TABLES = (
    ("Customer", CUSTOMER_SQL, customer_values),
    ("Orders", ORDER_SQL, order_values),
    ("Products", PRODUCT_SQL, product_values),
    ("SaleItem", SALE_ITEM_SQL, sale_item_values),
)


def _batches(records: Iterable[SaleRecord], size: int) -> Iterator[list[SaleRecord]]:
    iterator = iter(records)
    while batch := list(islice(iterator, size)):
        yield batch


def load_csv(connection, path: str | Path, batch_size: int = DEFAULT_BATCH_SIZE) -> int:
    """Insert every record of the sales file, in batches; return the count."""
    if batch_size < 1:
        raise ValueError("batch_size must be positive")
    log.info("loading %s", path)
    records = read_sales_csv(path)
    for batch in _batches(records, batch_size):
        for table, statement, render in _TABLES:
            values = "".join(render(record) + "," for record in batch)
            try:
                execute_bulk_statement(connection, values, statement)
            except Exception:
                log.exception("Error inserting file into database for %s table", table)
                raise
    log.info("loaded %d records", len(records))
    return len(records)