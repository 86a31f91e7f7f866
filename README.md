# salesanalysis

A small service that loads a sales CSV export into a MariaDB (or MySQL)
database and answers customer analysis questions over HTTP.

It does three things:

- reads a sales CSV file and bulk-inserts customers, orders, products and
  sale items in batches of 1000 records;
- reloads the same file once at start-up and then every day at 06:00 local
  time in a background thread;
- serves two HTTP endpoints, on port 29095 by default.

## Installing

```
pip install .
```

For running the tests:

```
pip install ".[test]"
pytest
```

## Configuration

Database details are read from a TOML file, `./toml/dbconfig.toml` by
default. All five keys are required, and `MariaPort` must be a whole number
(given as a string or an integer):

```toml
MariaServer = "localhost"
MariaPort = "3306"
MariaUser = "user"
MariaPassword = "password"
MariaDatabase = "sales"
```

## The CSV file

The sales file (`./data/sales.csv` by default) is read with its first two
non-empty lines skipped as headers. Empty lines are ignored, every line must
have as many fields as the first one, and each data line must hold at least
fifteen columns, in this order:

order id, product id, customer id, product name, category, region, sale
date, quantity sold, unit price, discount, shipping cost, payment method,
customer name, customer e-mail, customer address.

The values are placed into the `INSERT` statements as they stand: text
columns are wrapped in single quotes, the others (ids, sale date, quantity,
prices, discount, shipping cost) are written bare. Nothing is escaped, so the
file must be trusted and already in a form the database accepts.

For each batch, rows are inserted into `customers`, `Orders`, `Products` and
`SaleItems`, in that order, each followed by a commit. The first failing
statement stops the load.

## Running

```
salesanalysis
```

Options:

- `--csv PATH` – the sales CSV file (default `./data/sales.csv`);
- `--config PATH` – the database TOML file (default `./toml/dbconfig.toml`);
- `--port N` – the port to listen on (default `29095`);
- `--log-dir DIR` – where the log is written (default `./log`).

Each run writes its log to a new file `logfileDDMMYYYY.HH.MM.SS.ffffff.txt`
in the log directory, which must already exist; if it cannot be opened, or
the database connection fails, the command exits with status 1. The server
runs until interrupted.

## Endpoints

All replies are sent with status 200, CORS headers and a
`text/plain; charset=utf-8` body. Both paths answer `OPTIONS`; any other path
answers 404.

### `GET /api/CustomerAnalysis?start=YYYY-MM-DD&end=YYYY-MM-DD`

Returns the figures for orders between the two dates:

```json
{"status":"S","errmsg":"","totalcustomers":12,"totalorders":40,"averagevalue":153.2}
```

On failure `status` is `"E"` and `errmsg` carries a code followed by the
error text:

- `CA01` / `CA02` – the start / end date could not be parsed (the queries
  still run, with the date `0001-01-01` in its place);
- `CA03`, `CA04`, `CA05` – the customer, order or average query failed; the
  remaining queries are skipped.

A later error replaces an earlier message. `totalcustomers` is the order
count of the last customer group the query returns.

### `POST /api/refresh`

Reloads the CSV file at once and records the outcome (success flag and
message) in the `refresh_logs` table. Answers `{"status":"S","errmsg":""}`,
or `"E"` as the status when the log entry could not be written.

## Using it from Python

The pieces work with any DB-API connection whose cursors are context
managers and use the `%s` parameter style:

```python
from salesanalysis.db import connect
from salesanalysis.loader import load_csv
from salesanalysis.analysis import customer_analysis

connection = connect("Maria", "./toml/dbconfig.toml")
count = load_csv(connection, "./data/sales.csv", 1000)
report = customer_analysis(connection, "2024-01-01", "2024-12-31")
print(report.to_json())
```

- `salesanalysis.config.read_toml_config(filename)` – parse a TOML file.
- `salesanalysis.db` – `DatabaseSettings`, `load_database_settings`,
  `connect` (raises `InvalidDatabaseError` for an unknown database type or
  bad settings) and `execute_bulk_statement`.
- `salesanalysis.loader` – `SaleRecord`, `read_sales_csv`, the per-table
  value renderers and `load_csv`, which returns the number of records.
- `salesanalysis.analysis` – `total_customers`, `total_orders`,
  `average_value`, `customer_analysis` and `CustomerReport`.
- `salesanalysis.server` – `refresh_data`, `seconds_until_next_run`,
  `autoload_csv`, `make_handler` and `main`.

## What it does not do

The package does not create the database or its tables; `customers`,
`Orders`, `Products`, `SaleItems`, `orders`, `saleitems` and `refresh_logs`
must already exist with the columns the statements use. It offers no
authentication on its endpoints.