import json
import threading
import urllib.error
import urllib.request
from datetime import datetime, timedelta
from decimal import Decimal
from http.server import HTTPServer

import pytest

from salesanalysis.server import (
    autoload_csv,
    make_handler,
    refresh_data,
    seconds_until_next_run,
)


class FakeCursor:
    def __init__(self, connection):
        self.connection = connection
        self._rows = []

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def execute(self, query, params=None):
        self.connection.executed.append((query, params))
        for key, result in self.connection.responses.items():
            if key in query:
                if isinstance(result, Exception):
                    raise result
                self._rows = list(result)
                return
        self._rows = []

    def fetchall(self):
        return self._rows


class FakeConnection:
    def __init__(self, responses=None):
        self.responses = responses or {}
        self.executed = []
        self.commits = 0

    def cursor(self):
        return FakeCursor(self)

    def commit(self):
        self.commits += 1


HEADER = ",".join(f"h{i}" for i in range(15))
ROW = "1,2,3,Pen,Office,North,20240101,4,1.5,0.1,2.0,Card,Ann,ann@example.com,Main St"


@pytest.fixture
def sales_csv(tmp_path):
    path = tmp_path / "sales.csv"
    path.write_text(f"{HEADER}\n{HEADER}\n{ROW}\n", encoding="utf-8")
    return path


def _log_entries(conn):
    return [params for query, params in conn.executed if "refresh_logs" in query]


def test_refresh_data_success(sales_csv):
    conn = FakeConnection()
    assert refresh_data(conn, sales_csv) == {"status": "S", "errmsg": ""}
    assert _log_entries(conn) == [(True, "Refresh successful")]
    assert len(conn.executed) == 5


def test_refresh_data_missing_file_logs_failure(tmp_path):
    conn = FakeConnection()
    result = refresh_data(conn, tmp_path / "missing.csv")
    assert result["status"] == "S"
    entries = _log_entries(conn)
    assert len(entries) == 1
    assert entries[0][0] is False
    assert "missing.csv" in entries[0][1]


def test_refresh_data_log_failure_sets_error(sales_csv):
    conn = FakeConnection({"refresh_logs": RuntimeError("table missing")})
    assert refresh_data(conn, sales_csv)["status"] == "E"


@pytest.mark.parametrize(
    "now",
    [
        datetime(2024, 3, 1, 5, 0),
        datetime(2024, 3, 1, 7, 30, 15),
        datetime(2024, 12, 31, 23, 59, 59),
        datetime(2024, 3, 1, 6, 0),
    ],
)
def test_seconds_until_next_run_lands_on_reload_hour(now):
    seconds = seconds_until_next_run(now)
    assert 0 <= seconds < 24 * 60 * 60
    target = now + timedelta(seconds=seconds)
    assert (target.hour, target.minute, target.second) == (6, 0, 0)


def test_seconds_until_next_run_custom_hour():
    now = datetime(2024, 3, 1, 12, 0)
    target = now + timedelta(seconds=seconds_until_next_run(now, 18))
    assert target == datetime(2024, 3, 1, 18, 0)


class _StopOnWait:
    def __init__(self):
        self.waits = []

    def is_set(self):
        return bool(self.waits)

    def wait(self, timeout):
        self.waits.append(timeout)
        return True


def test_autoload_loads_once_then_stops(sales_csv):
    conn = FakeConnection()
    stop = _StopOnWait()
    autoload_csv(conn, sales_csv, stop)
    assert len(conn.executed) == 4
    assert len(stop.waits) == 1


def test_autoload_does_nothing_when_already_stopped(sales_csv):
    conn = FakeConnection()
    stop = threading.Event()
    stop.set()
    autoload_csv(conn, sales_csv, stop)
    assert conn.executed == []


@pytest.fixture
def server(sales_csv):
    conn = FakeConnection(
        {
            "group by customer_id": [(4,)],
            "COUNT(1)": [(9,)],
            "AVG": [(Decimal("2.5"),)],
        }
    )
    httpd = HTTPServer(("127.0.0.1", 0), make_handler(conn, sales_csv))
    thread = threading.Thread(target=httpd.serve_forever, daemon=True)
    thread.start()
    yield f"http://127.0.0.1:{httpd.server_address[1]}", conn
    httpd.shutdown()
    httpd.server_close()


def test_http_customer_analysis(server):
    base, conn = server
    url = f"{base}/api/CustomerAnalysis?start=2024-01-01&end=2024-01-31"
    with urllib.request.urlopen(url) as resp:
        body = json.loads(resp.read())
        assert resp.headers["Access-Control-Allow-Origin"] == "*"
        assert resp.headers["Access-Control-Allow-Methods"] == "GET, OPTIONS"
    assert body == {
        "status": "S",
        "errmsg": "",
        "totalcustomers": 4,
        "totalorders": 9,
        "averagevalue": 2.5,
    }
    assert conn.executed[0][1] == ("2024-01-01", "2024-01-31")


def test_http_customer_analysis_missing_dates(server):
    base, _ = server
    with urllib.request.urlopen(f"{base}/api/CustomerAnalysis") as resp:
        body = json.loads(resp.read())
    assert body["status"] == "E"
    assert body["errmsg"].startswith("CA02: ")


def test_http_refresh(server):
    base, conn = server
    request = urllib.request.Request(f"{base}/api/refresh", data=b"", method="POST")
    with urllib.request.urlopen(request) as resp:
        body = json.loads(resp.read())
    assert body == {"status": "S", "errmsg": ""}
    assert _log_entries(conn) == [(True, "Refresh successful")]


def test_http_refresh_get_has_empty_body(server):
    base, conn = server
    with urllib.request.urlopen(f"{base}/api/refresh") as resp:
        assert resp.read() == b""
    assert conn.executed == []


def test_http_unknown_path_is_404(server):
    base, _ = server
    with pytest.raises(urllib.error.HTTPError) as info:
        urllib.request.urlopen(f"{base}/api/unknown")
    assert info.value.code == 404