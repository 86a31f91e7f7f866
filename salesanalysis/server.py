"""HTTP API serving the sales analysis and refreshing the data."""

from __future__ import annotations

import argparse
import json
import logging
import sys
import threading
from datetime import datetime, timedelta
from http.server import BaseHTTPRequestHandler, HTTPServer
from pathlib import Path
from urllib.parse import parse_qs, urlsplit

from .analysis import customer_analysis
from .db import DEFAULT_CONFIG_PATH, MARIA, connect
from .loader import load_csv

log = logging.getLogger(__name__)

DEFAULT_CSV_PATH = "./data/sales.csv"
DEFAULT_LOG_DIR = "./log"
DEFAULT_PORT = 29095
RELOAD_HOUR = 6

ANALYSIS_PATH = "/api/CustomerAnalysis"
REFRESH_PATH = "/api/refresh"

REFRESH_LOG_SQL = "INSERT INTO refresh_logs (success, message) VALUES (%s, %s)"

_ALLOWED_HEADERS = (
    "Accept, Content-Type, Content-Length, Accept-Encoding, "
    "X-CSRF-Token, Authorization, credentials"
)
_METHODS = {ANALYSIS_PATH: "GET, OPTIONS", REFRESH_PATH: "POST, OPTIONS"}

# The database connection is shared by the server and the reload thread.
_DB_LOCK = threading.Lock()


def refresh_data(connection, csv_path: str | Path = DEFAULT_CSV_PATH) -> dict[str, str]:
    """Reload the CSV file, record the outcome and return the response body."""
    response = {"status": "S", "errmsg": ""}
    success, message = True, "Refresh successful"
    try:
        load_csv(connection, csv_path)
    except Exception as exc:  # any failure is recorded, not propagated
        log.error("refresh failed: %s", exc)
        success, message = False, str(exc)
    try:
        with connection.cursor() as cursor:
            cursor.execute(REFRESH_LOG_SQL, (success, message))
        connection.commit()
    except Exception as exc:
        log.error("Error while writing refresh log: %s", exc)
        response["status"] = "E"
    else:
        log.info("refresh log inserted")
    return response


def seconds_until_next_run(now: datetime, hour: int = RELOAD_HOUR) -> float:
    """Seconds from ``now`` to the next time the clock reads ``hour``:00."""
    target = now.replace(hour=hour, minute=0, second=0, microsecond=0)
    if now > target:
        target += timedelta(days=1)
    return (target - now).total_seconds()


def _load_logged(connection, csv_path) -> None:
    try:
        with _DB_LOCK:
            load_csv(connection, csv_path)
    except Exception as exc:
        log.error("Error while loading csv: %s", exc)


def autoload_csv(connection, csv_path: str | Path, stop_event) -> None:
    """Load the CSV now and again every day at the reload hour until stopped."""
    log.info("autoload started")
    while not stop_event.is_set():
        _load_logged(connection, csv_path)
        if stop_event.wait(seconds_until_next_run(datetime.now())):
            break
        _load_logged(connection, csv_path)


def make_handler(connection, csv_path: str | Path = DEFAULT_CSV_PATH):
    """Return a request handler class serving the API on ``connection``."""

    class SalesHandler(BaseHTTPRequestHandler):
        def _route(self) -> tuple[str, dict[str, list[str]]]:
            parts = urlsplit(self.path)
            return parts.path, parse_qs(parts.query, keep_blank_values=True)

        def _reply(self, path: str, body: str = "") -> None:
            data = body.encode("utf-8")
            self.send_response(200)
            self.send_header("Access-Control-Allow-Origin", "*")
            self.send_header("Access-Control-Allow-Credentials", "true")
            self.send_header("Access-Control-Allow-Methods", _METHODS[path])
            self.send_header("Access-Control-Allow-Headers", _ALLOWED_HEADERS)
            self.send_header("Content-Type", "text/plain; charset=utf-8")
            self.send_header("Content-Length", str(len(data)))
            self.end_headers()
            self.wfile.write(data)

        def do_GET(self) -> None:
            path, query = self._route()
            if path not in _METHODS:
                self.send_error(404)
                return
            body = ""
            if path == ANALYSIS_PATH:
                start = query.get("start", [""])[0]
                end = query.get("end", [""])[0]
                with _DB_LOCK:
                    body = customer_analysis(connection, start, end).to_json()
            self._reply(path, body)

        def do_POST(self) -> None:
            path, _ = self._route()
            if path not in _METHODS:
                self.send_error(404)
                return
            body = ""
            if path == REFRESH_PATH:
                with _DB_LOCK:
                    result = refresh_data(connection, csv_path)
                body = json.dumps(result, separators=(",", ":"))
            self._reply(path, body)

        def do_OPTIONS(self) -> None:
            path, _ = self._route()
            if path not in _METHODS:
                self.send_error(404)
                return
            self._reply(path)

        def log_message(self, format: str, *args) -> None:
            log.info("%s - %s", self.address_string(), format % args)

    return SalesHandler


def main(argv=None) -> int:
    """Start the reload thread and serve the API."""
    parser = argparse.ArgumentParser(description="Sales analysis API server.")
    parser.add_argument("--csv", default=DEFAULT_CSV_PATH, help="sales CSV file")
    parser.add_argument("--config", default=DEFAULT_CONFIG_PATH, help="database TOML file")
    parser.add_argument("--port", type=int, default=DEFAULT_PORT, help="port to listen on")
    parser.add_argument("--log-dir", default=DEFAULT_LOG_DIR, help="directory for log files")
    args = parser.parse_args(argv)

    stamp = datetime.now().strftime("%d%m%Y.%H.%M.%S.%f")
    log_file = Path(args.log_dir) / f"logfile{stamp}.txt"
    try:
        handler = logging.FileHandler(log_file, encoding="utf-8")
    except OSError as exc:
        print(f"error opening file: {exc}", file=sys.stderr)
        return 1
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
        handlers=[handler],
    )
    log.info("Server started")

    try:
        connection = connect(MARIA, args.config)
    except Exception as exc:
        log.error("Error while opening the global database connection: %s", exc)
        return 1

    stop_event = threading.Event()
    loader = threading.Thread(
        target=autoload_csv, args=(connection, args.csv, stop_event), daemon=True
    )
    loader.start()
    server = HTTPServer(("", args.port), make_handler(connection, args.csv))
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        pass
    finally:
        stop_event.set()
        server.server_close()
        connection.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())