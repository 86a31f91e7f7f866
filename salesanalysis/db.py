"""Database settings, connections and bulk statement execution."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

import pymysql

from .config import read_toml_config

log = logging.getLogger(__name__)

MARIA = "Maria"
DEFAULT_CONFIG_PATH = "./toml/dbconfig.toml"

# Configuration key -> settings field.
_CONFIG_FIELDS = {
    "MariaServer": "server",
    "MariaPort": "port",
    "MariaUser": "user",
    "MariaPassword": "password",
    "MariaDatabase": "database",
}


class InvalidDatabaseError(Exception):
    """Raised when database details are missing or do not match."""


def _as_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


@dataclass(frozen=True)
class DatabaseSettings:
    """Connection details for one database."""

    server: str
    port: str
    user: str
    password: str
    database: str
    db_type: str = MARIA

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> DatabaseSettings:
        """Build settings from a parsed configuration mapping."""
        missing = [key for key in _CONFIG_FIELDS if key not in config]
        if missing:
            raise InvalidDatabaseError(
                "missing database settings: " + ", ".join(missing)
            )
        values = {field: _as_text(config[key]) for key, field in _CONFIG_FIELDS.items()}
        return cls(**values, db_type=MARIA)

    def connect_kwargs(self) -> dict[str, Any]:
        """Keyword arguments for ``pymysql.connect``."""
        try:
            port = int(self.port)
        except ValueError as exc:
            raise InvalidDatabaseError(f"invalid port: {self.port!r}") from exc
        return {
            "host": self.server,
            "port": port,
            "user": self.user,
            "password": self.password,
            "database": self.database,
        }


def load_database_settings(filename: str | Path = DEFAULT_CONFIG_PATH) -> DatabaseSettings:
    """Read database settings from a TOML file."""
    return DatabaseSettings.from_config(read_toml_config(filename))


def connect(db_type: str = MARIA, filename: str | Path = DEFAULT_CONFIG_PATH):
    """Open a connection to the database of the given type."""
    settings = load_database_settings(filename)
    log.info("DBtype %s", db_type)
    if db_type != settings.db_type:
        raise InvalidDatabaseError("Invalid DB Details")
    try:
        return pymysql.connect(**settings.connect_kwargs())
    except pymysql.MySQLError:
        log.exception("DB01 Error in DB connect")
        raise


def execute_bulk_statement(connection, values: str, statement: str) -> None:
    """Execute ``statement`` followed by ``values`` minus its last character.

    ``values`` is a run of value tuples each followed by a comma; the
    trailing separator is dropped before execution.
    """
    if not values:
        raise ValueError("no values to insert")
    query = statement + values[:-1]
    log.debug("query: %s", query)
    with connection.cursor() as cursor:
        cursor.execute(query)
    connection.commit()
    log.info("inserted successfully")