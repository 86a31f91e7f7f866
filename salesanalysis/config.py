"""Reading TOML configuration files."""

from __future__ import annotations

import tomllib
from pathlib import Path
from typing import Any


def read_toml_config(filename: str | Path) -> dict[str, Any]:
    """Return the contents of a TOML file as a dictionary.

    Raises ``OSError`` if the file cannot be read and
    ``tomllib.TOMLDecodeError`` if it is not valid TOML.
    """
    with open(filename, "rb") as handle:
        return tomllib.load(handle)