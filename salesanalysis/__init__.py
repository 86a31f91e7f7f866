"""Load sales CSV exports into MariaDB and serve customer analysis over HTTP."""

__version__ = "0.1.0"
__all__ = ["__version__"]