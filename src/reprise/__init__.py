"""Reprise - Import de données historiques (locations, souscriptions, recouvrement)."""

from reprise.config import ConfigError, ConfigFileError, RepriseError
from reprise.io_excel import ExcelFileError

__all__ = [
    "__version__",
    "RepriseError",
    "ConfigError",
    "ConfigFileError",
    "ExcelFileError",
]

__version__ = "0.1.0"
