"""Configuration du logging (une seule initialisation par processus)."""

from __future__ import annotations

import logging
import sys
import threading

_logging_initialized = False
_init_lock = threading.Lock()


def setup_logging(level: int = logging.INFO) -> None:
    """
    Installe un handler stdout unique sur le logger racine.

    Les appels suivants ne font qu'ajuster le niveau.
    """
    global _logging_initialized

    with _init_lock:
        root = logging.getLogger()
        if _logging_initialized:
            root.setLevel(level)
            return

        for handler in list(root.handlers):
            root.removeHandler(handler)
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(
            logging.Formatter("[%(asctime)s] %(levelname)s %(name)s: %(message)s", datefmt="%Y-%m-%d %H:%M:%S")
        )
        root.addHandler(handler)
        root.setLevel(level)
        _logging_initialized = True


def is_logging_initialized() -> bool:
    return _logging_initialized
