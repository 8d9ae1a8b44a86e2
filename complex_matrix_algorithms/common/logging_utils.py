"""Logging helpers for the complex SVD package and its experiments."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

PROJECT_LOGGER = "complex_matrix_algorithms"
LOG_FORMAT = "[%(asctime)s] [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def get_logger(name: str = PROJECT_LOGGER, level: Optional[int] = None) -> logging.Logger:
    """Return a configured logger for the project.

    Parameters
    ----------
    name:
        Logger name; defaults to the shared project logger.
    level:
        Optional level override. Without it a freshly configured logger is
        set to ``INFO``.

    Returns
    -------
    logging.Logger
        Configured logger instance.
    """

    logger = logging.getLogger(name)
    if not logger.handlers:
        logger.setLevel(logging.INFO)
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))
        logger.addHandler(handler)
    if level is not None:
        logger.setLevel(level)
    return logger


def append_jsonl(path: Path, record: Dict[str, Any]) -> None:
    """Append a single JSON record to a JSONL (one-JSON-per-line) file.

    NumPy scalars are converted with ``float``/``int`` by the caller; anything
    else that ``json`` cannot encode falls back to ``str``.
    """

    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("a", encoding="utf-8") as f:
        json.dump(record, f, default=str)
        f.write("\n")
