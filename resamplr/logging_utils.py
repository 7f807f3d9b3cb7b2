from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def setup_logging(
    level: str = "INFO", log_dir: Optional[Path] = None
) -> logging.Logger:
    """Configure root logging for command line runs.

    Replaces any existing root handlers with a console handler and, when
    log_dir is given, a resamplr.log file handler. The library itself
    only emits records; it never calls this.
    """
    root = logging.getLogger()
    for h in list(root.handlers):
        root.removeHandler(h)

    log_level = getattr(logging, level.upper(), logging.INFO)
    fmt = logging.Formatter(fmt=_FORMAT, datefmt="%H:%M:%S")

    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        handlers.append(
            logging.FileHandler(log_dir / "resamplr.log", encoding="utf-8")
        )
    for h in handlers:
        h.setLevel(log_level)
        h.setFormatter(fmt)
        root.addHandler(h)
    root.setLevel(log_level)

    # Pillow reports every parsed PNG chunk at DEBUG
    logging.getLogger("PIL").setLevel(max(log_level, logging.INFO))
    logging.captureWarnings(True)
    return logging.getLogger("resamplr")
