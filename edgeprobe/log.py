import logging
import os
from typing import Optional

from rich.logging import RichHandler

ROOT_LOGGER = "edgeprobe"


def setup_logging(level: Optional[str] = None, verbose: bool = False) -> logging.Logger:
    """
    Route diagnostics through rich so they interleave cleanly with phase output.
    ``--verbose`` wins over ``EDGEPROBE_LOG_LEVEL``, which wins over WARNING.
    """
    if verbose:
        resolved_level = "DEBUG"
    else:
        resolved_level = level or os.environ.get("EDGEPROBE_LOG_LEVEL") or "WARNING"
    handler = RichHandler(show_path=False, rich_tracebacks=True, markup=False)
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    root = logging.getLogger()
    root.handlers = []
    root.setLevel(getattr(logging, str(resolved_level).upper(), logging.WARNING))
    root.addHandler(handler)
    return logging.getLogger(ROOT_LOGGER)


def get_logger(name: str = ROOT_LOGGER) -> logging.Logger:
    return logging.getLogger(name)
