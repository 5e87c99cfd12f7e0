"""
edgeprobe/tools/catalog_tool.py
Catalog Store: persists the latest DiscoveryResult and reads it back.

The catalog is overwritten wholesale on every discovery run.
"""

from __future__ import annotations

import json
from pathlib import Path

from edgeprobe.config import Settings, settings
from edgeprobe.errors import CatalogError
from edgeprobe.log import get_logger
from edgeprobe.report import json_report
from edgeprobe.schemas import CATALOG_SCHEMA, validate
from edgeprobe.state import DiscoveryResult

log = get_logger(__name__)


def catalog_path(cfg: Settings | None = None) -> Path:
    return (cfg or settings).catalog_path


def save_catalog(result: DiscoveryResult, path: str | Path | None = None) -> Path:
    """Write the discovery result as JSON, creating parent directories."""
    p = Path(path) if path else catalog_path()
    json_report.write(result, p)
    log.info("catalog saved to %s", p)
    return p


def load_catalog(path: str | Path | None = None) -> DiscoveryResult | None:
    """Return the persisted discovery result, or None when there is none yet.

    Raises CatalogError if the file exists but is not a valid catalog.
    """
    p = Path(path) if path else catalog_path()
    if not p.exists():
        return None
    try:
        data = json.loads(p.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise CatalogError(f"Could not read catalog {p}: {exc}") from exc

    problems = validate(data, CATALOG_SCHEMA)
    if problems:
        raise CatalogError(f"Catalog {p} is malformed: {problems[0]}", metadata={"problems": problems})
    return data
