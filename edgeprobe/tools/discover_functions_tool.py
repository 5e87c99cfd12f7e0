"""
edgeprobe/tools/discover_functions_tool.py
Walks every configured hosting-convention root and returns a DiscoveryResult.

A bad unit never aborts the walk: its error is recorded and the unit skipped.
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Callable

from edgeprobe.config import RootConfig, Settings, settings
from edgeprobe.log import get_logger
from edgeprobe.parsers import source_parser
from edgeprobe.state import Category, DiscoveryResult, FunctionDescriptor

log = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def empty_category_counts() -> dict[str, int]:
    return {c.value: 0 for c in Category}


def count_categories(functions: list[FunctionDescriptor]) -> dict[str, int]:
    counts = empty_category_counts()
    for func in functions:
        counts[Category(func["category"]).value] += 1
    return counts


def _candidates(root: RootConfig, root_dir: Path) -> list[tuple[str, Path]]:
    """Return (unit name, entry file) pairs for one root, sorted by name."""
    found: list[tuple[str, Path]] = []
    for entry in sorted(root_dir.iterdir(), key=lambda p: p.name):
        if root["layout"] == "directory":
            if not entry.is_dir():
                continue
            for entry_file in root["entry_files"]:
                candidate = entry / entry_file
                if candidate.is_file():
                    found.append((entry.name, candidate))
                    break
            else:
                log.debug("skipping %s: no entry file %s", entry, root["entry_files"])
        else:
            if entry.is_file() and entry.suffix in root["suffixes"]:
                found.append((entry.stem, entry))
    return found


def discover_functions(
    cfg: Settings | None = None,
    clock: Callable[[], datetime] = _utcnow,
) -> DiscoveryResult:
    """
    Discover all units under the configured roots.

    Args:
        cfg:   Settings carrying the project base dir, roots and overrides.
        clock: Source of the discovery timestamp.

    Returns:
        DiscoveryResult with per-category counts and every recorded error.
    """
    cfg = cfg or settings
    functions: list[FunctionDescriptor] = []
    errors: list[str] = []

    for root in cfg.roots:
        root_dir = cfg.base_dir / root["path"]
        if not root_dir.is_dir():
            if root["required"]:
                errors.append(f"{root['name']} functions directory not found: {root_dir}")
            else:
                log.debug("optional root %s not present at %s", root["name"], root_dir)
            continue

        try:
            candidates = _candidates(root, root_dir)
        except OSError as exc:
            errors.append(f"Error discovering {root['name']} functions: {exc}")
            continue

        for name, entry_file in candidates:
            override = cfg.function_overrides.get(name)
            try:
                func = source_parser.parse(name, entry_file, root, override)
            except (OSError, UnicodeDecodeError, ValueError) as exc:
                errors.append(f"Error parsing function {name}: {exc}")
                continue
            functions.append(func)
            log.debug("discovered %s (%s, %s)", name, func["category"].value, func["auth_type"].value)

    # Only keep references to units that exist in this run
    known = {f["name"] for f in functions}
    for func in functions:
        override = cfg.function_overrides.get(func["name"]) or {}
        if "dependencies" not in override:
            func["dependencies"] = [d for d in func["dependencies"] if d in known]

    return DiscoveryResult(
        functions=functions,
        categories=count_categories(functions),
        total_functions=len(functions),
        discovery_timestamp=clock().isoformat(),
        errors=errors,
    )


def filter_functions(
    discovery: DiscoveryResult,
    categories: list[str] | None = None,
    names: list[str] | None = None,
) -> DiscoveryResult:
    """Return a copy restricted to the given categories and unit names."""
    functions = list(discovery["functions"])
    if categories:
        functions = [f for f in functions if f["category"] in categories]
    if names:
        functions = [f for f in functions if f["name"] in names]
    return DiscoveryResult(
        functions=functions,
        categories=count_categories(functions),
        total_functions=len(functions),
        discovery_timestamp=discovery["discovery_timestamp"],
        errors=list(discovery["errors"]),
    )
