"""
edgeprobe/tools/generate_tests_tool.py
Turns a DiscoveryResult into a pytest suite: one module per populated
category, the shared helper module, a conftest and a manifest.
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Callable

from edgeprobe.config import Settings, settings
from edgeprobe.log import get_logger
from edgeprobe.report import json_report
from edgeprobe.state import (
    Category,
    DiscoveryResult,
    FunctionDescriptor,
    GeneratedTestFile,
    GenerationResult,
)
from edgeprobe.templates import helpers_template, test_module_template

log = get_logger(__name__)

MANIFEST_FILENAME = "manifest.json"
GENERATED_GLOB = "test_*_functions.py"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def group_by_category(functions: list[FunctionDescriptor]) -> dict[str, list[FunctionDescriptor]]:
    """Every category in catalog order, each with its units in discovery order."""
    grouped: dict[str, list[FunctionDescriptor]] = {c.value: [] for c in Category}
    for func in functions:
        grouped[Category(func["category"]).value].append(func)
    return grouped


def _write(path: Path, content: str) -> None:
    path.write_text(content, encoding="utf-8")


def _manifest(tests: list[GeneratedTestFile], generated_at: str) -> str:
    data = {
        "generated_tests": [
            {
                "category": t["category"],
                "file": Path(t["file_path"]).name,
                "test_count": t["test_count"],
            }
            for t in tests
        ],
        "summary": {
            "total_tests": sum(t["test_count"] for t in tests),
            "categories": len(tests),
            "generated_at": generated_at,
        },
    }
    return json_report.build(data)


def generate_tests(
    discovery: DiscoveryResult,
    cfg: Settings | None = None,
    output_dir: str | Path | None = None,
    clock: Callable[[], datetime] = _utcnow,
    prune: bool = True,
) -> GenerationResult:
    """
    Generate the test suite for every unit in ``discovery``.

    Args:
        discovery:  Discovery result (possibly filtered) to generate from.
        cfg:        Settings supplying the output dir and latency ceiling.
        output_dir: Overrides cfg.generated_dir.
        clock:      Source of the generation timestamp embedded in the files.
        prune:      Delete generated modules this run did not write. Pass False
                    when ``discovery`` is a filtered view of the catalog.

    Returns:
        GenerationResult; a failing category is recorded in ``errors`` and the
        remaining categories are still generated.
    """
    cfg = cfg or settings
    out = Path(output_dir) if output_dir else cfg.generated_dir
    out.mkdir(parents=True, exist_ok=True)
    generated_at = clock().isoformat()

    tests: list[GeneratedTestFile] = []
    errors: list[str] = []

    for category, functions in group_by_category(discovery["functions"]).items():
        if not functions:
            continue
        file_path = out / test_module_template.module_filename(category)
        try:
            content, count = test_module_template.render_module(category, functions, generated_at)
            _write(file_path, content)
        except (ValueError, KeyError, OSError) as exc:
            errors.append(f"Error generating tests for {category}: {exc}")
            continue
        tests.append(
            GeneratedTestFile(
                category=category,
                file_path=str(file_path),
                test_count=count,
                content=content,
            )
        )
        log.debug("generated %d tests for %s -> %s", count, category, file_path.name)

    # Modules from earlier runs whose category is no longer populated
    if prune:
        written = {Path(t["file_path"]).name for t in tests}
        for stale in sorted(out.glob(GENERATED_GLOB)):
            if stale.name not in written:
                log.debug("removing stale generated module %s", stale.name)
                stale.unlink()

    try:
        _write(out / helpers_template.HELPERS_FILENAME, helpers_template.render_helpers(cfg.latency_ceiling_ms))
        _write(out / helpers_template.CONFTEST_FILENAME, helpers_template.render_conftest())
        _write(out / MANIFEST_FILENAME, _manifest(tests, generated_at))
    except (ValueError, OSError) as exc:
        errors.append(f"Error generating test helpers: {exc}")

    return GenerationResult(
        tests=tests,
        total_tests=sum(t["test_count"] for t in tests),
        generation_timestamp=generated_at,
        errors=errors,
    )
