"""edgeprobe/report/json_report.py – JSON rendering shared by every persisted artifact."""
from __future__ import annotations

import json
from pathlib import Path


def build(report: dict) -> str:
    # enums serialize as their values; anything else falls back to str()
    return json.dumps(report, indent=2, ensure_ascii=False, default=str) + "\n"


def write(report: dict, *paths: Path) -> list[Path]:
    """Render once and write the same document to every path, creating parents."""
    payload = build(report)
    for p in paths:
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(payload, encoding="utf-8")
    return list(paths)
