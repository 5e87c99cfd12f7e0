"""
edgeprobe/parsers/junit_report.py
Reads a JUnit XML report written by the engine back into TestOutcome records.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from pathlib import Path

from edgeprobe.state import TestOutcome


def parse(report_path: str | Path) -> list[TestOutcome]:
    """Return one TestOutcome per <testcase>; an absent report yields []."""
    p = Path(report_path)
    if not p.exists():
        return []

    outcomes: list[TestOutcome] = []
    for case in ET.parse(p).getroot().iter("testcase"):
        status, message = "passed", None
        for tag, label in (("failure", "failed"), ("error", "failed"), ("skipped", "skipped")):
            node = case.find(tag)
            if node is not None:
                status, message = label, node.get("message")
                break
        outcomes.append(
            TestOutcome(
                name=case.get("name", ""),
                classname=case.get("classname", ""),
                status=status,
                duration_ms=round(float(case.get("time", 0) or 0) * 1000, 2),
                message=message,
            )
        )
    return outcomes
