"""
edgeprobe/tools/report_builder_tool.py
Assembles the RunResult of one invocation and persists it as run history
plus a fixed "latest" pointer.
"""

from __future__ import annotations

import json
import re
from pathlib import Path

from edgeprobe.config import Settings, settings
from edgeprobe.log import get_logger
from edgeprobe.report import json_report
from edgeprobe.state import PipelineState, RunResult

log = get_logger(__name__)

LATEST_FILENAME = "latest.json"


def build_run_result(state: PipelineState) -> RunResult:
    """Project the graph state onto the persisted RunResult shape."""
    result = RunResult(errors=list(state.get("errors") or []), timestamp=state["timestamp"])
    for phase in ("discovery", "generation", "execution"):
        if state.get(phase) is not None:
            result[phase] = state[phase]  # type: ignore[literal-required]
    return result


def run_filename(timestamp: str) -> str:
    return f"run-{re.sub(r'[:.+]', '-', timestamp)}.json"


def save_run_result(result: RunResult, cfg: Settings | None = None) -> list[Path]:
    """Write the timestamped history file and overwrite latest.json."""
    results_dir = (cfg or settings).results_dir
    history = results_dir / run_filename(result["timestamp"])
    paths = json_report.write(result, history, results_dir / LATEST_FILENAME)
    log.info("run results saved to %s", history)
    return paths


def load_latest(cfg: Settings | None = None) -> RunResult | None:
    p = (cfg or settings).results_dir / LATEST_FILENAME
    if not p.exists():
        return None
    return json.loads(p.read_text(encoding="utf-8"))


def exit_code(result: RunResult) -> int:
    """0 only when nothing failed and no error was recorded anywhere."""
    execution = result.get("execution")
    if execution and execution["failed"] > 0:
        return 1
    if result["errors"]:
        return 1
    return 0
