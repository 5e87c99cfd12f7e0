"""
edgeprobe/executor/__init__.py
Auto-discovery registry: any file named <engine>_executor.py in this folder is
registered as the runner for that test-execution engine.

An engine module implements:
  build_command(cfg, options, targets, selection) -> list[str]
  run(cfg, options) -> ExecutionSummary
"""

from __future__ import annotations

import importlib
from pathlib import Path
from types import ModuleType

from edgeprobe.errors import EngineError

# Engine name → executor module, e.g. {"pytest": <module pytest_executor>}
_registry: dict[str, ModuleType] = {}


def _build_registry() -> None:
    executor_dir = Path(__file__).parent
    for path in sorted(executor_dir.glob("*_executor.py")):
        stem = path.stem  # e.g. "pytest_executor"
        engine = stem.replace("_executor", "")
        _registry[engine] = importlib.import_module(f"edgeprobe.executor.{stem}")


_build_registry()


def get(engine: str) -> ModuleType:
    """Return the executor module for the given engine name.

    Raises EngineError with a helpful message if none is registered.
    """
    if engine not in _registry:
        available = ", ".join(sorted(_registry))
        raise EngineError(
            f"No executor registered for engine '{engine}'. "
            f"Available: {available}. "
            f"Add edgeprobe/executor/{engine}_executor.py to support it."
        )
    return _registry[engine]


def registered_engines() -> list[str]:
    """Return all currently registered engine names."""
    return sorted(_registry.keys())
