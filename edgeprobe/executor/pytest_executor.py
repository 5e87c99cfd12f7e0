"""
edgeprobe/executor/pytest_executor.py
Runs the generated suite through pytest as an external subprocess.

The subprocess is opaque: the only things relied upon are the
``N passed / N failed / N skipped`` summary text on stdout and a non-zero
exit code when anything failed.
"""

from __future__ import annotations

import asyncio
import sys
import time
from pathlib import Path
from typing import Callable, TextIO

from edgeprobe.config import Settings, settings
from edgeprobe.errors import EngineError
from edgeprobe.log import get_logger
from edgeprobe.parsers import junit_report
from edgeprobe.parsers.engine_output import EngineOutputParser
from edgeprobe.state import ExecutionSummary, RunOptions
from edgeprobe.templates.test_module_template import class_name, module_filename

log = get_logger(__name__)

JUNIT_FILENAME = "junit.xml"
_STREAM_LIMIT = 1024 * 1024

REPORTER_ARGS: dict[str, Callable[[Path], list[str]]] = {
    "list": lambda results_dir: ["-v"],
    "html": lambda results_dir: ["--html", str(results_dir / "report.html"), "--self-contained-html"],
    "json": lambda results_dir: ["--json-report", "--json-report-file", str(results_dir / "report.json")],
    "junit": lambda results_dir: ["--junitxml", str(results_dir / JUNIT_FILENAME)],
}


def select_targets(cfg: Settings, categories: list[str]) -> list[Path]:
    """The generated dir, or only the modules of the requested categories."""
    if not categories:
        return [cfg.generated_dir]
    targets = [cfg.generated_dir / module_filename(c) for c in categories]
    present = [t for t in targets if t.exists()]
    if not present:
        raise EngineError(f"No generated tests for categories: {', '.join(categories)}")
    return present


def selection_expression(functions: list[str]) -> str | None:
    """pytest -k expression matching the test classes of the given units."""
    if not functions:
        return None
    return " or ".join(class_name(name) for name in functions)


def build_command(
    cfg: Settings,
    options: RunOptions,
    targets: list[Path],
    selection: str | None = None,
) -> list[str]:
    prefix = list(cfg.engine_command or [sys.executable, "-m", "pytest"])
    reporter = REPORTER_ARGS.get(options["reporter"])
    if reporter is None:
        raise EngineError(f"Unknown reporter '{options['reporter']}'")

    command = prefix + [str(t) for t in targets]
    command += reporter(cfg.results_dir)
    command += ["--browser", cfg.browser]
    if options["headed"]:
        command.append("--headed")
    command += ["-n", "auto" if options["parallel"] else "0"]
    if selection:
        command += ["-k", selection]
    return command


async def _pump(stream: asyncio.StreamReader, sink: TextIO, on_chunk: Callable[[str], None] | None) -> None:
    while True:
        line = await stream.readline()
        if not line:
            break
        text = line.decode("utf-8", errors="replace")
        sink.write(text)
        sink.flush()
        if on_chunk is not None:
            on_chunk(text)


async def _drive(
    command: list[str],
    cwd: Path,
    env: dict[str, str],
    parser: EngineOutputParser,
    stdout: TextIO,
    stderr: TextIO,
) -> int:
    try:
        proc = await asyncio.create_subprocess_exec(
            *command,
            cwd=str(cwd),
            env=env,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            limit=_STREAM_LIMIT,
        )
    except OSError as exc:
        raise EngineError(f"Could not start execution engine '{command[0]}': {exc}") from exc

    await asyncio.gather(
        _pump(proc.stdout, stdout, parser.feed),
        _pump(proc.stderr, stderr, None),
    )
    return await proc.wait()


def run(
    cfg: Settings | None = None,
    options: RunOptions | None = None,
    stdout: TextIO | None = None,
    stderr: TextIO | None = None,
) -> ExecutionSummary:
    """Execute the generated suite and return the parsed tallies.

    Raises EngineError when there is nothing to run or the engine cannot start.
    A failing test run is not an error: it shows up in ``failed``.
    """
    cfg = cfg or settings
    options = options or RunOptions(
        mode="run", categories=[], functions=[], parallel=True,
        headed=False, reporter=cfg.default_reporter, verbose=False,
    )
    if not cfg.generated_dir.is_dir():
        raise EngineError(f"No generated tests found at {cfg.generated_dir}")

    targets = select_targets(cfg, options["categories"])
    command = build_command(cfg, options, targets, selection_expression(options["functions"]))

    cfg.results_dir.mkdir(parents=True, exist_ok=True)
    junit_path = cfg.results_dir / JUNIT_FILENAME
    if options["reporter"] == "junit" and junit_path.exists():
        junit_path.unlink()

    log.info("running: %s", " ".join(command))
    parser = EngineOutputParser()
    started = time.perf_counter()
    exit_code = asyncio.run(
        _drive(
            command,
            cfg.base_dir,
            cfg.engine_env(),
            parser,
            stdout or sys.stdout,
            stderr or sys.stderr,
        )
    )
    duration = int((time.perf_counter() - started) * 1000)
    passed, failed, skipped = parser.finalize(exit_code)

    results = junit_report.parse(junit_path) if options["reporter"] == "junit" else []
    return ExecutionSummary(
        passed=passed,
        failed=failed,
        skipped=skipped,
        duration=duration,
        results=results,
        exit_code=exit_code,
        command=command,
    )
