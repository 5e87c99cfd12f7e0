"""
edgeprobe/parsers/engine_output.py
Two-stage parser for the test engine's console output.

Stage one (:meth:`EngineOutputParser.feed`) runs on every streamed chunk and
keeps running totals from the latest summary line it sees, such as
``==== 2 failed, 4 passed in 0.40s ====``. Counts anywhere else in the output
(test names, assertion messages, captured logs) are ignored. Stage two (:meth:`EngineOutputParser.finalize`) runs
once at exit: if the totals are still all zero it re-scans the whole buffer,
because some reporters print their summary only at the very end and not
always on a chunk boundary.

This is a heuristic over free-form text, not a protocol the engine promises.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from edgeprobe.log import get_logger

log = get_logger(__name__)

PASSED_RE = re.compile(r"(\d+) passed")
FAILED_RE = re.compile(r"(\d+) failed")
SKIPPED_RE = re.compile(r"(\d+) skipped")
# pytest reports setup/collection failures separately from test failures
ERRORS_RE = re.compile(r"(\d+) errors?\b")
# "N word, N word in 1.20s" with optional "=" framing
SUMMARY_LINE_RE = re.compile(r"^=*\s*(\d+ \w+(?:, \d+ \w+)*) in \d+(?:\.\d+)?s\b")


def _last(pattern: re.Pattern[str], text: str) -> int | None:
    matches = pattern.findall(text)
    return int(matches[-1]) if matches else None


@dataclass
class EngineOutputParser:
    passed: int = 0
    failed: int = 0
    skipped: int = 0
    errored: int = 0
    chunks: list[str] = field(default_factory=list)

    @property
    def output(self) -> str:
        return "".join(self.chunks)

    def feed(self, chunk: str) -> None:
        """Buffer a chunk and update the running totals from it."""
        self.chunks.append(chunk)
        self._scan(chunk)

    def _scan(self, text: str) -> None:
        for line in text.splitlines():
            summary = SUMMARY_LINE_RE.match(line.strip())
            if summary is not None:
                self._tally(summary.group(1))

    def _tally(self, text: str) -> None:
        # each summary line is complete; a count it omits is zero
        for name, pattern in (
            ("passed", PASSED_RE),
            ("failed", FAILED_RE),
            ("skipped", SKIPPED_RE),
            ("errored", ERRORS_RE),
        ):
            setattr(self, name, _last(pattern, text) or 0)

    def finalize(self, exit_code: int | None = None) -> tuple[int, int, int]:
        """Reconcile totals after the process exited; returns (passed, failed, skipped)."""
        if self.passed == 0 and self.failed == 0 and self.skipped == 0:
            self._scan(self.output)

        failed = self.failed + self.errored
        if exit_code not in (None, 0) and failed == 0:
            log.warning("engine exited with code %s without reporting failures", exit_code)
            failed = 1
        return self.passed, failed, self.skipped
