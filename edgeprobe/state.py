"""
edgeprobe/state.py – data shapes shared by discovery, generation and the pipeline graph.
"""

from __future__ import annotations

import operator
from enum import Enum
from typing import Annotated, Any
from typing_extensions import NotRequired, TypedDict


# ── Closed vocabularies ───────────────────────────────────────────────────────


class Category(str, Enum):
    """Functional area a unit belongs to. Declaration order is catalog order."""

    CORE = "core"
    USER_MANAGEMENT = "user-management"
    BARCODE = "barcode"
    MEAL_PLANNING = "meal-planning"
    WEEKLY_REPORTS = "weekly-reports"
    BLOG = "blog"
    EMAIL = "email"
    PAYMENT = "payment"
    SEO = "seo"
    ANALYTICS = "analytics"
    AI = "ai"
    DELIVERY = "delivery"
    NOTIFICATIONS = "notifications"
    MISC = "misc"


class AuthType(str, Enum):
    """How a unit expects callers to authenticate."""

    NONE = "none"
    ANONYMOUS_KEY = "anonymous-key"
    BEARER_TOKEN = "bearer-token"
    PRIVILEGED_KEY = "privileged-key"
    SCHEDULER_SECRET = "scheduler-secret"
    OAUTH = "oauth"


class Phase(str, Enum):
    IDLE = "idle"
    DISCOVERING = "discovering"
    GENERATING = "generating"
    EXECUTING = "executing"
    DONE = "done"
    FAILED = "failed"


PREFLIGHT_METHOD = "OPTIONS"
CATCH_ALL_CATEGORY = Category.MISC


# ── Individual data shapes ────────────────────────────────────────────────────


class TestCase(TypedDict):
    """One assertion scenario against a unit."""

    name: str
    description: str
    input: dict[str, Any]
    expected_status: int
    expected_response: NotRequired[dict[str, Any]]
    validate_response: NotRequired[str]   # python expression over `body` / `response`
    timeout: NotRequired[int]             # milliseconds
    skip: NotRequired[bool]
    only: NotRequired[bool]
    method: NotRequired[str]              # request method; inferred from the name when absent
    authenticated: NotRequired[bool]      # False = send no auth headers


class FunctionDescriptor(TypedDict):
    """One discovered deployable unit."""

    name: str
    path: str                   # e.g. "/functions/v1/lookup-barcode"
    category: Category
    http_methods: list[str]     # always starts with "OPTIONS"
    auth_type: AuthType
    description: str
    test_cases: list[TestCase]  # declared cases, else the synthesized defaults
    dependencies: list[str]
    is_cron_job: bool
    requires_external_api: bool
    external_apis: list[str]
    source: str                 # hosting convention (root name) the unit came from


class DiscoveryResult(TypedDict):
    functions: list[FunctionDescriptor]
    categories: dict[str, int]  # every Category value → count, catalog order
    total_functions: int
    discovery_timestamp: str
    errors: list[str]


class GeneratedTestFile(TypedDict):
    category: str
    file_path: str
    test_count: int
    content: str


class GenerationResult(TypedDict):
    tests: list[GeneratedTestFile]
    total_tests: int
    generation_timestamp: str
    errors: list[str]


class TestOutcome(TypedDict):
    """Per-test record read back from a machine-readable engine report."""

    name: str
    classname: str
    status: str             # "passed" | "failed" | "skipped"
    duration_ms: float
    message: str | None


class ExecutionSummary(TypedDict):
    passed: int
    failed: int
    skipped: int
    duration: int           # milliseconds
    results: list[TestOutcome]
    exit_code: int | None
    command: list[str]


class RunResult(TypedDict):
    discovery: NotRequired[DiscoveryResult]
    generation: NotRequired[GenerationResult]
    execution: NotRequired[ExecutionSummary]
    errors: list[str]
    timestamp: str


class RunOptions(TypedDict):
    """Options supplied by the CLI for one pipeline invocation."""

    mode: str                   # "discover" | "generate" | "run" | "full"
    categories: list[str]
    functions: list[str]
    parallel: bool
    headed: bool
    reporter: str               # "html" | "list" | "json" | "junit"
    verbose: bool


# ── Pipeline graph state ──────────────────────────────────────────────────────


class PipelineState(TypedDict):
    """Full state object threaded through every node of the pipeline graph."""

    options: RunOptions
    phase: Phase
    timestamp: str

    # Phase outputs (None until the phase has run)
    discovery: DiscoveryResult | None
    generation: GenerationResult | None
    execution: ExecutionSummary | None

    # Accumulated across nodes, never reset within an invocation
    errors: Annotated[list[str], operator.add]
