"""
edgeprobe/graph.py
LangGraph pipeline:  DISCOVER → GENERATE → EXECUTE → PERSIST

The entry node depends on the mode (discover / generate / run / full); every
node records the phase it hands over to, and ``route`` maps that phase onto
the next node. ``persist`` always runs last, also after a failed phase, so
``status`` always has a result to show.
"""

from __future__ import annotations

import functools
from datetime import datetime, timezone
from typing import Any, Callable

from langgraph.graph import END, START, StateGraph
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from edgeprobe import executor as executor_registry
from edgeprobe.config import Settings, settings
from edgeprobe.errors import CatalogError, EngineError
from edgeprobe.log import get_logger
from edgeprobe.state import AuthType, Category, DiscoveryResult, Phase, PipelineState, RunOptions, RunResult
from edgeprobe.tools.catalog_tool import load_catalog, save_catalog
from edgeprobe.tools.discover_functions_tool import discover_functions, filter_functions
from edgeprobe.tools.generate_tests_tool import generate_tests
from edgeprobe.tools.report_builder_tool import build_run_result, save_run_result

console = Console()
log = get_logger(__name__)

MODES = ("discover", "generate", "run", "full")

_PHASE_ORDER = [Phase.DISCOVERING, Phase.GENERATING, Phase.EXECUTING]
_ENTRY_PHASE = {
    "discover": Phase.DISCOVERING,
    "generate": Phase.GENERATING,
    "run": Phase.EXECUTING,
    "full": Phase.DISCOVERING,
}
_LAST_PHASE = {
    "discover": Phase.DISCOVERING,
    "generate": Phase.GENERATING,
    "run": Phase.EXECUTING,
    "full": Phase.EXECUTING,
}
_PHASE_NODES = {
    Phase.DISCOVERING: "discover",
    Phase.GENERATING: "generate",
    Phase.EXECUTING: "execute",
    Phase.DONE: "persist",
    Phase.FAILED: "persist",
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def next_phase(mode: str, current: Phase) -> Phase:
    """Phase that follows ``current`` for the given mode."""
    if current == _LAST_PHASE[mode]:
        return Phase.DONE
    return _PHASE_ORDER[_PHASE_ORDER.index(current) + 1]


def _guarded(node: Callable[..., dict]) -> Callable[..., dict]:
    """Unexpected exceptions end the node in the failed phase instead of escaping the graph."""

    @functools.wraps(node)
    def wrapper(state: PipelineState, **kwargs: Any) -> dict:
        try:
            return node(state, **kwargs)
        except Exception as exc:
            log.exception("%s node crashed", node.__name__)
            console.print(f"[bold red]Runner error:[/bold red] {escape(str(exc))}")
            return {"errors": [f"Runner error: {exc}"], "phase": Phase.FAILED}

    return wrapper


def _print_discovery_details(discovery: DiscoveryResult) -> None:
    table = Table(show_header=True, header_style="bold")
    table.add_column("function")
    table.add_column("category")
    table.add_column("auth")
    table.add_column("methods")
    table.add_column("external APIs")
    for func in discovery["functions"]:
        table.add_row(
            func["name"],
            Category(func["category"]).value,
            AuthType(func["auth_type"]).value,
            ", ".join(func["http_methods"]),
            ", ".join(func["external_apis"]),
        )
    console.print(table)


# ═══════════════════════════════════════════════════════════════
# NODE: discover
# ═══════════════════════════════════════════════════════════════

@_guarded
def node_discover(state: PipelineState, cfg: Settings, clock: Callable[[], datetime]) -> dict:
    """Scan the roots, persist the full catalog, hand on the filtered view."""
    console.print(Panel("[bold blue]PHASE 1 — DISCOVER[/bold blue]", expand=False))
    options = state["options"]

    discovery = discover_functions(cfg, clock=clock)
    save_catalog(discovery, cfg.catalog_path)

    filtered = filter_functions(discovery, options["categories"], options["functions"])
    populated = sum(1 for count in filtered["categories"].values() if count)
    console.print(f"  found [green]{discovery['total_functions']}[/green] functions")
    if filtered["total_functions"] != discovery["total_functions"]:
        console.print(f"  selected [cyan]{filtered['total_functions']}[/cyan] after filters")
    console.print(f"  categories: [cyan]{populated}[/cyan]")
    if options["verbose"]:
        _print_discovery_details(filtered)

    return {
        "discovery": filtered,
        "errors": [f"discovery: {e}" for e in discovery["errors"]],
        "phase": next_phase(options["mode"], Phase.DISCOVERING),
    }


# ═══════════════════════════════════════════════════════════════
# NODE: generate
# ═══════════════════════════════════════════════════════════════

@_guarded
def node_generate(state: PipelineState, cfg: Settings, clock: Callable[[], datetime]) -> dict:
    """Generate the suite from this run's discovery or the persisted catalog."""
    console.print(Panel("[bold blue]PHASE 2 — GENERATE[/bold blue]", expand=False))
    options = state["options"]
    following = next_phase(options["mode"], Phase.GENERATING)

    discovery = state.get("discovery")
    if discovery is None:
        try:
            discovery = load_catalog(cfg.catalog_path)
        except CatalogError as exc:
            console.print(f"  [yellow]⚠ {escape(str(exc))}[/yellow]")
            return {"errors": [str(exc)], "phase": following}
        if discovery is None:
            console.print("  [yellow]⚠ no catalog found, run discover first[/yellow]")
            return {"errors": ["No discovery results available for generation"], "phase": following}
        discovery = filter_functions(discovery, options["categories"], options["functions"])

    filtered = bool(options["categories"] or options["functions"])
    generation = generate_tests(discovery, cfg, clock=clock, prune=not filtered)
    console.print(f"  generated [green]{generation['total_tests']}[/green] tests")
    console.print(f"  test files: [cyan]{len(generation['tests'])}[/cyan]")

    return {
        "discovery": discovery,
        "generation": generation,
        "errors": [f"generation: {e}" for e in generation["errors"]],
        "phase": following,
    }


# ═══════════════════════════════════════════════════════════════
# NODE: execute
# ═══════════════════════════════════════════════════════════════

@_guarded
def node_execute(state: PipelineState, cfg: Settings) -> dict:
    """Hand the generated suite to the configured engine."""
    console.print(Panel("[bold blue]PHASE 3 — EXECUTE[/bold blue]", expand=False))
    options = state["options"]
    following = next_phase(options["mode"], Phase.EXECUTING)

    try:
        engine = executor_registry.get(cfg.engine)
        execution = engine.run(cfg, options)
    except EngineError as exc:
        console.print(f"  [yellow]⚠ {escape(str(exc))}[/yellow]")
        return {"errors": [f"execution: {exc}"], "phase": following}

    console.print(
        f"  passed [green]{execution['passed']}[/green]  "
        f"failed [red]{execution['failed']}[/red]  "
        f"skipped [yellow]{execution['skipped']}[/yellow]"
    )
    return {"execution": execution, "phase": following}


# ═══════════════════════════════════════════════════════════════
# NODE: persist
# ═══════════════════════════════════════════════════════════════

def print_summary(result: RunResult) -> None:
    console.print(Panel("[bold]Test Run Summary[/bold]", expand=False))
    if "discovery" in result:
        console.print(f"  Discovery:  {result['discovery']['total_functions']} functions found")
    if "generation" in result:
        console.print(f"  Generation: {result['generation']['total_tests']} tests generated")
    if "execution" in result:
        execution = result["execution"]
        console.print("  Execution:")
        console.print(f"    Passed:   [green]{execution['passed']}[/green]")
        console.print(f"    Failed:   [red]{execution['failed']}[/red]")
        console.print(f"    Skipped:  [yellow]{execution['skipped']}[/yellow]")
        console.print(f"    Duration: {execution['duration'] / 1000:.2f}s")
    if result["errors"]:
        console.print("\n  [bold red]Errors:[/bold red]")
        for error in result["errors"]:
            console.print(f"    - {error}", markup=False)


def node_persist(state: PipelineState, cfg: Settings) -> dict:
    """Write run history + latest pointer and print the summary."""
    final = Phase.FAILED if state["phase"] == Phase.FAILED else Phase.DONE
    result = build_run_result(state)
    paths = save_run_result(result, cfg)
    print_summary(result)
    console.print(f"\n  results saved to: {paths[0]}")
    return {"phase": final}


# ═══════════════════════════════════════════════════════════════
# ROUTING
# ═══════════════════════════════════════════════════════════════

def route_entry(state: PipelineState) -> str:
    """Pick the first node from the requested mode."""
    return _PHASE_NODES[_ENTRY_PHASE[state["options"]["mode"]]]


def route(state: PipelineState) -> str:
    """Route to the next node based on the phase the last node handed over to."""
    return _PHASE_NODES[state["phase"]]


# ═══════════════════════════════════════════════════════════════
# GRAPH CONSTRUCTION
# ═══════════════════════════════════════════════════════════════

def build_graph(cfg: Settings | None = None, clock: Callable[[], datetime] = _utcnow) -> Any:
    cfg = cfg or settings
    g = StateGraph(PipelineState)

    g.add_node("discover", functools.partial(node_discover, cfg=cfg, clock=clock))
    g.add_node("generate", functools.partial(node_generate, cfg=cfg, clock=clock))
    g.add_node("execute", functools.partial(node_execute, cfg=cfg))
    g.add_node("persist", functools.partial(node_persist, cfg=cfg))

    g.add_conditional_edges(START, route_entry)
    for node in ("discover", "generate", "execute"):
        g.add_conditional_edges(node, route)
    g.add_edge("persist", END)

    return g.compile()


def initial_state(options: RunOptions, timestamp: str) -> PipelineState:
    return PipelineState(
        options=options,
        phase=Phase.IDLE,
        timestamp=timestamp,
        discovery=None,
        generation=None,
        execution=None,
        errors=[],
    )


def run_pipeline(
    options: RunOptions,
    cfg: Settings | None = None,
    clock: Callable[[], datetime] = _utcnow,
) -> RunResult:
    """Run one invocation of the pipeline and return what was persisted."""
    cfg = cfg or settings
    if options["mode"] not in MODES:
        raise ValueError(f"Unknown mode '{options['mode']}', expected one of {', '.join(MODES)}")

    state = initial_state(options, clock().isoformat())
    try:
        for snapshot in build_graph(cfg, clock).stream(state, stream_mode="values"):
            state = snapshot
    except Exception as exc:
        # The graph itself broke (typically while persisting); keep what we have.
        log.exception("pipeline aborted")
        result = build_run_result(state)
        result["errors"].append(f"Runner error: {exc}")
        try:
            save_run_result(result, cfg)
        except OSError as save_exc:
            log.error("could not persist run result: %s", save_exc)
        print_summary(result)
        return result

    log.debug("pipeline finished in phase %s", Phase(state["phase"]).value)
    return build_run_result(state)
