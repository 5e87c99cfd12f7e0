from pathlib import Path

from edgeprobe.config import Settings
from edgeprobe.state import AuthType, Category
from edgeprobe.tools.discover_functions_tool import discover_functions, filter_functions

from conftest import fixed_clock, write_unit


def _by_name(result) -> dict:
    return {f["name"]: f for f in result["functions"]}


def test_discovers_every_unit_in_name_order(cfg: Settings) -> None:
    result = discover_functions(cfg, clock=fixed_clock)

    assert result["errors"] == []
    assert result["total_functions"] == 6
    assert [f["name"] for f in result["functions"]] == [
        "_health",
        "ai-meal-plan",
        "list-users",
        "lookup-barcode",
        "mystery-widget",
        "publish-scheduled-posts",
    ]
    assert result["discovery_timestamp"] == "2026-01-15T12:00:00+00:00"


def test_category_counts_cover_every_category(cfg: Settings) -> None:
    result = discover_functions(cfg, clock=fixed_clock)

    assert list(result["categories"]) == [c.value for c in Category]
    assert sum(result["categories"].values()) == result["total_functions"]
    assert result["categories"]["core"] == 1
    assert result["categories"]["ai"] == 1
    assert result["categories"]["payment"] == 0


def test_inferred_descriptors(cfg: Settings) -> None:
    units = _by_name(discover_functions(cfg, clock=fixed_clock))

    health = units["_health"]
    assert health["path"] == "/functions/v1/_health"
    assert health["auth_type"] is AuthType.NONE
    assert health["http_methods"] == ["OPTIONS", "GET"]
    assert health["description"] == "Health check endpoint"

    barcode = units["lookup-barcode"]
    assert barcode["description"] == "Lookup Barcode Edge Function"
    assert barcode["external_apis"] == ["Open Food Facts"]

    assert units["ai-meal-plan"]["category"] is Category.AI
    assert units["ai-meal-plan"]["auth_type"] is AuthType.BEARER_TOKEN
    assert units["list-users"]["auth_type"] is AuthType.PRIVILEGED_KEY
    assert units["publish-scheduled-posts"]["auth_type"] is AuthType.SCHEDULER_SECRET
    assert units["publish-scheduled-posts"]["is_cron_job"] is True
    assert units["mystery-widget"]["category"] is Category.MISC
    assert units["mystery-widget"]["http_methods"] == ["OPTIONS", "POST"]


def test_dependencies_only_reference_discovered_units(cfg: Settings) -> None:
    units = _by_name(discover_functions(cfg, clock=fixed_clock))
    # enrich-barcode is invoked but does not exist in the project
    assert units["lookup-barcode"]["dependencies"] == ["_health"]


def test_declared_dependencies_are_kept_verbatim(make_settings) -> None:
    cfg = make_settings({"functions": {"mystery-widget": {"dependencies": ["external-billing"]}}})
    units = _by_name(discover_functions(cfg, clock=fixed_clock))
    assert units["mystery-widget"]["dependencies"] == ["external-billing"]


def test_directory_without_entry_file_is_skipped(cfg: Settings) -> None:
    names = [f["name"] for f in discover_functions(cfg, clock=fixed_clock)["functions"]]
    assert "_shared" not in names


def test_missing_required_root_is_recorded(tmp_path: Path) -> None:
    cfg = Settings({}, base_dir=tmp_path)
    result = discover_functions(cfg, clock=fixed_clock)

    assert result["total_functions"] == 0
    assert len(result["errors"]) == 1
    assert result["errors"][0].startswith("supabase functions directory not found")


def test_optional_root_is_scanned_when_present(project: Path, cfg: Settings) -> None:
    functions_dir = project / "functions"
    functions_dir.mkdir()
    (functions_dir / "track-engagement.ts").write_text("export default {}\n", encoding="utf-8")
    (functions_dir / "README.md").write_text("not a function\n", encoding="utf-8")

    units = _by_name(discover_functions(cfg, clock=fixed_clock))
    edge = units["track-engagement"]
    assert edge["source"] == "cloudflare"
    assert edge["path"] == "/track-engagement"
    assert edge["category"] is Category.ANALYTICS
    assert "README" not in units


def test_bad_unit_is_recorded_and_skipped(project: Path, cfg: Settings) -> None:
    entry = write_unit(project, "broken-thing", "")
    entry.write_bytes(b"\xff\xfe\x00garbage")

    result = discover_functions(cfg, clock=fixed_clock)
    assert result["total_functions"] == 6
    assert len(result["errors"]) == 1
    assert result["errors"][0].startswith("Error parsing function broken-thing:")


def test_invalid_override_is_unit_scoped(make_settings) -> None:
    cfg = make_settings({"functions": {"list-users": {"auth_type": "magic"}}})
    result = discover_functions(cfg, clock=fixed_clock)

    assert result["total_functions"] == 5
    assert "list-users" not in _by_name(result)
    assert result["errors"][0].startswith("Error parsing function list-users: invalid override")


def test_override_supplies_explicit_cases(make_settings) -> None:
    cfg = make_settings(
        {
            "functions": {
                "mystery-widget": {
                    "auth_type": "none",
                    "test_cases": [{"name": "Ping", "expected_status": 200}],
                }
            }
        }
    )
    widget = _by_name(discover_functions(cfg, clock=fixed_clock))["mystery-widget"]
    assert widget["auth_type"] is AuthType.NONE
    assert [c["name"] for c in widget["test_cases"]] == ["Ping"]


def test_filter_functions_recomputes_counts(cfg: Settings) -> None:
    result = discover_functions(cfg, clock=fixed_clock)

    by_category = filter_functions(result, categories=["core", "ai"])
    assert [f["name"] for f in by_category["functions"]] == ["_health", "ai-meal-plan"]
    assert by_category["total_functions"] == 2
    assert by_category["categories"]["misc"] == 0
    assert list(by_category["categories"]) == [c.value for c in Category]

    by_name = filter_functions(result, names=["list-users", "nope"])
    assert [f["name"] for f in by_name["functions"]] == ["list-users"]

    assert filter_functions(result)["total_functions"] == 6
    # the source result is left untouched
    assert result["total_functions"] == 6
