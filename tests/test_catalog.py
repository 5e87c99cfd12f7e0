import json
from pathlib import Path

import pytest

from edgeprobe.config import Settings
from edgeprobe.errors import CatalogError
from edgeprobe.tools.catalog_tool import load_catalog, save_catalog
from edgeprobe.tools.discover_functions_tool import discover_functions

from conftest import fixed_clock


def test_save_creates_parent_directories(cfg: Settings) -> None:
    result = discover_functions(cfg, clock=fixed_clock)
    path = save_catalog(result, cfg.catalog_path)

    assert path == cfg.catalog_path
    assert path.exists()
    data = json.loads(path.read_text(encoding="utf-8"))
    assert data["total_functions"] == 6
    # enums are written as their plain string values
    assert data["functions"][0]["category"] == "core"
    assert data["functions"][0]["auth_type"] == "none"


def test_load_returns_what_was_saved(cfg: Settings) -> None:
    result = discover_functions(cfg, clock=fixed_clock)
    save_catalog(result, cfg.catalog_path)

    loaded = load_catalog(cfg.catalog_path)
    assert loaded is not None
    assert [f["name"] for f in loaded["functions"]] == [f["name"] for f in result["functions"]]
    assert loaded["categories"] == result["categories"]
    assert loaded["discovery_timestamp"] == result["discovery_timestamp"]


def test_save_overwrites_previous_catalog(cfg: Settings) -> None:
    result = discover_functions(cfg, clock=fixed_clock)
    save_catalog(result, cfg.catalog_path)
    result["functions"] = result["functions"][:1]
    result["total_functions"] = 1
    save_catalog(result, cfg.catalog_path)

    assert load_catalog(cfg.catalog_path)["total_functions"] == 1


def test_missing_catalog_is_none(tmp_path: Path) -> None:
    assert load_catalog(tmp_path / "nowhere.json") is None


def test_unparseable_catalog_raises(tmp_path: Path) -> None:
    path = tmp_path / "catalog.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(CatalogError):
        load_catalog(path)


def test_catalog_with_wrong_shape_raises(tmp_path: Path) -> None:
    path = tmp_path / "catalog.json"
    path.write_text(json.dumps({"functions": [{"name": "x"}]}), encoding="utf-8")
    with pytest.raises(CatalogError) as excinfo:
        load_catalog(path)
    assert excinfo.value.category == "catalog"
    assert excinfo.value.metadata["problems"]
