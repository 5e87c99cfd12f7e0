from pathlib import Path

import pytest

from edgeprobe.main import main


@pytest.fixture
def config_file(project: Path) -> Path:
    path = project / "edgeprobe.yaml"
    path.write_text(f"project:\n  base_dir: {project}\n", encoding="utf-8")
    return path


def test_help_exits_cleanly(capsys: pytest.CaptureFixture[str]) -> None:
    assert main([]) == 0
    out = capsys.readouterr().out
    assert "discover" in out
    assert "FUNCTIONS_URL" in out


def test_status_before_anything_ran(config_file: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["status", "--config", str(config_file)]) == 0
    out = capsys.readouterr().out
    assert 'No discovery results found. Run "discover" first.' in out
    assert "No generated tests found" in out


def test_discover_then_status(project: Path, config_file: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["discover", "--config", str(config_file)]) == 0
    assert (project / "tests" / "functions" / "discovery" / "discovered-functions.json").exists()
    capsys.readouterr()

    assert main(["status", "--config", str(config_file)]) == 0
    out = capsys.readouterr().out
    assert "Functions discovered: 6" in out
    assert "Latest run:" in out


def test_generate_without_catalog_exits_nonzero(config_file: Path) -> None:
    assert main(["generate", "--config", str(config_file)]) == 1


def test_missing_config_file(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["discover", "--config", str(tmp_path / "missing.yaml")]) == 1
    assert "CONFIG ERROR" in capsys.readouterr().out


def test_unknown_category_exits_with_failure(capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit) as excinfo:
        main(["run", "--category", "gardening"])
    assert excinfo.value.code == 1
    assert "invalid choice: 'gardening'" in capsys.readouterr().err


@pytest.mark.parametrize(
    "argv",
    [
        ["deploy"],
        ["run", "--reporter", "tap"],
        ["run", "--no-such-flag"],
    ],
)
def test_usage_errors_exit_with_failure(argv: list[str]) -> None:
    with pytest.raises(SystemExit) as excinfo:
        main(argv)
    assert excinfo.value.code == 1
