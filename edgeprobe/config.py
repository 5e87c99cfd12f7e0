"""
edgeprobe/config.py – loads edgeprobe.yaml and environment settings.

Discovery and generation only read the project layout sections. The
environment-derived values (URLs, keys, test account) are handed to the
execution engine and never baked into generated files.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from typing_extensions import TypedDict

from edgeprobe.errors import ConfigError
from edgeprobe.log import get_logger

load_dotenv()

log = get_logger(__name__)

DEFAULT_CONFIG_NAME = "edgeprobe.yaml"


class RootConfig(TypedDict):
    """One hosting convention: where its units live and how they are invoked."""

    name: str
    path: str
    layout: str             # "directory" | "file"
    entry_files: list[str]  # directory layout: file that marks a unit
    suffixes: list[str]     # file layout: extensions that mark a unit
    path_prefix: str
    required: bool


DEFAULT_ROOTS: list[RootConfig] = [
    RootConfig(
        name="supabase",
        path="supabase/functions",
        layout="directory",
        entry_files=["index.ts"],
        suffixes=[],
        path_prefix="/functions/v1/",
        required=True,
    ),
    RootConfig(
        name="cloudflare",
        path="functions",
        layout="file",
        entry_files=[],
        suffixes=[".ts"],
        path_prefix="/",
        required=False,
    ),
]


def load_config(path: str | Path | None = None) -> dict:
    """Load and return the parsed config file.

    An explicitly named file must exist. The default file
    (``$EDGEPROBE_CONFIG`` or ./edgeprobe.yaml) is optional.
    """
    explicit = path is not None
    p = Path(path) if path else Path(os.getenv("EDGEPROBE_CONFIG", DEFAULT_CONFIG_NAME))
    if not p.exists():
        if explicit:
            raise ConfigError(f"Config file not found: {p}")
        return {}
    try:
        with open(p, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Could not parse config file {p}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {p} must contain a mapping at the top level")
    return data


def _root_from_config(raw: dict[str, Any]) -> RootConfig:
    layout = raw.get("layout", "directory")
    if layout not in {"directory", "file"}:
        raise ConfigError(f"Unknown layout '{layout}' for root '{raw.get('name')}'")
    if "name" not in raw or "path" not in raw:
        raise ConfigError("Every discovery root needs a name and a path")
    return RootConfig(
        name=str(raw["name"]),
        path=str(raw["path"]),
        layout=layout,
        entry_files=list(raw.get("entry_files", ["index.ts"] if layout == "directory" else [])),
        suffixes=list(raw.get("suffixes", [".ts"] if layout == "file" else [])),
        path_prefix=str(raw.get("path_prefix", "/")),
        required=bool(raw.get("required", False)),
    )


class Settings:
    """Central settings object populated from the config file + env vars."""

    def __init__(self, config: dict | None = None, base_dir: str | Path | None = None):
        if config is None:
            config = load_config()

        self.config = config

        project_cfg = config.get("project") or {}
        discovery_cfg = config.get("discovery") or {}
        artifacts_cfg = config.get("artifacts") or {}
        generation_cfg = config.get("generation") or {}
        exec_cfg = config.get("execution") or {}

        # Project root that is scanned and that artifact paths are relative to
        self.base_dir: Path = Path(
            base_dir
            or project_cfg.get("base_dir")
            or os.getenv("EDGEPROBE_BASE_DIR")
            or Path.cwd()
        ).resolve()

        # Discovery
        raw_roots = discovery_cfg.get("roots")
        self.roots: list[RootConfig] = (
            [_root_from_config(r) for r in raw_roots] if raw_roots else list(DEFAULT_ROOTS)
        )
        self.function_overrides: dict[str, dict] = config.get("functions") or {}

        # Artifacts
        self.catalog_path: Path = self.base_dir / artifacts_cfg.get(
            "catalog", "tests/functions/discovery/discovered-functions.json"
        )
        self.generated_dir: Path = self.base_dir / artifacts_cfg.get(
            "generated_dir", "tests/functions/generated"
        )
        self.results_dir: Path = self.base_dir / artifacts_cfg.get(
            "results_dir", "tests/functions/results"
        )

        # Generation
        self.latency_ceiling_ms: int = int(generation_cfg.get("latency_ceiling_ms", 5000))

        # Execution
        self.engine: str = exec_cfg.get("engine", "pytest")
        self.engine_command: list[str] | None = exec_cfg.get("command")
        self.browser: str = exec_cfg.get("browser", "chromium")
        self.default_reporter: str = exec_cfg.get("reporter", "html")

        # Environment consumed by the generated helper module at test time
        self.functions_url: str = os.getenv("FUNCTIONS_URL", "http://localhost:54321")
        self.auth_url: str = os.getenv("SUPABASE_URL", self.functions_url)
        self.anon_key: str = os.getenv("SUPABASE_ANON_KEY", "")
        self.service_role_key: str = os.getenv("SUPABASE_SERVICE_ROLE_KEY", "")
        self.cron_secret: str = os.getenv("CRON_SECRET", "")
        self.test_user_email: str = os.getenv("TEST_USER_EMAIL", "test@example.com")
        self.test_user_password: str = os.getenv("TEST_USER_PASSWORD", "TestPassword123!")

    def engine_env(self) -> dict[str, str]:
        """Environment for the engine subprocess: inherited env plus resolved fallbacks."""
        env = dict(os.environ)
        env.update(
            {
                "FUNCTIONS_URL": self.functions_url,
                "SUPABASE_URL": self.auth_url,
                "SUPABASE_ANON_KEY": self.anon_key,
                "SUPABASE_SERVICE_ROLE_KEY": self.service_role_key,
                "CRON_SECRET": self.cron_secret,
                "TEST_USER_EMAIL": self.test_user_email,
                "TEST_USER_PASSWORD": self.test_user_password,
            }
        )
        return env


def _default_settings() -> Settings:
    """Settings from the default config file, or built-in defaults if it is unusable.

    Importing the package must not fail on a broken config file; the CLI loads
    the file again and reports the error itself.
    """
    try:
        return Settings()
    except ConfigError as exc:
        log.warning("default config ignored: %s", exc)
        return Settings({})


# Singleton used when callers do not pass their own Settings
settings = _default_settings()
