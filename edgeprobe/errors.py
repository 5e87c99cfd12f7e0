from typing import Any, Dict, Optional


class EdgeProbeError(RuntimeError):
    """
    Base error for pipeline components. Raised inside a phase and turned into an
    accumulated error string at the phase boundary.
    """

    category: str = "runtime"

    def __init__(self, message: str, *, metadata: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.metadata = metadata or {}


class ConfigError(EdgeProbeError):
    """Raised when the configuration file is missing, unreadable or malformed."""

    category = "config"


class CatalogError(EdgeProbeError):
    """Raised when a persisted catalog cannot be read back."""

    category = "catalog"


class EngineError(EdgeProbeError):
    """Raised when the external test-execution engine cannot be started."""

    category = "engine"
