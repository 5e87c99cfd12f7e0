"""
edgeprobe/templates/helpers_template.py
Source text for the helper module and conftest shared by every generated test file.

The helper module carries one header constructor per AuthType. Rendering fails
if an AuthType has no constructor, so a new auth type cannot silently reach the
generated suite without a matching header strategy.
"""

from __future__ import annotations

from edgeprobe.state import AuthType

HELPERS_MODULE = "function_helpers"
HELPERS_FILENAME = f"{HELPERS_MODULE}.py"
CONFTEST_FILENAME = "conftest.py"

TOKEN_REFRESH_MARGIN_S = 60


def constructor_name(auth_type: AuthType) -> str:
    return "headers_for_" + auth_type.value.replace("-", "_")


# Body of each constructor; every one receives the session TokenCache.
_CONSTRUCTOR_BODIES: dict[AuthType, str] = {
    AuthType.NONE: """\
    return _json_headers()
""",
    AuthType.ANONYMOUS_KEY: """\
    headers = _json_headers()
    headers["Authorization"] = f"Bearer {ANON_KEY}"
    headers["apikey"] = ANON_KEY
    return headers
""",
    AuthType.BEARER_TOKEN: """\
    headers = _json_headers()
    headers["Authorization"] = f"Bearer {token_cache.get()}"
    headers["apikey"] = ANON_KEY
    return headers
""",
    AuthType.PRIVILEGED_KEY: """\
    headers = _json_headers()
    headers["Authorization"] = f"Bearer {SERVICE_ROLE_KEY}"
    headers["apikey"] = SERVICE_ROLE_KEY
    return headers
""",
    AuthType.SCHEDULER_SECRET: """\
    headers = _json_headers()
    headers["x-cron-secret"] = CRON_SECRET
    headers["Authorization"] = f"Bearer {SERVICE_ROLE_KEY}"
    return headers
""",
    AuthType.OAUTH: """\
    # OAuth tokens are provider specific and have to be provisioned by hand
    warnings.warn("OAuth auth type requires manual token setup")
    return _json_headers()
""",
}

_HEADER = '''\
"""
Shared helpers for the generated edge function tests.

Auto-generated by edgeprobe. Do not edit by hand.
"""

from __future__ import annotations

import enum
import os
import time
import warnings
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

import httpx
import pytest
from typing_extensions import assert_never

BASE_URL = os.getenv("FUNCTIONS_URL", "http://localhost:54321").rstrip("/")
AUTH_URL = os.getenv("SUPABASE_URL", BASE_URL).rstrip("/")
ANON_KEY = os.getenv("SUPABASE_ANON_KEY", "")
SERVICE_ROLE_KEY = os.getenv("SUPABASE_SERVICE_ROLE_KEY", "")
CRON_SECRET = os.getenv("CRON_SECRET", "")
TEST_USER_EMAIL = os.getenv("TEST_USER_EMAIL", "test@example.com")
TEST_USER_PASSWORD = os.getenv("TEST_USER_PASSWORD", "TestPassword123!")

LATENCY_CEILING_MS = {latency_ceiling_ms}
TOKEN_REFRESH_MARGIN_S = {refresh_margin}
'''

_TOKEN_CACHE = '''

@dataclass
class TokenCache:
    """Bearer token plus its expiry; ``refresh`` is called once the token is stale."""

    refresh: Callable[[], Tuple[str, float]]
    token: Optional[str] = None
    expires_at: float = 0.0
    clock: Callable[[], float] = time.time

    def valid(self) -> bool:
        return self.token is not None and self.clock() < self.expires_at

    def get(self) -> str:
        if not self.valid():
            token, expires_in = self.refresh()
            self.token = token
            self.expires_at = self.clock() + expires_in - TOKEN_REFRESH_MARGIN_S
        return self.token


def password_grant(client: httpx.Client) -> Callable[[], Tuple[str, float]]:
    """Refresh function exchanging the test account credentials for a bearer token."""

    def refresh() -> Tuple[str, float]:
        try:
            response = client.post(
                f"{AUTH_URL}/auth/v1/token",
                params={"grant_type": "password"},
                headers={"Content-Type": "application/json", "apikey": ANON_KEY},
                json={"email": TEST_USER_EMAIL, "password": TEST_USER_PASSWORD},
            )
            response.raise_for_status()
            data = response.json()
            return data["access_token"], float(data.get("expires_in", 3600))
        except (httpx.HTTPError, KeyError, ValueError) as exc:
            warnings.warn(f"Failed to get bearer token, falling back to anon key: {exc}")
            return ANON_KEY, 0.0

    return refresh


def _json_headers() -> Dict[str, str]:
    return {"Content-Type": "application/json"}
'''

_FIXTURES = '''

@pytest.fixture(scope="session")
def http_client():
    with httpx.Client(timeout=30.0) as client:
        yield client


@pytest.fixture(scope="session")
def token_cache(http_client):
    return TokenCache(refresh=password_grant(http_client))
'''

CONFTEST_SOURCE = f'''\
"""
pytest wiring for the generated edge function tests.

Auto-generated by edgeprobe. Do not edit by hand.
"""

from {HELPERS_MODULE} import http_client, token_cache  # noqa: F401


def pytest_configure(config):
    config.addinivalue_line("markers", "only: run only the tests carrying this marker")


def pytest_collection_modifyitems(config, items):
    focused = [item for item in items if item.get_closest_marker("only")]
    if not focused:
        return
    config.hook.pytest_deselected(items=[item for item in items if not item.get_closest_marker("only")])
    items[:] = focused
'''


def _auth_enum() -> str:
    lines = ["", "", "class AuthType(str, enum.Enum):"]
    for auth_type in AuthType:
        lines.append(f"    {auth_type.name} = {auth_type.value!r}")
    return "\n".join(lines) + "\n"


def _constructors() -> str:
    missing = [a.value for a in AuthType if a not in _CONSTRUCTOR_BODIES]
    if missing:
        raise ValueError(f"no header constructor for auth type(s): {', '.join(missing)}")

    chunks: list[str] = []
    for auth_type in AuthType:
        chunks.append(
            f"\n\ndef {constructor_name(auth_type)}(token_cache: TokenCache) -> Dict[str, str]:\n"
            + _CONSTRUCTOR_BODIES[auth_type]
        )

    dispatch = [
        "",
        "",
        "def get_auth_headers(auth_type: AuthType, token_cache: TokenCache) -> Dict[str, str]:",
        '    """Request headers for ``auth_type``; every AuthType has exactly one branch."""',
        "    auth_type = AuthType(auth_type)",
    ]
    for i, auth_type in enumerate(AuthType):
        keyword = "if" if i == 0 else "elif"
        dispatch.append(f"    {keyword} auth_type is AuthType.{auth_type.name}:")
        dispatch.append(f"        return {constructor_name(auth_type)}(token_cache)")
    dispatch.append("    else:")
    dispatch.append("        assert_never(auth_type)")
    return "".join(chunks) + "\n".join(dispatch) + "\n"


def render_helpers(latency_ceiling_ms: int) -> str:
    """Full source of the shared helper module."""
    return (
        _HEADER.format(latency_ceiling_ms=int(latency_ceiling_ms), refresh_margin=TOKEN_REFRESH_MARGIN_S)
        + _auth_enum()
        + _TOKEN_CACHE
        + _constructors()
        + _FIXTURES
    )


def render_conftest() -> str:
    return CONFTEST_SOURCE
