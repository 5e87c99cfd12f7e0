"""
edgeprobe/templates/test_module_template.py
Renders one pytest module per category: a test class per unit, one test method
per case plus a latency check.

Output depends only on its inputs, so the same catalog and timestamp always
render the same bytes.
"""

from __future__ import annotations

import re

from edgeprobe.parsers.source_parser import default_test_cases
from edgeprobe.state import PREFLIGHT_METHOD, AuthType, FunctionDescriptor, TestCase
from edgeprobe.templates.helpers_template import HELPERS_MODULE

_URL = 'f"{BASE_URL}{self.FUNCTION_PATH}"'
LATENCY_TEST = "test_should_respond_within_timeout"


def module_filename(category: str) -> str:
    return f"test_{category.replace('-', '_')}_functions.py"


def category_title(category: str) -> str:
    return " ".join(w[:1].upper() + w[1:] for w in category.split("-"))


def class_name(unit_name: str) -> str:
    parts = [p for p in re.split(r"[^0-9A-Za-z]+", unit_name) if p]
    return "Test" + ("".join(p[:1].upper() + p[1:] for p in parts) or "Unit")


def method_name(case_name: str) -> str:
    slug = re.sub(r"[^0-9a-z]+", "_", case_name.lower()).strip("_")
    return f"test_{slug or 'case'}"


def _unique(name: str, seen: set[str]) -> str:
    candidate, n = name, 2
    while candidate in seen:
        candidate = f"{name}_{n}" if name.startswith("test_") else f"{name}{n}"
        n += 1
    seen.add(candidate)
    return candidate


def _comment(text: str) -> str:
    return " ".join(text.split())


_BODY_METHODS = ("POST", "PUT", "PATCH")


def case_method(case: TestCase) -> str:
    """Declared method, else GET when the case name mentions it, else POST."""
    if case.get("method"):
        return case["method"]
    return "GET" if "get" in case["name"].lower() else "POST"


def _case_block(case: TestCase, name: str) -> list[str]:
    lines: list[str] = []
    if case.get("skip"):
        lines.append('    @pytest.mark.skip(reason="skipped in function config")')
    elif case.get("only"):
        lines.append("    @pytest.mark.only")
    lines.append(f"    def {name}(self, http_client, token_cache):")
    if case.get("description"):
        lines.append(f"        # {_comment(case['description'])}")
    if case.get("authenticated", True):
        lines.append("        headers = get_auth_headers(self.AUTH_TYPE, token_cache)")
    else:
        lines.append("        headers = {}")

    method = case_method(case)
    timeout = f", timeout={case['timeout'] / 1000!r}" if case.get("timeout") else ""
    if method in _BODY_METHODS:
        payload = repr(case.get("input") or {})
        lines.append(
            f"        response = http_client.{method.lower()}({_URL}, headers=headers, json={payload}{timeout})"
        )
    else:
        lines.append(f"        response = http_client.{method.lower()}({_URL}, headers=headers{timeout})")

    status = int(case["expected_status"])
    lines.append("")
    lines.append(f"        assert response.status_code == {status}")
    if method == PREFLIGHT_METHOD and status < 300:
        lines.append('        assert "access-control-allow-origin" in response.headers')

    expected = case.get("expected_response")
    predicate = case.get("validate_response")
    if expected or predicate:
        lines.append("        body = response.json()")
    for key, value in (expected or {}).items():
        if isinstance(value, (str, bool, int, float)):
            lines.append(f"        assert body[{key!r}] == {value!r}")
        else:
            lines.append(f"        assert {key!r} in body")
    if predicate:
        try:
            compile(predicate, "<validate_response>", "eval")
        except SyntaxError as exc:
            raise ValueError(f"validate_response for '{case['name']}' is not an expression: {exc.msg}") from exc
        lines.append(f"        assert {predicate}")
    lines.append("")
    return lines


def _latency_block(name: str) -> list[str]:
    return [
        f"    def {name}(self, http_client):",
        "        started = time.perf_counter()",
        f"        http_client.options({_URL})",
        "        duration_ms = (time.perf_counter() - started) * 1000",
        "        assert duration_ms < LATENCY_CEILING_MS",
        "",
    ]


def render_unit(func: FunctionDescriptor, cls: str) -> tuple[str, int]:
    """Return (class source, number of test methods) for one unit.

    Every unit gets its cases plus one latency check. A catalog written before
    defaults were filled in still renders the default cases.
    """
    lines = [f"class {cls}:", f"    # {_comment(func['description'])}"]
    if func.get("external_apis"):
        lines.append(f"    # External APIs: {', '.join(func['external_apis'])}")
    if func.get("is_cron_job"):
        lines.append("    # Type: Cron Job")
    lines += [
        "",
        f"    FUNCTION_PATH = {func['path']!r}",
        f"    AUTH_TYPE = AuthType.{AuthType(func['auth_type']).name}",
        "",
    ]

    cases = func.get("test_cases") or default_test_cases(func)
    seen: set[str] = set()
    for case in cases:
        lines += _case_block(case, _unique(method_name(case["name"]), seen))
    lines += _latency_block(_unique(LATENCY_TEST, seen))

    while lines and lines[-1] == "":
        lines.pop()
    return "\n".join(lines) + "\n", len(cases) + 1


def render_module(category: str, functions: list[FunctionDescriptor], generated_at: str) -> tuple[str, int]:
    """Return (module source, number of test methods) for one category."""
    title = category_title(category)
    header = f'''\
"""
{title} Edge Functions Tests

Auto-generated by edgeprobe
Generated: {generated_at}

These tests verify the behavior of {category} edge functions.
"""

import time

import pytest

from {HELPERS_MODULE} import BASE_URL, LATENCY_CEILING_MS, AuthType, get_auth_headers
'''
    classes: list[str] = []
    seen: set[str] = set()
    total = 0
    for func in functions:
        source, count = render_unit(func, _unique(class_name(func["name"]), seen))
        classes.append(source)
        total += count
    return header + "".join("\n\n" + c for c in classes), total
