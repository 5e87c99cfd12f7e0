"""
edgeprobe/parsers/source_parser.py
Infers a FunctionDescriptor from the source text of one deployable unit.

Nothing here executes the unit. Every property is a lexical guess driven by
the tables in edgeprobe.patterns.
"""

from __future__ import annotations

import re
from pathlib import Path

from edgeprobe import patterns
from edgeprobe.config import RootConfig
from edgeprobe.schemas import OVERRIDE_SCHEMA, validate
from edgeprobe.state import (
    CATCH_ALL_CATEGORY,
    PREFLIGHT_METHOD,
    AuthType,
    Category,
    FunctionDescriptor,
    TestCase,
)

_JSDOC_RE = re.compile(r"/\*\*[\s\S]*?\*/")
_INVOKE_RE = re.compile(r"""functions\.invoke\(\s*['"`]([\w-]+)['"`]""")
_FUNCTION_URL_RE = re.compile(r"/functions/v1/([\w-]+)")

DESCRIPTION_SUFFIX = "Edge Function"
HEALTH_UNIT = "_health"


def determine_category(name: str) -> Category:
    """First matching name pattern wins; unmatched units fall into the catch-all."""
    return patterns.first_match(patterns.CATEGORY_PATTERNS, name) or CATCH_ALL_CATEGORY


def determine_auth_type(name: str, content: str) -> AuthType:
    """Name table first, then source heuristics, then bearer-token."""
    by_name = patterns.first_match(patterns.AUTH_NAME_PATTERNS, name)
    if by_name is not None:
        return by_name
    by_content = patterns.first_match(
        patterns.AUTH_CONTENT_PATTERNS, content, ignore_case=False
    )
    return by_content or patterns.DEFAULT_AUTH_TYPE


def determine_http_methods(content: str) -> list[str]:
    methods = [PREFLIGHT_METHOD]
    for method in patterns.find_all(patterns.METHOD_IDIOMS, content):
        if method not in methods:
            methods.append(method)
    if len(methods) == 1:
        methods.append(patterns.FALLBACK_METHOD)
    return methods


def generate_description(name: str) -> str:
    words = name.replace("-", " ").replace("_", " ").split(" ")
    title = " ".join(w[:1].upper() + w[1:] for w in words)
    return f"{title} {DESCRIPTION_SUFFIX}"


def extract_description(content: str, name: str) -> str:
    """First line of the first /** ... */ block, unless it is a @tag line."""
    match = _JSDOC_RE.search(content)
    if match:
        body = re.sub(r"/\*\*|\*/", "", match.group(0))
        body = re.sub(r"\n\s*\*", "\n", body).strip()
        first_line = body.split("\n")[0].strip()
        if first_line and not first_line.startswith("@"):
            return first_line
    return generate_description(name)


def detect_external_apis(content: str) -> list[str]:
    return patterns.find_all(patterns.EXTERNAL_API_PATTERNS, content)


def is_cron_job(content: str, name: str) -> bool:
    return patterns.contains_any(patterns.CRON_INDICATORS, name, content)


def find_invocations(content: str, name: str) -> list[str]:
    """Names of other units this source calls, sorted, self excluded."""
    called = set(_INVOKE_RE.findall(content)) | set(_FUNCTION_URL_RE.findall(content))
    called.discard(name)
    return sorted(called)


def default_test_cases(func: FunctionDescriptor) -> list[TestCase]:
    """Baseline contract cases for a unit that declares none of its own.

    Cases a unit with auth would reject are sent without credentials, so the
    expected status is the one the unit must answer with.
    """
    requires_auth = func["auth_type"] != AuthType.NONE
    cases: list[TestCase] = [
        TestCase(
            name="CORS Preflight",
            description="Should respond to OPTIONS request with CORS headers",
            input={},
            expected_status=200,
            method=PREFLIGHT_METHOD,
            authenticated=False,
        )
    ]

    if requires_auth:
        cases.append(
            TestCase(
                name="Unauthorized Access",
                description="Should reject unauthorized requests",
                input={},
                expected_status=401,
                method=func["http_methods"][1],
                authenticated=False,
            )
        )

    if func["name"] == HEALTH_UNIT:
        cases.append(
            TestCase(
                name="Health Check",
                description="Should return healthy status",
                input={},
                expected_status=200,
                expected_response={"status": "healthy"},
                method="GET" if "GET" in func["http_methods"] else "POST",
                authenticated=requires_auth,
            )
        )

    if "GET" in func["http_methods"]:
        cases.append(
            TestCase(
                name="GET Request",
                description="Should handle GET request",
                input={},
                expected_status=401 if requires_auth else 200,
                method="GET",
                authenticated=False,
            )
        )

    cases.append(
        TestCase(
            name="POST Empty Body",
            description="Should handle POST request with empty body",
            input={},
            expected_status=401 if requires_auth else 400,
            method="POST",
            authenticated=False,
        )
    )
    return cases


def apply_override(func: FunctionDescriptor, override: dict) -> FunctionDescriptor:
    """Replace inferred fields with hand-declared ones from the config file.

    Raises ValueError listing every schema violation.
    """
    problems = validate(override, OVERRIDE_SCHEMA)
    if problems:
        raise ValueError("invalid override: " + "; ".join(problems))

    if "description" in override:
        func["description"] = override["description"]
    if "category" in override:
        func["category"] = Category(override["category"])
    if "auth_type" in override:
        func["auth_type"] = AuthType(override["auth_type"])
    if "http_methods" in override:
        methods = [PREFLIGHT_METHOD]
        methods += [m for m in override["http_methods"] if m != PREFLIGHT_METHOD]
        if len(methods) == 1:
            methods.append(patterns.FALLBACK_METHOD)
        func["http_methods"] = list(dict.fromkeys(methods))
    if "dependencies" in override:
        func["dependencies"] = list(override["dependencies"])
    if "test_cases" in override:
        func["test_cases"] = [
            TestCase(**{"description": "", "input": {}, **tc}) for tc in override["test_cases"]
        ]
    return func


def parse(
    name: str,
    file_path: str | Path,
    root: RootConfig,
    override: dict | None = None,
) -> FunctionDescriptor:
    """Read one unit's entry file and return its descriptor.

    Raises OSError / UnicodeDecodeError for unreadable sources and ValueError
    for a malformed override; the caller records those as unit-scoped errors.
    A unit left without declared cases gets default_test_cases().
    """
    content = Path(file_path).read_text(encoding="utf-8")

    http_methods = determine_http_methods(content)
    external_apis = detect_external_apis(content)

    func = FunctionDescriptor(
        name=name,
        path=f"{root['path_prefix'].rstrip('/')}/{name}",
        category=determine_category(name),
        http_methods=http_methods,
        auth_type=determine_auth_type(name, content),
        description=extract_description(content, name),
        test_cases=[],
        dependencies=find_invocations(content, name),
        is_cron_job=is_cron_job(content, name),
        requires_external_api=bool(external_apis),
        external_apis=external_apis,
        source=root["name"],
    )

    if override:
        apply_override(func, override)
    if not func["test_cases"]:
        func["test_cases"] = default_test_cases(func)
    return func
