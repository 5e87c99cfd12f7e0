"""
edgeprobe/schemas.py – JSON Schemas for user-supplied overrides and the persisted catalog.
"""

from __future__ import annotations

from typing import Any

import jsonschema

from edgeprobe.state import AuthType, Category

TEST_CASE_SCHEMA: dict = {
    "type": "object",
    "required": ["name", "expected_status"],
    "properties": {
        "name": {"type": "string", "minLength": 1},
        "description": {"type": "string"},
        "input": {"type": "object"},
        "expected_status": {"type": "integer", "minimum": 100, "maximum": 599},
        "expected_response": {"type": "object"},
        "validate_response": {"type": "string", "minLength": 1},
        "timeout": {"type": "integer", "minimum": 1},
        "skip": {"type": "boolean"},
        "only": {"type": "boolean"},
        "method": {"enum": ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]},
        "authenticated": {"type": "boolean"},
    },
    "additionalProperties": False,
}

OVERRIDE_SCHEMA: dict = {
    "type": "object",
    "properties": {
        "description": {"type": "string"},
        "category": {"enum": [c.value for c in Category]},
        "auth_type": {"enum": [a.value for a in AuthType]},
        "http_methods": {
            "type": "array",
            "items": {"enum": ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]},
        },
        "dependencies": {"type": "array", "items": {"type": "string"}},
        "test_cases": {"type": "array", "items": TEST_CASE_SCHEMA},
    },
    "additionalProperties": False,
}

_DESCRIPTOR_SCHEMA: dict = {
    "type": "object",
    "required": [
        "name", "path", "category", "http_methods", "auth_type",
        "description", "test_cases", "is_cron_job", "external_apis",
    ],
    "properties": {
        "name": {"type": "string"},
        "path": {"type": "string"},
        "category": {"enum": [c.value for c in Category]},
        "http_methods": {"type": "array", "items": {"type": "string"}, "minItems": 1},
        "auth_type": {"enum": [a.value for a in AuthType]},
        "test_cases": {"type": "array", "items": TEST_CASE_SCHEMA},
        "is_cron_job": {"type": "boolean"},
        "external_apis": {"type": "array", "items": {"type": "string"}},
    },
}

CATALOG_SCHEMA: dict = {
    "type": "object",
    "required": ["functions", "categories", "total_functions", "discovery_timestamp", "errors"],
    "properties": {
        "functions": {"type": "array", "items": _DESCRIPTOR_SCHEMA},
        "categories": {"type": "object", "additionalProperties": {"type": "integer"}},
        "total_functions": {"type": "integer", "minimum": 0},
        "discovery_timestamp": {"type": "string"},
        "errors": {"type": "array", "items": {"type": "string"}},
    },
}


def validate(instance: Any, schema: dict) -> list[str]:
    """Return a list of validation error messages (empty = valid)."""
    validator = jsonschema.Draft7Validator(schema)
    messages: list[str] = []
    for error in sorted(validator.iter_errors(instance), key=lambda e: [str(p) for p in e.absolute_path]):
        location = "/".join(str(p) for p in error.absolute_path)
        messages.append(f"{location}: {error.message}" if location else error.message)
    return messages
