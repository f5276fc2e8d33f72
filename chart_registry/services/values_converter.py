"""
Conversion of client-supplied configuration values into the YAML form stored
inside chart archives.
"""
from __future__ import annotations

import json

import yaml


class ValuesConversionError(Exception):
    """Raised when a values document cannot be converted."""


def json_to_yaml(document: bytes) -> str:
    """
    Convert a JSON object document to YAML text.

    Values must be a mapping at the top level; scalars and lists are rejected.
    """
    try:
        parsed = json.loads(document)
    except (UnicodeDecodeError, ValueError) as e:
        raise ValuesConversionError(f"values are not valid JSON: {e}") from e

    if not isinstance(parsed, dict):
        raise ValuesConversionError(f"values must be a JSON object, got {type(parsed).__name__}")

    return yaml.safe_dump(parsed, sort_keys=False, default_flow_style=False, allow_unicode=True)
