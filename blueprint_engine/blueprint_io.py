"""
Blueprint JSON loading.

Parses raw blueprint text with an upload guard: oversized payloads and
pathologically deep nesting are refused before any analysis runs.
"""

import json

from blueprint_engine.config import MAX_DOCUMENT_BYTES, MAX_DOCUMENT_DEPTH


class BlueprintParseError(ValueError):
    """Raised when a blueprint document cannot be loaded as a JSON object."""


def load_blueprint_json(raw, max_bytes=MAX_DOCUMENT_BYTES, max_depth=MAX_DOCUMENT_DEPTH):
    """Parse a blueprint document from text.

    Args:
        raw: JSON text (str or bytes).
        max_bytes: Size limit for the encoded payload.
        max_depth: Nesting limit for objects and arrays.

    Returns:
        The parsed top-level object (dict).

    Raises:
        BlueprintParseError: invalid JSON, oversized, too deep, or the top
                             level is not an object.
    """
    if isinstance(raw, str):
        raw = raw.encode("utf-8")
    if len(raw) > max_bytes:
        raise BlueprintParseError(
            f"Document too large ({len(raw)} bytes). Maximum allowed: {max_bytes}"
        )

    try:
        parsed = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError, RecursionError) as e:
        raise BlueprintParseError(f"Invalid JSON syntax: {e}") from e

    depth = nesting_depth(parsed)
    if depth > max_depth:
        raise BlueprintParseError(
            f"Document too deeply nested ({depth} levels). Maximum allowed: {max_depth}"
        )

    if not isinstance(parsed, dict):
        raise BlueprintParseError(
            f"Blueprint must be a JSON object at the top level, got {type(parsed).__name__}"
        )
    return parsed


def nesting_depth(value):
    """Container nesting depth, computed iteratively."""
    deepest = 0
    stack = [(value, 1)]
    while stack:
        item, depth = stack.pop()
        if isinstance(item, dict):
            children = item.values()
        elif isinstance(item, list):
            children = item
        else:
            continue
        deepest = max(deepest, depth)
        stack.extend((child, depth + 1) for child in children)
    return deepest
