"""
Example payload synthesis from OpenAPI schema objects.
"""
from typing import Any

from postgirl.config import settings

_PLACEHOLDERS: dict[str, Any] = {
    "string": "string",
    "number": 0,
    "integer": 0,
}


def resolve_ref(document: dict, ref: str) -> dict:
    """Resolve a local ``#/...`` pointer; anything unresolvable yields an empty schema."""
    if not ref.startswith("#/"):
        return {}
    current: Any = document
    for part in ref[2:].split("/"):
        part = part.replace("~1", "/").replace("~0", "~")
        if not isinstance(current, dict) or part not in current:
            return {}
        current = current[part]
    return current if isinstance(current, dict) else {}


def synthesize(schema: Any, document: dict | None = None, max_depth: int | None = None) -> Any:
    """Produce a representative value for ``schema``.

    ``document`` is the enclosing OpenAPI document, used to follow ``$ref``
    pointers. A schema that refers back to itself (by ``$ref`` or by sharing
    the same object) yields ``None`` at the point where the cycle closes.
    """
    limit = settings.MAX_EXAMPLE_DEPTH if max_depth is None else max_depth
    return _synthesize(schema, document or {}, frozenset(), 0, limit)


def _synthesize(schema: Any, document: dict, active: frozenset, depth: int, limit: int) -> Any:
    if not isinstance(schema, dict) or depth > limit:
        return None

    ref = schema.get("$ref")
    if isinstance(ref, str):
        if ref in active:
            return None
        active = active | {ref}
        schema = resolve_ref(document, ref)

    if id(schema) in active:
        return None
    active = active | {id(schema)}

    if "example" in schema:
        return schema["example"]

    schema_type = schema.get("type")

    if schema_type == "object":
        properties = schema.get("properties")
        if not isinstance(properties, dict):
            return {}
        return {
            name: _synthesize(prop, document, active, depth + 1, limit)
            for name, prop in properties.items()
        }

    if schema_type == "array":
        items = schema.get("items")
        if items is None:
            return []
        return [_synthesize(items, document, active, depth + 1, limit)]

    if schema_type in _PLACEHOLDERS:
        enum = schema.get("enum")
        if isinstance(enum, list) and enum:
            return enum[0]
        return _PLACEHOLDERS[schema_type]

    if schema_type == "boolean":
        return False

    return None
