"""
Input format detection for pasted text or uploaded files.
"""
import json
import re
from typing import Any

import yaml  # type: ignore

from postgirl.schemas.import_export import SourceFormat
from postgirl.services.import_export.errors import DocumentParseError

_CURL_PREFIX = re.compile(r"^curl\s", re.IGNORECASE)


def strip_prompt(content: str) -> str:
    """Trim whitespace and a leading ``$`` shell prompt."""
    content = content.strip()
    if content.startswith("$"):
        content = content[1:].strip()
    return content


def _parse_mapping(content: str) -> dict[str, Any] | None:
    # Try JSON first, then YAML
    try:
        data = json.loads(content)
    except RecursionError:
        # Nested deeper than the interpreter allows; YAML would fail the same way
        return None
    except ValueError:
        try:
            data = yaml.safe_load(content)
        except (yaml.YAMLError, RecursionError):
            return None
    return data if isinstance(data, dict) else None


def load_document(content: str) -> dict[str, Any]:
    """Parse JSON (or YAML) text into a mapping, raising DocumentParseError otherwise."""
    data = _parse_mapping(content)
    if data is None:
        raise DocumentParseError(
            "Content is not a JSON or YAML object",
            details=f"Received {len(content)} characters that did not decode to a mapping",
        )
    return data


def classify_document(data: dict[str, Any]) -> SourceFormat:
    info = data.get("info")
    if isinstance(info, dict) and "postman" in str(info.get("schema", "")):
        return SourceFormat.POSTMAN
    if data.get("_type") == "export" and isinstance(data.get("resources"), list):
        return SourceFormat.INSOMNIA
    if "openapi" in data and "info" in data and "paths" in data:
        return SourceFormat.OPENAPI
    return SourceFormat.POSTMAN


def classify(content: str) -> SourceFormat:
    """Detect the format of raw import content.

    Anything that cannot be recognised falls back to ``postman``, which then
    reports a proper parsing error during the import itself.
    """
    text = strip_prompt(content)
    if _CURL_PREFIX.match(text):
        return SourceFormat.CURL
    data = _parse_mapping(text)
    if data is None:
        return SourceFormat.POSTMAN
    return classify_document(data)
