"""
curl command import (token/regex extraction) and export.

This is deliberately not a shell parser: it recognises the handful of options
people paste from browser dev tools and API docs, and ignores everything else.
"""
import base64
import re
from typing import Any, Iterator

from postgirl.models.request import BodyType, Request
from postgirl.schemas.collection import CollectionCreate, RequestCreate
from postgirl.schemas.import_export import ExportErrorEntry, ExportErrorKind, ImportWarningKind, SourceFormat
from postgirl.services.collection_store import CollectionStore
from postgirl.services.import_export.tally import ImportPlan, ItemOutcome, describe_exception, isolate, warning

CURL_COLLECTION_NAME = "Imported from curl"

_QUOTED = r"""(?:'([^']*)'|"((?:[^"\\]|\\.)*)")"""

_METHOD_RE = re.compile(r"""(?:^|\s)(?:-X|--request)\s*['"]?([A-Za-z]+)""")
_HEADER_RE = re.compile(r"(?:^|\s)(?:-H|--header)\s+" + _QUOTED)
_DATA_RE = re.compile(r"(?:^|\s)(?:--data-raw|--data-binary|--data|-d)\s+(?:" + _QUOTED + r"|(\S+))")
_USER_RE = re.compile(r"(?:^|\s)(?:-u|--user)\s+(?:" + _QUOTED + r"|(\S+))")
_MAX_TIME_RE = re.compile(r"""(?:^|\s)(?:-m|--max-time)\s+['"]?(\d+(?:\.\d+)?)""")
_URL_RE = re.compile(r"""'(https?://[^']+)'|"(https?://[^"]+)"|(?<![\w'"=])(https?://[^\s'"]+)""")


def _unquote(single: str | None, double: str | None) -> str:
    if single is not None:
        return single
    # Inside double quotes the shell only honours these escapes
    return re.sub(r'\\([\\"$`])', r"\1", double or "")


def _normalize(command: str) -> str:
    command = command.strip()
    if command.startswith("$"):
        command = command[1:].strip()
    # Join line continuations
    return re.sub(r"\\\s*\n", " ", command)


def _blank(text: str, spans: list[tuple[int, int]]) -> str:
    chars = list(text)
    for start, end in spans:
        chars[start:end] = " " * (end - start)
    return "".join(chars)


def parse_curl(command: str) -> dict[str, Any]:
    """Extract method, URL, headers and body from a curl command line.

    Never raises for missing parts: no URL yields ``""``, no ``-X`` yields GET.
    Each option is matched against the command with previously consumed
    arguments blanked out, so flags or URLs quoted inside a header or body
    are not picked up.
    """
    scan = _normalize(command)

    headers: dict[str, str] = {}
    consumed: list[tuple[int, int]] = []
    for match in _HEADER_RE.finditer(scan):
        consumed.append(match.span())
        header = _unquote(match.group(1), match.group(2))
        if ":" in header:
            key, value = header.split(":", 1)
            headers[key.strip()] = value.strip()
    scan = _blank(scan, consumed)

    body: str | None = None
    body_type = BodyType.NONE
    data_matches = list(_DATA_RE.finditer(scan))
    if data_matches:
        first = data_matches[0]
        body = first.group(3) or _unquote(first.group(1), first.group(2))
        body_type = BodyType.RAW
    scan = _blank(scan, [m.span() for m in data_matches])

    user_match = _USER_RE.search(scan)
    if user_match:
        if not any(k.lower() == "authorization" for k in headers):
            credentials = user_match.group(3) or _unquote(user_match.group(1), user_match.group(2))
            if ":" not in credentials:
                credentials += ":"
            token = base64.b64encode(credentials.encode()).decode()
            headers["Authorization"] = f"Basic {token}"
        scan = _blank(scan, [user_match.span()])

    timeout_ms: int | None = None
    max_time_match = _MAX_TIME_RE.search(scan)
    if max_time_match:
        timeout_ms = int(float(max_time_match.group(1)) * 1000)

    method_match = _METHOD_RE.search(scan)
    method = method_match.group(1).upper() if method_match else "GET"

    url = ""
    url_match = _URL_RE.search(scan)
    if url_match:
        url = next(g for g in url_match.groups() if g)

    return {
        "method": method,
        "explicit_method": method_match is not None,
        "url": url,
        "headers": headers,
        "body": body,
        "body_type": body_type,
        "timeout_ms": timeout_ms,
    }


def plan_curl_import(store: CollectionStore, workspace_id: str, command: str) -> ImportPlan:
    parsed = parse_curl(command)
    collection = store.create_collection(CollectionCreate(
        workspace_id=workspace_id,
        name=CURL_COLLECTION_NAME,
        description="Collection created from curl command import",
    ))
    return ImportPlan(
        collection=collection,
        source_format=SourceFormat.CURL,
        source_label="curl command",
        outcomes=_curl_outcomes(store, collection.id, parsed),
    )


def _curl_outcomes(store: CollectionStore, collection_id: str, parsed: dict[str, Any]) -> Iterator[ItemOutcome]:
    url = parsed["url"]
    name = f"{parsed['method']} {url}"[:200] if url else CURL_COLLECTION_NAME

    def convert():
        warnings = []
        if parsed["body"] is not None and not parsed["explicit_method"]:
            warnings.append(warning(
                ImportWarningKind.FORMAT_ISSUE,
                "Request has a body but no -X option; imported as GET",
                item_name=name,
            ))
        if not url:
            warnings.append(warning(
                ImportWarningKind.FORMAT_ISSUE,
                "No http(s) URL found in curl command",
                item_name=name,
            ))
        fields: dict[str, Any] = {}
        if parsed["timeout_ms"] is not None:
            fields["timeout_ms"] = parsed["timeout_ms"]
        store.create_request(RequestCreate(
            collection_id=collection_id,
            name=name,
            method=parsed["method"],
            url=url,
            headers=parsed["headers"],
            body=parsed["body"],
            body_type=parsed["body_type"],
            **fields,
        ))
        return warnings

    yield isolate(name, convert, f"Failed to convert curl command: {name}")


# ────────────────────────────────────────────────────────────
# Export
# ────────────────────────────────────────────────────────────

def _escape_double_quote(s: str) -> str:
    return s.replace("\\", "\\\\").replace('"', '\\"')


def generate_curl(request: Request) -> str:
    """Render one stored request as a single-line curl command."""
    parts = [f"curl -X {request.method}"]
    for key, value in (request.headers or {}).items():
        parts.append(f'-H "{_escape_double_quote(f"{key}: {value}")}"')
    if request.body:
        escaped_body = request.body.replace("'", "'\\''")
        parts.append(f"--data '{escaped_body}'")
    parts.append(f'"{_escape_double_quote(request.url)}"')
    return " ".join(parts)


def export_curl_block(request: Request) -> str:
    return f"# {request.name}\n{generate_curl(request)}"


def export_to_curl(requests: list[Request]) -> tuple[str, list[ExportErrorEntry]]:
    """Export requests as ``# name`` / ``curl ...`` blocks joined by newlines."""
    blocks: list[str] = []
    errors: list[ExportErrorEntry] = []
    for request in requests:
        try:
            blocks.append(export_curl_block(request))
        except Exception as exc:
            errors.append(ExportErrorEntry(
                kind=ExportErrorKind.CONVERSION,
                message=f"Failed to export request: {request.name}",
                details=describe_exception(exc),
                item_name=request.name,
            ))
    return "\n".join(blocks), errors
