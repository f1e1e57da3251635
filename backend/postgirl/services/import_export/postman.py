"""
Postman Collection v2.1 import and export.

Import flattens the folder tree into a single collection. Nodes are parsed into
``PostmanLeaf`` / ``PostmanFolder`` views one at a time, so a malformed item is
reported on its own and its siblings still import.
"""
import json
import re
import uuid
from functools import partial
from itertools import chain, count
from typing import Any, Iterator
from urllib.parse import parse_qsl, urlparse

from pydantic import BaseModel, ConfigDict

from postgirl.config import settings
from postgirl.models.collection import Collection
from postgirl.models.request import BodyType, Request
from postgirl.schemas.collection import CollectionCreate, RequestCreate
from postgirl.schemas.import_export import (
    ExportErrorEntry,
    ExportErrorKind,
    ImportErrorKind,
    ImportWarningEntry,
    ImportWarningKind,
    SourceFormat,
)
from postgirl.services.collection_store import CollectionStore
from postgirl.services.import_export.errors import DocumentParseError, DocumentValidationError
from postgirl.services.import_export.tally import (
    ImportPlan,
    ItemOutcome,
    describe_exception,
    encode_form_pairs,
    isolate,
    warning,
)

POSTMAN_SCHEMA_URL = "https://schema.getpostman.com/json/collection/v2.1.0/collection.json"

_SCHEMA_VERSION_RE = re.compile(r"v(\d+\.\d+)(?:\.\d+)?")


# ────────────────────────────────────────────────────────────
# Node views
# ────────────────────────────────────────────────────────────

class _View(BaseModel):
    model_config = ConfigDict(extra="allow", frozen=True)


class PostmanKeyValue(_View):
    key: str = ""
    value: Any = ""
    disabled: bool = False
    type: str | None = None


class PostmanUrl(_View):
    raw: str = ""


class PostmanBody(_View):
    mode: str | None = None
    raw: str | None = None
    urlencoded: list[PostmanKeyValue] = []
    formdata: list[PostmanKeyValue] = []


class PostmanRequest(_View):
    method: str | None = None
    url: PostmanUrl | str | None = None
    header: list[PostmanKeyValue] = []
    body: PostmanBody | None = None
    auth: dict | None = None
    description: str | dict | None = None


class PostmanLeaf(_View):
    name: str = ""
    description: str | dict | None = None
    request: PostmanRequest | str
    event: list[dict] = []


class PostmanFolder(_View):
    name: str = ""
    item: list[Any]
    auth: dict | None = None
    event: list[dict] = []


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def _description(value: Any) -> str | None:
    if isinstance(value, dict):
        value = value.get("content")
    return value if isinstance(value, str) and value else None


def _node_name(raw: Any, fallback: str) -> str:
    if isinstance(raw, dict) and raw.get("name"):
        return str(raw["name"])
    return fallback


def _has_auth(auth: Any) -> bool:
    return isinstance(auth, dict) and auth.get("type") not in (None, "noauth")


def _script_events(events: Any) -> list[str]:
    if not isinstance(events, list):
        return []
    return [e.get("listen", "") for e in events if isinstance(e, dict) and e.get("script")]


# ────────────────────────────────────────────────────────────
# Import
# ────────────────────────────────────────────────────────────

def _convert_body(body: PostmanBody | None, item_name: str) -> tuple[str | None, BodyType, list[ImportWarningEntry]]:
    if body is None:
        return None, BodyType.NONE, []

    if body.mode == "raw":
        return body.raw or "", BodyType.RAW, []

    if body.mode == "urlencoded":
        pairs = ((p.key, p.value) for p in body.urlencoded if not p.disabled)
        return encode_form_pairs(pairs), BodyType.FORM, []

    if body.mode == "formdata":
        enabled = [p for p in body.formdata if not p.disabled]
        files = [p.key for p in enabled if p.type == "file"]
        encoded = encode_form_pairs((p.key, p.value) for p in enabled if p.type != "file")
        if files:
            notice = warning(
                ImportWarningKind.DATA_LOSS,
                "File fields are not supported and were dropped from the form-data body",
                details=", ".join(files),
                item_name=item_name,
            )
        else:
            notice = warning(
                ImportWarningKind.UNSUPPORTED_FEATURE,
                "Form-data body imported as a url-encoded form; file fields are not supported",
                item_name=item_name,
            )
        return encoded, BodyType.FORM, [notice]

    warnings = []
    if body.mode:
        warnings.append(warning(
            ImportWarningKind.UNSUPPORTED_FEATURE,
            f"Body mode '{body.mode}' is not supported; body left empty",
            item_name=item_name,
        ))
    return "", BodyType.RAW, warnings


def _import_leaf(store: CollectionStore, collection_id: str, raw: dict, order_index: int) -> list[ImportWarningEntry]:
    leaf = PostmanLeaf.model_validate(raw)
    name = leaf.name or "Untitled request"
    warnings: list[ImportWarningEntry] = []

    if isinstance(leaf.request, str):
        # v2.1 allows a bare URL string as the request
        method, url, headers, description = "GET", leaf.request, {}, _description(leaf.description)
        body, body_type = None, BodyType.NONE
    else:
        req = leaf.request
        method = req.method or "GET"
        if isinstance(req.url, PostmanUrl):
            url = req.url.raw
        else:
            url = req.url or ""
        headers = {h.key: _text(h.value) for h in req.header if h.key and not h.disabled}
        body, body_type, body_warnings = _convert_body(req.body, name)
        warnings.extend(body_warnings)
        description = _description(req.description) or _description(leaf.description)
        if _has_auth(req.auth):
            warnings.append(warning(
                ImportWarningKind.UNSUPPORTED_FEATURE,
                f"Auth type '{req.auth.get('type')}' is not imported",
                item_name=name,
            ))

    scripts = _script_events(leaf.event)
    if scripts:
        warnings.append(warning(
            ImportWarningKind.UNSUPPORTED_FEATURE,
            "Request scripts are not imported",
            details=", ".join(scripts),
            item_name=name,
        ))

    store.create_request(RequestCreate(
        collection_id=collection_id,
        name=name[:200],
        description=description,
        method=method,
        url=url,
        headers=headers,
        body=body,
        body_type=body_type,
        order_index=order_index,
    ))
    return warnings


def _folder_outcome(raw: dict, name: str) -> tuple[ItemOutcome, list[Any]]:
    try:
        folder = PostmanFolder.model_validate(raw)
    except Exception as exc:
        message = f"Failed to process folder: {name}"
        return ItemOutcome.failed(name, ImportErrorKind.CONVERSION, message, describe_exception(exc)), []

    warnings = []
    if _has_auth(folder.auth):
        warnings.append(warning(
            ImportWarningKind.UNSUPPORTED_FEATURE,
            f"Folder auth type '{folder.auth.get('type')}' is not imported",
            item_name=name,
        ))
    if _script_events(folder.event):
        warnings.append(warning(
            ImportWarningKind.UNSUPPORTED_FEATURE,
            "Folder scripts are not imported",
            item_name=name,
        ))
    return ItemOutcome.folder_seen(name, warnings), folder.item


def walk_items(store: CollectionStore, collection_id: str, items: list[Any]) -> Iterator[ItemOutcome]:
    """Depth-first, source-ordered walk over a Postman item tree using an explicit stack."""
    stack: list[tuple[Any, int]] = [(node, 0) for node in reversed(items)]
    order = count()

    while stack:
        raw, depth = stack.pop()

        if isinstance(raw, dict) and "request" in raw:
            name = _node_name(raw, "Untitled request")
            action = partial(_import_leaf, store, collection_id, raw, next(order))
            yield isolate(name, action, f"Failed to process item: {name}")

        elif isinstance(raw, dict) and isinstance(raw.get("item"), list):
            name = _node_name(raw, "Folder")
            if depth >= settings.MAX_IMPORT_DEPTH:
                yield ItemOutcome.failed(
                    name,
                    ImportErrorKind.VALIDATION,
                    f"Folder nesting exceeds {settings.MAX_IMPORT_DEPTH} levels: {name}",
                    "The folder and everything inside it were skipped",
                )
                continue
            outcome, children = _folder_outcome(raw, name)
            yield outcome
            stack.extend((child, depth + 1) for child in reversed(children))

        else:
            yield ItemOutcome.notice(warning(
                ImportWarningKind.FORMAT_ISSUE,
                "Item is neither a request nor a folder and was skipped",
                item_name=_node_name(raw, "Unnamed item"),
            ))


def _collection_notices(data: dict) -> list[ItemOutcome]:
    """Document-level warnings, computed before anything is persisted."""
    notices: list[ItemOutcome] = []

    variable = data.get("variable")
    if isinstance(variable, list):
        keys = [str(v["key"]) for v in variable if isinstance(v, dict) and v.get("key")]
        if keys:
            notices.append(ItemOutcome.notice(warning(
                ImportWarningKind.DATA_LOSS,
                "Collection variables are not imported",
                details=", ".join(keys),
            )))
    elif variable is not None:
        notices.append(ItemOutcome.notice(warning(
            ImportWarningKind.FORMAT_ISSUE,
            "Collection 'variable' is not an array and was ignored",
        )))

    auth = data.get("auth")
    if _has_auth(auth):
        notices.append(ItemOutcome.notice(warning(
            ImportWarningKind.UNSUPPORTED_FEATURE,
            f"Collection auth type '{auth.get('type')}' is not imported",
        )))
    elif auth is not None and not isinstance(auth, dict):
        notices.append(ItemOutcome.notice(warning(
            ImportWarningKind.FORMAT_ISSUE,
            "Collection 'auth' is not an object and was ignored",
        )))

    if _script_events(data.get("event")):
        notices.append(ItemOutcome.notice(warning(
            ImportWarningKind.UNSUPPORTED_FEATURE,
            "Collection-level scripts are not imported",
        )))
    return notices


def is_valid_postman_collection(data: Any) -> bool:
    return (
        isinstance(data, dict)
        and isinstance(data.get("info"), dict)
        and isinstance(data["info"].get("name"), str)
        and isinstance(data.get("item"), list)
    )


def plan_postman_import(store: CollectionStore, workspace_id: str, data: dict) -> ImportPlan:
    if not is_valid_postman_collection(data):
        details = "Expected an 'info' object with a 'name' and an 'item' array"
        if isinstance(data, dict) and isinstance(data.get("info"), dict):
            # Recognisably Postman, but a required field is missing or mistyped
            raise DocumentValidationError("Invalid Postman collection format", details=details)
        raise DocumentParseError("Invalid Postman collection format", details=details)

    info = data["info"]
    schema = str(info.get("schema", ""))
    version_match = _SCHEMA_VERSION_RE.search(schema)
    version = version_match.group(1) if version_match else "2.1"

    notices = _collection_notices(data)
    original_id = info.get("_postman_id")

    collection = store.create_collection(CollectionCreate(
        workspace_id=workspace_id,
        name=info["name"][:200] or "Imported Collection",
        description=_description(info.get("description")),
    ))
    return ImportPlan(
        collection=collection,
        source_format=SourceFormat.POSTMAN,
        source_label=f"Postman Collection v{version}",
        source_version=version,
        original_id=original_id if isinstance(original_id, str) else None,
        outcomes=chain(notices, walk_items(store, collection.id, data["item"])),
    )


# ────────────────────────────────────────────────────────────
# Export
# ────────────────────────────────────────────────────────────

def _build_url(url: str) -> dict[str, Any]:
    postman_url: dict[str, Any] = {"raw": url}

    # Split the URL into components so Postman's UI can populate its fields
    parsed = urlparse(url)
    if parsed.scheme and parsed.hostname:
        postman_url["protocol"] = parsed.scheme
        postman_url["host"] = parsed.hostname.split(".")
        if parsed.port:
            postman_url["port"] = str(parsed.port)
    if parsed.path:
        postman_url["path"] = [p for p in parsed.path.split("/") if p]
    if parsed.query:
        postman_url["query"] = [
            {"key": k, "value": v} for k, v in parse_qsl(parsed.query, keep_blank_values=True)
        ]
    return postman_url


def build_postman_item(request: Request) -> dict[str, Any]:
    postman_request: dict[str, Any] = {
        "method": request.method,
        "header": [{"key": k, "value": _text(v)} for k, v in (request.headers or {}).items()],
        "url": _build_url(request.url or ""),
    }
    if request.description:
        postman_request["description"] = request.description

    if request.body:
        body: dict[str, Any] = {"mode": "raw", "raw": request.body}
        try:
            json.loads(request.body)
        except ValueError:
            pass
        else:
            body["options"] = {"raw": {"language": "json"}}
        postman_request["body"] = body

    return {"name": request.name, "request": postman_request}


def export_to_postman(
    collection: Collection,
    requests: list[Request],
) -> tuple[dict[str, Any], list[ExportErrorEntry]]:
    """Export a collection as a flat Postman Collection v2.1 document.

    Requests that cannot be converted are left out and reported as errors.
    """
    items: list[dict[str, Any]] = []
    errors: list[ExportErrorEntry] = []
    for request in requests:
        try:
            items.append(build_postman_item(request))
        except Exception as exc:
            errors.append(ExportErrorEntry(
                kind=ExportErrorKind.CONVERSION,
                message=f"Failed to export request: {request.name}",
                details=describe_exception(exc),
                item_name=request.name,
            ))

    document = {
        "info": {
            "_postman_id": str(uuid.uuid4()),
            "name": collection.name,
            "description": collection.description or "",
            "schema": POSTMAN_SCHEMA_URL,
        },
        "item": items,
    }
    return document, errors
