"""
OpenAPI 3.x import: one request per (path, method) operation.
"""
import json
from functools import partial
from itertools import chain, count
from typing import Any, Iterator

from postgirl.config import settings
from postgirl.models.request import BodyType
from postgirl.schemas.collection import CollectionCreate, RequestCreate
from postgirl.schemas.import_export import ImportErrorKind, ImportWarningEntry, ImportWarningKind, SourceFormat
from postgirl.services.collection_store import CollectionStore
from postgirl.services.import_export.errors import DocumentParseError
from postgirl.services.import_export.examples import resolve_ref, synthesize
from postgirl.services.import_export.tally import ImportPlan, ItemOutcome, encode_form_pairs, isolate, warning

HTTP_METHODS = ("get", "post", "put", "patch", "delete", "head", "options")


def is_valid_openapi_document(data: Any) -> bool:
    return (
        isinstance(data, dict)
        and isinstance(data.get("openapi"), str)
        and isinstance(data.get("info"), dict)
        and isinstance(data["info"].get("title"), str)
        and isinstance(data.get("paths"), dict)
    )


def _deref(document: dict, node: Any) -> Any:
    if isinstance(node, dict) and isinstance(node.get("$ref"), str):
        return resolve_ref(document, node["$ref"])
    return node


def _param_text(value: Any) -> str:
    return value if isinstance(value, str) else json.dumps(value)


def _base_url(document: dict) -> str:
    servers = document.get("servers")
    if isinstance(servers, list) and servers and isinstance(servers[0], dict):
        url = servers[0].get("url")
        if isinstance(url, str) and url:
            return url.rstrip("/")
    return settings.OPENAPI_DEFAULT_SERVER_URL.rstrip("/")


def _parameters(document: dict, path_item: dict, operation: dict) -> list[dict]:
    """Path-level parameters overridden by operation-level ones with the same name and location."""
    merged: dict[tuple[Any, Any], dict] = {}
    for source in (path_item.get("parameters") or [], operation.get("parameters") or []):
        for param in source:
            param = _deref(document, param)
            if isinstance(param, dict) and param.get("name"):
                merged[(param.get("name"), param.get("in"))] = param
    return list(merged.values())


def _operation_name(method: str, path: str, operation: Any) -> str:
    if isinstance(operation, dict):
        name = operation.get("summary") or operation.get("operationId")
        if name:
            return str(name)
    return f"{method.upper()} {path}"


def _request_body(document: dict, operation: dict) -> tuple[dict[str, str], str | None, BodyType]:
    request_body = _deref(document, operation.get("requestBody")) or {}
    content = request_body.get("content") if isinstance(request_body, dict) else None
    if not isinstance(content, dict) or not content:
        return {}, None, BodyType.NONE

    # First declared media type wins
    content_type = next(iter(content))
    media = content[content_type] or {}
    if "example" in media:
        example = media["example"]
    elif media.get("schema") is not None:
        example = synthesize(media["schema"], document)
    else:
        example = None

    headers = {"Content-Type": content_type}
    if "json" in content_type:
        body = json.dumps(example, indent=2) if example is not None else ""
        return headers, body, BodyType.RAW

    if isinstance(example, dict):
        body = encode_form_pairs((k, _param_text(v)) for k, v in example.items())
    else:
        body = "" if example is None else _param_text(example)
    return headers, body, BodyType.FORM


def _import_operation(
    store: CollectionStore,
    collection_id: str,
    document: dict,
    base_url: str,
    path: str,
    path_item: dict,
    method: str,
    operation: Any,
    order_index: int,
) -> list[ImportWarningEntry]:
    if not isinstance(operation, dict):
        raise TypeError(f"operation must be an object, got {type(operation).__name__}")

    headers: dict[str, str] = {}
    query: list[tuple[str, str]] = []
    for param in _parameters(document, path_item, operation):
        schema = param.get("schema")
        default = schema.get("default") if isinstance(schema, dict) else None
        if default is None:
            continue
        if param.get("in") == "header":
            headers[param["name"]] = _param_text(default)
        elif param.get("in") == "query":
            query.append((param["name"], _param_text(default)))

    url = f"{base_url}{path}"
    if query:
        url += ("&" if "?" in url else "?") + encode_form_pairs(query)

    body_headers, body, body_type = _request_body(document, operation)
    headers.update(body_headers)

    store.create_request(RequestCreate(
        collection_id=collection_id,
        name=_operation_name(method, path, operation)[:200],
        description=operation.get("description") or None,
        method=method,
        url=url,
        headers=headers,
        body=body,
        body_type=body_type,
        order_index=order_index,
    ))
    return []


def _operation_outcomes(store: CollectionStore, collection_id: str, document: dict, base_url: str) -> Iterator[ItemOutcome]:
    order = count()
    for path, path_item in document["paths"].items():
        if not isinstance(path_item, dict):
            yield ItemOutcome.failed(
                str(path),
                ImportErrorKind.CONVERSION,
                f"Failed to convert path: {path}",
                "Path item is not an object",
            )
            continue

        for method in HTTP_METHODS:
            if method not in path_item:
                continue
            operation = path_item[method]
            if not operation and not isinstance(operation, dict):
                continue
            name = _operation_name(method, path, operation)
            action = partial(
                _import_operation,
                store, collection_id, document, base_url, path, path_item, method, operation, next(order),
            )
            yield isolate(name, action, f"Failed to convert operation: {method.upper()} {path}")


def _document_notices(document: dict) -> Iterator[ItemOutcome]:
    servers = document.get("servers")
    if isinstance(servers, list) and len(servers) > 1:
        yield ItemOutcome.notice(warning(
            ImportWarningKind.FORMAT_ISSUE,
            f"Document declares {len(servers)} servers; only the first is used",
        ))
    components = document.get("components")
    if isinstance(components, dict) and components.get("securitySchemes"):
        yield ItemOutcome.notice(warning(
            ImportWarningKind.UNSUPPORTED_FEATURE,
            "Security schemes are not imported",
            details=", ".join(map(str, components["securitySchemes"])),
        ))


def plan_openapi_import(store: CollectionStore, workspace_id: str, data: dict) -> ImportPlan:
    if not is_valid_openapi_document(data):
        raise DocumentParseError(
            "Invalid OpenAPI specification format",
            details="Expected 'openapi' (string), 'info.title' (string) and 'paths' (object)",
        )

    info = data["info"]
    collection = store.create_collection(CollectionCreate(
        workspace_id=workspace_id,
        name=info["title"][:200] or "Imported API",
        description=info.get("description") or None,
    ))
    return ImportPlan(
        collection=collection,
        source_format=SourceFormat.OPENAPI,
        source_label=f"OpenAPI {data['openapi']}",
        source_version=data["openapi"],
        original_id=info["title"],
        outcomes=chain(_document_notices(data), _operation_outcomes(store, collection.id, data, _base_url(data))),
    )
