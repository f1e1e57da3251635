"""
Insomnia export (v4 resource array) import.
"""
from functools import partial
from itertools import chain
from typing import Any, Iterator

from pydantic import BaseModel, ConfigDict, Field

from postgirl.models.request import BodyType
from postgirl.schemas.collection import CollectionCreate, RequestCreate
from postgirl.schemas.import_export import ImportWarningEntry, ImportWarningKind, SourceFormat
from postgirl.services.collection_store import CollectionStore
from postgirl.services.import_export.errors import DocumentParseError
from postgirl.services.import_export.tally import ImportPlan, ItemOutcome, encode_form_pairs, isolate, warning


class _View(BaseModel):
    model_config = ConfigDict(extra="allow", frozen=True, populate_by_name=True)


class InsomniaPair(_View):
    name: str = ""
    value: Any = ""
    disabled: bool = False
    type: str | None = None
    file_name: str | None = Field(default=None, alias="fileName")


class InsomniaBody(_View):
    mime_type: str | None = Field(default=None, alias="mimeType")
    text: str | None = None
    params: list[InsomniaPair] | None = None
    file_name: str | None = Field(default=None, alias="fileName")


class InsomniaRequest(_View):
    id: str | None = Field(default=None, alias="_id")
    name: str = ""
    description: str | None = None
    method: str | None = None
    url: str | None = None
    headers: list[InsomniaPair] = []
    parameters: list[InsomniaPair] = []
    body: InsomniaBody | None = None
    authentication: dict | None = None


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def _append_query(url: str, query: str) -> str:
    if not query:
        return url
    return f"{url}{'&' if '?' in url else '?'}{query}"


def _convert_body(body: InsomniaBody | None, item_name: str) -> tuple[str | None, BodyType, list[ImportWarningEntry]]:
    if body is None:
        return None, BodyType.NONE, []

    if body.text:
        return body.text, BodyType.RAW, []

    if body.params:
        files = [p.name for p in body.params if p.type == "file"]
        pairs = ((p.name, p.value) for p in body.params if not p.disabled and p.type != "file")
        warnings = []
        if files:
            warnings.append(warning(
                ImportWarningKind.DATA_LOSS,
                "File parameters are not supported and were dropped from the form body",
                details=", ".join(files),
                item_name=item_name,
            ))
        return encode_form_pairs(pairs), BodyType.FORM, warnings

    if body.text is not None:
        # Empty editor body: nothing to import and nothing lost
        return None, BodyType.NONE, []

    if body.mime_type or body.file_name:
        details = f"mimeType={body.mime_type}" if body.mime_type else None
        if body.file_name:
            details = f"fileName={body.file_name}"
        return None, BodyType.NONE, [warning(
            ImportWarningKind.DATA_LOSS,
            "Body encoding is not supported; body was not imported",
            details=details,
            item_name=item_name,
        )]

    return None, BodyType.NONE, []


def _import_request(store: CollectionStore, collection_id: str, raw: dict, order_index: int) -> list[ImportWarningEntry]:
    resource = InsomniaRequest.model_validate(raw)
    name = resource.name or "Untitled request"

    headers = {h.name: _text(h.value) for h in resource.headers if h.name and not h.disabled}
    query = encode_form_pairs((p.name, p.value) for p in resource.parameters if p.name and not p.disabled)
    body, body_type, warnings = _convert_body(resource.body, name)

    auth = resource.authentication or {}
    if auth.get("type") and not auth.get("disabled"):
        warnings.append(warning(
            ImportWarningKind.UNSUPPORTED_FEATURE,
            f"Authentication type '{auth['type']}' is not imported",
            item_name=name,
        ))

    store.create_request(RequestCreate(
        collection_id=collection_id,
        name=name[:200],
        description=resource.description or None,
        method=resource.method or "GET",
        url=_append_query(resource.url or "", query),
        headers=headers,
        body=body,
        body_type=body_type,
        order_index=order_index,
    ))
    return warnings


def _request_outcomes(store: CollectionStore, collection_id: str, requests: list[dict]) -> Iterator[ItemOutcome]:
    for order_index, raw in enumerate(requests):
        name = str(raw.get("name") or "Untitled request")
        action = partial(_import_request, store, collection_id, raw, order_index)
        yield isolate(name, action, f"Failed to convert request: {name}")


def plan_insomnia_import(store: CollectionStore, workspace_id: str, data: dict) -> ImportPlan:
    resources = data.get("resources")
    if not isinstance(resources, list):
        raise DocumentParseError("Invalid Insomnia export format", details="'resources' must be an array")

    resources = [r for r in resources if isinstance(r, dict)]
    workspaces = [r for r in resources if r.get("_type") == "workspace"]
    requests = [r for r in resources if r.get("_type") == "request"]
    request_groups = [r for r in resources if r.get("_type") == "request_group"]
    environments = [r for r in resources if r.get("_type") == "environment"]

    if not workspaces:
        raise DocumentParseError("No workspace found in Insomnia export")
    workspace = workspaces[0]

    notices: list[ItemOutcome] = []
    if len(workspaces) > 1:
        notices.append(ItemOutcome.notice(warning(
            ImportWarningKind.FORMAT_ISSUE,
            f"Export contains {len(workspaces)} workspaces; only '{workspace.get('name', '')}' was used as the collection",
        )))
    for env in environments:
        notices.append(ItemOutcome.notice(warning(
            ImportWarningKind.UNSUPPORTED_FEATURE,
            "Environments are not imported",
            item_name=str(env.get("name") or env.get("_id") or "environment"),
        )))
    # Folders are flattened, so each group only counts towards the folder total
    notices.extend(ItemOutcome.folder_seen(str(g.get("name") or "Folder")) for g in request_groups)

    collection = store.create_collection(CollectionCreate(
        workspace_id=workspace_id,
        name=str(workspace.get("name") or "Imported from Insomnia")[:200],
        description=workspace.get("description") or None,
    ))
    export_format = data.get("__export_format")
    return ImportPlan(
        collection=collection,
        source_format=SourceFormat.INSOMNIA,
        source_label=f"Insomnia v{export_format}" if export_format is not None else "Insomnia",
        source_version=str(export_format) if export_format is not None else None,
        original_id=workspace.get("_id"),
        outcomes=chain(notices, _request_outcomes(store, collection.id, requests)),
    )
