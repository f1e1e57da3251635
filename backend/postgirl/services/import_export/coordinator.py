"""
Single entry point for imports and exports.

A coordinator is built per call around a CollectionStore. It classifies the
input, hands it to the matching converter, folds the per-item outcomes and
always answers with an ImportResult / ExportResult rather than raising.
"""
import json
import logging
import time
from functools import partial
from typing import Callable

from postgirl.models.collection import Collection
from postgirl.schemas.import_export import (
    ExportErrorEntry,
    ExportErrorKind,
    ExportResult,
    ExportSummary,
    ImportedCollectionSummary,
    ImportErrorEntry,
    ImportErrorKind,
    ImportResult,
    ImportSummary,
    SourceFormat,
    TargetFormat,
)
from postgirl.services.collection_store import CollectionStore
from postgirl.services.import_export.classifier import classify, load_document
from postgirl.services.import_export.curl import export_to_curl, plan_curl_import
from postgirl.services.import_export.errors import ConversionError
from postgirl.services.import_export.insomnia import plan_insomnia_import
from postgirl.services.import_export.openapi import plan_openapi_import
from postgirl.services.import_export.postman import export_to_postman, plan_postman_import
from postgirl.services.import_export.tally import ImportPlan, describe_exception, fold

logger = logging.getLogger(__name__)

_SOURCE_LABELS = {
    SourceFormat.POSTMAN: "Postman Collection v2.1",
    SourceFormat.INSOMNIA: "Insomnia",
    SourceFormat.OPENAPI: "OpenAPI",
    SourceFormat.CURL: "curl command",
}

_FAILURE_MESSAGES = {
    SourceFormat.POSTMAN: "Failed to import Postman collection",
    SourceFormat.INSOMNIA: "Failed to import Insomnia workspace",
    SourceFormat.OPENAPI: "Failed to import OpenAPI specification",
    SourceFormat.CURL: "Failed to import curl command",
}

_TARGET_LABELS = {
    TargetFormat.POSTMAN: "Postman Collection v2.1",
    TargetFormat.CURL: "curl Commands",
    TargetFormat.OPENAPI: "OpenAPI 3.0",
    TargetFormat.INSOMNIA: "Insomnia",
}

_PLANNERS = {
    SourceFormat.POSTMAN: plan_postman_import,
    SourceFormat.INSOMNIA: plan_insomnia_import,
    SourceFormat.OPENAPI: plan_openapi_import,
}


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


def _require_workspace(workspace_id: str | None) -> None:
    if not workspace_id or not str(workspace_id).strip():
        raise ValueError("workspace_id is required to import a collection")


class ConversionCoordinator:
    def __init__(self, store: CollectionStore):
        self.store = store

    # ── Import ──

    def import_collection(
        self,
        workspace_id: str,
        raw_content: str,
        source_format: SourceFormat | None = None,
    ) -> ImportResult:
        """Detect the format of ``raw_content`` (unless given) and import it."""
        _require_workspace(workspace_id)
        fmt = SourceFormat(source_format) if source_format else classify(raw_content)
        logger.info("Importing %s content (%d chars) into workspace %s", fmt.value, len(raw_content), workspace_id)

        if fmt == SourceFormat.CURL:
            return self.import_curl_command(workspace_id, raw_content)

        planner = _PLANNERS[fmt]

        def plan() -> ImportPlan:
            return planner(self.store, workspace_id, load_document(raw_content))

        return self._run(fmt, plan)

    def import_postman_collection(self, workspace_id: str, data: dict) -> ImportResult:
        _require_workspace(workspace_id)
        return self._run(SourceFormat.POSTMAN, partial(plan_postman_import, self.store, workspace_id, data))

    def import_insomnia_workspace(self, workspace_id: str, data: dict) -> ImportResult:
        _require_workspace(workspace_id)
        return self._run(SourceFormat.INSOMNIA, partial(plan_insomnia_import, self.store, workspace_id, data))

    def import_openapi_spec(self, workspace_id: str, data: dict) -> ImportResult:
        _require_workspace(workspace_id)
        return self._run(SourceFormat.OPENAPI, partial(plan_openapi_import, self.store, workspace_id, data))

    def import_curl_command(self, workspace_id: str, command: str) -> ImportResult:
        _require_workspace(workspace_id)
        return self._run(SourceFormat.CURL, partial(plan_curl_import, self.store, workspace_id, command))

    def _run(self, fmt: SourceFormat, plan: Callable[[], ImportPlan]) -> ImportResult:
        started = time.perf_counter()
        label = _SOURCE_LABELS[fmt]
        try:
            import_plan = plan()
            label = import_plan.source_label
            tally = fold(import_plan.outcomes)
        except ConversionError as exc:
            details = f"{exc.message}: {exc.details}" if exc.details else exc.message
            logger.warning("%s: %s", _FAILURE_MESSAGES[fmt], details)
            return self._failed(fmt, label, exc.kind, details, started)
        except Exception as exc:
            logger.exception("Unexpected failure while importing %s", label)
            return self._failed(fmt, label, ImportErrorKind.UNKNOWN, describe_exception(exc), started)

        collection = import_plan.collection
        summary = ImportedCollectionSummary(
            id=collection.id,
            name=collection.name,
            description=collection.description,
            request_count=tally.converted,
            folder_count=tally.folders,
            source_format=import_plan.source_format,
            original_id=import_plan.original_id,
        )
        result = ImportResult(
            success=not tally.errors,
            collections=[summary],
            environments=[],
            errors=list(tally.errors),
            warnings=list(tally.warnings),
            summary=ImportSummary(
                total_items=tally.total,
                successful_items=tally.converted,
                failed_items=tally.failed,
                warning_items=len(tally.warnings),
                duration_ms=_elapsed_ms(started),
                source_format=label,
                source_version=import_plan.source_version,
            ),
        )
        log = logger.info if result.success else logger.warning
        log(
            "Imported %s into collection %s: %d requests, %d folders, %d errors, %d warnings",
            label, collection.id, tally.converted, tally.folders, tally.failed, len(tally.warnings),
        )
        return result

    def _failed(
        self,
        fmt: SourceFormat,
        label: str,
        kind: ImportErrorKind,
        details: str,
        started: float,
    ) -> ImportResult:
        return ImportResult(
            success=False,
            errors=[ImportErrorEntry(kind=kind, message=_FAILURE_MESSAGES[fmt], details=details)],
            summary=ImportSummary(
                total_items=0,
                successful_items=0,
                failed_items=1,
                warning_items=0,
                duration_ms=_elapsed_ms(started),
                source_format=label,
            ),
        )

    # ── Export ──

    def export_collection(self, collection_id: str, target_format: TargetFormat | str) -> ExportResult:
        started = time.perf_counter()
        try:
            fmt = TargetFormat(target_format)
        except ValueError:
            return self._export_failed(
                str(target_format), ExportErrorKind.VALIDATION,
                f"Unknown export format: {target_format}", None, started,
            )
        label = _TARGET_LABELS[fmt]

        if fmt not in (TargetFormat.POSTMAN, TargetFormat.CURL):
            return self._export_failed(
                label, ExportErrorKind.VALIDATION,
                f"Export to {label} is not supported yet", None, started,
            )

        try:
            collection = self.store.get_collection(collection_id)
            if collection is None:
                return self._export_failed(
                    label, ExportErrorKind.CONVERSION,
                    f"Failed to export to {label} format", "Collection not found", started,
                )
            requests = self.store.list_requests(collection_id)
            data, size, errors = self._render(fmt, collection, requests)
        except Exception as exc:
            logger.exception("Unexpected failure while exporting collection %s", collection_id)
            return self._export_failed(
                label, ExportErrorKind.UNKNOWN,
                f"Failed to export to {label} format", describe_exception(exc), started,
            )

        logger.info(
            "Exported collection %s as %s: %d of %d requests",
            collection_id, label, len(requests) - len(errors), len(requests),
        )
        return ExportResult(
            success=not errors,
            data=data,
            errors=errors,
            summary=ExportSummary(
                total_items=len(requests),
                exported_items=len(requests) - len(errors),
                skipped_items=len(errors),
                duration_ms=_elapsed_ms(started),
                target_format=label,
                file_size=size,
            ),
        )

    def _render(self, fmt: TargetFormat, collection: Collection, requests: list) -> tuple[object, int, list[ExportErrorEntry]]:
        if fmt == TargetFormat.POSTMAN:
            document, errors = export_to_postman(collection, requests)
            return document, len(json.dumps(document, indent=2).encode("utf-8")), errors
        text, errors = export_to_curl(requests)
        return text, len(text.encode("utf-8")), errors

    def _export_failed(
        self,
        label: str,
        kind: ExportErrorKind,
        message: str,
        details: str | None,
        started: float,
    ) -> ExportResult:
        return ExportResult(
            success=False,
            errors=[ExportErrorEntry(kind=kind, message=message, details=details)],
            summary=ExportSummary(duration_ms=_elapsed_ms(started), target_format=label),
        )
