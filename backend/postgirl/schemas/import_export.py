from enum import Enum as PyEnum
from typing import Any

from pydantic import BaseModel, Field


class SourceFormat(str, PyEnum):
    POSTMAN = "postman"
    INSOMNIA = "insomnia"
    OPENAPI = "openapi"
    CURL = "curl"


class TargetFormat(str, PyEnum):
    POSTMAN = "postman"
    CURL = "curl"
    OPENAPI = "openapi"
    INSOMNIA = "insomnia"


class ImportErrorKind(str, PyEnum):
    PARSING = "parsing"
    VALIDATION = "validation"
    CONVERSION = "conversion"
    UNKNOWN = "unknown"


class ImportWarningKind(str, PyEnum):
    UNSUPPORTED_FEATURE = "unsupported_feature"
    DATA_LOSS = "data_loss"
    FORMAT_ISSUE = "format_issue"


class ExportErrorKind(str, PyEnum):
    CONVERSION = "conversion"
    FILE_WRITE = "file_write"
    VALIDATION = "validation"
    UNKNOWN = "unknown"


# ── Import ──

class ImportErrorEntry(BaseModel):
    kind: ImportErrorKind
    message: str
    details: str | None = None
    item_name: str | None = None


class ImportWarningEntry(BaseModel):
    kind: ImportWarningKind
    message: str
    details: str | None = None
    item_name: str | None = None


class ImportedCollectionSummary(BaseModel):
    id: str
    name: str
    description: str | None = None
    request_count: int = 0
    folder_count: int = 0
    source_format: SourceFormat
    original_id: str | None = None


class ImportedEnvironmentSummary(BaseModel):
    id: str
    name: str
    variable_count: int = 0
    source_format: SourceFormat
    original_id: str | None = None


class ImportSummary(BaseModel):
    total_items: int = 0
    successful_items: int = 0
    failed_items: int = 0
    warning_items: int = 0
    duration_ms: int = 0
    source_format: str
    source_version: str | None = None


class ImportResult(BaseModel):
    success: bool
    collections: list[ImportedCollectionSummary] = Field(default_factory=list)
    environments: list[ImportedEnvironmentSummary] = Field(default_factory=list)
    errors: list[ImportErrorEntry] = Field(default_factory=list)
    warnings: list[ImportWarningEntry] = Field(default_factory=list)
    summary: ImportSummary


# ── Export ──

class ExportErrorEntry(BaseModel):
    kind: ExportErrorKind
    message: str
    details: str | None = None
    item_name: str | None = None


class ExportSummary(BaseModel):
    total_items: int = 0
    exported_items: int = 0
    skipped_items: int = 0
    duration_ms: int = 0
    target_format: str
    file_size: int | None = None


class ExportResult(BaseModel):
    success: bool
    data: Any = None
    errors: list[ExportErrorEntry] = Field(default_factory=list)
    summary: ExportSummary


# ── API payloads ──

class DetectFormatRequest(BaseModel):
    content: str


class DetectFormatResponse(BaseModel):
    format: SourceFormat


class ImportContentRequest(BaseModel):
    workspace_id: str
    content: str
    format: SourceFormat | None = None
