from postgirl.schemas.import_export import ImportErrorKind


class ConversionError(Exception):
    """Document-level failure that aborts a whole import."""

    kind = ImportErrorKind.UNKNOWN

    def __init__(self, message: str, details: str | None = None):
        super().__init__(message)
        self.message = message
        self.details = details


class DocumentParseError(ConversionError):
    kind = ImportErrorKind.PARSING


class DocumentValidationError(ConversionError):
    kind = ImportErrorKind.VALIDATION
