from postgirl.services.import_export.classifier import classify, load_document
from postgirl.services.import_export.coordinator import ConversionCoordinator
from postgirl.services.import_export.curl import generate_curl, parse_curl
from postgirl.services.import_export.errors import ConversionError, DocumentParseError, DocumentValidationError
from postgirl.services.import_export.examples import synthesize

__all__ = [
    "classify",
    "load_document",
    "ConversionCoordinator",
    "generate_curl",
    "parse_curl",
    "ConversionError",
    "DocumentParseError",
    "DocumentValidationError",
    "synthesize",
]
