"""
Per-item outcomes and the fold that aggregates them.

Converters yield one ``ItemOutcome`` per source item, in source order, and the
coordinator reduces them with ``ConversionTally.add``. A failing item becomes
an outcome carrying an error instead of an exception, so one bad item can never
stop its siblings from being processed.
"""
import logging
from dataclasses import dataclass, field, replace
from typing import Callable, Iterable
from urllib.parse import quote

from postgirl.models.collection import Collection
from postgirl.schemas.import_export import (
    ImportErrorEntry,
    ImportErrorKind,
    ImportWarningEntry,
    ImportWarningKind,
    SourceFormat,
)

logger = logging.getLogger(__name__)

# Characters encodeURIComponent leaves alone
_FORM_SAFE = "-_.!~*'()"


def warning(
    kind: ImportWarningKind,
    message: str,
    details: str | None = None,
    item_name: str | None = None,
) -> ImportWarningEntry:
    return ImportWarningEntry(kind=kind, message=message, details=details, item_name=item_name)


def encode_form_pairs(pairs: Iterable[tuple[str, object]]) -> str:
    """URL-encode ``(key, value)`` pairs as ``k=v&k2=v2``."""
    return "&".join(
        f"{quote(str(key), safe=_FORM_SAFE)}={quote('' if value is None else str(value), safe=_FORM_SAFE)}"
        for key, value in pairs
    )


def describe_exception(exc: Exception) -> str:
    return str(exc) or exc.__class__.__name__


@dataclass(frozen=True)
class ItemOutcome:
    item_name: str | None = None
    converted: bool = False
    folder: bool = False
    error: ImportErrorEntry | None = None
    warnings: tuple[ImportWarningEntry, ...] = ()

    @classmethod
    def ok(cls, item_name: str, warnings: Iterable[ImportWarningEntry] = ()) -> "ItemOutcome":
        return cls(item_name=item_name, converted=True, warnings=tuple(warnings))

    @classmethod
    def failed(
        cls,
        item_name: str | None,
        kind: ImportErrorKind,
        message: str,
        details: str | None = None,
    ) -> "ItemOutcome":
        error = ImportErrorEntry(kind=kind, message=message, details=details, item_name=item_name)
        return cls(item_name=item_name, error=error)

    @classmethod
    def folder_seen(cls, item_name: str, warnings: Iterable[ImportWarningEntry] = ()) -> "ItemOutcome":
        return cls(item_name=item_name, folder=True, warnings=tuple(warnings))

    @classmethod
    def notice(cls, *warnings: ImportWarningEntry) -> "ItemOutcome":
        """Outcome carrying only document-level warnings."""
        return cls(warnings=warnings)


@dataclass(frozen=True)
class ConversionTally:
    converted: int = 0
    folders: int = 0
    errors: tuple[ImportErrorEntry, ...] = field(default_factory=tuple)
    warnings: tuple[ImportWarningEntry, ...] = field(default_factory=tuple)

    def add(self, outcome: ItemOutcome) -> "ConversionTally":
        return replace(
            self,
            converted=self.converted + int(outcome.converted),
            folders=self.folders + int(outcome.folder),
            errors=self.errors + ((outcome.error,) if outcome.error else ()),
            warnings=self.warnings + outcome.warnings,
        )

    @property
    def failed(self) -> int:
        return len(self.errors)

    @property
    def total(self) -> int:
        return self.converted + self.failed


@dataclass
class ImportPlan:
    """A created collection plus the lazy, source-ordered outcomes that fill it."""

    collection: Collection
    source_format: SourceFormat
    source_label: str
    outcomes: Iterable[ItemOutcome]
    source_version: str | None = None
    original_id: str | None = None


def fold(outcomes: Iterable[ItemOutcome]) -> ConversionTally:
    """Reduce outcomes into a tally.

    If producing the outcomes raises, the walk cannot resume: the tally so far
    is kept and the failure is recorded as a single ``unknown`` error.
    """
    tally = ConversionTally()
    iterator = iter(outcomes)
    while True:
        try:
            outcome = next(iterator)
        except StopIteration:
            return tally
        except Exception as exc:
            logger.exception("Conversion stopped after %d items", tally.total)
            return tally.add(ItemOutcome.failed(
                None,
                ImportErrorKind.UNKNOWN,
                "Conversion stopped unexpectedly; remaining items were not imported",
                describe_exception(exc),
            ))
        tally = tally.add(outcome)


def isolate(
    item_name: str,
    action: Callable[[], Iterable[ImportWarningEntry]],
    message: str,
) -> ItemOutcome:
    """Run one item's conversion; any exception becomes a conversion error outcome."""
    try:
        warnings = list(action())
    except Exception as exc:
        logger.warning("%s: %s", message, describe_exception(exc))
        return ItemOutcome.failed(item_name, ImportErrorKind.CONVERSION, message, describe_exception(exc))
    return ItemOutcome.ok(item_name, warnings)
