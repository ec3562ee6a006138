"""Domain models for a single bottle scan."""

from dataclasses import dataclass, field
from enum import Enum
from uuid import UUID

from supplement_scanner.domain.library import LibraryEntry
from supplement_scanner.domain.products import ParsedDosage, ProductProfile
from supplement_scanner.domain.recognition import ExtractedLabel, IntakeSuggestions


class ScanState(str, Enum):
    """States of the scan-to-stack workflow."""

    CAPTURE_FRONT = "capture-front"
    CAPTURE_BACK = "capture-back"
    PREVIEW = "preview"
    ANALYZING = "analyzing"
    QUICK_MATCH_RESOLVED = "quick-match-resolved"
    ENRICHING = "enriching"
    PRESENTING = "presenting"
    COMMITTED = "commit"
    CANCELLED = "cancel"


class ScanEvent(str, Enum):
    """Events that drive the scan workflow."""

    FRONT_CAPTURED = "front_captured"
    FRONT_RETAKEN = "front_retaken"
    BACK_CAPTURED = "back_captured"
    BACK_SKIPPED = "back_skipped"
    CAPTURE_FAILED = "capture_failed"
    RETAKE_FRONT = "retake_front"
    RETAKE_BACK = "retake_back"
    ANALYZE = "analyze"
    ANALYSIS_FAILED = "analysis_failed"
    QUICK_MATCHED = "quick_matched"
    PRODUCT_RECOGNIZED = "product_recognized"
    LEDGER_RECORDED = "ledger_recorded"
    ENRICHMENT_SETTLED = "enrichment_settled"
    COMMITTED = "committed"
    CANCEL = "cancel"


TERMINAL_STATES = frozenset({ScanState.COMMITTED, ScanState.CANCELLED})


@dataclass(frozen=True)
class ScanResult:
    """Outcome of a successful analysis, ready for presentation."""

    product_id: UUID
    quick_match: bool
    label: ExtractedLabel
    dosage: ParsedDosage
    suggestions: IntakeSuggestions
    profile: ProductProfile
    library_entry: LibraryEntry

    @property
    def low_confidence(self) -> bool:
        return self.dosage.low_confidence


@dataclass
class ScanSession:
    """Ephemeral state for one open scan dialog. Never persisted."""

    user_id: UUID
    state: ScanState = ScanState.CAPTURE_FRONT
    front_image: bytes | None = None
    back_image: bytes | None = None
    manual_barcode: str | None = None
    result: ScanResult | None = None
    last_error: str | None = None
    history: list[ScanState] = field(default_factory=list)

    @property
    def product_id(self) -> UUID | None:
        return self.result.product_id if self.result else None

    @property
    def quick_match(self) -> bool:
        return bool(self.result and self.result.quick_match)

    def discard(self) -> None:
        """Drop everything captured or resolved in this session."""
        self.front_image = None
        self.back_image = None
        self.manual_barcode = None
        self.result = None
