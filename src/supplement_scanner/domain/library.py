"""Domain models for the per-user supplement library."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from uuid import UUID

from supplement_scanner.domain.products import EnrichmentStatus


class LibrarySource(str, Enum):
    """How a product entered a user's library."""

    SCAN = "scan"
    PROTOCOL = "protocol"
    MANUAL = "manual"


@dataclass(frozen=True)
class LibraryEntry:
    """Represents a product a user has scanned or owns."""

    id: UUID
    user_id: UUID
    product_id: UUID
    scan_count: int
    first_scanned_at: datetime
    last_updated_at: datetime
    source: LibrarySource
    enrichment_status: EnrichmentStatus = EnrichmentStatus.NOT_ENRICHED
