"""Supabase implementation for the user supplement library."""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from supabase import Client

from supplement_scanner.domain.library import LibraryEntry, LibrarySource
from supplement_scanner.domain.products import EnrichmentStatus
from supplement_scanner.services.library import LibraryRepository

_UNIQUE_VIOLATION = "23505"
_INCREMENT_ATTEMPTS = 5
_ENTRY_COLUMNS = (
    "*, supplement_products(description, benefits, label_benefits, research_summary)"
)


@dataclass
class SupabaseLibraryRepository(LibraryRepository):
    """Supabase-backed repository for ``user_supplement_library``."""

    client: Client

    def get_entry(self, user_id: UUID, product_id: UUID) -> LibraryEntry | None:
        """Return the entry for a user and product, if present."""
        response = (
            self.client.table("user_supplement_library")
            .select(_ENTRY_COLUMNS)
            .eq("user_id", str(user_id))
            .eq("product_id", str(product_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _parse_entry(response.data[0])

    def create_entry(
        self,
        user_id: UUID,
        product_id: UUID,
        source: LibrarySource,
        scanned_at: datetime,
    ) -> LibraryEntry | None:
        """Insert a new entry; return None if the pair already exists."""
        try:
            response = (
                self.client.table("user_supplement_library")
                .insert(
                    {
                        "user_id": str(user_id),
                        "product_id": str(product_id),
                        "source": source.value,
                        "scan_count": 1,
                        "first_scanned_at": scanned_at.isoformat(),
                        "last_updated_at": scanned_at.isoformat(),
                    }
                )
                .execute()
            )
        except Exception as exc:
            if getattr(exc, "code", None) == _UNIQUE_VIOLATION:
                return None
            raise
        if not response.data:
            raise RuntimeError("Failed to create library entry")
        return _parse_entry(response.data[0])

    def increment_scan(self, entry_id: UUID, scanned_at: datetime) -> LibraryEntry:
        """Increment scan_count for an entry and touch last_updated_at.

        The update only applies while scan_count still holds the value read, so
        a concurrent scan forces a re-read instead of overwriting its increment.
        """
        for _ in range(_INCREMENT_ATTEMPTS):
            response = (
                self.client.table("user_supplement_library")
                .select("scan_count")
                .eq("id", str(entry_id))
                .limit(1)
                .execute()
            )
            if not response.data:
                raise RuntimeError("Library entry not found")
            current = int(response.data[0].get("scan_count") or 0)
            updated = (
                self.client.table("user_supplement_library")
                .update(
                    {
                        "scan_count": current + 1,
                        "last_updated_at": scanned_at.isoformat(),
                    }
                )
                .eq("id", str(entry_id))
                .eq("scan_count", current)
                .execute()
            )
            if updated.data:
                return _parse_entry(updated.data[0])
        raise RuntimeError("Failed to update library entry")

    def list_entries(self, user_id: UUID, limit: int) -> list[LibraryEntry]:
        """Return a user's entries, most recently updated first."""
        response = (
            self.client.table("user_supplement_library")
            .select(_ENTRY_COLUMNS)
            .eq("user_id", str(user_id))
            .order("last_updated_at", desc=True)
            .limit(limit)
            .execute()
        )
        return [_parse_entry(row) for row in response.data or []]


def _parse_entry(row: dict[str, object]) -> LibraryEntry:
    """Parse a library row into a domain model."""
    first_scanned_at = datetime.fromisoformat(str(row["first_scanned_at"]))
    last_updated_raw = row.get("last_updated_at")
    last_updated_at = (
        datetime.fromisoformat(last_updated_raw)
        if isinstance(last_updated_raw, str) and last_updated_raw
        else first_scanned_at
    )
    return LibraryEntry(
        id=UUID(str(row["id"])),
        user_id=UUID(str(row["user_id"])),
        product_id=UUID(str(row["product_id"])),
        scan_count=int(row.get("scan_count") or 1),
        first_scanned_at=first_scanned_at,
        last_updated_at=last_updated_at,
        source=LibrarySource(str(row.get("source") or LibrarySource.SCAN.value)),
        enrichment_status=_enrichment_status(row.get("supplement_products")),
    )


def _enrichment_status(product: object) -> EnrichmentStatus:
    if not isinstance(product, dict):
        return EnrichmentStatus.NOT_ENRICHED
    description = product.get("description")
    benefits = product.get("benefits") or product.get("label_benefits")
    if description and benefits and product.get("research_summary"):
        return EnrichmentStatus.ENRICHED
    if description or benefits:
        return EnrichmentStatus.PARTIAL
    return EnrichmentStatus.NOT_ENRICHED
