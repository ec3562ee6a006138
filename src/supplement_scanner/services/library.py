"""Services for the per-user supplement library ledger."""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Protocol
from uuid import UUID

from supplement_scanner.domain.errors import LibraryLedgerError
from supplement_scanner.domain.library import LibraryEntry, LibrarySource

_logger = logging.getLogger(__name__)


class LibraryRepository(Protocol):
    """Persistence interface for library entries."""

    def get_entry(self, user_id: UUID, product_id: UUID) -> LibraryEntry | None:
        """Return the entry for a user and product, if present."""

    def create_entry(
        self,
        user_id: UUID,
        product_id: UUID,
        source: LibrarySource,
        scanned_at: datetime,
    ) -> LibraryEntry | None:
        """Insert an entry with scan_count 1; return None if one already exists."""

    def increment_scan(self, entry_id: UUID, scanned_at: datetime) -> LibraryEntry:
        """Add one to scan_count and touch last_updated_at."""

    def list_entries(self, user_id: UUID, limit: int) -> list[LibraryEntry]:
        """Return a user's entries, most recently updated first."""


@dataclass
class LibraryLedger:
    """Idempotent bookkeeping of which products a user has scanned."""

    repository: LibraryRepository

    def record_scan(self, user_id: UUID, product_id: UUID) -> LibraryEntry:
        """Create the entry on first scan or increment scan_count by one."""
        now = datetime.now(tz=UTC)
        try:
            existing = self.repository.get_entry(user_id, product_id)
            if existing is None:
                created = self.repository.create_entry(
                    user_id, product_id, LibrarySource.SCAN, now
                )
                if created is not None:
                    _logger.info(
                        "Library entry created: user_id=%s product_id=%s",
                        user_id,
                        product_id,
                    )
                    return created
                # Lost a race with a concurrent first scan.
                existing = self.repository.get_entry(user_id, product_id)
                if existing is None:
                    raise LibraryLedgerError()
            entry = self.repository.increment_scan(existing.id, now)
        except LibraryLedgerError:
            raise
        except Exception as exc:
            _logger.warning("Library ledger write failed: %s", exc)
            raise LibraryLedgerError(
                f"Could not record the scan in your library: {exc}"
            ) from exc
        _logger.info(
            "Library scan recorded: user_id=%s product_id=%s scan_count=%s",
            user_id,
            product_id,
            entry.scan_count,
        )
        return entry

    def ensure_entry(
        self,
        user_id: UUID,
        product_id: UUID,
        source: LibrarySource = LibrarySource.PROTOCOL,
    ) -> LibraryEntry:
        """Add a product to the library without counting a scan."""
        try:
            existing = self.repository.get_entry(user_id, product_id)
            if existing is not None:
                return existing
            created = self.repository.create_entry(
                user_id, product_id, source, datetime.now(tz=UTC)
            )
            if created is not None:
                _logger.info(
                    "Library entry synced: user_id=%s product_id=%s source=%s",
                    user_id,
                    product_id,
                    source.value,
                )
                return created
            existing = self.repository.get_entry(user_id, product_id)
        except Exception as exc:
            _logger.warning("Library sync failed: %s", exc)
            raise LibraryLedgerError(
                f"Could not add the product to your library: {exc}"
            ) from exc
        if existing is None:
            raise LibraryLedgerError()
        return existing

    def list_library(self, user_id: UUID, limit: int = 50) -> list[LibraryEntry]:
        """Return a user's library entries."""
        return self.repository.list_entries(user_id, limit)
