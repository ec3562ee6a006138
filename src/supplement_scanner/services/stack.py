"""Active stack bookkeeping and servings accounting."""

import logging
import math
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Protocol
from uuid import UUID

from supplement_scanner.domain.errors import StackCommitError
from supplement_scanner.domain.recognition import IntakeSuggestions
from supplement_scanner.domain.scan import ScanResult
from supplement_scanner.domain.stack import IntakeLog, StackItem, StackItemStatus

REORDER_FRACTION = 0.2
DEFAULT_INTAKE_TIMES = ["morning"]

_logger = logging.getLogger(__name__)


class StackRepository(Protocol):
    """Persistence interface for stack items and intake logs."""

    def create_item(self, user_id: UUID, payload: dict[str, object]) -> StackItem:
        """Create a stack item and return it."""

    def get_item(self, item_id: UUID) -> StackItem | None:
        """Return a stack item by id, if present."""

    def list_active_items(self, user_id: UUID) -> list[StackItem]:
        """Return a user's active stack items."""

    def set_active(self, item_id: UUID, is_active: bool) -> StackItem:
        """Toggle whether a stack item is active."""

    def delete_item(self, item_id: UUID) -> None:
        """Delete a stack item together with its intake logs."""

    def count_servings(self, item_id: UUID) -> int:
        """Return servings consumed across all intake logs of an item."""

    def create_intake_log(
        self, user_id: UUID, item_id: UUID, taken_at: datetime, servings_taken: int
    ) -> IntakeLog:
        """Record an intake and return it."""

    def delete_intake_log(self, log_id: UUID) -> None:
        """Delete an intake log."""


def reorder_threshold(initial_servings: int) -> int:
    """Return the low-stock threshold, 20% of the initial servings."""
    return math.floor(max(initial_servings, 0) * REORDER_FRACTION)


def remaining_servings(starting_servings: int, consumed_servings: int) -> int:
    """Return servings left, never negative."""
    return max(starting_servings - consumed_servings, 0)


@dataclass
class StackService:
    """Commit scanned products to a stack and track consumption."""

    repository: StackRepository

    def commit_scan(
        self,
        user_id: UUID,
        result: ScanResult,
        intake_times: list[str] | None = None,
        servings_remaining: int | None = None,
    ) -> StackItem:
        """Persist a stack item for an analyzed scan."""
        return self.add_item(
            user_id,
            product_id=result.product_id,
            stack_name=result.profile.name,
            servings_per_container=result.profile.servings_per_container,
            suggestions=result.suggestions,
            intake_times=intake_times,
            servings_remaining=servings_remaining,
        )

    def add_item(  # noqa: PLR0913
        self,
        user_id: UUID,
        *,
        product_id: UUID,
        stack_name: str,
        servings_per_container: int,
        suggestions: IntakeSuggestions,
        intake_times: list[str] | None = None,
        servings_remaining: int | None = None,
    ) -> StackItem:
        """Persist a stack item with derived servings accounting."""
        initial = max(servings_per_container, 1)
        starting = initial
        if servings_remaining is not None:
            starting = min(max(servings_remaining, 0), initial)
        requested = intake_times or suggestions.intake_times
        times = [time for time in requested if time] or list(DEFAULT_INTAKE_TIMES)
        payload: dict[str, object] = {
            "product_id": str(product_id),
            "stack_name": stack_name,
            "is_active": True,
            "intake_times": times,
            "linked_biomarker_ids": list(suggestions.linked_biomarkers),
            "target_outcome": suggestions.target_outcome or None,
            "ai_suggested": True,
            "ai_rationale": suggestions.ai_rationale or None,
            "initial_servings": initial,
            "servings_remaining": starting,
            "reorder_threshold": reorder_threshold(initial),
        }
        try:
            item = self.repository.create_item(user_id, payload)
        except Exception as exc:
            _logger.warning("Stack commit failed: %s", exc)
            raise StackCommitError(
                f"Failed to add the supplement to your stack: {exc}"
            ) from exc
        _logger.info(
            "Stack item created: user_id=%s product_id=%s item_id=%s",
            user_id,
            product_id,
            item.id,
        )
        return item

    def status(self, item: StackItem) -> StackItemStatus:
        """Compute live servings accounting for a stack item."""
        consumed = self.repository.count_servings(item.id)
        remaining = remaining_servings(item.servings_remaining, consumed)
        return StackItemStatus(
            item=item,
            consumed_servings=consumed,
            servings_remaining=remaining,
            low_stock=remaining <= item.reorder_threshold,
        )

    def list_active(self, user_id: UUID) -> list[StackItemStatus]:
        """Return active items with servings remaining."""
        items = self.repository.list_active_items(user_id)
        return [self.status(item) for item in items]

    def log_intake(
        self, user_id: UUID, item_id: UUID, servings_taken: int = 1
    ) -> StackItemStatus | None:
        """Record an intake and return the refreshed item status."""
        item = self.repository.get_item(item_id)
        if item is None:
            return None
        self.repository.create_intake_log(
            user_id, item_id, datetime.now(tz=UTC), max(servings_taken, 1)
        )
        return self.status(item)

    def cancel_intake(self, log_id: UUID) -> None:
        """Remove an intake log."""
        self.repository.delete_intake_log(log_id)

    def pause(self, item_id: UUID) -> StackItem:
        """Deactivate a stack item without deleting it."""
        return self.repository.set_active(item_id, False)

    def resume(self, item_id: UUID) -> StackItem:
        """Reactivate a paused stack item."""
        return self.repository.set_active(item_id, True)

    def delete(self, item_id: UUID) -> None:
        """Delete a stack item and its intake logs."""
        self.repository.delete_item(item_id)
