"""Domain models for the active supplement stack."""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID


@dataclass(frozen=True)
class StackItem:
    """An actively tracked supplement with intake schedule."""

    id: UUID
    user_id: UUID
    product_id: UUID
    stack_name: str
    intake_times: list[str]
    initial_servings: int
    servings_remaining: int
    reorder_threshold: int
    ai_suggested: bool
    ai_rationale: str | None
    target_outcome: str | None
    linked_biomarker_ids: list[str]
    is_active: bool = True


@dataclass(frozen=True)
class IntakeLog:
    """A single recorded intake of a stack item."""

    id: UUID
    user_id: UUID
    stack_item_id: UUID
    taken_at: datetime
    servings_taken: int = 1


@dataclass(frozen=True)
class StackItemStatus:
    """Stack item with live servings accounting."""

    item: StackItem
    consumed_servings: int
    servings_remaining: int
    low_stock: bool
