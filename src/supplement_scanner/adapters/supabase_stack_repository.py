"""Supabase implementation for stack items and intake logs."""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from supabase import Client

from supplement_scanner.domain.stack import IntakeLog, StackItem
from supplement_scanner.services.stack import StackRepository


@dataclass
class SupabaseStackRepository(StackRepository):
    """Supabase-backed repository for ``user_stack`` and ``intake_logs``."""

    client: Client

    def create_item(self, user_id: UUID, payload: dict[str, object]) -> StackItem:
        """Create a stack item and return it."""
        response = (
            self.client.table("user_stack")
            .insert({"user_id": str(user_id), **payload})
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to create stack item")
        return _parse_item(response.data[0])

    def get_item(self, item_id: UUID) -> StackItem | None:
        """Return a stack item by id, if present."""
        response = (
            self.client.table("user_stack")
            .select("*")
            .eq("id", str(item_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _parse_item(response.data[0])

    def list_active_items(self, user_id: UUID) -> list[StackItem]:
        """Return a user's active stack items."""
        response = (
            self.client.table("user_stack")
            .select("*")
            .eq("user_id", str(user_id))
            .eq("is_active", True)
            .order("created_at", desc=False)
            .execute()
        )
        return [_parse_item(row) for row in response.data or []]

    def set_active(self, item_id: UUID, is_active: bool) -> StackItem:
        """Toggle whether a stack item is active."""
        response = (
            self.client.table("user_stack")
            .update({"is_active": is_active})
            .eq("id", str(item_id))
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to update stack item")
        return _parse_item(response.data[0])

    def delete_item(self, item_id: UUID) -> None:
        """Delete a stack item after removing its intake logs."""
        self.client.table("intake_logs").delete().eq(
            "stack_item_id", str(item_id)
        ).execute()
        self.client.table("user_stack").delete().eq("id", str(item_id)).execute()

    def count_servings(self, item_id: UUID) -> int:
        """Return servings consumed across all intake logs of an item."""
        response = (
            self.client.table("intake_logs")
            .select("servings_taken")
            .eq("stack_item_id", str(item_id))
            .execute()
        )
        return sum(int(row.get("servings_taken") or 1) for row in response.data or [])

    def create_intake_log(
        self, user_id: UUID, item_id: UUID, taken_at: datetime, servings_taken: int
    ) -> IntakeLog:
        """Record an intake and return it."""
        response = (
            self.client.table("intake_logs")
            .insert(
                {
                    "user_id": str(user_id),
                    "stack_item_id": str(item_id),
                    "taken_at": taken_at.isoformat(),
                    "servings_taken": servings_taken,
                }
            )
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to create intake log")
        row = response.data[0]
        return IntakeLog(
            id=UUID(str(row["id"])),
            user_id=UUID(str(row["user_id"])),
            stack_item_id=UUID(str(row["stack_item_id"])),
            taken_at=datetime.fromisoformat(str(row["taken_at"])),
            servings_taken=int(row.get("servings_taken") or 1),
        )

    def delete_intake_log(self, log_id: UUID) -> None:
        """Delete an intake log."""
        self.client.table("intake_logs").delete().eq("id", str(log_id)).execute()


def _parse_item(row: dict[str, object]) -> StackItem:
    """Parse a stack row into a domain model."""
    initial = int(row.get("initial_servings") or row.get("servings_remaining") or 0)
    return StackItem(
        id=UUID(str(row["id"])),
        user_id=UUID(str(row["user_id"])),
        product_id=UUID(str(row["product_id"])),
        stack_name=str(row.get("stack_name", "")),
        intake_times=list(row.get("intake_times") or []),
        initial_servings=initial,
        servings_remaining=int(row.get("servings_remaining") or 0),
        reorder_threshold=int(row.get("reorder_threshold") or 0),
        ai_suggested=bool(row.get("ai_suggested", False)),
        ai_rationale=row.get("ai_rationale"),
        target_outcome=row.get("target_outcome"),
        linked_biomarker_ids=list(row.get("linked_biomarker_ids") or []),
        is_active=bool(row.get("is_active", True)),
    )
