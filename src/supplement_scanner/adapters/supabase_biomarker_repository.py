"""Supabase lookup of supplement/biomarker correlations."""

from dataclasses import dataclass

from supabase import Client

from supplement_scanner.services.recognition import BiomarkerRepository


@dataclass
class SupabaseBiomarkerRepository(BiomarkerRepository):
    """Reads ``biomarker_correlations`` for intake suggestions."""

    client: Client

    def find_linked_biomarkers(self, supplement_name: str, limit: int) -> list[str]:
        """Return biomarker ids correlated with a supplement name."""
        response = (
            self.client.table("biomarker_correlations")
            .select("biomarker_id")
            .ilike("supplement_name", f"%{supplement_name.lower()}%")
            .limit(limit)
            .execute()
        )
        return [
            str(row["biomarker_id"])
            for row in response.data or []
            if row.get("biomarker_id")
        ]
