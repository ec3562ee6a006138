"""Supabase implementation for the supplement product catalog."""

from dataclasses import dataclass
from uuid import UUID

from supabase import Client

from supplement_scanner.domain.products import Product
from supplement_scanner.services.catalog import ProductRepository
from supplement_scanner.services.dosage import normalize_form, normalize_unit

_UNIQUE_VIOLATION = "23505"
_NAME_MATCH_CANDIDATES = 10


@dataclass
class SupabaseProductRepository(ProductRepository):
    """Supabase-backed repository for ``supplement_products``."""

    client: Client

    def get_product(self, product_id: UUID) -> Product | None:
        """Return a product by id, if present."""
        response = (
            self.client.table("supplement_products")
            .select("*")
            .eq("id", str(product_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _parse_product(response.data[0])

    def find_by_barcode(self, barcode: str) -> Product | None:
        """Return the product registered under a barcode, if any."""
        response = (
            self.client.table("supplement_products")
            .select("*")
            .eq("barcode", barcode)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _parse_product(response.data[0])

    def find_by_name_brand(self, name: str, brand: str) -> Product | None:
        """Return a product matching name and brand, ignoring case."""
        response = (
            self.client.table("supplement_products")
            .select("*")
            .ilike("name", _escape_like(name))
            .ilike("brand", _escape_like(brand))
            .limit(_NAME_MATCH_CANDIDATES)
            .execute()
        )
        for row in response.data or []:
            if _same_text(row.get("name"), name) and _same_text(
                row.get("brand"), brand
            ):
                return _parse_product(row)
        return None

    def create_product(self, payload: dict[str, object]) -> Product:
        """Insert a product; on a uniqueness conflict return the existing row."""
        try:
            response = (
                self.client.table("supplement_products").insert(payload).execute()
            )
        except Exception as exc:
            if getattr(exc, "code", None) != _UNIQUE_VIOLATION:
                raise
            existing = self._find_conflicting(payload)
            if existing is None:
                raise
            return existing
        if not response.data:
            raise RuntimeError("Failed to create product")
        return _parse_product(response.data[0])

    def update_product(self, product_id: UUID, payload: dict[str, object]) -> Product:
        """Update a product and return it."""
        response = (
            self.client.table("supplement_products")
            .update(payload)
            .eq("id", str(product_id))
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to update product")
        return _parse_product(response.data[0])

    def list_products(self, limit: int) -> list[Product]:
        """Return catalog products, most recent first."""
        response = (
            self.client.table("supplement_products")
            .select("*")
            .order("created_at", desc=True)
            .limit(limit)
            .execute()
        )
        return [_parse_product(row) for row in response.data or []]

    def _find_conflicting(self, payload: dict[str, object]) -> Product | None:
        barcode = payload.get("barcode")
        if isinstance(barcode, str) and barcode:
            existing = self.find_by_barcode(barcode)
            if existing is not None:
                return existing
        return self.find_by_name_brand(str(payload["name"]), str(payload["brand"]))


def _escape_like(value: str) -> str:
    """Escape LIKE and PostgREST wildcards so ilike narrows to equal text."""
    escaped = value.replace("\\", "\\\\")
    for wildcard in ("%", "_", "*"):
        escaped = escaped.replace(wildcard, f"\\{wildcard}")
    return escaped


def _same_text(stored: object, wanted: str) -> bool:
    return isinstance(stored, str) and stored.casefold() == wanted.casefold()


def _parse_product(row: dict[str, object]) -> Product:
    """Parse a product row into a domain model."""
    benefits = row.get("benefits") or row.get("label_benefits") or []
    return Product(
        id=UUID(str(row["id"])),
        name=str(row.get("name", "")),
        brand=str(row.get("brand") or "Unknown"),
        dosage_amount=float(row.get("dosage_amount") or 1.0),
        dosage_unit=normalize_unit(row.get("dosage_unit")),
        form=normalize_form(row.get("form")),
        servings_per_container=int(row.get("servings_per_container") or 30),
        barcode=row.get("barcode"),
        ingredients=_as_text(row.get("ingredients")),
        warnings=row.get("warnings"),
        expiration_info=row.get("expiration_info"),
        recommended_daily_intake=row.get("recommended_daily_intake"),
        label_description=row.get("label_description"),
        label_benefits=_as_list(row.get("label_benefits")),
        certifications=_as_list(row.get("certifications")),
        storage_instructions=row.get("storage_instructions"),
        price=_as_text(row.get("price")),
        country_of_origin=row.get("country_of_origin"),
        website=row.get("website"),
        image_url=row.get("image_url"),
        description=row.get("description"),
        benefits=[str(item) for item in benefits] if isinstance(benefits, list) else [],
        research_summary=row.get("research_summary"),
    )


def _as_list(value: object) -> list[str]:
    if isinstance(value, list):
        return [str(item) for item in value if item]
    return []


def _as_text(value: object) -> str | None:
    if isinstance(value, list):
        return ", ".join(str(item) for item in value)
    if value is None:
        return None
    return str(value)
