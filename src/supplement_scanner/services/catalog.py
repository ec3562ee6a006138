"""Catalog resolution: barcode quick-match and name/brand deduplication."""

import logging
from dataclasses import dataclass
from collections.abc import Callable
from typing import Protocol, TypeVar
from uuid import UUID

from supplement_scanner.domain.errors import CatalogError
from supplement_scanner.domain.products import ParsedDosage, Product
from supplement_scanner.domain.recognition import ExtractedLabel, RecognitionResult
from supplement_scanner.services.dosage import parse_dosage, servings_or_default

UNKNOWN_BRAND = "Unknown"

_T = TypeVar("_T")

_logger = logging.getLogger(__name__)


class ProductRepository(Protocol):
    """Persistence interface for the shared product catalog."""

    def get_product(self, product_id: UUID) -> Product | None:
        """Return a product by id, if present."""

    def find_by_barcode(self, barcode: str) -> Product | None:
        """Return the product registered under a barcode, if any."""

    def find_by_name_brand(self, name: str, brand: str) -> Product | None:
        """Return a product matching name and brand case-insensitively."""

    def create_product(self, payload: dict[str, object]) -> Product:
        """Insert a product, reusing the existing row on a uniqueness conflict."""

    def update_product(self, product_id: UUID, payload: dict[str, object]) -> Product:
        """Update a product and return it."""

    def list_products(self, limit: int) -> list[Product]:
        """Return catalog products, most recent first."""


@dataclass(frozen=True)
class CatalogResolution:
    """Resolved catalog product for a scan."""

    product: Product
    dosage: ParsedDosage
    quick_match: bool
    created: bool = False

    @property
    def product_id(self) -> UUID:
        return self.product.id


@dataclass
class CatalogResolver:
    """Find or create the catalog product behind a recognized label."""

    repository: ProductRepository

    def resolve(
        self, recognition: RecognitionResult, manual_barcode: str | None = None
    ) -> CatalogResolution:
        """Resolve a recognition result to a catalog product.

        Quick-matched results short-circuit to the matched product. Otherwise the
        barcode (manual input first) is authoritative, then a case-insensitive
        name and brand match, and only then is a new product created.
        """
        label = recognition.extracted
        if label is None:
            raise CatalogError("The label could not be read. Please try again.")

        if recognition.quick_match and recognition.product_id:
            product = self._call(
                lambda: self.repository.get_product(recognition.product_id),
                action="quick-match lookup",
            )
            if product is None:
                raise CatalogError("The matched product no longer exists.")
            _logger.info("Catalog quick-match: product_id=%s", product.id)
            return CatalogResolution(
                product=product, dosage=product.stored_dosage, quick_match=True
            )

        dosage = parse_dosage(label.dosage_per_serving, label.form)
        return self._resolve_standard(label, dosage, manual_barcode)

    def _resolve_standard(
        self,
        label: ExtractedLabel,
        dosage: ParsedDosage,
        manual_barcode: str | None,
    ) -> CatalogResolution:
        name = label.supplement_name.strip()
        if not name:
            raise CatalogError("The supplement name could not be read from the label.")
        brand = (label.brand or "").strip() or UNKNOWN_BRAND
        barcode = _clean_barcode(manual_barcode) or _clean_barcode(label.barcode)

        if barcode:
            by_barcode = self._call(
                lambda: self.repository.find_by_barcode(barcode),
                action="barcode lookup",
            )
            if by_barcode is not None:
                _logger.info("Catalog barcode match: product_id=%s", by_barcode.id)
                return CatalogResolution(
                    product=by_barcode, dosage=dosage, quick_match=False
                )

        existing = self._call(
            lambda: self.repository.find_by_name_brand(name, brand),
            action="name lookup",
        )
        if existing is not None:
            if barcode and not existing.barcode:
                existing = self._call(
                    lambda: self.repository.update_product(
                        existing.id, {"barcode": barcode}
                    ),
                    action="barcode attach",
                )
            _logger.info("Catalog reuse: product_id=%s", existing.id)
            return CatalogResolution(product=existing, dosage=dosage, quick_match=False)

        payload: dict[str, object] = {
            "name": name,
            "brand": brand,
            "dosage_amount": dosage.amount,
            "dosage_unit": dosage.unit.value,
            "form": dosage.form.value,
            "servings_per_container": servings_or_default(
                label.servings_per_container
            ),
            "barcode": barcode,
            "ingredients": label.ingredients,
            "warnings": label.warnings,
            "expiration_info": label.expiration_info,
            "recommended_daily_intake": label.recommended_daily_intake,
            "label_description": label.label_description,
            "label_benefits": label.label_benefits,
            "certifications": label.certifications,
            "storage_instructions": label.storage_instructions,
            "price": label.price,
            "country_of_origin": label.manufacturer_country,
            "website": label.manufacturer_website,
        }
        created = self._call(
            lambda: self.repository.create_product(payload), action="create"
        )
        _logger.info("Catalog created: product_id=%s name=%s", created.id, name)
        return CatalogResolution(
            product=created, dosage=dosage, quick_match=False, created=True
        )

    @staticmethod
    def _call(func: Callable[[], _T], *, action: str) -> _T:
        try:
            return func()
        except CatalogError:
            raise
        except Exception as exc:
            _logger.warning("Catalog %s failed: %s", action, exc)
            raise CatalogError(f"Catalog {action} failed: {exc}") from exc


def _clean_barcode(raw: str | None) -> str | None:
    if raw is None:
        return None
    cleaned = "".join(raw.split())
    return cleaned or None
