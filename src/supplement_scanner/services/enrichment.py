"""Product enrichment with graceful fallback to a basic record."""

import asyncio
import dataclasses
import logging
from dataclasses import dataclass
from typing import Protocol
from uuid import UUID

from pydantic import ValidationError

from supplement_scanner.domain.errors import EnrichmentError
from supplement_scanner.domain.products import (
    EnrichmentStatus,
    ParsedDosage,
    Product,
    ProductProfile,
)
from supplement_scanner.domain.recognition import (
    EnrichedFields,
    EnrichmentResponse,
    ExtractedLabel,
)
from supplement_scanner.services.catalog import ProductRepository
from supplement_scanner.services.dosage import (
    format_serving_size,
    servings_or_default,
)

_logger = logging.getLogger(__name__)


class EnrichmentClient(Protocol):
    """Interface for the external enrichment service."""

    async def enrich(
        self, product_id: UUID, label_data: dict[str, object]
    ) -> dict[str, object]:
        """Return the raw enrichment response."""


@dataclass
class EnrichmentOrchestrator:
    """Request enrichment and always return a presentable product profile."""

    client: EnrichmentClient
    repository: ProductRepository
    timeout_seconds: float | None = 60.0

    async def enrich(
        self, product: Product, label: ExtractedLabel, dosage: ParsedDosage
    ) -> ProductProfile:
        """Enrich a resolved product, degrading to a basic record on failure."""
        try:
            fields = await self._request(product.id, label)
        except Exception as exc:
            _logger.warning(
                "Enrichment failed, using basic record: product_id=%s error=%s",
                product.id,
                exc,
            )
            return build_basic_profile(product, label, dosage)

        enriched = dataclasses.replace(
            product,
            description=fields.description or product.description,
            benefits=fields.benefits or product.benefits,
            research_summary=fields.research_summary or product.research_summary,
            ingredients=fields.ingredients or product.ingredients or label.ingredients,
            warnings=fields.warnings or product.warnings or label.warnings,
            image_url=fields.image_url or product.image_url,
        )
        await self._persist(enriched)
        _logger.info(
            "Enrichment applied: product_id=%s status=%s",
            product.id,
            enriched.enrichment_status.value,
        )
        return profile_from_product(enriched, dosage)

    async def _request(self, product_id: UUID, label: ExtractedLabel) -> EnrichedFields:
        async with asyncio.timeout(self.timeout_seconds):
            raw = await self.client.enrich(product_id, label.model_dump(mode="json"))
        try:
            response = EnrichmentResponse.model_validate(raw)
        except ValidationError as exc:
            raise EnrichmentError("Malformed enrichment response") from exc
        if not response.success or response.product is None:
            raise EnrichmentError(response.error or "Enrichment unsuccessful")
        return response.product

    async def _persist(self, product: Product) -> None:
        payload: dict[str, object] = {
            "description": product.description,
            "benefits": product.benefits,
            "research_summary": product.research_summary,
            "ingredients": product.ingredients,
            "warnings": product.warnings,
            "image_url": product.image_url,
        }
        try:
            await asyncio.to_thread(self.repository.update_product, product.id, payload)
        except Exception:
            _logger.exception("Failed to store enrichment: product_id=%s", product.id)


def profile_from_product(product: Product, dosage: ParsedDosage) -> ProductProfile:
    """Build the presentation profile of a stored product."""
    return ProductProfile(
        product_id=product.id,
        name=product.name,
        brand=product.brand,
        dosage_amount=dosage.amount,
        dosage_unit=dosage.unit,
        form=dosage.form,
        servings_per_container=servings_or_default(product.servings_per_container),
        serving_size=format_serving_size(dosage),
        description=product.description,
        benefits=list(product.benefits),
        research_summary=product.research_summary,
        ingredients=product.ingredients,
        warnings=product.warnings,
        image_url=product.image_url,
        enrichment_status=product.enrichment_status,
    )


def build_basic_profile(
    product: Product, label: ExtractedLabel, dosage: ParsedDosage
) -> ProductProfile:
    """Synthesize a minimal profile from the label when enrichment is unavailable."""
    return ProductProfile(
        product_id=product.id,
        name=label.supplement_name.strip() or product.name,
        brand=(label.brand or "").strip() or product.brand,
        dosage_amount=dosage.amount,
        dosage_unit=dosage.unit,
        form=dosage.form,
        servings_per_container=servings_or_default(label.servings_per_container),
        serving_size=format_serving_size(dosage),
        ingredients=label.ingredients,
        warnings=label.warnings,
        image_url=product.image_url,
        enrichment_status=EnrichmentStatus.NOT_ENRICHED,
        is_fallback=True,
    )
