"""Domain models for the supplement product catalog."""

from dataclasses import dataclass, field
from enum import Enum
from uuid import UUID


class DosageUnit(str, Enum):
    """Allowed dosage units, in matching priority order."""

    MG = "mg"
    G = "g"
    MCG = "mcg"
    IU = "IU"
    ML = "ml"
    SERVING = "serving"


class ProductForm(str, Enum):
    """Allowed physical forms of a supplement."""

    CAPSULE = "capsule"
    TABLET = "tablet"
    POWDER = "powder"
    LIQUID = "liquid"
    GUMMY = "gummy"
    SOFTGEL = "softgel"
    OTHER = "other"


class EnrichmentStatus(str, Enum):
    """How much enrichment metadata a product carries."""

    NOT_ENRICHED = "not_enriched"
    PARTIAL = "partial"
    ENRICHED = "enriched"


@dataclass(frozen=True)
class ParsedDosage:
    """Validated dosage triple ready for storage."""

    amount: float
    unit: DosageUnit
    form: ProductForm
    low_confidence: bool = False


@dataclass(frozen=True)
class Product:
    """Canonical catalog entry for a supplement SKU."""

    id: UUID
    name: str
    brand: str
    dosage_amount: float
    dosage_unit: DosageUnit
    form: ProductForm
    servings_per_container: int
    barcode: str | None = None
    ingredients: str | None = None
    warnings: str | None = None
    expiration_info: str | None = None
    recommended_daily_intake: str | None = None
    label_description: str | None = None
    label_benefits: list[str] = field(default_factory=list)
    certifications: list[str] = field(default_factory=list)
    storage_instructions: str | None = None
    price: str | None = None
    country_of_origin: str | None = None
    website: str | None = None
    image_url: str | None = None
    description: str | None = None
    benefits: list[str] = field(default_factory=list)
    research_summary: str | None = None

    @property
    def stored_dosage(self) -> ParsedDosage:
        """Return the dosage triple saved on the catalog row."""
        return ParsedDosage(
            amount=self.dosage_amount, unit=self.dosage_unit, form=self.form
        )

    @property
    def enrichment_status(self) -> EnrichmentStatus:
        """Derive enrichment status from the metadata present."""
        if self.description and self.benefits and self.research_summary:
            return EnrichmentStatus.ENRICHED
        if self.description or self.benefits:
            return EnrichmentStatus.PARTIAL
        return EnrichmentStatus.NOT_ENRICHED


@dataclass(frozen=True)
class ProductProfile:
    """Presentation shape shared by enriched and fallback products."""

    product_id: UUID
    name: str
    brand: str
    dosage_amount: float
    dosage_unit: DosageUnit
    form: ProductForm
    servings_per_container: int
    serving_size: str
    description: str | None = None
    benefits: list[str] = field(default_factory=list)
    research_summary: str | None = None
    ingredients: str | None = None
    warnings: str | None = None
    image_url: str | None = None
    enrichment_status: EnrichmentStatus = EnrichmentStatus.NOT_ENRICHED
    is_fallback: bool = False
