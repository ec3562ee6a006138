"""Models for label recognition and enrichment payloads."""

from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ExtractedLabel(BaseModel):
    """Structured fields read from a supplement label."""

    brand: str | None = None
    supplement_name: str
    dosage_per_serving: str = ""
    servings_per_container: int | None = None
    form: str | None = None
    barcode: str | None = None
    recommended_daily_intake: str | None = None
    ingredients: str | None = None
    warnings: str | None = None
    expiration_info: str | None = None
    label_description: str | None = None
    label_benefits: list[str] = Field(default_factory=list)
    certifications: list[str] = Field(default_factory=list)
    storage_instructions: str | None = None
    price: str | None = None
    manufacturer_country: str | None = None
    manufacturer_website: str | None = None

    @field_validator("ingredients", mode="before")
    @classmethod
    def _join_ingredients(cls, value: object) -> object:
        if isinstance(value, list):
            return ", ".join(str(item) for item in value if item)
        return value

    @field_validator("label_benefits", "certifications", mode="before")
    @classmethod
    def _listify(cls, value: object) -> object:
        if value is None:
            return []
        if isinstance(value, str):
            return [part.strip() for part in value.split(",") if part.strip()]
        return value

    @field_validator("price", mode="before")
    @classmethod
    def _price_text(cls, value: object) -> object:
        if isinstance(value, int | float):
            return str(value)
        return value

    @field_validator("servings_per_container", mode="before")
    @classmethod
    def _coerce_servings(cls, value: object) -> object:
        if isinstance(value, str):
            digits = "".join(ch for ch in value if ch.isdigit())
            return int(digits) if digits else None
        if isinstance(value, float):
            return int(value)
        return value


class IntakeSuggestions(BaseModel):
    """Suggested schedule and rationale for a supplement."""

    intake_times: list[str] = Field(default_factory=lambda: ["morning"])
    linked_biomarkers: list[str] = Field(default_factory=list)
    ai_rationale: str = ""
    target_outcome: str = ""


class RecognitionResult(BaseModel):
    """Response of the recognition call."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool
    extracted: ExtractedLabel | None = None
    suggestions: IntakeSuggestions = Field(default_factory=IntakeSuggestions)
    quick_match: bool = False
    product_id: UUID | None = Field(default=None, alias="productId")
    error: str | None = None


class EnrichedFields(BaseModel):
    """Metadata returned by the enrichment service."""

    description: str | None = None
    benefits: list[str] = Field(default_factory=list)
    research_summary: str | None = None
    ingredients: str | None = None
    warnings: str | None = None
    image_url: str | None = None

    @field_validator("ingredients", mode="before")
    @classmethod
    def _join_ingredients(cls, value: object) -> object:
        if isinstance(value, list):
            return ", ".join(str(item) for item in value if item)
        return value


class EnrichmentResponse(BaseModel):
    """Response of the enrichment call."""

    success: bool
    product: EnrichedFields | None = None
    error: str | None = None
