"""Label recognition service using LLM vision."""

import asyncio
import base64
import logging
from dataclasses import dataclass
from typing import Protocol

from pydantic import ValidationError

from supplement_scanner.domain.errors import RecognitionError
from supplement_scanner.domain.recognition import ExtractedLabel, RecognitionResult
from supplement_scanner.services.catalog import ProductRepository
from supplement_scanner.services.suggestions import build_suggestions

_NULLABLE_STRING: dict[str, object] = {"anyOf": [{"type": "string"}, {"type": "null"}]}
_NULLABLE_STRINGS: dict[str, object] = {
    "anyOf": [{"type": "array", "items": {"type": "string"}}, {"type": "null"}]
}

LABEL_SCHEMA: dict[str, object] = {
    "type": "object",
    "properties": {
        "brand": _NULLABLE_STRING,
        "supplement_name": {"type": "string"},
        "dosage_per_serving": {"type": "string"},
        "servings_per_container": {
            "anyOf": [{"type": "integer", "minimum": 0}, {"type": "null"}]
        },
        "form": _NULLABLE_STRING,
        "barcode": _NULLABLE_STRING,
        "recommended_daily_intake": _NULLABLE_STRING,
        "ingredients": _NULLABLE_STRING,
        "warnings": _NULLABLE_STRING,
        "expiration_info": _NULLABLE_STRING,
        "label_description": _NULLABLE_STRING,
        "label_benefits": _NULLABLE_STRINGS,
        "certifications": _NULLABLE_STRINGS,
        "storage_instructions": _NULLABLE_STRING,
        "price": _NULLABLE_STRING,
        "manufacturer_country": _NULLABLE_STRING,
        "manufacturer_website": _NULLABLE_STRING,
    },
    "required": [
        "brand",
        "supplement_name",
        "dosage_per_serving",
        "servings_per_container",
        "form",
        "barcode",
        "recommended_daily_intake",
        "ingredients",
        "warnings",
        "expiration_info",
        "label_description",
        "label_benefits",
        "certifications",
        "storage_instructions",
        "price",
        "manufacturer_country",
        "manufacturer_website",
    ],
    "additionalProperties": False,
}

LABEL_PROMPT = (
    "Analyze the supplement bottle photos (front label first, back label second "
    "if present) and extract the label information. "
    "supplement_name is the main supplement (e.g. 'Vitamin D3'); "
    "dosage_per_serving is the amount with unit (e.g. '5000 IU', '400mg'); "
    "form is one of capsule, tablet, powder, liquid, gummy, softgel, other; "
    "barcode is the UPC/EAN digits if printed; "
    "label_description and label_benefits are the description and health claims "
    "printed on the bottle; certifications lists marks such as GMP, NSF or "
    "Non-GMO; manufacturer_country is the \"Made in\" country. "
    "Use null for anything not visible."
)

_logger = logging.getLogger(__name__)


class VisionClient(Protocol):
    """Interface for LLM vision extraction."""

    async def extract(  # noqa: PLR0913
        self,
        *,
        model: str,
        reasoning_effort: str | None,
        store: bool,
        image_data_urls: list[str],
        schema: dict[str, object],
        prompt: str,
    ) -> dict[str, object]:
        """Return structured vision extraction data."""


class BiomarkerRepository(Protocol):
    """Lookup of biomarkers correlated with a supplement."""

    def find_linked_biomarkers(self, supplement_name: str, limit: int) -> list[str]:
        """Return biomarker ids linked to a supplement name."""


@dataclass
class RecognitionService:
    """Extract label data, detect barcode matches and suggest intake."""

    client: VisionClient
    products: ProductRepository
    model: str
    reasoning_effort: str | None
    store: bool
    biomarkers: BiomarkerRepository | None = None

    async def recognize(
        self,
        front_image: bytes,
        back_image: bytes | None = None,
        manual_barcode: str | None = None,
    ) -> RecognitionResult:
        """Recognize one or two label photos."""
        data_urls = [_to_data_url(front_image)]
        if back_image:
            data_urls.append(_to_data_url(back_image))
        try:
            raw = await self.client.extract(
                model=self.model,
                reasoning_effort=self.reasoning_effort,
                store=self.store,
                image_data_urls=data_urls,
                schema=LABEL_SCHEMA,
                prompt=LABEL_PROMPT,
            )
        except Exception as exc:
            _logger.warning("Vision extraction failed: %s", exc)
            raise RecognitionError(f"Failed to analyze bottle: {exc}") from exc
        try:
            label = ExtractedLabel.model_validate(raw)
        except ValidationError as exc:
            raise RecognitionError("Failed to parse the label analysis.") from exc
        if not label.supplement_name.strip():
            raise RecognitionError("No supplement name found on the label.")

        barcode = (manual_barcode or "").strip() or (label.barcode or "").strip()
        matched = None
        if barcode:
            try:
                matched = await asyncio.to_thread(
                    self.products.find_by_barcode, barcode
                )
            except Exception:
                _logger.exception("Barcode lookup failed: barcode=%s", barcode)

        suggestions = build_suggestions(
            label.supplement_name, await self._linked_biomarkers(label.supplement_name)
        )
        if matched is not None:
            _logger.info("Barcode quick-match: product_id=%s", matched.id)
        return RecognitionResult(
            success=True,
            extracted=label,
            suggestions=suggestions,
            quick_match=matched is not None,
            product_id=matched.id if matched else None,
        )

    async def _linked_biomarkers(self, supplement_name: str) -> list[str]:
        if self.biomarkers is None:
            return []
        try:
            return await asyncio.to_thread(
                self.biomarkers.find_linked_biomarkers, supplement_name, 3
            )
        except Exception:
            _logger.exception("Biomarker lookup failed: name=%s", supplement_name)
            return []


def _to_data_url(image_bytes: bytes) -> str:
    """Convert bytes to a base64 data URL for image input."""
    mime_type = _detect_mime_type(image_bytes)
    encoded = base64.b64encode(image_bytes).decode("utf-8")
    return f"data:{mime_type};base64,{encoded}"


def _detect_mime_type(image_bytes: bytes) -> str:
    """Infer a basic image MIME type from file signatures."""
    if image_bytes.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if image_bytes.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if image_bytes[:4] == b"RIFF" and image_bytes[8:12] == b"WEBP":
        return "image/webp"
    return "image/jpeg"
