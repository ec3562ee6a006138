"""Request models for the scan API."""

import base64
import binascii
from uuid import UUID

from pydantic import BaseModel, Field

from supplement_scanner.domain.recognition import IntakeSuggestions


class ScanBottleRequest(BaseModel):
    """Photos of a supplement bottle to scan."""

    user_id: UUID
    front_image: str
    back_image: str | None = None
    manual_barcode: str | None = None


class CommitStackRequest(BaseModel):
    """Scanned product to commit to a user's stack."""

    user_id: UUID
    product_id: UUID
    stack_name: str
    servings_per_container: int = Field(default=30, ge=1)
    intake_times: list[str] | None = None
    servings_remaining: int | None = Field(default=None, ge=0)
    suggestions: IntakeSuggestions = Field(default_factory=IntakeSuggestions)


class IntakeRequest(BaseModel):
    """Intake of a stack item."""

    user_id: UUID
    servings_taken: int = Field(default=1, ge=1)


class ProductPhotoRequest(BaseModel):
    """New photo for a catalog product."""

    image: str


def decode_image(value: str) -> bytes:
    """Decode a base64 image, accepting data URLs."""
    encoded = value.split(",", 1)[1] if value.startswith("data:") else value
    try:
        return base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValueError("Image is not valid base64") from exc
