"""Product photo uploads to the blob store."""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Protocol
from uuid import UUID

from supplement_scanner.domain.products import Product
from supplement_scanner.services.catalog import ProductRepository
from supplement_scanner.services.images import ImagePreprocessor

_logger = logging.getLogger(__name__)


class ImageStore(Protocol):
    """Blob storage for product images."""

    def upload(self, path: str, data: bytes, content_type: str) -> str:
        """Store bytes under a path and return their public URL."""


def image_key(product_id: UUID, taken_at: datetime) -> str:
    """Build the storage key ``{productId}_{timestamp}.jpg``."""
    timestamp_ms = int(taken_at.timestamp() * 1000)
    return f"{product_id}_{timestamp_ms}.jpg"


@dataclass
class ProductImageService:
    """Normalize, store and attach a product photo."""

    store: ImageStore
    products: ProductRepository
    preprocessor: ImagePreprocessor

    def upload_photo(self, product_id: UUID, raw: bytes) -> Product:
        """Upload a new product photo and point the product at it."""
        encoded = self.preprocessor.preprocess(raw)
        key = image_key(product_id, datetime.now(tz=UTC))
        url = self.store.upload(key, encoded, "image/jpeg")
        _logger.info("Product image uploaded: product_id=%s key=%s", product_id, key)
        return self.products.update_product(product_id, {"image_url": url})
