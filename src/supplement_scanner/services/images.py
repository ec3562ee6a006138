"""Image normalization before upload or recognition."""

import io
import logging
from dataclasses import dataclass

from PIL import Image, ImageOps, UnidentifiedImageError

from supplement_scanner.domain.errors import ImagePreprocessingError

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ImagePreprocessor:
    """Downscale and re-encode captured photos as JPEG."""

    max_width: int = 800
    quality: int = 80

    def preprocess(self, raw: bytes) -> bytes:
        """Return a new JPEG no wider than ``max_width``, aspect ratio kept."""
        if not raw:
            raise ImagePreprocessingError("The captured image is empty.")
        try:
            with Image.open(io.BytesIO(raw)) as source:
                image = ImageOps.exif_transpose(source)
                if image.mode != "RGB":
                    image = image.convert("RGB")
                if image.width > self.max_width:
                    height = max(1, round(image.height * self.max_width / image.width))
                    image = image.resize(
                        (self.max_width, height), Image.Resampling.LANCZOS
                    )
                output = io.BytesIO()
                image.save(output, format="JPEG", quality=self.quality, optimize=True)
        except (
            UnidentifiedImageError,
            Image.DecompressionBombError,
            OSError,
            ValueError,
        ) as exc:
            _logger.warning("Image preprocessing failed: %s", exc)
            raise ImagePreprocessingError() from exc
        return output.getvalue()
