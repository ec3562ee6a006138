"""Error types raised by the scan pipeline."""


class ScanError(Exception):
    """Base error carrying a user-facing message."""

    default_message = "Something went wrong while scanning. Please try again."

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)

    @property
    def user_message(self) -> str:
        return str(self)


class ImagePreprocessingError(ScanError):
    """Raised when an image cannot be decoded or re-encoded."""

    default_message = "Could not read that image. Please retake the photo."


class MissingFrontImageError(ScanError):
    """Raised when analysis is requested without a front photo."""

    default_message = "Take a photo of the front label before analyzing."


class RecognitionTimeoutError(ScanError):
    """Raised when the recognition call exceeds its deadline."""

    default_message = "Analysis timed out. Please try again with better lighting."


class RecognitionError(ScanError):
    """Raised when the recognition service fails or returns unusable data."""

    default_message = "Failed to analyze the bottle. Please try again."


class CatalogError(ScanError):
    """Raised when the product catalog cannot be read or written."""

    default_message = "Could not save the product to the catalog."


class LibraryLedgerError(ScanError):
    """Raised when the library entry cannot be recorded."""

    default_message = "Could not record the scan in your library."


class EnrichmentError(ScanError):
    """Raised internally when enrichment fails; never reaches the user."""

    default_message = "Enrichment unavailable."


class StackCommitError(ScanError):
    """Raised when a stack item cannot be persisted."""

    default_message = "Failed to add the supplement to your stack."


class InvalidTransitionError(ScanError):
    """Raised when an event is not allowed in the current scan state."""

    default_message = "That action is not available right now."
