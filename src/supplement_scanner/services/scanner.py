"""Scan controller: runs the side effects behind each scan transition."""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Protocol
from uuid import UUID

from supplement_scanner.domain.errors import (
    ImagePreprocessingError,
    InvalidTransitionError,
    MissingFrontImageError,
    RecognitionError,
    RecognitionTimeoutError,
    ScanError,
)
from supplement_scanner.domain.recognition import RecognitionResult
from supplement_scanner.domain.scan import (
    TERMINAL_STATES,
    ScanEvent,
    ScanResult,
    ScanSession,
    ScanState,
)
from supplement_scanner.domain.stack import StackItem
from supplement_scanner.services.catalog import CatalogResolution, CatalogResolver
from supplement_scanner.services.enrichment import (
    EnrichmentOrchestrator,
    profile_from_product,
)
from supplement_scanner.services.images import ImagePreprocessor
from supplement_scanner.services.library import LibraryLedger
from supplement_scanner.services.scan_machine import transition
from supplement_scanner.services.stack import StackService

_logger = logging.getLogger(__name__)


class Recognizer(Protocol):
    """Interface for the label recognition call."""

    async def recognize(
        self,
        front_image: bytes,
        back_image: bytes | None = None,
        manual_barcode: str | None = None,
    ) -> RecognitionResult:
        """Recognize label photos."""


class ImageSource(Protocol):
    """Host capability that yields raw photos."""

    async def capture_photo(self) -> bytes:
        """Take a photo with the camera."""

    async def pick_file(self) -> bytes:
        """Let the user pick an image file."""


class _StaleResult(Exception):
    """Raised when an in-flight step finishes after its scan was cancelled."""


@dataclass
class ScanController:
    """Drives one scan session from capture to commit."""

    session: ScanSession
    preprocessor: ImagePreprocessor
    recognizer: Recognizer
    resolver: CatalogResolver
    enrichment: EnrichmentOrchestrator
    ledger: LibraryLedger
    stack: StackService
    recognition_timeout_seconds: float = 90.0
    last_failure: ScanError | None = None
    _generation: int = field(default=0, init=False, repr=False)
    _in_flight: asyncio.Task | None = field(default=None, init=False, repr=False)

    @property
    def state(self) -> ScanState:
        return self.session.state

    async def capture(
        self, source: ImageSource, *, from_file: bool = False
    ) -> ScanState:
        """Take or pick a photo for the side currently being captured."""
        self._require(ScanState.CAPTURE_FRONT, ScanState.CAPTURE_BACK)
        try:
            raw = await (source.pick_file() if from_file else source.capture_photo())
        except Exception as exc:
            _logger.warning("Image capture failed: %s", exc)
            return self._capture_failed(
                ImagePreprocessingError("Could not capture the photo. Please retry.")
            )
        return await self.submit_image(raw)

    async def submit_image(self, raw: bytes) -> ScanState:
        """Normalize a raw photo and store it for the current side."""
        self._require(ScanState.CAPTURE_FRONT, ScanState.CAPTURE_BACK)
        side = self.session.state
        generation = self._generation
        try:
            encoded = await asyncio.to_thread(self.preprocessor.preprocess, raw)
        except ImagePreprocessingError as exc:
            return self._capture_failed(exc)
        if generation != self._generation:
            return self.session.state
        if side is ScanState.CAPTURE_FRONT:
            self.session.front_image = encoded
            # a back photo kept from before the retake skips capture-back
            retaken = self.session.back_image is not None
            self._apply(
                ScanEvent.FRONT_RETAKEN if retaken else ScanEvent.FRONT_CAPTURED
            )
        else:
            self.session.back_image = encoded
            self._apply(ScanEvent.BACK_CAPTURED)
        self.session.last_error = None
        return self.session.state

    def skip_back(self) -> ScanState:
        """Continue without a back label photo."""
        self._apply(ScanEvent.BACK_SKIPPED)
        self.session.back_image = None
        return self.session.state

    def retake_front(self) -> ScanState:
        """Discard the front photo and capture it again."""
        self._apply(ScanEvent.RETAKE_FRONT)
        self.session.front_image = None
        return self.session.state

    def retake_back(self) -> ScanState:
        """Discard the back photo and capture it again."""
        self._apply(ScanEvent.RETAKE_BACK)
        self.session.back_image = None
        return self.session.state

    def set_manual_barcode(self, barcode: str | None) -> None:
        """Store a user-entered barcode; it wins over any extracted barcode."""
        self._require(
            ScanState.CAPTURE_FRONT, ScanState.CAPTURE_BACK, ScanState.PREVIEW
        )
        cleaned = (barcode or "").strip()
        self.session.manual_barcode = cleaned or None

    async def analyze(self) -> ScanState:
        """Run recognition, resolution, ledger and enrichment.

        Returns the resulting state: ``presenting`` on success, ``preview`` on
        failure (with ``session.last_error`` set) or ``cancel`` if the scan was
        closed while the work was in flight.
        """
        if self.session.state is ScanState.PREVIEW and self.session.front_image is None:
            raise MissingFrontImageError()
        self._apply(ScanEvent.ANALYZE)
        self.session.last_error = None
        self.last_failure = None
        generation = self._generation
        task = asyncio.create_task(self._run_analysis(generation))
        self._in_flight = task
        try:
            await task
        except asyncio.CancelledError:
            if generation == self._generation:
                raise
            _logger.info("Discarded analysis of a cancelled scan")
        finally:
            if self._in_flight is task:
                self._in_flight = None
        return self.session.state

    async def commit(
        self,
        intake_times: list[str] | None = None,
        servings_remaining: int | None = None,
    ) -> StackItem:
        """Persist the presented product as a stack item and close the scan."""
        self._require(ScanState.PRESENTING)
        result = self.session.result
        if result is None:
            raise InvalidTransitionError("Nothing to add to the stack yet.")
        try:
            item = await asyncio.to_thread(
                self.stack.commit_scan,
                self.session.user_id,
                result,
                intake_times,
                servings_remaining,
            )
        except ScanError as exc:
            self.session.last_error = exc.user_message
            self.last_failure = exc
            raise
        self._apply(ScanEvent.COMMITTED)
        self.session.discard()
        return item

    def cancel(self) -> None:
        """Close the scan, discarding the session and any in-flight result."""
        if self.session.state in TERMINAL_STATES:
            return
        self._generation += 1
        if self._in_flight is not None and not self._in_flight.done():
            self._in_flight.cancel()
        self._apply(ScanEvent.CANCEL)
        self.session.discard()
        _logger.info("Scan cancelled: user_id=%s", self.session.user_id)

    close = cancel

    async def _run_analysis(self, generation: int) -> None:
        session = self.session
        try:
            recognition = await self._recognize()
            self._check_current(generation)
            if not recognition.success or recognition.extracted is None:
                raise RecognitionError(recognition.error)
            quick = bool(recognition.quick_match and recognition.product_id)
            self._apply(
                ScanEvent.QUICK_MATCHED if quick else ScanEvent.PRODUCT_RECOGNIZED
            )
            resolution: CatalogResolution = await asyncio.to_thread(
                self.resolver.resolve, recognition, session.manual_barcode
            )
            self._check_current(generation)
            entry = await asyncio.to_thread(
                self.ledger.record_scan, session.user_id, resolution.product_id
            )
            self._check_current(generation)
            if resolution.quick_match:
                profile = profile_from_product(resolution.product, resolution.dosage)
                event = ScanEvent.LEDGER_RECORDED
            else:
                profile = await self.enrichment.enrich(
                    resolution.product, recognition.extracted, resolution.dosage
                )
                self._check_current(generation)
                event = ScanEvent.ENRICHMENT_SETTLED
            session.result = ScanResult(
                product_id=resolution.product_id,
                quick_match=resolution.quick_match,
                label=recognition.extracted,
                dosage=resolution.dosage,
                suggestions=recognition.suggestions,
                profile=profile,
                library_entry=entry,
            )
            self._apply(event)
            _logger.info(
                "Scan analyzed: product_id=%s quick_match=%s fallback=%s",
                resolution.product_id,
                resolution.quick_match,
                profile.is_fallback,
            )
        except _StaleResult:
            return
        except ScanError as exc:
            self._analysis_failed(exc, generation)
        except Exception:
            _logger.exception("Unexpected scan failure")
            self._analysis_failed(ScanError(), generation)

    async def _recognize(self) -> RecognitionResult:
        session = self.session
        try:
            async with asyncio.timeout(self.recognition_timeout_seconds):
                return await self.recognizer.recognize(
                    session.front_image,
                    session.back_image,
                    session.manual_barcode,
                )
        except TimeoutError as exc:
            _logger.warning(
                "Recognition timed out after %ss", self.recognition_timeout_seconds
            )
            raise RecognitionTimeoutError() from exc

    def _analysis_failed(self, exc: ScanError, generation: int) -> None:
        if generation != self._generation:
            return
        _logger.warning("Scan analysis failed: %s", exc)
        self.session.result = None
        self.session.last_error = exc.user_message
        self.last_failure = exc
        self._apply(ScanEvent.ANALYSIS_FAILED)

    def _capture_failed(self, exc: ImagePreprocessingError) -> ScanState:
        self.session.last_error = exc.user_message
        self.last_failure = exc
        self._apply(ScanEvent.CAPTURE_FAILED)
        return self.session.state

    def _check_current(self, generation: int) -> None:
        if generation != self._generation:
            raise _StaleResult()

    def _require(self, *states: ScanState) -> None:
        if self.session.state not in states:
            raise InvalidTransitionError(
                f"Not available while in {self.session.state.value}."
            )

    def _apply(self, event: ScanEvent) -> None:
        previous = self.session.state
        self.session.state = transition(previous, event)
        self.session.history.append(previous)
        _logger.debug(
            "Scan transition: %s --%s--> %s",
            previous.value,
            event.value,
            self.session.state.value,
        )


@dataclass
class ScanPipeline:
    """Creates scan controllers and exposes the single-call scan RPC."""

    preprocessor: ImagePreprocessor
    recognizer: Recognizer
    resolver: CatalogResolver
    enrichment: EnrichmentOrchestrator
    ledger: LibraryLedger
    stack: StackService
    recognition_timeout_seconds: float = 90.0

    def start(self, user_id: UUID) -> ScanController:
        """Open a new scan session for a user."""
        return ScanController(
            session=ScanSession(user_id=user_id),
            preprocessor=self.preprocessor,
            recognizer=self.recognizer,
            resolver=self.resolver,
            enrichment=self.enrichment,
            ledger=self.ledger,
            stack=self.stack,
            recognition_timeout_seconds=self.recognition_timeout_seconds,
        )

    async def scan_bottle(
        self,
        user_id: UUID,
        front_image: bytes,
        back_image: bytes | None = None,
        manual_barcode: str | None = None,
    ) -> ScanResult:
        """Scan one or two photos straight through to a presentable result."""
        controller = self.start(user_id)
        controller.set_manual_barcode(manual_barcode)
        await controller.submit_image(front_image)
        if controller.state is not ScanState.CAPTURE_BACK:
            raise controller.last_failure or ImagePreprocessingError()
        if back_image:
            await controller.submit_image(back_image)
            if controller.last_failure is not None:
                raise controller.last_failure
        else:
            controller.skip_back()
        await controller.analyze()
        result = controller.session.result
        if controller.state is not ScanState.PRESENTING or result is None:
            raise controller.last_failure or ScanError()
        return result
