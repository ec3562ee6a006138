"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from uuid import UUID

from fastapi import FastAPI, HTTPException, Request, status

from supplement_scanner.api.admin import router as admin_router
from supplement_scanner.api.models import (
    CommitStackRequest,
    IntakeRequest,
    ProductPhotoRequest,
    ScanBottleRequest,
    decode_image,
)
from supplement_scanner.api.serializers import (
    serialize_product,
    serialize_scan_result,
    serialize_stack_item,
    serialize_status,
)
from supplement_scanner.app_logging import configure_logging
from supplement_scanner.containers import AppContainer
from supplement_scanner.domain.errors import (
    ImagePreprocessingError,
    MissingFrontImageError,
    RecognitionTimeoutError,
    ScanError,
)


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging(container.settings.log_level)
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    app.include_router(admin_router)

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.post("/scan")
    async def scan_bottle(
        body: ScanBottleRequest, request: Request
    ) -> dict[str, object]:
        """Scan one or two bottle photos into a catalog product and library entry."""
        state_container: AppContainer = request.app.state.container
        front_image = _decode_or_422(body.front_image)
        back_image = _decode_or_422(body.back_image) if body.back_image else None
        try:
            result = await state_container.scan_pipeline.scan_bottle(
                user_id=body.user_id,
                front_image=front_image,
                back_image=back_image,
                manual_barcode=body.manual_barcode,
            )
        except ScanError as exc:
            logger.warning("Scan failed for user %s: %s", body.user_id, exc)
            raise HTTPException(
                status_code=_status_for(exc), detail=exc.user_message
            ) from exc
        return serialize_scan_result(result)

    @app.post("/stack", status_code=status.HTTP_201_CREATED)
    async def commit_to_stack(
        body: CommitStackRequest, request: Request
    ) -> dict[str, object]:
        """Add a scanned product to the user's active stack."""
        state_container: AppContainer = request.app.state.container
        try:
            item = state_container.stack_service.add_item(
                body.user_id,
                product_id=body.product_id,
                stack_name=body.stack_name,
                servings_per_container=body.servings_per_container,
                suggestions=body.suggestions,
                intake_times=body.intake_times,
                servings_remaining=body.servings_remaining,
            )
        except ScanError as exc:
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY, detail=exc.user_message
            ) from exc
        return serialize_stack_item(item)

    @app.get("/stack/{user_id}")
    async def list_stack(user_id: UUID, request: Request) -> dict[str, object]:
        """Return active stack items with servings remaining."""
        state_container: AppContainer = request.app.state.container
        statuses = state_container.stack_service.list_active(user_id)
        return {"items": [serialize_status(entry) for entry in statuses]}

    @app.post("/stack/items/{item_id}/intake")
    async def log_intake(
        item_id: UUID, body: IntakeRequest, request: Request
    ) -> dict[str, object]:
        """Record an intake and return the refreshed servings."""
        state_container: AppContainer = request.app.state.container
        updated = state_container.stack_service.log_intake(
            body.user_id, item_id, body.servings_taken
        )
        if updated is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
        return serialize_status(updated)

    @app.post("/stack/items/{item_id}/pause")
    async def pause_item(item_id: UUID, request: Request) -> dict[str, object]:
        """Deactivate a stack item."""
        state_container: AppContainer = request.app.state.container
        return serialize_stack_item(state_container.stack_service.pause(item_id))

    @app.post("/stack/items/{item_id}/resume")
    async def resume_item(item_id: UUID, request: Request) -> dict[str, object]:
        """Reactivate a paused stack item."""
        state_container: AppContainer = request.app.state.container
        return serialize_stack_item(state_container.stack_service.resume(item_id))

    @app.delete("/stack/items/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
    async def delete_item(item_id: UUID, request: Request) -> None:
        """Delete a stack item and its intake logs."""
        state_container: AppContainer = request.app.state.container
        state_container.stack_service.delete(item_id)

    @app.post("/products/{product_id}/photo")
    async def upload_product_photo(
        product_id: UUID, body: ProductPhotoRequest, request: Request
    ) -> dict[str, object]:
        """Replace a product's photo."""
        state_container: AppContainer = request.app.state.container
        raw = _decode_or_422(body.image)
        try:
            product = state_container.product_image_service.upload_photo(
                product_id, raw
            )
        except ImagePreprocessingError as exc:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail=exc.user_message,
            ) from exc
        return serialize_product(product)

    return app


def _decode_or_422(value: str) -> bytes:
    try:
        return decode_image(value)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)
        ) from exc


def _status_for(exc: ScanError) -> int:
    if isinstance(exc, ImagePreprocessingError | MissingFrontImageError):
        return status.HTTP_422_UNPROCESSABLE_ENTITY
    if isinstance(exc, RecognitionTimeoutError):
        return status.HTTP_504_GATEWAY_TIMEOUT
    return status.HTTP_502_BAD_GATEWAY
