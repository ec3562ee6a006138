"""Token-protected admin endpoints for catalog and library inspection."""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID  # noqa: TC003

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from pydantic import BaseModel

from supplement_scanner.api.serializers import (
    serialize_library_entry,
    serialize_product,
)
from supplement_scanner.domain.errors import LibraryLedgerError
from supplement_scanner.domain.library import LibrarySource

if TYPE_CHECKING:
    from supplement_scanner.containers import AppContainer

router = APIRouter(prefix="/admin", tags=["admin"])


class LibrarySyncRequest(BaseModel):
    """Product to add to a user's library without a scan."""

    product_id: UUID
    source: LibrarySource = LibrarySource.PROTOCOL


def _get_admin_token(request: Request) -> str:
    container: AppContainer = request.app.state.container
    return container.settings.admin_token


async def require_admin(
    x_admin_token: str | None = Header(default=None),
    admin_token: str = Depends(_get_admin_token),
) -> None:
    """Ensure requests include a valid admin token."""
    if not x_admin_token or x_admin_token != admin_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)


@router.get("/health", dependencies=[Depends(require_admin)])
async def admin_health() -> dict[str, str]:
    """Admin health check endpoint."""
    return {"status": "ok"}


@router.get("/products", dependencies=[Depends(require_admin)])
async def list_products(request: Request, limit: int = 50) -> dict[str, object]:
    """Return the most recently cataloged products."""
    container: AppContainer = request.app.state.container
    products = container.product_repository.list_products(limit)
    return {"products": [serialize_product(product) for product in products]}


@router.get("/library/{user_id}", dependencies=[Depends(require_admin)])
async def user_library(
    user_id: UUID, request: Request, limit: int = 50
) -> dict[str, object]:
    """Return a user's library entries."""
    container: AppContainer = request.app.state.container
    entries = container.library_ledger.list_library(user_id, limit)
    return {"entries": [serialize_library_entry(entry) for entry in entries]}


@router.post("/library/{user_id}/entries", dependencies=[Depends(require_admin)])
async def sync_library_entry(
    user_id: UUID, body: LibrarySyncRequest, request: Request
) -> dict[str, object]:
    """Ensure a protocol or manual product is present in a user's library."""
    container: AppContainer = request.app.state.container
    if body.source == LibrarySource.SCAN:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Scanned products are recorded by the scan endpoint",
        )
    try:
        entry = container.library_ledger.ensure_entry(
            user_id, body.product_id, source=body.source
        )
    except LibraryLedgerError as exc:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY, detail=exc.user_message
        ) from exc
    return serialize_library_entry(entry)
