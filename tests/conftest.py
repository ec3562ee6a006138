"""Shared test fixtures."""

import asyncio
import io
from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID, uuid4

import pytest
from PIL import Image

from supplement_scanner.config import Settings
from supplement_scanner.containers import AppContainer
from supplement_scanner.domain.library import LibraryEntry, LibrarySource
from supplement_scanner.domain.products import Product
from supplement_scanner.domain.stack import IntakeLog, StackItem
from supplement_scanner.services.catalog import CatalogResolver, ProductRepository
from supplement_scanner.services.dosage import normalize_form, normalize_unit
from supplement_scanner.services.enrichment import (
    EnrichmentClient,
    EnrichmentOrchestrator,
)
from supplement_scanner.services.images import ImagePreprocessor
from supplement_scanner.services.library import LibraryLedger, LibraryRepository
from supplement_scanner.services.product_images import ImageStore, ProductImageService
from supplement_scanner.services.recognition import (
    BiomarkerRepository,
    RecognitionService,
    VisionClient,
)
from supplement_scanner.services.scanner import ScanPipeline
from supplement_scanner.services.stack import StackRepository, StackService


def make_image(
    width: int = 1600, height: int = 1200, image_format: str = "PNG", mode: str = "RGB"
) -> bytes:
    """Render a solid-color image for preprocessing tests."""
    color = (200, 120, 40, 128) if mode == "RGBA" else (200, 120, 40)
    image = Image.new(mode, (width, height), color)
    buffer = io.BytesIO()
    image.save(buffer, format=image_format)
    return buffer.getvalue()


def label_payload(**overrides: object) -> dict[str, object]:
    """Return a vision payload for a typical vitamin D bottle."""
    payload: dict[str, object] = {
        "brand": "NOW Foods",
        "supplement_name": "Vitamin D3",
        "dosage_per_serving": "5000 IU",
        "servings_per_container": 120,
        "form": "softgel",
        "barcode": None,
        "recommended_daily_intake": "1 softgel daily",
        "ingredients": "Vitamin D3 (as cholecalciferol), olive oil",
        "warnings": "Keep out of reach of children.",
        "expiration_info": None,
        "label_description": "High potency vitamin D3 in olive oil softgels.",
        "label_benefits": ["Supports bone health", "Supports immune function"],
        "certifications": ["GMP", "Non-GMO"],
        "storage_instructions": "Store in a cool, dry place.",
        "price": None,
        "manufacturer_country": "USA",
        "manufacturer_website": "https://www.nowfoods.com",
    }
    payload.update(overrides)
    return payload


class UniqueViolation(Exception):
    """Mimics a Postgres unique-constraint error."""

    code = "23505"


@dataclass
class InMemoryProductRepository(ProductRepository):
    """In-memory product catalog for tests."""

    products: dict[UUID, Product] = field(default_factory=dict)
    created: list[UUID] = field(default_factory=list)
    updates: list[tuple[UUID, dict[str, object]]] = field(default_factory=list)
    fail_with: Exception | None = None

    def add(self, **overrides: object) -> Product:
        values: dict[str, object] = {
            "id": uuid4(),
            "name": "Vitamin D3",
            "brand": "NOW Foods",
            "dosage_amount": 5000.0,
            "dosage_unit": normalize_unit("IU"),
            "form": normalize_form("softgel"),
            "servings_per_container": 120,
        }
        values.update(overrides)
        product = Product(**values)
        self.products[product.id] = product
        return product

    def get_product(self, product_id: UUID) -> Product | None:
        self._maybe_fail()
        return self.products.get(product_id)

    def find_by_barcode(self, barcode: str) -> Product | None:
        self._maybe_fail()
        for product in self.products.values():
            if product.barcode == barcode:
                return product
        return None

    def find_by_name_brand(self, name: str, brand: str) -> Product | None:
        self._maybe_fail()
        for product in self.products.values():
            if (
                product.name.lower() == name.lower()
                and product.brand.lower() == brand.lower()
            ):
                return product
        return None

    def create_product(self, payload: dict[str, object]) -> Product:
        self._maybe_fail()
        product = self.add(
            **{
                **payload,
                "dosage_unit": normalize_unit(str(payload["dosage_unit"])),
                "form": normalize_form(str(payload["form"])),
            }
        )
        self.created.append(product.id)
        return product

    def update_product(self, product_id: UUID, payload: dict[str, object]) -> Product:
        self._maybe_fail()
        self.updates.append((product_id, payload))
        current = self.products[product_id]
        values = {**current.__dict__, **payload}
        updated = Product(**values)
        self.products[product_id] = updated
        return updated

    def list_products(self, limit: int) -> list[Product]:
        return list(self.products.values())[:limit]

    def _maybe_fail(self) -> None:
        if self.fail_with is not None:
            raise self.fail_with


@dataclass
class InMemoryLibraryRepository(LibraryRepository):
    """In-memory library ledger storage for tests."""

    entries: dict[UUID, LibraryEntry] = field(default_factory=dict)
    fail_with: Exception | None = None

    def get_entry(self, user_id: UUID, product_id: UUID) -> LibraryEntry | None:
        if self.fail_with is not None:
            raise self.fail_with
        for entry in self.entries.values():
            if entry.user_id == user_id and entry.product_id == product_id:
                return entry
        return None

    def create_entry(
        self,
        user_id: UUID,
        product_id: UUID,
        source: LibrarySource,
        scanned_at: datetime,
    ) -> LibraryEntry | None:
        entry = LibraryEntry(
            id=uuid4(),
            user_id=user_id,
            product_id=product_id,
            scan_count=1,
            first_scanned_at=scanned_at,
            last_updated_at=scanned_at,
            source=source,
        )
        self.entries[entry.id] = entry
        return entry

    def increment_scan(self, entry_id: UUID, scanned_at: datetime) -> LibraryEntry:
        current = self.entries[entry_id]
        updated = LibraryEntry(
            id=current.id,
            user_id=current.user_id,
            product_id=current.product_id,
            scan_count=current.scan_count + 1,
            first_scanned_at=current.first_scanned_at,
            last_updated_at=scanned_at,
            source=current.source,
        )
        self.entries[entry_id] = updated
        return updated

    def list_entries(self, user_id: UUID, limit: int) -> list[LibraryEntry]:
        return [e for e in self.entries.values() if e.user_id == user_id][:limit]


@dataclass
class InMemoryStackRepository(StackRepository):
    """In-memory stack storage for tests."""

    items: dict[UUID, StackItem] = field(default_factory=dict)
    logs: dict[UUID, IntakeLog] = field(default_factory=dict)
    payloads: list[dict[str, object]] = field(default_factory=list)
    fail_with: Exception | None = None

    def create_item(self, user_id: UUID, payload: dict[str, object]) -> StackItem:
        if self.fail_with is not None:
            raise self.fail_with
        self.payloads.append(payload)
        item = StackItem(
            id=uuid4(),
            user_id=user_id,
            product_id=UUID(str(payload["product_id"])),
            stack_name=str(payload["stack_name"]),
            intake_times=list(payload["intake_times"]),
            initial_servings=int(payload["initial_servings"]),
            servings_remaining=int(payload["servings_remaining"]),
            reorder_threshold=int(payload["reorder_threshold"]),
            ai_suggested=bool(payload["ai_suggested"]),
            ai_rationale=payload.get("ai_rationale"),
            target_outcome=payload.get("target_outcome"),
            linked_biomarker_ids=list(payload["linked_biomarker_ids"]),
            is_active=bool(payload["is_active"]),
        )
        self.items[item.id] = item
        return item

    def get_item(self, item_id: UUID) -> StackItem | None:
        return self.items.get(item_id)

    def list_active_items(self, user_id: UUID) -> list[StackItem]:
        return [
            item
            for item in self.items.values()
            if item.user_id == user_id and item.is_active
        ]

    def set_active(self, item_id: UUID, is_active: bool) -> StackItem:
        current = self.items[item_id]
        updated = StackItem(**{**current.__dict__, "is_active": is_active})
        self.items[item_id] = updated
        return updated

    def delete_item(self, item_id: UUID) -> None:
        self.logs = {
            log_id: log
            for log_id, log in self.logs.items()
            if log.stack_item_id != item_id
        }
        self.items.pop(item_id, None)

    def count_servings(self, item_id: UUID) -> int:
        return sum(
            log.servings_taken
            for log in self.logs.values()
            if log.stack_item_id == item_id
        )

    def create_intake_log(
        self, user_id: UUID, item_id: UUID, taken_at: datetime, servings_taken: int
    ) -> IntakeLog:
        log = IntakeLog(
            id=uuid4(),
            user_id=user_id,
            stack_item_id=item_id,
            taken_at=taken_at,
            servings_taken=servings_taken,
        )
        self.logs[log.id] = log
        return log

    def delete_intake_log(self, log_id: UUID) -> None:
        self.logs.pop(log_id, None)


@dataclass
class FakeVisionClient(VisionClient):
    """Fake vision client returning a fixed payload."""

    payload: dict[str, object] = field(default_factory=label_payload)
    error: Exception | None = None
    delay: float = 0.0
    calls: list[list[str]] = field(default_factory=list)
    started: asyncio.Event | None = None

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
        self.calls.append(image_data_urls)
        if self.started is not None:
            self.started.set()
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.payload


@dataclass
class FakeEnrichmentClient(EnrichmentClient):
    """Fake enrichment service with a canned response."""

    response: dict[str, object] = field(
        default_factory=lambda: {
            "success": True,
            "product": {
                "description": "Supports bone and immune health.",
                "benefits": ["Bone density", "Immune support"],
                "research_summary": "Well studied for deficiency correction.",
            },
        }
    )
    error: Exception | None = None
    delay: float = 0.0
    calls: list[tuple[UUID, dict[str, object]]] = field(default_factory=list)

    async def enrich(
        self, product_id: UUID, label_data: dict[str, object]
    ) -> dict[str, object]:
        self.calls.append((product_id, label_data))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.response


@dataclass
class FakeBiomarkerRepository(BiomarkerRepository):
    """Fixed biomarker correlations."""

    biomarkers: list[str] = field(default_factory=list)

    def find_linked_biomarkers(self, supplement_name: str, limit: int) -> list[str]:
        return self.biomarkers[:limit]


@dataclass
class FakeImageStore(ImageStore):
    """Records uploads and returns a predictable URL."""

    uploads: dict[str, bytes] = field(default_factory=dict)

    def upload(self, path: str, data: bytes, content_type: str) -> str:
        self.uploads[path] = data
        return f"https://cdn.example.com/supplement-images/{path}"


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_service_key="service-key",
        admin_token="admin-token",
        openai_api_key="openai-key",
    )


@pytest.fixture
def user_id() -> UUID:
    return uuid4()


@pytest.fixture
def product_repository() -> InMemoryProductRepository:
    return InMemoryProductRepository()


@pytest.fixture
def library_repository() -> InMemoryLibraryRepository:
    return InMemoryLibraryRepository()


@pytest.fixture
def stack_repository() -> InMemoryStackRepository:
    return InMemoryStackRepository()


@pytest.fixture
def vision_client() -> FakeVisionClient:
    return FakeVisionClient()


@pytest.fixture
def enrichment_client() -> FakeEnrichmentClient:
    return FakeEnrichmentClient()


@pytest.fixture
def image_store() -> FakeImageStore:
    return FakeImageStore()


@pytest.fixture
def pipeline(
    settings: Settings,
    product_repository: InMemoryProductRepository,
    library_repository: InMemoryLibraryRepository,
    stack_repository: InMemoryStackRepository,
    vision_client: FakeVisionClient,
    enrichment_client: FakeEnrichmentClient,
) -> ScanPipeline:
    recognizer = RecognitionService(
        client=vision_client,
        products=product_repository,
        model=settings.openai_model,
        reasoning_effort=settings.openai_reasoning_effort,
        store=settings.openai_store,
        biomarkers=FakeBiomarkerRepository(["vitamin_d_25oh"]),
    )
    return ScanPipeline(
        preprocessor=ImagePreprocessor(),
        recognizer=recognizer,
        resolver=CatalogResolver(product_repository),
        enrichment=EnrichmentOrchestrator(
            client=enrichment_client, repository=product_repository
        ),
        ledger=LibraryLedger(library_repository),
        stack=StackService(stack_repository),
    )


@pytest.fixture
def container(
    settings: Settings,
    pipeline: ScanPipeline,
    product_repository: InMemoryProductRepository,
    image_store: FakeImageStore,
) -> AppContainer:
    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        product_repository=product_repository,
        library_ledger=pipeline.ledger,
        stack_service=pipeline.stack,
        product_image_service=ProductImageService(
            store=image_store,
            products=product_repository,
            preprocessor=pipeline.preprocessor,
        ),
        scan_pipeline=pipeline,
        close_resources=close_resources,
    )
