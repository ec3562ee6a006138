"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from supplement_scanner.adapters.enrichment_client import HttpxEnrichmentClient
from supplement_scanner.adapters.openai_vision_client import OpenAIVisionClient
from supplement_scanner.adapters.supabase_biomarker_repository import (
    SupabaseBiomarkerRepository,
)
from supplement_scanner.adapters.supabase_image_store import SupabaseImageStore
from supplement_scanner.adapters.supabase_library_repository import (
    SupabaseLibraryRepository,
)
from supplement_scanner.adapters.supabase_product_repository import (
    SupabaseProductRepository,
)
from supplement_scanner.adapters.supabase_stack_repository import (
    SupabaseStackRepository,
)
from supplement_scanner.config import Settings
from supplement_scanner.services.catalog import CatalogResolver, ProductRepository
from supplement_scanner.services.enrichment import EnrichmentOrchestrator
from supplement_scanner.services.images import ImagePreprocessor
from supplement_scanner.services.library import LibraryLedger
from supplement_scanner.services.product_images import ProductImageService
from supplement_scanner.services.recognition import RecognitionService
from supplement_scanner.services.scanner import ScanPipeline
from supplement_scanner.services.stack import StackService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    product_repository: ProductRepository
    library_ledger: LibraryLedger
    stack_service: StackService
    product_image_service: ProductImageService
    scan_pipeline: ScanPipeline
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    product_repository = SupabaseProductRepository(supabase_client)
    library_repository = SupabaseLibraryRepository(supabase_client)
    stack_repository = SupabaseStackRepository(supabase_client)
    image_store = SupabaseImageStore(
        supabase_client, bucket=resolved_settings.product_images_bucket
    )
    preprocessor = ImagePreprocessor(
        max_width=resolved_settings.image_max_width,
        quality=resolved_settings.image_jpeg_quality,
    )
    vision_client = OpenAIVisionClient.create(resolved_settings.openai_api_key)
    recognition_service = RecognitionService(
        client=vision_client,
        products=product_repository,
        model=resolved_settings.openai_model,
        reasoning_effort=resolved_settings.openai_reasoning_effort,
        store=resolved_settings.openai_store,
        biomarkers=SupabaseBiomarkerRepository(supabase_client),
    )
    enrichment_client = HttpxEnrichmentClient.create(
        url=resolved_settings.resolved_enrichment_url,
        api_key=resolved_settings.supabase_service_key,
    )
    enrichment = EnrichmentOrchestrator(
        client=enrichment_client,
        repository=product_repository,
        timeout_seconds=resolved_settings.enrichment_timeout_seconds,
    )
    library_ledger = LibraryLedger(library_repository)
    stack_service = StackService(stack_repository)
    scan_pipeline = ScanPipeline(
        preprocessor=preprocessor,
        recognizer=recognition_service,
        resolver=CatalogResolver(product_repository),
        enrichment=enrichment,
        ledger=library_ledger,
        stack=stack_service,
        recognition_timeout_seconds=resolved_settings.recognition_timeout_seconds,
    )
    product_image_service = ProductImageService(
        store=image_store,
        products=product_repository,
        preprocessor=preprocessor,
    )

    async def close_resources() -> None:
        await vision_client.close()
        await enrichment_client.close()

    return AppContainer(
        settings=resolved_settings,
        product_repository=product_repository,
        library_ledger=library_ledger,
        stack_service=stack_service,
        product_image_service=product_image_service,
        scan_pipeline=scan_pipeline,
        close_resources=close_resources,
    )
