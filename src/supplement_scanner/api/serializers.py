"""JSON serialization of domain objects for API responses."""

from supplement_scanner.domain.library import LibraryEntry
from supplement_scanner.domain.products import Product, ProductProfile
from supplement_scanner.domain.scan import ScanResult
from supplement_scanner.domain.stack import StackItem, StackItemStatus


def serialize_scan_result(result: ScanResult) -> dict[str, object]:
    return {
        "success": True,
        "product_id": str(result.product_id),
        "quick_match": result.quick_match,
        "low_confidence": result.low_confidence,
        "extracted": result.label.model_dump(mode="json"),
        "suggestions": result.suggestions.model_dump(mode="json"),
        "product": serialize_profile(result.profile),
        "library_entry": serialize_library_entry(result.library_entry),
    }


def serialize_profile(profile: ProductProfile) -> dict[str, object]:
    return {
        "id": str(profile.product_id),
        "name": profile.name,
        "brand": profile.brand,
        "dosage_amount": profile.dosage_amount,
        "dosage_unit": profile.dosage_unit.value,
        "form": profile.form.value,
        "servings_per_container": profile.servings_per_container,
        "serving_size": profile.serving_size,
        "description": profile.description,
        "benefits": profile.benefits,
        "research_summary": profile.research_summary,
        "ingredients": profile.ingredients,
        "warnings": profile.warnings,
        "image_url": profile.image_url,
        "enrichment_status": profile.enrichment_status.value,
        "is_fallback": profile.is_fallback,
    }


def serialize_product(product: Product) -> dict[str, object]:
    """Serialize a catalog product for JSON responses."""
    return {
        "id": str(product.id),
        "name": product.name,
        "brand": product.brand,
        "dosage_amount": product.dosage_amount,
        "dosage_unit": product.dosage_unit.value,
        "form": product.form.value,
        "servings_per_container": product.servings_per_container,
        "barcode": product.barcode,
        "recommended_daily_intake": product.recommended_daily_intake,
        "label_description": product.label_description,
        "label_benefits": product.label_benefits,
        "certifications": product.certifications,
        "storage_instructions": product.storage_instructions,
        "price": product.price,
        "country_of_origin": product.country_of_origin,
        "website": product.website,
        "image_url": product.image_url,
        "enrichment_status": product.enrichment_status.value,
    }


def serialize_library_entry(entry: LibraryEntry) -> dict[str, object]:
    """Serialize a library entry for JSON responses."""
    return {
        "id": str(entry.id),
        "product_id": str(entry.product_id),
        "scan_count": entry.scan_count,
        "first_scanned_at": entry.first_scanned_at.isoformat(),
        "last_updated_at": entry.last_updated_at.isoformat(),
        "source": entry.source.value,
        "enrichment_status": entry.enrichment_status.value,
    }


def serialize_stack_item(item: StackItem) -> dict[str, object]:
    return {
        "id": str(item.id),
        "product_id": str(item.product_id),
        "stack_name": item.stack_name,
        "intake_times": item.intake_times,
        "initial_servings": item.initial_servings,
        "servings_remaining": item.servings_remaining,
        "reorder_threshold": item.reorder_threshold,
        "ai_suggested": item.ai_suggested,
        "ai_rationale": item.ai_rationale,
        "target_outcome": item.target_outcome,
        "is_active": item.is_active,
    }


def serialize_status(entry: StackItemStatus) -> dict[str, object]:
    return {
        **serialize_stack_item(entry.item),
        "consumed_servings": entry.consumed_servings,
        "servings_remaining": entry.servings_remaining,
        "low_stock": entry.low_stock,
    }
