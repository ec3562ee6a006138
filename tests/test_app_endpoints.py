"""Tests for the public API endpoints."""

import base64
from uuid import uuid4

from fastapi.testclient import TestClient

from supplement_scanner.api.app import create_app
from supplement_scanner.containers import AppContainer
from tests.conftest import (
    FakeImageStore,
    FakeVisionClient,
    InMemoryProductRepository,
    InMemoryStackRepository,
    make_image,
)


def _encoded(data: bytes, data_url: bool = False) -> str:
    encoded = base64.b64encode(data).decode()
    return f"data:image/png;base64,{encoded}" if data_url else encoded


def test_health_endpoint(container: AppContainer) -> None:
    client = TestClient(create_app(container))

    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_scan_endpoint_returns_result(container: AppContainer) -> None:
    client = TestClient(create_app(container))
    user_id = uuid4()

    response = client.post(
        "/scan",
        json={
            "user_id": str(user_id),
            "front_image": _encoded(make_image(), data_url=True),
            "back_image": _encoded(make_image(400, 300)),
        },
    )

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["quick_match"] is False
    assert data["extracted"]["supplement_name"] == "Vitamin D3"
    assert data["product"]["dosage_unit"] == "IU"
    assert data["product"]["enrichment_status"] == "enriched"
    assert data["library_entry"]["scan_count"] == 1
    assert data["library_entry"]["source"] == "scan"


def test_scan_endpoint_rejects_bad_base64(container: AppContainer) -> None:
    client = TestClient(create_app(container))

    response = client.post(
        "/scan", json={"user_id": str(uuid4()), "front_image": "not base64!"}
    )

    assert response.status_code == 422


def test_scan_endpoint_rejects_unreadable_image(container: AppContainer) -> None:
    client = TestClient(create_app(container))

    response = client.post(
        "/scan",
        json={"user_id": str(uuid4()), "front_image": _encoded(b"plain text")},
    )

    assert response.status_code == 422
    assert "retake" in response.json()["detail"]


def test_scan_endpoint_maps_recognition_failure(
    container: AppContainer, vision_client: FakeVisionClient
) -> None:
    vision_client.error = RuntimeError("upstream 500")
    client = TestClient(create_app(container))

    response = client.post(
        "/scan",
        json={"user_id": str(uuid4()), "front_image": _encoded(make_image())},
    )

    assert response.status_code == 502


def test_scan_endpoint_maps_timeout(
    container: AppContainer, vision_client: FakeVisionClient
) -> None:
    container.scan_pipeline.recognition_timeout_seconds = 0.01
    vision_client.delay = 1.0
    client = TestClient(create_app(container))

    response = client.post(
        "/scan",
        json={"user_id": str(uuid4()), "front_image": _encoded(make_image())},
    )

    assert response.status_code == 504
    assert response.json()["detail"].startswith("Analysis timed out")


def test_stack_endpoints_lifecycle(
    container: AppContainer, stack_repository: InMemoryStackRepository
) -> None:
    client = TestClient(create_app(container))
    user_id = uuid4()

    created = client.post(
        "/stack",
        json={
            "user_id": str(user_id),
            "product_id": str(uuid4()),
            "stack_name": "Magnesium Glycinate",
            "servings_per_container": 10,
            "suggestions": {"intake_times": ["evening"]},
        },
    )
    assert created.status_code == 201
    item = created.json()
    assert item["reorder_threshold"] == 2
    assert item["intake_times"] == ["evening"]

    intake = client.post(
        f"/stack/items/{item['id']}/intake", json={"user_id": str(user_id)}
    )
    assert intake.status_code == 200
    assert intake.json()["servings_remaining"] == 9

    listed = client.get(f"/stack/{user_id}")
    assert [entry["id"] for entry in listed.json()["items"]] == [item["id"]]

    paused = client.post(f"/stack/items/{item['id']}/pause")
    assert paused.json()["is_active"] is False
    assert client.get(f"/stack/{user_id}").json() == {"items": []}

    resumed = client.post(f"/stack/items/{item['id']}/resume")
    assert resumed.json()["is_active"] is True

    deleted = client.delete(f"/stack/items/{item['id']}")
    assert deleted.status_code == 204
    assert stack_repository.items == {}


def test_intake_for_unknown_item_returns_404(container: AppContainer) -> None:
    client = TestClient(create_app(container))

    response = client.post(
        f"/stack/items/{uuid4()}/intake", json={"user_id": str(uuid4())}
    )

    assert response.status_code == 404


def test_stack_commit_failure_returns_502(
    container: AppContainer, stack_repository: InMemoryStackRepository
) -> None:
    stack_repository.fail_with = RuntimeError("insert failed")
    client = TestClient(create_app(container))

    response = client.post(
        "/stack",
        json={
            "user_id": str(uuid4()),
            "product_id": str(uuid4()),
            "stack_name": "Zinc",
        },
    )

    assert response.status_code == 502


def test_product_photo_upload(
    container: AppContainer,
    product_repository: InMemoryProductRepository,
    image_store: FakeImageStore,
) -> None:
    product = product_repository.add()
    client = TestClient(create_app(container))

    response = client.post(
        f"/products/{product.id}/photo", json={"image": _encoded(make_image())}
    )

    assert response.status_code == 200
    (key,) = image_store.uploads
    assert key.startswith(f"{product.id}_")
    assert key.endswith(".jpg")
    assert response.json()["image_url"].endswith(key)
    assert product_repository.products[product.id].image_url == (
        response.json()["image_url"]
    )
