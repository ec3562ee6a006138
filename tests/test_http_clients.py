"""Tests for HTTP-based adapters."""

import asyncio
import json
from uuid import uuid4

import httpx
import pytest

from supplement_scanner.adapters.enrichment_client import HttpxEnrichmentClient
from supplement_scanner.adapters.openai_vision_client import OpenAIVisionClient


class _FakeResponses:
    def __init__(self, output_text: str) -> None:
        self.output_text = output_text
        self.last_payload: dict[str, object] | None = None

    async def create(self, **kwargs):  # type: ignore[no-untyped-def]
        self.last_payload = kwargs
        return type("Resp", (), {"output_text": self.output_text})()


class _FakeOpenAI:
    def __init__(self, output_text: str = '{"supplement_name": "Zinc"}') -> None:
        self.responses = _FakeResponses(output_text)


def test_openai_vision_client_sends_every_image() -> None:
    fake = _FakeOpenAI()
    client = OpenAIVisionClient(client=fake)

    result = asyncio.run(
        client.extract(
            model="gpt-5.2",
            reasoning_effort="high",
            store=False,
            image_data_urls=[
                "data:image/jpeg;base64,ZnJvbnQ=",
                "data:image/jpeg;base64,YmFjaw==",
            ],
            schema={"type": "object"},
            prompt="Read the label",
        )
    )

    assert result == {"supplement_name": "Zinc"}
    payload = fake.responses.last_payload
    assert payload is not None
    content = payload["input"][0]["content"]
    assert [part["type"] for part in content] == [
        "input_text",
        "input_image",
        "input_image",
    ]
    assert payload["reasoning"] == {"effort": "high"}
    assert payload["text"]["format"]["strict"] is True
    assert payload["text"]["format"]["name"] == "supplement_label"
    assert content[1]["detail"] == "high"


def test_openai_vision_client_rejects_empty_output() -> None:
    client = OpenAIVisionClient(client=_FakeOpenAI(output_text=""))

    with pytest.raises(RuntimeError):
        asyncio.run(
            client.extract(
                model="gpt-5.2",
                reasoning_effort=None,
                store=False,
                image_data_urls=["data:image/jpeg;base64,ZnJvbnQ="],
                schema={"type": "object"},
                prompt="Read the label",
            )
        )


def test_openai_vision_client_rejects_malformed_json() -> None:
    client = OpenAIVisionClient(client=_FakeOpenAI(output_text="not json"))

    with pytest.raises(RuntimeError):
        asyncio.run(
            client.extract(
                model="gpt-5.2",
                reasoning_effort=None,
                store=False,
                image_data_urls=["data:image/jpeg;base64,ZnJvbnQ="],
                schema={"type": "object"},
                prompt="Read the label",
            )
        )


def test_enrichment_client_posts_label_data() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"success": True, "product": {}})

    transport = httpx.MockTransport(handler)
    async_client = httpx.AsyncClient(transport=transport)
    client = HttpxEnrichmentClient(
        url="https://example.supabase.co/functions/v1/enrich-supplement-info",
        api_key="service-key",
        http_client=async_client,
    )
    product_id = uuid4()

    response = asyncio.run(client.enrich(product_id, {"supplement_name": "Zinc"}))

    assert response == {"success": True, "product": {}}
    request = seen[0]
    assert request.headers["Authorization"] == "Bearer service-key"
    assert request.headers["apikey"] == "service-key"
    body = json.loads(request.content.decode())
    assert body == {
        "productId": str(product_id),
        "labelData": {"supplement_name": "Zinc"},
    }


def test_enrichment_client_raises_on_http_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, json={"error": "boom"})

    async_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    client = HttpxEnrichmentClient(
        url="https://enrich.test", api_key="key", http_client=async_client
    )

    with pytest.raises(httpx.HTTPStatusError):
        asyncio.run(client.enrich(uuid4(), {}))
