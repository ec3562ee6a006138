"""Label reading through the OpenAI Responses API."""

import json
from dataclasses import dataclass

from openai import AsyncOpenAI

from supplement_scanner.services.recognition import VisionClient


def build_label_request(  # noqa: PLR0913
    *,
    model: str,
    reasoning_effort: str | None,
    store: bool,
    image_data_urls: list[str],
    schema: dict[str, object],
    prompt: str,
) -> dict[str, object]:
    """Assemble a structured-output request with one part per photo."""
    photos = [
        {"type": "input_image", "image_url": data_url, "detail": "high"}
        for data_url in image_data_urls
    ]
    request: dict[str, object] = {
        "model": model,
        "store": store,
        "input": [
            {
                "role": "user",
                "content": [{"type": "input_text", "text": prompt}, *photos],
            }
        ],
        "text": {
            "format": {
                "type": "json_schema",
                "name": "supplement_label",
                "schema": schema,
                "strict": True,
            }
        },
    }
    if reasoning_effort:
        request["reasoning"] = {"effort": reasoning_effort}
    return request


@dataclass
class OpenAIVisionClient(VisionClient):
    """Reads bottle photos with an OpenAI vision model."""

    client: AsyncOpenAI

    @classmethod
    def create(cls, api_key: str) -> "OpenAIVisionClient":
        return cls(client=AsyncOpenAI(api_key=api_key))

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
        """Return the label fields the model read from the photos."""
        response = await self.client.responses.create(
            **build_label_request(
                model=model,
                reasoning_effort=reasoning_effort,
                store=store,
                image_data_urls=image_data_urls,
                schema=schema,
                prompt=prompt,
            )
        )
        if not response.output_text:
            raise RuntimeError("Label analysis came back empty")
        try:
            return json.loads(response.output_text)
        except json.JSONDecodeError as exc:
            raise RuntimeError("Label analysis was not valid JSON") from exc

    async def close(self) -> None:
        await self.client.close()
