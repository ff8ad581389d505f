"""Image OCR and model utilities backed by the OpenAI API."""

from __future__ import annotations

import base64
import time
from typing import Any

import openai
from openai import OpenAI

from utils.errors import ConversionError

OCR_SYSTEM_PROMPT = (
    "Extract the text from the image and return it as markdown. "
    "Render any tables as markdown tables."
)
OCR_USER_PROMPT = "Extract all of the text in this image."
OCR_MAX_TOKENS = 4000


class OcrClient:
    """Thin wrapper around the chat-completions endpoint."""

    def __init__(self, api_key: str, model: str, base_url: str | None = None):
        self.model = model
        self.client = OpenAI(api_key=api_key, base_url=base_url)

    def extract_markdown(self, image: bytes, content_type: str) -> tuple[str, dict[str, Any], float]:
        """Return ``(markdown, usage, seconds)`` for an image."""

        data_uri = f"data:{content_type};base64,{base64.b64encode(image).decode('ascii')}"
        started = time.monotonic()
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": OCR_SYSTEM_PROMPT},
                    {
                        "role": "user",
                        "content": [
                            {"type": "text", "text": OCR_USER_PROMPT},
                            {"type": "image_url", "image_url": {"url": data_uri}},
                        ],
                    },
                ],
                max_tokens=OCR_MAX_TOKENS,
            )
        except openai.OpenAIError as error:
            raise ConversionError(str(error)) from error

        elapsed = time.monotonic() - started
        usage = response.usage.model_dump() if response.usage is not None else {}
        return response.choices[0].message.content or "", usage, elapsed

    def list_models(self) -> list[dict[str, Any]]:
        try:
            return [model.model_dump() for model in self.client.models.list()]
        except openai.OpenAIError as error:
            raise ConversionError(str(error)) from error

    def ping(self) -> dict[str, Any]:
        """Send a short prompt to check that the key and model work."""

        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": "You are a helpful assistant."},
                    {
                        "role": "user",
                        "content": "Hello, are you working correctly? Please respond with a short message.",
                    },
                ],
                max_tokens=50,
            )
        except openai.OpenAIError as error:
            raise ConversionError(str(error)) from error
        return response.model_dump()
