"""Client for the external markdown conversion service."""

from __future__ import annotations

from dataclasses import dataclass
from typing import IO

import requests
from flask import current_app

from utils.errors import ConversionError


@dataclass(frozen=True)
class ConversionResult:
    """Markdown plus the metadata the service reports about the source."""

    markdown: str
    content_type: str
    conversion_method: str
    processing_time: float
    file_size: int
    original_url: str | None = None

    @classmethod
    def from_payload(cls, payload: dict) -> "ConversionResult":
        try:
            metadata = payload["metadata"] or {}
            return cls(
                markdown=payload["result"] or "",
                content_type=metadata.get("content_type") or "application/octet-stream",
                conversion_method=metadata.get("conversion_method") or "unknown",
                processing_time=float(metadata.get("processing_time") or 0),
                file_size=int(metadata.get("file_size") or 0),
                original_url=metadata.get("original_url"),
            )
        except (KeyError, TypeError, ValueError) as error:
            raise ConversionError(f"Unexpected conversion response: {error}") from error


class ConversionClient:
    """POSTs files or URLs to ``{base_url}/convert``."""

    def __init__(self, base_url: str, api_key: str, timeout: float = 120):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout

    @classmethod
    def from_app(cls) -> "ConversionClient":
        config = current_app.config
        return cls(
            config["CONVERSION_API_URL"],
            config.get("CONVERSION_API_KEY", ""),
            config.get("CONVERSION_TIMEOUT", 120),
        )

    def _openai_fields(self, openai_api_key: str | None, openai_model: str | None) -> dict:
        if not openai_api_key:
            return {}
        return {"openai_api_key": openai_api_key, "openai_model": openai_model or ""}

    def _post(self, **kwargs) -> ConversionResult:
        url = f"{self.base_url}/convert"
        try:
            response = requests.post(
                url,
                headers={"X-API-Key": self.api_key},
                timeout=self.timeout,
                **kwargs,
            )
            response.raise_for_status()
            payload = response.json()
        except requests.RequestException as error:
            current_app.logger.error("Conversion request to %s failed: %s", url, error)
            raise ConversionError(str(error)) from error
        except ValueError as error:
            raise ConversionError("Conversion service returned invalid JSON.") from error

        return ConversionResult.from_payload(payload)

    def convert_file(
        self,
        stream: IO[bytes],
        filename: str,
        content_type: str,
        *,
        openai_api_key: str | None = None,
        openai_model: str | None = None,
    ) -> ConversionResult:
        """Convert an uploaded file."""

        return self._post(
            files={"file": (filename, stream, content_type)},
            data=self._openai_fields(openai_api_key, openai_model),
        )

    def convert_url(
        self,
        url: str,
        *,
        openai_api_key: str | None = None,
        openai_model: str | None = None,
    ) -> ConversionResult:
        """Convert the page or file behind ``url``."""

        data = {"url": url}
        data.update(self._openai_fields(openai_api_key, openai_model))
        return self._post(data=data)
