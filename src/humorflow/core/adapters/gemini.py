"""Google Gemini provider adapter.

Talks to the Generative Language REST API directly, addressing models by
their own names (``gemini-2.0-flash`` and friends). This pairs with the
"direct" candidate strategy: each step sends exactly the provider model
configured in ``llm_models``.

Gemini Specifics
----------------
- **Endpoint**: ``POST {base_url}/models/{model}:generateContent``
- **Auth**: ``x-goog-api-key: <key>``
- **System prompt**: ``systemInstruction.parts[].text``
- **Images**: an ``inline_data`` part (MIME type + base64 data) before the
  text part of the single user turn
- **Temperature**: ``generationConfig.temperature``
- **Response**: the text parts of ``candidates[0].content`` joined together
"""

import logging
from typing import Any

from humorflow.core.provider_adapters import (
    ProviderAdapterBase,
    ProviderRequest,
    provider_registry,
)

logger = logging.getLogger(__name__)


@provider_registry.register
class GeminiAdapter(ProviderAdapterBase):
    """Adapter for the Gemini ``generateContent`` API."""

    name = "gemini"
    label = "Gemini"
    description = "Google Generative Language API (generateContent)"
    default_base_url = "https://generativelanguage.googleapis.com/v1beta"

    def build_request(
        self,
        model_id: str,
        system_prompt: str,
        user_prompt: str,
        *,
        api_key: str,
        image_base64: str | None = None,
        image_mime: str | None = None,
        temperature: float | None = None,
    ) -> ProviderRequest:
        parts: list[dict[str, Any]] = []
        if self.has_image(image_base64, image_mime):
            parts.append({"inline_data": {"mime_type": image_mime, "data": image_base64}})
        parts.append({"text": user_prompt})

        body: dict[str, Any] = {"contents": [{"role": "user", "parts": parts}]}
        if system_prompt:
            body["systemInstruction"] = {"parts": [{"text": system_prompt}]}
        if temperature is not None:
            body["generationConfig"] = {"temperature": temperature}

        headers = {
            "x-goog-api-key": api_key,
            "Content-Type": "application/json",
        }

        return ProviderRequest(
            url=f"{self.base_url}/models/{model_id}:generateContent",
            headers=headers,
            body=body,
        )

    def extract_text(self, data: Any) -> str:
        try:
            parts = data["candidates"][0]["content"]["parts"]
        except (KeyError, IndexError, TypeError):
            logger.warning("Unexpected Gemini response shape, returning empty output")
            return ""
        if not isinstance(parts, list):
            return ""
        return "".join(
            part["text"]
            for part in parts
            if isinstance(part, dict) and isinstance(part.get("text"), str)
        )
