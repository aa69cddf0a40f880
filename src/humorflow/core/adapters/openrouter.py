"""OpenRouter provider adapter.

OpenRouter exposes an OpenAI-compatible chat completions endpoint in front of
many model vendors, including a rotating set of free-tier models. Free-tier
models are frequently rate limited or withdrawn, which is why this adapter is
normally paired with the "preference" candidate strategy.

OpenRouter Specifics
--------------------
- **Endpoint**: ``POST {base_url}/chat/completions``
- **Auth**: ``Authorization: Bearer <key>``
- **Attribution**: ``HTTP-Referer`` and ``X-Title`` identify the app for
  free-tier usage accounting
- **Images**: sent as an ``image_url`` content part holding a
  ``data:<mime>;base64,<data>`` URI, before the text part
- **Response**: only ``choices[0].message.content`` is read

Any other OpenAI-compatible endpoint can be targeted by overriding
``HUMORFLOW_COMPLETION_BASE_URL``.
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
class OpenRouterAdapter(ProviderAdapterBase):
    """Adapter for OpenRouter's OpenAI-compatible chat completions API."""

    name = "openrouter"
    label = "OpenRouter"
    description = "OpenAI-compatible chat completions via OpenRouter"
    default_base_url = "https://openrouter.ai/api/v1"

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
        messages: list[dict[str, Any]] = []

        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})

        if self.has_image(image_base64, image_mime):
            messages.append(
                {
                    "role": "user",
                    "content": [
                        {
                            "type": "image_url",
                            "image_url": {"url": f"data:{image_mime};base64,{image_base64}"},
                        },
                        {"type": "text", "text": user_prompt},
                    ],
                }
            )
        else:
            messages.append({"role": "user", "content": user_prompt})

        body: dict[str, Any] = {"model": model_id, "messages": messages}
        if temperature is not None:
            body["temperature"] = temperature

        headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
            "HTTP-Referer": self.config.app_referer,
            "X-Title": self.config.app_title,
        }

        return ProviderRequest(url=f"{self.base_url}/chat/completions", headers=headers, body=body)

    def extract_text(self, data: Any) -> str:
        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            logger.warning("Unexpected OpenRouter response shape, returning empty output")
            return ""
        return content if isinstance(content, str) else ""
