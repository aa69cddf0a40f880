"""Completion client: one HTTP call to the provider per model candidate.

The client owns the provider-neutral part of a completion attempt:

- refusing to call out when no credential is configured
- sending the adapter-built request through a shared ``httpx.Client``
- classifying the response

Status Handling
---------------
=============  ==========================================================
Status         Outcome
=============  ==========================================================
2xx            :class:`Completion` with the extracted text ("" when the
               body has an unexpected shape)
429, 404       :class:`CandidateUnavailableError` (fallback-eligible)
anything else  :class:`CompletionError` with status and body text
=============  ==========================================================

Transport failures (timeouts, refused connections) are fatal for the step,
exactly like non-recoverable HTTP statuses. Nothing here retries; fallback
between candidates is :func:`~humorflow.core.candidates.attempt_candidates`'s
job.
"""

from __future__ import annotations

import logging

import httpx

from humorflow.core.config import HumorflowConfig
from humorflow.core.errors import (
    CandidateUnavailableError,
    CompletionError,
    ConfigurationMissingError,
)
from humorflow.core.models import Completion
from humorflow.core.provider_adapters import ProviderAdapterBase, provider_registry

logger = logging.getLogger(__name__)

# Statuses that mean "try another candidate": rate limited, unknown model.
FALLBACK_STATUSES = frozenset({429, 404})


class CompletionClient:
    """Performs single completion requests against the configured provider.

    Attributes:
        adapter: Provider adapter that shapes requests and parses responses.
        api_key: Provider credential, or None when not configured.
        timeout: Per-request timeout in seconds, or None for the HTTP
            client's own default.
    """

    def __init__(
        self,
        adapter: ProviderAdapterBase,
        http_client: httpx.Client,
        api_key: str | None,
        timeout: float | None = None,
    ) -> None:
        self.adapter = adapter
        self.api_key = api_key
        self.timeout = timeout
        self._http = http_client

    @classmethod
    def from_config(cls, config: HumorflowConfig, http_client: httpx.Client) -> CompletionClient:
        """Build a client for the provider named in the configuration.

        Args:
            config: Application configuration.
            http_client: Shared HTTP client (owned by the caller).

        Returns:
            A ready-to-use completion client.
        """
        adapter = provider_registry.instantiate(config.completion_provider, config)
        return cls(
            adapter,
            http_client,
            config.completion_api_key,
            timeout=config.request_timeout_seconds,
        )

    def complete(
        self,
        model_id: str,
        system_prompt: str,
        user_prompt: str,
        image_base64: str | None = None,
        image_mime: str | None = None,
        temperature: float | None = None,
    ) -> Completion:
        """Request one completion from one model candidate.

        Args:
            model_id: Provider model identifier to call.
            system_prompt: Interpolated system prompt ("" to omit).
            user_prompt: Interpolated user prompt.
            image_base64: Base64-encoded image, or None for text-only.
            image_mime: MIME type of the image.
            temperature: Sampling temperature, or None to leave it unset.

        Returns:
            The completion text and the model that served it.

        Raises:
            ConfigurationMissingError: No API key is configured.
            CandidateUnavailableError: The provider answered 429 or 404.
            CompletionError: Any other non-2xx status or a transport failure.
        """
        if not self.api_key:
            raise ConfigurationMissingError(
                "Completion API key not configured "
                "(set OPENROUTER_API_KEY or HUMORFLOW_COMPLETION_API_KEY)"
            )

        request = self.adapter.build_request(
            model_id,
            system_prompt,
            user_prompt,
            api_key=self.api_key,
            image_base64=image_base64,
            image_mime=image_mime,
            temperature=temperature,
        )

        logger.debug("Requesting completion from %s (model=%s).", self.adapter.label, model_id)
        try:
            timeout = self.timeout if self.timeout is not None else httpx.USE_CLIENT_DEFAULT
            response = self._http.post(
                request.url, headers=request.headers, json=request.body, timeout=timeout
            )
        except httpx.HTTPError as e:
            raise CompletionError(f"{self.adapter.label} request failed: {e}") from e

        if response.is_success:
            try:
                data = response.json()
            except ValueError:
                logger.warning("%s returned a non-JSON success body.", self.adapter.label)
                data = None
            return Completion(text=self.adapter.extract_text(data), served_model=model_id)

        if response.status_code in FALLBACK_STATUSES:
            raise CandidateUnavailableError(model_id, response.status_code, response.text)

        raise CompletionError(
            f"{self.adapter.label} API error ({response.status_code}): {response.text}"
        )
