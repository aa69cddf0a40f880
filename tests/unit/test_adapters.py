"""Tests for humorflow.core.provider_adapters and the built-in adapters.

Tests cover:
- ProviderRegistry registration, lookup and instantiation.
- OpenRouter request shape (messages, image part, attribution headers).
- Gemini request shape (parts, systemInstruction, generationConfig).
- Text extraction, including unexpected response shapes.
"""

from __future__ import annotations

import pytest

from humorflow.core.adapters import GeminiAdapter, OpenRouterAdapter
from humorflow.core.config import HumorflowConfig
from humorflow.core.provider_adapters import (
    ProviderAdapterBase,
    ProviderRegistry,
    provider_registry,
)


class TestProviderRegistry:
    """Verify adapter registration and instantiation."""

    def test_builtin_adapters_registered(self):
        """Both built-in adapters are available by name."""
        available = provider_registry.list_available()
        assert "openrouter" in available
        assert "gemini" in available

    def test_instantiate_unknown_adapter(self, test_config: HumorflowConfig):
        """Unknown names raise KeyError listing what is available."""
        with pytest.raises(KeyError, match="Available adapters"):
            provider_registry.instantiate("missing", test_config)

    def test_register_as_decorator(self, test_config: HumorflowConfig):
        """register() returns the class so it can decorate definitions."""
        registry = ProviderRegistry()

        @registry.register
        class EchoAdapter(ProviderAdapterBase):
            name = "echo"

            def build_request(self, model_id, system_prompt, user_prompt, **kwargs):
                raise NotImplementedError

            def extract_text(self, data):
                return ""

        assert registry.list_available() == ["echo"]
        assert isinstance(registry.instantiate("echo", test_config), EchoAdapter)

    def test_base_url_override(self, test_config: HumorflowConfig):
        """completion_base_url replaces the adapter default, without trailing slash."""
        cfg = test_config.model_copy(update={"completion_base_url": "http://localhost:9999/v1/"})
        adapter = OpenRouterAdapter(cfg)
        assert adapter.base_url == "http://localhost:9999/v1"

    def test_adapter_info(self, test_config: HumorflowConfig):
        info = OpenRouterAdapter(test_config).get_adapter_info()
        assert info["name"] == "openrouter"
        assert info["base_url"] == "https://openrouter.ai/api/v1"


class TestOpenRouterAdapter:
    """Verify OpenRouter chat completion requests."""

    @pytest.fixture
    def adapter(self, test_config: HumorflowConfig) -> OpenRouterAdapter:
        return OpenRouterAdapter(test_config)

    def test_endpoint_and_headers(self, adapter: OpenRouterAdapter):
        """Requests go to /chat/completions with bearer auth and attribution."""
        request = adapter.build_request("m", "", "hi", api_key="sk-test")
        assert request.url == "https://openrouter.ai/api/v1/chat/completions"
        assert request.headers["Authorization"] == "Bearer sk-test"
        assert request.headers["Content-Type"] == "application/json"
        assert request.headers["HTTP-Referer"] == "https://humorhw2.vercel.app"
        assert request.headers["X-Title"] == "Humor Admin Pipeline"

    def test_text_only_messages(self, adapter: OpenRouterAdapter):
        """A system message precedes a plain-string user message."""
        request = adapter.build_request("m", "be funny", "caption this", api_key="k")
        assert request.body["model"] == "m"
        assert request.body["messages"] == [
            {"role": "system", "content": "be funny"},
            {"role": "user", "content": "caption this"},
        ]

    def test_empty_system_prompt_omitted(self, adapter: OpenRouterAdapter):
        request = adapter.build_request("m", "", "caption this", api_key="k")
        assert [m["role"] for m in request.body["messages"]] == ["user"]

    def test_image_part_before_text(self, adapter: OpenRouterAdapter):
        """The image is a data URI part placed before the text part."""
        request = adapter.build_request(
            "m", "", "describe", api_key="k", image_base64="QUJD", image_mime="image/png"
        )
        content = request.body["messages"][0]["content"]
        assert content[0] == {
            "type": "image_url",
            "image_url": {"url": "data:image/png;base64,QUJD"},
        }
        assert content[1] == {"type": "text", "text": "describe"}

    def test_image_without_mime_is_not_sent(self, adapter: OpenRouterAdapter):
        """Image data without a MIME type falls back to a text-only message."""
        request = adapter.build_request("m", "", "describe", api_key="k", image_base64="QUJD")
        assert request.body["messages"][0]["content"] == "describe"

    def test_temperature_only_when_given(self, adapter: OpenRouterAdapter):
        assert "temperature" not in adapter.build_request("m", "", "u", api_key="k").body
        body = adapter.build_request("m", "", "u", api_key="k", temperature=0.0).body
        assert body["temperature"] == 0.0

    def test_extract_text(self, adapter: OpenRouterAdapter):
        data = {"choices": [{"message": {"content": "a caption"}}]}
        assert adapter.extract_text(data) == "a caption"

    @pytest.mark.parametrize(
        "data",
        [
            None,
            {},
            {"choices": []},
            {"choices": [{"message": {}}]},
            {"choices": [{"message": {"content": None}}]},
        ],
    )
    def test_extract_text_unexpected_shape(self, adapter: OpenRouterAdapter, data):
        """Malformed bodies yield an empty string instead of raising."""
        assert adapter.extract_text(data) == ""


class TestGeminiAdapter:
    """Verify Gemini generateContent requests."""

    @pytest.fixture
    def adapter(self, test_config: HumorflowConfig) -> GeminiAdapter:
        return GeminiAdapter(test_config)

    def test_endpoint_and_auth(self, adapter: GeminiAdapter):
        request = adapter.build_request("gemini-2.0-flash", "", "hi", api_key="g-key")
        assert request.url == (
            "https://generativelanguage.googleapis.com/v1beta/models/"
            "gemini-2.0-flash:generateContent"
        )
        assert request.headers["x-goog-api-key"] == "g-key"

    def test_body_shape(self, adapter: GeminiAdapter):
        """System prompt, inline image and temperature map onto Gemini fields."""
        request = adapter.build_request(
            "gemini-2.0-flash",
            "be funny",
            "describe",
            api_key="k",
            image_base64="QUJD",
            image_mime="image/jpeg",
            temperature=0.4,
        )
        body = request.body
        assert body["contents"][0]["parts"] == [
            {"inline_data": {"mime_type": "image/jpeg", "data": "QUJD"}},
            {"text": "describe"},
        ]
        assert body["systemInstruction"] == {"parts": [{"text": "be funny"}]}
        assert body["generationConfig"] == {"temperature": 0.4}

    def test_optional_fields_omitted(self, adapter: GeminiAdapter):
        body = adapter.build_request("g", "", "describe", api_key="k").body
        assert "systemInstruction" not in body
        assert "generationConfig" not in body
        assert body["contents"][0]["parts"] == [{"text": "describe"}]

    def test_extract_text_joins_parts(self, adapter: GeminiAdapter):
        data = {"candidates": [{"content": {"parts": [{"text": "a "}, {"text": "caption"}]}}]}
        assert adapter.extract_text(data) == "a caption"

    def test_extract_text_unexpected_shape(self, adapter: GeminiAdapter):
        assert adapter.extract_text({"candidates": []}) == ""
        assert adapter.extract_text(None) == ""
