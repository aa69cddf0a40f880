"""Shared pytest fixtures for humorflow tests."""

from __future__ import annotations

import json
import shutil
import tempfile
from collections.abc import Callable, Generator
from pathlib import Path
from typing import Any

import httpx
import pytest
from fastapi.testclient import TestClient

from humorflow.core.candidates import CandidateTable, ModelCandidateResolver
from humorflow.core.completion import CompletionClient
from humorflow.core.config import HumorflowConfig
from humorflow.core.executor import DefaultModel, PipelineExecutor
from humorflow.core.provider_adapters import provider_registry
from humorflow.store.catalog_store import CatalogStore

ADMIN_TOKEN = "admin-token"
USER_TOKEN = "user-token"

VISION = ("vision-a", "vision-b", "vision-c")
TEXT = ("text-a", "text-b")


class RecordingTransport:
    """httpx transport handler that records requests and replays scripted responses.

    Each entry of ``responses`` is either an ``httpx.Response`` or a callable
    taking the request and returning one. When the script runs out, every
    further request gets the last entry again.
    """

    def __init__(self, responses: list[Any]) -> None:
        self.responses = list(responses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        index = min(len(self.requests), len(self.responses)) - 1
        response = self.responses[index]
        if callable(response):
            return response(request)
        # Scripted responses may be replayed, so hand out a fresh copy each time.
        return httpx.Response(
            response.status_code, headers=response.headers, content=response.content
        )

    @property
    def bodies(self) -> list[dict[str, Any]]:
        return [json.loads(r.content) for r in self.requests]

    @property
    def models(self) -> list[str]:
        return [body["model"] for body in self.bodies]


def chat_response(text: str, status_code: int = 200) -> httpx.Response:
    """Build an OpenRouter-style chat completion response."""
    return httpx.Response(status_code, json={"choices": [{"message": {"content": text}}]})


def echo_user_prompt(request: httpx.Request) -> httpx.Response:
    """Reply with the text of the request's user message."""
    body = json.loads(request.content)
    content = body["messages"][-1]["content"]
    if isinstance(content, list):
        content = content[-1]["text"]
    return chat_response(content)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files.

    Yields:
        Path to temporary directory

    Cleanup:
        Directory is removed after test completes
    """
    temp_path = Path(tempfile.mkdtemp())
    try:
        yield temp_path
    finally:
        shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def test_config(temp_dir: Path) -> HumorflowConfig:
    """Create a test configuration backed by a catalog file.

    Args:
        temp_dir: Temporary directory from fixture

    Returns:
        HumorflowConfig instance for testing
    """
    return HumorflowConfig(
        _env_file=None,
        completion_provider="openrouter",
        completion_api_key="test-key",
        candidate_strategy="preference",
        vision_candidates=list(VISION),
        text_candidates=list(TEXT),
        store_backend="catalog",
        catalog_file=temp_dir / "catalog.json",
        admin_tokens=[ADMIN_TOKEN],
    )


@pytest.fixture
def catalog_data() -> dict[str, Any]:
    """A three-step flavor (image description, captions, pick) and a model catalog.

    Flavor 12 steps are deliberately listed out of order.
    """
    return {
        "flavors": {
            "12": [
                {
                    "id": 103,
                    "order_by": 3,
                    "llm_input_type_id": 2,
                    "llm_model_id": 2,
                    "llm_temperature": 0.2,
                    "llm_system_prompt": "",
                    "llm_user_prompt": "Pick the best of: ${step2Output}",
                },
                {
                    "id": 101,
                    "order_by": 1,
                    "llm_input_type_id": 1,
                    "llm_model_id": 1,
                    "llm_temperature": 0.7,
                    "llm_system_prompt": "You describe images.",
                    "llm_user_prompt": "Describe. ${imageAdditionalContext}",
                },
                {
                    "id": 102,
                    "order_by": 2,
                    "llm_input_type_id": 2,
                    "llm_model_id": 1,
                    "llm_temperature": 0.9,
                    "llm_system_prompt": "You write jokes.",
                    "llm_user_prompt": "Captions for: ${step1Output}",
                },
            ],
            "13": [
                {
                    "id": 201,
                    "order_by": 1,
                    "llm_input_type_id": 2,
                    "llm_model_id": 999,
                    "llm_temperature": 0.5,
                    "llm_user_prompt": "Hello",
                }
            ],
        },
        "models": [
            {
                "id": 1,
                "name": "Gemma",
                "provider_model_id": "google/gemma-3-27b-it:free",
                "llm_provider_id": 1,
                "is_temperature_supported": True,
            },
            {
                "id": 2,
                "name": "Reasoner",
                "provider_model_id": "deepseek/deepseek-r1-0528:free",
                "llm_provider_id": 1,
                "is_temperature_supported": False,
            },
        ],
    }


@pytest.fixture
def catalog_file(test_config: HumorflowConfig, catalog_data: dict[str, Any]) -> Path:
    """Write the sample catalog to the configured catalog path."""
    test_config.catalog_file.write_text(json.dumps(catalog_data))
    return test_config.catalog_file


@pytest.fixture
def catalog_store(catalog_data: dict[str, Any]) -> CatalogStore:
    """In-memory catalog store with one administrator token."""
    return CatalogStore(data=catalog_data, admin_tokens=[ADMIN_TOKEN])


@pytest.fixture
def resolver() -> ModelCandidateResolver:
    """Preference resolver over the short test candidate tables."""
    return ModelCandidateResolver(CandidateTable(vision=VISION, text=TEXT))


@pytest.fixture
def make_executor(
    test_config: HumorflowConfig,
    catalog_store: CatalogStore,
    resolver: ModelCandidateResolver,
) -> Callable[..., tuple[PipelineExecutor, RecordingTransport]]:
    """Factory building an executor whose HTTP calls hit a scripted transport.

    Returns:
        Callable taking the scripted responses (and optionally ``store`` or
        ``api_key``) and returning ``(executor, transport)``.
    """

    def _make(
        responses: list[Any] | None = None,
        store: CatalogStore | None = None,
        api_key: str | None = "test-key",
        transport: RecordingTransport | None = None,
    ) -> tuple[PipelineExecutor, RecordingTransport]:
        transport = transport or RecordingTransport(responses or [echo_user_prompt])
        http_client = httpx.Client(transport=httpx.MockTransport(transport))
        adapter = provider_registry.instantiate("openrouter", test_config)
        client = CompletionClient(adapter, http_client, api_key)
        executor = PipelineExecutor(store or catalog_store, client, resolver, DefaultModel())
        return executor, transport

    return _make


@pytest.fixture
def make_client(
    test_config: HumorflowConfig,
) -> Callable[..., tuple[CompletionClient, RecordingTransport]]:
    """Factory building an OpenRouter completion client over a scripted transport."""

    def _make(
        responses: list[Any],
        api_key: str | None = "test-key",
    ) -> tuple[CompletionClient, RecordingTransport]:
        transport = RecordingTransport(responses)
        http_client = httpx.Client(transport=httpx.MockTransport(transport))
        adapter = provider_registry.instantiate("openrouter", test_config)
        return CompletionClient(adapter, http_client, api_key), transport

    return _make


@pytest.fixture
def reply() -> Callable[..., httpx.Response]:
    """The chat completion response builder, for scripting transports."""
    return chat_response


@pytest.fixture
def api_transport() -> RecordingTransport:
    """Scripted provider transport used by the API test client."""
    return RecordingTransport([echo_user_prompt])


@pytest.fixture
def test_client(
    make_executor: Callable[..., tuple[PipelineExecutor, RecordingTransport]],
    api_transport: RecordingTransport,
) -> Generator[TestClient, None, None]:
    """FastAPI test client wired to the catalog store and a scripted provider.

    The application lifespan is not started; the executor dependency is
    overridden instead, so no network or Supabase access occurs.
    """
    from humorflow.api.main import app, get_executor

    executor, _ = make_executor(transport=api_transport)
    app.dependency_overrides[get_executor] = lambda: executor
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def admin_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {ADMIN_TOKEN}"}
