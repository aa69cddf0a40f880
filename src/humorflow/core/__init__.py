"""Core functionality for the caption pipeline.

This module provides the core components of humorflow:

- **HumorflowConfig / config**: Configuration management using Pydantic Settings
- **Provider Adapters**: Pluggable request/response shapes per completion API
- **provider_registry**: Registry for discovering and instantiating adapters
- **ModelCandidateResolver**: Ordered model candidates per step modality
- **CompletionClient**: One HTTP completion call per candidate
- **PipelineExecutor**: Authorization, loading, step sequencing and reporting

Architecture Overview
---------------------
The core module follows a layered architecture:

1. **Configuration Layer** (config.py):
   - Environment-based configuration using Pydantic Settings
   - All settings prefixed with HUMORFLOW_ in .env files

2. **Provider Layer** (provider_adapters.py, adapters/, completion.py):
   - Unified interface for different completion APIs
   - Provider-specific implementations (OpenRouter, Gemini)
   - Status-code classification shared by all providers

3. **Sequencing Layer** (interpolation.py, candidates.py, executor.py):
   - Prompt variable substitution across steps
   - Candidate fallback on rate limits and unavailable models
   - Halt-on-first-error execution

Usage Example
-------------
    import httpx

    from humorflow.core import CompletionClient, PipelineExecutor, config
    from humorflow.core.executor import PipelineRunRequest
    from humorflow.store import create_store

    with httpx.Client(timeout=config.request_timeout_seconds) as http:
        client = CompletionClient.from_config(config, http)
        executor = PipelineExecutor.from_config(config, create_store(config), client)
        run = executor.run(PipelineRunRequest(flavor_id=12), access_token)

See Also
--------
- PipelineExecutor: Run lifecycle and halt semantics
- provider_registry: Registry for provider discovery
- HumorflowConfig: Configuration options and environment variables
"""

from humorflow.core.config import HumorflowConfig, config
from humorflow.core.provider_adapters import ProviderAdapterBase, provider_registry

# Import adapters to ensure they're registered
from humorflow.core.adapters import GeminiAdapter, OpenRouterAdapter  # noqa: F401, I001
from humorflow.core.candidates import CandidateTable, ModelCandidateResolver, attempt_candidates
from humorflow.core.completion import CompletionClient
from humorflow.core.executor import PipelineExecutor, PipelineRunRequest
from humorflow.core.interpolation import interpolate_prompt

__all__ = [
    "CandidateTable",
    "CompletionClient",
    "HumorflowConfig",
    "ModelCandidateResolver",
    "PipelineExecutor",
    "PipelineRunRequest",
    "ProviderAdapterBase",
    "attempt_candidates",
    "config",
    "interpolate_prompt",
    "provider_registry",
]
