"""humorflow - multi-step LLM caption pipeline for the humor admin console."""

__version__ = "0.1.0"

from humorflow.core.config import HumorflowConfig, config
from humorflow.core.executor import PipelineExecutor, PipelineRunRequest
from humorflow.core.provider_adapters import ProviderAdapterBase, provider_registry

__all__ = [
    "HumorflowConfig",
    "PipelineExecutor",
    "PipelineRunRequest",
    "ProviderAdapterBase",
    "config",
    "provider_registry",
]
