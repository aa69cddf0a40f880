"""Completion provider adapters.

Importing this package registers every built-in adapter with
:data:`~humorflow.core.provider_adapters.provider_registry`.
"""

from humorflow.core.adapters.gemini import GeminiAdapter
from humorflow.core.adapters.openrouter import OpenRouterAdapter

__all__ = ["GeminiAdapter", "OpenRouterAdapter"]
