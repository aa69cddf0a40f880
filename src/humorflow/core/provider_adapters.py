"""Base classes and registry for completion provider adapters.

This module provides the foundation for supporting multiple completion APIs in
humorflow. Each provider (OpenRouter, Gemini, etc.) has its own adapter that
implements a common interface while handling provider-specific request and
response shapes.

Provider Adapter Pattern
------------------------
The adapter pattern lets the completion client talk to different providers
through one interface. Each adapter encapsulates:
- Endpoint URL construction
- Authentication and attribution headers
- Request body shape (messages, image parts, sampling parameters)
- Extraction of the completion text from the response body

The HTTP call itself, status-code handling, and fallback between model
candidates stay in :class:`~humorflow.core.completion.CompletionClient` and
:func:`~humorflow.core.candidates.attempt_candidates`, so every provider gets
the same error semantics.

Usage Example
-------------
Using the registry to instantiate an adapter:

    >>> from humorflow.core.provider_adapters import provider_registry
    >>> from humorflow.core.config import config
    >>>
    >>> print(provider_registry.list_available())
    ['gemini', 'openrouter']
    >>>
    >>> adapter = provider_registry.instantiate("openrouter", config)
    >>> request = adapter.build_request(
    ...     model_id="google/gemma-3-27b-it:free",
    ...     system_prompt="You write captions.",
    ...     user_prompt="Caption this image.",
    ...     api_key="sk-or-...",
    ... )

See Also
--------
- CompletionClient: Executes adapter requests and classifies failures
- HumorflowConfig: Provider selection and attribution settings
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from .config import HumorflowConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProviderRequest:
    """A fully built HTTP request for one completion attempt.

    Attributes
    ----------
    url : str
        Absolute endpoint URL
    headers : dict[str, str]
        Request headers, credentials included
    body : dict[str, Any]
        JSON body
    """

    url: str
    headers: dict[str, str] = field(default_factory=dict)
    body: dict[str, Any] = field(default_factory=dict)


class ProviderAdapterBase(ABC):
    """Abstract base class for all completion provider adapters.

    Adapters translate the provider-neutral completion call (model, system
    prompt, user prompt, optional image, optional temperature) into the
    provider's wire format and back.

    Each adapter must implement:
    - Request construction (URL, headers, JSON body)
    - Completion text extraction from a successful response

    Attributes
    ----------
    name : str
        Registry key, matching ``HumorflowConfig.completion_provider``
    label : str
        Human-readable provider name used in error messages
    description : str
        Brief description of the provider
    default_base_url : str
        API base URL used when the configuration does not override it
    config : HumorflowConfig
        Configuration object containing provider settings
    base_url : str
        Effective API base URL, without trailing slash

    Notes
    -----
    - Adapters are stateless apart from configuration and are shared by all
      concurrent runs
    - ``extract_text`` must never raise on an unexpected response shape; it
      returns an empty string instead

    Examples
    --------
    Creating a custom adapter:

        >>> class MyProviderAdapter(ProviderAdapterBase):
        ...     name = "my-provider"
        ...     label = "My Provider"
        ...     default_base_url = "https://api.example.com/v1"
        ...
        ...     def build_request(self, model_id, system_prompt, user_prompt, **kwargs):
        ...         ...
        ...
        ...     def extract_text(self, data):
        ...         ...
        >>>
        >>> from humorflow.core.provider_adapters import provider_registry
        >>> provider_registry.register(MyProviderAdapter)
    """

    name: str = "base"
    label: str = "Base Provider"
    description: str = "Base class for completion provider adapters"
    default_base_url: str = ""
    version: str = "0.1.0"

    def __init__(self, config: HumorflowConfig) -> None:
        """Initialize the provider adapter.

        Args:
            config: Configuration object containing provider settings
        """
        self.config = config
        self.base_url = (config.completion_base_url or self.default_base_url).rstrip("/")

        logger.info(f"Initialized {self.label} adapter ({self.base_url})")

    @abstractmethod
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
        """Build the HTTP request for one completion attempt.

        Args:
            model_id: Provider model identifier (one candidate)
            system_prompt: Interpolated system prompt; omitted when empty
            user_prompt: Interpolated user prompt
            api_key: Provider credential
            image_base64: Base64 image data, attached only together with image_mime
            image_mime: MIME type of the image
            temperature: Sampling temperature; omitted when None

        Returns
        -------
        ProviderRequest
            URL, headers and JSON body to POST
        """
        pass

    @abstractmethod
    def extract_text(self, data: Any) -> str:
        """Extract the completion text from a successful response body.

        Args:
            data: Parsed JSON response

        Returns
        -------
        str
            The first completion's text, or "" if the shape is unexpected
        """
        pass

    @staticmethod
    def has_image(image_base64: str | None, image_mime: str | None) -> bool:
        """Return True when both image data and its MIME type are present."""
        return bool(image_base64 and image_mime)

    def get_adapter_info(self) -> dict[str, Any]:
        """Get information about this provider adapter.

        Returns
        -------
        dict[str, Any]
            Dictionary containing adapter metadata
        """
        return {
            "name": self.name,
            "label": self.label,
            "description": self.description,
            "base_url": self.base_url,
            "version": self.version,
        }


class ProviderRegistry:
    """Registry for managing available provider adapters.

    The registry provides a central location for discovering and instantiating
    provider adapters by the name used in configuration.

    Usage
    -----
    Registering a new adapter:

        >>> from humorflow.core.provider_adapters import provider_registry
        >>> provider_registry.register(MyProviderAdapter)

    Instantiating an adapter:

        >>> adapter = provider_registry.instantiate("openrouter", config)

    Notes
    -----
    - Adapters must be registered before they can be instantiated
    - Registry is global and shared across the application
    """

    def __init__(self) -> None:
        """Initialize the provider registry."""
        self._adapters: dict[str, type[ProviderAdapterBase]] = {}

    def register(self, adapter_class: type[ProviderAdapterBase]) -> type[ProviderAdapterBase]:
        """Register a provider adapter class.

        Can be used as a class decorator.

        Args:
            adapter_class: Provider adapter class to register

        Returns
        -------
        type[ProviderAdapterBase]
            The registered class, unchanged
        """
        adapter_name = adapter_class.name

        if adapter_name in self._adapters:
            logger.warning(f"Provider adapter '{adapter_name}' is already registered, overwriting")

        self._adapters[adapter_name] = adapter_class
        logger.debug(f"Registered provider adapter: {adapter_name}")
        return adapter_class

    def instantiate(self, adapter_name: str, config: HumorflowConfig) -> ProviderAdapterBase:
        """Create an instance of a registered provider adapter.

        Args:
            adapter_name: Name of the adapter to instantiate
            config: Configuration object

        Returns
        -------
        ProviderAdapterBase
            New instance of the specified adapter

        Raises
        ------
        KeyError
            If adapter_name is not registered
        """
        if adapter_name not in self._adapters:
            available = ", ".join(self.list_available())
            raise KeyError(
                f"Provider adapter '{adapter_name}' not found. " f"Available adapters: {available}"
            )

        instance = self._adapters[adapter_name](config=config)
        logger.info(f"Instantiated provider adapter: {adapter_name}")
        return instance

    def list_available(self) -> list[str]:
        """List all registered adapter names."""
        return list(self._adapters.keys())


# Global provider registry instance
provider_registry = ProviderRegistry()
