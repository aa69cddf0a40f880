"""Configuration management for the humorflow caption pipeline.

This module provides centralized configuration management using Pydantic Settings.
All configuration is loaded from environment variables with the HUMORFLOW_ prefix,
allowing easy customization without code changes.

Environment Variable Loading
-----------------------------
Configuration values are loaded in the following priority order:
1. Environment variables (HUMORFLOW_* prefix, plus the legacy names listed below)
2. .env file in the project root
3. Default values defined in HumorflowConfig

A few settings also accept the names used by the admin console deployment so the
same environment can serve both:

- ``OPENROUTER_API_KEY`` for ``completion_api_key``
- ``SUPABASE_URL`` / ``NEXT_PUBLIC_SUPABASE_URL`` for ``supabase_url``
- ``SUPABASE_SERVICE_ROLE_KEY`` / ``NEXT_PUBLIC_SUPABASE_ANON_KEY`` for ``supabase_key``

Example .env file:
    HUMORFLOW_COMPLETION_PROVIDER=openrouter
    OPENROUTER_API_KEY=sk-or-...
    SUPABASE_URL=https://xyz.supabase.co
    SUPABASE_SERVICE_ROLE_KEY=...
    HUMORFLOW_TEXT_CANDIDATES='["meta-llama/llama-3.3-70b-instruct:free"]'

Global Configuration Instance
------------------------------
A global `config` instance is created automatically at module import time.
This ensures a single source of truth for all configuration values across
the application.

Usage Example
-------------
    from humorflow.core.config import config

    print(config.completion_provider)
    table = config.candidate_table()

Candidate Tables
----------------
The vision and text candidate lists are ordered preference tables: the first
entry is tried first, later entries only when earlier ones are rate limited
(HTTP 429) or unavailable (HTTP 404). Both lists must be non-empty and must not
repeat an identifier.

See Also
--------
- .env.example: Template with all available configuration options
- HumorflowConfig: Full configuration class documentation
"""

from pathlib import Path
from typing import Literal

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from humorflow.core.candidates import CandidateTable

# Free-tier vision-capable models, most preferred first.
DEFAULT_VISION_CANDIDATES = [
    "google/gemma-3-27b-it:free",
    "google/gemma-3-12b-it:free",
    "nvidia/nemotron-nano-12b-v2-vl:free",
    "mistralai/mistral-small-3.1-24b-instruct:free",
    "google/gemma-3-4b-it:free",
]

# Free-tier text-only models, most preferred first.
DEFAULT_TEXT_CANDIDATES = [
    "meta-llama/llama-3.3-70b-instruct:free",
    "deepseek/deepseek-r1-0528:free",
    "nousresearch/hermes-3-llama-3.1-405b:free",
    "qwen/qwen3-4b:free",
    "google/gemma-3-27b-it:free",
]


class HumorflowConfig(BaseSettings):
    """Main configuration for the humorflow caption pipeline.

    This class uses Pydantic Settings to manage all application configuration.
    Values are loaded from environment variables with the HUMORFLOW_ prefix,
    with fallback to defaults defined here.

    Attributes
    ----------
    Completion Provider Settings:
        completion_provider : Literal["openrouter", "gemini"]
            Name of the registered provider adapter used for every step
        completion_base_url : str | None
            Override for the provider's API base URL
        completion_api_key : str | None
            Bearer credential for the completion API (also OPENROUTER_API_KEY)
        request_timeout_seconds : float
            Timeout for a single completion request
        app_referer : str
            Referrer URL sent for provider usage attribution
        app_title : str
            Application title sent for provider usage attribution

    Candidate Settings:
        candidate_strategy : Literal["preference", "direct"]
            "preference" tries the static candidate tables, "direct" sends
            the step's configured provider model only
        vision_candidates : list[str]
            Ordered candidates for image-and-text steps
        text_candidates : list[str]
            Ordered candidates for text-only steps
        default_provider_model_id : str
            Provider model used when a step names no (known) model
        default_model_label : str
            Display label reported when a step names no (known) model

    Store Settings:
        store_backend : Literal["supabase", "catalog"]
            Where step configuration and the model catalog come from
        supabase_url, supabase_key : str | None
            Supabase project URL and key (service role preferred)
        catalog_file : Path
            JSON catalog used by the "catalog" backend
        admin_tokens : list[str]
            Access tokens treated as administrators by the "catalog" backend

    Server Settings:
        server_host : str
            Bind address for uvicorn
        server_port : int
            Port for uvicorn (1024-65535)
        log_level : str
            Log level passed to uvicorn

    Notes
    -----
    - A missing completion_api_key is not a configuration error at startup;
      it fails the first step that tries to call the provider.
    - Configuration is immutable after initialization. To modify config, set
      environment variables and restart the application.

    Examples
    --------
    Create a custom configuration:

        >>> custom_config = HumorflowConfig(
        ...     completion_provider="gemini",
        ...     candidate_strategy="direct",
        ...     completion_api_key="test-key",
        ... )

    Use the global configuration instance:

        >>> from humorflow.core.config import config
        >>> print(config.candidate_strategy)
        'preference'
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="HUMORFLOW_",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )

    # Completion provider settings
    completion_provider: Literal["openrouter", "gemini"] = Field(
        default="openrouter",
        description="Registered provider adapter used for completion requests",
    )
    completion_base_url: str | None = Field(
        default=None,
        description="Override for the provider API base URL (None = adapter default)",
    )
    completion_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("HUMORFLOW_COMPLETION_API_KEY", "OPENROUTER_API_KEY"),
        description="Bearer credential for the completion API",
    )
    request_timeout_seconds: float = Field(
        default=120.0,
        description="Timeout for a single completion request, in seconds",
        gt=0,
    )
    app_referer: str = Field(
        default="https://humorhw2.vercel.app",
        description="Referrer URL sent to the provider for usage attribution",
    )
    app_title: str = Field(
        default="Humor Admin Pipeline",
        description="Application title sent to the provider for usage attribution",
    )

    # Candidate settings
    candidate_strategy: Literal["preference", "direct"] = Field(
        default="preference",
        description="'preference' uses the candidate tables, 'direct' the step's own model",
    )
    vision_candidates: list[str] = Field(
        default_factory=lambda: list(DEFAULT_VISION_CANDIDATES),
        description="Ordered model candidates for image-and-text steps",
    )
    text_candidates: list[str] = Field(
        default_factory=lambda: list(DEFAULT_TEXT_CANDIDATES),
        description="Ordered model candidates for text-only steps",
    )
    default_provider_model_id: str = Field(
        default="gemini-2.0-flash",
        description="Provider model used when a step has no resolvable model",
        min_length=1,
    )
    default_model_label: str = Field(
        default="Unknown",
        description="Display label for steps without a resolvable model",
    )

    # Store settings
    store_backend: Literal["supabase", "catalog"] = Field(
        default="supabase",
        description="Source of step configuration, model catalog and authorization",
    )
    supabase_url: str | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "HUMORFLOW_SUPABASE_URL", "SUPABASE_URL", "NEXT_PUBLIC_SUPABASE_URL"
        ),
        description="Supabase project URL",
    )
    supabase_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "HUMORFLOW_SUPABASE_KEY",
            "SUPABASE_SERVICE_ROLE_KEY",
            "NEXT_PUBLIC_SUPABASE_ANON_KEY",
        ),
        description="Supabase key (service role key for backend access)",
    )
    catalog_file: Path = Field(
        default=Path("data/catalog.json"),
        description="JSON catalog file for the 'catalog' store backend",
    )
    admin_tokens: list[str] = Field(
        default_factory=list,
        description="Access tokens granted administrator rights by the catalog backend",
    )

    # Server settings
    server_host: str = Field(
        default="0.0.0.0",
        description="Server bind address",
    )
    server_port: int = Field(
        default=8000,
        description="Server port",
        ge=1024,
        le=65535,
    )
    log_level: Literal["critical", "error", "warning", "info", "debug"] = Field(
        default="info",
        description="Log level forwarded to uvicorn",
    )

    @field_validator("vision_candidates", "text_candidates")
    @classmethod
    def _check_candidates(cls, value: list[str]) -> list[str]:
        """Reject empty candidate tables and repeated identifiers."""
        if not value:
            raise ValueError("candidate list must contain at least one model")
        if len(set(value)) != len(value):
            raise ValueError(f"candidate list contains duplicates: {value}")
        return value

    def candidate_table(self) -> CandidateTable:
        """Build the resolver's candidate table from the configured lists.

        Returns:
            CandidateTable holding copies of the vision and text lists
        """
        return CandidateTable(
            vision=tuple(self.vision_candidates),
            text=tuple(self.text_candidates),
        )


# Global configuration instance
# Loads values from environment variables (HUMORFLOW_* prefix plus legacy names)
# and the .env file once, at import time.
config = HumorflowConfig()
