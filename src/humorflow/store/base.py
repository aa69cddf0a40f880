"""Interface to the configuration store behind the pipeline.

The executor never writes; it needs three read operations from whatever owns
users, steps and models:

- ``authorize`` - does the access token belong to an administrator?
- ``fetch_steps`` - the steps of one humor flavor
- ``fetch_models`` - the whole LLM model catalog
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from humorflow.core.models import AccessCheck, LLMModel, Step


class ConfigStore(ABC):
    """Read-only source of authorization and pipeline configuration."""

    name: str = "base"

    @abstractmethod
    def authorize(self, access_token: str | None) -> AccessCheck:
        """Check the caller's session.

        Args:
            access_token: Bearer token from the request, or None.

        Returns:
            Whether the token maps to a session, and whether that account
            has the administrator flag.
        """

    @abstractmethod
    def fetch_steps(self, flavor_id: int | str) -> list[Step]:
        """Fetch the steps of a humor flavor, ordered by ``order_index``.

        Raises:
            StoreError: The steps could not be read.
        """

    @abstractmethod
    def fetch_models(self) -> list[LLMModel]:
        """Fetch the complete LLM model catalog."""
