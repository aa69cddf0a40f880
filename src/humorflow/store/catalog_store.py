"""JSON catalog store for local and offline runs.

Lets the pipeline run without a Supabase project: steps and models are read
from a single JSON file using the same column names as the database tables,
so rows can be exported from Supabase and pasted in unchanged::

    {
      "flavors": {
        "12": [
          {"id": 101, "order_by": 1, "llm_input_type_id": 1,
           "llm_model_id": 3, "llm_system_prompt": "...", "llm_user_prompt": "..."}
        ]
      },
      "models": [
        {"id": 3, "name": "Gemma 3 27B", "provider_model_id": "google/gemma-3-27b-it:free",
         "llm_provider_id": 1, "is_temperature_supported": true}
      ]
    }

The file is re-read on every fetch, so edits apply to the next run without a
restart.

Authorization is token based: tokens listed in ``admin_tokens`` are
administrators, any other non-empty token is an authenticated non-admin, and
a missing token is unauthenticated.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from humorflow.core.config import HumorflowConfig
from humorflow.core.errors import StoreError
from humorflow.core.models import AccessCheck, LLMModel, Step
from humorflow.store.base import ConfigStore

logger = logging.getLogger(__name__)


class CatalogStore(ConfigStore):
    """Reads steps and models from a JSON catalog file or an in-memory dict."""

    name = "catalog"

    def __init__(
        self,
        path: Path | None = None,
        admin_tokens: list[str] | None = None,
        data: dict[str, Any] | None = None,
    ) -> None:
        if path is None and data is None:
            raise ValueError("CatalogStore needs a catalog path or catalog data")
        self.path = path
        self.admin_tokens = frozenset(admin_tokens or [])
        self._data = data

    @classmethod
    def from_config(cls, config: HumorflowConfig) -> CatalogStore:
        return cls(path=config.catalog_file, admin_tokens=config.admin_tokens)

    def _load(self) -> dict[str, Any]:
        """Return the catalog contents.

        Raises:
            StoreError: The file is missing, unreadable or not a JSON object.
        """
        if self._data is not None:
            return self._data

        try:
            with open(self.path, encoding="utf-8") as handle:
                data = json.load(handle)
        except (OSError, json.JSONDecodeError) as e:
            raise StoreError(f"Cannot read catalog {self.path}: {e}") from e

        if not isinstance(data, dict):
            raise StoreError(f"Catalog {self.path} must contain a JSON object")
        return data

    def authorize(self, access_token: str | None) -> AccessCheck:
        if not access_token:
            return AccessCheck(is_authenticated=False)
        return AccessCheck(is_authenticated=True, is_admin=access_token in self.admin_tokens)

    def fetch_steps(self, flavor_id: int | str) -> list[Step]:
        flavors = self._load().get("flavors") or {}
        rows = flavors.get(str(flavor_id)) or []
        try:
            steps = [Step.from_row(row) for row in rows]
        except (KeyError, TypeError, ValueError) as e:
            raise StoreError(f"Malformed step row for flavor {flavor_id}: {e}") from e
        return sorted(steps, key=lambda s: s.order_index)

    def fetch_models(self) -> list[LLMModel]:
        try:
            rows = self._load().get("models") or []
            return [LLMModel.from_row(row) for row in rows]
        except (StoreError, KeyError, TypeError) as e:
            logger.warning("Failed to load model catalog: %s", e)
            return []
