"""Supabase-backed configuration store.

Uses the official Supabase Python client. The backend should run with the
service role key: it reads ``profiles`` for other users and must see every
flavor's steps regardless of row-level security.

Tables Read
-----------
=======================  ==================================================
Table                    Columns
=======================  ==================================================
``profiles``             ``id``, ``is_superadmin``
``humor_flavor_steps``   ``*`` filtered by ``humor_flavor_id``, ordered by
                         ``order_by``
``llm_models``           ``id``, ``name``, ``provider_model_id``,
                         ``llm_provider_id``, ``is_temperature_supported``
=======================  ==================================================
"""

from __future__ import annotations

import logging

from postgrest.exceptions import APIError
from supabase import Client, create_client

from humorflow.core.config import HumorflowConfig
from humorflow.core.errors import StoreError
from humorflow.core.models import AccessCheck, LLMModel, Step
from humorflow.store.base import ConfigStore

logger = logging.getLogger(__name__)

MODEL_COLUMNS = "id, name, provider_model_id, llm_provider_id, is_temperature_supported"


class SupabaseStore(ConfigStore):
    """Reads users, steps and models from a Supabase project."""

    name = "supabase"

    def __init__(self, client: Client) -> None:
        self._client = client

    @classmethod
    def from_config(cls, config: HumorflowConfig) -> SupabaseStore:
        """Create a store from the configured project URL and key.

        Raises:
            StoreError: URL or key is missing.
        """
        if not config.supabase_url or not config.supabase_key:
            raise StoreError(
                "Supabase is not configured (set SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY)"
            )
        return cls(create_client(config.supabase_url, config.supabase_key))

    def authorize(self, access_token: str | None) -> AccessCheck:
        if not access_token:
            return AccessCheck(is_authenticated=False)

        try:
            response = self._client.auth.get_user(access_token)
        except Exception as e:
            # Expired, revoked and malformed tokens all surface as auth errors.
            logger.info("Rejected access token: %s", e)
            return AccessCheck(is_authenticated=False)

        user = getattr(response, "user", None) if response else None
        if user is None:
            return AccessCheck(is_authenticated=False)

        try:
            result = (
                self._client.table("profiles")
                .select("is_superadmin")
                .eq("id", user.id)
                .limit(1)
                .execute()
            )
        except APIError as e:
            logger.warning("Could not read profile for user %s: %s", user.id, e)
            return AccessCheck(is_authenticated=True, is_admin=False)

        rows = result.data or []
        is_admin = bool(rows and rows[0].get("is_superadmin"))
        return AccessCheck(is_authenticated=True, is_admin=is_admin)

    def fetch_steps(self, flavor_id: int | str) -> list[Step]:
        try:
            result = (
                self._client.table("humor_flavor_steps")
                .select("*")
                .eq("humor_flavor_id", flavor_id)
                .order("order_by", desc=False)
                .execute()
            )
        except APIError as e:
            raise StoreError(f"Failed to load steps for flavor {flavor_id}: {e}") from e

        return [Step.from_row(row) for row in result.data or []]

    def fetch_models(self) -> list[LLMModel]:
        try:
            result = self._client.table("llm_models").select(MODEL_COLUMNS).execute()
        except APIError as e:
            # Steps still run without a catalog; they fall back to the default model.
            logger.warning("Failed to load model catalog: %s", e)
            return []

        return [LLMModel.from_row(row) for row in result.data or []]
