"""Configuration stores: authorization, flavor steps and the model catalog.

Backends
--------
supabase
    Production backend reading the admin console's Supabase tables.
catalog
    JSON file with the same row shapes, for local and offline runs.

Use :func:`create_store` to build the backend named by
``HumorflowConfig.store_backend``.
"""

from humorflow.core.config import HumorflowConfig
from humorflow.store.base import ConfigStore
from humorflow.store.catalog_store import CatalogStore
from humorflow.store.supabase_store import SupabaseStore


def create_store(config: HumorflowConfig) -> ConfigStore:
    """Build the configured store backend.

    Args:
        config: Application configuration.

    Returns:
        A ready-to-use store.

    Raises:
        StoreError: The selected backend is not configured.
    """
    if config.store_backend == "catalog":
        return CatalogStore.from_config(config)
    return SupabaseStore.from_config(config)


__all__ = ["CatalogStore", "ConfigStore", "SupabaseStore", "create_store"]
