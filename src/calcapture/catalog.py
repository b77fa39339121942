"""Model catalog fetcher with a replace-on-success cache.

A successful fetch overwrites the provider's cached list wholesale; a failed
fetch raises and leaves whatever was cached before untouched.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping

from calcapture.exceptions import MissingCredential, UnsupportedMethod
from calcapture.providers import ProviderAdapter, default_adapters
from calcapture.settings_store import SettingsStore

logger = logging.getLogger(__name__)


class ModelCatalog:
    """Discover provider models and cache them in the settings store.

    Args:
        store: Settings store holding the model cache.
        adapters: Provider-name -> adapter mapping.  Defaults to
            :func:`~calcapture.providers.default_adapters`.
    """

    def __init__(
        self,
        store: SettingsStore,
        adapters: Mapping[str, ProviderAdapter] | None = None,
    ) -> None:
        self._store = store
        self._adapters = dict(adapters) if adapters is not None else default_adapters()

    @property
    def providers(self) -> list[str]:
        return sorted(self._adapters)

    def fetch_models(self, provider: str, api_key: str) -> list[str]:
        """Fetch, filter and cache the model list for *provider*.

        Args:
            provider: Provider name (``"openai"``, ``"gemini"``, ``"claude"``).
            api_key: Key to authenticate the listing call.

        Returns:
            The filtered model identifiers, in the order the vendor listed
            them.  This exact list is now the cached one.

        Raises:
            UnsupportedMethod: If *provider* is unknown.
            MissingCredential: If *api_key* is empty.
            ProviderError: If the listing call fails; the cache is unchanged.
        """
        adapter = self._adapters.get(provider)
        if adapter is None:
            raise UnsupportedMethod(provider, kind="provider")
        if not api_key or not api_key.strip():
            logger.error("No API key for %s", provider)
            raise MissingCredential(provider)

        logger.info("Fetching models for %s...", provider)
        models = adapter.fetch_models(api_key)
        if not models:
            logger.warning("No models returned from %s", provider)

        self._store.save_cached_models(provider, models)
        logger.info("Connected to %s - loaded %d models", provider, len(models))
        return models

    def cached_models(self, provider: str) -> list[str]:
        """Return the cached list for *provider* (empty when never fetched)."""
        return self._store.cached_models(provider)
