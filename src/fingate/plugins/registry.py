"""Plugin registry: build provider plugins on demand and cache them in-process.

Plugins share one pooled ``httpx.AsyncClient`` unless the caller injects its own.
"""

from __future__ import annotations

import httpx

from ..core.config import Settings, get_settings_instance
from ..core.http_client import close_http_client, get_http_client
from ..core.logging import get_logger, setup_logging
from .base import ProviderPlugin
from .btg_pactual import BtgPactualPlugin
from .mercadolivre import MercadoLivrePlugin
from .mercadopago import MercadoPagoPlugin

logger = get_logger(__name__)

PLUGIN_CLASSES: dict[str, type[ProviderPlugin]] = {
    cls.name: cls for cls in (BtgPactualPlugin, MercadoLivrePlugin, MercadoPagoPlugin)
}


class PluginRegistry:
    def __init__(self, settings: Settings | None = None, http: httpx.AsyncClient | None = None):
        self._settings = settings
        self._http = http
        self._owns_http = http is None
        self._cache: dict[str, ProviderPlugin] = {}

    def names(self) -> list[str]:
        return sorted(PLUGIN_CLASSES)

    async def resolve(self, name: str) -> ProviderPlugin | None:
        if name in self._cache:
            return self._cache[name]
        plugin_cls = PLUGIN_CLASSES.get(name)
        if plugin_cls is None:
            logger.warning("Plugin '%s' not found", name)
            return None

        setup_logging()
        if self._settings is None:
            self._settings = get_settings_instance()
        if self._http is None:
            self._http = await get_http_client()

        plugin = plugin_cls.from_settings(self._settings, self._http)
        self._cache[name] = plugin
        logger.info("Plugin loaded", extra={"plugin": name, "plugin_version": plugin.version})
        return plugin

    async def aclose(self) -> None:
        """Drop cached plugins and close the shared HTTP pool if this registry opened it."""
        self._cache.clear()
        if self._owns_http and self._http is not None:
            await close_http_client()
            self._http = None


REGISTRY = PluginRegistry()
