from __future__ import annotations

from typing import Any

import httpx

from ..core.config import Settings
from .base_auth_adapter import BaseAuthAdapter

# Adapters
from .btg_pactual.auth_adapter import BtgPactualAuthAdapter
from .mercadolivre.auth_adapter import MercadoLivreAuthAdapter
from .mercadopago.auth_adapter import MercadoPagoAuthAdapter

_ADAPTERS: dict[str, type[BaseAuthAdapter]] = {
    "btg-pactual": BtgPactualAuthAdapter,
    "mercadolivre": MercadoLivreAuthAdapter,
    "mercadopago": MercadoPagoAuthAdapter,
}

_ALIASES = {
    "btg": "btg-pactual",
    "btg_pactual": "btg-pactual",
    "mercadolibre": "mercadolivre",
    "ml": "mercadolivre",
    "mp": "mercadopago",
}


def supported_providers() -> list[str]:
    return sorted(_ADAPTERS)


def get_auth_adapter(provider: str, settings: Settings, http: httpx.AsyncClient, **kwargs: Any) -> BaseAuthAdapter:
    """
    Factory for provider auth adapters.

    Raises ConfigurationError when the provider's credentials are missing,
    before any network call.
    """
    prov = (provider or "").strip().lower()
    prov = _ALIASES.get(prov, prov)
    adapter_cls = _ADAPTERS.get(prov)
    if adapter_cls is None:
        raise NotImplementedError(f"Provider not supported: {provider}")
    return adapter_cls(settings, http, **kwargs)
