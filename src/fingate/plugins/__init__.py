"""Tool plugins exposing read-only provider operations."""

from .btg_pactual import BtgPactualPlugin
from .mercadolivre import MercadoLivrePlugin
from .mercadopago import MercadoPagoPlugin
from .registry import REGISTRY, PluginRegistry
from .result import PluginResult

__all__ = [
    "BtgPactualPlugin",
    "MercadoLivrePlugin",
    "MercadoPagoPlugin",
    "PluginRegistry",
    "PluginResult",
    "REGISTRY",
]
