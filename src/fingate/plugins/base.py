"""Shared plumbing for provider tool plugins.

A plugin exposes read-only operations of one provider. ``execute()`` selects
the op from ``params["op"]``, validates the parameters against that op's JSON
Schema and turns every ``FinGateError`` into a structured ``PluginResult``.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import date
from typing import Any, ClassVar

import httpx
import jsonschema

from ..core.config import Settings
from ..core.exceptions import FinGateError
from ..core.logging import get_logger
from ..providers.base_auth_adapter import BaseAuthAdapter
from ..providers.registry import get_auth_adapter
from .result import PluginResult

logger = get_logger(__name__)

DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}$"


def parse_date(value: str, field: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError as e:
        raise ValueError(f"{field} is not a valid date: {value}") from e


def check_date_order(start: str | None, end: str | None) -> PluginResult | None:
    """Return an error result if ``end`` is earlier than ``start``, else None."""
    if start and end and end < start:
        return PluginResult.err("end date must not be before start date.", code="invalid_params")
    return None


class ProviderPlugin:
    """Base class for provider plugins.

    Subclasses set ``name``, ``provider`` and ``_OP_SCHEMAS`` and implement one
    ``_op_<name>(params)`` coroutine per op.

    Args:
        auth_factory: Builds the provider's auth adapter on first use, so a
            missing configuration surfaces as an error result instead of
            failing plugin construction.
    """

    name: ClassVar[str] = ""
    version: ClassVar[str] = "1"
    provider: ClassVar[str] = ""
    _OP_SCHEMAS: ClassVar[dict[str, dict[str, Any]]] = {}

    def __init__(self, auth_factory: Callable[[], BaseAuthAdapter]):
        self._auth_factory = auth_factory
        self._auth: BaseAuthAdapter | None = None
        self._client: Any = None

    @classmethod
    def from_settings(cls, settings: Settings, http: httpx.AsyncClient, **kwargs: Any) -> "ProviderPlugin":
        return cls(lambda: get_auth_adapter(cls.provider, settings, http, **kwargs))

    @property
    def auth(self) -> BaseAuthAdapter:
        if self._auth is None:
            self._auth = self._auth_factory()
        return self._auth

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = self._build_client(self.auth)
        return self._client

    def _build_client(self, auth: BaseAuthAdapter) -> Any:
        raise NotImplementedError

    def ops(self) -> list[str]:
        return list(self._OP_SCHEMAS)

    def get_schema(self) -> dict[str, Any]:
        """Return the combined JSON Schema for all ops.

        ``properties.op.enum`` lists the available operations; per-op
        constraints live in ``get_schema_for_op()``.
        """
        properties: dict[str, Any] = {}
        for schema in self._OP_SCHEMAS.values():
            for key, value in schema.get("properties", {}).items():
                if key != "op":
                    properties.setdefault(key, value)
        properties["op"] = {"type": "string", "enum": self.ops()}
        return {"type": "object", "properties": properties, "required": ["op"]}

    def get_schema_for_op(self, op_name: str) -> dict[str, Any] | None:
        return self._OP_SCHEMAS.get(op_name)

    async def execute(self, params: dict[str, Any], context: Any = None, host: Any = None) -> PluginResult:
        """Execute the requested op and return a structured result."""
        op = params.get("op")
        schema = self.get_schema_for_op(op) if isinstance(op, str) else None
        if schema is None:
            return PluginResult.err(f"Unknown op: {op!r}. Available: {', '.join(self.ops())}", code="invalid_params")

        try:
            jsonschema.validate(params, schema, cls=jsonschema.Draft7Validator)
        except jsonschema.ValidationError as e:
            return PluginResult.err(e.message, code="invalid_params", details={"path": list(e.absolute_path)})

        handler = getattr(self, f"_op_{op}")
        try:
            return await handler(params)
        except FinGateError as exc:
            logger.warning(
                "Plugin op failed",
                extra={"plugin": self.name, "op": op, "kind": exc.kind.value, "status": exc.status_code},
            )
            return PluginResult.from_error(exc)
        except ValueError as exc:
            return PluginResult.err(str(exc), code="invalid_params")
