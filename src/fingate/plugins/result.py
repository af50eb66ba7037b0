"""Result envelope for plugin ``execute()`` return values.

Typical usage::

    return PluginResult.ok(data={"accounts": accounts})
    return PluginResult.err("Invalid date format", code="invalid_params")
    return PluginResult.from_error(exc)                     # any FinGateError
    return PluginResult.timeout(data={"report_id": rid})   # resumable work
"""

from __future__ import annotations

from typing import Any

from ..core.exceptions import FinGateError


class PluginResult:
    """Canonical result type for plugin ``execute()`` return values.

    Shape::

        {
            "status": "success" | "error" | "timeout",
            "data": {...},
            "error": {"code": ..., "message": ..., "details": {...}} | null,
            "diagnostics": [...] | null,
        }

    Prefer the classmethods over direct construction.
    """

    def __init__(
        self,
        status: str,
        data: dict[str, Any] | None = None,
        error: dict[str, Any] | None = None,
        diagnostics: list[str] | None = None,
    ) -> None:
        self.status = status
        self.data = data if data is not None else {}
        self.error = error
        self.diagnostics = diagnostics

    @classmethod
    def ok(cls, data: dict[str, Any] | None = None, diagnostics: list[str] | None = None) -> "PluginResult":
        """Return a successful result."""
        return cls("success", data=data or {}, diagnostics=diagnostics)

    @classmethod
    def err(
        cls,
        message: str,
        code: str = "tool_error",
        details: dict[str, Any] | None = None,
    ) -> "PluginResult":
        """Return an error result."""
        return cls(
            "error",
            data={},
            error={"code": code, "message": message, "details": details or {}},
        )

    @classmethod
    def from_error(cls, exc: FinGateError) -> "PluginResult":
        """Error result classified by ``exc.kind`` with the structured agent payload."""
        return cls.err(exc.message, code=exc.kind.value, details=exc.to_agent_error())

    @classmethod
    def timeout(cls, data: dict[str, Any] | None = None, message: str | None = None) -> "PluginResult":
        """Return a result for work that is still running and can be resumed."""
        error = {"code": "timeout", "message": message, "details": {}} if message else None
        return cls("timeout", data=data or {}, error=error)

    @property
    def is_error(self) -> bool:
        return self.status == "error"

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "data": self.data,
            "error": self.error,
            "diagnostics": self.diagnostics,
        }

    def __repr__(self) -> str:
        return f"PluginResult(status={self.status!r}, data={self.data!r})"
