"""Uniform result envelope returned by every top-level reporg action."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


@dataclass(slots=True)
class ActionResult(Generic[T]):
    """Outcome of an action: ``{success, data, message}`` or ``{success, error}``.

    Attributes:
        success: Whether the action completed.
        data: Payload produced by a successful action.
        message: Optional human-readable summary for successful actions.
        error: Human-readable failure reason when ``success`` is False.
    """

    success: bool
    data: T | None = None
    message: str | None = None
    error: str | None = None

    @classmethod
    def ok(cls, data: T | None = None, message: str | None = None) -> "ActionResult[T]":
        """Return a successful result carrying ``data``."""
        return cls(success=True, data=data, message=message)

    @classmethod
    def fail(cls, error: str) -> "ActionResult[T]":
        """Return a failed result carrying ``error``."""
        return cls(success=False, error=error)

    def to_dict(self) -> dict[str, Any]:
        """Serialize the result into the JSON shape consumed by callers."""
        if not self.success:
            return {"success": False, "error": self.error}
        payload: dict[str, Any] = {"success": True, "data": _jsonable(self.data)}
        if self.message is not None:
            payload["message"] = self.message
        return payload


def _jsonable(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, dict):
        return {key: _jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(item) for item in value]
    return value


__all__ = ["ActionResult"]
