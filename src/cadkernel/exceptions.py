"""Exception hierarchy for the geometry kernel.

Expected "no solution" outcomes are not errors and never raise; these types
cover malformed input rejected when entities are constructed.
"""

from __future__ import annotations

from typing import Any


class CadKernelError(Exception):
    """Base exception for all kernel errors."""

    error_code: str = ""

    def __init__(self, message: str, error_code: str | None = None, **kwargs: Any):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.__dict__.update(kwargs)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "error": True,
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
        }
        result.update(
            {k: v for k, v in self.__dict__.items() if k not in ["message", "error_code"]}
        )
        return result


class EntityValidationError(CadKernelError, ValueError):
    """Raised when entity data is malformed (NaN, negative radius, degenerate shape)."""

    error_code = "VALIDATION_ERROR"

    def __init__(self, message: str, field: str | None = None, **kwargs: Any):
        super().__init__(message, "VALIDATION_ERROR", field=field, **kwargs)
