"""Lightweight result type for operation outcomes."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True, slots=True)
class Result:
    """Represents the outcome of an operation.

    Supports boolean evaluation, tuple unpacking, and carries an optional
    payload via *value*.  Failed results carry a machine-readable *error*
    code next to the human-readable *message*.

    Examples::

        r = Result.ok("stored", value=outcome)
        if r:
            print(r.value)

        ok, msg = Result.fail("no icon", error="NotFound")
    """

    success: bool
    message: str = ""
    value: Any = field(default=None, repr=False)
    error: str = ""

    # -- constructors ------------------------------------------------------

    @classmethod
    def ok(cls, message: str = "", *, value: Any = None) -> Result:
        return cls(success=True, message=message, value=value)

    @classmethod
    def fail(cls, message: str = "", *, error: str = "") -> Result:
        return cls(success=False, message=message, error=str(error))

    # -- protocols ---------------------------------------------------------

    def __bool__(self) -> bool:
        return self.success

    def __iter__(self):
        yield self.success
        yield self.message

    def to_dict(self) -> dict[str, Any]:
        """JSON-friendly failure/success envelope used by the HTTP routes."""
        if self.success:
            return {"success": True, "message": self.message}
        return {"success": False, "error": self.error, "message": self.message}
