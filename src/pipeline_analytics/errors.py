"""Exceptions raised at the pipeline analytics entry points."""

from __future__ import annotations


class ValidationError(ValueError):
    """Input to the engine is structurally invalid.

    Raised before any aggregation starts, so a caller never receives a
    partially built report.  ``field`` names the offending input.
    """

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field
