"""
Custom exceptions for primcam.

All primcam exceptions inherit from PrimcamError for easy catching.
"""

from typing import Any


class PrimcamError(Exception):
    """Base exception for all primcam errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} - Details: {self.details}"
        return self.message


class ConfigurationError(PrimcamError):
    """Raised when configuration is invalid or missing."""

    pass


class GeometryError(PrimcamError):
    """Raised when a component descriptor is malformed."""

    pass


class UnsupportedGeometryError(GeometryError):
    """Raised when a component kind cannot be sliced."""

    def __init__(
        self,
        message: str,
        component_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.component_id = component_id


class SlicingError(PrimcamError):
    """Raised when slicing/toolpath generation fails."""

    pass


class PostProcessorError(PrimcamError):
    """Raised when G-code output cannot be produced."""

    pass
