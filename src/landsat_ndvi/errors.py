"""Exception types raised by the compositing pipeline."""

from __future__ import annotations


class CompositeError(ValueError):
    """Base class for pipeline failures."""
    pass


class InvalidBand(CompositeError):
    """Raised when a requested band name is absent from a tile."""

    def __init__(self, band: str, available=()) -> None:
        self.band = band
        self.available = tuple(available)
        message = f"Band '{band}' not present in tile"
        if self.available:
            message += f" (available: {', '.join(self.available)})"
        super().__init__(message)


class DimensionMismatch(CompositeError):
    """Raised when bands, masks or tiles disagree on grid size."""
    pass


class EmptySeries(CompositeError):
    """Raised when compositing over zero tiles."""
    pass


class OutOfRange(CompositeError, IndexError):
    """Raised when a layer index is outside the layer set."""
    pass


class UnsupportedFormat(CompositeError):
    """Raised when a serialization format is not recognised."""
    pass


__all__ = [
    "CompositeError",
    "InvalidBand",
    "DimensionMismatch",
    "EmptySeries",
    "OutOfRange",
    "UnsupportedFormat",
]
