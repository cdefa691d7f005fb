"""
exceptions.py

Error types raised while reading and converting RSM ASCII raw files.

Everything derives from ``RSMError`` (itself a ``ValueError``), so callers that
only care about "bad input" can keep catching ``ValueError``.
"""

from __future__ import annotations


class RSMError(ValueError):
    """Base class for all rsm2d errors."""


# ─────────────────────────────────────────────────────────────────────────────
# Parsing
# ─────────────────────────────────────────────────────────────────────────────

class ParseError(RSMError):
    """
    The raw file cannot be processed.

    Parameters
    ----------
    message : str
        Which invariant was violated.
    field : str, optional
        Name of the offending ``*KEY`` field (without the star).
    scan : int, optional
        1-based index of the offending scan block.
    """

    def __init__(self, message: str, *, field: str | None = None, scan: int | None = None):
        super().__init__(message)
        self.field = field
        self.scan = scan


class HeaderNotFound(ParseError):
    """No consecutive *START / *STOP / *STEP / *OFFSET block."""


class NoScanAxis(ParseError):
    """The *SCAN_AXIS field is missing or empty."""


class NoScanBlocks(ParseError):
    """The file contains no *COUNT data section."""


class MalformedDataBlock(ParseError):
    """A *COUNT field is not followed by numeric data."""


class PointCountMismatch(ParseError):
    """Declared *COUNT does not agree with the parsed values (or with the first scan)."""

    def __init__(self, message: str, *, declared: int, parsed: int, scan: int | None = None):
        super().__init__(message, field="COUNT", scan=scan)
        self.declared = declared
        self.parsed = parsed


class OffsetCountMismatch(ParseError):
    """Number of *OFFSET fields differs from the number of scan blocks."""

    def __init__(self, message: str, *, n_offsets: int, n_scans: int):
        super().__init__(message, field="OFFSET")
        self.n_offsets = n_offsets
        self.n_scans = n_scans


class TooManyPoints(ParseError):
    """The file implies more points than the loader is willing to hold."""


# ─────────────────────────────────────────────────────────────────────────────
# Geometry / configuration
# ─────────────────────────────────────────────────────────────────────────────

class GeometryError(RSMError):
    """The angular data cannot be mapped with the available geometry."""


class UnsupportedScanAxis(GeometryError):
    def __init__(self, axis: str):
        super().__init__(
            f"Unsupported scan axis {axis!r}: only '2theta' and '2Theta/Omega' maps can be converted."
        )
        self.axis = axis


class ConfigError(RSMError):
    """Invalid crop / plot / defaults configuration."""
