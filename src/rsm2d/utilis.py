from __future__ import annotations

import math

import numpy as np

from rsm2d.exceptions import ConfigError

__all__ = ("format_counts", "direction_label", "q_axis_title", "log_ticks")


def format_counts(value: float) -> str:
    """Counts rounded to three significant digits, for hover labels."""
    return np.format_float_positional(
        float(value), precision=3, unique=False, fractional=False, trim="-"
    )


def direction_label(hkl: str, sub: str | None = None) -> str:
    """
    Format "h k l" as a crystallographic direction with HTML markup.

    Indices are separated by spaces; negative indices get an overline.
    Brackets are added, ``sub`` is appended as a subscript.

    >>> direction_label("1 -2 3", sub="pc")
    "[1<span style='text-decoration:overline'>2</span>3]<sub>pc</sub>"
    """
    try:
        idx = [int(s) for s in str(hkl).split()]
    except ValueError:
        raise ConfigError(f"Direction must be integers separated by spaces, got {hkl!r}") from None
    if len(idx) != 3:
        raise ConfigError(f"Direction needs exactly three indices, got {hkl!r}")
    parts = [
        f"<span style='text-decoration:overline'>{-i}</span>" if i < 0 else f"{i}"
        for i in idx
    ]
    label = "[" + "".join(parts) + "]"
    if sub is not None:
        label += f"<sub>{sub}</sub>"
    return label


def q_axis_title(hkl: str, sub: str | None = None) -> str:
    """Axis title "Q // [hkl]_sub (Å⁻¹)"; the separators are thin spaces."""
    return "<i><b>Q</b></i>&#8201;//&#8201;" + direction_label(hkl, sub=sub) + " (Å<sup>-1</sup>)"


def log_ticks(zmin: float, zmax: float):
    """
    Colorbar ticks for a log10 color scale: one tick per decade in [zmin, zmax].

    Returns (tickvals, ticktext), e.g. (1, 2, 3) -> ("10", "10²", "10³") in HTML.
    """
    lo, hi = math.ceil(zmin), math.floor(zmax)
    vals = list(range(lo, hi + 1))
    text = []
    for v in vals:
        if v == 0:
            text.append("1")
        elif v == 1:
            text.append("10")
        else:
            text.append(f"10<sup>{v}</sup>")
    return vals, text
