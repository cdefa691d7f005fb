"""
alignment.py

Helpers to find instrumental offsets: locate the brightest point of a map and
compare it with the angles a reflection is expected at.

    rsm = RSMDataLoader("STO_113.asc").load()
    om, tt = expected_angles("SrTiO3", (1, 1, 3))
    d_omega, d_2theta = compare_to_expected(rsm, tt, om)
    corrected = RSMDataLoader("STO_113.asc", offset_omega=d_omega, offset_2theta=d_2theta).load()
"""

from __future__ import annotations

import logging
from typing import Sequence, Tuple, Union

import numpy as np
import xrayutilities as xu

from rsm2d.exceptions import ConfigError, GeometryError
from rsm2d.rsm2d import WAVELENGTH, RSMMap, RSMPoint

logger = logging.getLogger(__name__)

__all__ = ("max_point", "compare_to_expected", "expected_angles")


def max_point(rsm: RSMMap) -> RSMPoint:
    """Point with the most counts (first one in scan order on ties)."""
    if len(rsm) == 0:
        raise ConfigError("Map is empty; nothing to locate")
    row = rsm.df.loc[rsm.df["counts"].idxmax()]
    return RSMPoint(
        int(row["scan_no"]),
        float(row["two_theta"]),
        float(row["omega"]),
        float(row["counts"]),
        float(row["log_counts"]),
        float(row["qx"]),
        float(row["qz"]),
    )


def compare_to_expected(rsm: RSMMap, calc_2theta: float, calc_omega: float) -> Tuple[float, float]:
    """
    Difference between the brightest point and the expected angles.

    Returns ``(omega_offset, two_theta_offset)``, ready to be passed back as
    ``offset_omega`` / ``offset_2theta``.
    """
    peak = max_point(rsm)
    omega_offset = peak.omega - float(calc_omega)
    two_theta_offset = peak.two_theta - float(calc_2theta)
    logger.info(
        "Brightest point (omega=%.4f, 2theta=%.4f, %g counts) differs from expected by "
        "omega %.4f, 2theta %.4f",
        peak.omega, peak.two_theta, peak.counts, omega_offset, two_theta_offset,
    )
    return omega_offset, two_theta_offset


def _material(material: Union[str, "xu.materials.Crystal"]):
    if isinstance(material, str):
        mat = getattr(xu.materials, material, None)
        if mat is None:
            raise ConfigError(f"xrayutilities has no predefined material {material!r}")
        return mat
    return material


def expected_angles(
    material: Union[str, "xu.materials.Crystal"],
    hkl: Sequence[int],
    *,
    idir: Sequence[float] = (1, 1, 0),
    ndir: Sequence[float] = (0, 0, 1),
    wavelength: float = WAVELENGTH,
    geometry: str = "hi_lo",
) -> Tuple[float, float]:
    """
    Coplanar (omega, 2theta) of reflection ``hkl`` for a crystal.

    Parameters
    ----------
    material : str or xrayutilities Crystal
        Either a Crystal or the name of a predefined one ("Si", "SrTiO3", ...).
    hkl : (h, k, l)
    idir, ndir : in-plane reference direction and surface normal of the sample.
    wavelength : float
        X-ray wavelength in Å.
    geometry : {"hi_lo", "lo_hi"}
        High-incidence/low-exit or the reverse for asymmetric reflections.
    """
    mat = _material(material)
    if len(hkl) != 3:
        raise ConfigError(f"hkl must have three indices, got {hkl!r}")
    hxrd = xu.HXRD(tuple(idir), tuple(ndir), wl=float(wavelength), geometry=geometry)
    om, _chi, _phi, tt = hxrd.Q2Ang(mat.Q(*hkl))
    if not (np.isfinite(om) and np.isfinite(tt)):
        raise GeometryError(f"Reflection {tuple(hkl)} is not reachable at {wavelength} Å ({geometry})")
    return float(om), float(tt)
