from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterator, NamedTuple, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from rsm2d.ascii_parser import ScanAxis, ScanBlock, ScanHeader
from rsm2d.exceptions import ConfigError, UnsupportedScanAxis
from rsm2d.utilis import format_counts

logger = logging.getLogger(__name__)

__all__ = (
    "WAVELENGTH",
    "LOG_FLOOR",
    "LOG_SENTINEL",
    "CropMode",
    "RSMPoint",
    "RSMMap",
    "RSMTransformer",
    "ang2q",
    "omega_grid",
    "qspace_mask",
    "gonio_mask",
    "transform",
)

# Cu K-alpha (weighted alpha1/alpha2), Å
WAVELENGTH = 1.541867
# added before log10 so zero counts stay finite
LOG_FLOOR = 1e-4
# replaces non-finite log counts in cropped maps
LOG_SENTINEL = -0.1

Bounds = Tuple[Tuple[float, float], Tuple[float, float]]

COLUMNS = ("scan_no", "two_theta", "omega", "counts", "log_counts", "qx", "qz", "hover")


class CropMode(Enum):
    NONE = "none"
    QSPACE = "q-space"
    GONIOMETER = "goniometer"

    @classmethod
    def parse(cls, value) -> "CropMode":
        if isinstance(value, cls):
            return value
        if value is None:
            return cls.NONE
        key = str(value).strip().lower()
        try:
            return _CROP_ALIASES[key]
        except KeyError:
            raise ConfigError(
                f"Unknown crop mode {value!r}; expected one of 'none', 'q-space', 'goniometer'"
            ) from None


_CROP_ALIASES = {
    "none": CropMode.NONE, "dontcrop": CropMode.NONE, "": CropMode.NONE,
    "q-space": CropMode.QSPACE, "qspace": CropMode.QSPACE, "q": CropMode.QSPACE,
    "goniometer": CropMode.GONIOMETER, "gonio": CropMode.GONIOMETER,
}


class RSMPoint(NamedTuple):
    """One measured point of a map."""
    scan_no: int
    two_theta: float
    omega: float
    counts: float
    log_counts: float
    qx: float
    qz: float


@dataclass(frozen=True)
class RSMMap:
    """
    Result of a transform.

    ``df`` holds one row per point in scan order (columns ``COLUMNS``).
    ``bounds`` is ``((qx_min, qx_max), (qz_min, qz_max))`` as reported to
    the plot layer.
    """
    df: pd.DataFrame
    bounds: Bounds
    crop_mode: CropMode
    header: ScanHeader
    offset_omega: float = 0.0
    offset_2theta: float = 0.0
    wavelength: float = WAVELENGTH

    def __len__(self) -> int:
        return len(self.df)

    def points(self) -> Iterator[RSMPoint]:
        cols = self.df.loc[:, list(RSMPoint._fields)]
        for row in cols.itertuples(index=False, name=None):
            yield RSMPoint(int(row[0]), *map(float, row[1:]))


# ───────────────────────────────────────────────────────────────────────────
# Geometry
# ───────────────────────────────────────────────────────────────────────────
def ang2q(omega, two_theta, wavelength: float = WAVELENGTH):
    """
    (omega, 2theta) in degrees → (qx, qz) in 1/Å (units of 1/d, no 2π).

        qx = 2/λ · sin(ω − θ) · sin(θ)
        qz = 2/λ · cos(ω − θ) · sin(θ),   θ = 2θ/2
    """
    om = np.radians(np.asarray(omega, dtype=float))
    th = np.radians(np.asarray(two_theta, dtype=float) / 2.0)
    k = 2.0 / float(wavelength)
    s = np.sin(th)
    return k * np.sin(om - th) * s, k * np.cos(om - th) * s


def omega_grid(axis: ScanAxis, two_theta: np.ndarray, offsets: Sequence[float]) -> np.ndarray:
    """
    Omega for every (scan, point), shape ``(n_scans, n_points)``.

    2theta scans keep omega fixed at the scan offset; coupled 2theta/omega
    scans move omega with half of 2theta.
    """
    tt = np.asarray(two_theta, dtype=float)
    off = np.asarray(offsets, dtype=float)[:, None]
    if axis is ScanAxis.TWO_THETA:
        return np.broadcast_to(off, (off.shape[0], tt.size)).copy()
    if axis is ScanAxis.TWO_THETA_OMEGA:
        return 0.5 * tt[None, :] + off
    raise UnsupportedScanAxis(str(axis))


def qspace_mask(qx, qz, min_qx: float, max_qx: float, min_qz: float, max_qz: float) -> np.ndarray:
    """True where min_qx < qx < max_qx and min_qz < qz < max_qz."""
    qx = np.asarray(qx)
    qz = np.asarray(qz)
    return (min_qx < qx) & (qx < max_qx) & (min_qz < qz) & (qz < max_qz)


def gonio_mask(x, two_theta, min_x: float, max_x: float, min_2theta: float, max_2theta: float) -> np.ndarray:
    """
    True where min_x < x < max_x and min_2theta < two_theta < max_2theta.

    ``x`` is the angle drawn on the horizontal axis (omega, or chi for
    tilted maps).
    """
    x = np.asarray(x)
    tt = np.asarray(two_theta)
    return (min_x < x) & (x < max_x) & (min_2theta < tt) & (tt < max_2theta)


def _check_bounds(mode: CropMode, crop_bounds) -> Optional[Bounds]:
    if mode is CropMode.NONE:
        return None
    if crop_bounds is None:
        raise ConfigError(f"crop mode {mode.value!r} requires crop_bounds")
    try:
        (a0, a1), (b0, b1) = crop_bounds
        out = ((float(a0), float(a1)), (float(b0), float(b1)))
    except (TypeError, ValueError):
        raise ConfigError(
            f"crop_bounds must be two (min, max) pairs, got {crop_bounds!r}"
        ) from None
    for lo, hi in out:
        if not (np.isfinite(lo) and np.isfinite(hi) and lo < hi):
            raise ConfigError(f"crop bounds ({lo}, {hi}) must be finite with min < max")
    return out


def _extent(a: pd.Series) -> Tuple[float, float]:
    return float(a.min()), float(a.max())


class RSMTransformer:
    """
    Convert parsed line scans into an RSM point table.

    Initialize with the parser output:
        header, offsets, blocks = AsciiRSMParser(text).parse()
        rsm = RSMTransformer(header, offsets, blocks).transform(crop_mode="q-space",
                                                                crop_bounds=((0.3, 0.4), (0.75, 0.81)))

    Parameters
    ----------
    header : ScanHeader
    offsets : sequence of float
        One offset per block, file order.
    blocks : sequence of ScanBlock
    wavelength : float
        X-ray wavelength in Å.
    """

    def __init__(
        self,
        header: ScanHeader,
        offsets: Sequence[float],
        blocks: Sequence[ScanBlock],
        *,
        wavelength: float = WAVELENGTH,
    ):
        self.header = header
        self.offsets = tuple(float(o) for o in offsets)
        self.blocks = list(blocks)
        self.wavelength = float(wavelength)
        if self.wavelength <= 0:
            raise ConfigError("wavelength must be > 0")

    def table(self, offset_omega: float = 0.0, offset_2theta: float = 0.0) -> pd.DataFrame:
        """Uncropped point table with all derived columns."""
        grid = self.header.two_theta_grid()
        n_scans, n_pts = len(self.blocks), grid.size

        counts = np.vstack([np.asarray(b.intensities, dtype=float) for b in self.blocks])
        omega = omega_grid(self.header.scan_axis, grid, self.offsets)
        two_theta = np.broadcast_to(grid, (n_scans, n_pts))

        omega = omega.ravel() - float(offset_omega)
        two_theta = two_theta.ravel() - float(offset_2theta)
        counts = counts.ravel()
        with np.errstate(divide="ignore", invalid="ignore"):
            log_counts = np.log10(counts + LOG_FLOOR)
        qx, qz = ang2q(omega, two_theta, self.wavelength)

        return pd.DataFrame({
            "scan_no": np.repeat(np.arange(1, n_scans + 1, dtype=np.int64), n_pts),
            "two_theta": two_theta,
            "omega": omega,
            "counts": counts,
            "log_counts": log_counts,
            "qx": qx,
            "qz": qz,
            "hover": [format_counts(c) for c in counts],
        })

    def transform(
        self,
        offset_omega: float = 0.0,
        offset_2theta: float = 0.0,
        crop_mode="none",
        crop_bounds=None,
    ) -> RSMMap:
        """
        Compute the map and apply the crop.

        crop_mode : {"none", "q-space", "goniometer"}
            none        keep everything; bounds = extent of qx / qz.
            q-space     crop_bounds = ((min_qx, max_qx), (min_qz, max_qz));
                        bounds = the crop box.
            goniometer  crop_bounds = ((min_omega, max_omega), (min_2theta, max_2theta));
                        bounds = extent of qx / qz of the kept points.
        Boundaries are open: points lying exactly on them are dropped.
        Non-finite log counts are replaced by LOG_SENTINEL in every mode.
        """
        mode = CropMode.parse(crop_mode)
        box = _check_bounds(mode, crop_bounds)
        df = self.table(offset_omega, offset_2theta)
        # negative counts have no log
        df["log_counts"] = df["log_counts"].where(np.isfinite(df["log_counts"]), LOG_SENTINEL)

        if mode is CropMode.NONE:
            bounds = (_extent(df["qx"]), _extent(df["qz"]))
        else:
            (a0, a1), (b0, b1) = box
            if mode is CropMode.QSPACE:
                keep = qspace_mask(df["qx"], df["qz"], a0, a1, b0, b1)
            else:
                keep = gonio_mask(df["omega"], df["two_theta"], a0, a1, b0, b1)
            n_all = len(df)
            df = df[keep].reset_index(drop=True)
            logger.debug("Crop %s kept %d of %d points", mode.value, len(df), n_all)
            if mode is CropMode.QSPACE:
                bounds = box
            elif len(df):
                bounds = (_extent(df["qx"]), _extent(df["qz"]))
            else:
                logger.warning("Goniometer crop %s removed every point", box)
                bounds = ((np.nan, np.nan), (np.nan, np.nan))

        return RSMMap(
            df=df,
            bounds=bounds,
            crop_mode=mode,
            header=self.header,
            offset_omega=float(offset_omega),
            offset_2theta=float(offset_2theta),
            wavelength=self.wavelength,
        )


def transform(
    header: ScanHeader,
    offsets: Sequence[float],
    blocks: Sequence[ScanBlock],
    offset_omega: float = 0.0,
    offset_2theta: float = 0.0,
    crop_mode="none",
    crop_bounds=None,
    *,
    wavelength: float = WAVELENGTH,
) -> RSMMap:
    return RSMTransformer(header, offsets, blocks, wavelength=wavelength).transform(
        offset_omega=offset_omega,
        offset_2theta=offset_2theta,
        crop_mode=crop_mode,
        crop_bounds=crop_bounds,
    )
