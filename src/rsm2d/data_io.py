# data_io.py
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from rsm2d.ascii_parser import AsciiRSMParser, MAX_POINTS, read_text
from rsm2d.exceptions import RSMError
from rsm2d.rsm2d import WAVELENGTH, RSMMap, RSMTransformer

logger = logging.getLogger(__name__)

__all__ = ("RSMDataLoader", "write_rsm_csv")


class RSMDataLoader:
    """
    Read one RSM ASCII raw file and convert it.
    Provides the parsed scans (``parse``) and the transformed map (``load``).

    Parameters
    ----------
    raw_file : str | Path
        Path to the ASCII raw data file.
    offset_omega, offset_2theta : float
        Instrumental corrections subtracted from omega and 2theta.
    crop_mode : {"none", "q-space", "goniometer"}
    crop_bounds : ((min, max), (min, max)) or None
        Required unless crop_mode is "none".
    strict_axis : bool
        Reject scan-axis values other than "2theta" and "2Theta/Omega".
    wavelength : float
        X-ray wavelength in Å.
    """
    def __init__(
        self,
        raw_file: str | Path,
        *,
        offset_omega: float = 0.0,
        offset_2theta: float = 0.0,
        crop_mode="none",
        crop_bounds=None,
        strict_axis: bool = False,
        wavelength: float = WAVELENGTH,
        max_points: int = MAX_POINTS,
    ):
        self.raw_file = Path(raw_file)
        self.offset_omega = float(offset_omega)
        self.offset_2theta = float(offset_2theta)
        self.crop_mode = crop_mode
        self.crop_bounds = crop_bounds
        self.strict_axis = strict_axis
        self.wavelength = wavelength
        self.max_points = max_points
        self._parser: Optional[AsciiRSMParser] = None

    @property
    def name(self) -> str:
        return self.raw_file.stem

    def parser(self) -> AsciiRSMParser:
        if self._parser is None:
            self._parser = AsciiRSMParser(
                read_text(self.raw_file),
                strict_axis=self.strict_axis,
                max_points=self.max_points,
            )
        return self._parser

    def parse(self):
        """(header, offsets, blocks) of the file; errors name the file."""
        try:
            return self.parser().parse()
        except RSMError as exc:
            # annotate with the file being processed
            msg = f"while loading {str(self.raw_file)!r}"
            args = exc.args
            exc.args = ((f"{args[0]} {msg}" if args else msg),) + tuple(args[1:])
            raise

    def load(self) -> RSMMap:
        header, offsets, blocks = self.parse()
        rsm = RSMTransformer(header, offsets, blocks, wavelength=self.wavelength).transform(
            offset_omega=self.offset_omega,
            offset_2theta=self.offset_2theta,
            crop_mode=self.crop_mode,
            crop_bounds=self.crop_bounds,
        )
        logger.info("Loaded %s: %d points (%s crop)", self.raw_file.name, len(rsm), rsm.crop_mode.value)
        return rsm


def write_rsm_csv(rsm: RSMMap, filename: str | Path, *, include_hover: bool = False) -> Path:
    """Write the point table of a map to CSV; returns the path written."""
    path = Path(filename)
    path.parent.mkdir(parents=True, exist_ok=True)
    df = rsm.df if include_hover else rsm.df.drop(columns=["hover"])
    df.to_csv(path, index=False)
    logger.info("Wrote %d points to %s", len(df), path)
    return path

