#!/usr/bin/env python3
"""
ascii_parser.py

Defines ScanAxis, ScanHeader, ScanBlock and AsciiRSMParser to read the ASCII
raw-data export of a laboratory diffractometer (``*KEY\\t\\t=  value`` records,
one ``*COUNT`` data section per line scan) and return the scans as a pandas
or Dask DataFrame.

A reciprocal space map is stored as a series of line scans that share one
angular grid (``*START``/``*STOP``/``*STEP``) and differ only by their
``*OFFSET``.  The file is walked line by line with a cursor; every field is
consumed in file order.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import List, Mapping, Optional, Sequence, Tuple

import dask.dataframe as dd
import numpy as np
import pandas as pd

from rsm2d.exceptions import (
    HeaderNotFound,
    MalformedDataBlock,
    NoScanAxis,
    NoScanBlocks,
    OffsetCountMismatch,
    ParseError,
    PointCountMismatch,
    TooManyPoints,
    UnsupportedScanAxis,
)

logger = logging.getLogger(__name__)

__all__ = (
    "MAX_POINTS",
    "ScanAxis",
    "ScanHeader",
    "ScanBlock",
    "ScanOffset",
    "AsciiRSMParser",
    "parse",
    "read_text",
)

MAX_POINTS = 1_000_000

_FIELD_RE = re.compile(r"^\*(?P<key>[A-Za-z0-9_\-]+)\s*=\s*(?P<value>.*?)\s*$")
_NUMBER = r"[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?"
_LEADING_NUMBER_RE = re.compile(r"^\s*(" + _NUMBER + ")")
_TOKEN_RE = re.compile(_NUMBER)
_DATA_LINE_RE = re.compile(r"^[\d.,\s+\-eE]*\d[\d.,\s+\-eE]*$")

# consecutive fields that open the header of a scan section
_HEADER_KEYS = ("START", "STOP", "STEP", "OFFSET")

ScanOffset = Tuple[float, ...]


class ScanAxis(Enum):
    """
    Scan-axis convention of a map.

    TWO_THETA        detector scans at fixed incidence; *OFFSET is omega.
    TWO_THETA_OMEGA  coupled scans; omega = 2theta / 2 + *OFFSET.
    """
    TWO_THETA = "2theta"
    TWO_THETA_OMEGA = "2Theta/Omega"

    @classmethod
    def from_field(cls, value: str, *, strict: bool = False) -> "ScanAxis":
        """
        Map a *SCAN_AXIS value onto a convention.

        Only the exact (case-sensitive) string ``"2theta"`` selects TWO_THETA.
        Values naming another goniometer axis (chi, phi, ...) raise
        UnsupportedScanAxis.  Anything else is read as a coupled 2theta/omega
        scan, unless ``strict`` is set, in which case it raises too.
        """
        if value == cls.TWO_THETA.value:
            return cls.TWO_THETA
        key = "".join(value.lower().split())
        if key in _TWO_THETA_OMEGA_NAMES:
            return cls.TWO_THETA_OMEGA
        if strict or key in _OTHER_AXIS_NAMES:
            raise UnsupportedScanAxis(value)
        logger.warning("Unrecognised scan axis %r, assuming 2Theta/Omega.", value)
        return cls.TWO_THETA_OMEGA


_TWO_THETA_OMEGA_NAMES = frozenset({
    "2theta/omega", "2theta-omega", "2theta_omega", "2theta/theta", "theta/2theta",
})
_OTHER_AXIS_NAMES = frozenset({
    "omega", "theta", "chi", "phi", "psi", "2theta/chi", "2theta-chi", "2thetachi",
    "chi/phi", "phi/chi", "2thetachi/phi", "z", "rx", "ry",
})


@dataclass(frozen=True)
class ScanHeader:
    """Grid and axis shared by every scan of one file (taken from the first section)."""
    scan_axis: ScanAxis
    start_angle: float
    stop_angle: float
    step_size: float
    point_count: int
    raw_scan_axis: str = ""
    fields: Mapping[str, str] = field(default_factory=dict, compare=False, repr=False)

    def two_theta_grid(self) -> np.ndarray:
        """``point_count`` evenly spaced angles from start to stop, both included."""
        return np.linspace(self.start_angle, self.stop_angle, self.point_count)


@dataclass(frozen=True)
class ScanBlock:
    point_count: int
    intensities: np.ndarray = field(repr=False)

    def __len__(self) -> int:
        return int(self.intensities.size)


def read_text(filename: str | Path) -> str:
    """Read a raw file; Rigaku exports are not always UTF-8, fall back to latin-1."""
    p = Path(filename)
    if not p.is_file():
        raise FileNotFoundError(f"Raw data file not found: {p}")
    with p.open("rb") as f:
        raw = f.read()
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError:
        return raw.decode("latin-1")


def _leading_float(value: str, key: str, *, scan: Optional[int] = None) -> float:
    m = _LEADING_NUMBER_RE.match(value)
    if m is None:
        raise ParseError(f"*{key} value {value!r} does not start with a number", field=key, scan=scan)
    return float(m.group(1))


def _field(line: str) -> Optional[Tuple[str, str]]:
    m = _FIELD_RE.match(line.strip())
    if m is None:
        return None
    value = m.group("value")
    if len(value) >= 2 and value[0] == value[-1] == '"':
        value = value[1:-1]
    return m.group("key"), value


class AsciiRSMParser:
    """
    Parse one RSM ASCII raw file.

    Parameters
    ----------
    text : str
        Full contents of the raw file.
    strict_axis : bool
        Reject any *SCAN_AXIS value other than the two supported conventions.
    max_points : int
        Upper bound on the total number of points (scans × points per scan).
    npartitions : int
        Partitions used by ``to_dask``.
    """

    def __init__(
        self,
        text: str,
        *,
        strict_axis: bool = False,
        max_points: int = MAX_POINTS,
        npartitions: int = 1,
    ):
        self.text = text
        self.strict_axis = bool(strict_axis)
        self.max_points = int(max_points)
        self.npartitions = npartitions
        self._result: Optional[Tuple[ScanHeader, ScanOffset, List[ScanBlock]]] = None

    @classmethod
    def from_file(cls, filename: str | Path, **kwargs) -> "AsciiRSMParser":
        return cls(read_text(filename), **kwargs)

    # ───────────────────────────────────────────────────────────────────────
    # Scanning
    # ───────────────────────────────────────────────────────────────────────
    def parse(self) -> Tuple[ScanHeader, ScanOffset, List[ScanBlock]]:
        """Return ``(header, offsets, blocks)``; raises a ParseError subclass on bad input."""
        if self._result is None:
            self._result = self._parse()
        return self._result

    def _parse(self) -> Tuple[ScanHeader, ScanOffset, List[ScanBlock]]:
        lines = self.text.splitlines()
        fields: dict[str, str] = {}
        header_vals: Optional[Tuple[float, float, float]] = None
        saw_start = False
        scan_axis_raw: Optional[str] = None
        offsets: List[float] = []
        blocks: List[ScanBlock] = []
        declared_total = 0

        i = 0
        n = len(lines)
        while i < n:
            kv = _field(lines[i])
            if kv is None:
                i += 1
                continue
            key, value = kv
            fields.setdefault(key, value)

            if key == "START":
                saw_start = True
                if header_vals is None:
                    header_vals = self._read_header(lines, i)
            elif key == "SCAN_AXIS":
                if scan_axis_raw is None:
                    scan_axis_raw = value
            elif key == "OFFSET":
                offsets.append(_leading_float(value, key, scan=len(offsets) + 1))
            elif key == "COUNT":
                scan = len(blocks) + 1
                declared = self._declared_count(value, scan)
                declared_total += declared
                if declared_total > self.max_points:
                    raise TooManyPoints(
                        f"File implies more than {self.max_points} points (reached at scan block {scan})",
                        field=key, scan=scan,
                    )
                values, i = self._read_block(lines, i + 1, scan)
                if values.size != declared:
                    raise PointCountMismatch(
                        f"declared point count {declared} does not match {values.size} "
                        f"parsed values in scan block {scan}",
                        declared=declared, parsed=int(values.size), scan=scan,
                    )
                blocks.append(ScanBlock(point_count=declared, intensities=values))
                continue
            i += 1

        if header_vals is None:
            if saw_start:
                msg = "*START is not followed by consecutive *STOP, *STEP and *OFFSET fields"
            else:
                msg = "No *START/*STOP/*STEP/*OFFSET header block found"
            raise HeaderNotFound(msg, field="START")
        if not scan_axis_raw:
            raise NoScanAxis("No *SCAN_AXIS field found", field="SCAN_AXIS")
        if not blocks:
            raise NoScanBlocks("No *COUNT data sections found", field="COUNT")
        if len(offsets) != len(blocks):
            raise OffsetCountMismatch(
                f"Found {len(offsets)} *OFFSET fields for {len(blocks)} scan blocks",
                n_offsets=len(offsets), n_scans=len(blocks),
            )

        npts = blocks[0].point_count
        for k, blk in enumerate(blocks[1:], start=2):
            if blk.point_count != npts:
                raise PointCountMismatch(
                    f"scan block {k} has {blk.point_count} points, first scan has {npts}; "
                    "all scans must share one angular grid",
                    declared=blk.point_count, parsed=npts, scan=k,
                )

        axis = ScanAxis.from_field(scan_axis_raw, strict=self.strict_axis)
        start, stop, step = header_vals
        self._check_grid(start, stop, step, npts)
        logger.info(
            "Scan axis = %s start = %g end = %g step size = %g first offset = %g (%d scans x %d points)",
            scan_axis_raw, start, stop, step, offsets[0], len(blocks), npts,
        )

        header = ScanHeader(
            scan_axis=axis,
            start_angle=start,
            stop_angle=stop,
            step_size=step,
            point_count=npts,
            raw_scan_axis=scan_axis_raw,
            fields=MappingProxyType(fields),
        )
        return header, tuple(offsets), blocks

    @staticmethod
    def _read_header(lines: Sequence[str], i: int) -> Optional[Tuple[float, float, float]]:
        """Values of START/STOP/STEP if lines i..i+3 are the four header fields in order."""
        found = []
        for j, expected in enumerate(_HEADER_KEYS):
            if i + j >= len(lines):
                return None
            kv = _field(lines[i + j])
            if kv is None or kv[0] != expected:
                return None
            found.append(kv[1])
        return (
            _leading_float(found[0], "START"),
            _leading_float(found[1], "STOP"),
            _leading_float(found[2], "STEP"),
        )

    @staticmethod
    def _declared_count(value: str, scan: int) -> int:
        count = _leading_float(value, "COUNT", scan=scan)
        if count < 0 or count != int(count):
            raise ParseError(f"*COUNT = {value!r} is not a point count (scan block {scan})",
                             field="COUNT", scan=scan)
        return int(count)

    @staticmethod
    def _read_block(lines: Sequence[str], i: int, scan: int) -> Tuple[np.ndarray, int]:
        """Consume the numeric lines after a *COUNT field; returns (values, next index)."""
        tokens: List[str] = []
        n = len(lines)
        while i < n:
            line = lines[i].strip()
            if not line:
                i += 1
                continue
            if line.startswith("*") or not _DATA_LINE_RE.match(line):
                break
            tokens.extend(_TOKEN_RE.findall(line))
            i += 1
        if not tokens:
            raise MalformedDataBlock(f"*COUNT field of scan block {scan} is not followed by numeric data",
                                     field="COUNT", scan=scan)
        return np.asarray(tokens, dtype=float), i

    @staticmethod
    def _check_grid(start: float, stop: float, step: float, npts: int) -> None:
        if step == 0:
            logger.warning("*STEP is zero; using *COUNT = %d to build the 2theta grid", npts)
            return
        expected = int(round(abs(stop - start) / abs(step))) + 1
        if expected != npts:
            logger.warning(
                "Grid %g..%g step %g implies %d points but scans hold %d; using *COUNT",
                start, stop, step, expected, npts,
            )

    # ───────────────────────────────────────────────────────────────────────
    # Tables
    # ───────────────────────────────────────────────────────────────────────
    def to_pandas(self) -> pd.DataFrame:
        """Long table with one row per point: scan_no, offset, two_theta, counts."""
        header, offsets, blocks = self.parse()
        grid = header.two_theta_grid()
        frames = [
            pd.DataFrame({
                "scan_no": np.full(grid.size, k, dtype=np.int64),
                "offset": np.full(grid.size, off, dtype=float),
                "two_theta": grid,
                "counts": blk.intensities,
            })
            for k, (off, blk) in enumerate(zip(offsets, blocks), start=1)
        ]
        return pd.concat(frames, ignore_index=True)

    def to_dask(self, npartitions: Optional[int] = None):
        return dd.from_pandas(self.to_pandas(), npartitions=npartitions or self.npartitions)


def parse(text: str, **kwargs) -> Tuple[ScanHeader, ScanOffset, List[ScanBlock]]:
    """Parse the text of one raw file; see AsciiRSMParser for keyword arguments."""
    return AsciiRSMParser(text, **kwargs).parse()
