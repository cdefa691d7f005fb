#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
rsmview: plot a 2D reciprocal space map from an ASCII raw file.

Pipeline: parse → offsets → crop → plot model → plotly HTML / JSON (+ CSV table).
Values not given on the command line come from the defaults YAML
(env RSMVIEW_DEFAULTS_YAML, else ~/.rsmview_defaults.yaml).

    rsmview sample.asc --crop q-space --bounds 0.33 0.40 0.75 0.81 --html sample.html
    rsmview sample.asc --space gonio --expected 34.9 69.8 --align
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from rsm2d.alignment import compare_to_expected, expected_angles, max_point
from rsm2d.data_io import RSMDataLoader, write_rsm_csv
from rsm2d.data_viz import PlotConfig, add_reference_lines, build_plot, export_config, to_plotly
from rsm2d.exceptions import ConfigError, RSMError
from rsm2d.rsm2d import CropMode

from . import __version__
from .config import as_pair, ensure_yaml, load_yaml, merged, save_yaml, yaml_path

logger = logging.getLogger("rsmview")


# ─────────────────────────────────────────────────────────────────────────────
# Arguments
# ─────────────────────────────────────────────────────────────────────────────

def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="rsmview", description="Plot an RSM from an ASCII raw data file.")
    p.add_argument("raw_file", nargs="?", help="ASCII raw data file (default: data.raw_file from YAML)")
    p.add_argument("-V", "--version", action="version", version=__version__)
    p.add_argument("-v", "--verbose", action="count", default=0, help="-v info, -vv debug")
    p.add_argument("--defaults", help="defaults YAML (overrides $RSMVIEW_DEFAULTS_YAML)")
    p.add_argument("--save-defaults", action="store_true", help="write the merged settings back to the YAML")

    g = p.add_argument_group("conversion")
    g.add_argument("--offset-omega", type=float, help="subtracted from omega")
    g.add_argument("--offset-2theta", type=float, help="subtracted from 2theta")
    g.add_argument("--crop", choices=[m.value for m in CropMode], help="crop mode")
    g.add_argument("--bounds", type=float, nargs=4, metavar=("A_MIN", "A_MAX", "B_MIN", "B_MAX"),
                   help="qx/qz (q-space) or omega/2theta (goniometer) crop box")
    g.add_argument("--strict-axis", action="store_true", default=None,
                   help="fail on scan axes other than 2theta and 2Theta/Omega")

    g = p.add_argument_group("alignment")
    g.add_argument("--expected", type=float, nargs=2, metavar=("OMEGA", "TWOTHETA"),
                   help="expected angles of the strongest reflection")
    g.add_argument("--material", help="xrayutilities material name used with --hkl")
    g.add_argument("--hkl", type=int, nargs=3, metavar=("H", "K", "L"))
    g.add_argument("--align", action="store_true", default=None,
                   help="re-run with the offsets found from the expected angles")

    g = p.add_argument_group("plot")
    g.add_argument("--space", choices=["q", "gonio"])
    g.add_argument("--x-dir", help='in-plane direction label, e.g. "0 -1 0"')
    g.add_argument("--y-dir", help='out-of-plane direction label, e.g. "0 0 1"')
    g.add_argument("--sub", help="direction subscript, e.g. pc")
    g.add_argument("--x-range", type=float, nargs=2, metavar=("MIN", "MAX"))
    g.add_argument("--y-range", type=float, nargs=2, metavar=("MIN", "MAX"))
    g.add_argument("--zmin", type=float)
    g.add_argument("--zmax", type=float)
    g.add_argument("--width", type=int)
    g.add_argument("--marker-size", type=float)

    g = p.add_argument_group("output")
    g.add_argument("--html", help="write the figure as HTML")
    g.add_argument("--json", help="write the figure as plotly JSON")
    g.add_argument("--csv", help="write the point table as CSV")
    g.add_argument("--show", action="store_true", help="open the figure in a browser")
    return p


def apply_args(settings: Dict[str, Dict[str, Any]], a: argparse.Namespace) -> Dict[str, Dict[str, Any]]:
    """Command line values override YAML ones (only options that were given)."""
    overrides = {
        ("data", "raw_file"): a.raw_file,
        ("data", "strict_axis"): a.strict_axis,
        ("offsets", "omega"): a.offset_omega,
        ("offsets", "two_theta"): a.offset_2theta,
        ("crop", "mode"): a.crop,
        ("crop", "bounds"): [a.bounds[:2], a.bounds[2:]] if a.bounds else None,
        ("expected", "omega"): a.expected[0] if a.expected else None,
        ("expected", "two_theta"): a.expected[1] if a.expected else None,
        ("expected", "material"): a.material,
        ("expected", "hkl"): a.hkl,
        ("expected", "align"): a.align,
        ("view", "space"): a.space,
        ("view", "x_dir"): a.x_dir,
        ("view", "y_dir"): a.y_dir,
        ("view", "sub"): a.sub,
        ("view", "x_range"): a.x_range,
        ("view", "y_range"): a.y_range,
        ("view", "zmin"): a.zmin,
        ("view", "zmax"): a.zmax,
        ("view", "width"): a.width,
        ("view", "marker_size"): a.marker_size,
        ("export", "html"): a.html,
        ("export", "json"): a.json,
        ("export", "csv"): a.csv,
    }
    for (section, key), val in overrides.items():
        if val is not None:
            settings[section][key] = val
    return settings


# ─────────────────────────────────────────────────────────────────────────────
# Pipeline
# ─────────────────────────────────────────────────────────────────────────────

def _expected(settings) -> Optional[tuple]:
    """(omega, two_theta) from explicit angles or material + hkl, else None."""
    exp = settings["expected"]
    if exp["omega"] is not None and exp["two_theta"] is not None:
        return float(exp["omega"]), float(exp["two_theta"])
    if exp["material"] and exp["hkl"]:
        return expected_angles(exp["material"], [int(i) for i in exp["hkl"]])
    if exp["align"]:
        raise ConfigError("--align needs --expected OMEGA TWOTHETA or --material with --hkl")
    return None


def _loader(raw_file: str, settings, offset_omega: float, offset_2theta: float) -> RSMDataLoader:
    bounds = settings["crop"]["bounds"]
    if bounds is not None:
        bounds = (as_pair(bounds[0], "crop.bounds[0]"), as_pair(bounds[1], "crop.bounds[1]"))
    return RSMDataLoader(
        raw_file,
        offset_omega=offset_omega,
        offset_2theta=offset_2theta,
        crop_mode=settings["crop"]["mode"],
        crop_bounds=bounds,
        strict_axis=bool(settings["data"]["strict_axis"]),
    )


def run(settings: Dict[str, Dict[str, Any]], *, show: bool = False) -> List[Path]:
    """Execute the pipeline for merged settings; returns the files written."""
    raw_file = settings["data"]["raw_file"]
    if not raw_file:
        raise ConfigError("No raw data file given (argument or data.raw_file in YAML)")
    off_om = float(settings["offsets"]["omega"])
    off_tt = float(settings["offsets"]["two_theta"])

    loader = _loader(raw_file, settings, off_om, off_tt)
    rsm = loader.load()
    if len(rsm):
        peak = max_point(rsm)
        logger.info("Max counts %g at omega=%.4f 2theta=%.4f (scan %d)",
                    peak.counts, peak.omega, peak.two_theta, peak.scan_no)

    expected = _expected(settings)
    if expected is not None:
        d_om, d_tt = compare_to_expected(rsm, expected[1], expected[0])
        if settings["expected"]["align"]:
            loader = _loader(raw_file, settings, off_om + d_om, off_tt + d_tt)
            rsm = loader.load()

    v = settings["view"]
    cfg = PlotConfig(
        space=v["space"],
        x_dir=v["x_dir"],
        y_dir=v["y_dir"],
        sub=v["sub"],
        x_range=as_pair(v["x_range"], "view.x_range"),
        y_range=as_pair(v["y_range"], "view.y_range"),
        zmin=float(v["zmin"]),
        zmax=float(v["zmax"]),
        width=int(v["width"]),
        marker_size=v["marker_size"],
    )
    model = build_plot(rsm, cfg, filename=loader.name)
    fig = to_plotly(model)
    if expected is not None:
        add_reference_lines(fig, model, omega=expected[0], two_theta=expected[1])

    out = settings["export"]
    written: List[Path] = []
    html = out["html"]
    if not (html or out["json"] or show):
        html = str(Path(raw_file).with_suffix(".html"))
    if html:
        fig.write_html(html, config=export_config(model))
        written.append(Path(html))
    if out["json"]:
        fig.write_json(out["json"])
        written.append(Path(out["json"]))
    if out["csv"]:
        written.append(write_rsm_csv(rsm, out["csv"]))
    for p in written:
        logger.info("Wrote %s", p)
    if show:
        fig.show(config=export_config(model))
    return written


def main(argv: Optional[List[str]] = None) -> int:
    a = build_parser().parse_args(argv)
    level = logging.WARNING if a.verbose == 0 else (logging.INFO if a.verbose == 1 else logging.DEBUG)
    logging.basicConfig(level=level, format="[%(name)s] %(levelname)s: %(message)s")

    ypath = a.defaults or yaml_path()
    ensure_yaml(ypath)
    try:
        settings = apply_args(merged(load_yaml(ypath)), a)
        written = run(settings, show=a.show)
    except (RSMError, FileNotFoundError) as e:
        logger.error("%s", e)
        return 1
    if a.save_defaults:
        save_yaml(ypath, settings)
    for p in written:
        print(p)
    return 0


if __name__ == "__main__":
    sys.exit(main())
