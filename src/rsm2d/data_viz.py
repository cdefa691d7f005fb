from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import List, NamedTuple, Optional, Sequence, Tuple, Union

import numpy as np

try:
    import plotly.graph_objects as go  # type: ignore
except Exception as e:
    raise ImportError("plotly must be installed to render RSM plots. `pip install plotly`") from e

from rsm2d.colormaps import DEFAULT_CMAP, validate_colormap
from rsm2d.exceptions import ConfigError
from rsm2d.rsm2d import LOG_SENTINEL, WAVELENGTH, RSMMap, ang2q
from rsm2d.utilis import log_ticks, q_axis_title

__all__ = ("PlotConfig", "PlotRecord", "PlotModel", "build_plot", "to_plotly", "export_config", "add_reference_lines")

Range = Tuple[float, float]

_SPACES = {"q", "gonio"}


@dataclass
class PlotConfig:
    """
    Everything the plot needs besides the data.

    space      "q" (qx vs qz) or "gonio" (omega vs 2theta)
    cmap       colormap table or plotly colorscale name
    x_dir      in-plane direction for the q-space x axis title, e.g. "0 1 0"
    y_dir      out-of-plane direction for the y axis title
    sub        subscript for both directions (e.g. "pc")
    x_range    fixed axis range; default is the map bounds (q) or autorange (gonio)
    zmin/zmax  color range in log10(counts)
    width      plot width in px; height follows ``aspect``
    """
    space: str = "q"
    cmap: Union[str, Sequence] = field(default_factory=lambda: DEFAULT_CMAP)
    x_dir: str = "0 1 0"
    y_dir: str = "0 0 1"
    sub: Optional[str] = None
    x_range: Optional[Range] = None
    y_range: Optional[Range] = None
    zmin: float = 0.5
    zmax: float = 4.0
    width: int = 500
    width_pad: Optional[int] = None
    aspect: Tuple[int, int] = (10, 10)
    marker_size: Optional[float] = None
    title: Optional[str] = None

    def __post_init__(self):
        self.space = str(self.space).lower()
        if self.space in {"qspace", "q-space"}:
            self.space = "q"
        elif self.space in {"goniometer", "angles"}:
            self.space = "gonio"
        if self.space not in _SPACES:
            raise ConfigError("space must be 'q' or 'gonio'")
        if self.width_pad is None:
            # room for the colorbar labels
            self.width_pad = 26 if self.space == "q" else 11
        if not self.zmin < self.zmax:
            raise ConfigError(f"zmin ({self.zmin}) must be below zmax ({self.zmax})")
        if self.width <= 0 or min(self.aspect) <= 0:
            raise ConfigError("width and aspect must be positive")
        self.cmap = validate_colormap(self.cmap)


class PlotRecord(NamedTuple):
    x: float
    y: float
    color_value: float
    hover_text: str


@dataclass
class PlotModel:
    """Renderer-agnostic description of one RSM scatter plot."""
    records: List[PlotRecord]
    space: str
    x_range: Optional[Range]
    y_range: Optional[Range]
    x_title: str
    y_title: str
    tick_format: str
    colormap: Union[str, List[list]]
    zmin: float
    zmax: float
    tickvals: List[int]
    ticktext: List[str]
    marker_size: float
    width: int
    height: int
    hovertemplate: str
    filename: str = "rsm"
    title: Optional[str] = None
    wavelength: Optional[float] = None

    def columns(self):
        """x, y, color and hover as four lists."""
        if not self.records:
            return [], [], [], []
        xs, ys, cs, hs = zip(*self.records)
        return list(xs), list(ys), list(cs), list(hs)


def _finite_range(r) -> Optional[Range]:
    if r is None:
        return None
    lo, hi = float(r[0]), float(r[1])
    if not (math.isfinite(lo) and math.isfinite(hi)):
        return None
    return lo, hi


def build_plot(rsm: RSMMap, config: Optional[PlotConfig] = None, *, filename: str = "rsm") -> PlotModel:
    """
    Turn a transformed map into a PlotModel.

    q space: x = qx, y = qz, ranges default to ``rsm.bounds``.
    goniometer space: x = omega, y = 2theta, ranges default to autorange.
    Color values are log10 counts; non-finite values are replaced so the
    renderer never sees NaN/inf.
    """
    cfg = config or PlotConfig()
    df = rsm.df
    if cfg.space == "q":
        x, y = df["qx"].to_numpy(), df["qz"].to_numpy()
        x_title = q_axis_title(cfg.x_dir, sub=cfg.sub)
        y_title = q_axis_title(cfg.y_dir, sub=cfg.sub)
        tick_format = ".3f"
        hovertemplate = "<b>Qx: %{x:.3f} <br>Qz: %{y:.3f}</b><BR>Counts: %{customdata}<br>"
        x_default, y_default = rsm.bounds
        marker_size = 3.0
    else:
        x, y = df["omega"].to_numpy(), df["two_theta"].to_numpy()
        x_title, y_title = "ω", "2θ"
        tick_format = ".2f"
        hovertemplate = "<b>ω: %{x:.3f} <br>2θ: %{y:.3f}</b><BR>Counts: %{customdata}<br>"
        x_default = y_default = None
        marker_size = 1.8

    color = df["log_counts"].to_numpy(dtype=float)
    color = np.where(np.isfinite(color), color, LOG_SENTINEL)
    records = [
        PlotRecord(float(a), float(b), float(c), str(h))
        for a, b, c, h in zip(x, y, color, df["hover"])
    ]

    tickvals, ticktext = log_ticks(cfg.zmin, cfg.zmax)
    l0, l1 = cfg.aspect
    return PlotModel(
        records=records,
        space=cfg.space,
        x_range=_finite_range(cfg.x_range if cfg.x_range is not None else x_default),
        y_range=_finite_range(cfg.y_range if cfg.y_range is not None else y_default),
        x_title=x_title,
        y_title=y_title,
        tick_format=tick_format,
        colormap=cfg.cmap,
        zmin=float(cfg.zmin),
        zmax=float(cfg.zmax),
        tickvals=tickvals,
        ticktext=ticktext,
        marker_size=float(cfg.marker_size or marker_size),
        width=int(cfg.width + cfg.width_pad),
        height=int(math.floor(cfg.width * l0 / l1)),
        hovertemplate=hovertemplate,
        filename=filename,
        title=cfg.title,
        wavelength=rsm.wavelength,
    )


def _axis(title: str, tick_format: str, rng: Optional[Range]) -> dict:
    ax = dict(
        title=dict(text=title),
        tickformat=tick_format,
        showline=True,
        linewidth=1,
        linecolor="black",
        mirror=True,
        ticks="outside",
    )
    if rng is not None:
        ax["range"] = list(rng)
    return ax


def to_plotly(model: PlotModel) -> "go.Figure":
    """
    Render a PlotModel with plotly (WebGL scatter, diamond markers).

    A scatter is used rather than a heatmap/contour so the figure shows the
    points that were actually measured, without interpolation.
    Pass ``export_config(model)`` as ``config`` to ``fig.show``/``write_html``.
    """
    xs, ys, cs, hs = model.columns()
    fig = go.Figure(
        go.Scattergl(
            x=xs,
            y=ys,
            customdata=hs,
            mode="markers",
            hovertemplate=model.hovertemplate,
            marker=dict(
                color=cs,
                colorscale=model.colormap,
                showscale=True,
                symbol="diamond",
                size=model.marker_size,
                cmin=model.zmin,
                cmax=model.zmax,
                colorbar=dict(
                    title=dict(text="Counts<br><sup>&nbsp;</sup>"),
                    ticks="outside",
                    tickmode="array",
                    tickvals=model.tickvals,
                    ticktext=model.ticktext,
                ),
            ),
        )
    )
    fig.update_layout(
        autosize=False,
        width=model.width,
        height=model.height,
        plot_bgcolor="white",
        xaxis=_axis(model.x_title, model.tick_format, model.x_range),
        yaxis=_axis(model.y_title, model.tick_format, model.y_range),
        font=dict(family="Arial", size=21, color="black"),
        margin=dict(l=50, r=50, b=100, t=100, pad=2),
    )
    if model.title:
        fig.update_layout(title=dict(text=model.title))
    return fig


def export_config(model: PlotModel) -> dict:
    """plotly ``config`` dict: no scroll zoom, PNG download named after the raw file at 2x scale."""
    return {
        "scrollZoom": False,
        "toImageButtonOptions": {"format": "png", "filename": model.filename, "scale": 2},
    }


def add_reference_lines(
    fig: "go.Figure",
    model: PlotModel,
    *,
    omega: Optional[float] = None,
    two_theta: Optional[float] = None,
) -> "go.Figure":
    """
    Mark expected angles on a figure.

    goniometer space: a vertical line at omega and a horizontal one at 2theta.
    q space: both angles are needed; the matching (qx, qz) is marked by a
    cross of dashed lines.
    """
    style = dict(line_dash="dash", line_color="black", line_width=1)
    if model.space == "gonio":
        if omega is not None:
            fig.add_vline(x=float(omega), **style)
        if two_theta is not None:
            fig.add_hline(y=float(two_theta), **style)
        return fig
    if omega is None or two_theta is None:
        raise ConfigError("q-space reference lines need both omega and two_theta")
    qx, qz = ang2q(omega, two_theta, model.wavelength or WAVELENGTH)
    fig.add_vline(x=float(qx), **style)
    fig.add_hline(y=float(qz), **style)
    return fig
