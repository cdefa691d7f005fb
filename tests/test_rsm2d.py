import numpy as np
import pytest
from conftest import make_raw

from rsm2d.ascii_parser import parse
from rsm2d.exceptions import ConfigError
from rsm2d.rsm2d import (
    COLUMNS,
    LOG_FLOOR,
    LOG_SENTINEL,
    WAVELENGTH,
    CropMode,
    RSMPoint,
    RSMTransformer,
    ang2q,
    gonio_mask,
    qspace_mask,
    transform,
)


def _map(text, **kwargs):
    return transform(*parse(text), **kwargs)


def test_coupled_scan_omega_follows_half_two_theta(two_scan_text):
    rsm = _map(two_scan_text)
    df = rsm.df
    assert len(rsm) == 402
    assert tuple(df.columns) == COLUMNS
    first = df[df["scan_no"] == 1].iloc[0]
    second = df[df["scan_no"] == 2].iloc[0]
    assert first["two_theta"] == 20.0
    assert first["omega"] == pytest.approx(20.05)
    assert second["omega"] == pytest.approx(20.10)
    last = df[df["scan_no"] == 1].iloc[-1]
    assert last["omega"] == pytest.approx(0.5 * 22.0 + 10.05)
    scan_offset = np.where(df["scan_no"] == 1, 10.05, 10.10)
    np.testing.assert_allclose(df["omega"], 0.5 * df["two_theta"] + scan_offset, rtol=0, atol=1e-9)


def test_two_theta_scan_keeps_omega_at_offset():
    counts = [[1, 2, 3], [4, 5, 6]]
    rsm = _map(make_raw(counts, [30.0, 30.5], axis="2theta", start=60, stop=61, step=0.5))
    by_scan = rsm.df.groupby("scan_no")["omega"]
    assert by_scan.min().tolist() == [30.0, 30.5]
    assert by_scan.max().tolist() == [30.0, 30.5]


def test_user_offsets_are_subtracted(two_scan_text):
    base = _map(two_scan_text).df
    moved = _map(two_scan_text, offset_omega=0.25, offset_2theta=-0.5).df
    np.testing.assert_allclose(moved["omega"], base["omega"] - 0.25)
    np.testing.assert_allclose(moved["two_theta"], base["two_theta"] + 0.5)


def test_symmetric_scan_has_zero_qx():
    counts = [list(range(1, 11))]
    rsm = _map(make_raw(counts, [0.0], start=30, stop=39, step=1))
    assert (rsm.df["qx"] == 0.0).all()
    # |q| = 2 sin(theta) / lambda
    expected = 2 * np.sin(np.radians(rsm.df["two_theta"] / 2)) / WAVELENGTH
    np.testing.assert_allclose(rsm.df["qz"], expected)


def test_ang2q_sign_of_qx():
    qx_lo, _ = ang2q(30.0, 70.0)
    qx_hi, _ = ang2q(40.0, 70.0)
    assert qx_lo < 0 < qx_hi


def test_ang2q_uses_wavelength():
    _, qz_cu = ang2q(35.0, 70.0)
    _, qz_mo = ang2q(35.0, 70.0, wavelength=WAVELENGTH / 2)
    assert qz_mo == pytest.approx(2 * qz_cu)


def test_log_counts_are_always_finite_for_non_negative_counts():
    counts = [[0, 1, 10, 1000, 0]]
    rsm = _map(make_raw(counts, [0.0], start=30, stop=32, step=0.5))
    log = rsm.df["log_counts"].to_numpy()
    assert np.isfinite(log).all()
    assert log[0] == pytest.approx(-4.0)
    assert log[3] == pytest.approx(3.0, abs=1e-6)


def test_hover_text_rounds_to_three_digits():
    counts = [[12345, 0.123456, 7]]
    rsm = _map(make_raw(counts, [0.0], start=30, stop=31, step=0.5))
    assert rsm.df["hover"].tolist() == ["12300", "0.123", "7"]


def test_uncropped_bounds_are_extent(two_scan_text):
    rsm = _map(two_scan_text)
    (x0, x1), (z0, z1) = rsm.bounds
    assert x0 == rsm.df["qx"].min() and x1 == rsm.df["qx"].max()
    assert z0 == rsm.df["qz"].min() and z1 == rsm.df["qz"].max()
    assert rsm.crop_mode is CropMode.NONE


def test_qspace_crop_keeps_inside_and_reports_box(two_scan_text):
    full = _map(two_scan_text).df
    box = ((full["qx"].quantile(0.25), full["qx"].quantile(0.75)),
           (full["qz"].quantile(0.25), full["qz"].quantile(0.75)))
    rsm = _map(two_scan_text, crop_mode="q-space", crop_bounds=box)
    assert 0 < len(rsm) < len(full)
    assert rsm.bounds == box
    (x0, x1), (z0, z1) = box
    assert ((rsm.df["qx"] > x0) & (rsm.df["qx"] < x1)).all()
    assert ((rsm.df["qz"] > z0) & (rsm.df["qz"] < z1)).all()
    outside = full[~qspace_mask(full["qx"], full["qz"], x0, x1, z0, z1)]
    assert len(outside) + len(rsm) == len(full)


def test_goniometer_crop_excludes_boundary_points():
    counts = [list(range(1, 6)), list(range(1, 6))]
    text = make_raw(counts, [10.0, 10.5], axis="2theta", start=20, stop=22, step=0.5)
    rsm = _map(text, crop_mode="gonio", crop_bounds=((9.0, 11.0), (20.0, 22.0)))
    assert rsm.crop_mode is CropMode.GONIOMETER
    # 20.0 and 22.0 lie on the boundary
    assert sorted(set(rsm.df["two_theta"])) == [20.5, 21.0, 21.5]
    assert len(rsm) == 6
    (x0, x1), (z0, z1) = rsm.bounds
    assert x0 == rsm.df["qx"].min() and z1 == rsm.df["qz"].max()


def test_goniometer_crop_that_removes_everything(caplog):
    counts = [[1, 2, 3]]
    text = make_raw(counts, [10.0], axis="2theta", start=20, stop=21, step=0.5)
    rsm = _map(text, crop_mode="goniometer", crop_bounds=((50.0, 60.0), (20.0, 21.0)))
    assert len(rsm) == 0
    assert np.isnan(rsm.bounds[0][0])
    assert "removed every point" in caplog.text


def test_crop_replaces_non_finite_log_counts():
    counts = [[-1, 5, 10]]
    text = make_raw(counts, [10.0], axis="2theta", start=20, stop=21, step=0.5)
    rsm = _map(text, crop_mode="goniometer", crop_bounds=((9.0, 11.0), (19.0, 22.0)))
    assert rsm.df["log_counts"].iloc[0] == LOG_SENTINEL
    assert np.isfinite(rsm.df["log_counts"]).all()


def test_uncropped_map_replaces_non_finite_log_counts():
    counts = [[-1, 5, 10]]
    text = make_raw(counts, [10.0], axis="2theta", start=20, stop=21, step=0.5)
    rsm = _map(text)
    expected = [LOG_SENTINEL, np.log10(5 + LOG_FLOOR), np.log10(10 + LOG_FLOOR)]
    assert rsm.df["log_counts"].tolist() == pytest.approx(expected)


def test_qspace_crop_excludes_boundary_points():
    # scan 1 is symmetric (qx == 0 exactly), scan 2 is tilted towards qx > 0
    counts = [list(range(1, 6)), list(range(1, 6))]
    text = make_raw(counts, [0.0, 0.5], start=60, stop=62, step=0.5)
    full = _map(text).df
    tilted = full[full["scan_no"] == 2]
    qz_edge = tilted["qz"].iloc[0]
    rsm = _map(text, crop_mode="q-space", crop_bounds=((0.0, 1.0), (qz_edge, 10.0)))
    assert (rsm.df["scan_no"] == 2).all()
    assert len(rsm) == len(tilted) - 1
    assert qz_edge not in rsm.df["qz"].tolist()


def test_masks_are_open_intervals():
    v = np.array([0.0, 1.0, 2.0])
    assert qspace_mask(v, v, 0.0, 2.0, 0.0, 2.0).tolist() == [False, True, False]
    assert gonio_mask(v, v, 0.0, 2.0, 0.0, 2.0).tolist() == [False, True, False]


@pytest.mark.parametrize("value, mode", [
    (None, CropMode.NONE),
    ("DontCrop", CropMode.NONE),
    ("qspace", CropMode.QSPACE),
    (" Q-Space ", CropMode.QSPACE),
    ("gonio", CropMode.GONIOMETER),
    (CropMode.GONIOMETER, CropMode.GONIOMETER),
])
def test_crop_mode_aliases(value, mode):
    assert CropMode.parse(value) is mode


def test_crop_configuration_errors(two_scan_text):
    with pytest.raises(ConfigError):
        CropMode.parse("sideways")
    with pytest.raises(ConfigError, match="requires crop_bounds"):
        _map(two_scan_text, crop_mode="q-space")
    with pytest.raises(ConfigError):
        _map(two_scan_text, crop_mode="q-space", crop_bounds=((0.4, 0.3), (0.7, 0.8)))
    with pytest.raises(ConfigError):
        _map(two_scan_text, crop_mode="goniometer", crop_bounds=(1, 2, 3, 4))


def test_transformer_rejects_bad_wavelength(two_scan_text):
    with pytest.raises(ConfigError):
        RSMTransformer(*parse(two_scan_text), wavelength=0)


def test_points_follow_table_order(two_scan_text):
    rsm = _map(two_scan_text, offset_omega=0.1)
    pts = list(rsm.points())
    assert len(pts) == len(rsm)
    assert isinstance(pts[0], RSMPoint)
    row = rsm.df.iloc[201]
    assert pts[201] == (2, row["two_theta"], row["omega"], row["counts"],
                        row["log_counts"], row["qx"], row["qz"])
    assert rsm.offset_omega == 0.1
