import numpy as np
import pytest
import xrayutilities as xu

from rsm2d import RSMDataLoader
from rsm2d.alignment import compare_to_expected, expected_angles, max_point
from rsm2d.exceptions import ConfigError
from rsm2d.rsm2d import WAVELENGTH, ang2q


def test_max_point(raw_file):
    rsm = RSMDataLoader(raw_file).load()
    peak = max_point(rsm)
    assert peak.counts == 9000
    assert peak.scan_no == 2
    assert peak.two_theta == 69.0
    assert peak.omega == pytest.approx(34.5)


def test_max_point_of_empty_map(raw_file):
    rsm = RSMDataLoader(
        raw_file, crop_mode="goniometer", crop_bounds=((0.0, 1.0), (0.0, 1.0))
    ).load()
    with pytest.raises(ConfigError):
        max_point(rsm)


def test_compare_to_expected_and_realign(raw_file):
    rsm = RSMDataLoader(raw_file).load()
    d_om, d_tt = compare_to_expected(rsm, calc_2theta=68.9, calc_omega=34.6)
    assert d_om == pytest.approx(-0.1)
    assert d_tt == pytest.approx(0.1)

    aligned = RSMDataLoader(raw_file, offset_omega=d_om, offset_2theta=d_tt).load()
    peak = max_point(aligned)
    assert peak.omega == pytest.approx(34.6)
    assert peak.two_theta == pytest.approx(68.9)


def test_expected_angles_symmetric_reflection():
    om, tt = expected_angles("Si", (0, 0, 4))
    assert om == pytest.approx(tt / 2, abs=1e-6)
    # Si 004 with Cu K-alpha
    assert tt == pytest.approx(69.19, abs=0.05)


def test_expected_angles_accepts_crystal_objects():
    assert expected_angles(xu.materials.Si, (0, 0, 4)) == pytest.approx(expected_angles("Si", (0, 0, 4)))


def test_expected_angles_errors():
    with pytest.raises(ConfigError):
        expected_angles("Unobtainium", (0, 0, 1))
    with pytest.raises(ConfigError):
        expected_angles("Si", (0, 4))


@pytest.mark.parametrize("omega, two_theta", [(34.5, 69.0), (30.0, 70.0), (12.0, 40.0)])
def test_q_magnitude_matches_xrayutilities(omega, two_theta):
    hxrd = xu.HXRD((1, 1, 0), (0, 0, 1), wl=WAVELENGTH)
    q = [float(np.squeeze(c)) for c in hxrd.Ang2Q(omega, two_theta)]
    qx, qz = ang2q(omega, two_theta)
    # xrayutilities works in 2π/d
    assert np.hypot(qx, qz) == pytest.approx(np.linalg.norm(q) / (2 * np.pi), rel=1e-6)
