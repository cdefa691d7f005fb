import numpy as np
import pytest


def make_raw(
    counts,
    offsets,
    *,
    axis="2Theta/Omega",
    start=20.0,
    stop=20.4,
    step=0.002,
    declared=None,
    per_line=10,
):
    """
    Text of an ASCII raw file with one section per scan.

    ``counts`` is a list of per-scan intensity lists; ``declared`` overrides
    the *COUNT value written for each scan.
    """
    lines = [
        "*RAS_DATA_START",
        "*FILE_COMMENT\t\t=  \"generated\"",
        f"*SCAN_AXIS\t\t=  {axis}",
        "*WAVE_LENGTH\t\t=  1.541867",
    ]
    for k, (scan, off) in enumerate(zip(counts, offsets)):
        n = len(scan) if declared is None else declared[k]
        lines += [
            "*BEGIN",
            f"*START\t\t=  {start:.4f}",
            f"*STOP\t\t=  {stop:.4f}",
            f"*STEP\t\t=  {step:.4f}",
            f"*OFFSET\t\t=  {off:.4f}",
            f"*COUNT\t\t=  {n}",
        ]
        for i in range(0, len(scan), per_line):
            lines.append(", ".join(f"{c:g}" for c in scan[i:i + per_line]))
        lines.append("*END")
    lines.append("*EOF")
    return "\n".join(lines) + "\n"


@pytest.fixture
def two_scan_text():
    """201-point grid from 20 to 22 deg, offsets 10.05 and 10.10."""
    rng = np.random.default_rng(0)
    counts = [rng.integers(0, 5000, 201).tolist() for _ in range(2)]
    return make_raw(counts, [10.05, 10.10], start=20.0, stop=22.0, step=0.01)


@pytest.fixture
def raw_file(tmp_path):
    """Small 2theta/omega map with a single bright point, written to disk."""
    counts = [[1, 2, 3, 4, 5], [6, 7, 9000, 8, 9], [3, 2, 1, 0, 0]]
    path = tmp_path / "sample.asc"
    path.write_text(
        make_raw(counts, [-0.1, 0.0, 0.1], start=68.0, stop=70.0, step=0.5),
        encoding="utf-8",
    )
    return path
