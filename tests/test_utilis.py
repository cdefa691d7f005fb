import pytest

from rsm2d.colormaps import DEFAULT_CMAP, TURBO_WHITE, stops_from_rgb, validate_colormap
from rsm2d.exceptions import ConfigError
from rsm2d.utilis import direction_label, format_counts, log_ticks, q_axis_title


@pytest.mark.parametrize("value, text", [
    (0, "0"),
    (7, "7"),
    (1234, "1230"),
    (98765.4, "98800"),
    (0.0123456, "0.0123"),
])
def test_format_counts(value, text):
    assert format_counts(value) == text


def test_direction_label():
    assert direction_label("0 0 1") == "[001]"
    assert direction_label("1 -2 3", sub="pc") == (
        "[1<span style='text-decoration:overline'>2</span>3]<sub>pc</sub>"
    )
    with pytest.raises(ConfigError):
        direction_label("1 0")
    with pytest.raises(ConfigError):
        direction_label("a b c")


def test_q_axis_title():
    title = q_axis_title("1 0 3", sub="pc")
    assert title.startswith("<i><b>Q</b></i>")
    assert "[103]<sub>pc</sub>" in title
    assert title.endswith("(Å<sup>-1</sup>)")


def test_log_ticks():
    assert log_ticks(0.5, 4.0) == ([1, 2, 3, 4], ["10", "10<sup>2</sup>", "10<sup>3</sup>", "10<sup>4</sup>"])
    assert log_ticks(-0.5, 1.2) == ([0, 1], ["1", "10"])
    assert log_ticks(1.2, 1.8) == ([], [])


def test_turbo_white_table():
    assert len(TURBO_WHITE) == 255
    assert TURBO_WHITE[0] == [0.0, "rgb(255, 255, 255)"]
    assert TURBO_WHITE[-1][0] == 1.0
    assert TURBO_WHITE[1][0] == pytest.approx(1 / 254)
    assert DEFAULT_CMAP is TURBO_WHITE
    assert validate_colormap(TURBO_WHITE) == TURBO_WHITE


def test_validate_colormap():
    assert validate_colormap("Viridis") == "Viridis"
    assert validate_colormap([(0, "white"), (1, "black")]) == [[0.0, "white"], [1.0, "black"]]
    with pytest.raises(ConfigError):
        validate_colormap([[0.0, "white"]])
    with pytest.raises(ConfigError):
        validate_colormap([[0.1, "white"], [1.0, "black"]])
    with pytest.raises(ConfigError):
        validate_colormap([[0.0, "white"], [0.6, "grey"], [0.4, "red"], [1.0, "black"]])
    with pytest.raises(ConfigError):
        validate_colormap([0.0, 1.0])


def test_stops_from_rgb():
    assert stops_from_rgb([(0, 0, 0), (255, 0, 0), (255, 255, 255)]) == [
        [0.0, "rgb(0, 0, 0)"], [0.5, "rgb(255, 0, 0)"], [1.0, "rgb(255, 255, 255)"],
    ]
    with pytest.raises(ConfigError):
        stops_from_rgb([(0, 0, 0)])
