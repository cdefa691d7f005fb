"""
colormaps.py

Colormap tables for the plot layer. A table is a list of ``[fraction, color]``
stops with fractions increasing from 0.0 to 1.0 (plotly ``colorscale`` format).
"""

from __future__ import annotations

from typing import List, Sequence, Tuple, Union

from rsm2d.exceptions import ConfigError

__all__ = ("TURBO_WHITE", "DEFAULT_CMAP", "stops_from_rgb", "validate_colormap")

# "Turbo" that fades to white below the first few percent, so empty
# reciprocal space stays blank.
_TURBO_WHITE_RGB: Tuple[Tuple[int, int, int], ...] = (
    (255, 255, 255), (191, 183, 198), (128, 112, 142), (65, 40, 86), (51, 26, 79), (52, 29, 85),
    (53, 31, 92), (54, 34, 99), (56, 38, 107), (57, 42, 115), (58, 45, 123), (59, 48, 128),
    (60, 50, 134), (61, 53, 139), (61, 55, 145), (62, 58, 150), (63, 61, 155), (63, 63, 160),
    (64, 66, 165), (65, 68, 170), (65, 72, 175), (66, 75, 181), (67, 78, 187), (67, 81, 192),
    (68, 84, 195), (68, 86, 199), (68, 89, 203), (69, 91, 207), (69, 94, 210), (69, 96, 214),
    (69, 99, 217), (70, 101, 220), (70, 104, 223), (70, 107, 226), (70, 110, 230), (70, 113, 233),
    (70, 116, 236), (70, 118, 238), (70, 121, 240), (70, 123, 242), (70, 125, 244), (70, 128, 246),
    (70, 130, 248), (69, 132, 249), (69, 134, 250), (69, 137, 252), (68, 140, 252), (67, 143, 253),
    (66, 146, 254), (65, 149, 254), (64, 151, 254), (63, 153, 254), (61, 156, 253), (60, 158, 253),
    (59, 160, 252), (57, 163, 251), (56, 165, 250), (54, 167, 249), (52, 170, 248), (50, 173, 246),
    (48, 176, 244), (46, 179, 242), (44, 181, 240), (42, 184, 238), (41, 186, 236), (39, 188, 234),
    (38, 190, 232), (36, 192, 230), (35, 194, 227), (33, 197, 225), (32, 199, 223), (31, 201, 220),
    (29, 203, 217), (28, 206, 214), (26, 208, 211), (25, 210, 208), (25, 212, 205), (24, 214, 203),
    (24, 216, 200), (23, 217, 198), (23, 219, 196), (23, 221, 193), (24, 222, 191), (24, 224, 189),
    (24, 225, 186), (26, 227, 183), (27, 229, 180), (28, 230, 178), (30, 232, 175), (32, 233, 173),
    (33, 234, 170), (35, 235, 168), (38, 236, 165), (40, 238, 162), (42, 239, 159), (45, 240, 156),
    (47, 241, 154), (50, 242, 150), (54, 243, 146), (58, 244, 142), (62, 245, 138), (66, 246, 135),
    (69, 247, 132), (73, 248, 129), (76, 248, 126), (80, 249, 122), (83, 250, 119), (87, 250, 116),
    (90, 251, 113), (94, 251, 110), (98, 252, 107), (103, 252, 103), (108, 253, 99), (113, 253, 95),
    (116, 254, 92), (120, 254, 89), (123, 254, 86), (127, 254, 84), (130, 254, 81), (134, 254, 79),
    (137, 254, 76), (140, 254, 74), (144, 254, 72), (147, 254, 69), (151, 254, 67), (155, 253, 64),
    (158, 253, 62), (163, 252, 59), (166, 251, 58), (168, 251, 57), (171, 250, 56), (173, 249, 55),
    (176, 249, 54), (178, 248, 54), (181, 247, 53), (183, 246, 52), (187, 245, 52), (190, 243, 52),
    (193, 242, 51), (195, 241, 51), (197, 239, 51), (200, 238, 51), (202, 237, 52), (204, 235, 52),
    (207, 234, 52), (209, 233, 52), (211, 231, 52), (213, 230, 53), (215, 228, 53), (218, 226, 54),
    (221, 224, 54), (223, 222, 55), (225, 220, 55), (227, 218, 55), (229, 216, 56), (230, 215, 56),
    (232, 213, 56), (234, 211, 57), (235, 209, 57), (237, 207, 57), (238, 205, 57), (240, 203, 58),
    (242, 200, 58), (243, 198, 58), (245, 196, 58), (246, 194, 57), (247, 192, 57), (248, 190, 57),
    (249, 188, 56), (249, 186, 56), (250, 184, 55), (251, 181, 55), (251, 179, 54), (252, 177, 53),
    (252, 174, 52), (253, 171, 51), (253, 168, 50), (253, 165, 49), (253, 162, 48), (254, 160, 47),
    (254, 157, 46), (254, 155, 45), (254, 152, 44), (253, 149, 43), (253, 146, 41), (253, 144, 40),
    (253, 141, 39), (252, 137, 38), (252, 134, 36), (251, 130, 34), (251, 127, 33), (250, 124, 32),
    (249, 121, 30), (249, 118, 29), (248, 115, 28), (247, 113, 27), (247, 110, 26), (246, 107, 24),
    (245, 104, 23), (244, 102, 22), (243, 98, 21), (241, 95, 19), (240, 91, 18), (239, 89, 17),
    (238, 86, 16), (236, 84, 15), (235, 81, 14), (234, 79, 13), (233, 77, 12), (231, 75, 12),
    (230, 73, 11), (229, 70, 10), (227, 68, 10), (225, 66, 9), (223, 63, 8), (221, 61, 8),
    (220, 59, 7), (218, 57, 7), (216, 55, 6), (214, 53, 6), (213, 51, 5), (211, 50, 5),
    (209, 48, 4), (207, 46, 4), (205, 45, 4), (203, 43, 3), (201, 41, 3), (198, 39, 3),
    (195, 37, 2), (193, 35, 2), (190, 33, 2), (188, 32, 2), (186, 30, 1), (184, 29, 1),
    (181, 28, 1), (179, 26, 1), (176, 25, 1), (174, 24, 1), (171, 22, 1), (168, 20, 1),
    (164, 19, 1), (161, 17, 1), (158, 16, 1), (155, 15, 1), (152, 14, 1), (149, 13, 1),
    (146, 11, 1), (144, 10, 1), (141, 9, 1), (137, 8, 1), (134, 7, 1), (131, 6, 2),
    (128, 5, 2), (125, 4, 2), (122, 4, 2),
)


def stops_from_rgb(rgb: Sequence[Tuple[int, int, int]]) -> List[list]:
    """Evenly spaced stops for a list of RGB triples."""
    n = len(rgb)
    if n < 2:
        raise ConfigError("A colormap needs at least two colors")
    return [[i / (n - 1), f"rgb({r}, {g}, {b})"] for i, (r, g, b) in enumerate(rgb)]


TURBO_WHITE = stops_from_rgb(_TURBO_WHITE_RGB)
DEFAULT_CMAP = TURBO_WHITE


def validate_colormap(cmap: Union[str, Sequence]) -> Union[str, List[list]]:
    """
    Check a colormap table; named plotly colorscales (str) are passed through.

    Raises ConfigError unless fractions start at 0.0, end at 1.0 and increase.
    """
    if isinstance(cmap, str):
        return cmap
    try:
        stops = [[float(frac), str(color)] for frac, color in cmap]
    except (TypeError, ValueError):
        raise ConfigError("colormap must be a list of (fraction, color) pairs") from None
    if len(stops) < 2:
        raise ConfigError("A colormap needs at least two stops")
    fracs = [s[0] for s in stops]
    if fracs[0] != 0.0 or fracs[-1] != 1.0:
        raise ConfigError(f"colormap fractions must run from 0.0 to 1.0, got {fracs[0]}..{fracs[-1]}")
    if any(b <= a for a, b in zip(fracs, fracs[1:])):
        raise ConfigError("colormap fractions must increase monotonically")
    return stops
