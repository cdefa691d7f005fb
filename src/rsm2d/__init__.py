from importlib.metadata import version, PackageNotFoundError
try:
    __version__ = version("rsmview")
except PackageNotFoundError:
    __version__ = "0.0.0"

from rsm2d.ascii_parser import AsciiRSMParser, ScanAxis, ScanBlock, ScanHeader, parse  # noqa: E402
from rsm2d.data_io import RSMDataLoader, write_rsm_csv  # noqa: E402
from rsm2d.rsm2d import CropMode, RSMMap, RSMPoint, RSMTransformer, ang2q, transform  # noqa: E402

__all__ = (
    "AsciiRSMParser", "ScanAxis", "ScanBlock", "ScanHeader", "parse",
    "RSMDataLoader", "write_rsm_csv",
    "CropMode", "RSMMap", "RSMPoint", "RSMTransformer", "ang2q", "transform",
)
