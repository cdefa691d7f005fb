from importlib.metadata import version, PackageNotFoundError
try:
    __version__ = version("rsmview")
except PackageNotFoundError:
    __version__ = "0.0.0"
