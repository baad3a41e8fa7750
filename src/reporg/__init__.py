"""reporg: discover git repositories on disk and file them into themed folders."""

from importlib import metadata

try:
    __version__ = metadata.version("reporg")
except metadata.PackageNotFoundError:
    __version__ = "0.0.0"

__all__ = ["__version__"]
