from importlib.metadata import version, PackageNotFoundError


try:
    # Get version from metadata
    __version__ = version("dump_anon")
except PackageNotFoundError:
    # Package is not installed, e.g. running from a source checkout
    __version__ = "0.3.0"
