from dump_anon.app import DumpAnonApp
from dump_anon.version import __version__

__all__ = ["DumpAnonApp", "__version__"]
