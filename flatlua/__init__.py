"""flatlua - FlatBuffers Lua code generator."""

from importlib.metadata import PackageNotFoundError, version

from ._logging import configure_logging as configure_logging

try:
    __version__ = version("flatlua")
except PackageNotFoundError:
    __version__ = "(local)"
