"""FlatBuffers schema to Lua code generator."""

from .context import GeneratorOptions as GeneratorOptions
from .errors import GeneratorError as GeneratorError
from .errors import SlotLayoutError as SlotLayoutError
from .errors import UnsupportedShapeError as UnsupportedShapeError
from .errors import ValidationError as ValidationError
from .layout import resolve_layout as resolve_layout
from .lua import Artifact as Artifact
from .lua import LuaGenerator as LuaGenerator
from .lua import render as render
from .parser import parse as parse
from .types import *
from .writer import write_artifacts as write_artifacts
