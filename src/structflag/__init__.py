"""
structflag - expose dataclass instances as command-line flags.

Each field of a dataclass instance becomes a flag whose default is the field's current
value; parsing writes the parsed values back into the same instance. Nested dataclasses
produce dash-joined flag names, and flag values can also be loaded from YAML or JSON
configuration files.
"""

from .binder import MissingNamePolicy, flag_field, load, load_to
from .errors import (
    BindError,
    ConfigError,
    CycleError,
    DuplicateFlagError,
    ParseError,
    StructFlagError,
)
from .flagset import AttributeSlot, Flag, FlagSet, parse
from .kinds import FlagKind, Int64, Uint, Uint64

__version__ = "1.0.0"
__all__ = [
    "AttributeSlot",
    "BindError",
    "ConfigError",
    "CycleError",
    "DuplicateFlagError",
    "Flag",
    "FlagKind",
    "FlagSet",
    "Int64",
    "MissingNamePolicy",
    "ParseError",
    "StructFlagError",
    "Uint",
    "Uint64",
    "flag_field",
    "load",
    "load_to",
    "parse",
]
