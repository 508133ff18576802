"""
Exceptions raised by structflag.

Binding problems are contract violations and derive from TypeError; problems with
flag names, command-line values and configuration files derive from ValueError.
"""


class StructFlagError(Exception):
    """Base class for all structflag errors."""


class BindError(StructFlagError, TypeError):
    """The object handed to the binder cannot be bound."""


class CycleError(BindError):
    """A record contains itself along the current binding path."""


class DuplicateFlagError(StructFlagError, ValueError):
    """A flag with the same name is already registered."""


class ParseError(StructFlagError, ValueError):
    """Command-line arguments could not be parsed."""


class ConfigError(StructFlagError, ValueError):
    """A configuration file could not be applied."""
