"""
FlagSet - a registry of named command-line flags backed by argparse.

Each flag is bound to a slot (an attribute on some object). The value found in the
slot at registration time becomes the flag's default, and parsing writes the parsed
value straight back into the slot. Command lines accept ``-name=value``, ``-name value``
and ``--name`` forms, bare ``-name`` for booleans, and parsing stops at the first
non-flag argument or after ``--``.

Values for flags can also be loaded from YAML or JSON configuration files.
"""

import argparse
import dataclasses
import json
import logging
import os
import re
import sys
from typing import IO, AbstractSet, Any, Iterator, Optional

import yaml
from result import Err, Ok, Result

from . import kinds
from .errors import ConfigError, DuplicateFlagError, ParseError, StructFlagError
from .kinds import FlagKind

LOGGER = logging.getLogger(__name__)

_HELP_NAMES = ("h", "help")
_ARGUMENT_PREFIX = re.compile(r"^argument [^:]+: ")


@dataclasses.dataclass
class AttributeSlot:
    """A live reference to one attribute of an object."""

    target: Any
    attribute: str

    def get(self) -> Any:
        return getattr(self.target, self.attribute)

    def set(self, value: Any) -> None:
        setattr(self.target, self.attribute, value)


@dataclasses.dataclass
class Flag:
    """
    A registered flag.

    Attributes:
        name: Flag name without leading dashes.
        usage: Help text shown for the flag.
        def_value: The default value rendered as text.
        kind: The leaf kind of the bound value.
        slot: Where parsed values are written.
    """

    name: str
    usage: str
    def_value: str
    kind: FlagKind
    slot: AttributeSlot = dataclasses.field(repr=False, compare=False)

    @property
    def value(self) -> Any:
        return self.slot.get()

    def set(self, text: str) -> None:
        """Parse ``text`` and store the result in the bound slot."""
        self.slot.set(kinds.parse(self.kind, text))

    def __str__(self) -> str:
        return kinds.format_value(self.kind, self.value)


class _FlagArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that can raise ParseError instead of exiting."""

    raise_errors: bool = False

    def error(self, message: str) -> None:  # type: ignore[override]
        message = _ARGUMENT_PREFIX.sub("", message)
        if self.raise_errors:
            raise ParseError(message)
        super().error(message)


class FlagSet:
    """
    A set of flags that parses command-line arguments into bound slots.

    Example:
        @dataclass
        class Config:
            count: int = 3

        config = Config()
        flags = FlagSet("app")
        flags.var(FlagKind.INT, "count", "how many", AttributeSlot(config, "count"))
        flags.parse(["-count=7"])
        assert config.count == 7
    """

    def __init__(
        self,
        name: str = "",
        *,
        exit_on_error: bool = True,
        config_flag: Optional[str] = None,
        description: Optional[str] = None,
    ) -> None:
        """
        Args:
            name: Program name used in usage and error messages.
            exit_on_error: Exit with status 2 on errors (argparse behaviour). If False,
                ParseError is raised instead.
            config_flag: Optional flag name (e.g. ``"config"``) that takes the path to
                a YAML or JSON configuration file.
            description: Text shown above the flag list in help output.
        """
        self.name = name
        self.parser: _FlagArgumentParser = _FlagArgumentParser(
            prog=name or None,
            description=description,
            allow_abbrev=False,
            add_help=False,
        )
        self.parser.raise_errors = not exit_on_error
        self._flags: dict[str, Flag] = {}
        self._actual: dict[str, Flag] = {}
        self._args: list[str] = []
        self._parsed = False
        self._config_flag: Optional[str] = None
        if config_flag:
            self._add_config_argument(config_flag)

    @property
    def exit_on_error(self) -> bool:
        return not self.parser.raise_errors

    @staticmethod
    def _option_strings(name: str) -> tuple[str, str]:
        return (f"-{name}", f"--{name}")

    def _check_name(self, name: str) -> None:
        if not name or name.startswith("-") or "=" in name:
            raise ValueError(f"Invalid flag name: {name!r}")
        if name in self._flags or name == self._config_flag:
            raise DuplicateFlagError(f"Flag name conflict: {name}")

    def _add_config_argument(self, config_flag: str) -> None:
        """
        Add the config argument for loading flag values from YAML or JSON files.
        """
        self._check_name(config_flag)
        self.parser.add_argument(
            *self._option_strings(config_flag),
            dest=config_flag,
            type=str,
            default=argparse.SUPPRESS,
            metavar="FILE",
            help="Path to configuration file (YAML or JSON format)",
        )
        self._config_flag = config_flag

    def _format_description(self, usage: str, def_value: str) -> str:
        """Append default value info to the flag usage."""
        if kinds.is_zero_default(def_value):
            description = usage
        else:
            default_suffix = f"(default: {def_value})"
            description = f"{usage} {default_suffix}" if usage else default_suffix
        # argparse applies %-formatting to help strings
        return description.replace("%", "%%")

    def _converter(self, flag: Flag):
        def convert(text: str) -> Any:
            try:
                return kinds.parse(flag.kind, text)
            except ValueError as e:
                raise argparse.ArgumentTypeError(
                    f'invalid value "{text}" for flag -{flag.name}: {e}'
                ) from None

        convert.__name__ = flag.kind.value
        return convert

    def var(self, kind: FlagKind, name: str, usage: str, slot: AttributeSlot) -> Flag:
        """
        Register a flag of ``kind`` bound to ``slot``.

        The slot's current value becomes the flag's default.

        Raises:
            DuplicateFlagError: If a flag with this name already exists.
            ValueError: If the name is empty, starts with a dash or contains ``=``.
        """
        self._check_name(name)
        flag = Flag(
            name=name,
            usage=usage,
            def_value=kinds.format_value(kind, slot.get()),
            kind=kind,
            slot=slot,
        )
        self.parser.add_argument(
            *self._option_strings(name),
            dest=name,
            type=self._converter(flag),
            default=argparse.SUPPRESS,
            metavar=kinds.metavar(kind),
            help=self._format_description(usage, flag.def_value),
        )
        self._flags[name] = flag
        LOGGER.debug("registered %s flag -%s (default %r)", kind.value, name, flag.def_value)
        return flag

    def lookup(self, name: str) -> Optional[Flag]:
        return self._flags.get(name)

    def set(self, name: str, text: str) -> None:
        """Set the value of the named flag from text, as if given on the command line."""
        flag = self._flags.get(name)
        if flag is None:
            raise ParseError(f"no such flag -{name}")
        try:
            flag.set(text)
        except ValueError as e:
            raise ParseError(f'invalid value "{text}" for flag -{name}: {e}') from None
        self._actual[name] = flag

    def all_flags(self) -> list[Flag]:
        """All registered flags, sorted by name."""
        return [self._flags[name] for name in sorted(self._flags)]

    def changed_flags(self) -> list[Flag]:
        """Flags that have been set by parsing, configuration or ``set``."""
        return [self._actual[name] for name in sorted(self._actual)]

    def parsed(self) -> bool:
        return self._parsed

    @property
    def args(self) -> list[str]:
        """Arguments remaining after the flags."""
        return list(self._args)

    def format_help(self) -> str:
        return self.parser.format_help()

    def print_defaults(self, file: Optional[IO[str]] = None) -> None:
        self.parser.print_help(file)

    def _split_args(self, args: list[str]) -> tuple[list[str], list[str]]:
        """
        Split ``args`` into flag tokens and the remaining arguments.

        Every flag token is normalized to ``-name=value`` form so argparse never has to
        guess whether a following argument is a value.
        """
        flag_args: list[str] = []
        index = 0
        while index < len(args):
            token = args[index]
            if token == "--":
                return flag_args, args[index + 1 :]
            if len(token) < 2 or not token.startswith("-"):
                break
            index += 1

            dashes = 2 if token.startswith("--") else 1
            name, sep, _ = token[dashes:].partition("=")
            if not name or name[0] in "-=":
                self.parser.error(f"bad flag syntax: {token}")

            if name in _HELP_NAMES and name not in self._flags:
                self.parser.print_help()
                if self.exit_on_error:
                    self.parser.exit(0)
                raise ParseError("flag: help requested")

            if name == self._config_flag:
                kind = FlagKind.STRING
            else:
                flag = self._flags.get(name)
                if flag is None:
                    self.parser.error(f"flag provided but not defined: -{name}")
                kind = flag.kind

            if sep:
                flag_args.append(token)
            elif kind is FlagKind.BOOL:
                flag_args.append(f"{token}=true")
            elif index < len(args):
                flag_args.append(f"{token}={args[index]}")
                index += 1
            else:
                self.parser.error(f"flag needs an argument: -{name}")
        return flag_args, args[index:]

    def parse(self, args: Optional[list[str]] = None) -> list[str]:
        """
        Parse flags from ``args`` and write the values into their slots.

        Args:
            args: Arguments to parse, without the program name. If None, uses sys.argv.

        Returns:
            list[str]: The arguments remaining after the flags.

        Raises:
            SystemExit: On invalid arguments when ``exit_on_error`` is set.
            ParseError: On invalid arguments otherwise.
        """
        if args is None:
            args = sys.argv[1:]
        self._parsed = True
        flag_args, self._args = self._split_args(list(args))

        parsed_args = vars(self.parser.parse_args(flag_args))
        config_path = parsed_args.pop(self._config_flag, None) if self._config_flag else None

        config_updates: list[tuple[Flag, Any]] = []
        if config_path is not None:
            try:
                config_updates = self._config_updates(config_path, skip=set(parsed_args))
            except (ConfigError, FileNotFoundError) as e:
                if self.exit_on_error:
                    self.parser.error(str(e))
                raise

        for name, value in parsed_args.items():
            flag = self._flags[name]
            flag.slot.set(value)
            self._actual[name] = flag
        self._apply_updates(config_updates, config_path)
        return list(self._args)

    def safe_parse(self, args: Optional[list[str]] = None) -> Result[list[str], str]:
        """
        Parse like ``parse`` but never exit.

        Returns:
            Result[list[str], str]:
                - Ok with the remaining arguments,
                - Err with the error message if parsing fails.
        """
        raise_errors = self.parser.raise_errors
        self.parser.raise_errors = True
        try:
            return Ok(self.parse(args))
        except (StructFlagError, FileNotFoundError) as e:
            return Err(str(e))
        finally:
            self.parser.raise_errors = raise_errors

    def load_config(self, config_path: str) -> None:
        """
        Set flags from a YAML or JSON configuration file.

        Nested mappings are flattened by joining keys with ``-``, so
        ``{"embed": {"foo": "x"}}`` sets the flag ``embed-foo``.

        Raises:
            FileNotFoundError: If the config file doesn't exist.
            ConfigError: If the file is invalid or names unknown flags.
        """
        self._apply_updates(self._config_updates(config_path, skip=frozenset()), config_path)

    def _config_updates(
        self, config_path: str, skip: AbstractSet[str]
    ) -> list[tuple[Flag, Any]]:
        """Parse every entry of a config file without writing any slot."""
        config_data = self._load_config_file(config_path)
        if config_data is None:
            return []
        if not isinstance(config_data, dict):
            raise ConfigError(
                f"Configuration file {config_path} must contain a mapping, "
                f"got {type(config_data).__name__}"
            )

        updates: list[tuple[Flag, Any]] = []
        for name, value in _flatten(config_data):
            if name in skip:
                LOGGER.debug("flag -%s set on command line, ignoring %s", name, config_path)
                continue
            flag = self._flags.get(name)
            if flag is None:
                raise ConfigError(f"Configuration key '{name}' does not match any flag")
            try:
                updates.append((flag, kinds.parse(flag.kind, _config_text(value))))
            except (TypeError, ValueError) as e:
                raise ConfigError(
                    f"invalid value {value!r} for flag -{name} in {config_path}: {e}"
                ) from None

        return updates

    def _apply_updates(
        self, updates: list[tuple[Flag, Any]], config_path: Optional[str]
    ) -> None:
        for flag, value in updates:
            flag.slot.set(value)
            self._actual[flag.name] = flag
            LOGGER.debug("flag -%s set from %s", flag.name, config_path)

    def _load_config_file(self, config_path: str) -> Any:
        """
        Load configuration from a YAML or JSON file.

        Args:
            config_path (str): Path to the configuration file.

        Returns:
            Any: The decoded document.

        Raises:
            FileNotFoundError: If the config file doesn't exist.
            ConfigError: If the file format is not supported or invalid.
        """
        if not os.path.exists(config_path):
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        file_ext = os.path.splitext(config_path)[1].lower()

        with open(config_path, "r") as f:
            if file_ext in [".yaml", ".yml"]:
                try:
                    return yaml.safe_load(f)
                except yaml.YAMLError as e:
                    raise ConfigError(f"Invalid YAML file: {e}")
            elif file_ext == ".json":
                try:
                    return json.load(f)
                except json.JSONDecodeError as e:
                    raise ConfigError(f"Invalid JSON file: {e}")
            else:
                raise ConfigError(
                    f"Unsupported file format: {file_ext}. "
                    "Supported formats are: .yaml, .yml, .json"
                )


def _flatten(data: dict[str, Any], prefix: str = "") -> Iterator[tuple[str, Any]]:
    for key, value in data.items():
        name = f"{prefix}-{key}" if prefix else str(key)
        if isinstance(value, dict):
            yield from _flatten(value, name)
        else:
            yield name, value


def _config_text(value: Any) -> str:
    """Convert a scalar from a config file to flag text."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None or isinstance(value, (list, tuple)):
        raise TypeError(f"expected a scalar, got {type(value).__name__}")
    return str(value)


command_line = FlagSet(os.path.basename(sys.argv[0]) if sys.argv else "")


def parse(args: Optional[list[str]] = None) -> list[str]:
    """Parse the process-wide default flag set."""
    return command_line.parse(args)
