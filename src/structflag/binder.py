"""
Bind dataclass instances to command-line flags.

Every field of the dataclass becomes a flag. Its current value is the flag's default,
and after parsing the field holds the parsed value, so the instance you pass in is the
instance that ends up configured.

Field metadata controls naming and help text:

    @dataclass
    class Config:
        # flag "Field", no usage text
        Field: int = 0
        # flag "foo" with usage "bar"
        other: int = field(default=0, metadata={"flag": "foo", "usage": "bar"})
        # no flag at all
        ignored: int = field(default=0, metadata={"flag": "-"})

Nested dataclasses are walked recursively and their flags are prefixed with the name
of the field that holds them, joined by a dash: ``embed-foo``, ``embed-bar-baz``.

Supported leaf types are bool, float, int, Uint, Int64, Uint64, datetime.timedelta
and str. Fields of any other type, and fields whose name starts with an underscore,
are ignored.
"""

import dataclasses
import enum
import logging
import sys
import typing
from typing import Any, Optional

from . import flagset, kinds
from .errors import BindError, CycleError
from .flagset import AttributeSlot, FlagSet
from .kinds import FlagKind

LOGGER = logging.getLogger(__name__)

FLAG_METADATA = "flag"
USAGE_METADATA = "usage"
HELP_METADATA = "help"
SKIP = "-"


class MissingNamePolicy(enum.Enum):
    """What to do with a field that has no ``flag`` metadata."""

    # Name the flag after the field.
    USE_FIELD_NAME = "use_field_name"
    # Leave the field, and everything nested under it, unbound.
    SKIP = "skip"


def flag_field(name: Optional[str] = None, usage: str = "", **kwargs: Any) -> Any:
    """
    Shorthand for ``dataclasses.field`` with flag metadata.

    Example:
        count: int = flag_field("count", "how many times", default=3)
    """
    metadata = dict(kwargs.pop("metadata", None) or {})
    if name is not None:
        metadata[FLAG_METADATA] = name
    if usage:
        metadata[USAGE_METADATA] = usage
    return dataclasses.field(metadata=metadata, **kwargs)


def load(
    record: Any, *, policy: MissingNamePolicy = MissingNamePolicy.USE_FIELD_NAME
) -> None:
    """
    Create a flag for each field of ``record`` on the default flag set.

    Flag names are unprefixed. See ``load_to`` for naming, usage and defaults.
    """
    load_to(flagset.command_line, "", record, policy=policy)


def load_to(
    flag_set: FlagSet,
    prefix: str,
    record: Any,
    *,
    policy: MissingNamePolicy = MissingNamePolicy.USE_FIELD_NAME,
) -> None:
    """
    Create a flag on ``flag_set`` for each field of ``record``.

    Each flag name is ``prefix`` plus a dash plus the field's flag name, or just the
    field's flag name when ``prefix`` is empty. After ``flag_set.parse`` the fields of
    ``record`` hold the parsed values.

    Args:
        flag_set: The flag set to register flags on.
        prefix: Namespace for every created flag.
        record: A mutable dataclass instance.
        policy: How to name fields without ``flag`` metadata.

    Raises:
        BindError: If ``record`` is not a mutable dataclass instance, or a field's
            value does not fit its declared type.
        CycleError: If a record contains itself.
        DuplicateFlagError: If two fields map to the same flag name.
    """
    if not dataclasses.is_dataclass(record) or isinstance(record, type):
        raise BindError(
            f"expected a dataclass instance, got {type(record).__name__}: {record!r}"
        )
    _load(flag_set, prefix, record, policy, ())


def _load(
    flag_set: FlagSet,
    prefix: str,
    record: Any,
    policy: MissingNamePolicy,
    path: tuple[int, ...],
) -> None:
    cls = type(record)
    if id(record) in path:
        raise CycleError(f"{cls.__name__} instance contains itself at flag prefix '{prefix}'")
    if cls.__dataclass_params__.frozen:
        raise BindError(f"cannot bind frozen dataclass {cls.__name__}")
    path = path + (id(record),)
    hints = _type_hints(cls)

    for field in dataclasses.fields(record):
        if field.name.startswith("_"):
            LOGGER.debug("skipping private field %s.%s", cls.__name__, field.name)
            continue

        flag_name = field.metadata.get(FLAG_METADATA, "")
        usage = field.metadata.get(USAGE_METADATA, field.metadata.get(HELP_METADATA, ""))
        if flag_name == SKIP:
            continue
        if not flag_name and policy is MissingNamePolicy.SKIP:
            LOGGER.debug("skipping unnamed field %s.%s", cls.__name__, field.name)
            continue

        name = flag_name or field.name
        if prefix:
            name = f"{prefix}-{name}"

        value = getattr(record, field.name)
        if dataclasses.is_dataclass(value) and not isinstance(value, type):
            _load(flag_set, name, value, policy, path)
            continue

        kind = _field_kind(hints.get(field.name, field.type), value)
        if kind is None:
            LOGGER.debug(
                "skipping field %s.%s of unsupported type %s",
                cls.__name__,
                field.name,
                type(value).__name__,
            )
            continue

        try:
            kinds.check_value(kind, value)
        except (TypeError, ValueError) as e:
            raise BindError(f"field {cls.__name__}.{field.name}: {e}") from e

        flag_set.var(kind, name, usage, AttributeSlot(record, field.name))
        LOGGER.debug("bound %s.%s to flag -%s", cls.__name__, field.name, name)


def _type_hints(cls: type) -> dict[str, Any]:
    try:
        return typing.get_type_hints(cls)
    except (NameError, TypeError):
        pass
    # Some annotation cannot be resolved: resolve the remaining fields one by one.
    module = sys.modules.get(cls.__module__)
    globalns = dict(vars(module)) if module is not None else {}
    localns = {cls.__name__: cls, **vars(cls)}
    return {
        field.name: _resolve_hint(cls, field.name, field.type, globalns, localns)
        for field in dataclasses.fields(cls)
    }


def _resolve_hint(
    cls: type, name: str, hint: Any, globalns: dict[str, Any], localns: dict[str, Any]
) -> Any:
    if not isinstance(hint, str):
        return hint
    try:
        return eval(hint, globalns, localns)
    except (NameError, TypeError, AttributeError, SyntaxError) as e:
        LOGGER.debug(
            "cannot resolve type %r of %s.%s (%s), using the runtime type",
            hint,
            cls.__name__,
            name,
            e,
        )
        return None


def _field_kind(type_hint: Any, value: Any) -> Optional[FlagKind]:
    """Kind from the declared type, or from the value when the type is not declared."""
    if isinstance(type_hint, str):
        type_hint = None
    if type_hint is not None and type_hint is not Any:
        return kinds.kind_of(type_hint)
    return kinds.kind_of_value(value)
