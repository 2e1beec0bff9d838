"""Deny policy: which warning kinds count as failures."""

from typing import Iterable

from lockaudit.core.config import DenyOption
from lockaudit.core.errors import ConfigError
from lockaudit.core.models import WarningKind

_KINDS_BY_OPTION: dict[DenyOption, tuple[WarningKind, ...]] = {
    DenyOption.WARNINGS: tuple(WarningKind),
    DenyOption.UNMAINTAINED: (WarningKind.UNMAINTAINED,),
    DenyOption.UNSOUND: (WarningKind.UNSOUND,),
    DenyOption.YANKED: (WarningKind.YANKED,),
}


def parse_deny_options(values: Iterable[str]) -> frozenset[DenyOption]:
    """Parse raw deny selectors such as ``["warnings", "yanked"]``.

    Raises:
        ConfigError: On an unknown selector
    """
    options = set()
    for value in values:
        try:
            options.add(DenyOption(value.strip().lower()))
        except ValueError:
            valid = ", ".join(o.value for o in DenyOption)
            raise ConfigError(
                f"unknown deny option {value!r} (expected one of: {valid})"
            ) from None
    return frozenset(options)


def deny_warning_kinds(deny: Iterable[DenyOption]) -> frozenset[WarningKind]:
    """Expand deny options into the warning kinds they promote to failures.

    An empty selection denies nothing.
    """
    return frozenset(kind for option in deny for kind in _KINDS_BY_OPTION[option])
