"""Tests for deny policy expansion."""

import pytest

from lockaudit.core.config import DenyOption
from lockaudit.core.errors import ConfigError
from lockaudit.core.models import WarningKind
from lockaudit.core.policy import deny_warning_kinds, parse_deny_options


def test_empty_deny_denies_nothing():
    assert deny_warning_kinds([]) == frozenset()


def test_warnings_denies_every_kind():
    assert deny_warning_kinds([DenyOption.WARNINGS]) == frozenset(WarningKind)


@pytest.mark.parametrize(
    "option, kind",
    [
        (DenyOption.UNMAINTAINED, WarningKind.UNMAINTAINED),
        (DenyOption.UNSOUND, WarningKind.UNSOUND),
        (DenyOption.YANKED, WarningKind.YANKED),
    ],
)
def test_single_kind_options(option, kind):
    assert deny_warning_kinds([option]) == frozenset({kind})


def test_options_combine():
    kinds = deny_warning_kinds([DenyOption.YANKED, DenyOption.UNSOUND])

    assert kinds == frozenset({WarningKind.YANKED, WarningKind.UNSOUND})


def test_parse_deny_options():
    assert parse_deny_options(["Warnings", " yanked "]) == frozenset(
        {DenyOption.WARNINGS, DenyOption.YANKED}
    )


def test_parse_unknown_deny_option():
    with pytest.raises(ConfigError, match="unknown deny option 'vulnerabilities'"):
        parse_deny_options(["yanked", "vulnerabilities"])
