"""Tests for version parsing and Cargo version requirements."""

import pytest
from semver import Version

from lockaudit.core.errors import VersionParseError
from lockaudit.core.models import AdvisoryVersions
from lockaudit.core.versions import VersionPredicate, VersionReq, parse_version


def matches(req: str, version: str) -> bool:
    return VersionReq(req).matches(Version.parse(version))


@pytest.mark.parametrize(
    "req, version, expected",
    [
        (">= 1.2.3", "1.2.3", True),
        (">= 1.2.3", "1.2.2", False),
        ("< 1.0.0", "0.9.9", True),
        ("< 1.0.0", "1.0.0", False),
        ("> 1.2.3", "1.2.3", False),
        ("> 1.2", "1.2.9", False),
        ("> 1.2", "1.3.0", True),
        ("<= 1.2", "1.2.9", True),
        ("<= 1.2", "1.3.0", False),
        ("= 1.2.3", "1.2.3", True),
        ("= 1.2", "1.2.7", True),
        ("= 1.2", "1.3.0", False),
        ("^1.2.3", "1.9.0", True),
        ("^1.2.3", "2.0.0", False),
        ("^0.2.3", "0.2.9", True),
        ("^0.2.3", "0.3.0", False),
        ("^0.0.3", "0.0.4", False),
        ("^0", "0.9.0", True),
        ("0.6.10", "0.6.12", True),
        ("0.6.10", "0.7.0", False),
        ("~1.2.3", "1.2.9", True),
        ("~1.2.3", "1.3.0", False),
        ("~1", "1.9.0", True),
        ("1.2.*", "1.2.5", True),
        ("1.2.*", "1.3.0", False),
        ("*", "42.0.0", True),
        (">= 1.0.0, < 1.5.0", "1.4.9", True),
        (">= 1.0.0, < 1.5.0", "1.5.0", False),
    ],
)
def test_requirement_matching(req, version, expected):
    assert matches(req, version) is expected


def test_prerelease_versions_parse():
    assert parse_version("0.3.0-alpha.1") < parse_version("0.3.0")


@pytest.mark.parametrize(
    "text",
    ["0.1.0-alpha.beta", "0.0.0-reserved", "1.0.0-rc.1.2", "1.0.0-x.7.z.92", "1.0.0+build.5"],
)
def test_semver_versions_parse(text):
    assert str(parse_version(text)) == text


def test_semver_precedence():
    ordered = [
        "1.0.0-1",
        "1.0.0-alpha",
        "1.0.0-alpha.1",
        "1.0.0-alpha.beta",
        "1.0.0-beta",
        "1.0.0-beta.2",
        "1.0.0-beta.11",
        "1.0.0-rc.1",
        "1.0.0",
    ]

    parsed = [parse_version(v) for v in ordered]

    assert sorted(parsed) == parsed


def test_numeric_prerelease_sorts_below_release():
    assert parse_version("1.0.0-1") < parse_version("1.0.0")


@pytest.mark.parametrize(
    "req, version, expected",
    [
        (">= 1.0.0", "1.0.0-1", False),
        (">= 0.5.0", "1.0.0-rc.1", False),
        (">= 1.0.0-rc.1", "1.0.0-rc.2", True),
        (">= 1.0.0-rc.1", "1.0.0", True),
        (">= 1.0.0-rc.1", "1.1.0-rc.1", False),
        ("^1.0.0-rc.1", "1.0.0-rc.1", True),
        ("*", "1.0.0-rc.1", False),
    ],
)
def test_prerelease_matching(req, version, expected):
    """Prereleases only match requirements naming a prerelease of the same release."""
    assert matches(req, version) is expected


def test_requirement_with_semver_prerelease():
    versions = AdvisoryVersions(patched=[">= 1.0.0-x.7.z.92"])

    assert versions.is_vulnerable(Version.parse("1.0.0-x.7.z.91"))
    assert not versions.is_vulnerable(Version.parse("1.0.0"))


@pytest.mark.parametrize("text", ["", "not-a-version", "1.0.0-§"])
def test_invalid_version(text):
    with pytest.raises(VersionParseError):
        parse_version(text)


@pytest.mark.parametrize("text", ["", ">= 1.0,", "=> 1.0", ">= banana"])
def test_invalid_requirement(text):
    with pytest.raises(VersionParseError):
        VersionReq(text)


def test_bounds():
    req = VersionReq(">= 1.2.0, < 1.4.0")

    assert req.lower_bound() == Version.parse("1.2.0")
    assert req.upper_bound() == Version.parse("1.4.0")
    assert VersionReq("< 0.5").lower_bound() is None
    assert VersionReq(">= 2.0.0").upper_bound() is None


def test_advisory_versions_predicate():
    versions = AdvisoryVersions(patched=[">= 1.2.0"], unaffected=["< 0.5.0"])

    assert isinstance(versions, VersionPredicate)
    assert not versions.is_vulnerable(Version.parse("0.4.0"))
    assert versions.is_vulnerable(Version.parse("0.5.0"))
    assert versions.is_vulnerable(Version.parse("1.1.9"))
    assert not versions.is_vulnerable(Version.parse("1.2.0"))


def test_advisory_versions_without_ranges_affect_everything():
    assert AdvisoryVersions().is_vulnerable(Version.parse("0.1.0"))


def test_advisory_versions_reject_bad_requirement():
    with pytest.raises(ValueError):
        AdvisoryVersions(patched=["at least one"])
