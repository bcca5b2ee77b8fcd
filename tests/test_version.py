import pytest

from psrpcgen.version import PSRPC_VERSION_0_6, VERSION, version_tag


def test_current_version_tag_matches_marker():
    assert version_tag(VERSION) == "PsrpcVersion_0_6"
    assert PSRPC_VERSION_0_6 is True


def test_default_argument_is_current_version():
    assert version_tag() == version_tag(VERSION)


def test_major_minor_only_uses_first_two_numbers():
    assert version_tag("v1.2.3") == "PsrpcVersion_1_2"
    assert version_tag("v1.2.3") == version_tag("v1.2.9")


def test_prerelease_and_build_are_ignored():
    assert version_tag("v2.10.1-rc.1+build") == "PsrpcVersion_2_10"


@pytest.mark.parametrize("bad", ["", "0.6.0", "v", "vx.1", "v01.2.3", "v1.2-rc"])
def test_invalid_versions_raise(bad):
    with pytest.raises(ValueError):
        version_tag(bad)