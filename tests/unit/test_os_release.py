"""
Unit tests for mlprovision.core.os_release module.
"""

import pytest

from mlprovision.core.exceptions import OSDetectionError
from mlprovision.core.os_release import (
    detect_os_version,
    normalize_version,
    parse_os_release,
)
from tests.mocks.mock_runner import MockCommandRunner

UBUNTU_2404 = """PRETTY_NAME="Ubuntu 24.04.1 LTS"
NAME="Ubuntu"
VERSION_ID="24.04"
VERSION="24.04.1 LTS (Noble Numbat)"
ID=ubuntu
# comment line
ID_LIKE=debian
"""


class TestParseOsRelease:
    """Tests for parse_os_release function."""

    def test_parses_quoted_and_unquoted_values(self):
        values = parse_os_release(UBUNTU_2404)

        assert values["VERSION_ID"] == "24.04"
        assert values["ID"] == "ubuntu"
        assert values["NAME"] == "Ubuntu"

    def test_ignores_comments_and_blank_lines(self):
        values = parse_os_release("# hello\n\nID=ubuntu\n")
        assert values == {"ID": "ubuntu"}

    def test_value_with_equals_sign(self):
        values = parse_os_release('HOME_URL="https://example.com/?a=b"')
        assert values["HOME_URL"] == "https://example.com/?a=b"


class TestNormalizeVersion:
    """Tests for normalize_version function."""

    def test_removes_dots_and_whitespace(self):
        assert normalize_version(" 22.04\n") == "2204"

    def test_empty(self):
        assert normalize_version("") == ""


class TestDetectOsVersion:
    """Tests for detect_os_version function."""

    def test_uses_lsb_release(self, tmp_path):
        runner = MockCommandRunner(
            available=["lsb_release"],
            outputs={"lsb_release -rs": "22.04\n"},
        )

        version = detect_os_version(runner, tmp_path / "missing")

        assert version == "2204"
        assert runner.ran("lsb_release -rs")

    def test_falls_back_to_os_release(self, tmp_path):
        os_release = tmp_path / "os-release"
        os_release.write_text(UBUNTU_2404)
        runner = MockCommandRunner()

        assert detect_os_version(runner, os_release) == "2404"
        assert not runner.ran("lsb_release")

    def test_falls_back_when_lsb_release_fails(self, tmp_path):
        os_release = tmp_path / "os-release"
        os_release.write_text(UBUNTU_2404)
        runner = MockCommandRunner(available=["lsb_release"], failing=["lsb_release"])

        assert detect_os_version(runner, os_release) == "2404"

    def test_raises_when_nothing_found(self, tmp_path):
        runner = MockCommandRunner()

        with pytest.raises(OSDetectionError, match="Could not detect Ubuntu version"):
            detect_os_version(runner, tmp_path / "missing")

    def test_raises_on_empty_version_id(self, tmp_path):
        os_release = tmp_path / "os-release"
        os_release.write_text('ID=ubuntu\nVERSION_ID=""\n')

        with pytest.raises(OSDetectionError):
            detect_os_version(MockCommandRunner(), os_release)

    def test_raises_on_non_numeric_version(self, tmp_path):
        os_release = tmp_path / "os-release"
        os_release.write_text('VERSION_ID="n/a"\n')

        with pytest.raises(OSDetectionError):
            detect_os_version(MockCommandRunner(), os_release)

    def test_lsb_release_runs_in_dry_run(self, tmp_path):
        runner = MockCommandRunner(
            available=["lsb_release"],
            outputs={"lsb_release -rs": "20.04"},
            dry_run=True,
        )

        assert detect_os_version(runner, tmp_path / "missing") == "2004"

    def test_falls_back_when_lsb_release_is_not_numeric(self, tmp_path):
        os_release = tmp_path / "os-release"
        os_release.write_text(UBUNTU_2404)
        runner = MockCommandRunner(available=["lsb_release"], outputs={"lsb_release -rs": "n/a\n"})

        assert detect_os_version(runner, os_release) == "2404"

    def test_undecodable_bytes_are_tolerated(self, tmp_path):
        os_release = tmp_path / "os-release"
        os_release.write_bytes(b'VERSION_ID="22.04"\nNAME="\xff\xfe"\n')

        assert detect_os_version(MockCommandRunner(), os_release) == "2204"

    def test_unreadable_file_raises_detection_error(self, tmp_path):
        # a directory cannot be read as a file
        with pytest.raises(OSDetectionError, match="Could not detect Ubuntu version"):
            detect_os_version(MockCommandRunner(), tmp_path)
