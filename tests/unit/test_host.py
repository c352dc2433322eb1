"""Unit tests for host operating system detection."""

from unittest.mock import patch

import pytest

from avalonbuild.errors import UnsupportedTargetError
from avalonbuild.host import HostDetector, HostOS


class TestHostDetector:
    """Test cases for HostDetector."""

    @pytest.mark.parametrize(
        "system,expected",
        [
            ("Linux", HostOS.LINUX),
            ("Darwin", HostOS.MACOS),
            ("Windows", HostOS.WINDOWS),
        ],
    )
    def test_detect_host(self, system, expected):
        """Test detection of each supported host."""
        with patch("platform.system", return_value=system):
            assert HostDetector.detect_host() is expected

    def test_detect_host_unsupported(self):
        """Test error on an unsupported host."""
        with patch("platform.system", return_value="SunOS"):
            with pytest.raises(UnsupportedTargetError, match="Unsupported host platform"):
                HostDetector.detect_host()

    def test_parse_host_aliases(self):
        """Test parsing host names and their aliases."""
        assert HostDetector.parse_host("Linux") is HostOS.LINUX
        assert HostDetector.parse_host("darwin") is HostOS.MACOS
        assert HostDetector.parse_host("win64") is HostOS.WINDOWS

    def test_parse_host_unknown(self):
        """Test error on an unknown host name."""
        with pytest.raises(UnsupportedTargetError):
            HostDetector.parse_host("amiga")


class TestHostOS:
    """Test cases for HostOS properties."""

    def test_posix_hosts(self):
        """Test which hosts need executable bits repaired."""
        assert HostOS.LINUX.is_posix
        assert HostOS.MACOS.is_posix
        assert not HostOS.WINDOWS.is_posix

    def test_exe_suffix(self):
        """Test executable suffix per host."""
        assert HostOS.WINDOWS.exe_suffix == ".exe"
        assert HostOS.LINUX.exe_suffix == ""
