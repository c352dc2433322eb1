"""Unit tests for platform configuration values."""

from dataclasses import replace

import pytest

from avalonbuild.config.platform_config import CORE_VERSION, BuildFlags, CoreVersion
from avalonbuild.errors import InvalidArgumentError


class TestPlatformConfig:
    """Test cases for PlatformConfig."""

    def test_validate_returns_self(self, rpi4_config):
        """Test that a valid configuration passes and is returned."""
        assert rpi4_config.validate() is rpi4_config

    def test_defaults(self, rpi4_config):
        """Test default auxiliary values."""
        assert rpi4_config.aux_functions == ""
        assert rpi4_config.legacy_image_name == "kernel84.img"

    def test_config_is_frozen(self, rpi4_config):
        """Test that configuration cannot change after construction."""
        with pytest.raises(AttributeError):
            rpi4_config.toolchain_prefix = "arm-none-eabi"  # type: ignore[misc]

    def test_empty_prefix_rejected(self, rpi4_config):
        """Test that an empty toolchain prefix is invalid."""
        with pytest.raises(InvalidArgumentError, match="toolchain_prefix"):
            replace(rpi4_config, toolchain_prefix="").validate()

    @pytest.mark.parametrize(
        "field_name,value",
        [
            ("program_ram0_safety_ratio", 0.0),
            ("program_ram1_safety_ratio", 1.5),
            ("common_safety_ratio", -0.1),
        ],
    )
    def test_ratio_out_of_range(self, rpi4_config, field_name, value):
        """Test that safety ratios must lie in (0, 1]."""
        with pytest.raises(InvalidArgumentError, match=field_name):
            replace(rpi4_config, **{field_name: value}).validate()

    def test_ratio_of_one_allowed(self, rpi4_config):
        """Test that a ratio of exactly 1.0 is accepted."""
        replace(rpi4_config, common_safety_ratio=1.0).validate()

    def test_cpu_threshold_out_of_range(self, rpi4_config):
        """Test that the CPU threshold must lie in (0, 100]."""
        with pytest.raises(InvalidArgumentError, match="cpu_safety_threshold"):
            replace(rpi4_config, cpu_safety_threshold=120.0).validate()

    def test_sizes_must_be_positive(self, rpi4_config):
        """Test that capacities must be positive."""
        with pytest.raises(InvalidArgumentError, match="program_ram_size"):
            replace(rpi4_config, program_ram_size=0).validate()


class TestBuildFlags:
    """Test cases for BuildFlags."""

    def test_default_optimization(self):
        """Test that release builds default to -O2."""
        assert BuildFlags().optimization_flag == "-O2"

    def test_o3_replaces_o2(self):
        """Test that enabling O3 selects -O3 only."""
        assert BuildFlags(enable_o3=True).optimization_flag == "-O3"


class TestCoreVersion:
    """Test cases for CoreVersion."""

    def test_str(self):
        """Test dotted version formatting."""
        assert str(CoreVersion(2, 0, 11)) == "2.0.11"

    def test_dat_filename(self):
        """Test core library file name."""
        assert CORE_VERSION.dat_filename == "core.1.4.0.dat"
