"""Tests for FDI tooth notation helpers."""

import pytest

from dsd.rules.fdi import (
    get_contralateral_tooth,
    is_lower_arch,
    is_upper_arch,
    is_valid_fdi_code,
)

ADULT_TEETH = [f"{q}{p}" for q in range(1, 5) for p in range(1, 9)]


class TestContralateralTooth:
    """Tests for quadrant mirroring."""

    def test_examples(self):
        """Test known mirror pairs."""
        assert get_contralateral_tooth("14") == "24"
        assert get_contralateral_tooth("46") == "36"
        assert get_contralateral_tooth("55") == "65"
        assert get_contralateral_tooth("81") == "71"

    @pytest.mark.parametrize("tooth", ADULT_TEETH)
    def test_mirror_is_an_involution(self, tooth):
        """Test that mirroring twice returns the original tooth."""
        mirrored = get_contralateral_tooth(tooth)
        assert mirrored is not None
        assert mirrored != tooth
        assert get_contralateral_tooth(mirrored) == tooth

    @pytest.mark.parametrize("tooth", ["1", "111", "", "00", "09", "01", "91", "19", "ab", "²1", None, 11])
    def test_invalid_input_returns_none(self, tooth):
        """Test that malformed codes have no contralateral."""
        assert get_contralateral_tooth(tooth) is None


class TestValidity:
    """Tests for FDI validation."""

    @pytest.mark.parametrize("tooth", ["11", "18", "21", "38", "48", "51", "85"])
    def test_valid_codes(self, tooth):
        """Test that well-formed codes are accepted."""
        assert is_valid_fdi_code(tooth)

    @pytest.mark.parametrize("tooth", ["99", "0", "abc", "19", "10", "90", "1", "111", " 1", "²1", "1²", "١١"])
    def test_invalid_codes(self, tooth):
        """Test that malformed codes are rejected."""
        assert not is_valid_fdi_code(tooth)

    def test_deciduous_can_be_excluded(self):
        """Test that quadrants 5-8 are rejected when deciduous teeth are out of scope."""
        assert is_valid_fdi_code("51", allow_deciduous=True)
        assert not is_valid_fdi_code("51", allow_deciduous=False)
        assert is_valid_fdi_code("41", allow_deciduous=False)


class TestArches:
    """Tests for arch membership."""

    def test_upper_and_lower(self):
        """Test that quadrants map to the right arch."""
        for tooth in ("11", "21", "55", "61"):
            assert is_upper_arch(tooth)
            assert not is_lower_arch(tooth)
        for tooth in ("31", "41", "75", "81"):
            assert is_lower_arch(tooth)
            assert not is_upper_arch(tooth)

    def test_invalid_tooth_is_in_no_arch(self):
        """Test that invalid codes belong to neither arch."""
        assert not is_upper_arch("99")
        assert not is_lower_arch("99")
