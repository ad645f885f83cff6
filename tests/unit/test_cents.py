"""Tests for rs_common.cents - integer rounding and display."""

import pytest

from src.rs_common.cents import apply_bps, cents_to_display, div_round_half_up


class TestDivRoundHalfUp:
    def test_exact(self) -> None:
        assert div_round_half_up(3480, 10) == 348

    def test_half_rounds_up(self) -> None:
        # 3485 / 10 = 348.5 → 349
        assert div_round_half_up(3485, 10) == 349

    def test_below_half_rounds_down(self) -> None:
        assert div_round_half_up(3484, 10) == 348

    def test_negative_half_rounds_away_from_zero(self) -> None:
        assert div_round_half_up(-3485, 10) == -349

    def test_zero_numerator(self) -> None:
        assert div_round_half_up(0, 7) == 0

    def test_zero_denominator_raises(self) -> None:
        with pytest.raises(ValueError, match="positive"):
            div_round_half_up(10, 0)


class TestApplyBps:
    def test_ten_percent(self) -> None:
        assert apply_bps(3480, 1000) == 348

    def test_rounds_half_up(self) -> None:
        # 5 * 1000 / 10000 = 0.5 → 1
        assert apply_bps(5, 1000) == 1

    def test_zero_rate(self) -> None:
        assert apply_bps(3480, 0) == 0

    def test_zero_amount(self) -> None:
        assert apply_bps(0, 1000) == 0


class TestCentsToDisplay:
    def test_basic(self) -> None:
        assert cents_to_display(2000) == "R$ 20.00"

    def test_zero(self) -> None:
        assert cents_to_display(0) == "R$ 0.00"

    def test_one_cent(self) -> None:
        assert cents_to_display(1) == "R$ 0.01"

    def test_thousands_separator(self) -> None:
        assert cents_to_display(150000) == "R$ 1,500.00"

    def test_negative(self) -> None:
        assert cents_to_display(-1200) == "-R$ 12.00"

    def test_custom_symbol(self) -> None:
        assert cents_to_display(999, "$") == "$ 9.99"
