"""Tests for the pandas indicator frame."""

import numpy as np
import pandas as pd
import pytest
from hypothesis import given, strategies as st, settings

from regime_compass.indicators import IndicatorCalculator, calc_atr, calc_macd, calc_rsi_series
from regime_compass.models import PriceHistory

INDICATOR_COLUMNS = {"rsi", "macd", "macd_signal", "macd_hist", "atr", "volume_ratio"}


def generate_history(n_rows: int, base_price: float = 100.0, seed: int = 42) -> PriceHistory:
    """Generate a valid OHLCV history for testing."""
    rng = np.random.default_rng(seed)
    dates = pd.date_range(start="2024-01-01", periods=n_rows, freq="D")

    close = base_price * np.cumprod(1 + rng.normal(0, 0.01, n_rows))
    open_price = close * (1 + rng.normal(0, 0.003, n_rows))
    high = np.maximum(close * (1 + np.abs(rng.normal(0, 0.005, n_rows))), np.maximum(close, open_price))
    low = np.minimum(close * (1 - np.abs(rng.normal(0, 0.005, n_rows))), np.minimum(close, open_price))
    volume = rng.uniform(1e5, 1e7, n_rows)

    return PriceHistory(pd.DataFrame({
        "open": open_price,
        "high": high,
        "low": low,
        "close": close,
        "volume": volume,
    }, index=dates))


class TestIndicatorFrame:

    def setup_method(self):
        self.calculator = IndicatorCalculator()

    def test_adds_every_column_and_keeps_input(self):
        history = generate_history(60)
        df = self.calculator.calculate_indicators(history)
        assert INDICATOR_COLUMNS <= set(df.columns)
        assert len(df) == 60
        assert df.index.equals(history.frame.index)
        assert "rsi" not in history.frame.columns

    def test_short_history_is_nan_padded(self):
        df = self.calculator.calculate_indicators(generate_history(10))
        for column in ("rsi", "macd", "macd_signal", "macd_hist", "atr"):
            assert df[column].isna().all(), column
        assert df["volume_ratio"].iloc[:4].isna().all()
        assert df["volume_ratio"].iloc[4:].notna().all()

    def test_series_align_with_list_primitives(self):
        history = generate_history(60)
        df = self.calculator.calculate_indicators(history)

        rsi = calc_rsi_series(history.closes)
        assert df["rsi"].notna().sum() == len(rsi)
        assert df["rsi"].iloc[-1] == pytest.approx(rsi[-1])

        macd = calc_macd(history.closes)
        assert df["macd_hist"].notna().sum() == len(macd.histogram)
        assert df["macd"].iloc[-1] == pytest.approx(macd.macd[-1])
        assert df["macd_hist"].iloc[-1] == pytest.approx(macd.histogram[-1])

    def test_atr_matches_calc_atr_on_last_bar(self):
        history = generate_history(60)
        df = self.calculator.calculate_indicators(history)
        expected = calc_atr(history.highs, history.lows, history.closes, 14)
        assert df["atr"].iloc[-1] == pytest.approx(expected)
        assert df["atr"].iloc[:14].isna().all()
        assert df["atr"].iloc[14:].notna().all()

    def test_constant_range_atr(self):
        closes = [100.0 + 0.5 * i for i in range(20)]
        history = PriceHistory.from_series(
            closes,
            highs=[c + 1 for c in closes],
            lows=[c - 1 for c in closes],
            volumes=[1e6] * 20,
        )
        df = self.calculator.calculate_indicators(history)
        assert df["atr"].iloc[-1] == pytest.approx(2.0)

    def test_volume_ratio_with_zero_volume_window(self):
        closes = [100.0] * 6
        history = PriceHistory.from_series(closes, volumes=[0.0, 0.0, 0.0, 0.0, 0.0, 100.0])
        df = IndicatorCalculator(volume_window=5).calculate_indicators(history)
        assert np.isnan(df["volume_ratio"].iloc[4])
        # (0 * 4 + 100) / 5 = 20 average
        assert df["volume_ratio"].iloc[5] == pytest.approx(5.0)

    @given(n_rows=st.integers(min_value=30, max_value=200), seed=st.integers(min_value=0, max_value=1000))
    @settings(max_examples=100)
    def test_rsi_bounded_and_atr_non_negative(self, n_rows, seed):
        df = self.calculator.calculate_indicators(generate_history(n_rows, seed=seed))
        rsi = df["rsi"].dropna()
        assert ((rsi >= 0) & (rsi <= 100)).all()
        assert (df["atr"].dropna() >= 0).all()
