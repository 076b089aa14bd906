"""Indicator frame calculation over an OHLCV price history."""

import logging
from typing import Sequence

import numpy as np
import pandas as pd

from ..errors import InsufficientDataError
from ..models import PriceHistory
from .stats import calc_ema_series, calc_macd, calc_rsi_series

logger = logging.getLogger(__name__)


class IndicatorCalculator:
    """Calculates the indicator columns used by predictive analysis."""

    def __init__(
        self,
        rsi_period: int = 14,
        atr_period: int = 14,
        macd_fast: int = 12,
        macd_slow: int = 26,
        macd_signal: int = 9,
        volume_window: int = 5,
    ):
        """Initialize indicator calculator.

        Args:
            rsi_period: Period for RSI calculation (default 14)
            atr_period: Period for ATR calculation (default 14)
            macd_fast: Fast EMA period for MACD (default 12)
            macd_slow: Slow EMA period for MACD (default 26)
            macd_signal: Signal period for MACD (default 9)
            volume_window: Rolling window for the volume ratio (default 5)
        """
        self.rsi_period = rsi_period
        self.atr_period = atr_period
        self.macd_fast = macd_fast
        self.macd_slow = macd_slow
        self.macd_signal = macd_signal
        self.volume_window = volume_window

    def calculate_indicators(self, history: PriceHistory) -> pd.DataFrame:
        """Calculate all indicators and add them to a copy of the history frame.

        Columns that need more bars than the history has are filled with NaN.

        Args:
            history: OHLCV price history

        Returns:
            DataFrame with rsi, macd, macd_signal, macd_hist, atr and
            volume_ratio columns aligned to the history index
        """
        df = history.frame.copy()
        closes = history.closes

        try:
            df["rsi"] = self._pad(calc_rsi_series(closes, self.rsi_period), len(df))
        except InsufficientDataError as e:
            logger.debug(f"RSI skipped: {e}")
            df["rsi"] = np.nan

        try:
            macd = calc_macd(closes, self.macd_fast, self.macd_slow, self.macd_signal)
            df["macd"] = self._pad(macd.macd, len(df))
            df["macd_signal"] = self._pad(macd.signal, len(df))
            df["macd_hist"] = self._pad(macd.histogram, len(df))
        except InsufficientDataError as e:
            logger.debug(f"MACD skipped: {e}")
            df["macd"] = np.nan
            df["macd_signal"] = np.nan
            df["macd_hist"] = np.nan

        df["atr"] = self.calculate_atr(df, self.atr_period)
        df["volume_ratio"] = self.calculate_volume_ratio(df["volume"], self.volume_window)
        return df

    def calculate_atr(self, df: pd.DataFrame, period: int) -> pd.Series:
        """Calculate Average True Range.

        True Range = max(high - low, abs(high - prev_close), abs(low - prev_close))
        ATR = SMA-seeded EMA of True Range, as in ``calc_atr``; undefined
        until ``period`` ranges exist

        Args:
            df: DataFrame with high, low, close columns
            period: ATR period

        Returns:
            Series with ATR values (NaN before the first full window)
        """
        prev_close = df["close"].shift(1)
        true_range = pd.concat(
            [
                df["high"] - df["low"],
                (df["high"] - prev_close).abs(),
                (df["low"] - prev_close).abs(),
            ],
            axis=1,
        ).max(axis=1, skipna=False)
        ranges = true_range.iloc[1:].tolist()
        if len(ranges) < period:
            return pd.Series(np.nan, index=df.index)
        atr = pd.Series(self._pad(calc_ema_series(ranges, period), len(df)), index=df.index)
        return atr.clip(lower=0)

    def calculate_volume_ratio(self, volume: pd.Series, window: int) -> pd.Series:
        """Current volume over the rolling mean of the last ``window`` bars."""
        mean = volume.rolling(window=window, min_periods=window).mean()
        return (volume / mean.replace(0, np.nan)).astype(float)

    @staticmethod
    def _pad(values: Sequence[float], length: int) -> list:
        """Left-pad a trailing series with NaN to ``length``."""
        return [np.nan] * (length - len(values)) + list(values)
