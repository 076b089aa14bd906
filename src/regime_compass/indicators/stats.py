"""Statistical primitives for Regime Compass.

Pure functions over plain lists ordered oldest to newest. Each primitive
checks its input length and raises InsufficientDataError instead of
returning a neutral placeholder.
"""

from dataclasses import dataclass
from typing import List, Sequence, Tuple

import numpy as np

from ..errors import InsufficientDataError
from ..models import TradingBias

EMA_BULL_MULT = 1.0025
EMA_BEAR_MULT = 0.9975
STOP_ATR_MULT = 2.0
TARGET_ATR_MULT = 1.5


@dataclass(frozen=True)
class MACDResult:
    """MACD line, signal line and histogram.

    The MACD line starts at the first bar where the slow EMA exists. Signal
    and histogram are empty when the MACD line is shorter than the signal
    period.
    """
    macd: List[float]
    signal: List[float]
    histogram: List[float]


@dataclass(frozen=True)
class PivotLevels:
    """Classic floor-trader pivots over a lookback window."""
    pivot: float
    resistance: Tuple[float, float]
    support: Tuple[float, float]


@dataclass(frozen=True)
class MomentumDivergence:
    """Divergence between price and a momentum indicator."""
    bias: TradingBias
    strength: float

    @property
    def found(self) -> bool:
        return self.bias != TradingBias.NEUTRAL


NO_DIVERGENCE = MomentumDivergence(TradingBias.NEUTRAL, 0.0)


def _require(name: str, values: Sequence[float], minimum: int) -> None:
    if len(values) < minimum:
        raise InsufficientDataError(name, minimum, len(values))


def trend_score9(closes: Sequence[float]) -> int:
    """Score the last nine daily moves.

    Each of the last nine closes scores +1 if it is above the prior close
    and -1 otherwise, so the result lies in [-9, 9].

    Args:
        closes: Closing prices, at least 10

    Returns:
        Trend score between -9 and 9
    """
    _require("trend_score9", closes, 10)
    score = 0
    for i in range(len(closes) - 9, len(closes)):
        score += 1 if closes[i] > closes[i - 1] else -1
    return score


def calc_ema_series(prices: Sequence[float], period: int) -> List[float]:
    """Calculate an EMA series seeded with the SMA of the first ``period`` values.

    Args:
        prices: List of prices (oldest to newest)
        period: EMA period

    Returns:
        EMA values of length ``len(prices) - period + 1``
    """
    if period <= 0:
        raise ValueError(f"EMA period must be positive, got {period}")
    _require(f"EMA({period})", prices, period)

    multiplier = 2 / (period + 1)
    ema = [sum(prices[:period]) / period]
    for price in prices[period:]:
        ema.append((price - ema[-1]) * multiplier + ema[-1])
    return ema


def calc_ema(prices: Sequence[float], period: int) -> float:
    """Latest EMA value."""
    return calc_ema_series(prices, period)[-1]


def calc_atr(
    highs: Sequence[float],
    lows: Sequence[float],
    closes: Sequence[float],
    period: int = 14,
) -> float:
    """Calculate Average True Range.

    True Range = max(high - low, |high - prev_close|, |low - prev_close|)
    ATR = EMA of True Range

    Raises:
        ValueError: If the three series differ in length
        InsufficientDataError: With fewer than ``period + 1`` bars
    """
    if not len(highs) == len(lows) == len(closes):
        raise ValueError("High, low and close series must be the same length")
    _require(f"ATR({period})", closes, period + 1)

    true_ranges = [
        max(
            highs[i] - lows[i],
            abs(highs[i] - closes[i - 1]),
            abs(lows[i] - closes[i - 1]),
        )
        for i in range(1, len(closes))
    ]
    return calc_ema_series(true_ranges, period)[-1]


def calc_rsi_series(closes: Sequence[float], period: int = 14) -> List[float]:
    """Calculate RSI with Wilder's smoothing.

    Returns one value per close after the first ``period`` changes. A window
    with no losses reads 100.
    """
    _require(f"RSI({period})", closes, period + 1)

    gains = []
    losses = []
    for i in range(1, len(closes)):
        change = closes[i] - closes[i - 1]
        gains.append(change if change > 0 else 0.0)
        losses.append(-change if change < 0 else 0.0)

    avg_gain = sum(gains[:period]) / period
    avg_loss = sum(losses[:period]) / period
    rsi = [_rsi_value(avg_gain, avg_loss)]
    for i in range(period, len(gains)):
        avg_gain = (avg_gain * (period - 1) + gains[i]) / period
        avg_loss = (avg_loss * (period - 1) + losses[i]) / period
        rsi.append(_rsi_value(avg_gain, avg_loss))
    return rsi


def _rsi_value(avg_gain: float, avg_loss: float) -> float:
    if avg_loss == 0:
        return 100.0
    rs = avg_gain / avg_loss
    return 100 - (100 / (1 + rs))


def calc_macd(
    closes: Sequence[float],
    fast: int = 12,
    slow: int = 26,
    signal: int = 9,
) -> MACDResult:
    """Calculate MACD (Moving Average Convergence Divergence).

    The fast and slow EMA series are aligned on their most recent values
    before subtracting.

    Args:
        closes: Closing prices (oldest to newest), at least ``slow``
        fast: Fast EMA period (default 12)
        slow: Slow EMA period (default 26)
        signal: Signal line period (default 9)

    Returns:
        MACDResult with macd, signal and histogram series
    """
    _require(f"MACD({fast},{slow})", closes, slow)

    fast_ema = calc_ema_series(closes, fast)
    slow_ema = calc_ema_series(closes, slow)
    offset = slow - fast
    macd_line = [fast_ema[i] - slow_ema[i - offset] for i in range(offset, len(fast_ema))]

    if len(macd_line) < signal:
        return MACDResult(macd=macd_line, signal=[], histogram=[])

    signal_line = calc_ema_series(macd_line, signal)
    start = signal - 1
    histogram = [macd_line[i] - signal_line[i - start] for i in range(start, len(macd_line))]
    return MACDResult(macd=macd_line, signal=signal_line, histogram=histogram)


def calc_pivot_levels(
    highs: Sequence[float],
    lows: Sequence[float],
    closes: Sequence[float],
    lookback: int = 5,
) -> PivotLevels:
    """Pivot, two resistance and two support levels over the last ``lookback`` bars."""
    for name, values in (("highs", highs), ("lows", lows), ("closes", closes)):
        _require(f"pivot levels ({name})", values, lookback)

    recent_high = max(highs[-lookback:])
    recent_low = min(lows[-lookback:])
    pivot = (recent_high + recent_low + closes[-1]) / 3

    r1 = 2 * pivot - recent_low
    s1 = 2 * pivot - recent_high
    r2 = pivot + (r1 - s1)
    s2 = pivot - (r1 - s1)
    return PivotLevels(pivot=pivot, resistance=(r1, r2), support=(s1, s2))


def calc_vwap(prices: Sequence[float], volumes: Sequence[float]) -> float:
    """Volume-weighted average price."""
    if len(prices) != len(volumes):
        raise ValueError("Prices and volumes must be the same length")
    total_volume = float(np.sum(volumes)) if len(volumes) else 0.0
    if total_volume <= 0:
        raise ValueError("VWAP needs a positive total volume")
    return float(np.dot(prices, volumes)) / total_volume


def calc_correlation(x: Sequence[float], y: Sequence[float]) -> float:
    """Pearson correlation; 0 on mismatched, empty or constant input."""
    if len(x) != len(y) or len(x) == 0:
        return 0.0
    xs = np.asarray(x, dtype=float)
    ys = np.asarray(y, dtype=float)
    if xs.std() == 0 or ys.std() == 0:
        return 0.0
    return float(np.corrcoef(xs, ys)[0, 1])


def normalize(value: float, min_value: float, max_value: float) -> float:
    """Scale into [0, 1], clamping values outside the range."""
    if max_value == min_value:
        return 0.0
    return max(0.0, min(1.0, (value - min_value) / (max_value - min_value)))


def breadth_percentage(scores: Sequence[float]) -> float:
    """Share of scores above zero, 0.5 when there are none."""
    if not scores:
        return 0.5
    return sum(1 for s in scores if s > 0) / len(scores)


def check_ema_alignment(ema20: float, ema50: float) -> Tuple[bool, bool]:
    """EMA20/EMA50 alignment as (bullish, bearish)."""
    return ema20 > ema50 * EMA_BULL_MULT, ema20 < ema50 * EMA_BEAR_MULT


def stop_loss_price(entry: float, atr: float, long: bool = True, multiplier: float = STOP_ATR_MULT) -> float:
    if long:
        return entry - atr * multiplier
    return entry + atr * multiplier


def profit_target_price(entry: float, atr: float, long: bool = True, multiplier: float = TARGET_ATR_MULT) -> float:
    if long:
        return entry + atr * multiplier
    return entry - atr * multiplier


def risk_reward(entry: float, stop: float, target: float) -> float:
    risk = abs(entry - stop)
    if risk == 0:
        return 0.0
    return abs(target - entry) / risk


def detect_momentum_divergence(
    prices: Sequence[float],
    indicator: Sequence[float],
    lookback: int = 5,
) -> MomentumDivergence:
    """Compare the last ``lookback`` bars with the ``lookback`` bars before them.

    Bearish: price makes a higher high while the indicator makes a lower high.
    Bullish: price makes a lower low while the indicator makes a higher low.

    Returns:
        MomentumDivergence; NO_DIVERGENCE when either series is shorter
        than ``2 * lookback`` or no divergence is present
    """
    if len(prices) < lookback * 2 or len(indicator) < lookback * 2:
        return NO_DIVERGENCE

    recent_prices = prices[-lookback:]
    previous_prices = prices[-lookback * 2:-lookback]
    recent_ind = indicator[-lookback:]
    previous_ind = indicator[-lookback * 2:-lookback]

    price_high, prev_price_high = max(recent_prices), max(previous_prices)
    price_low, prev_price_low = min(recent_prices), min(previous_prices)
    ind_high, prev_ind_high = max(recent_ind), max(previous_ind)
    ind_low, prev_ind_low = min(recent_ind), min(previous_ind)

    if price_high > prev_price_high and ind_high < prev_ind_high and prev_price_high and prev_ind_high:
        price_strength = (price_high - prev_price_high) / prev_price_high
        ind_weakness = (prev_ind_high - ind_high) / abs(prev_ind_high)
        return MomentumDivergence(TradingBias.BEARISH, min((price_strength + ind_weakness) / 2, 1.0))

    if price_low < prev_price_low and ind_low > prev_ind_low and prev_price_low and prev_ind_low:
        price_weakness = (prev_price_low - price_low) / prev_price_low
        ind_strength = (ind_low - prev_ind_low) / abs(prev_ind_low)
        return MomentumDivergence(TradingBias.BULLISH, min((price_weakness + ind_strength) / 2, 1.0))

    return NO_DIVERGENCE
