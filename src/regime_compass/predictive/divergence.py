"""Momentum divergence detection.

Compares the latest ``lookback`` bars with the ``lookback`` bars before
them for RSI and MACD (regular divergences) and for highs/lows against
RSI (hidden divergences), then combines the sources.
"""

import logging
from typing import List, Optional, Sequence, Tuple

from ..config import PredictiveConfig, DEFAULT_PREDICTIVE_CONFIG
from ..errors import InsufficientDataError
from ..models import PriceHistory, Regime, RiskLevel
from ..indicators.stats import calc_macd, calc_rsi_series
from .models import (
    DivergenceResult,
    DivergenceType,
    HiddenDivergence,
    IndicatorDivergence,
    RegimeImplication,
    SignalTimeframe,
    TradeSignal,
)

logger = logging.getLogger(__name__)


def _ratio(numerator: float, denominator: float) -> float:
    if denominator == 0:
        return 0.0
    return numerator / denominator


def _windows(values: Sequence[float], lookback: int) -> Tuple[Sequence[float], Sequence[float]]:
    """(previous, recent) windows of ``lookback`` values each."""
    return values[-lookback * 2:-lookback], values[-lookback:]


def regular_divergence(
    prices: Sequence[float],
    indicator: Sequence[float],
    lookback: int,
) -> IndicatorDivergence:
    """Regular divergence between a price series and an indicator.

    Both series are aligned on their most recent value. Bearish when price
    makes a higher high and the indicator a lower high; bullish when price
    makes a lower low and the indicator a higher low.
    """
    if len(indicator) < lookback * 2 or len(prices) < lookback * 2:
        return IndicatorDivergence()

    prev_prices, recent_prices = _windows(prices, lookback)
    prev_ind, recent_ind = _windows(indicator, lookback)

    price_high, prev_price_high = max(recent_prices), max(prev_prices)
    price_low, prev_price_low = min(recent_prices), min(prev_prices)
    ind_high, prev_ind_high = max(recent_ind), max(prev_ind)
    ind_low, prev_ind_low = min(recent_ind), min(prev_ind)

    if price_high > prev_price_high and ind_high < prev_ind_high:
        price_strength = _ratio(price_high - prev_price_high, prev_price_high)
        ind_weakness = _ratio(prev_ind_high - ind_high, abs(prev_ind_high))
        strength = min(1.0, (price_strength + ind_weakness) / 2)
        return IndicatorDivergence(
            type=DivergenceType.BEARISH,
            strength=strength,
            price_points=(prev_price_high, price_high),
            indicator_points=(prev_ind_high, ind_high),
            timeframe=SignalTimeframe.from_strength(strength),
        )

    if price_low < prev_price_low and ind_low > prev_ind_low:
        price_weakness = _ratio(prev_price_low - price_low, prev_price_low)
        ind_strength = _ratio(ind_low - prev_ind_low, abs(prev_ind_low))
        strength = min(1.0, (price_weakness + ind_strength) / 2)
        return IndicatorDivergence(
            type=DivergenceType.BULLISH,
            strength=strength,
            price_points=(prev_price_low, price_low),
            indicator_points=(prev_ind_low, ind_low),
            timeframe=SignalTimeframe.from_strength(strength),
        )

    return IndicatorDivergence()


def hidden_divergence(
    highs: Sequence[float],
    lows: Sequence[float],
    rsi: Sequence[float],
    lookback: int,
) -> HiddenDivergence:
    """Hidden divergence (trend continuation).

    Bullish: price makes a higher low while RSI makes a lower low.
    Bearish: price makes a lower high while RSI makes a higher high.
    """
    if len(rsi) < lookback * 2 or len(highs) < lookback * 2 or len(lows) < lookback * 2:
        return HiddenDivergence()

    prev_lows, recent_lows = _windows(lows, lookback)
    prev_highs, recent_highs = _windows(highs, lookback)
    prev_rsi, recent_rsi = _windows(rsi, lookback)

    low, prev_low = min(recent_lows), min(prev_lows)
    high, prev_high = max(recent_highs), max(prev_highs)
    rsi_low, prev_rsi_low = min(recent_rsi), min(prev_rsi)
    rsi_high, prev_rsi_high = max(recent_rsi), max(prev_rsi)

    bullish = low > prev_low and rsi_low < prev_rsi_low
    bearish = high < prev_high and rsi_high > prev_rsi_high

    strength = 0.0
    if bullish:
        price_improvement = _ratio(low - prev_low, prev_low)
        rsi_gap = _ratio(prev_rsi_low - rsi_low, prev_rsi_low)
        strength = min(1.0, (price_improvement + rsi_gap) / 2)
    elif bearish:
        price_weakening = _ratio(prev_high - high, prev_high)
        rsi_gap = _ratio(rsi_high - prev_rsi_high, prev_rsi_high)
        strength = min(1.0, (price_weakening + rsi_gap) / 2)

    return HiddenDivergence(bullish=bullish, bearish=bearish, strength=strength)


class DivergenceDetector:
    """Detects and combines RSI, MACD and hidden divergences."""

    def __init__(self, config: Optional[PredictiveConfig] = None):
        self.config = config or DEFAULT_PREDICTIVE_CONFIG

    def detect(self, history: Optional[PriceHistory]) -> DivergenceResult:
        """Detect divergences over a price history.

        Args:
            history: OHLCV history, oldest first

        Returns:
            Combined DivergenceResult; type none when the history is
            missing or shorter than the minimum bar count
        """
        if history is None:
            return DivergenceResult.none()
        return self.detect_series(history.closes, history.highs, history.lows)

    def detect_series(
        self,
        closes: Sequence[float],
        highs: Sequence[float],
        lows: Sequence[float],
    ) -> DivergenceResult:
        cfg = self.config
        if len(closes) < cfg.min_divergence_bars:
            logger.debug(f"Divergence skipped: {len(closes)} bars < {cfg.min_divergence_bars}")
            return DivergenceResult.none()

        try:
            rsi = calc_rsi_series(closes, cfg.rsi_period)
            macd = calc_macd(closes, cfg.macd_fast, cfg.macd_slow, cfg.macd_signal)
        except InsufficientDataError as e:
            logger.debug(f"Divergence skipped: {e}")
            return DivergenceResult.none()

        lookback = cfg.divergence_lookback
        rsi_div = regular_divergence(closes, rsi, lookback)
        macd_div = regular_divergence(closes[-len(macd.macd):], macd.macd, lookback)
        hidden = hidden_divergence(highs, lows, rsi, lookback)
        return self.combine(rsi_div, macd_div, hidden)

    def combine(
        self,
        rsi_div: IndicatorDivergence,
        macd_div: IndicatorDivergence,
        hidden: HiddenDivergence,
    ) -> DivergenceResult:
        """Merge the three sources into one result.

        The side with more signals wins with their average strength. On a
        tie the stronger side wins at 70% of its average strength.
        """
        signals: List[Tuple[DivergenceType, float, str]] = []
        if rsi_div.found:
            signals.append((rsi_div.type, rsi_div.strength, "RSI"))
        if macd_div.found:
            signals.append((macd_div.type, macd_div.strength, "MACD"))
        if hidden.bullish:
            signals.append((DivergenceType.BULLISH, hidden.strength, "Hidden"))
        if hidden.bearish:
            signals.append((DivergenceType.BEARISH, hidden.strength, "Hidden"))

        if not signals:
            return DivergenceResult.none()

        bullish = [s for t, s, _ in signals if t == DivergenceType.BULLISH]
        bearish = [s for t, s, _ in signals if t == DivergenceType.BEARISH]

        if len(bullish) > len(bearish):
            dominant, strength = DivergenceType.BULLISH, sum(bullish) / len(bullish)
        elif len(bearish) > len(bullish):
            dominant, strength = DivergenceType.BEARISH, sum(bearish) / len(bearish)
        else:
            avg_bull = sum(bullish) / len(bullish)
            avg_bear = sum(bearish) / len(bearish)
            if avg_bull > avg_bear:
                dominant, strength = DivergenceType.BULLISH, avg_bull * 0.7
            else:
                dominant, strength = DivergenceType.BEARISH, avg_bear * 0.7

        # First of equally strong signals wins
        strongest = signals[0]
        for signal in signals[1:]:
            if signal[1] > strongest[1]:
                strongest = signal

        if strongest[2] == "RSI":
            price_points, indicator_points = rsi_div.price_points, rsi_div.indicator_points
        elif strongest[2] == "MACD":
            price_points, indicator_points = macd_div.price_points, macd_div.indicator_points
        else:
            price_points, indicator_points = (), ()

        result = DivergenceResult(
            type=dominant,
            strength=strength,
            timeframe=SignalTimeframe.from_strength(strength),
            rsi_divergence=rsi_div.found,
            macd_divergence=macd_div.found,
            hidden_divergence=hidden.found,
            price_points=price_points,
            indicator_points=indicator_points,
        )
        logger.debug(
            f"Divergence {dominant.value} strength={strength:.2f} "
            f"confirmations={result.confirmations} source={strongest[2]}"
        )
        return result

    def signals(self, divergence: DivergenceResult) -> TradeSignal:
        """Turn a divergence into a buy/sell/hold reading."""
        if divergence.type == DivergenceType.NONE:
            return TradeSignal("hold", 0.0, "N/A", ("No momentum divergences detected",))

        reasoning = []
        confidence = divergence.strength
        if divergence.rsi_divergence:
            reasoning.append("RSI divergence detected")
        if divergence.macd_divergence:
            reasoning.append("MACD divergence detected")
        if divergence.hidden_divergence:
            reasoning.append("Hidden divergence detected")

        if divergence.confirmations >= 2:
            confidence = min(0.9, confidence * 1.3)
            reasoning.append(f"{divergence.confirmations} indicators confirm divergence")

        signal = "hold"
        if divergence.type == DivergenceType.BULLISH and confidence >= 0.5:
            signal = "buy"
            reasoning.append("Bullish divergence suggests upward reversal")
        elif divergence.type == DivergenceType.BEARISH and confidence >= 0.5:
            signal = "sell"
            reasoning.append("Bearish divergence suggests downward reversal")

        return TradeSignal(signal, confidence, divergence.timeframe.description, tuple(reasoning))

    def analyze_for_regime(self, divergence: DivergenceResult, regime: Regime) -> RegimeImplication:
        """Regime-change risk implied by a divergence."""
        if divergence.type == DivergenceType.NONE:
            return RegimeImplication(RiskLevel.LOW, 0.0, "No action needed")

        probability = divergence.strength * 0.6
        risk = RiskLevel.LOW
        recommendation = "No action needed"

        opposing = (
            (regime == Regime.BULL and divergence.type == DivergenceType.BEARISH)
            or (regime == Regime.BEAR and divergence.type == DivergenceType.BULLISH)
        )
        if opposing:
            probability *= 1.5
            if probability > 0.6:
                risk = RiskLevel.HIGH
            elif probability > 0.3:
                risk = RiskLevel.MEDIUM
            if regime == Regime.BULL:
                recommendation = "Consider reducing long exposure"
            else:
                recommendation = "Consider reducing short exposure"
        elif regime == Regime.NEUTRAL:
            risk = RiskLevel.MEDIUM
            recommendation = f"Prepare for potential {divergence.type.value} breakout"

        if divergence.confirmations >= 2:
            probability = min(0.9, probability * 1.3)
            risk = risk.escalate()

        return RegimeImplication(risk, min(0.9, probability), recommendation)
