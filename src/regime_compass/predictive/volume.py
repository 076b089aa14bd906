"""Volume confirmation, thrust detection and accumulation/distribution."""

import logging
from typing import Optional, Sequence

import numpy as np

from ..config import PredictiveConfig, DEFAULT_PREDICTIVE_CONFIG
from ..models import PriceHistory, Regime, RiskLevel
from .models import (
    RegimeImplication,
    ThrustType,
    TradeSignal,
    VolumeAnalysis,
    VolumePattern,
    VolumeSignals,
)

logger = logging.getLogger(__name__)

PATTERN_LOOKBACK = 10


def accumulation_distribution(prices: Sequence[float], volumes: Sequence[float], lookback: int) -> float:
    """Signed volume over the last ``lookback`` bars, by close-to-close direction."""
    if len(prices) < 3:
        return 0.0
    start = max(1, len(prices) - lookback)
    changes = np.sign(np.diff(np.asarray(prices[start - 1:], dtype=float)))
    return float(np.dot(changes, np.asarray(volumes[start:], dtype=float)))


def volume_trend(volumes: Sequence[float], lookback: int, band: float = 0.15) -> str:
    """Compare the second half of the window's average volume with the first half."""
    if len(volumes) < lookback or lookback < 2:
        return "stable"
    recent = volumes[-lookback:]
    split = lookback // 2
    first = float(np.mean(recent[:split]))
    second = float(np.mean(recent[split:]))
    if first == 0:
        return "increasing" if second > 0 else "stable"
    ratio = second / first
    if ratio > 1 + band:
        return "increasing"
    if ratio < 1 - band:
        return "decreasing"
    return "stable"


def price_stability(prices: Sequence[float]) -> float:
    """1 for flat prices, 0 once the average bar move reaches 5%."""
    if len(prices) < 2:
        return 0.0
    changes = [abs(b - a) / a for a, b in zip(prices, prices[1:]) if a]
    if not changes:
        return 0.0
    return max(0.0, 1 - float(np.mean(changes)) * 20)


def price_weakness(prices: Sequence[float]) -> float:
    """Average of the decline from the window peak and from the window start."""
    if len(prices) < 2:
        return 0.0
    first, last, peak = prices[0], prices[-1], max(prices)
    peak_decline = (peak - last) / peak if peak else 0.0
    overall_decline = max(0.0, (first - last) / first) if first else 0.0
    return min(1.0, (peak_decline + overall_decline) / 2)


class VolumeAnalyzer:
    """Reads volume confirmation and patterns from a price history."""

    def __init__(self, config: Optional[PredictiveConfig] = None):
        self.config = config or DEFAULT_PREDICTIVE_CONFIG

    def analyze(self, history: Optional[PriceHistory], lookback: Optional[int] = None) -> VolumeAnalysis:
        """Volume confirmation for the latest bar of a history.

        Returns:
            VolumeAnalysis; the empty analysis when history is missing or short
        """
        if history is None:
            return VolumeAnalysis.empty()
        return self.analyze_series(history.closes, history.volumes, lookback)

    def analyze_series(
        self,
        prices: Sequence[float],
        volumes: Sequence[float],
        lookback: Optional[int] = None,
    ) -> VolumeAnalysis:
        cfg = self.config
        lookback = lookback or cfg.volume_lookback
        if len(prices) != len(volumes) or len(prices) < max(lookback, 2):
            return VolumeAnalysis.empty()

        avg_volume = float(np.mean(volumes[-lookback:]))
        ratio = volumes[-1] / avg_volume if avg_volume > 0 else 1.0
        current, previous = prices[-1], prices[-2]

        spike = ratio > cfg.volume_spike_ratio
        if current > previous and ratio > cfg.thrust_ratio:
            thrust = ThrustType.UP
        elif current < previous and ratio > cfg.thrust_ratio:
            thrust = ThrustType.DOWN
        else:
            thrust = ThrustType.NONE

        price_change = abs(current - previous) / previous if previous else 0.0
        confirmation = (price_change > cfg.min_price_move and ratio > cfg.confirmation_ratio) or spike
        exhaustion = ratio > cfg.exhaustion_ratio and price_change < cfg.min_price_move

        return VolumeAnalysis(
            confirmation=confirmation,
            thrust=thrust,
            exhaustion=exhaustion,
            volume_spike=spike,
            accumulation_distribution=accumulation_distribution(prices, volumes, lookback),
            volume_ratio=ratio,
            trend=volume_trend(volumes, lookback, cfg.volume_trend_band),
        )

    def extended_signals(
        self,
        prices: Sequence[float],
        volumes: Sequence[float],
        lookback: int = PATTERN_LOOKBACK,
    ) -> VolumeSignals:
        """Volume analysis over a longer window plus accumulation/distribution flags."""
        if len(prices) != len(volumes) or len(prices) < lookback:
            return VolumeSignals()

        analysis = self.analyze_series(prices, volumes, lookback)
        recent_prices = prices[-lookback:]
        recent_volumes = volumes[-lookback:]
        avg_volume = float(np.mean(recent_volumes))

        recent_avg = float(np.mean(recent_volumes[-3:]))
        accumulation = (
            price_stability(recent_prices) > 0.7
            and volume_trend(volumes, lookback, self.config.volume_trend_band) == "increasing"
            and avg_volume > 0
            and recent_avg / avg_volume > 1.2
        )
        distribution = (
            price_weakness(recent_prices) > 0.6
            and any(v > avg_volume * 1.5 for v in recent_volumes)
        )
        return VolumeSignals(analysis=analysis, accumulation=accumulation, distribution=distribution)

    def identify_pattern(
        self,
        prices: Sequence[float],
        volumes: Sequence[float],
        lookback: int = PATTERN_LOOKBACK,
    ) -> VolumePattern:
        """Classify the dominant volume pattern; checks run in priority order."""
        signals = self.extended_signals(prices, volumes, lookback)
        ratio = signals.analysis.volume_ratio

        if signals.up_thrust and ratio > 2:
            return VolumePattern(
                "thrust", min(1.0, ratio / 3), 0.8,
                "Strong upward volume thrust detected",
                ("Bullish breakout likely", "Strong buying interest", "Momentum building"),
            )
        if signals.down_thrust and ratio > 2:
            return VolumePattern(
                "selloff", min(1.0, ratio / 3), 0.8,
                "Strong downward volume thrust detected",
                ("Bearish breakdown likely", "Heavy selling pressure", "Momentum declining"),
            )
        if signals.analysis.exhaustion:
            return VolumePattern(
                "exhaustion", min(1.0, ratio / 4), 0.7,
                "Volume exhaustion detected - high volume with minimal price movement",
                ("Potential reversal ahead", "Buying/selling climax", "Momentum stalling"),
            )
        if signals.accumulation:
            return VolumePattern(
                "accumulation", 0.6, 0.65,
                "Accumulation pattern - steady volume with stable prices",
                ("Smart money accumulating", "Potential upward breakout", "Building support"),
            )
        if signals.distribution:
            return VolumePattern(
                "distribution", 0.6, 0.65,
                "Distribution pattern - high volume with price weakness",
                ("Smart money distributing", "Potential downward breakdown", "Building resistance"),
            )
        if signals.analysis.volume_spike and signals.analysis.confirmation:
            up = prices[-1] > prices[-2]
            direction = "upward" if up else "downward"
            return VolumePattern(
                "breakout", min(1.0, ratio / 2.5), 0.75,
                f"Volume-confirmed {direction} breakout",
                (
                    f"{'Bullish' if up else 'Bearish'} momentum confirmed",
                    "High probability of continuation",
                    "Strong institutional interest",
                ),
            )
        return VolumePattern(
            "neutral", 0.0, 0.0,
            "No significant volume pattern detected",
            ("Normal trading activity", "No clear directional bias"),
        )

    def signals(
        self,
        prices: Sequence[float],
        volumes: Sequence[float],
        lookback: int = PATTERN_LOOKBACK,
    ) -> TradeSignal:
        """buy/sell/hold reading from the volume pattern."""
        pattern = self.identify_pattern(prices, volumes, lookback)
        extended = self.extended_signals(prices, volumes, lookback)
        ratio = extended.analysis.volume_ratio
        reasoning = []
        signal = "hold"
        confidence = 0.0

        if pattern.pattern == "thrust":
            signal, confidence = "buy", pattern.strength * pattern.reliability
            reasoning += ["Strong upward volume thrust detected", f"Volume {ratio:.1f}x above average"]
        elif pattern.pattern == "selloff":
            signal, confidence = "sell", pattern.strength * pattern.reliability
            reasoning += ["Strong downward volume selloff detected", f"Heavy selling on {ratio:.1f}x volume"]
        elif pattern.pattern == "breakout":
            signal = "buy" if prices[-1] > prices[-2] else "sell"
            confidence = pattern.strength * pattern.reliability
            reasoning += [
                "Volume-confirmed breakout detected",
                f"{'Upward' if signal == 'buy' else 'Downward'} momentum with volume support",
            ]
        elif pattern.pattern == "accumulation":
            signal, confidence = "buy", 0.6
            reasoning += ["Accumulation pattern suggests building strength", "Smart money likely accumulating positions"]
        elif pattern.pattern == "distribution":
            signal, confidence = "sell", 0.6
            reasoning += ["Distribution pattern suggests weakness ahead", "Smart money likely reducing positions"]
        elif pattern.pattern == "exhaustion":
            # Fade the move of the last five bars
            signal = "sell" if prices[-1] > prices[-5] else "buy"
            confidence = 0.5
            reasoning += [
                "Volume exhaustion suggests potential reversal",
                f"High volume ({ratio:.1f}x) with minimal price movement",
            ]
        else:
            reasoning.append("No clear volume signal detected")

        if extended.analysis.confirmation and confidence > 0:
            confidence = min(0.9, confidence * 1.2)
            reasoning.append("Volume confirms price movement")

        if extended.analysis.trend == "increasing" and signal in ("buy", "sell"):
            confidence = min(0.9, confidence * 1.1)
            side = "bullish" if signal == "buy" else "bearish"
            reasoning.append(f"Rising volume trend supports {side} signal")

        if pattern.strength > 0.7:
            timeframe = "Short-term (1-3 days)"
        elif pattern.strength < 0.3:
            timeframe = "Long-term (1-2 weeks)"
        else:
            timeframe = "Medium-term (3-7 days)"

        return TradeSignal(signal, confidence, timeframe, tuple(reasoning))

    def analyze_for_regime(
        self,
        prices: Sequence[float],
        volumes: Sequence[float],
        regime: Regime,
        lookback: int = PATTERN_LOOKBACK,
    ) -> RegimeImplication:
        """How well volume supports the current regime.

        ``regime_risk`` is LOW for strong support, MEDIUM for moderate and
        HIGH for weak support.
        """
        pattern = self.identify_pattern(prices, volumes, lookback)
        signals = self.extended_signals(prices, volumes, lookback)
        analysis = signals.analysis

        risk = RiskLevel.MEDIUM
        change_risk = 0.3
        recommendation = "Monitor volume patterns"

        if regime == Regime.BULL:
            if pattern.pattern == "thrust" or (signals.up_thrust and analysis.confirmation):
                risk, change_risk, recommendation = RiskLevel.LOW, 0.1, "Volume strongly supports BULL regime"
            elif pattern.pattern == "distribution" or analysis.exhaustion:
                risk, change_risk = RiskLevel.HIGH, 0.7
                recommendation = "Volume shows weakness - consider reducing exposure"
            elif signals.accumulation:
                risk, change_risk, recommendation = RiskLevel.LOW, 0.2, "Accumulation supports continued strength"
        elif regime == Regime.BEAR:
            if pattern.pattern == "selloff" or (signals.down_thrust and analysis.confirmation):
                risk, change_risk, recommendation = RiskLevel.LOW, 0.1, "Volume confirms BEAR regime continuation"
            elif pattern.pattern == "accumulation" or (analysis.exhaustion and signals.down_thrust):
                risk, change_risk, recommendation = RiskLevel.HIGH, 0.7, "Volume suggests potential reversal"
        else:
            if pattern.pattern == "breakout":
                change_risk, recommendation = 0.8, "Volume breakout suggests regime change imminent"
            elif pattern.pattern == "accumulation":
                change_risk, recommendation = 0.6, "Accumulation suggests bullish breakout ahead"
            elif pattern.pattern == "distribution":
                change_risk, recommendation = 0.6, "Distribution suggests bearish breakdown ahead"

        return RegimeImplication(risk, min(0.9, change_risk), recommendation)
