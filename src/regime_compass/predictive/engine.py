"""Predictive Signal Engine.

Fuses momentum divergence, volume confirmation, options flow and the
current regime into a directional bias, a regime probability forecast
and a set of trading implications.
"""

import logging
from typing import List, Optional, Tuple

from ..config import PredictiveConfig, DEFAULT_PREDICTIVE_CONFIG
from ..errors import ErrorLog, InsufficientDataError, record_error
from ..models import (
    MarketSnapshot,
    OptionsFlow,
    PriceHistory,
    Regime,
    RegimeClassification,
    RiskLevel,
    TradingBias,
)
from ..indicators.stats import calc_pivot_levels
from .divergence import DivergenceDetector
from .models import (
    DivergenceResult,
    DivergenceType,
    PositionSizing,
    PredictiveAction,
    PredictiveAnalysis,
    PredictiveSignals,
    ProjectedLevels,
    RegimeForecast,
    RegimeProbabilities,
    RegimeProbability,
    SignalTimeframe,
    ThrustType,
    TradingImplications,
    VolumeAnalysis,
)
from .volume import VolumeAnalyzer

logger = logging.getLogger(__name__)

FALLBACK_INSIGHT = "Predictive analysis unavailable - using fallback data"
THRUST_SCORE = 0.7
THRUST_ADJUSTMENT = 0.15
DIVERGENCE_ADJUSTMENT = 0.2
OPTIONS_ADJUSTMENT = 0.1


def renormalize(bull: float, bear: float, bounds: Tuple[float, float]) -> RegimeProbabilities:
    """Clamp bull/bear into ``bounds`` and fill neutral so the triple sums to 1.

    When the implied neutral falls outside ``bounds`` the difference is
    moved into bull and bear in proportion to their room on that side.
    """
    low, high = bounds
    bull = max(low, min(high, bull))
    bear = max(low, min(high, bear))
    neutral = 1.0 - bull - bear

    if neutral < low:
        deficit = low - neutral
        slack_bull, slack_bear = bull - low, bear - low
        slack = slack_bull + slack_bear
        if slack > 0:
            bull -= deficit * slack_bull / slack
            bear -= deficit * slack_bear / slack
        neutral = low
    elif neutral > high:
        excess = neutral - high
        room_bull, room_bear = high - bull, high - bear
        room = room_bull + room_bear
        if room > 0:
            bull += excess * room_bull / room
            bear += excess * room_bear / room
        neutral = high

    return RegimeProbabilities(bull=bull, bear=bear, neutral=1.0 - bull - bear)


class PredictiveSignalEngine:
    """Forward-looking analysis on top of the regime classification."""

    def __init__(
        self,
        config: Optional[PredictiveConfig] = None,
        divergence_detector: Optional[DivergenceDetector] = None,
        volume_analyzer: Optional[VolumeAnalyzer] = None,
        error_log: Optional[ErrorLog] = None,
    ):
        self.config = config or DEFAULT_PREDICTIVE_CONFIG
        self.error_log = error_log
        self.divergence_detector = divergence_detector or DivergenceDetector(self.config)
        self.volume_analyzer = volume_analyzer or VolumeAnalyzer(self.config)

    def predict(
        self,
        snapshot: MarketSnapshot,
        history: Optional[PriceHistory] = None,
        classification: Optional[RegimeClassification] = None,
        strength: Optional[float] = None,
        options_flow: Optional[OptionsFlow] = None,
        error_log: Optional[ErrorLog] = None,
    ) -> PredictiveAnalysis:
        """Run the predictive analysis.

        Args:
            snapshot: Current market snapshot
            history: SPY price history, oldest first
            classification: Current regime; NEUTRAL when omitted
            strength: Regime strength (0-100); taken from the
                classification when omitted
            options_flow: Options reading; falls back to the snapshot's,
                then to a neutral reading
            error_log: Log for this call; the log given at construction
                when omitted

        Returns:
            PredictiveAnalysis; the degraded fallback on unexpected errors
        """
        try:
            return self._predict(snapshot, history, classification, strength, options_flow)
        except (ArithmeticError, AttributeError, KeyError, TypeError, ValueError) as e:
            logger.warning(f"Predictive analysis failed, using fallback: {e}")
            record_error(self.error_log if error_log is None else error_log, "predictive", e)
            return self.fallback(snapshot)

    def _predict(
        self,
        snapshot: MarketSnapshot,
        history: Optional[PriceHistory],
        classification: Optional[RegimeClassification],
        strength: Optional[float],
        options_flow: Optional[OptionsFlow],
    ) -> PredictiveAnalysis:
        flow = options_flow or snapshot.options_flow or OptionsFlow.neutral()
        regime = classification.regime if classification else Regime.NEUTRAL
        if strength is None:
            strength = classification.strength if classification else 50.0

        divergence = self.divergence_detector.detect(history)
        volume = self.volume_analyzer.analyze(history)
        levels = self.projected_levels(snapshot, history)
        probability = self.regime_probabilities(regime, strength, divergence, volume, flow)

        bias, confidence = self.overall_bias(divergence, volume, flow, probability)
        timeframe = self.timeframe(divergence, flow)
        insights = self.key_insights(divergence, volume, flow, probability, bias, confidence, timeframe)
        implications = self.trading_implications(bias, confidence, regime, levels)
        forecast = self.regime_forecast(divergence, volume, flow, probability)

        logger.debug(
            f"Predictive bias {bias.value} confidence={confidence:.2f} timeframe={timeframe} "
            f"next_week bull={probability.next_week.bull:.2f} bear={probability.next_week.bear:.2f}"
        )
        return PredictiveAnalysis(
            signals=PredictiveSignals(
                momentum_divergence=divergence,
                volume_analysis=volume,
                options_flow=flow,
                projected_levels=levels,
                regime_probability=probability,
            ),
            overall_bias=bias,
            confidence=confidence,
            timeframe=timeframe,
            key_insights=tuple(insights),
            trading_implications=implications,
            regime_forecast=forecast,
        )

    def projected_levels(self, snapshot: MarketSnapshot, history: Optional[PriceHistory]) -> ProjectedLevels:
        """Pivot levels over the recent bars and an ATR-based expected move."""
        spy = snapshot.spy
        if history is None or len(history) < self.config.pivot_lookback:
            return ProjectedLevels.fallback(spy.price)
        try:
            pivots = calc_pivot_levels(history.highs, history.lows, history.closes, self.config.pivot_lookback)
        except InsufficientDataError:
            return ProjectedLevels.fallback(spy.price)

        expected_move = spy.atr14 * self.config.expected_move_atr_mult
        return ProjectedLevels(
            pivot=pivots.pivot,
            support=pivots.support,
            resistance=pivots.resistance,
            expected_move=expected_move,
            projected_upside=spy.price + expected_move,
            projected_downside=spy.price - expected_move,
        )

    def regime_probabilities(
        self,
        regime: Regime,
        strength: float,
        divergence: DivergenceResult,
        volume: VolumeAnalysis,
        flow: OptionsFlow,
    ) -> RegimeProbability:
        """Next-week and next-month regime probabilities.

        Starts from a base set by the current regime and its strength, then
        shifts bull/bear by divergence, confirmed volume thrust and options
        bias. The monthly forecast takes half the shift with wider neutral.
        """
        s = max(0.0, min(100.0, strength)) / 100
        if regime == Regime.BULL:
            base_bull, base_bear = 0.6 + 0.2 * s, 0.2 - 0.1 * s
        elif regime == Regime.BEAR:
            base_bull, base_bear = 0.2 - 0.1 * s, 0.6 + 0.2 * s
        else:
            base = RegimeProbabilities.uniform()
            base_bull, base_bear = base.bull, base.bear

        bull_shift = bear_shift = 0.0
        if divergence.type == DivergenceType.BULLISH:
            bull_shift += divergence.strength * DIVERGENCE_ADJUSTMENT
        elif divergence.type == DivergenceType.BEARISH:
            bear_shift += divergence.strength * DIVERGENCE_ADJUSTMENT

        if volume.confirmation and volume.thrust == ThrustType.UP:
            bull_shift += THRUST_ADJUSTMENT
        elif volume.confirmation and volume.thrust == ThrustType.DOWN:
            bear_shift += THRUST_ADJUSTMENT

        if flow.bias == TradingBias.BULLISH:
            bull_shift += flow.confidence * OPTIONS_ADJUSTMENT
        elif flow.bias == TradingBias.BEARISH:
            bear_shift += flow.confidence * OPTIONS_ADJUSTMENT

        next_week = renormalize(
            base_bull + bull_shift, base_bear + bear_shift, self.config.near_term_bounds
        )
        next_month = renormalize(
            base_bull + bull_shift / 2, base_bear + bear_shift / 2, self.config.long_term_bounds
        )
        return RegimeProbability(next_week=next_week, next_month=next_month)

    def overall_bias(
        self,
        divergence: DivergenceResult,
        volume: VolumeAnalysis,
        flow: OptionsFlow,
        probability: RegimeProbability,
    ) -> Tuple[TradingBias, float]:
        """Weighted vote across the four signal sources.

        A side wins when its score beats the other side and the win
        threshold; confidence is its share of the total weight in play.
        """
        weights = self.config.signal_weights
        bullish = bearish = total = 0.0

        if divergence.type != DivergenceType.NONE:
            score = divergence.strength * weights["divergence"]
            if divergence.type == DivergenceType.BULLISH:
                bullish += score
            else:
                bearish += score
            total += weights["divergence"]

        if volume.confirmation and volume.thrust != ThrustType.NONE:
            score = THRUST_SCORE * weights["volume"]
            if volume.thrust == ThrustType.UP:
                bullish += score
            else:
                bearish += score
            total += weights["volume"]

        if flow.bias != TradingBias.NEUTRAL:
            score = flow.confidence * weights["options"]
            if flow.bias == TradingBias.BULLISH:
                bullish += score
            else:
                bearish += score
            total += weights["options"]

        week = probability.next_week
        regime_score = max(week.bull, week.bear) * weights["regime"]
        if week.bull > week.bear:
            bullish += regime_score
        else:
            bearish += regime_score
        total += weights["regime"]

        threshold = self.config.win_threshold
        if bullish > bearish and bullish > threshold:
            return TradingBias.BULLISH, bullish / total
        if bearish > bullish and bearish > threshold:
            return TradingBias.BEARISH, bearish / total
        return TradingBias.NEUTRAL, self.config.neutral_confidence

    @staticmethod
    def timeframe(divergence: DivergenceResult, flow: OptionsFlow) -> str:
        found = divergence.type != DivergenceType.NONE
        if (found and divergence.timeframe == SignalTimeframe.SHORT) or flow.unusual_activity:
            return SignalTimeframe.SHORT.description
        if found and divergence.timeframe == SignalTimeframe.LONG:
            return SignalTimeframe.LONG.description
        return SignalTimeframe.MEDIUM.description

    @staticmethod
    def key_insights(
        divergence: DivergenceResult,
        volume: VolumeAnalysis,
        flow: OptionsFlow,
        probability: RegimeProbability,
        bias: TradingBias,
        confidence: float,
        timeframe: str,
    ) -> List[str]:
        insights = []
        if confidence > 0.6:
            insights.append(
                f"Strong {bias.value} bias with {confidence * 100:.0f}% confidence over {timeframe}"
            )
        if divergence.type != DivergenceType.NONE:
            insights.append(
                f"{divergence.type.value.capitalize()} momentum divergence detected "
                f"with {divergence.strength * 100:.0f}% strength"
            )
        if volume.volume_spike:
            confirming = "confirming" if volume.confirmation else "without confirming"
            insights.append(
                f"Volume spike detected ({volume.volume_ratio:.1f}x normal) {confirming} price action"
            )
        if flow.unusual_activity:
            insights.append(
                f"Unusual options activity with {flow.bias.value} bias "
                f"(P/C ratio: {flow.put_call_ratio:.2f})"
            )
        regime, likelihood = probability.next_week.most_likely()
        if likelihood > 0.6:
            insights.append(f"{likelihood * 100:.0f}% probability of {regime.value} regime next week")
        return insights

    @staticmethod
    def trading_implications(
        bias: TradingBias,
        confidence: float,
        regime: Regime,
        levels: ProjectedLevels,
    ) -> TradingImplications:
        """Map bias and confidence onto the five-level action scale."""
        if bias == TradingBias.BULLISH and confidence > 0.7:
            action, sizing, risk = PredictiveAction.AGGRESSIVE_LONG, PositionSizing.FULL, RiskLevel.MEDIUM
        elif bias == TradingBias.BULLISH and confidence > 0.5:
            action, sizing, risk = PredictiveAction.CAUTIOUS_LONG, PositionSizing.REDUCED, RiskLevel.MEDIUM
        elif bias == TradingBias.BEARISH and confidence > 0.7:
            action, sizing, risk = PredictiveAction.AGGRESSIVE_SHORT, PositionSizing.FULL, RiskLevel.HIGH
        elif bias == TradingBias.BEARISH and confidence > 0.5:
            action, sizing, risk = PredictiveAction.CAUTIOUS_SHORT, PositionSizing.REDUCED, RiskLevel.MEDIUM
        else:
            action, sizing, risk = PredictiveAction.NEUTRAL, PositionSizing.REDUCED, RiskLevel.MEDIUM

        against_regime = (
            (regime == Regime.BULL and bias == TradingBias.BEARISH)
            or (regime == Regime.BEAR and bias == TradingBias.BULLISH)
        )
        if against_regime:
            risk = RiskLevel.HIGH

        return TradingImplications(
            recommended_action=action,
            position_sizing=sizing,
            risk_level=risk,
            support=levels.support,
            resistance=levels.resistance,
            targets=(levels.projected_upside, levels.projected_downside),
        )

    @staticmethod
    def regime_forecast(
        divergence: DivergenceResult,
        volume: VolumeAnalysis,
        flow: OptionsFlow,
        probability: RegimeProbability,
    ) -> RegimeForecast:
        drivers = []
        catalysts = []
        if divergence.type != DivergenceType.NONE:
            drivers.append(f"{divergence.type.value.capitalize()} momentum divergence")
        if volume.thrust != ThrustType.NONE:
            drivers.append(f"Volume {volume.thrust.value} thrust")
        if flow.unusual_activity:
            drivers.append("Unusual options activity")
            catalysts.append("Large institutional positioning")
        if abs(flow.put_call_ratio - 1) > 0.5:
            catalysts.append("Extreme sentiment readings")
        return RegimeForecast(
            next_week=probability.next_week,
            next_month=probability.next_month,
            change_drivers=tuple(drivers),
            catalysts=tuple(catalysts),
        )

    def fallback(self, snapshot: Optional[MarketSnapshot]) -> PredictiveAnalysis:
        """Neutral analysis returned when the engine cannot run."""
        try:
            price = snapshot.spy.price
        except (AttributeError, KeyError):
            price = 0.0
        levels = ProjectedLevels.fallback(price)
        probability = RegimeProbability.default()
        return PredictiveAnalysis(
            signals=PredictiveSignals(
                momentum_divergence=DivergenceResult.none(),
                volume_analysis=VolumeAnalysis.empty(),
                options_flow=OptionsFlow.neutral(),
                projected_levels=levels,
                regime_probability=probability,
            ),
            overall_bias=TradingBias.NEUTRAL,
            confidence=self.config.neutral_confidence,
            timeframe=SignalTimeframe.MEDIUM.description,
            key_insights=(FALLBACK_INSIGHT,),
            trading_implications=TradingImplications(
                recommended_action=PredictiveAction.NEUTRAL,
                position_sizing=PositionSizing.MINIMAL,
                risk_level=RiskLevel.MEDIUM,
                support=(price * 0.98,),
                resistance=(price * 1.02,),
                targets=(),
            ),
            regime_forecast=RegimeForecast(
                next_week=probability.next_week,
                next_month=probability.next_month,
            ),
            degraded=True,
        )
