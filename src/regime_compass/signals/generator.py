"""Trading Signal Generator.

Turns the regime, its strength, the predictive analysis and the sector
analysis into regime positioning, ranked long and hedge candidates, and
a list of sectors to avoid.
"""

import logging
from typing import List, Optional, Sequence

from ..config import SignalConfig, DEFAULT_SIGNAL_CONFIG
from ..errors import ErrorLog, record_error
from ..models import (
    CandidateType,
    MarketSnapshot,
    Recommendation,
    Regime,
    RegimeClassification,
    SectorData,
    TradingBias,
    TradingCandidate,
)
from ..indicators.stats import profit_target_price, risk_reward, stop_loss_price
from ..predictive.models import DivergenceType, PredictiveAnalysis, SignalTimeframe
from ..risk.position_sizer import REGIME_ALLOCATIONS
from ..sectors.models import SectorAnalysis
from .models import (
    LONG_CRITERIA,
    HeldPosition,
    PositionAction,
    PositionSignal,
    SignalCriteria,
    SignalPositioning,
    SignalQuality,
    SignalStrength,
    TradingSignalOutput,
)

logger = logging.getLogger(__name__)

DEFAULT_REGIME_STRENGTH = 50.0


def _candidate(
    symbol: str,
    name: str,
    candidate_type: CandidateType,
    confidence: float,
    entry: float,
    atr: float,
    reasoning: List[str],
    sector: Optional[str] = None,
    timeframe: str = "swing",
) -> TradingCandidate:
    stop = stop_loss_price(entry, atr)
    target = profit_target_price(entry, atr)
    return TradingCandidate(
        symbol=symbol,
        name=name,
        candidate_type=candidate_type,
        confidence=confidence,
        entry=entry,
        stop_loss=stop,
        target=target,
        atr=atr,
        risk_reward=risk_reward(entry, stop, target),
        reasoning=tuple(reasoning),
        sector=sector,
        timeframe=timeframe,
    )


class TradingSignalGenerator:
    """Generates regime-aware trade candidates."""

    def __init__(self, config: Optional[SignalConfig] = None, error_log: Optional[ErrorLog] = None):
        self.config = config or DEFAULT_SIGNAL_CONFIG
        self.error_log = error_log

    def generate(
        self,
        snapshot: MarketSnapshot,
        classification: RegimeClassification,
        strength: Optional[float] = None,
        predictive: Optional[PredictiveAnalysis] = None,
        sectors: Optional[SectorAnalysis] = None,
        error_log: Optional[ErrorLog] = None,
    ) -> TradingSignalOutput:
        """Generate trading signals for one cycle.

        Args:
            snapshot: Current market snapshot
            classification: Current regime classification
            strength: Regime strength (0-100); the classification's when omitted
            predictive: Predictive analysis used for alignment checks
            sectors: Sector analysis; its per-sector recommendations take
                precedence over the snapshot's
            error_log: Log for this call; the log given at construction
                when omitted

        Returns:
            TradingSignalOutput with candidates sorted best first
        """
        regime = classification.regime
        if strength is None:
            strength = classification.strength

        try:
            positioning = self.regime_positioning(regime, strength, snapshot.vix.value)
            longs = self.long_candidates(snapshot, regime, predictive, sectors)
            hedges = self.hedge_candidates(snapshot, regime, predictive)
            avoid = self.avoid_list(snapshot, regime)
            quality = self.signal_quality(snapshot, regime, strength, longs, predictive)
        except (ArithmeticError, AttributeError, KeyError, TypeError, ValueError) as e:
            logger.warning(f"Signal generation failed, returning no candidates: {e}")
            record_error(self.error_log if error_log is None else error_log, "signals", e)
            return TradingSignalOutput(regime_positioning=self.regime_positioning(regime, DEFAULT_REGIME_STRENGTH, 0.0))

        logger.info(
            f"Signals for {regime.value}: {len(longs)} long, {len(hedges)} hedge, "
            f"{len(avoid)} avoid, quality {quality.strength.value} ({quality.score:.2f})"
        )
        return TradingSignalOutput(
            regime_positioning=positioning,
            long_candidates=tuple(longs),
            hedge_candidates=tuple(hedges),
            avoid_list=tuple(avoid),
            signal_quality=quality,
            timeframe=quality.timeframe,
        )

    @staticmethod
    def regime_positioning(regime: Regime, strength: float, vix: float) -> SignalPositioning:
        """Target exposures adjusted for regime strength and VIX."""
        long_alloc, hedge_alloc, factor = REGIME_ALLOCATIONS.get(regime, REGIME_ALLOCATIONS[Regime.NEUTRAL])
        long_exposure = long_alloc * 100
        hedge_exposure = hedge_alloc * 100
        reasoning = {
            Regime.BULL: ["BULL regime supports aggressive long positioning", "Minimal hedging required in strong uptrend"],
            Regime.BEAR: ["BEAR regime requires defensive positioning", "Significant hedging needed for protection"],
            Regime.NEUTRAL: ["NEUTRAL regime calls for balanced approach", "Focus on sector rotation opportunities"],
        }[regime]

        if strength < 50:
            long_exposure *= 0.8
            hedge_exposure *= 1.2
            factor *= 0.9
            reasoning.append(f"Weak regime strength ({strength:.0f}) reduces conviction")
        elif strength > 80:
            long_exposure *= 1.1
            hedge_exposure *= 0.8
            factor *= 1.1
            reasoning.append(f"Strong regime strength ({strength:.0f}) increases conviction")

        if vix > 25:
            long_exposure *= 0.8
            hedge_exposure *= 1.3
            factor *= 0.5
            reasoning.append(f"High VIX ({vix:.1f}) requires defensive positioning")

        long_exposure = max(0.0, min(100.0, long_exposure))
        hedge_exposure = max(0.0, min(50.0, hedge_exposure))
        return SignalPositioning(
            regime=regime,
            long_exposure=long_exposure,
            hedge_exposure=hedge_exposure,
            cash_exposure=max(0.0, 100.0 - long_exposure - hedge_exposure),
            position_sizing_factor=factor,
            reasoning=tuple(reasoning),
        )

    def long_candidates(
        self,
        snapshot: MarketSnapshot,
        regime: Regime,
        predictive: Optional[PredictiveAnalysis] = None,
        sectors: Optional[SectorAnalysis] = None,
    ) -> List[TradingCandidate]:
        criteria = LONG_CRITERIA[regime]
        candidates = []
        for symbol, data in snapshot.sectors.items():
            candidate = self.evaluate_long(data, criteria, predictive, sectors)
            if candidate is not None:
                candidates.append(candidate)
        candidates.sort(key=lambda c: c.confidence * c.risk_reward, reverse=True)
        return candidates[:criteria.max_candidates]

    def evaluate_long(
        self,
        data: SectorData,
        criteria: SignalCriteria,
        predictive: Optional[PredictiveAnalysis] = None,
        sectors: Optional[SectorAnalysis] = None,
    ) -> Optional[TradingCandidate]:
        """Long candidate for one sector, or None when it fails the criteria."""
        recommendation = data.recommendation
        relative_strength = data.relative_strength
        if sectors is not None and data.symbol in sectors.performance:
            recommendation = sectors.performance[data.symbol].recommendation
            relative_strength = sectors.relative_strength.get(data.symbol, relative_strength)

        if data.trend_score9 < criteria.min_trend_score or recommendation != Recommendation.BUY:
            return None

        reasoning = [f"Strong 9-day trend score: {data.trend_score9}"]
        confidence = 0.5 + min(1.0, data.trend_score9 / 9) * 0.3

        if relative_strength > 0:
            confidence += min(0.2, relative_strength / 5)
            reasoning.append(f"Positive relative strength: {relative_strength:.2f}")

        if data.change_percent > 1:
            confidence += 0.1
            reasoning.append(f"Strong recent performance: +{data.change_percent:.1f}%")

        if criteria.require_volume_confirmation:
            if data.volume > self.config.high_volume:
                confidence += 0.1
                reasoning.append("Above average volume confirms move")
            else:
                confidence -= 0.1
                reasoning.append("Below average volume reduces confidence")

        if criteria.require_predictive_alignment and predictive is not None:
            if predictive.divergence.type == DivergenceType.BULLISH:
                confidence += 0.15
                reasoning.append("Bullish momentum divergence supports position")
            elif predictive.divergence.type == DivergenceType.BEARISH:
                confidence -= 0.2
                reasoning.append("Bearish momentum divergence creates headwind")
            if predictive.options_flow.bias == TradingBias.BULLISH:
                confidence += 0.1
                reasoning.append("Bullish options flow supports position")

        if confidence < criteria.min_confidence:
            return None

        atr = data.atr14 if data.atr14 else data.price * self.config.long_atr_pct
        return _candidate(
            data.symbol, data.name, CandidateType.LONG, confidence, data.price, atr,
            reasoning, sector=data.symbol,
        )

    def hedge_candidates(
        self,
        snapshot: MarketSnapshot,
        regime: Regime,
        predictive: Optional[PredictiveAnalysis] = None,
    ) -> List[TradingCandidate]:
        """Inverse ETF hedges (BEAR/NEUTRAL only) and defensive sectors.

        Inverse ETFs are only offered when the snapshot carries a price
        for them.
        """
        cfg = self.config
        candidates = []
        if regime in (Regime.BEAR, Regime.NEUTRAL):
            for symbol, name in cfg.inverse_etfs:
                candidate = self.inverse_hedge(symbol, name, snapshot, regime, predictive)
                if candidate is not None:
                    candidates.append(candidate)

        for symbol in cfg.defensive_sectors:
            data = snapshot.sectors.get(symbol)
            if data is not None and data.trend_score9 >= 1:
                candidate = self.defensive_hedge(data, snapshot, regime)
                if candidate is not None:
                    candidates.append(candidate)

        candidates.sort(key=lambda c: c.confidence, reverse=True)
        return candidates[:cfg.max_hedges.get(regime.value, 1)]

    def inverse_hedge(
        self,
        symbol: str,
        name: str,
        snapshot: MarketSnapshot,
        regime: Regime,
        predictive: Optional[PredictiveAnalysis] = None,
    ) -> Optional[TradingCandidate]:
        price = snapshot.price_of(symbol)
        if price is None or price <= 0:
            logger.debug(f"Skipping hedge {symbol}: no price in snapshot")
            return None

        confidence = 0.4
        reasoning = []
        if regime == Regime.BEAR:
            confidence += 0.3
            reasoning.append("BEAR regime supports inverse positioning")
        if predictive is not None and predictive.divergence.type == DivergenceType.BEARISH:
            confidence += 0.2
            reasoning.append("Bearish momentum divergence supports hedge")
        if predictive is not None and predictive.options_flow.bias == TradingBias.BEARISH:
            confidence += 0.1
            reasoning.append("Bearish options flow supports hedge")
        vix = snapshot.vix.value
        if vix > 20:
            confidence += 0.1
            reasoning.append(f"Elevated VIX ({vix:.1f}) supports hedging")

        if confidence < self.config.hedge_min_confidence:
            return None

        if symbol in snapshot.indexes and snapshot.indexes[symbol].atr14 > 0:
            atr = snapshot.indexes[symbol].atr14
        else:
            atr = price * self.config.inverse_atr_pct
        return _candidate(symbol, name, CandidateType.HEDGE, confidence, price, atr, reasoning)

    def defensive_hedge(
        self,
        data: SectorData,
        snapshot: MarketSnapshot,
        regime: Regime,
    ) -> Optional[TradingCandidate]:
        confidence = 0.4
        reasoning = []
        if regime in (Regime.NEUTRAL, Regime.BEAR):
            confidence += 0.2
            reasoning.append("Defensive sector appropriate for current regime")
        if data.trend_score9 > 3:
            confidence += 0.2
            reasoning.append(f"Positive trend score: {data.trend_score9}")
        if snapshot.vix.value > 18:
            confidence += 0.1
            reasoning.append("Elevated volatility favors defensive positioning")

        if confidence < self.config.hedge_min_confidence:
            return None

        atr = data.atr14 if data.atr14 else data.price * self.config.defensive_atr_pct
        return _candidate(
            data.symbol, data.name, CandidateType.HEDGE, confidence, data.price, atr,
            reasoning, sector=data.symbol, timeframe="position",
        )

    @staticmethod
    def avoid_list(snapshot: MarketSnapshot, regime: Regime) -> List[str]:
        """Very weak, AVOID-rated, or (in BULL) falling sectors, without duplicates."""
        avoid = []
        for symbol, data in snapshot.sectors.items():
            weak = data.trend_score9 <= -3 or data.recommendation == Recommendation.AVOID
            lagging = regime == Regime.BULL and data.change_percent < -2
            if weak or lagging:
                avoid.append(symbol)
        return avoid

    @staticmethod
    def signal_quality(
        snapshot: MarketSnapshot,
        regime: Regime,
        strength: float,
        longs: Sequence[TradingCandidate],
        predictive: Optional[PredictiveAnalysis] = None,
    ) -> SignalQuality:
        score = strength / 100 * 0.3
        if longs:
            score += sum(c.confidence for c in longs) / len(longs) * 0.3
        score += snapshot.breadth.breadth_pct * 0.2

        short_divergence = False
        if predictive is not None:
            divergence = predictive.divergence
            if divergence.type != DivergenceType.NONE:
                score += divergence.strength * 0.1
                short_divergence = divergence.timeframe == SignalTimeframe.SHORT
            if predictive.volume.confirmation:
                score += 0.1

        if score >= 0.7:
            bucket = SignalStrength.STRONG
        elif score >= 0.5:
            bucket = SignalStrength.MODERATE
        else:
            bucket = SignalStrength.WEAK

        if short_divergence:
            timeframe = "intraday"
        elif regime == Regime.NEUTRAL:
            timeframe = "position"
        else:
            timeframe = "swing"
        return SignalQuality(bucket, score, timeframe)

    @staticmethod
    def entry_exit_signals(
        snapshot: MarketSnapshot,
        regime: Regime,
        positions: Sequence[HeldPosition],
        predictive: Optional[PredictiveAnalysis] = None,
    ) -> List[PositionSignal]:
        """Hold/reduce/exit advice for open positions.

        Checks run in order and later checks override the action: regime
        alignment, trend deterioration, bearish divergence, then the 3%
        profit and 2% loss levels for longs.
        """
        signals = []
        for position in positions:
            data = snapshot.sectors.get(position.symbol)
            if data is None:
                signals.append(PositionSignal(
                    position.symbol, PositionAction.HOLD, ("No sector data available",), "low"
                ))
                continue

            is_long = position.candidate_type == CandidateType.LONG
            action = PositionAction.HOLD
            urgency = "low"
            reasoning = []

            aligned = (regime == Regime.BULL and is_long) or (
                regime == Regime.BEAR and position.candidate_type == CandidateType.SHORT
            )
            if not aligned:
                action, urgency = PositionAction.REDUCE, "medium"
                reasoning.append(f"Position not aligned with {regime.value} regime")

            if is_long and data.trend_score9 <= 0:
                action, urgency = PositionAction.EXIT, "high"
                reasoning.append(f"Trend score deteriorated to {data.trend_score9}")

            if is_long and predictive is not None and predictive.divergence.type == DivergenceType.BEARISH:
                if action == PositionAction.HOLD:
                    action = PositionAction.REDUCE
                urgency = "medium"
                reasoning.append("Bearish momentum divergence detected")

            if is_long and position.entry > 0:
                pnl = (position.current_price - position.entry) / position.entry
                if pnl > 0.03:
                    action = PositionAction.REDUCE
                    reasoning.append("Profit target reached - take partial profits")
                elif pnl < -0.02:
                    action, urgency = PositionAction.EXIT, "high"
                    reasoning.append("Stop loss triggered")

            if not reasoning:
                reasoning.append("Position aligned with current market conditions")
            signals.append(PositionSignal(position.symbol, action, tuple(reasoning), urgency))
        return signals
