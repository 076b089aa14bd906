"""Sector Rotation Analyzer.

Scores sectors by their 9-day trend score, buckets them by strength,
averages fixed sector baskets, detects growth/value and risk-on/off
rotation, and produces overweight/underweight recommendations.
"""

import logging
from typing import Dict, List, Mapping, Optional, Tuple

from ..config import SectorConfig, DEFAULT_SECTOR_CONFIG
from ..errors import ErrorLog, record_error
from ..models import Recommendation, Regime, SectorData
from .models import (
    CyclePhase,
    RelativeStrengthAnalysis,
    RelativeStrengthRanking,
    RotationPhase,
    RotationSignal,
    RotationType,
    SectorAnalysis,
    SectorBreadthMetrics,
    SectorClassification,
    SectorPerformance,
    SectorRecommendations,
    SectorRotation,
)

logger = logging.getLogger(__name__)

ROTATION_GROUPS = ("growth", "value", "defensive", "cyclical")


def _mean(values) -> float:
    values = list(values)
    if not values:
        return 0.0
    return sum(values) / len(values)


def sector_recommendation(
    score: int,
    relative_strength: float,
    momentum: float,
    volatility: float,
) -> Tuple[Recommendation, float, List[str]]:
    """Recommendation, confidence and reasoning for one sector.

    Args:
        score: 9-day trend score
        relative_strength: Score minus the cross-sectional mean
        momentum: Session change in percent
        volatility: Absolute session change in percent

    Returns:
        (recommendation, confidence, reasoning)
    """
    reasoning = []
    if score >= 5:
        recommendation, confidence = Recommendation.BUY, 0.8
        reasoning.append(f"Strong 9-day trend score of {score}")
    elif score >= 3:
        recommendation, confidence = Recommendation.BUY, 0.6
        reasoning.append(f"Positive 9-day trend score of {score}")
    elif score >= 1:
        recommendation, confidence = Recommendation.HOLD, 0.5
        reasoning.append(f"Weak positive trend score of {score}")
    elif score >= -2:
        recommendation, confidence = Recommendation.HOLD, 0.4
        reasoning.append(f"Weak negative trend score of {score}")
    else:
        recommendation, confidence = Recommendation.AVOID, 0.7
        reasoning.append(f"Weak 9-day trend score of {score}")

    if relative_strength > 2:
        if recommendation == Recommendation.HOLD:
            recommendation = Recommendation.BUY
        confidence = min(0.9, confidence + 0.1)
        reasoning.append("Strong relative strength vs other sectors")
    elif relative_strength < -2:
        if recommendation == Recommendation.HOLD:
            recommendation = Recommendation.SELL
        elif recommendation == Recommendation.BUY:
            recommendation = Recommendation.HOLD
        confidence = max(0.2, confidence - 0.1)
        reasoning.append("Weak relative strength vs other sectors")

    if momentum > 2 and recommendation == Recommendation.BUY:
        confidence = min(0.9, confidence + 0.1)
        reasoning.append("Strong recent momentum")
    elif momentum < -2 and recommendation != Recommendation.AVOID:
        confidence = max(0.2, confidence - 0.1)
        reasoning.append("Weak recent momentum")

    if volatility > 3:
        confidence = max(0.3, confidence - 0.1)
        reasoning.append("High volatility increases uncertainty")

    return recommendation, confidence, reasoning


def relative_strength_rankings(sectors: Mapping[str, SectorData]) -> RelativeStrengthAnalysis:
    """Rank sectors by session change against the sector average."""
    if not sectors:
        return RelativeStrengthAnalysis()

    avg_change = _mean(s.change_percent for s in sectors.values())
    ordered = sorted(sectors.values(), key=lambda s: s.change_percent - avg_change, reverse=True)
    rankings = tuple(
        RelativeStrengthRanking(
            symbol=s.symbol,
            name=s.name,
            relative_strength=s.change_percent - avg_change,
            performance=s.change_percent,
            rank=i + 1,
        )
        for i, s in enumerate(ordered)
    )
    return RelativeStrengthAnalysis(
        rankings=rankings,
        strength_spread=rankings[0].relative_strength - rankings[-1].relative_strength,
        leader_laggard_gap=rankings[0].performance - rankings[-1].performance,
    )


class SectorRotationAnalyzer:
    """Sector scoring, rotation detection and recommendations."""

    def __init__(self, config: Optional[SectorConfig] = None, error_log: Optional[ErrorLog] = None):
        self.config = config or DEFAULT_SECTOR_CONFIG
        self.error_log = error_log

    def analyze(
        self,
        sectors: Mapping[str, SectorData],
        error_log: Optional[ErrorLog] = None,
    ) -> SectorAnalysis:
        """Run the full sector analysis.

        Args:
            sectors: Sector symbol -> SectorData
            error_log: Log for this call; the log given at construction
                when omitted

        Returns:
            SectorAnalysis; the empty analysis when there are no sectors or
            the input is malformed
        """
        if not sectors:
            return SectorAnalysis.empty()

        try:
            scores = self.scores(sectors)
            mean_score = _mean(scores.values())
            relative = {symbol: score - mean_score for symbol, score in scores.items()}
            groups = self.group_performance(scores)
            rotation = self.detect_rotation(groups)
            recommendations = self.recommendations(scores, groups)
            breadth = self.breadth_metrics(scores)
            performance = self.performance_metrics(sectors, relative)
        except (ArithmeticError, AttributeError, KeyError, TypeError, ValueError) as e:
            logger.warning(f"Sector analysis failed, returning empty analysis: {e}")
            record_error(self.error_log if error_log is None else error_log, "sectors", e)
            return SectorAnalysis.empty()

        if rotation.in_progress:
            logger.info(
                f"Sector rotation {rotation.rotation_type.value} "
                f"(strength {rotation.strength:.2f}), leaders: {', '.join(rotation.leading_groups)}"
            )
        logger.debug(
            f"Sectors overweight={list(recommendations.overweight)} "
            f"underweight={list(recommendations.underweight)}"
        )

        return SectorAnalysis(
            scores=scores,
            relative_strength=relative,
            classification=self.classify_strength(scores),
            group_performance=groups,
            rotation=rotation,
            recommendations=recommendations,
            concentration_risk=breadth.concentration_risk,
            breadth=breadth,
            performance=performance,
        )

    @staticmethod
    def scores(sectors: Mapping[str, SectorData]) -> Dict[str, int]:
        return {symbol: int(data.trend_score9) for symbol, data in sectors.items()}

    def classify_strength(self, scores: Mapping[str, int]) -> SectorClassification:
        cfg = self.config
        strong, moderate, weak, very_weak = [], [], [], []
        for symbol, score in scores.items():
            if score >= cfg.strong_score:
                strong.append(symbol)
            elif score >= cfg.moderate_score:
                moderate.append(symbol)
            elif score > cfg.very_weak_score:
                weak.append(symbol)
            else:
                very_weak.append(symbol)
        return SectorClassification(tuple(strong), tuple(moderate), tuple(weak), tuple(very_weak))

    def group_performance(self, scores: Mapping[str, int]) -> Dict[str, float]:
        """Average score of each configured basket; 0 for a basket with no data."""
        return {
            group: _mean(scores[s] for s in symbols if s in scores)
            for group, symbols in self.config.groups.items()
        }

    def detect_rotation(self, groups: Mapping[str, float]) -> SectorRotation:
        """Flag rotation when a basket spread exceeds the threshold.

        Growth minus value is checked first; cyclical minus defensive
        replaces it only when its spread is larger.
        """
        cfg = self.config
        growth_value = groups.get("growth", 0.0) - groups.get("value", 0.0)
        risk_on_off = groups.get("cyclical", 0.0) - groups.get("defensive", 0.0)

        rotation_type = RotationType.NONE
        strength = 0.0
        if abs(growth_value) > cfg.rotation_threshold:
            rotation_type = RotationType.VALUE_TO_GROWTH if growth_value > 0 else RotationType.GROWTH_TO_VALUE
            strength = min(1.0, abs(growth_value) / cfg.rotation_scale)
        if abs(risk_on_off) > cfg.rotation_threshold and abs(risk_on_off) > abs(growth_value):
            rotation_type = RotationType.RISK_ON if risk_on_off > 0 else RotationType.RISK_OFF
            strength = min(1.0, abs(risk_on_off) / cfg.rotation_scale)

        ranked = sorted(ROTATION_GROUPS, key=lambda g: groups.get(g, 0.0), reverse=True)
        return SectorRotation(
            in_progress=rotation_type != RotationType.NONE,
            rotation_type=rotation_type,
            strength=strength,
            leading_groups=tuple(ranked[:2]),
            lagging_groups=tuple(ranked[-2:]),
        )

    def rotation_signal(self, groups: Mapping[str, float]) -> RotationSignal:
        threshold = self.config.rotation_threshold
        growth = groups.get("growth", 0.0)
        value = groups.get("value", 0.0)
        if growth > value + threshold:
            return RotationSignal.INTO_GROWTH
        if value > growth + threshold:
            return RotationSignal.INTO_VALUE
        if groups.get("defensive", 0.0) > groups.get("cyclical", 0.0) + threshold:
            return RotationSignal.INTO_DEFENSIVE
        return RotationSignal.MIXED

    def recommendations(
        self,
        scores: Mapping[str, int],
        groups: Optional[Mapping[str, float]] = None,
    ) -> SectorRecommendations:
        """Overweight the top scorers, underweight the very weak.

        Overweight holds at most ``max_overweight`` symbols, each scoring
        at least ``overweight_min_score``, best first. Underweight holds
        every symbol at or below ``underweight_max_score``.
        """
        cfg = self.config
        ranked = sorted(scores, key=lambda s: scores[s], reverse=True)
        overweight = [s for s in ranked if scores[s] >= cfg.overweight_min_score][:cfg.max_overweight]
        underweight = [s for s in ranked if scores[s] <= cfg.underweight_max_score and s not in overweight]
        neutral = [s for s in ranked if s not in overweight and s not in underweight]
        if groups is None:
            groups = self.group_performance(scores)
        return SectorRecommendations(
            overweight=tuple(overweight),
            underweight=tuple(underweight),
            neutral=tuple(neutral),
            rotation_signal=self.rotation_signal(groups),
        )

    @staticmethod
    def breadth_metrics(scores: Mapping[str, int]) -> SectorBreadthMetrics:
        count = len(scores)
        if count == 0:
            return SectorBreadthMetrics()
        advancing = sum(1 for s in scores.values() if s > 0)
        declining = sum(1 for s in scores.values() if s < 0)
        magnitudes = sorted((abs(s) for s in scores.values()), reverse=True)
        total = sum(magnitudes)
        return SectorBreadthMetrics(
            advancing=advancing,
            declining=declining,
            breadth_ratio=advancing / count,
            participation_rate=(advancing + declining) / count,
            concentration_risk=sum(magnitudes[:3]) / total if total > 0 else 0.0,
        )

    @staticmethod
    def performance_metrics(
        sectors: Mapping[str, SectorData],
        relative: Mapping[str, float],
    ) -> Dict[str, SectorPerformance]:
        avg_volume = _mean(s.volume for s in sectors.values())
        metrics = {}
        for symbol, data in sectors.items():
            recommendation, confidence, reasoning = sector_recommendation(
                data.trend_score9,
                relative[symbol],
                data.change_percent,
                abs(data.change_percent),
            )
            metrics[symbol] = SectorPerformance(
                symbol=symbol,
                name=data.name,
                score=data.trend_score9,
                relative_strength=relative[symbol],
                momentum=data.change_percent,
                volatility=abs(data.change_percent),
                volume_score=data.volume / avg_volume if avg_volume > 0 else 0.0,
                recommendation=recommendation,
                confidence=confidence,
                reasoning=tuple(reasoning),
            )
        return metrics

    def rotation_phase(self, scores: Mapping[str, int], regime: Regime = Regime.NEUTRAL) -> RotationPhase:
        """Infer the business-cycle phase from sector leadership."""
        groups = self.group_performance(scores)
        rotation = self.detect_rotation(groups)

        phase = CyclePhase.MID_CYCLE
        timeframe = "medium_term"
        confidence = 0.6
        drivers = []

        if groups.get("technology", 0.0) > 3 and groups.get("value", 0.0) > 2:
            phase, confidence = CyclePhase.EARLY_CYCLE, 0.7
            drivers.append("Technology and Financials leading")
        elif groups.get("cyclical", 0.0) > 2 and groups.get("growth", 0.0) > 1:
            drivers.append("Cyclical sectors showing strength")
        elif scores.get("XLE", 0) > 3 or scores.get("XLB", 0) > 3:
            phase, confidence = CyclePhase.LATE_CYCLE, 0.7
            drivers.append("Energy and Materials outperforming")
        elif groups.get("defensive", 0.0) > groups.get("cyclical", 0.0) + 2:
            phase, confidence, timeframe = CyclePhase.RECESSION, 0.8, "long_term"
            drivers.append("Defensive sectors outperforming")
        elif scores.get("XLF", 0) > 2 and scores.get("XLK", 0) > 1 and regime == Regime.BEAR:
            phase, confidence, timeframe = CyclePhase.RECOVERY, 0.5, "long_term"
            drivers.append("Early signs of recovery in growth sectors")

        if regime == Regime.BULL:
            drivers.append("BULL regime supports risk-on positioning")
        elif regime == Regime.BEAR:
            drivers.append("BEAR regime favors defensive positioning")

        if rotation.in_progress:
            drivers.append(f"{rotation.rotation_type.value.replace('_', ' ')} rotation in progress")
            timeframe = "short_term" if rotation.strength > 0.7 else "medium_term"

        signal = {
            RotationType.VALUE_TO_GROWTH: RotationSignal.INTO_GROWTH,
            RotationType.GROWTH_TO_VALUE: RotationSignal.INTO_VALUE,
            RotationType.RISK_OFF: RotationSignal.INTO_DEFENSIVE,
        }.get(rotation.rotation_type, RotationSignal.MIXED)

        return RotationPhase(
            phase=phase,
            rotation_signal=signal,
            rotation_strength=rotation.strength,
            timeframe=timeframe,
            confidence=confidence,
            key_drivers=tuple(drivers),
        )
