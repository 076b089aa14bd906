"""Regime strength scoring for Regime Compass.

Quantifies how strongly the current regime holds (0-100), how durable it
is, and how vulnerable it is to a change.
"""

import logging
from typing import Optional

from ..config import ClassifierConfig, DEFAULT_CLASSIFIER_CONFIG, StrengthConfig, DEFAULT_STRENGTH_CONFIG
from ..errors import ErrorLog, record_error
from ..models import (
    BreadthData,
    GammaBias,
    GammaData,
    IndexData,
    MarketSnapshot,
    Regime,
    RegimeClassification,
    VIXData,
)
from .factors import detect_early_warnings, determine_regime, evaluate_factors
from .models import (
    ConfirmationLevel,
    EarlyWarnings,
    FactorStrengths,
    RecommendedAction,
    RegimeStrengthAnalysis,
    StrengthSummary,
)

logger = logging.getLogger(__name__)


GRADE_BANDS = (
    (90, "A+"),
    (80, "A"),
    (70, "B+"),
    (60, "B"),
    (50, "C+"),
    (40, "C"),
    (30, "D"),
)


def breadth_strength(breadth: BreadthData) -> float:
    """Breadth factor strength (0-100)."""
    strength = 0.0

    # Breadth percentage (0-40 points)
    pct = breadth.breadth_pct
    if pct >= 0.8:
        strength += 40
    elif pct >= 0.7:
        strength += 35
    elif pct >= 0.62:
        strength += 25
    elif pct >= 0.5:
        strength += 15
    elif pct >= 0.38:
        strength += 10
    elif pct >= 0.2:
        strength += 5

    # Advance/decline ratio (0-25 points)
    ad_ratio = breadth.advance_decline_ratio
    if ad_ratio >= 3:
        strength += 25
    elif ad_ratio >= 2:
        strength += 20
    elif ad_ratio >= 1.5:
        strength += 15
    elif ad_ratio >= 1:
        strength += 10
    elif ad_ratio >= 0.67:
        strength += 5

    # New highs vs new lows (0-20 points)
    highs_lows = breadth.new_highs + breadth.new_lows
    if highs_lows > 0:
        strength += breadth.new_highs / highs_lows * 20
    else:
        strength += 10

    # Participation (0-15 points)
    strength += breadth.participation_rate * 15

    return min(100.0, strength)


def trend_strength(spy: IndexData) -> float:
    """Trend factor strength (0-100) from trend score, daily move and volume."""
    strength = 0.0

    score = abs(spy.trend_score9)
    if score >= 7:
        strength += 50
    elif score >= 5:
        strength += 40
    elif score >= 3:
        strength += 25
    elif score >= 1:
        strength += 10

    change = abs(spy.change_percent)
    if change >= 2:
        strength += 25
    elif change >= 1:
        strength += 20
    elif change >= 0.5:
        strength += 15
    elif change >= 0.25:
        strength += 10
    else:
        strength += 5

    if spy.volume > 50_000_000:
        strength += 25
    elif spy.volume > 30_000_000:
        strength += 20
    elif spy.volume > 20_000_000:
        strength += 15
    elif spy.volume > 10_000_000:
        strength += 10
    else:
        strength += 5

    return min(100.0, strength)


def ema_strength(spy: IndexData) -> float:
    """EMA alignment strength (0-100) from the absolute spread."""
    spread = abs(spy.ema_spread)

    if spread >= 0.05:
        strength = 60.0
    elif spread >= 0.03:
        strength = 50.0
    elif spread >= 0.01:
        strength = 40.0
    elif spread >= 0.005:
        strength = 25.0
    elif spread >= 0.0025:
        strength = 15.0
    else:
        strength = 5.0

    # Direction bonus is symmetric for bullish and bearish alignment
    if spread >= 0.02:
        strength += 40
    elif spread >= 0.01:
        strength += 30
    elif spread >= 0.005:
        strength += 20
    else:
        strength += 10

    return min(100.0, strength)


def volatility_strength(vix: VIXData) -> float:
    """Volatility factor strength (0-100); low and falling VIX scores highest."""
    level = vix.value
    if level <= 12:
        strength = 50.0
    elif level <= 15:
        strength = 45.0
    elif level <= 18:
        strength = 40.0
    elif level <= 20:
        strength = 30.0
    elif level <= 25:
        strength = 20.0
    elif level <= 30:
        strength = 10.0
    else:
        strength = 5.0

    move = abs(vix.change_percent)
    falling = vix.change_percent < 0
    if move >= 10:
        strength += 30 if falling else 5
    elif move >= 5:
        strength += 25 if falling else 10
    else:
        strength += 20

    if abs(vix.five_day_change) >= 5:
        strength += 20 if vix.five_day_change < 0 else 5
    else:
        strength += 15

    return min(100.0, strength)


def gamma_strength(gamma: GammaData) -> float:
    """Gamma factor strength (0-100)."""
    gex_billions = abs(gamma.gex) / 1e9
    if gex_billions >= 3:
        strength = 40.0
    elif gex_billions >= 2:
        strength = 35.0
    elif gex_billions >= 1:
        strength = 30.0
    elif gex_billions >= 0.5:
        strength = 25.0
    else:
        strength = 15.0

    strength += {
        GammaBias.SUPPORTIVE: 35,
        GammaBias.NEUTRAL: 20,
        GammaBias.SUPPRESSIVE: 10,
    }[gamma.bias]

    dist = gamma.zero_gamma_dist
    if dist <= 0.005:
        strength += 25
    elif dist <= 0.01:
        strength += 20
    elif dist <= 0.02:
        strength += 15
    elif dist <= 0.05:
        strength += 10
    else:
        strength += 5

    return min(100.0, strength)


class RegimeStrengthScorer:
    """Scores regime strength, durability and vulnerability.

    Each factor gets an independent 0-100 strength. The overall strength
    averages only the factors aligned with the dominant side and adds a
    bonus proportional to the aligned weight.
    """

    def __init__(
        self,
        config: Optional[StrengthConfig] = None,
        classifier_config: Optional[ClassifierConfig] = None,
        error_log: Optional[ErrorLog] = None,
    ):
        self.config = config or DEFAULT_STRENGTH_CONFIG
        self.classifier_config = classifier_config or DEFAULT_CLASSIFIER_CONFIG
        self.error_log = error_log

    def factor_strengths(self, snapshot: MarketSnapshot) -> FactorStrengths:
        return FactorStrengths(
            breadth=breadth_strength(snapshot.breadth),
            ema=ema_strength(snapshot.spy),
            trend=trend_strength(snapshot.spy),
            volatility=volatility_strength(snapshot.vix),
            gamma=gamma_strength(snapshot.gamma),
        )

    def score(
        self,
        snapshot: MarketSnapshot,
        classification: Optional[RegimeClassification] = None,
        warnings: Optional[EarlyWarnings] = None,
        error_log: Optional[ErrorLog] = None,
    ) -> RegimeStrengthAnalysis:
        """Score the regime for a snapshot.

        Args:
            snapshot: Current market snapshot
            classification: Existing classification; factors and regime are
                re-evaluated from the snapshot when omitted
            warnings: Precomputed early warnings for the regime
            error_log: Log for this call; the log given at construction
                when omitted

        Returns:
            RegimeStrengthAnalysis; the fallback analysis (strength 10,
            action wait) when the snapshot cannot be scored
        """
        regime = classification.regime if classification else Regime.NEUTRAL
        try:
            if classification is not None:
                factors = classification.factors
            else:
                factors = evaluate_factors(snapshot, self.classifier_config)
                regime = determine_regime(factors)

            side = regime if regime != Regime.NEUTRAL else factors.dominant_side()
            aligned = factors.aligned(side)

            strengths = self.factor_strengths(snapshot)
            overall = self._overall_strength(strengths, aligned)
            durability = self._durability(snapshot, overall)
            vulnerability = self._vulnerability(snapshot, strengths)
            if warnings is None:
                warnings = detect_early_warnings(snapshot, regime, self.classifier_config)
            action = self._recommended_action(overall, vulnerability, warnings)
        except (ArithmeticError, AttributeError, KeyError, TypeError, ValueError) as e:
            logger.warning(f"Strength scoring failed, using fallback: {e}")
            record_error(self.error_log if error_log is None else error_log, "strength", e)
            return RegimeStrengthAnalysis.fallback(regime)

        logger.debug(
            f"Strength {overall:.1f} ({regime.value}, aligned={aligned}) "
            f"durability={durability:.1f} vulnerability={vulnerability:.1f} action={action.value}"
        )
        return RegimeStrengthAnalysis(
            regime=regime,
            overall_strength=overall,
            factor_strengths=strengths,
            durability_score=durability,
            vulnerability_score=vulnerability,
            early_warnings=warnings,
            recommended_action=action,
            aligned_factors=tuple(aligned),
        )

    def _overall_strength(self, strengths: FactorStrengths, aligned: list) -> float:
        weights = self.config.factor_weights
        total_weight = sum(weights[name] for name in aligned)
        if total_weight == 0:
            return self.config.floor_strength

        weighted = sum(getattr(strengths, name) * weights[name] for name in aligned)
        base = weighted / total_weight
        bonus = total_weight * self.config.alignment_bonus
        return max(0.0, min(100.0, base + bonus))

    def _durability(self, snapshot: MarketSnapshot, overall: float) -> float:
        durability = overall * 0.6

        breadth_pct = snapshot.breadth.breadth_pct
        if breadth_pct > 0.7 or breadth_pct < 0.3:
            durability += 15
        if abs(snapshot.spy.trend_score9) >= 6:
            durability += 10
        if snapshot.vix.value < 15 or snapshot.vix.value > 30:
            durability += 10
        if snapshot.spy.volume > 40_000_000:
            durability += 5

        return min(100.0, durability)

    def _vulnerability(self, snapshot: MarketSnapshot, strengths: FactorStrengths) -> float:
        weak = sum(1 for _, s in strengths.items() if s < self.config.weak_factor_threshold)
        vulnerability = weak * 15.0

        breadth_pct = snapshot.breadth.breadth_pct
        if 0.5 < breadth_pct < 0.6:
            vulnerability += 20
        if abs(snapshot.spy.trend_score9) <= 2:
            vulnerability += 15
        if snapshot.vix.value > 18 and snapshot.vix.change_percent > 0:
            vulnerability += 15
        if abs(snapshot.spy.ema_spread) < 0.005:
            vulnerability += 10
        if snapshot.gamma.zero_gamma_dist > 0.02:
            vulnerability += 10

        return min(100.0, vulnerability)

    def _recommended_action(
        self,
        overall: float,
        vulnerability: float,
        warnings: EarlyWarnings,
    ) -> RecommendedAction:
        cfg = self.config
        if overall >= cfg.aggressive_min_strength and vulnerability <= cfg.aggressive_max_vulnerability:
            return RecommendedAction.AGGRESSIVE
        if warnings.confirmation == ConfirmationLevel.HIGH or vulnerability >= cfg.defensive_min_vulnerability:
            return RecommendedAction.DEFENSIVE
        if overall >= cfg.cautious_min_strength and vulnerability <= cfg.cautious_max_vulnerability:
            return RecommendedAction.CAUTIOUS
        return RecommendedAction.WAIT

    def summarize(self, analysis: RegimeStrengthAnalysis) -> StrengthSummary:
        """Letter grade with the factors that stand out either way."""
        grade = next(
            (letter for floor, letter in GRADE_BANDS if analysis.overall_strength >= floor),
            "F",
        )
        strengths = analysis.factor_strengths
        return StrengthSummary(
            grade=grade,
            overall_strength=analysis.overall_strength,
            recommended_action=analysis.recommended_action,
            key_strengths=tuple(
                name for name, s in strengths.items() if s >= self.config.strong_factor_threshold
            ),
            key_weaknesses=tuple(
                name for name, s in strengths.items() if s <= self.config.weak_factor_threshold
            ),
            warning_active=analysis.early_warnings.warning,
        )
