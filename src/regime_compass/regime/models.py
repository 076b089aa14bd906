"""Regime Data Models and Enums.

Contains the outputs of regime classification and strength scoring:
- ConfirmationLevel: How strongly early-warning triggers confirm a change
- RecommendedAction: Action tier derived from strength and vulnerability
- EarlyWarnings: Deterioration/improvement triggers for the current regime
- FactorStrengths: Independent 0-100 strength per regime factor
- RegimeStrengthAnalysis: Composite strength, durability and vulnerability
- StrengthSummary: Letter grade with key strengths and weaknesses
- FactorDetail / DetailedAnalysis: Per-factor breakdown for reporting
- RegimeChangeOutlook: Imminence estimate from warning count
- BreadthMomentum / BreadthPattern / BreadthSignal: Breadth helper results
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterator, Optional, Tuple

from ..models import FACTOR_NAMES, Regime, RegimeClassification


class ConfirmationLevel(Enum):
    """Confirmation of an impending regime change."""
    LOW = "low"          # fewer than 3 triggers
    MEDIUM = "medium"    # 3 triggers
    HIGH = "high"        # 4 or more triggers


class RecommendedAction(Enum):
    """Trading posture implied by the current regime."""
    AGGRESSIVE = "aggressive"
    CAUTIOUS = "cautious"
    DEFENSIVE = "defensive"
    WAIT = "wait"


@dataclass(frozen=True)
class EarlyWarnings:
    """Early-warning scan for one snapshot.

    Attributes:
        regime: Regime the triggers were evaluated against
        warning: True when at least two triggers fired
        triggers: Human readable trigger descriptions
        confirmation: Confirmation level from trigger count
        time_to_change: Estimated horizon for a regime change
    """
    regime: Regime
    warning: bool
    triggers: Tuple[str, ...]
    confirmation: ConfirmationLevel
    time_to_change: str

    @property
    def bull_to_bear(self) -> bool:
        return self.warning and self.regime == Regime.BULL

    @property
    def bear_to_bull(self) -> bool:
        return self.warning and self.regime == Regime.BEAR

    @classmethod
    def none(cls, regime: Regime = Regime.NEUTRAL) -> "EarlyWarnings":
        return cls(regime, False, (), ConfirmationLevel.LOW, "2-4 weeks")


@dataclass(frozen=True)
class FactorStrengths:
    """Independent 0-100 strength per factor."""
    breadth: float = 0.0
    ema: float = 0.0
    trend: float = 0.0
    volatility: float = 0.0
    gamma: float = 0.0

    def items(self) -> Iterator[Tuple[str, float]]:
        for name in FACTOR_NAMES:
            yield name, getattr(self, name)

    def to_dict(self) -> Dict[str, float]:
        return dict(self.items())


@dataclass(frozen=True)
class RegimeStrengthAnalysis:
    """Composite regime strength.

    Attributes:
        regime: Regime the strength was scored against
        overall_strength: Weighted aligned-factor strength (0-100)
        factor_strengths: Per-factor strengths
        durability_score: Likelihood the regime persists (0-100)
        vulnerability_score: Likelihood the regime breaks (0-100)
        early_warnings: Early-warning scan used for the action
        recommended_action: Trading posture
        aligned_factors: Factors on the dominant side
    """
    regime: Regime
    overall_strength: float
    factor_strengths: FactorStrengths
    durability_score: float
    vulnerability_score: float
    early_warnings: EarlyWarnings
    recommended_action: RecommendedAction
    aligned_factors: Tuple[str, ...] = ()

    @classmethod
    def fallback(cls, regime: Regime = Regime.NEUTRAL) -> "RegimeStrengthAnalysis":
        """Degraded result used when scoring fails."""
        return cls(
            regime=regime,
            overall_strength=10.0,
            factor_strengths=FactorStrengths(),
            durability_score=0.0,
            vulnerability_score=100.0,
            early_warnings=EarlyWarnings.none(regime),
            recommended_action=RecommendedAction.WAIT,
        )


@dataclass(frozen=True)
class StrengthSummary:
    """Letter-graded view of a strength analysis."""
    grade: str
    overall_strength: float
    recommended_action: RecommendedAction
    key_strengths: Tuple[str, ...]
    key_weaknesses: Tuple[str, ...]
    warning_active: bool


@dataclass(frozen=True)
class FactorDetail:
    """One factor's raw reading and both flags."""
    name: str
    status: str
    value: float
    bullish: bool
    bearish: bool
    description: str


@dataclass(frozen=True)
class DetailedAnalysis:
    """Factor-by-factor breakdown of a classification."""
    classification: RegimeClassification
    factors: Dict[str, FactorDetail]
    early_warnings: EarlyWarnings


@dataclass(frozen=True)
class RegimeChangeOutlook:
    """Whether a regime change looks imminent."""
    imminent: bool
    probability: float
    timeframe: str
    triggers: Tuple[str, ...] = ()


@dataclass(frozen=True)
class BreadthMomentum:
    """Breadth rate of change against recent history.

    Attributes:
        momentum: "accelerating", "decelerating" or "stable"
        trend: "improving", "deteriorating" or "sideways"
        strength: Composite breadth strength (0-1)
        divergence: Positive breadth with a weak advance/decline ratio
    """
    momentum: str
    trend: str
    strength: float
    divergence: bool


@dataclass(frozen=True)
class BreadthPattern:
    """Recognized breadth pattern."""
    pattern: str      # thrust, exhaustion, accumulation, distribution, divergence, neutral
    signal: str       # bullish, bearish, neutral
    confidence: float
    description: str


@dataclass(frozen=True)
class BreadthSignal:
    """Action derived from breadth alone."""
    regime_support: Optional[Regime]
    action: str       # buy, hold, reduce
    urgency: str      # high, medium, low
    reasoning: Tuple[str, ...] = field(default_factory=tuple)
