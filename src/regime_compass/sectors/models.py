"""Sector Rotation Data Models and Enums."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Tuple

from ..models import Recommendation


class RotationType(Enum):
    """Direction of a detected group rotation."""
    VALUE_TO_GROWTH = "value_to_growth"
    GROWTH_TO_VALUE = "growth_to_value"
    RISK_ON = "risk_on"
    RISK_OFF = "risk_off"
    NONE = "none"


class RotationSignal(Enum):
    """Which basket money is rotating into."""
    INTO_GROWTH = "into_growth"
    INTO_VALUE = "into_value"
    INTO_DEFENSIVE = "into_defensive"
    MIXED = "mixed"


class CyclePhase(Enum):
    """Business-cycle phase inferred from sector leadership."""
    EARLY_CYCLE = "early_cycle"
    MID_CYCLE = "mid_cycle"
    LATE_CYCLE = "late_cycle"
    RECESSION = "recession"
    RECOVERY = "recovery"


class Priority(Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass(frozen=True)
class SectorClassification:
    """Sectors bucketed by score: strong >= 5, moderate 1..4, weak -2..0, very weak <= -3."""
    strong: Tuple[str, ...] = ()
    moderate: Tuple[str, ...] = ()
    weak: Tuple[str, ...] = ()
    very_weak: Tuple[str, ...] = ()


@dataclass(frozen=True)
class SectorRotation:
    """Group rotation reading.

    Attributes:
        in_progress: A basket spread exceeded the rotation threshold
        rotation_type: Direction of the larger spread
        strength: min(1, |spread| / 5)
        leading_groups: Two best-scoring of growth/value/defensive/cyclical
        lagging_groups: Two worst-scoring of the same
    """
    in_progress: bool = False
    rotation_type: RotationType = RotationType.NONE
    strength: float = 0.0
    leading_groups: Tuple[str, ...] = ()
    lagging_groups: Tuple[str, ...] = ()


@dataclass(frozen=True)
class SectorRecommendations:
    overweight: Tuple[str, ...] = ()
    underweight: Tuple[str, ...] = ()
    neutral: Tuple[str, ...] = ()
    rotation_signal: RotationSignal = RotationSignal.MIXED


@dataclass(frozen=True)
class SectorBreadthMetrics:
    """Advancing/declining sector counts and concentration."""
    advancing: int = 0
    declining: int = 0
    breadth_ratio: float = 0.0
    participation_rate: float = 0.0
    concentration_risk: float = 0.0


@dataclass(frozen=True)
class SectorPerformance:
    """Per-sector metrics with a recommendation and confidence."""
    symbol: str
    name: str
    score: int
    relative_strength: float
    momentum: float
    volatility: float
    volume_score: float
    recommendation: Recommendation
    confidence: float
    reasoning: Tuple[str, ...] = ()


@dataclass(frozen=True)
class RelativeStrengthRanking:
    symbol: str
    name: str
    relative_strength: float
    performance: float
    rank: int


@dataclass(frozen=True)
class RelativeStrengthAnalysis:
    """Sectors ranked by session performance against the sector average."""
    rankings: Tuple[RelativeStrengthRanking, ...] = ()
    strength_spread: float = 0.0
    leader_laggard_gap: float = 0.0


@dataclass(frozen=True)
class RotationPhase:
    """Cycle phase, rotation signal and the drivers behind them."""
    phase: CyclePhase
    rotation_signal: RotationSignal
    rotation_strength: float
    timeframe: str              # short_term, medium_term, long_term
    confidence: float
    key_drivers: Tuple[str, ...] = ()


@dataclass(frozen=True)
class AllocationRecommendation:
    """Recommended portfolio weight (percent) for one sector."""
    sector: str
    name: str
    current_weight: float
    recommended_weight: float
    adjustment: float
    reasoning: str
    confidence: float
    priority: Priority


@dataclass(frozen=True)
class PortfolioAllocation:
    """Allocation recommendations split into core, satellite and tactical sleeves."""
    core_holdings: Tuple[AllocationRecommendation, ...] = ()
    satellite_holdings: Tuple[AllocationRecommendation, ...] = ()
    tactical_holdings: Tuple[AllocationRecommendation, ...] = ()
    cash_recommendation: float = 0.05


@dataclass(frozen=True)
class SectorAnalysis:
    """Output of the sector rotation analyzer.

    Attributes:
        scores: Sector symbol -> 9-day trend score
        relative_strength: Sector symbol -> score minus cross-sectional mean
        classification: Strength buckets
        group_performance: Basket name -> average score
        rotation: Group rotation reading
        recommendations: Overweight/underweight/neutral lists
        concentration_risk: Share of absolute score held by the top three
        breadth: Sector breadth metrics
        performance: Sector symbol -> detailed per-sector metrics
    """
    scores: Dict[str, int] = field(default_factory=dict)
    relative_strength: Dict[str, float] = field(default_factory=dict)
    classification: SectorClassification = field(default_factory=SectorClassification)
    group_performance: Dict[str, float] = field(default_factory=dict)
    rotation: SectorRotation = field(default_factory=SectorRotation)
    recommendations: SectorRecommendations = field(default_factory=SectorRecommendations)
    concentration_risk: float = 0.0
    breadth: SectorBreadthMetrics = field(default_factory=SectorBreadthMetrics)
    performance: Dict[str, SectorPerformance] = field(default_factory=dict)

    @classmethod
    def empty(cls) -> "SectorAnalysis":
        return cls()

    @property
    def top_sectors(self) -> Tuple[str, ...]:
        """Symbols sorted by score, best first."""
        return tuple(sorted(self.scores, key=lambda s: self.scores[s], reverse=True))
