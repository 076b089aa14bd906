"""Predictive Data Models and Enums.

Contains all forward-looking analysis results:
- DivergenceType / SignalTimeframe / ThrustType: Signal classifications
- IndicatorDivergence / HiddenDivergence / DivergenceResult: Divergence output
- TradeSignal: buy/sell/hold reading with confidence
- VolumeAnalysis / VolumeSignals / VolumePattern: Volume confirmation output
- ProjectedLevels: Pivot levels and expected move
- RegimeProbabilities / RegimeProbability: Forecast probability triples
- TradingImplications / RegimeForecast / PredictiveAnalysis: Engine output
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Tuple

from ..models import OptionsFlow, Regime, RiskLevel, TradingBias


class DivergenceType(Enum):
    """Direction of a momentum divergence."""
    BULLISH = "bullish"
    BEARISH = "bearish"
    NONE = "none"

    @property
    def bias(self) -> TradingBias:
        if self == DivergenceType.BULLISH:
            return TradingBias.BULLISH
        if self == DivergenceType.BEARISH:
            return TradingBias.BEARISH
        return TradingBias.NEUTRAL


class SignalTimeframe(Enum):
    """Expected horizon of a signal."""
    SHORT = "short"      # 1-3 days
    MEDIUM = "medium"    # 3-7 days
    LONG = "long"        # 1-2 weeks

    @property
    def description(self) -> str:
        return {
            SignalTimeframe.SHORT: "1-3 days",
            SignalTimeframe.MEDIUM: "3-7 days",
            SignalTimeframe.LONG: "1-2 weeks",
        }[self]

    @classmethod
    def from_strength(cls, strength: float) -> "SignalTimeframe":
        if strength >= 0.7:
            return cls.SHORT
        if strength >= 0.4:
            return cls.MEDIUM
        return cls.LONG


class ThrustType(Enum):
    """Direction of a volume thrust."""
    UP = "up"
    DOWN = "down"
    NONE = "none"


class PredictiveAction(Enum):
    """Five-level action scale."""
    AGGRESSIVE_LONG = "aggressive_long"
    CAUTIOUS_LONG = "cautious_long"
    NEUTRAL = "neutral"
    CAUTIOUS_SHORT = "cautious_short"
    AGGRESSIVE_SHORT = "aggressive_short"


class PositionSizing(Enum):
    """Sizing tier attached to a predictive action."""
    FULL = "full"
    REDUCED = "reduced"
    MINIMAL = "minimal"


@dataclass(frozen=True)
class IndicatorDivergence:
    """Regular divergence against a single indicator (RSI or MACD)."""
    type: DivergenceType = DivergenceType.NONE
    strength: float = 0.0
    price_points: Tuple[float, ...] = ()
    indicator_points: Tuple[float, ...] = ()
    timeframe: SignalTimeframe = SignalTimeframe.SHORT

    @property
    def found(self) -> bool:
        return self.type != DivergenceType.NONE


@dataclass(frozen=True)
class HiddenDivergence:
    """Trend-continuation divergence between highs/lows and RSI."""
    bullish: bool = False
    bearish: bool = False
    strength: float = 0.0

    @property
    def found(self) -> bool:
        return self.bullish or self.bearish


@dataclass(frozen=True)
class DivergenceResult:
    """Combined momentum divergence.

    Attributes:
        type: Dominant divergence direction
        strength: Combined strength (0-1)
        timeframe: Horizon bucket from strength
        rsi_divergence: RSI confirmed a regular divergence
        macd_divergence: MACD confirmed a regular divergence
        hidden_divergence: A hidden divergence was present
        price_points: Previous and recent price extremes of the strongest source
        indicator_points: Matching indicator extremes
    """
    type: DivergenceType = DivergenceType.NONE
    strength: float = 0.0
    timeframe: SignalTimeframe = SignalTimeframe.SHORT
    rsi_divergence: bool = False
    macd_divergence: bool = False
    hidden_divergence: bool = False
    price_points: Tuple[float, ...] = ()
    indicator_points: Tuple[float, ...] = ()

    @property
    def confirmations(self) -> int:
        return sum((self.rsi_divergence, self.macd_divergence, self.hidden_divergence))

    @classmethod
    def none(cls) -> "DivergenceResult":
        return cls()


@dataclass(frozen=True)
class TradeSignal:
    """buy/sell/hold reading from one analysis source."""
    signal: str                 # buy, sell, hold
    confidence: float
    timeframe: str
    reasoning: Tuple[str, ...] = ()


@dataclass(frozen=True)
class RegimeImplication:
    """What a signal source implies for the current regime."""
    regime_risk: RiskLevel
    change_probability: float
    recommendation: str


@dataclass(frozen=True)
class VolumeAnalysis:
    """Volume confirmation for the latest bar.

    Attributes:
        confirmation: Price move backed by volume, or a spike
        thrust: Direction of an above-average-volume move
        exhaustion: Heavy volume with almost no price change
        volume_spike: Volume ratio above 1.5
        accumulation_distribution: Signed volume over the lookback
        volume_ratio: Latest volume over the lookback average
        trend: increasing, decreasing or stable
    """
    confirmation: bool = False
    thrust: ThrustType = ThrustType.NONE
    exhaustion: bool = False
    volume_spike: bool = False
    accumulation_distribution: float = 0.0
    volume_ratio: float = 1.0
    trend: str = "stable"

    @classmethod
    def empty(cls) -> "VolumeAnalysis":
        return cls()


@dataclass(frozen=True)
class VolumeSignals:
    """Volume analysis extended with accumulation and distribution."""
    analysis: VolumeAnalysis = field(default_factory=VolumeAnalysis)
    accumulation: bool = False
    distribution: bool = False

    @property
    def up_thrust(self) -> bool:
        return self.analysis.thrust == ThrustType.UP

    @property
    def down_thrust(self) -> bool:
        return self.analysis.thrust == ThrustType.DOWN


@dataclass(frozen=True)
class VolumePattern:
    """Recognized volume pattern."""
    pattern: str                # thrust, selloff, exhaustion, accumulation, distribution, breakout, neutral
    strength: float
    reliability: float
    description: str
    implications: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ProjectedLevels:
    """Pivot-based support/resistance and the ATR expected move."""
    pivot: float
    support: Tuple[float, ...]
    resistance: Tuple[float, ...]
    expected_move: float
    projected_upside: float
    projected_downside: float

    @property
    def expected_range(self) -> Tuple[float, float]:
        return (self.projected_downside, self.projected_upside)

    @classmethod
    def fallback(cls, price: float) -> "ProjectedLevels":
        """Fixed +/-2% and +/-4% bands around price."""
        return cls(
            pivot=price,
            support=(price * 0.98, price * 0.96),
            resistance=(price * 1.02, price * 1.04),
            expected_move=price * 0.02,
            projected_upside=price * 1.02,
            projected_downside=price * 0.98,
        )


@dataclass(frozen=True)
class RegimeProbabilities:
    """Probability triple over the three regimes; sums to 1."""
    bull: float
    bear: float
    neutral: float

    @classmethod
    def uniform(cls) -> "RegimeProbabilities":
        return cls(0.33, 0.33, 0.34)

    @property
    def total(self) -> float:
        return self.bull + self.bear + self.neutral

    def most_likely(self) -> Tuple[Regime, float]:
        """Regime with the highest probability (BULL, then BEAR, win ties)."""
        best = max(self.bull, self.bear, self.neutral)
        if self.bull == best:
            return Regime.BULL, best
        if self.bear == best:
            return Regime.BEAR, best
        return Regime.NEUTRAL, best

    def to_dict(self) -> Dict[str, float]:
        return {"BULL": self.bull, "BEAR": self.bear, "NEUTRAL": self.neutral}


@dataclass(frozen=True)
class RegimeProbability:
    """Next-week and next-month regime forecasts."""
    next_week: RegimeProbabilities
    next_month: RegimeProbabilities

    @classmethod
    def default(cls) -> "RegimeProbability":
        return cls(RegimeProbabilities.uniform(), RegimeProbabilities.uniform())


@dataclass(frozen=True)
class PredictiveSignals:
    """Every forward-looking input the engine fused."""
    momentum_divergence: DivergenceResult
    volume_analysis: VolumeAnalysis
    options_flow: OptionsFlow
    projected_levels: ProjectedLevels
    regime_probability: RegimeProbability


@dataclass(frozen=True)
class TradingImplications:
    """Action, sizing tier and key levels implied by the overall bias."""
    recommended_action: PredictiveAction
    position_sizing: PositionSizing
    risk_level: RiskLevel
    support: Tuple[float, ...] = ()
    resistance: Tuple[float, ...] = ()
    targets: Tuple[float, ...] = ()


@dataclass(frozen=True)
class RegimeForecast:
    """Regime probabilities with their change drivers."""
    next_week: RegimeProbabilities
    next_month: RegimeProbabilities
    change_drivers: Tuple[str, ...] = ()
    catalysts: Tuple[str, ...] = ()


@dataclass(frozen=True)
class PredictiveAnalysis:
    """Output of the predictive signal engine.

    Attributes:
        signals: Underlying divergence, volume, options and level readings
        overall_bias: Weighted vote across signal sources
        confidence: Confidence in the bias (0-1)
        timeframe: '1-3 days', '3-7 days' or '1-2 weeks'
        key_insights: Human readable highlights
        trading_implications: Action scale, sizing and levels
        regime_forecast: Probability forecast with drivers
        degraded: True when the fallback analysis was returned
    """
    signals: PredictiveSignals
    overall_bias: TradingBias
    confidence: float
    timeframe: str
    key_insights: Tuple[str, ...]
    trading_implications: TradingImplications
    regime_forecast: RegimeForecast
    degraded: bool = False

    @property
    def divergence(self) -> DivergenceResult:
        return self.signals.momentum_divergence

    @property
    def volume(self) -> VolumeAnalysis:
        return self.signals.volume_analysis

    @property
    def options_flow(self) -> OptionsFlow:
        return self.signals.options_flow
