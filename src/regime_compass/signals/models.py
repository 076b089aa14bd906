"""Trading Signal Data Models and Enums."""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Tuple

from ..models import CandidateType, Regime, TradingCandidate


class SignalStrength(Enum):
    WEAK = "weak"
    MODERATE = "moderate"
    STRONG = "strong"


class PositionAction(Enum):
    """Action for an open position."""
    HOLD = "hold"
    ADD = "add"
    REDUCE = "reduce"
    EXIT = "exit"


@dataclass(frozen=True)
class SignalCriteria:
    """Filters a sector must pass to become a long candidate."""
    min_trend_score: int
    min_confidence: float
    max_candidates: int
    require_volume_confirmation: bool
    require_predictive_alignment: bool


LONG_CRITERIA: Dict[Regime, SignalCriteria] = {
    Regime.BULL: SignalCriteria(3, 0.6, 5, False, False),
    Regime.NEUTRAL: SignalCriteria(5, 0.7, 3, True, True),
    Regime.BEAR: SignalCriteria(7, 0.8, 2, True, True),
}


@dataclass(frozen=True)
class SignalPositioning:
    """Target exposures in percent of account for the current regime."""
    regime: Regime
    long_exposure: float
    hedge_exposure: float
    cash_exposure: float
    position_sizing_factor: float
    reasoning: Tuple[str, ...] = ()


@dataclass(frozen=True)
class SignalQuality:
    strength: SignalStrength
    score: float
    timeframe: str              # intraday, swing, position


@dataclass(frozen=True)
class TradingSignalOutput:
    """Ranked candidates and avoid list for one cycle.

    Attributes:
        regime_positioning: Target long/hedge/cash exposure
        long_candidates: Long ideas, best first
        hedge_candidates: Inverse ETF and defensive sector hedges, best first
        avoid_list: Sector symbols to stay out of
        signal_quality: Overall quality score and bucket
        timeframe: intraday, swing or position
    """
    regime_positioning: SignalPositioning
    long_candidates: Tuple[TradingCandidate, ...] = ()
    hedge_candidates: Tuple[TradingCandidate, ...] = ()
    avoid_list: Tuple[str, ...] = ()
    signal_quality: SignalQuality = SignalQuality(SignalStrength.WEAK, 0.0, "swing")
    timeframe: str = "swing"

    @property
    def candidates(self) -> Tuple[TradingCandidate, ...]:
        return self.long_candidates + self.hedge_candidates


@dataclass(frozen=True)
class HeldPosition:
    """Open position evaluated by entry/exit signals."""
    symbol: str
    candidate_type: CandidateType
    entry: float
    current_price: float


@dataclass(frozen=True)
class PositionSignal:
    symbol: str
    action: PositionAction
    reasoning: Tuple[str, ...]
    urgency: str                # low, medium, high
