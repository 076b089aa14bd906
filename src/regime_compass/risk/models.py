"""Risk Data Models and Enums.

Contains position sizing and portfolio risk results:
- PositionSizeCalculation / OptimalPositionSize: Per-trade sizing output
- RegimePositioning / StopsAndTargets: Allocation and exit levels
- RiskAssessment / RiskAlert / RiskRecommendation: Portfolio risk readings
- PortfolioAdjustment / EmergencyAction: Corrective actions
- RiskManagementOutput: Combined risk manager output
"""

from dataclasses import dataclass
from enum import Enum
from typing import Tuple

from ..models import RiskLevel


class AlertType(Enum):
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"
    EMERGENCY = "emergency"


class AlertCategory(Enum):
    DRAWDOWN = "drawdown"
    CONCENTRATION = "concentration"
    VOLATILITY = "volatility"
    REGIME = "regime"
    POSITION = "position"


class AdjustmentType(Enum):
    REDUCE_EXPOSURE = "reduce_exposure"
    INCREASE_HEDGING = "increase_hedging"
    TIGHTEN_STOPS = "tighten_stops"
    RAISE_CASH = "raise_cash"


@dataclass(frozen=True)
class PositionSizeCalculation:
    """ATR-based position size with every adjustment applied.

    Attributes:
        symbol: Instrument being sized
        base_size: Shares risking ``risk_amount`` against a 2x ATR stop
        adjusted_size: Final size after adjustments and clamps
        risk_amount: Dollars at risk (account size x risk per trade)
        max_position_size: Share cap from the max position fraction
        min_position_size: Share floor from the minimum viable dollar size
        volatility_adjustment: Product of the VIX, regime and heat adjustments
        vix_adjustment: 1 - min(0.5, excess VIX / 20)
        regime_adjustment: 1.25 BULL, 0.75 BEAR, 1.0 NEUTRAL
        heat_adjustment: Drawdown taper (1.0 down to 0.1)
        reasoning: Human readable steps
    """
    symbol: str
    base_size: float
    adjusted_size: float
    risk_amount: float
    max_position_size: float
    min_position_size: float
    volatility_adjustment: float
    vix_adjustment: float
    regime_adjustment: float
    heat_adjustment: float
    reasoning: Tuple[str, ...] = ()

    @property
    def unclamped_size(self) -> float:
        return self.base_size * self.volatility_adjustment


@dataclass(frozen=True)
class RegimePositioning:
    """Long/hedge/cash split for a regime."""
    long_allocation: float
    hedge_allocation: float
    cash_allocation: float
    position_size_factor: float
    reasoning: Tuple[str, ...] = ()


@dataclass(frozen=True)
class StopsAndTargets:
    stop_loss: float
    profit_target: float
    risk_reward: float
    dollar_risk: float
    dollar_target: float


@dataclass(frozen=True)
class PortfolioRiskMetrics:
    """Exposure, heat and concentration computed from open positions."""
    total_exposure: float = 0.0
    portfolio_heat: float = 0.0
    concentration_risk: float = 0.0
    average_atr: float = 0.0
    estimated_portfolio_atr: float = 0.0


@dataclass(frozen=True)
class OptimalPositionSize:
    """Size limited by the drawdown budget still available."""
    recommended_size: float
    max_safe_size: float
    risk_level: RiskLevel
    reasoning: Tuple[str, ...] = ()


@dataclass(frozen=True)
class RiskAssessment:
    """Portfolio risk across all dimensions.

    Attributes:
        overall_risk_level: low, medium, high or critical
        portfolio_heat: Dollar risk of open positions over account size
        drawdown_level: Current drawdown fraction
        concentration_risk: Largest sector weight
        volatility_risk: 0 at VIX 15, 1 at VIX 35
        regime_risk: (100 - regime strength) / 100
        time_to_max_drawdown: Estimate at the current 30-day drawdown rate
    """
    overall_risk_level: RiskLevel = RiskLevel.LOW
    portfolio_heat: float = 0.0
    drawdown_level: float = 0.0
    concentration_risk: float = 0.0
    volatility_risk: float = 0.0
    regime_risk: float = 0.0
    time_to_max_drawdown: str = "Not applicable"


@dataclass(frozen=True)
class RiskAlert:
    type: AlertType
    category: AlertCategory
    message: str
    action: str
    priority: int               # 1-10
    timeframe: str              # immediate, today, this_week


@dataclass(frozen=True)
class RiskRecommendation:
    type: str                   # position_sizing, exposure_reduction, hedging, cash_raise, stop_loss
    description: str
    impact: str
    urgency: str
    implementation: Tuple[str, ...] = ()


@dataclass(frozen=True)
class PortfolioAdjustment:
    adjustment_type: AdjustmentType
    target_adjustment: float    # percent change
    affected_positions: Tuple[str, ...]
    reasoning: str
    timeframe: str              # immediate, end_of_day, this_week


@dataclass(frozen=True)
class EmergencyAction:
    """Trigger/action pair from the emergency catalogue.

    ``triggered`` reports whether the trigger condition holds for the
    portfolio that was assessed.
    """
    trigger: str
    action: str
    priority: str               # immediate, urgent, high
    automation: bool
    triggered: bool = False


@dataclass(frozen=True)
class RiskManagementOutput:
    assessment: RiskAssessment
    alerts: Tuple[RiskAlert, ...] = ()
    recommendations: Tuple[RiskRecommendation, ...] = ()
    adjustments: Tuple[PortfolioAdjustment, ...] = ()
    emergency_actions: Tuple[EmergencyAction, ...] = ()

    @classmethod
    def empty(cls) -> "RiskManagementOutput":
        """Low-risk assessment with no alerts or actions."""
        return cls(assessment=RiskAssessment())

    @property
    def triggered_emergencies(self) -> Tuple[EmergencyAction, ...]:
        return tuple(a for a in self.emergency_actions if a.triggered)


@dataclass(frozen=True)
class DynamicStop:
    """Volatility- and regime-adjusted stop for an open long position."""
    stop_loss: float
    fixed_stop: float
    trailing_stop: float
    time_stop_days: int
    multiplier: float
    reasoning: Tuple[str, ...] = ()


@dataclass(frozen=True)
class PositionHeat:
    symbol: str
    heat: float
    percentage: float


@dataclass(frozen=True)
class HeatReport:
    """Portfolio heat from the distance between price and stop."""
    current_heat: float
    max_heat: float
    heat_by_position: Tuple[PositionHeat, ...] = ()
    recommendations: Tuple[str, ...] = ()

    @property
    def overheated(self) -> bool:
        return self.current_heat > self.max_heat
