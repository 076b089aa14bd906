"""Portfolio Risk Manager.

Assesses drawdown, concentration, volatility and regime risk for the
external portfolio, then derives alerts, recommendations, portfolio
adjustments and the emergency action catalogue. Also computes dynamic
stops and portfolio heat.
"""

import logging
import math
from typing import List, Optional, Sequence

from ..config import RiskConfig, DEFAULT_RISK_CONFIG
from ..errors import ErrorLog, record_error
from ..models import (
    MarketSnapshot,
    PortfolioMetrics,
    Position,
    Regime,
    RegimeClassification,
    RiskLevel,
    RiskParameters,
)
from .models import (
    AdjustmentType,
    AlertCategory,
    AlertType,
    DynamicStop,
    EmergencyAction,
    HeatReport,
    PortfolioAdjustment,
    PositionHeat,
    RiskAlert,
    RiskAssessment,
    RiskManagementOutput,
    RiskRecommendation,
)

logger = logging.getLogger(__name__)

DEFAULT_REGIME_STRENGTH = 50.0
DRAWDOWN_WINDOW_DAYS = 30
EXPOSURE_HEAT_FACTOR = 0.02     # heat estimate per unit of exposure when no positions are listed
HEDGE_INSTRUMENTS = ("SDS", "SQQQ", "VXX")

# Emergency thresholds
EXTREME_VIX = 40.0
EXTREME_DAILY_LOSS = 0.05
REGIME_BREAKDOWN_STRENGTH = 20.0
SINGLE_POSITION_LIMIT = 0.15
EMERGENCY_LEVERAGE = 2.0


class RiskManager:
    """Portfolio-level risk assessment and controls."""

    def __init__(self, config: Optional[RiskConfig] = None, error_log: Optional[ErrorLog] = None):
        self.config = config or DEFAULT_RISK_CONFIG
        self.error_log = error_log

    def assess(
        self,
        snapshot: MarketSnapshot,
        portfolio: PortfolioMetrics,
        risk_params: RiskParameters,
        strength: Optional[float] = None,
        classification: Optional[RegimeClassification] = None,
        previous_strength: Optional[float] = None,
        error_log: Optional[ErrorLog] = None,
    ) -> RiskManagementOutput:
        """Run the full portfolio risk analysis.

        Args:
            snapshot: Current market snapshot
            portfolio: Read-only portfolio state from the trading ledger
            risk_params: Session risk limits
            strength: Regime strength (0-100); taken from the
                classification, else 50
            classification: Current regime classification
            previous_strength: Last cycle's regime strength, used by the
                regime breakdown emergency trigger
            error_log: Log for this call; the log given at construction
                when omitted

        Returns:
            RiskManagementOutput; the empty low-risk output on malformed input
        """
        try:
            if strength is None:
                strength = classification.strength if classification else DEFAULT_REGIME_STRENGTH
            regime = classification.regime if classification else Regime.NEUTRAL

            assessment = self.assess_risk(snapshot, portfolio, risk_params, strength)
            output = RiskManagementOutput(
                assessment=assessment,
                alerts=tuple(self.alerts(snapshot, portfolio, risk_params, strength)),
                recommendations=tuple(self.recommendations(assessment, regime)),
                adjustments=tuple(self.adjustments(assessment, portfolio, risk_params)),
                emergency_actions=tuple(
                    self.emergency_actions(snapshot, portfolio, risk_params, strength, previous_strength)
                ),
            )
        except (ArithmeticError, AttributeError, KeyError, TypeError, ValueError) as e:
            logger.warning(f"Risk assessment failed, returning low-risk default: {e}")
            record_error(self.error_log if error_log is None else error_log, "risk", e)
            return RiskManagementOutput.empty()

        level = assessment.overall_risk_level
        log = logger.warning if level in (RiskLevel.HIGH, RiskLevel.CRITICAL) else logger.info
        log(
            f"Portfolio risk {level.value}: drawdown={assessment.drawdown_level:.1%} "
            f"heat={assessment.portfolio_heat:.1%} alerts={len(output.alerts)}"
        )
        for action in output.triggered_emergencies:
            logger.warning(f"Emergency trigger hit: {action.trigger} -> {action.action}")
        return output

    def portfolio_heat(self, portfolio: PortfolioMetrics, account_size: float) -> float:
        """Dollar risk of open positions at a 2x ATR stop, over account size."""
        if portfolio.positions:
            risk = sum(p.size * p.atr * self.config.stop_atr_mult for p in portfolio.positions)
            return risk / account_size
        return portfolio.total_exposure * EXPOSURE_HEAT_FACTOR

    def assess_risk(
        self,
        snapshot: MarketSnapshot,
        portfolio: PortfolioMetrics,
        risk_params: RiskParameters,
        strength: float,
    ) -> RiskAssessment:
        drawdown = portfolio.drawdown
        max_dd = risk_params.max_drawdown
        concentration = portfolio.max_sector_weight
        vix = snapshot.vix.value

        if drawdown >= max_dd * 0.9:
            level = RiskLevel.CRITICAL
        elif drawdown >= max_dd * 0.7 or vix > 30:
            level = RiskLevel.HIGH
        elif drawdown >= max_dd * 0.5 or vix > 25 or concentration > risk_params.max_sector_concentration:
            level = RiskLevel.MEDIUM
        else:
            level = RiskLevel.LOW

        return RiskAssessment(
            overall_risk_level=level,
            portfolio_heat=self.portfolio_heat(portfolio, risk_params.account_size),
            drawdown_level=drawdown,
            concentration_risk=concentration,
            volatility_risk=min(1.0, max(0.0, (vix - 15) / 20)),
            regime_risk=max(0.0, (100 - strength) / 100),
            time_to_max_drawdown=self.time_to_max_drawdown(drawdown, max_dd),
        )

    @staticmethod
    def time_to_max_drawdown(drawdown: float, max_drawdown: float) -> str:
        """Days left at the average daily drawdown rate of the last month."""
        rate = drawdown / DRAWDOWN_WINDOW_DAYS if drawdown > 0 else 0.0
        days = (max_drawdown - drawdown) / rate if rate > 0 else math.inf
        if days < 7:
            return "Less than 1 week"
        if days < 30:
            return f"{round(days)} days"
        if days < 365:
            return f"{round(days / 30)} months"
        return "Not applicable"

    def alerts(
        self,
        snapshot: MarketSnapshot,
        portfolio: PortfolioMetrics,
        risk_params: RiskParameters,
        strength: float,
    ) -> List[RiskAlert]:
        """Alerts for every threshold breach, highest priority first."""
        alerts = []
        drawdown = portfolio.drawdown
        max_dd = risk_params.max_drawdown

        if drawdown >= max_dd:
            alerts.append(RiskAlert(
                AlertType.EMERGENCY, AlertCategory.DRAWDOWN,
                f"Portfolio drawdown ({drawdown * 100:.1f}%) has reached maximum limit ({max_dd * 100:.1f}%)",
                "Move to 100% cash immediately", 10, "immediate",
            ))
        elif drawdown >= max_dd * 0.7:
            alerts.append(RiskAlert(
                AlertType.CRITICAL, AlertCategory.DRAWDOWN,
                f"Portfolio drawdown ({drawdown * 100:.1f}%) approaching maximum limit",
                "Reduce position sizes by 50%", 9, "immediate",
            ))

        vix = snapshot.vix.value
        if vix > risk_params.vix_threshold:
            alerts.append(RiskAlert(
                AlertType.WARNING, AlertCategory.VOLATILITY,
                f"VIX ({vix:.1f}) above threshold ({risk_params.vix_threshold:g})",
                "Reduce all position sizes by 50%", 7, "today",
            ))

        concentration = portfolio.max_sector_weight
        if concentration > risk_params.max_sector_concentration:
            alerts.append(RiskAlert(
                AlertType.WARNING, AlertCategory.CONCENTRATION,
                f"Sector concentration ({concentration * 100:.1f}%) exceeds limit "
                f"({risk_params.max_sector_concentration * 100:.1f}%)",
                "Diversify sector exposure", 6, "this_week",
            ))

        if strength < self.config.weak_regime_strength:
            alerts.append(RiskAlert(
                AlertType.WARNING, AlertCategory.REGIME,
                f"Weak regime strength ({strength:.0f}) suggests potential regime change",
                "Reduce position sizes and increase hedging", 5, "today",
            ))

        if portfolio.total_exposure > self.config.max_leverage:
            alerts.append(RiskAlert(
                AlertType.CRITICAL, AlertCategory.POSITION,
                f"Total exposure ({portfolio.total_exposure * 100:.0f}%) exceeds "
                f"{self.config.max_leverage * 100:.0f}% limit",
                "Reduce leverage immediately", 8, "immediate",
            ))

        alerts.sort(key=lambda a: a.priority, reverse=True)
        return alerts

    @staticmethod
    def recommendations(assessment: RiskAssessment, regime: Regime) -> List[RiskRecommendation]:
        recommendations = []
        level = assessment.overall_risk_level

        if level in (RiskLevel.HIGH, RiskLevel.CRITICAL):
            recommendations.append(RiskRecommendation(
                "position_sizing",
                "Reduce all new position sizes by 50% until risk levels normalize",
                "high", "high",
                (
                    "Apply 0.5x multiplier to all position size calculations",
                    "Review existing positions for size reduction opportunities",
                    "Avoid new positions above 5% of portfolio",
                ),
            ))

        if assessment.drawdown_level > 0.05:
            recommendations.append(RiskRecommendation(
                "exposure_reduction",
                "Reduce overall portfolio exposure to limit further drawdown",
                "high", "medium",
                (
                    "Reduce long exposure by 25%",
                    "Tighten stop losses on existing positions",
                    "Avoid adding new positions until drawdown recovers",
                ),
            ))

        if assessment.volatility_risk > 0.6 or regime == Regime.BEAR:
            recommendations.append(RiskRecommendation(
                "hedging",
                "Increase portfolio hedging to protect against downside risk",
                "medium", "medium",
                (
                    "Add inverse ETF positions (SDS, SQQQ)",
                    "Increase defensive sector allocation",
                    "Consider VIX calls for volatility protection",
                ),
            ))

        if level == RiskLevel.CRITICAL:
            recommendations.append(RiskRecommendation(
                "cash_raise",
                "Raise cash levels to preserve capital and provide flexibility",
                "high", "high",
                (
                    "Target 20-30% cash allocation",
                    "Exit weakest positions first",
                    "Maintain only highest conviction trades",
                ),
            ))

        if assessment.regime_risk > 0.6:
            recommendations.append(RiskRecommendation(
                "stop_loss",
                "Tighten stop losses due to increased regime change risk",
                "medium", "medium",
                (
                    "Reduce stop loss distance from 2x ATR to 1.5x ATR",
                    "Implement trailing stops on profitable positions",
                    "Use time-based stops for positions not moving favorably",
                ),
            ))

        return recommendations

    @staticmethod
    def adjustments(
        assessment: RiskAssessment,
        portfolio: PortfolioMetrics,
        risk_params: RiskParameters,
    ) -> List[PortfolioAdjustment]:
        adjustments = []
        positions = portfolio.positions
        drawdown = assessment.drawdown_level
        max_dd = risk_params.max_drawdown

        if drawdown >= max_dd * 0.7:
            adjustments.append(PortfolioAdjustment(
                AdjustmentType.REDUCE_EXPOSURE, -50.0,
                tuple(p.symbol for p in positions),
                "Drawdown approaching maximum limit requires immediate exposure reduction",
                "immediate",
            ))
        elif drawdown >= max_dd * 0.5:
            adjustments.append(PortfolioAdjustment(
                AdjustmentType.REDUCE_EXPOSURE, -25.0,
                tuple(p.symbol for p in positions if p.confidence < 0.7),
                "Moderate drawdown requires selective position reduction",
                "end_of_day",
            ))

        if assessment.volatility_risk > 0.7:
            adjustments.append(PortfolioAdjustment(
                AdjustmentType.INCREASE_HEDGING, 25.0, HEDGE_INSTRUMENTS,
                "High volatility environment requires increased hedging",
                "end_of_day",
            ))

        if assessment.regime_risk > 0.6:
            adjustments.append(PortfolioAdjustment(
                AdjustmentType.TIGHTEN_STOPS, -25.0,
                tuple(p.symbol for p in positions),
                "High regime change risk requires tighter risk management",
                "end_of_day",
            ))

        if assessment.overall_risk_level == RiskLevel.CRITICAL:
            adjustments.append(PortfolioAdjustment(
                AdjustmentType.RAISE_CASH, 30.0,
                tuple(p.symbol for p in positions if p.confidence < 0.6),
                "Critical risk level requires significant cash raise",
                "immediate",
            ))

        return adjustments

    @staticmethod
    def emergency_actions(
        snapshot: MarketSnapshot,
        portfolio: PortfolioMetrics,
        risk_params: RiskParameters,
        strength: float,
        previous_strength: Optional[float] = None,
    ) -> List[EmergencyAction]:
        """The fixed emergency catalogue, each entry flagged if its trigger holds now."""
        account = risk_params.account_size
        largest_position = max((p.market_value / account for p in portfolio.positions), default=0.0)
        regime_breakdown = (
            strength < REGIME_BREAKDOWN_STRENGTH
            and previous_strength is not None
            and previous_strength < REGIME_BREAKDOWN_STRENGTH
        )
        return [
            EmergencyAction(
                f"Portfolio drawdown reaches {risk_params.max_drawdown * 100:.1f}%",
                "Liquidate all positions and move to 100% cash",
                "immediate", True,
                triggered=portfolio.drawdown >= risk_params.max_drawdown,
            ),
            EmergencyAction(
                "VIX exceeds 40 or daily portfolio loss exceeds 5%",
                "Reduce all positions by 75% and increase hedging to 50%",
                "immediate", True,
                triggered=snapshot.vix.value > EXTREME_VIX or portfolio.daily_pnl_pct < -EXTREME_DAILY_LOSS,
            ),
            EmergencyAction(
                "Regime strength falls below 20 for 2 consecutive days",
                "Exit all directional positions and move to defensive allocation",
                "urgent", False,
                triggered=regime_breakdown,
            ),
            EmergencyAction(
                "Single position exceeds 15% of portfolio",
                "Reduce position to maximum 10% allocation",
                "high", True,
                triggered=largest_position > SINGLE_POSITION_LIMIT,
            ),
            EmergencyAction(
                "Total exposure exceeds 200% of account value",
                "Reduce positions to bring exposure below 150%",
                "urgent", True,
                triggered=portfolio.total_exposure > EMERGENCY_LEVERAGE,
            ),
        ]

    def dynamic_stop_loss(
        self,
        entry_price: float,
        current_price: float,
        atr: float,
        vix: float,
        regime: Regime,
        regime_strength: float,
    ) -> DynamicStop:
        """Stop for a long position: the higher of the ATR stop and a 1x ATR trailing stop.

        The 2x ATR multiplier widens by 1.2 above VIX 25, tightens by 0.8
        below VIX 15, and tightens by a further 0.8 when regime strength
        is under 50.
        """
        reasoning = []
        multiplier = self.config.stop_atr_mult
        if vix > 25:
            multiplier *= 1.2
            reasoning.append("Wider stops due to high VIX")
        elif vix < 15:
            multiplier *= 0.8
            reasoning.append("Tighter stops due to low VIX")

        if regime_strength < 50:
            multiplier *= 0.8
            reasoning.append("Tighter stops due to weak regime")

        fixed_stop = entry_price - atr * multiplier
        trailing_stop = current_price - atr
        if regime == Regime.NEUTRAL:
            time_stop = self.config.neutral_time_stop_days
        else:
            time_stop = self.config.time_stop_days

        return DynamicStop(
            stop_loss=max(fixed_stop, trailing_stop),
            fixed_stop=fixed_stop,
            trailing_stop=trailing_stop,
            time_stop_days=time_stop,
            multiplier=multiplier,
            reasoning=tuple(reasoning),
        )

    def monitor_portfolio_heat(self, positions: Sequence[Position], account_size: float) -> HeatReport:
        """Heat per position from the distance between price and stop.

        Positions without a stop are measured against a 2x ATR stop.
        """
        cfg = self.config
        heats = []
        for position in positions:
            if position.stop_loss > 0:
                risk_per_share = abs(position.current_price - position.stop_loss)
            else:
                risk_per_share = position.atr * cfg.stop_atr_mult
            heat = position.size * risk_per_share / account_size
            heats.append(PositionHeat(position.symbol, heat, heat * 100))

        current = sum(h.heat for h in heats)
        recommendations = []
        if current > cfg.max_portfolio_heat:
            recommendations.append(
                f"Portfolio heat ({current * 100:.1f}%) exceeds maximum ({cfg.max_portfolio_heat * 100:.1f}%)"
            )
            recommendations.append("Reduce position sizes or tighten stop losses")
        for h in heats:
            if h.heat > cfg.position_heat_warning:
                recommendations.append(f"{h.symbol} position heat ({h.percentage:.1f}%) too high")

        return HeatReport(
            current_heat=current,
            max_heat=cfg.max_portfolio_heat,
            heat_by_position=tuple(heats),
            recommendations=tuple(recommendations),
        )
