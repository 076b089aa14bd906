"""ATR Position Sizer.

Sizes positions from a fixed dollar risk against a 2x ATR stop:
- VIX adjustment: 1 - min(0.5, (VIX - threshold) / 20) above threshold
- Regime adjustment: 1.25 BULL, 0.75 BEAR, 1.0 NEUTRAL
- Portfolio heat: tapers from 1.0 at half the max drawdown to 0.1 at the max
- Clamp: at least the minimum viable dollar size, never above the max
  position fraction (the cap wins when the two conflict)
"""

import logging
from typing import List, Optional, Sequence, Tuple

from ..config import RiskConfig, DEFAULT_RISK_CONFIG
from ..models import (
    CandidateType,
    PortfolioMetrics,
    Position,
    Regime,
    RiskLevel,
    RiskParameters,
    TradingCandidate,
)
from ..indicators.stats import profit_target_price, risk_reward, stop_loss_price
from .models import (
    OptimalPositionSize,
    PortfolioRiskMetrics,
    PositionSizeCalculation,
    RegimePositioning,
    StopsAndTargets,
)

logger = logging.getLogger(__name__)

# long, hedge, size factor
REGIME_ALLOCATIONS = {
    Regime.BULL: (0.75, 0.05, 1.25),
    Regime.BEAR: (0.25, 0.25, 0.75),
    Regime.NEUTRAL: (0.50, 0.15, 1.0),
}

LOW_POSITION_RISK = 0.005
HIGH_POSITION_RISK = 0.015


class PositionSizer:
    """Calculates ATR-based position sizes with market adjustments."""

    def __init__(self, config: Optional[RiskConfig] = None):
        """Initialize the position sizer.

        Args:
            config: Risk configuration. Uses defaults if None.
        """
        self.config = config or DEFAULT_RISK_CONFIG

    def vix_adjustment(self, vix: float, threshold: float) -> float:
        if vix <= threshold:
            return 1.0
        reduction = min(self.config.max_vix_cut, (vix - threshold) / self.config.vix_taper_width)
        return 1.0 - reduction

    def regime_adjustment(self, regime: Regime) -> float:
        return self.config.regime_multipliers.get(regime.value, 1.0)

    def heat_adjustment(self, drawdown: float, max_drawdown: float) -> float:
        """Linear taper from 1.0 to the floor as drawdown nears its limit."""
        cfg = self.config
        ratio = drawdown / max_drawdown
        if ratio <= cfg.heat_taper_start:
            return 1.0
        if ratio >= 1.0:
            return cfg.heat_floor
        span = 1.0 - cfg.heat_taper_start
        return 1.0 - (ratio - cfg.heat_taper_start) / span * (1.0 - cfg.heat_floor)

    def size(
        self,
        candidate: TradingCandidate,
        risk_params: RiskParameters,
        vix: float,
        regime: Regime,
        portfolio: Optional[PortfolioMetrics] = None,
    ) -> PositionSizeCalculation:
        """Size a trading candidate at its entry and ATR."""
        return self.calculate(candidate.symbol, candidate.entry, candidate.atr, risk_params, vix, regime, portfolio)

    def calculate(
        self,
        symbol: str,
        entry_price: float,
        atr: float,
        risk_params: RiskParameters,
        vix: float,
        regime: Regime,
        portfolio: Optional[PortfolioMetrics] = None,
    ) -> PositionSizeCalculation:
        """Calculate position size in shares.

        Args:
            symbol: Instrument being sized
            entry_price: Planned entry price
            atr: 14-period ATR of the instrument
            risk_params: Session risk limits
            vix: Current VIX level
            regime: Current market regime
            portfolio: Portfolio state for the drawdown taper

        Returns:
            PositionSizeCalculation with every adjustment recorded

        Raises:
            ValueError: If entry_price or atr is not positive
        """
        if entry_price <= 0:
            raise ValueError(f"entry_price must be positive, got {entry_price}")
        if atr <= 0:
            raise ValueError(f"atr must be positive, got {atr}")

        reasoning = []
        risk_amount = risk_params.account_size * risk_params.risk_per_trade
        atr_risk = atr * self.config.stop_atr_mult
        base_size = risk_amount / atr_risk
        reasoning.append(
            f"Base calculation: ${risk_amount:.0f} risk / ${atr_risk:.2f} ATR stop = {base_size:.1f} shares"
        )

        vix_adj = self.vix_adjustment(vix, risk_params.vix_threshold)
        reasoning.append(f"VIX adjustment: {vix_adj * 100:.0f}% (VIX: {vix:.1f})")

        regime_adj = self.regime_adjustment(regime)
        reasoning.append(f"Regime adjustment: {regime_adj * 100:.0f}% ({regime.value} regime)")

        heat_adj = 1.0
        if portfolio is not None:
            heat_adj = self.heat_adjustment(portfolio.drawdown, risk_params.max_drawdown)
            reasoning.append(
                f"Portfolio heat adjustment: {heat_adj * 100:.0f}% "
                f"(current drawdown: {portfolio.drawdown * 100:.1f}%)"
            )

        volatility_adj = vix_adj * regime_adj * heat_adj
        adjusted = base_size * volatility_adj

        max_shares = risk_params.account_size * risk_params.max_position_size / entry_price
        min_shares = risk_params.min_position_dollars / entry_price

        if adjusted < min_shares:
            adjusted = min_shares
            reasoning.append(
                f"Position increased to minimum viable size (${risk_params.min_position_dollars:.0f})"
            )
        if adjusted > max_shares:
            adjusted = max_shares
            reasoning.append(
                f"Position capped at maximum {risk_params.max_position_size * 100:.0f}% of portfolio"
            )

        logger.debug(f"{symbol}: base={base_size:.2f} adj={volatility_adj:.3f} final={adjusted:.2f} shares")
        return PositionSizeCalculation(
            symbol=symbol,
            base_size=base_size,
            adjusted_size=adjusted,
            risk_amount=risk_amount,
            max_position_size=max_shares,
            min_position_size=min_shares,
            volatility_adjustment=volatility_adj,
            vix_adjustment=vix_adj,
            regime_adjustment=regime_adj,
            heat_adjustment=heat_adj,
            reasoning=tuple(reasoning),
        )

    def size_all(
        self,
        candidates: Sequence[TradingCandidate],
        risk_params: RiskParameters,
        vix: float,
        regime: Regime,
        portfolio: Optional[PortfolioMetrics] = None,
    ) -> List[Tuple[TradingCandidate, PositionSizeCalculation, StopsAndTargets]]:
        """Size each candidate and attach its stop and target."""
        sized = []
        for candidate in candidates:
            calculation = self.size(candidate, risk_params, vix, regime, portfolio)
            direction = "long" if candidate.candidate_type == CandidateType.LONG else "short"
            sized.append((candidate, calculation, self.stops_and_targets(candidate.entry, candidate.atr, direction)))
        return sized

    @staticmethod
    def regime_positioning(regime: Regime) -> RegimePositioning:
        long_allocation, hedge_allocation, factor = REGIME_ALLOCATIONS.get(
            regime, REGIME_ALLOCATIONS[Regime.NEUTRAL]
        )
        return RegimePositioning(
            long_allocation=long_allocation,
            hedge_allocation=hedge_allocation,
            cash_allocation=1.0 - long_allocation - hedge_allocation,
            position_size_factor=factor,
            reasoning=(
                f"{regime.value} regime: {long_allocation * 100:.0f}% long, "
                f"{hedge_allocation * 100:.0f}% hedge",
            ),
        )

    def stops_and_targets(self, entry_price: float, atr: float, direction: str = "long") -> StopsAndTargets:
        """Stop at 2x ATR and target at 1.5x ATR on the side of ``direction``."""
        long = direction == "long"
        stop = stop_loss_price(entry_price, atr, long, self.config.stop_atr_mult)
        target = profit_target_price(entry_price, atr, long, self.config.target_atr_mult)
        return StopsAndTargets(
            stop_loss=stop,
            profit_target=target,
            risk_reward=risk_reward(entry_price, stop, target),
            dollar_risk=abs(entry_price - stop),
            dollar_target=abs(target - entry_price),
        )

    def portfolio_risk_metrics(self, positions: Sequence[Position], account_size: float) -> PortfolioRiskMetrics:
        """Exposure, heat and concentration of a set of open positions."""
        if not positions:
            return PortfolioRiskMetrics()

        values = [p.market_value for p in positions]
        total_value = sum(values)
        total_risk = sum(p.size * p.atr * self.config.stop_atr_mult for p in positions)

        weighted_atr = 0.0
        if total_value > 0:
            weighted_atr = sum(
                (p.atr / p.current_price) * (v / total_value)
                for p, v in zip(positions, values)
                if p.current_price > 0
            )

        return PortfolioRiskMetrics(
            total_exposure=total_value / account_size,
            portfolio_heat=total_risk / account_size,
            concentration_risk=max(values) / total_value if total_value > 0 else 0.0,
            average_atr=sum(p.atr for p in positions) / len(positions),
            estimated_portfolio_atr=weighted_atr,
        )

    def optimal_size(
        self,
        candidate: TradingCandidate,
        risk_params: RiskParameters,
        vix: float,
        regime: Regime,
        portfolio: PortfolioMetrics,
    ) -> OptimalPositionSize:
        """Position size further limited by the drawdown budget left.

        Risk per trade is capped at half the remaining drawdown room.
        """
        calculation = self.size(candidate, risk_params, vix, regime, portfolio)
        available = max(0.0, risk_params.max_drawdown - portfolio.drawdown)
        max_risk = min(risk_params.risk_per_trade, available * 0.5)
        max_safe = risk_params.account_size * max_risk / (candidate.atr * self.config.stop_atr_mult)
        recommended = min(calculation.adjusted_size, max_safe)

        position_risk = recommended * candidate.atr * self.config.stop_atr_mult / risk_params.account_size
        if position_risk < LOW_POSITION_RISK:
            level = RiskLevel.LOW
        elif position_risk > HIGH_POSITION_RISK:
            level = RiskLevel.HIGH
        else:
            level = RiskLevel.MEDIUM

        return OptimalPositionSize(
            recommended_size=recommended,
            max_safe_size=max_safe,
            risk_level=level,
            reasoning=calculation.reasoning + (
                f"Available portfolio risk: {available * 100:.1f}%",
                f"Position risk: {position_risk * 100:.2f}% of account",
                f"Risk level: {level.value}",
            ),
        )
