"""Indicators module - statistical primitives and indicator frames."""

from .stats import (
    MACDResult,
    PivotLevels,
    MomentumDivergence,
    NO_DIVERGENCE,
    trend_score9,
    calc_ema,
    calc_ema_series,
    calc_atr,
    calc_rsi_series,
    calc_macd,
    calc_pivot_levels,
    calc_vwap,
    calc_correlation,
    normalize,
    breadth_percentage,
    check_ema_alignment,
    stop_loss_price,
    profit_target_price,
    risk_reward,
    detect_momentum_divergence,
)
from .calculator import IndicatorCalculator

__all__ = [
    # Data classes
    "MACDResult",
    "PivotLevels",
    "MomentumDivergence",
    "NO_DIVERGENCE",
    # Functions
    "trend_score9",
    "calc_ema",
    "calc_ema_series",
    "calc_atr",
    "calc_rsi_series",
    "calc_macd",
    "calc_pivot_levels",
    "calc_vwap",
    "calc_correlation",
    "normalize",
    "breadth_percentage",
    "check_ema_alignment",
    "stop_loss_price",
    "profit_target_price",
    "risk_reward",
    "detect_momentum_divergence",
    # Components
    "IndicatorCalculator",
]
