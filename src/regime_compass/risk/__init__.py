"""Risk module - position sizing and portfolio risk controls."""

from .models import (
    # Enums
    AlertType,
    AlertCategory,
    AdjustmentType,
    # Data classes
    PositionSizeCalculation,
    RegimePositioning,
    StopsAndTargets,
    PortfolioRiskMetrics,
    OptimalPositionSize,
    RiskAssessment,
    RiskAlert,
    RiskRecommendation,
    PortfolioAdjustment,
    EmergencyAction,
    RiskManagementOutput,
    DynamicStop,
    PositionHeat,
    HeatReport,
)
from .position_sizer import PositionSizer
from .manager import RiskManager

__all__ = [
    # Enums
    "AlertType",
    "AlertCategory",
    "AdjustmentType",
    # Data classes
    "PositionSizeCalculation",
    "RegimePositioning",
    "StopsAndTargets",
    "PortfolioRiskMetrics",
    "OptimalPositionSize",
    "RiskAssessment",
    "RiskAlert",
    "RiskRecommendation",
    "PortfolioAdjustment",
    "EmergencyAction",
    "RiskManagementOutput",
    "DynamicStop",
    "PositionHeat",
    "HeatReport",
    # Components
    "PositionSizer",
    "RiskManager",
]
