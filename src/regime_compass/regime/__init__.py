"""Regime module - five-factor classification and strength scoring."""

from .models import (
    # Enums
    ConfirmationLevel,
    RecommendedAction,
    # Data classes
    EarlyWarnings,
    FactorStrengths,
    RegimeStrengthAnalysis,
    StrengthSummary,
    FactorDetail,
    DetailedAnalysis,
    RegimeChangeOutlook,
    BreadthMomentum,
    BreadthPattern,
    BreadthSignal,
)
from .factors import evaluate_factors, determine_regime, detect_early_warnings
from .strength import RegimeStrengthScorer
from .classifier import RegimeClassifier
from .breadth import (
    breadth_from_sectors,
    comprehensive_breadth,
    composite_breadth_strength,
    analyze_breadth_momentum,
    identify_breadth_pattern,
    breadth_signals,
)

__all__ = [
    # Enums
    "ConfirmationLevel",
    "RecommendedAction",
    # Data classes
    "EarlyWarnings",
    "FactorStrengths",
    "RegimeStrengthAnalysis",
    "StrengthSummary",
    "FactorDetail",
    "DetailedAnalysis",
    "RegimeChangeOutlook",
    "BreadthMomentum",
    "BreadthPattern",
    "BreadthSignal",
    # Functions
    "evaluate_factors",
    "determine_regime",
    "detect_early_warnings",
    "breadth_from_sectors",
    "comprehensive_breadth",
    "composite_breadth_strength",
    "analyze_breadth_momentum",
    "identify_breadth_pattern",
    "breadth_signals",
    # Components
    "RegimeStrengthScorer",
    "RegimeClassifier",
]
