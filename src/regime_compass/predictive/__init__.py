"""Predictive module - divergence, volume and regime forecasts."""

from .models import (
    # Enums
    DivergenceType,
    SignalTimeframe,
    ThrustType,
    PredictiveAction,
    PositionSizing,
    # Data classes
    IndicatorDivergence,
    HiddenDivergence,
    DivergenceResult,
    TradeSignal,
    RegimeImplication,
    VolumeAnalysis,
    VolumeSignals,
    VolumePattern,
    ProjectedLevels,
    RegimeProbabilities,
    RegimeProbability,
    PredictiveSignals,
    TradingImplications,
    RegimeForecast,
    PredictiveAnalysis,
)
from .divergence import DivergenceDetector, regular_divergence, hidden_divergence
from .volume import VolumeAnalyzer, accumulation_distribution, volume_trend
from .engine import PredictiveSignalEngine, renormalize

__all__ = [
    # Enums
    "DivergenceType",
    "SignalTimeframe",
    "ThrustType",
    "PredictiveAction",
    "PositionSizing",
    # Data classes
    "IndicatorDivergence",
    "HiddenDivergence",
    "DivergenceResult",
    "TradeSignal",
    "RegimeImplication",
    "VolumeAnalysis",
    "VolumeSignals",
    "VolumePattern",
    "ProjectedLevels",
    "RegimeProbabilities",
    "RegimeProbability",
    "PredictiveSignals",
    "TradingImplications",
    "RegimeForecast",
    "PredictiveAnalysis",
    # Functions
    "regular_divergence",
    "hidden_divergence",
    "accumulation_distribution",
    "volume_trend",
    "renormalize",
    # Components
    "DivergenceDetector",
    "VolumeAnalyzer",
    "PredictiveSignalEngine",
]
