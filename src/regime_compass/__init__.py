"""
Regime Compass - Market Regime Scoring Engine

Classifies the equity market into BULL, BEAR or NEUTRAL, scores the strength
of that regime, and turns it into sector recommendations, risk controls and
ranked trade candidates.
"""

__version__ = "1.0.0"
__author__ = "Regime Compass Team"

from .models import (
    Regime,
    BreadthData,
    IndexData,
    SectorData,
    VIXData,
    GammaData,
    OptionsFlow,
    MarketSnapshot,
    RegimeClassification,
    TradingCandidate,
    RiskParameters,
    Position,
    PortfolioMetrics,
    PriceHistory,
)
from .config import EngineConfig, ConfigManager, ConfigValidationError
from .errors import ErrorLog, InsufficientDataError, RegimeCompassError
from .cache import ResultCache
from .pipeline import PipelineResult, RegimeEngine

__all__ = [
    "Regime",
    "BreadthData",
    "IndexData",
    "SectorData",
    "VIXData",
    "GammaData",
    "OptionsFlow",
    "MarketSnapshot",
    "RegimeClassification",
    "TradingCandidate",
    "RiskParameters",
    "Position",
    "PortfolioMetrics",
    "PriceHistory",
    "EngineConfig",
    "ConfigManager",
    "ConfigValidationError",
    "ErrorLog",
    "InsufficientDataError",
    "RegimeCompassError",
    "ResultCache",
    "PipelineResult",
    "RegimeEngine",
]
