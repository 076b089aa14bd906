"""Sectors module - scoring, rotation detection and allocation."""

from .models import (
    # Enums
    RotationType,
    RotationSignal,
    CyclePhase,
    Priority,
    # Data classes
    SectorClassification,
    SectorRotation,
    SectorRecommendations,
    SectorBreadthMetrics,
    SectorPerformance,
    RelativeStrengthRanking,
    RelativeStrengthAnalysis,
    RotationPhase,
    AllocationRecommendation,
    PortfolioAllocation,
    SectorAnalysis,
)
from .rotation import SectorRotationAnalyzer, sector_recommendation, relative_strength_rankings
from .allocation import allocation_weights, portfolio_allocation, rotation_adjustment

__all__ = [
    # Enums
    "RotationType",
    "RotationSignal",
    "CyclePhase",
    "Priority",
    # Data classes
    "SectorClassification",
    "SectorRotation",
    "SectorRecommendations",
    "SectorBreadthMetrics",
    "SectorPerformance",
    "RelativeStrengthRanking",
    "RelativeStrengthAnalysis",
    "RotationPhase",
    "AllocationRecommendation",
    "PortfolioAllocation",
    "SectorAnalysis",
    # Functions
    "sector_recommendation",
    "relative_strength_rankings",
    "allocation_weights",
    "portfolio_allocation",
    "rotation_adjustment",
    # Components
    "SectorRotationAnalyzer",
]
