"""Signals module - regime-aware trade candidates."""

from .models import (
    # Enums
    SignalStrength,
    PositionAction,
    # Data classes
    SignalCriteria,
    SignalPositioning,
    SignalQuality,
    TradingSignalOutput,
    HeldPosition,
    PositionSignal,
    LONG_CRITERIA,
)
from .generator import TradingSignalGenerator

__all__ = [
    # Enums
    "SignalStrength",
    "PositionAction",
    # Data classes
    "SignalCriteria",
    "SignalPositioning",
    "SignalQuality",
    "TradingSignalOutput",
    "HeldPosition",
    "PositionSignal",
    "LONG_CRITERIA",
    # Components
    "TradingSignalGenerator",
]
