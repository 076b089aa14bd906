"""Sector allocation weights from trend scores and rotation phase."""

import logging
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from ..config import SectorConfig, DEFAULT_SECTOR_CONFIG
from ..models import SectorData
from .models import (
    AllocationRecommendation,
    CyclePhase,
    PortfolioAllocation,
    Priority,
    RotationPhase,
    RotationSignal,
)

logger = logging.getLogger(__name__)

# core, satellite, tactical, cash
RISK_TOLERANCE_SLEEVES: Dict[str, Tuple[float, float, float, float]] = {
    "conservative": (0.7, 0.2, 0.05, 0.05),
    "moderate": (0.6, 0.25, 0.1, 0.05),
    "aggressive": (0.5, 0.3, 0.15, 0.05),
}

PRIORITY_SCORE = {Priority.HIGH: 3, Priority.MEDIUM: 2, Priority.LOW: 1}

EXPANSION_PHASES = (CyclePhase.EARLY_CYCLE, CyclePhase.MID_CYCLE)


def score_weight(score: int, base_weight: float) -> Tuple[float, str, float, Priority]:
    """Weight, reasoning, confidence and priority from the trend score alone."""
    if score >= 7:
        return base_weight * 2.0, f"Very strong trend score ({score}) warrants overweight", 0.8, Priority.HIGH
    if score >= 5:
        return base_weight * 1.5, f"Strong trend score ({score}) suggests overweight", 0.7, Priority.HIGH
    if score >= 3:
        return base_weight * 1.2, f"Positive trend score ({score}) supports modest overweight", 0.6, Priority.MEDIUM
    if score <= -5:
        return base_weight * 0.3, f"Very weak trend score ({score}) warrants significant underweight", 0.8, Priority.HIGH
    if score <= -3:
        return base_weight * 0.5, f"Weak trend score ({score}) suggests underweight", 0.7, Priority.HIGH
    if score <= 0:
        return base_weight * 0.8, f"Negative trend score ({score}) suggests modest underweight", 0.6, Priority.MEDIUM
    return base_weight, "Neutral allocation based on equal weighting", 0.5, Priority.MEDIUM


def rotation_adjustment(symbol: str, phase: RotationPhase, groups: Mapping[str, Sequence[str]]) -> Tuple[float, str]:
    """Multiplier and reason from the rotation signal and cycle phase."""
    multiplier = 1.0
    reason = ""
    signal, strength = phase.rotation_signal, phase.rotation_strength

    if symbol in groups.get("growth", ()):
        if signal == RotationSignal.INTO_GROWTH:
            multiplier, reason = 1 + strength * 0.3, "Rotation into growth sectors favors this position"
        elif signal == RotationSignal.INTO_VALUE:
            multiplier, reason = 1 - strength * 0.2, "Rotation away from growth sectors reduces allocation"

    if symbol in groups.get("value", ()):
        if signal == RotationSignal.INTO_VALUE:
            multiplier, reason = 1 + strength * 0.3, "Rotation into value sectors favors this position"
        elif signal == RotationSignal.INTO_GROWTH:
            multiplier, reason = 1 - strength * 0.2, "Rotation away from value sectors reduces allocation"

    if symbol in groups.get("defensive", ()):
        if signal == RotationSignal.INTO_DEFENSIVE:
            multiplier, reason = 1 + strength * 0.4, "Flight to quality favors defensive sectors"
        elif phase.phase in EXPANSION_PHASES:
            multiplier, reason = 0.8, "Risk-on environment reduces defensive allocation"

    if symbol in groups.get("cyclical", ()):
        if phase.phase in EXPANSION_PHASES:
            multiplier, reason = 1.2, "Economic expansion favors cyclical sectors"
        elif phase.phase == CyclePhase.RECESSION:
            multiplier, reason = 0.7, "Economic contraction hurts cyclical sectors"

    if symbol == "XLK" and phase.phase in (CyclePhase.EARLY_CYCLE, CyclePhase.RECOVERY):
        multiplier *= 1.1
        reason += " Technology leads in early cycle phases"
    elif symbol == "XLF" and phase.phase == CyclePhase.EARLY_CYCLE:
        multiplier *= 1.2
        reason += " Financials benefit from rising rates in early cycle"
    elif symbol == "XLE" and phase.phase == CyclePhase.LATE_CYCLE:
        multiplier *= 1.3
        reason += " Energy outperforms in late cycle phases"
    elif symbol == "XLU" and signal == RotationSignal.INTO_DEFENSIVE:
        multiplier *= 1.2
        reason += " Utilities provide defensive characteristics"

    return multiplier, reason.strip()


def allocation_weights(
    sectors: Mapping[str, SectorData],
    phase: RotationPhase,
    config: Optional[SectorConfig] = None,
) -> List[AllocationRecommendation]:
    """Recommended percent weight per sector, summing to 100.

    Each sector starts at equal weight, is scaled by its score bucket and
    rotation multiplier, bounded to the configured range, then all weights
    are rescaled to sum to 100.

    Returns:
        Recommendations sorted by recommended weight, largest first
    """
    cfg = config or DEFAULT_SECTOR_CONFIG
    if not sectors:
        return []

    base_weight = 100.0 / len(sectors)
    raw = []
    for symbol, data in sectors.items():
        weight, reasoning, confidence, priority = score_weight(data.trend_score9, base_weight)
        multiplier, reason = rotation_adjustment(symbol, phase, cfg.groups)
        weight *= multiplier
        if multiplier != 1.0:
            reasoning = f"{reasoning}. {reason}"
            confidence = min(0.9, confidence + 0.1)
        weight = max(cfg.min_allocation_pct, min(cfg.max_allocation_pct, weight))
        raw.append((symbol, data.name, weight, reasoning, confidence, priority))

    total = sum(r[2] for r in raw)
    scale = 100.0 / total if total > 0 else 1.0

    recommendations = [
        AllocationRecommendation(
            sector=symbol,
            name=name,
            current_weight=base_weight,
            recommended_weight=weight * scale,
            adjustment=weight * scale - base_weight,
            reasoning=reasoning,
            confidence=confidence,
            priority=priority,
        )
        for symbol, name, weight, reasoning, confidence, priority in raw
    ]
    recommendations.sort(key=lambda r: r.recommended_weight, reverse=True)
    logger.debug(
        f"Allocation leaders: "
        f"{', '.join(f'{r.sector}={r.recommended_weight:.1f}%' for r in recommendations[:3])}"
    )
    return recommendations


def portfolio_allocation(
    recommendations: Sequence[AllocationRecommendation],
    risk_tolerance: str = "moderate",
) -> PortfolioAllocation:
    """Split recommendations into core (top 4), satellite (next 3) and high-priority tactical sleeves."""
    core, satellite, tactical, cash = RISK_TOLERANCE_SLEEVES.get(
        risk_tolerance, RISK_TOLERANCE_SLEEVES["moderate"]
    )
    ranked = sorted(
        recommendations,
        key=lambda r: PRIORITY_SCORE[r.priority] * r.recommended_weight,
        reverse=True,
    )

    def scaled(recs, factor):
        return tuple(
            AllocationRecommendation(
                sector=r.sector,
                name=r.name,
                current_weight=r.current_weight,
                recommended_weight=r.recommended_weight * factor,
                adjustment=r.adjustment,
                reasoning=r.reasoning,
                confidence=r.confidence,
                priority=r.priority,
            )
            for r in recs
        )

    return PortfolioAllocation(
        core_holdings=scaled(ranked[:4], core),
        satellite_holdings=scaled(ranked[4:7], satellite),
        tactical_holdings=scaled([r for r in ranked[7:] if r.priority == Priority.HIGH], tactical),
        cash_recommendation=cash,
    )
