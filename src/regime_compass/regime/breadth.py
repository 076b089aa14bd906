"""Breadth analysis helpers.

Derives breadth from sector participation and reads momentum, patterns and
action signals from breadth readings.
"""

from typing import Mapping, Optional, Sequence

from ..models import BreadthData, Regime, SectorData
from .models import BreadthMomentum, BreadthPattern, BreadthSignal

STOCKS_PER_SECTOR = 45
NEW_EXTREME_MOVE = 2.0       # sector change% that marks new highs/lows
NEW_EXTREME_SHARE = 0.1      # share of a sector's names assumed at new extremes


def breadth_from_sectors(sectors: Mapping[str, SectorData]) -> float:
    """Share of sectors with a positive session change, 0.5 when empty."""
    if not sectors:
        return 0.5
    advancing = sum(1 for s in sectors.values() if s.change_percent > 0)
    return advancing / len(sectors)


def comprehensive_breadth(sectors: Mapping[str, SectorData]) -> BreadthData:
    """Estimate issue-level breadth from sector moves.

    Each sector stands in for roughly 45 index names. Sectors moving more
    than 2% contribute 10% of their names to new highs or new lows.
    """
    if not sectors:
        return BreadthData(breadth_pct=0.5)

    values = list(sectors.values())
    pct = breadth_from_sectors(sectors)
    total = len(values) * STOCKS_PER_SECTOR
    unchanged = sum(1 for s in values if s.change_percent == 0) * STOCKS_PER_SECTOR
    advancing = round(pct * total)
    declining = total - advancing - unchanged

    strong = sum(1 for s in values if s.change_percent > NEW_EXTREME_MOVE)
    weak = sum(1 for s in values if s.change_percent < -NEW_EXTREME_MOVE)

    return BreadthData(
        breadth_pct=pct,
        advancing=advancing,
        declining=declining,
        unchanged=unchanged,
        new_highs=round(strong * STOCKS_PER_SECTOR * NEW_EXTREME_SHARE),
        new_lows=round(weak * STOCKS_PER_SECTOR * NEW_EXTREME_SHARE),
    )


def composite_breadth_strength(breadth: BreadthData) -> float:
    """Composite breadth strength on a 0-1 scale."""
    strength = breadth.breadth_pct * 40
    strength += min(3.0, breadth.advance_decline_ratio) / 3 * 25

    highs_lows = breadth.new_highs + breadth.new_lows
    if highs_lows > 0:
        strength += breadth.new_highs / highs_lows * 20
    else:
        strength += 10

    strength += breadth.participation_rate * 15
    return min(1.0, strength / 100)


def analyze_breadth_momentum(
    current: BreadthData,
    history: Optional[Sequence[BreadthData]] = None,
) -> BreadthMomentum:
    """Compare today's breadth with prior readings (oldest first)."""
    momentum = "stable"
    trend = "sideways"
    divergence = False

    if history and len(history) >= 2:
        previous = history[-1]
        two_back = history[-2]
        current_change = abs(current.breadth_pct - previous.breadth_pct)
        previous_change = abs(previous.breadth_pct - two_back.breadth_pct)
        if current_change > previous_change:
            momentum = "accelerating"
        elif current_change < previous_change:
            momentum = "decelerating"

        if len(history) >= 5:
            five_day_avg = sum(b.breadth_pct for b in history[-5:]) / 5
            if current.breadth_pct > five_day_avg + 0.05:
                trend = "improving"
            elif current.breadth_pct < five_day_avg - 0.05:
                trend = "deteriorating"

        # Positive breadth carried by a weak A/D ratio
        divergence = current.advance_decline_ratio < 0.8 and current.breadth_pct > 0.6

    return BreadthMomentum(
        momentum=momentum,
        trend=trend,
        strength=composite_breadth_strength(current),
        divergence=divergence,
    )


def identify_breadth_pattern(
    current: BreadthData,
    history: Optional[Sequence[BreadthData]] = None,
) -> BreadthPattern:
    """Recognize thrust, exhaustion, accumulation, distribution or divergence."""
    pattern = BreadthPattern("neutral", "neutral", 0.5, "No clear breadth pattern detected")

    if current.breadth_pct >= 0.9:
        pattern = BreadthPattern("thrust", "bullish", 0.8, "Breadth thrust detected - strong bullish signal")
    elif current.breadth_pct <= 0.1:
        pattern = BreadthPattern("exhaustion", "bullish", 0.7, "Breadth exhaustion - potential oversold bounce")

    if history and len(history) >= 3:
        recent = [b.breadth_pct for b in history[-3:]]
        avg_recent = sum(recent) / 3
        rising = all(b >= a for a, b in zip(recent, recent[1:]))
        falling = all(b <= a for a, b in zip(recent, recent[1:]))

        if current.breadth_pct > avg_recent + 0.1 and rising:
            pattern = BreadthPattern(
                "accumulation", "bullish", 0.65, "Accumulation pattern - breadth steadily improving"
            )
        elif current.breadth_pct < avg_recent - 0.1 and falling:
            pattern = BreadthPattern(
                "distribution", "bearish", 0.65, "Distribution pattern - breadth steadily deteriorating"
            )
        elif len(history) >= 5 and analyze_breadth_momentum(current, history).divergence:
            pattern = BreadthPattern(
                "divergence", "bearish", 0.6, "Breadth divergence - participation weakening"
            )

    return pattern


def breadth_signals(breadth: BreadthData) -> BreadthSignal:
    """Action signal from breadth extremes and the advance/decline ratio."""
    reasoning = []
    pct = breadth.breadth_pct

    if pct >= 0.62:
        support = Regime.BULL
        reasoning.append(f"Strong breadth at {pct:.1%} supports BULL regime")
    elif pct <= 0.38:
        support = Regime.BEAR
        reasoning.append(f"Weak breadth at {pct:.1%} supports BEAR regime")
    else:
        support = None
        reasoning.append(f"Neutral breadth at {pct:.1%} - mixed signals")

    action, urgency = "hold", "low"
    if pct >= 0.9:
        action, urgency = "buy", "high"
        reasoning.append("Breadth thrust above 90% - strong buy signal")
    elif pct >= 0.75:
        action, urgency = "buy", "medium"
        reasoning.append("Strong breadth above 75% - favorable for longs")
    elif pct <= 0.1:
        action, urgency = "buy", "medium"
        reasoning.append("Breadth exhaustion below 10% - oversold bounce candidate")
    elif pct <= 0.25:
        action, urgency = "reduce", "high"
        reasoning.append("Very weak breadth below 25% - reduce long exposure")
    elif pct <= 0.4:
        action, urgency = "reduce", "medium"
        reasoning.append("Weak breadth below 40% - caution warranted")

    ad_ratio = breadth.advance_decline_ratio
    if ad_ratio > 2:
        reasoning.append(f"Strong A/D ratio of {ad_ratio:.2f} confirms breadth")
    elif ad_ratio < 0.5:
        reasoning.append(f"Weak A/D ratio of {ad_ratio:.2f} shows internal weakness")
        # One step down the action ladder
        action = {"buy": "hold", "hold": "reduce"}.get(action, action)

    if breadth.new_highs > breadth.new_lows * 2:
        reasoning.append(f"New highs ({breadth.new_highs}) dominating new lows ({breadth.new_lows})")
    elif breadth.new_lows > breadth.new_highs * 2:
        reasoning.append(f"New lows ({breadth.new_lows}) dominating new highs ({breadth.new_highs})")
        if urgency == "low":
            urgency = "medium"

    return BreadthSignal(
        regime_support=support,
        action=action,
        urgency=urgency,
        reasoning=tuple(reasoning),
    )
