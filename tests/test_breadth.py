"""Tests for breadth analysis helpers."""

import pytest

from regime_compass.models import BreadthData, Regime
from regime_compass.regime import (
    analyze_breadth_momentum,
    breadth_from_sectors,
    breadth_signals,
    composite_breadth_strength,
    comprehensive_breadth,
    identify_breadth_pattern,
)

from conftest import make_sector


def breadth(pct, advancing=500, declining=400, unchanged=100, new_highs=0, new_lows=0):
    return BreadthData(
        breadth_pct=pct,
        advancing=advancing,
        declining=declining,
        unchanged=unchanged,
        new_highs=new_highs,
        new_lows=new_lows,
    )


class TestBreadthFromSectors:

    def test_share_of_advancing_sectors(self):
        sectors = {
            "XLK": make_sector("XLK", 3, change_percent=1.2),
            "XLF": make_sector("XLF", -1, change_percent=-0.4),
            "XLE": make_sector("XLE", 2, change_percent=0.3),
            "XLU": make_sector("XLU", 0, change_percent=0.0),
        }
        assert breadth_from_sectors(sectors) == 0.5

    def test_empty_is_neutral(self):
        assert breadth_from_sectors({}) == 0.5
        assert comprehensive_breadth({}).breadth_pct == 0.5

    def test_comprehensive_breadth_estimates_issues(self):
        sectors = {
            "XLK": make_sector("XLK", 5, change_percent=2.5),
            "XLF": make_sector("XLF", -4, change_percent=-3.0),
            "XLU": make_sector("XLU", 0, change_percent=0.0),
        }
        result = comprehensive_breadth(sectors)
        assert result.advancing == 45
        assert result.unchanged == 45
        assert result.declining == 45
        assert result.new_highs == 4
        assert result.new_lows == 4


class TestCompositeStrength:

    def test_bounded(self):
        strong = breadth(1.0, advancing=1000, declining=0, unchanged=0, new_highs=100)
        assert composite_breadth_strength(strong) == 1.0
        assert 0.0 <= composite_breadth_strength(breadth(0.0, 0, 0, 0)) <= 1.0

    def test_value(self):
        # 0.5*40 + (1.25/3)*25 + 10 + 0.9*15 = 53.9166...
        assert composite_breadth_strength(breadth(0.5)) == pytest.approx(0.539166, abs=1e-5)


class TestBreadthMomentum:

    def test_needs_two_readings(self):
        result = analyze_breadth_momentum(breadth(0.6))
        assert result.momentum == "stable"
        assert result.trend == "sideways"
        assert not result.divergence

    def test_accelerating_and_improving(self):
        history = [breadth(p) for p in (0.40, 0.42, 0.44, 0.45, 0.46)]
        result = analyze_breadth_momentum(breadth(0.60), history)
        assert result.momentum == "accelerating"
        assert result.trend == "improving"

    def test_decelerating_and_deteriorating(self):
        history = [breadth(p) for p in (0.70, 0.68, 0.66, 0.50, 0.48)]
        result = analyze_breadth_momentum(breadth(0.47), history)
        assert result.momentum == "decelerating"
        assert result.trend == "deteriorating"

    def test_divergence_on_weak_ad_ratio(self):
        current = breadth(0.65, advancing=300, declining=500)
        result = analyze_breadth_momentum(current, [breadth(0.6), breadth(0.62)])
        assert result.divergence


class TestBreadthPattern:

    def test_thrust(self):
        assert identify_breadth_pattern(breadth(0.92)).pattern == "thrust"

    def test_exhaustion(self):
        pattern = identify_breadth_pattern(breadth(0.08))
        assert pattern.pattern == "exhaustion"
        assert pattern.signal == "bullish"

    def test_accumulation(self):
        history = [breadth(p) for p in (0.40, 0.42, 0.45)]
        assert identify_breadth_pattern(breadth(0.60), history).pattern == "accumulation"

    def test_distribution(self):
        history = [breadth(p) for p in (0.60, 0.58, 0.55)]
        pattern = identify_breadth_pattern(breadth(0.40), history)
        assert pattern.pattern == "distribution"
        assert pattern.signal == "bearish"

    def test_neutral(self):
        assert identify_breadth_pattern(breadth(0.5)).pattern == "neutral"


class TestBreadthSignals:

    def test_strong_breadth_supports_bull(self):
        signal = breadth_signals(breadth(0.8, advancing=800, declining=150))
        assert signal.regime_support == Regime.BULL
        assert signal.action == "buy"
        assert signal.urgency == "medium"

    def test_very_weak_breadth_reduces(self):
        signal = breadth_signals(breadth(0.2, advancing=200, declining=700))
        assert signal.regime_support == Regime.BEAR
        assert signal.action == "reduce"
        assert signal.urgency == "high"

    def test_weak_ad_ratio_steps_action_down_once(self):
        signal = breadth_signals(breadth(0.5, advancing=200, declining=500))
        assert signal.regime_support is None
        assert signal.action == "reduce"

    def test_new_lows_raise_urgency(self):
        signal = breadth_signals(breadth(0.5, new_highs=10, new_lows=40))
        assert signal.urgency == "medium"
