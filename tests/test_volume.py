"""Tests for volume confirmation and pattern analysis."""

import pytest

from regime_compass.models import PriceHistory, Regime, RiskLevel
from regime_compass.predictive import (
    ThrustType,
    VolumeAnalyzer,
    accumulation_distribution,
    volume_trend,
)

RISING = [100 + i * 0.1 for i in range(9)]


class TestHelpers:

    def test_accumulation_distribution_signs_volume(self):
        assert accumulation_distribution([1, 2, 1, 2], [10, 20, 30, 40], 3) == 30.0

    def test_accumulation_distribution_short_input(self):
        assert accumulation_distribution([1, 2], [10, 20], 5) == 0.0

    def test_volume_trend(self):
        assert volume_trend([1, 1, 1, 2, 2, 2], 6) == "increasing"
        assert volume_trend([2, 2, 2, 1, 1, 1], 6) == "decreasing"
        assert volume_trend([1, 1, 1, 1.1, 1.1, 1.1], 6) == "stable"
        assert volume_trend([1, 2], 6) == "stable"


class TestVolumeAnalysis:

    def setup_method(self):
        self.analyzer = VolumeAnalyzer()

    def test_up_thrust_with_spike(self):
        analysis = self.analyzer.analyze_series([100, 100, 100, 100, 101], [1e6, 1e6, 1e6, 1e6, 2e6])
        assert analysis.volume_ratio == pytest.approx(2e6 / 1.2e6)
        assert analysis.thrust == ThrustType.UP
        assert analysis.volume_spike
        assert analysis.confirmation
        assert not analysis.exhaustion

    def test_down_thrust(self):
        analysis = self.analyzer.analyze_series([100, 100, 100, 100, 98], [1e6, 1e6, 1e6, 1e6, 2e6])
        assert analysis.thrust == ThrustType.DOWN

    def test_exhaustion(self):
        analysis = self.analyzer.analyze_series([100, 100, 100, 100, 100.1], [1e6, 1e6, 1e6, 1e6, 5e6])
        assert analysis.exhaustion
        assert analysis.volume_spike

    def test_quiet_bar(self):
        analysis = self.analyzer.analyze_series([100, 100.1, 100.2, 100.3, 100.35], [1e6] * 5)
        assert analysis.volume_ratio == pytest.approx(1.0)
        assert analysis.thrust == ThrustType.NONE
        assert not analysis.confirmation

    def test_zero_volume_ratio_is_one(self):
        assert self.analyzer.analyze_series([100, 101, 102, 103, 104], [0] * 5).volume_ratio == 1.0

    def test_mismatched_or_short_input_is_empty(self):
        assert self.analyzer.analyze_series([100, 101], [1e6]).thrust == ThrustType.NONE
        assert self.analyzer.analyze_series([100], [1e6]).volume_ratio == 1.0
        assert self.analyzer.analyze(None).trend == "stable"

    def test_analyze_history(self):
        history = PriceHistory.from_series([100, 100, 100, 100, 101], volumes=[1e6, 1e6, 1e6, 1e6, 2e6])
        assert self.analyzer.analyze(history).thrust == ThrustType.UP


class TestVolumePatterns:

    def setup_method(self):
        self.analyzer = VolumeAnalyzer()

    def test_thrust(self):
        pattern = self.analyzer.identify_pattern(RISING + [102], [1e6] * 9 + [5e6])
        assert pattern.pattern == "thrust"
        assert pattern.strength == 1.0

    def test_selloff(self):
        pattern = self.analyzer.identify_pattern(RISING + [98], [1e6] * 9 + [5e6])
        assert pattern.pattern == "selloff"

    def test_neutral(self):
        prices = [100 + i for i in range(10)]
        pattern = self.analyzer.identify_pattern(prices, [1e6] * 10)
        assert pattern.pattern == "neutral"
        assert pattern.strength == 0.0

    def test_distribution(self):
        prices = [100, 100, 100, 100, 100, 80, 60, 50, 40, 35]
        volumes = [1e6, 1e6, 1e6, 1e6, 1e6, 3e6, 1e6, 1e6, 1e6, 1.05e6]
        signals = self.analyzer.extended_signals(prices, volumes)
        assert signals.distribution
        assert self.analyzer.identify_pattern(prices, volumes).pattern == "distribution"

    def test_short_window_is_neutral(self):
        assert self.analyzer.identify_pattern([100, 101], [1e6, 1e6]).pattern == "neutral"

    def test_signals_follow_pattern(self):
        signal = self.analyzer.signals(RISING + [102], [1e6] * 9 + [5e6])
        assert signal.signal == "buy"
        assert signal.confidence == pytest.approx(0.9)
        assert signal.timeframe == "Short-term (1-3 days)"

    def test_no_signal(self):
        signal = self.analyzer.signals([100 + i for i in range(10)], [1e6] * 10)
        assert signal.signal == "hold"
        assert signal.confidence == 0.0


class TestVolumeRegimeSupport:

    def setup_method(self):
        self.analyzer = VolumeAnalyzer()

    def test_thrust_supports_bull(self):
        implication = self.analyzer.analyze_for_regime(RISING + [102], [1e6] * 9 + [5e6], Regime.BULL)
        assert implication.regime_risk == RiskLevel.LOW
        assert implication.change_probability == pytest.approx(0.1)

    def test_selloff_confirms_bear(self):
        implication = self.analyzer.analyze_for_regime(RISING + [98], [1e6] * 9 + [5e6], Regime.BEAR)
        assert implication.regime_risk == RiskLevel.LOW

    def test_quiet_volume_in_neutral_is_medium_risk(self):
        implication = self.analyzer.analyze_for_regime([100 + i for i in range(10)], [1e6] * 10, Regime.NEUTRAL)
        assert implication.regime_risk == RiskLevel.MEDIUM
        assert implication.change_probability == pytest.approx(0.3)
        assert implication.recommendation == "Monitor volume patterns"
