"""Tests for the predictive signal engine."""

import pytest
from hypothesis import given, strategies as st, settings

from regime_compass.errors import ErrorLog
from regime_compass.models import OptionsFlow, PriceHistory, Regime, RiskLevel, TradingBias
from regime_compass.predictive import (
    DivergenceResult,
    DivergenceType,
    PositionSizing,
    PredictiveAction,
    PredictiveSignalEngine,
    ProjectedLevels,
    RegimeProbabilities,
    RegimeProbability,
    SignalTimeframe,
    VolumeAnalysis,
    renormalize,
)
from regime_compass.predictive.engine import FALLBACK_INSIGHT
from regime_compass.regime import RegimeClassifier

from conftest import bull_snapshot


def bull_probability():
    return RegimeProbability(RegimeProbabilities(0.8, 0.1, 0.1), RegimeProbabilities(0.7, 0.1, 0.2))


class TestRenormalize:

    def test_inside_bounds_untouched(self):
        result = renormalize(0.6, 0.2, (0.05, 0.9))
        assert result.bull == pytest.approx(0.6)
        assert result.bear == pytest.approx(0.2)
        assert result.neutral == pytest.approx(0.2)

    def test_clamps_bull_and_fills_neutral(self):
        result = renormalize(0.8, 0.1, (0.1, 0.7))
        assert result.bull == pytest.approx(0.7)
        assert result.neutral == pytest.approx(0.2)

    def test_neutral_deficit_taken_from_both_sides(self):
        result = renormalize(0.85, 0.15, (0.05, 0.9))
        assert result.neutral == pytest.approx(0.05)
        assert result.bull < 0.85
        assert result.bear < 0.15

    @given(
        bull=st.floats(min_value=0, max_value=1.5),
        bear=st.floats(min_value=0, max_value=1.5),
        near=st.booleans(),
    )
    @settings(max_examples=100)
    def test_triple_sums_to_one_within_bounds(self, bull, bear, near):
        low, high = (0.05, 0.9) if near else (0.1, 0.7)
        result = renormalize(bull, bear, (low, high))
        assert result.total == pytest.approx(1.0)
        for value in (result.bull, result.bear, result.neutral):
            assert low - 1e-9 <= value <= high + 1e-9


class TestRegimeProbabilities:

    def setup_method(self):
        self.engine = PredictiveSignalEngine()
        self.quiet = (DivergenceResult.none(), VolumeAnalysis.empty(), OptionsFlow.neutral())

    def test_strong_bull_base(self):
        probability = self.engine.regime_probabilities(Regime.BULL, 100.0, *self.quiet)
        assert probability.next_week.bull == pytest.approx(0.8)
        assert probability.next_week.bear == pytest.approx(0.1)
        assert probability.next_month.bull == pytest.approx(0.7)
        assert probability.next_month.neutral == pytest.approx(0.2)

    def test_strong_bear_base(self):
        probability = self.engine.regime_probabilities(Regime.BEAR, 100.0, *self.quiet)
        assert probability.next_week.bear == pytest.approx(0.8)
        assert probability.next_week.bull == pytest.approx(0.1)

    def test_neutral_base_is_uniform(self):
        probability = self.engine.regime_probabilities(Regime.NEUTRAL, 70.0, *self.quiet)
        assert probability.next_week.bull == pytest.approx(0.33)
        assert probability.next_week.neutral == pytest.approx(0.34)

    def test_divergence_shifts_toward_its_side(self):
        divergence = DivergenceResult(type=DivergenceType.BEARISH, strength=0.5, rsi_divergence=True)
        probability = self.engine.regime_probabilities(
            Regime.NEUTRAL, 50.0, divergence, VolumeAnalysis.empty(), OptionsFlow.neutral()
        )
        assert probability.next_week.bear == pytest.approx(0.43)
        assert probability.next_month.bear == pytest.approx(0.38)


class TestOverallBias:

    def setup_method(self):
        self.engine = PredictiveSignalEngine()

    def test_regime_alone_stays_neutral(self):
        bias, confidence = self.engine.overall_bias(
            DivergenceResult.none(), VolumeAnalysis.empty(), OptionsFlow.neutral(), bull_probability()
        )
        assert bias == TradingBias.NEUTRAL
        assert confidence == pytest.approx(0.3)

    def test_side_needs_threshold(self):
        flow = OptionsFlow(bias=TradingBias.BEARISH, confidence=0.9)
        bias, _ = self.engine.overall_bias(DivergenceResult.none(), VolumeAnalysis.empty(), flow, bull_probability())
        assert bias == TradingBias.NEUTRAL

    def test_bearish_vote(self):
        flow = OptionsFlow(bias=TradingBias.BEARISH, confidence=0.9)
        divergence = DivergenceResult(type=DivergenceType.BEARISH, strength=0.8, rsi_divergence=True)
        bias, confidence = self.engine.overall_bias(divergence, VolumeAnalysis.empty(), flow, bull_probability())
        assert bias == TradingBias.BEARISH
        assert confidence == pytest.approx(0.47 / 0.75)


class TestTimeframeAndImplications:

    def test_timeframe(self):
        long_divergence = DivergenceResult(
            type=DivergenceType.BULLISH, strength=0.4, timeframe=SignalTimeframe.LONG, rsi_divergence=True
        )
        timeframe = PredictiveSignalEngine.timeframe
        assert timeframe(long_divergence, OptionsFlow.neutral()) == SignalTimeframe.LONG.description
        assert timeframe(long_divergence, OptionsFlow(unusual_activity=True)) == SignalTimeframe.SHORT.description
        assert timeframe(DivergenceResult.none(), OptionsFlow.neutral()) == SignalTimeframe.MEDIUM.description

    def test_bias_against_regime_is_high_risk(self):
        levels = ProjectedLevels.fallback(100.0)
        implications = PredictiveSignalEngine.trading_implications(TradingBias.BEARISH, 0.8, Regime.BULL, levels)
        assert implications.recommended_action == PredictiveAction.AGGRESSIVE_SHORT
        assert implications.position_sizing == PositionSizing.FULL
        assert implications.risk_level == RiskLevel.HIGH
        assert implications.targets == pytest.approx((102.0, 98.0))

    def test_cautious_long(self):
        implications = PredictiveSignalEngine.trading_implications(
            TradingBias.BULLISH, 0.6, Regime.NEUTRAL, ProjectedLevels.fallback(100.0)
        )
        assert implications.recommended_action == PredictiveAction.CAUTIOUS_LONG
        assert implications.position_sizing == PositionSizing.REDUCED
        assert implications.risk_level == RiskLevel.MEDIUM


class TestPredict:

    def setup_method(self):
        self.engine = PredictiveSignalEngine()
        self.classification = RegimeClassifier().classify(bull_snapshot())

    def test_bull_without_history(self):
        analysis = self.engine.predict(bull_snapshot(), classification=self.classification)
        assert not analysis.degraded
        assert analysis.overall_bias == TradingBias.NEUTRAL
        assert analysis.confidence == pytest.approx(0.3)
        assert analysis.timeframe == SignalTimeframe.MEDIUM.description
        assert analysis.signals.projected_levels.support == pytest.approx((490.0, 480.0))
        assert analysis.regime_forecast.next_month.bull == pytest.approx(0.7)

    def test_bullish_options_flow(self):
        flow = OptionsFlow(bias=TradingBias.BULLISH, confidence=0.9)
        analysis = self.engine.predict(bull_snapshot(), classification=self.classification, options_flow=flow)
        week = analysis.signals.regime_probability.next_week
        assert week.neutral == pytest.approx(0.05)
        assert analysis.overall_bias == TradingBias.BULLISH
        assert analysis.confidence == pytest.approx((0.27 + week.bull * 0.2) / 0.5)
        assert analysis.trading_implications.recommended_action == PredictiveAction.AGGRESSIVE_LONG

    def test_projected_levels_from_history(self):
        closes = [100.0 + i for i in range(10)]
        history = PriceHistory.from_series(
            closes, volumes=[1e6] * 10, highs=[c + 1 for c in closes], lows=[c - 1 for c in closes]
        )
        levels = self.engine.projected_levels(bull_snapshot(), history)
        assert levels.pivot == pytest.approx((110 + 104 + 109) / 3)
        assert levels.expected_move == pytest.approx(7.5)
        assert levels.projected_upside == pytest.approx(507.5)

    def test_fallback_on_malformed_snapshot(self):
        error_log = ErrorLog()
        engine = PredictiveSignalEngine(error_log=error_log)
        analysis = engine.predict(None)
        assert analysis.degraded
        assert analysis.key_insights == (FALLBACK_INSIGHT,)
        assert analysis.trading_implications.position_sizing == PositionSizing.MINIMAL
        assert error_log.count_by_stage() == {"predictive": 1}
