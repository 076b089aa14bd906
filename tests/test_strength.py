"""Tests for regime strength scoring."""

import pytest
from hypothesis import given, strategies as st, settings

from regime_compass.errors import ErrorLog
from regime_compass.models import BreadthData, GammaBias, GammaData, Regime, VIXData
from regime_compass.regime import RecommendedAction, RegimeClassifier, RegimeStrengthScorer
from regime_compass.regime.strength import (
    breadth_strength,
    ema_strength,
    gamma_strength,
    trend_strength,
    volatility_strength,
)

from conftest import bear_snapshot, bull_snapshot, make_index, make_snapshot, neutral_snapshot


class TestFactorStrengths:
    """Bucketed point tables for each factor."""

    def test_breadth_strength(self):
        breadth = BreadthData(breadth_pct=0.65, advancing=650, declining=300, unchanged=50)
        # 25 (pct) + 20 (A/D 2.17) + 10 (no highs/lows) + 14.25 (participation)
        assert breadth_strength(breadth) == pytest.approx(69.25)

    def test_breadth_strength_capped(self):
        breadth = BreadthData(breadth_pct=0.9, advancing=900, declining=100, new_highs=50)
        assert breadth_strength(breadth) == 100.0

    def test_trend_strength(self):
        assert trend_strength(make_index(trend_score9=4, change_percent=0.5, volume=50_000_000)) == 60.0
        assert trend_strength(make_index(trend_score9=-8, change_percent=-2.5, volume=60_000_000)) == 100.0

    def test_ema_strength_symmetric(self):
        bullish = ema_strength(make_index(ema20=105.0, ema50=102.5))
        bearish = ema_strength(make_index(ema20=100.0, ema50=102.5))
        assert bullish == 80.0
        assert bearish == 80.0

    def test_volatility_strength_prefers_low_falling_vix(self):
        calm = volatility_strength(VIXData(value=12.0, change_percent=-12.0, five_day_change=-6.0))
        stressed = volatility_strength(VIXData(value=35.0, change_percent=12.0, five_day_change=6.0))
        assert calm == 100.0
        assert stressed == 15.0

    def test_gamma_strength(self):
        assert gamma_strength(GammaData(gex=-1e9, zero_gamma_dist=0.005, bias=GammaBias.SUPPORTIVE)) == 90.0
        assert gamma_strength(GammaData(gex=1e8, zero_gamma_dist=0.1, bias=GammaBias.SUPPRESSIVE)) == 30.0


class TestRegimeStrengthScorer:

    def setup_method(self):
        self.scorer = RegimeStrengthScorer()

    def test_bull_example(self):
        analysis = self.scorer.score(bull_snapshot())
        assert analysis.regime == Regime.BULL
        assert analysis.overall_strength == pytest.approx(83.8125)
        assert analysis.durability_score == pytest.approx(83.8125 * 0.6 + 5)
        assert analysis.vulnerability_score == 0.0
        assert analysis.recommended_action == RecommendedAction.AGGRESSIVE
        assert analysis.aligned_factors == ("breadth", "ema", "trend", "volatility", "gamma")

    def test_bear_example(self):
        analysis = self.scorer.score(bear_snapshot())
        assert analysis.regime == Regime.BEAR
        assert analysis.overall_strength == pytest.approx(66.8125)
        # 15 (one weak factor) + 15 (rising VIX) + 10 (zero-gamma distance)
        assert analysis.vulnerability_score == pytest.approx(40.0)
        assert analysis.recommended_action == RecommendedAction.CAUTIOUS

    def test_wide_bearish_spread_is_not_compression(self):
        analysis = self.scorer.score(bear_snapshot(trend_score9=-8, zero_gamma_dist=0.01))
        assert analysis.regime == Regime.BEAR
        assert analysis.overall_strength >= 70
        assert analysis.vulnerability_score == pytest.approx(30.0)
        assert analysis.recommended_action == RecommendedAction.AGGRESSIVE

    def test_narrow_spread_counts_as_compression_on_either_side(self):
        above = self.scorer.score(neutral_snapshot(ema20=100.3, ema50=100.0))
        below = self.scorer.score(neutral_snapshot(ema20=99.7, ema50=100.0))
        assert above.vulnerability_score == below.vulnerability_score

    def test_no_aligned_factors_returns_floor(self):
        analysis = self.scorer.score(neutral_snapshot())
        assert analysis.overall_strength == 10.0
        assert analysis.aligned_factors == ()

    def test_uses_classification_factors(self):
        classification = RegimeClassifier().classify(bull_snapshot())
        analysis = self.scorer.score(bull_snapshot(), classification)
        assert analysis.overall_strength == pytest.approx(classification.strength)

    def test_defensive_on_high_vulnerability(self):
        snapshot = make_snapshot(
            breadth_pct=0.55, advancing=400, declining=500, trend_score9=1,
            ema20=100.1, ema50=100.0, vix=22.0, vix_change=12.0, gex=1e8,
            zero_gamma_dist=0.1, gamma_bias=GammaBias.SUPPRESSIVE,
        )
        analysis = self.scorer.score(snapshot)
        assert analysis.vulnerability_score >= 70
        assert analysis.recommended_action == RecommendedAction.DEFENSIVE

    def test_fallback_on_malformed_snapshot(self):
        error_log = ErrorLog()
        scorer = RegimeStrengthScorer(error_log=error_log)
        analysis = scorer.score(None)
        assert analysis.overall_strength == 10.0
        assert analysis.recommended_action == RecommendedAction.WAIT
        assert error_log.last("strength") is not None

    def test_summary(self):
        summary = self.scorer.summarize(self.scorer.score(bull_snapshot()))
        assert summary.grade == "A"
        assert summary.key_strengths == ("ema", "volatility", "gamma")
        assert summary.key_weaknesses == ()
        assert not summary.warning_active

    @given(
        breadth=st.floats(min_value=0, max_value=1),
        trend=st.integers(min_value=-9, max_value=9),
        vix=st.floats(min_value=9, max_value=80),
        vix_change=st.floats(min_value=-30, max_value=30),
        gex=st.floats(min_value=-5e9, max_value=5e9),
    )
    @settings(max_examples=100)
    def test_scores_bounded(self, breadth, trend, vix, vix_change, gex):
        snapshot = make_snapshot(breadth_pct=breadth, trend_score9=trend, vix=vix, vix_change=vix_change, gex=gex)
        analysis = self.scorer.score(snapshot)
        assert 0 <= analysis.overall_strength <= 100
        assert 0 <= analysis.durability_score <= 100
        assert 0 <= analysis.vulnerability_score <= 100
        for _, value in analysis.factor_strengths.items():
            assert 0 <= value <= 100
