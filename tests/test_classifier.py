"""Tests for the five-factor regime classifier."""

import pytest
from hypothesis import given, strategies as st, settings

from regime_compass.errors import ErrorLog
from regime_compass.models import GammaBias, Regime, VolatilityTrend
from regime_compass.regime import (
    ConfirmationLevel,
    RegimeClassifier,
    determine_regime,
    detect_early_warnings,
    evaluate_factors,
)
from regime_compass.regime.factors import estimate_change_timeframe

from conftest import bear_snapshot, bull_snapshot, make_snapshot, neutral_snapshot


class TestFactorEvaluation:
    """Bullish and bearish flags per factor."""

    def test_bull_example_sets_all_bullish_flags(self):
        factors = evaluate_factors(bull_snapshot())
        assert factors.bullish_count == 5
        assert determine_regime(factors) == Regime.BULL

    def test_flags_are_independent(self):
        # VIX below the pivot while rising is both bullish and bearish
        factors = evaluate_factors(make_snapshot(vix=18.0, vix_trend=VolatilityTrend.RISING))
        assert factors.volatility.bullish
        assert factors.volatility.bearish

    def test_negative_gex_is_bullish_and_bearish(self):
        factors = evaluate_factors(bull_snapshot())
        assert factors.gamma.bullish
        assert factors.gamma.bearish

    def test_positive_gex_far_from_zero_gamma_is_neither(self):
        factors = evaluate_factors(make_snapshot(gex=2e9, zero_gamma_dist=0.03))
        assert not factors.gamma.bullish
        assert not factors.gamma.bearish

    def test_ema_buffer(self):
        factors = evaluate_factors(make_snapshot(ema20=100.2, ema50=100.0))
        assert not factors.ema.bullish
        assert not factors.ema.bearish

    def test_breadth_thresholds_inclusive(self):
        assert evaluate_factors(make_snapshot(breadth_pct=0.62)).breadth.bullish
        assert evaluate_factors(make_snapshot(breadth_pct=0.38)).breadth.bearish

    def test_bear_snapshot(self):
        factors = evaluate_factors(bear_snapshot())
        assert factors.bearish_count == 5
        assert determine_regime(factors) == Regime.BEAR

    def test_four_of_five_is_neutral(self):
        factors = evaluate_factors(make_snapshot(trend_score9=2))
        assert factors.bullish_count == 4
        assert determine_regime(factors) == Regime.NEUTRAL

    def test_aligned_lists_supporting_factors(self):
        factors = evaluate_factors(make_snapshot(trend_score9=2))
        assert factors.aligned(Regime.BULL) == ["breadth", "ema", "volatility", "gamma"]
        assert factors.aligned(Regime.NEUTRAL) == []


class TestRegimeClassifier:

    def setup_method(self):
        self.classifier = RegimeClassifier()

    def test_bull_example(self):
        classification = self.classifier.classify(bull_snapshot())
        assert classification.regime == Regime.BULL
        assert classification.strength == pytest.approx(83.8125)
        assert classification.confidence == pytest.approx(0.6 + 0.4 * 0.838125)

    def test_confidence_uses_supplied_strength(self):
        classification = self.classifier.classify(bull_snapshot(), strength=50.0)
        assert classification.confidence == pytest.approx(0.8)
        assert classification.strength == 50.0

    def test_confidence_capped(self):
        classification = self.classifier.classify(bull_snapshot(), strength=100.0)
        assert classification.confidence == 0.95

    def test_confidence_floor(self):
        classification = self.classifier.classify(neutral_snapshot())
        assert classification.regime == Regime.NEUTRAL
        assert classification.confidence == pytest.approx(0.1)

    def test_strength_clamped(self):
        classification = self.classifier.classify(bull_snapshot(), strength=250.0)
        assert classification.strength == 100.0

    def test_duration_tracking(self):
        first = self.classifier.classify(bull_snapshot())
        second = self.classifier.classify(bull_snapshot(), previous=first)
        assert second.duration_days == first.duration_days + 1
        assert not second.changed

        third = self.classifier.classify(bear_snapshot(), previous=second)
        assert third.changed
        assert third.previous_regime == Regime.BULL
        assert third.duration_days == 0

    def test_malformed_input_degrades_to_neutral(self):
        error_log = ErrorLog()
        classifier = RegimeClassifier(error_log=error_log)
        classification = classifier.classify(None)
        assert classification.regime == Regime.NEUTRAL
        assert classification.confidence == 0.1
        assert error_log.count_by_stage() == {"classifier": 1}

    @given(
        breadth=st.floats(min_value=0, max_value=1),
        trend=st.integers(min_value=-9, max_value=9),
        vix=st.floats(min_value=9, max_value=80),
        strength=st.floats(min_value=0, max_value=100),
    )
    @settings(max_examples=100)
    def test_confidence_always_within_bounds(self, breadth, trend, vix, strength):
        snapshot = make_snapshot(breadth_pct=breadth, trend_score9=trend, vix=vix)
        classification = self.classifier.classify(snapshot, strength=strength)
        assert 0.1 <= classification.confidence <= 0.95
        assert classification.regime in (Regime.BULL, Regime.BEAR, Regime.NEUTRAL)


class TestEarlyWarnings:

    def test_healthy_bull_has_no_triggers(self):
        warnings = detect_early_warnings(bull_snapshot(), Regime.BULL)
        assert warnings.triggers == ()
        assert not warnings.warning
        assert warnings.time_to_change == "2-4 weeks"

    def test_deteriorating_bull(self):
        snapshot = make_snapshot(
            breadth_pct=0.52,
            trend_score9=1,
            vix=19.0,
            vix_trend=VolatilityTrend.RISING,
            ema20=100.2,
            ema50=100.0,
            gamma_bias=GammaBias.SUPPRESSIVE,
        )
        warnings = detect_early_warnings(snapshot, Regime.BULL)
        assert len(warnings.triggers) == 5
        assert warnings.warning
        assert warnings.confirmation == ConfirmationLevel.HIGH
        assert warnings.time_to_change == "1-3 days"

    def test_improving_bear(self):
        snapshot = bear_snapshot(breadth_pct=0.5, trend_score9=0)
        warnings = detect_early_warnings(snapshot, Regime.BEAR)
        assert len(warnings.triggers) == 2
        assert warnings.warning
        assert warnings.confirmation == ConfirmationLevel.LOW

    def test_neutral_has_no_triggers(self):
        assert detect_early_warnings(neutral_snapshot(), Regime.NEUTRAL).triggers == ()

    @pytest.mark.parametrize("count,expected", [
        (0, "2-4 weeks"), (1, "2-4 weeks"), (2, "1-2 weeks"), (3, "3-7 days"), (5, "1-3 days"),
    ])
    def test_time_to_change_steps(self, count, expected):
        assert estimate_change_timeframe(count) == expected

    def test_regime_change_imminent(self):
        classifier = RegimeClassifier()
        snapshot = make_snapshot(breadth_pct=0.52, trend_score9=1, ema20=100.2, ema50=100.0)
        outlook = classifier.is_regime_change_imminent(snapshot, Regime.BULL)
        assert outlook.imminent
        assert outlook.probability == pytest.approx(0.6)

    def test_detailed_analysis(self):
        analysis = RegimeClassifier().get_detailed_analysis(bull_snapshot())
        assert analysis.classification.regime == Regime.BULL
        assert analysis.factors["breadth"].status == "Strong"
        assert analysis.factors["gamma"].status == "Mixed"
        assert analysis.factors["ema"].status == "Bullish"
