"""Tests for the end-to-end regime engine."""

import threading

import pytest

from regime_compass import ErrorLog, ResultCache, RegimeEngine
from regime_compass.models import PortfolioMetrics, Regime, RiskLevel, RiskParameters, TradingBias

from conftest import bear_snapshot, bull_snapshot, example_sectors, make_sector

PARAMS = RiskParameters(account_size=100_000)


def failing_detector(history):
    raise ValueError("corrupt price history")


class TestRegimeEngine:

    def setup_method(self):
        self.engine = RegimeEngine()

    def test_bull_cycle(self):
        result = self.engine.run(bull_snapshot(sectors=example_sectors()), PARAMS)

        assert result.classification.regime == Regime.BULL
        assert result.classification.strength == pytest.approx(83.8125)
        assert result.strength.overall_strength == pytest.approx(83.8125)
        assert result.predictive.overall_bias == TradingBias.NEUTRAL
        assert result.sectors.recommendations.overweight == ("XLK", "XLY")
        assert result.risk.assessment.overall_risk_level == RiskLevel.LOW
        assert [c.symbol for c in result.signals.long_candidates] == ["XLK", "XLY"]
        assert result.signals.avoid_list == ("XLF", "XLE")
        assert not result.degraded

    def test_every_candidate_is_sized(self):
        result = self.engine.run(bull_snapshot(sectors=example_sectors()), PARAMS)
        assert len(result.position_sizes) == len(result.signals.candidates)
        # 312.5 shares at 2x ATR risk, capped at 10% of the account
        assert result.position_sizes[0].adjusted_size == pytest.approx(100.0)

    def test_previous_classification_carries_duration(self):
        first = self.engine.run(bull_snapshot(), PARAMS)
        second = self.engine.run(bull_snapshot(), PARAMS, previous=first.classification)
        assert second.classification.duration_days == first.classification.duration_days + 1

        flipped = self.engine.run(bear_snapshot(), PARAMS, previous=second.classification)
        assert flipped.classification.changed
        assert flipped.classification.previous_regime == Regime.BULL

    def test_portfolio_feeds_risk_stage(self):
        result = self.engine.run(bear_snapshot(), PARAMS, portfolio=PortfolioMetrics(drawdown=0.07))
        assert result.risk.assessment.overall_risk_level == RiskLevel.CRITICAL
        assert result.risk.triggered_emergencies

    def test_degraded_stage_reported(self):
        self.engine.predictive_engine.divergence_detector.detect = failing_detector
        result = self.engine.run(bull_snapshot(), PARAMS)
        assert result.degraded
        assert [e.stage for e in result.errors] == ["predictive"]
        assert result.errors[0].error_type == "ValueError"
        assert result.predictive.degraded
        assert result.classification.regime == Regime.BULL

    def test_errors_are_per_run(self):
        error_log = ErrorLog(max_entries=1)
        engine = RegimeEngine(error_log=error_log)
        engine.predictive_engine.divergence_detector.detect = failing_detector
        first = engine.run(bull_snapshot(), PARAMS)
        second = engine.run(bull_snapshot(), PARAMS)
        assert len(first.errors) == 1
        assert len(second.errors) == 1
        assert error_log.recorded == 2
        assert len(error_log) == 1

    def test_concurrent_runs_keep_their_own_errors(self):
        detect = self.engine.predictive_engine.divergence_detector.detect
        both_running = threading.Barrier(2)

        def detect_together(history):
            both_running.wait(timeout=5)
            return detect(history)

        self.engine.predictive_engine.divergence_detector.detect = detect_together
        snapshots = {
            "clean": bull_snapshot(),
            "malformed": bull_snapshot(sectors=[make_sector("XLK", None)]),
        }
        results = {}

        def run(name):
            results[name] = self.engine.run(snapshots[name], PARAMS)

        threads = [threading.Thread(target=run, args=(name,)) for name in snapshots]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert results["clean"].errors == ()
        assert not results["clean"].degraded
        assert "sectors" in [e.stage for e in results["malformed"].errors]
        assert self.engine.error_log.count_by_stage()["sectors"] == 1


class TestClassificationCache:

    def test_repeat_snapshot_served_from_cache(self):
        cache = ResultCache()
        engine = RegimeEngine(cache=cache)
        first = engine.run(bull_snapshot(), PARAMS)
        second = engine.run(bull_snapshot(), PARAMS)
        assert second.classification is first.classification
        stats = cache.stats()
        assert stats.hits == 1
        assert stats.misses == 1

    def test_previous_is_part_of_the_key(self):
        cache = ResultCache()
        engine = RegimeEngine(cache=cache)
        first = engine.run(bull_snapshot(), PARAMS)
        second = engine.run(bull_snapshot(), PARAMS, previous=first.classification)
        assert second.classification.duration_days == first.classification.duration_days + 1
        assert cache.stats().misses == 2
