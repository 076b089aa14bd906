"""Tests for trading signal generation."""

from dataclasses import replace

import pytest
from hypothesis import given, strategies as st, settings

from regime_compass.errors import ErrorLog
from regime_compass.models import CandidateType, Recommendation, Regime
from regime_compass.predictive import DivergenceResult, DivergenceType, PredictiveSignalEngine
from regime_compass.regime import RegimeClassifier
from regime_compass.sectors import SectorRotationAnalyzer
from regime_compass.signals import (
    LONG_CRITERIA,
    HeldPosition,
    PositionAction,
    SignalStrength,
    TradingSignalGenerator,
)

from conftest import bear_snapshot, bull_snapshot, example_sectors, make_index, make_sector


def with_divergence(snapshot, divergence_type):
    analysis = PredictiveSignalEngine().predict(snapshot)
    divergence = DivergenceResult(type=divergence_type, strength=0.6, rsi_divergence=True)
    return replace(analysis, signals=replace(analysis.signals, momentum_divergence=divergence))


class TestRegimePositioning:

    def test_strong_bull(self):
        positioning = TradingSignalGenerator.regime_positioning(Regime.BULL, 83.8125, 15.0)
        assert positioning.long_exposure == pytest.approx(82.5)
        assert positioning.hedge_exposure == pytest.approx(4.0)
        assert positioning.cash_exposure == pytest.approx(13.5)
        assert positioning.position_sizing_factor == pytest.approx(1.375)

    def test_weak_bear_in_high_vix(self):
        positioning = TradingSignalGenerator.regime_positioning(Regime.BEAR, 40.0, 30.0)
        assert positioning.long_exposure == pytest.approx(16.0)
        assert positioning.hedge_exposure == pytest.approx(39.0)
        assert positioning.cash_exposure == pytest.approx(45.0)
        assert positioning.position_sizing_factor == pytest.approx(0.3375)
        assert len(positioning.reasoning) == 4

    @given(
        regime=st.sampled_from([Regime.BULL, Regime.BEAR, Regime.NEUTRAL]),
        strength=st.floats(min_value=0, max_value=100),
        vix=st.floats(min_value=9, max_value=80),
    )
    @settings(max_examples=100)
    def test_exposures_bounded_and_complete(self, regime, strength, vix):
        positioning = TradingSignalGenerator.regime_positioning(regime, strength, vix)
        assert 0 <= positioning.long_exposure <= 100
        assert 0 <= positioning.hedge_exposure <= 50
        total = positioning.long_exposure + positioning.hedge_exposure + positioning.cash_exposure
        assert total == pytest.approx(100.0)


class TestLongCandidates:

    def setup_method(self):
        self.generator = TradingSignalGenerator()

    def test_bull_uses_snapshot_recommendations(self):
        longs = self.generator.long_candidates(bull_snapshot(sectors=example_sectors()), Regime.BULL)
        assert [c.symbol for c in longs] == ["XLK"]
        candidate = longs[0]
        assert candidate.confidence == pytest.approx(0.7)
        assert candidate.atr == pytest.approx(2.0)
        assert candidate.stop_loss == pytest.approx(96.0)
        assert candidate.target == pytest.approx(103.0)
        assert candidate.risk_reward == pytest.approx(0.75)

    def test_sector_analysis_overrides_recommendations(self):
        sectors = example_sectors()
        analysis = SectorRotationAnalyzer().analyze({s.symbol: s for s in sectors})
        longs = self.generator.long_candidates(bull_snapshot(sectors=sectors), Regime.BULL, sectors=analysis)
        assert [c.symbol for c in longs] == ["XLK", "XLY"]
        assert longs[0].confidence == pytest.approx(0.9)
        assert longs[1].confidence == pytest.approx(0.5 + 4 / 9 * 0.3 + 0.2)

    def test_bear_needs_volume_and_trend(self):
        sectors = [
            make_sector("XLK", 8, change_percent=1.5, volume=20_000_000, recommendation=Recommendation.BUY),
            make_sector("XLY", 6, volume=20_000_000, recommendation=Recommendation.BUY),
        ]
        longs = self.generator.long_candidates(bear_snapshot(sectors=sectors), Regime.BEAR)
        assert [c.symbol for c in longs] == ["XLK"]
        assert longs[0].confidence == pytest.approx(0.5 + 8 / 9 * 0.3 + 0.2)

    def test_neutral_requires_predictive_alignment(self):
        sector = make_sector("XLK", 6, volume=20_000_000, recommendation=Recommendation.BUY)
        snapshot = bull_snapshot(sectors=[sector])
        criteria = LONG_CRITERIA[Regime.NEUTRAL]

        bullish = with_divergence(snapshot, DivergenceType.BULLISH)
        candidate = self.generator.evaluate_long(sector, criteria, bullish)
        assert candidate.confidence == pytest.approx(0.95)

        bearish = with_divergence(snapshot, DivergenceType.BEARISH)
        assert self.generator.evaluate_long(sector, criteria, bearish) is None


class TestHedgesAndAvoid:

    def setup_method(self):
        self.generator = TradingSignalGenerator()

    def test_bear_hedges(self):
        snapshot = bear_snapshot(
            sectors=[make_sector("XLU", 4, price=70.0), make_sector("XLP", 1, price=80.0)],
            extra_indexes=[make_index("SDS", price=20.0, atr14=0.6)],
        )
        hedges = self.generator.hedge_candidates(snapshot, Regime.BEAR)
        assert [c.symbol for c in hedges] == ["XLU", "SDS", "XLP"]
        assert [c.confidence for c in hedges] == pytest.approx([0.9, 0.8, 0.7])
        assert all(c.candidate_type == CandidateType.HEDGE for c in hedges)
        assert hedges[0].timeframe == "position"
        assert hedges[1].stop_loss == pytest.approx(18.8)

    def test_inverse_etfs_need_a_price(self):
        hedges = self.generator.hedge_candidates(bear_snapshot(), Regime.BEAR)
        assert hedges == []

    def test_bull_has_no_inverse_hedges(self):
        snapshot = bull_snapshot(extra_indexes=[make_index("SDS", price=20.0)])
        assert self.generator.hedge_candidates(snapshot, Regime.BULL) == []

    def test_avoid_list(self):
        sectors = example_sectors() + [
            make_sector("XLB", 2, change_percent=-3.0),
            make_sector("XLC", 1, recommendation=Recommendation.AVOID),
        ]
        snapshot = bull_snapshot(sectors=sectors)
        assert TradingSignalGenerator.avoid_list(snapshot, Regime.BULL) == ["XLF", "XLE", "XLB", "XLC"]
        assert TradingSignalGenerator.avoid_list(snapshot, Regime.NEUTRAL) == ["XLF", "XLE", "XLC"]


class TestGenerate:

    def setup_method(self):
        self.generator = TradingSignalGenerator()

    def test_bull_cycle(self):
        snapshot = bull_snapshot(sectors=example_sectors())
        classification = RegimeClassifier().classify(snapshot)
        output = self.generator.generate(snapshot, classification)

        assert [c.symbol for c in output.long_candidates] == ["XLK"]
        assert output.hedge_candidates == ()
        assert output.avoid_list == ("XLF", "XLE")
        assert output.signal_quality.strength == SignalStrength.MODERATE
        assert output.signal_quality.score == pytest.approx(0.838125 * 0.3 + 0.7 * 0.3 + 0.65 * 0.2)
        assert output.timeframe == "swing"
        assert output.candidates == output.long_candidates

    def test_malformed_snapshot_keeps_positioning(self):
        error_log = ErrorLog()
        generator = TradingSignalGenerator(error_log=error_log)
        classification = RegimeClassifier().classify(bull_snapshot())
        output = generator.generate(None, classification)
        assert output.long_candidates == ()
        assert output.regime_positioning.regime == Regime.BULL
        assert output.regime_positioning.long_exposure == pytest.approx(75.0)
        assert error_log.count_by_stage() == {"signals": 1}


class TestEntryExitSignals:

    def setup_method(self):
        sectors = example_sectors()
        self.snapshot = bull_snapshot(sectors=sectors)

    def signal(self, position, regime=Regime.BULL, predictive=None):
        return TradingSignalGenerator.entry_exit_signals(self.snapshot, regime, [position], predictive)[0]

    def test_aligned_long_holds(self):
        signal = self.signal(HeldPosition("XLK", CandidateType.LONG, 100.0, 101.0))
        assert signal.action == PositionAction.HOLD
        assert signal.urgency == "low"
        assert signal.reasoning == ("Position aligned with current market conditions",)

    def test_deteriorated_trend_exits(self):
        signal = self.signal(HeldPosition("XLF", CandidateType.LONG, 100.0, 100.0))
        assert signal.action == PositionAction.EXIT
        assert signal.urgency == "high"

    def test_profit_target_reduces(self):
        signal = self.signal(HeldPosition("XLY", CandidateType.LONG, 100.0, 104.0))
        assert signal.action == PositionAction.REDUCE

    def test_stop_loss_exits(self):
        signal = self.signal(HeldPosition("XLK", CandidateType.LONG, 100.0, 97.0))
        assert signal.action == PositionAction.EXIT
        assert "Stop loss triggered" in signal.reasoning

    def test_misaligned_with_regime(self):
        signal = self.signal(HeldPosition("XLK", CandidateType.LONG, 100.0, 101.0), regime=Regime.BEAR)
        assert signal.action == PositionAction.REDUCE
        assert signal.urgency == "medium"

    def test_bearish_divergence_reduces(self):
        predictive = with_divergence(self.snapshot, DivergenceType.BEARISH)
        signal = self.signal(HeldPosition("XLK", CandidateType.LONG, 100.0, 101.0), predictive=predictive)
        assert signal.action == PositionAction.REDUCE
        assert "Bearish momentum divergence detected" in signal.reasoning

    def test_missing_sector_data(self):
        signal = self.signal(HeldPosition("XLRE", CandidateType.LONG, 100.0, 101.0))
        assert signal.action == PositionAction.HOLD
        assert signal.reasoning == ("No sector data available",)
