"""Regime Compass Engine - Main Orchestrator.

Runs one evaluation cycle through every stage, in order:
1. Regime classifier - factor vote, regime and confidence
2. Strength scorer - composite strength, durability and vulnerability
3. Predictive engine - divergence, volume and regime probabilities
4. Sector rotation - scores, rotation and recommendations
5. Risk manager - portfolio assessment, alerts and emergency triggers
6. Signal generator - positioning, candidates and avoid list
7. Position sizer - shares for each candidate
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from .cache import ResultCache, cached, snapshot_key
from .config import EngineConfig
from .errors import ErrorLog, ErrorRecord, record_error
from .models import (
    MarketSnapshot,
    PortfolioMetrics,
    PriceHistory,
    RegimeClassification,
    RiskParameters,
)
from .predictive import PredictiveAnalysis, PredictiveSignalEngine
from .regime import RegimeClassifier, RegimeStrengthAnalysis, RegimeStrengthScorer
from .risk import PositionSizeCalculation, PositionSizer, RiskManagementOutput, RiskManager
from .sectors import SectorAnalysis, SectorRotationAnalyzer
from .signals import TradingSignalGenerator, TradingSignalOutput

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PipelineResult:
    """Every stage's output for one snapshot.

    Attributes:
        classification: Regime, confidence and factors
        strength: Composite strength analysis
        predictive: Forward-looking analysis
        sectors: Sector rotation analysis
        risk: Portfolio risk assessment
        signals: Positioning, candidates and avoid list
        position_sizes: Sizing for each long and hedge candidate
        errors: Errors swallowed by stages that degraded during this run
    """
    classification: RegimeClassification
    strength: RegimeStrengthAnalysis
    predictive: PredictiveAnalysis
    sectors: SectorAnalysis
    risk: RiskManagementOutput
    signals: TradingSignalOutput
    position_sizes: Tuple[PositionSizeCalculation, ...] = ()
    errors: Tuple[ErrorRecord, ...] = ()

    @property
    def degraded(self) -> bool:
        return bool(self.errors)


class RegimeEngine:
    """Main orchestrator for a Regime Compass evaluation cycle."""

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        cache: Optional[ResultCache] = None,
        error_log: Optional[ErrorLog] = None,
    ):
        """Initialize with configuration.

        Args:
            config: Engine configuration (uses defaults if None)
            cache: Result cache used to memoize classifications per snapshot
            error_log: Collects the errors of every run once the run
                completes; a fresh log is created when omitted
        """
        self.config = config or EngineConfig()
        self.cache = cache
        self.error_log = error_log if error_log is not None else ErrorLog()

        cfg = self.config
        self.scorer = RegimeStrengthScorer(cfg.strength, cfg.classifier)
        self.classifier = RegimeClassifier(cfg.classifier, self.scorer)
        self.predictive_engine = PredictiveSignalEngine(cfg.predictive)
        self.sector_analyzer = SectorRotationAnalyzer(cfg.sectors)
        self.risk_manager = RiskManager(cfg.risk)
        self.signal_generator = TradingSignalGenerator(cfg.signals)
        self.position_sizer = PositionSizer(cfg.risk)

        if cache is not None:
            self._classify = cached(cache, self._classification_key, self.classifier.classify)
        else:
            self._classify = self.classifier.classify

    @staticmethod
    def _classification_key(
        snapshot: MarketSnapshot,
        previous: Optional[RegimeClassification] = None,
        error_log: Optional[ErrorLog] = None,
    ):
        if previous is None:
            return ("classification", snapshot_key(snapshot))
        return ("classification", snapshot_key(snapshot), previous.regime.value, previous.duration_days)

    def run(
        self,
        snapshot: MarketSnapshot,
        risk_params: RiskParameters,
        portfolio: Optional[PortfolioMetrics] = None,
        history: Optional[PriceHistory] = None,
        previous: Optional[RegimeClassification] = None,
    ) -> PipelineResult:
        """Run every stage for one snapshot.

        Args:
            snapshot: Current market snapshot
            risk_params: Session risk limits
            portfolio: Read-only portfolio state; empty when omitted
            history: SPY price history for divergence and volume analysis
            previous: Last cycle's classification

        Returns:
            PipelineResult with each stage's output and the errors recorded
            during this run
        """
        portfolio = portfolio or PortfolioMetrics()
        run_log = ErrorLog()

        classification = self._classify(snapshot, previous, error_log=run_log)
        strength = self.scorer.score(snapshot, classification, error_log=run_log)
        predictive = self.predictive_engine.predict(snapshot, history, classification, error_log=run_log)
        sectors = self.sector_analyzer.analyze(snapshot.sectors, error_log=run_log)
        risk = self.risk_manager.assess(
            snapshot,
            portfolio,
            risk_params,
            classification=classification,
            previous_strength=previous.strength if previous else None,
            error_log=run_log,
        )
        signals = self.signal_generator.generate(
            snapshot, classification, predictive=predictive, sectors=sectors, error_log=run_log
        )
        sizes = self._size_candidates(snapshot, classification, signals, risk_params, portfolio, run_log)

        errors = tuple(run_log.entries)
        self.error_log.extend(errors)
        logger.info(
            f"Cycle complete: {classification.regime.value} "
            f"confidence={classification.confidence:.2f} strength={classification.strength:.1f} "
            f"bias={predictive.overall_bias.value} risk={risk.assessment.overall_risk_level.value} "
            f"candidates={len(signals.candidates)} errors={len(errors)}"
        )
        return PipelineResult(
            classification=classification,
            strength=strength,
            predictive=predictive,
            sectors=sectors,
            risk=risk,
            signals=signals,
            position_sizes=tuple(sizes),
            errors=errors,
        )

    def _size_candidates(
        self,
        snapshot: MarketSnapshot,
        classification: RegimeClassification,
        signals: TradingSignalOutput,
        risk_params: RiskParameters,
        portfolio: PortfolioMetrics,
        error_log: ErrorLog,
    ) -> List[PositionSizeCalculation]:
        sizes = []
        for candidate in signals.candidates:
            try:
                sizes.append(self.position_sizer.size(
                    candidate, risk_params, snapshot.vix.value, classification.regime, portfolio
                ))
            except ValueError as e:
                logger.warning(f"Skipping size for {candidate.symbol}: {e}")
                record_error(error_log, "sizing", e)
        return sizes
