"""Five-factor market regime classifier.

BULL requires all five bullish flags and BEAR all five bearish flags;
anything mixed is NEUTRAL. The classifier is stateless: the previous
classification, if any, is passed in by the caller.
"""

import logging
from datetime import datetime
from typing import Optional

from ..config import ClassifierConfig, DEFAULT_CLASSIFIER_CONFIG
from ..errors import ErrorLog, record_error
from ..models import (
    FactorSignal,
    MarketSnapshot,
    Regime,
    RegimeClassification,
    RegimeFactors,
)
from .factors import detect_early_warnings, determine_regime, evaluate_factors
from .models import DetailedAnalysis, EarlyWarnings, FactorDetail, RegimeChangeOutlook
from .strength import RegimeStrengthScorer

logger = logging.getLogger(__name__)

_NO_SIGNAL = FactorSignal(bullish=False, bearish=False)
NO_FACTORS = RegimeFactors(_NO_SIGNAL, _NO_SIGNAL, _NO_SIGNAL, _NO_SIGNAL, _NO_SIGNAL)


class RegimeClassifier:
    """Classifies market regime from a snapshot."""

    def __init__(
        self,
        config: Optional[ClassifierConfig] = None,
        scorer: Optional[RegimeStrengthScorer] = None,
        error_log: Optional[ErrorLog] = None,
    ):
        """Initialize classifier.

        Args:
            config: Classifier thresholds
            scorer: Strength scorer used when classify() is not given a
                strength. Defaults to a scorer sharing this config.
            error_log: Receives errors swallowed by a NEUTRAL fallback
        """
        self.config = config or DEFAULT_CLASSIFIER_CONFIG
        self.error_log = error_log
        self.scorer = scorer or RegimeStrengthScorer(classifier_config=self.config, error_log=error_log)

    def evaluate_factors(self, snapshot: MarketSnapshot) -> RegimeFactors:
        return evaluate_factors(snapshot, self.config)

    def classify(
        self,
        snapshot: MarketSnapshot,
        previous: Optional[RegimeClassification] = None,
        strength: Optional[float] = None,
        error_log: Optional[ErrorLog] = None,
    ) -> RegimeClassification:
        """Classify the regime for a snapshot.

        Args:
            snapshot: Current market snapshot
            previous: Last cycle's classification, used for duration tracking
            strength: Composite strength (0-100); scored from the snapshot
                when omitted
            error_log: Log for this call; the log given at construction
                when omitted

        Returns:
            RegimeClassification. On malformed input, NEUTRAL with
            confidence at the floor.
        """
        try:
            factors = self.evaluate_factors(snapshot)
            regime = determine_regime(factors)

            if strength is None:
                preliminary = self._build(snapshot, regime, 0.0, 0.0, factors, previous)
                strength = self.scorer.score(snapshot, preliminary, error_log=error_log).overall_strength
            strength = max(0.0, min(100.0, float(strength)))

            confidence = self._confidence(factors, regime, strength)
        except (ArithmeticError, AttributeError, KeyError, TypeError, ValueError) as e:
            logger.warning(f"Regime classification failed, defaulting to NEUTRAL: {e}")
            record_error(self.error_log if error_log is None else error_log, "classifier", e)
            return self._build(snapshot, Regime.NEUTRAL, self.config.confidence_min, 0.0, NO_FACTORS, previous)

        classification = self._build(snapshot, regime, confidence, strength, factors, previous)
        if classification.changed:
            logger.info(
                f"Regime change: {previous.regime.value} -> {regime.value} "
                f"(confidence {confidence:.2f}, strength {strength:.1f})"
            )
        else:
            logger.debug(
                f"Regime {regime.value}: bull={factors.bullish_count}/5 "
                f"bear={factors.bearish_count}/5 confidence={confidence:.2f}"
            )
        return classification

    def _confidence(self, factors: RegimeFactors, regime: Regime, strength: float) -> float:
        if regime == Regime.BULL:
            aligned = factors.bullish_count
        elif regime == Regime.BEAR:
            aligned = factors.bearish_count
        else:
            aligned = max(factors.bullish_count, factors.bearish_count)

        cfg = self.config
        confidence = cfg.alignment_weight * (aligned / 5) + cfg.strength_weight * (strength / 100)
        return max(cfg.confidence_min, min(cfg.confidence_max, confidence))

    @staticmethod
    def _build(
        snapshot: MarketSnapshot,
        regime: Regime,
        confidence: float,
        strength: float,
        factors: RegimeFactors,
        previous: Optional[RegimeClassification],
    ) -> RegimeClassification:
        timestamp = getattr(snapshot, "timestamp", None) or datetime.now()
        if previous is not None and previous.regime == regime:
            duration = previous.duration_days + 1
        else:
            duration = 0
        return RegimeClassification(
            regime=regime,
            confidence=confidence,
            strength=strength,
            factors=factors,
            timestamp=timestamp,
            previous_regime=previous.regime if previous else None,
            duration_days=duration,
        )

    def detect_early_warnings(self, snapshot: MarketSnapshot, regime: Regime) -> EarlyWarnings:
        """Deterioration (BULL) or improvement (BEAR) triggers for ``regime``."""
        return detect_early_warnings(snapshot, regime, self.config)

    def get_detailed_analysis(self, snapshot: MarketSnapshot) -> DetailedAnalysis:
        """Classification with a per-factor breakdown."""
        classification = self.classify(snapshot)
        factors = classification.factors
        spy = snapshot.spy
        pct = snapshot.breadth.breadth_pct

        if pct >= self.config.breadth_bull:
            breadth_status = "Strong"
        elif pct <= self.config.breadth_bear:
            breadth_status = "Weak"
        else:
            breadth_status = "Neutral"

        details = {
            "breadth": FactorDetail(
                name="breadth",
                status=breadth_status,
                value=pct,
                bullish=factors.breadth.bullish,
                bearish=factors.breadth.bearish,
                description=f"{pct:.1%} of names advancing",
            ),
            "ema": FactorDetail(
                name="ema",
                status=self._status(factors.ema),
                value=spy.ema_spread,
                bullish=factors.ema.bullish,
                bearish=factors.ema.bearish,
                description=f"EMA20 {spy.ema20:.2f} vs EMA50 {spy.ema50:.2f} ({spy.ema_spread:+.2%})",
            ),
            "trend": FactorDetail(
                name="trend",
                status=self._status(factors.trend),
                value=float(spy.trend_score9),
                bullish=factors.trend.bullish,
                bearish=factors.trend.bearish,
                description=f"9-day trend score {spy.trend_score9:+d}",
            ),
            "volatility": FactorDetail(
                name="volatility",
                status=self._status(factors.volatility),
                value=snapshot.vix.value,
                bullish=factors.volatility.bullish,
                bearish=factors.volatility.bearish,
                description=f"VIX {snapshot.vix.value:.2f} ({snapshot.vix.trend.value})",
            ),
            "gamma": FactorDetail(
                name="gamma",
                status=self._status(factors.gamma),
                value=snapshot.gamma.gex,
                bullish=factors.gamma.bullish,
                bearish=factors.gamma.bearish,
                description=f"GEX {snapshot.gamma.gex / 1e9:+.2f}B ({snapshot.gamma.bias.value})",
            ),
        }
        return DetailedAnalysis(
            classification=classification,
            factors=details,
            early_warnings=self.detect_early_warnings(snapshot, classification.regime),
        )

    @staticmethod
    def _status(signal: FactorSignal) -> str:
        if signal.bullish and not signal.bearish:
            return "Bullish"
        if signal.bearish and not signal.bullish:
            return "Bearish"
        if signal.bullish and signal.bearish:
            return "Mixed"
        return "Neutral"

    def is_regime_change_imminent(self, snapshot: MarketSnapshot, regime: Regime) -> RegimeChangeOutlook:
        """Imminent at three or more triggers; probability rises 0.2 per trigger up to 0.9."""
        warnings = self.detect_early_warnings(snapshot, regime)
        count = len(warnings.triggers)
        return RegimeChangeOutlook(
            imminent=count >= 3,
            probability=min(0.9, count * 0.2),
            timeframe=warnings.time_to_change,
            triggers=warnings.triggers,
        )
