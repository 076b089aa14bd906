"""Five-factor regime evaluation and early-warning triggers.

Factors:
1. Breadth (62%+ bull, 38%- bear)
2. EMA alignment (EMA20 vs EMA50 with a 0.25% buffer)
3. Trend score (9-day momentum >= |3|)
4. Volatility (VIX level and direction)
5. Gamma (dealer positioning)

Every factor carries separately computed bullish and bearish flags.
"""

from typing import List, Optional

from ..config import ClassifierConfig, DEFAULT_CLASSIFIER_CONFIG
from ..models import (
    FACTOR_NAMES,
    FactorSignal,
    GammaBias,
    MarketSnapshot,
    Regime,
    RegimeFactors,
    VolatilityTrend,
)
from .models import ConfirmationLevel, EarlyWarnings


def evaluate_factors(
    snapshot: MarketSnapshot,
    config: Optional[ClassifierConfig] = None,
) -> RegimeFactors:
    """Evaluate all five factors for a snapshot."""
    cfg = config or DEFAULT_CLASSIFIER_CONFIG
    spy = snapshot.spy
    breadth_pct = snapshot.breadth.breadth_pct
    vix = snapshot.vix
    gamma = snapshot.gamma

    return RegimeFactors(
        breadth=FactorSignal(
            bullish=breadth_pct >= cfg.breadth_bull,
            bearish=breadth_pct <= cfg.breadth_bear,
        ),
        ema=FactorSignal(
            bullish=spy.ema20 > spy.ema50 * cfg.ema_bull_mult,
            bearish=spy.ema20 < spy.ema50 * cfg.ema_bear_mult,
        ),
        trend=FactorSignal(
            bullish=spy.trend_score9 >= cfg.trend_bull,
            bearish=spy.trend_score9 <= cfg.trend_bear,
        ),
        volatility=FactorSignal(
            bullish=vix.value < cfg.vix_pivot or vix.trend == VolatilityTrend.FALLING,
            bearish=vix.value > cfg.vix_pivot or vix.trend == VolatilityTrend.RISING,
        ),
        gamma=FactorSignal(
            bullish=gamma.gex <= 0 or gamma.zero_gamma_dist < cfg.zero_gamma_bull_dist,
            bearish=gamma.gex < 0,
        ),
    )


def determine_regime(factors: RegimeFactors) -> Regime:
    """BULL when all five bullish flags hold, BEAR when all five bearish flags hold."""
    if factors.bullish_count == len(FACTOR_NAMES):
        return Regime.BULL
    if factors.bearish_count == len(FACTOR_NAMES):
        return Regime.BEAR
    return Regime.NEUTRAL


def _bull_deterioration(snapshot: MarketSnapshot, cfg: ClassifierConfig) -> List[str]:
    spy = snapshot.spy
    triggers = []
    if snapshot.breadth.breadth_pct < cfg.bull_breadth_warning:
        triggers.append(f"Breadth deteriorating below {cfg.bull_breadth_warning:.0%}")
    if spy.trend_score9 <= cfg.bull_trend_warning:
        triggers.append(f"Momentum slowing (trend score <= {cfg.bull_trend_warning})")
    if snapshot.vix.value > cfg.bull_vix_warning and snapshot.vix.trend == VolatilityTrend.RISING:
        triggers.append(f"VIX rising above {cfg.bull_vix_warning:g}")
    if spy.ema_spread < cfg.ema_compression:
        triggers.append("EMA compression detected")
    if snapshot.gamma.bias == GammaBias.SUPPRESSIVE:
        triggers.append("Gamma exposure turning suppressive")
    return triggers


def _bear_improvement(snapshot: MarketSnapshot, cfg: ClassifierConfig) -> List[str]:
    spy = snapshot.spy
    triggers = []
    if snapshot.breadth.breadth_pct > cfg.bear_breadth_improvement:
        triggers.append(f"Breadth improving above {cfg.bear_breadth_improvement:.0%}")
    if spy.trend_score9 >= cfg.bear_trend_improvement:
        triggers.append(f"Momentum improving (trend score >= {cfg.bear_trend_improvement})")
    if snapshot.vix.value < cfg.bear_vix_improvement and snapshot.vix.trend == VolatilityTrend.FALLING:
        triggers.append(f"VIX declining below {cfg.bear_vix_improvement:g}")
    if spy.ema20 > spy.ema50 * cfg.ema_recovery_mult:
        triggers.append("EMA alignment improving")
    if snapshot.gamma.bias == GammaBias.SUPPORTIVE:
        triggers.append("Gamma exposure turning supportive")
    return triggers


def estimate_change_timeframe(trigger_count: int) -> str:
    if trigger_count >= 4:
        return "1-3 days"
    if trigger_count >= 3:
        return "3-7 days"
    if trigger_count >= 2:
        return "1-2 weeks"
    return "2-4 weeks"


def detect_early_warnings(
    snapshot: MarketSnapshot,
    regime: Regime,
    config: Optional[ClassifierConfig] = None,
) -> EarlyWarnings:
    """Enumerate triggers that precede a change out of ``regime``.

    BULL is checked for deterioration, BEAR for improvement. NEUTRAL has no
    triggers.

    Args:
        snapshot: Current market snapshot
        regime: Regime in force
        config: Classifier thresholds

    Returns:
        EarlyWarnings with the warning flag, triggers and confirmation
    """
    cfg = config or DEFAULT_CLASSIFIER_CONFIG
    if regime == Regime.BULL:
        triggers = _bull_deterioration(snapshot, cfg)
    elif regime == Regime.BEAR:
        triggers = _bear_improvement(snapshot, cfg)
    else:
        triggers = []

    count = len(triggers)
    if count >= cfg.high_confirmation_count:
        confirmation = ConfirmationLevel.HIGH
    elif count >= cfg.medium_confirmation_count:
        confirmation = ConfirmationLevel.MEDIUM
    else:
        confirmation = ConfirmationLevel.LOW

    return EarlyWarnings(
        regime=regime,
        warning=count >= cfg.warning_trigger_count,
        triggers=tuple(triggers),
        confirmation=confirmation,
        time_to_change=estimate_change_timeframe(count),
    )
