"""Pytest configuration and shared fixtures."""

import tempfile
from datetime import datetime
from pathlib import Path

import pytest

from regime_compass.models import (
    BreadthData,
    GammaBias,
    GammaData,
    IndexData,
    MarketSnapshot,
    Recommendation,
    SectorData,
    VIXData,
    VolatilityTrend,
)

SNAPSHOT_TIME = datetime(2024, 3, 15, 16, 0)


def make_index(symbol="SPY", price=500.0, ema20=105.0, ema50=102.5, trend_score9=4,
               atr14=5.0, change_percent=0.5, volume=50_000_000):
    return IndexData(
        symbol=symbol,
        price=price,
        ema20=ema20,
        ema50=ema50,
        trend_score9=trend_score9,
        atr14=atr14,
        change_percent=change_percent,
        volume=volume,
    )


def make_sector(symbol, trend_score9, price=100.0, change_percent=0.5, relative_strength=0.0,
                volume=10_000_000, recommendation=Recommendation.HOLD, atr14=None, name=None):
    return SectorData(
        symbol=symbol,
        name=name or symbol,
        price=price,
        change_percent=change_percent,
        trend_score9=trend_score9,
        relative_strength=relative_strength,
        volume=volume,
        recommendation=recommendation,
        atr14=atr14,
    )


def make_snapshot(
    breadth_pct=0.65,
    ema20=105.0,
    ema50=102.5,
    trend_score9=4,
    vix=15.0,
    vix_trend=VolatilityTrend.FALLING,
    vix_change=-2.0,
    gex=-1e9,
    zero_gamma_dist=0.005,
    gamma_bias=GammaBias.SUPPORTIVE,
    advancing=650,
    declining=300,
    unchanged=50,
    sectors=None,
    extra_indexes=None,
    spy_volume=50_000_000,
):
    """Snapshot builder; defaults produce the all-bullish example."""
    indexes = {
        "SPY": make_index("SPY", ema20=ema20, ema50=ema50, trend_score9=trend_score9, volume=spy_volume),
        "QQQ": make_index("QQQ", price=430.0, trend_score9=trend_score9),
        "IWM": make_index("IWM", price=200.0, trend_score9=trend_score9),
    }
    for index in extra_indexes or ():
        indexes[index.symbol] = index
    return MarketSnapshot(
        timestamp=SNAPSHOT_TIME,
        breadth=BreadthData(
            breadth_pct=breadth_pct,
            advancing=advancing,
            declining=declining,
            unchanged=unchanged,
        ),
        indexes=indexes,
        sectors={s.symbol: s for s in (sectors or ())},
        vix=VIXData(value=vix, trend=vix_trend, change_percent=vix_change),
        gamma=GammaData(gex=gex, zero_gamma_dist=zero_gamma_dist, bias=gamma_bias),
    )


def bull_snapshot(**overrides):
    return make_snapshot(**overrides)


def bear_snapshot(**overrides):
    values = dict(
        breadth_pct=0.30,
        ema20=98.0,
        ema50=102.0,
        trend_score9=-5,
        vix=32.0,
        vix_trend=VolatilityTrend.RISING,
        vix_change=8.0,
        gex=-2e9,
        zero_gamma_dist=0.03,
        gamma_bias=GammaBias.SUPPRESSIVE,
        advancing=300,
        declining=650,
    )
    values.update(overrides)
    return make_snapshot(**values)


def neutral_snapshot(**overrides):
    values = dict(
        breadth_pct=0.50,
        ema20=100.1,
        ema50=100.0,
        trend_score9=1,
        vix=20.0,
        vix_trend=VolatilityTrend.FLAT,
        vix_change=0.0,
        gex=5e8,
        zero_gamma_dist=0.02,
        gamma_bias=GammaBias.NEUTRAL,
        advancing=500,
        declining=450,
    )
    values.update(overrides)
    return make_snapshot(**values)


def example_sectors():
    return [
        make_sector("XLK", 6, recommendation=Recommendation.BUY),
        make_sector("XLY", 4),
        make_sector("XLF", -4),
        make_sector("XLE", -5),
        make_sector("XLU", 2),
    ]


@pytest.fixture
def temp_config_dir():
    """Create a temporary directory for config files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)
