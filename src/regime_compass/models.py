"""Core data models for the Regime Compass scoring engine.

Contains the inputs every stage reads:
- MarketSnapshot and its parts (breadth, indexes, sectors, VIX, gamma, options flow)
- RegimeFactors / RegimeClassification produced by the classifier
- TradingCandidate records produced by the signal generator
- RiskParameters and PortfolioMetrics supplied by the caller
- PriceHistory, the OHLCV series used by divergence and volume analysis
"""

import json
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

import pandas as pd


class Regime(Enum):
    """Overall market state."""
    BULL = "BULL"
    BEAR = "BEAR"
    NEUTRAL = "NEUTRAL"


class VolatilityTrend(Enum):
    """Direction of the VIX."""
    RISING = "rising"
    FALLING = "falling"
    FLAT = "flat"


class GammaBias(Enum):
    """Dealer gamma positioning effect on price."""
    SUPPORTIVE = "supportive"
    NEUTRAL = "neutral"
    SUPPRESSIVE = "suppressive"


class Recommendation(Enum):
    """Per-sector recommendation supplied with the snapshot."""
    BUY = "BUY"
    HOLD = "HOLD"
    SELL = "SELL"
    AVOID = "AVOID"


class TradingBias(Enum):
    """Directional bias of a forward-looking signal."""
    BULLISH = "bullish"
    BEARISH = "bearish"
    NEUTRAL = "neutral"


class CandidateType(Enum):
    """Kind of trade a candidate represents."""
    LONG = "LONG"
    SHORT = "SHORT"
    HEDGE = "HEDGE"


class RiskLevel(Enum):
    """Shared risk scale for predictive, divergence and portfolio risk output."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    def escalate(self) -> "RiskLevel":
        """One step up the scale, stopping at HIGH unless already CRITICAL."""
        if self == RiskLevel.LOW:
            return RiskLevel.MEDIUM
        if self == RiskLevel.MEDIUM:
            return RiskLevel.HIGH
        return self


REQUIRED_INDEXES = ("SPY", "QQQ", "IWM")


@dataclass(frozen=True)
class BreadthData:
    """Market breadth for one evaluation cycle.

    Attributes:
        breadth_pct: Fraction of tracked names advancing (0-1)
        advancing: Advancing issue count
        declining: Declining issue count
        unchanged: Unchanged issue count
        new_highs: Names at new highs
        new_lows: Names at new lows
    """
    breadth_pct: float
    advancing: int = 0
    declining: int = 0
    unchanged: int = 0
    new_highs: int = 0
    new_lows: int = 0

    def __post_init__(self):
        if not 0.0 <= self.breadth_pct <= 1.0:
            raise ValueError(f"breadth_pct must be within [0, 1], got {self.breadth_pct}")

    @property
    def advance_decline_ratio(self) -> float:
        """Advancers over decliners, or the advancer count when nothing declined."""
        if self.declining > 0:
            return self.advancing / self.declining
        return float(self.advancing)

    @property
    def participation_rate(self) -> float:
        moving = self.advancing + self.declining
        total = moving + self.unchanged
        if total == 0:
            return 0.0
        return moving / total


@dataclass(frozen=True)
class IndexData:
    """Index quote with its derived trend fields."""
    symbol: str
    price: float
    ema20: float
    ema50: float
    trend_score9: int
    atr14: float
    change_percent: float = 0.0
    volume: float = 0.0

    @property
    def ema_spread(self) -> float:
        """Signed (EMA20 - EMA50) / EMA50."""
        return (self.ema20 - self.ema50) / self.ema50


@dataclass(frozen=True)
class SectorData:
    """Sector ETF quote with score and recommendation.

    Attributes:
        symbol: Sector ETF symbol (e.g., "XLK")
        name: Human readable sector name
        price: Last price
        change_percent: Session change in percent (1.5 means +1.5%)
        trend_score9: 9-day trend score (-9..9)
        relative_strength: Score relative to the cross-sectional mean
        volume: Session volume in shares
        recommendation: Upstream recommendation for the sector
        atr14: Optional 14-period ATR; estimated from price when absent
    """
    symbol: str
    name: str
    price: float
    change_percent: float
    trend_score9: int
    relative_strength: float = 0.0
    volume: float = 0.0
    recommendation: Recommendation = Recommendation.HOLD
    atr14: Optional[float] = None


@dataclass(frozen=True)
class VIXData:
    """VIX level and direction."""
    value: float
    trend: VolatilityTrend = VolatilityTrend.FLAT
    five_day_change: float = 0.0
    change_percent: float = 0.0


@dataclass(frozen=True)
class GammaData:
    """Dealer gamma exposure."""
    gex: float
    zero_gamma_dist: float
    bias: GammaBias = GammaBias.NEUTRAL


@dataclass(frozen=True)
class OptionsFlow:
    """Options-flow reading supplied by an external collaborator."""
    bias: TradingBias = TradingBias.NEUTRAL
    confidence: float = 0.5
    put_call_ratio: float = 1.0
    unusual_activity: bool = False

    @classmethod
    def neutral(cls) -> "OptionsFlow":
        """Fallback used when no options data is available."""
        return cls()


@dataclass(frozen=True)
class MarketSnapshot:
    """Point-in-time aggregate of all market inputs.

    Built once per evaluation cycle by the caller and never mutated.
    SPY, QQQ and IWM must be present in ``indexes``.
    """
    timestamp: datetime
    breadth: BreadthData
    indexes: Dict[str, IndexData]
    sectors: Dict[str, SectorData]
    vix: VIXData
    gamma: GammaData
    options_flow: Optional[OptionsFlow] = None

    def __post_init__(self):
        missing = [s for s in REQUIRED_INDEXES if s not in self.indexes]
        if missing:
            raise ValueError(f"Snapshot is missing required indexes: {', '.join(missing)}")

    @property
    def spy(self) -> IndexData:
        return self.indexes["SPY"]

    def price_of(self, symbol: str) -> Optional[float]:
        """Look up a traded price among indexes and sectors."""
        if symbol in self.indexes:
            return self.indexes[symbol].price
        if symbol in self.sectors:
            return self.sectors[symbol].price
        return None

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "timestamp": self.timestamp.isoformat(),
            "breadth": {
                "breadth_pct": self.breadth.breadth_pct,
                "advancing": self.breadth.advancing,
                "declining": self.breadth.declining,
                "unchanged": self.breadth.unchanged,
                "new_highs": self.breadth.new_highs,
                "new_lows": self.breadth.new_lows,
            },
            "indexes": {
                symbol: {
                    "price": idx.price,
                    "ema20": idx.ema20,
                    "ema50": idx.ema50,
                    "trend_score9": idx.trend_score9,
                    "atr14": idx.atr14,
                    "change_percent": idx.change_percent,
                    "volume": idx.volume,
                }
                for symbol, idx in sorted(self.indexes.items())
            },
            "sectors": {
                symbol: {
                    "name": s.name,
                    "price": s.price,
                    "change_percent": s.change_percent,
                    "trend_score9": s.trend_score9,
                    "relative_strength": s.relative_strength,
                    "volume": s.volume,
                    "recommendation": s.recommendation.value,
                    "atr14": s.atr14,
                }
                for symbol, s in sorted(self.sectors.items())
            },
            "vix": {
                "value": self.vix.value,
                "trend": self.vix.trend.value,
                "five_day_change": self.vix.five_day_change,
                "change_percent": self.vix.change_percent,
            },
            "gamma": {
                "gex": self.gamma.gex,
                "zero_gamma_dist": self.gamma.zero_gamma_dist,
                "bias": self.gamma.bias.value,
            },
            "options_flow": None if self.options_flow is None else {
                "bias": self.options_flow.bias.value,
                "confidence": self.options_flow.confidence,
                "put_call_ratio": self.options_flow.put_call_ratio,
                "unusual_activity": self.options_flow.unusual_activity,
            },
        }

    @classmethod
    def from_dict(cls, data: dict) -> "MarketSnapshot":
        """Create from dictionary."""
        flow = data.get("options_flow")
        return cls(
            timestamp=datetime.fromisoformat(data["timestamp"]),
            breadth=BreadthData(**data["breadth"]),
            indexes={
                symbol: IndexData(symbol=symbol, **values)
                for symbol, values in data["indexes"].items()
            },
            sectors={
                symbol: SectorData(
                    symbol=symbol,
                    name=values.get("name", symbol),
                    price=values["price"],
                    change_percent=values.get("change_percent", 0.0),
                    trend_score9=values["trend_score9"],
                    relative_strength=values.get("relative_strength", 0.0),
                    volume=values.get("volume", 0.0),
                    recommendation=Recommendation(values.get("recommendation", "HOLD")),
                    atr14=values.get("atr14"),
                )
                for symbol, values in data.get("sectors", {}).items()
            },
            vix=VIXData(
                value=data["vix"]["value"],
                trend=VolatilityTrend(data["vix"].get("trend", "flat")),
                five_day_change=data["vix"].get("five_day_change", 0.0),
                change_percent=data["vix"].get("change_percent", 0.0),
            ),
            gamma=GammaData(
                gex=data["gamma"]["gex"],
                zero_gamma_dist=data["gamma"]["zero_gamma_dist"],
                bias=GammaBias(data["gamma"].get("bias", "neutral")),
            ),
            options_flow=None if flow is None else OptionsFlow(
                bias=TradingBias(flow.get("bias", "neutral")),
                confidence=flow.get("confidence", 0.5),
                put_call_ratio=flow.get("put_call_ratio", 1.0),
                unusual_activity=flow.get("unusual_activity", False),
            ),
        )

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), sort_keys=True)

    @classmethod
    def from_json(cls, json_str: str) -> "MarketSnapshot":
        return cls.from_dict(json.loads(json_str))


@dataclass(frozen=True)
class FactorSignal:
    """Bullish and bearish verdicts for one regime factor.

    The two flags are evaluated independently and may both be true
    (e.g., VIX below 20 while rising).
    """
    bullish: bool
    bearish: bool

    def supports(self, regime: Regime) -> bool:
        if regime == Regime.BULL:
            return self.bullish
        if regime == Regime.BEAR:
            return self.bearish
        return False


FACTOR_NAMES = ("breadth", "ema", "trend", "volatility", "gamma")


@dataclass(frozen=True)
class RegimeFactors:
    """The five regime factors, each carrying its own bull/bear pair."""
    breadth: FactorSignal
    ema: FactorSignal
    trend: FactorSignal
    volatility: FactorSignal
    gamma: FactorSignal

    def items(self) -> Iterator[Tuple[str, FactorSignal]]:
        for name in FACTOR_NAMES:
            yield name, getattr(self, name)

    @property
    def bullish_count(self) -> int:
        return sum(1 for _, f in self.items() if f.bullish)

    @property
    def bearish_count(self) -> int:
        return sum(1 for _, f in self.items() if f.bearish)

    def dominant_side(self) -> Regime:
        """Side with more true flags; bullish wins ties."""
        if self.bearish_count > self.bullish_count:
            return Regime.BEAR
        return Regime.BULL

    def aligned(self, side: Regime) -> List[str]:
        """Names of the factors whose flag for ``side`` is true."""
        return [name for name, f in self.items() if f.supports(side)]


@dataclass(frozen=True)
class RegimeClassification:
    """Classifier output for one snapshot.

    Attributes:
        regime: BULL, BEAR or NEUTRAL
        confidence: Clamped to [0.1, 0.95]
        strength: Composite strength, clamped to [0, 100]
        factors: Factor snapshot the regime was derived from
        previous_regime: Regime of the caller's previous cycle, if any
        duration_days: Consecutive cycles spent in ``regime``
    """
    regime: Regime
    confidence: float
    strength: float
    factors: RegimeFactors
    timestamp: datetime
    previous_regime: Optional[Regime] = None
    duration_days: int = 0

    @property
    def changed(self) -> bool:
        return self.previous_regime is not None and self.previous_regime != self.regime


@dataclass(frozen=True)
class TradingCandidate:
    """A ranked trade idea, created fresh each cycle."""
    symbol: str
    candidate_type: CandidateType
    confidence: float
    entry: float
    stop_loss: float
    target: float
    atr: float
    risk_reward: float
    reasoning: Tuple[str, ...] = ()
    name: str = ""
    sector: Optional[str] = None
    timeframe: str = "swing"

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "symbol": self.symbol,
            "name": self.name,
            "type": self.candidate_type.value,
            "confidence": self.confidence,
            "entry": self.entry,
            "stop_loss": self.stop_loss,
            "target": self.target,
            "atr": self.atr,
            "risk_reward": self.risk_reward,
            "reasoning": list(self.reasoning),
            "sector": self.sector,
            "timeframe": self.timeframe,
        }


@dataclass(frozen=True)
class RiskParameters:
    """Session risk limits supplied by the caller.

    Attributes:
        account_size: Account equity in dollars
        risk_per_trade: Fraction of equity risked per trade (0.01 = 1%)
        max_position_size: Largest single position as a fraction of equity
        max_drawdown: Drawdown limit as a fraction (0.07 = 7%)
        vix_threshold: VIX level above which sizes are cut
        max_sector_concentration: Largest allowed sector weight
        min_position_dollars: Smallest viable position in dollars
    """
    account_size: float
    risk_per_trade: float = 0.01
    max_position_size: float = 0.10
    max_drawdown: float = 0.07
    vix_threshold: float = 25.0
    max_sector_concentration: float = 0.30
    min_position_dollars: float = 1000.0

    def __post_init__(self):
        if self.account_size <= 0:
            raise ValueError(f"account_size must be positive, got {self.account_size}")
        for name in ("risk_per_trade", "max_position_size", "max_drawdown", "max_sector_concentration"):
            value = getattr(self, name)
            if not 0.0 < value <= 1.0:
                raise ValueError(f"{name} must be within (0, 1], got {value}")
        if self.min_position_dollars < 0:
            raise ValueError("min_position_dollars cannot be negative")


@dataclass(frozen=True)
class Position:
    """An open position held in the external trading ledger."""
    symbol: str
    size: float
    entry_price: float
    current_price: float
    atr: float
    stop_loss: float = 0.0
    confidence: float = 0.5
    sector: Optional[str] = None

    @property
    def market_value(self) -> float:
        return self.size * self.current_price


@dataclass(frozen=True)
class PortfolioMetrics:
    """Read-only view of the external ledger's portfolio state.

    Attributes:
        total_exposure: Gross exposure as a fraction of equity (1.5 = 150%)
        drawdown: Current drawdown as a fraction of peak equity
        sector_concentration: Sector symbol -> weight (0-1)
        hedge_ratio: Hedged fraction of exposure
        positions: Open positions
        daily_pnl_pct: Today's P&L as a fraction (-0.05 = -5%)
    """
    total_exposure: float = 0.0
    drawdown: float = 0.0
    sector_concentration: Dict[str, float] = field(default_factory=dict)
    hedge_ratio: float = 0.0
    positions: Tuple[Position, ...] = ()
    daily_pnl_pct: float = 0.0

    @property
    def max_sector_weight(self) -> float:
        if not self.sector_concentration:
            return 0.0
        return max(self.sector_concentration.values())


@dataclass(frozen=True)
class OHLCV:
    """OHLCV candlestick data."""
    open: float
    high: float
    low: float
    close: float
    volume: float
    timestamp: int = 0


OHLCV_COLUMNS = ("open", "high", "low", "close", "volume")


@dataclass(frozen=True, eq=False)
class PriceHistory:
    """Historical OHLCV series, oldest to newest.

    Wraps a DataFrame with open/high/low/close/volume columns. Supplied by
    the caller's historical-data collaborator.
    """
    frame: pd.DataFrame

    def __post_init__(self):
        missing = [c for c in OHLCV_COLUMNS if c not in self.frame.columns]
        if missing:
            raise ValueError(f"Price history is missing columns: {', '.join(missing)}")
        if self.frame[list(OHLCV_COLUMNS)].isna().any().any():
            raise ValueError("Price history contains missing values")

    @classmethod
    def from_candles(cls, candles: Sequence[OHLCV]) -> "PriceHistory":
        frame = pd.DataFrame(
            [(c.open, c.high, c.low, c.close, c.volume) for c in candles],
            columns=list(OHLCV_COLUMNS),
            index=[c.timestamp for c in candles],
        )
        return cls(frame.astype(float))

    @classmethod
    def from_series(
        cls,
        closes: Sequence[float],
        volumes: Optional[Sequence[float]] = None,
        highs: Optional[Sequence[float]] = None,
        lows: Optional[Sequence[float]] = None,
    ) -> "PriceHistory":
        """Build a history from parallel lists; missing highs/lows default to closes."""
        n = len(closes)
        for name, values in (("volumes", volumes), ("highs", highs), ("lows", lows)):
            if values is not None and len(values) != n:
                raise ValueError(f"{name} length {len(values)} does not match closes length {n}")
        frame = pd.DataFrame({
            "open": list(closes),
            "high": list(highs) if highs is not None else list(closes),
            "low": list(lows) if lows is not None else list(closes),
            "close": list(closes),
            "volume": list(volumes) if volumes is not None else [0.0] * n,
        })
        return cls(frame.astype(float))

    def __len__(self) -> int:
        return len(self.frame)

    @property
    def closes(self) -> List[float]:
        return self.frame["close"].astype(float).tolist()

    @property
    def highs(self) -> List[float]:
        return self.frame["high"].astype(float).tolist()

    @property
    def lows(self) -> List[float]:
        return self.frame["low"].astype(float).tolist()

    @property
    def volumes(self) -> List[float]:
        return self.frame["volume"].astype(float).tolist()

    def tail(self, n: int) -> "PriceHistory":
        return PriceHistory(self.frame.tail(n))
