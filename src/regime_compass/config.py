"""Configuration management module for Regime Compass."""

import json
import logging
import os
import sys
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from dotenv import load_dotenv

from .models import RiskParameters

logger = logging.getLogger(__name__)

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


@dataclass
class ClassifierConfig:
    """Five-factor regime classifier thresholds."""
    breadth_bull: float = 0.62          # breadth% >= 62% is bullish
    breadth_bear: float = 0.38          # breadth% <= 38% is bearish
    ema_bull_mult: float = 1.0025       # EMA20 > EMA50 * 1.0025
    ema_bear_mult: float = 0.9975       # EMA20 < EMA50 * 0.9975
    trend_bull: int = 3
    trend_bear: int = -3
    vix_pivot: float = 20.0             # below is bullish, above is bearish
    zero_gamma_bull_dist: float = 0.01
    alignment_weight: float = 0.6
    strength_weight: float = 0.4
    confidence_min: float = 0.1
    confidence_max: float = 0.95

    # Early warnings
    warning_trigger_count: int = 2
    medium_confirmation_count: int = 3
    high_confirmation_count: int = 4
    bull_breadth_warning: float = 0.55
    bear_breadth_improvement: float = 0.45
    bull_trend_warning: int = 1
    bear_trend_improvement: int = -1
    bull_vix_warning: float = 18.0
    bear_vix_improvement: float = 25.0
    ema_compression: float = 0.005
    ema_recovery_mult: float = 0.995


@dataclass
class StrengthConfig:
    """Regime strength weighting and action thresholds."""
    factor_weights: Dict[str, float] = field(default_factory=lambda: {
        "breadth": 0.25,
        "trend": 0.25,
        "ema": 0.20,
        "volatility": 0.15,
        "gamma": 0.15,
    })
    alignment_bonus: float = 10.0       # points per unit of aligned weight
    floor_strength: float = 10.0        # returned when nothing is aligned
    weak_factor_threshold: float = 30.0
    strong_factor_threshold: float = 70.0
    aggressive_min_strength: float = 70.0
    aggressive_max_vulnerability: float = 30.0
    defensive_min_vulnerability: float = 70.0
    cautious_min_strength: float = 50.0
    cautious_max_vulnerability: float = 50.0


@dataclass
class PredictiveConfig:
    """Divergence, volume and forecast parameters."""
    divergence_lookback: int = 5
    min_divergence_bars: int = 30
    rsi_period: int = 14
    macd_fast: int = 12
    macd_slow: int = 26
    macd_signal: int = 9
    volume_lookback: int = 5
    volume_spike_ratio: float = 1.5
    thrust_ratio: float = 1.2
    exhaustion_ratio: float = 2.0
    confirmation_ratio: float = 1.1
    min_price_move: float = 0.005
    volume_trend_band: float = 0.15
    pivot_lookback: int = 5
    expected_move_atr_mult: float = 1.5
    signal_weights: Dict[str, float] = field(default_factory=lambda: {
        "divergence": 0.25,
        "volume": 0.25,
        "options": 0.30,
        "regime": 0.20,
    })
    win_threshold: float = 0.3
    neutral_confidence: float = 0.3
    near_term_bounds: Tuple[float, float] = (0.05, 0.9)
    long_term_bounds: Tuple[float, float] = (0.1, 0.7)


@dataclass
class SectorConfig:
    """Sector rotation thresholds."""
    strong_score: int = 5
    moderate_score: int = 1
    very_weak_score: int = -3
    overweight_min_score: int = 3
    max_overweight: int = 3
    underweight_max_score: int = -3
    rotation_threshold: float = 2.0
    rotation_scale: float = 5.0
    groups: Dict[str, List[str]] = field(default_factory=lambda: {
        "growth": ["XLK", "XLY", "XLC"],
        "value": ["XLF", "XLE", "XLI", "XLB"],
        "defensive": ["XLU", "XLP", "XLV", "XLRE"],
        "cyclical": ["XLI", "XLB", "XLF", "XLE"],
        "technology": ["XLK", "XLC"],
        "consumer": ["XLY", "XLP"],
    })
    min_allocation_pct: float = 1.0
    max_allocation_pct: float = 25.0


@dataclass
class RiskConfig:
    """Position sizing and portfolio risk parameters."""
    stop_atr_mult: float = 2.0
    target_atr_mult: float = 1.5
    max_vix_cut: float = 0.5
    vix_taper_width: float = 20.0
    regime_multipliers: Dict[str, float] = field(default_factory=lambda: {
        "BULL": 1.25,
        "BEAR": 0.75,
        "NEUTRAL": 1.0,
    })
    heat_taper_start: float = 0.5       # drawdown / max_drawdown
    heat_floor: float = 0.1
    max_portfolio_heat: float = 0.20
    position_heat_warning: float = 0.05
    time_stop_days: int = 10
    neutral_time_stop_days: int = 5
    max_leverage: float = 1.5
    weak_regime_strength: float = 40.0


@dataclass
class SignalConfig:
    """Trading signal generation parameters."""
    inverse_etfs: List[Tuple[str, str]] = field(default_factory=lambda: [
        ("SDS", "ProShares UltraShort S&P500"),
        ("SQQQ", "ProShares UltraShort QQQ"),
        ("SH", "ProShares Short S&P500"),
    ])
    defensive_sectors: List[str] = field(default_factory=lambda: ["XLU", "XLP", "XLV"])
    long_atr_pct: float = 0.02          # estimated ATR when a sector has none
    defensive_atr_pct: float = 0.015
    inverse_atr_pct: float = 0.03
    high_volume: float = 15_000_000
    hedge_min_confidence: float = 0.5
    max_hedges: Dict[str, int] = field(default_factory=lambda: {
        "BULL": 1,
        "NEUTRAL": 2,
        "BEAR": 3,
    })


@dataclass
class CacheConfig:
    """Result cache limits."""
    enabled: bool = True
    max_size_bytes: int = 50 * 1024 * 1024
    default_ttl: float = 300.0          # seconds
    max_entries: int = 1000
    cleanup_interval: float = 60.0      # seconds between expiry sweeps


@dataclass
class AccountConfig:
    """Default session risk parameters."""
    account_size: float = 100_000.0
    risk_per_trade: float = 0.01
    max_position_size: float = 0.10
    max_drawdown: float = 0.07
    vix_threshold: float = 25.0
    max_sector_concentration: float = 0.30
    min_position_dollars: float = 1000.0


@dataclass
class EngineConfig:
    """Main configuration container."""
    classifier: ClassifierConfig = field(default_factory=ClassifierConfig)
    strength: StrengthConfig = field(default_factory=StrengthConfig)
    predictive: PredictiveConfig = field(default_factory=PredictiveConfig)
    sectors: SectorConfig = field(default_factory=SectorConfig)
    risk: RiskConfig = field(default_factory=RiskConfig)
    signals: SignalConfig = field(default_factory=SignalConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    account: AccountConfig = field(default_factory=AccountConfig)
    log_level: str = "INFO"


DEFAULT_CLASSIFIER_CONFIG = ClassifierConfig()
DEFAULT_STRENGTH_CONFIG = StrengthConfig()
DEFAULT_PREDICTIVE_CONFIG = PredictiveConfig()
DEFAULT_SECTOR_CONFIG = SectorConfig()
DEFAULT_RISK_CONFIG = RiskConfig()
DEFAULT_SIGNAL_CONFIG = SignalConfig()
DEFAULT_CACHE_CONFIG = CacheConfig()


class ConfigValidationError(Exception):
    """Raised when configuration validation fails."""
    pass


def configure_logging(level: str = "INFO") -> None:
    """Install a stdout handler on the root logger.

    Only applications call this; the library never configures logging itself.
    """
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s | %(levelname)-8s | %(name)-40s | %(message)s',
        datefmt='%H:%M:%S',
        handlers=[logging.StreamHandler(sys.stdout)],
    )


class ConfigManager:
    """Manages loading and validation of configuration."""

    SECTIONS = {
        "classifier": ClassifierConfig,
        "strength": StrengthConfig,
        "predictive": PredictiveConfig,
        "sectors": SectorConfig,
        "risk": RiskConfig,
        "signals": SignalConfig,
        "cache": CacheConfig,
        "account": AccountConfig,
    }

    def __init__(self, config_path: str | Path | None = None, load_env: bool = True):
        """Initialize configuration manager.

        Args:
            config_path: Path to a JSON config file. If None, uses default location.
            load_env: Whether to load .env file and environment overrides.
                Set to False for testing.
        """
        self.config_path = Path(config_path) if config_path else Path("config/regime_compass.json")
        self._config: EngineConfig | None = None
        self._load_env = load_env
        if load_env:
            load_dotenv()

    def load(self) -> EngineConfig:
        """Load configuration from file and environment variables.

        Returns:
            Loaded and validated EngineConfig object.

        Raises:
            ConfigValidationError: If any field is invalid.
        """
        config_data = self._load_json()
        self._config = self._parse_config(config_data)
        self._override_from_env()
        self._validate()
        return self._config

    def _load_json(self) -> dict[str, Any]:
        """Load JSON configuration file."""
        if not self.config_path.exists():
            return {}

        with open(self.config_path) as f:
            try:
                return json.load(f)
            except json.JSONDecodeError as e:
                raise ConfigValidationError(f"Invalid JSON in {self.config_path}: {e}")

    def _parse_config(self, data: dict[str, Any]) -> EngineConfig:
        """Parse configuration dictionary into EngineConfig object."""
        sections = {
            name: self._parse_section(name, cls, data.get(name, {}))
            for name, cls in self.SECTIONS.items()
        }
        return EngineConfig(log_level=data.get("log_level", "INFO"), **sections)

    def _parse_section(self, name: str, cls: type, data: dict[str, Any]) -> Any:
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            logger.warning(f"Ignoring unknown {name} config keys: {', '.join(unknown)}")
        values = {k: v for k, v in data.items() if k in known}
        for key, value in values.items():
            if isinstance(value, list) and key.endswith("bounds"):
                values[key] = tuple(value)
        return cls(**values)

    def _override_from_env(self) -> None:
        """Override configuration values from environment variables."""
        if not self._config:
            return

        # Skip env overrides if load_env is False (for testing)
        if not self._load_env:
            return

        try:
            if level := os.getenv("LOG_LEVEL"):
                self._config.log_level = level.upper()

            # Cache
            if enabled := os.getenv("CACHE_ENABLED"):
                self._config.cache.enabled = enabled.lower() != "false"
            if ttl := os.getenv("CACHE_TTL"):
                self._config.cache.default_ttl = float(ttl)
            if max_entries := os.getenv("CACHE_MAX_ENTRIES"):
                self._config.cache.max_entries = int(max_entries)

            # Account
            if account_size := os.getenv("ACCOUNT_SIZE"):
                self._config.account.account_size = float(account_size)
            if risk := os.getenv("RISK_PER_TRADE"):
                self._config.account.risk_per_trade = float(risk)
            if max_pos := os.getenv("MAX_POSITION_SIZE"):
                self._config.account.max_position_size = float(max_pos)
            if max_dd := os.getenv("MAX_DRAWDOWN"):
                self._config.account.max_drawdown = float(max_dd)
            if vix := os.getenv("VIX_THRESHOLD"):
                self._config.account.vix_threshold = float(vix)
            if concentration := os.getenv("MAX_SECTOR_CONCENTRATION"):
                self._config.account.max_sector_concentration = float(concentration)
        except ValueError as e:
            raise ConfigValidationError(f"Invalid numeric environment override: {e}")

    def _validate(self) -> None:
        """Validate every configured value.

        Raises:
            ConfigValidationError: If validation fails.
        """
        if not self._config:
            raise ConfigValidationError("Configuration not loaded")

        invalid_fields = []
        cfg = self._config

        if cfg.log_level.upper() not in VALID_LOG_LEVELS:
            invalid_fields.append(f"log_level (must be one of {', '.join(VALID_LOG_LEVELS)})")

        # Account
        if cfg.account.account_size <= 0:
            invalid_fields.append("account.account_size (must be > 0)")
        for name in ("risk_per_trade", "max_position_size", "max_drawdown", "max_sector_concentration"):
            value = getattr(cfg.account, name)
            if not 0 < value <= 1:
                invalid_fields.append(f"account.{name} (must be within (0, 1])")
        if cfg.account.vix_threshold <= 0:
            invalid_fields.append("account.vix_threshold (must be > 0)")
        if cfg.account.min_position_dollars < 0:
            invalid_fields.append("account.min_position_dollars (must be >= 0)")

        # Cache
        if cfg.cache.default_ttl <= 0:
            invalid_fields.append("cache.default_ttl (must be > 0)")
        if cfg.cache.max_entries <= 0:
            invalid_fields.append("cache.max_entries (must be > 0)")
        if cfg.cache.max_size_bytes <= 0:
            invalid_fields.append("cache.max_size_bytes (must be > 0)")

        # Classifier
        if not cfg.classifier.breadth_bear < cfg.classifier.breadth_bull:
            invalid_fields.append("classifier.breadth_bear (must be below breadth_bull)")
        if not 0 < cfg.classifier.confidence_min < cfg.classifier.confidence_max <= 1:
            invalid_fields.append("classifier.confidence_min/confidence_max")

        # Weights
        if abs(sum(cfg.strength.factor_weights.values()) - 1.0) > 1e-6:
            invalid_fields.append("strength.factor_weights (must sum to 1)")
        if abs(sum(cfg.predictive.signal_weights.values()) - 1.0) > 1e-6:
            invalid_fields.append("predictive.signal_weights (must sum to 1)")

        # Probability bounds must admit a triple summing to 1
        for name in ("near_term_bounds", "long_term_bounds"):
            low, high = getattr(cfg.predictive, name)
            if not (0 <= low < high <= 1 and 3 * low <= 1 <= 3 * high):
                invalid_fields.append(f"predictive.{name}")

        if cfg.predictive.divergence_lookback < 1 or cfg.predictive.volume_lookback < 2:
            invalid_fields.append("predictive lookbacks (too short)")

        if invalid_fields:
            raise ConfigValidationError(
                f"Invalid configuration fields: {', '.join(invalid_fields)}"
            )

    def risk_parameters(self) -> RiskParameters:
        """Build the session RiskParameters from the account section."""
        account = self.config.account
        return RiskParameters(
            account_size=account.account_size,
            risk_per_trade=account.risk_per_trade,
            max_position_size=account.max_position_size,
            max_drawdown=account.max_drawdown,
            vix_threshold=account.vix_threshold,
            max_sector_concentration=account.max_sector_concentration,
            min_position_dollars=account.min_position_dollars,
        )

    @property
    def config(self) -> EngineConfig:
        """Get loaded configuration."""
        if not self._config:
            raise ConfigValidationError("Configuration not loaded. Call load() first.")
        return self._config
