"""Configuration management with environment variable support."""

import logging
import os
from dataclasses import dataclass, field
from typing import Literal


def _env_int(name: str, default: int) -> int:
    """Read an integer environment variable."""
    return int(os.getenv(name, str(default)))


def _env_bool(name: str, default: bool) -> bool:
    """Read a true/false environment variable."""
    return os.getenv(name, str(default)).lower() == "true"


@dataclass(frozen=True)
class RedisConfig:
    """Redis connection configuration."""

    host: str = field(default_factory=lambda: os.getenv("REDIS_HOST", "localhost"))
    port: int = field(default_factory=lambda: _env_int("REDIS_PORT", 6379))
    db: int = field(default_factory=lambda: _env_int("REDIS_DB", 0))
    password: str | None = field(default_factory=lambda: os.getenv("REDIS_PASSWORD"))
    enabled: bool = field(default_factory=lambda: _env_bool("REDIS_ENABLED", True))

    @property
    def url(self) -> str:
        """Build Redis connection URL."""
        auth = f":{self.password}@" if self.password else ""
        return f"redis://{auth}{self.host}:{self.port}/{self.db}"


@dataclass(frozen=True)
class GameConfig:
    """Default table configuration, all money in integer cents."""

    default_bankroll_cents: int = field(
        default_factory=lambda: _env_int("DEFAULT_BANKROLL_CENTS", 100_000)
    )
    min_bet_cents: int = field(default_factory=lambda: _env_int("MIN_BET_CENTS", 100))
    max_bet_cents: int = field(default_factory=lambda: _env_int("MAX_BET_CENTS", 10_000))

    num_decks: int = 6
    dealer_hits_soft_17: bool = False
    blackjack_payout: float = 1.5
    double_on: Literal["any", "9-11", "10-11"] = "any"
    split_allowed: bool = True
    resplit_allowed: bool = False
    split_aces_one_card: bool = True
    insurance_allowed: bool = False
    surrender_allowed: bool = False
    reshuffle_threshold: float = 0.25


@dataclass(frozen=True)
class LoggingConfig:
    """Logging configuration."""

    level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "WARNING").upper())
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@dataclass(frozen=True)
class AppConfig:
    """Application configuration."""

    debug: bool = field(default_factory=lambda: _env_bool("DEBUG", False))
    session_ttl: int = 3600  # Session timeout in seconds

    redis: RedisConfig = field(default_factory=RedisConfig)
    game: GameConfig = field(default_factory=GameConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def configure_logging(app_config: AppConfig | None = None) -> None:
    """Apply the configured level and format to the root logger."""
    cfg = (app_config or config).logging
    level = logging.DEBUG if (app_config or config).debug else cfg.level
    logging.basicConfig(level=level, format=cfg.format)


# Global configuration instance
config = AppConfig()
