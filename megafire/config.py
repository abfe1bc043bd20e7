"""
Configuration management for Mega Fire Roulette.
Supports config.json with environment variable overrides.
All paths are resolved relative to the project root.
"""

import json
import os
from pathlib import Path
from typing import Dict, List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from megafire.core.roulette.rules import DEFAULT_PAYOUTS

load_dotenv()

# Project root directory (parent of the 'megafire' folder)
PROJECT_ROOT = Path(__file__).parent.parent


def get_env(key: str, default: str = None) -> Optional[str]:
    """Get environment variable with optional default."""
    return os.environ.get(key, default)


def get_env_bool(key: str, default: bool = False) -> bool:
    """Get boolean environment variable."""
    val = os.environ.get(key)
    if val is None:
        return default
    return val.lower() in ("true", "1", "yes", "on")


def get_env_int(key: str, default: int = 0) -> int:
    """Get integer environment variable."""
    val = os.environ.get(key)
    if val is None:
        return default
    try:
        return int(val)
    except ValueError:
        return default


# ==================== Configuration Models ====================

class ServerConfig(BaseModel):
    host: str = "127.0.0.1"
    port: int = 8000
    debug: bool = True
    name: str = "Mega Fire Roulette"


def default_payouts() -> Dict[str, int]:
    # Profit multipliers (the stake is returned on top)
    return dict(DEFAULT_PAYOUTS)


class TableConfig(BaseModel):
    starting_credits: int = 1000
    spin_duration: float = 6.5
    # Offsets from RESULT entry
    sweep_delay: float = 1.5
    settle_delay: float = 4.0
    reset_delay: float = 5.0
    balance_sync_delay: float = 2.0
    chips: List[int] = Field(default_factory=lambda: [10, 50, 100, 500, 1000, 5000])
    default_chip: int = 10
    recent_history_size: int = 15
    full_history_size: int = 100
    rng_seed: Optional[int] = None
    payouts: Dict[str, int] = Field(default_factory=default_payouts)
    # [percentile ceiling, min size, max size]
    fire_bands: List[List[int]] = Field(
        default_factory=lambda: [[80, 1, 5], [95, 6, 10], [100, 11, 15]]
    )


class BonusConfig(BaseModel):
    grid_size: int = 12
    spins: int = 3
    land_chance: float = 0.7
    multipliers: List[int] = Field(default_factory=lambda: [2, 3, 5, 10, 15, 20, 50])
    spectator_stake: int = 10


class BoardConfig(BaseModel):
    """Logical size of the betting grid used for server-side hit testing."""
    width: float = 240.0
    height: float = 520.0
    edge_slop: float = 0.25


class RacetrackConfig(BaseModel):
    width: float = 200.0
    height: float = 520.0
    padding: float = 2.0
    track_thickness: float = 48.0


class RateLimitConfig(BaseModel):
    enabled: bool = True
    game_requests: str = "30/minute"  # Spins and bonus collection
    api_requests: str = "120/minute"  # Bet placement and reads


class LoggingConfig(BaseModel):
    level: str = "INFO"
    log_to_file: bool = False
    formatter: str = "color"


class PathsConfig(BaseModel):
    """All paths are relative to PROJECT_ROOT."""
    config_file: str = "config.json"
    database: str = "data/megafire.db"
    log_file: str = "data/app.log"

    def get_config_path(self) -> Path:
        return PROJECT_ROOT / self.config_file

    def get_db_path(self) -> Path:
        return PROJECT_ROOT / self.database

    def get_log_path(self) -> Path:
        return PROJECT_ROOT / self.log_file


class AppConfig(BaseModel):
    """Main application configuration."""
    server: ServerConfig = Field(default_factory=ServerConfig)
    table: TableConfig = Field(default_factory=TableConfig)
    bonus: BonusConfig = Field(default_factory=BonusConfig)
    board: BoardConfig = Field(default_factory=BoardConfig)
    racetrack: RacetrackConfig = Field(default_factory=RacetrackConfig)
    rate_limit: RateLimitConfig = Field(default_factory=RateLimitConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    paths: PathsConfig = Field(default_factory=PathsConfig)


# ==================== Configuration Loading ====================

def load_config() -> AppConfig:
    """
    Load configuration from config.json with environment variable overrides.
    Environment variables take precedence over config.json values.
    """
    config_path = PathsConfig().get_config_path()

    data = {}

    if config_path.exists():
        with open(config_path, "r") as f:
            data = json.load(f)

    if get_env("SERVER_HOST"):
        data.setdefault("server", {})["host"] = get_env("SERVER_HOST")
    if get_env("SERVER_PORT"):
        data.setdefault("server", {})["port"] = get_env_int("SERVER_PORT", 8000)
    if get_env("DEBUG"):
        data.setdefault("server", {})["debug"] = get_env_bool("DEBUG")

    if get_env("DB_PATH"):
        data.setdefault("paths", {})["database"] = get_env("DB_PATH")

    if get_env("LOG_LEVEL"):
        data.setdefault("logging", {})["level"] = get_env("LOG_LEVEL")
    if get_env("LOG_TO_FILE"):
        data.setdefault("logging", {})["log_to_file"] = get_env_bool("LOG_TO_FILE")
    if get_env("LOG_FORMATTER"):
        data.setdefault("logging", {})["formatter"] = get_env("LOG_FORMATTER")

    if get_env("STARTING_CREDITS"):
        data.setdefault("table", {})["starting_credits"] = get_env_int("STARTING_CREDITS", 1000)
    if get_env("STRAIGHT_PAYOUT"):
        payouts = data.setdefault("table", {}).setdefault("payouts", default_payouts())
        payouts["STRAIGHT"] = get_env_int("STRAIGHT_PAYOUT", DEFAULT_PAYOUTS["STRAIGHT"])
    if get_env("RNG_SEED"):
        data.setdefault("table", {})["rng_seed"] = get_env_int("RNG_SEED", 0)

    if get_env("RATE_LIMIT_ENABLED"):
        data.setdefault("rate_limit", {})["enabled"] = get_env_bool("RATE_LIMIT_ENABLED", True)
    if get_env("RATE_LIMIT_GAME_REQUESTS"):
        data.setdefault("rate_limit", {})["game_requests"] = get_env("RATE_LIMIT_GAME_REQUESTS")
    if get_env("RATE_LIMIT_API_REQUESTS"):
        data.setdefault("rate_limit", {})["api_requests"] = get_env("RATE_LIMIT_API_REQUESTS")

    return AppConfig(**data)


# Global config instance
settings = load_config()
