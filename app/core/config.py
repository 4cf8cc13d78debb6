"""
Runtime configuration.

Values come from the environment (.env supported). Lifecycle tunables are
grouped in LifecycleSettings so services can be constructed with explicit
values in tests.
"""
import os
from dataclasses import dataclass, field
from typing import Optional
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def _get_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


def _get_optional_float(name: str) -> Optional[float]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return None
    return float(raw)


APP_NAME = os.getenv("APP_NAME", "BlitzOracle")
APP_VERSION = os.getenv("APP_VERSION", "1.0.0")
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3000")
DEBUG = _get_bool("DEBUG", "True")

# Persistence
MONGODB_URL = os.getenv("MONGODB_URL", "mongodb://localhost:27017")
DATABASE_NAME = os.getenv("DATABASE_NAME", "blitz")
CONTEST_STORE = os.getenv("CONTEST_STORE", "mongo")  # "mongo" | "memory"

# External services
CHAIN_RPC_URL = os.getenv("CHAIN_RPC_URL", "https://mainnet.base.org")
ZORA_API_BASE_URL = os.getenv("ZORA_API_BASE_URL", "https://api-sdk.zora.engineering")
ZORA_API_KEY = os.getenv("ZORA_API_KEY")
CONTENT_TAG = os.getenv("CONTENT_TAG", "blitzdotfun")

# Scheduler
SCHEDULER_ENABLED = _get_bool("SCHEDULER_ENABLED", "True")
TICK_INTERVAL_SECONDS = int(os.getenv("TICK_INTERVAL_SECONDS", "30"))
FALLBACK_INTERVAL_SECONDS = int(os.getenv("FALLBACK_INTERVAL_SECONDS", "120"))
HEALTH_CHECK_INTERVAL_MINUTES = int(os.getenv("HEALTH_CHECK_INTERVAL_MINUTES", "5"))
MAX_TICK_DURATION_SECONDS = float(os.getenv("MAX_TICK_DURATION_SECONDS", "25"))

# HTTP
STATUS_STREAM_INTERVAL_SECONDS = float(os.getenv("STATUS_STREAM_INTERVAL_SECONDS", "10"))
ADMIN_API_KEY = os.getenv("ADMIN_API_KEY")


@dataclass(frozen=True)
class LifecycleSettings:
    """Timing and throughput knobs shared by the contest services."""
    content_window_minutes: float = 5.0
    battle_duration_hours: float = 24.0
    deposit_window_minutes: Optional[float] = None
    # Base produces a block roughly every 2 seconds. The estimate only bounds
    # the log scan, so it is pushed earlier by block_scan_margin.
    average_block_time_seconds: float = 2.0
    block_scan_margin: int = 150
    external_call_timeout_seconds: float = 10.0
    monitor_concurrency: int = 4
    content_tag: str = field(default=CONTENT_TAG)

    @classmethod
    def from_env(cls) -> "LifecycleSettings":
        return cls(
            content_window_minutes=float(os.getenv("CONTENT_WINDOW_MINUTES", "5")),
            battle_duration_hours=float(os.getenv("BATTLE_DURATION_HOURS", "24")),
            deposit_window_minutes=_get_optional_float("DEPOSIT_WINDOW_MINUTES"),
            average_block_time_seconds=float(os.getenv("AVERAGE_BLOCK_TIME_SECONDS", "2.0")),
            block_scan_margin=int(os.getenv("BLOCK_SCAN_MARGIN", "150")),
            external_call_timeout_seconds=float(os.getenv("EXTERNAL_CALL_TIMEOUT_SECONDS", "10")),
            monitor_concurrency=int(os.getenv("MONITOR_CONCURRENCY", "4")),
            content_tag=CONTENT_TAG,
        )


settings = LifecycleSettings.from_env()
