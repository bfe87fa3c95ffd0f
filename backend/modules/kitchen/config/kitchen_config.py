# backend/modules/kitchen/config/kitchen_config.py

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class KitchenEngineConfig(BaseSettings):
    """
    Configuration for the kitchen order and timer lifecycle engine.

    Every engine instance reads these once at construction; tests pass
    their own instance to override values.
    """

    model_config = SettingsConfigDict(env_prefix="KITCHEN_", case_sensitive=False)

    # How often the tick re-evaluates timers and orders
    TICK_INTERVAL_SECONDS: float = Field(default=1.0, gt=0)

    # Orders with this many minutes or fewer left are flagged urgent
    URGENT_THRESHOLD_MINUTES: int = Field(default=5, ge=1)

    # Target used when an incoming order carries no estimate at all
    DEFAULT_ORDER_TARGET_MINUTES: int = Field(default=15, ge=1)

    # Timer board countdown colouring
    TIMER_WARNING_SECONDS: int = Field(default=120, ge=0)
    TIMER_CRITICAL_SECONDS: int = Field(default=30, ge=0)

    # Number of events the in-memory notifier keeps for inspection
    EVENT_HISTORY_SIZE: int = Field(default=100, ge=0)

    # How long removal markers for acknowledged orders and deleted timers are kept
    TOMBSTONE_RETENTION_SECONDS: int = Field(default=3600, ge=0)

    # Actor stamped on published events when the caller names none
    DEFAULT_UPDATED_BY: str = "kitchen"

    # Emit a debug log line for every dropped stale snapshot
    LOG_STALE_SNAPSHOTS: bool = True


# Global instance
kitchen_config = KitchenEngineConfig()


def get_kitchen_config() -> KitchenEngineConfig:
    """Get the kitchen engine configuration."""
    return kitchen_config
