from __future__ import annotations

import asyncio

import structlog
from pydantic import ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from cutout.circuit_breaker import BreakerEvent, CircuitBreakerConfig
from cutout.logging import configure_structlog, get_log_level_value


def prefixed_settings_config(prefix: str) -> SettingsConfigDict:
    """Build standard Pydantic settings config for prefixed environments."""
    return SettingsConfigDict(env_prefix=prefix, case_sensitive=False)


class BreakerSettings(BaseSettings):
    """Environment-driven settings for one protected dependency."""

    model_config = prefixed_settings_config("CUTOUT_")

    fail_threshold: int = 5
    health_check_period: float = 30.0
    request_timeout: float = 10.0
    limit_half_open_probes: bool = True
    event_queue_size: int = 16
    log_level: str = "INFO"

    @field_validator("fail_threshold", "event_queue_size")
    @classmethod
    def _validate_positive_int(cls, value: int, info: ValidationInfo) -> int:
        if value < 1:
            raise ValueError(f"{info.field_name} must be >= 1")
        return value

    @field_validator("health_check_period", "request_timeout")
    @classmethod
    def _validate_positive_seconds(cls, value: float, info: ValidationInfo) -> float:
        if value <= 0:
            raise ValueError(f"{info.field_name} must be > 0")
        return value

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, value: object) -> object:
        if not isinstance(value, str):
            return value
        get_log_level_value(value)
        return value.strip().upper()

    def breaker_config(self) -> CircuitBreakerConfig:
        """Build breaker configuration from these settings."""
        return CircuitBreakerConfig(
            fail_threshold=self.fail_threshold,
            health_check_period=self.health_check_period,
            request_timeout=self.request_timeout,
            limit_half_open_probes=self.limit_half_open_probes,
        )

    def build_event_queue(self) -> asyncio.Queue[BreakerEvent]:
        """Build a bounded queue sized for breaker events."""
        return asyncio.Queue(maxsize=self.event_queue_size)

    def configure_logging(self) -> structlog.stdlib.BoundLogger:
        """Configure structlog output at ``log_level``."""
        return configure_structlog(log_level=self.log_level)
