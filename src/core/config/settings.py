#!/usr/bin/env python3
"""
Centralized Configuration Module using Pydantic Settings

This module provides type-safe, environment-based configuration for the
whole quota guard layer. All recognised options live here so the breaker,
cache, presence, admission and data access components are configured from
one place.

Architectural Decision: Pydantic Settings for type safety and validation
- Environment variable loading with .env support
- Type validation at startup (fail fast on misconfiguration)
- IDE autocomplete for all settings
- Easy testing with override mechanisms

Author: System Architect
Date: 2025-12-05
"""

from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.core.config.constants import (
    DEFAULT_CACHE_CLEANUP_INTERVAL,
    DEFAULT_CACHE_TTL,
    DEFAULT_COOLDOWN_PERIOD,
    DEFAULT_HEARTBEAT_INTERVAL,
    DEFAULT_LEASE_TTL,
    DEFAULT_MAX_CONCURRENT_USERS,
    DEFAULT_MAX_REQUESTS_PER_MINUTE,
    DEFAULT_PAGE_SIZE,
    DEFAULT_PRESENCE_COUNT_TIMEOUT,
    DEFAULT_PRESENCE_REGISTRY_PATH,
    DEFAULT_QUERY_CACHE_TTL,
    DEFAULT_QUOTA_ERROR_THRESHOLD,
    DEFAULT_RATE_WINDOW,
    DEFAULT_READ_TIMEOUT,
    DEFAULT_TICK_INTERVAL,
    MAX_PAGE_SIZE,
    FailurePolicy,
)


class RedisSettings(BaseSettings):
    """
    Redis configuration for the realtime presence emulation.

    STAGE-0.1: Redis connection configuration
    """

    REDIS_HOST: str = Field(default="localhost", description="Redis server host")
    REDIS_PORT: int = Field(default=6379, description="Redis server port")
    REDIS_DB: int = Field(default=0, description="Redis database number")
    REDIS_PASSWORD: str | None = Field(default=None, description="Redis password (if required)")
    REDIS_SOCKET_TIMEOUT: int = Field(default=5, description="Socket timeout in seconds")
    REDIS_SOCKET_CONNECT_TIMEOUT: int = Field(default=5, description="Connection timeout in seconds")

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class CircuitBreakerSettings(BaseSettings):
    """
    Request circuit breaker thresholds.

    STAGE-CB: Circuit breaker thresholds

    Architectural Decision: fixed, wall-clock-aligned request window
    - The counter resets once per window, not on a rolling basis
    - Quota errors trip the breaker independently of request rate
    """

    CB_MAX_REQUESTS_PER_MINUTE: int = Field(
        default=DEFAULT_MAX_REQUESTS_PER_MINUTE, gt=0, description="Reads allowed per window"
    )
    CB_COOLDOWN_PERIOD: float = Field(
        default=DEFAULT_COOLDOWN_PERIOD, gt=0, description="Seconds the breaker stays open"
    )
    CB_QUOTA_ERROR_THRESHOLD: int = Field(
        default=DEFAULT_QUOTA_ERROR_THRESHOLD, gt=0, description="Quota errors before opening"
    )
    CB_WINDOW_SECONDS: float = Field(
        default=DEFAULT_RATE_WINDOW, gt=0, description="Request-rate window length"
    )
    CB_TICK_INTERVAL: float = Field(
        default=DEFAULT_TICK_INTERVAL, gt=0, description="Background tick period"
    )

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class CacheSettings(BaseSettings):
    """
    Read cache configuration.

    STAGE-CACHE: Cache TTL configuration

    Optimization: Different TTLs for different call sites
    """

    CACHE_DEFAULT_TTL: float = Field(default=DEFAULT_CACHE_TTL, gt=0, description="Generic TTL (5 min)")
    CACHE_QUERY_TTL: float = Field(default=DEFAULT_QUERY_CACHE_TTL, gt=0, description="Query TTL (2 min)")
    CACHE_CLEANUP_INTERVAL: float = Field(
        default=DEFAULT_CACHE_CLEANUP_INTERVAL, gt=0, description="Expired entry sweep period"
    )

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class DataAccessSettings(BaseSettings):
    """
    Paginated read configuration.

    STAGE-DATA: Data access limits
    """

    DATA_PAGE_SIZE: int = Field(default=DEFAULT_PAGE_SIZE, gt=0, le=MAX_PAGE_SIZE, description="Page size")
    DATA_READ_TIMEOUT: float = Field(default=DEFAULT_READ_TIMEOUT, gt=0, description="Read deadline")
    DATA_FAILURE_POLICY: FailurePolicy = Field(
        default=FailurePolicy.CLOSED, description="Read timeout policy"
    )

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class PresenceSettings(BaseSettings):
    """
    Presence registry configuration.

    STAGE-PRES: Presence tracking
    """

    PRESENCE_REGISTRY_PATH: str = Field(
        default=DEFAULT_PRESENCE_REGISTRY_PATH, description="Registry subtree path"
    )
    PRESENCE_COUNT_TIMEOUT: float = Field(
        default=DEFAULT_PRESENCE_COUNT_TIMEOUT, gt=0, description="One-shot count deadline"
    )
    PRESENCE_HEARTBEAT_INTERVAL: float = Field(
        default=DEFAULT_HEARTBEAT_INTERVAL, gt=0, description="Lease refresh period"
    )
    PRESENCE_LEASE_TTL: float = Field(default=DEFAULT_LEASE_TTL, gt=0, description="Lease lifetime")
    REALTIME_BACKEND: Literal["memory", "redis"] = Field(
        default="memory", description="Realtime service implementation"
    )

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class AdmissionSettings(BaseSettings):
    """
    Admission control configuration.

    STAGE-ADM: Admission limits

    Architectural Decision: fail-open by default
    - A stalled presence read lets the user in rather than blocking login
    """

    ADMISSION_MAX_CONCURRENT_USERS: int = Field(
        default=DEFAULT_MAX_CONCURRENT_USERS, gt=0, description="Concurrent session ceiling"
    )
    ADMISSION_BYPASS_LIST: list[str] = Field(
        default_factory=list, description="Identities that skip the capacity check"
    )
    ADMISSION_FAILURE_POLICY: FailurePolicy = Field(
        default=FailurePolicy.OPEN, description="Presence read failure policy"
    )

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class LoggingSettings(BaseSettings):
    """
    Logging configuration for structured logging.

    STAGE-L: Logging configuration

    Architectural Decision: structlog for production-grade logging
    """

    LOG_LEVEL: str = Field(default="INFO", description="Logging level")
    LOG_FORMAT: Literal["json", "console"] = Field(default="json", description="Log output format")

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"LOG_LEVEL must be one of {valid_levels}")
        return v.upper()

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class ApplicationSettings(BaseSettings):
    """
    General application settings.

    STAGE-0: Application initialization
    """

    ENVIRONMENT: Literal["development", "staging", "production", "test"] = Field(
        default="development",
        description="Application environment"
    )
    DEBUG: bool = Field(default=False, description="Debug mode")
    APP_NAME: str = Field(default="Quota Guard", description="Application name")
    APP_VERSION: str = Field(default="1.0.0", description="Application version")
    API_HOST: str = Field(default="0.0.0.0", description="API host")
    API_PORT: int = Field(default=8000, description="API port")

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class Settings(BaseSettings):
    """
    Main settings class that aggregates all configuration sections.

    STAGE-0: Centralized configuration initialization

    Usage:
        from src.core.config.settings import get_settings

        settings = get_settings()
        limit = settings.circuit_breaker.CB_MAX_REQUESTS_PER_MINUTE
        capacity = settings.admission.ADMISSION_MAX_CONCURRENT_USERS
    """

    # Redis settings
    REDIS_HOST: str = Field(default="localhost", description="Redis server host")
    REDIS_PORT: int = Field(default=6379, description="Redis server port")
    REDIS_DB: int = Field(default=0, description="Redis database number")
    REDIS_PASSWORD: str | None = Field(default=None, description="Redis password (if required)")
    REDIS_SOCKET_TIMEOUT: int = Field(default=5, description="Socket timeout in seconds")
    REDIS_SOCKET_CONNECT_TIMEOUT: int = Field(default=5, description="Connection timeout in seconds")

    # Circuit Breaker settings
    CB_MAX_REQUESTS_PER_MINUTE: int = Field(
        default=DEFAULT_MAX_REQUESTS_PER_MINUTE, gt=0, description="Reads allowed per window"
    )
    CB_COOLDOWN_PERIOD: float = Field(
        default=DEFAULT_COOLDOWN_PERIOD, gt=0, description="Seconds the breaker stays open"
    )
    CB_QUOTA_ERROR_THRESHOLD: int = Field(
        default=DEFAULT_QUOTA_ERROR_THRESHOLD, gt=0, description="Quota errors before opening"
    )
    CB_WINDOW_SECONDS: float = Field(
        default=DEFAULT_RATE_WINDOW, gt=0, description="Request-rate window length"
    )
    CB_TICK_INTERVAL: float = Field(
        default=DEFAULT_TICK_INTERVAL, gt=0, description="Background tick period"
    )

    # Cache settings
    CACHE_DEFAULT_TTL: float = Field(default=DEFAULT_CACHE_TTL, gt=0, description="Generic TTL (5 min)")
    CACHE_QUERY_TTL: float = Field(default=DEFAULT_QUERY_CACHE_TTL, gt=0, description="Query TTL (2 min)")
    CACHE_CLEANUP_INTERVAL: float = Field(
        default=DEFAULT_CACHE_CLEANUP_INTERVAL, gt=0, description="Expired entry sweep period"
    )

    # Data access settings
    DATA_PAGE_SIZE: int = Field(default=DEFAULT_PAGE_SIZE, gt=0, le=MAX_PAGE_SIZE, description="Page size")
    DATA_READ_TIMEOUT: float = Field(default=DEFAULT_READ_TIMEOUT, gt=0, description="Read deadline")
    DATA_FAILURE_POLICY: FailurePolicy = Field(
        default=FailurePolicy.CLOSED, description="Read timeout policy"
    )

    # Presence settings
    PRESENCE_REGISTRY_PATH: str = Field(
        default=DEFAULT_PRESENCE_REGISTRY_PATH, description="Registry subtree path"
    )
    PRESENCE_COUNT_TIMEOUT: float = Field(
        default=DEFAULT_PRESENCE_COUNT_TIMEOUT, gt=0, description="One-shot count deadline"
    )
    PRESENCE_HEARTBEAT_INTERVAL: float = Field(
        default=DEFAULT_HEARTBEAT_INTERVAL, gt=0, description="Lease refresh period"
    )
    PRESENCE_LEASE_TTL: float = Field(default=DEFAULT_LEASE_TTL, gt=0, description="Lease lifetime")
    REALTIME_BACKEND: Literal["memory", "redis"] = Field(
        default="memory", description="Realtime service implementation"
    )

    # Admission settings
    ADMISSION_MAX_CONCURRENT_USERS: int = Field(
        default=DEFAULT_MAX_CONCURRENT_USERS, gt=0, description="Concurrent session ceiling"
    )
    ADMISSION_BYPASS_LIST: list[str] = Field(
        default_factory=list, description="Identities that skip the capacity check"
    )
    ADMISSION_FAILURE_POLICY: FailurePolicy = Field(
        default=FailurePolicy.OPEN, description="Presence read failure policy"
    )

    # Logging settings
    LOG_LEVEL: str = Field(default="INFO", description="Logging level")
    LOG_FORMAT: Literal["json", "console"] = Field(default="json", description="Log output format")

    # Application settings
    ENVIRONMENT: Literal["development", "staging", "production", "test"] = Field(
        default="development",
        description="Application environment"
    )
    DEBUG: bool = Field(default=False, description="Debug mode")
    APP_NAME: str = Field(default="Quota Guard", description="Application name")
    APP_VERSION: str = Field(default="1.0.0", description="Application version")
    API_HOST: str = Field(default="0.0.0.0", description="API host")
    API_PORT: int = Field(default=8000, description="API port")

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"LOG_LEVEL must be one of {valid_levels}")
        return v.upper()

    # Nested configuration objects
    @property
    def redis(self) -> "RedisSettings":
        """Get Redis settings."""
        return RedisSettings(
            REDIS_HOST=self.REDIS_HOST,
            REDIS_PORT=self.REDIS_PORT,
            REDIS_DB=self.REDIS_DB,
            REDIS_PASSWORD=self.REDIS_PASSWORD,
            REDIS_SOCKET_TIMEOUT=self.REDIS_SOCKET_TIMEOUT,
            REDIS_SOCKET_CONNECT_TIMEOUT=self.REDIS_SOCKET_CONNECT_TIMEOUT,
        )

    @property
    def circuit_breaker(self) -> "CircuitBreakerSettings":
        """Get circuit breaker settings."""
        return CircuitBreakerSettings(
            CB_MAX_REQUESTS_PER_MINUTE=self.CB_MAX_REQUESTS_PER_MINUTE,
            CB_COOLDOWN_PERIOD=self.CB_COOLDOWN_PERIOD,
            CB_QUOTA_ERROR_THRESHOLD=self.CB_QUOTA_ERROR_THRESHOLD,
            CB_WINDOW_SECONDS=self.CB_WINDOW_SECONDS,
            CB_TICK_INTERVAL=self.CB_TICK_INTERVAL,
        )

    @property
    def cache(self) -> "CacheSettings":
        """Get cache settings."""
        return CacheSettings(
            CACHE_DEFAULT_TTL=self.CACHE_DEFAULT_TTL,
            CACHE_QUERY_TTL=self.CACHE_QUERY_TTL,
            CACHE_CLEANUP_INTERVAL=self.CACHE_CLEANUP_INTERVAL,
        )

    @property
    def data_access(self) -> "DataAccessSettings":
        """Get data access settings."""
        return DataAccessSettings(
            DATA_PAGE_SIZE=self.DATA_PAGE_SIZE,
            DATA_READ_TIMEOUT=self.DATA_READ_TIMEOUT,
            DATA_FAILURE_POLICY=self.DATA_FAILURE_POLICY,
        )

    @property
    def presence(self) -> "PresenceSettings":
        """Get presence settings."""
        return PresenceSettings(
            PRESENCE_REGISTRY_PATH=self.PRESENCE_REGISTRY_PATH,
            PRESENCE_COUNT_TIMEOUT=self.PRESENCE_COUNT_TIMEOUT,
            PRESENCE_HEARTBEAT_INTERVAL=self.PRESENCE_HEARTBEAT_INTERVAL,
            PRESENCE_LEASE_TTL=self.PRESENCE_LEASE_TTL,
            REALTIME_BACKEND=self.REALTIME_BACKEND,
        )

    @property
    def admission(self) -> "AdmissionSettings":
        """Get admission settings."""
        return AdmissionSettings(
            ADMISSION_MAX_CONCURRENT_USERS=self.ADMISSION_MAX_CONCURRENT_USERS,
            ADMISSION_BYPASS_LIST=self.ADMISSION_BYPASS_LIST,
            ADMISSION_FAILURE_POLICY=self.ADMISSION_FAILURE_POLICY,
        )

    @property
    def logging(self) -> "LoggingSettings":
        """Get logging settings."""
        return LoggingSettings(LOG_LEVEL=self.LOG_LEVEL, LOG_FORMAT=self.LOG_FORMAT)

    @property
    def app(self) -> "ApplicationSettings":
        """Get application settings."""
        return ApplicationSettings(
            ENVIRONMENT=self.ENVIRONMENT,
            DEBUG=self.DEBUG,
            APP_NAME=self.APP_NAME,
            APP_VERSION=self.APP_VERSION,
            API_HOST=self.API_HOST,
            API_PORT=self.API_PORT,
        )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"  # Ignore extra environment variables
    )


# Global settings instance (singleton pattern)
_settings: Settings | None = None


def get_settings() -> Settings:
    """
    Get the global settings instance (singleton).

    STAGE-0.3: Settings initialization

    Returns:
        Settings: Global settings instance
    """
    global _settings

    if _settings is None:
        _settings = Settings()

    return _settings


def reload_settings() -> Settings:
    """
    Reload settings (useful for testing).

    Returns:
        Settings: New settings instance
    """
    global _settings
    _settings = Settings()
    return _settings
