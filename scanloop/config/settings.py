"""
==============================================================================
Application Settings Module
==============================================================================

Configuration management using Pydantic Settings.

This module provides two layers of configuration:

- Settings: process-wide settings loaded from environment variables and
  an optional .env file (server, catalog, lookup service, camera).
- ScannerConfig: the immutable tuning record consumed by the scan loop
  (intervals, timeouts, feedback toggles). Built from Settings or passed
  directly to ScanController.init().

Configuration Priority (highest to lowest):
------------------------------------------
1. Environment variables
2. .env file
3. Default values

==============================================================================
"""

from __future__ import annotations

import json
import logging
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import List

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# Module logger
logger = logging.getLogger(__name__)


# =============================================================================
# SCANNER CONFIGURATION
# =============================================================================

class FacingMode(str, Enum):
    """Which camera the capture source should prefer."""

    FRONT = "front"
    ENVIRONMENT = "environment"


class FeedbackConfig(BaseModel):
    """Feedback toggles fired on every confirmed code."""

    model_config = ConfigDict(frozen=True)

    beep: bool = Field(default=True, description="Play a beep on confirmed code")
    vibrate: bool = Field(default=True, description="Vibrate on confirmed code")
    vibrate_ms: int = Field(default=100, ge=0, description="Vibration length in ms")


class ScannerConfig(BaseModel):
    """
    Tunable parameters of the scan loop.

    Frozen once built: the controller reads it for the whole
    start/stop cycle and a new record must be passed to init() to change it.

    Attributes:
        sample_interval_ms: Delay between two ticks of the scan loop
        idle_timeout_ms: Auto-stop after this long without activity (0 disables)
        auto_start: Start scanning as soon as init() is called
        feedback: Beep/vibrate toggles
        duplicate_suppression_ms: Minimum time before the same code re-triggers
        facing_mode: Preferred camera
        auto_select: Call the select hook with every resolved product
        decode_every_n_ticks: Decode only every Nth ready frame
        frame_width: Requested capture width
        frame_height: Requested capture height
        frame_rate: Requested capture frame rate
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    sample_interval_ms: int = Field(default=100, ge=0)
    idle_timeout_ms: int = Field(default=5000, ge=0)
    auto_start: bool = Field(default=True)
    feedback: FeedbackConfig = Field(default_factory=FeedbackConfig)
    duplicate_suppression_ms: int = Field(default=2000, ge=0)
    facing_mode: FacingMode = Field(default=FacingMode.ENVIRONMENT)
    auto_select: bool = Field(default=True)
    decode_every_n_ticks: int = Field(default=10, ge=1)
    frame_width: int = Field(default=1280, ge=1)
    frame_height: int = Field(default=720, ge=1)
    frame_rate: int = Field(default=30, ge=1)


# =============================================================================
# APPLICATION SETTINGS
# =============================================================================

class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Attributes:
        app_name: Display name for the application
        app_env: Environment mode (development/staging/production)
        debug: Enable debug mode for verbose logging
        host: Server bind address
        port: Server port number
        products_file: Path to product catalog JSON
        cors_origins: Allowed CORS origins (JSON array string)
        lookup_base_url: Base URL of the product lookup service
        lookup_path: Lookup resource path, ``{code}`` is substituted
        lookup_timeout_seconds: Timeout of a single lookup request
        camera_index: OpenCV device index of the environment camera
        front_camera_index: OpenCV device index of the front camera
        terminal_bell: Ring the server terminal bell as well as notifying clients
        scan_*: Scanner tuning, see ScannerConfig

    Example:
        >>> settings = Settings()
        >>> settings.scanner_config().duplicate_suppression_ms
        2000
    """

    # =========================================================================
    # PYDANTIC SETTINGS CONFIGURATION
    # =========================================================================
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        validate_default=True,
    )

    # =========================================================================
    # APPLICATION SETTINGS
    # =========================================================================
    app_name: str = Field(
        default="Scanloop Barcode Scanner",
        description="Display name for the application"
    )

    app_env: str = Field(
        default="development",
        description="Environment mode: development, staging, production"
    )

    debug: bool = Field(
        default=True,
        description="Enable debug mode for verbose logging"
    )

    # =========================================================================
    # SERVER SETTINGS
    # =========================================================================
    host: str = Field(default="0.0.0.0", description="Server bind address")

    port: int = Field(default=8000, ge=1, le=65535, description="Server port number")

    cors_origins: str = Field(
        default='["*"]',
        description="Allowed CORS origins as JSON array string"
    )

    # =========================================================================
    # CATALOG & LOOKUP SETTINGS
    # =========================================================================
    products_file: str = Field(
        default="data/products.json",
        description="Path to product catalog JSON"
    )

    lookup_base_url: str = Field(
        default="http://127.0.0.1:8000",
        description="Base URL of the product lookup service"
    )

    lookup_path: str = Field(
        default="/api/v1/products/lookup/{code}",
        description="Lookup resource path pattern"
    )

    lookup_timeout_seconds: float = Field(
        default=5.0,
        gt=0,
        description="Timeout for a single lookup request"
    )

    # =========================================================================
    # CAMERA SETTINGS
    # =========================================================================
    camera_index: int = Field(default=0, ge=0, description="Environment camera index")

    front_camera_index: int = Field(default=1, ge=0, description="Front camera index")

    terminal_bell: bool = Field(
        default=False,
        description="Also ring the server terminal bell on confirmed codes"
    )

    # =========================================================================
    # SCANNER SETTINGS
    # =========================================================================
    scan_interval_ms: int = Field(default=100, ge=0)
    scan_idle_timeout_ms: int = Field(default=5000, ge=0)
    scan_auto_start: bool = Field(default=False)
    scan_beep: bool = Field(default=True)
    scan_vibrate: bool = Field(default=True)
    scan_vibrate_ms: int = Field(default=100, ge=0)
    scan_duplicate_suppression_ms: int = Field(default=2000, ge=0)
    scan_facing_mode: FacingMode = Field(default=FacingMode.ENVIRONMENT)
    scan_auto_select: bool = Field(default=True)
    scan_decode_every_n_ticks: int = Field(default=10, ge=1)

    # =========================================================================
    # VALIDATORS
    # =========================================================================
    @field_validator("app_env")
    @classmethod
    def validate_app_env(cls, value: str) -> str:
        """
        Validate and normalize application environment.

        Args:
            value: Raw environment value

        Returns:
            Lowercase normalized environment name
        """
        valid_envs = {"development", "staging", "production"}
        normalized = value.lower().strip()

        if normalized not in valid_envs:
            logger.warning(
                f"Unknown environment '{value}', defaulting to 'development'"
            )
            return "development"

        return normalized

    @field_validator("lookup_path")
    @classmethod
    def validate_lookup_path(cls, value: str) -> str:
        """Lookup path must carry the {code} placeholder."""
        if "{code}" not in value:
            raise ValueError("lookup_path must contain a '{code}' placeholder")
        return value

    # =========================================================================
    # COMPUTED PROPERTIES
    # =========================================================================
    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.app_env == "production"

    @property
    def products_path(self) -> Path:
        """Get products file as Path object."""
        return Path(self.products_file)

    @property
    def cors_origins_list(self) -> List[str]:
        """
        Parse CORS origins from JSON string to list.

        Returns:
            List of allowed origin strings
        """
        try:
            origins = json.loads(self.cors_origins)
            if isinstance(origins, list):
                return origins
            return ["*"]
        except json.JSONDecodeError:
            logger.warning(
                f"Invalid CORS origins JSON: {self.cors_origins}, "
                "defaulting to ['*']"
            )
            return ["*"]

    # =========================================================================
    # UTILITY METHODS
    # =========================================================================
    def scanner_config(self) -> ScannerConfig:
        """
        Build the immutable scanner configuration from these settings.

        Returns:
            Frozen ScannerConfig instance
        """
        return ScannerConfig(
            sample_interval_ms=self.scan_interval_ms,
            idle_timeout_ms=self.scan_idle_timeout_ms,
            auto_start=self.scan_auto_start,
            feedback=FeedbackConfig(
                beep=self.scan_beep,
                vibrate=self.scan_vibrate,
                vibrate_ms=self.scan_vibrate_ms,
            ),
            duplicate_suppression_ms=self.scan_duplicate_suppression_ms,
            facing_mode=self.scan_facing_mode,
            auto_select=self.scan_auto_select,
            decode_every_n_ticks=self.scan_decode_every_n_ticks,
        )

    def camera_index_for(self, facing_mode: FacingMode) -> int:
        """Map a facing mode onto an OpenCV device index."""
        if facing_mode == FacingMode.FRONT:
            return self.front_camera_index
        return self.camera_index

    def __repr__(self) -> str:
        """String representation for debugging."""
        return (
            f"Settings(app_name={self.app_name!r}, "
            f"app_env={self.app_env!r}, "
            f"debug={self.debug})"
        )


# =============================================================================
# SINGLETON INSTANCE MANAGEMENT
# =============================================================================

@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Get the global Settings instance (singleton pattern).

    Returns:
        Global Settings instance
    """
    settings = Settings()

    if settings.debug:
        logger.info(f"Configuration loaded: {settings}")

    return settings
