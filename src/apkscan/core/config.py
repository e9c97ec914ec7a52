"""Configuration management for apkscan.

Loads configuration from environment variables using Pydantic models.
Provides sensible defaults for all settings while allowing override via
environment.

Provides:
- Config: Pydantic model with all application settings
- load_config: Factory function to create Config instance
"""

import os

from pydantic import BaseModel, Field

from apkscan.core.terminal import supports_hyperlinks


class Config(BaseModel):
    """Application configuration loaded from environment.

    Attributes:
        grype_binary: Scanner binary invoked per artifact (APKSCAN_GRYPE_BINARY)
        scan_timeout: Seconds allowed for one scanner run (APKSCAN_SCAN_TIMEOUT)
        hyperlinks: Whether the terminal renders OSC 8 hyperlinks; detected
            once when the config is created
    """

    # Scanner
    grype_binary: str = Field(
        default_factory=lambda: os.getenv("APKSCAN_GRYPE_BINARY", "grype")
    )
    scan_timeout: int = Field(
        default_factory=lambda: int(os.getenv("APKSCAN_SCAN_TIMEOUT", "300"))
    )

    # Output
    hyperlinks: bool = Field(default_factory=supports_hyperlinks)


def load_config(**overrides) -> Config:
    """Load configuration from environment.

    Args:
        **overrides: Explicit values taking precedence over the environment

    Returns:
        Populated Config instance
    """
    return Config(**overrides)
