"""
Centralized configuration management for the geocode aggregator.

All configuration is loaded from environment variables with sensible defaults.
Use the `settings` singleton for accessing configuration values.

Usage:
    from geocode_aggregator.core.config import settings

    print(settings.PROVIDER_TIMEOUT)
    descriptors = settings.provider_descriptors()
"""

import logging
import os
from pathlib import Path
from dataclasses import dataclass, field
from typing import Any, Dict, List

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

# Load environment variables from .env file
# Search in common locations
_env_paths = [
    Path(__file__).parent.parent.parent / ".env",  # repository root
    Path.cwd() / ".env",  # Current working directory
]

for env_path in _env_paths:
    if env_path.exists():
        load_dotenv(env_path)
        break


def _split_list(value: str) -> List[str]:
    return [item.strip().lower() for item in value.split(",") if item.strip()]


@dataclass
class Settings:
    """Application settings loaded from environment variables."""

    # ==========================================================================
    # Provider selection (registration order matters)
    # ==========================================================================
    GEOCODE_PROVIDERS: List[str] = field(
        default_factory=lambda: _split_list(os.getenv("GEOCODE_PROVIDERS", "dadata,nominatim"))
    )

    # ==========================================================================
    # DaData.ru
    # ==========================================================================
    DADATA_API_TOKEN: str = field(
        default_factory=lambda: os.getenv("DADATA_API_TOKEN", "")
    )
    DADATA_PROXY: str = field(
        default_factory=lambda: os.getenv("DADATA_PROXY", "")
    )
    DADATA_PROXY_PORT: int = field(
        default_factory=lambda: int(os.getenv("DADATA_PROXY_PORT", "80"))
    )

    # ==========================================================================
    # Nominatim (OpenStreetMap)
    # ==========================================================================
    NOMINATIM_URL: str = field(
        default_factory=lambda: os.getenv("NOMINATIM_URL", "https://nominatim.openstreetmap.org")
    )
    NOMINATIM_USER_AGENT: str = field(
        default_factory=lambda: os.getenv("NOMINATIM_USER_AGENT", "GeocodeAggregator/1.0")
    )
    NOMINATIM_EMAIL: str = field(
        default_factory=lambda: os.getenv("NOMINATIM_EMAIL", "")
    )

    # ==========================================================================
    # Timeouts and concurrency
    # ==========================================================================
    PROVIDER_TIMEOUT: float = field(
        default_factory=lambda: float(os.getenv("GEOCODE_PROVIDER_TIMEOUT", "10.0"))
    )  # Seconds per provider call, enforced by the aggregator
    HTTP_TIMEOUT: float = field(
        default_factory=lambda: float(os.getenv("GEOCODE_HTTP_TIMEOUT", "8.0"))
    )  # Seconds per HTTP request, enforced by the transport
    BATCH_CONCURRENCY: int = field(
        default_factory=lambda: int(os.getenv("GEOCODE_BATCH_CONCURRENCY", "5"))
    )

    # ==========================================================================
    # Logging
    # ==========================================================================
    LOG_LEVEL: str = field(
        default_factory=lambda: os.getenv("LOG_LEVEL", "INFO").upper()
    )

    def validate_dadata(self) -> bool:
        """Check if the DaData API token is configured."""
        return bool(self.DADATA_API_TOKEN)

    def provider_descriptors(self) -> List[Dict[str, Any]]:
        """
        Build provider descriptors from the environment, in GEOCODE_PROVIDERS order.

        DaData is skipped when no token is configured. Identifiers without
        environment-backed parameters are passed through with empty
        parameters, so an unknown name still fails at registration.
        """
        descriptors: List[Dict[str, Any]] = []

        for identifier in self.GEOCODE_PROVIDERS:
            if identifier == "dadata":
                if not self.validate_dadata():
                    logger.warning("DADATA_API_TOKEN not configured, skipping DaData provider")
                    continue
                parameters: Dict[str, Any] = {
                    "token": self.DADATA_API_TOKEN,
                    "proxy_port": self.DADATA_PROXY_PORT,
                    "timeout": self.HTTP_TIMEOUT,
                }
                if self.DADATA_PROXY:
                    parameters["proxy"] = self.DADATA_PROXY
            elif identifier == "nominatim":
                parameters = {
                    "base_url": self.NOMINATIM_URL,
                    "user_agent": self.NOMINATIM_USER_AGENT,
                    "timeout": self.HTTP_TIMEOUT,
                }
                if self.NOMINATIM_EMAIL:
                    parameters["email"] = self.NOMINATIM_EMAIL
            else:
                parameters = {}

            descriptors.append({"identifier": identifier, "parameters": parameters})

        return descriptors


# Singleton settings instance
settings = Settings()
