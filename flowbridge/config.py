"""Configuration for the conversion engine and mapping refresh."""

from dataclasses import dataclass, field
from typing import Dict, List, Optional
from pathlib import Path
import os


@dataclass
class ConverterConfig:
    """Configuration for conversion and remote mapping refresh."""

    # Remote mapping document
    mapping_source_url: Optional[str] = None
    request_timeout: int = 30
    max_retries: int = 3
    retry_delay: float = 1.0

    # Cache settings
    cache_dir: Optional[Path] = None
    cache_ttl_hours: int = 24

    # Catch-all entity types used for placeholders, keyed by direction value
    placeholder_types: Dict[str, str] = None

    # Parameters that are always flagged for review
    high_risk_parameters: List[str] = None

    # Defaults merged under caller-supplied conversion options
    default_options: Dict[str, bool] = field(default_factory=dict)

    def __post_init__(self):
        """Initialize default values that depend on runtime."""
        if self.placeholder_types is None:
            self.placeholder_types = {
                "n8nToMake": "helper:Note",
                "makeToN8n": "n8n-nodes-base.noOp",
            }

        if self.high_risk_parameters is None:
            self.high_risk_parameters = [
                "functionCode",
                "jsCode",
                "pythonCode",
                "code",
            ]

        if self.cache_dir is None:
            self.cache_dir = Path.cwd() / ".flowbridge_cache"

    @classmethod
    def from_env(cls) -> "ConverterConfig":
        """Create configuration from environment variables."""
        cache_dir = os.getenv("FLOWBRIDGE_CACHE_DIR")
        return cls(
            mapping_source_url=os.getenv("FLOWBRIDGE_MAPPING_URL") or None,
            request_timeout=int(os.getenv("FLOWBRIDGE_REQUEST_TIMEOUT", "30")),
            max_retries=int(os.getenv("FLOWBRIDGE_MAX_RETRIES", "3")),
            retry_delay=float(os.getenv("FLOWBRIDGE_RETRY_DELAY", "1.0")),
            cache_dir=Path(cache_dir) if cache_dir else None,
            cache_ttl_hours=int(os.getenv("FLOWBRIDGE_CACHE_TTL", "24")),
            default_options={
                "copy_non_mapped_parameters": os.getenv(
                    "FLOWBRIDGE_COPY_UNMAPPED", "true"
                ).lower() == "true",
            },
        )

    def placeholder_type(self, direction) -> str:
        """Catch-all type of the target schema for a direction."""
        key = getattr(direction, "value", direction)
        return self.placeholder_types[key]

    def is_high_risk(self, parameter_name: str) -> bool:
        return parameter_name in self.high_risk_parameters


# Default configuration instance
DEFAULT_CONFIG = ConverterConfig()


def get_config() -> ConverterConfig:
    """Get the current converter configuration."""
    if os.getenv("FLOWBRIDGE_USE_ENV") == "true":
        return ConverterConfig.from_env()

    return DEFAULT_CONFIG
