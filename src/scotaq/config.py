"""
Client configuration for scotaq.
"""

from dataclasses import dataclass, field
from typing import FrozenSet, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_BASE_URL = "http://www.scottishairquality.scot"

# Cell contents the data selector uses for hours without a reading
DEFAULT_NO_DATA_MARKERS = frozenset({"", "-", "--", "n/a", "no data", "nodata"})


@dataclass(frozen=True)
class ClientConfig:
    """Settings shared by the HTTP client, session driver and table decoder."""

    base_url: str = DEFAULT_BASE_URL
    measurements_path: str = "/data/data-selector"
    map_data_path: str = "/js/data/map-data"
    timeout: float = 30.0
    step_timeout: Optional[float] = None
    max_concurrent: int = 4
    user_agent: str = "scotaq-client/0.1.0"
    timezone: str = "Europe/London"
    date_format: str = "%d/%m/%Y"
    time_format: str = "%H:%M"
    period_columns: int = 2
    no_data_markers: FrozenSet[str] = field(default=DEFAULT_NO_DATA_MARKERS)

    def __post_init__(self) -> None:
        if self.timeout <= 0:
            raise ValueError(f"timeout must be positive, got {self.timeout}")
        if self.step_timeout is not None and self.step_timeout <= 0:
            raise ValueError(f"step_timeout must be positive, got {self.step_timeout}")
        if self.max_concurrent < 1:
            raise ValueError(
                f"max_concurrent must be at least 1, got {self.max_concurrent}"
            )
        if self.period_columns < 2:
            raise ValueError(
                f"period_columns must be at least 2, got {self.period_columns}"
            )

    @property
    def measurements_url(self) -> str:
        return f"{self.base_url.rstrip('/')}{self.measurements_path}"

    @property
    def map_data_url(self) -> str:
        return f"{self.base_url.rstrip('/')}{self.map_data_path}"

    @classmethod
    def from_env(cls) -> "ClientConfig":
        """
        Build a configuration from ``SCOTAQ_*`` environment variables.

        Unset variables keep their defaults.

        Raises:
            pydantic.ValidationError: If a variable is set to an invalid value
        """
        env = EnvSettings()
        return cls(
            base_url=env.base_url,
            timeout=env.timeout,
            step_timeout=env.step_timeout,
            max_concurrent=env.max_concurrent,
            user_agent=env.user_agent,
        )


class EnvSettings(BaseSettings):
    """Overrides read from the environment, e.g. ``SCOTAQ_MAX_CONCURRENT=8``."""

    model_config = SettingsConfigDict(env_prefix="SCOTAQ_", env_file=".env", extra="ignore")

    base_url: str = DEFAULT_BASE_URL
    timeout: float = Field(default=ClientConfig.timeout, gt=0)
    step_timeout: Optional[float] = Field(default=None, gt=0)
    max_concurrent: int = Field(default=ClientConfig.max_concurrent, ge=1)
    user_agent: str = ClientConfig.user_agent
