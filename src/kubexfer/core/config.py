"""Library configuration using Pydantic Settings."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

# Display mode that switches the progress reporter to a progress bar
DISPLAY_FANCY = "fancy"


class Settings(BaseSettings):
    """Settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="KUBEXFER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Output
    display: str = "plain"  # "fancy" draws a progress bar, anything else tails logs
    log_level: str = "INFO"
    debug: bool = False

    # Pod lifecycle polling
    poll_interval_seconds: float = 2.0
    pod_create_timeout_seconds: float = 300.0  # 5 minutes
    pod_schedule_timeout_seconds: float | None = None  # None = wait indefinitely
    pod_completion_timeout_seconds: float | None = None  # None = wait indefinitely

    # Progress reporter
    log_poll_interval_seconds: float = 1.0

    # OpenTelemetry
    otel_enabled: bool = False
    otel_service_name: str = "kubexfer"
    otel_exporter_endpoint: str = "http://localhost:4317"

    @property
    def fancy_display(self) -> bool:
        """Whether the progress bar reporter is selected."""
        return self.display == DISPLAY_FANCY


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
