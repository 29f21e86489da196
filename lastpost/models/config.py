"""Configuration models for lastpost.

All settings are validated with Pydantic; the YAML file loaded by
ConfigManager maps onto AppSettings.
"""

from typing import List

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_USER_AGENTS = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:120.0) Gecko/20100101 "
    "Firefox/120.0",
    "Mozilla/5.0 (iPhone; CPU iPhone OS 14_4 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/14.0 Mobile/15E148 Safari/604.1",
]


class RunConfig(BaseModel):
    """Per-run options exposed to the caller.

    The min <= max relationship is checked by the session controller so
    that it surfaces as a ConfigError rather than a validation error.
    """

    min_delay_seconds: float = Field(default=5, ge=1, le=120)
    max_delay_seconds: float = Field(default=7, ge=1, le=120)
    resume: bool = True
    session_key: str = Field(default="instagram_scraper", pattern=r"^[A-Za-z0-9_.-]+$")
    # Abort an outstanding lookup when cancellation arrives mid-call.
    # Off by default: in-flight calls (and their retries) run to completion.
    abort_in_flight: bool = False


class RetryConfig(BaseModel):
    """Configuration for retry logic with exponential backoff

    Controls retry behavior for rate-limited and transient failures:
    - Number of attempts before giving up
    - Delay calculation parameters
    - Jitter for request spreading
    """

    max_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Maximum attempts (1 initial + N-1 retries)",
    )
    base_delay_seconds: float = Field(
        default=2.0,
        gt=0.0,
        le=60.0,
        description="Base delay for exponential backoff",
    )
    max_delay_seconds: float = Field(
        default=120.0,
        gt=0.0,
        le=600.0,
        description="Maximum delay cap",
    )
    jitter_seconds: float = Field(
        default=1.0,
        ge=0.0,
        le=30.0,
        description="Upper bound of the random jitter added to each backoff",
    )


class LookupConfig(BaseModel):
    """Remote profile lookup settings"""

    base_url: str = "https://www.instagram.com/api/v1/users/web_profile_info/"
    app_id: str = "936619743392459"
    referer: str = "https://www.instagram.com/"
    timeout_seconds: float = Field(default=30.0, gt=0.0, le=300.0)
    user_agents: List[str] = Field(default_factory=lambda: list(DEFAULT_USER_AGENTS))

    @field_validator("user_agents")
    @classmethod
    def validate_user_agents(cls, v: List[str]) -> List[str]:
        agents = [a.strip() for a in v if a and a.strip()]
        if not agents:
            raise ValueError("At least one user agent is required")
        return agents


class CheckpointConfig(BaseModel):
    """Checkpoint configuration"""

    model_config = ConfigDict(protected_namespaces=())

    enabled: bool = True
    checkpoint_dir: str = "./checkpoints"
    checkpoint_interval: int = Field(10, ge=1, le=100)  # Save every N items


class LoggingConfig(BaseModel):
    level: str = "INFO"
    json_output: bool = False

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level


class AppSettings(BaseModel):
    """Root configuration document"""

    run: RunConfig = Field(default_factory=RunConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    lookup: LookupConfig = Field(default_factory=LookupConfig)
    checkpoint: CheckpointConfig = Field(default_factory=CheckpointConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
