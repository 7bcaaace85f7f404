"""Configuration models using Pydantic for validation."""
from typing import Dict, Literal
from pydantic import BaseModel, ConfigDict, Field, field_validator
import os


class SourceConfig(BaseModel):
    """Upstream scrape target configuration."""
    url: str = "http://localhost:5000/api/prometheus-metrics"
    timeout_s: float = 5.0
    retries: int = 3
    retry_backoff_s: float = 1.0
    verify_tls: bool = True
    headers: Dict[str, str] = Field(default_factory=dict)

    @field_validator('url')
    @classmethod
    def validate_url(cls, v):
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"Source URL must be http(s): {v}")
        return v

    @field_validator('retries')
    @classmethod
    def validate_retries(cls, v):
        if v < 0:
            raise ValueError("retries must be >= 0")
        return v


class PollerConfig(BaseModel):
    """Periodic polling configuration."""
    enabled: bool = True
    interval_s: float = 60.0

    @field_validator('interval_s')
    @classmethod
    def validate_interval(cls, v):
        if v <= 0:
            raise ValueError("interval_s must be positive")
        return v


class PipelineConfig(BaseModel):
    """Decoding and classification switches."""
    # Commit "# HELP" records without a "# TYPE" line as type "unknown"
    commit_untyped_metrics: bool = False
    # First matching group wins instead of overlapping membership
    exclusive_groups: bool = False


class GlobalConfig(BaseModel):
    """Global configuration settings."""
    log_level: str = "INFO"
    log_format: Literal["json", "text"] = "text"
    api_host: str = "0.0.0.0"
    api_port: int = 8081


class Config(BaseModel):
    """Root configuration model."""
    model_config = ConfigDict(populate_by_name=True)

    global_: GlobalConfig = Field(default_factory=GlobalConfig, alias="global")
    source: SourceConfig = Field(default_factory=SourceConfig)
    poller: PollerConfig = Field(default_factory=PollerConfig)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)


def load_config(config_path: str) -> Config:
    """Load and validate configuration from YAML file."""
    import yaml

    if not os.path.exists(config_path):
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, 'r') as f:
        raw_config = yaml.safe_load(f) or {}

    # Environment overrides are read once here; the resulting Config is injected
    if env_url := os.getenv('METRICS_SOURCE_URL'):
        raw_config.setdefault('source', {})['url'] = env_url

    if env_log_level := os.getenv('LOG_LEVEL'):
        raw_config.setdefault('global', {})['log_level'] = env_log_level

    try:
        return Config(**raw_config)
    except Exception as e:
        raise ValueError(f"Configuration validation failed: {e}")
