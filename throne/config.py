"""Configuration management using Pydantic Settings."""

import logging
from decimal import Decimal
from functools import lru_cache
from pathlib import Path
from typing import List

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class AuctionConfig(BaseModel):
    """Bidding rules for the throne."""

    epsilon: Decimal = Decimal("0.01")  # minimal overbid, one cent
    min_payment: Decimal = Decimal("0.50")  # processor floor
    currency: str = "usd"
    initial_holder_name: str = "Nobody"


class SettlementConfig(BaseModel):
    """Confirmed-payment settlement behaviour."""

    max_attempts: int = Field(default=5, ge=1)
    retry_backoff_seconds: float = 0.05
    use_task_queue: bool = False
    task_max_retries: int = 5
    task_retry_delay_seconds: int = 30


class PaymentsConfig(BaseModel):
    """Payment processor credentials and client limits."""

    secret_key: str = ""
    webhook_secret: str = ""
    api_base: str = "https://api.stripe.com/v1"
    timeout_seconds: float = 30.0
    max_retries: int = 3
    signature_tolerance_seconds: int = 300


class Settings(BaseSettings):
    """Main configuration class."""

    # Application
    environment: str = Field(
        default="development",
        description="Environment: development, staging, production",
    )
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 8000
    allowed_origins: str = Field(
        default="http://localhost:3000",
        description="Comma-separated list of allowed CORS origins",
    )

    # Paths
    data_dir: Path = Path("data")

    # Storage
    database_url: str = "sqlite+aiosqlite:///./throne.db"
    redis_url: str = "redis://localhost:6379/0"

    # Observability
    log_level: str = "INFO"
    logfire_token: str = ""

    # Nested configuration sections
    auction: AuctionConfig = Field(default_factory=AuctionConfig)
    settlement: SettlementConfig = Field(default_factory=SettlementConfig)
    payments: PaymentsConfig = Field(default_factory=PaymentsConfig)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("data_dir", mode="after")
    @classmethod
    def resolve_data_dir(cls, v: Path) -> Path:
        """Resolve data directory to absolute path."""
        return v.resolve()

    @property
    def cors_origins(self) -> List[str]:
        """Parse comma-separated origins into a list."""
        return [o.strip() for o in self.allowed_origins.split(",") if o.strip()]

    @property
    def is_development(self) -> bool:
        return self.environment.lower() == "development"

    def load_yaml_config(self) -> None:
        """Load and merge YAML configuration."""
        config_path = self.data_dir / "config.yaml"

        if not config_path.exists():
            logger.debug(f"Config file not found: {config_path}. Using defaults.")
            return

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                yaml_config = yaml.safe_load(f)

            if not yaml_config:
                logger.warning(f"Empty config file: {config_path}")
                return

            for section_name in ["auction", "settlement", "payments"]:
                if section_name in yaml_config:
                    section = getattr(self, section_name)
                    section_dict = section.model_dump()
                    section_dict.update(yaml_config[section_name])
                    setattr(self, section_name, section.__class__(**section_dict))

            logger.info(f"Loaded configuration from {config_path}")

        except yaml.YAMLError as e:
            logger.error(f"Failed to parse YAML config: {e}")
            raise


@lru_cache()
def get_settings() -> Settings:
    """Get singleton Settings instance."""
    settings = Settings()
    settings.load_yaml_config()
    return settings
