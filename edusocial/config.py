import logging
from typing import List, Optional

from pydantic import field_validator, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from .secrets_manager import SecretsManager

logger = logging.getLogger(__name__)

_secrets_manager: Optional[SecretsManager] = None


def _secrets(region_name: Optional[str]) -> SecretsManager:
    # One manager for all fields so the bundle is fetched once
    global _secrets_manager
    if _secrets_manager is None:
        _secrets_manager = SecretsManager(region_name=region_name)
    return _secrets_manager


class Settings(BaseSettings):
    aws_region: str = "us-east-1"
    environment: str = "development"
    host: str = "localhost"
    db_username: str = "postgres"
    db_password: SecretStr = SecretStr("postgres")
    database: str = "edusocial"
    port: int = 5432
    # Full SQLAlchemy URL; takes precedence over the discrete fields above
    database_url: Optional[str] = None
    push_notification_url: Optional[SecretStr] = None
    firebase_project_id: str = "edusocial"
    cors_origins: List[str] = ["*"]
    default_page_size: int = 10
    max_page_size: int = 50
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @field_validator("db_username", "db_password", "push_notification_url", mode="before")
    @classmethod
    def load_secrets(cls, v, info):
        if info.data.get("environment") != "production":
            return v
        try:
            return _secrets(info.data.get("aws_region")).get_setting(info.field_name, v)
        except Exception:
            # Fall back to the env value when Secrets Manager is unreachable
            logger.exception(f"Could not load {info.field_name} from Secrets Manager")
            return v

    @property
    def sqlalchemy_database_url(self) -> str:
        if self.database_url:
            return self.database_url
        return (
            f"postgresql+psycopg://{self.db_username}:{self.db_password.get_secret_value()}"
            f"@{self.host}:{self.port}/{self.database}"
        )

settings = Settings()
