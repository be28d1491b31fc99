from functools import lru_cache
from typing import Tuple

from pydantic import field_validator
from pydantic_settings import BaseSettings

DEFAULT_REGION = "cn-shanghai"


class Settings(BaseSettings):
    app_name: str = "Image Moderation Service"
    base_url: str = "http://localhost:3000"

    aliyun_access_key_id: str = ""
    aliyun_access_key_secret: str = ""
    aliyun_region: str = DEFAULT_REGION
    aliyun_risk_level_allow_list: str = "none,low"

    # seconds; the remote call must never hang indefinitely
    moderation_connect_timeout: float = 5.0
    moderation_read_timeout: float = 10.0

    log_level: str = "INFO"
    log_file: str | None = None

    class Config:
        env_file = ".env"

    @field_validator("aliyun_region", mode="before")
    @classmethod
    def default_region(cls, value):
        return value or DEFAULT_REGION

    @field_validator("moderation_connect_timeout", "moderation_read_timeout")
    @classmethod
    def finite_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("timeouts must be positive")
        return value

    @property
    def request_timeout(self) -> Tuple[float, float]:
        return (self.moderation_connect_timeout, self.moderation_read_timeout)


@lru_cache()
def get_settings() -> Settings:
    """Return process-wide settings."""
    return Settings()


settings = get_settings()
