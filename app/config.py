from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", populate_by_name=True)

    service_name: str = Field(default="platform-api", alias="SERVICE_NAME")
    service_version: str = Field(default="1.0.0", alias="SERVICE_VERSION")
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=8080, alias="PORT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    otlp_enabled: bool = Field(default=True, alias="OTLP_ENABLED")
    otlp_endpoint: str = Field(default="tempo:4317", alias="OTLP_ENDPOINT")
    otlp_insecure: bool = Field(default=True, alias="OTLP_INSECURE")

    shutdown_grace_seconds: float = Field(default=10.0, alias="SHUTDOWN_GRACE_SECONDS")

    # Returned as traceId when a handler runs outside of a valid span.
    fallback_trace_id: str = Field(default="test-trace-id-12345", alias="FALLBACK_TRACE_ID")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
