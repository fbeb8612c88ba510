"""Application configuration."""
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # API Security (operator endpoints only, admission endpoints are called by the API server)
    api_key: str = ""

    # Service Configuration
    host: str = "0.0.0.0"
    port: int = 9443
    log_level: str = "info"
    tls_cert_file: Optional[str] = None
    tls_key_file: Optional[str] = None

    # Kubernetes
    root_namespace: str = "cf"
    kubectl_binary: str = "kubectl"
    kubectl_timeout: float = 10.0  # seconds, per kubectl call

    # Admission
    admission_timeout: float = 10.0  # seconds, overall deadline of one admission request

    # Name registry lock retries
    lock_retry_attempts: int = 5
    lock_retry_initial_delay: float = 0.05  # seconds
    lock_retry_max_delay: float = 1.0  # seconds

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )


settings = Settings()
