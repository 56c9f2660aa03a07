from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    # Transport settings
    request_timeout_ms: int = 30000  # Per attempt
    max_retries: int = 2
    retry_backoff_seconds: float = 1.0  # Delay before retry n is base * 2**n
    follow_redirects: bool = True
    verify_ssl: bool = True
    max_body_size: int = 10 * 1024 * 1024  # 10MB max response body

    # Chain settings
    inter_step_delay_ms: int = 0
    graphql_content_type: str = "application/json"
    strict_graphql_variables: bool = False  # Raise instead of dropping bad variables

    # Data repository
    data_repository_path: str = ""  # JSON file with data repository variables

    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        env_prefix = "APICHAIN_"


@lru_cache
def get_settings() -> Settings:
    return Settings()
