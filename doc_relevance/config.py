"""Application configuration loaded from environment variables."""

from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Central configuration — reads from environment / .env file."""

    # Firecrawl (page discovery)
    firecrawl_api_key: str = ""
    firecrawl_api_url: str = "https://api.firecrawl.dev"
    discovery_timeout_seconds: int = 180
    discovery_poll_interval_seconds: float = 2.0

    # Anthropic (relevance filtering)
    anthropic_api_key: str = ""
    claude_model: str = "claude-sonnet-4-6"
    llm_max_tokens: int = 2048
    llm_max_retries: int = 1
    llm_timeout_seconds: int = 60

    # Disk cache
    cache_dir: Path = Path("cache")
    cache_ttl_seconds: int = 86400              # 24 hours

    # Server
    host: str = "127.0.0.1"
    port: int = 8000
    log_level: str = "INFO"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    @property
    def has_firecrawl_key(self) -> bool:
        return bool(self.firecrawl_api_key)

    @property
    def has_anthropic_key(self) -> bool:
        return bool(self.anthropic_api_key)


settings = Settings()
