from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Redis
    redis_url: str = "redis://localhost:6379/0"

    # Route cache
    route_cache_backend: str = "memory"  # "memory" | "redis"
    route_cache_ttl_minutes: int = 30
    route_cache_max_entries: int = 1024

    # Transport-data provider (empty base URL = deterministic mock data)
    transport_provider_base_url: str = ""
    transport_provider_api_key: str = ""
    transport_provider_timeout_seconds: float = 8.0
    transport_provider_max_attempts: int = 3
    transport_provider_concurrency: int = 10

    # Composer
    strategy_timeout_seconds: float = 10.0
    compose_timeout_seconds: float = 30.0
    default_currency: str = "USD"

    # CORS
    cors_origins: str = "http://localhost:5173"

    @property
    def cors_origin_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",")]

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


settings = Settings()
