from pydantic_settings import BaseSettings


class ConfigurationError(RuntimeError):
    """Required external credentials are missing."""


class Settings(BaseSettings):
    # Search provider
    search_provider: str = "google"  # google | brave | tavily
    google_api_key: str = ""
    google_cx: str = ""
    brave_api_key: str = ""
    tavily_api_key: str = ""
    search_fallback_to_tavily: bool = False

    # Research loop
    sources_per_query: int = 5
    max_content_per_page: int = 50000
    fetch_timeout_seconds: float = 30.0
    inter_batch_delay_ms: int = 200

    # Report
    report_excerpt_chars: int = 4000
    report_top_sources: int = 15

    # Sessions
    session_ttl_hours: int = 168

    # App
    cors_origins: str = "http://localhost:3000"
    app_log_level: str = "INFO"
    noisy_log_level: str = "WARNING"
    log_dir: str = "logs"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @property
    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",")]

    def missing_search_credentials(self) -> list[str]:
        provider = self.search_provider.lower().strip()
        required: dict[str, list[tuple[str, str]]] = {
            "google": [("GOOGLE_API_KEY", self.google_api_key), ("GOOGLE_CX", self.google_cx)],
            "brave": [("BRAVE_API_KEY", self.brave_api_key)],
            "tavily": [("TAVILY_API_KEY", self.tavily_api_key)],
        }
        if provider not in required:
            raise ConfigurationError(f"Unsupported SEARCH_PROVIDER: {self.search_provider}")
        missing = [name for name, value in required[provider] if not value]
        if self.search_fallback_to_tavily and provider != "tavily" and not self.tavily_api_key:
            missing.append("TAVILY_API_KEY")
        return missing

    def require_search_credentials(self) -> None:
        """Fail fast before any session is created."""
        missing = self.missing_search_credentials()
        if missing:
            raise ConfigurationError(
                f"Missing credentials for search provider '{self.search_provider}': "
                + ", ".join(missing)
            )


settings = Settings()
