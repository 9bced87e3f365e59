"""Configuration management for the application."""
from pydantic_settings import BaseSettings
from typing import Optional

# Public RPC endpoints per cluster
CLUSTER_URLS = {
    "mainnet-beta": "https://api.mainnet-beta.solana.com",
    "devnet": "https://api.devnet.solana.com",
    "testnet": "https://api.testnet.solana.com",
    "localnet": "http://127.0.0.1:8899",
}


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # API Configuration
    api_title: str = "Lending History API"
    api_version: str = "1.0.0"
    api_prefix: str = "/api/v1"

    # CORS Configuration
    cors_origins: list[str] = ["http://localhost:5173", "http://localhost:3000"]

    # Solana Configuration
    solana_cluster: str = "devnet"
    solana_rpc_url: Optional[str] = None  # Overrides the cluster default when set
    rpc_timeout_seconds: float = 30.0
    lending_program_id: str = "EZqPMxDtbaQbCGMaxvXS6vGKzMTJvt7p8xCPaBT6155G"

    # History Query Configuration
    summary_page_size: int = 10
    detail_fetch_delay_seconds: float = 0.8

    # Cache Configuration
    cache_ttl_seconds: int = 300  # 5 minutes
    enable_cache: bool = True

    # Route service pool
    max_history_services: int = 256

    # Rate Limiting
    throttle_interval_seconds: float = 5.0
    backoff_max_retries: int = 3
    backoff_base_delay_seconds: float = 1.0

    # Logging
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = False

    def rpc_url_for(self, cluster: Optional[str] = None) -> str:
        """Resolve the RPC endpoint for a cluster name or custom URL."""
        if cluster is None:
            if self.solana_rpc_url:
                return self.solana_rpc_url
            cluster = self.solana_cluster
        if cluster.startswith("http://") or cluster.startswith("https://"):
            return cluster
        if cluster not in CLUSTER_URLS:
            raise ValueError(f"Unknown Solana cluster: {cluster}")
        return CLUSTER_URLS[cluster]


settings = Settings()
