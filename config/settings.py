"""Application settings and configuration management."""
from pydantic_settings import BaseSettings
from functools import lru_cache
import yaml
from pathlib import Path

class Settings(BaseSettings):
    """Application settings from environment variables."""
    
    # Database
    DATABASE_URL: str = "sqlite:///./data/grow-guard.db"
    
    # Redis (celery broker for risk monitoring)
    REDIS_HOST: str = "redis"
    REDIS_PORT: int = 6379
    
    # API
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 3001
    API_URL: str = "http://localhost:3001"
    CORS_ORIGINS: list[str] = ["*"]
    
    # Risk assessment
    RISK_LEVEL_SOURCE: str = "stored"  # stored | computed
    RISK_MONITOR_INTERVAL_SECONDS: int = 300
    
    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False
    
    # Environment
    ENV: str = "development"
    
    class Config:
        env_file = ".env"

@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()

@lru_cache()
def get_risk_limits() -> dict:
    """Load risk scoring thresholds from YAML."""
    config_path = Path(__file__).parent / "risk_limits.yaml"
    with open(config_path, 'r', encoding='utf-8') as f:
        return yaml.safe_load(f)
