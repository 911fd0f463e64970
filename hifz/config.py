from pydantic_settings import BaseSettings
from pathlib import Path

# Get the project root directory (parent of hifz folder)
PROJECT_ROOT = Path(__file__).parent.parent

class Settings(BaseSettings):
    """Application configuration loaded from environment variables"""
    database_url: str = f"sqlite:///{PROJECT_ROOT / 'hifz.db'}"
    echo_sql: bool = False
    
    # Review queue size used when the caller does not pass a limit
    due_queue_limit: int = 50
    
    log_level: str = "INFO"
    
    class Config:
        env_prefix = "HIFZ_"
        env_file = str(PROJECT_ROOT / ".env")
        extra = "ignore"

settings = Settings()
