from pydantic_settings import BaseSettings
from typing import List, Optional


class Settings(BaseSettings):
    # Database
    DATABASE_URL: str = ""  # Resolved by get_database_url() when empty
    DB_OPERATION_TIMEOUT: float = 10.0  # seconds per lifecycle operation
    COMPLETION_MAX_ATTEMPTS: int = 3  # optimistic retries on streak conflicts

    # Tokens are issued by the external identity provider, we only verify them
    JWT_SECRET_KEY: str = "your-secret-key-change-in-production"
    JWT_ALGORITHM: str = "HS256"
    JWT_AUDIENCE: Optional[str] = None

    # Debug mode
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # CORS
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:5173"]

    # Application
    APP_NAME: str = "Kudos Task Manager"
    VERSION: str = "1.0.0"

    APP_ENV: str = "development"
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000

    model_config = {"env_file": ".env", "extra": "ignore"}


settings = Settings()
