# globetrotter/config.py
import os
from pydantic_settings import BaseSettings
from pydantic import ConfigDict
from typing import List
from dotenv import load_dotenv
load_dotenv()

class Settings(BaseSettings):
    # Application Settings
    api_prefix: str = "/api"
    allowed_origins: List[str] = ["http://localhost:5173"]
    frontend_url: str = "http://localhost:5173"
    default_page_size: int = 10
    max_page_size: int = 50
    admin_max_page_size: int = 100

    # Google Cloud / Firestore
    project_id: str = ""
    database: str = "(default)"
    service_account_secret: str = ""
    google_application_credentials: str = ""
    db_connect_retries: int = 5
    db_connect_backoff_seconds: float = 2.0

    # Tokens
    jwt_secret_key: str = "change-me-in-production"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 15
    refresh_token_expire_days: int = 30
    password_reset_expire_minutes: int = 10
    expose_reset_token: bool = False
    bcrypt_rounds: int = 12

    # Admin bootstrap (scripts/ensure_admin.py)
    admin_email: str = "admin@globe.com"
    admin_password: str = "admin123456"
    admin_name: str = "Administrator"
    admin_reset: bool = False

    model_config = ConfigDict(
        env_file=".env",
        extra="ignore"  # Allow extra environment variables without validation errors
    )

class CloudRunConfig:
    """Configuration for Cloud Run deployment"""

    IS_CLOUD_RUN: bool = os.getenv("K_SERVICE") is not None
    PROJECT_ID: str = os.getenv("GOOGLE_CLOUD_PROJECT", "")
    PORT: int = int(os.getenv("PORT", "8080"))

settings = Settings()
cloud_config = CloudRunConfig()
