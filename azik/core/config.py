from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from typing import List, Optional
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "Azik API"
    environment: str = "production"
    debug: bool = False
    api_v1_prefix: str = "/api/v1"
    frontend_url: str = "http://localhost:3000"
    api_url: str = "http://localhost:8000"
    cors_origins: List[str] = []

    # Supabase
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    use_in_memory_database: bool = False

    # Session tokens
    jwt_secret: str = "change-me"
    jwt_algorithm: str = "HS256"
    jwt_expiration_minutes: int = 60 * 24

    # Registration
    password_min_length: int = 8
    verification_token_ttl_hours: int = 24

    # SMTP
    email_host: Optional[str] = None
    email_port: int = 587
    email_username: Optional[str] = None
    email_password: Optional[str] = None
    email_from: str = "noreply@azik.app"
    email_timeout_seconds: float = 10.0

    # Firebase Cloud Messaging
    firebase_service_account: Optional[str] = None
    push_timeout_seconds: float = 10.0

    # Notification cleanup
    notification_retention_hours: int = 24
    cleanup_interval_seconds: int = 3600
    enable_scheduler: bool = True

    @property
    def use_supabase(self) -> bool:
        return bool(self.supabase_url and self.supabase_key) and not self.use_in_memory_database

    @property
    def email_enabled(self) -> bool:
        return bool(self.email_host and self.email_username and self.email_password)

@lru_cache()
def get_settings() -> Settings:
    return Settings()
