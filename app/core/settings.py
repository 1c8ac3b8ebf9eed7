"""
Core settings and environment variables for the Civic Escalation Service.
Uses pydantic-settings for type-safe environment variable loading.
"""

from pydantic_settings import BaseSettings
from typing import List, Optional


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Create a .env file in the root directory to configure these.
    """

    # Application
    APP_NAME: str = "Civic Escalation Service"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # CORS - Frontend URLs allowed to access this API
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:5173"

    # Firebase/Firestore
    FIREBASE_PROJECT_ID: Optional[str] = None
    FIREBASE_CREDENTIALS_PATH: Optional[str] = None  # Path to service account JSON

    # Mock DB mode for local development without Firebase credentials.
    # Uses in-memory stores; ADMIN_USER_IDS then acts as the admin allow-list.
    USE_MOCK_DB: bool = False
    ADMIN_USER_IDS: str = ""

    # Escalation scheduler
    ESCALATION_ENABLED: bool = True
    ESCALATION_INTERVAL_SECONDS: float = 60.0
    ESCALATION_DWELL_MINUTES: float = 5.0
    ESCALATION_CALL_TIMEOUT_SECONDS: float = 30.0
    ESCALATION_CLAIM_TTL_SECONDS: float = 300.0  # must exceed the call timeout
    ESCALATION_LOG_RETENTION_DAYS: int = 90

    # Escalation dashboard
    ESCALATION_HIGH_SEVERITY_THRESHOLD: float = 8.0
    ESCALATION_SUMMARY_WINDOW_HOURS: int = 24

    # Twilio voice calls (demo mode when SID/token are missing)
    TWILIO_ACCOUNT_SID: Optional[str] = None
    TWILIO_AUTH_TOKEN: Optional[str] = None
    TWILIO_PHONE_NUMBER: Optional[str] = None
    ADMIN_PHONE_NUMBER: Optional[str] = None

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "allow"

    @property
    def admin_user_ids(self) -> List[str]:
        return [uid.strip() for uid in self.ADMIN_USER_IDS.split(",") if uid.strip()]

    @property
    def cors_origins(self) -> List[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]


# Global settings instance
settings = Settings()
