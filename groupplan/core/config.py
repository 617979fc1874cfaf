from pydantic_settings import BaseSettings
from dotenv import load_dotenv
from typing import Optional

load_dotenv()


class Settings(BaseSettings):
    DATABASE_URL: str
    JWT_SECRET_KEY: str
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 20

    # SMTP is optional; invitations are still recorded without it
    SMTP_HOST: Optional[str] = None
    SMTP_PORT: int = 465
    SMTP_USER: Optional[str] = None
    SMTP_PASSWORD: Optional[str] = None
    FRONTEND_BASE_URL: str = "http://localhost:3000"

    # Redis backs the rate limiter; in-process store is used when unset
    REDIS_URL: Optional[str] = None

    INVITE_RATE_LIMIT: int = 20
    INVITE_RATE_WINDOW_SECONDS: int = 60
    VOTE_RATE_LIMIT: int = 100
    VOTE_RATE_WINDOW_SECONDS: int = 60

    INVITE_TTL_HOURS: int = 24
    INVITE_TTL_MAX_HOURS: int = 72
    SURVEY_TTL_HOURS: int = 48
    VOTING_TTL_HOURS: int = 24
    DECISION_TTL_MAX_HOURS: int = 168

    PASSWORD_MIN_LENGTH: int = 6

    PROJECT_NAME: str = "GroupPlan API"
    PROJECT_VERSION: str = "1.0.0"
    PROJECT_DESCRIPTION: str = "Group decision coordination for shared trips"
    APP_NAME: str = "GroupPlan"

    class Config:
        env_file = ".env"


settings = Settings()
