from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator, Field
from typing import Optional
from urllib.parse import urlparse


class Settings(BaseSettings):
    # Application
    APP_NAME: str = "GradeBook"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = Field(default=False, description="Enable debug mode (set to false in production)")
    ENVIRONMENT: str = Field(default="production", description="Environment: development, staging, production")

    # Supabase
    SUPABASE_URL: str = Field(..., description="Supabase project URL")
    SUPABASE_KEY: str = Field(..., description="Supabase anon key")
    SUPABASE_SERVICE_KEY: str = Field(..., description="Supabase service role key")

    # JWT
    JWT_SECRET_KEY: str = Field(..., min_length=32, description="JWT secret key (minimum 32 characters)")
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30

    # CORS
    FRONTEND_URL: str = "http://localhost:3000"

    # Server
    PORT: int = Field(default=8000, description="Server port")

    # Logging (empty value disables file logging)
    LOG_DIR: Optional[str] = Field(default="logs", description="Directory for rotating log files")

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore"
    )

    @field_validator('SUPABASE_URL')
    @classmethod
    def validate_supabase_url(cls, v: str) -> str:
        """Validate Supabase URL format."""
        if not v:
            raise ValueError("SUPABASE_URL is required")
        parsed = urlparse(v)
        if not parsed.scheme or not parsed.netloc:
            raise ValueError("SUPABASE_URL must be a valid URL (e.g., https://xxxxx.supabase.co)")
        if parsed.scheme not in ['http', 'https']:
            raise ValueError("SUPABASE_URL must use http or https protocol")
        return v

    @field_validator('SUPABASE_KEY', 'SUPABASE_SERVICE_KEY')
    @classmethod
    def validate_supabase_keys(cls, v: str) -> str:
        if not v or len(v.strip()) == 0:
            raise ValueError("Supabase keys are required and cannot be empty")
        return v

    @field_validator('JWT_SECRET_KEY')
    @classmethod
    def validate_jwt_secret(cls, v: str) -> str:
        """Validate JWT secret key strength."""
        if not v or len(v) < 32:
            raise ValueError(
                "JWT_SECRET_KEY must be at least 32 characters long. "
                "Generate one using: python -c \"import secrets; print(secrets.token_urlsafe(32))\""
            )
        return v

    @field_validator('FRONTEND_URL')
    @classmethod
    def validate_frontend_url(cls, v: str) -> str:
        if v:
            parsed = urlparse(v)
            if not parsed.scheme or not parsed.netloc:
                raise ValueError("FRONTEND_URL must be a valid URL")
        return v


REQUIRED_ENV_VARS = ['SUPABASE_URL', 'SUPABASE_KEY', 'SUPABASE_SERVICE_KEY', 'JWT_SECRET_KEY']


def validate_settings() -> None:
    """Validate all required settings are present and valid."""
    from gradebook.core.exceptions import ConfigurationError

    global settings
    try:
        settings = Settings()
    except Exception as e:
        error_msg = str(e)
        if "required" in error_msg.lower() or "missing" in error_msg.lower():
            missing_field = next(
                (field for field in REQUIRED_ENV_VARS if field.lower() in error_msg.lower()),
                ""
            )
            raise ConfigurationError(
                f"Missing required environment variable: {missing_field or 'See error details'}\n"
                f"Please check your .env file and ensure all required variables are set.\n"
                f"Error: {error_msg}",
                error_code="MISSING_ENV_VAR"
            )
        raise ConfigurationError(
            f"Configuration error: {error_msg}\n"
            f"Please check your .env file configuration.",
            error_code="CONFIG_ERROR"
        )

    if not settings.SUPABASE_URL.startswith('https://') and not settings.DEBUG:
        raise ConfigurationError(
            "SUPABASE_URL should use HTTPS in production",
            error_code="INSECURE_URL"
        )


# Initialize settings; failures are reported by validate_settings() at startup
try:
    settings = Settings()
except Exception:
    settings = None
