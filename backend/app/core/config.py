"""Application configuration loaded from environment variables.

Settings for the HTTP host, the conversation session store and rate
limiting. Uses pydantic-settings for validation and .env file support.
"""

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Application
    environment: str = "development"
    log_level: str = "INFO"

    # CORS (Security)
    # Default allows localhost:3000 for frontend development
    # Production: Set ALLOWED_ORIGINS to specific domain(s)
    allowed_origins: list[str] = ["http://localhost:3000"]

    # Chatbot
    chatbot_name: str = "Resume Assistant"

    # Conversation sessions
    # Idle sessions expire after this many minutes; the store evicts the
    # least recently used session once max_active_sessions is reached.
    session_timeout_minutes: int = 30
    max_active_sessions: int = 1000
    max_input_length: int = 2000

    # Rate Limiting (Security)
    # Format: "count/period" (e.g., "30/minute", "100/hour")
    rate_limit_conversation: str = "60/minute"
    rate_limit_enabled: bool = True  # Disable for testing

    @model_validator(mode="after")
    def check_limits(self) -> "Settings":
        """Validate session and input limits.

        Checks:
        - Session timeout must be positive
        - Session capacity must be positive
        - Input length cap must be positive
        - CORS must not use wildcard origin in production
        """
        if self.session_timeout_minutes <= 0:
            msg = (
                "SESSION_TIMEOUT_MINUTES must be positive. "
                f"Got: {self.session_timeout_minutes}"
            )
            raise ValueError(msg)
        if self.max_active_sessions <= 0:
            msg = f"MAX_ACTIVE_SESSIONS must be positive. Got: {self.max_active_sessions}"
            raise ValueError(msg)
        if self.max_input_length <= 0:
            msg = f"MAX_INPUT_LENGTH must be positive. Got: {self.max_input_length}"
            raise ValueError(msg)

        if self.environment == "production" and "*" in self.allowed_origins:
            msg = (
                "ALLOWED_ORIGINS must not contain '*' (wildcard) in production. "
                "Set it to the frontend domain(s)."
            )
            raise ValueError(msg)

        return self


settings = Settings()
