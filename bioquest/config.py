"""Configuration management for the BioQuest paper generator.

This module uses Pydantic Settings to load configuration from environment
variables. All settings are validated at startup to catch configuration
errors early.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Supabase credentials are mandatory. The Gemini key is only a fallback
    credential: callers may supply their own key per request.
    """

    # Supabase Configuration
    supabase_url: str = Field(
        ...,
        description="Supabase project URL"
    )
    supabase_key: str = Field(
        ...,
        description="Supabase anonymous key"
    )
    supabase_service_role_key: Optional[str] = Field(
        default=None,
        description="Supabase service role key (bypasses RLS when set)"
    )

    # Gemini API Configuration
    gemini_api_key: Optional[str] = Field(
        default=None,
        description="Fallback Google Gemini API key used when the caller has none"
    )

    # AI Model Configuration
    model_name: str = Field(
        default="gemini-2.5-flash",
        description="Gemini model used for question text generation"
    )
    image_model_name: str = Field(
        default="gemini-2.5-flash-image",
        description="Gemini model used for diagram generation"
    )

    # Throttling
    ai_request_delay_seconds: float = Field(
        default=1.5,
        ge=0.0,
        description="Delay between consecutive AI generation requests in one run"
    )
    image_step_delay_seconds: float = Field(
        default=1.1,
        ge=0.0,
        description="Delay between the text and image steps of an image-based question"
    )

    # Drafts
    draft_autosave_interval_seconds: float = Field(
        default=30.0,
        gt=0.0,
        description="Interval for generator draft auto-save"
    )

    # Rate limiting
    trusted_proxies: Optional[str] = Field(
        default=None,
        description="Comma-separated proxy IPs allowed to set X-Forwarded-For"
    )

    # Model configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("gemini_api_key")
    @classmethod
    def validate_gemini_api_key(cls, v: Optional[str]) -> Optional[str]:
        """Normalize GEMINI_API_KEY; blank values mean no fallback key."""
        if v is None or not v.strip():
            return None
        return v.strip()

    @field_validator("supabase_url")
    @classmethod
    def validate_supabase_url(cls, v: str) -> str:
        """Validate that Supabase URL is present and properly formatted."""
        if not v or not v.strip():
            raise ValueError("SUPABASE_URL must be set in environment variables")

        url = v.strip()
        if not url.startswith("https://"):
            raise ValueError(
                "SUPABASE_URL must start with https:// "
                f"(got: {url[:20]}...)"
            )

        return url

    @field_validator("supabase_key")
    @classmethod
    def validate_supabase_key(cls, v: str) -> str:
        """Validate that Supabase key is present and non-empty."""
        if not v or not v.strip():
            raise ValueError("SUPABASE_KEY must be set in environment variables")
        return v.strip()


@lru_cache
def get_settings() -> Settings:
    """Get cached Settings instance.

    Returns:
        Settings: Validated application settings

    Raises:
        ValueError: If required environment variables are missing or invalid
    """
    return Settings()
