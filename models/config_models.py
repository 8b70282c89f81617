"""Configuration models for validation using Pydantic."""

from typing import Optional
from pydantic import BaseModel, Field, field_validator


class CredentialsConfig(BaseModel):
    """API credentials loaded from environment variables."""
    
    # GitHub token, possibly base64-encoded (resolved by get_github_token)
    github_token: Optional[str] = Field(None, description="GitHub personal access token")
    
    # Supabase holds the GithubIssue records
    supabase_url: str = Field(..., min_length=1, description="Supabase project URL")
    supabase_key: str = Field(..., min_length=1, description="Supabase API key")
    database_url: Optional[str] = Field(None, description="PostgreSQL database URL (optional, for schema setup)")
    
    @field_validator("supabase_url")
    @classmethod
    def validate_supabase_url(cls, v: str) -> str:
        """Validate Supabase URL format."""
        if not v or v == "https://your-project.supabase.co":
            raise ValueError("Supabase URL must be set in .env file")
        if not v.startswith("https://"):
            raise ValueError("Supabase URL must start with https://")
        return v
    
    @field_validator("supabase_key")
    @classmethod
    def validate_supabase_key(cls, v: str) -> str:
        """Validate Supabase key is set."""
        if not v or v == "your_supabase_anon_key_here":
            raise ValueError("Supabase key must be set in .env file")
        return v


class ControllerConfig(BaseModel):
    """Tuning knobs for the reconciliation controller."""
    
    resync_period_seconds: float = Field(default=60.0, gt=0, description="Steady-state requeue interval")
    github_timeout_seconds: float = Field(default=10.0, gt=0, description="Per-call GitHub API timeout")
    max_concurrent_reconciles: int = Field(default=4, ge=1, description="Worker threads")
    watch_poll_interval_seconds: float = Field(default=5.0, gt=0, description="How often the record store is polled for changes")
    finalizer_name: str = Field(
        default="githubissue.finalizers.dana.io/finalizer",
        min_length=1,
        description="Finalizer guarding issue cleanup",
    )
    github_host: str = Field(default="github.com", description="Host accepted in spec.repo URLs")
    github_api_url: str = Field(default="https://api.github.com", description="GitHub REST API base URL")
    
    @field_validator("github_api_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")


class Config(BaseModel):
    """Application configuration."""
    
    credentials: CredentialsConfig
    controller: ControllerConfig = Field(default_factory=ControllerConfig)
    log_level: str = Field(default="INFO", description="Logging level")
    
    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is one of the standard levels."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Log level must be one of: {', '.join(valid_levels)}")
        return v_upper
