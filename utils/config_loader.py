"""Configuration loader that reads from .env and validates with Pydantic."""

import base64
import binascii
import os
import sys
from pathlib import Path
from typing import Optional
from dotenv import load_dotenv
from pydantic import ValidationError

from controller.errors import MissingCredential
from models.config_models import Config, ControllerConfig, CredentialsConfig

ENV_PATH = Path(__file__).parent.parent / ".env"

GITHUB_TOKEN_ENV = "GITHUB_TOKEN"

# Environment variable -> ControllerConfig field
CONTROLLER_ENV = {
    "RESYNC_PERIOD_SECONDS": "resync_period_seconds",
    "GITHUB_TIMEOUT_SECONDS": "github_timeout_seconds",
    "MAX_CONCURRENT_RECONCILES": "max_concurrent_reconciles",
    "WATCH_POLL_INTERVAL_SECONDS": "watch_poll_interval_seconds",
    "FINALIZER_NAME": "finalizer_name",
    "GITHUB_HOST": "github_host",
    "GITHUB_API_URL": "github_api_url",
}


def _controller_env() -> dict:
    return {
        field: os.environ[env]
        for env, field in CONTROLLER_ENV.items()
        if os.getenv(env)
    }


def load_controller_config() -> ControllerConfig:
    """
    Load only the controller settings (no credentials required).
    
    Used by the record API, which must agree with the controller on the
    accepted repository host.
    
    Raises:
        ValidationError: If a controller setting is invalid
    """
    load_dotenv(dotenv_path=ENV_PATH)
    return ControllerConfig(**_controller_env())


def load_config() -> Config:
    """
    Load and validate configuration from environment variables.
    
    Reads from .env file in the project root and validates all required
    credentials and settings using Pydantic models.
    
    Returns:
        Config: Validated configuration object
        
    Raises:
        SystemExit: If configuration is invalid or missing required fields
    """
    # Load .env file from project root
    load_dotenv(dotenv_path=ENV_PATH)
    
    try:
        config = Config(
            credentials=CredentialsConfig(
                github_token=os.getenv(GITHUB_TOKEN_ENV),
                supabase_url=os.getenv("SUPABASE_URL", ""),
                supabase_key=os.getenv("SUPABASE_KEY", ""),
                database_url=os.getenv("DATABASE_URL"),
            ),
            controller=ControllerConfig(**_controller_env()),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )
        
        return config
        
    except ValidationError as e:
        print("❌ Configuration validation failed:", file=sys.stderr)
        print("\nPlease check your .env file. Missing or invalid fields:", file=sys.stderr)
        
        for error in e.errors():
            field_path = " → ".join(str(x) for x in error["loc"])
            message = error["msg"]
            print(f"  • {field_path}: {message}", file=sys.stderr)
        
        print("\nHint: Copy .env.example to .env and fill in your credentials.", file=sys.stderr)
        sys.exit(1)


def decode_token(raw: str) -> str:
    """
    Return the base64-decoded token, or ``raw`` if it is not base64 text.
    
    Tokens mounted from secrets are often base64-encoded; plain GitHub tokens
    contain ``_`` and never decode cleanly.
    """
    try:
        decoded = base64.b64decode(raw, validate=True).decode("utf-8")
    except (binascii.Error, ValueError):
        return raw
    
    decoded = decoded.strip()
    if not decoded or not decoded.isprintable():
        return raw
    return decoded


def get_github_token(config: Optional[Config] = None) -> str:
    """
    Resolve the GitHub token from config (or the environment).
    
    Raises:
        MissingCredential: If GITHUB_TOKEN is unset or empty
    """
    if config is not None:
        raw = config.credentials.github_token
    else:
        raw = os.getenv(GITHUB_TOKEN_ENV)
    
    if not raw or not raw.strip():
        raise MissingCredential(f"{GITHUB_TOKEN_ENV} environment variable not set")
    
    return decode_token(raw.strip())
