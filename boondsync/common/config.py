"""
Configuration loader for the BoondManager sync pipeline.

Loads all settings from environment variables (.env file).
Validates required settings and provides type-safe access.
"""

import os
from typing import Iterable, List, Optional, Tuple
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


class Config:
    """
    Centralized configuration for all sync components.

    All values loaded from environment variables - NO SECRETS IN CODE.
    """

    # ===== MongoDB =====
    MONGODB_URI: str = os.getenv("MONGODB_URI", "")
    MONGODB_DATABASE: str = os.getenv("MONGODB_DATABASE", "ebmc")

    # ===== BoondManager API =====
    BOOND_BASE_URL: str = os.getenv("BOOND_BASE_URL", "https://ui.boondmanager.com/api")
    BOOND_PRODUCTION_USERNAME: str = os.getenv("BOOND_PRODUCTION_USERNAME", "")
    BOOND_PRODUCTION_PASSWORD: str = os.getenv("BOOND_PRODUCTION_PASSWORD", "")
    BOOND_SANDBOX_USERNAME: str = os.getenv("BOOND_SANDBOX_USERNAME", "")
    BOOND_SANDBOX_PASSWORD: str = os.getenv("BOOND_SANDBOX_PASSWORD", "")

    # Request timeout and retry budget for transient failures (429/5xx/network)
    BOOND_TIMEOUT: float = float(os.getenv("BOOND_TIMEOUT", "30"))
    BOOND_MAX_RETRIES: int = int(os.getenv("BOOND_MAX_RETRIES", "3"))

    # Dictionary cache lifetime in seconds (1 hour)
    BOOND_DICTIONARY_TTL: int = int(os.getenv("BOOND_DICTIONARY_TTL", "3600"))

    # ===== Logging =====
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_FORMAT: str = os.getenv("LOG_FORMAT", "simple")

    @classmethod
    def boond_settings(cls, environment: str) -> List[str]:
        """Names of the credential settings for a BoondManager environment."""
        prefix = f"BOOND_{environment.upper()}"
        return [f"{prefix}_USERNAME", f"{prefix}_PASSWORD"]

    @classmethod
    def validate(cls, settings: Optional[Iterable[str]] = None) -> None:
        """
        Validate that required configuration is present.

        Args:
            settings: Names of the settings to check (default: MongoDB
                and both BoondManager credential pairs)

        Raises ValueError listing every missing setting.
        """
        if settings is None:
            settings = ["MONGODB_URI"] + cls.boond_settings("production") + cls.boond_settings("sandbox")

        missing = [name for name in settings if not getattr(cls, name, "")]

        if missing:
            raise ValueError(
                f"Missing required configuration: {', '.join(missing)}. "
                f"Please check your .env file."
            )

    @classmethod
    def get_boond_credentials(cls, environment: str) -> Tuple[str, str]:
        """
        Get the Basic auth credentials for a BoondManager environment.

        Args:
            environment: "production" or "sandbox"

        Returns:
            (username, password) tuple

        Raises:
            ValueError: If the environment is unknown or credentials are missing
        """
        if environment == "production":
            username, password = cls.BOOND_PRODUCTION_USERNAME, cls.BOOND_PRODUCTION_PASSWORD
        elif environment == "sandbox":
            username, password = cls.BOOND_SANDBOX_USERNAME, cls.BOOND_SANDBOX_PASSWORD
        else:
            raise ValueError(f"Unknown BoondManager environment: {environment}")

        if not username or not password:
            prefix = f"BOOND_{environment.upper()}"
            raise ValueError(
                f"Missing BoondManager credentials for {environment}: "
                f"set {prefix}_USERNAME and {prefix}_PASSWORD"
            )
        return username, password

    @classmethod
    def summary(cls) -> str:
        """Return a summary of the current configuration (safe for logging)."""
        return f"""
Configuration Summary:
  MongoDB: {'✓ Configured' if cls.MONGODB_URI else '✗ Missing'} (db: {cls.MONGODB_DATABASE})
  BoondManager API: {cls.BOOND_BASE_URL}
  Production credentials: {'✓ Configured' if cls.BOOND_PRODUCTION_USERNAME and cls.BOOND_PRODUCTION_PASSWORD else '✗ Missing'}
  Sandbox credentials: {'✓ Configured' if cls.BOOND_SANDBOX_USERNAME and cls.BOOND_SANDBOX_PASSWORD else '✗ Missing'}
  Timeout: {cls.BOOND_TIMEOUT}s, retries: {cls.BOOND_MAX_RETRIES}
  Dictionary cache: {cls.BOOND_DICTIONARY_TTL}s
        """.strip()
