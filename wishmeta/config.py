"""
Configuration management for the wishlist metadata service.
Handles environment variables and application settings.
"""
import os
from dataclasses import dataclass
from typing import Optional
from dotenv import load_dotenv

load_dotenv()


@dataclass(frozen=True)
class AmazonCredentials:
    """Product Advertising API credentials passed explicitly to the client."""
    access_key: Optional[str] = None
    secret_key: Optional[str] = None
    associate_tag: Optional[str] = None

    def is_complete(self) -> bool:
        """All three values are required to sign a request."""
        return bool(self.access_key and self.secret_key and self.associate_tag)


class Config:
    """Application configuration loaded from environment variables."""

    # Server settings
    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", "8000"))
    DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"

    # Amazon Product Advertising API (optional)
    # Missing values only disable the Amazon path, they never block startup
    AMAZON_ACCESS_KEY: Optional[str] = os.getenv("AMAZON_ACCESS_KEY")
    AMAZON_SECRET_KEY: Optional[str] = os.getenv("AMAZON_SECRET_KEY")
    AMAZON_ASSOCIATE_TAG: Optional[str] = os.getenv("AMAZON_ASSOCIATE_TAG")

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_FORMAT: str = os.getenv("LOG_FORMAT", "json")  # json or console

    # Request settings
    FETCH_TIMEOUT: int = int(os.getenv("FETCH_TIMEOUT", "10"))
    REQUEST_TIMEOUT: int = int(os.getenv("REQUEST_TIMEOUT", "15"))

    @classmethod
    def is_amazon_configured(cls) -> bool:
        """
        Check if Amazon PA-API credentials are fully configured.

        Requires ALL of:
        - AMAZON_ACCESS_KEY
        - AMAZON_SECRET_KEY
        - AMAZON_ASSOCIATE_TAG
        """
        return all([
            cls.AMAZON_ACCESS_KEY,
            cls.AMAZON_SECRET_KEY,
            cls.AMAZON_ASSOCIATE_TAG
        ])

    @classmethod
    def get_missing_amazon_vars(cls) -> list:
        """Return list of missing Amazon environment variables."""
        missing = []
        if not cls.AMAZON_ACCESS_KEY:
            missing.append("AMAZON_ACCESS_KEY")
        if not cls.AMAZON_SECRET_KEY:
            missing.append("AMAZON_SECRET_KEY")
        if not cls.AMAZON_ASSOCIATE_TAG:
            missing.append("AMAZON_ASSOCIATE_TAG")
        return missing

    @classmethod
    def amazon_credentials(cls) -> AmazonCredentials:
        """Snapshot the Amazon settings into a credentials value."""
        return AmazonCredentials(
            access_key=cls.AMAZON_ACCESS_KEY,
            secret_key=cls.AMAZON_SECRET_KEY,
            associate_tag=cls.AMAZON_ASSOCIATE_TAG,
        )


config = Config()
