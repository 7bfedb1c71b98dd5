# config.py - Configuration management

import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


class Config:
    """
    Configuration class for the content store connection and checker identity.

    Scan behaviour (batch size, timeouts, broken status codes) is not read from
    the environment; it is persisted in the content store, see ScanSettings.
    """

    def __init__(self):
        # Database Configuration
        self.DB_NAME = os.getenv("DB_NAME", "content")
        self.DB_USER = os.getenv("DB_USER", "postgres")
        self.DB_PASSWORD = os.getenv("DB_PASSWORD", "postgres")
        self.DB_HOST = os.getenv("DB_HOST", "localhost")
        self.DB_PORT = os.getenv("DB_PORT", "5432")

        # Checker identity sent with every probe
        self.USER_AGENT = os.getenv("CHECKER_USER_AGENT", "Video Link Cleaner/1.1")

        # Log file used when logging is enabled in the scan settings
        self.LOG_FILE = os.getenv("LOG_FILE", os.path.join("logs", "video-link-cleaner.log"))

        # Validate required settings
        self._validate_config()

    def _validate_config(self):
        """Check that the environment holds usable values"""
        if not str(self.DB_PORT).isdigit():
            raise ValueError(
                f"DB_PORT must be a number, got {self.DB_PORT!r}\n"
                f"Please check your .env file."
            )

    @property
    def database_url(self) -> str:
        return (
            f"postgresql://{self.DB_USER}:{self.DB_PASSWORD}"
            f"@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"
        )

    def __str__(self):
        """String representation for debugging (without exposing the password)"""
        return f"""
Config Status:
- Database: {self.DB_USER}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}
- Password: {'✅' if self.DB_PASSWORD else '❌'}
- User Agent: {self.USER_AGENT}
- Log File: {self.LOG_FILE}
        """
