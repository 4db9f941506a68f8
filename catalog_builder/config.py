"""
Configuration module for the catalog builder.

Reads environment variables and provides configuration values for the
Spaces bucket, the document persistence backend and the REST endpoint.
"""

import os
from pathlib import Path
from typing import List, Tuple

from dotenv import load_dotenv

# Load environment variables from .env file (for local development).
# In Lambda, environment variables are set on the function configuration.
env_path = Path(__file__).parent.parent / ".env"
if env_path.exists() and not os.getenv("AWS_LAMBDA_FUNCTION_NAME"):
    load_dotenv(dotenv_path=env_path, override=False)


DOCUMENT_BACKENDS = ("s3", "rest", "file")


class Config:
    """
    Configuration class that reads environment variables for the catalog builder.
    """

    # Spaces (S3-compatible) configuration
    SPACES_BUCKET_NAME: str = os.getenv("SPACES_BUCKET_NAME", "")
    SPACES_REGION: str = os.getenv("SPACES_REGION", "nyc3")
    SPACES_ENDPOINT: str = os.getenv(
        "SPACES_ENDPOINT", f"https://{os.getenv('SPACES_REGION', 'nyc3')}.digitaloceanspaces.com"
    )
    SPACES_ACCESS_KEY: str = os.getenv("SPACES_ACCESS_KEY", "")
    SPACES_SECRET_KEY: str = os.getenv("SPACES_SECRET_KEY", "")

    # Document persistence
    DOCUMENT_BACKEND: str = os.getenv("DOCUMENT_BACKEND", "s3").lower()
    DOCUMENT_PREFIX: str = os.getenv("DOCUMENT_PREFIX", "catalog/documents")
    DOCUMENT_NAME: str = os.getenv("DOCUMENT_NAME", "stepper_form_data.json")
    DOCUMENT_API_URL: str = os.getenv("DOCUMENT_API_URL", "")
    DOCUMENT_API_KEY: str = os.getenv("DOCUMENT_API_KEY", "")
    DOCUMENT_FILE_PATH: str = os.getenv("DOCUMENT_FILE_PATH", "stepper_form_data.json")

    # REST client behaviour
    API_TIMEOUT_SECONDS: int = int(os.getenv("API_TIMEOUT_SECONDS", "30"))
    API_MAX_RETRIES: int = int(os.getenv("API_MAX_RETRIES", "3"))

    @classmethod
    def validate(cls) -> None:
        """
        Validate that required configuration values are present.

        The Spaces credentials are always required; the remaining variables
        depend on the selected document backend.

        Raises:
            ValueError: If any required configuration is missing or invalid.
        """
        if cls.DOCUMENT_BACKEND not in DOCUMENT_BACKENDS:
            raise ValueError(
                f"DOCUMENT_BACKEND must be one of {', '.join(DOCUMENT_BACKENDS)}"
            )

        required_vars: List[Tuple[str, str]] = [
            ("SPACES_BUCKET_NAME", cls.SPACES_BUCKET_NAME),
            ("SPACES_ACCESS_KEY", cls.SPACES_ACCESS_KEY),
            ("SPACES_SECRET_KEY", cls.SPACES_SECRET_KEY),
        ]
        if cls.DOCUMENT_BACKEND == "rest":
            required_vars.extend(
                [
                    ("DOCUMENT_API_URL", cls.DOCUMENT_API_URL),
                    ("DOCUMENT_API_KEY", cls.DOCUMENT_API_KEY),
                ]
            )
        elif cls.DOCUMENT_BACKEND == "file":
            required_vars.append(("DOCUMENT_FILE_PATH", cls.DOCUMENT_FILE_PATH))

        missing = [name for name, value in required_vars if not value]
        if missing:
            raise ValueError(
                f"Missing required environment variables: {', '.join(missing)}"
            )

    @classmethod
    def get_document_key(cls, name: str = "") -> str:
        """
        Generate the bucket key of a persisted wizard document.

        Args:
            name: Optional document file name, defaults to DOCUMENT_NAME

        Returns:
            str: Object key for the document
        """
        prefix = cls.DOCUMENT_PREFIX.strip("/")
        document_name = name or cls.DOCUMENT_NAME
        return f"{prefix}/{document_name}" if prefix else document_name
