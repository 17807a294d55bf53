"""Configuration for the ga4bridge adapters."""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Settings read from GA4BRIDGE_* environment variables or a .env file."""

    server_name: str = "GA4 Bridge Normalizers"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    max_output_chars: int = Field(
        default=1_000_000, gt=0, description="Captured output beyond this length is dropped"
    )
    default_output_format: Literal["json", "raw"] = "json"

    model_config = {
        "env_prefix": "GA4BRIDGE_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "forbid",
    }
