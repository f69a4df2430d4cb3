"""
Configuration management for keep_a_changelog.

Loads configuration from environment variables and .env file.
Only the store and the CLI read these settings; the parser, renderer and
resolver take everything they need as arguments.
"""

from pathlib import Path
from typing import Optional
from pydantic_settings import BaseSettings
from pydantic import Field, field_validator


class ChangelogConfig(BaseSettings):
    """Configuration settings for changelog tooling."""

    # File handling
    changelog_path: Path = Field(Path("CHANGELOG.md"), description="Changelog file to read and write")
    encoding: str = Field("utf-8", description="Encoding of the changelog file")

    # Link generation
    repository_url: Optional[str] = Field(None, description="Repository URL used for comparison links")
    tag_prefix: str = Field("", description="Prefix added to versions to form tag names, e.g. 'v'")
    head: str = Field("HEAD", description="Ref the Unreleased comparison link points at")

    # Logging
    log_level: str = Field("WARNING", description="Log level for the command line tool")

    model_config = {
        "env_prefix": "CHANGELOG_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",  # Ignore extra fields from env
    }

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        v = v.upper()
        if v not in ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
            raise ValueError(f"Invalid log level: {v}")
        return v

    def parse_options(self) -> dict:
        """Link settings to hand to the parser, leaving unset ones to inference."""
        options = {}
        if self.repository_url:
            options["repository_url"] = self.repository_url
        if self.tag_prefix:
            options["tag_prefix"] = self.tag_prefix
        if self.head != "HEAD":
            options["head"] = self.head
        return options


# Global config instance - loaded from environment
config = ChangelogConfig()
