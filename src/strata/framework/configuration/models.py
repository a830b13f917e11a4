"""
Settings models for Strata itself.

These describe how the stores and cache behave (where configuration files
live, how backups are named, how often watchers poll, how logging is wired),
not the application configuration the stores manage.
"""

from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


class LoggingConfiguration(BaseModel):
    """Logging output settings."""

    level: str = Field(default="INFO", description="Minimum level to emit")
    format: Literal["text", "json"] = Field(default="text", description="Console record format")
    output: Literal["console", "file", "both", "none"] = Field(default="none", description="Where records go")
    file_path: Optional[Path] = Field(default=None, description="Target file for file output")

    @field_validator("level")
    @classmethod
    def validate_level(cls, value: str) -> str:
        level = value.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {value}")
        return level

    @model_validator(mode="after")
    def validate_file_output(self) -> "LoggingConfiguration":
        if self.output in ("file", "both") and self.file_path is None:
            raise ValueError("file_path is required when output includes 'file'")
        return self


class CacheSettings(BaseModel):
    """Expiring cache defaults."""

    default_ttl_seconds: float = Field(default=1800.0, gt=0, description="TTL used when set() gets none")
    memoize_documents: bool = Field(
        default=True,
        description="Let ConfigStore keep parsed documents in the cache"
    )


class StoreSettings(BaseModel):
    """Configuration store layout and I/O behaviour."""

    config_directory: Path = Field(
        default_factory=lambda: Path.cwd() / "Configs",
        description="Directory that relative descriptors resolve against"
    )
    backup_directory_name: str = Field(default="Backups", min_length=1)
    backup_timestamp_format: str = Field(default="%Y%m%d%H%M%S")
    indent_output: bool = Field(default=True, description="Write structured files indented")
    encoding: str = Field(default="utf-8")
    watch_poll_interval: float = Field(default=1.0, gt=0, description="Seconds between watcher polls")

    @field_validator("backup_directory_name")
    @classmethod
    def validate_backup_directory_name(cls, value: str) -> str:
        if "/" in value or "\\" in value or value in (".", ".."):
            raise ValueError("backup_directory_name must be a single directory name")
        return value


class StrataSettings(BaseModel):
    """Aggregate settings, the shape produced by ConfigurationBuilder sources."""

    store: StoreSettings = Field(default_factory=StoreSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    logging: LoggingConfiguration = Field(default_factory=LoggingConfiguration)
