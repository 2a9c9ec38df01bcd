"""
Settings for the sub_events library
"""
from pathlib import Path
from pydantic_settings import BaseSettings
from pydantic import Field, model_validator


class Settings(BaseSettings):
    """Library settings, read from SUB_EVENTS_* environment variables"""

    # Logging
    log_level: str = Field(default="INFO")
    log_dir: str = Field(default="logs")
    log_to_file: bool = Field(default=False)  # File sinks are opt-in for a library

    # Emission
    default_max: int = Field(default=0, ge=0)  # 0 = no limit on recipients per emit

    @model_validator(mode='after')
    def normalize_log_level(self) -> 'Settings':
        """Loguru level names are upper-case"""
        self.log_level = self.log_level.strip().upper()
        return self

    @property
    def log_path(self) -> Path:
        return Path(self.log_dir)

    model_config = {
        "env_prefix": "SUB_EVENTS_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


# Global settings instance
settings = Settings()
