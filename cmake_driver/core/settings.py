"""
Driver configuration.

Settings are read from the environment (prefix ``CMAKE_FILEAPI_``) and from an
optional ``.env`` file in the working directory.
"""
from functools import lru_cache
from typing import List, Optional

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from cmake_driver.core.constants import DEFAULT_CLIENT_ID


class Settings(BaseSettings):
    """Driver settings"""

    model_config = SettingsConfigDict(
        env_prefix="CMAKE_FILEAPI_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # CMake
    cmake_path: str = Field(
        default="cmake",
        validation_alias=AliasChoices("CMAKE_FILEAPI_CMAKE_PATH", "CMAKE_PATH"),
        description="Path to the cmake executable"
    )
    client_id: str = Field(
        default=DEFAULT_CLIENT_ID,
        description="Name of the File API client query directory (query/client-<id>)"
    )
    preferred_generators: List[str] = Field(
        default_factory=lambda: ["Ninja", "Unix Makefiles"],
        description="Generators tried, in order, when neither the kit nor the build tree names one"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        validation_alias=AliasChoices("CMAKE_FILEAPI_LOG_LEVEL", "LOG_LEVEL"),
        description="Log level for the console sink"
    )
    log_file: Optional[str] = Field(
        default=None,
        description="Optional rotating log file path"
    )

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        return value.upper()

    @field_validator("client_id")
    @classmethod
    def _check_client_id(cls, value: str) -> str:
        if not value or "/" in value or "\\" in value:
            raise ValueError("client_id must be a plain directory name")
        return value


@lru_cache()
def get_settings() -> Settings:
    """Global settings (cached)"""
    return Settings()
