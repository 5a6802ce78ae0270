"""Application configuration settings.

This module defines the ``Settings`` class using ``pydantic-settings`` to
load configuration from environment variables. It centralises all runtime
configuration for the service, such as where the JSON data files live, the
log level and the paging limits of the activity log endpoint.

A ``.env`` file is honoured for local development. Its location defaults to
``.env`` in the working directory and can be overridden with
``ROOMBOARD_ENV``.
"""

import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings

load_dotenv(os.getenv("ROOMBOARD_ENV", ".env"))


class Settings(BaseSettings):
    """Configuration values loaded from environment variables.

    Environment variable names map to fields by alias. File names are
    resolved relative to ``data_dir`` unless they are absolute.
    """

    # Storage
    data_dir: str = Field(
        default="data",
        alias="ROOMBOARD_DATA_DIR",
        description="Directory holding the JSON files the dashboard persists to.",
    )
    schedules_file: str = Field(default="schedules.json", alias="SCHEDULES_FILE")
    activity_logs_file: str = Field(default="activityLogs.json", alias="ACTIVITY_LOGS_FILE")
    rooms_file: str = Field(default="huts.json", alias="ROOMS_FILE")

    # Server
    host: str = Field(default="127.0.0.1", alias="HOST", description="Bind address when run directly.")
    port: int = Field(default=8000, alias="PORT")

    # Behaviour
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    enable_cors: bool = Field(
        default=False,
        alias="ENABLE_CORS",
        description="Expose the API to other origins. Off when UI and API share a host.",
    )
    logs_default_limit: int = Field(default=100, alias="LOGS_DEFAULT_LIMIT")
    logs_max_limit: int = Field(
        default=500,
        alias="LOGS_MAX_LIMIT",
        description="Upper bound applied to the ``limit`` query parameter of /api/logs.",
    )

    class Config:
        extra = "ignore"

    def _resolve(self, name: str) -> Path:
        path = Path(name)
        if path.is_absolute():
            return path
        return Path(self.data_dir) / path

    @property
    def schedules_path(self) -> Path:
        return self._resolve(self.schedules_file)

    @property
    def activity_logs_path(self) -> Path:
        return self._resolve(self.activity_logs_file)

    @property
    def rooms_path(self) -> Path:
        return self._resolve(self.rooms_file)


# Instantiate settings at module import time. This allows other modules to
# import ``settings`` directly without repeatedly reading environment variables.
settings = Settings()
