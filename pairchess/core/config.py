"""
Configuration and logging setup.

Settings are read from PAIRCHESS_* environment variables and fall back to the defaults below.
"""

import logging
import os
from typing import Mapping, Optional, Self

from pydantic import BaseModel, Field

ENV_PREFIX = "PAIRCHESS_"


class Settings(BaseModel):
    database_url: str = "sqlite:///pairchess.sqlite3"
    echo_sql: bool = False

    # Transient database errors get retried this many times before a StoreError surfaces
    store_retries: int = Field(default=3, ge=0)
    store_retry_delay: float = Field(default=0.05, ge=0)

    # None: games are played without a clock
    default_clock_seconds: Optional[float] = Field(default=None, gt=0)
    clock_increment_seconds: float = Field(default=0.0, ge=0)
    clock_tick_interval: float = Field(default=0.5, gt=0)

    log_level: str = "INFO"
    log_format: str = "%(asctime)s %(levelname)s %(name)s: %(message)s"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> Self:
        """Pick up every field that has a matching PAIRCHESS_<FIELD> variable. Pydantic does the type coercion."""
        environ = os.environ if environ is None else environ
        values = {
            name: environ[f"{ENV_PREFIX}{name.upper()}"]
            for name in cls.model_fields
            if f"{ENV_PREFIX}{name.upper()}" in environ
        }
        return cls.model_validate(values)


def configure_logging(settings: Settings) -> None:
    """Single stream handler on the package logger."""
    logger = logging.getLogger("pairchess")
    logger.setLevel(settings.log_level.upper())
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(settings.log_format))
        logger.addHandler(handler)
