from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, ConfigDict, Field

ENV_FILE = find_dotenv(usecwd=True)
load_dotenv(ENV_FILE)

DEFAULT_CONFIG_NAME = "sync.yaml"


class Settings(BaseModel):
    """Command line settings for a docs-sync run."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    config: Path = Field(
        default_factory=lambda: Path.cwd() / DEFAULT_CONFIG_NAME,
        description="Sync configuration file.",
    )
    resources_dir: Path | None = Field(
        default=None,
        description="Output resources directory (overrides the config).",
    )
    dry_run: bool = Field(default=False, description="Preview without writing files.")
    log_file: str = Field(
        default_factory=lambda: os.environ.get("DOCS_SYNC_LOG_FILE", ""),
        description="Log file path.",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default_factory=lambda: os.environ.get("DOCS_SYNC_LOG_LEVEL", "INFO").upper(),
        validate_default=True,
        description="Minimum level of the emitted log events.",
    )
