"""Environment-driven settings.

All settings can be overridden with ``ASSETFORGE_*`` environment variables
or a ``.env`` file in the working directory.

Examples
--------
Override via environment::

    export ASSETFORGE_WORKERS=4
    export ASSETFORGE_LOG_LEVEL=DEBUG
    export ASSETFORGE_TOOL_TIMEOUT=120

Or via .env file::

    ASSETFORGE_IN_MEMORY=true
    ASSETFORGE_YARN_BIN=/opt/yarn/bin/yarn
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from assetforge.core.worker_pool import default_workers


class Settings(BaseSettings):
    """Operator settings shared by every build started from this process."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="ASSETFORGE_",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Logging
    log_level: str = "INFO"
    verbose: bool = False

    # Concurrency
    workers: int = Field(default_factory=default_workers)

    # Toolchain locations
    node_bin_dir: Path | None = None
    yarn_bin: str = "yarn"
    tool_timeout: float | None = None  # seconds; None waits indefinitely
    sync_deps: bool = False

    # Output
    pack_manifest: str = "manifest.json"
    asset_listing: str = "assets.lst"
    invert_manifest: bool = False
    in_memory: bool = False

    # Templates
    trans_func_name: str = "T"
