"""Settings helpers to centralize configuration access."""
from __future__ import annotations

from pathlib import Path
from typing import Optional

from config import Config


def load_settings(
    debug_override: Optional[bool] = None,
    *,
    data_dir: Optional[Path] = None,
    smooth_override: Optional[bool] = None,
) -> Config:
    """Return a Config instance, applying optional runtime overrides."""
    config = Config.from_env()
    if debug_override is not None:
        config.debug = debug_override
    if smooth_override is not None:
        config.smooth_eps = smooth_override
    if data_dir is not None:
        config.data_dir = data_dir
        config.companies_file = data_dir / "companies_info.json"
        config.ensure_directories()
    return config
