"""
retail_config -- single public entrypoint for retail settings.

Responsibility:
    Provides the way to obtain configuration at runtime through
    ``get_active_config()``. Services receive the resulting
    ``SalesConfig`` by injection and never read files or environment
    variables themselves.

Architecture position:
    Configuration -- sits above ``retail_kernel`` and ``retail_modules``.
    Neither of those imports from ``retail_config``.

Resolution order:
    1. the ``path`` argument
    2. the ``RETAIL_CONFIG_PATH`` environment variable
    3. the packaged ``defaults.yaml``

Failure modes:
    - ``FileNotFoundError`` -- the resolved path does not exist.
    - ``ConfigurationError`` -- the file fails validation.

Audit relevance:
    Every load emits a ``RETAIL_CONFIG_TRACE`` log entry with the source
    path and checksum, tying invoice figures back to the settings in force.
"""

from __future__ import annotations

import functools
import os
from pathlib import Path

from retail_config.loader import compute_checksum, load_yaml_file, parse_sales_config
from retail_kernel.logging_config import get_logger
from retail_modules.sales.config import SalesConfig

_logger = get_logger("config")

CONFIG_PATH_ENV = "RETAIL_CONFIG_PATH"
DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults.yaml"


def _resolve_path(path: Path | str | None) -> Path:
    if path is not None:
        return Path(path)
    from_env = os.environ.get(CONFIG_PATH_ENV)
    if from_env:
        return Path(from_env)
    return DEFAULT_CONFIG_PATH


@functools.lru_cache(maxsize=8)
def _load(resolved: Path) -> SalesConfig:
    data = load_yaml_file(resolved)
    config = parse_sales_config(data)
    _logger.info(
        "RETAIL_CONFIG_TRACE",
        extra={
            "trace_type": "RETAIL_CONFIG_TRACE",
            "config_path": str(resolved),
            "checksum": compute_checksum(data),
            "invoice_prefix": config.invoice_prefix,
            "enforce_stock_check": config.enforce_stock_check,
        },
    )
    return config


def get_active_config(path: Path | str | None = None) -> SalesConfig:
    """Load (once per path) and return the active ``SalesConfig``."""
    return _load(_resolve_path(path).resolve())


def clear_config_cache() -> None:
    """Forget loaded configs. FOR TESTING ONLY."""
    _load.cache_clear()


__all__ = [
    "CONFIG_PATH_ENV",
    "DEFAULT_CONFIG_PATH",
    "clear_config_cache",
    "compute_checksum",
    "get_active_config",
    "load_yaml_file",
    "parse_sales_config",
]
