"""
YAML loader for retail settings.

Responsibility:
    Read a settings file with PyYAML and turn its ``sales`` section into a
    validated ``SalesConfig``.

Failure modes:
    - ``FileNotFoundError`` -- the path does not exist.
    - ``yaml.YAMLError`` -- the file is not valid YAML.
    - ``ConfigurationError`` -- unknown keys, wrong types, or values the
      ``SalesConfig`` schema rejects.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import fields
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from retail_kernel.exceptions import ConfigurationError
from retail_modules.sales.config import SalesConfig

_BOOL_KEYS = frozenset({"enforce_stock_check", "auto_create_customers"})
_STR_KEYS = frozenset({"invoice_prefix", "bill_payment_note", "advance_note", "default_payment_mode"})


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ConfigurationError: if the top level is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ConfigurationError(str(path), "top level must be a mapping")
    return data


def _coerce(key: str, value: Any) -> Any:
    if key == "settlement_epsilon":
        if isinstance(value, bool):
            raise ConfigurationError(f"sales.{key}", "must be a number")
        try:
            return Decimal(str(value))
        except InvalidOperation as exc:
            raise ConfigurationError(f"sales.{key}", f"not a number: {value!r}") from exc
    if key == "invoice_number_width":
        if isinstance(value, bool) or not isinstance(value, int):
            raise ConfigurationError(f"sales.{key}", "must be an integer")
        return value
    if key in _BOOL_KEYS:
        if not isinstance(value, bool):
            raise ConfigurationError(f"sales.{key}", "must be true or false")
        return value
    if key in _STR_KEYS:
        if not isinstance(value, str):
            raise ConfigurationError(f"sales.{key}", "must be a string")
        return value
    return value


def parse_sales_config(data: dict[str, Any]) -> SalesConfig:
    """
    Build a ``SalesConfig`` from the ``sales`` section of ``data``.

    Keys left out keep their schema defaults.
    """
    section = data.get("sales") or {}
    if not isinstance(section, dict):
        raise ConfigurationError("sales", "must be a mapping")

    known = {f.name for f in fields(SalesConfig)}
    unknown = sorted(set(section) - known)
    if unknown:
        raise ConfigurationError("sales", f"unknown keys: {', '.join(map(str, unknown))}")

    return SalesConfig(**{key: _coerce(key, value) for key, value in section.items()})


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Postconditions:
        - Returns a hex-encoded SHA-256 hash string.
        - Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
