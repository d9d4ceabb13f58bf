"""
Kernel settings (``ppe_kernel.config``).

Responsibility
--------------
Loads process settings from an optional YAML file, applies environment
overrides, validates them into a frozen ``KernelSettings``, and wires up a
process with ``bootstrap()``: engine, logging, tables, built-in categories
and persisted capacity ceilings.

Invariants enforced
-------------------
* Parse errors raise ``ValueError`` with a message naming the bad key.
* Capacity defaults are integers >= 0.
* Environment variables win over file values:
  ``PPE_DATABASE_URL`` and ``PPE_LOG_LEVEL``.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any

import yaml
from sqlalchemy.engine import Engine

from ppe_kernel.logging_config import configure_logging, get_logger
from ppe_kernel.services.capacity_config import DEFAULT_CAPACITIES

logger = get_logger("config")

DEFAULT_DATABASE_URL = "sqlite:///ppe.db"

_KNOWN_KEYS = {"database_url", "echo_sql", "log_level", "capacity_defaults"}
_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class KernelSettings:
    """Validated process settings."""

    database_url: str = DEFAULT_DATABASE_URL
    echo_sql: bool = False
    log_level: str = "INFO"
    capacity_defaults: Mapping[str, int] = field(
        default_factory=lambda: MappingProxyType(dict(DEFAULT_CAPACITIES))
    )

    def __post_init__(self):
        if not self.database_url:
            raise ValueError("database_url must not be empty")
        if self.log_level.upper() not in _LOG_LEVELS:
            raise ValueError(f"log_level must be one of {_LOG_LEVELS}, got '{self.log_level}'")
        for code, value in self.capacity_defaults.items():
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise ValueError(
                    f"capacity_defaults.{code} must be an integer >= 0, got {value!r}"
                )
        object.__setattr__(self, "log_level", self.log_level.upper())
        object.__setattr__(
            self, "capacity_defaults", MappingProxyType(dict(self.capacity_defaults)),
        )

    @property
    def log_level_value(self) -> int:
        return logging.getLevelName(self.log_level)


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the top level is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top level must be a mapping")
    return data


def parse_settings(data: Mapping[str, Any]) -> KernelSettings:
    """Build KernelSettings from a parsed mapping."""
    unknown = set(data) - _KNOWN_KEYS
    if unknown:
        raise ValueError(f"Unknown settings keys: {sorted(unknown)}")

    capacities = dict(DEFAULT_CAPACITIES)
    raw_capacities = data.get("capacity_defaults") or {}
    if not isinstance(raw_capacities, Mapping):
        raise ValueError("capacity_defaults must be a mapping of category code to integer")
    capacities.update({str(k).upper(): v for k, v in raw_capacities.items()})

    return KernelSettings(
        database_url=str(data.get("database_url") or DEFAULT_DATABASE_URL),
        echo_sql=bool(data.get("echo_sql", False)),
        log_level=str(data.get("log_level") or "INFO"),
        capacity_defaults=capacities,
    )


def load_settings(
    path: str | Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> KernelSettings:
    """
    Load settings from ``path`` (optional) and apply environment overrides.

    Args:
        path: YAML file with any of database_url, echo_sql, log_level,
            capacity_defaults.
        environ: Environment mapping; defaults to ``os.environ``.
    """
    data: dict[str, Any] = dict(load_yaml_file(Path(path))) if path else {}
    env = os.environ if environ is None else environ

    if env.get("PPE_DATABASE_URL"):
        data["database_url"] = env["PPE_DATABASE_URL"]
    if env.get("PPE_LOG_LEVEL"):
        data["log_level"] = env["PPE_LOG_LEVEL"]

    settings = parse_settings(data)
    logger.info(
        "settings_loaded",
        extra={
            "source": str(path) if path else None,
            "log_level": settings.log_level,
            "capacity_defaults": dict(settings.capacity_defaults),
        },
    )
    return settings


def bootstrap(settings: KernelSettings) -> Engine:
    """
    Prepare a process: logging, engine, tables, built-in categories and a
    full persisted set of capacity ceilings.

    Safe to call against an existing database; seeding skips what exists.
    """
    from ppe_kernel.db.engine import create_tables, init_engine_from_url, session_scope
    from ppe_kernel.services.capacity_config import CapacityConfig
    from ppe_kernel.services.catalog_service import CatalogService

    configure_logging(level=settings.log_level_value)
    engine = init_engine_from_url(settings.database_url, echo=settings.echo_sql)
    create_tables()

    with session_scope() as session:
        CatalogService(session).seed_default_categories()
        CapacityConfig.load(session, settings.capacity_defaults).save(session)

    logger.info("kernel_bootstrapped", extra={"dialect": engine.dialect.name})
    return engine
