"""
CapacityConfig -- per-category ceilings on simultaneously active assignments.

Responsibility:
    Holds the maximum number of active assignments an employee may have in
    each capacity-controlled category.  Loaded once from the
    ``application_settings`` table, consulted on every capacity check,
    mutated in memory through set_all()/restore_defaults(), and persisted
    only when save() is called.

Architecture position:
    Kernel > Services.  Constructed explicitly and injected into the
    IssuanceEngine; there is no module-level instance.

Invariants enforced:
    - Every value is an integer >= 0.  0 or an unknown code means the
      category is uncontrolled.
    - save() writes the full set; there is no partial persistence.
    - restore_defaults() does not persist.
"""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType

from sqlalchemy import select
from sqlalchemy.orm import Session

from ppe_kernel.exceptions import InvalidCapacityValueError
from ppe_kernel.logging_config import get_logger
from ppe_kernel.models.setting import ApplicationSetting
from ppe_kernel.services.audit_recorder import AuditOperation, AuditRecorder

logger = get_logger("services.capacity_config")

SETTING_PREFIX = "max_active."

DEFAULT_CAPACITIES: Mapping[str, int] = MappingProxyType({
    "SUIT": 3,
    "HAT": 3,
    "SAFETY_SHOE": 1,
    "CANVAS_SHOE": 1,
})


def _validated(values: Mapping[str, object]) -> dict[str, int]:
    result = {}
    for code, value in values.items():
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise InvalidCapacityValueError(code, value)
        result[code] = value
    return result


class CapacityConfig:
    """
    In-memory capacity ceilings with explicit load/save boundaries.

        config = CapacityConfig.load(session)
        config.get("SUIT")            # 3
        config.set_all({"SUIT": 4, "HAT": 3, "SAFETY_SHOE": 1, "CANVAS_SHOE": 1})
        config.save(session)
    """

    def __init__(
        self,
        values: Mapping[str, int] | None = None,
        defaults: Mapping[str, int] = DEFAULT_CAPACITIES,
    ):
        self._defaults = MappingProxyType(_validated(defaults))
        self._values = dict(self._defaults)
        if values:
            self._values.update(_validated(values))

    @classmethod
    def load(
        cls,
        session: Session,
        defaults: Mapping[str, int] = DEFAULT_CAPACITIES,
    ) -> CapacityConfig:
        """Build from persisted settings; unparseable rows fall back to defaults."""
        stmt = select(ApplicationSetting).where(
            ApplicationSetting.key.startswith(SETTING_PREFIX)
        )
        values: dict[str, int] = {}
        for setting in session.execute(stmt).scalars():
            code = setting.key[len(SETTING_PREFIX):]
            try:
                parsed = int(setting.value)
            except ValueError:
                parsed = -1
            if parsed < 0:
                logger.warning(
                    "capacity_setting_invalid",
                    extra={"key": setting.key, "value": setting.value},
                )
                continue
            values[code] = parsed

        config = cls(values, defaults)
        logger.info("capacity_config_loaded", extra={"capacities": config.as_dict()})
        return config

    def get(self, category_code: str) -> int:
        """Configured ceiling, built-in default, or 0 (uncontrolled)."""
        return self._values.get(category_code, self._defaults.get(category_code, 0))

    def is_controlled(self, category_code: str) -> bool:
        return self.get(category_code) > 0

    def as_dict(self) -> dict[str, int]:
        return dict(self._values)

    @property
    def defaults(self) -> Mapping[str, int]:
        return self._defaults

    def set_all(self, values: Mapping[str, int]) -> None:
        """
        Replace the whole in-memory set.  Codes not supplied revert to their
        defaults.

        Raises:
            InvalidCapacityValueError: any value is not an integer >= 0.
                Nothing is changed in that case.
        """
        validated = _validated(values)
        self._values = dict(self._defaults)
        self._values.update(validated)
        logger.info("capacity_config_updated", extra={"capacities": self.as_dict()})

    def restore_defaults(self) -> None:
        self._values = dict(self._defaults)
        logger.info("capacity_config_defaults_restored", extra={"capacities": self.as_dict()})

    def save(self, session: Session, audit: AuditRecorder | None = None) -> None:
        """Persist every ceiling in the current set (flush only)."""
        existing = {
            s.key: s
            for s in session.execute(
                select(ApplicationSetting).where(
                    ApplicationSetting.key.startswith(SETTING_PREFIX)
                )
            ).scalars()
        }
        for code, value in self._values.items():
            key = f"{SETTING_PREFIX}{code}"
            if key in existing:
                existing[key].value = str(value)
            else:
                session.add(ApplicationSetting(key=key, value=str(value)))
        session.flush()
        if audit is not None:
            summary = ", ".join(f"{code}={value}" for code, value in sorted(self._values.items()))
            audit.record(AuditOperation.SETTINGS_SAVE, f"Capacity settings saved: {summary}")
        logger.info("capacity_config_saved", extra={"capacities": self.as_dict()})
