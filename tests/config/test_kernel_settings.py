"""Tests for settings loading and process bootstrap (ppe_kernel/config.py)."""

import pytest
import yaml

from ppe_kernel.config import KernelSettings, bootstrap, load_settings, parse_settings
from ppe_kernel.db.engine import get_session, reset_engine
from ppe_kernel.selectors.catalog_selector import CatalogSelector
from ppe_kernel.services.capacity_config import DEFAULT_CAPACITIES, CapacityConfig


def _write(tmp_path, data) -> str:
    path = tmp_path / "ppe_settings.yaml"
    path.write_text(yaml.safe_dump(data))
    return str(path)


class TestParseSettings:

    def test_defaults(self):
        settings = parse_settings({})
        assert settings.database_url == "sqlite:///ppe.db"
        assert settings.log_level == "INFO"
        assert dict(settings.capacity_defaults) == dict(DEFAULT_CAPACITIES)

    def test_capacity_codes_merged_and_upper_cased(self):
        settings = parse_settings({"capacity_defaults": {"suit": 5, "glove": 2}})
        assert settings.capacity_defaults["SUIT"] == 5
        assert settings.capacity_defaults["GLOVE"] == 2
        assert settings.capacity_defaults["HAT"] == 3

    def test_unknown_key(self):
        with pytest.raises(ValueError, match="max_items"):
            parse_settings({"max_items": 3})

    def test_negative_capacity(self):
        with pytest.raises(ValueError):
            parse_settings({"capacity_defaults": {"SUIT": -1}})

    def test_capacity_must_be_mapping(self):
        with pytest.raises(ValueError):
            parse_settings({"capacity_defaults": [3, 3]})

    def test_bad_log_level(self):
        with pytest.raises(ValueError):
            KernelSettings(log_level="LOUD")

    def test_log_level_normalized(self):
        settings = KernelSettings(log_level="debug")
        assert settings.log_level == "DEBUG"
        assert settings.log_level_value == 10


class TestLoadSettings:

    def test_from_file(self, tmp_path):
        path = _write(tmp_path, {"log_level": "WARNING", "capacity_defaults": {"HAT": 2}})
        settings = load_settings(path, environ={})

        assert settings.log_level == "WARNING"
        assert settings.capacity_defaults["HAT"] == 2

    def test_environment_wins(self, tmp_path):
        path = _write(tmp_path, {"database_url": "sqlite:///file.db", "log_level": "INFO"})
        settings = load_settings(
            path,
            environ={"PPE_DATABASE_URL": "sqlite:///env.db", "PPE_LOG_LEVEL": "error"},
        )

        assert settings.database_url == "sqlite:///env.db"
        assert settings.log_level == "ERROR"

    def test_no_file(self):
        assert load_settings(environ={}).database_url == "sqlite:///ppe.db"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_settings(tmp_path / "absent.yaml", environ={})

    def test_non_mapping_file(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ValueError):
            load_settings(path, environ={})


class TestBootstrap:

    @pytest.fixture(autouse=True)
    def _reset_engine(self):
        yield
        reset_engine()

    def test_bootstrap_prepares_database(self, tmp_path):
        settings = KernelSettings(
            database_url=f"sqlite:///{tmp_path / 'ppe.db'}",
            capacity_defaults={**DEFAULT_CAPACITIES, "SUIT": 4},
        )
        bootstrap(settings)

        session = get_session()
        try:
            codes = {c.code for c in CatalogSelector(session).list_categories()}
            assert codes == {"SUIT", "HAT", "SAFETY_SHOE", "CANVAS_SHOE"}
            assert CapacityConfig.load(session).get("SUIT") == 4
        finally:
            session.close()

    def test_bootstrap_twice_is_safe(self, tmp_path):
        settings = KernelSettings(database_url=f"sqlite:///{tmp_path / 'ppe.db'}")
        bootstrap(settings)
        bootstrap(settings)

        session = get_session()
        try:
            assert len(CatalogSelector(session).list_categories()) == 4
        finally:
            session.close()
