# keycore/tests/test_config.py
import pydantic
import pytest

from keycore.config import ReloadableSettings, Settings, load_settings


@pytest.fixture(autouse=True)
def _clear_env(monkeypatch):
    for name in (
        "KEYCORE_CONFIG_PATH",
        "KEYCORE_FIPS_ONLY",
        "KEYCORE_FIPS_MODULE_AVAILABLE",
        "KEYCORE_NEW_KEY_ALLOWED",
        "KEYCORE_REGISTER_JWT_RSA",
        "KEYCORE_LOG_LEVEL",
        "KEYCORE_LOG_JSON",
        "KEYCORE_METRICS_ENABLED",
    ):
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    s = load_settings()
    assert s.fips_only is False
    assert s.new_key_allowed is True
    assert s.config_origin == "defaults"


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("KEYCORE_FIPS_ONLY", "yes")
    monkeypatch.setenv("KEYCORE_NEW_KEY_ALLOWED", "0")
    monkeypatch.setenv("KEYCORE_LOG_LEVEL", "debug")
    s = load_settings()
    assert s.fips_only is True
    assert s.new_key_allowed is False
    assert s.log_level == "DEBUG"


def test_yaml_overlay_then_env(monkeypatch, tmp_path):
    path = tmp_path / "keycore.yaml"
    path.write_text("fips_only: true\nfips_module_available: true\nmetrics_enabled: false\n")
    monkeypatch.setenv("KEYCORE_CONFIG_PATH", str(path))
    monkeypatch.setenv("KEYCORE_METRICS_ENABLED", "true")
    s = load_settings()
    assert s.fips_only is True
    assert s.fips_module_available is True
    assert s.metrics_enabled is True
    assert s.config_origin == "yaml"


def test_yaml_unknown_key_is_rejected(monkeypatch, tmp_path):
    path = tmp_path / "keycore.yaml"
    path.write_text("no_such_field: 1\n")
    monkeypatch.setenv("KEYCORE_CONFIG_PATH", str(path))
    with pytest.raises(pydantic.ValidationError):
        load_settings()


def test_yaml_non_mapping_is_ignored(monkeypatch, tmp_path):
    path = tmp_path / "keycore.yaml"
    path.write_text("- a\n- b\n")
    monkeypatch.setenv("KEYCORE_CONFIG_PATH", str(path))
    assert load_settings().config_origin == "defaults"


def test_settings_are_frozen():
    s = Settings()
    with pytest.raises(pydantic.ValidationError):
        s.fips_only = True


def test_config_hash_is_stable():
    assert Settings().config_hash() == Settings().config_hash()
    assert Settings(fips_only=True).config_hash() != Settings().config_hash()


def test_tighten_only_fields_do_not_relax(monkeypatch):
    holder = ReloadableSettings(Settings(fips_only=True, new_key_allowed=False))
    updated = holder.set(fips_only=False, new_key_allowed=True, log_level="DEBUG")
    assert updated.fips_only is True
    assert updated.new_key_allowed is False
    assert updated.log_level == "DEBUG"

    refreshed = holder.refresh()
    assert refreshed.fips_only is True
    assert refreshed.new_key_allowed is False


def test_tighten_only_fields_can_tighten():
    holder = ReloadableSettings(Settings())
    updated = holder.set(fips_only=True, new_key_allowed=False)
    assert updated.fips_only is True
    assert updated.new_key_allowed is False
    assert holder.get() is updated
