# keycore/config.py
from __future__ import annotations

import hashlib
import json
import logging
import os
import threading
from typing import Any, Dict, FrozenSet, Optional

import yaml
from pydantic import BaseModel, ConfigDict

_log = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Env helpers
# ---------------------------------------------------------------------------


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    v = raw.strip().lower()
    return v in ("1", "true", "yes", "on")


def _load_yaml_mapping(path: str) -> Dict[str, Any]:
    """
    Load a top-level mapping from YAML.

    Missing path or file yields {}; a document that is not a mapping is
    ignored with a warning. Parse errors propagate.
    """
    if not path or not os.path.exists(path):
        return {}
    with open(path, "r", encoding="utf-8") as f:
        doc = yaml.safe_load(f)
    if not isinstance(doc, dict):
        _log.warning("ignoring config at %s: top-level document is not a mapping", path)
        return {}
    return {str(k): v for k, v in doc.items()}


# Bools that may only move in the stricter direction on refresh()/set().
# Value is the strict setting.
_TIGHTEN_ONLY_BOOL_FIELDS: Dict[str, bool] = {
    "fips_only": True,
    "new_key_allowed": False,
}


# ---------------------------------------------------------------------------
# Settings model
# ---------------------------------------------------------------------------


class Settings(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    # --- FIPS -------------------------------------------------------------

    # Restrict the registry to FIPS-compatible managers at bootstrap.
    fips_only: bool = False
    # Whether the crypto engine is backed by a certified module.
    fips_module_available: bool = False

    # --- Bootstrap --------------------------------------------------------

    new_key_allowed: bool = True
    register_jwt_rsa: bool = True

    # --- Observability ----------------------------------------------------

    log_level: str = "INFO"
    log_json: bool = True
    metrics_enabled: bool = True

    # How this config reached the process (defaults/yaml).
    config_origin: str = "defaults"

    def config_hash(self) -> str:
        """Stable SHA-256 over the canonical JSON form of the settings."""
        payload = json.dumps(self.model_dump(mode="json"), sort_keys=True, separators=(",", ":"))
        return hashlib.sha256(payload.encode("utf-8")).hexdigest()


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


_ENV_BOOL_FIELDS: Dict[str, str] = {
    "KEYCORE_FIPS_ONLY": "fips_only",
    "KEYCORE_FIPS_MODULE_AVAILABLE": "fips_module_available",
    "KEYCORE_NEW_KEY_ALLOWED": "new_key_allowed",
    "KEYCORE_REGISTER_JWT_RSA": "register_jwt_rsa",
    "KEYCORE_LOG_JSON": "log_json",
    "KEYCORE_METRICS_ENABLED": "metrics_enabled",
}


def load_settings() -> Settings:
    """
    Load Settings from defaults, optional YAML, and environment variables.

    Priority:
      1. Settings defaults (in-code).
      2. YAML file pointed to by KEYCORE_CONFIG_PATH.
      3. Environment variables (KEYCORE_*).
    """
    merged: Dict[str, Any] = Settings().model_dump()
    origin = "defaults"

    yaml_doc = _load_yaml_mapping(os.environ.get("KEYCORE_CONFIG_PATH", "").strip())
    if yaml_doc:
        merged = Settings(**{**merged, **yaml_doc}).model_dump()
        origin = "yaml"

    for env_name, key in _ENV_BOOL_FIELDS.items():
        merged[key] = _env_bool(env_name, merged[key])

    level = os.environ.get("KEYCORE_LOG_LEVEL", "").strip()
    if level:
        merged["log_level"] = level.upper()

    merged["config_origin"] = origin
    return Settings(**merged)


# ---------------------------------------------------------------------------
# Reloadable wrapper
# ---------------------------------------------------------------------------


class ReloadableSettings:
    """
    Thread-safe holder of the current Settings snapshot.

    Fields in _TIGHTEN_ONLY_BOOL_FIELDS never relax once strict: a reload or
    override that tries is ignored for that field.
    """

    def __init__(self, initial: Optional[Settings] = None) -> None:
        self._lock = threading.RLock()
        self._settings = initial or load_settings()

    def get(self) -> Settings:
        with self._lock:
            return self._settings

    @staticmethod
    def _apply_tighten_only(field: str, old_value: Any, new_value: Any) -> Any:
        strict = _TIGHTEN_ONLY_BOOL_FIELDS.get(field)
        if strict is None:
            return new_value
        if old_value == strict and new_value != strict:
            _log.warning("ignoring attempt to relax %s", field)
            return old_value
        return new_value

    def _merge(self, updates: Dict[str, Any], allowed: FrozenSet[str]) -> Settings:
        data = self._settings.model_dump()
        for key, value in updates.items():
            if key not in allowed:
                continue
            data[key] = self._apply_tighten_only(key, data[key], value)
        self._settings = Settings(**data)
        return self._settings

    def refresh(self) -> Settings:
        with self._lock:
            fresh = load_settings().model_dump()
            return self._merge(fresh, frozenset(fresh))

    def set(self, **overrides: Any) -> Settings:
        with self._lock:
            return self._merge(overrides, frozenset(Settings.model_fields))


__all__ = ["Settings", "load_settings", "ReloadableSettings"]
