from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Optional

from . import jwt_rsa_sign, metrics
from .config import ReloadableSettings, Settings, load_settings
from .engine import CryptoEngine, default_engine
from .fips import FipsPolicy
from .logging import configure_json_logging
from .parameters import ParametersRegistry
from .registry import KeyManagerRegistry

logger = logging.getLogger(__name__)


@dataclass
class KeyCoreContext:
    """
    Settings + FIPS policy + key-manager and parameter registries.

    One long-lived instance per process is reached via get_default_context();
    tests build isolated ones with KeyCoreContext.create().
    """

    reloadable: ReloadableSettings
    fips: FipsPolicy
    registry: KeyManagerRegistry
    parameters: ParametersRegistry
    engine: CryptoEngine

    @property
    def settings(self) -> Settings:
        return self.reloadable.get()

    @classmethod
    def create(
        cls,
        settings: Optional[Settings] = None,
        *,
        engine: Optional[CryptoEngine] = None,
        bootstrap: bool = True,
    ) -> "KeyCoreContext":
        settings = settings or Settings()
        fips = FipsPolicy(module_available=settings.fips_module_available)
        ctx = cls(
            reloadable=ReloadableSettings(settings),
            fips=fips,
            registry=KeyManagerRegistry(fips=fips),
            parameters=ParametersRegistry(),
            engine=engine or default_engine(),
        )
        if bootstrap:
            ctx.bootstrap()
        return ctx

    def bootstrap(self) -> None:
        """FIPS restriction first (registry must be empty), then built-in managers."""
        settings = self.settings
        if settings.fips_only:
            self.registry.restrict_to_fips_if_empty()
        if settings.register_jwt_rsa:
            jwt_rsa_sign.register(
                self.registry,
                self.parameters,
                new_key_allowed=settings.new_key_allowed,
                engine=self.engine,
            )
        logger.info(
            "keycore context ready (fips_only=%s, key_types=%d, templates=%d)",
            self.fips.restricted,
            len(self.registry.type_urls()),
            len(self.parameters),
        )

    # -- reload ----------------------------------------------------------------

    def refresh(self) -> Settings:
        """Reload settings from YAML/env and push tightened policy into the registry."""
        return self._apply(self.reloadable.refresh())

    def update(self, **overrides: Any) -> Settings:
        return self._apply(self.reloadable.set(**overrides))

    def _apply(self, settings: Settings) -> Settings:
        # FIPS mode can only be entered while the registry is empty; on a
        # populated registry this raises RegistryNotEmptyError.
        if settings.fips_only and not self.fips.restricted:
            self.registry.restrict_to_fips_if_empty()
        if not settings.new_key_allowed:
            for type_url in sorted(self.registry.type_urls()):
                if not self.registry.is_new_key_allowed(type_url):
                    continue
                manager = self.registry.get_untyped_key_manager(type_url)
                self.registry.register(manager, manager.fips_status(), False)
                logger.info("new keys disabled for %s", type_url)
        return settings


_DEFAULT_CONTEXT: Optional[KeyCoreContext] = None
_CONTEXT_LOCK = threading.RLock()


def get_default_context() -> KeyCoreContext:
    global _DEFAULT_CONTEXT
    if _DEFAULT_CONTEXT is not None:
        return _DEFAULT_CONTEXT
    with _CONTEXT_LOCK:
        if _DEFAULT_CONTEXT is None:
            settings = load_settings()
            # Only the package logger; the host application owns the root logger.
            configure_json_logging(settings.log_level, json_output=settings.log_json, logger_name="keycore")
            metrics.set_metrics_enabled(settings.metrics_enabled)
            _DEFAULT_CONTEXT = KeyCoreContext.create(settings)
    return _DEFAULT_CONTEXT


def reset_default_context_for_tests() -> None:
    global _DEFAULT_CONTEXT
    with _CONTEXT_LOCK:
        _DEFAULT_CONTEXT = None


__all__ = ["KeyCoreContext", "get_default_context", "reset_default_context_for_tests"]
