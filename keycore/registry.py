from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, replace
from types import MappingProxyType
from typing import FrozenSet, Mapping, Optional

from . import metrics
from .errors import (
    ConflictingRegistrationError,
    IncompatibleFipsModeError,
    PolicyViolationError,
    RegistryNotEmptyError,
    UnknownKeyTypeError,
    UnsupportedPrimitiveError,
)
from .fips import FipsCompatibility, FipsPolicy
from .key_manager import KeyManager, PrimitiveKind
from .logging import bound

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RegistryEntry:
    manager: KeyManager
    implementing_class: type
    supported_primitives: FrozenSet[PrimitiveKind]
    new_key_allowed: bool


class KeyManagerRegistry:
    """
    Key-type identifier -> key manager directory.

    Writers (register, restrict_to_fips_if_empty) serialize on one lock and
    publish a fresh immutable mapping; readers take the current mapping
    without locking. Entries are never removed, and an existing entry is only
    replaced by a manager of the same class.
    """

    def __init__(
        self,
        original: Optional["KeyManagerRegistry"] = None,
        *,
        fips: Optional[FipsPolicy] = None,
    ) -> None:
        self._lock = threading.RLock()
        if original is not None:
            self._entries: Mapping[str, RegistryEntry] = original._entries
            # The copy restricts independently of the original.
            self._fips = fips or FipsPolicy(
                restricted=original.fips.restricted,
                module_available=original.fips.module_available,
            )
        else:
            self._entries = MappingProxyType({})
            self._fips = fips or FipsPolicy()

    @property
    def fips(self) -> FipsPolicy:
        return self._fips

    # ------------------------------------------------------------------ #
    # Mutation
    # ------------------------------------------------------------------ #

    def register(
        self,
        manager: KeyManager,
        fips_compatibility: FipsCompatibility = FipsCompatibility.ALGORITHM_NOT_FIPS,
        new_key_allowed: bool = True,
        *,
        force_overwrite: bool = False,
    ) -> None:
        """
        Register ``manager`` under its key type.

        The caller vouches for ``fips_compatibility``. Re-registering the same
        class is a no-op apart from the new-key flag, which may only tighten.
        ``force_overwrite`` swaps in the new instance (same class only) and is
        meant for library bootstrapping.
        """
        with bound(type_url=manager.key_type):
            self._register(manager, fips_compatibility, new_key_allowed, force_overwrite)

    def _register(
        self,
        manager: KeyManager,
        fips_compatibility: FipsCompatibility,
        new_key_allowed: bool,
        force_overwrite: bool,
    ) -> None:
        type_url = manager.key_type
        candidate = RegistryEntry(
            manager=manager,
            implementing_class=type(manager),
            supported_primitives=frozenset(manager.supported_primitives),
            new_key_allowed=bool(new_key_allowed),
        )
        with self._lock:
            if not self._fips.is_compatible(fips_compatibility):
                metrics.inc_register("fips")
                logger.warning(
                    "refused registration of %s: FIPS compatibility %s insufficient",
                    type_url,
                    fips_compatibility.value,
                )
                raise IncompatibleFipsModeError(
                    "cannot register key manager: FIPS compatibility insufficient",
                    type_url=type_url,
                )

            existing = self._entries.get(type_url)
            if existing is not None:
                if existing.implementing_class is not candidate.implementing_class:
                    metrics.inc_register("conflict")
                    logger.warning("attempted overwrite of a registered key manager for key type %s", type_url)
                    raise ConflictingRegistrationError(
                        f"type url ({type_url}) is already registered with "
                        f"{existing.implementing_class.__qualname__}, cannot be re-registered with "
                        f"{candidate.implementing_class.__qualname__}",
                        type_url=type_url,
                    )
                if new_key_allowed and not existing.new_key_allowed:
                    metrics.inc_register("policy")
                    logger.warning("refused re-enabling new keys for key type %s", type_url)
                    raise PolicyViolationError(
                        f"new keys are already disallowed for key type {type_url}",
                        type_url=type_url,
                    )
                stored = candidate if force_overwrite else replace(existing, new_key_allowed=bool(new_key_allowed))
                outcome = "noop"
            else:
                stored = candidate
                outcome = "ok"

            entries = dict(self._entries)
            entries[type_url] = stored
            self._entries = MappingProxyType(entries)

        metrics.inc_register(outcome)
        if outcome == "ok":
            logger.info(
                "registered key manager %s for %s (new_key_allowed=%s)",
                candidate.implementing_class.__qualname__,
                type_url,
                new_key_allowed,
            )

    def restrict_to_fips_if_empty(self) -> None:
        """Turn on FIPS-only mode; only legal while nothing is registered."""
        with self._lock:
            if self._fips.restricted:
                return
            if self._entries:
                raise RegistryNotEmptyError("could not enable FIPS mode as registry is not empty")
            self._fips.set_restricted()
        logger.info("key manager registry restricted to FIPS")

    # ------------------------------------------------------------------ #
    # Lookup
    # ------------------------------------------------------------------ #

    def _entry_or_raise(self, type_url: str) -> RegistryEntry:
        entry = self._entries.get(type_url)
        if entry is None:
            metrics.inc_lookup("unknown")
            raise UnknownKeyTypeError(f"no key manager found for key type {type_url}", type_url=type_url)
        return entry

    def lookup(self, type_url: str, primitive_kind: PrimitiveKind) -> KeyManager:
        entry = self._entry_or_raise(type_url)
        if primitive_kind not in entry.supported_primitives:
            metrics.inc_lookup("unsupported")
            supported = ", ".join(sorted(k.value for k in entry.supported_primitives))
            raise UnsupportedPrimitiveError(
                f"primitive kind {primitive_kind.value} not supported by key manager of type "
                f"{entry.implementing_class.__qualname__}, supported primitives: {supported}",
                type_url=type_url,
                primitive_kind=primitive_kind.value,
            )
        metrics.inc_lookup("ok")
        return entry.manager

    def get_untyped_key_manager(self, type_url: str) -> KeyManager:
        return self._entry_or_raise(type_url).manager

    def is_registered(self, type_url: str) -> bool:
        return type_url in self._entries

    def is_new_key_allowed(self, type_url: str) -> bool:
        return self._entry_or_raise(type_url).new_key_allowed

    def is_empty(self) -> bool:
        return not self._entries

    def type_urls(self) -> FrozenSet[str]:
        return frozenset(self._entries)

    def reset_for_tests(self) -> None:
        """Drop all entries. Test harnesses only; the FIPS flag is left as is."""
        with self._lock:
            self._entries = MappingProxyType({})


__all__ = ["RegistryEntry", "KeyManagerRegistry"]
