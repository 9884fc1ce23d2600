from __future__ import annotations

import threading
from enum import Enum


class FipsCompatibility(Enum):
    """Declared conformance of an algorithm with FIPS-restricted mode."""

    # Never usable once the process is restricted to FIPS.
    ALGORITHM_NOT_FIPS = "not_fips"
    # Usable under FIPS only when a certified crypto module backs the engine.
    ALGORITHM_REQUIRES_CERTIFIED_MODULE = "requires_certified_module"


class FipsPolicy:
    """
    FIPS restriction state shared by a registry and the key managers it holds.

    The restriction is one-way: once set it is never lifted in-process. The
    registry flips it while holding its own lock so that a restriction and a
    registration can never interleave.
    """

    def __init__(self, *, restricted: bool = False, module_available: bool = False) -> None:
        self._lock = threading.Lock()
        self._restricted = bool(restricted)
        self._module_available = bool(module_available)

    @property
    def restricted(self) -> bool:
        return self._restricted

    @property
    def module_available(self) -> bool:
        return self._module_available

    def set_restricted(self) -> None:
        with self._lock:
            self._restricted = True

    def is_compatible(self, compatibility: FipsCompatibility) -> bool:
        if not self._restricted:
            return True
        if compatibility is FipsCompatibility.ALGORITHM_REQUIRES_CERTIFIED_MODULE:
            return self._module_available
        return False

    def __repr__(self) -> str:
        return (
            f"FipsPolicy(restricted={self._restricted}, "
            f"module_available={self._module_available})"
        )


__all__ = ["FipsCompatibility", "FipsPolicy"]
