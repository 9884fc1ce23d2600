from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Mapping, Optional

from .errors import ConflictingTemplateError, KeyValidationError, UnknownTemplateError
from .proto import JwtRsaSsaPkcs1Algorithm, JwtRsaSsaPkcs1KeyFormat, int_to_bytes
from .validators import validate_rsa_modulus_size, validate_rsa_public_exponent

logger = logging.getLogger(__name__)

F4 = 65537


class KidStrategy(Enum):
    # No "kid" header is emitted.
    IGNORED = "ignored"
    # "kid" is the URL-safe base64 of a 4-byte key id derived for the key.
    BASE64_ENCODED_KEY_ID = "base64_encoded_key_id"
    # "kid" comes from the custom_kid stored in the public key.
    CUSTOM = "custom"


@dataclass(frozen=True)
class JwtRsaSsaPkcs1Parameters:
    modulus_size_bits: int
    public_exponent: int = F4
    algorithm: JwtRsaSsaPkcs1Algorithm = JwtRsaSsaPkcs1Algorithm.RS256
    kid_strategy: KidStrategy = KidStrategy.IGNORED

    def __post_init__(self) -> None:
        if self.algorithm is JwtRsaSsaPkcs1Algorithm.RS_UNKNOWN:
            raise KeyValidationError("algorithm must be one of RS256, RS384, RS512", field="algorithm")
        validate_rsa_modulus_size(self.modulus_size_bits)
        validate_rsa_public_exponent(self.public_exponent)

    def has_id_requirement(self) -> bool:
        return self.kid_strategy is KidStrategy.BASE64_ENCODED_KEY_ID

    def to_key_format(self, version: int = 0) -> JwtRsaSsaPkcs1KeyFormat:
        return JwtRsaSsaPkcs1KeyFormat(
            version=version,
            algorithm=int(self.algorithm),
            modulus_size_in_bits=self.modulus_size_bits,
            public_exponent=int_to_bytes(self.public_exponent),
        )


class ParametersRegistry:
    """
    Name -> parameters table used to bootstrap key generation.

    Re-adding a name is accepted only with an equal value; put_all() is
    all-or-nothing.
    """

    def __init__(self, original: Optional["ParametersRegistry"] = None) -> None:
        self._lock = threading.Lock()
        self._entries: Dict[str, JwtRsaSsaPkcs1Parameters] = (
            dict(original._snapshot()) if original is not None else {}
        )

    def _snapshot(self) -> Dict[str, JwtRsaSsaPkcs1Parameters]:
        with self._lock:
            return dict(self._entries)

    def put_all(self, values: Mapping[str, JwtRsaSsaPkcs1Parameters]) -> None:
        with self._lock:
            for name, params in values.items():
                existing = self._entries.get(name)
                if existing is not None and existing != params:
                    raise ConflictingTemplateError(
                        f"parameters object with name {name} already exists with a different value",
                        name=name,
                    )
            self._entries.update(values)
        logger.debug("merged %d named parameter sets", len(values))

    def get(self, name: str) -> JwtRsaSsaPkcs1Parameters:
        with self._lock:
            params = self._entries.get(name)
        if params is None:
            raise UnknownTemplateError(f"no parameters registered under name {name}", name=name)
        return params

    def names(self) -> List[str]:
        with self._lock:
            return sorted(self._entries)

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


__all__ = ["F4", "KidStrategy", "JwtRsaSsaPkcs1Parameters", "ParametersRegistry"]
