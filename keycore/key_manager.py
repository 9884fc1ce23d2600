from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, FrozenSet

from .fips import FipsCompatibility


class PrimitiveKind(Enum):
    """Closed set of runtime capabilities a key manager can produce."""

    JWT_PUBLIC_KEY_SIGN = "jwt_public_key_sign"
    JWT_PUBLIC_KEY_VERIFY = "jwt_public_key_verify"
    PUBLIC_KEY_SIGN = "public_key_sign"
    PUBLIC_KEY_VERIFY = "public_key_verify"


class KeyMaterialType(Enum):
    SYMMETRIC = "symmetric"
    ASYMMETRIC_PRIVATE = "asymmetric_private"
    ASYMMETRIC_PUBLIC = "asymmetric_public"
    REMOTE = "remote"


@dataclass(frozen=True)
class KeyData:
    """Serialized key tagged with its key-type identifier."""

    type_url: str
    value: bytes
    key_material_type: KeyMaterialType


class KeyManager(ABC):
    """
    Contract every algorithm family implements.

    Implementations hold no mutable state after construction; the registry
    hands the same instance to every caller.
    """

    @property
    @abstractmethod
    def key_type(self) -> str:
        """Key-type identifier (type URL) this manager serves."""

    @property
    @abstractmethod
    def version(self) -> int:
        """Highest key version this manager accepts and the version it stamps."""

    @property
    @abstractmethod
    def primitive_kind(self) -> PrimitiveKind:
        ...

    @property
    def supported_primitives(self) -> FrozenSet[PrimitiveKind]:
        return frozenset({self.primitive_kind})

    @property
    @abstractmethod
    def key_material_type(self) -> KeyMaterialType:
        ...

    @abstractmethod
    def fips_status(self) -> FipsCompatibility:
        ...

    @abstractmethod
    def parse_key(self, data: bytes) -> Any:
        ...

    @abstractmethod
    def validate_key(self, key: Any) -> None:
        ...

    @abstractmethod
    def create_primitive(self, key: Any) -> Any:
        ...

    def primitive(self, serialized_key: bytes) -> Any:
        """Parse, validate and turn ``serialized_key`` into a primitive."""
        key = self.parse_key(serialized_key)
        self.validate_key(key)
        return self.create_primitive(key)


class PrivateKeyManager(KeyManager):
    """Key manager for asymmetric private keys: adds generation and public-key projection."""

    @abstractmethod
    def parse_key_format(self, data: bytes) -> Any:
        ...

    @abstractmethod
    def validate_key_format(self, key_format: Any) -> None:
        ...

    @abstractmethod
    def create_key(self, key_format: Any) -> Any:
        ...

    @abstractmethod
    def get_public_key(self, private_key: Any) -> Any:
        ...

    @property
    @abstractmethod
    def public_key_type(self) -> str:
        ...

    def new_key_data(self, serialized_format: bytes) -> KeyData:
        key_format = self.parse_key_format(serialized_format)
        self.validate_key_format(key_format)
        key = self.create_key(key_format)
        return KeyData(
            type_url=self.key_type,
            value=key.SerializeToString(),
            key_material_type=self.key_material_type,
        )

    def get_public_key_data(self, serialized_private_key: bytes) -> KeyData:
        private_key = self.parse_key(serialized_private_key)
        self.validate_key(private_key)
        public_key = self.get_public_key(private_key)
        return KeyData(
            type_url=self.public_key_type,
            value=public_key.SerializeToString(),
            key_material_type=KeyMaterialType.ASYMMETRIC_PUBLIC,
        )


__all__ = ["PrimitiveKind", "KeyMaterialType", "KeyData", "KeyManager", "PrivateKeyManager"]
