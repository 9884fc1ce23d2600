from __future__ import annotations

from typing import Optional


class KeyCoreError(Exception):
    """Base error for the key-management core.

    Context attributes are optional and only set where the failing operation
    knows them:
      - type_url       : key-type identifier involved in the failure
      - field          : offending key / format field
      - name           : template name (parameter registry)
      - primitive_kind : requested primitive kind (registry lookup)
    """

    def __init__(
        self,
        message: str,
        *,
        type_url: Optional[str] = None,
        field: Optional[str] = None,
        name: Optional[str] = None,
        primitive_kind: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.type_url = type_url
        self.field = field
        self.name = name
        self.primitive_kind = primitive_kind


# ---------------------------------------------------------------------------
# Key material
# ---------------------------------------------------------------------------


class MalformedKeyDataError(KeyCoreError):
    """Serialized key or key format does not match the binary schema."""


class KeyValidationError(KeyCoreError):
    pass


class InvalidKeyVersionError(KeyValidationError):
    pass


class InvalidModulusSizeError(KeyValidationError):
    pass


class InvalidPublicExponentError(KeyValidationError):
    pass


class InvalidKeyComponentsError(KeyCoreError):
    """The crypto engine rejected the RSA components as inconsistent."""


class SelfTestFailureError(KeyCoreError):
    """Sign/verify probe failed after key reconstruction; no primitive is returned."""


class ConflictingKeyIdError(KeyCoreError):
    pass


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


class RegistryError(KeyCoreError):
    pass


class ConflictingRegistrationError(RegistryError):
    pass


class PolicyViolationError(RegistryError):
    pass


class IncompatibleFipsModeError(RegistryError):
    pass


class UnknownKeyTypeError(RegistryError):
    pass


class UnsupportedPrimitiveError(RegistryError):
    pass


class RegistryNotEmptyError(RegistryError):
    pass


# ---------------------------------------------------------------------------
# Templates
# ---------------------------------------------------------------------------


class TemplateError(KeyCoreError):
    pass


class UnknownTemplateError(TemplateError):
    pass


class ConflictingTemplateError(TemplateError):
    pass


__all__ = [
    "KeyCoreError",
    "MalformedKeyDataError",
    "KeyValidationError",
    "InvalidKeyVersionError",
    "InvalidModulusSizeError",
    "InvalidPublicExponentError",
    "InvalidKeyComponentsError",
    "SelfTestFailureError",
    "ConflictingKeyIdError",
    "RegistryError",
    "ConflictingRegistrationError",
    "PolicyViolationError",
    "IncompatibleFipsModeError",
    "UnknownKeyTypeError",
    "UnsupportedPrimitiveError",
    "RegistryNotEmptyError",
    "TemplateError",
    "UnknownTemplateError",
    "ConflictingTemplateError",
]
