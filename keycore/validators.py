from __future__ import annotations

from typing import Optional

from .errors import InvalidKeyVersionError, InvalidModulusSizeError, InvalidPublicExponentError
from .fips import FipsPolicy

MIN_RSA_MODULUS_SIZE = 2048
FIPS_RSA_MODULUS_SIZES = (2048, 3072)
MIN_RSA_PUBLIC_EXPONENT = 65537


def validate_version(candidate: int, max_expected: int, *, type_url: Optional[str] = None) -> None:
    if candidate < 0 or candidate > max_expected:
        raise InvalidKeyVersionError(
            f"key has version {candidate}; only keys with version in range [0..{max_expected}] are supported",
            type_url=type_url,
            field="version",
        )


def validate_rsa_modulus_size(
    modulus_bits: int,
    fips: Optional[FipsPolicy] = None,
    *,
    type_url: Optional[str] = None,
) -> None:
    if modulus_bits < MIN_RSA_MODULUS_SIZE:
        raise InvalidModulusSizeError(
            f"modulus size is {modulus_bits}; only modulus size >= {MIN_RSA_MODULUS_SIZE}-bit is supported",
            type_url=type_url,
            field="modulus_size_in_bits",
        )
    if fips is not None and fips.restricted and modulus_bits not in FIPS_RSA_MODULUS_SIZES:
        raise InvalidModulusSizeError(
            f"modulus size is {modulus_bits}; only modulus size 2048 or 3072-bit is supported in FIPS mode",
            type_url=type_url,
            field="modulus_size_in_bits",
        )


def validate_rsa_public_exponent(exponent: int, *, type_url: Optional[str] = None) -> None:
    if exponent % 2 == 0:
        raise InvalidPublicExponentError(
            "public exponent must be odd", type_url=type_url, field="public_exponent"
        )
    if exponent < MIN_RSA_PUBLIC_EXPONENT:
        raise InvalidPublicExponentError(
            f"public exponent must be greater than {MIN_RSA_PUBLIC_EXPONENT - 1}",
            type_url=type_url,
            field="public_exponent",
        )


__all__ = [
    "MIN_RSA_MODULUS_SIZE",
    "FIPS_RSA_MODULUS_SIZES",
    "MIN_RSA_PUBLIC_EXPONENT",
    "validate_version",
    "validate_rsa_modulus_size",
    "validate_rsa_public_exponent",
]
