from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Tuple

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from .errors import InvalidKeyComponentsError, InvalidPublicExponentError, KeyCoreError

logger = logging.getLogger(__name__)


class HashType(Enum):
    SHA256 = "SHA256"
    SHA384 = "SHA384"
    SHA512 = "SHA512"

    def algorithm(self) -> hashes.HashAlgorithm:
        if self is HashType.SHA256:
            return hashes.SHA256()
        if self is HashType.SHA384:
            return hashes.SHA384()
        return hashes.SHA512()


@dataclass(frozen=True)
class RsaPrivateComponents:
    """Private half of a generated key pair, as plain integers."""

    d: int
    p: int
    q: int
    dp: int
    dq: int
    crt: int


@dataclass(frozen=True)
class RsaPublicComponents:
    n: int
    e: int


class CryptoEngine:
    """
    Thin adapter over the platform RSA implementation (pyca/cryptography).

    Padding is always PKCS#1 v1.5. Handles returned here are native
    ``cryptography`` key objects and are never serialized by callers.
    """

    def generate_rsa_key_pair(
        self, modulus_bits: int, public_exponent: int
    ) -> Tuple[RsaPublicComponents, RsaPrivateComponents]:
        try:
            priv = rsa.generate_private_key(public_exponent=public_exponent, key_size=modulus_bits)
        except ValueError as e:
            # The backend only generates keys with e in {3, 65537}.
            raise InvalidPublicExponentError(
                f"crypto engine cannot generate RSA key (bits={modulus_bits}, e={public_exponent}): {e}",
                field="public_exponent",
            ) from e
        nums = priv.private_numbers()
        pub = RsaPublicComponents(n=nums.public_numbers.n, e=nums.public_numbers.e)
        comps = RsaPrivateComponents(
            d=nums.d,
            p=nums.p,
            q=nums.q,
            dp=nums.dmp1,
            dq=nums.dmq1,
            crt=nums.iqmp,
        )
        return pub, comps

    def reconstruct_private_key(
        self, n: int, e: int, d: int, p: int, q: int, dp: int, dq: int, crt: int
    ) -> rsa.RSAPrivateKey:
        numbers = rsa.RSAPrivateNumbers(
            p=p,
            q=q,
            d=d,
            dmp1=dp,
            dmq1=dq,
            iqmp=crt,
            public_numbers=rsa.RSAPublicNumbers(e=e, n=n),
        )
        try:
            return numbers.private_key()
        except (ValueError, TypeError) as exc:
            raise InvalidKeyComponentsError(f"inconsistent RSA private key components: {exc}") from exc

    def public_key(self, n: int, e: int) -> rsa.RSAPublicKey:
        try:
            return rsa.RSAPublicNumbers(e=e, n=n).public_key()
        except (ValueError, TypeError) as exc:
            raise InvalidKeyComponentsError(f"invalid RSA public key components: {exc}") from exc

    def sign(self, private_key: rsa.RSAPrivateKey, hash_type: HashType, message: bytes) -> bytes:
        try:
            return private_key.sign(message, padding.PKCS1v15(), hash_type.algorithm())
        except ValueError as exc:
            raise KeyCoreError(f"RSA sign failed: {exc}") from exc

    def verify(
        self,
        public_key: rsa.RSAPublicKey,
        hash_type: HashType,
        message: bytes,
        signature: bytes,
    ) -> bool:
        try:
            public_key.verify(signature, message, padding.PKCS1v15(), hash_type.algorithm())
        except InvalidSignature:
            return False
        return True


_DEFAULT_ENGINE = CryptoEngine()


def default_engine() -> CryptoEngine:
    return _DEFAULT_ENGINE


__all__ = [
    "CryptoEngine",
    "HashType",
    "RsaPrivateComponents",
    "RsaPublicComponents",
    "default_engine",
]
