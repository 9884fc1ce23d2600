"""
RSA-SSA-PKCS1 JWT signing key manager.

Produces JwtRsaSsaPkcs1PrivateKey records from key formats, validates them,
and turns them into signing primitives. Every primitive is gated on a
sign/verify self-test of the reconstructed key.
"""

from __future__ import annotations

import hashlib
import logging
import struct
import time
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Mapping, Optional

from cryptography.hazmat.primitives.asymmetric import rsa
from jwcrypto.common import base64url_encode

from . import metrics
from .engine import CryptoEngine, HashType, default_engine
from .errors import (
    ConflictingKeyIdError,
    InvalidKeyComponentsError,
    KeyCoreError,
    KeyValidationError,
    PolicyViolationError,
    SelfTestFailureError,
)
from .fips import FipsCompatibility, FipsPolicy
from .jwt_format import RawJwt, create_signed_compact, create_unsigned_compact
from .key_manager import KeyMaterialType, PrimitiveKind, PrivateKeyManager
from .logging import bound
from .parameters import F4, JwtRsaSsaPkcs1Parameters, KidStrategy, ParametersRegistry
from .proto import (
    JwtRsaSsaPkcs1Algorithm,
    JwtRsaSsaPkcs1KeyFormat,
    JwtRsaSsaPkcs1PrivateKey,
    JwtRsaSsaPkcs1PublicKey,
    bytes_to_int,
    int_to_bytes,
    parse,
)
from .self_test import validate_rsa_ssa_pkcs1
from .validators import validate_rsa_modulus_size, validate_rsa_public_exponent, validate_version

if TYPE_CHECKING:  # pragma: no cover
    from .registry import KeyManagerRegistry

logger = logging.getLogger(__name__)

TYPE_URL = "type.googleapis.com/google.crypto.tink.JwtRsaSsaPkcs1PrivateKey"
PUBLIC_TYPE_URL = "type.googleapis.com/google.crypto.tink.JwtRsaSsaPkcs1PublicKey"

_HASH_FOR_ALGORITHM = {
    JwtRsaSsaPkcs1Algorithm.RS256: HashType.SHA256,
    JwtRsaSsaPkcs1Algorithm.RS384: HashType.SHA384,
    JwtRsaSsaPkcs1Algorithm.RS512: HashType.SHA512,
}


def hash_for_algorithm(algorithm: int) -> HashType:
    try:
        return _HASH_FOR_ALGORITHM[JwtRsaSsaPkcs1Algorithm(algorithm)]
    except (KeyError, ValueError):
        raise KeyValidationError(
            f"unknown RSA SSA PKCS1 algorithm {algorithm}", type_url=TYPE_URL, field="algorithm"
        ) from None


# ---------------------------------------------------------------------------
# Primitive
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class JwtRsaSsaPkcs1Sign:
    """Signing primitive bound to one reconstructed, self-tested private key."""

    algorithm: JwtRsaSsaPkcs1Algorithm
    custom_kid: Optional[str] = None
    _private_key: rsa.RSAPrivateKey = field(default=None, repr=False, compare=False)  # type: ignore[assignment]
    _engine: CryptoEngine = field(default_factory=default_engine, repr=False, compare=False)

    @property
    def hash_type(self) -> HashType:
        return _HASH_FOR_ALGORITHM[self.algorithm]

    def sign(self, message: bytes) -> bytes:
        return self._engine.sign(self._private_key, self.hash_type, message)

    def sign_and_encode_with_kid(self, raw_jwt: RawJwt, kid: Optional[str]) -> str:
        if self.custom_kid is not None:
            if kid is not None:
                raise ConflictingKeyIdError(
                    "custom_kid can only be set for keys that do not emit a key id",
                    type_url=TYPE_URL,
                    field="kid",
                )
            kid = self.custom_kid
        unsigned = create_unsigned_compact(self.algorithm.name, kid, raw_jwt)
        return create_signed_compact(unsigned, self.sign(unsigned.encode("ascii")))

    def sign_and_encode(self, raw_jwt: RawJwt) -> str:
        """
        Sign without a caller kid. Only a stored custom kid ends up in the
        header; keys made from a BASE64_ENCODED_KEY_ID template need
        sign_and_encode_with_kid(raw_jwt, kid_for(parameters, public_key)).
        """
        return self.sign_and_encode_with_kid(raw_jwt, None)


# ---------------------------------------------------------------------------
# Key manager
# ---------------------------------------------------------------------------


class JwtRsaSsaPkcs1SignKeyManager(PrivateKeyManager):
    def __init__(
        self,
        engine: Optional[CryptoEngine] = None,
        fips: Optional[FipsPolicy] = None,
    ) -> None:
        self._engine = engine or default_engine()
        self._fips = fips or FipsPolicy()

    @property
    def key_type(self) -> str:
        return TYPE_URL

    @property
    def public_key_type(self) -> str:
        return PUBLIC_TYPE_URL

    @property
    def version(self) -> int:
        return 0

    @property
    def primitive_kind(self) -> PrimitiveKind:
        return PrimitiveKind.JWT_PUBLIC_KEY_SIGN

    @property
    def key_material_type(self) -> KeyMaterialType:
        return KeyMaterialType.ASYMMETRIC_PRIVATE

    def fips_status(self) -> FipsCompatibility:
        return FipsCompatibility.ALGORITHM_REQUIRES_CERTIFIED_MODULE

    # -- parsing / validation ----------------------------------------------

    def parse_key(self, data: bytes) -> JwtRsaSsaPkcs1PrivateKey:
        return parse(JwtRsaSsaPkcs1PrivateKey, data, type_url=TYPE_URL)

    def parse_key_format(self, data: bytes) -> JwtRsaSsaPkcs1KeyFormat:
        return parse(JwtRsaSsaPkcs1KeyFormat, data, type_url=TYPE_URL)

    def validate_key(self, key: JwtRsaSsaPkcs1PrivateKey) -> None:
        validate_version(key.version, self.version, type_url=TYPE_URL)
        modulus_bits = bytes_to_int(key.public_key.n).bit_length()
        validate_rsa_modulus_size(modulus_bits, self._fips, type_url=TYPE_URL)
        validate_rsa_public_exponent(bytes_to_int(key.public_key.e), type_url=TYPE_URL)

    def validate_key_format(self, key_format: JwtRsaSsaPkcs1KeyFormat) -> None:
        validate_rsa_modulus_size(key_format.modulus_size_in_bits, self._fips, type_url=TYPE_URL)
        validate_rsa_public_exponent(bytes_to_int(key_format.public_exponent), type_url=TYPE_URL)

    # -- generation ----------------------------------------------------------

    def create_key(self, key_format: JwtRsaSsaPkcs1KeyFormat) -> JwtRsaSsaPkcs1PrivateKey:
        t0 = time.perf_counter()
        pub, comps = self._engine.generate_rsa_key_pair(
            key_format.modulus_size_in_bits, bytes_to_int(key_format.public_exponent)
        )
        metrics.observe_keygen(key_format.modulus_size_in_bits, time.perf_counter() - t0)

        public_key = JwtRsaSsaPkcs1PublicKey(
            version=self.version,
            algorithm=key_format.algorithm,
            n=int_to_bytes(pub.n),
            e=int_to_bytes(pub.e),
        )
        return JwtRsaSsaPkcs1PrivateKey(
            version=self.version,
            public_key=public_key,
            d=int_to_bytes(comps.d),
            p=int_to_bytes(comps.p),
            q=int_to_bytes(comps.q),
            dp=int_to_bytes(comps.dp),
            dq=int_to_bytes(comps.dq),
            crt=int_to_bytes(comps.crt),
        )

    def get_public_key(self, private_key: JwtRsaSsaPkcs1PrivateKey) -> JwtRsaSsaPkcs1PublicKey:
        return private_key.public_key

    # -- primitive -----------------------------------------------------------

    def create_primitive(self, private_key: JwtRsaSsaPkcs1PrivateKey) -> JwtRsaSsaPkcs1Sign:
        with bound(type_url=TYPE_URL):
            return self._create_primitive(private_key)

    def _create_primitive(self, private_key: JwtRsaSsaPkcs1PrivateKey) -> JwtRsaSsaPkcs1Sign:
        pub = private_key.public_key
        hash_type = hash_for_algorithm(pub.algorithm)
        n = bytes_to_int(pub.n)
        e = bytes_to_int(pub.e)

        try:
            native = self._engine.reconstruct_private_key(
                n,
                e,
                bytes_to_int(private_key.d),
                bytes_to_int(private_key.p),
                bytes_to_int(private_key.q),
                bytes_to_int(private_key.dp),
                bytes_to_int(private_key.dq),
                bytes_to_int(private_key.crt),
            )
            # Public half comes from the stored (n, e), not from the private handle.
            validate_rsa_ssa_pkcs1(self._engine, native, self._engine.public_key(n, e), hash_type)
        except InvalidKeyComponentsError as exc:
            # The engine repairs CRT faults while signing, so inconsistent
            # components are only observable at reconstruction.
            metrics.inc_self_test("fail")
            logger.warning("key self-test failed for %s: components rejected", TYPE_URL)
            raise SelfTestFailureError(
                f"key self-test failed: {exc}", type_url=TYPE_URL
            ) from exc
        except SelfTestFailureError as exc:
            metrics.inc_self_test("fail")
            logger.warning("key self-test failed for %s: %s", TYPE_URL, exc)
            exc.type_url = TYPE_URL
            raise
        metrics.inc_self_test("pass")

        custom_kid = pub.custom_kid.value if pub.HasField("custom_kid") else None
        metrics.inc_primitive_created(TYPE_URL)
        return JwtRsaSsaPkcs1Sign(
            algorithm=JwtRsaSsaPkcs1Algorithm(pub.algorithm),
            custom_kid=custom_kid,
            _private_key=native,
            _engine=self._engine,
        )


# ---------------------------------------------------------------------------
# Templates and kid helpers
# ---------------------------------------------------------------------------


def _template(bits: int, alg: JwtRsaSsaPkcs1Algorithm, kid: KidStrategy) -> JwtRsaSsaPkcs1Parameters:
    return JwtRsaSsaPkcs1Parameters(
        modulus_size_bits=bits, public_exponent=F4, algorithm=alg, kid_strategy=kid
    )


def named_parameters() -> Mapping[str, JwtRsaSsaPkcs1Parameters]:
    """
    Default templates for RS256 / RS384 / RS512. The "_RAW" variants produce
    tokens without a "kid" header.
    """
    result = {}
    for bits, alg in (
        (2048, JwtRsaSsaPkcs1Algorithm.RS256),
        (3072, JwtRsaSsaPkcs1Algorithm.RS256),
        (3072, JwtRsaSsaPkcs1Algorithm.RS384),
        (4096, JwtRsaSsaPkcs1Algorithm.RS512),
    ):
        name = f"JWT_{alg.name}_{bits}_F4"
        result[name + "_RAW"] = _template(bits, alg, KidStrategy.IGNORED)
        result[name] = _template(bits, alg, KidStrategy.BASE64_ENCODED_KEY_ID)
    return MappingProxyType(result)


def derive_key_id(public_key: JwtRsaSsaPkcs1PublicKey) -> int:
    """32-bit key id derived from the public modulus and exponent."""
    n = int_to_bytes(bytes_to_int(public_key.n))
    e = int_to_bytes(bytes_to_int(public_key.e))
    h = hashlib.sha256()
    for part in (n, e):
        h.update(struct.pack(">I", len(part)))
        h.update(part)
    return int.from_bytes(h.digest()[:4], "big")


def encode_key_id(key_id: int) -> str:
    return base64url_encode(struct.pack(">I", key_id & 0xFFFFFFFF))


def kid_for(
    parameters: JwtRsaSsaPkcs1Parameters,
    public_key: JwtRsaSsaPkcs1PublicKey,
    key_id: Optional[int] = None,
) -> Optional[str]:
    """
    Kid to pass to sign_and_encode_with_kid() for a key made from ``parameters``.

    CUSTOM keys return None: the primitive injects the stored custom kid itself.
    """
    if parameters.kid_strategy is KidStrategy.BASE64_ENCODED_KEY_ID:
        return encode_key_id(derive_key_id(public_key) if key_id is None else key_id)
    return None


def new_signing_key(
    parameters: JwtRsaSsaPkcs1Parameters,
    registry: "KeyManagerRegistry",
    *,
    custom_kid: Optional[str] = None,
) -> JwtRsaSsaPkcs1PrivateKey:
    """
    Generate a private key for ``parameters`` through the registered manager.

    The key does not record its kid strategy. For BASE64_ENCODED_KEY_ID
    parameters, pass kid_for(parameters, key.public_key) to
    sign_and_encode_with_kid() when signing.
    """
    manager = registry.lookup(TYPE_URL, PrimitiveKind.JWT_PUBLIC_KEY_SIGN)
    if not registry.is_new_key_allowed(TYPE_URL):
        raise PolicyViolationError(
            f"new keys are disallowed for key type {TYPE_URL}", type_url=TYPE_URL
        )
    if parameters.kid_strategy is KidStrategy.CUSTOM:
        if not custom_kid:
            raise KeyCoreError(
                "custom kid strategy requires a custom_kid", type_url=TYPE_URL, field="custom_kid"
            )
    elif custom_kid is not None:
        raise ConflictingKeyIdError(
            f"custom_kid cannot be combined with kid strategy {parameters.kid_strategy.name}",
            type_url=TYPE_URL,
            field="custom_kid",
        )

    key_format = parameters.to_key_format(manager.version)
    manager.validate_key_format(key_format)
    key = manager.create_key(key_format)
    if custom_kid is not None:
        key.public_key.custom_kid.value = custom_kid
    return key


def register(
    registry: "KeyManagerRegistry",
    parameters_registry: ParametersRegistry,
    *,
    new_key_allowed: bool = True,
    engine: Optional[CryptoEngine] = None,
) -> JwtRsaSsaPkcs1SignKeyManager:
    """Register the sign manager with ``registry`` and merge the named templates."""
    manager = JwtRsaSsaPkcs1SignKeyManager(engine=engine, fips=registry.fips)
    registry.register(manager, manager.fips_status(), new_key_allowed)
    parameters_registry.put_all(named_parameters())
    return manager


__all__ = [
    "TYPE_URL",
    "PUBLIC_TYPE_URL",
    "JwtRsaSsaPkcs1Sign",
    "JwtRsaSsaPkcs1SignKeyManager",
    "hash_for_algorithm",
    "named_parameters",
    "derive_key_id",
    "encode_key_id",
    "kid_for",
    "new_signing_key",
    "register",
]
