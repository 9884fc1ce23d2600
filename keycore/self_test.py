from __future__ import annotations

from cryptography.hazmat.primitives.asymmetric import rsa

from .engine import CryptoEngine, HashType
from .errors import KeyCoreError, SelfTestFailureError

# Fixed probe; content is irrelevant, it only has to be signed and verified.
PROBE_MESSAGE = b"keycore rsa self-test probe"


def validate_rsa_ssa_pkcs1(
    engine: CryptoEngine,
    private_key: rsa.RSAPrivateKey,
    public_key: rsa.RSAPublicKey,
    hash_type: HashType,
) -> None:
    """
    Sign PROBE_MESSAGE with ``private_key`` and verify it with ``public_key``.

    ``public_key`` must be built from the stored (n, e) rather than derived
    from ``private_key``, otherwise a private key whose embedded public key
    was tampered with would pass.
    """
    try:
        signature = engine.sign(private_key, hash_type, PROBE_MESSAGE)
    except KeyCoreError as exc:
        raise SelfTestFailureError(f"RSA PKCS1 self-test could not sign probe: {exc}") from exc
    if not engine.verify(public_key, hash_type, PROBE_MESSAGE, signature):
        raise SelfTestFailureError(
            f"RSA PKCS1 self-test failed: probe signature does not verify ({hash_type.value})"
        )


__all__ = ["PROBE_MESSAGE", "validate_rsa_ssa_pkcs1"]
