from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from jwcrypto.common import base64url_encode, json_encode

from .errors import KeyCoreError


@dataclass(frozen=True)
class RawJwt:
    """Unsigned claim set plus the optional ``typ`` header."""

    claims: Mapping[str, Any] = field(default_factory=dict)
    type_header: Optional[str] = None

    def json_payload(self) -> str:
        try:
            return json_encode(dict(self.claims))
        except (TypeError, ValueError) as exc:
            raise KeyCoreError(f"JWT claims are not JSON-serializable: {exc}") from exc


def create_header(algorithm: str, type_header: Optional[str], kid: Optional[str]) -> Dict[str, str]:
    header: Dict[str, str] = {"alg": algorithm}
    if type_header is not None:
        header["typ"] = type_header
    if kid is not None:
        header["kid"] = kid
    return header


def create_unsigned_compact(algorithm: str, kid: Optional[str], raw_jwt: RawJwt) -> str:
    header = create_header(algorithm, raw_jwt.type_header, kid)
    return base64url_encode(json_encode(header)) + "." + base64url_encode(raw_jwt.json_payload())


def create_signed_compact(unsigned_compact: str, signature: bytes) -> str:
    return unsigned_compact + "." + base64url_encode(signature)


__all__ = ["RawJwt", "create_header", "create_unsigned_compact", "create_signed_compact"]
