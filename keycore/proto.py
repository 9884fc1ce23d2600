"""
Binary key schema for RSA-PKCS1 JWT keys.

The message classes are protobuf messages built at import time from a
FileDescriptorProto, so no generated ``*_pb2`` module has to be shipped.
Field numbers are part of the wire format and must never change.

    enum JwtRsaSsaPkcs1Algorithm { RS_UNKNOWN = 0; RS256 = 1; RS384 = 2; RS512 = 3; }

    message JwtRsaSsaPkcs1PublicKey {
      message CustomKid { string value = 1; }
      uint32 version = 1;
      JwtRsaSsaPkcs1Algorithm algorithm = 2;
      bytes n = 3;                       // big-endian unsigned
      bytes e = 4;                       // big-endian unsigned
      CustomKid custom_kid = 5;          // presence-tracked
    }

    message JwtRsaSsaPkcs1PrivateKey {
      uint32 version = 1;
      JwtRsaSsaPkcs1PublicKey public_key = 2;
      bytes d = 3; bytes p = 4; bytes q = 5;
      bytes dp = 6; bytes dq = 7; bytes crt = 8;
    }

    message JwtRsaSsaPkcs1KeyFormat {
      uint32 version = 1;
      JwtRsaSsaPkcs1Algorithm algorithm = 2;
      uint32 modulus_size_in_bits = 3;
      bytes public_exponent = 4;
    }
"""

from __future__ import annotations

from enum import IntEnum
from typing import Any, Type, TypeVar

from google.protobuf import descriptor_pb2, descriptor_pool, message_factory
from google.protobuf.message import DecodeError, Message

from .errors import MalformedKeyDataError

_PACKAGE = "keycore.jwt"
_F = descriptor_pb2.FieldDescriptorProto


class JwtRsaSsaPkcs1Algorithm(IntEnum):
    RS_UNKNOWN = 0
    RS256 = 1
    RS384 = 2
    RS512 = 3


def _field(msg: Any, name: str, number: int, ftype: int, type_name: str = "") -> None:
    f = msg.field.add(name=name, number=number, type=ftype, label=_F.LABEL_OPTIONAL)
    if type_name:
        f.type_name = f".{_PACKAGE}.{type_name}"


def _build_file() -> descriptor_pb2.FileDescriptorProto:
    fdp = descriptor_pb2.FileDescriptorProto(
        name="keycore/jwt_rsa_ssa_pkcs1.proto",
        package=_PACKAGE,
        syntax="proto3",
    )

    alg = fdp.enum_type.add(name="JwtRsaSsaPkcs1Algorithm")
    for member in JwtRsaSsaPkcs1Algorithm:
        alg.value.add(name=member.name, number=int(member))

    pub = fdp.message_type.add(name="JwtRsaSsaPkcs1PublicKey")
    kid = pub.nested_type.add(name="CustomKid")
    _field(kid, "value", 1, _F.TYPE_STRING)
    _field(pub, "version", 1, _F.TYPE_UINT32)
    _field(pub, "algorithm", 2, _F.TYPE_ENUM, "JwtRsaSsaPkcs1Algorithm")
    _field(pub, "n", 3, _F.TYPE_BYTES)
    _field(pub, "e", 4, _F.TYPE_BYTES)
    _field(pub, "custom_kid", 5, _F.TYPE_MESSAGE, "JwtRsaSsaPkcs1PublicKey.CustomKid")

    priv = fdp.message_type.add(name="JwtRsaSsaPkcs1PrivateKey")
    _field(priv, "version", 1, _F.TYPE_UINT32)
    _field(priv, "public_key", 2, _F.TYPE_MESSAGE, "JwtRsaSsaPkcs1PublicKey")
    for number, name in enumerate(("d", "p", "q", "dp", "dq", "crt"), start=3):
        _field(priv, name, number, _F.TYPE_BYTES)

    fmt = fdp.message_type.add(name="JwtRsaSsaPkcs1KeyFormat")
    _field(fmt, "version", 1, _F.TYPE_UINT32)
    _field(fmt, "algorithm", 2, _F.TYPE_ENUM, "JwtRsaSsaPkcs1Algorithm")
    _field(fmt, "modulus_size_in_bits", 3, _F.TYPE_UINT32)
    _field(fmt, "public_exponent", 4, _F.TYPE_BYTES)
    return fdp


_POOL = descriptor_pool.DescriptorPool()
_POOL.AddSerializedFile(_build_file().SerializeToString())


def _message_class(name: str) -> Type[Message]:
    return message_factory.GetMessageClass(_POOL.FindMessageTypeByName(f"{_PACKAGE}.{name}"))


JwtRsaSsaPkcs1PublicKey = _message_class("JwtRsaSsaPkcs1PublicKey")
JwtRsaSsaPkcs1PrivateKey = _message_class("JwtRsaSsaPkcs1PrivateKey")
JwtRsaSsaPkcs1KeyFormat = _message_class("JwtRsaSsaPkcs1KeyFormat")

M = TypeVar("M", bound=Message)


def parse(cls: Type[M], data: bytes, *, type_url: str = "") -> M:
    msg = cls()
    try:
        msg.ParseFromString(bytes(data))
    except (DecodeError, TypeError, ValueError) as exc:
        raise MalformedKeyDataError(
            f"cannot parse {cls.DESCRIPTOR.name}: {exc}", type_url=type_url or None
        ) from exc
    return msg


# ---------------------------------------------------------------------------
# Unsigned big-endian integers
# ---------------------------------------------------------------------------


def int_to_bytes(value: int) -> bytes:
    if value < 0:
        raise ValueError("negative integers cannot be encoded as key material")
    return value.to_bytes(max(1, (value.bit_length() + 7) // 8), "big")


def bytes_to_int(data: bytes) -> int:
    # Leading zero bytes (sign padding from other encoders) are accepted.
    return int.from_bytes(data, "big")


__all__ = [
    "JwtRsaSsaPkcs1Algorithm",
    "JwtRsaSsaPkcs1PublicKey",
    "JwtRsaSsaPkcs1PrivateKey",
    "JwtRsaSsaPkcs1KeyFormat",
    "parse",
    "int_to_bytes",
    "bytes_to_int",
]
