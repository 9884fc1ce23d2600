# keycore/tests/conftest.py
import pytest

from keycore.jwt_rsa_sign import JwtRsaSsaPkcs1SignKeyManager
from keycore.parameters import JwtRsaSsaPkcs1Parameters
from keycore.proto import JwtRsaSsaPkcs1Algorithm, JwtRsaSsaPkcs1PrivateKey


@pytest.fixture
def manager():
    return JwtRsaSsaPkcs1SignKeyManager()


@pytest.fixture(scope="session")
def rsa_key_bytes():
    # RSA key generation is slow; generate one 2048-bit key per test session.
    params = JwtRsaSsaPkcs1Parameters(modulus_size_bits=2048, algorithm=JwtRsaSsaPkcs1Algorithm.RS256)
    mgr = JwtRsaSsaPkcs1SignKeyManager()
    return mgr.create_key(params.to_key_format()).SerializeToString()


@pytest.fixture(scope="session")
def other_rsa_key_bytes():
    params = JwtRsaSsaPkcs1Parameters(modulus_size_bits=2048, algorithm=JwtRsaSsaPkcs1Algorithm.RS256)
    mgr = JwtRsaSsaPkcs1SignKeyManager()
    return mgr.create_key(params.to_key_format()).SerializeToString()


@pytest.fixture
def rsa_key(rsa_key_bytes):
    """Fresh mutable copy of the session key."""
    key = JwtRsaSsaPkcs1PrivateKey()
    key.ParseFromString(rsa_key_bytes)
    return key
