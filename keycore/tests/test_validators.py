# keycore/tests/test_validators.py
import pytest

from keycore.errors import InvalidKeyVersionError, InvalidModulusSizeError, InvalidPublicExponentError
from keycore.fips import FipsPolicy
from keycore.validators import validate_rsa_modulus_size, validate_rsa_public_exponent, validate_version


def test_validate_version():
    validate_version(0, 0)
    validate_version(1, 2)
    with pytest.raises(InvalidKeyVersionError):
        validate_version(1, 0)


@pytest.mark.parametrize("bits", [2048, 2049, 3072, 4096, 8192])
def test_modulus_size_accepted(bits):
    validate_rsa_modulus_size(bits)


@pytest.mark.parametrize("bits", [0, 1024, 2047])
def test_modulus_size_rejected(bits):
    with pytest.raises(InvalidModulusSizeError):
        validate_rsa_modulus_size(bits)


def test_modulus_size_under_fips():
    fips = FipsPolicy(restricted=True)
    validate_rsa_modulus_size(2048, fips)
    validate_rsa_modulus_size(3072, fips)
    for bits in (2560, 4096):
        with pytest.raises(InvalidModulusSizeError):
            validate_rsa_modulus_size(bits, fips)
    # Unrestricted policy does not narrow the set.
    validate_rsa_modulus_size(4096, FipsPolicy())


@pytest.mark.parametrize("e", [65537, 65539, 2**31 - 1])
def test_exponent_accepted(e):
    validate_rsa_public_exponent(e)


@pytest.mark.parametrize("e", [1, 3, 17, 65535, 65536, 65538])
def test_exponent_rejected(e):
    with pytest.raises(InvalidPublicExponentError):
        validate_rsa_public_exponent(e)
