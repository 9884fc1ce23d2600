# keycore/tests/test_parameters.py
import pytest

from keycore.errors import (
    ConflictingTemplateError,
    InvalidModulusSizeError,
    InvalidPublicExponentError,
    KeyValidationError,
    UnknownTemplateError,
)
from keycore.jwt_rsa_sign import named_parameters
from keycore.parameters import F4, JwtRsaSsaPkcs1Parameters, KidStrategy, ParametersRegistry
from keycore.proto import JwtRsaSsaPkcs1Algorithm, bytes_to_int


@pytest.fixture
def params_registry():
    reg = ParametersRegistry()
    reg.put_all(named_parameters())
    return reg


def test_get_raw_template(params_registry):
    p = params_registry.get("JWT_RS256_2048_F4_RAW")
    assert p.modulus_size_bits == 2048
    assert p.public_exponent == F4
    assert p.algorithm is JwtRsaSsaPkcs1Algorithm.RS256
    assert p.kid_strategy is KidStrategy.IGNORED
    assert not p.has_id_requirement()


def test_get_kid_template(params_registry):
    p = params_registry.get("JWT_RS256_3072_F4")
    assert p.modulus_size_bits == 3072
    assert p.kid_strategy is KidStrategy.BASE64_ENCODED_KEY_ID
    assert p.has_id_requirement()


def test_unknown_template(params_registry):
    with pytest.raises(UnknownTemplateError) as ei:
        params_registry.get("NOT_A_TEMPLATE")
    assert ei.value.name == "NOT_A_TEMPLATE"


def test_put_all_accepts_equal_values_again(params_registry):
    params_registry.put_all(named_parameters())
    params_registry.put_all({"JWT_RS256_2048_F4_RAW": JwtRsaSsaPkcs1Parameters(2048)})
    assert len(params_registry) == 8


def test_put_all_conflict_leaves_table_untouched(params_registry):
    before = params_registry.names()
    with pytest.raises(ConflictingTemplateError) as ei:
        params_registry.put_all(
            {
                "MY_TEMPLATE": JwtRsaSsaPkcs1Parameters(2048),
                "JWT_RS256_2048_F4_RAW": JwtRsaSsaPkcs1Parameters(3072),
            }
        )
    assert ei.value.name == "JWT_RS256_2048_F4_RAW"
    assert params_registry.names() == before
    assert "MY_TEMPLATE" not in params_registry


def test_copy_constructor():
    original = ParametersRegistry()
    original.put_all(named_parameters())
    copy = ParametersRegistry(original)
    copy.put_all({"EXTRA": JwtRsaSsaPkcs1Parameters(4096)})
    assert "EXTRA" in copy
    assert "EXTRA" not in original


def test_parameters_validate_on_construction():
    with pytest.raises(InvalidModulusSizeError):
        JwtRsaSsaPkcs1Parameters(1024)
    with pytest.raises(InvalidPublicExponentError):
        JwtRsaSsaPkcs1Parameters(2048, public_exponent=3)
    with pytest.raises(KeyValidationError) as ei:
        JwtRsaSsaPkcs1Parameters(2048, algorithm=JwtRsaSsaPkcs1Algorithm.RS_UNKNOWN)
    assert ei.value.field == "algorithm"


def test_to_key_format():
    fmt = JwtRsaSsaPkcs1Parameters(3072, algorithm=JwtRsaSsaPkcs1Algorithm.RS384).to_key_format()
    assert fmt.version == 0
    assert fmt.modulus_size_in_bits == 3072
    assert fmt.algorithm == JwtRsaSsaPkcs1Algorithm.RS384
    assert bytes_to_int(fmt.public_exponent) == 65537
