"""Test decoding of constructor arguments"""

import pytest

from starknet_deployer.constants import FIELD_PRIME
from starknet_deployer.decode import FeltDecoder
from starknet_deployer.util import ConfigurationError


@pytest.mark.parametrize(
    "token, expected",
    [
        ("0x1a", [26]),
        ("0X1A", [26]),
        ("26", [26]),
        ("0", [0]),
        ("str:hello", [0x68656C6C6F]),
        ("str:", [0]),
        ("u256:1000", [1000, 0]),
        ("u256:0x100000000000000000000000000000001", [1, 1]),
        ("const:felt_max", [FIELD_PRIME - 1]),
        ("const:u256_max", [2**128 - 1, 2**128 - 1]),
    ],
)
def test_decode(token, expected):
    """Each token expands to one or more felts"""
    assert FeltDecoder().decode(token) == expected


def test_decode_all_keeps_order():
    """Tokens are concatenated in order"""
    felts = FeltDecoder().decode_all(["0x1", "u256:2", "str:a", "3"])
    assert felts == [1, 2, 0, ord("a"), 3]


@pytest.mark.parametrize(
    "token",
    [
        "0xzz",
        "abc",
        str(FIELD_PRIME),
        "-1",
        "str:" + "a" * 32,
        "str:é",
        f"u256:{2**256}",
        "u256:nope",
        "const:unknown",
        "addr:eth",
    ],
)
def test_decode_invalid(token):
    """Malformed tokens are configuration errors"""
    with pytest.raises(ConfigurationError):
        FeltDecoder().decode(token)
