"""Decoding of raw constructor argument tokens into felts"""

from typing import Dict, List

from .constants import FIELD_PRIME
from .util import ConfigurationError, Uint256, parse_felt, parse_int, str_to_felt

CONSTANTS: Dict[str, List[int]] = {
    "felt_max": [FIELD_PRIME - 1],
    "u256_max": [2**128 - 1, 2**128 - 1],
}


class FeltDecoder:
    """
    Decodes one token into one or more felts. Supported forms:
    - `0x1a` or `26`: a single felt
    - `str:hello`: Cairo short string
    - `u256:<number>`: `[low, high]` of a Uint256
    - `const:<name>`: a named constant (see `CONSTANTS`)
    """

    def decode(self, token: str) -> List[int]:
        """Decode a single token"""
        scheme, sep, value = token.partition(":")
        if not sep:
            return [parse_felt(token)]

        if scheme == "str":
            return [str_to_felt(value)]

        if scheme == "u256":
            number = self._parse_u256(value)
            uint256 = Uint256.from_felt(number)
            return [uint256.low, uint256.high]

        if scheme == "const":
            try:
                return list(CONSTANTS[value])
            except KeyError:
                raise ConfigurationError(
                    f"Unknown constant '{value}'; valid names: {', '.join(CONSTANTS)}"
                ) from None

        raise ConfigurationError(f"Unknown argument scheme '{scheme}' in '{token}'")

    def decode_all(self, tokens: List[str]) -> List[int]:
        """Decode tokens in order and concatenate the felts"""
        felts = []
        for token in tokens:
            felts.extend(self.decode(token))
        return felts

    @staticmethod
    def _parse_u256(value: str) -> int:
        number = parse_int(value)
        if number >= 2**256:
            raise ConfigurationError(f"u256 value out of range: '{value}'")
        return number
