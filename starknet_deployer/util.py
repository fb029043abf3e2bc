"""
Utility functions used across the project.
"""
import sys
from dataclasses import dataclass
from enum import auto
from typing import Optional

from starkware.starkware_utils.error_handling import ErrorCode, StarkException

from .constants import FELT_HEX_WIDTH, FIELD_PRIME

HEX_DIGITS = "0123456789abcdef"


class DeployErrorCode(ErrorCode):
    """Error codes of the deployment pipeline."""

    CONFIGURATION_ERROR = auto()
    SEARCH_EXHAUSTED = auto()
    SEARCH_CANCELLED = auto()
    ESTIMATION_ERROR = auto()
    SUBMISSION_ERROR = auto()
    TRANSACTION_REJECTED = auto()
    CONFIRMATION_TIMEOUT = auto()
    CONFIRMATION_FAILED = auto()


class StarknetDeployerException(StarkException):
    """
    Exception raised across the project.
    `stage` names the step of the pipeline that failed.
    """

    stage = "deploy"

    def __init__(self, code: DeployErrorCode, message: str = None):
        super().__init__(code=code, message=message)

    def __str__(self):
        return f"{self.stage}: {self.message}"


class ConfigurationError(StarknetDeployerException):
    """Invalid input detected before any network call"""

    stage = "configuration"

    def __init__(self, message: str):
        super().__init__(code=DeployErrorCode.CONFIGURATION_ERROR, message=message)


class SearchExhausted(StarknetDeployerException):
    """Raised when the salt search hits its iteration cap without a match"""

    stage = "salt search"

    def __init__(self, iterations: int, last_salt: int):
        super().__init__(
            code=DeployErrorCode.SEARCH_EXHAUSTED,
            message=f"No matching salt found after {iterations} iterations "
            f"(last tried salt: {last_salt:#x}).",
        )
        self.iterations = iterations
        self.last_salt = last_salt


class SearchCancelled(StarknetDeployerException):
    """Raised when the salt search is stopped from outside"""

    stage = "salt search"

    def __init__(self, iterations: int, last_salt: int):
        super().__init__(
            code=DeployErrorCode.SEARCH_CANCELLED,
            message=f"Search cancelled after {iterations} iterations at salt {last_salt:#x}.",
        )
        self.iterations = iterations
        self.last_salt = last_salt


class EstimationError(StarknetDeployerException):
    """The network could not estimate the fee of the deployment"""

    stage = "fee estimation"

    def __init__(self, message: str):
        super().__init__(code=DeployErrorCode.ESTIMATION_ERROR, message=message)


class SubmissionError(StarknetDeployerException):
    """
    The network refused the signed deployment transaction.
    Resubmitting is left to the operator.
    """

    stage = "submission"

    def __init__(self, message: str):
        super().__init__(code=DeployErrorCode.SUBMISSION_ERROR, message=message)


class ConfirmationError(StarknetDeployerException):
    """The transaction reached the network but was not confirmed"""

    stage = "confirmation"

    def __init__(self, code: DeployErrorCode, tx_hash: int, message: str):
        super().__init__(code=code, message=message)
        self.tx_hash = tx_hash


class TransactionRejectedError(ConfirmationError):
    """The transaction reached a terminal rejected or reverted state"""

    def __init__(self, tx_hash: int, reason: Optional[str] = None):
        message = f"Transaction {fixed_length_hex(tx_hash)} rejected"
        if reason:
            message += f": {reason}"
        super().__init__(DeployErrorCode.TRANSACTION_REJECTED, tx_hash, message)


class ConfirmationTimeoutError(ConfirmationError):
    """The transaction did not reach a terminal state in time"""

    def __init__(self, tx_hash: int, timeout: float):
        super().__init__(
            DeployErrorCode.CONFIRMATION_TIMEOUT,
            tx_hash,
            f"Transaction {fixed_length_hex(tx_hash)} not confirmed within {timeout:g} seconds",
        )
        self.timeout = timeout


def fixed_length_hex(arg: int) -> str:
    """
    Converts the int input to a hex output of fixed length
    """
    return f"0x{arg:0{FELT_HEX_WIDTH}x}"


def left_pad_with_zeros(text: str, width: int) -> str:
    """Pads `text` with leading zeros up to `width` characters"""
    return text.rjust(width, "0")


def _parse_digits(text: str, base: int) -> int:
    """`int(text, base)` without signs, whitespace or underscores"""
    if not text or any(char not in HEX_DIGITS[:base] for char in text.lower()):
        raise ValueError(f"invalid base {base} number: '{text}'")
    return int(text, base)


def parse_int(arg: str) -> int:
    """
    Converts a hex (0x-prefixed) or decimal string to a non-negative int.
    """
    try:
        if arg.lower().startswith("0x"):
            return _parse_digits(arg[2:], 16)
        return _parse_digits(arg, 10)
    except ValueError:
        raise ConfigurationError(
            f"Expected a hexadecimal string starting with 0x or a decimal number; got: '{arg}'."
        ) from None


def _check_felt(value: int, arg: str) -> int:
    if value >= FIELD_PRIME:
        raise ConfigurationError(f"Value out of field range: {arg}")
    return value


def parse_felt(arg: str) -> int:
    """
    Converts a hex (0x-prefixed) or decimal string to a field element.
    """
    return _check_felt(parse_int(arg), arg)


def parse_hex_felt(arg: str) -> int:
    """
    Converts a hex string to a field element; the 0x prefix is optional.
    E.g. `parse_hex_felt("123") == 0x123`
    """
    digits = arg[2:] if arg.lower().startswith("0x") else arg
    try:
        value = _parse_digits(digits, 16)
    except ValueError:
        raise ConfigurationError(f"Expected a hexadecimal string; got: '{arg}'.") from None

    return _check_felt(value, arg)


def str_to_felt(text: str) -> int:
    """Converts string to felt."""
    if len(text) > 31:
        raise ConfigurationError(
            f"Short string cannot be longer than 31 characters: '{text}'"
        )
    try:
        return int.from_bytes(bytes(text, "ascii"), "big")
    except UnicodeEncodeError:
        raise ConfigurationError(f"Short string must be ASCII: '{text}'") from None


@dataclass
class Uint256:
    """Abstraction of Uint256 type"""

    low: int
    high: int

    @staticmethod
    def from_felt(felt: int) -> "Uint256":
        """Converts felt to Uint256"""
        return Uint256(low=felt & ((1 << 128) - 1), high=felt >> 128)


def to_decimal_string(amount: int, decimals: int) -> str:
    """
    Formats an integer amount of the smallest unit as a decimal number.
    E.g. `to_decimal_string(1500, 3) == "1.5"`
    """
    whole, fraction = divmod(amount, 10**decimals)
    fraction_str = str(fraction).rjust(decimals, "0").rstrip("0")
    if not fraction_str:
        return str(whole)
    return f"{whole}.{fraction_str}"


def from_decimal_string(text: str, decimals: int) -> int:
    """
    Parses a decimal number into an integer amount of the smallest unit.
    Raises ConfigurationError if precision would be lost.
    """
    whole, _, fraction = text.strip().partition(".")
    if not whole and not fraction:
        raise ConfigurationError(f"Invalid decimal amount: '{text}'")
    if (whole and not whole.isdigit()) or (fraction and not fraction.isdigit()):
        raise ConfigurationError(f"Invalid decimal amount: '{text}'")
    if len(fraction) > decimals:
        raise ConfigurationError(
            f"Amount '{text}' has more than {decimals} decimal places"
        )
    return int(whole or "0") * 10**decimals + int(fraction.ljust(decimals, "0") or "0")


def highlight(text: str) -> str:
    """Wraps text in bright yellow"""
    return f"\033[93m{text}\033[0m"


def warn(msg: str, file=None):
    """Log a warning"""
    print(f"\033[93m{msg}\033[0m", file=file or sys.stderr)
