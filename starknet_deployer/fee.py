"""
Fee settings and their resolution into a max fee.
"""

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Union

from .constants import (
    FEE_BUFFER_DENOMINATOR,
    FEE_BUFFER_NUMERATOR,
    FEE_TOKEN_DECIMALS,
    FEE_TOKEN_SYMBOL,
)
from .util import (
    ConfigurationError,
    from_decimal_string,
    parse_int,
    to_decimal_string,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Manual:
    """Max fee given by the user, in Wei"""

    amount: int


@dataclass(frozen=True)
class EstimateOnly:
    """Only estimate and report the fee; nothing is submitted"""


@dataclass(frozen=True)
class Automatic:
    """Estimate the fee and use it with a safety buffer"""


FeeSetting = Union[Manual, EstimateOnly, Automatic]


@dataclass(frozen=True)
class Resolved:
    """Fee to submit the transaction with"""

    fee: int


@dataclass(frozen=True)
class ReportedAndStop:
    """The estimate was reported; the workflow must stop here"""

    estimated_fee: int


FeeOutcome = Union[Resolved, ReportedAndStop]


def fee_setting_from_args(
    max_fee: Optional[str] = None,
    max_fee_raw: Optional[str] = None,
    estimate_only: bool = False,
) -> FeeSetting:
    """
    Builds the fee setting from user input.
    `max_fee` is in ETH (decimal), `max_fee_raw` in Wei.
    """
    options = {
        "--max-fee": max_fee is not None,
        "--max-fee-raw": max_fee_raw is not None,
        "--estimate-only": estimate_only,
    }
    given = [name for name, present in options.items() if present]
    if len(given) > 1:
        raise ConfigurationError(f"Conflicting fee options: {', '.join(given)}")

    if max_fee is not None:
        return Manual(from_decimal_string(max_fee, FEE_TOKEN_DECIMALS))

    if max_fee_raw is not None:
        return Manual(parse_int(max_fee_raw))

    if estimate_only:
        return EstimateOnly()

    return Automatic()


def apply_fee_buffer(estimated_fee: int) -> int:
    """Multiplies the estimate by the safety buffer using integer arithmetic"""
    return estimated_fee * FEE_BUFFER_NUMERATOR // FEE_BUFFER_DENOMINATOR


def format_fee(amount: int) -> str:
    """E.g. `1500000000000000 -> '0.0015 ETH'`"""
    return f"{to_decimal_string(amount, FEE_TOKEN_DECIMALS)} {FEE_TOKEN_SYMBOL}"


async def resolve(
    setting: FeeSetting, estimate_fn: Callable[[], Awaitable[int]]
) -> FeeOutcome:
    """
    Resolves `setting` into a fee.
    `estimate_fn` is awaited at most once and never for a manual fee;
    its errors propagate unchanged.
    """
    if isinstance(setting, Manual):
        return Resolved(setting.amount)

    if isinstance(setting, (EstimateOnly, Automatic)):
        estimated_fee = await estimate_fn()
        logger.debug("Estimated fee: %d Wei", estimated_fee)

        if isinstance(setting, EstimateOnly):
            return ReportedAndStop(estimated_fee)

        return Resolved(apply_fee_buffer(estimated_fee))

    raise TypeError(f"Unknown fee setting: {setting!r}")
