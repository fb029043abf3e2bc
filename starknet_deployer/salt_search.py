"""
Search for a salt producing a deployment address with a desired property (e.g. a vanity prefix).
"""

import logging
import threading
from typing import Callable, Iterator, NamedTuple, Optional, Sequence

from .address import UniquenessMode, derive
from .constants import (
    ADDRESS_UPPER_BOUND,
    FELT_HEX_WIDTH,
    FIELD_PRIME,
    SEARCH_REPORT_EVERY,
)
from .util import (
    HEX_DIGITS,
    ConfigurationError,
    SearchCancelled,
    SearchExhausted,
    fixed_length_hex,
    left_pad_with_zeros,
)

logger = logging.getLogger(__name__)

AddressPredicate = Callable[[int], bool]
SaltStep = Callable[[int], int]


class SaltSearchResult(NamedTuple):
    """Salt accepted by the search, its address and the number of tried salts"""

    salt: int
    address: int
    iterations: int


def increment(salt: int) -> int:
    """Default step: the next field element"""
    return (salt + 1) % FIELD_PRIME


def iter_salts(start: int = 0, step: SaltStep = increment) -> Iterator[int]:
    """Lazily yields `start`, `step(start)`, `step(step(start))`, ..."""
    salt = start
    while True:
        yield salt
        salt = step(salt)


def prefix_predicate(prefix: str) -> AddressPredicate:
    """
    Accepts addresses whose 64 digit hex representation (no 0x) starts with `prefix`.
    Raises ConfigurationError for a prefix no contract address has, e.g. `8`.
    """
    prefix = prefix.lower()
    if prefix.startswith("0x"):
        prefix = prefix[2:]

    if not prefix or len(prefix) > FELT_HEX_WIDTH:
        raise ConfigurationError(
            f"Prefix must have between 1 and {FELT_HEX_WIDTH} hex digits; got: '{prefix}'"
        )
    if any(char not in HEX_DIGITS for char in prefix):
        raise ConfigurationError(f"Prefix must be hexadecimal; got: '{prefix}'")
    # smallest address with this prefix
    if int(prefix, 16) * 16 ** (FELT_HEX_WIDTH - len(prefix)) >= ADDRESS_UPPER_BOUND:
        raise ConfigurationError(
            f"No contract address starts with prefix '{prefix}'; "
            f"addresses are below {fixed_length_hex(ADDRESS_UPPER_BOUND)[2:]}"
        )

    def accept(address: int) -> bool:
        return left_pad_with_zeros(f"{address:x}", FELT_HEX_WIDTH).startswith(prefix)

    return accept


# pylint: disable=too-many-arguments
def search_salt(
    accept: AddressPredicate,
    class_hash: int,
    mode: UniquenessMode,
    ctor_args: Sequence[int],
    start: int = 0,
    step: SaltStep = increment,
    max_iterations: Optional[int] = None,
    cancel_event: Optional[threading.Event] = None,
) -> SaltSearchResult:
    """
    Returns the first salt, in iteration order, whose derived address satisfies `accept`.
    Raises `SearchExhausted` after `max_iterations` rejected salts
    and `SearchCancelled` once `cancel_event` is set.
    Without a cap the search only ends on a match.
    """
    if max_iterations is not None and max_iterations <= 0:
        raise ConfigurationError(
            f"Max iterations must be a positive integer; got: {max_iterations}"
        )

    ctor_args = list(ctor_args)
    for iteration, salt in enumerate(iter_salts(start, step), start=1):
        if cancel_event is not None and cancel_event.is_set():
            raise SearchCancelled(iterations=iteration - 1, last_salt=salt)

        address = derive(salt, class_hash, mode, ctor_args)
        if accept(address):
            logger.info(
                "Found salt %#x after %d iterations: %s",
                salt,
                iteration,
                fixed_length_hex(address),
            )
            return SaltSearchResult(salt=salt, address=address, iterations=iteration)

        if iteration % SEARCH_REPORT_EVERY == 0:
            logger.debug(
                "Tried %d salts; current salt %#x gives %s",
                iteration,
                salt,
                fixed_length_hex(address),
            )

        if max_iterations is not None and iteration >= max_iterations:
            raise SearchExhausted(iterations=iteration, last_salt=salt)

    # iter_salts never ends
    raise AssertionError("unreachable")
