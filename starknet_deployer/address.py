"""
Deterministic address of contracts deployed through the Universal Deployer Contract.
"""

from dataclasses import dataclass
from typing import Sequence, Union

from starkware.crypto.signature.fast_pedersen_hash import pedersen_hash
from starkware.starknet.core.os.contract_address.contract_address import (
    calculate_contract_address_from_hash,
)

from .constants import DEFAULT_UDC_ADDRESS


@dataclass(frozen=True)
class Unique:
    """
    The deployed address is bound to the deploying account and the UDC instance:
    the salt is hashed together with `deployer_address` and the UDC is the deployer.
    """

    deployer_address: int
    udc_address: int = DEFAULT_UDC_ADDRESS


@dataclass(frozen=True)
class NotUnique:
    """The deployed address depends on salt, class hash and calldata only."""


UniquenessMode = Union[Unique, NotUnique]


def derive(
    salt: int,
    class_hash: int,
    mode: UniquenessMode,
    ctor_args: Sequence[int],
) -> int:
    """
    Returns the address the UDC assigns to a contract deployed with the given arguments.
    Mirrors `deployContract` of the UDC: in unique mode the salt becomes
    `pedersen(deployer_address, salt)` and the UDC address is the deployer;
    otherwise the deployment is made from zero.
    """
    if isinstance(mode, Unique):
        return calculate_contract_address_from_hash(
            salt=pedersen_hash(mode.deployer_address, salt),
            class_hash=class_hash,
            constructor_calldata=ctor_args,
            deployer_address=mode.udc_address,
            hash_function=pedersen_hash,
        )

    if isinstance(mode, NotUnique):
        return calculate_contract_address_from_hash(
            salt=salt,
            class_hash=class_hash,
            constructor_calldata=ctor_args,
            deployer_address=0,
            hash_function=pedersen_hash,
        )

    raise TypeError(f"Unknown uniqueness mode: {mode!r}")
