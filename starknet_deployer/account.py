"""
Account config loading and signing of account transactions.
Call encoding based on the OZ account's `__execute__`
(https://github.com/OpenZeppelin/nile/pull/184)
"""

import json
import logging
import os
from dataclasses import dataclass
from typing import List, NamedTuple, Optional

from marshmallow import EXCLUDE, Schema, ValidationError, fields, post_load, validate
from starkware.cairo.common.hash_state import compute_hash_on_elements
from starkware.crypto.signature.fast_pedersen_hash import pedersen_hash
from starkware.crypto.signature.signature import private_to_stark_key, sign
from starkware.starknet.core.os.transaction_hash.transaction_hash import (
    TransactionHashPrefix,
)
from starkware.starknet.public.abi import get_selector_from_name

from .constants import DEFAULT_BLOCK_ID, QUERY_TX_VERSION, SUPPORTED_TX_VERSION
from .provider import JsonRpcProvider, RpcBroadcastedInvokeTxnV1, rpc_felt
from .util import ConfigurationError, parse_felt

logger = logging.getLogger(__name__)


class FeltField(fields.Field):
    """Hex or decimal string deserialized into an int"""

    def _deserialize(self, value, attr, data, **kwargs):
        if not isinstance(value, str):
            raise ValidationError("Expected a hex string.")
        try:
            return parse_felt(value)
        except ConfigurationError as error:
            raise ValidationError(error.message) from error


class DeploymentStatusSchema(Schema):
    """Deployment section of an account config"""

    class Meta:
        unknown = EXCLUDE

    status = fields.String(
        required=True, validate=validate.OneOf(["deployed", "undeployed"])
    )
    class_hash = FeltField(required=True)
    address = FeltField(load_default=None)
    salt = FeltField(load_default=None)


class AccountVariantSchema(Schema):
    """Account contract flavour"""

    class Meta:
        unknown = EXCLUDE

    type = fields.String(required=True)
    version = fields.Integer(load_default=1)
    public_key = FeltField(required=True)
    legacy = fields.Boolean(load_default=True)


@dataclass
class AccountConfig:
    """Account config file contents"""

    version: int
    variant: dict
    deployment: dict

    @property
    def is_deployed(self) -> bool:
        """Whether the account contract exists on-chain"""
        return self.deployment["status"] == "deployed"

    @property
    def address(self) -> int:
        """Address of a deployed account"""
        if not self.is_deployed:
            raise ConfigurationError("account not deployed")
        return self.deployment["address"]

    @property
    def legacy(self) -> bool:
        """Whether `__execute__` takes the Cairo 0 call array encoding"""
        return self.variant["legacy"]


class AccountConfigSchema(Schema):
    """Account config file"""

    class Meta:
        unknown = EXCLUDE

    version = fields.Integer(required=True, validate=validate.Equal(1))
    variant = fields.Nested(AccountVariantSchema, required=True)
    deployment = fields.Nested(DeploymentStatusSchema, required=True)

    @post_load
    def make_config(self, data, **kwargs):  # pylint: disable=unused-argument
        """Validate and wrap"""
        deployment = data["deployment"]
        if deployment["status"] == "deployed" and deployment["address"] is None:
            raise ValidationError("Deployed account must have an address.", "deployment")
        return AccountConfig(**data)


def load_account_config(path: str) -> AccountConfig:
    """
    Loads the account config at `path`.
    Raises ConfigurationError if the file is missing or invalid, or the account is not deployed.
    """
    path = os.path.abspath(os.path.expanduser(path))

    if not os.path.isfile(path):
        raise ConfigurationError(f"account config file not found: {path}")

    with open(path, mode="r", encoding="utf-8") as account_file:
        try:
            loaded_dict = json.load(account_file)
        except json.JSONDecodeError:
            raise ConfigurationError(f"{path} is not a valid JSON file") from None

    try:
        config = AccountConfigSchema().load(loaded_dict)
    except ValidationError as error:
        raise ConfigurationError(
            f"{path} is not a valid account config: {error.messages}"
        ) from None

    if not config.is_deployed:
        raise ConfigurationError("account not deployed")

    return config


class Signer:
    """Stark curve key pair"""

    def __init__(self, private_key: int):
        self.private_key = private_key

    @property
    def public_key(self) -> int:
        """Stark key of the private key"""
        return private_to_stark_key(self.private_key)

    def sign(self, message_hash: int) -> List[int]:
        """Get signature from message hash."""
        sig_r, sig_s = sign(message_hash, self.private_key)
        return [sig_r, sig_s]


class AccountCall(NamedTuple):
    """Things needed to interact through Account"""

    to_address: int
    """The address of the called contract"""

    function: str
    inputs: List[int]


def _from_call_to_call_array(calls: List[AccountCall]):
    """Transforms calls to call_array and calldata."""
    call_array = []
    calldata = []

    for call in calls:
        entry = (
            call.to_address,
            get_selector_from_name(call.function),
            len(calldata),
            len(call.inputs),
        )
        call_array.append(entry)
        calldata.extend(call.inputs)

    return (call_array, calldata)


def get_execute_calldata(calls: List[AccountCall], legacy: bool = True) -> List[int]:
    """Get calldata for __execute__."""
    if legacy:
        call_array, calldata = _from_call_to_call_array(calls)
        return [
            len(call_array),
            *[x for t in call_array for x in t],
            len(calldata),
            *calldata,
        ]

    execute_calldata = [len(calls)]
    for call in calls:
        execute_calldata.extend(
            [
                call.to_address,
                get_selector_from_name(call.function),
                len(call.inputs),
                *call.inputs,
            ]
        )
    return execute_calldata


# pylint: disable=too-many-arguments
def calculate_invoke_transaction_hash(
    sender_address: int,
    calldata: List[int],
    max_fee: int,
    chain_id: int,
    nonce: int,
    version: int = SUPPORTED_TX_VERSION,
) -> int:
    """Hash of a v1 INVOKE transaction (the message signed by the account)"""
    return compute_hash_on_elements(
        [
            TransactionHashPrefix.INVOKE.value,
            version,
            sender_address,
            0,  # entry point selector is unused since v1
            compute_hash_on_elements(calldata, hash_func=pedersen_hash),
            max_fee,
            chain_id,
            nonce,
        ],
        hash_func=pedersen_hash,
    )


class SingleOwnerAccount:
    """Account controlled by a single Stark key, sending v1 INVOKE transactions"""

    def __init__(
        self,
        provider: JsonRpcProvider,
        signer: Signer,
        address: int,
        chain_id: int,
        legacy: bool = True,
        block_id=DEFAULT_BLOCK_ID,
    ):
        self.provider = provider
        self.signer = signer
        self.address = address
        self.chain_id = chain_id
        self.legacy = legacy
        self.block_id = block_id

    def sign_invoke(
        self,
        calls: List[AccountCall],
        nonce: int,
        max_fee: int,
        version: int = SUPPORTED_TX_VERSION,
    ) -> RpcBroadcastedInvokeTxnV1:
        """Build the signed INVOKE transaction of `calls`"""
        execute_calldata = get_execute_calldata(calls, legacy=self.legacy)
        tx_hash = calculate_invoke_transaction_hash(
            sender_address=self.address,
            calldata=execute_calldata,
            max_fee=max_fee,
            chain_id=self.chain_id,
            nonce=nonce,
            version=version,
        )

        return RpcBroadcastedInvokeTxnV1(
            type="INVOKE",
            sender_address=rpc_felt(self.address),
            calldata=[rpc_felt(element) for element in execute_calldata],
            max_fee=rpc_felt(max_fee),
            version=rpc_felt(version),
            signature=[rpc_felt(element) for element in self.signer.sign(tx_hash)],
            nonce=rpc_felt(nonce),
        )

    async def get_nonce(self) -> int:
        """Nonce of the account at the configured block"""
        return await self.provider.get_nonce(self.address, block_id=self.block_id)

    async def estimate_fee(
        self, calls: List[AccountCall], nonce: Optional[int] = None
    ) -> int:
        """Overall fee in Wei of executing `calls`, simulated with a query version transaction"""
        if nonce is None:
            nonce = await self.get_nonce()

        transaction = self.sign_invoke(
            calls, nonce=nonce, max_fee=0, version=QUERY_TX_VERSION
        )
        estimate = await self.provider.estimate_fee(transaction, block_id=self.block_id)
        return estimate.overall_fee

    async def execute(
        self, calls: List[AccountCall], max_fee: int, nonce: Optional[int] = None
    ) -> int:
        """Sign and send `calls`; returns the transaction hash assigned by the network"""
        if nonce is None:
            nonce = await self.get_nonce()

        transaction = self.sign_invoke(calls, nonce=nonce, max_fee=max_fee)
        logger.debug("Sending invoke with nonce %d and max fee %d", nonce, max_fee)
        return await self.provider.add_invoke_transaction(transaction)
