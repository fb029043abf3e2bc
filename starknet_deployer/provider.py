"""
JSON-RPC client of a Starknet node
"""

import itertools
import logging
from typing import List, NamedTuple, TypedDict, Union

import aiohttp

from .constants import DEFAULT_BLOCK_ID

logger = logging.getLogger(__name__)

Felt = str

TXN_HASH_NOT_FOUND = 29


class RpcError(Exception):
    """
    Error message returned by rpc
    """

    def __init__(self, code, message, data=None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.data = data

    def __str__(self):
        if self.data:
            return f"{self.message} ({self.code}): {self.data}"
        return f"{self.message} ({self.code})"


class RpcBroadcastedInvokeTxnV1(TypedDict):
    """TypedDict for RpcBroadcastedInvokeTxnV1"""

    type: str
    sender_address: Felt
    calldata: List[Felt]
    max_fee: Felt
    version: Felt
    signature: List[Felt]
    nonce: Felt


class FeeEstimate(NamedTuple):
    """Fee estimate of a single transaction, in Wei"""

    overall_fee: int
    gas_consumed: int
    gas_price: int


def rpc_felt(value: int) -> Felt:
    """Convert integer to 0x prefixed felt"""
    return hex(value)


class JsonRpcProvider:
    """Thin async wrapper of the `starknet_*` JSON-RPC methods used for deployment"""

    def __init__(self, url: str, timeout: float = 60):
        self.url = url
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self._ids = itertools.count()

    async def _call(self, method: str, params: Union[dict, list]):
        payload = {
            "jsonrpc": "2.0",
            "method": method,
            "params": params,
            "id": next(self._ids),
        }
        logger.debug("RPC request: %s", method)

        async with aiohttp.ClientSession(timeout=self.timeout) as session:
            async with session.post(self.url, json=payload) as response:
                response.raise_for_status()
                body = await response.json(content_type=None)

        if not isinstance(body, dict):
            raise RpcError(code=None, message="Malformed JSON-RPC response", data=body)

        if "error" in body:
            error = body["error"]
            raise RpcError(
                code=error.get("code"),
                message=error.get("message"),
                data=error.get("data"),
            )

        if "result" not in body:
            raise RpcError(code=None, message="Malformed JSON-RPC response", data=body)

        return body["result"]

    async def chain_id(self) -> int:
        """Chain id of the node as an int"""
        return int(await self._call("starknet_chainId", []), 16)

    async def get_nonce(self, address: int, block_id=DEFAULT_BLOCK_ID) -> int:
        """Nonce of the contract at `address`"""
        result = await self._call(
            "starknet_getNonce",
            {"block_id": block_id, "contract_address": rpc_felt(address)},
        )
        return int(result, 16)

    async def estimate_fee(
        self, transaction: RpcBroadcastedInvokeTxnV1, block_id=DEFAULT_BLOCK_ID
    ) -> FeeEstimate:
        """Estimate the fee of a single (query version) transaction"""
        result = await self._call(
            "starknet_estimateFee",
            {"request": [transaction], "block_id": block_id},
        )
        estimate = result[0]
        return FeeEstimate(
            overall_fee=int(estimate["overall_fee"], 16),
            gas_consumed=int(estimate["gas_consumed"], 16),
            gas_price=int(estimate["gas_price"], 16),
        )

    async def add_invoke_transaction(
        self, transaction: RpcBroadcastedInvokeTxnV1
    ) -> int:
        """Submit the signed transaction; returns its hash"""
        result = await self._call(
            "starknet_addInvokeTransaction", {"invoke_transaction": transaction}
        )
        return int(result["transaction_hash"], 16)

    async def get_transaction_receipt(self, tx_hash: int) -> dict:
        """Raw receipt of the transaction"""
        return await self._call(
            "starknet_getTransactionReceipt", {"transaction_hash": rpc_felt(tx_hash)}
        )
