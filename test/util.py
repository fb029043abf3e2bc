"""
Scripted network collaborator and helpers for tests.
"""

from typing import List, Optional

from starknet_deployer.account import Signer, SingleOwnerAccount
from starknet_deployer.provider import FeeEstimate, RpcError

from .shared import (
    ACCOUNT_PRIVATE_KEY,
    CHAIN_ID,
    DEPLOYER_ADDRESS,
    ESTIMATED_FEE,
    TX_HASH,
)


class FakeProvider:
    """
    Records requests and answers with scripted values.
    `receipts` are returned one per poll; an RpcError entry is raised instead.
    """

    def __init__(
        self,
        estimated_fee: int = ESTIMATED_FEE,
        tx_hash: int = TX_HASH,
        receipts: Optional[list] = None,
        estimate_error: Optional[Exception] = None,
        send_error: Optional[Exception] = None,
    ):
        self.estimated_fee = estimated_fee
        self.tx_hash = tx_hash
        self.receipts = list(receipts or [])
        self.estimate_error = estimate_error
        self.send_error = send_error

        self.estimate_requests: List[dict] = []
        self.sent_transactions: List[dict] = []
        self.receipt_requests: List[int] = []

    async def chain_id(self) -> int:
        return CHAIN_ID

    async def get_nonce(self, address: int, block_id="pending") -> int:
        return 0

    async def estimate_fee(self, transaction, block_id="pending") -> FeeEstimate:
        self.estimate_requests.append(transaction)
        if self.estimate_error:
            raise self.estimate_error
        return FeeEstimate(
            overall_fee=self.estimated_fee, gas_consumed=self.estimated_fee, gas_price=1
        )

    async def add_invoke_transaction(self, transaction) -> int:
        self.sent_transactions.append(transaction)
        if self.send_error:
            raise self.send_error
        return self.tx_hash

    async def get_transaction_receipt(self, tx_hash: int) -> dict:
        self.receipt_requests.append(tx_hash)
        receipt = self.receipts.pop(0)
        if isinstance(receipt, RpcError):
            raise receipt
        return receipt


def make_account(provider: FakeProvider, address: int = DEPLOYER_ADDRESS, legacy=True):
    """Account signing with the test key"""
    return SingleOwnerAccount(
        provider=provider,
        signer=Signer(ACCOUNT_PRIVATE_KEY),
        address=address,
        chain_id=CHAIN_ID,
        legacy=legacy,
    )


def sent_udc_inputs(transaction: dict) -> List[int]:
    """UDC `deployContract` inputs of a single-call legacy `__execute__` calldata"""
    calldata = [int(element, 16) for element in transaction["calldata"]]
    # [n_calls, to, selector, data_offset, data_len, calldata_len, *calldata]
    assert calldata[0] == 1
    return calldata[6:]
