"""Waiting for a submitted transaction to reach a terminal state"""

import asyncio
import logging
import time
from typing import Optional

from .constants import DEFAULT_WATCH_INTERVAL
from .provider import TXN_HASH_NOT_FOUND, JsonRpcProvider, RpcError
from .util import (
    ConfirmationTimeoutError,
    TransactionRejectedError,
    fixed_length_hex,
)

logger = logging.getLogger(__name__)

ACCEPTED_STATUSES = ("ACCEPTED_ON_L2", "ACCEPTED_ON_L1")
REJECTED_STATUSES = ("REJECTED",)


def receipt_outcome(receipt: dict) -> Optional[bool]:
    """
    True if the receipt is final and successful, False if final and failed,
    None if the transaction is still pending.
    """
    execution_status = receipt.get("execution_status")
    if execution_status == "REVERTED":
        return False

    status = receipt.get("finality_status") or receipt.get("status")
    if status in REJECTED_STATUSES:
        return False
    if status in ACCEPTED_STATUSES:
        return True
    return None


async def watch_tx(
    provider: JsonRpcProvider,
    tx_hash: int,
    poll_interval: float = DEFAULT_WATCH_INTERVAL,
    timeout: Optional[float] = None,
) -> dict:
    """
    Polls the receipt of `tx_hash` until the transaction is accepted or rejected.
    Returns the final receipt.
    Raises TransactionRejectedError or, once `timeout` seconds elapse, ConfirmationTimeoutError.
    """
    started = time.monotonic()

    while True:
        try:
            receipt = await provider.get_transaction_receipt(tx_hash)
        except RpcError as error:
            if error.code != TXN_HASH_NOT_FOUND:
                raise
            logger.info("Transaction %s not received yet", fixed_length_hex(tx_hash))
        else:
            outcome = receipt_outcome(receipt)
            if outcome is True:
                logger.info("Transaction %s confirmed", fixed_length_hex(tx_hash))
                return receipt
            if outcome is False:
                raise TransactionRejectedError(
                    tx_hash, receipt.get("revert_reason") or receipt.get("status_data")
                )
            logger.info("Transaction %s not confirmed yet", fixed_length_hex(tx_hash))

        delay = poll_interval
        if timeout is not None:
            remaining = started + timeout - time.monotonic()
            if remaining <= 0:
                raise ConfirmationTimeoutError(tx_hash, timeout)
            delay = min(delay, remaining)

        await asyncio.sleep(delay)
