"""Status Resolver: tri-state transaction status from a receipt."""

from typing import Any, Optional
import logging

from .base import TransactionStatus, call_rpc
from .receipt_resolver import receipt_field

logger = logging.getLogger(__name__)

RECEIPT_STATUS_SUCCESS = 1


def derive_status(receipt: Optional[Any]) -> TransactionStatus:
    """No receipt -> PENDING, status 1 -> SUCCESS, anything else -> FAILED."""
    if receipt is None:
        return TransactionStatus.PENDING
    if receipt_field(receipt, 'status') == RECEIPT_STATUS_SUCCESS:
        return TransactionStatus.SUCCESS
    return TransactionStatus.FAILED


async def fetch_status(reader, tx_hash: str) -> TransactionStatus:
    """Current status of `tx_hash`; PENDING when the receipt cannot be read."""
    result = await call_rpc(f"status {tx_hash}", reader.get_transaction_receipt(tx_hash))
    if not result.ok:
        return TransactionStatus.PENDING
    return derive_status(result.value)
