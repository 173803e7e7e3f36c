"""
Receipt/Block Resolver

Looks up a transaction receipt and its containing block. Never raises:
a missing or failing receipt collapses to "no receipt" (status PENDING),
a failing block lookup collapses to "no block" (event timestamp is used).
"""

from dataclasses import dataclass
from typing import Any, Optional
import logging

from .base import call_rpc

logger = logging.getLogger(__name__)


def receipt_field(obj: Any, name: str) -> Any:
    """Read a field from a web3 AttributeDict or a plain dict."""
    if obj is None:
        return None
    getter = getattr(obj, 'get', None)
    if getter is not None:
        return getter(name)
    return getattr(obj, name, None)


@dataclass(frozen=True)
class ResolvedReceipt:
    receipt: Optional[Any] = None
    block: Optional[Any] = None
    error: Optional[str] = None

    @property
    def block_timestamp(self) -> Optional[int]:
        ts = receipt_field(self.block, 'timestamp')
        return int(ts) if ts is not None else None

    @property
    def gas_used(self) -> Optional[str]:
        value = receipt_field(self.receipt, 'gasUsed')
        return str(value) if value is not None else None

    @property
    def gas_price(self) -> Optional[str]:
        value = receipt_field(self.receipt, 'effectiveGasPrice')
        return str(value) if value is not None else None


async def resolve_receipt(reader, tx_hash: str) -> ResolvedReceipt:
    """
    Resolve receipt and block for one transaction.

    Args:
        reader: ChainReader (or compatible)
        tx_hash: 0x-prefixed transaction hash

    Returns:
        ResolvedReceipt with whatever could be fetched
    """
    receipt_result = await call_rpc(f"receipt {tx_hash}", reader.get_transaction_receipt(tx_hash))
    if not receipt_result.ok:
        return ResolvedReceipt(error=receipt_result.error)

    receipt = receipt_result.value
    if receipt is None:
        logger.debug(f"No receipt yet for {tx_hash}")
        return ResolvedReceipt()

    block_number = receipt_field(receipt, 'blockNumber')
    if block_number is None:
        return ResolvedReceipt(receipt=receipt)

    block_result = await call_rpc(f"block {block_number}", reader.get_block(block_number))
    if not block_result.ok:
        return ResolvedReceipt(receipt=receipt, error=block_result.error)

    return ResolvedReceipt(receipt=receipt, block=block_result.value)
