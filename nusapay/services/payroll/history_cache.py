"""
History Presentation Cache

Holds the last successfully merged payroll history in memory and serves it
to the display layer. A full fetch replaces the held set; the pending poll
only patches the status of records that are still PENDING.

State machine:
    EMPTY -> LOADING -> READY      (first fetch)
    READY -> LOADING -> READY      (refresh)
A failed fetch keeps whatever was held before and only sets `error`.
"""

import asyncio
from dataclasses import replace
from datetime import datetime, timezone
from enum import Enum
from functools import partial
from typing import Any, Dict, List, Optional
import logging

from ...config.blockchain_config import REFRESH_INTERVAL_SECONDS
from .base import NormalizedTransaction, TransactionStatus, call_rpc
from .display import format_transaction_for_display
from .event_source import fetch_events, decode_receipt_batch
from .merge import merge_batches
from .receipt_resolver import resolve_receipt, receipt_field
from .scheduler import PeriodicTask
from .status import derive_status, fetch_status

logger = logging.getLogger(__name__)


class HistoryState(Enum):
    EMPTY = "empty"
    LOADING = "loading"
    READY = "ready"


class TransactionHistoryCache:
    """
    In-memory payroll history for one connected wallet.

    Usage:
        cache = TransactionHistoryCache(ChainReader(context))
        await cache.fetch_full(address)
        cache.start_polling()
        ...
        await cache.stop()
    """

    def __init__(self, reader, poll_interval: float = REFRESH_INTERVAL_SECONDS):
        self.reader = reader
        # Token precision and block window come from the session's ChainContext
        self.context = reader.context
        self.state = HistoryState.EMPTY
        self.address: Optional[str] = None
        self.error: Optional[str] = None
        self.lookup_error: Optional[str] = None
        self.last_updated: Optional[datetime] = None

        self._transactions: List[NormalizedTransaction] = []
        self._has_data = False
        # Serializes full fetches and pending polls over the held set
        self._lock = asyncio.Lock()
        self._poll_task = PeriodicTask("pending-poll", poll_interval, self.poll_pending)

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def transactions(self) -> List[NormalizedTransaction]:
        return list(self._transactions)

    @property
    def pending_count(self) -> int:
        return sum(1 for tx in self._transactions if tx.is_pending)

    @property
    def is_loading(self) -> bool:
        return self.state is HistoryState.LOADING

    def formatted_transactions(self) -> List[Dict[str, Any]]:
        return [format_transaction_for_display(tx) for tx in self._transactions]

    # ------------------------------------------------------------------
    # Full fetch
    # ------------------------------------------------------------------

    async def fetch_full(self, address: Optional[str], from_block: Optional[int] = None) -> List[NormalizedTransaction]:
        """
        Run the whole pipeline and replace the held set.

        Args:
            address: connected wallet; None/empty means disconnected
            from_block: first block to scan (defaults to the recent window)

        Returns:
            The new history, or [] when disconnected or the fetch failed
        """
        if not address:
            async with self._lock:
                self._transactions = []
                self._has_data = False
                self.address = None
                self.error = None
                self.state = HistoryState.EMPTY
            return []

        async with self._lock:
            self.address = address
            self.state = HistoryState.LOADING
            self.error = None
            try:
                transactions = await self._load(from_block)
            finally:
                self.state = HistoryState.READY if self._has_data else HistoryState.EMPTY

        return transactions

    async def _load(self, from_block: Optional[int]) -> List[NormalizedTransaction]:
        try:
            events = await fetch_events(
                self.reader,
                from_block,
                decimals=self.context.token_decimals,
                lookback_blocks=self.context.lookback_blocks,
                fallback_block_number=self.context.fallback_block_number,
            )
            if not events.ok:
                self.error = f"Failed to fetch transaction history: {events.error}"
                logger.error(self.error)
                return []

            transactions = await merge_batches(
                events.summaries,
                events.details,
                partial(resolve_receipt, self.reader),
            )
        except Exception as e:
            self.error = f"Failed to fetch transaction history: {e}"
            logger.error(self.error)
            return []

        self._transactions = transactions
        self._has_data = True
        self.last_updated = datetime.now(timezone.utc)
        logger.info(f"Loaded {len(transactions)} payroll batches for {self.address}")
        return list(transactions)

    async def refresh(self) -> List[NormalizedTransaction]:
        """Re-run the full fetch for the wallet used last time."""
        return await self.fetch_full(self.address)

    # ------------------------------------------------------------------
    # Pending poll
    # ------------------------------------------------------------------

    async def poll_pending(self) -> int:
        """
        Re-check every held PENDING record and patch its status if it moved on.

        SUCCESS/FAILED records are never touched. Skipped while a full fetch
        is in flight.

        Returns:
            Number of records whose status changed
        """
        if self._lock.locked():
            logger.debug("Full fetch in flight; skipping pending poll")
            return 0

        async with self._lock:
            updated = 0
            for index, tx in enumerate(self._transactions):
                if not tx.is_pending:
                    continue
                status = await fetch_status(self.reader, tx.tx_hash)
                if status is not TransactionStatus.PENDING:
                    self._transactions[index] = replace(tx, status=status)
                    updated += 1
                    logger.info(f"Batch {tx.payroll_id} is now {status.value}")

            if updated:
                self.last_updated = datetime.now(timezone.utc)
            return updated

    def start_polling(self) -> None:
        self._poll_task.start()

    async def stop(self) -> None:
        """Cancel the pending poll; call on teardown."""
        await self._poll_task.stop()

    @property
    def is_polling(self) -> bool:
        return self._poll_task.is_running

    # ------------------------------------------------------------------
    # Point lookup
    # ------------------------------------------------------------------

    async def get_by_hash(self, tx_hash: str) -> Optional[NormalizedTransaction]:
        """
        Rebuild a single batch from its receipt logs without touching the held set.

        Returns:
            NormalizedTransaction, or None when the receipt, block or either
            payroll event is unavailable
        """
        self.lookup_error = None

        receipt_result = await call_rpc(f"receipt {tx_hash}", self.reader.get_transaction_receipt(tx_hash))
        if not receipt_result.ok:
            self.lookup_error = receipt_result.error
            return None
        receipt = receipt_result.value
        if receipt is None:
            return None

        block_result = await call_rpc(
            f"block for {tx_hash}",
            self.reader.get_block(receipt_field(receipt, 'blockNumber')),
        )
        if not block_result.ok:
            self.lookup_error = block_result.error
            return None
        block = block_result.value
        if block is None:
            return None

        try:
            pair = decode_receipt_batch(self.reader.decode_receipt_events(receipt), self.context.token_decimals)
        except Exception as e:
            self.lookup_error = f"Could not parse payroll events in {tx_hash}: {e}"
            logger.warning(self.lookup_error)
            return None
        if pair is None:
            return None

        summary, details = pair
        tx = NormalizedTransaction.from_events(
            summary,
            details,
            status=derive_status(receipt),
            timestamp=int(receipt_field(block, 'timestamp')),
            gas_used=_optional_str(receipt_field(receipt, 'gasUsed')),
            gas_price=_optional_str(receipt_field(receipt, 'effectiveGasPrice')),
        )
        return replace(tx, tx_hash=tx_hash, block_number=int(receipt_field(receipt, 'blockNumber')))


def _optional_str(value: Any) -> Optional[str]:
    return str(value) if value is not None else None
