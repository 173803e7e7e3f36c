"""
Correlation & Merge Engine

Joins PayrollBatchSent summaries with PayrollBatchDetails line items by
payroll id, attaches receipt-derived status and gas data, and returns one
NormalizedTransaction per matched batch, newest first.

Rules:
- duplicate details for one payroll id: the later event wins
- summaries without details are dropped without error
- a summary that fails to merge is skipped; the rest continue
- receipts are resolved sequentially, one summary at a time
"""

from typing import Awaitable, Callable, Dict, Iterable, List
import logging

from .base import BatchSentEvent, BatchDetailsEvent, NormalizedTransaction
from .receipt_resolver import ResolvedReceipt
from .status import derive_status

logger = logging.getLogger(__name__)

ResolveFn = Callable[[str], Awaitable[ResolvedReceipt]]


def build_details_map(details: Iterable[BatchDetailsEvent]) -> Dict[str, BatchDetailsEvent]:
    """Index details by payroll id; on collision the later event overwrites the earlier one."""
    details_map: Dict[str, BatchDetailsEvent] = {}
    for event in details:
        if event.payroll_id in details_map:
            logger.warning(f"Duplicate PayrollBatchDetails for {event.payroll_id}; keeping the later event")
        details_map[event.payroll_id] = event
    return details_map


def sort_newest_first(transactions: List[NormalizedTransaction]) -> List[NormalizedTransaction]:
    # sorted() is stable, so equal timestamps keep input order
    return sorted(transactions, key=lambda tx: tx.timestamp, reverse=True)


def merge_transaction(
    summary: BatchSentEvent,
    details: BatchDetailsEvent,
    resolved: ResolvedReceipt,
) -> NormalizedTransaction:
    """Combine one matched summary/details pair with its resolved receipt and block."""
    block_ts = resolved.block_timestamp
    return NormalizedTransaction.from_events(
        summary,
        details,
        status=derive_status(resolved.receipt),
        timestamp=block_ts if block_ts is not None else summary.timestamp,
        gas_used=resolved.gas_used,
        gas_price=resolved.gas_price,
    )


async def merge_batches(
    summaries: Iterable[BatchSentEvent],
    details: Iterable[BatchDetailsEvent],
    resolve: ResolveFn,
) -> List[NormalizedTransaction]:
    """
    Merge both event streams into the history view.

    Args:
        summaries: decoded PayrollBatchSent events, in query order
        details: decoded PayrollBatchDetails events, in query order
        resolve: async callable tx_hash -> ResolvedReceipt

    Returns:
        NormalizedTransaction list sorted by timestamp descending
    """
    details_map = build_details_map(details)
    transactions: List[NormalizedTransaction] = []
    unmatched = 0

    for summary in summaries:
        matched = details_map.get(summary.payroll_id)
        if matched is None:
            unmatched += 1
            continue

        try:
            resolved = await resolve(summary.tx_hash)
            transactions.append(merge_transaction(summary, matched, resolved))
        except Exception as e:
            logger.warning(f"Failed to merge batch {summary.payroll_id} ({summary.tx_hash}): {e}")

    if unmatched:
        logger.info(f"Dropped {unmatched} batch summaries without matching details")

    return sort_newest_first(transactions)
