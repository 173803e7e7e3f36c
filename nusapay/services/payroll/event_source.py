"""
Event Source Adapter

Reads the PayrollBatchSent / PayrollBatchDetails streams for a block range
and decodes them into typed events. The two queries are independent:
a failed summary query empties the whole result, a failed details query
only empties the details list.
"""

from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional
import logging

from ...config.blockchain_config import (
    TOKEN_DECIMALS, DEFAULT_LOOKBACK_BLOCKS, FALLBACK_BLOCK_NUMBER,
)
from .abis import (
    PAYROLL_BATCH_SENT, PAYROLL_BATCH_DETAILS, BATCH_SENT_FIELDS, BATCH_DETAILS_FIELDS,
)
from .base import (
    BatchSentEvent, BatchDetailsEvent, call_rpc, format_units,
    normalize_tx_hash, decode_payroll_id,
)

logger = logging.getLogger(__name__)


@dataclass
class EventFetchResult:
    """Both decoded event lists for one block range"""
    summaries: List[BatchSentEvent] = field(default_factory=list)
    details: List[BatchDetailsEvent] = field(default_factory=list)
    from_block: int = 0
    to_block: int = 0
    error: Optional[str] = None  # summary query failed; result is empty
    details_error: Optional[str] = None  # details query failed; details is empty
    degraded_block_height: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None


def _arg(args: Any, fields: tuple, name: str) -> Any:
    """Read a named event argument from a mapping, or by position from a sequence."""
    if isinstance(args, Mapping):
        return args.get(name)
    index = fields.index(name)
    return args[index] if index < len(args) else None


def _event_args(event: Any) -> Any:
    args = event.get('args') if isinstance(event, Mapping) else getattr(event, 'args', None)
    if args is None:
        raise ValueError("event has no args")
    return args


def decode_batch_sent(event: Any, decimals: int = TOKEN_DECIMALS) -> BatchSentEvent:
    """
    Decode one PayrollBatchSent log.

    Raises:
        ValueError: if the payroll id is missing
    """
    args = _event_args(event)
    payroll_id = decode_payroll_id(_arg(args, BATCH_SENT_FIELDS, "payrollId"))
    if not payroll_id:
        raise ValueError("PayrollBatchSent without payrollId")

    return BatchSentEvent(
        payroll_id=payroll_id,
        total_recipients=int(_arg(args, BATCH_SENT_FIELDS, "totalRecipients") or 0),
        total_crypto_amount=format_units(_arg(args, BATCH_SENT_FIELDS, "totalCryptoAmount") or 0, decimals),
        total_fiat_amount=str(int(_arg(args, BATCH_SENT_FIELDS, "totalFiatAmount") or 0)),
        timestamp=int(_arg(args, BATCH_SENT_FIELDS, "timestamp") or 0),
        tx_hash=normalize_tx_hash(event['transactionHash']),
        block_number=int(event.get('blockNumber') or 0),
    )


def decode_batch_details(event: Any, decimals: int = TOKEN_DECIMALS) -> BatchDetailsEvent:
    """
    Decode one PayrollBatchDetails log.

    Raises:
        ValueError: if the payroll id is missing or the line-item lists
            are not the same length
    """
    args = _event_args(event)
    payroll_id = decode_payroll_id(_arg(args, BATCH_DETAILS_FIELDS, "payrollId"))
    if not payroll_id:
        raise ValueError("PayrollBatchDetails without payrollId")

    employees = [str(a) for a in (_arg(args, BATCH_DETAILS_FIELDS, "employees") or [])]
    crypto_amounts = [format_units(a, decimals) for a in (_arg(args, BATCH_DETAILS_FIELDS, "cryptoAmounts") or [])]
    # Fiat amounts carry no implied decimals on-chain
    fiat_amounts = [str(int(a)) for a in (_arg(args, BATCH_DETAILS_FIELDS, "fiatAmounts") or [])]
    currencies = [str(c) for c in (_arg(args, BATCH_DETAILS_FIELDS, "currencies") or [])]
    bank_accounts = [str(b) for b in (_arg(args, BATCH_DETAILS_FIELDS, "bankAccounts") or [])]

    lengths = {len(employees), len(crypto_amounts), len(fiat_amounts), len(currencies), len(bank_accounts)}
    if len(lengths) != 1:
        raise ValueError(
            f"PayrollBatchDetails {payroll_id} has misaligned line items: "
            f"employees={len(employees)}, cryptoAmounts={len(crypto_amounts)}, "
            f"fiatAmounts={len(fiat_amounts)}, currencies={len(currencies)}, "
            f"bankAccounts={len(bank_accounts)}"
        )

    return BatchDetailsEvent(
        payroll_id=payroll_id,
        employees=employees,
        crypto_amounts=crypto_amounts,
        fiat_amounts=fiat_amounts,
        currencies=currencies,
        bank_accounts=bank_accounts,
    )


def _decode_all(raw_events: List[Any], decoder, decimals: int, label: str) -> list:
    decoded = []
    for event in raw_events:
        try:
            decoded.append(decoder(event, decimals))
        except (ValueError, TypeError, KeyError) as e:
            logger.warning(f"Skipping malformed {label} event: {e}")
    return decoded


def decode_receipt_batch(
    decoded_events: List[tuple],
    decimals: int = TOKEN_DECIMALS,
) -> Optional[tuple]:
    """
    Pick the batch summary and its matching details out of one receipt's
    decoded payroll events.

    Args:
        decoded_events: (event_name, event) pairs from ChainReader.decode_receipt_events

    Returns:
        (BatchSentEvent, BatchDetailsEvent) or None when either is missing
    """
    summary = None
    for name, event in decoded_events:
        if name == PAYROLL_BATCH_SENT:
            summary = decode_batch_sent(event, decimals)
            break
    if summary is None:
        return None

    for name, event in decoded_events:
        if name != PAYROLL_BATCH_DETAILS:
            continue
        try:
            details = decode_batch_details(event, decimals)
        except ValueError as e:
            logger.warning(f"Skipping malformed {PAYROLL_BATCH_DETAILS} in receipt: {e}")
            continue
        if details.payroll_id == summary.payroll_id:
            return summary, details
    return None


async def fetch_events(
    reader,
    from_block: Optional[int] = None,
    to_block: Optional[int] = None,
    decimals: int = TOKEN_DECIMALS,
    lookback_blocks: int = DEFAULT_LOOKBACK_BLOCKS,
    fallback_block_number: int = FALLBACK_BLOCK_NUMBER,
) -> EventFetchResult:
    """
    Fetch and decode both payroll event streams.

    Args:
        reader: ChainReader (or any object with the same async read methods)
        from_block: first block (inclusive); defaults to
            max(0, current - lookback_blocks)
        to_block: last block (inclusive); defaults to the current height
        decimals: token precision for crypto amounts

    Returns:
        EventFetchResult; never raises
    """
    height = await call_rpc("get block number", reader.get_block_number())
    degraded = not height.ok
    if degraded:
        logger.warning(f"Block height unavailable, using fallback block {fallback_block_number}")
        current_block = fallback_block_number
    else:
        current_block = int(height.value)

    start = max(0, current_block - lookback_blocks) if from_block is None else from_block
    end = current_block if to_block is None else to_block

    logger.info(f"Fetching payroll events from block {start} to {end}")

    sent = await call_rpc(
        f"query {PAYROLL_BATCH_SENT}",
        reader.query_events(PAYROLL_BATCH_SENT, start, end),
    )
    if not sent.ok:
        # Summaries without details are meaningless, so nothing is returned
        return EventFetchResult(
            from_block=start, to_block=end, error=sent.error,
            degraded_block_height=degraded,
        )

    details = await call_rpc(
        f"query {PAYROLL_BATCH_DETAILS}",
        reader.query_events(PAYROLL_BATCH_DETAILS, start, end),
    )
    if not details.ok:
        logger.warning("Continuing without batch details; all summaries will be unmatched")

    result = EventFetchResult(
        summaries=_decode_all(sent.value or [], decode_batch_sent, decimals, PAYROLL_BATCH_SENT),
        details=_decode_all(details.value_or([]), decode_batch_details, decimals, PAYROLL_BATCH_DETAILS),
        from_block=start,
        to_block=end,
        details_error=details.error,
        degraded_block_height=degraded,
    )
    logger.info(f"Decoded {len(result.summaries)} batch summaries and {len(result.details)} batch details")
    return result
