"""
Payroll history reconstruction for the OriginPayroll contract.

Pipeline:
- event_source: fetch and decode PayrollBatchSent / PayrollBatchDetails
- merge: join both streams by payroll id, newest first
- receipt_resolver / status: receipt, block and tri-state status per batch
- history_cache: in-memory history with pending polling and point lookups

Supporting modules:
- chain: ChainContext and the AsyncWeb3-backed ChainReader
- health: RPC reachability check and monitor
- payroll_writer: approve + executePayrollBatch submission
- display: history rows, explorer links and DataFrames
"""

from .base import (
    # Enums
    TransactionStatus,
    # Dataclasses
    BatchSentEvent,
    BatchDetailsEvent,
    NormalizedTransaction,
    RpcResult,
    # Helpers
    call_rpc,
    format_units,
    parse_units,
    format_address,
)

from .chain import ChainContext, ChainReader, create_chain_context
from .event_source import EventFetchResult, fetch_events, decode_batch_sent, decode_batch_details
from .receipt_resolver import ResolvedReceipt, resolve_receipt
from .status import derive_status, fetch_status
from .merge import merge_batches, merge_transaction, build_details_map, sort_newest_first
from .scheduler import PeriodicTask
from .history_cache import HistoryState, TransactionHistoryCache
from .health import RpcHealthMonitor, check_rpc_health, is_rpc_outage_error
from .display import (
    format_transaction_for_display,
    transactions_to_dataframe,
    explorer_tx_url,
    explorer_address_url,
    explorer_block_url,
)
from .payroll_writer import (
    PayrollEntry,
    PayrollBatch,
    PayrollSubmitter,
    PayrollValidationError,
    WalletNotConnectedError,
    NotPayrollOwnerError,
    InsufficientBalanceError,
    ApprovalRevertedError,
    build_payroll_batch,
    convert_usdc_to_idr,
    parse_gas_payment,
)

__all__ = [
    'TransactionStatus',
    'BatchSentEvent',
    'BatchDetailsEvent',
    'NormalizedTransaction',
    'RpcResult',
    'call_rpc',
    'format_units',
    'parse_units',
    'format_address',
    'ChainContext',
    'ChainReader',
    'create_chain_context',
    'EventFetchResult',
    'fetch_events',
    'decode_batch_sent',
    'decode_batch_details',
    'ResolvedReceipt',
    'resolve_receipt',
    'derive_status',
    'fetch_status',
    'merge_batches',
    'merge_transaction',
    'build_details_map',
    'sort_newest_first',
    'PeriodicTask',
    'HistoryState',
    'TransactionHistoryCache',
    'RpcHealthMonitor',
    'check_rpc_health',
    'is_rpc_outage_error',
    'format_transaction_for_display',
    'transactions_to_dataframe',
    'explorer_tx_url',
    'explorer_address_url',
    'explorer_block_url',
    'PayrollEntry',
    'PayrollBatch',
    'PayrollSubmitter',
    'PayrollValidationError',
    'WalletNotConnectedError',
    'NotPayrollOwnerError',
    'InsufficientBalanceError',
    'ApprovalRevertedError',
    'parse_gas_payment',
    'build_payroll_batch',
    'convert_usdc_to_idr',
]
