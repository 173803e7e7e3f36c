"""
Display formatting for payroll history.

Turns NormalizedTransaction records into the row shape the history view
renders, and into a pandas DataFrame for tabular output.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List
import logging

import pandas as pd

from ...config.blockchain_config import EXPLORER_BASE_URL, TOKEN_SYMBOL
from .base import NormalizedTransaction, format_address

logger = logging.getLogger(__name__)

COMPANY_NAME = "NusaPay System"
TEMPLATE_NAME = "Batch Payroll"
DEFAULT_LOCAL_CURRENCY = "IDR"

HISTORY_COLUMNS = [
    'Status', 'Payroll ID', 'Hash', 'Block', 'Recipients',
    'Amount', 'Fiat Amount', 'Local Currency', 'Gas Used', 'Time',
]


def explorer_tx_url(tx_hash: str) -> str:
    return f"{EXPLORER_BASE_URL}/tx/{tx_hash}"


def explorer_address_url(address: str) -> str:
    return f"{EXPLORER_BASE_URL}/address/{address}"


def explorer_block_url(block_number: int) -> str:
    return f"{EXPLORER_BASE_URL}/block/{block_number}"


def _iso_utc(timestamp: int) -> str:
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).isoformat().replace('+00:00', 'Z')


def format_transaction_for_display(tx: NormalizedTransaction) -> Dict[str, Any]:
    """History row for one batch, including the line items for the expanded view."""
    employee_count = len(tx.employees)
    return {
        'txId': tx.payroll_id[:8] + '...',
        'employee': f"{employee_count} employees" if employee_count > 0 else 'No employees',
        'companyName': COMPANY_NAME,
        'templateName': TEMPLATE_NAME,
        'amountTransfer': tx.total_crypto_amount,
        'currency': TOKEN_SYMBOL,
        'localCurrency': tx.currencies[0] if tx.currencies else DEFAULT_LOCAL_CURRENCY,
        'status': tx.status.value,
        'createdAt': _iso_utc(tx.timestamp),
        'bankAccountName': 'Batch Transfer',
        'bankAccount': f"{tx.total_recipients} accounts",
        'txHash': tx.tx_hash,
        'explorerUrl': explorer_tx_url(tx.tx_hash),
        'blockNumber': tx.block_number,
        'gasUsed': tx.gas_used,
        'gasPrice': tx.gas_price,
        'employees': list(tx.employees),
        'cryptoAmounts': list(tx.crypto_amounts),
        'fiatAmounts': list(tx.fiat_amounts),
        'currencies': list(tx.currencies),
        'bankAccounts': list(tx.bank_accounts),
    }


def transactions_to_dataframe(transactions: List[NormalizedTransaction]) -> pd.DataFrame:
    """
    One row per batch with HISTORY_COLUMNS, in the given order.

    An empty input yields an empty frame with the same columns.
    """
    if not transactions:
        return pd.DataFrame(columns=HISTORY_COLUMNS)

    rows = []
    for tx in transactions:
        hash_display = tx.tx_hash[:10] + "..." + tx.tx_hash[-6:] if len(tx.tx_hash) > 16 else tx.tx_hash
        rows.append({
            'Status': tx.status.value,
            'Payroll ID': format_address(tx.payroll_id, 10),
            'Hash': hash_display,
            'Block': tx.block_number,
            'Recipients': tx.total_recipients,
            'Amount': f"{tx.total_crypto_amount} {TOKEN_SYMBOL}",
            'Fiat Amount': tx.total_fiat_amount,
            'Local Currency': tx.currencies[0] if tx.currencies else DEFAULT_LOCAL_CURRENCY,
            'Gas Used': tx.gas_used or '',
            'Time': datetime.fromtimestamp(tx.timestamp, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S"),
        })

    return pd.DataFrame(rows, columns=HISTORY_COLUMNS)


def line_items_to_dataframe(tx: NormalizedTransaction) -> pd.DataFrame:
    """Per-employee breakdown of one batch."""
    return pd.DataFrame({
        'employee': tx.employees,
        'crypto_amount': tx.crypto_amounts,
        'fiat_amount': tx.fiat_amounts,
        'currency': tx.currencies,
        'bank_account': tx.bank_accounts,
    })
