"""
Shared fixtures for payroll history tests.

FakeChainReader implements the ChainReader read interface in memory so the
pipeline can be exercised without a node. Any method can be made to raise
by adding its name to `failures`; single receipts can fail via
`failing_receipts`.
"""
import sys
import os
from types import SimpleNamespace

import pytest

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from nusapay.config.blockchain_config import (
    TOKEN_DECIMALS, DEFAULT_LOOKBACK_BLOCKS, FALLBACK_BLOCK_NUMBER,
)
from nusapay.services.payroll.abis import PAYROLL_BATCH_SENT, PAYROLL_BATCH_DETAILS


EMPLOYEE_1 = "0x1111111111111111111111111111111111111111"
EMPLOYEE_2 = "0x2222222222222222222222222222222222222222"
EMPLOYEE_3 = "0x3333333333333333333333333333333333333333"


def make_sent(
    payroll_id="B1",
    tx_hash="0xA",
    block_number=100,
    timestamp=1000,
    total_recipients=2,
    total_crypto_amount=2_000_000,
    total_fiat_amount=32_800,
):
    """Raw PayrollBatchSent event in the shape web3's process_log returns."""
    return {
        'event': PAYROLL_BATCH_SENT,
        'args': {
            'payrollId': payroll_id,
            'totalRecipients': total_recipients,
            'totalCryptoAmount': total_crypto_amount,
            'totalFiatAmount': total_fiat_amount,
            'timestamp': timestamp,
        },
        'transactionHash': tx_hash,
        'blockNumber': block_number,
    }


def make_details(
    payroll_id="B1",
    employees=(EMPLOYEE_1, EMPLOYEE_2),
    crypto_amounts=None,
    fiat_amounts=None,
    currencies=None,
    bank_accounts=None,
    tx_hash="0xA",
    block_number=100,
):
    """Raw PayrollBatchDetails event; list fields default to one value per employee."""
    count = len(employees)
    return {
        'event': PAYROLL_BATCH_DETAILS,
        'args': {
            'payrollId': payroll_id,
            'employees': list(employees),
            'cryptoAmounts': list(crypto_amounts) if crypto_amounts is not None else [1_000_000] * count,
            'fiatAmounts': list(fiat_amounts) if fiat_amounts is not None else [16_400] * count,
            'currencies': list(currencies) if currencies is not None else ["IDR"] * count,
            'bankAccounts': list(bank_accounts) if bank_accounts is not None else ["BCA:123"] * count,
        },
        'transactionHash': tx_hash,
        'blockNumber': block_number,
    }


def make_receipt(tx_hash="0xA", block_number=100, status=1, gas_used=21000, gas_price=1_000_000_000):
    return {
        'transactionHash': tx_hash,
        'blockNumber': block_number,
        'status': status,
        'gasUsed': gas_used,
        'effectiveGasPrice': gas_price,
        'logs': [],
    }


def make_context(**overrides):
    """Stand-in for ChainContext carrying only the settings the read path uses."""
    values = dict(
        token_decimals=TOKEN_DECIMALS,
        lookback_blocks=DEFAULT_LOOKBACK_BLOCKS,
        fallback_block_number=FALLBACK_BLOCK_NUMBER,
    )
    values.update(overrides)
    return SimpleNamespace(**values)


class FakeChainReader:
    """In-memory stand-in for ChainReader."""

    def __init__(self, block_number=50_000, **context_overrides):
        self.context = make_context(**context_overrides)
        self.block_number = block_number
        self.events = {PAYROLL_BATCH_SENT: [], PAYROLL_BATCH_DETAILS: []}
        self.receipts = {}
        self.blocks = {}
        self.receipt_events = {}
        self.failures = set()
        self.failing_receipts = set()
        self.calls = []

    def _maybe_fail(self, method):
        if method in self.failures:
            raise ConnectionError(f"{method} failed: connection refused")

    # Setup helpers

    def add_batch(self, sent, details=None, receipt=None, block_timestamp=None):
        self.events[PAYROLL_BATCH_SENT].append(sent)
        if details is not None:
            self.events[PAYROLL_BATCH_DETAILS].append(details)
        if receipt is not None:
            self.receipts[receipt['transactionHash']] = receipt
            if block_timestamp is not None:
                self.blocks[receipt['blockNumber']] = {
                    'number': receipt['blockNumber'],
                    'timestamp': block_timestamp,
                }

    # Read interface

    async def get_block_number(self):
        self.calls.append(('get_block_number',))
        self._maybe_fail('get_block_number')
        return self.block_number

    async def query_events(self, event_name, from_block, to_block):
        self.calls.append(('query_events', event_name, from_block, to_block))
        self._maybe_fail(f'query_events:{event_name}')
        return list(self.events.get(event_name, []))

    async def get_transaction_receipt(self, tx_hash):
        self.calls.append(('get_transaction_receipt', tx_hash))
        self._maybe_fail('get_transaction_receipt')
        if tx_hash in self.failing_receipts:
            raise TimeoutError(f"receipt {tx_hash} timed out")
        return self.receipts.get(tx_hash)

    async def get_block(self, block_number):
        self.calls.append(('get_block', block_number))
        self._maybe_fail('get_block')
        return self.blocks.get(block_number)

    def decode_receipt_events(self, receipt):
        return list(self.receipt_events.get(receipt['transactionHash'], []))


@pytest.fixture
def reader():
    return FakeChainReader()
