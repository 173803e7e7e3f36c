"""
Unit tests for the history presentation cache.

Tests:
- State machine across first fetch, refresh and disconnect
- Failed fetches keep the previously held history
- Pending polls only move PENDING records forward
- Pending polls are skipped while a full fetch holds the lock
- Point lookups by transaction hash
"""
import asyncio

from conftest import FakeChainReader, make_sent, make_details, make_receipt
from nusapay.services.payroll.abis import PAYROLL_BATCH_SENT, PAYROLL_BATCH_DETAILS
from nusapay.services.payroll.base import TransactionStatus
from nusapay.services.payroll.history_cache import HistoryState, TransactionHistoryCache

WALLET = "0x9999999999999999999999999999999999999999"


def reader_with_batches():
    reader = FakeChainReader()
    reader.add_batch(
        make_sent("B1", tx_hash="0x1", block_number=10, timestamp=1000),
        make_details("B1", tx_hash="0x1", block_number=10),
        receipt=make_receipt("0x1", block_number=10, status=1),
        block_timestamp=1000,
    )
    # No receipt yet: stays PENDING
    reader.add_batch(
        make_sent("B2", tx_hash="0x2", block_number=20, timestamp=2000),
        make_details("B2", tx_hash="0x2", block_number=20),
    )
    return reader


class TestFetchFull:
    """Full history fetches and the cache state machine."""

    def test_initial_state_is_empty(self):
        cache = TransactionHistoryCache(FakeChainReader())
        assert cache.state is HistoryState.EMPTY
        assert cache.transactions == []
        assert not cache.is_loading

    def test_first_fetch_populates_cache(self):
        cache = TransactionHistoryCache(reader_with_batches())
        result = asyncio.run(cache.fetch_full(WALLET))

        assert [tx.payroll_id for tx in result] == ["B2", "B1"]
        assert cache.state is HistoryState.READY
        assert cache.error is None
        assert cache.address == WALLET
        assert cache.last_updated is not None
        assert cache.pending_count == 1

    def test_loading_state_during_fetch(self):
        reader = reader_with_batches()
        cache = TransactionHistoryCache(reader)
        seen = []

        real_block_number = reader.get_block_number

        async def observing_block_number():
            seen.append(cache.state)
            return await real_block_number()

        reader.get_block_number = observing_block_number
        asyncio.run(cache.fetch_full(WALLET))
        assert seen == [HistoryState.LOADING]
        assert cache.state is HistoryState.READY

    def test_no_address_clears_history(self):
        cache = TransactionHistoryCache(reader_with_batches())

        async def scenario():
            await cache.fetch_full(WALLET)
            return await cache.fetch_full(None)

        assert asyncio.run(scenario()) == []
        assert cache.transactions == []
        assert cache.state is HistoryState.EMPTY
        assert cache.address is None

    def test_failed_fetch_keeps_previous_history(self):
        reader = reader_with_batches()
        cache = TransactionHistoryCache(reader)

        async def scenario():
            await cache.fetch_full(WALLET)
            reader.failures.add(f'query_events:{PAYROLL_BATCH_SENT}')
            return await cache.fetch_full(WALLET)

        result = asyncio.run(scenario())
        assert result == []
        assert len(cache.transactions) == 2
        assert cache.state is HistoryState.READY
        assert cache.error.startswith("Failed to fetch transaction history")

    def test_failed_first_fetch_stays_empty(self):
        reader = FakeChainReader()
        reader.failures.add(f'query_events:{PAYROLL_BATCH_SENT}')
        cache = TransactionHistoryCache(reader)

        asyncio.run(cache.fetch_full(WALLET))
        assert cache.state is HistoryState.EMPTY
        assert cache.error is not None

    def test_details_failure_gives_empty_history_without_error(self):
        reader = reader_with_batches()
        reader.failures.add(f'query_events:{PAYROLL_BATCH_DETAILS}')
        cache = TransactionHistoryCache(reader)

        assert asyncio.run(cache.fetch_full(WALLET)) == []
        assert cache.error is None
        assert cache.state is HistoryState.READY

    def test_refresh_reuses_address(self):
        reader = reader_with_batches()
        cache = TransactionHistoryCache(reader)

        async def scenario():
            await cache.fetch_full(WALLET, from_block=5)
            reader.add_batch(
                make_sent("B3", tx_hash="0x3", timestamp=3000),
                make_details("B3", tx_hash="0x3"),
            )
            return await cache.refresh()

        result = asyncio.run(scenario())
        assert [tx.payroll_id for tx in result] == ["B3", "B2", "B1"]
        assert cache.address == WALLET

    def test_formatted_transactions(self):
        cache = TransactionHistoryCache(reader_with_batches())
        asyncio.run(cache.fetch_full(WALLET))
        rows = cache.formatted_transactions()
        assert [row['txId'] for row in rows] == ["B2...", "B1..."]
        assert rows[0]['status'] == "PENDING"


class TestPollPending:
    """Status patching for PENDING records."""

    def test_pending_record_moves_to_success(self):
        reader = reader_with_batches()
        cache = TransactionHistoryCache(reader)

        async def scenario():
            await cache.fetch_full(WALLET)
            reader.receipts["0x2"] = make_receipt("0x2", block_number=20, status=1)
            return await cache.poll_pending()

        assert asyncio.run(scenario()) == 1
        statuses = {tx.payroll_id: tx.status for tx in cache.transactions}
        assert statuses == {"B1": TransactionStatus.SUCCESS, "B2": TransactionStatus.SUCCESS}
        assert cache.pending_count == 0

    def test_terminal_records_never_rechecked(self):
        reader = reader_with_batches()
        cache = TransactionHistoryCache(reader)

        async def scenario():
            await cache.fetch_full(WALLET)
            # Even if the node now reports something different, SUCCESS stays SUCCESS
            reader.receipts["0x1"] = make_receipt("0x1", status=0)
            reader.calls.clear()
            return await cache.poll_pending()

        assert asyncio.run(scenario()) == 0
        assert ('get_transaction_receipt', '0x1') not in reader.calls
        assert cache.transactions[1].status is TransactionStatus.SUCCESS

    def test_poll_failure_keeps_pending(self):
        reader = reader_with_batches()
        cache = TransactionHistoryCache(reader)

        async def scenario():
            await cache.fetch_full(WALLET)
            reader.failures.add('get_transaction_receipt')
            return await cache.poll_pending()

        assert asyncio.run(scenario()) == 0
        assert cache.pending_count == 1

    def test_poll_does_not_refetch_events(self):
        reader = reader_with_batches()
        cache = TransactionHistoryCache(reader)

        async def scenario():
            await cache.fetch_full(WALLET)
            reader.calls.clear()
            await cache.poll_pending()

        asyncio.run(scenario())
        assert all(call[0] == 'get_transaction_receipt' for call in reader.calls)

    def test_poll_skipped_during_full_fetch(self):
        reader = reader_with_batches()
        cache = TransactionHistoryCache(reader)
        poll_results = []

        real_block_number = reader.get_block_number

        async def slow_block_number():
            poll_results.append(await cache.poll_pending())
            return await real_block_number()

        async def scenario():
            await cache.fetch_full(WALLET)
            reader.receipts["0x2"] = make_receipt("0x2", status=1)
            reader.get_block_number = slow_block_number
            await cache.fetch_full(WALLET)

        asyncio.run(scenario())
        assert poll_results == [0]

    def test_polling_task_lifecycle(self):
        cache = TransactionHistoryCache(reader_with_batches(), poll_interval=0.01)

        async def scenario():
            await cache.fetch_full(WALLET)
            cache.start_polling()
            running = cache.is_polling
            await asyncio.sleep(0.05)
            await cache.stop()
            return running

        assert asyncio.run(scenario()) is True
        assert not cache.is_polling
        assert cache._poll_task.run_count >= 1


class TestGetByHash:
    """Point lookups rebuilt from receipt logs."""

    def _reader_with_receipt(self):
        reader = FakeChainReader()
        reader.receipts["0xabc"] = make_receipt("0xabc", block_number=42, status=1, gas_used=90_000)
        reader.blocks[42] = {'number': 42, 'timestamp': 1_700_000_000}
        reader.receipt_events["0xabc"] = [
            (PAYROLL_BATCH_SENT, make_sent("B5", tx_hash="0xabc", block_number=42, timestamp=1)),
            (PAYROLL_BATCH_DETAILS, make_details("B5", tx_hash="0xabc", block_number=42)),
        ]
        return reader

    def test_lookup_builds_transaction(self):
        cache = TransactionHistoryCache(self._reader_with_receipt())
        tx = asyncio.run(cache.get_by_hash("0xabc"))

        assert tx.payroll_id == "B5"
        assert tx.tx_hash == "0xabc"
        assert tx.block_number == 42
        assert tx.timestamp == 1_700_000_000
        assert tx.status is TransactionStatus.SUCCESS
        assert tx.gas_used == "90000"
        assert cache.lookup_error is None

    def test_lookup_does_not_touch_history(self):
        cache = TransactionHistoryCache(self._reader_with_receipt())
        asyncio.run(cache.get_by_hash("0xabc"))
        assert cache.transactions == []
        assert cache.state is HistoryState.EMPTY

    def test_missing_receipt_returns_none(self):
        cache = TransactionHistoryCache(FakeChainReader())
        assert asyncio.run(cache.get_by_hash("0xnone")) is None
        assert cache.lookup_error is None

    def test_receipt_error_returns_none_with_message(self):
        reader = self._reader_with_receipt()
        reader.failures.add('get_transaction_receipt')
        cache = TransactionHistoryCache(reader)
        assert asyncio.run(cache.get_by_hash("0xabc")) is None
        assert cache.lookup_error is not None

    def test_missing_details_returns_none(self):
        reader = self._reader_with_receipt()
        reader.receipt_events["0xabc"] = reader.receipt_events["0xabc"][:1]
        cache = TransactionHistoryCache(reader)
        assert asyncio.run(cache.get_by_hash("0xabc")) is None


class TestContextSettings:
    """Block window and token precision follow the reader's ChainContext."""

    def test_lookback_window_from_context(self):
        reader = FakeChainReader(block_number=50_000, lookback_blocks=500)
        cache = TransactionHistoryCache(reader)
        asyncio.run(cache.fetch_full(WALLET))

        assert ('query_events', PAYROLL_BATCH_SENT, 49_500, 50_000) in reader.calls
        assert ('query_events', PAYROLL_BATCH_DETAILS, 49_500, 50_000) in reader.calls

    def test_fallback_height_from_context(self):
        reader = FakeChainReader(lookback_blocks=500, fallback_block_number=2_000)
        reader.failures.add('get_block_number')
        cache = TransactionHistoryCache(reader)
        asyncio.run(cache.fetch_full(WALLET))

        assert ('query_events', PAYROLL_BATCH_SENT, 1_500, 2_000) in reader.calls

    def test_token_decimals_from_context(self):
        reader = FakeChainReader(token_decimals=2)
        reader.add_batch(make_sent("B1", total_crypto_amount=2_000_000), make_details("B1"))
        cache = TransactionHistoryCache(reader)
        result = asyncio.run(cache.fetch_full(WALLET))

        assert result[0].total_crypto_amount == "20000.0"
        assert result[0].crypto_amounts == ["10000.0", "10000.0"]
