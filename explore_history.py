"""
Payroll History Explorer - Debug tool using the same pipeline as the history view

Usage:
    python explore_history.py <address>
    python explore_history.py <address> --from-block 1200000
    python explore_history.py <address> --verbose   # Enable debug logging (write to payroll_debug.log)
    python explore_history.py --tx <tx_hash>        # Rebuild a single batch from its receipt
    python explore_history.py --health              # Check RPC reachability

Debug Mode:
    Set PAYROLL_DEBUG=1 environment variable to enable verbose logging to payroll_debug.log
    Or use --verbose flag to enable debug mode for this run only
"""

import argparse
import asyncio
import logging
import sys

# Load environment
from dotenv import load_dotenv
load_dotenv()

from nusapay.config.blockchain_config import CHAIN_NAME, CHAIN_ID
from nusapay.logging_config import setup_logging, setup_payroll_debug_logging, get_logger, DEBUG_LOG_PATH
from nusapay.services.payroll import (
    ChainReader, TransactionHistoryCache, check_rpc_health, create_chain_context,
    explorer_tx_url, format_transaction_for_display, transactions_to_dataframe,
)
from nusapay.services.payroll.display import line_items_to_dataframe

logger = get_logger('explore_history')


def print_section(title: str, char: str = "="):
    """Print a section header"""
    print(f"\n{char * 60}")
    print(f" {title}")
    print(f"{char * 60}")


async def show_history(reader: ChainReader, address: str, from_block=None) -> int:
    cache = TransactionHistoryCache(reader)
    transactions = await cache.fetch_full(address, from_block)

    print_section(f"PAYROLL HISTORY: {address}")
    if cache.error:
        print(f"[!] {cache.error}")
        return 1

    if not transactions:
        print("No payroll batches found")
        return 0

    print(transactions_to_dataframe(transactions).to_string(index=False))
    print(f"\nBatches: {len(transactions)}  Pending: {cache.pending_count}")
    return 0


async def show_transaction(reader: ChainReader, tx_hash: str) -> int:
    cache = TransactionHistoryCache(reader)
    tx = await cache.get_by_hash(tx_hash)

    print_section(f"PAYROLL BATCH: {tx_hash[:16]}...")
    if tx is None:
        print(f"[!] {cache.lookup_error or 'No payroll batch found in this transaction'}")
        return 1

    row = format_transaction_for_display(tx)
    print(f"\nPayroll ID: {tx.payroll_id}")
    print(f"Block:      {tx.block_number}")
    print(f"Created:    {row['createdAt']}")
    print(f"Status:     {row['status']}")
    print(f"Amount:     {row['amountTransfer']} {row['currency']}")
    print(f"Fiat:       {tx.total_fiat_amount} {row['localCurrency']}")
    print(f"Recipients: {row['bankAccount']}")
    print(f"Gas Used:   {tx.gas_used or 'N/A'}")
    print(f"Explorer:   {explorer_tx_url(tx.tx_hash)}")

    print_section("LINE ITEMS", "-")
    print(line_items_to_dataframe(tx).to_string(index=False))
    return 0


async def show_health(reader: ChainReader) -> int:
    healthy = await check_rpc_health(reader)
    print_section(f"RPC HEALTH: {CHAIN_NAME} ({CHAIN_ID})")
    print("RPC Connected" if healthy else "RPC Issues")
    return 0 if healthy else 1


async def run(args) -> int:
    context = create_chain_context(rpc_url=args.rpc_url)
    reader = ChainReader(context)

    if args.health:
        return await show_health(reader)
    if args.tx:
        return await show_transaction(reader, args.tx)
    return await show_history(reader, args.address, args.from_block)


def main():
    parser = argparse.ArgumentParser(description="Explore on-chain payroll history")
    parser.add_argument("address", nargs="?", help="Connected wallet address")
    parser.add_argument("--from-block", type=int, default=None, help="First block to scan")
    parser.add_argument("--tx", help="Rebuild a single batch from its transaction hash")
    parser.add_argument("--health", action="store_true", help="Check RPC reachability")
    parser.add_argument("--rpc-url", default=None, help="Override PAYROLL_RPC_URL")
    parser.add_argument("-v", "--verbose", action="store_true", help="Write debug logs to payroll_debug.log")
    args = parser.parse_args()

    if not (args.address or args.tx or args.health):
        parser.print_help()
        sys.exit(1)

    setup_logging(logging.INFO)
    if args.verbose:
        setup_payroll_debug_logging()
        logger.info(f"Verbose logs written to {DEBUG_LOG_PATH}")

    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
