"""
Blockchain Configuration Module

Contains all chain-related constants, contract addresses and settings
for the OriginPayroll integration on Core Testnet.
"""

import os
from decimal import Decimal

# RPC Configuration
PAYROLL_RPC_URL = os.getenv("PAYROLL_RPC_URL", "https://rpc.test2.btcs.network")

CHAIN_ID = 4202  # Core Testnet
CHAIN_NAME = "Core Testnet"

# Explorer URLs
EXPLORER_BASE_URL = os.getenv("EXPLORER_BASE_URL", "https://scan.test2.btcs.network")

# Contract Addresses
ORIGIN_PAYROLL_ADDRESS = os.getenv(
    "ORIGIN_PAYROLL_ADDRESS", "0x63719d58c13AbaDad02d5390c7f83082F51De805"
)
USDC_TOKEN_ADDRESS = os.getenv(
    "USDC_TOKEN_ADDRESS", "0x3dBFCF9B63F77125351866b7F2B027908810b4C0"
)

# Token precision (USDC)
TOKEN_DECIMALS = 6
TOKEN_SYMBOL = "USDC"

# Event query configuration
DEFAULT_LOOKBACK_BLOCKS = 10_000  # Last 10k blocks when no start block is given
FALLBACK_BLOCK_NUMBER = 1_000_000  # Used when the node cannot report its height
REQUEST_TIMEOUT = 30  # seconds

# Polling configuration
REFRESH_INTERVAL_SECONDS = 30  # pending status poll + RPC health check
RECEIPT_WAIT_TIMEOUT = 120  # seconds to wait for the approval receipt

# Exchange Rate (static)
USDC_TO_IDR_RATE = Decimal("16400")

SUPPORTED_CURRENCIES = {"IDR", "USD", "SGD", "MYR"}

# Indonesian banks accepted for fiat settlement
INDONESIAN_BANKS = {
    "BCA": "Bank Central Asia (BCA)",
    "BRI": "Bank Rakyat Indonesia (BRI)",
    "BNI": "Bank Negara Indonesia (BNI)",
    "MANDIRI": "Bank Mandiri",
    "CIMB": "CIMB Niaga",
    "DANAMON": "Bank Danamon",
    "PERMATA": "Bank Permata",
    "BSI": "Bank Syariah Indonesia (BSI)",
    "BTN": "Bank Tabungan Negara (BTN)",
    "OCBC": "OCBC NISP",
    "MAYBANK": "Maybank Indonesia",
    "PANIN": "Panin Bank",
    "JAGO": "Bank Jago",
    "SEA": "Bank Seabank Indonesia",
}

# Error message fragments that indicate the RPC node itself is unreachable
RPC_OUTAGE_SIGNATURES = (
    "failed to fetch",
    "failed to initialize provider",
    "could not coalesce error",
    "missing response",
    "connection refused",
    "connection reset",
    "cannot connect to host",
    "timed out",
    "timeout",
    "too many requests",
    "rate limit",
    "429",
    "502 bad gateway",
    "503 service unavailable",
)
