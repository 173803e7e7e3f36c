"""
Chain context and read interface for the OriginPayroll contract.

A ChainContext is built once per session (web3 handle, contract addresses,
ABIs) and passed explicitly into every operation. ChainReader exposes the
four reads the history pipeline consumes plus receipt log decoding for
single-transaction lookups.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple
import logging

import aiohttp
from web3 import AsyncWeb3, Web3
from web3.exceptions import TransactionNotFound

from ...config.blockchain_config import (
    PAYROLL_RPC_URL, ORIGIN_PAYROLL_ADDRESS, USDC_TOKEN_ADDRESS,
    CHAIN_ID, TOKEN_DECIMALS, DEFAULT_LOOKBACK_BLOCKS, FALLBACK_BLOCK_NUMBER,
    REQUEST_TIMEOUT,
)
from .abis import (
    ORIGIN_PAYROLL_ABI, ERC20_ABI,
    PAYROLL_BATCH_SENT, PAYROLL_BATCH_DETAILS, event_signature,
)

logger = logging.getLogger(__name__)


@dataclass
class ChainContext:
    """Connection handle plus the fixed contract interface the service talks to"""
    w3: AsyncWeb3
    payroll_address: str
    token_address: str
    payroll_abi: List[Dict[str, Any]] = field(default_factory=lambda: list(ORIGIN_PAYROLL_ABI))
    token_abi: List[Dict[str, Any]] = field(default_factory=lambda: list(ERC20_ABI))
    chain_id: int = CHAIN_ID
    token_decimals: int = TOKEN_DECIMALS
    lookback_blocks: int = DEFAULT_LOOKBACK_BLOCKS
    fallback_block_number: int = FALLBACK_BLOCK_NUMBER

    def __post_init__(self):
        self.payroll_address = Web3.to_checksum_address(self.payroll_address)
        self.token_address = Web3.to_checksum_address(self.token_address)
        self.payroll_contract = self.w3.eth.contract(address=self.payroll_address, abi=self.payroll_abi)
        self.token_contract = self.w3.eth.contract(address=self.token_address, abi=self.token_abi)


def create_chain_context(
    rpc_url: Optional[str] = None,
    payroll_address: Optional[str] = None,
    token_address: Optional[str] = None,
) -> ChainContext:
    """
    Build a ChainContext from configuration.

    Args:
        rpc_url: HTTP RPC endpoint (defaults to PAYROLL_RPC_URL)
        payroll_address: OriginPayroll contract address override
        token_address: payout token address override

    Returns:
        ChainContext bound to an AsyncWeb3 HTTP provider
    """
    url = rpc_url or PAYROLL_RPC_URL
    logger.info(f"Connecting to payroll RPC: {url[:50]}")
    w3 = AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(
        url,
        request_kwargs={"timeout": aiohttp.ClientTimeout(total=REQUEST_TIMEOUT)},
    ))
    return ChainContext(
        w3=w3,
        payroll_address=payroll_address or ORIGIN_PAYROLL_ADDRESS,
        token_address=token_address or USDC_TOKEN_ADDRESS,
    )


class ChainReader:
    """
    Read-only access to the node for the payroll contract.

    Methods raise on transport errors; callers wrap them with `call_rpc`.
    A missing receipt is not an error and is returned as None.
    """

    EVENT_NAMES = (PAYROLL_BATCH_SENT, PAYROLL_BATCH_DETAILS)

    def __init__(self, context: ChainContext):
        self.context = context
        self.w3 = context.w3
        self.contract = context.payroll_contract
        self._topics = {
            name: Web3.to_hex(Web3.keccak(text=event_signature(name)))
            for name in self.EVENT_NAMES
        }

    async def get_block_number(self) -> int:
        return await self.w3.eth.block_number

    async def query_events(self, event_name: str, from_block: int, to_block: int) -> List[Any]:
        """
        Fetch and ABI-decode every `event_name` log of the payroll contract in
        [from_block, to_block]. Logs that fail to decode are skipped.
        """
        logs = await self.w3.eth.get_logs({
            'address': self.context.payroll_address,
            'fromBlock': from_block,
            'toBlock': to_block,
            'topics': [self._topics[event_name]],
        })

        event = getattr(self.contract.events, event_name)()
        decoded = []
        for log in logs:
            try:
                decoded.append(event.process_log(log))
            except Exception as e:
                logger.warning(f"Could not decode {event_name} log at block {log.get('blockNumber')}: {e}")
        logger.debug(f"{event_name}: {len(decoded)}/{len(logs)} logs decoded in blocks {from_block}-{to_block}")
        return decoded

    async def get_transaction_receipt(self, tx_hash: str) -> Optional[Any]:
        try:
            return await self.w3.eth.get_transaction_receipt(tx_hash)
        except TransactionNotFound:
            return None

    async def get_block(self, block_number: int) -> Any:
        return await self.w3.eth.get_block(block_number)

    def decode_receipt_events(self, receipt: Any) -> List[Tuple[str, Any]]:
        """
        Decode the payroll events contained in a receipt.

        Only logs emitted by the payroll contract are considered; logs that do
        not match either event ABI are ignored.

        Returns:
            (event_name, decoded_event) pairs in log order
        """
        payroll = self.context.payroll_address.lower()
        events = []
        for log in receipt.get('logs', []):
            if str(log.get('address', '')).lower() != payroll:
                continue
            for name in self.EVENT_NAMES:
                try:
                    events.append((name, getattr(self.contract.events, name)().process_log(log)))
                    break
                except Exception as e:
                    logger.debug(f"Log {log.get('logIndex')} is not {name}: {e}")
        return events
