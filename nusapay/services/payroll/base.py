"""
Base types for payroll history reconstruction.

Typed decoded events for the two OriginPayroll event streams, the merged
NormalizedTransaction view record, the RpcResult wrapper returned by every
network-facing read, and unit/formatting helpers shared by the pipeline.
"""

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Awaitable, Dict, Generic, List, Optional, TypeVar
import logging

logger = logging.getLogger(__name__)

T = TypeVar("T")


# ============================================================================
# ENUMS
# ============================================================================

class TransactionStatus(Enum):
    """Tri-state status derived from receipt availability and outcome"""
    PENDING = "PENDING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self is not TransactionStatus.PENDING


# ============================================================================
# DATA CLASSES
# ============================================================================

@dataclass(frozen=True)
class BatchSentEvent:
    """Summary log emitted once per payroll batch"""
    payroll_id: str
    total_recipients: int
    total_crypto_amount: str  # 6-decimal formatted
    total_fiat_amount: str  # raw integer string
    timestamp: int
    tx_hash: str
    block_number: int


@dataclass(frozen=True)
class BatchDetailsEvent:
    """Line-item log emitted once per payroll batch; lists are index-aligned"""
    payroll_id: str
    employees: List[str] = field(default_factory=list)
    crypto_amounts: List[str] = field(default_factory=list)
    fiat_amounts: List[str] = field(default_factory=list)
    currencies: List[str] = field(default_factory=list)
    bank_accounts: List[str] = field(default_factory=list)

    @property
    def recipient_count(self) -> int:
        return len(self.employees)


@dataclass
class NormalizedTransaction:
    """
    Merged view of one payroll batch.

    Built fresh on every history fetch; only `status` is ever patched
    afterwards (by pending polls).
    """
    payroll_id: str
    tx_hash: str
    block_number: int
    timestamp: int
    total_recipients: int
    total_crypto_amount: str
    total_fiat_amount: str
    employees: List[str] = field(default_factory=list)
    crypto_amounts: List[str] = field(default_factory=list)
    fiat_amounts: List[str] = field(default_factory=list)
    currencies: List[str] = field(default_factory=list)
    bank_accounts: List[str] = field(default_factory=list)
    status: TransactionStatus = TransactionStatus.PENDING
    gas_used: Optional[str] = None
    gas_price: Optional[str] = None

    @property
    def is_pending(self) -> bool:
        return self.status is TransactionStatus.PENDING

    @classmethod
    def from_events(
        cls,
        summary: BatchSentEvent,
        details: BatchDetailsEvent,
        status: TransactionStatus,
        timestamp: Optional[int] = None,
        gas_used: Optional[str] = None,
        gas_price: Optional[str] = None,
    ) -> "NormalizedTransaction":
        return cls(
            payroll_id=summary.payroll_id,
            tx_hash=summary.tx_hash,
            block_number=summary.block_number,
            timestamp=summary.timestamp if timestamp is None else timestamp,
            total_recipients=summary.total_recipients,
            total_crypto_amount=summary.total_crypto_amount,
            total_fiat_amount=summary.total_fiat_amount,
            employees=list(details.employees),
            crypto_amounts=list(details.crypto_amounts),
            fiat_amounts=list(details.fiat_amounts),
            currencies=list(details.currencies),
            bank_accounts=list(details.bank_accounts),
            status=status,
            gas_used=gas_used,
            gas_price=gas_price,
        )

    def to_dict(self) -> dict:
        """Serialize to the camelCase shape the history view consumes."""
        return {
            'payrollId': self.payroll_id,
            'txHash': self.tx_hash,
            'blockNumber': self.block_number,
            'timestamp': self.timestamp,
            'totalRecipients': self.total_recipients,
            'totalCryptoAmount': self.total_crypto_amount,
            'totalFiatAmount': self.total_fiat_amount,
            'employees': list(self.employees),
            'cryptoAmounts': list(self.crypto_amounts),
            'fiatAmounts': list(self.fiat_amounts),
            'currencies': list(self.currencies),
            'bankAccounts': list(self.bank_accounts),
            'status': self.status.value,
            'gasUsed': self.gas_used,
            'gasPrice': self.gas_price,
        }


@dataclass(frozen=True)
class RpcResult(Generic[T]):
    """
    Outcome of a single network-facing call.

    Either `value` is set (ok) or `error` holds a human-readable message.
    A successful call may still carry a `None` value (e.g. receipt not found).
    """
    value: Optional[T] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: Optional[T]) -> "RpcResult[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: str) -> "RpcResult[T]":
        return cls(error=error or "unknown RPC error")

    def value_or(self, default: T) -> T:
        return self.value if self.ok and self.value is not None else default


async def call_rpc(description: str, awaitable: Awaitable[T]) -> RpcResult[T]:
    """
    Await a node call and wrap its outcome in an RpcResult.

    This is the only place network exceptions are intercepted; callers
    branch on `result.ok` instead of using try/except.
    """
    try:
        return RpcResult.success(await awaitable)
    except Exception as e:
        logger.warning(f"RPC call failed ({description}): {e}")
        return RpcResult.failure(f"{description}: {e}")


# ============================================================================
# HELPER FUNCTIONS
# ============================================================================

def format_units(value: Any, decimals: int = 6) -> str:
    """
    Format an on-chain integer amount as a decimal string.

    Trailing zeros are stripped but at least one fractional digit is kept:
    2000000 -> "2.0", 1500000 -> "1.5", 1 -> "0.000001".
    """
    amount = int(value or 0)
    negative = amount < 0
    amount = abs(amount)

    if decimals <= 0:
        text = f"{amount}.0"
    else:
        whole, frac = divmod(amount, 10 ** decimals)
        frac_str = str(frac).zfill(decimals).rstrip("0") or "0"
        text = f"{whole}.{frac_str}"

    return f"-{text}" if negative else text


def parse_units(value: Any, decimals: int = 6) -> int:
    """
    Convert a decimal amount (string/Decimal/int) to on-chain integer units.

    Raises:
        ValueError: if the amount is not a number or has more precision than
            `decimals` allows
    """
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError) as e:
        raise ValueError(f"Invalid amount: {value!r}") from e

    if not amount.is_finite():
        raise ValueError(f"Invalid amount: {value!r}")

    scaled = amount * (Decimal(10) ** decimals)
    if scaled != scaled.to_integral_value():
        raise ValueError(f"Amount {value} has more than {decimals} decimal places")
    return int(scaled)


def to_hex_str(value: Any) -> str:
    """Normalize bytes / HexBytes / str identifiers to a 0x-prefixed string."""
    # HexBytes is a bytes subclass
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    return str(value)


def normalize_tx_hash(tx_hash: Any) -> str:
    """Always return a 0x-prefixed transaction hash."""
    hex_str = to_hex_str(tx_hash)
    if not hex_str.startswith("0x"):
        hex_str = f"0x{hex_str}"
    return hex_str


def decode_payroll_id(value: Any) -> str:
    """Batch ids arrive as bytes32 from web3 and as plain strings from other sources."""
    if isinstance(value, (bytes, bytearray)):
        return to_hex_str(value)
    return str(value) if value is not None else ""


def format_address(address: str, length: int = 6) -> str:
    """Format address for display"""
    if not address:
        return ""
    if len(address) <= length + 4:
        return address
    return f"{address[:length]}...{address[-4:]}"
