"""
Payroll Batch Submission

Validates payroll rows, converts them into the argument lists of
OriginPayroll.executePayrollBatch, and submits the two-step flow:

    0. pre-flight: signer owns the contract, token balance covers the total
    1. ERC-20 approve(payroll contract, total crypto amount)
       (skipped when the allowance already covers it)
    2. executePayrollBatch(employees, cryptoAmounts, fiatAmounts,
                           currencies, bankAccounts)   (payable)

The native value sent with step 2 pays for cross-chain delivery gas.
The batches written here are what the history pipeline later reads back
from PayrollBatchSent / PayrollBatchDetails.
"""

import os
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, List, Optional, Sequence
import logging

from eth_account import Account
from web3 import Web3

from ...config.blockchain_config import (
    USDC_TO_IDR_RATE, SUPPORTED_CURRENCIES, TOKEN_DECIMALS, RECEIPT_WAIT_TIMEOUT,
    INDONESIAN_BANKS,
)
from .base import normalize_tx_hash, parse_units
from .chain import ChainContext

logger = logging.getLogger(__name__)


class WalletNotConnectedError(RuntimeError):
    """Raised when a write is attempted without a signing account."""


class PayrollValidationError(ValueError):
    """Raised when payroll rows cannot be turned into a valid batch."""


class NotPayrollOwnerError(RuntimeError):
    """Raised when the signing account does not own the payroll contract."""


class InsufficientBalanceError(RuntimeError):
    """Raised when the signer's token balance cannot cover the batch."""


class ApprovalRevertedError(RuntimeError):
    """Raised when the token approval transaction reverts."""


# ============================================================================
# INPUT ROWS
# ============================================================================

@dataclass
class PayrollEntry:
    """One employee row of a payroll form"""
    address: str
    crypto_amount: Any  # decimal USDC, e.g. "150.25"
    fiat_amount: Any  # whole local-currency units
    currency: str = "IDR"
    bank_code: str = ""
    account_number: str = ""
    name: str = ""

    @property
    def bank_account(self) -> str:
        return f"{self.bank_code}:{self.account_number}"

    @property
    def bank_name(self) -> str:
        return INDONESIAN_BANKS.get(self.bank_code.upper(), self.bank_code)


def convert_usdc_to_idr(amount: Any) -> str:
    """
    Convert a USDC amount to whole IDR at the fixed payroll rate.

    Non-numeric input counts as 0.
    """
    try:
        value = Decimal(str(amount).strip())
    except (InvalidOperation, ValueError):
        return "0"
    if not value.is_finite():
        return "0"
    return str(int(value * USDC_TO_IDR_RATE))


@dataclass
class PayrollBatch:
    """Contract-ready argument lists for one executePayrollBatch call"""
    employees: List[str] = field(default_factory=list)
    crypto_amounts: List[int] = field(default_factory=list)  # token units
    fiat_amounts: List[int] = field(default_factory=list)
    currencies: List[str] = field(default_factory=list)
    bank_accounts: List[str] = field(default_factory=list)

    @property
    def total_crypto_units(self) -> int:
        return sum(self.crypto_amounts)

    @property
    def recipient_count(self) -> int:
        return len(self.employees)

    def as_call_args(self) -> tuple:
        return (
            list(self.employees),
            list(self.crypto_amounts),
            list(self.fiat_amounts),
            list(self.currencies),
            list(self.bank_accounts),
        )


def _parse_fiat(value: Any, row: int) -> int:
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError) as e:
        raise PayrollValidationError(f"Row {row}: invalid fiat amount {value!r}") from e
    if not amount.is_finite() or amount != amount.to_integral_value() or amount < 0:
        raise PayrollValidationError(f"Row {row}: fiat amount must be a non-negative whole number, got {value!r}")
    return int(amount)


def build_payroll_batch(entries: Sequence[PayrollEntry], decimals: int = TOKEN_DECIMALS) -> PayrollBatch:
    """
    Validate payroll rows and convert them to contract arguments.

    Args:
        entries: payroll rows in submission order
        decimals: payout token precision

    Returns:
        PayrollBatch with checksummed addresses and integer amounts

    Raises:
        PayrollValidationError: on the first invalid row
    """
    if not entries:
        raise PayrollValidationError("Payroll batch has no entries")

    batch = PayrollBatch()
    for row, entry in enumerate(entries, start=1):
        if not entry.address or not Web3.is_address(entry.address):
            raise PayrollValidationError(f"Row {row}: invalid wallet address {entry.address!r}")

        try:
            units = parse_units(entry.crypto_amount, decimals)
        except ValueError as e:
            raise PayrollValidationError(f"Row {row}: {e}") from e
        if units <= 0:
            raise PayrollValidationError(f"Row {row}: crypto amount must be positive")

        currency = (entry.currency or "").upper()
        if currency not in SUPPORTED_CURRENCIES:
            raise PayrollValidationError(f"Row {row}: unsupported currency {entry.currency!r}")

        if not entry.bank_code or not entry.account_number:
            raise PayrollValidationError(f"Row {row}: bank code and account number are required")

        batch.employees.append(Web3.to_checksum_address(entry.address))
        batch.crypto_amounts.append(units)
        batch.fiat_amounts.append(_parse_fiat(entry.fiat_amount, row))
        batch.currencies.append(currency)
        batch.bank_accounts.append(entry.bank_account)

    return batch


# ============================================================================
# SUBMISSION
# ============================================================================

def parse_gas_payment(value: Any) -> int:
    """
    Convert the native-token gas payment (in ether units) to wei.

    Raises:
        PayrollValidationError: if the value is not a non-negative number
    """
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError) as e:
        raise PayrollValidationError(f"Invalid gas payment {value!r}") from e
    if not amount.is_finite() or amount < 0:
        raise PayrollValidationError(f"Gas payment must be a non-negative number, got {value!r}")
    wei = amount * (Decimal(10) ** 18)
    if wei != wei.to_integral_value():
        raise PayrollValidationError(f"Gas payment {value} has more than 18 decimal places")
    return int(wei)


class PayrollSubmitter:
    """
    Signs and sends payroll transactions from a local account.

    Usage:
        submitter = PayrollSubmitter.from_env(context)
        approve_hash, batch_hash = await submitter.submit(entries, gas_payment_eth="0.01")
    """

    def __init__(self, context: ChainContext, account=None):
        self.context = context
        self.w3 = context.w3
        self.account = account

    @classmethod
    def from_env(cls, context: ChainContext, env_var: str = "PAYROLL_PRIVATE_KEY") -> "PayrollSubmitter":
        """Build a submitter from a private key in the environment (unsigned if unset)."""
        private_key = os.getenv(env_var)
        if not private_key:
            logger.warning(f"{env_var} not set; payroll submission is disabled")
            return cls(context)
        return cls(context, Account.from_key(private_key))

    def _require_account(self):
        if self.account is None:
            raise WalletNotConnectedError("No signing account configured for payroll submission")
        return self.account

    async def _send(self, function_call, value: int = 0) -> str:
        account = self._require_account()
        nonce = await self.w3.eth.get_transaction_count(account.address, "pending")
        tx = await function_call.build_transaction({
            'from': account.address,
            'nonce': nonce,
            'value': value,
            'chainId': self.context.chain_id,
        })
        signed = account.sign_transaction(tx)
        tx_hash = await self.w3.eth.send_raw_transaction(signed.raw_transaction)
        return normalize_tx_hash(tx_hash)

    # ------------------------------------------------------------------
    # Pre-flight reads
    # ------------------------------------------------------------------

    async def is_owner(self) -> bool:
        """True when the signing account owns the payroll contract."""
        account = self._require_account()
        owner = await self.context.payroll_contract.functions.owner().call()
        return str(owner).lower() == account.address.lower()

    async def token_balance(self) -> int:
        account = self._require_account()
        return await self.context.token_contract.functions.balanceOf(account.address).call()

    async def token_allowance(self) -> int:
        account = self._require_account()
        return await self.context.token_contract.functions.allowance(
            account.address, self.context.payroll_address
        ).call()

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def approve(self, amount_units: int) -> str:
        """Allow the payroll contract to pull `amount_units` of the payout token."""
        self._require_account()
        logger.info(f"Approving {amount_units} token units for {self.context.payroll_address}")
        call = self.context.token_contract.functions.approve(self.context.payroll_address, amount_units)
        return await self._send(call)

    async def execute(self, batch: PayrollBatch, gas_payment_wei: int = 0) -> str:
        """Send executePayrollBatch for an already approved batch."""
        self._require_account()
        logger.info(
            f"Executing payroll batch: {batch.recipient_count} recipients, "
            f"{batch.total_crypto_units} token units, gas payment {gas_payment_wei} wei"
        )
        call = self.context.payroll_contract.functions.executePayrollBatch(*batch.as_call_args())
        return await self._send(call, value=gas_payment_wei)

    async def submit(
        self,
        entries: Sequence[PayrollEntry],
        gas_payment_eth: Any = "0",
        receipt_timeout: Optional[float] = RECEIPT_WAIT_TIMEOUT,
    ) -> tuple:
        """
        Validate, approve and execute one payroll batch.

        Approval is skipped when the current allowance already covers the
        batch total; the first hash is then None.

        Returns:
            (approve_tx_hash or None, batch_tx_hash)

        Raises:
            WalletNotConnectedError: no signing account
            PayrollValidationError: invalid rows or gas payment
            NotPayrollOwnerError: signer does not own the payroll contract
            InsufficientBalanceError: token balance below the batch total
            ApprovalRevertedError: the approval transaction reverted
        """
        account = self._require_account()
        batch = build_payroll_batch(entries, self.context.token_decimals)
        gas_payment_wei = parse_gas_payment(gas_payment_eth)

        if not await self.is_owner():
            raise NotPayrollOwnerError(f"{account.address} is not the owner of the payroll contract")

        balance = await self.token_balance()
        if balance < batch.total_crypto_units:
            raise InsufficientBalanceError(
                f"Token balance {balance} is below the batch total {batch.total_crypto_units}"
            )

        approve_hash = None
        allowance = await self.token_allowance()
        if allowance >= batch.total_crypto_units:
            logger.info(f"Allowance {allowance} already covers the batch; skipping approval")
        else:
            approve_hash = await self.approve(batch.total_crypto_units)
            receipt = await self.w3.eth.wait_for_transaction_receipt(approve_hash, timeout=receipt_timeout)
            if receipt.get('status') != 1:
                raise ApprovalRevertedError(f"Token approval {approve_hash} reverted")

        batch_hash = await self.execute(batch, gas_payment_wei)
        logger.info(f"Payroll batch submitted: {batch_hash}")
        return approve_hash, batch_hash
