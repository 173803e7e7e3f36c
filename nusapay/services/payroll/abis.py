"""
Contract ABIs for the payroll history service.

Only the fragments this service reads or calls are declared here:
the two OriginPayroll batch events, the batch execution entry point,
and the ERC-20 approve/allowance pair of the payout token.
"""

PAYROLL_BATCH_SENT = "PayrollBatchSent"
PAYROLL_BATCH_DETAILS = "PayrollBatchDetails"

# Argument order as emitted by the contract
BATCH_SENT_FIELDS = (
    "payrollId",
    "totalRecipients",
    "totalCryptoAmount",
    "totalFiatAmount",
    "timestamp",
)

BATCH_DETAILS_FIELDS = (
    "payrollId",
    "employees",
    "cryptoAmounts",
    "fiatAmounts",
    "currencies",
    "bankAccounts",
)

ORIGIN_PAYROLL_ABI = [
    {
        "anonymous": False,
        "inputs": [
            {"indexed": True, "internalType": "bytes32", "name": "payrollId", "type": "bytes32"},
            {"indexed": False, "internalType": "uint256", "name": "totalRecipients", "type": "uint256"},
            {"indexed": False, "internalType": "uint256", "name": "totalCryptoAmount", "type": "uint256"},
            {"indexed": False, "internalType": "uint256", "name": "totalFiatAmount", "type": "uint256"},
            {"indexed": False, "internalType": "uint256", "name": "timestamp", "type": "uint256"},
        ],
        "name": PAYROLL_BATCH_SENT,
        "type": "event",
    },
    {
        "anonymous": False,
        "inputs": [
            {"indexed": True, "internalType": "bytes32", "name": "payrollId", "type": "bytes32"},
            {"indexed": False, "internalType": "address[]", "name": "employees", "type": "address[]"},
            {"indexed": False, "internalType": "uint256[]", "name": "cryptoAmounts", "type": "uint256[]"},
            {"indexed": False, "internalType": "uint256[]", "name": "fiatAmounts", "type": "uint256[]"},
            {"indexed": False, "internalType": "string[]", "name": "currencies", "type": "string[]"},
            {"indexed": False, "internalType": "string[]", "name": "bankAccounts", "type": "string[]"},
        ],
        "name": PAYROLL_BATCH_DETAILS,
        "type": "event",
    },
    {
        "inputs": [
            {"internalType": "address[]", "name": "employees", "type": "address[]"},
            {"internalType": "uint256[]", "name": "cryptoAmounts", "type": "uint256[]"},
            {"internalType": "uint256[]", "name": "fiatAmounts", "type": "uint256[]"},
            {"internalType": "string[]", "name": "currencies", "type": "string[]"},
            {"internalType": "string[]", "name": "bankAccounts", "type": "string[]"},
        ],
        "name": "executePayrollBatch",
        "outputs": [{"internalType": "bytes32", "name": "payrollId", "type": "bytes32"}],
        "stateMutability": "payable",
        "type": "function",
    },
    {
        "inputs": [],
        "name": "owner",
        "outputs": [{"internalType": "address", "name": "", "type": "address"}],
        "stateMutability": "view",
        "type": "function",
    },
]

ERC20_ABI = [
    {
        "inputs": [
            {"internalType": "address", "name": "spender", "type": "address"},
            {"internalType": "uint256", "name": "amount", "type": "uint256"},
        ],
        "name": "approve",
        "outputs": [{"internalType": "bool", "name": "", "type": "bool"}],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "inputs": [
            {"internalType": "address", "name": "owner", "type": "address"},
            {"internalType": "address", "name": "spender", "type": "address"},
        ],
        "name": "allowance",
        "outputs": [{"internalType": "uint256", "name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [{"internalType": "address", "name": "account", "type": "address"}],
        "name": "balanceOf",
        "outputs": [{"internalType": "uint256", "name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
]


def event_signature(event_name: str) -> str:
    """Canonical signature string (e.g. 'PayrollBatchSent(bytes32,uint256,...)') for an event in ORIGIN_PAYROLL_ABI"""
    for entry in ORIGIN_PAYROLL_ABI:
        if entry.get("type") == "event" and entry.get("name") == event_name:
            arg_types = ",".join(inp["type"] for inp in entry["inputs"])
            return f"{event_name}({arg_types})"
    raise KeyError(f"Unknown payroll event: {event_name}")
