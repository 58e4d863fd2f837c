"""
Network-independent constants for the AlphaSec exchange.
"""

DEFAULT_API_URL = "https://api-testnet.alphasec.trade"

# L2 contracts
ORDER_CONTRACT_ADDRESS = "0x00000000000000000000000000000000000000cc"
SYSTEM_CONTRACT_ADDRESS = "0x0000000000000000000000000000000000000064"
L2_GATEWAY_ROUTER_ADDRESS = "0xD2b30f9548DEE14093CF903ec70866469EFff97A"

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

# Token id of the native KAIA token on the exchange
NATIVE_TOKEN_ID = "1"

# Every token on the L2 uses 18 decimals
L2_TOKEN_DECIMALS = 18

# Envelope gas parameters (the L2 charges no native gas)
ALPHASEC_GAS_LIMIT = 1_000_000
ALPHASEC_MAX_FEE_PER_GAS = 0
ALPHASEC_MAX_PRIORITY_FEE_PER_GAS = 0

# L1 bridge parameters
L1_GAS_LIMIT = 1_000_000
DEPOSIT_L2_GAS_LIMIT = 1_000_000
DEPOSIT_L2_GAS_PRICE = 1_000_000
DEPOSIT_MAX_SUBMISSION_COST = 10**16  # 0.01 KAIA
DEPOSIT_L2_FEE_VALUE = 2 * 10**16  # 0.02 KAIA

# Command tags
DEX_COMMAND_SESSION = 0x01
DEX_COMMAND_TRANSFER = 0x02
DEX_COMMAND_TOKEN_TRANSFER = 0x11
DEX_COMMAND_ORDER = 0x21
DEX_COMMAND_CANCEL = 0x22
DEX_COMMAND_CANCEL_ALL = 0x23
DEX_COMMAND_MODIFY = 0x24
DEX_COMMAND_STOP_ORDER = 0x25

# EIP-712 session authorization domain
EIP712_DOMAIN_NAME = "DEXSignTransaction"
EIP712_DOMAIN_VERSION = "1"

# ABIs
INBOX_ABI = [
    {
        "inputs": [],
        "name": "depositEth",
        "outputs": [{"internalType": "uint256", "name": "", "type": "uint256"}],
        "stateMutability": "payable",
        "type": "function"
    }
]

ERC20_ABI = [
    {
        "inputs": [
            {"internalType": "address", "name": "spender", "type": "address"},
            {"internalType": "uint256", "name": "amount", "type": "uint256"}
        ],
        "name": "approve",
        "outputs": [{"internalType": "bool", "name": "", "type": "bool"}],
        "stateMutability": "nonpayable",
        "type": "function"
    },
    {
        "inputs": [
            {"internalType": "address", "name": "owner", "type": "address"},
            {"internalType": "address", "name": "spender", "type": "address"}
        ],
        "name": "allowance",
        "outputs": [{"internalType": "uint256", "name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function"
    }
]

L1_GATEWAY_ROUTER_ABI = [
    {
        "inputs": [
            {"internalType": "address", "name": "_token", "type": "address"},
            {"internalType": "address", "name": "_to", "type": "address"},
            {"internalType": "uint256", "name": "_amount", "type": "uint256"},
            {"internalType": "uint256", "name": "_maxGas", "type": "uint256"},
            {"internalType": "uint256", "name": "_gasPriceBid", "type": "uint256"},
            {"internalType": "bytes", "name": "_data", "type": "bytes"}
        ],
        "name": "outboundTransfer",
        "outputs": [{"internalType": "bytes", "name": "", "type": "bytes"}],
        "stateMutability": "payable",
        "type": "function"
    }
]

L2_SYSTEM_ABI = [
    {
        "inputs": [{"internalType": "address", "name": "destination", "type": "address"}],
        "name": "withdrawEth",
        "outputs": [{"internalType": "uint256", "name": "", "type": "uint256"}],
        "stateMutability": "payable",
        "type": "function"
    }
]

L2_GATEWAY_ROUTER_ABI = [
    {
        "inputs": [
            {"internalType": "address", "name": "_l1Token", "type": "address"},
            {"internalType": "address", "name": "_to", "type": "address"},
            {"internalType": "uint256", "name": "_amount", "type": "uint256"},
            {"internalType": "bytes", "name": "_data", "type": "bytes"}
        ],
        "name": "outboundTransfer",
        "outputs": [{"internalType": "bytes", "name": "", "type": "bytes"}],
        "stateMutability": "nonpayable",
        "type": "function"
    }
]
