"""
Protocol-wide immutable parameters of the RandomWin contract.

Opcodes and exit codes are part of the public wire contract.
Changing them breaks every deployed client and MUST be announced.
"""

# Inbound opcodes (32-bit)
OP_CREATE_DRAW = 0x7E8764EF
OP_LUCK_ROLL = 0x0F1A3EA5
OP_TOP_UP = 0xD372158C

# Application exit codes
ERROR_NOT_OWNER = 1001
ERROR_DRAW_ALREADY_EXISTS = 1004
ERROR_DRAW_NOT_FOUND = 1009
ERROR_WRONG_OP = 0xFFFF

# Coins use 9 decimals (1 coin = 10**9 nano)
COIN_DECIMALS = 9
NANO_PER_COIN = 10**COIN_DECIMALS

# VarUInteger 16: 4-bit length prefix, at most 15 value bytes
MAX_COINS = 2**120 - 1

MAX_FEE_PERCENT = 100

# Deducted from declined stakes and required to process any value-bearing message
DEFAULT_PROCESSING_FEE = 10_000_000  # 0.01 coin in nano

CREATE_POLICY_ANYONE = "anyone"
CREATE_POLICY_OWNER = "owner"
CREATE_POLICIES = (CREATE_POLICY_ANYONE, CREATE_POLICY_OWNER)

DEFAULT_STATE_FILE = "random_win_state.json"

# Named sandbox wallets start with this balance (raw units)
SANDBOX_WALLET_BALANCE = 1_000_000 * NANO_PER_COIN

TONCENTER_JSONRPC_URL = "https://toncenter.com/api/v2/jsonRPC"
