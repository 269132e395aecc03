"""
Program-wide immutable parameters for the custodial lottery.

These values define account addresses and on-ledger layouts.
Changing any of them orphans every record created under the old values.
"""

# Program id (base58) mixed into every derived address
PROGRAM_ID = "FpDJiceCWU5Zdyd8arskS9fvpZY9kzypC4q3Ak6jadmB"

# Address namespaces
MASTER_SEED = "master"
LOTTERY_SEED = "lottery"
TICKET_SEED = "ticket"

# Integer widths of stored fields
U32_MAX = 2**32 - 1
U64_MAX = 2**64 - 1

# Draw: digest prefix width (bytes) and the reduction applied before `% ticket_count`
DRAW_PREFIX_BYTES = 8
DRAW_MODULUS = 2**32

# Minimum balance (rent exemption): (overhead + data_len) * per-byte-year * years
ACCOUNT_STORAGE_OVERHEAD = 128
LAMPORTS_PER_BYTE_YEAR = 3480
EXEMPTION_THRESHOLD_YEARS = 2

LAMPORTS_PER_SOL = 1_000_000_000

STATE_FILE_VERSION = 1
